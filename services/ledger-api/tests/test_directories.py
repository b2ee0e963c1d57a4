from datetime import UTC, datetime
from typing import Any

import pytest
from database.enums import LocationType, OrderStatus
from database.orders import Order, OrderRow
from ledger_api.ledger.directories import InMemoryDirectory, SqlDirectory
from ledger_world import (
    CARRIER_ID,
    DEPOT_ID,
    EURO_PALLET_ID,
    HALF_PALLET_ID,
    HUB_ID,
    UNKNOWN_ID,
)
from sqlalchemy.orm import Session, sessionmaker

ORDERS = [
    (1, OrderStatus.OPEN, {EURO_PALLET_ID: 5, HALF_PALLET_ID: 1}),
    (2, OrderStatus.OPEN, {EURO_PALLET_ID: 3}),
    (3, OrderStatus.COLLECTED, {EURO_PALLET_ID: 40}),
    (4, OrderStatus.CANCELLED, {HALF_PALLET_ID: 9}),
]


def _sql_directory(request: pytest.FixtureRequest) -> SqlDirectory:
    request.getfixturevalue("seeded_db")
    factory: sessionmaker[Session] = request.getfixturevalue("session_factory")
    with factory() as session:
        for order_id, status, rows in ORDERS:
            session.add(
                Order(
                    id=order_id,
                    location_id=HUB_ID,
                    ordered_at=datetime(2024, 1, 10, tzinfo=UTC),
                    status=status,
                )
            )
        session.flush()
        for order_id, _, rows in ORDERS:
            for product_id, amount in rows.items():
                session.add(
                    OrderRow(order_id=order_id, product_id=product_id, pallet_amount=amount)
                )
        session.commit()
    return SqlDirectory(factory)


@pytest.fixture(params=["memory", "sql"])
def directory(request: pytest.FixtureRequest, directory: InMemoryDirectory) -> Any:
    if request.param == "sql":
        return _sql_directory(request)
    for order_id, status, rows in ORDERS:
        directory.add_order(order_id, rows, status=status)
    return directory


def test_get_location(directory) -> None:
    hub = directory.get_location(HUB_ID)

    assert hub.name == "Vantaa Hub"
    assert hub.location_type == LocationType.PROCESSING_FACILITY
    assert hub.is_facility
    assert not directory.get_location(CARRIER_ID).is_facility
    assert directory.get_location(UNKNOWN_ID) is None


def test_facility_ids(directory) -> None:
    assert directory.facility_ids() == [HUB_ID, DEPOT_ID]


def test_has_product(directory) -> None:
    assert directory.has_product(EURO_PALLET_ID)
    assert not directory.has_product(UNKNOWN_ID)


def test_open_reservations_sum_open_orders_only(directory) -> None:
    assert directory.open_reservations_by_product() == {EURO_PALLET_ID: 8, HALF_PALLET_ID: 1}
