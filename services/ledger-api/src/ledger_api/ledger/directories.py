"""
Read-only access to the collaborators the ledger depends on: locations,
products and open-order reservations.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from database.db_session import session_scope
from database.enums import LocationType, OrderStatus
from database.inventory import Product
from database.locations import Location
from database.orders import Order, OrderRow
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from ledger_api.ledger.values import LocationInfo


class LocationDirectory(Protocol):
    def get_location(self, location_id: int) -> LocationInfo | None: ...

    def facility_ids(self) -> list[int]: ...


class ProductDirectory(Protocol):
    def has_product(self, product_id: int) -> bool: ...


class OrderDirectory(Protocol):
    def open_reservations_by_product(self) -> dict[int, int]: ...


class InMemoryDirectory:
    """Dictionary-backed directory for tests and embedded use."""

    def __init__(self) -> None:
        self._locations: dict[int, LocationInfo] = {}
        self._products: set[int] = set()
        self._orders: dict[int, tuple[OrderStatus, dict[int, int]]] = {}

    def add_location(
        self, location_id: int, name: str, location_type: LocationType
    ) -> LocationInfo:
        info = LocationInfo(location_id=location_id, name=name, location_type=location_type)
        self._locations[location_id] = info
        return info

    def add_product(self, product_id: int) -> None:
        self._products.add(product_id)

    def add_order(
        self, order_id: int, rows: Mapping[int, int], status: OrderStatus = OrderStatus.OPEN
    ) -> None:
        self._orders[order_id] = (status, dict(rows))

    def set_order_status(self, order_id: int, status: OrderStatus) -> None:
        _, rows = self._orders[order_id]
        self._orders[order_id] = (status, rows)

    def get_location(self, location_id: int) -> LocationInfo | None:
        return self._locations.get(location_id)

    def facility_ids(self) -> list[int]:
        return sorted(
            location_id for location_id, info in self._locations.items() if info.is_facility
        )

    def has_product(self, product_id: int) -> bool:
        return product_id in self._products

    def open_reservations_by_product(self) -> dict[int, int]:
        reserved: dict[int, int] = {}
        for status, rows in self._orders.values():
            if status != OrderStatus.OPEN:
                continue
            for product_id, pallet_amount in rows.items():
                reserved[product_id] = reserved.get(product_id, 0) + pallet_amount
        return reserved


class SqlDirectory:
    """Directory over the ``location``, ``product``, ``orders`` and ``order_row`` tables."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def get_location(self, location_id: int) -> LocationInfo | None:
        with session_scope(self._session_factory) as session:
            location = session.get(Location, location_id)
            if location is None:
                return None
            return LocationInfo(
                location_id=location.id,
                name=location.name,
                location_type=LocationType(location.location_type),
            )

    def facility_ids(self) -> list[int]:
        stmt = (
            select(Location.id)
            .where(Location.location_type == LocationType.PROCESSING_FACILITY)
            .order_by(Location.id)
        )
        with session_scope(self._session_factory) as session:
            return list(session.scalars(stmt).all())

    def has_product(self, product_id: int) -> bool:
        with session_scope(self._session_factory) as session:
            return session.get(Product, product_id) is not None

    def open_reservations_by_product(self) -> dict[int, int]:
        stmt = (
            select(OrderRow.product_id, func.sum(OrderRow.pallet_amount).label("reserved"))
            .join(Order, Order.id == OrderRow.order_id)
            .where(Order.status == OrderStatus.OPEN)
            .group_by(OrderRow.product_id)
        )
        with session_scope(self._session_factory) as session:
            return {product_id: int(reserved) for product_id, reserved in session.execute(stmt)}
