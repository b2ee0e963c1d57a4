from datetime import UTC, datetime, timedelta, timezone

import pytest
from ledger_api.ledger.snapshot_store import (
    InMemorySnapshotStore,
    SnapshotEntry,
    SnapshotStore,
    SqlSnapshotStore,
)
from ledger_world import DEPOT_ID, EURO_PALLET_ID, HALF_PALLET_ID, HUB_ID, at


@pytest.fixture(params=["memory", "sql"])
def store(request: pytest.FixtureRequest) -> SnapshotStore:
    if request.param == "memory":
        return InMemorySnapshotStore()
    request.getfixturevalue("seeded_db")
    return SqlSnapshotStore(request.getfixturevalue("session_factory"))


def test_latest_as_of_picks_greatest_recorded_at_not_after_query(store: SnapshotStore) -> None:
    store.record(HUB_ID, EURO_PALLET_ID, 20, at(2023, 12, 28))
    store.record(HUB_ID, EURO_PALLET_ID, 60, at(2024, 1, 1))
    store.record(HUB_ID, EURO_PALLET_ID, 70, at(2024, 1, 24))

    assert store.latest_as_of(HUB_ID, EURO_PALLET_ID, at(2023, 12, 31)).quantity == 20
    assert store.latest_as_of(HUB_ID, EURO_PALLET_ID, at(2024, 1, 1)).quantity == 60
    assert store.latest_as_of(HUB_ID, EURO_PALLET_ID, at(2024, 1, 23, 23, 59)).quantity == 60
    assert store.latest_as_of(HUB_ID, EURO_PALLET_ID, at(2024, 2, 1)).quantity == 70


def test_query_before_first_snapshot_returns_nothing(store: SnapshotStore) -> None:
    store.record(HUB_ID, EURO_PALLET_ID, 20, at(2024, 1, 10))

    assert store.latest_as_of(HUB_ID, EURO_PALLET_ID, at(2024, 1, 9)) is None
    assert store.latest_per_product(HUB_ID, at(2024, 1, 9)) == []


def test_out_of_order_writes_resolve_by_timestamp(store: SnapshotStore) -> None:
    store.record(HUB_ID, EURO_PALLET_ID, 70, at(2024, 1, 24))
    store.record(HUB_ID, EURO_PALLET_ID, 60, at(2024, 1, 1))

    assert store.latest_as_of(HUB_ID, EURO_PALLET_ID, at(2024, 1, 10)).quantity == 60
    assert store.latest_as_of(HUB_ID, EURO_PALLET_ID, at(2024, 1, 30)).quantity == 70


def test_equal_timestamps_resolve_to_last_inserted(store: SnapshotStore) -> None:
    moment = at(2024, 1, 5)
    store.record(HUB_ID, EURO_PALLET_ID, 10, moment)
    store.record(HUB_ID, EURO_PALLET_ID, 12, moment)
    store.record(HUB_ID, EURO_PALLET_ID, 11, moment)

    latest = store.latest_per_product(HUB_ID, moment)

    assert [snapshot.quantity for snapshot in latest] == [11]
    assert store.latest_as_of(HUB_ID, EURO_PALLET_ID, moment).quantity == 11


def test_latest_per_product_returns_one_row_per_product_ordered(store: SnapshotStore) -> None:
    store.record(HUB_ID, HALF_PALLET_ID, 3, at(2024, 1, 2))
    store.record(HUB_ID, EURO_PALLET_ID, 5, at(2024, 1, 2))
    store.record(HUB_ID, EURO_PALLET_ID, 8, at(2024, 1, 3))
    store.record(DEPOT_ID, EURO_PALLET_ID, 99, at(2024, 1, 4))

    latest = store.latest_per_product(HUB_ID, at(2024, 1, 10))

    assert [(s.product_id, s.quantity) for s in latest] == [
        (EURO_PALLET_ID, 8),
        (HALF_PALLET_ID, 3),
    ]
    assert all(snapshot.location_id == HUB_ID for snapshot in latest)


def test_latest_across_takes_newest_over_all_locations(store: SnapshotStore) -> None:
    store.record(HUB_ID, EURO_PALLET_ID, 20, at(2024, 1, 5))
    store.record(DEPOT_ID, EURO_PALLET_ID, 7, at(2024, 1, 6))
    store.record(HUB_ID, HALF_PALLET_ID, 4, at(2024, 1, 7))

    latest = store.latest_across([HUB_ID, DEPOT_ID], at(2024, 1, 10))

    assert [(s.product_id, s.location_id, s.quantity) for s in latest] == [
        (EURO_PALLET_ID, DEPOT_ID, 7),
        (HALF_PALLET_ID, HUB_ID, 4),
    ]
    assert store.latest_across([], at(2024, 1, 10)) == []


def test_snapshots_within_is_half_open_and_ordered(store: SnapshotStore) -> None:
    store.record(HUB_ID, EURO_PALLET_ID, 1, at(2024, 1, 1))
    store.record(HUB_ID, HALF_PALLET_ID, 2, at(2024, 1, 3))
    store.record(HUB_ID, EURO_PALLET_ID, 3, at(2024, 1, 2))
    store.record(HUB_ID, EURO_PALLET_ID, 4, at(2024, 1, 4))

    within = store.snapshots_within(HUB_ID, at(2024, 1, 1), at(2024, 1, 3))

    assert [snapshot.quantity for snapshot in within] == [3, 2]


def test_timestamps_are_returned_in_utc(store: SnapshotStore) -> None:
    helsinki_noon = datetime(2024, 1, 5, 12, 0, tzinfo=timezone(timedelta(hours=2)))

    snapshot = store.record(HUB_ID, EURO_PALLET_ID, 5, helsinki_noon)
    stored = store.latest_as_of(HUB_ID, EURO_PALLET_ID, helsinki_noon)

    assert snapshot.recorded_at == datetime(2024, 1, 5, 10, 0, tzinfo=UTC)
    assert stored.recorded_at == snapshot.recorded_at
    assert stored.recorded_at.utcoffset() == timedelta(0)


def test_record_many_assigns_increasing_sequences(store: SnapshotStore) -> None:
    moment = at(2024, 1, 5)

    snapshots = store.record_many(
        [
            SnapshotEntry(HUB_ID, EURO_PALLET_ID, 5, moment),
            SnapshotEntry(HUB_ID, HALF_PALLET_ID, 6, moment),
        ]
    )

    assert [s.quantity for s in snapshots] == [5, 6]
    assert snapshots[0].sequence < snapshots[1].sequence
    assert len(store.latest_per_product(HUB_ID, moment)) == 2
