from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime

from ledger_api.errors import ValidationError
from ledger_api.ledger.snapshot_store import SnapshotEntry, SnapshotStore
from ledger_api.ledger.values import AvailableStock, StockSnapshot


class AvailabilityCalculator:
    """
    Stock that can still be promised to new orders.

    For each product the newest snapshot across *all* given facilities is
    taken (not a per-facility sum) and the open reservations for that product
    are subtracted. Negative results mean the facilities are overcommitted and
    are returned unchanged.
    """

    def __init__(self, store: SnapshotStore):
        self._store = store

    def available_stock(
        self,
        facility_location_ids: Iterable[int],
        reservations_by_product: Mapping[int, int],
        as_of: datetime,
    ) -> list[AvailableStock]:
        latest = self._store.latest_across(facility_location_ids, as_of)
        return [
            AvailableStock(
                product_id=snapshot.product_id,
                location_id=snapshot.location_id,
                quantity=snapshot.quantity - reservations_by_product.get(snapshot.product_id, 0),
                recorded_at=snapshot.recorded_at,
            )
            for snapshot in latest
        ]


def _reject_duplicates(rows: Sequence[tuple[int, int]]) -> None:
    seen: set[int] = set()
    for product_id, _ in rows:
        if product_id in seen:
            raise ValidationError(f"Product {product_id} appears more than once in one request")
        seen.add(product_id)


class StockMutations:
    """
    Pallet additions and collections written as new absolute snapshots.

    Every row of a request is validated before the batch is written, and the
    batch is written in a single store call.

    Additions read the current quantity and then write the new one. A lock
    keeps that pair atomic within this process; writers in other processes
    sharing the database can still interleave and lose an increment.
    """

    def __init__(self, store: SnapshotStore):
        self._store = store
        self._lock = threading.Lock()

    def add_pallets(
        self, location_id: int, rows: Sequence[tuple[int, int]], at: datetime
    ) -> list[StockSnapshot]:
        """``rows`` holds (product_id, pallets added); the result is current + added."""
        _reject_duplicates(rows)
        for product_id, added in rows:
            if added <= 0:
                raise ValidationError(
                    f"Added pallet amount must be positive, got {added} for product {product_id}"
                )

        with self._lock:
            entries = []
            for product_id, added in rows:
                current = self._store.latest_as_of(location_id, product_id, at)
                quantity = (current.quantity if current is not None else 0) + added
                entries.append(SnapshotEntry(location_id, product_id, quantity, at))
            return self._store.record_many(entries)

    def collect_pallets(
        self, location_id: int, rows: Sequence[tuple[int, int]], at: datetime
    ) -> list[StockSnapshot]:
        """``rows`` holds (product_id, pallets remaining after the collection)."""
        _reject_duplicates(rows)
        for product_id, remaining in rows:
            if remaining < 0:
                raise ValidationError(
                    f"Remaining pallet amount cannot be negative, got {remaining} "
                    f"for product {product_id}"
                )

        entries = [
            SnapshotEntry(location_id, product_id, remaining, at) for product_id, remaining in rows
        ]
        return self._store.record_many(entries)
