"""
Append-only stock snapshot storage with "as of" lookups.

A snapshot is never updated; the quantity of a (location, product) pair at
time T is the snapshot with the greatest ``(recorded_at, sequence)`` not
after T. Both stores return exactly one snapshot per product for the
"latest per product" queries, breaking timestamp ties by insertion order.
"""

from __future__ import annotations

import math
import threading
from bisect import bisect_right
from collections.abc import Iterable, Sequence
from datetime import datetime
from itertools import count
from typing import NamedTuple, Protocol

from database.db_session import session_scope
from database.inventory import Storage
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session, sessionmaker

from ledger_api.ledger.calendar import to_utc
from ledger_api.ledger.values import StockSnapshot


class SnapshotEntry(NamedTuple):
    location_id: int
    product_id: int
    quantity: int
    recorded_at: datetime


class SnapshotStore(Protocol):
    def record(
        self, location_id: int, product_id: int, quantity: int, recorded_at: datetime
    ) -> StockSnapshot: ...

    def record_many(self, entries: Sequence[SnapshotEntry]) -> list[StockSnapshot]: ...

    def latest_as_of(
        self, location_id: int, product_id: int, as_of: datetime
    ) -> StockSnapshot | None: ...

    def latest_per_product(self, location_id: int, as_of: datetime) -> list[StockSnapshot]: ...

    def latest_across(
        self, location_ids: Iterable[int], as_of: datetime
    ) -> list[StockSnapshot]: ...

    def snapshots_within(
        self, location_id: int, after: datetime, until: datetime
    ) -> list[StockSnapshot]: ...


def _latest_by_product(snapshots: Iterable[StockSnapshot]) -> list[StockSnapshot]:
    latest: dict[int, StockSnapshot] = {}
    for snapshot in snapshots:
        current = latest.get(snapshot.product_id)
        if current is None or snapshot.order_key > current.order_key:
            latest[snapshot.product_id] = snapshot
    return [latest[product_id] for product_id in sorted(latest)]


class _Series:
    """Snapshots of one (location, product) key ordered by (recorded_at, sequence)."""

    __slots__ = ("keys", "items")

    def __init__(self) -> None:
        self.keys: list[tuple[datetime, int]] = []
        self.items: list[StockSnapshot] = []

    def insert(self, snapshot: StockSnapshot) -> None:
        position = bisect_right(self.keys, snapshot.order_key)
        self.keys.insert(position, snapshot.order_key)
        self.items.insert(position, snapshot)

    def position_after(self, moment: datetime) -> int:
        return bisect_right(self.keys, (moment, math.inf))

    def as_of(self, moment: datetime) -> StockSnapshot | None:
        position = self.position_after(moment)
        return self.items[position - 1] if position else None

    def between(self, after: datetime, until: datetime) -> list[StockSnapshot]:
        return self.items[self.position_after(after) : self.position_after(until)]


class InMemorySnapshotStore:
    """
    Process-local as-of index.

    One lock serialises writers and hands out a strictly increasing sequence,
    so "latest" stays deterministic even for equal timestamps.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sequence = count(1)
        self._series: dict[tuple[int, int], _Series] = {}
        self._products_by_location: dict[int, set[int]] = {}

    def record(
        self, location_id: int, product_id: int, quantity: int, recorded_at: datetime
    ) -> StockSnapshot:
        return self.record_many([SnapshotEntry(location_id, product_id, quantity, recorded_at)])[0]

    def record_many(self, entries: Sequence[SnapshotEntry]) -> list[StockSnapshot]:
        with self._lock:
            snapshots = [
                StockSnapshot(
                    location_id=entry.location_id,
                    product_id=entry.product_id,
                    quantity=entry.quantity,
                    recorded_at=to_utc(entry.recorded_at),
                    sequence=next(self._sequence),
                )
                for entry in entries
            ]
            for snapshot in snapshots:
                key = (snapshot.location_id, snapshot.product_id)
                self._series.setdefault(key, _Series()).insert(snapshot)
                self._products_by_location.setdefault(snapshot.location_id, set()).add(
                    snapshot.product_id
                )
        return snapshots

    def latest_as_of(
        self, location_id: int, product_id: int, as_of: datetime
    ) -> StockSnapshot | None:
        with self._lock:
            series = self._series.get((location_id, product_id))
            return series.as_of(to_utc(as_of)) if series else None

    def latest_per_product(self, location_id: int, as_of: datetime) -> list[StockSnapshot]:
        return self.latest_across([location_id], as_of)

    def latest_across(self, location_ids: Iterable[int], as_of: datetime) -> list[StockSnapshot]:
        moment = to_utc(as_of)
        with self._lock:
            found = [
                snapshot
                for location_id in set(location_ids)
                for product_id in self._products_by_location.get(location_id, ())
                if (snapshot := self._series[(location_id, product_id)].as_of(moment)) is not None
            ]
        return _latest_by_product(found)

    def snapshots_within(
        self, location_id: int, after: datetime, until: datetime
    ) -> list[StockSnapshot]:
        start, end = to_utc(after), to_utc(until)
        with self._lock:
            found = [
                snapshot
                for product_id in self._products_by_location.get(location_id, ())
                for snapshot in self._series[(location_id, product_id)].between(start, end)
            ]
        return sorted(found, key=lambda snapshot: snapshot.order_key)


def _to_snapshot(row: Storage) -> StockSnapshot:
    return StockSnapshot(
        location_id=row.location_id,
        product_id=row.product_id,
        quantity=row.pallet_amount,
        recorded_at=to_utc(row.recorded_at),
        sequence=row.id,
    )


class SqlSnapshotStore:
    """
    Snapshot store backed by the ``storage`` table.

    Every call opens its own short-lived session from ``session_factory``;
    the table id is the insertion sequence used as tie-break.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def record(
        self, location_id: int, product_id: int, quantity: int, recorded_at: datetime
    ) -> StockSnapshot:
        return self.record_many([SnapshotEntry(location_id, product_id, quantity, recorded_at)])[0]

    def record_many(self, entries: Sequence[SnapshotEntry]) -> list[StockSnapshot]:
        with session_scope(self._session_factory) as session:
            rows = [
                Storage(
                    location_id=entry.location_id,
                    product_id=entry.product_id,
                    pallet_amount=entry.quantity,
                    recorded_at=to_utc(entry.recorded_at),
                )
                for entry in entries
            ]
            session.add_all(rows)
            session.commit()
            return [_to_snapshot(row) for row in rows]

    def latest_as_of(
        self, location_id: int, product_id: int, as_of: datetime
    ) -> StockSnapshot | None:
        stmt = (
            select(Storage)
            .where(
                Storage.location_id == location_id,
                Storage.product_id == product_id,
                Storage.recorded_at <= to_utc(as_of),
            )
            .order_by(Storage.recorded_at.desc(), Storage.id.desc())
            .limit(1)
        )
        with session_scope(self._session_factory) as session:
            row = session.scalars(stmt).first()
            return _to_snapshot(row) if row is not None else None

    def latest_per_product(self, location_id: int, as_of: datetime) -> list[StockSnapshot]:
        return self.latest_across([location_id], as_of)

    def latest_across(self, location_ids: Iterable[int], as_of: datetime) -> list[StockSnapshot]:
        ids = sorted(set(location_ids))
        if not ids:
            return []
        with session_scope(self._session_factory) as session:
            rows = session.scalars(_latest_rows_stmt(ids, to_utc(as_of))).all()
            return [_to_snapshot(row) for row in rows]

    def snapshots_within(
        self, location_id: int, after: datetime, until: datetime
    ) -> list[StockSnapshot]:
        stmt = (
            select(Storage)
            .where(
                Storage.location_id == location_id,
                Storage.recorded_at > to_utc(after),
                Storage.recorded_at <= to_utc(until),
            )
            .order_by(Storage.recorded_at.asc(), Storage.id.asc())
        )
        with session_scope(self._session_factory) as session:
            return [_to_snapshot(row) for row in session.scalars(stmt).all()]


def _latest_rows_stmt(location_ids: list[int], as_of: datetime) -> Select[tuple[Storage]]:
    """One row per product: the newest snapshot across ``location_ids``."""
    ranked = (
        select(
            Storage.id.label("storage_id"),
            func.row_number()
            .over(
                partition_by=Storage.product_id,
                order_by=(Storage.recorded_at.desc(), Storage.id.desc()),
            )
            .label("rn"),
        )
        .where(Storage.location_id.in_(location_ids), Storage.recorded_at <= as_of)
        .subquery("ranked")
    )
    return (
        select(Storage)
        .join(ranked, ranked.c.storage_id == Storage.id)
        .where(ranked.c.rn == 1)
        .order_by(Storage.product_id.asc())
    )
