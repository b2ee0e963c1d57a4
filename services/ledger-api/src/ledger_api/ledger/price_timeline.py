"""
Versioned location prices.

Prices are piecewise constant: a version applies from its ``valid_from``
day until the next version starts. Versions sharing a ``valid_from`` are
resolved in favour of the one inserted last.
"""

from __future__ import annotations

import math
import threading
from bisect import bisect_right
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from itertools import count
from typing import Protocol

from database.db_session import session_scope
from database.locations import LocationPrice
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from ledger_api.ledger.values import PriceVersion


class PriceTimeline(Protocol):
    def record(self, location_id: int, price: Decimal, valid_from: date) -> PriceVersion: ...

    def effective_at(self, location_id: int, day: date) -> PriceVersion | None: ...

    def changes_within(self, location_id: int, start: date, end: date) -> list[PriceVersion]: ...

    def history(self, location_id: int) -> list[PriceVersion]: ...


class PriceSchedule:
    """
    ``price_at(day)`` over the versions returned by ``changes_within``.

    Days before the first version have no price (``None``).
    """

    def __init__(self, versions: Iterable[PriceVersion]):
        ordered = sorted(versions, key=lambda version: version.order_key)
        self._keys = [version.order_key for version in ordered]
        self._versions = ordered

    def version_at(self, day: date) -> PriceVersion | None:
        position = bisect_right(self._keys, (day, math.inf))
        return self._versions[position - 1] if position else None

    def price_at(self, day: date) -> Decimal | None:
        version = self.version_at(day)
        return version.price if version is not None else None

    def __len__(self) -> int:
        return len(self._versions)


def _union(effective: PriceVersion | None, in_range: Iterable[PriceVersion]) -> list[PriceVersion]:
    by_sequence = {version.sequence: version for version in in_range}
    if effective is not None:
        by_sequence.setdefault(effective.sequence, effective)
    return sorted(by_sequence.values(), key=lambda version: version.order_key)


class InMemoryPriceTimeline:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sequence = count(1)
        self._keys: dict[int, list[tuple[date, int]]] = {}
        self._versions: dict[int, list[PriceVersion]] = {}

    def record(self, location_id: int, price: Decimal, valid_from: date) -> PriceVersion:
        with self._lock:
            version = PriceVersion(
                location_id=location_id,
                price=Decimal(price),
                valid_from=valid_from,
                sequence=next(self._sequence),
            )
            keys = self._keys.setdefault(location_id, [])
            position = bisect_right(keys, version.order_key)
            keys.insert(position, version.order_key)
            self._versions.setdefault(location_id, []).insert(position, version)
        return version

    def effective_at(self, location_id: int, day: date) -> PriceVersion | None:
        with self._lock:
            keys = self._keys.get(location_id, [])
            position = bisect_right(keys, (day, math.inf))
            return self._versions[location_id][position - 1] if position else None

    def changes_within(self, location_id: int, start: date, end: date) -> list[PriceVersion]:
        effective = self.effective_at(location_id, start)
        with self._lock:
            in_range = [
                version
                for version in self._versions.get(location_id, [])
                if start <= version.valid_from <= end
            ]
        return _union(effective, in_range)

    def history(self, location_id: int) -> list[PriceVersion]:
        with self._lock:
            return list(self._versions.get(location_id, []))


def _to_version(row: LocationPrice) -> PriceVersion:
    return PriceVersion(
        location_id=row.location_id,
        price=Decimal(row.price),
        valid_from=row.valid_from,
        sequence=row.id,
    )


class SqlPriceTimeline:
    """Price versions backed by the ``location_price`` table."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def record(self, location_id: int, price: Decimal, valid_from: date) -> PriceVersion:
        with session_scope(self._session_factory) as session:
            row = LocationPrice(location_id=location_id, price=price, valid_from=valid_from)
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_version(row)

    def effective_at(self, location_id: int, day: date) -> PriceVersion | None:
        with session_scope(self._session_factory) as session:
            row = session.scalars(self._effective_stmt(location_id, day)).first()
            return _to_version(row) if row is not None else None

    def changes_within(self, location_id: int, start: date, end: date) -> list[PriceVersion]:
        in_range_stmt = select(LocationPrice).where(
            LocationPrice.location_id == location_id,
            LocationPrice.valid_from >= start,
            LocationPrice.valid_from <= end,
        )
        with session_scope(self._session_factory) as session:
            effective = session.scalars(self._effective_stmt(location_id, start)).first()
            in_range = session.scalars(in_range_stmt).all()
            return _union(
                _to_version(effective) if effective is not None else None,
                [_to_version(row) for row in in_range],
            )

    def history(self, location_id: int) -> list[PriceVersion]:
        stmt = (
            select(LocationPrice)
            .where(LocationPrice.location_id == location_id)
            .order_by(LocationPrice.valid_from.asc(), LocationPrice.id.asc())
        )
        with session_scope(self._session_factory) as session:
            return [_to_version(row) for row in session.scalars(stmt).all()]

    @staticmethod
    def _effective_stmt(location_id: int, day: date):
        return (
            select(LocationPrice)
            .where(LocationPrice.location_id == location_id, LocationPrice.valid_from <= day)
            .order_by(LocationPrice.valid_from.desc(), LocationPrice.id.desc())
            .limit(1)
        )
