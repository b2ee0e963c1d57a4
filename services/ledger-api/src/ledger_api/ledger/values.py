"""
Value objects produced by the storage ledger.

They are built fresh for every call, hold tuples instead of lists and are
never mutated, so results can be shared between threads and compared with
``==``.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from database.enums import LocationType


@dataclass(frozen=True)
class LocationInfo:
    location_id: int
    name: str
    location_type: LocationType

    @property
    def is_facility(self) -> bool:
        return self.location_type == LocationType.PROCESSING_FACILITY


@dataclass(frozen=True)
class StockSnapshot:
    """
    Absolute pallet amount of one product at one location from ``recorded_at`` on.

    ``sequence`` is the store's insertion order and breaks ties between
    snapshots sharing a timestamp.
    """

    location_id: int
    product_id: int
    quantity: int
    recorded_at: datetime
    sequence: int

    @property
    def order_key(self) -> tuple[datetime, int]:
        return (self.recorded_at, self.sequence)


@dataclass(frozen=True)
class PriceVersion:
    location_id: int
    price: Decimal
    valid_from: date
    sequence: int

    @property
    def order_key(self) -> tuple[date, int]:
        return (self.valid_from, self.sequence)


@dataclass(frozen=True)
class AvailableStock:
    """Latest facility stock minus open reservations. May be negative."""

    product_id: int
    location_id: int
    quantity: int
    recorded_at: datetime


@dataclass(frozen=True)
class ProductReport:
    product_id: int
    quantity: int
    cost: Decimal


@dataclass(frozen=True)
class DailyReport:
    date: date
    product_reports: tuple[ProductReport, ...]
    unit_price: Decimal
    price_missing: bool
    total_daily_pallets: int
    total_daily_cost: Decimal


@dataclass(frozen=True)
class LocationReport:
    location: LocationInfo
    daily_reports: tuple[DailyReport, ...]
    total_cost: Decimal


@dataclass(frozen=True)
class Report:
    location_reports: tuple[LocationReport, ...]


@dataclass(frozen=True)
class LocationOverview:
    location: LocationInfo
    current_price: PriceVersion | None
    stock: tuple[StockSnapshot, ...]
