"""
Request and response contracts of the storage ledger API.

Response rows mirror the engine's value objects attribute for attribute so
they can be built with ``model_validate(value, from_attributes=True)``.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_validator


class _Contract(BaseModel):
    model_config = ConfigDict(extra="forbid", from_attributes=True)


# ---- requests ----


class RecordStockRequest(_Contract):
    location_id: int
    product_id: int
    pallet_amount: int
    recorded_at: AwareDatetime | None = None


class StorageRowInput(_Contract):
    product_id: int
    pallet_amount: int


class StorageInput(_Contract):
    """
    Batch of pallet movements at one location.

    For ``/stock/add`` each ``pallet_amount`` is the number of pallets added;
    for ``/stock/collect`` it is the amount left after the collection.
    """

    location_id: int
    storage_rows: list[StorageRowInput] = Field(min_length=1)
    recorded_at: AwareDatetime | None = None


class RecordPriceRequest(_Contract):
    location_id: int
    price: Decimal
    valid_from: dt.date


class ReportInput(_Contract):
    start_date: dt.date
    end_date: dt.date
    location_ids: list[int] = Field(min_length=1)


# ---- responses ----


class LocationRow(_Contract):
    location_id: int
    name: str
    location_type: str

    @field_validator("location_type", mode="before")
    @classmethod
    def _enum_value(cls, value: Any) -> Any:
        return value.value if isinstance(value, Enum) else value


class StockSnapshotRow(_Contract):
    location_id: int
    product_id: int
    quantity: int
    recorded_at: dt.datetime


class AvailableStockRow(_Contract):
    product_id: int
    location_id: int
    quantity: int
    recorded_at: dt.datetime


class PriceVersionRow(_Contract):
    location_id: int
    price: Decimal
    valid_from: dt.date


class LocationOverviewRow(_Contract):
    location: LocationRow
    current_price: PriceVersionRow | None = None
    stock: list[StockSnapshotRow]


class ProductReportRow(_Contract):
    product_id: int
    quantity: int
    cost: Decimal


class DailyReportRow(_Contract):
    date: dt.date
    product_reports: list[ProductReportRow]
    unit_price: Decimal
    price_missing: bool
    total_daily_pallets: int
    total_daily_cost: Decimal


class LocationReportRow(_Contract):
    location: LocationRow
    daily_reports: list[DailyReportRow]
    total_cost: Decimal


class ReportRow(_Contract):
    location_reports: list[LocationReportRow]
