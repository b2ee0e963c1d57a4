"""Storage ledger API endpoints."""

from datetime import date, datetime
from typing import Annotated

from common.schemas import (
    ApiResult,
    AvailableStockRow,
    LocationOverviewRow,
    LocationReportRow,
    PriceVersionRow,
    RecordPriceRequest,
    RecordStockRequest,
    ReportInput,
    ReportRow,
    StockSnapshotRow,
    StorageInput,
)
from fastapi import APIRouter, Depends, Query, Request, status

from ledger_api.ledger.engine import LedgerEngine

router = APIRouter(tags=["ledger"])


def get_ledger(request: Request) -> LedgerEngine:
    return request.app.state.ledger


Ledger = Annotated[LedgerEngine, Depends(get_ledger)]


def _rows(storage: StorageInput) -> list[tuple[int, int]]:
    return [(row.product_id, row.pallet_amount) for row in storage.storage_rows]


# ---- stock ----


@router.post(
    "/stock",
    response_model=ApiResult[StockSnapshotRow],
    status_code=status.HTTP_201_CREATED,
)
def record_stock(body: RecordStockRequest, ledger: Ledger) -> ApiResult[StockSnapshotRow]:
    """Record the absolute pallet amount of one product at one location."""
    snapshot = ledger.record_stock(
        body.location_id,
        body.product_id,
        body.pallet_amount,
        body.recorded_at,
    )
    return ApiResult(
        data=StockSnapshotRow.model_validate(snapshot),
        message="Stock recorded",
    )


@router.post(
    "/stock/add",
    response_model=ApiResult[list[StockSnapshotRow]],
    status_code=status.HTTP_201_CREATED,
)
def add_pallets(body: StorageInput, ledger: Ledger) -> ApiResult[list[StockSnapshotRow]]:
    """Add pallets to a location; each row holds the number of pallets added."""
    snapshots = ledger.add_pallets(body.location_id, _rows(body), body.recorded_at)
    return ApiResult(
        data=[StockSnapshotRow.model_validate(snapshot) for snapshot in snapshots],
        message=f"Added pallets for {len(snapshots)} product(s)",
    )


@router.post(
    "/stock/collect",
    response_model=ApiResult[list[StockSnapshotRow]],
    status_code=status.HTTP_201_CREATED,
)
def collect_pallets(body: StorageInput, ledger: Ledger) -> ApiResult[list[StockSnapshotRow]]:
    """Record a collection; each row holds the pallets remaining afterwards."""
    snapshots = ledger.collect_pallets(body.location_id, _rows(body), body.recorded_at)
    return ApiResult(
        data=[StockSnapshotRow.model_validate(snapshot) for snapshot in snapshots],
        message=f"Collected pallets for {len(snapshots)} product(s)",
    )


@router.get("/stock/available", response_model=ApiResult[list[AvailableStockRow]])
def available_stock(
    ledger: Ledger,
    location_ids: Annotated[list[int] | None, Query()] = None,
    as_of: datetime | None = None,
) -> ApiResult[list[AvailableStockRow]]:
    """
    Stock that can still be promised, per product.

    Without ``location_ids`` every processing facility is considered.
    """
    facility_ids = location_ids or ledger.facility_ids()
    if not facility_ids:
        return ApiResult(data=[], message="No processing facilities", meta={"count": 0})

    rows = ledger.available_stock(facility_ids, as_of=as_of)
    return ApiResult(
        data=[AvailableStockRow.model_validate(row) for row in rows],
        message="Available stock",
        meta={
            "count": len(rows),
            "location_ids": facility_ids,
            "overcommitted": [row.product_id for row in rows if row.quantity < 0],
        },
    )


# ---- locations ----


@router.get("/locations/{location_id}", response_model=ApiResult[LocationOverviewRow])
def location_overview(
    location_id: int, ledger: Ledger, as_of: datetime | None = None
) -> ApiResult[LocationOverviewRow]:
    overview = ledger.location_overview(location_id, as_of)
    return ApiResult(
        data=LocationOverviewRow.model_validate(overview),
        message="Location overview",
    )


@router.get("/locations/{location_id}/stock", response_model=ApiResult[list[StockSnapshotRow]])
def latest_stock(
    location_id: int, ledger: Ledger, as_of: datetime | None = None
) -> ApiResult[list[StockSnapshotRow]]:
    snapshots = ledger.latest_stock_per_product(location_id, as_of)
    return ApiResult(
        data=[StockSnapshotRow.model_validate(snapshot) for snapshot in snapshots],
        message="Latest stock per product",
        meta={"count": len(snapshots)},
    )


# ---- prices ----


@router.post(
    "/prices",
    response_model=ApiResult[PriceVersionRow],
    status_code=status.HTTP_201_CREATED,
)
def record_price(body: RecordPriceRequest, ledger: Ledger) -> ApiResult[PriceVersionRow]:
    version = ledger.record_price(body.location_id, body.price, body.valid_from)
    return ApiResult(data=PriceVersionRow.model_validate(version), message="Price recorded")


@router.get("/locations/{location_id}/prices", response_model=ApiResult[list[PriceVersionRow]])
def price_history(location_id: int, ledger: Ledger) -> ApiResult[list[PriceVersionRow]]:
    versions = ledger.price_history(location_id)
    return ApiResult(
        data=[PriceVersionRow.model_validate(version) for version in versions],
        message="Price history",
        meta={"count": len(versions)},
    )


@router.get("/locations/{location_id}/price", response_model=ApiResult[PriceVersionRow | None])
def effective_price(
    location_id: int, ledger: Ledger, day: date | None = None
) -> ApiResult[PriceVersionRow | None]:
    """Price version in effect on ``day`` (today when omitted); ``null`` when none applies."""
    effective = ledger.effective_price(location_id, day)
    meta = {"day": day.isoformat()} if day is not None else {}
    if effective is None:
        return ApiResult(data=None, message="No price in effect", meta=meta)
    return ApiResult(
        data=PriceVersionRow.model_validate(effective),
        message="Price in effect",
        meta=meta,
    )


# ---- reports ----


@router.post("/reports", response_model=ApiResult[ReportRow])
def build_report(body: ReportInput, ledger: Ledger) -> ApiResult[ReportRow]:
    """Daily holding-cost report for every requested location, in request order."""
    report = ledger.build_reports(body.location_ids, body.start_date, body.end_date)
    location_reports = [
        LocationReportRow.model_validate(location_report)
        for location_report in report.location_reports
    ]
    return ApiResult(
        data=ReportRow(location_reports=location_reports),
        message="Report built",
        meta={
            "start_date": body.start_date.isoformat(),
            "end_date": body.end_date.isoformat(),
            "days": (body.end_date - body.start_date).days + 1,
            "price_missing_days": sum(
                1
                for location_report in report.location_reports
                for daily in location_report.daily_reports
                if daily.price_missing
            ),
        },
    )
