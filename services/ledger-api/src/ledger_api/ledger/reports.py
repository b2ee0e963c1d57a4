"""
Daily holding-cost reports.

For every calendar day of the requested range the builder resolves the
location price in effect that day and the pallet amount of every product
held at the end of that day, and charges ``amount * price`` for the day.
Quantities and prices both step forward on the day a new snapshot or price
version appears; nothing is interpolated.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, date, tzinfo
from decimal import Decimal

from common.logging import get_logger
from structlog.stdlib import BoundLogger

from ledger_api.errors import ValidationError
from ledger_api.ledger.calendar import CalendarRange, end_of_day
from ledger_api.ledger.price_timeline import PriceSchedule, PriceTimeline
from ledger_api.ledger.snapshot_store import SnapshotStore
from ledger_api.ledger.values import (
    DailyReport,
    LocationInfo,
    LocationReport,
    ProductReport,
    Report,
)

logger = get_logger(__name__)

ZERO = Decimal("0")


def _daily_report(
    day: date,
    product_ids: Sequence[int],
    quantities: Mapping[int, int],
    price: Decimal | None,
) -> DailyReport:
    unit_price = price if price is not None else ZERO
    product_reports = tuple(
        ProductReport(
            product_id=product_id,
            quantity=quantities.get(product_id, 0),
            cost=quantities.get(product_id, 0) * unit_price,
        )
        for product_id in product_ids
    )
    return DailyReport(
        date=day,
        product_reports=product_reports,
        unit_price=unit_price,
        price_missing=price is None,
        total_daily_pallets=sum(report.quantity for report in product_reports),
        total_daily_cost=sum((report.cost for report in product_reports), ZERO),
    )


class DailyReportBuilder:
    def __init__(
        self,
        snapshots: SnapshotStore,
        prices: PriceTimeline,
        tz: tzinfo = UTC,
        log: BoundLogger | None = None,
    ):
        self._snapshots = snapshots
        self._prices = prices
        self._tz = tz
        self._log = log or logger

    def build_report(self, location: LocationInfo, start: date, end: date) -> LocationReport:
        if start > end:
            raise ValidationError(
                f"Report start date {start.isoformat()} is after end date {end.isoformat()}"
            )

        location_id = location.location_id
        schedule = PriceSchedule(self._prices.changes_within(location_id, start, end))

        first_cutoff = end_of_day(start, self._tz)
        quantities = {
            snapshot.product_id: snapshot.quantity
            for snapshot in self._snapshots.latest_per_product(location_id, first_cutoff)
        }
        pending = deque(
            self._snapshots.snapshots_within(location_id, first_cutoff, end_of_day(end, self._tz))
        )
        product_ids = sorted(quantities.keys() | {snapshot.product_id for snapshot in pending})

        daily_reports: list[DailyReport] = []
        gap_days: list[date] = []
        for day in CalendarRange(start, end):
            cutoff = end_of_day(day, self._tz)
            while pending and pending[0].recorded_at <= cutoff:
                snapshot = pending.popleft()
                quantities[snapshot.product_id] = snapshot.quantity

            price = schedule.price_at(day)
            if price is None:
                gap_days.append(day)
            daily_reports.append(_daily_report(day, product_ids, quantities, price))

        if gap_days:
            self._log.warning(
                "price_resolution_gap",
                location_id=location_id,
                first_day=gap_days[0].isoformat(),
                last_day=gap_days[-1].isoformat(),
                days=len(gap_days),
            )

        return LocationReport(
            location=location,
            daily_reports=tuple(daily_reports),
            total_cost=sum((report.total_daily_cost for report in daily_reports), ZERO),
        )

    def build_reports(
        self,
        locations: Sequence[LocationInfo],
        start: date,
        end: date,
        max_workers: int = 1,
    ) -> Report:
        """
        One report per location, computed independently and returned in input
        order. If any location fails the whole call fails.
        """
        if not locations:
            raise ValidationError("At least one location is required for a report")

        workers = min(max_workers, len(locations))
        if workers <= 1:
            reports = [self.build_report(location, start, end) for location in locations]
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="report") as executor:
                futures = [
                    executor.submit(self.build_report, location, start, end)
                    for location in locations
                ]
                reports = [future.result() for future in futures]
        return Report(location_reports=tuple(reports))
