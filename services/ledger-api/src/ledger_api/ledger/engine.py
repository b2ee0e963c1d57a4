from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import UTC, date, datetime, tzinfo
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session, sessionmaker

from ledger_api.config_schema import Settings
from ledger_api.errors import NotFoundError, ValidationError
from ledger_api.ledger.availability import AvailabilityCalculator, StockMutations
from ledger_api.ledger.directories import (
    InMemoryDirectory,
    LocationDirectory,
    OrderDirectory,
    ProductDirectory,
    SqlDirectory,
)
from ledger_api.ledger.price_timeline import (
    InMemoryPriceTimeline,
    PriceTimeline,
    SqlPriceTimeline,
)
from ledger_api.ledger.reports import DailyReportBuilder
from ledger_api.ledger.snapshot_store import (
    InMemorySnapshotStore,
    SnapshotStore,
    SqlSnapshotStore,
)
from ledger_api.ledger.values import (
    AvailableStock,
    LocationInfo,
    LocationOverview,
    LocationReport,
    PriceVersion,
    Report,
    StockSnapshot,
)


# location_price.price is NUMERIC(12, 2).
PRICE_STEP = Decimal("0.01")
PRICE_LIMIT = Decimal("1E10")


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _require_aware(moment: datetime, field: str) -> datetime:
    if moment.tzinfo is None or moment.tzinfo.utcoffset(moment) is None:
        raise ValidationError(f"{field} must carry a time zone offset")
    return moment


def _require_quantity(quantity: int, field: str = "quantity") -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError(f"{field} must be an integer")
    if quantity < 0:
        raise ValidationError(f"{field} cannot be negative, got {quantity}")
    return quantity


def _to_price(price: Decimal | float | int | str) -> Decimal:
    try:
        value = price if isinstance(price, Decimal) else Decimal(str(price))
    except InvalidOperation as e:
        raise ValidationError(f"Invalid price: {price!r}") from e
    if not value.is_finite():
        raise ValidationError(f"Invalid price: {price!r}")
    if value < 0:
        raise ValidationError(f"Price cannot be negative, got {value}")
    if value >= PRICE_LIMIT:
        raise ValidationError(f"Price must be below {PRICE_LIMIT:f}, got {value}")
    if value != value.quantize(PRICE_STEP):
        raise ValidationError(f"Price cannot have more than two decimal places, got {value}")
    return value


def _require_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise ValidationError(
            f"Report start date {start_date.isoformat()} is after end date {end_date.isoformat()}"
        )


class LedgerEngine:
    """
    Entry point of the storage ledger.

    Composes the snapshot store, the price timeline and the directories it is
    given; it owns none of them. All input is validated here, before any store
    is written, so a rejected call leaves nothing behind.
    """

    def __init__(
        self,
        snapshots: SnapshotStore,
        prices: PriceTimeline,
        locations: LocationDirectory,
        products: ProductDirectory,
        orders: OrderDirectory,
        *,
        report_tz: tzinfo = UTC,
        max_workers: int = 1,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._snapshots = snapshots
        self._prices = prices
        self._locations = locations
        self._products = products
        self._orders = orders
        self._report_tz = report_tz
        self._max_workers = max_workers
        self._clock = clock

        self._availability = AvailabilityCalculator(snapshots)
        self._mutations = StockMutations(snapshots)
        self._reports = DailyReportBuilder(snapshots, prices, report_tz)

    @classmethod
    def from_session_factory(
        cls, session_factory: sessionmaker[Session], settings: Settings
    ) -> LedgerEngine:
        directory = SqlDirectory(session_factory)
        return cls(
            SqlSnapshotStore(session_factory),
            SqlPriceTimeline(session_factory),
            directory,
            directory,
            directory,
            report_tz=settings.reports.tzinfo,
            max_workers=settings.reports.max_workers,
        )

    @classmethod
    def in_memory(
        cls,
        directory: InMemoryDirectory,
        settings: Settings | None = None,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> LedgerEngine:
        settings = settings or Settings()
        return cls(
            InMemorySnapshotStore(),
            InMemoryPriceTimeline(),
            directory,
            directory,
            directory,
            report_tz=settings.reports.tzinfo,
            max_workers=settings.reports.max_workers,
            clock=clock,
        )

    # Lookups

    def get_location(self, location_id: int) -> LocationInfo:
        location = self._locations.get_location(location_id)
        if location is None:
            raise NotFoundError("Location", location_id)
        return location

    def facility_ids(self) -> list[int]:
        return self._locations.facility_ids()

    def _require_product(self, product_id: int) -> None:
        if not self._products.has_product(product_id):
            raise NotFoundError("Product", product_id)

    def _as_of(self, as_of: datetime | None, field: str = "as_of") -> datetime:
        return self._clock() if as_of is None else _require_aware(as_of, field)

    # Stock

    def record_stock(
        self,
        location_id: int,
        product_id: int,
        quantity: int,
        recorded_at: datetime | None = None,
    ) -> StockSnapshot:
        """Append an absolute pallet amount; ``recorded_at`` defaults to now."""
        _require_quantity(quantity)
        moment = self._as_of(recorded_at, "recorded_at")
        self.get_location(location_id)
        self._require_product(product_id)
        return self._snapshots.record(location_id, product_id, quantity, moment)

    def latest_stock_per_product(
        self, location_id: int, as_of: datetime | None = None
    ) -> list[StockSnapshot]:
        moment = self._as_of(as_of)
        self.get_location(location_id)
        return self._snapshots.latest_per_product(location_id, moment)

    def add_pallets(
        self,
        location_id: int,
        rows: Sequence[tuple[int, int]],
        at: datetime | None = None,
    ) -> list[StockSnapshot]:
        moment = self._as_of(at, "recorded_at")
        self._check_rows(location_id, rows)
        return self._mutations.add_pallets(location_id, rows, moment)

    def collect_pallets(
        self,
        location_id: int,
        rows: Sequence[tuple[int, int]],
        at: datetime | None = None,
    ) -> list[StockSnapshot]:
        moment = self._as_of(at, "recorded_at")
        self._check_rows(location_id, rows)
        for _, remaining in rows:
            _require_quantity(remaining, "pallet_amount")
        return self._mutations.collect_pallets(location_id, rows, moment)

    def _check_rows(self, location_id: int, rows: Sequence[tuple[int, int]]) -> None:
        if not rows:
            raise ValidationError("At least one storage row is required")
        self.get_location(location_id)
        for product_id, _ in rows:
            self._require_product(product_id)

    def available_stock(
        self,
        facility_location_ids: Iterable[int],
        reservations: Mapping[int, int] | None = None,
        as_of: datetime | None = None,
    ) -> list[AvailableStock]:
        ids = list(dict.fromkeys(facility_location_ids))
        if not ids:
            raise ValidationError("At least one facility location is required")
        for location_id in ids:
            if not self.get_location(location_id).is_facility:
                raise ValidationError(f"Location {location_id} is not a processing facility")

        if reservations is None:
            reservations = self._orders.open_reservations_by_product()
        for product_id, reserved in reservations.items():
            _require_quantity(reserved, f"reservation for product {product_id}")

        return self._availability.available_stock(ids, reservations, self._as_of(as_of))

    # Prices

    def record_price(
        self, location_id: int, price: Decimal | float | int | str, valid_from: date
    ) -> PriceVersion:
        value = _to_price(price)
        self.get_location(location_id)
        return self._prices.record(location_id, value, valid_from)

    def effective_price(self, location_id: int, day: date | None = None) -> PriceVersion | None:
        """Version in effect on ``day``; today in the report time zone when omitted."""
        self.get_location(location_id)
        if day is None:
            day = self._clock().astimezone(self._report_tz).date()
        return self._prices.effective_at(location_id, day)

    def price_at(self, location_id: int, day: date) -> Decimal | None:
        version = self.effective_price(location_id, day)
        return version.price if version is not None else None

    def price_history(self, location_id: int) -> list[PriceVersion]:
        self.get_location(location_id)
        return self._prices.history(location_id)

    def location_overview(
        self, location_id: int, as_of: datetime | None = None
    ) -> LocationOverview:
        moment = self._as_of(as_of)
        location = self.get_location(location_id)
        today = moment.astimezone(self._report_tz).date()
        return LocationOverview(
            location=location,
            current_price=self._prices.effective_at(location_id, today),
            stock=tuple(self._snapshots.latest_per_product(location_id, moment)),
        )

    # Reports

    def build_report(self, location_id: int, start_date: date, end_date: date) -> LocationReport:
        _require_range(start_date, end_date)
        return self._reports.build_report(self.get_location(location_id), start_date, end_date)

    def build_reports(
        self, location_ids: Iterable[int], start_date: date, end_date: date
    ) -> Report:
        ids = list(location_ids)
        if not ids:
            raise ValidationError("At least one location is required for a report")
        _require_range(start_date, end_date)
        locations = [self.get_location(location_id) for location_id in ids]
        return self._reports.build_reports(
            locations, start_date, end_date, max_workers=self._max_workers
        )
