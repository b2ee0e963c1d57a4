from collections.abc import Iterator
from datetime import UTC, date, datetime, time, timedelta, tzinfo

ONE_DAY = timedelta(days=1)


class CalendarRange:
    """
    Inclusive range of calendar days.

    Iterating produces a fresh generator each time, so the same range can be
    walked repeatedly (or by several workers) without shared cursor state.
    """

    __slots__ = ("start", "end")

    def __init__(self, start: date, end: date):
        if start > end:
            raise ValueError(f"start {start.isoformat()} is after end {end.isoformat()}")
        self.start = start
        self.end = end

    def __iter__(self) -> Iterator[date]:
        day = self.start
        while day <= self.end:
            yield day
            day += ONE_DAY

    def __len__(self) -> int:
        return (self.end - self.start).days + 1

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    def __repr__(self) -> str:
        return f"CalendarRange({self.start.isoformat()}, {self.end.isoformat()})"


def end_of_day(day: date, tz: tzinfo = UTC) -> datetime:
    """Last representable instant of ``day`` in ``tz``."""
    return datetime.combine(day, time.max, tzinfo=tz)


def to_utc(moment: datetime) -> datetime:
    """Normalise an aware timestamp to UTC; naive values are read as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)
