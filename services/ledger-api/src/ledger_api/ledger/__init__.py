from ledger_api.ledger.calendar import CalendarRange, end_of_day
from ledger_api.ledger.directories import InMemoryDirectory, SqlDirectory
from ledger_api.ledger.engine import LedgerEngine
from ledger_api.ledger.price_timeline import (
    InMemoryPriceTimeline,
    PriceSchedule,
    SqlPriceTimeline,
)
from ledger_api.ledger.snapshot_store import (
    InMemorySnapshotStore,
    SnapshotEntry,
    SqlSnapshotStore,
)

__all__ = [
    "CalendarRange",
    "InMemoryDirectory",
    "InMemoryPriceTimeline",
    "InMemorySnapshotStore",
    "LedgerEngine",
    "PriceSchedule",
    "SnapshotEntry",
    "SqlDirectory",
    "SqlPriceTimeline",
    "SqlSnapshotStore",
    "end_of_day",
]
