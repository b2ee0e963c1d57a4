from .common import ApiResult, ErrorResponse
from .ledger import (
    AvailableStockRow,
    DailyReportRow,
    LocationOverviewRow,
    LocationReportRow,
    LocationRow,
    PriceVersionRow,
    ProductReportRow,
    RecordPriceRequest,
    RecordStockRequest,
    ReportInput,
    ReportRow,
    StockSnapshotRow,
    StorageInput,
    StorageRowInput,
)

__all__ = [
    "ApiResult",
    "ErrorResponse",
    "RecordStockRequest",
    "StorageRowInput",
    "StorageInput",
    "RecordPriceRequest",
    "ReportInput",
    "LocationRow",
    "StockSnapshotRow",
    "AvailableStockRow",
    "PriceVersionRow",
    "LocationOverviewRow",
    "ProductReportRow",
    "DailyReportRow",
    "LocationReportRow",
    "ReportRow",
]
