import enum


class LocationType(enum.StrEnum):
    CARRIER = "carrier"
    PROCESSING_FACILITY = "processing_facility"


class OrderStatus(enum.StrEnum):
    OPEN = "open"
    COLLECTED = "collected"
    CANCELLED = "cancelled"
