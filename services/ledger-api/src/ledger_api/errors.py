class LedgerError(Exception):
    """Base exception for the storage ledger"""

    def __init__(self, message: str, status_code: int = 500, error_code: str = "INTERNAL_ERROR"):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class ValidationError(LedgerError):
    """Raised for malformed or out-of-range input, before anything is written"""

    def __init__(self, message: str):
        super().__init__(message, status_code=400, error_code="VALIDATION_ERROR")


class NotFoundError(LedgerError):
    """Raised when a referenced location or product does not exist"""

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} with id {entity_id} not found",
            status_code=404,
            error_code="NOT_FOUND",
        )
