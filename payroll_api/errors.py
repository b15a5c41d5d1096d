"""Error taxonomy shared by the gateway, validators and routers."""

import enum
from typing import Optional


class StoreErrorKind(str, enum.Enum):
    DUPLICATE_ENTRY = "duplicate_entry"
    FOREIGN_KEY_VIOLATION = "foreign_key_violation"
    NO_SUCH_TABLE = "no_such_table"
    CONNECTION_REFUSED = "connection_refused"
    TIMEOUT = "timeout"
    POOL_EXHAUSTED = "pool_exhausted"
    UNKNOWN = "unknown"


class StoreError(Exception):
    """Raised by the persistence gateway; ``kind`` tells callers what failed."""

    def __init__(self, kind: StoreErrorKind, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind
        self.message = message or kind.value


class ApiError(Exception):
    """An error with a client-facing status code and message."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    """Duplicate business key or a referential block."""

    status_code = 400


class ValidationFailed(ApiError):
    status_code = 400

    def __init__(self, errors: list, message: str = "Validation failed"):
        super().__init__(message)
        self.errors = errors


# Store error kinds surfaced to clients with a specific status and message.
STORE_ERROR_RESPONSES = {
    StoreErrorKind.DUPLICATE_ENTRY: (400, "Duplicate entry detected"),
    StoreErrorKind.FOREIGN_KEY_VIOLATION: (
        400,
        "Referenced record does not exist or is still in use",
    ),
    StoreErrorKind.NO_SUCH_TABLE: (500, "Database table not found"),
}


def store_error_response(error: StoreError) -> tuple[int, str]:
    return STORE_ERROR_RESPONSES.get(error.kind, (500, "Database error"))
