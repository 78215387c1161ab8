# errors.py
from typing import Optional


class LedgerError(Exception):
    """Base class for failures the API layer turns into a response."""
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class ValidationError(LedgerError):
    status_code = 400


class NotFoundError(LedgerError):
    status_code = 404


class ConflictError(LedgerError):
    status_code = 409


class DependencyFailure(LedgerError):
    """The attachment store could not complete an upload."""
    status_code = 502
