"""Errors raised by the pagination core.

Only ``InvalidCursorError`` is recovered locally (the cursor is ignored and
the first page is served). Everything else aborts the request with no
partial page.
"""


class PaginationError(Exception):
    """Base class for pagination failures."""


class InvalidCursorError(PaginationError, ValueError):
    """The cursor string could not be decoded."""


class QueryValidationError(PaginationError):
    """A query parameter is out of range or not one of the allowed values."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class BackendError(PaginationError):
    """The database failed to execute the page query."""


class RowDecodeError(PaginationError):
    """A returned row could not be turned into a post."""
