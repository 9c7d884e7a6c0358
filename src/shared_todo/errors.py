from __future__ import annotations


# PUBLIC_INTERFACE
class SharedTodoError(Exception):
    """Base class for errors raised by the shared todo core."""


# PUBLIC_INTERFACE
class IdentityUnavailable(SharedTodoError):
    """
    No network address could be determined for the request.

    The caller cannot be attributed safely, so the request must fail.
    """


# PUBLIC_INTERFACE
class StoreUnavailable(SharedTodoError):
    """The underlying storage backend failed or could not be reached."""


# PUBLIC_INTERFACE
class ValidationFailed(SharedTodoError):
    """Input was rejected before reaching the store (e.g. blank text)."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message
