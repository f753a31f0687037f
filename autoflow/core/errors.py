# autoflow/core/errors.py
"""Exception hierarchy shared by the core, the store and the CLI."""


class AutoflowError(Exception):
    """Base class for all AutoFlow errors."""


class DispatchError(AutoflowError):
    """The execution backend could not be reached or gave no usable response."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidTransition(AutoflowError):
    """A run state change that the state machine does not allow."""


class StoreError(AutoflowError):
    """A persisted workflow or element file could not be read or written."""


class AuthenticationError(AutoflowError):
    """Credentials did not match the configured account."""
