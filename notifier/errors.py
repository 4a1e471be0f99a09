"""Notifier exceptions."""

from typing import Optional


class NotifierError(Exception):
    """Base class for errors that must fail the whole invocation."""


class DeserializationError(NotifierError):
    """Raised when a payload is empty, unparseable, or a mandatory field is missing or mistyped."""

    def __init__(self, reason: str, field: Optional[str] = None):
        self.reason = reason
        self.field = field
        super().__init__(reason)

    def __str__(self):
        if self.field:
            return f"{self.field}: {self.reason}"
        return self.reason


class ConfigurationError(NotifierError):
    """Raised when required configuration (e.g. the webhook URL) is missing or invalid."""


class DispatchError(NotifierError):
    """Raised when the webhook rejects a message or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
