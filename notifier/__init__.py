"""GuardDuty finding classification, rendering and Slack delivery."""

from notifier.errors import ConfigurationError, DeserializationError, DispatchError, NotifierError
from notifier.pipeline import build_message, build_messages

__all__ = [
    "build_message",
    "build_messages",
    "ConfigurationError",
    "DeserializationError",
    "DispatchError",
    "NotifierError",
]
