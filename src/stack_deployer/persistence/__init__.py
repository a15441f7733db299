"""Environment state persistence."""

from .codec import environment_from_document, environment_to_document
from .store import (
    STATE_FILE_NAME,
    CorruptStateError,
    EnvironmentNotFoundError,
    EnvironmentStore,
)

__all__ = [
    "CorruptStateError",
    "EnvironmentNotFoundError",
    "EnvironmentStore",
    "STATE_FILE_NAME",
    "environment_from_document",
    "environment_to_document",
]
