"""Core modules for email triage."""

from .logging import configure_logging, get_logger
from .errors import (
    TriageError,
    ConfigurationError,
    ConnectorError,
    AuthenticationError,
    ClassificationError,
    PersistenceError,
    CycleInProgressError,
)
from .models import (
    Message,
    MessageBody,
    BodyContentType,
    CaseAction,
    TriageStatus,
    ClassificationRequest,
    ClassificationResult,
    TriageItem,
    CycleResult,
)
from .database import TriageStore

__all__ = [
    "configure_logging",
    "get_logger",
    "TriageError",
    "ConfigurationError",
    "ConnectorError",
    "AuthenticationError",
    "ClassificationError",
    "PersistenceError",
    "CycleInProgressError",
    "Message",
    "MessageBody",
    "BodyContentType",
    "CaseAction",
    "TriageStatus",
    "ClassificationRequest",
    "ClassificationResult",
    "TriageItem",
    "CycleResult",
    "TriageStore",
]
