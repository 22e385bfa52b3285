"""
Support-case classifiers.

The AI classifier (Gemini) is primary; the keyword heuristic is the
low-confidence fallback.
"""

from pastoral_triage.config import settings
from pastoral_triage.core.logging import get_logger
from pastoral_triage.classifiers.base import BaseClassifier
from pastoral_triage.classifiers import heuristic

log = get_logger(__name__)


def get_classifier() -> BaseClassifier | None:
    """
    Get the AI classifier configured in settings.

    Returns None when no Gemini API key is set; triage cycles then fail
    with a configuration error until a classifier is registered.
    """
    if not settings.gemini_api_key:
        log.warning("gemini_api_key_not_set")
        return None

    from pastoral_triage.classifiers.gemini import GeminiClassifier

    return GeminiClassifier()


__all__ = [
    "BaseClassifier",
    "get_classifier",
    "heuristic",
]
