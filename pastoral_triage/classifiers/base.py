"""
Abstract base class for support-case classifiers.
"""

from abc import ABC, abstractmethod

from pastoral_triage.core.models import ClassificationRequest, ClassificationResult


class BaseClassifier(ABC):
    """Abstract AI classifier interface."""

    @abstractmethod
    def classify(self, request: ClassificationRequest) -> ClassificationResult:
        """
        Classify a message as a possible student support case.

        Implementations must not raise for ordinary classification failures
        (transport errors, empty or malformed responses). They return
        ClassificationResult.degraded() instead.

        Args:
            request: Subject, plain-text body and sender of the message

        Returns:
            ClassificationResult with confidence and extracted fields
        """
        pass
