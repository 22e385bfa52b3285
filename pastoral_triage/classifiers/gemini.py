"""
Gemini AI classifier implementation.
"""

import json

from google import genai
from google.genai import types

from pastoral_triage.config import settings
from pastoral_triage.core.errors import ClassificationError, ConfigurationError
from pastoral_triage.core.logging import get_logger
from pastoral_triage.core.models import ClassificationRequest, ClassificationResult
from pastoral_triage.classifiers.base import BaseClassifier
from pastoral_triage.classifiers.prompts import TRIAGE_PROMPT

log = get_logger(__name__)


class GeminiClassifier(BaseClassifier):
    """Gemini AI-based support-case classifier."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_body_chars: int | None = None,
        client: genai.Client | None = None,
    ):
        self.api_key = api_key or settings.gemini_api_key
        self.model_name = model or settings.gemini_model
        self.timeout = timeout or settings.classifier_timeout_seconds
        self.max_body_chars = max_body_chars or settings.classifier_max_body_chars

        if client is not None:
            self.client = client
            return

        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is required")

        self.client = genai.Client(
            api_key=self.api_key,
            http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),
        )

    def classify(self, request: ClassificationRequest) -> ClassificationResult:
        """
        Classify a message using Gemini AI.

        Never raises for upstream failures: errors, empty answers and
        unparseable JSON all come back as a degraded result.

        Args:
            request: Message subject, plain-text body and sender

        Returns:
            ClassificationResult with confidence and extracted fields
        """
        prompt = TRIAGE_PROMPT.format(
            sender=request.sender or "",
            subject=request.subject or "",
            body=(request.body_text or "")[: self.max_body_chars],
        )

        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=0.2,
                    response_mime_type="application/json",
                ),
            )
            data = self._parse_response(response.text)
            result = ClassificationResult.from_dict(data)

        except ClassificationError as e:
            log.warning("gemini_unusable_response", error=str(e))
            return ClassificationResult.degraded(str(e))

        except Exception as e:
            error_str = str(e).lower()
            if any(x in error_str for x in ["rate", "429", "quota"]):
                log.error("gemini_rate_limit", error=str(e))
            elif any(x in error_str for x in ["api key", "auth", "401", "403"]):
                log.error("gemini_auth_error", error=str(e))
            else:
                log.error("gemini_error", error=str(e))
            return ClassificationResult.degraded(str(e))

        log.info(
            "message_classified",
            is_support_case=result.is_support_case,
            confidence=result.confidence,
            action=result.suggested_case_action.value if result.suggested_case_action else None,
            subject=request.subject[:50] if request.subject else None,
        )
        return result

    def _parse_response(self, response_text: str | None) -> dict:
        """Parse JSON from Gemini response."""
        if not response_text or not response_text.strip():
            raise ClassificationError("Empty response from Gemini")

        text = response_text.strip()

        # Remove markdown code blocks if present
        if text.startswith("```"):
            lines = text.split("\n")
            lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            text = "\n".join(lines)

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            log.error("gemini_parse_error", error=str(e), response_preview=text[:200])
            raise ClassificationError(f"Malformed JSON from Gemini: {e}") from e

        if not isinstance(data, dict):
            raise ClassificationError("Gemini response is not a JSON object")
        return data
