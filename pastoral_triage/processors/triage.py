"""
Triage processor.

Runs one ingestion cycle: fetch recent mail, filter, dedupe, classify
(AI first, keyword heuristic when the AI is unsure) and store one
triage item per new message.
"""

import argparse
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from pastoral_triage.config import Settings, settings
from pastoral_triage.core.errors import ConfigurationError, CycleInProgressError
from pastoral_triage.core.database import TriageStore
from pastoral_triage.core.logging import bind_context, clear_context, configure_logging, get_logger
from pastoral_triage.core.models import (
    ClassificationRequest,
    ClassificationResult,
    CycleResult,
    Message,
    TriageItem,
)
from pastoral_triage.classifiers import BaseClassifier, get_classifier, heuristic
from pastoral_triage.processors.base import BaseProcessor
from pastoral_triage.processors.filters import AllowedSenderFilter, skip_reason
from pastoral_triage.services.base import MailSource

log = get_logger(__name__)

# Below this AI confidence the heuristic gets a chance to do better
LOW_CONFIDENCE_THRESHOLD = 0.5


@dataclass(frozen=True)
class PipelineConfig:
    """Connection and fetch settings for the triage pipeline.

    Immutable: reconfiguring swaps in a new instance, and each cycle works
    from the instance it started with.
    """

    mailbox: str = ""
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    use_delegated: bool = False
    access_token: str = ""
    allowed_senders: frozenset[str] = frozenset()
    fetch_limit: int = 100
    fetch_window_hours: int = 24

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "PipelineConfig":
        """Build the pipeline configuration from application settings."""
        s = source or settings
        return cls(
            mailbox=s.monitored_mailbox,
            tenant_id=s.tenant_id,
            client_id=s.client_id,
            client_secret=s.client_secret,
            use_delegated=s.delegated_auth,
            access_token=s.graph_access_token,
            allowed_senders=frozenset(a.lower() for a in s.allowed_sender_list),
            fetch_limit=s.fetch_limit,
            fetch_window_hours=s.fetch_window_hours,
        )

    def validate(self) -> None:
        """Raise ConfigurationError if required connection settings are missing."""
        missing = [
            name
            for name, value in (
                ("MONITORED_MAILBOX", self.mailbox),
                ("TENANT_ID", self.tenant_id),
                ("CLIENT_ID", self.client_id),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration for email fetching: {', '.join(missing)}"
            )
        if not self.use_delegated and not self.client_secret:
            raise ConfigurationError(
                "CLIENT_SECRET is required when using application permissions"
            )


def select_result(
    primary: ClassificationResult,
    message: Message,
    fallback: Callable[[Message], ClassificationResult] = heuristic.classify,
) -> ClassificationResult:
    """
    Choose between the AI result and the heuristic result.

    The heuristic is only consulted when the AI confidence is below 0.5,
    and it replaces the AI result as a whole only when it is strictly
    more confident.
    """
    if primary.confidence >= LOW_CONFIDENCE_THRESHOLD:
        return primary

    candidate = fallback(message)
    if candidate.confidence > primary.confidence:
        log.info(
            "heuristic_fallback_applied",
            message_id=message.id,
            ai_confidence=primary.confidence,
            heuristic_confidence=candidate.confidence,
        )
        return candidate
    return primary


class TriageProcessor(BaseProcessor):
    """
    Email triage pipeline.

    Holds the pipeline configuration, the registered AI classifier and
    the mail source. Only one cycle runs at a time: a second request while
    a cycle is in flight raises CycleInProgressError instead of racing on
    the duplicate check.
    """

    def __init__(
        self,
        store: TriageStore | None = None,
        config: PipelineConfig | None = None,
        classifier: BaseClassifier | None = None,
        mail_source: MailSource | None = None,
        fallback: Callable[[Message], ClassificationResult] = heuristic.classify,
    ):
        self.store = store or TriageStore()
        self.fallback = fallback
        self._config = config or PipelineConfig.from_settings()
        self.sender_filter = AllowedSenderFilter(self._config.allowed_senders)
        self._classifier = classifier
        self._mail_source = mail_source
        self._owns_mail_source = mail_source is None
        self._config_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        # Replaced mail sources, closed once no cycle can still be using them
        self._retired_sources: list[MailSource] = []

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def classifier(self) -> BaseClassifier | None:
        return self._classifier

    @property
    def is_running(self) -> bool:
        return self._cycle_lock.locked()

    def configure(self, config: PipelineConfig) -> None:
        """Replace the pipeline configuration (takes effect from the next cycle)."""
        with self._config_lock:
            self._config = config
            self.sender_filter.set_senders(config.allowed_senders)
            self._retire_mail_source()
        if not self.is_running:
            self._close_retired_sources()
        log.info("pipeline_configured", mailbox=config.mailbox, delegated=config.use_delegated)

    def set_classifier(self, classifier: BaseClassifier | None) -> None:
        """Register the AI classifier used by subsequent cycles."""
        with self._config_lock:
            self._classifier = classifier
        log.info("classifier_registered", classifier=type(classifier).__name__)

    def set_allowed_senders(self, senders: Iterable[str] | str) -> None:
        """Replace the sender allow-list (empty allows every sender)."""
        with self._config_lock:
            self.sender_filter.set_senders(senders)
        log.info("allowed_senders_updated", count=len(self.sender_filter.senders))

    def process(self) -> dict:
        """Run one triage cycle and return its counters."""
        return self.run_cycle().to_dict()

    def run_cycle(self) -> CycleResult:
        """
        Run one triage cycle.

        Returns:
            CycleResult with processed/skipped counts

        Raises:
            CycleInProgressError: Another cycle is still running
            ConfigurationError: No classifier or missing connection settings
            ConnectorError: Mail could not be fetched
            PersistenceError: A triage item could not be stored
        """
        if not self._cycle_lock.acquire(blocking=False):
            log.warning("triage_cycle_already_running")
            raise CycleInProgressError("A triage cycle is already running")

        try:
            config, classifier, allowed, mail_source = self._snapshot()
            bind_context(cycle_id=uuid.uuid4().hex[:8], mailbox=config.mailbox)
            log.info("triage_cycle_starting", allowed_senders=len(allowed))

            since = datetime.now(timezone.utc) - timedelta(hours=config.fetch_window_hours)
            messages = mail_source.fetch(config.mailbox, since, config.fetch_limit)

            result = CycleResult()
            for message in messages:
                if self._process_message(message, config, classifier, allowed):
                    result.processed += 1
                else:
                    result.skipped += 1

            log.info("triage_cycle_complete", **result.to_dict())
            return result

        except Exception as e:
            log.error("triage_cycle_error", error=str(e), error_type=type(e).__name__)
            raise

        finally:
            clear_context()
            self._close_retired_sources()
            self._cycle_lock.release()

    def close(self) -> None:
        """Close the mail source built by this processor.

        Call after the scheduler has stopped; the next cycle builds a new source.
        """
        with self._config_lock:
            self._retire_mail_source()
        self._close_retired_sources()

    def _retire_mail_source(self) -> None:
        """Drop the current mail source if we built it. Caller holds _config_lock."""
        if self._owns_mail_source and self._mail_source is not None:
            self._retired_sources.append(self._mail_source)
            self._mail_source = None

    def _close_retired_sources(self) -> None:
        with self._config_lock:
            retired, self._retired_sources = self._retired_sources, []
        for source in retired:
            source.close()
            log.debug("mail_source_closed", source=type(source).__name__)

    def _snapshot(self) -> tuple[PipelineConfig, BaseClassifier, frozenset[str], MailSource]:
        """Take the configuration this cycle will use, validating it first."""
        with self._config_lock:
            config = self._config
            classifier = self._classifier
            allowed = self.sender_filter.senders

            if classifier is None:
                raise ConfigurationError("Classifier not configured")
            config.validate()

            if self._mail_source is None:
                from pastoral_triage.services.graph import build_mail_source

                self._mail_source = build_mail_source(config)
            return config, classifier, allowed, self._mail_source

    def _process_message(
        self,
        message: Message,
        config: PipelineConfig,
        classifier: BaseClassifier,
        allowed: frozenset[str],
    ) -> bool:
        """
        Triage one message.

        Returns:
            True if a new triage item was stored, False if the message was skipped
        """
        reason = skip_reason(message, allowed)
        if reason is not None:
            log.info("message_skipped", message_id=message.id, reason=reason)
            return False

        if self.store.exists(message.id):
            log.debug("message_skipped", message_id=message.id, reason="duplicate")
            return False

        request = ClassificationRequest(
            subject=message.subject or "",
            body_text=message.body_text,
            sender=message.sender,
        )
        primary = self._classify(classifier, request, message)
        final = select_result(primary, message, self.fallback)

        item = TriageItem.from_classification(message, config.mailbox, final)
        if self.store.insert(item) is None:
            log.info("message_skipped", message_id=message.id, reason="duplicate")
            return False

        log.info(
            "message_triaged",
            message_id=message.id,
            confidence=final.confidence,
            is_support_case=final.is_support_case,
            tags=list(final.tags),
        )
        return True

    @staticmethod
    def _classify(
        classifier: BaseClassifier,
        request: ClassificationRequest,
        message: Message,
    ) -> ClassificationResult:
        """Call the AI classifier; a failing adapter counts as a degraded result."""
        try:
            result = classifier.classify(request)
        except Exception as e:
            log.error("classifier_failed", message_id=message.id, error=str(e))
            return ClassificationResult.degraded(str(e))

        if result.is_degraded:
            log.warning("classifier_degraded", message_id=message.id, error=result.error)
        return result


# Process-wide processor used by the scheduler and the API
_processor: TriageProcessor | None = None
_processor_lock = threading.Lock()


def get_processor() -> TriageProcessor:
    """Get (or lazily create) the shared triage processor."""
    global _processor
    with _processor_lock:
        if _processor is None:
            _processor = TriageProcessor(classifier=get_classifier())
        return _processor


def set_processor(processor: TriageProcessor | None) -> None:
    """Replace the shared triage processor."""
    global _processor
    with _processor_lock:
        _processor = processor


def main():
    """CLI entry point: run a single triage cycle."""
    parser = argparse.ArgumentParser(
        description="Run one email triage cycle against the monitored mailbox"
    )
    parser.add_argument(
        "--init-schema",
        action="store_true",
        help="Create the triage tables before running",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    args = parser.parse_args()

    configure_logging(log_level=args.log_level, json_output=settings.json_logs)

    processor = get_processor()
    if args.init_schema:
        processor.store.init_schema()

    try:
        stats = processor.process()
    finally:
        processor.close()
    log.info("triage_summary", **stats)


if __name__ == "__main__":
    main()
