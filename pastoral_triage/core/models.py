"""
Data models for email triage.

Uses dataclasses for clean, typed data structures.
"""

import html
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class CaseAction(str, Enum):
    """Action the classifier suggests for a triage item."""

    OPEN = "Open"
    NOTE = "Note"
    IGNORE = "Ignore"


class TriageStatus(str, Enum):
    """Review status of a triage item."""

    NEW = "New"
    REVIEWED = "Reviewed"
    PROMOTED = "Promoted"
    REJECTED = "Rejected"
    SNOOZED = "Snoozed"


class BodyContentType(str, Enum):
    """Content type tag of a full message body."""

    TEXT = "text"
    HTML = "html"


@dataclass(frozen=True)
class MessageBody:
    """Full message body with its content type."""

    content_type: BodyContentType
    content: str


@dataclass(frozen=True)
class Message:
    """Mail message as fetched from the mail source. Never persisted as-is."""

    id: str
    received_at: datetime
    subject: str | None = None
    sender: str | None = None
    thread_id: str | None = None
    to: tuple[str, ...] = ()
    cc: tuple[str, ...] = ()
    body_preview: str = ""
    body: MessageBody | None = None

    @property
    def sender_email(self) -> str:
        """Lowercased sender address, empty if the message has no sender."""
        return (self.sender or "").strip().lower()

    @property
    def body_text(self) -> str:
        """Body as plain text: HTML stripped, else full content, else preview."""
        if self.body is not None and self.body.content_type == BodyContentType.HTML:
            return strip_html(self.body.content)
        if self.body is not None and self.body.content:
            return self.body.content
        return self.body_preview or ""

    @classmethod
    def from_graph(cls, data: dict[str, Any]) -> "Message":
        """Create a Message from a Microsoft Graph message resource."""
        sender = (data.get("from") or {}).get("emailAddress") or {}
        body = data.get("body")

        message_body = None
        if body:
            try:
                content_type = BodyContentType(str(body.get("contentType", "text")).lower())
            except ValueError:
                content_type = BodyContentType.TEXT
            message_body = MessageBody(content_type=content_type, content=body.get("content") or "")

        return cls(
            id=data["id"],
            thread_id=data.get("conversationId"),
            received_at=datetime.fromisoformat(data["receivedDateTime"].replace("Z", "+00:00")),
            subject=data.get("subject"),
            sender=sender.get("address"),
            to=_graph_addresses(data.get("toRecipients")),
            cc=_graph_addresses(data.get("ccRecipients")),
            body_preview=data.get("bodyPreview") or "",
            body=message_body,
        )


def _graph_addresses(recipients: list[dict] | None) -> tuple[str, ...]:
    """Extract addresses from a Graph recipient list."""
    return tuple(
        r["emailAddress"]["address"]
        for r in recipients or []
        if (r.get("emailAddress") or {}).get("address")
    )


def strip_html(markup: str) -> str:
    """Strip HTML tags from text and decode entities such as &nbsp; and &amp;."""
    if not markup:
        return ""
    text = html.unescape(re.sub(r"<[^>]+>", " ", markup))
    return re.sub(r"\s+", " ", text).strip()


@dataclass(frozen=True)
class ClassificationRequest:
    """Input handed to an AI classifier."""

    subject: str
    body_text: str
    sender: str | None = None


@dataclass(frozen=True)
class ClassificationResult:
    """Result from support-case classification.

    A result with ``error`` set is the degraded variant returned when the
    AI classifier could not produce an answer.
    """

    is_support_case: bool
    confidence: float
    student_email: str | None = None
    names: tuple[str, ...] | None = None
    programme: str | None = None
    tags: tuple[str, ...] = ()
    suggested_case_action: CaseAction | None = None
    rationale: str | None = None
    error: str | None = None

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    @property
    def is_degraded(self) -> bool:
        return self.error is not None

    @classmethod
    def degraded(cls, reason: str) -> "ClassificationResult":
        """Low-confidence result used when classification failed."""
        return cls(
            is_support_case=False,
            confidence=0.1,
            tags=("error",),
            suggested_case_action=CaseAction.IGNORE,
            rationale="Classification failed due to error",
            error=reason,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClassificationResult":
        """Create ClassificationResult from a classifier JSON response."""
        try:
            confidence = float(data.get("confidence") or 0)
        except (TypeError, ValueError):
            confidence = 0.0
        confidence = min(max(confidence, 0.0), 1.0)

        try:
            action = CaseAction(data.get("suggestedCaseAction") or CaseAction.IGNORE.value)
        except ValueError:
            action = CaseAction.IGNORE

        names = data.get("names")
        tags = data.get("tags")

        return cls(
            is_support_case=bool(data.get("isSupportCase")),
            confidence=confidence,
            student_email=data.get("studentEmail") or None,
            names=tuple(str(n) for n in names) if isinstance(names, list) else (),
            programme=data.get("programme") or None,
            tags=tuple(str(t) for t in tags) if isinstance(tags, list) else (),
            suggested_case_action=action,
            rationale=data.get("rationale"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict using the external field names."""
        return {
            "isSupportCase": self.is_support_case,
            "confidence": self.confidence,
            "studentEmail": self.student_email,
            "names": list(self.names) if self.names is not None else None,
            "programme": self.programme,
            "tags": list(self.tags),
            "suggestedCaseAction": (
                self.suggested_case_action.value if self.suggested_case_action else None
            ),
            "rationale": self.rationale,
        }


@dataclass
class TriageItem:
    """Persisted triage record, one per source message."""

    message_id: str
    mailbox: str
    received_at: datetime
    confidence: float
    subject: str = ""
    sender: str = ""
    thread_id: str | None = None
    to: list[str] = field(default_factory=list)
    cc: list[str] = field(default_factory=list)
    body_preview: str = ""

    # Extracted fields
    student_email: str | None = None
    names: list[str] = field(default_factory=list)
    programme: str | None = None
    tags: list[str] = field(default_factory=list)
    suggested_case_action: CaseAction = CaseAction.IGNORE

    # Review state
    id: int | None = None
    status: TriageStatus = TriageStatus.NEW
    snooze_until: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_classification(
        cls,
        message: Message,
        mailbox: str,
        result: ClassificationResult,
    ) -> "TriageItem":
        """Build a new triage item from a message and its final classification."""
        return cls(
            message_id=message.id,
            thread_id=message.thread_id,
            mailbox=mailbox,
            received_at=message.received_at,
            subject=message.subject or "",
            sender=message.sender or "",
            to=list(message.to),
            cc=list(message.cc),
            body_preview=message.body_preview or "",
            confidence=result.confidence,
            student_email=result.student_email,
            names=list(result.names or ()),
            programme=result.programme,
            tags=list(result.tags),
            suggested_case_action=result.suggested_case_action or CaseAction.IGNORE,
            status=TriageStatus.NEW,
        )

    @property
    def extracted(self) -> dict[str, Any]:
        """Extracted fields as stored and served."""
        return {
            "studentEmail": self.student_email,
            "names": self.names,
            "programme": self.programme,
            "tags": self.tags,
            "suggestedCaseAction": self.suggested_case_action.value,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON shape consumed by the dashboard."""
        return {
            "id": self.id,
            "graphMessageId": self.message_id,
            "threadId": self.thread_id,
            "mailbox": self.mailbox,
            "receivedAt": self.received_at.isoformat(),
            "subject": self.subject,
            "from": self.sender,
            "to": self.to,
            "cc": self.cc,
            "bodyPreview": self.body_preview,
            "confidence": self.confidence,
            "extracted": self.extracted,
            "status": self.status.value,
            "snoozeUntil": self.snooze_until.isoformat() if self.snooze_until else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class CycleResult:
    """Counters returned by one triage cycle."""

    processed: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"processed": self.processed, "skipped": self.skipped}
