"""Unit tests for data models."""

import pytest
from datetime import datetime, timezone

from pastoral_triage.core.models import (
    BodyContentType,
    CaseAction,
    ClassificationResult,
    Message,
    MessageBody,
    TriageItem,
    TriageStatus,
    strip_html,
)


class TestMessage:
    """Tests for Message."""

    def test_body_text_strips_html(self):
        """Test HTML bodies are reduced to plain text."""
        message = Message(
            id="m1",
            received_at=datetime.now(timezone.utc),
            body_preview="preview",
            body=MessageBody(BodyContentType.HTML, "<p>This is <b>HTML</b> content</p>"),
        )

        assert message.body_text == "This is HTML content"

    def test_body_text_uses_plain_content(self):
        """Test text bodies are used as-is."""
        message = Message(
            id="m1",
            received_at=datetime.now(timezone.utc),
            body_preview="preview",
            body=MessageBody(BodyContentType.TEXT, "Full body"),
        )

        assert message.body_text == "Full body"

    def test_body_text_falls_back_to_preview(self):
        """Test preview is used when there is no usable body."""
        no_body = Message(id="m1", received_at=datetime.now(timezone.utc), body_preview="preview")
        empty_body = Message(
            id="m2",
            received_at=datetime.now(timezone.utc),
            body_preview="preview",
            body=MessageBody(BodyContentType.TEXT, ""),
        )

        assert no_body.body_text == "preview"
        assert empty_body.body_text == "preview"

    def test_sender_email_lowercased(self):
        """Test sender address is normalized."""
        message = Message(id="m1", received_at=datetime.now(timezone.utc), sender=" Student@Uni.AC.uk ")
        assert message.sender_email == "student@uni.ac.uk"

    def test_sender_email_empty_without_sender(self):
        message = Message(id="m1", received_at=datetime.now(timezone.utc))
        assert message.sender_email == ""

    def test_from_graph(self):
        """Test mapping a Graph message resource."""
        data = {
            "id": "AAMk-1",
            "conversationId": "AAQk-1",
            "subject": "Extenuating circumstances",
            "receivedDateTime": "2026-10-12T09:15:00Z",
            "from": {"emailAddress": {"name": "Amira", "address": "amira@uni.ac.uk"}},
            "toRecipients": [{"emailAddress": {"address": "support@uni.ac.uk"}}],
            "ccRecipients": [{"emailAddress": {"address": "tutor@uni.ac.uk"}}, {"emailAddress": {}}],
            "bodyPreview": "I was unwell during exams",
            "body": {"contentType": "HTML", "content": "<div>I was unwell</div>"},
        }

        message = Message.from_graph(data)

        assert message.id == "AAMk-1"
        assert message.thread_id == "AAQk-1"
        assert message.received_at == datetime(2026, 10, 12, 9, 15, tzinfo=timezone.utc)
        assert message.sender == "amira@uni.ac.uk"
        assert message.to == ("support@uni.ac.uk",)
        assert message.cc == ("tutor@uni.ac.uk",)
        assert message.body.content_type == BodyContentType.HTML
        assert message.body_text == "I was unwell"

    def test_from_graph_minimal(self):
        """Test a message without sender, recipients or body."""
        message = Message.from_graph({"id": "AAMk-2", "receivedDateTime": "2026-10-12T09:15:00Z"})

        assert message.sender is None
        assert message.to == ()
        assert message.body is None
        assert message.body_text == ""


class TestStripHtml:
    """Tests for strip_html."""

    def test_collapses_whitespace(self):
        assert strip_html("<p>Hello</p>\n\n<p>world</p>") == "Hello world"

    def test_empty(self):
        assert strip_html("") == ""

    def test_decodes_entities(self):
        """Test entities are decoded so the classifier sees plain words."""
        assert strip_html("<p>I&nbsp;need&nbsp;help &amp; support</p>") == "I need help & support"


class TestClassificationResult:
    """Tests for ClassificationResult."""

    def test_rejects_confidence_out_of_range(self):
        with pytest.raises(ValueError):
            ClassificationResult(is_support_case=True, confidence=1.5)
        with pytest.raises(ValueError):
            ClassificationResult(is_support_case=True, confidence=-0.1)

    def test_degraded(self):
        """Test the degraded variant used on classifier failure."""
        result = ClassificationResult.degraded("timeout")

        assert result.is_degraded
        assert result.is_support_case is False
        assert result.confidence == 0.1
        assert result.tags == ("error",)
        assert result.suggested_case_action == CaseAction.IGNORE
        assert result.error == "timeout"

    def test_from_dict_maps_fields(self):
        """Test field mapping from the classifier JSON contract."""
        data = {
            "isSupportCase": True,
            "confidence": 0.82,
            "studentEmail": "amira@uni.ac.uk",
            "names": ["Amira Hassan"],
            "programme": "MSc Data Science",
            "tags": ["mental-health"],
            "suggestedCaseAction": "Open",
            "rationale": "Student reports anxiety",
        }

        result = ClassificationResult.from_dict(data)

        assert result.is_support_case is True
        assert result.confidence == 0.82
        assert result.student_email == "amira@uni.ac.uk"
        assert result.names == ("Amira Hassan",)
        assert result.programme == "MSc Data Science"
        assert result.tags == ("mental-health",)
        assert result.suggested_case_action == CaseAction.OPEN
        assert not result.is_degraded

    def test_from_dict_clamps_and_defaults(self):
        """Test out-of-range confidence and unknown actions are normalized."""
        result = ClassificationResult.from_dict(
            {"isSupportCase": True, "confidence": 3, "suggestedCaseAction": "Escalate"}
        )

        assert result.confidence == 1.0
        assert result.suggested_case_action == CaseAction.IGNORE
        assert result.tags == ()

    def test_to_dict_uses_external_names(self):
        result = ClassificationResult(
            is_support_case=True,
            confidence=0.6,
            tags=("keyword",),
            suggested_case_action=CaseAction.NOTE,
        )

        data = result.to_dict()

        assert data["isSupportCase"] is True
        assert data["tags"] == ["keyword"]
        assert data["suggestedCaseAction"] == "Note"


class TestTriageItem:
    """Tests for TriageItem."""

    def test_from_classification(self, sample_message, support_result):
        item = TriageItem.from_classification(sample_message, "support@university.ac.uk", support_result)

        assert item.message_id == sample_message.id
        assert item.thread_id == sample_message.thread_id
        assert item.status == TriageStatus.NEW
        assert item.confidence == 0.85
        assert item.to == ["support@university.ac.uk"]
        assert item.extracted == {
            "studentEmail": "student@university.ac.uk",
            "names": ["Amira Hassan"],
            "programme": "BSc Computer Science",
            "tags": ["accommodation"],
            "suggestedCaseAction": "Open",
        }

    def test_to_dict(self, sample_message, support_result):
        item = TriageItem.from_classification(sample_message, "support@university.ac.uk", support_result)
        item.id = 7

        data = item.to_dict()

        assert data["id"] == 7
        assert data["graphMessageId"] == "AAMkAGI2-msg-1"
        assert data["from"] == "student@university.ac.uk"
        assert data["receivedAt"] == "2026-10-12T09:15:00+00:00"
        assert data["status"] == "New"
        assert data["snoozeUntil"] is None
        assert data["extracted"]["suggestedCaseAction"] == "Open"
