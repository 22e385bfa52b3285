"""
Shared pytest fixtures for pastoral_triage tests.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from pastoral_triage.core.models import (
    BodyContentType,
    CaseAction,
    ClassificationResult,
    Message,
    MessageBody,
)
from pastoral_triage.processors.triage import PipelineConfig
from pastoral_triage.tests.fakes import InMemoryStore


@pytest.fixture
def sample_message() -> Message:
    """Student asking for accommodation help."""
    return Message(
        id="AAMkAGI2-msg-1",
        thread_id="AAQkAGI2-conv-1",
        received_at=datetime(2026, 10, 12, 9, 15, 0, tzinfo=timezone.utc),
        subject="Need help with accommodation",
        sender="student@university.ac.uk",
        to=("support@university.ac.uk",),
        cc=(),
        body_preview="I need support with my accommodation, my landlord has locked me out.",
        body=MessageBody(
            content_type=BodyContentType.TEXT,
            content="I need support with my accommodation, my landlord has locked me out.\n\nThanks, Amira",
        ),
    )


@pytest.fixture
def system_message() -> Message:
    """Microsoft account security notification."""
    return Message(
        id="AAMkAGI2-msg-2",
        received_at=datetime(2026, 10, 12, 8, 0, 0, tzinfo=timezone.utc),
        subject="New sign-in to your account",
        sender="account-security-noreply@accountprotection.microsoft.com",
        to=("support@university.ac.uk",),
        body_preview="We noticed a new sign-in. If this was you, no action is needed.",
    )


@pytest.fixture
def support_result() -> ClassificationResult:
    """Confident AI result for a support case."""
    return ClassificationResult(
        is_support_case=True,
        confidence=0.85,
        student_email="student@university.ac.uk",
        names=("Amira Hassan",),
        programme="BSc Computer Science",
        tags=("accommodation",),
        suggested_case_action=CaseAction.OPEN,
        rationale="Student locked out of accommodation",
    )


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    """Complete application-auth configuration."""
    return PipelineConfig(
        mailbox="support@university.ac.uk",
        tenant_id="test-tenant",
        client_id="test-client",
        client_secret="test-secret",
        use_delegated=False,
    )


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def mock_store():
    """Mock store for testing without real DB connection."""
    store = MagicMock()
    store.exists.return_value = False
    store.insert.return_value = 1
    return store


@pytest.fixture
def mock_settings(monkeypatch):
    """Mock settings for testing."""
    monkeypatch.setenv("MONITORED_MAILBOX", "support@university.ac.uk")
    monkeypatch.setenv("TENANT_ID", "test-tenant")
    monkeypatch.setenv("CLIENT_ID", "test-client")
    monkeypatch.setenv("CLIENT_SECRET", "test-secret")
    monkeypatch.setenv("TRIAGE_DB_PASSWORD", "test-db-password")
    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-key")
