"""
Keyword heuristic classifier.

Deterministic fallback used when the AI classifier is not confident.
No I/O: the same message always gives the same result.
"""

import re

from pastoral_triage.core.models import CaseAction, ClassificationResult, Message

SYSTEM_SENDER_PATTERN = re.compile(
    r"noreply|no-reply|donotreply|automated|notification|account-security|azure-noreply",
    re.IGNORECASE,
)

SUPPORT_KEYWORDS = re.compile(
    r"(accommodation|mitigating|extenuating|support|wellbeing|counselling|disability"
    r"|mental health|anxiety|depression|stress|welfare|financial hardship|emergency"
    r"|urgent help|help me|i need help|struggling|difficulty|problem|issue|concern"
    r"|worried|anxious)",
    re.IGNORECASE,
)

EMAIL_PATTERN = re.compile(r"\b[a-z0-9._%+-]+@[a-z0-9.-]+\.[a-z]{2,}\b", re.IGNORECASE)

# Tag -> pattern, in the order tags are reported
TAG_PATTERNS: list[tuple[str, re.Pattern]] = [
    ("accommodation", re.compile(r"accommodation|housing|residence", re.IGNORECASE)),
    ("mental-health", re.compile(
        r"mental health|anxiety|depression|stress|wellbeing|counselling", re.IGNORECASE
    )),
    ("financial", re.compile(r"financial|hardship|money|funding", re.IGNORECASE)),
    ("academic", re.compile(r"mitigating|extenuating|circumstances", re.IGNORECASE)),
    ("emergency", re.compile(r"emergency|urgent", re.IGNORECASE)),
]


def is_system_sender(sender_email: str) -> bool:
    """Check if a sender address looks automated."""
    return bool(SYSTEM_SENDER_PATTERN.search(sender_email))


def classify(message: Message) -> ClassificationResult:
    """
    Classify a message using keyword rules.

    Args:
        message: Message to classify

    Returns:
        ClassificationResult (0.1 for system senders, 0.6 on a keyword hit, else 0.25)
    """
    if is_system_sender(message.sender_email):
        return ClassificationResult(
            is_support_case=False,
            confidence=0.1,
            tags=("system-email",),
            suggested_case_action=CaseAction.IGNORE,
            rationale="Automated system email",
        )

    text = f"{message.subject or ''} {message.body_preview or ''}".lower()
    hit = SUPPORT_KEYWORDS.search(text) is not None

    email_match = EMAIL_PATTERN.search(text)
    student_email = email_match.group(0) if email_match else None

    tags = [tag for tag, pattern in TAG_PATTERNS if pattern.search(text)]

    if not hit:
        return ClassificationResult(
            is_support_case=False,
            confidence=0.25,
            student_email=student_email,
            tags=tuple(tags),
            suggested_case_action=CaseAction.IGNORE,
            rationale="No support indicators found",
        )

    action = CaseAction.OPEN if "emergency" in tags else CaseAction.NOTE
    return ClassificationResult(
        is_support_case=True,
        confidence=0.6,
        student_email=student_email,
        tags=tuple(tags) if tags else ("keyword",),
        suggested_case_action=action,
        rationale="Contains support-related keywords",
    )
