"""
Message filters applied before classification.

Filters run in a fixed order and the first one that rejects a message
decides the skip reason.
"""

import re
import threading
from typing import Iterable

from pastoral_triage.core.models import Message

# Known non-support sender addresses (system notifications, etc.)
SYSTEM_SENDER_PATTERNS = [
    re.compile(r"account-security-noreply@accountprotection\.microsoft\.com", re.IGNORECASE),
    re.compile(r"azure-noreply@microsoft\.com", re.IGNORECASE),
    re.compile(r"noreply@microsoft\.com", re.IGNORECASE),
    re.compile(r"no-reply@", re.IGNORECASE),
    re.compile(r"donotreply@", re.IGNORECASE),
    re.compile(r"automated@", re.IGNORECASE),
    re.compile(r"notification@", re.IGNORECASE),
]

SYSTEM_SUBJECT_PATTERN = re.compile(
    r"^(new sign-in|password reset|account verification|welcome to|security alert|account security)",
    re.IGNORECASE,
)


class AllowedSenderFilter:
    """
    Allow-list of sender addresses.

    An empty list allows every sender. The list is replaced as a whole on
    each set_senders() call and held as an immutable frozenset, so readers
    always see a complete list.
    """

    def __init__(self, senders: Iterable[str] | str = ()):
        self._lock = threading.Lock()
        self._senders: frozenset[str] = frozenset()
        self.set_senders(senders)

    def set_senders(self, senders: Iterable[str] | str) -> None:
        """Replace the allow-list (addresses are compared lowercased).

        A plain string is read as a comma-separated list, as in ALLOWED_SENDERS.
        """
        if isinstance(senders, str):
            senders = senders.split(",")
        normalized = frozenset(s.strip().lower() for s in senders if s and s.strip())
        with self._lock:
            self._senders = normalized

    @property
    def senders(self) -> frozenset[str]:
        return self._senders

    def is_interesting(self, message: Message) -> bool:
        """True if the message has a sender and the allow-list permits it."""
        return is_allowed_sender(message, self._senders)


def is_allowed_sender(message: Message, allowed: frozenset[str]) -> bool:
    """Check a message sender against an allow-list snapshot."""
    sender = message.sender_email
    if not sender:
        return False
    return not allowed or sender in allowed


def is_system_sender(message: Message) -> bool:
    """Check if the sender is a known system/automated address."""
    sender = message.sender_email
    return any(pattern.search(sender) for pattern in SYSTEM_SENDER_PATTERNS)


def is_system_subject(message: Message) -> bool:
    """Check if the subject reads like a sign-in or account notification."""
    return bool(SYSTEM_SUBJECT_PATTERN.search((message.subject or "").lower()))


def skip_reason(message: Message, allowed: frozenset[str]) -> str | None:
    """
    Run the filter chain for one message.

    Args:
        message: Message to check
        allowed: Allow-list snapshot for the current cycle

    Returns:
        Reason the message is skipped, or None if it should be classified
    """
    if not is_allowed_sender(message, allowed):
        return "not_allowed_sender"
    if is_system_sender(message):
        # The subject rule only ever applies to system senders, so it just
        # refines the reason
        return "system_subject" if is_system_subject(message) else "system_sender"
    return None
