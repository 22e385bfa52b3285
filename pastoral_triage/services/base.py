"""
Abstract base class for mail sources.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from pastoral_triage.core.models import Message


class MailSource(ABC):
    """Read-only access to recent messages of a mailbox."""

    @abstractmethod
    def fetch(self, mailbox: str, since: datetime, max_count: int) -> list[Message]:
        """
        Fetch messages received since a point in time.

        Args:
            mailbox: Mailbox address to read
            since: Only messages received at or after this time
            max_count: Maximum number of messages to return

        Returns:
            Messages ordered newest first (empty list when there are none)

        Raises:
            AuthenticationError: Credentials were rejected
            ConnectorError: Transport or protocol failure
        """
        pass

    def close(self) -> None:
        """Release connections held by the source."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
