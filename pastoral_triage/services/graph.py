"""
Microsoft Graph mail client.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from pastoral_triage.config import settings
from pastoral_triage.core.errors import AuthenticationError, ConnectorError
from pastoral_triage.core.logging import get_logger
from pastoral_triage.core.models import Message
from pastoral_triage.services.auth import TokenProvider, build_token_provider
from pastoral_triage.services.base import MailSource

if TYPE_CHECKING:
    from pastoral_triage.processors.triage import PipelineConfig

log = get_logger(__name__)

SELECT_FIELDS = (
    "id,internetMessageId,conversationId,subject,receivedDateTime,from,"
    "toRecipients,ccRecipients,bodyPreview,body"
)


class GraphMailClient(MailSource):
    """Reads the Inbox folder of a mailbox through Microsoft Graph."""

    def __init__(
        self,
        token_provider: TokenProvider,
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.Client | None = None,
    ):
        self.token_provider = token_provider
        self.base_url = (base_url or settings.graph_base_url).rstrip("/")
        self.timeout = timeout or settings.graph_timeout_seconds
        self._client = http_client or httpx.Client(timeout=self.timeout)

    def fetch(self, mailbox: str, since: datetime, max_count: int) -> list[Message]:
        """
        Fetch Inbox messages received since a point in time, newest first.

        Args:
            mailbox: Mailbox address (user principal name)
            since: Lower bound on receivedDateTime
            max_count: Maximum number of messages ($top)

        Returns:
            List of Message objects
        """
        token = self.token_provider.get_token()
        since_utc = since.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

        url = f"{self.base_url}/users/{quote(mailbox)}/mailFolders/Inbox/messages"
        params = {
            "$filter": f"receivedDateTime ge {since_utc}",
            "$top": str(max_count),
            "$select": SELECT_FIELDS,
            "$orderby": "receivedDateTime DESC",
        }

        try:
            response = self._client.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
            payload = response.json()

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status in (401, 403):
                log.error("graph_auth_error", status=status, mailbox=mailbox)
                raise AuthenticationError(
                    f"Graph rejected credentials for {mailbox} (HTTP {status})"
                ) from e
            log.error("graph_http_error", status=status, error=str(e))
            raise ConnectorError(f"Graph request failed (HTTP {status})") from e

        except httpx.RequestError as e:
            log.error("graph_request_error", error=str(e))
            raise ConnectorError(f"Failed to reach Microsoft Graph: {e}") from e

        except ValueError as e:
            raise ConnectorError(f"Graph returned invalid JSON: {e}") from e

        items = payload.get("value") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            items = []

        try:
            messages = [Message.from_graph(item) for item in items]
        except (KeyError, TypeError, ValueError) as e:
            log.error("graph_parse_error", error=str(e))
            raise ConnectorError(f"Unexpected message payload from Graph: {e}") from e

        log.info("graph_messages_fetched", mailbox=mailbox, count=len(messages))
        return messages

    def close(self):
        """Close the HTTP client and the token provider's client."""
        self._client.close()
        self.token_provider.close()


def build_mail_source(config: "PipelineConfig") -> GraphMailClient:
    """Create a Graph mail client for a pipeline configuration."""
    return GraphMailClient(token_provider=build_token_provider(config))
