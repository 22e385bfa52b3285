"""
Access token providers for Microsoft Graph.

The pipeline treats these as opaque: it only ever asks for a bearer token.
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import httpx

from pastoral_triage.config import settings
from pastoral_triage.core.errors import AuthenticationError, ConfigurationError
from pastoral_triage.core.logging import get_logger

if TYPE_CHECKING:
    from pastoral_triage.processors.triage import PipelineConfig

log = get_logger(__name__)

GRAPH_SCOPE = "https://graph.microsoft.com/.default"
TOKEN_URL = "https://login.microsoftonline.com/{tenant_id}/oauth2/v2.0/token"

# Refresh this many seconds before the token actually expires
EXPIRY_MARGIN = 60


class TokenProvider(ABC):
    """Supplies bearer tokens for Graph requests."""

    @abstractmethod
    def get_token(self) -> str:
        pass

    def close(self) -> None:
        """Release connections held by the provider."""


class StaticTokenProvider(TokenProvider):
    """Delegated auth: a user token acquired outside this service."""

    def __init__(self, token: str):
        if not token:
            raise ConfigurationError(
                "GRAPH_ACCESS_TOKEN is required for delegated permissions"
            )
        self._token = token

    def get_token(self) -> str:
        return self._token


class ClientCredentialsTokenProvider(TokenProvider):
    """Application auth using the OAuth2 client-credentials grant."""

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        timeout: float | None = None,
        http_client: httpx.Client | None = None,
    ):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self._client = http_client or httpx.Client(
            timeout=timeout or settings.graph_timeout_seconds
        )
        self._token: str | None = None
        self._expires_at = 0.0
        self._lock = threading.Lock()

    def get_token(self) -> str:
        """Return a cached token, requesting a new one when it is about to expire."""
        with self._lock:
            if self._token and time.monotonic() < self._expires_at - EXPIRY_MARGIN:
                return self._token

            try:
                response = self._client.post(
                    TOKEN_URL.format(tenant_id=self.tenant_id),
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "scope": GRAPH_SCOPE,
                    },
                )
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as e:
                log.error("graph_token_rejected", status=e.response.status_code)
                raise AuthenticationError(f"Token request rejected: {e}") from e
            except (httpx.RequestError, ValueError) as e:
                log.error("graph_token_request_error", error=str(e))
                raise AuthenticationError(f"Token request failed: {e}") from e

            token = data.get("access_token")
            if not token:
                raise AuthenticationError("Token response did not contain an access token")

            self._token = token
            self._expires_at = time.monotonic() + float(data.get("expires_in", 3600))
            log.info("graph_token_acquired", expires_in=data.get("expires_in"))
            return token

    def close(self):
        """Close the HTTP client."""
        self._client.close()


def build_token_provider(config: "PipelineConfig") -> TokenProvider:
    """Pick delegated or application auth for a pipeline configuration."""
    if config.use_delegated:
        return StaticTokenProvider(config.access_token)
    return ClientCredentialsTokenProvider(
        tenant_id=config.tenant_id,
        client_id=config.client_id,
        client_secret=config.client_secret,
    )
