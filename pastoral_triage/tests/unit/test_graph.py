"""Unit tests for the Microsoft Graph connector."""

import httpx
import pytest
from datetime import datetime, timezone

from pastoral_triage.core.errors import AuthenticationError, ConfigurationError, ConnectorError
from pastoral_triage.processors.triage import PipelineConfig
from pastoral_triage.services.auth import (
    ClientCredentialsTokenProvider,
    StaticTokenProvider,
    build_token_provider,
)
from pastoral_triage.services.graph import GraphMailClient

GRAPH_MESSAGE = {
    "id": "AAMk-1",
    "conversationId": "AAQk-1",
    "subject": "Need support",
    "receivedDateTime": "2026-10-12T09:15:00Z",
    "from": {"emailAddress": {"address": "student@uni.ac.uk"}},
    "toRecipients": [{"emailAddress": {"address": "support@uni.ac.uk"}}],
    "bodyPreview": "Hello",
    "body": {"contentType": "text", "content": "Hello, I need support"},
}

SINCE = datetime(2026, 10, 11, 9, 0, tzinfo=timezone.utc)


def make_client(handler) -> GraphMailClient:
    return GraphMailClient(
        token_provider=StaticTokenProvider("test-token"),
        base_url="https://graph.test/v1.0",
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestGraphMailClient:
    """Tests for GraphMailClient.fetch."""

    def test_fetch_parses_messages(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, json={"value": [GRAPH_MESSAGE]})

        messages = make_client(handler).fetch("support@uni.ac.uk", SINCE, 50)

        assert len(messages) == 1
        assert messages[0].id == "AAMk-1"
        assert messages[0].sender == "student@uni.ac.uk"

        request = seen["request"]
        assert request.headers["Authorization"] == "Bearer test-token"
        assert request.url.path.startswith("/v1.0/users/support")
        assert request.url.path.endswith("/mailFolders/Inbox/messages")
        assert request.url.params["$top"] == "50"
        assert request.url.params["$filter"] == "receivedDateTime ge 2026-10-11T09:00:00Z"
        assert request.url.params["$orderby"] == "receivedDateTime DESC"

    def test_empty_inbox(self):
        client = make_client(lambda request: httpx.Response(200, json={"value": []}))
        assert client.fetch("support@uni.ac.uk", SINCE, 100) == []

    def test_unauthorized_raises_auth_error(self):
        client = make_client(lambda request: httpx.Response(401, json={"error": {}}))

        with pytest.raises(AuthenticationError):
            client.fetch("support@uni.ac.uk", SINCE, 100)

    def test_server_error_raises_connector_error(self):
        client = make_client(lambda request: httpx.Response(503))

        with pytest.raises(ConnectorError) as exc_info:
            client.fetch("support@uni.ac.uk", SINCE, 100)

        assert not isinstance(exc_info.value, AuthenticationError)

    def test_network_error_raises_connector_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        with pytest.raises(ConnectorError):
            make_client(handler).fetch("support@uni.ac.uk", SINCE, 100)

    def test_invalid_payload_raises_connector_error(self):
        client = make_client(lambda request: httpx.Response(200, json={"value": [{"subject": "x"}]}))

        with pytest.raises(ConnectorError):
            client.fetch("support@uni.ac.uk", SINCE, 100)


class TestTokenProviders:
    """Tests for Graph token providers."""

    def test_static_token_required(self):
        with pytest.raises(ConfigurationError):
            StaticTokenProvider("")

    def test_client_credentials_cached(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"access_token": "app-token", "expires_in": 3600})

        provider = ClientCredentialsTokenProvider(
            tenant_id="tenant",
            client_id="client",
            client_secret="secret",
            http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        )

        assert provider.get_token() == "app-token"
        assert provider.get_token() == "app-token"
        assert len(calls) == 1
        assert calls[0].url.path == "/tenant/oauth2/v2.0/token"
        assert b"grant_type=client_credentials" in calls[0].content

    def test_client_credentials_rejected(self):
        provider = ClientCredentialsTokenProvider(
            tenant_id="tenant",
            client_id="client",
            client_secret="wrong",
            http_client=httpx.Client(
                transport=httpx.MockTransport(lambda request: httpx.Response(400))
            ),
        )

        with pytest.raises(AuthenticationError):
            provider.get_token()

    def test_build_token_provider(self, pipeline_config):
        assert isinstance(build_token_provider(pipeline_config), ClientCredentialsTokenProvider)

        delegated = PipelineConfig(
            mailbox="m", tenant_id="t", client_id="c", use_delegated=True, access_token="user-token"
        )
        provider = build_token_provider(delegated)
        assert isinstance(provider, StaticTokenProvider)
        assert provider.get_token() == "user-token"


class TestClose:
    """Tests for releasing HTTP clients."""

    def test_close_releases_both_clients(self):
        token_http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        graph_http = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        provider = ClientCredentialsTokenProvider(
            tenant_id="tenant", client_id="client", client_secret="secret", http_client=token_http
        )

        with GraphMailClient(token_provider=provider, http_client=graph_http):
            pass

        assert graph_http.is_closed
        assert token_http.is_closed

    def test_static_provider_close_is_noop(self):
        StaticTokenProvider("token").close()
