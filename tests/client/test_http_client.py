"""Unit tests for the ABAC API client.

HTTP is mocked by patching httpx.Client.
Tests use the AAA pattern (Arrange-Act-Assert) for clarity.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from unittest.mock import MagicMock, patch

import httpx
import pytest

from abac_console.audit.models import AuditLogFilters, AuditLogQuery
from abac_console.authoring import PolicyForm
from abac_console.client import ABACClient, StaticCredentialProvider
from abac_console.config import AppConfig, LoggingConfig
from abac_console.constants import ENV_API_URL
from abac_console.exceptions import APIError
from abac_console.pdp import Decision, Policy

BASE_URL = "http://api.test/api/superadmin"

LOG_ENTRY = {
    "decisionId": "dec-1",
    "userId": "u-1",
    "userRole": "admin",
    "action": "read",
    "resourceType": "order",
    "decision": "ALLOW",
    "appliedPolicies": [],
    "evaluationTime": 2,
    "createdAt": "2024-01-15T10:30:00.000Z",
}


# --- Fixtures ---


@pytest.fixture
def api_client() -> ABACClient:
    return ABACClient(BASE_URL, credentials=StaticCredentialProvider("test-token"))


@pytest.fixture
def mock_http() -> Iterator[MagicMock]:
    """Patched httpx.Client; yields the context-managed client instance."""
    with patch("httpx.Client") as mock_client:
        yield mock_client.return_value.__enter__.return_value


def respond(mock_http: MagicMock, payload: object = None, status_code: int = 200) -> MagicMock:
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.json.return_value = payload
    mock_http.request.return_value = mock_response
    return mock_response


def fail_with(mock_http: MagicMock, status_code: int, payload: object) -> None:
    mock_response = respond(mock_http, payload, status_code)
    mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
        "error", request=MagicMock(), response=mock_response
    )


# --- Request plumbing ---


class TestRequest:
    """Tests for headers, errors and response handling."""

    def test_sends_bearer_token(self, api_client: ABACClient, mock_http: MagicMock):
        respond(mock_http, {"data": {"logs": [], "pagination": {"total": 0, "pages": 0}}})

        api_client.fetch_audit_logs(AuditLogQuery())

        headers = mock_http.request.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer test-token"

    def test_omits_authorization_without_token(self, mock_http: MagicMock):
        respond(mock_http, {"logs": []})

        ABACClient(BASE_URL, credentials=StaticCredentialProvider(None)).fetch_audit_logs(AuditLogQuery())

        assert "Authorization" not in mock_http.request.call_args.kwargs["headers"]

    def test_asks_provider_on_every_request(self, mock_http: MagicMock):
        provider = MagicMock()
        provider.get_token.side_effect = ["one", "two"]
        respond(mock_http, {})
        api_client = ABACClient(BASE_URL, credentials=provider)

        api_client.refresh_cache()
        api_client.refresh_cache()

        assert mock_http.request.call_args.kwargs["headers"]["Authorization"] == "Bearer two"

    def test_http_error_uses_server_message(self, api_client: ABACClient, mock_http: MagicMock):
        fail_with(mock_http, 409, {"success": False, "message": "Policy ID already exists"})

        with pytest.raises(APIError) as exc_info:
            api_client.list_policies()

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "Policy ID already exists"

    def test_http_error_with_non_json_body(self, api_client: ABACClient, mock_http: MagicMock):
        fail_with(mock_http, 502, None)
        mock_http.request.return_value.json.side_effect = json.JSONDecodeError("bad", "", 0)

        with pytest.raises(APIError) as exc_info:
            api_client.list_policies()

        assert exc_info.value.status_code == 502

    def test_connection_error(self, api_client: ABACClient, mock_http: MagicMock):
        mock_http.request.side_effect = httpx.ConnectError("Connection refused")

        with pytest.raises(APIError, match="Cannot connect"):
            api_client.get_statistics()

    def test_timeout(self, api_client: ABACClient, mock_http: MagicMock):
        mock_http.request.side_effect = httpx.ReadTimeout("timed out")

        with pytest.raises(APIError, match="timed out"):
            api_client.get_statistics()

    def test_invalid_json(self, api_client: ABACClient, mock_http: MagicMock):
        respond(mock_http).json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)

        with pytest.raises(APIError, match="Invalid JSON"):
            api_client.list_policies()

    def test_no_content(self, api_client: ABACClient, mock_http: MagicMock):
        respond(mock_http, status_code=204)

        api_client.delete_policy("OLD_POLICY")

        assert mock_http.request.call_args.args == ("DELETE", f"{BASE_URL}/abac/policies/OLD_POLICY")


class TestFromConfig:
    """Tests for building a client from AppConfig."""

    def test_uses_config(self):
        config = AppConfig(logging=LoggingConfig(log_dir="/tmp/logs"))

        api_client = ABACClient.from_config(config)

        assert api_client.base_url == "http://localhost:5000/api/superadmin"
        assert api_client.timeout == 30

    def test_env_overrides_base_url(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv(ENV_API_URL, "https://admin.example.com/api/superadmin/")
        config = AppConfig(logging=LoggingConfig(log_dir="/tmp/logs"))

        assert ABACClient.from_config(config).base_url == "https://admin.example.com/api/superadmin"


# --- Endpoints ---


class TestEndpoints:
    """Tests for each endpoint's method, path and body."""

    def test_fetch_audit_logs(self, api_client: ABACClient, mock_http: MagicMock):
        # Arrange
        respond(mock_http, {"success": True, "data": {"logs": [LOG_ENTRY], "pagination": {"total": 120, "pages": 3}}})
        query = AuditLogQuery(page=2, limit=50, filters=AuditLogFilters(decision=Decision.ALLOW))

        # Act
        page = api_client.fetch_audit_logs(query)

        # Assert
        call = mock_http.request.call_args
        assert call.args == ("GET", f"{BASE_URL}/abac/audit-logs")
        assert call.kwargs["params"] == {"page": "2", "limit": "50", "decision": "ALLOW"}
        assert (page.total, page.pages) == (120, 3)
        assert page.logs[0].decision_id == "dec-1"

    def test_create_policy_posts_request_body(self, api_client: ABACClient, mock_http: MagicMock):
        # Arrange: the authoring form end to end
        respond(mock_http, {"success": True, "message": "Policy created"})
        form = PolicyForm(
            name="Block Cross-Tenant Reads",
            description="Deny reads across tenants",
            policy_id="block cross tenant",
            effect="DENY",
        )
        idx = form.add_attribute("subject")
        form.update_attribute("subject", idx, "name", "role")
        form.update_attribute("subject", idx, "operator", "not_equals")
        form.update_attribute("subject", idx, "value", "superadmin")

        # Act
        form.submit(api_client)

        # Assert
        call = mock_http.request.call_args
        assert call.args == ("POST", f"{BASE_URL}/abac/policies")
        body = call.kwargs["json"]
        assert body["policyId"] == "BLOCK_CROSS_TENANT"
        assert body["subjectAttributes"][0]["value"] == "superadmin"
        assert form.name == ""

    def test_create_policy_returns_echo(
        self, api_client: ABACClient, mock_http: MagicMock, make_policy: Callable[..., Policy]
    ):
        policy = make_policy("ECHOED")
        respond(mock_http, {"success": True, "data": {**policy.to_request_body(), "_id": "65a1", "version": 1}})

        stored = api_client.create_policy(policy)

        assert stored is not None
        assert stored.id == "65a1"

    def test_list_policies(self, api_client: ABACClient, mock_http: MagicMock, make_policy):
        respond(mock_http, {"data": {"policies": [make_policy("A").to_request_body()]}})

        assert [p.policy_id for p in api_client.list_policies()] == ["A"]

    def test_toggle_quotes_policy_id(self, api_client: ABACClient, mock_http: MagicMock):
        respond(mock_http, {"success": True})

        assert api_client.toggle_policy("A/B") is None
        assert mock_http.request.call_args.args == ("PATCH", f"{BASE_URL}/abac/policies/A%2FB/toggle")

    def test_test_policy_wraps_context(self, api_client: ABACClient, mock_http: MagicMock):
        # Arrange
        respond(
            mock_http,
            {
                "data": {
                    "decision": "DENY",
                    "evaluationTime": 3,
                    "appliedPolicies": [
                        {"policyId": "P", "policyName": "P", "effect": "DENY", "matched": True}
                    ],
                }
            },
        )
        context = {"subject": {"role": "staff"}}

        # Act
        result = api_client.test_policy(context)

        # Assert
        assert mock_http.request.call_args.kwargs["json"] == {"context": context}
        assert result.decision == Decision.DENY
        assert result.applied_policies[0].matched is True

    def test_refresh_cache(self, api_client: ABACClient, mock_http: MagicMock):
        respond(mock_http, {"success": True})

        api_client.refresh_cache()

        assert mock_http.request.call_args.args == ("POST", f"{BASE_URL}/abac/cache/refresh")

    def test_initialize_core_policy(self, api_client: ABACClient, mock_http: MagicMock):
        respond(mock_http, {"success": True})

        result = api_client.initialize_core_policy("TENANT_ISOLATION")

        assert mock_http.request.call_args.args == (
            "POST",
            f"{BASE_URL}/abac/core-policies/TENANT_ISOLATION/initialize",
        )
        assert result is None
