"""HTTP client for the platform's ABAC REST API.

All calls go through ABACClient._request, which attaches the bearer token
from the injected CredentialProvider and converts transport and HTTP
failures into APIError. Response bodies are handed to client.adapters for
normalization.

Endpoints (relative to the configured base URL):
    GET    /abac/audit-logs              page of decision log entries
    GET    /abac/policies                list policies
    POST   /abac/policies                create a policy
    DELETE /abac/policies/{id}           delete a policy
    PATCH  /abac/policies/{id}/toggle    activate/deactivate a policy
    POST   /abac/test                    dry-run evaluation
    GET    /abac/statistics              decision statistics
    POST   /abac/cache/refresh           reload the server's policy cache
    POST   /abac/core-policies/{id}/initialize
                                         (re)create a built-in policy
"""

from __future__ import annotations

__all__ = ["ABACClient"]

import json
import os
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from abac_console.audit.models import AuditLogPage, AuditLogQuery, AuditStatistics
from abac_console.client.adapters import (
    PolicyTestResult,
    extract_error_message,
    normalize_audit_log_page,
    normalize_evaluation_result,
    normalize_policy,
    normalize_policy_list,
    normalize_statistics,
)
from abac_console.client.credentials import CredentialProvider, default_credential_provider
from abac_console.constants import DEFAULT_HTTP_TIMEOUT_SECONDS, ENV_API_URL
from abac_console.exceptions import APIError
from abac_console.pdp.policy import Policy

if TYPE_CHECKING:
    from abac_console.config import AppConfig


class ABACClient:
    """Client for the ABAC management endpoints.

    Also satisfies the AuditLogSource protocol, so it can back an
    AuditLogViewer directly.

    Usage:
        client = ABACClient.from_config(config)
        page = client.fetch_audit_logs(AuditLogQuery(page=1, limit=50))
    """

    def __init__(
        self,
        base_url: str,
        *,
        credentials: CredentialProvider | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials or default_credential_provider()
        self.timeout = timeout

    @classmethod
    def from_config(
        cls,
        config: "AppConfig",
        credentials: CredentialProvider | None = None,
    ) -> "ABACClient":
        """Build from AppConfig; ABAC_CONSOLE_API_URL overrides api.base_url."""
        base_url = os.environ.get(ENV_API_URL) or config.api.base_url
        return cls(base_url, credentials=credentials, timeout=config.api.timeout_seconds)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self.credentials.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json_data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make an authenticated API request.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE).
            endpoint: Path relative to base_url (e.g. "/abac/policies").
            json_data: Optional JSON body.
            params: Optional query parameters.

        Returns:
            Parsed JSON body ({} for 204 No Content).

        Raises:
            APIError: On connection failure, error status, or non-JSON body.
        """
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(
                    method,
                    f"{self.base_url}{endpoint}",
                    headers=self._headers(),
                    json=json_data,
                    params=params,
                )
                response.raise_for_status()

                if response.status_code == 204:
                    return {}

                return response.json()

        except httpx.ConnectError as e:
            raise APIError(f"Cannot connect to {self.base_url}: {e}") from e
        except httpx.HTTPStatusError as e:
            try:
                detail = extract_error_message(e.response.json(), str(e))
            except (json.JSONDecodeError, ValueError):
                detail = str(e)
            raise APIError(detail, e.response.status_code) from e
        except httpx.HTTPError as e:
            raise APIError(str(e)) from e
        except (json.JSONDecodeError, ValueError) as e:
            raise APIError(f"Invalid JSON response from {endpoint}: {e}") from e

    # ------------------------------------------------------------------
    # Audit logs
    # ------------------------------------------------------------------

    def fetch_audit_logs(self, query: AuditLogQuery) -> AuditLogPage:
        """Fetch one page of decision log entries."""
        payload = self._request("GET", "/abac/audit-logs", params=query.as_params())
        return normalize_audit_log_page(payload, query)

    def get_statistics(self) -> AuditStatistics:
        """Server-computed statistics over the full decision log."""
        return normalize_statistics(self._request("GET", "/abac/statistics"))

    # ------------------------------------------------------------------
    # Policies
    # ------------------------------------------------------------------

    def create_policy(self, policy: Policy) -> Policy | None:
        """Submit a new policy.

        Returns:
            The stored policy if the server echoes it back, else None.
        """
        payload = self._request("POST", "/abac/policies", json_data=policy.to_request_body())
        return normalize_policy(payload)

    def list_policies(self) -> list[Policy]:
        return normalize_policy_list(self._request("GET", "/abac/policies"))

    def delete_policy(self, policy_id: str) -> None:
        self._request("DELETE", f"/abac/policies/{quote(policy_id, safe='')}")

    def toggle_policy(self, policy_id: str) -> Policy | None:
        """Flip a policy's active flag. Returns the updated policy if echoed."""
        payload = self._request("PATCH", f"/abac/policies/{quote(policy_id, safe='')}/toggle")
        return normalize_policy(payload)

    def refresh_cache(self) -> None:
        self._request("POST", "/abac/cache/refresh")

    def initialize_core_policy(self, policy_id: str) -> Policy | None:
        """Ask the platform to (re)create one of its built-in policies.

        Returns:
            The initialized policy if the server echoes it back, else None.
        """
        payload = self._request("POST", f"/abac/core-policies/{quote(policy_id, safe='')}/initialize")
        return normalize_policy(payload)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def test_policy(self, context: dict[str, Any]) -> PolicyTestResult:
        """Dry-run the server's engine against a request context."""
        return normalize_evaluation_result(self._request("POST", "/abac/test", json_data={"context": context}))
