"""Response normalization for the platform API.

The platform's endpoints are not consistent about envelopes: some wrap the
payload in {"data": ...}, some nest lists under a named key, some return
bare lists. Each function here maps one endpoint's payload onto the fixed
internal models, so nothing else in abac-console looks at raw responses.

Malformed payloads raise APIError, which callers treat like any other
API failure.
"""

from __future__ import annotations

__all__ = [
    "PolicyTestResult",
    "extract_error_message",
    "normalize_audit_log_page",
    "normalize_evaluation_result",
    "normalize_policy",
    "normalize_policy_list",
    "normalize_statistics",
]

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from abac_console.audit.models import (
    AppliedPolicy,
    AuditLogPage,
    AuditLogQuery,
    AuditStatistics,
    DecisionLogEntry,
    DecisionStats,
    DenialSummary,
    PolicyStats,
)
from abac_console.exceptions import APIError
from abac_console.pdp.decision import Decision
from abac_console.pdp.policy import Policy


class PolicyTestResult(BaseModel):
    """Result of a dry-run evaluation (POST /abac/test)."""

    decision: Decision
    evaluation_time: float = 0
    applied_policies: list[AppliedPolicy] = Field(default_factory=list)
    error: str | None = None

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


def _unwrap(payload: Any) -> Any:
    """Strip a {"data": ...} envelope if present."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _first_list(body: Any, *keys: str) -> list[Any] | None:
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        for key in keys:
            value = body.get(key)
            if isinstance(value, list):
                return value
    return None


def _malformed(endpoint: str, error: Exception) -> APIError:
    return APIError(f"Unexpected response from {endpoint}: {error}")


def extract_error_message(payload: Any, default: str) -> str:
    """Pull a human-readable error from an error response body."""
    if isinstance(payload, dict):
        for key in ("message", "detail", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return default


def normalize_audit_log_page(payload: Any, query: AuditLogQuery) -> AuditLogPage:
    """GET /abac/audit-logs.

    Accepts {"data": {"logs", "pagination"}}, {"logs", "pagination"} or a
    bare/enveloped list. Missing pagination is derived from the entry count.
    """
    body = _unwrap(payload)
    raw_logs = _first_list(body, "logs", "entries")
    if raw_logs is None:
        raise APIError("Unexpected response from /abac/audit-logs: no logs list")

    try:
        logs = [DecisionLogEntry.model_validate(item) for item in raw_logs]
    except ValidationError as e:
        raise _malformed("/abac/audit-logs", e) from e

    pagination = body.get("pagination") if isinstance(body, dict) else None
    pagination = pagination if isinstance(pagination, dict) else {}

    total = pagination.get("total")
    total = int(total) if isinstance(total, (int, float)) else len(logs)
    pages = pagination.get("pages")
    if not isinstance(pages, (int, float)):
        pages = math.ceil(total / query.limit) if total else 0

    return AuditLogPage(logs=logs, total=total, pages=int(pages))


def normalize_policy_list(payload: Any) -> list[Policy]:
    """GET /abac/policies: data.policies, policies, data (list) or bare list."""
    body = _unwrap(payload)
    raw = _first_list(body, "policies")
    if raw is None:
        raise APIError("Unexpected response from /abac/policies: no policies list")
    try:
        return [Policy.model_validate(item) for item in raw]
    except ValidationError as e:
        raise _malformed("/abac/policies", e) from e


def normalize_policy(payload: Any) -> Policy | None:
    """POST /abac/policies response. None if the server echoes no policy."""
    body = _unwrap(payload)
    if isinstance(body, dict) and isinstance(body.get("policy"), dict):
        body = body["policy"]
    if not isinstance(body, dict) or "policyId" not in body:
        return None
    try:
        return Policy.model_validate(body)
    except ValidationError as e:
        raise _malformed("/abac/policies", e) from e


def normalize_evaluation_result(payload: Any) -> PolicyTestResult:
    """POST /abac/test: {"data": {...}} or the bare result."""
    try:
        return PolicyTestResult.model_validate(_unwrap(payload))
    except ValidationError as e:
        raise _malformed("/abac/test", e) from e


def normalize_statistics(payload: Any) -> AuditStatistics:
    """GET /abac/statistics.

    The server groups its overview by decision under "_id" and describes
    recent denials without decision IDs; both are mapped onto the local
    statistics models.
    """
    body = _unwrap(payload)
    if not isinstance(body, dict):
        raise APIError("Unexpected response from /abac/statistics: not an object")

    try:
        overview = [
            DecisionStats(
                decision=item.get("_id") or item.get("decision"),
                count=item.get("count", 0),
                avg_evaluation_time=item.get("avgEvaluationTime", 0) or 0,
            )
            for item in body.get("overview") or []
        ]
        top_policies = [PolicyStats.model_validate(item) for item in body.get("topPolicies") or []]
        recent_denials = [
            DenialSummary(
                action=item.get("action", ""),
                resource_type=item.get("resourceType", ""),
                created_at=item["createdAt"],
                reasons=[
                    f"{p.get('policyName', '')}: {p['reason']}"
                    for p in item.get("appliedPolicies") or []
                    if p.get("reason")
                ],
            )
            for item in body.get("recentDenials") or []
        ]
    except (ValidationError, KeyError, AttributeError, TypeError) as e:
        raise _malformed("/abac/statistics", e) from e

    return AuditStatistics(
        total=sum(item.count for item in overview),
        overview=overview,
        top_policies=top_policies,
        recent_denials=recent_denials,
    )
