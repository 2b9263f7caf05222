"""Decision log models.

DecisionLogEntry mirrors the records served by GET /abac/audit-logs and
written to audit/decisions.jsonl. Entries are write-once: the models are
frozen and nothing in abac-console edits history.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

__all__ = [
    "AppliedPolicy",
    "AuditLogFilters",
    "AuditLogPage",
    "AuditLogQuery",
    "AuditLogSource",
    "AuditStatistics",
    "DecisionLogEntry",
    "DecisionStats",
    "DenialSummary",
    "PolicyStats",
]

import math
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from abac_console.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from abac_console.pdp.decision import Decision

_WIRE_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class AppliedPolicy(BaseModel):
    """One policy the engine examined for a decision."""

    policy_id: str
    policy_name: str
    effect: Decision
    matched: bool
    reason: str | None = None

    model_config = _WIRE_CONFIG


class DecisionLogEntry(BaseModel):
    """Immutable record of one access-control evaluation.

    Attributes:
        decision_id: Correlates the evaluation request with its outcome.
        user_id, user_role: Evaluated subject at decision time.
        action, resource_type, resource_id: What was attempted.
        decision: Final outcome after applying all matching policies.
        applied_policies: Every examined policy, in evaluation order.
        evaluation_time: Milliseconds spent evaluating.
        ip_address, endpoint, method: Optional request context.
        created_at: When the entry was written.
    """

    decision_id: str
    user_id: str
    user_role: str
    action: str
    resource_type: str
    resource_id: str | None = None
    decision: Decision
    applied_policies: tuple[AppliedPolicy, ...] = ()
    evaluation_time: float = 0
    ip_address: str | None = None
    endpoint: str | None = None
    method: str | None = None
    created_at: datetime

    model_config = _WIRE_CONFIG

    def to_wire(self) -> dict[str, Any]:
        """Serialize as the API/JSONL camelCase shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AuditLogFilters(BaseModel):
    """Server-side filters. None means "all"."""

    decision: Decision | None = None
    resource_type: str | None = None
    action: str | None = None

    model_config = ConfigDict(frozen=True)

    def as_params(self) -> dict[str, str]:
        """Query parameters for GET /abac/audit-logs (unset filters omitted)."""
        params: dict[str, str] = {}
        if self.decision is not None:
            params["decision"] = self.decision.value
        if self.resource_type:
            params["resourceType"] = self.resource_type
        if self.action:
            params["action"] = self.action
        return params

    def matches(self, entry: DecisionLogEntry) -> bool:
        """Apply the filters locally (used by the JSONL store)."""
        if self.decision is not None and entry.decision != self.decision:
            return False
        if self.resource_type and entry.resource_type != self.resource_type:
            return False
        if self.action and entry.action != self.action:
            return False
        return True


class AuditLogQuery(BaseModel):
    """One page request. page is 1-indexed."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    filters: AuditLogFilters = Field(default_factory=AuditLogFilters)

    model_config = ConfigDict(frozen=True)

    def as_params(self) -> dict[str, str]:
        return {"page": str(self.page), "limit": str(self.limit), **self.filters.as_params()}


class AuditLogPage(BaseModel):
    """One page of decision log entries plus pagination totals."""

    logs: list[DecisionLogEntry] = Field(default_factory=list)
    total: int = 0
    pages: int = 0

    @classmethod
    def from_slice(cls, entries: list[DecisionLogEntry], total: int, limit: int) -> "AuditLogPage":
        return cls(logs=entries, total=total, pages=math.ceil(total / limit) if total else 0)


@runtime_checkable
class AuditLogSource(Protocol):
    """Anything that can serve pages of decision log entries.

    Implemented by client.http.ABACClient (remote API) and
    audit.store.DecisionLogStore (local JSONL).
    """

    def fetch_audit_logs(self, query: AuditLogQuery) -> AuditLogPage:
        """Fetch one page of entries matching the query's filters."""
        ...


# =============================================================================
# Statistics
# =============================================================================


class DecisionStats(BaseModel):
    """Count and average evaluation time for one decision value."""

    decision: Decision
    count: int
    avg_evaluation_time: float

    model_config = _WIRE_CONFIG


class PolicyStats(BaseModel):
    """How often a policy was examined and how often it matched.

    match_count is None when the server only reports success_rate.
    """

    policy_id: str
    name: str
    category: str | None = None
    evaluation_count: int
    match_count: int | None = None
    success_rate: float

    model_config = _WIRE_CONFIG


class DenialSummary(BaseModel):
    """Short description of one DENY decision."""

    action: str
    resource_type: str
    created_at: datetime
    reasons: list[str] = Field(default_factory=list)

    model_config = _WIRE_CONFIG

    @classmethod
    def from_entry(cls, entry: DecisionLogEntry) -> "DenialSummary":
        return cls(
            action=entry.action,
            resource_type=entry.resource_type,
            created_at=entry.created_at,
            reasons=[f"{p.policy_name}: {p.reason}" for p in entry.applied_policies if p.reason],
        )


class AuditStatistics(BaseModel):
    """Aggregates over the full filtered decision set, never just one page."""

    total: int = 0
    overview: list[DecisionStats] = Field(default_factory=list)
    top_policies: list[PolicyStats] = Field(default_factory=list)
    recent_denials: list[DenialSummary] = Field(default_factory=list)

    model_config = _WIRE_CONFIG
