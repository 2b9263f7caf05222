"""Policy engine - evaluate requests against ABAC policies.

Evaluation flow:
1. Select candidates: active policies whose scope applies to the request
   (PLATFORM always; TENANT only when the request carries a tenant) and,
   if given, whose category is in the requested categories
2. Order candidates: priority descending, DENY before ALLOW at equal
   priority, then policyId ascending
3. Evaluate every candidate (AND across conditions and axes) and record
   each one, matched or not, in applied_policies
4. The first matching candidate in that order decides
5. No match → default decision (DENY)

Consequences of the ordering:
- A higher priority number always wins
- At equal priority DENY overrides ALLOW
- applied_policies order is exactly the evaluation order, so the decisive
  policy is the first entry with matched=True

The engine is stateless and side-effect free. Persisting outcomes is the
job of audit.decision_logger.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from abac_console.constants import AXES, DEFAULT_DECISION
from abac_console.exceptions import PolicyEvaluationError
from abac_console.pdp.decision import Decision
from abac_console.pdp.matcher import evaluate_condition
from abac_console.pdp.policy import Policy, PolicyCategory, PolicyScope

__all__ = [
    "EvaluationRequest",
    "EvaluationResult",
    "PolicyEngine",
    "PolicyTrace",
    "evaluation_order",
]

MATCHED_REASON = "All conditions matched"


@dataclass(frozen=True)
class EvaluationRequest:
    """Attributes of one access request, grouped by axis.

    Attributes:
        subject: Who is acting (id, role, tenant_id, approval_limit, ...).
        action: What is attempted (action, method, scope, ...).
        resource: What is acted on (resource_type, id, tenant_id, amount, ...).
        environment: Request context (business_hours, ip_address, ...).
    """

    subject: Mapping[str, Any] = field(default_factory=dict)
    action: Mapping[str, Any] = field(default_factory=dict)
    resource: Mapping[str, Any] = field(default_factory=dict)
    environment: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_context(cls, context: Mapping[str, Any]) -> "EvaluationRequest":
        """Build from a {"subject": {...}, "action": {...}, ...} mapping.

        Raises:
            ValueError: If an axis is present but not a mapping.
        """
        axes: dict[str, Mapping[str, Any]] = {}
        for axis in AXES:
            value = context.get(axis)
            if value is None:
                value = {}
            elif not isinstance(value, Mapping):
                raise ValueError(f"Context '{axis}' must be an object, got {type(value).__name__}")
            axes[axis] = dict(value)
        return cls(**axes)

    def axes(self) -> dict[str, Mapping[str, Any]]:
        return {axis: getattr(self, axis) for axis in AXES}

    @property
    def tenant_id(self) -> Any:
        """Tenant the request is bound to, if any (subject first, then resource)."""
        for attributes in (self.subject, self.resource):
            if attributes.get("tenant_id") is not None:
                return attributes["tenant_id"]
        return None


@dataclass(frozen=True)
class PolicyTrace:
    """One policy examined during evaluation.

    Attributes:
        policy_id: Canonical policy ID.
        policy_name: Display name.
        effect: The policy's effect.
        matched: Whether every condition matched.
        reason: Why it did (not) match.
    """

    policy_id: str
    policy_name: str
    effect: Decision
    matched: bool
    reason: str | None = None


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of PolicyEngine.evaluate.

    Attributes:
        decision: Final ALLOW/DENY.
        applied_policies: Every examined policy, in evaluation order.
        evaluation_time_ms: Wall-clock time spent evaluating.
        decisive_policy_id: Policy that decided, or None for the default.
    """

    decision: Decision
    applied_policies: tuple[PolicyTrace, ...]
    evaluation_time_ms: float
    decisive_policy_id: str | None = None


def evaluation_order(policies: Iterable[Policy]) -> list[Policy]:
    """Sort policies into evaluation order.

    Priority descending, DENY before ALLOW at equal priority, then
    policyId ascending for determinism.
    """
    return sorted(
        policies,
        key=lambda p: (-p.priority, 0 if p.effect == Decision.DENY else 1, p.policy_id),
    )


class PolicyEngine:
    """ABAC evaluation engine.

    Attributes:
        policies: Policies to evaluate against (inactive ones are ignored).
        default_decision: Decision when nothing matches.
    """

    def __init__(
        self,
        policies: Iterable[Policy],
        default_decision: Decision = Decision(DEFAULT_DECISION),
    ) -> None:
        self.policies = list(policies)
        self.default_decision = default_decision

    def candidates(
        self,
        request: EvaluationRequest,
        categories: Iterable[PolicyCategory] | None = None,
    ) -> list[Policy]:
        """Active policies relevant to the request, in evaluation order."""
        wanted = set(categories) if categories is not None else None
        has_tenant = request.tenant_id is not None

        relevant = [
            p
            for p in self.policies
            if p.is_active
            and (p.scope == PolicyScope.PLATFORM or has_tenant)
            and (wanted is None or p.category in wanted)
        ]
        return evaluation_order(relevant)

    def evaluate(
        self,
        request: EvaluationRequest,
        categories: Iterable[PolicyCategory] | None = None,
    ) -> EvaluationResult:
        """Evaluate a request.

        Args:
            request: Request attributes.
            categories: Optional category filter for the candidate set.

        Returns:
            EvaluationResult with the decision and the full trace.

        Raises:
            PolicyEvaluationError: If evaluation fails unexpectedly.
        """
        start = time.perf_counter()
        try:
            applied: list[PolicyTrace] = []
            decisive: Policy | None = None

            for policy in self.candidates(request, categories):
                matched, reason = self.policy_matches(policy, request)
                applied.append(
                    PolicyTrace(
                        policy_id=policy.policy_id,
                        policy_name=policy.name,
                        effect=policy.effect,
                        matched=matched,
                        reason=reason,
                    )
                )
                if matched and decisive is None:
                    decisive = policy

        except PolicyEvaluationError:
            raise
        except Exception as e:
            raise PolicyEvaluationError(
                f"Policy evaluation failed unexpectedly: {type(e).__name__}: {e}"
            ) from e

        elapsed_ms = (time.perf_counter() - start) * 1000
        return EvaluationResult(
            decision=decisive.effect if decisive else self.default_decision,
            applied_policies=tuple(applied),
            evaluation_time_ms=round(elapsed_ms, 3),
            decisive_policy_id=decisive.policy_id if decisive else None,
        )

    def policy_matches(self, policy: Policy, request: EvaluationRequest) -> tuple[bool, str]:
        """Check every condition of every axis (AND logic).

        Returns:
            (matched, reason). Stops at the first failing condition.
        """
        axes = request.axes()
        for axis in AXES:
            for idx, condition in enumerate(policy.conditions(axis)):
                ok, reason = evaluate_condition(condition, axes[axis], axes)
                if not ok:
                    return False, f"{axis} condition {idx + 1} not met: {reason}"
        return True, MATCHED_REASON
