"""Policy models for ABAC policy authoring and evaluation.

Policy structure:
    Policy
    ├── policyId: canonical UPPER_SNAKE_CASE identifier
    ├── name, description: required free text
    ├── scope: PLATFORM | TENANT
    ├── category: TENANT_ISOLATION | ... | CUSTOM
    ├── effect: ALLOW | DENY
    ├── priority: 1-1000 (higher wins, see pdp.engine)
    ├── isActive: inactive policies are skipped by the engine
    └── subject/action/resource/environment attributes
        └── AttributeCondition (name, operator, value)

Design principles:
1. All conditions use AND logic, within an axis and across axes
2. An empty axis places no constraint on the request
3. A policy with all four axes empty matches everything; it is accepted
   but flagged by completeness_warnings()
4. Value types are checked against the operator at authoring time, so
   evaluation never has to guess

Field names are snake_case in Python and camelCase on the wire
(model_dump(by_alias=True)).
"""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from abac_console.constants import (
    AXES,
    DEFAULT_POLICY_PRIORITY,
    LIST_OPERATORS,
    MAX_POLICY_PRIORITY,
    MIN_POLICY_PRIORITY,
    NUMERIC_OPERATORS,
    Axis,
    Operator,
)
from abac_console.pdp.decision import Decision

__all__ = [
    "AXIS_FIELDS",
    "AttributeCondition",
    "ConditionValue",
    "Policy",
    "PolicyCategory",
    "PolicyScope",
    "canonical_policy_id",
    "is_reference",
]

ConditionValue = str | bool | int | float | list[str]

_WHITESPACE_RUN = re.compile(r"\s+")

# "$<axis>.<path>" values are resolved against the request at evaluation time
REFERENCE_PATTERN = re.compile(r"^\$(subject|action|resource|environment)\.(.+)$")

# Maps an axis name to the Policy attribute holding its conditions
AXIS_FIELDS: dict[str, str] = {axis: f"{axis}_attributes" for axis in AXES}


class PolicyScope(str, Enum):
    """Where a policy applies."""

    PLATFORM = "PLATFORM"
    TENANT = "TENANT"


class PolicyCategory(str, Enum):
    """Policy categories used by the platform."""

    TENANT_ISOLATION = "TENANT_ISOLATION"
    READ_ONLY_ENFORCEMENT = "READ_ONLY_ENFORCEMENT"
    FINANCIAL_LIMITS = "FINANCIAL_LIMITS"
    TIME_BOUND_ACTIONS = "TIME_BOUND_ACTIONS"
    AUTOMATION_SCOPE = "AUTOMATION_SCOPE"
    NOTIFICATION_SAFETY = "NOTIFICATION_SAFETY"
    CUSTOM = "CUSTOM"


def canonical_policy_id(raw: str) -> str:
    """Derive the canonical policy ID.

    Uppercases the input and replaces every whitespace run with "_".
    Callers strip surrounding whitespace first, so " block cross tenant "
    becomes "BLOCK_CROSS_TENANT" rather than "_BLOCK_CROSS_TENANT_".

    Example:
        >>> canonical_policy_id("custom tenant access")
        'CUSTOM_TENANT_ACCESS'
    """
    return _WHITESPACE_RUN.sub("_", raw.upper())


def is_reference(value: Any) -> bool:
    """True for a "$subject.tenant_id"-style reference to another request attribute."""
    return isinstance(value, str) and REFERENCE_PATTERN.match(value) is not None


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid numeric operand
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class AttributeCondition(BaseModel):
    """One (name, operator, value) condition.

    Attributes:
        name: Attribute path resolved at evaluation time (e.g. "role",
            "tenant_id", "profile.department").
        operator: Comparison operator.
        value: Operand; its type must suit the operator:
            - in / not_in: list of strings
            - greater_than / less_than: finite number
            - regex: string that compiles as a regular expression
            - others: string, boolean or number (equals/not_equals also
              accept a list for deep equality)
            Except for in / not_in, a "$<axis>.<path>" string is a reference
            and is type-checked only at evaluation time.
    """

    name: str
    operator: Operator
    value: ConditionValue

    model_config = ConfigDict(frozen=True)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Attribute name is required")
        return v

    @model_validator(mode="after")
    def value_matches_operator(self) -> Self:
        """Reject operand types the operator cannot evaluate."""
        op, value = self.operator, self.value

        if is_reference(value) and op not in LIST_OPERATORS:
            # Checked against the referenced attribute at evaluation time
            return self

        if op in LIST_OPERATORS:
            if not isinstance(value, list):
                raise ValueError(f"Operator '{op}' requires a list of values")
        elif op in NUMERIC_OPERATORS:
            if not _is_number(value) or not math.isfinite(value):
                raise ValueError(f"Operator '{op}' requires a numeric value, got {value!r}")
        elif op == "regex":
            if not isinstance(value, str):
                raise ValueError("Operator 'regex' requires a string pattern")
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f"Invalid regular expression {value!r}: {e}") from e
        elif op == "contains":
            if isinstance(value, list):
                raise ValueError("Operator 'contains' requires a single value, not a list")
        elif _is_number(value) and not math.isfinite(value):
            raise ValueError(f"Operator '{op}' does not accept {value!r}")

        return self


class Policy(BaseModel):
    """A named, scoped bundle of attribute conditions with an effect.

    Lifecycle: created by the authoring form, replaced wholesale on update,
    deleted independently. The evaluation engine never mutates policies.

    Server-managed fields (id, version, counters, timestamps) are optional
    and omitted from request bodies when unset.
    """

    policy_id: str
    name: str
    description: str
    scope: PolicyScope = PolicyScope.TENANT
    category: PolicyCategory = PolicyCategory.CUSTOM
    effect: Decision = Decision.DENY
    priority: int = Field(
        default=DEFAULT_POLICY_PRIORITY,
        ge=MIN_POLICY_PRIORITY,
        le=MAX_POLICY_PRIORITY,
    )
    is_active: bool = True

    subject_attributes: list[AttributeCondition] = Field(default_factory=list)
    action_attributes: list[AttributeCondition] = Field(default_factory=list)
    resource_attributes: list[AttributeCondition] = Field(default_factory=list)
    environment_attributes: list[AttributeCondition] = Field(default_factory=list)

    # --- server-managed ---
    id: str | None = Field(default=None, alias="_id")
    version: int | None = None
    evaluation_count: int | None = None
    allow_count: int | None = None
    deny_count: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    @field_validator("policy_id")
    @classmethod
    def canonicalize_policy_id(cls, v: str) -> str:
        v = canonical_policy_id(v.strip())
        if not v:
            raise ValueError("Policy ID is required")
        return v

    @field_validator("name", "description")
    @classmethod
    def required_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("This field is required")
        return v

    def conditions(self, axis: Axis) -> list[AttributeCondition]:
        """Return the condition list for one axis."""
        return getattr(self, AXIS_FIELDS[axis])

    def is_unconstrained(self) -> bool:
        """True if all four condition lists are empty (matches every request)."""
        return all(not self.conditions(axis) for axis in AXES)

    def completeness_warnings(self) -> list[str]:
        """Non-blocking warnings about the policy's shape.

        Returns:
            Human-readable warnings; empty if nothing is suspicious.
        """
        warnings: list[str] = []
        if self.is_unconstrained():
            warnings.append(
                f"Policy {self.policy_id} has no conditions on any axis and matches everything "
                f"(effect {self.effect.value} applies to every request in scope)"
            )
        return warnings

    def to_request_body(self) -> dict[str, Any]:
        """Serialize for POST /abac/policies (camelCase, server fields omitted)."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            exclude={"id", "version", "evaluation_count", "allow_count", "deny_count", "created_at", "updated_at"},
        )
