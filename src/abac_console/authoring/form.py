"""Policy authoring form.

PolicyForm holds the in-progress state of one policy being written:
header fields plus four lists of draft conditions whose values are still
raw text. submit() validates, parses every value for its operator, sends
the result to a PolicyStore and resets on success. submit_replacement()
does the same against an existing policy in the local policy file.

Failure semantics:
- Validation errors raise PolicyValidationError before anything is sent
- Store/API rejections propagate (APIError, PolicyStoreError)
- In both cases every entered field is kept so the user can fix and retry
"""

from __future__ import annotations

__all__ = [
    "DraftCondition",
    "PolicyForm",
]

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

from pydantic import ValidationError

from abac_console.authoring.values import format_value, is_invalid_number, parse_value
from abac_console.constants import (
    AXES,
    DEFAULT_POLICY_PRIORITY,
    MAX_POLICY_PRIORITY,
    MIN_POLICY_PRIORITY,
    NUMERIC_OPERATORS,
    OPERATORS,
    Axis,
)
from abac_console.exceptions import ABACConsoleError, PolicyValidationError
from abac_console.pdp.decision import Decision
from abac_console.pdp.policy import (
    AXIS_FIELDS,
    AttributeCondition,
    Policy,
    PolicyCategory,
    PolicyScope,
    canonical_policy_id,
)
from abac_console.stores.policy_file import FilePolicyStore, PolicyStore
from abac_console.utils.logging import get_system_logger

_logger = get_system_logger()

_DRAFT_FIELDS = frozenset({"name", "operator", "value"})

REQUIRED_MESSAGE = "This field is required"


@dataclass(frozen=True)
class DraftCondition:
    """A condition as typed: value is still raw text."""

    name: str = ""
    operator: str = "equals"
    value: str = ""


def _wire_field(axis: str) -> str:
    # subject_attributes -> subjectAttributes, matching Policy's wire names
    return f"{axis}Attributes"


@dataclass
class PolicyForm:
    """In-progress policy.

    Usage:
        form = PolicyForm(name="Block Cross-Tenant Reads", description="...",
                          policy_id="block cross tenant")
        form.add_attribute("subject")
        form.update_attribute("subject", 0, "name", "role")
        form.update_attribute("subject", 0, "operator", "not_equals")
        form.update_attribute("subject", 0, "value", "superadmin")
        policy = form.submit(client)
    """

    name: str = ""
    description: str = ""
    policy_id: str = ""
    scope: str = "TENANT"
    category: str = "CUSTOM"
    effect: str = "DENY"
    priority: int = DEFAULT_POLICY_PRIORITY
    is_active: bool = True
    attributes: dict[str, list[DraftCondition]] = field(
        default_factory=lambda: {axis: [] for axis in AXES}
    )
    last_error: str | None = None

    @classmethod
    def from_policy(cls, policy: Policy) -> "PolicyForm":
        """Prefill a form from an existing policy (for replacement)."""
        return cls(
            name=policy.name,
            description=policy.description,
            policy_id=policy.policy_id,
            scope=policy.scope.value,
            category=policy.category.value,
            effect=policy.effect.value,
            priority=policy.priority,
            is_active=policy.is_active,
            attributes={
                axis: [
                    DraftCondition(c.name, c.operator, format_value(c.value)) for c in policy.conditions(axis)
                ]
                for axis in AXES
            },
        )

    # ------------------------------------------------------------------
    # Condition editing
    # ------------------------------------------------------------------

    def _conditions(self, axis: Axis) -> list[DraftCondition]:
        if axis not in AXIS_FIELDS:
            raise ValueError(f"Unknown axis: {axis!r} (expected one of {', '.join(AXES)})")
        return self.attributes[axis]

    def add_attribute(self, axis: Axis) -> int:
        """Append a blank condition to an axis. Returns its index."""
        conditions = self._conditions(axis)
        conditions.append(DraftCondition())
        return len(conditions) - 1

    def remove_attribute(self, axis: Axis, index: int) -> None:
        """Remove the condition at index.

        Raises:
            IndexError: If index is out of range.
        """
        conditions = self._conditions(axis)
        if not 0 <= index < len(conditions):
            raise IndexError(f"No {axis} condition at index {index}")
        del conditions[index]

    def update_attribute(self, axis: Axis, index: int, field_name: str, value: str) -> None:
        """Replace one field of one condition. Other fields are not re-validated.

        Raises:
            IndexError: If index is out of range.
            ValueError: If field_name is not name, operator or value.
        """
        if field_name not in _DRAFT_FIELDS:
            raise ValueError(f"Unknown condition field: {field_name!r}")
        conditions = self._conditions(axis)
        if not 0 <= index < len(conditions):
            raise IndexError(f"No {axis} condition at index {index}")
        conditions[index] = replace(conditions[index], **{field_name: value})

    def reset(self) -> None:
        """Clear every field back to the defaults."""
        fresh = PolicyForm()
        self.__dict__.update(fresh.__dict__)

    # ------------------------------------------------------------------
    # Validation & submission
    # ------------------------------------------------------------------

    def is_unconstrained(self) -> bool:
        return all(not self.attributes[axis] for axis in AXES)

    def completeness_warnings(self) -> list[str]:
        """Non-blocking warnings (e.g. the policy would match everything)."""
        if self.is_unconstrained():
            return ["No conditions on any axis: this policy matches every request in scope"]
        return []

    def _parsed_conditions(self, errors: dict[str, str]) -> dict[str, list[dict[str, Any]]]:
        parsed: dict[str, list[dict[str, Any]]] = {}
        for axis in AXES:
            wire = _wire_field(axis)
            parsed[wire] = []
            for idx, draft in enumerate(self.attributes[axis]):
                loc = f"{wire}[{idx}]"
                if not draft.name.strip():
                    errors[f"{loc}.name"] = "Attribute name is required"
                if draft.operator not in OPERATORS:
                    errors[f"{loc}.operator"] = f"Unknown operator {draft.operator!r}"
                    continue

                value = parse_value(draft.value, draft.operator)
                if draft.operator in NUMERIC_OPERATORS and is_invalid_number(value):
                    errors[f"{loc}.value"] = f"{draft.value!r} is not a number"
                    continue

                condition = {"name": draft.name, "operator": draft.operator, "value": value}
                if draft.name.strip():
                    try:
                        AttributeCondition.model_validate(condition)
                    except ValidationError as e:
                        errors[f"{loc}.value"] = e.errors()[0]["msg"].removeprefix("Value error, ")
                        continue
                parsed[wire].append(condition)
        return parsed

    def validate(self) -> dict[str, str]:
        """Check every field without submitting.

        Returns:
            Mapping of wire field path to message; empty when valid.
        """
        errors: dict[str, str] = {}
        if not self.name.strip():
            errors["name"] = REQUIRED_MESSAGE
        if not self.description.strip():
            errors["description"] = REQUIRED_MESSAGE
        if not self.policy_id.strip():
            errors["policyId"] = REQUIRED_MESSAGE
        for field_name, value, enum in (
            ("scope", self.scope, PolicyScope),
            ("category", self.category, PolicyCategory),
            ("effect", self.effect, Decision),
        ):
            if value not in {member.value for member in enum}:
                errors[field_name] = f"Unknown {field_name} {value!r}"
        if not MIN_POLICY_PRIORITY <= self.priority <= MAX_POLICY_PRIORITY:
            errors["priority"] = f"Priority must be between {MIN_POLICY_PRIORITY} and {MAX_POLICY_PRIORITY}"
        self._parsed_conditions(errors)
        return errors

    def build_policy(self) -> Policy:
        """Validate and produce the Policy that submit() would send.

        Raises:
            PolicyValidationError: With every field error found.
        """
        errors = self.validate()
        if errors:
            raise PolicyValidationError(errors)

        body = {
            "policyId": canonical_policy_id(self.policy_id.strip()),
            "name": self.name,
            "description": self.description,
            "scope": self.scope,
            "category": self.category,
            "effect": self.effect,
            "priority": self.priority,
            "isActive": self.is_active,
            **self._parsed_conditions({}),
        }
        try:
            return Policy.model_validate(body)
        except ValidationError as e:
            raise PolicyValidationError(
                {".".join(str(x) for x in err["loc"]): err["msg"] for err in e.errors()}
            ) from e

    def submit(self, store: PolicyStore) -> Policy:
        """Validate, send to the store and reset on success.

        Args:
            store: Destination (ABACClient or FilePolicyStore).

        Returns:
            The stored policy (the server's echo when it returns one).

        Raises:
            PolicyValidationError: Client-side validation failed; nothing sent.
            ABACConsoleError: The store rejected the policy.
            In both cases the form keeps all entered data.
        """
        return self._send(store.create_policy, "submission")

    def submit_replacement(self, store: FilePolicyStore) -> Policy:
        """Validate and replace the stored policy with the same ID.

        Policies are updated by replacement, never patched: the form is
        usually prefilled with from_policy() first.

        Raises:
            PolicyValidationError: Client-side validation failed; nothing sent.
            PolicyStoreError: No policy with this ID exists.
        """
        return self._send(store.replace_policy, "replacement")

    def _send(self, send: Callable[[Policy], Policy | None], operation: str) -> Policy:
        try:
            policy = self.build_policy()
        except PolicyValidationError as e:
            self.last_error = str(e)
            raise

        try:
            stored = send(policy)
        except ABACConsoleError as e:
            self.last_error = str(e)
            _logger.warning(
                f"Policy {operation} failed",
                extra={"event": f"policy_{operation}_failed", "policy_id": policy.policy_id, "error": str(e)},
            )
            raise

        _logger.info(
            f"Policy {operation} succeeded",
            extra={"event": f"policy_{operation}_succeeded", "policy_id": policy.policy_id},
        )
        self.reset()
        return stored or policy
