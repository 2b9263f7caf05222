"""Condition matching for ABAC policy evaluation.

Resolves attribute paths against request attributes and applies the
condition operators. Every check returns a (matched, reason) pair so the
engine can record why a policy did not match.

Operator semantics:
    equals / not_equals   deep value equality
    in / not_in           membership of the attribute in the value list
    greater_than / less_than
                          numeric comparison (booleans are not numbers)
    contains              substring for strings, membership for lists
    regex                 re.search of the pattern in str(attribute)

Missing attributes: equals is False, not_equals is True, every other
operator fails with reason "attribute '<name>' not present".

References: a string value of the form "$<axis>.<path>" (for example
"$subject.tenant_id") is resolved against the request before comparison.
A referenced regex pattern that does not compile fails the condition.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from functools import lru_cache
from typing import Any

from abac_console.constants import AXES
from abac_console.pdp.policy import REFERENCE_PATTERN, AttributeCondition

__all__ = [
    "MISSING",
    "evaluate_condition",
    "resolve_attribute",
    "resolve_reference",
]


class _Missing:
    """Sentinel for attributes absent from the request."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def resolve_attribute(attributes: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted attribute path.

    A literal key containing dots wins over nested traversal, so
    {"user.id": 1} resolves "user.id" to 1.

    Args:
        attributes: Attribute mapping for one axis.
        path: Attribute name or dotted path.

    Returns:
        The attribute value, or MISSING if any segment is absent.
    """
    if path in attributes:
        return attributes[path]

    current: Any = attributes
    for segment in path.split("."):
        if isinstance(current, Mapping) and segment in current:
            current = current[segment]
        else:
            return MISSING
    return current


def resolve_reference(value: Any, request_axes: Mapping[str, Mapping[str, Any]]) -> Any:
    """Resolve "$axis.path" references in a condition value.

    Args:
        value: Condition value as authored.
        request_axes: Mapping of axis name to that axis' attributes.

    Returns:
        The referenced attribute (or MISSING), or value unchanged if it is
        not a reference.
    """
    if isinstance(value, str):
        m = REFERENCE_PATTERN.match(value)
        if m:
            axis, path = m.groups()
            return resolve_attribute(request_axes.get(axis, {}), path)
    return value


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _describe(value: Any) -> str:
    return "missing" if value is MISSING else repr(value)


def evaluate_condition(
    condition: AttributeCondition,
    attributes: Mapping[str, Any],
    request_axes: Mapping[str, Mapping[str, Any]] | None = None,
) -> tuple[bool, str | None]:
    """Evaluate one condition against an axis' attributes.

    Args:
        condition: The condition to check.
        attributes: Attributes of the axis the condition belongs to.
        request_axes: All request axes, for "$axis.path" references.
            Defaults to no references resolvable.

    Returns:
        (matched, reason). reason is None when matched, otherwise a short
        human-readable explanation.
    """
    axes = request_axes or {axis: {} for axis in AXES}
    actual = resolve_attribute(attributes, condition.name)
    expected = resolve_reference(condition.value, axes)
    op = condition.operator
    name = condition.name

    if expected is MISSING:
        return False, f"{name}: referenced value {condition.value!r} not present"

    if actual is MISSING:
        if op == "not_equals":
            return True, None
        return False, f"attribute '{name}' not present"

    if op == "equals":
        ok = actual == expected
    elif op == "not_equals":
        ok = actual != expected
    elif op == "in":
        ok = _member(actual, expected)
    elif op == "not_in":
        ok = not _member(actual, expected)
    elif op in ("greater_than", "less_than"):
        if not (_is_number(actual) and _is_number(expected)):
            return False, f"{name}: {_describe(actual)} is not comparable to {_describe(expected)}"
        ok = actual > expected if op == "greater_than" else actual < expected
    elif op == "contains":
        if isinstance(actual, str):
            ok = isinstance(expected, str) and expected in actual
        elif isinstance(actual, (list, tuple, set, frozenset)):
            ok = expected in actual
        else:
            return False, f"{name}: {_describe(actual)} does not support contains"
    elif op == "regex":
        try:
            pattern = _compile(str(expected))
        except re.error as e:
            # Only reachable through a reference; literal patterns compile at authoring time
            return False, f"{name}: invalid pattern {expected!r}: {e}"
        ok = pattern.search(str(actual)) is not None
    else:
        # Operator is a closed Literal; reaching here means the model changed
        raise ValueError(f"Unsupported operator: {op}")

    if ok:
        return True, None
    return False, f"{name} {op} {_describe(expected)} failed (actual {_describe(actual)})"


def _member(actual: Any, expected: Any) -> bool:
    if not isinstance(expected, (list, tuple, set, frozenset)):
        return actual == expected
    # List-valued attributes match if any element is in the set
    if isinstance(actual, (list, tuple, set, frozenset)):
        return any(item in expected for item in actual)
    return actual in expected
