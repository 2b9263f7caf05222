"""Raw input parsing for attribute condition values.

parse_value() is the single place where text typed by a user becomes a
typed condition operand:

    in / not_in            "a, b ,c"  -> ["a", "b", "c"]
    greater_than/less_than "5"        -> 5, "abc" -> nan,
                           "$subject.approval_limit" unchanged
    any other operator     "true"     -> True, "false" -> False
                           otherwise  -> the string unchanged

NaN is never coerced to 0; the form rejects it before submission.
"""

from __future__ import annotations

__all__ = [
    "canonical_policy_id",
    "format_value",
    "is_invalid_number",
    "parse_number",
    "parse_value",
]

import math
import re

from abac_console.constants import LIST_OPERATORS, NUMERIC_OPERATORS
from abac_console.pdp.policy import ConditionValue, canonical_policy_id, is_reference

_INT_LITERAL = re.compile(r"^[+-]?\d+$")


def parse_number(raw: str) -> int | float:
    """Parse a numeric literal; NaN for anything non-numeric (including "").

    Integers stay int so "5" becomes 5, not 5.0.
    """
    text = raw.strip()
    if _INT_LITERAL.match(text):
        return int(text)
    try:
        value = float(text)
    except ValueError:
        return math.nan
    # float() accepts "nan"/"inf" spellings; treat them as non-numeric
    return value if math.isfinite(value) else math.nan


def is_invalid_number(value: object) -> bool:
    """True for the NaN produced by parse_number on bad input."""
    return isinstance(value, float) and math.isnan(value)


def parse_value(raw: str, operator: str) -> ConditionValue:
    """Convert raw text input into the operator-appropriate value.

    Args:
        raw: Text as entered.
        operator: Condition operator.

    Returns:
        list[str] for in/not_in (order and duplicates preserved), a number
        (or NaN) for greater_than/less_than unless the text is a
        "$axis.path" reference, a bool for the literals
        "true"/"false", otherwise raw unchanged.
    """
    if operator in LIST_OPERATORS:
        return [part.strip() for part in raw.split(",")]
    if operator in NUMERIC_OPERATORS:
        text = raw.strip()
        return text if is_reference(text) else parse_number(raw)
    if raw == "true":
        return True
    if raw == "false":
        return False
    return raw


def format_value(value: ConditionValue) -> str:
    """Inverse of parse_value for display and editing."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ", ".join(value)
    return str(value)
