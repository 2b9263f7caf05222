"""Policy authoring: turning raw user input into validated policies."""

from abac_console.authoring.form import DraftCondition, PolicyForm
from abac_console.authoring.values import canonical_policy_id, format_value, parse_value

__all__ = [
    "DraftCondition",
    "PolicyForm",
    "canonical_policy_id",
    "format_value",
    "parse_value",
]
