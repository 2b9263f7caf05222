"""Terminal formatting for decisions, policies and log entries."""

from __future__ import annotations

__all__ = [
    "decision_color",
    "format_entry_detail",
    "format_entry_line",
    "format_policy_detail",
    "format_policy_line",
    "styled_decision",
]

from typing import assert_never

import click

from abac_console.audit.export import format_timestamp
from abac_console.audit.models import DecisionLogEntry
from abac_console.authoring.values import format_value
from abac_console.constants import AXES
from abac_console.pdp.decision import Decision
from abac_console.pdp.policy import Policy, PolicyScope

OPERATOR_LABELS: dict[str, str] = {
    "equals": "Equals",
    "not_equals": "Not Equals",
    "in": "In Array",
    "not_in": "Not In Array",
    "greater_than": "Greater Than",
    "less_than": "Less Than",
    "contains": "Contains",
    "regex": "Regex Match",
}


def decision_color(decision: Decision) -> str:
    match decision:
        case Decision.ALLOW:
            return "green"
        case Decision.DENY:
            return "red"
        case _:
            assert_never(decision)


def styled_decision(decision: Decision) -> str:
    return click.style(decision.value.ljust(5), fg=decision_color(decision), bold=True)


def _scope_color(scope: PolicyScope) -> str:
    match scope:
        case PolicyScope.PLATFORM:
            return "blue"
        case PolicyScope.TENANT:
            return "cyan"
        case _:
            assert_never(scope)


def format_entry_line(entry: DecisionLogEntry) -> str:
    """One-line summary for list views."""
    resource = entry.resource_type + (f":{entry.resource_id}" if entry.resource_id else "")
    return (
        f"{format_timestamp(entry.created_at)}  {styled_decision(entry.decision)}  "
        f"{entry.user_id} ({entry.user_role})  {entry.action} {resource}  "
        f"[{entry.evaluation_time:g}ms]  {entry.decision_id}"
    )


def format_entry_detail(entry: DecisionLogEntry) -> str:
    """Every field of an entry including the full policy trace."""
    lines = [
        f"Decision ID:      {entry.decision_id}",
        f"Decision:         {styled_decision(entry.decision)}",
        f"User:             {entry.user_id} ({entry.user_role})",
        f"Action:           {entry.action}",
        f"Resource:         {entry.resource_type}" + (f" / {entry.resource_id}" if entry.resource_id else ""),
        f"Evaluation time:  {entry.evaluation_time:g} ms",
        f"IP address:       {entry.ip_address or '-'}",
        f"Endpoint:         {(entry.method + ' ') if entry.method else ''}{entry.endpoint or '-'}",
        f"Timestamp:        {format_timestamp(entry.created_at)}",
        "",
        f"Applied policies ({len(entry.applied_policies)}):",
    ]
    if not entry.applied_policies:
        lines.append("  (none - default decision)")
    for idx, applied in enumerate(entry.applied_policies, start=1):
        mark = click.style("matched", fg="yellow") if applied.matched else "not matched"
        lines.append(
            f"  {idx}. {applied.policy_name} [{applied.policy_id}] "
            f"{styled_decision(applied.effect)} {mark}"
        )
        if applied.reason:
            lines.append(f"     {applied.reason}")
    return "\n".join(lines)


def format_policy_line(policy: Policy) -> str:
    status = "active" if policy.is_active else click.style("inactive", dim=True)
    scope = click.style(policy.scope.value, fg=_scope_color(policy.scope))
    return (
        f"{policy.policy_id:<32} {styled_decision(policy.effect)} p={policy.priority:<4} "
        f"{scope:<8} {policy.category.value:<22} {status}  {policy.name}"
    )


def _count(value: int | None) -> str:
    return "-" if value is None else str(value)


def format_policy_detail(policy: Policy) -> str:
    """Every field of a policy: header, usage counters and conditions per axis.

    Success rate is allowCount / evaluationCount, 0 when never evaluated.
    """
    evaluations = policy.evaluation_count or 0
    success_rate = 100 * (policy.allow_count or 0) / evaluations if evaluations else 0.0
    lines = [
        click.style(policy.name, bold=True) + f"  [{policy.policy_id}]",
        f"  {policy.description}",
        "",
        f"Scope:            {click.style(policy.scope.value, fg=_scope_color(policy.scope))}",
        f"Category:         {policy.category.value}",
        f"Effect:           {styled_decision(policy.effect)}",
        f"Priority:         {policy.priority}",
        f"Status:           {'active' if policy.is_active else 'inactive'}",
        f"Version:          {_count(policy.version)}",
        "",
        f"Evaluations:      {_count(policy.evaluation_count)}",
        f"Allowed:          {_count(policy.allow_count)}",
        f"Denied:           {_count(policy.deny_count)}",
        f"Success rate:     {success_rate:.1f}%",
    ]
    for axis in AXES:
        conditions = policy.conditions(axis)
        plural = "" if len(conditions) == 1 else "s"
        lines.extend(["", f"{axis.capitalize()} ({len(conditions)} condition{plural})"])
        if not conditions:
            lines.append(f"  No {axis} conditions defined")
        for condition in conditions:
            label = OPERATOR_LABELS.get(condition.operator, condition.operator)
            lines.append(f"  {condition.name}  {label}  {format_value(condition.value)}")
    if policy.created_at or policy.updated_at:
        lines.extend(["", f"Created:          {policy.created_at or '-'}", f"Updated:          {policy.updated_at or '-'}"])
    return "\n".join(lines)
