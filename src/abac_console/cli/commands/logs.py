"""Audit log commands for abac-console CLI.

Commands:
    logs show     - One page of decision log entries
    logs inspect  - Full detail of one decision
    logs export   - Export filtered entries to CSV
    logs stats    - Decision statistics

Entries come from the platform API unless --local is given, in which case
the local decision log (<log_dir>/abac_console_logs/audit/decisions.jsonl)
is read instead.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from abac_console.audit.export import format_timestamp
from abac_console.audit.models import AuditLogFilters, AuditLogSource, AuditStatistics
from abac_console.audit.store import DecisionLogStore
from abac_console.audit.viewer import AuditLogViewer
from abac_console.config import AppConfig, get_decisions_log_path
from abac_console.constants import MAX_PAGE_SIZE
from abac_console.pdp import Decision

from ..api_client import cli_errors, get_client, load_config
from ..formatting import format_entry_detail, format_entry_line, styled_decision


def _filter_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Shared --decision/--resource-type/--action options."""
    func = click.option("--action", help="Only entries for this action")(func)
    func = click.option("--resource-type", help="Only entries for this resource type")(func)
    func = click.option(
        "--decision",
        type=click.Choice([d.value for d in Decision], case_sensitive=False),
        help="Only ALLOW or DENY entries",
    )(func)
    return func


def _filters(decision: str | None, resource_type: str | None, action: str | None) -> AuditLogFilters:
    return AuditLogFilters(
        decision=Decision(decision.upper()) if decision else None,
        resource_type=resource_type or None,
        action=action or None,
    )


def _source(config: AppConfig, local: bool) -> AuditLogSource:
    if local:
        return DecisionLogStore(get_decisions_log_path(config))
    return get_client(config)


def _load_or_fail(viewer: AuditLogViewer, page: int) -> None:
    if not viewer.go_to_page(page):
        raise click.ClickException(viewer.last_error or "Failed to load audit logs")


@click.group()
def logs() -> None:
    """Audit log viewing and export commands."""
    pass


@logs.command("show")
@_filter_options
@click.option("--page", type=click.IntRange(min=1), default=1, show_default=True)
@click.option("--limit", type=click.IntRange(1, MAX_PAGE_SIZE), help="Entries per page (default: viewer.page_size)")
@click.option("--search", default="", help="Narrow the loaded page by text (IDs, user, action, policy)")
@click.option("--json", "as_json", is_flag=True, help="Print entries as JSON")
@click.option("--local", is_flag=True, help="Read the local decision log")
def show(
    decision: str | None,
    resource_type: str | None,
    action: str | None,
    page: int,
    limit: int | None,
    search: str,
    as_json: bool,
    local: bool,
) -> None:
    """Show one page of decision log entries, newest first."""
    config = load_config()
    viewer = AuditLogViewer(
        _source(config, local),
        limit=limit or config.viewer.page_size,
        export_limit=config.viewer.export_limit,
    )
    viewer.filters = _filters(decision, resource_type, action)
    _load_or_fail(viewer, page)
    viewer.search_term = search

    entries = viewer.filtered_logs
    if as_json:
        click.echo(json.dumps([e.to_wire() for e in entries], indent=2))
        return

    if not entries:
        click.echo("No entries.")
    for entry in entries:
        click.echo(format_entry_line(entry))

    pagination = viewer.pagination
    click.echo(f"\nPage {pagination.page} of {max(pagination.pages, 1)} ({pagination.total} entries)")
    if search:
        click.echo(f"{len(entries)} of {len(viewer.logs)} entries on this page match {search!r}")
    if viewer.can_next:
        click.echo(f"Next: abac-console logs show --page {pagination.page + 1}")


@logs.command("inspect")
@click.argument("decision_id")
@click.option("--local", is_flag=True, help="Read the local decision log")
def inspect(decision_id: str, local: bool) -> None:
    """Show every field of one decision, including the policy trace."""
    config = load_config()

    if local:
        with cli_errors():
            entry = DecisionLogStore(get_decisions_log_path(config)).find(decision_id)
    else:
        viewer = AuditLogViewer(_source(config, local), limit=MAX_PAGE_SIZE)
        _load_or_fail(viewer, 1)
        while (entry := viewer.inspect(decision_id)) is None and viewer.can_next:
            if not viewer.next_page():
                raise click.ClickException(viewer.last_error or "Failed to load audit logs")

    if entry is None:
        raise click.ClickException(f"Decision {decision_id} not found")
    click.echo(format_entry_detail(entry))


@logs.command("export")
@_filter_options
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory for the CSV file",
)
@click.option("--local", is_flag=True, help="Read the local decision log")
def export(
    decision: str | None,
    resource_type: str | None,
    action: str | None,
    output_dir: Path,
    local: bool,
) -> None:
    """Export entries matching the filters to CSV.

    Pagination is ignored; up to viewer.export_limit entries are written
    to abac-audit-logs-YYYY-MM-DD.csv.
    """
    config = load_config()
    viewer = AuditLogViewer(_source(config, local), export_limit=config.viewer.export_limit)
    viewer.filters = _filters(decision, resource_type, action)

    with cli_errors():
        written = viewer.export_logs(output_dir)
    click.echo(f"Exported to {written}")


@logs.command("stats")
@_filter_options
@click.option("--local", is_flag=True, help="Compute from the local decision log")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def stats(
    decision: str | None,
    resource_type: str | None,
    action: str | None,
    local: bool,
    as_json: bool,
) -> None:
    """Decision counts, most evaluated policies and recent denials.

    Filters apply to --local only; the platform computes its statistics
    over the whole log.
    """
    config = load_config()
    with cli_errors():
        if local:
            statistics = DecisionLogStore(get_decisions_log_path(config)).statistics(
                _filters(decision, resource_type, action)
            )
        else:
            statistics = get_client(config).get_statistics()

    if as_json:
        click.echo(statistics.model_dump_json(indent=2, by_alias=True))
        return
    _echo_statistics(statistics)


def _echo_statistics(statistics: AuditStatistics) -> None:
    click.echo(click.style(f"Decisions ({statistics.total})", bold=True))
    if not statistics.overview:
        click.echo("  none recorded")
    for row in statistics.overview:
        click.echo(f"  {styled_decision(row.decision)}  {row.count:>7}  avg {row.avg_evaluation_time:g} ms")

    click.echo(click.style("\nTop policies", bold=True))
    if not statistics.top_policies:
        click.echo("  none evaluated")
    for p in statistics.top_policies:
        click.echo(f"  {p.policy_id:<32} {p.evaluation_count:>7} evaluated  {p.success_rate:g}% matched  {p.name}")

    click.echo(click.style("\nRecent denials", bold=True))
    if not statistics.recent_denials:
        click.echo("  none")
    for denial in statistics.recent_denials:
        reasons = "; ".join(denial.reasons) or "default decision"
        click.echo(f"  {format_timestamp(denial.created_at)}  {denial.action} {denial.resource_type}: {reasons}")
