"""Policy commands for abac-console CLI.

Commands:
    policy create         - Author a policy and submit it
    policy list           - List policies in evaluation order
    policy show           - Show one policy in full
    policy update         - Replace a local policy
    policy delete         - Delete a policy
    policy toggle         - Activate/deactivate a policy
    policy validate       - Validate a policy JSON file offline
    policy test           - Evaluate a request context (dry run)
    policy refresh-cache  - Ask the platform to reload its policy cache
    policy init-core      - Initialize one of the platform's built-in policies
    policy path           - Show the local policy file path

Every command talks to the platform API unless --local is given, in which
case the local policy file (see 'policy path') is used instead.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from abac_console.audit.decision_logger import create_decision_logger
from abac_console.authoring import DraftCondition, PolicyForm
from abac_console.config import get_decisions_log_path, get_policy_path
from abac_console.constants import CORE_POLICY_IDS, DEFAULT_POLICY_PRIORITY, OPERATORS
from abac_console.pdp import (
    Decision,
    EvaluationRequest,
    Policy,
    PolicyCategory,
    PolicyEngine,
    PolicyScope,
    canonical_policy_id,
)
from abac_console.pdp.engine import evaluation_order
from abac_console.stores import FilePolicyStore

from ..api_client import cli_errors, get_client, load_config
from ..formatting import format_policy_detail, format_policy_line, styled_decision


def _parse_conditions(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> list[DraftCondition]:
    """Click callback: NAME:OPERATOR:VALUE -> DraftCondition (value may contain ':')."""
    conditions = []
    for raw in values:
        parts = raw.split(":", 2)
        if len(parts) != 3 or not parts[0].strip():
            raise click.BadParameter(f"Expected NAME:OPERATOR:VALUE, got {raw!r}", ctx=ctx, param=param)
        name, operator, value = parts
        if operator not in OPERATORS:
            raise click.BadParameter(
                f"Unknown operator {operator!r} (expected one of {', '.join(OPERATORS)})",
                ctx=ctx,
                param=param,
            )
        conditions.append(DraftCondition(name=name.strip(), operator=operator, value=value))
    return conditions


def _condition_option(axis: str) -> Any:
    return click.option(
        f"--{axis}",
        f"{axis}_conditions",
        multiple=True,
        metavar="NAME:OPERATOR:VALUE",
        callback=_parse_conditions,
        help=f"{axis.capitalize()} condition (repeatable)",
    )


def _local_store() -> FilePolicyStore:
    return FilePolicyStore(get_policy_path())


def _load_json_file(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON in {path}: {e}") from e
    except OSError as e:
        raise click.ClickException(f"Cannot read {path}: {e}") from e


@click.group()
def policy() -> None:
    """Policy authoring and management commands."""
    pass


@policy.command("create")
@click.option("--name", required=True, help="Display name")
@click.option("--description", required=True, help="What the policy enforces")
@click.option("--policy-id", required=True, help="Identifier (normalized to UPPER_SNAKE_CASE)")
@click.option(
    "--scope",
    type=click.Choice([s.value for s in PolicyScope]),
    default=PolicyScope.TENANT.value,
    show_default=True,
)
@click.option(
    "--category",
    type=click.Choice([c.value for c in PolicyCategory]),
    default=PolicyCategory.CUSTOM.value,
    show_default=True,
)
@click.option(
    "--effect",
    type=click.Choice([d.value for d in Decision]),
    default=Decision.DENY.value,
    show_default=True,
)
@click.option("--priority", type=int, default=DEFAULT_POLICY_PRIORITY, show_default=True, help="1-1000, higher wins")
@_condition_option("subject")
@_condition_option("action")
@_condition_option("resource")
@_condition_option("environment")
@click.option("--local", is_flag=True, help="Write to the local policy file instead of the API")
@click.option("--dry-run", is_flag=True, help="Validate and print the request body without submitting")
def create(
    name: str,
    description: str,
    policy_id: str,
    scope: str,
    category: str,
    effect: str,
    priority: int,
    subject_conditions: list[DraftCondition],
    action_conditions: list[DraftCondition],
    resource_conditions: list[DraftCondition],
    environment_conditions: list[DraftCondition],
    local: bool,
    dry_run: bool,
) -> None:
    """Create a policy.

    Conditions are NAME:OPERATOR:VALUE. Values are typed by operator:
    'in'/'not_in' take comma-separated lists, 'greater_than'/'less_than'
    take numbers, 'true'/'false' become booleans. A value of the form
    $subject.tenant_id refers to another request attribute.

    \b
    Example:
      abac-console policy create --name "Block Cross-Tenant Reads" \\
        --description "Deny reads across tenants" --policy-id "block cross tenant" \\
        --category TENANT_ISOLATION --priority 900 \\
        --subject "role:not_equals:superadmin" \\
        --resource 'tenant_id:not_equals:$subject.tenant_id'
    """
    form = PolicyForm(
        name=name,
        description=description,
        policy_id=policy_id,
        scope=scope,
        category=category,
        effect=effect,
        priority=priority,
        attributes={
            "subject": list(subject_conditions),
            "action": list(action_conditions),
            "resource": list(resource_conditions),
            "environment": list(environment_conditions),
        },
    )

    for warning in form.completeness_warnings():
        click.echo(click.style(f"Warning: {warning}", fg="yellow"), err=True)

    with cli_errors():
        if dry_run:
            click.echo(json.dumps(form.build_policy().to_request_body(), indent=2))
            return
        store = _local_store() if local else get_client(load_config())
        created = form.submit(store)

    target = _local_store().path if local else "platform API"
    click.echo(click.style(f"Policy {created.policy_id} created", fg="green") + f" ({target})")


def _matches_listing(
    p: Policy, search: str, scope: str | None, category: str | None, status: str | None
) -> bool:
    needle = search.lower()
    if needle and not any(needle in text.lower() for text in (p.name, p.policy_id, p.description)):
        return False
    if scope and p.scope.value != scope:
        return False
    if category and p.category.value != category:
        return False
    if status and p.is_active != (status == "active"):
        return False
    return True


@policy.command("list")
@click.option("--search", default="", help="Case-insensitive text in name, policy ID or description")
@click.option("--scope", type=click.Choice([s.value for s in PolicyScope]), help="Only this scope")
@click.option("--category", type=click.Choice([c.value for c in PolicyCategory]), help="Only this category")
@click.option("--status", type=click.Choice(["active", "inactive"]), help="Only active or inactive policies")
@click.option("--local", is_flag=True, help="List the local policy file")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def list_policies(
    search: str,
    scope: str | None,
    category: str | None,
    status: str | None,
    local: bool,
    as_json: bool,
) -> None:
    """List policies in evaluation order (highest priority first).

    Filters are applied after loading, to the full policy list.
    """
    with cli_errors():
        policies = _local_store().list_policies() if local else get_client(load_config()).list_policies()

    ordered = [p for p in evaluation_order(policies) if _matches_listing(p, search, scope, category, status)]
    if as_json:
        click.echo(json.dumps([p.model_dump(mode="json", by_alias=True, exclude_none=True) for p in ordered], indent=2))
        return
    if not ordered:
        click.echo("No policies.")
        return
    for p in ordered:
        click.echo(format_policy_line(p))
    click.echo(f"\n{len(ordered)} policies")


@policy.command("show")
@click.argument("policy_id")
@click.option("--local", is_flag=True, help="Read the local policy file")
def show(policy_id: str, local: bool) -> None:
    """Show one policy: conditions per axis, version and usage counters."""
    wanted = canonical_policy_id(policy_id)
    with cli_errors():
        policies = _local_store().list_policies() if local else get_client(load_config()).list_policies()

    found = next((p for p in policies if p.policy_id == wanted), None)
    if found is None:
        raise click.ClickException(f"Policy {wanted} not found")
    click.echo(format_policy_detail(found))


@policy.command("update")
@click.argument("policy_id")
@click.option("--name", help="New display name")
@click.option("--description", help="New description")
@click.option("--scope", type=click.Choice([s.value for s in PolicyScope]))
@click.option("--category", type=click.Choice([c.value for c in PolicyCategory]))
@click.option("--effect", type=click.Choice([d.value for d in Decision]))
@click.option("--priority", type=int, help="1-1000, higher wins")
@_condition_option("subject")
@_condition_option("action")
@_condition_option("resource")
@_condition_option("environment")
@click.option("--local", is_flag=True, help="Replace in the local policy file")
def update(
    policy_id: str,
    name: str | None,
    description: str | None,
    scope: str | None,
    category: str | None,
    effect: str | None,
    priority: int | None,
    subject_conditions: list[DraftCondition],
    action_conditions: list[DraftCondition],
    resource_conditions: list[DraftCondition],
    environment_conditions: list[DraftCondition],
    local: bool,
) -> None:
    """Replace a policy in the local policy file.

    Unset options keep their current values. Condition options replace
    every condition on their axis; other axes are kept. The platform API
    has no update endpoint, so --local is required.
    """
    if not local:
        raise click.ClickException("The platform API does not support updates; use --local")

    store = _local_store()
    with cli_errors():
        existing = store.get(policy_id)
    if existing is None:
        raise click.ClickException(f"Policy {canonical_policy_id(policy_id)} not found")

    form = PolicyForm.from_policy(existing)
    for attr, value in (
        ("name", name),
        ("description", description),
        ("scope", scope),
        ("category", category),
        ("effect", effect),
        ("priority", priority),
    ):
        if value is not None:
            setattr(form, attr, value)
    for axis, conditions in (
        ("subject", subject_conditions),
        ("action", action_conditions),
        ("resource", resource_conditions),
        ("environment", environment_conditions),
    ):
        if conditions:
            form.attributes[axis] = list(conditions)

    for warning in form.completeness_warnings():
        click.echo(click.style(f"Warning: {warning}", fg="yellow"), err=True)
    with cli_errors():
        replaced = form.submit_replacement(store)
    click.echo(click.style(f"Policy {replaced.policy_id} updated", fg="green") + f" ({store.path})")


@policy.command("delete")
@click.argument("policy_id")
@click.option("--local", is_flag=True, help="Delete from the local policy file")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation")
def delete(policy_id: str, local: bool, yes: bool) -> None:
    """Delete a policy by ID."""
    if not yes:
        click.confirm(f"Delete policy {policy_id}?", abort=True)
    with cli_errors():
        if local:
            _local_store().delete_policy(policy_id)
        else:
            get_client(load_config()).delete_policy(policy_id)
    click.echo(f"Policy {policy_id} deleted.")


@policy.command("toggle")
@click.argument("policy_id")
@click.option("--local", is_flag=True, help="Toggle in the local policy file")
def toggle(policy_id: str, local: bool) -> None:
    """Activate or deactivate a policy."""
    with cli_errors():
        if local:
            updated: Policy | None = _local_store().toggle_policy(policy_id)
        else:
            updated = get_client(load_config()).toggle_policy(policy_id)

    if updated is None:
        click.echo(f"Policy {policy_id} toggled.")
    else:
        state = "active" if updated.is_active else "inactive"
        click.echo(f"Policy {updated.policy_id} is now {state}.")


@policy.command("validate")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def validate(path: Path) -> None:
    """Validate a policy JSON file without submitting it.

    PATH may hold a single policy, a list of policies, or a policy file
    ({"version": ..., "policies": [...]}).
    """
    data = _load_json_file(path)
    items = data.get("policies", [data]) if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise click.ClickException("Expected a policy object, a list of policies, or a policy file")

    failures = 0
    for idx, item in enumerate(items):
        label = item.get("policyId", f"#{idx}") if isinstance(item, dict) else f"#{idx}"
        try:
            parsed = Policy.model_validate(item)
        except ValidationError as e:
            failures += 1
            click.echo(click.style(f"✗ {label}", fg="red"))
            for err in e.errors():
                loc = ".".join(str(x) for x in err["loc"]) or "(root)"
                click.echo(f"    - {loc}: {err['msg']}")
            continue
        click.echo(click.style(f"✓ {parsed.policy_id}", fg="green"))
        for warning in parsed.completeness_warnings():
            click.echo(click.style(f"    warning: {warning}", fg="yellow"))

    if failures:
        raise click.ClickException(f"{failures} of {len(items)} policies invalid")
    click.echo(f"\n{len(items)} policies valid")


@policy.command("test")
@click.option(
    "--context",
    "context_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='JSON file: {"subject": {...}, "action": {...}, "resource": {...}, "environment": {...}}',
)
@click.option("--local", is_flag=True, help="Evaluate with the local engine and local policy file")
@click.option(
    "--category",
    "categories",
    multiple=True,
    type=click.Choice([c.value for c in PolicyCategory]),
    help="Only consider policies in this category (repeatable, --local only)",
)
def evaluate_context(context_path: Path, local: bool, categories: tuple[str, ...]) -> None:
    """Evaluate a request context without enforcing anything.

    With --local the decision is also written to the local decision log,
    where 'logs show --local' and 'logs stats --local' pick it up.
    """
    data = _load_json_file(context_path)
    if not isinstance(data, dict):
        raise click.ClickException("Context must be a JSON object")
    context = data.get("context", data)
    if not isinstance(context, dict):
        raise click.ClickException("Context must be a JSON object")
    try:
        request = EvaluationRequest.from_context(context)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    with cli_errors():
        if not local:
            remote = get_client(load_config()).test_policy(context)
            click.echo(f"Decision: {styled_decision(remote.decision)}  ({remote.evaluation_time:g} ms)")
            if remote.error:
                click.echo(click.style(f"Error: {remote.error}", fg="red"))
            _echo_trace([(p.policy_id, p.policy_name, p.effect, p.matched, p.reason) for p in remote.applied_policies])
            return

        config = load_config()
        engine = PolicyEngine(_local_store().list_policies(), Decision(config.engine.default_decision))
        result = engine.evaluate(request, [PolicyCategory(c) for c in categories] or None)
        entry = create_decision_logger(get_decisions_log_path(config)).log_decision(
            request, result, endpoint="cli:policy test"
        )

    click.echo(f"Decision: {styled_decision(result.decision)}  ({result.evaluation_time_ms:g} ms)")
    if result.decisive_policy_id is None:
        click.echo("No policy matched; default decision applied.")
    else:
        click.echo(f"Decided by: {result.decisive_policy_id}")
    _echo_trace([(t.policy_id, t.policy_name, t.effect, t.matched, t.reason) for t in result.applied_policies])
    click.echo(f"\nLogged as {entry.decision_id}")


def _echo_trace(rows: list[tuple[str, str, Decision, bool, str | None]]) -> None:
    if not rows:
        return
    click.echo("\nApplied policies:")
    for idx, (policy_id, policy_name, effect, matched, reason) in enumerate(rows, start=1):
        mark = click.style("matched", fg="yellow") if matched else "not matched"
        click.echo(f"  {idx}. {policy_name} [{policy_id}] {styled_decision(effect)} {mark}")
        if reason:
            click.echo(f"     {reason}")


@policy.command("refresh-cache")
def refresh_cache() -> None:
    """Ask the platform to reload its policy cache."""
    with cli_errors():
        get_client(load_config()).refresh_cache()
    click.echo("Policy cache refreshed.")


@policy.command("init-core")
@click.argument("policy_id", type=click.Choice(CORE_POLICY_IDS, case_sensitive=False))
def init_core(policy_id: str) -> None:
    """(Re)create one of the platform's built-in policies.

    POLICY_ID is one of the core policies the platform ships with.
    """
    with cli_errors():
        initialized = get_client(load_config()).initialize_core_policy(policy_id.upper())
    click.echo(f"Core policy {policy_id.upper()} initialized.")
    if initialized is not None:
        click.echo(format_policy_line(initialized))


@policy.command("path")
def path() -> None:
    """Show the local policy file path."""
    store = _local_store()
    suffix = "" if store.exists() else " (not created yet)"
    click.echo(f"{store.path}{suffix}")
