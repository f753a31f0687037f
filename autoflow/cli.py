# autoflow/cli.py
from __future__ import annotations

"""Command-line interface
------------------------
Manage elements and workflows, edit steps, and run workflows simulated or
against the execution backend. Thin wrapper around the builder and engine.
"""

import asyncio
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from autoflow.core.auth import login
from autoflow.core.builder import WorkflowBuilder
from autoflow.core.directory import ElementDirectory
from autoflow.core.errors import AutoflowError
from autoflow.core.models import (
    LocatorType,
    OperationType,
    SetDescription,
    SetOperation,
    SetTarget,
    SetValue,
    describe_validation_error,
)
from autoflow.core.operations import OPERATIONS
from autoflow.core.store import WorkflowStore
from autoflow.utils.config import RunMode, get_settings
from autoflow.utils.logger import bind, get_logger, set_log_level, unbind


# -------- helpers --------


def _echo_json(obj) -> None:
    click.echo(json.dumps(obj, indent=2, ensure_ascii=False, default=str))


def _open_builder(ctx: click.Context, workflow_id: Optional[str] = None) -> WorkflowBuilder:
    """Authenticate, load store + directory, and optionally open `workflow_id` as the draft."""
    settings = get_settings()
    try:
        login(ctx.obj.get("user"), ctx.obj.get("password"), settings)
        store = WorkflowStore.load(settings.workflows_path)
        directory = ElementDirectory.load(settings.elements_path)
    except AutoflowError as e:
        raise click.ClickException(str(e)) from e
    builder = WorkflowBuilder(store, directory, settings=settings)
    if workflow_id is not None and not builder.select(workflow_id):
        raise click.ClickException(f"Workflow not found: {workflow_id}")
    return builder


def _position_to_index(builder: WorkflowBuilder, position: int) -> int:
    n = len(builder.draft.steps)
    if not 1 <= position <= n:
        raise click.BadParameter(f"position must be between 1 and {n}", param_hint="POSITION")
    return position - 1


def _step_rows(builder: WorkflowBuilder) -> list[str]:
    rows = []
    for pos, st in enumerate(builder.draft.steps, start=1):
        el = builder.directory.resolve(st.target_element_id)
        target = f'  -> "{el.name}"' if el else ("  -> <missing element>" if st.target_element_id else "")
        value = f"  = {st.value!r}" if st.value else ""
        rows.append(f" {pos:>2}. [{st.id}] {st.operation.value}{target}{value}")
    return rows


_OPERATION_CHOICE = click.Choice([o.value for o in OperationType], case_sensitive=False)


# -------- CLI root --------


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL from settings",
)
@click.option("--user", envvar="AUTOFLOW_USER", default=None, help="Login name (env AUTOFLOW_USER)")
@click.option("--password", envvar="AUTOFLOW_PASSWORD", default=None, help="Password (env AUTOFLOW_PASSWORD)")
@click.version_option(package_name="autoflow")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str], user: Optional[str], password: Optional[str]):
    # Initialize settings + logger once at process start
    get_settings().ensure_dirs()
    if log_level:
        set_log_level(log_level.upper())
    ctx.ensure_object(dict)
    ctx.obj.update(user=user, password=password)


@cli.command("config")
def cmd_config():
    """Print effective configuration (after .env & env vars)."""
    s = get_settings()
    data = s.model_dump(mode="json")
    data.pop("ADMIN_PASSWORD", None)
    _echo_json(data)


@cli.command("operations")
def cmd_operations():
    """Describe the available step operations."""
    for op, info in OPERATIONS.items():
        click.echo(f"{op.value:<14} {info.label:<14} {info.description}")


# -------- elements --------


@cli.group("elements")
def elements_group():
    """Manage the element directory."""


@elements_group.command("list")
@click.option("--search", "term", default=None, help="Filter by name or locator (case-insensitive)")
@click.pass_context
def cmd_elements_list(ctx: click.Context, term: Optional[str]):
    directory = _open_builder(ctx).directory
    rows = directory.search(term) if term else directory.list()
    if not rows:
        click.echo("No elements found.")
        return
    for el in rows:
        click.echo(f" - [{el.id}] {el.name}  {el.locator_type.value}={el.locator}")


@elements_group.command("add")
@click.argument("name")
@click.argument("locator")
@click.option("--type", "locator_type", type=click.Choice([t.value for t in LocatorType], case_sensitive=False),
              default=LocatorType.XPATH.value, show_default=True)
@click.option("--description", default=None)
@click.pass_context
def cmd_elements_add(ctx: click.Context, name: str, locator: str, locator_type: str, description: Optional[str]):
    directory = _open_builder(ctx).directory
    try:
        el = directory.add(name, locator, LocatorType(locator_type.upper()), description)
    except ValidationError as ve:
        raise click.ClickException(describe_validation_error(ve, "Invalid element:")) from ve
    click.echo(f"Added element {el.id}: {el.name}")


@elements_group.command("remove")
@click.argument("element_id")
@click.pass_context
def cmd_elements_remove(ctx: click.Context, element_id: str):
    directory = _open_builder(ctx).directory
    if not directory.remove(element_id):
        raise click.ClickException(f"Element not found: {element_id}")
    click.echo(f"Removed element {element_id}")


# -------- workflows --------


@cli.group("workflows")
def workflows_group():
    """Manage stored workflows."""


@workflows_group.command("list")
@click.pass_context
def cmd_workflows_list(ctx: click.Context):
    store = _open_builder(ctx).store
    workflows = store.list()
    if not workflows:
        click.echo("No workflows found.")
        return
    click.echo(f"Found {len(workflows)} workflow(s):\n")
    for wf in workflows:
        when = wf.last_run_date.strftime("%Y-%m-%d %H:%M") if wf.last_run_date else "never"
        click.echo(f" - [{wf.id}] {wf.name}  ({len(wf.steps)} steps)  last run: {wf.last_run_status.value} ({when})")


@workflows_group.command("show")
@click.argument("workflow_id")
@click.pass_context
def cmd_workflows_show(ctx: click.Context, workflow_id: str):
    builder = _open_builder(ctx, workflow_id)
    click.echo(f"{builder.draft.name}  [{builder.draft.id}]  last run: {builder.draft.last_run_status.value}")
    rows = _step_rows(builder)
    for row in rows:
        click.echo(row)
    if not rows:
        click.echo(" (no steps)")


@workflows_group.command("create")
@click.argument("name", required=False)
@click.pass_context
def cmd_workflows_create(ctx: click.Context, name: Optional[str]):
    builder = _open_builder(ctx)
    wf = builder.create_new(name) if name else builder.create_new()
    builder.save()
    click.echo(f"Created workflow {wf.id}: {wf.name}")


@workflows_group.command("rename")
@click.argument("workflow_id")
@click.argument("name")
@click.pass_context
def cmd_workflows_rename(ctx: click.Context, workflow_id: str, name: str):
    builder = _open_builder(ctx, workflow_id)
    builder.rename(name)
    builder.save()
    click.echo(f"Renamed {workflow_id} to {name!r}")


@workflows_group.command("delete")
@click.argument("workflow_id")
@click.pass_context
def cmd_workflows_delete(ctx: click.Context, workflow_id: str):
    builder = _open_builder(ctx)
    if not builder.delete_workflow(workflow_id):
        raise click.ClickException(f"Workflow not found: {workflow_id}")
    click.echo(f"Deleted workflow {workflow_id}")


# -------- steps --------


@cli.group("steps")
def steps_group():
    """Edit the steps of a workflow."""


@steps_group.command("add")
@click.argument("workflow_id")
@click.option("--operation", type=_OPERATION_CHOICE, default=None, help="Defaults to CLICK")
@click.option("--target", "target_id", default=None, help="Element id (defaults to the first element)")
@click.option("--value", default=None, help="URL, milliseconds, text to type or expected text")
@click.option("--description", default=None)
@click.pass_context
def cmd_steps_add(ctx: click.Context, workflow_id: str, operation: Optional[str], target_id: Optional[str],
                  value: Optional[str], description: Optional[str]):
    builder = _open_builder(ctx, workflow_id)
    step = builder.add_step()
    if operation:
        builder.update_step(step.id, SetOperation(operation=OperationType(operation.upper())))
    if target_id:
        builder.update_step(step.id, SetTarget(target_element_id=target_id))
    if value is not None:
        builder.update_step(step.id, SetValue(value=value))
    if description is not None:
        builder.update_step(step.id, SetDescription(description=description))
    builder.save()
    click.echo(f"Added step {step.id} at position {len(builder.draft.steps)}")


@steps_group.command("update")
@click.argument("workflow_id")
@click.argument("step_id")
@click.option("--operation", type=_OPERATION_CHOICE, default=None)
@click.option("--target", "target_id", default=None)
@click.option("--clear-target", is_flag=True, default=False)
@click.option("--value", default=None)
@click.option("--clear-value", is_flag=True, default=False)
@click.option("--description", default=None)
@click.pass_context
def cmd_steps_update(ctx: click.Context, workflow_id: str, step_id: str, operation: Optional[str],
                     target_id: Optional[str], clear_target: bool, value: Optional[str], clear_value: bool,
                     description: Optional[str]):
    builder = _open_builder(ctx, workflow_id)
    if builder.draft.step_index(step_id) is None:
        raise click.ClickException(f"Step not found: {step_id}")

    updates = []
    if operation:
        updates.append(SetOperation(operation=OperationType(operation.upper())))
    if clear_target or target_id:
        updates.append(SetTarget(target_element_id=None if clear_target else target_id))
    if clear_value or value is not None:
        updates.append(SetValue(value=None if clear_value else value))
    if description is not None:
        updates.append(SetDescription(description=description))
    if not updates:
        click.echo("Nothing to update.")
        return
    for upd in updates:
        builder.update_step(step_id, upd)
    builder.save()
    click.echo(f"Updated step {step_id} ({', '.join(u.field for u in updates)})")


@steps_group.command("remove")
@click.argument("workflow_id")
@click.argument("step_id")
@click.pass_context
def cmd_steps_remove(ctx: click.Context, workflow_id: str, step_id: str):
    builder = _open_builder(ctx, workflow_id)
    if builder.remove_step(step_id):
        builder.save()
        click.echo(f"Removed step {step_id}")
    else:
        click.echo(f"No step {step_id}; nothing changed.")


@steps_group.command("move")
@click.argument("workflow_id")
@click.argument("position", type=int)
@click.argument("new_position", type=int)
@click.pass_context
def cmd_steps_move(ctx: click.Context, workflow_id: str, position: int, new_position: int):
    """Move the step at POSITION to NEW_POSITION (1-based)."""
    builder = _open_builder(ctx, workflow_id)
    src = _position_to_index(builder, position)
    dst = _position_to_index(builder, new_position)
    builder.move_step(src, dst)
    builder.save()
    for row in _step_rows(builder):
        click.echo(row)


# -------- run --------


@cli.command("run")
@click.argument("workflow_id")
@click.option("--mode", type=click.Choice([m.value for m in RunMode], case_sensitive=False), default=None,
              help="Override RUN_MODE from settings (REAL dispatches to the backend)")
@click.option("--save/--no-save", default=False, show_default=True, help="Persist the run status onto the workflow")
@click.option("--json-out", type=click.Path(dir_okay=False), default=None, help="Write a JSON summary to this file")
@click.pass_context
def cmd_run(ctx: click.Context, workflow_id: str, mode: Optional[str], save: bool, json_out: Optional[str]):
    """
    Run one workflow and stream its execution log.

    Examples:
      autoflow run w1
      autoflow run w1 --mode real --save
    """
    builder = _open_builder(ctx, workflow_id)
    if mode:
        builder.set_mode(RunMode(mode.upper()))

    log = get_logger(__name__)
    bind(run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ"), workflow_id=workflow_id)
    unsubscribe = builder.output.subscribe(click.echo)
    try:
        result = asyncio.run(builder.run())
    finally:
        unsubscribe()
        unbind("run_id", "workflow_id")

    if result is None:
        raise click.ClickException("Run was not started.")
    log.debug(f"Run {workflow_id} ended with {result.status.value}")

    if save:
        builder.save()
        click.echo(f"Saved run status {result.status.value} to {workflow_id}")

    if json_out:
        outp = Path(json_out).resolve()
        outp.parent.mkdir(parents=True, exist_ok=True)
        outp.write_text(json.dumps(result.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        click.echo(f"Wrote summary: {outp}")

    sys.exit(0 if result.ok else 1)


@cli.command("serve-backend")
@click.option("--host", default=None, help="Override BACKEND_HOST")
@click.option("--port", type=int, default=None, help="Override BACKEND_PORT")
def cmd_serve_backend(host: Optional[str], port: Optional[int]):
    """Start the reference execution backend (FastAPI + Playwright)."""
    from autoflow.backend.server import serve  # local import keeps CLI startup light

    serve(host=host, port=port)


def main() -> None:
    cli(prog_name="autoflow")


if __name__ == "__main__":
    main()
