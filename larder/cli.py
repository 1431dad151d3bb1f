"""Command line interface for the larder data-quality workflow."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, List, NoReturn, Optional

import typer
from pydantic_core import to_jsonable_python

from larder.config import load_config
from larder.contracts import Scope
from larder.orchestrator import WorkflowOrchestrator, create_orchestrator
from larder.scheduler import SECONDS_PER_DAY, WeeklyScheduler

app = typer.Typer(help="CLI for larder meal and ingredient data quality")

# Command groups
workflow_app = typer.Typer(help="Commands for running and inspecting workflows")
meals_app = typer.Typer(help="Remediation commands for meals")
ingredients_app = typer.Typer(help="Remediation commands for ingredients")

app.add_typer(workflow_app, name="workflow")
app.add_typer(meals_app, name="meals")
app.add_typer(ingredients_app, name="ingredients")

IdsOption = typer.Option(None, "--id", help="Record id; repeat for several")
ScopeOption = typer.Option(Scope.ALL, help="Time window of records to consider")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(None, help="Path to a YAML config file"),
    log_level: str = typer.Option("INFO", help="Logging level"),
) -> None:
    """larder CLI entry point."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"config_path": config}


def _orchestrator(ctx: typer.Context) -> WorkflowOrchestrator:
    config_path = (ctx.obj or {}).get("config_path")
    return create_orchestrator(load_config(config_path))


def _emit(data: Any) -> None:
    payload = {"success": True, "data": to_jsonable_python(data, by_alias=True)}
    typer.echo(json.dumps(payload, indent=2))


def _fail(error: Exception | str) -> NoReturn:
    typer.echo(json.dumps({"success": False, "error": str(error)}, indent=2))
    raise typer.Exit(code=1)


def _run(
    ctx: typer.Context, operation: Callable[[WorkflowOrchestrator], Awaitable[Any]]
) -> None:
    """Run ``operation`` against a fresh orchestrator and print the JSON result."""
    try:
        result = asyncio.run(operation(_orchestrator(ctx)))
    except Exception as e:
        _fail(e)
    else:
        _emit(result)


# ----------------------------------------------------------------------
# Workflow
@workflow_app.command("run")
def workflow_run(ctx: typer.Context, scope: Scope = ScopeOption) -> None:
    """
    Execute all six workflow steps and print the run record.

    Example:
        larder workflow run --scope last7days
    """
    _run(ctx, lambda o: o.execute_complete_workflow(scope))


@workflow_app.command("step")
def workflow_step(
    ctx: typer.Context, step_name: str, scope: Scope = ScopeOption
) -> None:
    """
    Execute one named step without recording a run.

    Steps: data-analysis, duplicate-detection, title-validation,
    title-addition, transformation-check, enhancement-execution.

    Example:
        larder workflow step title-validation --scope last24hours
    """
    _run(ctx, lambda o: o.execute_specific_step(step_name, scope))


@workflow_app.command("status")
def workflow_status(ctx: typer.Context) -> None:
    """Show the most recent run record."""
    try:
        execution = _orchestrator(ctx).get_workflow_status()
    except Exception as e:
        _fail(e)
    _emit(execution)


@workflow_app.command("list")
def workflow_list(ctx: typer.Context) -> None:
    """
    List recorded workflow runs with their step counts.

    Example:
        larder workflow list
        # Output: workflow-1718000000000    all    6 completed, 0 failed
    """
    executions = _orchestrator(ctx).list_workflows()
    if not executions:
        typer.echo("No workflows found")
        return
    for execution in executions:
        summary = execution.summary
        typer.echo(
            f"{execution.id}\t{execution.scope.value}\t"
            f"{summary.completed_steps} completed, {summary.failed_steps} failed"
        )


@workflow_app.command("show")
def workflow_show(ctx: typer.Context, execution_id: str) -> None:
    """
    Show the step-by-step trace of one run.

    Example:
        larder workflow show workflow-1718000000000
        # Output: Workflow workflow-1718000000000: all
        #         - data-analysis: completed (2024-06-10 10:00 -> 10:01)
    """
    execution = _orchestrator(ctx).get_workflow(execution_id)
    if execution is None:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)
    typer.echo(f"Workflow {execution.id}: {execution.scope.value}")
    for step in execution.steps:
        line = f"- {step.name.value}: {step.status.value}"
        if step.start_time or step.end_time:
            line += f" ({step.start_time} -> {step.end_time})"
        if step.error:
            line += f" error: {step.error}"
        typer.echo(line)


@workflow_app.command("recommend")
def workflow_recommend(ctx: typer.Context) -> None:
    """Print recommended remediation actions."""
    try:
        recommendations = _orchestrator(ctx).get_workflow_recommendations()
    except Exception as e:
        _fail(e)
    _emit(recommendations)


@workflow_app.command("schedule")
def workflow_schedule(
    ctx: typer.Context,
    scope: Optional[Scope] = typer.Option(None, help="Defaults to the configured scope"),
    interval_days: Optional[float] = typer.Option(None, help="Days between runs"),
    lifespan: Optional[float] = typer.Option(
        None, help="Stop scheduling after this many seconds"
    ),
) -> None:
    """
    Run the complete workflow now and then on a fixed cadence.

    Example:
        larder workflow schedule --scope last7days --interval-days 7
    """
    config = load_config((ctx.obj or {}).get("config_path"))
    scheduler = WeeklyScheduler(
        create_orchestrator(config),
        scope=scope or config.schedule.scope,
        interval=(interval_days or config.schedule.interval_days) * SECONDS_PER_DAY,
    )
    typer.echo(f"Scheduling workflow every {scheduler.interval}s ({scheduler.scope.value})")
    asyncio.run(scheduler.start(lifespan=lifespan))


# ----------------------------------------------------------------------
# Analysis
@app.command("analyze")
def analyze(
    ctx: typer.Context,
    scope: Scope = ScopeOption,
    start_date: Optional[datetime] = typer.Option(None, help="Start of a custom scope"),
) -> None:
    """Run the comprehensive analysis and persist the snapshot."""
    _run(ctx, lambda o: o.analysis.perform_comprehensive_analysis(scope, start_date))


@app.command("state")
def state(ctx: typer.Context) -> None:
    """Print the persisted backlog state."""
    try:
        workflow_state = _orchestrator(ctx).analysis.get_workflow_state()
    except Exception as e:
        _fail(e)
    _emit(workflow_state)


# ----------------------------------------------------------------------
# Meals
@meals_app.command("titles")
def meals_titles(
    ctx: typer.Context, ids: Optional[List[str]] = IdsOption, scope: Scope = ScopeOption
) -> None:
    """Generate titles for meals without one."""
    _run(ctx, lambda o: o.meals.add_titles(ids or (), scope))


@meals_app.command("enhance")
def meals_enhance(ctx: typer.Context) -> None:
    """Fill in missing meal details."""
    _run(ctx, lambda o: o.meals.enhance())


@meals_app.command("duplicates")
def meals_duplicates(ctx: typer.Context) -> None:
    """Summarize meals sharing a normalized title."""
    _run(ctx, lambda o: o.meals.get_duplicates_summary())


@meals_app.command("transform")
def meals_transform(ctx: typer.Context) -> None:
    """Turn duplicate meals into distinct variations."""
    _run(ctx, lambda o: o.meals.transform_duplicates())


@meals_app.command("fix-structure")
def meals_fix_structure(ctx: typer.Context) -> None:
    """Repair malformed meal documents: list fields, ingredient units, cooking method."""
    _run(ctx, lambda o: o.meals.fix_structure())


# ----------------------------------------------------------------------
# Ingredients
@ingredients_app.command("titles")
def ingredients_titles(
    ctx: typer.Context, ids: Optional[List[str]] = IdsOption, scope: Scope = ScopeOption
) -> None:
    """Generate titles for ingredients without one."""
    _run(ctx, lambda o: o.ingredients.add_titles(ids or (), scope))


@ingredients_app.command("enhance")
def ingredients_enhance(ctx: typer.Context) -> None:
    """Fill in missing ingredient details."""
    _run(ctx, lambda o: o.ingredients.enhance())


@ingredients_app.command("duplicates")
def ingredients_duplicates(ctx: typer.Context) -> None:
    """Summarize ingredients sharing a normalized title."""
    _run(ctx, lambda o: o.ingredients.get_duplicates_summary())


@ingredients_app.command("transform")
def ingredients_transform(ctx: typer.Context) -> None:
    """Turn duplicate ingredients into distinct variations."""
    _run(ctx, lambda o: o.ingredients.transform_duplicates())


@ingredients_app.command("fix-structure")
def ingredients_fix_structure(ctx: typer.Context) -> None:
    """Repair malformed ingredient documents: features, storage options, techniques."""
    _run(ctx, lambda o: o.ingredients.fix_structure())


@ingredients_app.command("generate")
def ingredients_generate(
    ctx: typer.Context,
    protein: int = typer.Option(0, help="Number of protein ingredients"),
    vegetable: int = typer.Option(0, help="Number of vegetable ingredients"),
    fruit: int = typer.Option(0, help="Number of fruit ingredients"),
    grain: int = typer.Option(0, help="Number of grain ingredients"),
) -> None:
    """
    Add AI-generated ingredients whose titles are new to the collection.

    Example:
        larder ingredients generate --protein 2 --vegetable 3
    """
    quantities = {"protein": protein, "vegetable": vegetable, "fruit": fruit, "grain": grain}
    _run(ctx, lambda o: o.ingredients.generate_new(quantities))


@ingredients_app.command("types")
def ingredients_types(
    ctx: typer.Context,
    ids: Optional[List[str]] = IdsOption,
    scope: Scope = typer.Option(Scope.LAST_24_HOURS, help="Time window of records"),
) -> None:
    """
    Classify ingredients with a missing or invalid type.

    Without --id, ingredients created or updated inside the scope window
    are considered.

    Example:
        larder ingredients types --scope last7days
        larder ingredients types --id abc123 --id def456
    """
    _run(ctx, lambda o: o.ingredients.update_types(ids or (), scope))


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
