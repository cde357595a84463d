"""kaiban CLI for the markdown task board.

Subcommands:
    list        List tasks in board order
    board       Show tasks grouped by status column
    show        Show one task
    move        Change a task's status (and optionally its order)
    order       Change a task's order within its column
    detect      Probe installed AI CLIs and show the selection
    run         Execute a task with the selected AI CLI
"""

from pathlib import Path

import typer

from kaiban.config import KaibanConfig, load_config
from kaiban.errors import KaibanError
from kaiban.execution.launcher import (
    DryRunProcessLauncher,
    ProcessLauncher,
    RealProcessLauncher,
)
from kaiban.execution.orchestrator import ExecutionOrchestrator
from kaiban.logging_setup import setup_logging
from kaiban.providers.detection import CLIDetectionCache
from kaiban.providers.probe import CLIProbe, RealCLIProbe
from kaiban.providers.selector import get_cli_availability_status
from kaiban.tasks.models import Task, TaskStatus
from kaiban.tasks.repository import TaskRepository, group_by_status, sort_tasks

app = typer.Typer(name="kaiban", no_args_is_help=True)


def build_repository(config: KaibanConfig) -> TaskRepository:
    """Create a repository for the configured workspace and scan it."""
    repository = TaskRepository(config.workspace_dirs, config.tasks_subdir)
    repository.refresh()
    return repository


def build_cache(
    config: KaibanConfig, probe: CLIProbe | None = None
) -> CLIDetectionCache:
    return CLIDetectionCache(
        config.providers,
        probe or RealCLIProbe(),
        ttl_seconds=config.cache_ttl_seconds,
    )


def format_task(task: Task) -> str:
    order = f" #{task.order}" if task.order is not None else ""
    return f"  {task.id}: {task.label} [{task.status}] ({task.priority}){order}"


def _config(ctx: typer.Context, provider: str | None = None) -> KaibanConfig:
    workspace: Path = ctx.obj["workspace"]
    try:
        return load_config(workspace, cli_provider=provider)
    except (KaibanError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


def _repository(config: KaibanConfig) -> TaskRepository:
    try:
        repository = build_repository(config)
    except KaibanError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    for error in repository.errors:
        typer.echo(f"Warning: skipped {error}", err=True)
    return repository


@app.callback()
def main(
    ctx: typer.Context,
    workspace: Path = typer.Option(
        Path("."), "--workspace", "-w", help="Workspace root containing .agent/TASKS."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logs."),
) -> None:
    """Markdown task board with AI CLI execution."""
    setup_logging(verbose=verbose)
    ctx.obj = {"workspace": workspace}


@app.command(name="list")
def list_cmd(ctx: typer.Context) -> None:
    """List tasks in board order."""
    repository = _repository(_config(ctx))
    tasks = sort_tasks(repository.tasks)
    if not tasks:
        typer.echo("No tasks found.")
        return
    for task in tasks:
        typer.echo(format_task(task))


@app.command()
def board(ctx: typer.Context) -> None:
    """Show tasks grouped by status column."""
    repository = _repository(_config(ctx))
    grouped = group_by_status(sort_tasks(repository.tasks))
    for status, tasks in grouped.items():
        typer.echo(f"{status} ({len(tasks)})")
        for task in tasks:
            typer.echo(format_task(task))


@app.command()
def show(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID."),
) -> None:
    """Show one task."""
    repository = _repository(_config(ctx))
    task = repository.get_task(task_id)
    if task is None:
        typer.echo(f"Error: task '{task_id}' not found", err=True)
        raise typer.Exit(code=1)
    for key, value in task.to_dict().items():
        typer.echo(f"{key}: {value if value is not None else ''}")


@app.command()
def move(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID."),
    status: TaskStatus = typer.Argument(..., help="New status column."),
    order: int | None = typer.Option(None, min=0, help="Order within the column."),
    touch: bool = typer.Option(
        False, "--touch", help="Also stamp the Updated field with the current time."
    ),
) -> None:
    """Change a task's status."""
    repository = _repository(_config(ctx))
    try:
        task = repository.update_task_status(
            task_id, status, order=order, touch_updated=touch
        )
    except KaibanError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(f"Moved {task.id} to {task.status}")


@app.command(name="order")
def order_cmd(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID."),
    order: int = typer.Argument(..., min=0, help="Order within the column."),
    touch: bool = typer.Option(
        False, "--touch", help="Also stamp the Updated field with the current time."
    ),
) -> None:
    """Change a task's order within its column."""
    repository = _repository(_config(ctx))
    try:
        task = repository.update_task_order(task_id, order, touch_updated=touch)
    except KaibanError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e
    typer.echo(f"Set order of {task.id} to {task.order}")


@app.command()
def detect(
    ctx: typer.Context,
    provider: str | None = typer.Option(
        None, help="Preferred provider (claude, codex, cursor) or auto."
    ),
    refresh: bool = typer.Option(False, "--refresh", help="Ignore cached results."),
) -> None:
    """Probe installed AI CLIs and show which one would be used."""
    config = _config(ctx, provider)
    cache = build_cache(config)
    cache.detect_all_clis(force_refresh=refresh)
    status = get_cli_availability_status(config.cli_provider, cache)

    for cli in status.clis:
        display = config.providers.get(cli.name).display_name
        if cli.available:
            version = f" v{cli.version}" if cli.version else ""
            typer.echo(f"  {display}: available at {cli.executable_path}{version}")
        else:
            typer.echo(f"  {display}: not found")

    if not status.has_available_cli:
        typer.echo(f"Error: {status.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Selected: {status.selected_provider} (mode: {status.selection_mode})")


@app.command()
def run(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID to execute."),
    provider: str | None = typer.Option(
        None, help="Provider to use (claude, codex, cursor) or auto."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show the command without executing it."
    ),
) -> None:
    """Execute a task with the selected AI CLI."""
    config = _config(ctx, provider)
    repository = _repository(config)
    task = repository.get_task(task_id)
    if task is None:
        typer.echo(f"Error: task '{task_id}' not found", err=True)
        raise typer.Exit(code=1)

    launcher: ProcessLauncher
    if dry_run:
        launcher = DryRunProcessLauncher()
    else:
        launcher = RealProcessLauncher()

    orchestrator = ExecutionOrchestrator(
        repository=repository,
        cache=build_cache(config),
        launcher=launcher,
        workspace_root=config.workspace_root,
    )
    result = orchestrator.execute(
        task, provider=config.cli_provider, mark_in_progress=not dry_run
    )

    if isinstance(launcher, DryRunProcessLauncher):
        typer.echo("=== Dry Run: Command ===")
        for command in launcher.commands:
            typer.echo(command)

    if not result.success:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Task {task.id} finished with {result.provider}")


if __name__ == "__main__":
    app()
