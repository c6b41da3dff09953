"""CLI interface for the plan runner."""

import asyncio
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from .display import build_task_table, print_tally
from .errors import AgentSessionError, PlanRunnerError
from .git_manager import GitManager
from .models import DEFAULT_MODEL, RunnerConfig, resolve_plan_path
from .orchestration import PlanDriver
from .plan_parser import read_plan
from .session import SDKSessionClient

console = Console()

# Windows-compatible symbols (cp1252 doesn't support Unicode checkmarks)
if sys.platform == "win32":
    SYM_OK = "[OK]"
    SYM_FAIL = "[X]"
else:
    SYM_OK = "✓"
    SYM_FAIL = "✗"


def _report_error(error: PlanRunnerError) -> None:
    console.print(f"[red]{SYM_FAIL} {escape(str(error))}[/red]")
    if isinstance(error, AgentSessionError):
        console.print(f"[dim]  Category: {error.category.value}[/dim]")


@click.command()
@click.version_option(package_name="plan-runner")
@click.argument('plan')
@click.option('--worker-model', default=DEFAULT_MODEL, show_default=True,
              help='Model for the worker session')
@click.option('--reviewer-model', default=DEFAULT_MODEL, show_default=True,
              help='Model for the reviewer session')
@click.option('--max-iterations-per-task', '--max-iterations-per-todo', 'max_iterations',
              type=click.IntRange(min=1), default=5, show_default=True,
              help='Max fix/review cycles per task')
@click.option('--commands-dir', type=click.Path(file_okay=False, path_type=Path),
              default=Path('commands'), show_default=True,
              help='Directory containing the prompt templates')
@click.option('--status', 'status_only', is_flag=True,
              help='Show task status and exit without starting any session')
def run_plan(
    plan: str,
    worker_model: str,
    reviewer_model: str,
    max_iterations: int,
    commands_dir: Path,
    status_only: bool
):
    """Run the worker/review loop over the tasks in a plan.

    PLAN is a path to a markdown plan, or a bare name resolved as
    .plans/<name>.md.

    \b
    The plan's "## TODO" section drives the run:
      - [ ] pending task
      - [x] done task
      - [B] blocked task (stops the run until a human clears it)
    """
    config = RunnerConfig(
        plan_path=resolve_plan_path(plan),
        worker_model=worker_model,
        reviewer_model=reviewer_model,
        max_iterations_per_task=max_iterations,
        commands_dir=commands_dir,
    )

    try:
        if status_only:
            snapshot = read_plan(config.plan_path)
            print_tally(snapshot)
            console.print(build_task_table(snapshot))
            return

        driver = PlanDriver(config, SDKSessionClient(config))
        asyncio.run(driver.run())
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except PlanRunnerError as e:
        _report_error(e)
        sys.exit(1)


@click.command()
@click.argument('plan_file', type=click.Path(dir_okay=False, path_type=Path))
def start_plan(plan_file: Path):
    """Create a git worktree and branch for a plan.

    \b
    Example:
        start-plan .plans/add-auth.md

    Creates branch "add-auth" in a sibling worktree "../<repo>--add-auth"
    and moves the plan into it as plan.md.
    """
    git = GitManager(Path.cwd())

    try:
        info = git.start_plan(plan_file)
    except PlanRunnerError as e:
        _report_error(e)
        sys.exit(1)

    if info.branch_existed:
        console.print(f"Branch '{info.branch}' already exists, reused it")
    else:
        console.print(f"Created branch '{info.branch}'")
    console.print(f"[green]{SYM_OK}[/green] Worktree created at: {escape(str(info.worktree_path))}")
    console.print(f"[green]{SYM_OK}[/green] Plan moved to: {escape(str(info.plan_path))}")
    console.print("\nTo start working:")
    console.print(f"  cd {escape(str(info.worktree_path))}")
    console.print("  run-plan plan.md")
