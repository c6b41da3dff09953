"""Console rendering for plan runs."""

import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import AgentRunResult, PlanSnapshot, RunnerConfig, RunOutcome, RunSummary


console = Console()

# Windows-compatible symbols (cp1252 doesn't support Unicode checkmarks)
if sys.platform == "win32":
    SYM_DONE = "[x]"
    SYM_PENDING = "[ ]"
    SYM_BLOCKED = "[B]"
else:
    SYM_DONE = "✓"
    SYM_PENDING = "○"
    SYM_BLOCKED = "⊘"


def print_header(title: str, style: str = "bold") -> None:
    console.print()
    console.rule(f"[{style}]{title}[/{style}]")


def print_config(config: RunnerConfig) -> None:
    """Print the run configuration."""
    console.print("[bold]Plan Executor[/bold]")
    console.print(f"  Plan: {escape(str(config.plan_path))}")
    console.print(f"  Worker Model: {config.worker_model}")
    console.print(f"  Reviewer Model: {config.reviewer_model}")
    console.print(f"  Max Iterations Per Task: {config.max_iterations_per_task}")


def print_tally(snapshot: PlanSnapshot) -> None:
    """Print done / pending / blocked counts."""
    console.print(f"Found {len(snapshot.tasks)} tasks")
    console.print(f"  [green]{SYM_DONE}[/green] Done: {snapshot.done_count}")
    console.print(f"  [yellow]{SYM_PENDING}[/yellow] Pending: {snapshot.pending_count}")
    console.print(f"  [red]{SYM_BLOCKED}[/red] Blocked: {snapshot.blocked_count}")


def build_task_table(snapshot: PlanSnapshot) -> Table:
    """Build a table listing every task and its state."""
    table = Table(title="Tasks")
    table.add_column("#", justify="right")
    table.add_column("Status")
    table.add_column("Task")
    table.add_column("Feedback")

    next_index = snapshot.next_eligible_index
    for i, task in enumerate(snapshot.tasks):
        if task.done:
            status = f"[green]{SYM_DONE} done[/green]"
        elif task.blocked:
            status = f"[red]{SYM_BLOCKED} blocked[/red]"
        elif i == next_index:
            status = f"[cyan]{SYM_PENDING} next[/cyan]"
        else:
            status = f"[yellow]{SYM_PENDING} pending[/yellow]"
        feedback = "[magenta]changes requested[/magenta]" if task.has_review_feedback else ""
        table.add_row(str(i + 1), status, escape(task.text), feedback)

    return table


def print_run_usage(result: AgentRunResult) -> None:
    """Print turn count and cost for a finished session run."""
    parts = [f"{result.num_turns} turns"]
    if result.total_cost_usd is not None:
        parts.append(f"${result.total_cost_usd:.4f}")
    console.print(f"[dim]{result.role.value} run finished ({', '.join(parts)})[/dim]")


def print_summary(summary: RunSummary) -> None:
    """Print the final status block for a run."""
    print_header("Final Status")
    final = summary.final
    console.print(f"  Total tasks: {len(final.tasks)}")
    console.print(f"  [green]{SYM_DONE}[/green] Completed: {final.done_count}")
    console.print(f"  [yellow]{SYM_PENDING}[/yellow] Pending: {final.pending_count}")
    console.print(f"  [red]{SYM_BLOCKED}[/red] Blocked: {final.blocked_count}")

    if summary.outcome == RunOutcome.COMPLETE:
        console.print("\n[bold green]All tasks complete![/bold green]")
    elif summary.outcome == RunOutcome.NOTHING_ELIGIBLE:
        console.print("\n[yellow]No eligible tasks to run.[/yellow]")
    elif summary.stopped_at is not None:
        stopped = summary.stopped_at
        console.print(
            f"\n[red]Execution stopped at task #{stopped.index + 1} "
            f"({stopped.outcome.value}):[/red] {escape(stopped.text)}"
        )
        if stopped.reason:
            console.print(f"  {stopped.reason}")
