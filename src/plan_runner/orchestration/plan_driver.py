"""Outer loop over the plan's tasks.

Picks the first eligible task from a fresh parse, hands it to the
TaskIterationController, and repeats until the plan is complete, blocked,
or a task exhausts its iteration budget. The next task is always taken
from a new snapshot: the agents may add, remove or reorder tasks.
"""

from typing import Optional

from rich.console import Console

from ..display import print_config, print_summary, print_tally
from ..errors import TemplateNotFoundError
from ..models import RunnerConfig, RunOutcome, RunSummary, TaskOutcome, TaskResult
from ..plan_parser import read_plan
from ..prompts import PromptLibrary
from ..protocols import AgentSessionClient
from .task_controller import TaskIterationController


console = Console()

_STOPPING_OUTCOMES = {
    TaskOutcome.BLOCKED: RunOutcome.BLOCKED,
    TaskOutcome.MAX_ITERATIONS: RunOutcome.MAX_ITERATIONS,
}


class PlanDriver:
    """Runs every eligible task in a plan, one at a time.

    Single Responsibility: task selection and run-level reporting. The
    per-task state machine lives in TaskIterationController.
    """

    def __init__(
        self,
        config: RunnerConfig,
        client: AgentSessionClient,
        prompts: Optional[PromptLibrary] = None,
    ):
        self.config = config
        self.client = client
        self.prompts = prompts or PromptLibrary(config.commands_dir, config.plan_path)
        self.controller = TaskIterationController(config, client, self.prompts)

    def _check_templates(self) -> None:
        """Fail before the first session if any template is missing."""
        missing = self.prompts.missing_templates()
        if missing:
            raise TemplateNotFoundError(missing[0])

    def _summarize(
        self,
        outcome: RunOutcome,
        approved: int,
        stopped_at: Optional[TaskResult] = None,
    ) -> RunSummary:
        summary = RunSummary(
            outcome=outcome,
            stopped_at=stopped_at,
            tasks_approved=approved,
            final=read_plan(self.config.plan_path),
        )
        print_summary(summary)
        return summary

    async def run(self) -> RunSummary:
        """Run the plan until it completes or a task stops the run.

        Raises:
            DocumentNotFoundError, TemplateNotFoundError, AgentSessionError
        """
        print_config(self.config)
        console.print()

        initial = read_plan(self.config.plan_path)
        print_tally(initial)

        if initial.all_done:
            console.print("\n[green]All tasks are already complete![/green]")
            return self._summarize(RunOutcome.COMPLETE, 0)

        approved = 0
        templates_checked = False

        while True:
            snapshot = read_plan(self.config.plan_path)

            if snapshot.has_blocked:
                console.print("\n[yellow]Plan has blocked tasks. Resolve them first.[/yellow]")
                index = next(i for i, t in enumerate(snapshot.tasks) if t.blocked)
                blocked = TaskResult(
                    index=index,
                    text=snapshot.tasks[index].text,
                    outcome=TaskOutcome.BLOCKED,
                    reason="Task is marked blocked in the plan",
                )
                return self._summarize(RunOutcome.BLOCKED, approved, blocked)

            index = snapshot.next_eligible_index
            if index is None:
                outcome = RunOutcome.COMPLETE if snapshot.all_done else RunOutcome.NOTHING_ELIGIBLE
                return self._summarize(outcome, approved)

            if not templates_checked:
                self._check_templates()
                templates_checked = True

            result = await self.controller.process(index)

            if result.outcome in _STOPPING_OUTCOMES:
                console.print(f"\n[red]Execution stopped: {result.reason}.[/red]")
                return self._summarize(_STOPPING_OUTCOMES[result.outcome], approved, result)

            approved += 1
