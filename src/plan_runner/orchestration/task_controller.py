"""Per-task worker/review cycle.

Drives one task through WORKER_TURN -> REVIEW_TURN until the reviewer
approves it, the plan shows a blocked task, or the iteration cap is hit.
The plan document is the only source of truth: it is re-parsed before and
after every session run, and session output is never read as state.
"""

from dataclasses import dataclass

from rich.console import Console
from rich.markup import escape

from ..display import print_header, print_run_usage
from ..errors import AgentSessionError
from ..models import AgentRole, PlanSnapshot, RunnerConfig, TaskOutcome, TaskResult
from ..plan_parser import read_plan
from ..prompts import PromptLibrary, PromptTemplate
from ..protocols import AgentSession, AgentSessionClient


console = Console()

_ROLE_BANNERS = {
    PromptTemplate.WORKER: "Worker: New Session (implementing task)",
    PromptTemplate.RESUME: "Worker: Resume Session (fixing review feedback)",
    PromptTemplate.REVIEW: "Reviewer: New Session (initial review)",
    PromptTemplate.RESUME_REVIEW: "Reviewer: Resume Session (re-reviewing after fixes)",
}


@dataclass
class IterationState:
    """Counters for one task's processing window. Discarded afterwards."""
    iteration: int = 0
    worker_has_run: bool = False
    reviewer_has_run: bool = False


class TaskIterationController:
    """Runs the worker/review loop for a single task.

    Each task gets its own worker and reviewer session. Sessions are opened
    right before their first run and closed when the task finishes, so a
    task that is blocked up front never touches the agent service.
    """

    def __init__(
        self,
        config: RunnerConfig,
        client: AgentSessionClient,
        prompts: PromptLibrary,
    ):
        self.config = config
        self.client = client
        self.prompts = prompts

    def _snapshot(self) -> PlanSnapshot:
        return read_plan(self.config.plan_path)

    @staticmethod
    def _is_done(snapshot: PlanSnapshot, index: int) -> bool:
        # A task that vanished from the plan counts as not done
        task = snapshot.task_at(index)
        return task is not None and task.done

    async def _run_turn(
        self,
        role: AgentRole,
        template: PromptTemplate,
        sessions: dict[AgentRole, AgentSession],
    ) -> None:
        """Run one prompt on the role's session, opening it if needed."""
        prompt = self.prompts.load(template)

        session = sessions.get(role)
        if session is None:
            session = await self.client.create_session(role)
            sessions[role] = session

        console.print()
        console.rule(f"[cyan]{_ROLE_BANNERS[template]}[/cyan]", style="dim")
        result = await session.run(prompt)
        print_run_usage(result)

    async def _close_sessions(self, sessions: dict[AgentRole, AgentSession]) -> None:
        # A close failure must not mask the task outcome or the error in flight
        for role, session in sessions.items():
            try:
                await session.close()
            except AgentSessionError as e:
                console.print(
                    f"[yellow]Warning: could not close {role.value} session: {escape(str(e))}[/yellow]"
                )

    async def process(self, index: int) -> TaskResult:
        """Drive the task at ``index`` to a terminal outcome.

        Returns:
            TaskResult with APPROVED, BLOCKED or MAX_ITERATIONS.

        Raises:
            DocumentNotFoundError, TemplateNotFoundError, AgentSessionError:
                Fatal errors are never turned into outcomes.
        """
        task = self._snapshot().task_at(index)
        text = task.text if task else ""
        max_iterations = self.config.max_iterations_per_task

        print_header(f"Task #{index + 1}: {escape(text)}")

        state = IterationState()
        sessions: dict[AgentRole, AgentSession] = {}

        def finish(outcome: TaskOutcome, reason: str = "") -> TaskResult:
            return TaskResult(
                index=index,
                text=text,
                outcome=outcome,
                iterations=state.iteration,
                reason=reason,
            )

        try:
            for iteration in range(1, max_iterations + 1):
                state.iteration = iteration
                console.print(f"\n[bold]>>> Iteration {iteration}/{max_iterations}[/bold]")

                before = self._snapshot()
                if before.has_blocked:
                    console.print("\n[yellow]Plan has blocked tasks. Stopping.[/yellow]")
                    return finish(TaskOutcome.BLOCKED, "Plan has blocked tasks")

                if not self._is_done(before, index):
                    template = PromptTemplate.RESUME if state.worker_has_run else PromptTemplate.WORKER
                    await self._run_turn(AgentRole.WORKER, template, sessions)
                    state.worker_has_run = True

                    after_worker = self._snapshot()
                    if after_worker.has_blocked:
                        console.print("\n[yellow]Worker blocked. Stopping.[/yellow]")
                        return finish(TaskOutcome.BLOCKED, "Worker marked a task as blocked")
                    if not self._is_done(after_worker, index):
                        console.print("\n[yellow]Worker did not complete task. Stopping.[/yellow]")
                        return finish(TaskOutcome.BLOCKED, "Worker did not mark the task done")

                template = PromptTemplate.RESUME_REVIEW if state.reviewer_has_run else PromptTemplate.REVIEW
                await self._run_turn(AgentRole.REVIEWER, template, sessions)
                state.reviewer_has_run = True

                if self._is_done(self._snapshot(), index):
                    console.print("\n[green]Task approved by reviewer![/green]")
                    return finish(TaskOutcome.APPROVED)

                console.print("\n[blue]Reviewer requested changes. Continuing...[/blue]")

            console.print(
                f"\n[yellow]Max iterations ({max_iterations}) reached for this task.[/yellow]"
            )
            return finish(
                TaskOutcome.MAX_ITERATIONS,
                f"Reviewer did not approve within {max_iterations} iterations"
            )
        finally:
            await self._close_sessions(sessions)
