"""Data models for the plan runner.

Uses Pydantic for validation. Snapshots are frozen: every decision point
re-derives a fresh one from the plan document instead of patching state.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


DEFAULT_MODEL = "claude-sonnet-4-20250514"

# Bare plan names are resolved against this directory and extension
PLANS_DIR = ".plans"
PLAN_EXTENSION = ".md"


class AgentRole(str, Enum):
    """Which side of the worker/reviewer loop a session belongs to."""
    WORKER = "worker"
    REVIEWER = "reviewer"


class TaskOutcome(str, Enum):
    """Terminal result of processing one task."""
    APPROVED = "approved"
    BLOCKED = "blocked"
    MAX_ITERATIONS = "max_iterations"


class RunOutcome(str, Enum):
    """How a whole plan run ended."""
    COMPLETE = "complete"                  # Every task is done
    NOTHING_ELIGIBLE = "nothing_eligible"  # No eligible task, but not all done
    BLOCKED = "blocked"
    MAX_ITERATIONS = "max_iterations"


class ErrorCategory(str, Enum):
    """Classification of agent service failures for diagnostics.

    Failures are never retried; the category only sharpens the message.
    """
    BILLING = "billing"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TRANSIENT = "transient"
    UNKNOWN = "unknown"


class Task(BaseModel, frozen=True):
    """A single checklist item in the plan's task section.

    Identity is the item's position in document order.
    """
    text: str
    done: bool = False
    blocked: bool = False
    has_review_feedback: bool = False


class PlanSnapshot(BaseModel, frozen=True):
    """Immutable parse result of the plan document at one point in time."""
    tasks: tuple[Task, ...] = ()

    @property
    def all_done(self) -> bool:
        """True only if there is at least one task and every task is done."""
        return len(self.tasks) > 0 and all(t.done for t in self.tasks)

    @property
    def has_blocked(self) -> bool:
        return any(t.blocked for t in self.tasks)

    @property
    def next_eligible_index(self) -> Optional[int]:
        """Index of the first task that is neither done nor blocked."""
        for i, task in enumerate(self.tasks):
            if not task.done and not task.blocked:
                return i
        return None

    @property
    def done_count(self) -> int:
        return sum(1 for t in self.tasks if t.done)

    @property
    def pending_count(self) -> int:
        return sum(1 for t in self.tasks if not t.done and not t.blocked)

    @property
    def blocked_count(self) -> int:
        return sum(1 for t in self.tasks if t.blocked)

    def task_at(self, index: int) -> Optional[Task]:
        """Get the task at an index, or None if the plan no longer has it."""
        if 0 <= index < len(self.tasks):
            return self.tasks[index]
        return None


class AgentRunResult(BaseModel):
    """Output of one completed session run.

    Display only: the controller never derives plan state from it.
    """
    session_id: Optional[str] = None
    role: AgentRole
    text: str = ""
    num_turns: int = 0
    total_cost_usd: Optional[float] = None


class TaskResult(BaseModel):
    """Outcome of driving one task through the worker/review cycle."""
    index: int
    text: str
    outcome: TaskOutcome
    iterations: int = 0
    reason: str = ""


class RunSummary(BaseModel):
    """Result of a full plan run."""
    outcome: RunOutcome
    stopped_at: Optional[TaskResult] = None
    tasks_approved: int = 0
    final: PlanSnapshot


class RunnerConfig(BaseModel):
    """Configuration for a plan run."""
    plan_path: Path = Field(..., description="Absolute path to the plan document")

    # Models
    worker_model: str = Field(default=DEFAULT_MODEL, description="Model for the worker session")
    reviewer_model: str = Field(default=DEFAULT_MODEL, description="Model for the reviewer session")

    # Loop bounds
    max_iterations_per_task: int = Field(
        default=5,
        ge=1,
        description="Maximum worker/review cycles per task before stopping the run"
    )

    # Paths
    commands_dir: Path = Field(
        default=Path("commands"),
        description="Directory holding worker.md, resume.md, review.md and resume-review.md"
    )
    working_dir: Path = Field(
        default_factory=Path.cwd,
        description="Directory the agent sessions operate in"
    )

    # SDK permissions
    allowed_tools: list[str] = Field(
        default_factory=lambda: ["Read", "Write", "Edit", "Bash", "Glob", "Grep"]
    )
    permission_mode: str = Field(default="acceptEdits")

    def model_for(self, role: AgentRole) -> str:
        """Get the configured model for a session role."""
        return self.worker_model if role == AgentRole.WORKER else self.reviewer_model


def resolve_plan_path(plan_arg: str, base_dir: Optional[Path] = None) -> Path:
    """Resolve a plan argument to an absolute path.

    A bare name with no path separator that does not end in ``.md`` is
    looked up as ``.plans/<name>.md``.
    """
    if "/" not in plan_arg and not plan_arg.endswith(PLAN_EXTENSION):
        plan_arg = f"{PLANS_DIR}/{plan_arg}{PLAN_EXTENSION}"

    path = Path(plan_arg)
    if not path.is_absolute():
        path = (base_dir or Path.cwd()) / path
    return path.resolve()
