"""Fatal errors raised by the plan runner.

Expected terminal outcomes (approved, blocked, max iterations) are return
values, not exceptions. Everything here unwinds to the CLI, which reports it
and exits nonzero.
"""

from pathlib import Path
from typing import Optional

from .models import ErrorCategory


class PlanRunnerError(Exception):
    """Base class for fatal plan runner errors."""


class DocumentNotFoundError(PlanRunnerError):
    """The plan document does not resolve to a readable file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(f"Plan not found: {self.path}")


class TemplateNotFoundError(PlanRunnerError):
    """A required prompt template file is missing."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        super().__init__(f"Prompt not found: {self.path}")


class AgentSessionError(PlanRunnerError):
    """Session creation or a run failed at the agent service boundary."""

    def __init__(self, message: str, category: Optional[ErrorCategory] = None):
        self.message = message
        self.category = category or ErrorCategory.UNKNOWN
        super().__init__(f"Agent session error: {message}")


class WorktreeError(PlanRunnerError):
    """Setting up a git worktree for a plan failed."""
