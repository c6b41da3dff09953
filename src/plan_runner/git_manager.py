"""Git operations for starting work on a plan.

Creates a sibling worktree on a branch named after the plan and moves the
plan file into it as ``plan.md``.
"""

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .errors import WorktreeError
from .models import PLAN_EXTENSION


WORKTREE_PLAN_NAME = "plan.md"


@dataclass
class WorktreeInfo:
    """Where a plan's worktree was created."""
    branch: str
    worktree_path: Path
    plan_path: Path
    branch_existed: bool


class GitManager:
    """Manages git operations for the repository holding the plans."""

    def __init__(self, repo_path: Path):
        self.repo_path = Path(repo_path)

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        """Run a git command."""
        return subprocess.run(
            ["git", *args],
            cwd=self.repo_path,
            capture_output=True,
            text=True,
            check=check
        )

    def is_git_repo(self) -> bool:
        """Check if the path is inside a git repository."""
        result = self._run("rev-parse", "--git-dir", check=False)
        return result.returncode == 0

    def branch_exists(self, branch: str) -> bool:
        """Check if a local branch exists."""
        result = self._run("show-ref", "--verify", "--quiet", f"refs/heads/{branch}", check=False)
        return result.returncode == 0

    def add_worktree(self, worktree_path: Path, branch: str) -> bool:
        """Add a worktree, creating the branch if it doesn't exist.

        Returns:
            True if the branch already existed.

        Raises:
            WorktreeError: If git refuses to create the worktree.
        """
        existed = self.branch_exists(branch)
        if existed:
            args = ["worktree", "add", str(worktree_path), branch]
        else:
            args = ["worktree", "add", "-b", branch, str(worktree_path)]

        result = self._run(*args, check=False)
        if result.returncode != 0:
            raise WorktreeError(
                f"git worktree add failed: {result.stderr.strip() or result.stdout.strip()}"
            )
        return existed

    def start_plan(self, plan_file: Path) -> WorktreeInfo:
        """Create a worktree for a plan and move the plan into it.

        The worktree is a sibling of the repository named
        ``<repo>--<plan>`` and the branch is named after the plan.

        Raises:
            WorktreeError: If the plan is missing or git fails.
        """
        plan_file = Path(plan_file)
        if not plan_file.is_file():
            raise WorktreeError(f"Plan file not found: {plan_file}")
        if not self.is_git_repo():
            raise WorktreeError(f"Not a git repository: {self.repo_path}")

        plan_name = plan_file.name
        if plan_name.endswith(PLAN_EXTENSION) and plan_name != PLAN_EXTENSION:
            plan_name = plan_name[:-len(PLAN_EXTENSION)]
        repo_root = self.repo_path.resolve()
        worktree_path = repo_root.parent / f"{repo_root.name}--{plan_name}"

        existed = self.add_worktree(worktree_path, plan_name)

        target = worktree_path / WORKTREE_PLAN_NAME
        try:
            shutil.move(str(plan_file), str(target))
        except OSError as e:
            raise WorktreeError(f"Failed to move plan into worktree: {e}") from e

        return WorktreeInfo(
            branch=plan_name,
            worktree_path=worktree_path,
            plan_path=target,
            branch_existed=existed,
        )
