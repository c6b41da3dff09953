"""Tests for the CLI commands."""

import pytest
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from plan_runner.cli import run_plan, start_plan
from plan_runner.errors import WorktreeError
from plan_runner.git_manager import WorktreeInfo
from plan_runner.prompts import PLACEHOLDER, PromptTemplate
from plan_runner.session import MockSessionClient


PLAN_TEXT = "## TODO\n- [x] add login form\n- [ ] wire up validation\n"


@pytest.fixture
def runner():
    return CliRunner()


def write_commands(base: Path) -> Path:
    commands = base / "commands"
    commands.mkdir()
    for template in PromptTemplate:
        (commands / template.value).write_text(f"{template.name} {PLACEHOLDER}")
    return commands


class TestRunPlan:
    def test_missing_argument_prints_usage(self, runner):
        result = runner.invoke(run_plan, [])

        assert result.exit_code != 0
        assert "Usage" in result.output

    def test_missing_plan_is_fatal(self, runner, tmp_path):
        result = runner.invoke(run_plan, [str(tmp_path / "missing.md")])

        assert result.exit_code == 1
        assert "Plan not found" in result.output

    def test_rejects_zero_iterations(self, runner, tmp_path):
        plan = tmp_path / "plan.md"
        plan.write_text(PLAN_TEXT)

        result = runner.invoke(run_plan, [str(plan), "--max-iterations-per-task", "0"])

        assert result.exit_code != 0

    def test_status_shows_tally(self, runner, tmp_path):
        plan = tmp_path / "plan.md"
        plan.write_text(PLAN_TEXT)

        result = runner.invoke(run_plan, [str(plan), "--status"])

        assert result.exit_code == 0
        assert "Found 2 tasks" in result.output
        assert "Done: 1" in result.output
        assert "wire up validation" in result.output

    def test_bare_name_resolves_to_plans_dir(self, runner):
        with runner.isolated_filesystem():
            Path(".plans").mkdir()
            Path(".plans/add-auth.md").write_text(PLAN_TEXT)

            result = runner.invoke(run_plan, ["add-auth", "--status"])

        assert result.exit_code == 0
        assert "Found 2 tasks" in result.output

    def test_runs_plan_with_session_client(self, runner, tmp_path):
        plan = tmp_path / "plan.md"
        plan.write_text(PLAN_TEXT)
        commands = write_commands(tmp_path)

        def worker(prompt, run):
            plan.write_text(plan.read_text().replace("- [ ] wire", "- [x] wire"))

        client = MockSessionClient(worker=worker)
        with patch("plan_runner.cli.SDKSessionClient", return_value=client) as factory:
            result = runner.invoke(run_plan, [
                str(plan),
                "--commands-dir", str(commands),
                "--worker-model", "worker-model",
                "--max-iterations-per-todo", "3",
            ])

        assert result.exit_code == 0, result.output
        assert "All tasks complete" in result.output
        config = factory.call_args[0][0]
        assert config.worker_model == "worker-model"
        assert config.max_iterations_per_task == 3
        assert len(client.sessions) == 2

    def test_blocked_plan_exits_cleanly(self, runner, tmp_path):
        plan = tmp_path / "plan.md"
        plan.write_text("## TODO\n- [B] migrate schema\n")
        client = MockSessionClient()

        with patch("plan_runner.cli.SDKSessionClient", return_value=client):
            result = runner.invoke(run_plan, [str(plan)])

        assert result.exit_code == 0
        assert "blocked" in result.output
        assert client.sessions == []

    def test_session_error_exits_nonzero(self, runner, tmp_path):
        plan = tmp_path / "plan.md"
        plan.write_text(PLAN_TEXT)
        commands = write_commands(tmp_path)
        client = MockSessionClient(fail_on_create=ConnectionError("connection refused"))

        with patch("plan_runner.cli.SDKSessionClient", return_value=client):
            result = runner.invoke(run_plan, [str(plan), "--commands-dir", str(commands)])

        assert result.exit_code == 1
        assert "Agent session error" in result.output
        assert "transient" in result.output

    def test_missing_template_exits_nonzero(self, runner, tmp_path):
        plan = tmp_path / "plan.md"
        plan.write_text(PLAN_TEXT)

        with patch("plan_runner.cli.SDKSessionClient", return_value=MockSessionClient()):
            result = runner.invoke(run_plan, [str(plan), "--commands-dir", str(tmp_path / "none")])

        assert result.exit_code == 1
        assert "Prompt not found" in result.output


class TestStartPlan:
    def test_reports_worktree(self, runner, tmp_path):
        info = WorktreeInfo(
            branch="add-auth",
            worktree_path=tmp_path / "repo--add-auth",
            plan_path=tmp_path / "repo--add-auth" / "plan.md",
            branch_existed=False,
        )
        with patch("plan_runner.cli.GitManager") as manager:
            manager.return_value.start_plan.return_value = info
            result = runner.invoke(start_plan, [".plans/add-auth.md"])

        assert result.exit_code == 0
        assert "Created branch 'add-auth'" in result.output
        manager.return_value.start_plan.assert_called_once_with(Path(".plans/add-auth.md"))

    def test_failure_exits_nonzero(self, runner):
        with patch("plan_runner.cli.GitManager") as manager:
            manager.return_value.start_plan.side_effect = WorktreeError("Plan file not found: x.md")
            result = runner.invoke(start_plan, ["x.md"])

        assert result.exit_code == 1
        assert "Plan file not found" in result.output

    def test_missing_argument_prints_usage(self, runner):
        result = runner.invoke(start_plan, [])

        assert result.exit_code != 0
        assert "Usage" in result.output
