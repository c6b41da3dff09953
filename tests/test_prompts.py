"""Tests for prompt template loading."""

import pytest

from plan_runner.errors import TemplateNotFoundError
from plan_runner.prompts import PLACEHOLDER, PromptLibrary, PromptTemplate


@pytest.fixture
def commands_dir(tmp_path):
    """Commands directory with all four templates."""
    commands = tmp_path / "commands"
    commands.mkdir()
    for template in PromptTemplate:
        (commands / template.value).write_text(f"{template.name} for {PLACEHOLDER}\n")
    return commands


class TestPromptLibrary:
    def test_substitutes_plan_path(self, commands_dir, tmp_path):
        """Should replace the placeholder with the plan path."""
        plan = tmp_path / "plan.md"
        library = PromptLibrary(commands_dir, plan)

        assert library.load(PromptTemplate.WORKER) == f"WORKER for {plan}\n"
        assert library.load(PromptTemplate.RESUME_REVIEW) == f"RESUME_REVIEW for {plan}\n"

    def test_replaces_first_placeholder_only(self, commands_dir, tmp_path):
        """Only the first placeholder is substituted."""
        (commands_dir / "review.md").write_text(f"{PLACEHOLDER} and {PLACEHOLDER}")
        library = PromptLibrary(commands_dir, tmp_path / "plan.md")

        assert library.load(PromptTemplate.REVIEW) == f"{tmp_path / 'plan.md'} and {PLACEHOLDER}"

    def test_loads_verbatim_without_placeholder(self, commands_dir, tmp_path):
        """Templates without a placeholder are returned unchanged."""
        (commands_dir / "resume.md").write_text("Keep going.\n")
        library = PromptLibrary(commands_dir, tmp_path / "plan.md")

        assert library.load(PromptTemplate.RESUME) == "Keep going.\n"

    def test_reads_template_on_each_load(self, commands_dir, tmp_path):
        """Edits to a template are picked up by the next load."""
        library = PromptLibrary(commands_dir, tmp_path / "plan.md")
        library.load(PromptTemplate.WORKER)

        (commands_dir / "worker.md").write_text("changed")
        assert library.load(PromptTemplate.WORKER) == "changed"

    def test_missing_template_raises(self, commands_dir, tmp_path):
        """A missing template is a TemplateNotFoundError."""
        (commands_dir / "resume-review.md").unlink()
        library = PromptLibrary(commands_dir, tmp_path / "plan.md")

        with pytest.raises(TemplateNotFoundError) as exc_info:
            library.load(PromptTemplate.RESUME_REVIEW)

        assert exc_info.value.path.name == "resume-review.md"
        assert "Prompt not found" in str(exc_info.value)

    def test_missing_templates_lists_gaps(self, commands_dir, tmp_path):
        """Pre-flight check reports every missing file."""
        (commands_dir / "worker.md").unlink()
        (commands_dir / "review.md").unlink()
        library = PromptLibrary(commands_dir, tmp_path / "plan.md")

        names = [p.name for p in library.missing_templates()]
        assert names == ["worker.md", "review.md"]

    def test_no_missing_templates(self, commands_dir, tmp_path):
        library = PromptLibrary(commands_dir, tmp_path / "plan.md")
        assert library.missing_templates() == []
