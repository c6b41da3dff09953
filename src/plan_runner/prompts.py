"""Prompt template loading.

The four templates live in the commands directory and are read verbatim on
every use. The ``$ARGUMENTS`` token is replaced with the plan path.
"""

from enum import Enum
from pathlib import Path

from .errors import TemplateNotFoundError


PLACEHOLDER = "$ARGUMENTS"


class PromptTemplate(str, Enum):
    """Named prompt variants, valued by their file name."""
    WORKER = "worker.md"
    RESUME = "resume.md"
    REVIEW = "review.md"
    RESUME_REVIEW = "resume-review.md"


class PromptLibrary:
    """Loads prompt templates for a plan."""

    def __init__(self, commands_dir: Path | str, plan_path: Path | str):
        self.commands_dir = Path(commands_dir)
        self.plan_path = Path(plan_path)

    def template_path(self, template: PromptTemplate) -> Path:
        return (self.commands_dir / template.value).resolve()

    def load(self, template: PromptTemplate) -> str:
        """Load a template with the plan path substituted.

        Raises:
            TemplateNotFoundError: If the template file is missing.
        """
        path = self.template_path(template)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateNotFoundError(path) from e
        return content.replace(PLACEHOLDER, str(self.plan_path), 1)

    def missing_templates(self) -> list[Path]:
        """List template files that do not exist, for pre-flight checks."""
        return [
            self.template_path(t) for t in PromptTemplate
            if not self.template_path(t).is_file()
        ]
