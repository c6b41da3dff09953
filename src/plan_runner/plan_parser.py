"""Plan document parser.

Turns the raw markdown plan into a PlanSnapshot. Parsing is a pure function
of the text: the worker and reviewer edit the document between steps, so
every call rescans the whole file and nothing is diffed or cached.

The parser is a small lexer (``classify_line``) feeding a single-pass,
section-aware reducer (``parse_plan``).
"""

import re
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import DocumentNotFoundError
from .models import PlanSnapshot, Task


# Heading that opens the task section, and the prefix of a same-level heading
SECTION_PREFIX = "## TODO"
HEADING_PREFIX = "## "

# Annotation text that flags a task as having outstanding review feedback
REVIEW_FEEDBACK_MARKER = "review: status=request_changes"

# Checkbox forms, checked in this order
DONE_PATTERN = re.compile(r"^- \[[xX]\] ([^\r]+)")
PENDING_PATTERN = re.compile(r"^- \[ \] ([^\r]+)")
BLOCKED_PATTERN = re.compile(r"^- \[[bB]\] ([^\r]+)")


class LineTag(str, Enum):
    """Closed set of line kinds produced by the lexer."""
    SECTION_START = "section_start"
    HEADING = "heading"
    TASK_DONE = "task_done"
    TASK_PENDING = "task_pending"
    TASK_BLOCKED = "task_blocked"
    TEXT = "text"


_TASK_PATTERNS = (
    (LineTag.TASK_DONE, DONE_PATTERN),
    (LineTag.TASK_PENDING, PENDING_PATTERN),
    (LineTag.TASK_BLOCKED, BLOCKED_PATTERN),
)


def classify_line(line: str) -> tuple[LineTag, Optional[str]]:
    """Classify a single line.

    Returns:
        Tuple of (tag, task text). Task text is only set for checkbox lines.
    """
    if line.startswith(SECTION_PREFIX):
        return LineTag.SECTION_START, None
    if line.startswith(HEADING_PREFIX):
        return LineTag.HEADING, None

    for tag, pattern in _TASK_PATTERNS:
        match = pattern.match(line)
        if match:
            return tag, match.group(1)

    return LineTag.TEXT, None


def parse_plan(text: str) -> PlanSnapshot:
    """Parse plan text into a snapshot of task state.

    The task section starts at a ``## TODO`` heading and ends at the next
    ``## `` heading. Non-checkbox lines inside the section are annotations of
    the most recent task; an annotation containing the review feedback marker
    sets that task's ``has_review_feedback`` flag.
    """
    tasks: list[Task] = []
    current: Optional[Task] = None
    in_section = False

    for line in text.split("\n"):
        tag, task_text = classify_line(line)

        if tag == LineTag.SECTION_START:
            in_section = True
            continue
        if not in_section:
            continue
        if tag == LineTag.HEADING:
            break

        if tag == LineTag.TEXT:
            if current is not None and REVIEW_FEEDBACK_MARKER in line:
                current = current.model_copy(update={"has_review_feedback": True})
            continue

        if current is not None:
            tasks.append(current)
        current = Task(
            text=task_text,
            done=tag == LineTag.TASK_DONE,
            blocked=tag == LineTag.TASK_BLOCKED,
        )

    if current is not None:
        tasks.append(current)

    return PlanSnapshot(tasks=tuple(tasks))


def read_plan(plan_path: Path | str) -> PlanSnapshot:
    """Read the plan from disk and parse it.

    Raises:
        DocumentNotFoundError: If the file is missing or unreadable.
    """
    path = Path(plan_path)
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentNotFoundError(path) from e
    return parse_plan(content)
