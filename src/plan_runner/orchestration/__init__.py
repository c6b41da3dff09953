"""Orchestration components for the plan runner.

- TaskIterationController: Drives one task through worker/review cycles
- PlanDriver: Selects tasks and runs the plan to a terminal state
"""

from .task_controller import TaskIterationController, IterationState
from .plan_driver import PlanDriver

__all__ = [
    "TaskIterationController",
    "IterationState",
    "PlanDriver",
]
