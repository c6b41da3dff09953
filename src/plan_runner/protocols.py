"""Protocol definitions for the agent service boundary.

The controller only needs two capabilities from the agent service: open a
session for a role, and run a prompt on it to completion. Keeping that
behind protocols lets tests swap in scripted sessions and keeps the
transport a black box.
"""

from typing import Protocol, runtime_checkable

from .models import AgentRole, AgentRunResult


@runtime_checkable
class AgentSession(Protocol):
    """A conversational session bound to one role for one task.

    Each run continues the same transcript, so a follow-up prompt can refer
    to the session's earlier reasoning.
    """

    @property
    def role(self) -> AgentRole:
        """Role this session was opened for."""
        ...

    async def run(self, prompt: str) -> AgentRunResult:
        """Send a prompt and wait until the response is fully drained.

        Raises:
            AgentSessionError: If the run fails.
        """
        ...

    async def close(self) -> None:
        """Release the session. Safe to call more than once."""
        ...


@runtime_checkable
class AgentSessionClient(Protocol):
    """Factory for independent agent sessions."""

    async def create_session(self, role: AgentRole) -> AgentSession:
        """Open a new session with an empty transcript.

        Raises:
            AgentSessionError: If the session cannot be created.
        """
        ...
