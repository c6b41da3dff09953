"""Agent sessions for the worker and reviewer roles.

Uses the Claude Agent SDK. Each session owns one connected ClaudeSDKClient,
so every prompt sent on it continues the same conversation.

Architecture:
- SDKAgentSession / SDKSessionClient: SDK-backed implementation
- MockAgentSession / MockSessionClient: scripted sessions for testing
- classify_error(): Categorise failures for diagnostics (never retried)
"""

import uuid
from typing import Optional, Callable

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ClaudeSDKClient,
    ResultMessage,
    TextBlock,
)
from rich.console import Console

from .errors import AgentSessionError
from .models import AgentRole, AgentRunResult, ErrorCategory, RunnerConfig


console = Console()


def safe_print(text: str, **kwargs) -> None:
    """Print text handling Unicode encoding errors on Windows.

    Falls back to replacing unencodable characters with '?'.
    Always flushes so streamed output is visible immediately.
    """
    kwargs.setdefault('flush', True)
    try:
        print(text, **kwargs)
    except UnicodeEncodeError:
        safe_text = text.encode('ascii', errors='replace').decode('ascii')
        print(safe_text, **kwargs)


# =============================================================================
# Error Classification
# =============================================================================

def classify_error(error_text: str) -> ErrorCategory:
    """Classify an error message for the diagnostic shown to the operator.

    Nothing is retried. The category only tells the operator what to do
    before re-running: top up the account (BILLING), fix the API key (AUTH),
    wait for the quota window (RATE_LIMIT) or simply re-run (TRANSIENT).
    """
    if not error_text:
        return ErrorCategory.UNKNOWN

    error_lower = error_text.lower()

    if any(phrase in error_lower for phrase in ["credit balance", "billing", "payment required"]):
        return ErrorCategory.BILLING

    if any(phrase in error_lower for phrase in ["unauthorized", "401", "api key", "forbidden", "403"]):
        return ErrorCategory.AUTH

    if any(phrase in error_lower for phrase in ["rate limit", "429", "too many requests"]):
        return ErrorCategory.RATE_LIMIT

    if any(phrase in error_lower for phrase in [
        "timed out",
        "timeout",
        "connection",
        "network",
        "503",
        "service unavailable",
    ]):
        return ErrorCategory.TRANSIENT

    return ErrorCategory.UNKNOWN


def _session_error(action: str, error: Exception) -> AgentSessionError:
    error_str = str(error) or type(error).__name__
    return AgentSessionError(f"{action}: {error_str}", classify_error(error_str))


# =============================================================================
# SDK Session Implementation
# =============================================================================

class SDKAgentSession:
    """Session backed by a connected ClaudeSDKClient.

    The client stays connected for the session's lifetime, so the transcript
    carries over between runs. Output is streamed to the console and each run
    only returns once the response is fully drained.
    """

    def __init__(self, role: AgentRole, client: ClaudeSDKClient, model: str):
        self._role = role
        self._client = client
        self.model = model
        self.session_id: Optional[str] = None
        self.run_count = 0
        self._closed = False

    @property
    def role(self) -> AgentRole:
        return self._role

    async def run(self, prompt: str) -> AgentRunResult:
        """Send a prompt and drain the full response."""
        if self._closed:
            raise AgentSessionError(f"{self._role.value} session is already closed")

        self.run_count += 1
        text_parts: list[str] = []
        result_message: Optional[ResultMessage] = None

        try:
            await self._client.query(prompt)
            async for message in self._client.receive_response():
                if isinstance(message, AssistantMessage):
                    for block in message.content:
                        if isinstance(block, TextBlock):
                            safe_print(block.text)
                            text_parts.append(block.text)
                elif isinstance(message, ResultMessage):
                    result_message = message
        except Exception as e:
            raise _session_error("Failed to send prompt", e) from e

        if result_message is not None:
            self.session_id = result_message.session_id or self.session_id
            if result_message.is_error:
                detail = result_message.result or result_message.subtype
                raise AgentSessionError(
                    f"Agent returned error: {detail}",
                    classify_error(str(detail))
                )

        return AgentRunResult(
            session_id=self.session_id,
            role=self._role,
            text="\n".join(text_parts),
            num_turns=result_message.num_turns if result_message else 0,
            total_cost_usd=result_message.total_cost_usd if result_message else None,
        )

    async def close(self) -> None:
        """Disconnect the underlying client."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._client.disconnect()
        except Exception as e:
            raise _session_error("Failed to close session", e) from e


class SDKSessionClient:
    """Opens SDK sessions with the per-role model from the runner config."""

    def __init__(self, config: RunnerConfig):
        self.config = config

    def _build_options(self, role: AgentRole) -> ClaudeAgentOptions:
        return ClaudeAgentOptions(
            model=self.config.model_for(role),
            allowed_tools=self.config.allowed_tools,
            permission_mode=self.config.permission_mode,
            cwd=str(self.config.working_dir),
        )

    async def create_session(self, role: AgentRole) -> SDKAgentSession:
        """Create and connect a fresh session for a role."""
        model = self.config.model_for(role)
        client = ClaudeSDKClient(options=self._build_options(role))
        try:
            await client.connect()
        except Exception as e:
            raise _session_error(f"Failed to create {role.value} session", e) from e

        console.print(f"[dim]Opened {role.value} session ({model})[/dim]")
        return SDKAgentSession(role, client, model)


# =============================================================================
# Mock Session (for testing)
# =============================================================================

# Called with (prompt, run_number) each time a mock session runs. Tests use it
# to edit the plan file the way a real agent would.
MockRunAction = Callable[[str, int], None]


class MockAgentSession:
    """Scripted session for testing without the agent service."""

    def __init__(
        self,
        role: AgentRole,
        on_run: Optional[MockRunAction] = None,
        fail_on_run: Optional[Exception] = None
    ):
        self._role = role
        self.session_id = f"mock_{role.value}_{uuid.uuid4().hex[:8]}"
        self.on_run = on_run
        self.fail_on_run = fail_on_run
        self.prompts: list[str] = []
        self.closed = False

    @property
    def role(self) -> AgentRole:
        return self._role

    async def run(self, prompt: str) -> AgentRunResult:
        if self.closed:
            raise AgentSessionError(f"{self._role.value} session is already closed")
        if self.fail_on_run is not None:
            raise _session_error("Failed to send prompt", self.fail_on_run) from self.fail_on_run

        self.prompts.append(prompt)
        if self.on_run:
            self.on_run(prompt, len(self.prompts))

        return AgentRunResult(
            session_id=self.session_id,
            role=self._role,
            text=f"[MOCK] {self._role.value} run {len(self.prompts)} complete",
            num_turns=1,
        )

    async def close(self) -> None:
        self.closed = True


class MockSessionClient:
    """Creates scripted sessions and records every session it hands out."""

    def __init__(
        self,
        worker: Optional[MockRunAction] = None,
        reviewer: Optional[MockRunAction] = None,
        fail_on_create: Optional[Exception] = None,
        fail_on_run: Optional[Exception] = None
    ):
        self._actions = {AgentRole.WORKER: worker, AgentRole.REVIEWER: reviewer}
        self.fail_on_create = fail_on_create
        self.fail_on_run = fail_on_run
        self.sessions: list[MockAgentSession] = []

    async def create_session(self, role: AgentRole) -> MockAgentSession:
        if self.fail_on_create is not None:
            raise _session_error(
                f"Failed to create {role.value} session", self.fail_on_create
            ) from self.fail_on_create

        session = MockAgentSession(role, self._actions[role], self.fail_on_run)
        self.sessions.append(session)
        return session

    def sessions_for(self, role: AgentRole) -> list[MockAgentSession]:
        """Get the sessions created for a role, in creation order."""
        return [s for s in self.sessions if s.role == role]
