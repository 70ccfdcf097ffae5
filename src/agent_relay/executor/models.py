"""Domain models for agent invocation requests and responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class AgentModel(str, Enum):
    """Reasoning tiers accepted by the agent CLI."""

    SONNET = "sonnet"
    OPUS = "opus"


class ResultCode(str, Enum):
    """Normalized invocation outcome classes used by retry policy."""

    NONE = "none"
    AGENT_ERROR = "agent_error"
    TIMEOUT_ERROR = "timeout_error"
    INVOCATION_ERROR = "invocation_error"
    ERROR_DURING_EXECUTION = "error_during_execution"


RETRYABLE_RESULT_CODES: frozenset[ResultCode] = frozenset(
    {
        ResultCode.AGENT_ERROR,
        ResultCode.TIMEOUT_ERROR,
        ResultCode.INVOCATION_ERROR,
        ResultCode.ERROR_DURING_EXECUTION,
    },
)


def coerce_model(value: AgentModel | str) -> AgentModel:
    """Return `AgentModel` for enum or raw string input."""

    if isinstance(value, AgentModel):
        return value
    try:
        return AgentModel(str(value).strip().lower())
    except ValueError as error:
        allowed = ", ".join(model.value for model in AgentModel)
        raise ValueError(f"Unsupported model {value!r}. Expected one of: {allowed}.") from error


@dataclass(slots=True, frozen=True)
class InvocationRequest:
    """One agent call. Constructed per attempt chain and consumed once."""

    prompt: str
    agent_id: str
    output_path: Path
    agent_name: str = "ops"
    model: AgentModel = AgentModel.SONNET
    skip_permissions: bool = False
    working_dir: Path | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.prompt, str) or not self.prompt.strip():
            raise ValueError("prompt must be a non-empty string")
        if not self.agent_id or not self.agent_id.strip():
            raise ValueError("agent_id must be a non-empty string")
        if not self.agent_name or not self.agent_name.strip():
            raise ValueError("agent_name must be a non-empty string")
        object.__setattr__(self, "model", coerce_model(self.model))
        object.__setattr__(self, "output_path", Path(self.output_path))
        if self.working_dir is not None:
            object.__setattr__(self, "working_dir", Path(self.working_dir))


@dataclass(slots=True)
class InvocationResponse:
    """Caller-facing result of one invocation chain."""

    output: str
    success: bool
    session_id: str | None = None
    result_code: ResultCode = ResultCode.NONE

    def __post_init__(self) -> None:
        if self.success and self.result_code is not ResultCode.NONE:
            raise ValueError(
                f"Successful response cannot carry result code {self.result_code.value!r}",
            )


@dataclass(slots=True, frozen=True)
class TemplateRequest:
    """Slash-command invocation: command name plus positional arguments."""

    agent_name: str
    command: str
    agent_id: str
    args: tuple[str, ...] = field(default_factory=tuple)
    model: AgentModel = AgentModel.SONNET
    working_dir: Path | None = None

    def __post_init__(self) -> None:
        if not self.command or not self.command.strip().lstrip("/"):
            raise ValueError("command must be a non-empty slash command name")
        object.__setattr__(self, "args", tuple(str(arg) for arg in self.args))
        object.__setattr__(self, "model", coerce_model(self.model))
        if self.working_dir is not None:
            object.__setattr__(self, "working_dir", Path(self.working_dir))
