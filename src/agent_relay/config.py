"""Runtime configuration for agent invocation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from agent_relay.executor.models import AgentModel, coerce_model
from agent_relay.executor.retry import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_DELAYS


@dataclass(slots=True)
class RetrySettings:
    """Backoff settings for template invocations."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    delays_seconds: tuple[float, ...] = DEFAULT_RETRY_DELAYS


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    agents_root: Path = Path("agents")
    default_model: AgentModel = AgentModel.SONNET
    log_level: str = "INFO"
    retry: RetrySettings = field(default_factory=RetrySettings)

    @classmethod
    def from_env(cls, agents_root: Path | None = None) -> Settings:
        """Load settings from environment with defaults for local runs."""

        return cls(
            agents_root=agents_root or Path(os.getenv("AGENT_RELAY_AGENTS_ROOT", "agents")),
            default_model=coerce_model(os.getenv("AGENT_RELAY_DEFAULT_MODEL", "sonnet")),
            log_level=os.getenv("AGENT_RELAY_LOG_LEVEL", "INFO").strip().upper(),
            retry=RetrySettings(
                max_attempts=int(
                    os.getenv("AGENT_RELAY_MAX_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS)),
                ),
                delays_seconds=_parse_delays(
                    os.getenv("AGENT_RELAY_RETRY_DELAYS", ""),
                ),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for values the executor cannot use."""

        if self.retry.max_attempts < 0:
            raise ValueError("AGENT_RELAY_MAX_ATTEMPTS must be >= 0.")
        if any(delay < 0 for delay in self.retry.delays_seconds):
            raise ValueError("AGENT_RELAY_RETRY_DELAYS values must be >= 0.")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Unknown AGENT_RELAY_LOG_LEVEL: {self.log_level!r}")


def _parse_delays(raw: str) -> tuple[float, ...]:
    tokens = [part.strip() for part in raw.split(",") if part.strip()]
    if not tokens:
        return DEFAULT_RETRY_DELAYS
    try:
        return tuple(float(token) for token in tokens)
    except ValueError as error:
        raise ValueError(
            f"Invalid AGENT_RELAY_RETRY_DELAYS value: {raw!r}. "
            "Expected comma-separated seconds, for example '1,3,5'.",
        ) from error
