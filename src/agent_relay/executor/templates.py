"""Slash-command prompt building and the two caller-facing entry points."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from pathlib import Path

from agent_relay.executor.claude import ClaudeCodeExecutor
from agent_relay.executor.ids import OutputPathAllocator, agent_dir
from agent_relay.executor.models import (
    InvocationRequest,
    InvocationResponse,
    TemplateRequest,
)
from agent_relay.executor.retry import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAYS,
    invoke_with_retry,
)

logger = logging.getLogger(__name__)

COMMAND_MARKER = "/"
PROMPTS_DIR_NAME = "prompts"

_SLASH_COMMAND = re.compile(r"^/(\w+)")


def build_template_prompt(command: str, args: Sequence[str] = ()) -> str:
    """Join the slash command and its arguments into one prompt line."""

    name = command.strip()
    if not name.startswith(COMMAND_MARKER):
        name = f"{COMMAND_MARKER}{name}"
    return f"{name} {' '.join(args)}".strip()


def save_prompt(
    prompt: str,
    *,
    agent_id: str,
    agent_name: str,
    agents_root: Path,
) -> Path | None:
    """Persist the literal slash-command prompt for audit; never raises."""

    match = _SLASH_COMMAND.match(prompt)
    if match is None:
        return None

    prompt_file = agent_dir(agents_root, agent_id, agent_name) / PROMPTS_DIR_NAME / (
        f"{match.group(1)}.txt"
    )
    try:
        prompt_file.parent.mkdir(parents=True, exist_ok=True)
        prompt_file.write_text(prompt, "utf-8")
    except OSError as error:
        logger.warning("Failed to save prompt to %s: %s", prompt_file, error)
        return None
    return prompt_file


def execute_prompt(
    request: InvocationRequest,
    *,
    executor: ClaudeCodeExecutor | None = None,
) -> InvocationResponse:
    """Single raw-prompt invocation without retry."""

    return (executor or ClaudeCodeExecutor()).invoke(request)


def execute_template(  # noqa: PLR0913
    request: TemplateRequest,
    *,
    agents_root: Path,
    executor: ClaudeCodeExecutor | None = None,
    allocator: OutputPathAllocator | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delays_seconds: Sequence[float] = DEFAULT_RETRY_DELAYS,
    sleep: Callable[[float], None] | None = None,
) -> InvocationResponse:
    """Build, audit and run a slash command with retry."""

    prompt = build_template_prompt(request.command, request.args)
    path_allocator = allocator or OutputPathAllocator(agents_root)
    output_path = path_allocator.allocate(request.agent_id, request.agent_name)

    prompt_request = InvocationRequest(
        prompt=prompt,
        agent_id=request.agent_id,
        agent_name=request.agent_name,
        model=request.model,
        skip_permissions=True,
        output_path=output_path,
        working_dir=request.working_dir,
    )

    save_prompt(
        prompt,
        agent_id=request.agent_id,
        agent_name=request.agent_name,
        agents_root=agents_root,
    )
    logger.info(
        "Executing %s for agent %s (%s)",
        prompt.split(maxsplit=1)[0],
        request.agent_name,
        request.agent_id,
    )

    active_executor = executor or ClaudeCodeExecutor()
    retry_kwargs = {"sleep": sleep} if sleep is not None else {}
    try:
        return invoke_with_retry(
            active_executor.invoke,
            prompt_request,
            max_attempts,
            delays_seconds,
            **retry_kwargs,
        )
    finally:
        path_allocator.release(output_path)
