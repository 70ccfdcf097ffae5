"""Controllers for agent-relay CLI commands."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from agent_relay.config import Settings
from agent_relay.executor import (
    ClaudeCodeExecutor,
    InvalidInvocationError,
    InvocationRequest,
    InvocationResponse,
    OutputPathAllocator,
    TemplateRequest,
    execute_prompt,
    execute_template,
    make_agent_id,
)
from agent_relay.executor.models import coerce_model
from agent_relay.output_parsing import parse_json
from agent_relay.phases import PhaseChain, PhaseChainResult

logger = logging.getLogger(__name__)

_RULE = "=" * 60
_PROMPT_PREVIEW_CHARS = 100


@dataclass(slots=True)
class PromptCommand:
    """CLI input for a raw prompt run."""

    prompt: str
    model: str | None
    working_dir: Path | None
    agents_root: Path | None = None
    skip_permissions: bool = False


@dataclass(slots=True)
class SlashCommand:
    """CLI input for a slash-command run."""

    command: str
    args: tuple[str, ...]
    model: str | None
    working_dir: Path | None
    agents_root: Path | None = None
    parse_json: bool = False


@dataclass(slots=True)
class PhaseChainCommand:
    """CLI input for build and plan-implement chains."""

    task: str
    worktree_name: str
    working_dir: Path | None
    model: str | None
    prototype: str | None = None
    agent_id: str | None = None
    agents_root: Path | None = None


@dataclass(slots=True)
class CommandResult:
    """Rendered report plus overall status."""

    lines: list[str]
    success: bool


class AgentCliController:
    """Coordinates prompt, slash-command, and phase-chain CLI operations."""

    def __init__(self, executor: ClaudeCodeExecutor | None = None) -> None:
        self.executor = executor

    def prompt(self, command: PromptCommand) -> CommandResult:
        settings = _settings(command.agents_root)
        model = coerce_model(command.model or settings.default_model)
        agent_id = make_agent_id()
        agent_name = "prompt-executor"
        output_path = OutputPathAllocator(settings.agents_root).allocate(agent_id, agent_name)
        working_dir = (command.working_dir or Path.cwd()).resolve()

        preview = command.prompt[:_PROMPT_PREVIEW_CHARS]
        if len(command.prompt) > _PROMPT_PREVIEW_CHARS:
            preview += "..."
        logger.info("Executing prompt with %s model: %s", model.value, preview)

        try:
            response = execute_prompt(
                InvocationRequest(
                    prompt=command.prompt,
                    agent_id=agent_id,
                    agent_name=agent_name,
                    model=model,
                    skip_permissions=command.skip_permissions,
                    output_path=output_path.resolve(),
                    working_dir=working_dir,
                ),
                executor=self._executor(),
            )
        except InvalidInvocationError as error:
            return CommandResult(lines=[f"Invalid invocation: {error}"], success=False)
        lines = _render_response("Response:", response)
        lines.append(f"agent_id={agent_id} output_file={output_path}")
        return CommandResult(lines=lines, success=response.success)

    def slash(self, command: SlashCommand) -> CommandResult:
        settings = _settings(command.agents_root)
        agent_id = make_agent_id()
        try:
            response = execute_template(
                TemplateRequest(
                    agent_name="slash-command-executor",
                    command=command.command,
                    args=command.args,
                    agent_id=agent_id,
                    model=coerce_model(command.model or settings.default_model),
                    working_dir=(command.working_dir or Path.cwd()).resolve(),
                ),
                agents_root=settings.agents_root.resolve(),
                executor=self._executor(),
                max_attempts=settings.retry.max_attempts,
                delays_seconds=settings.retry.delays_seconds,
            )
        except InvalidInvocationError as error:
            return CommandResult(lines=[f"Invalid invocation: {error}"], success=False)

        lines = _render_response("Output:", response)
        if command.parse_json and response.success:
            try:
                payload = parse_json(response.output)
            except ValueError as error:
                lines.append(f"JSON parse failed: {error}")
                return CommandResult(lines=lines, success=False)
            lines.append(json.dumps(payload, ensure_ascii=False, indent=2))
        lines.append(f"agent_id={agent_id}")
        return CommandResult(lines=lines, success=response.success)

    def build(self, command: PhaseChainCommand) -> CommandResult:
        chain, working_dir = self._chain(command)
        result = chain.run_build(
            task=command.task,
            worktree_name=command.worktree_name,
            working_dir=working_dir,
        )
        return CommandResult(lines=_render_chain("Build", result), success=result.success)

    def plan_implement(self, command: PhaseChainCommand) -> CommandResult:
        chain, working_dir = self._chain(command)
        result = chain.run_plan_implement(
            task=command.task,
            worktree_name=command.worktree_name,
            working_dir=working_dir,
            prototype=command.prototype,
        )
        return CommandResult(
            lines=_render_chain("Plan-implement", result),
            success=result.success,
        )

    def _chain(self, command: PhaseChainCommand) -> tuple[PhaseChain, Path]:
        settings = _settings(command.agents_root)
        agents_root = settings.agents_root.resolve()
        executor = self._executor()
        allocator = OutputPathAllocator(agents_root)

        def run_template(request: TemplateRequest) -> InvocationResponse:
            return execute_template(
                request,
                agents_root=agents_root,
                executor=executor,
                allocator=allocator,
                max_attempts=settings.retry.max_attempts,
                delays_seconds=settings.retry.delays_seconds,
            )

        chain = PhaseChain(
            run_template=run_template,
            agents_root=agents_root,
            agent_id=command.agent_id or make_agent_id(),
            model=coerce_model(command.model or settings.default_model),
        )
        return chain, (command.working_dir or Path.cwd()).resolve()

    def _executor(self) -> ClaudeCodeExecutor:
        if self.executor is None:
            self.executor = ClaudeCodeExecutor()
        return self.executor


def _settings(agents_root: Path | None) -> Settings:
    settings = Settings.from_env(agents_root=agents_root)
    settings.validate()
    return settings


def _render_response(title: str, response: InvocationResponse) -> list[str]:
    lines = [_RULE, title, _RULE, response.output, _RULE]
    status = "succeeded" if response.success else "failed"
    lines.append(f"Status: {status} result_code={response.result_code.value}")
    if response.session_id:
        lines.append(f"session_id={response.session_id}")
    return lines


def _render_chain(title: str, result: PhaseChainResult) -> list[str]:
    lines = [f"{title} workflow: agent_id={result.agent_id} worktree={result.worktree_name}"]
    for phase in result.phases:
        lines.append(
            f"  phase={phase.phase} command={phase.command} "
            f"success={'yes' if phase.success else 'no'} result_code={phase.result_code}",
        )
    if result.plan_path:
        lines.append(f"plan_path={result.plan_path}")
    if result.error:
        lines.append(f"error={result.error}")
    lines.append(f"Workflow status: {'passed' if result.success else 'failed'}")
    return lines
