"""Sequential multi-phase workflows built on template invocations.

Phases run strictly one after another: the implementation phase needs the
plan path that only the finished planning phase can report.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from agent_relay.executor.ids import agent_dir
from agent_relay.executor.models import (
    AgentModel,
    InvocationResponse,
    TemplateRequest,
)

logger = logging.getLogger(__name__)

SUMMARY_JSON = "custom_summary_output.json"

PROTOTYPE_PLAN_COMMANDS = ("uv_script", "vite_vue", "bun_scripts", "uv_mcp")

_WORKTREE_NAME_MAX = 20
_SHORT_ID_CHARS = 6
_INVALID_WORKTREE_CHARS = re.compile(r"[^a-z0-9-]")
_REPEATED_DASHES = re.compile(r"-+")

TemplateRunner = Callable[[TemplateRequest], InvocationResponse]


@dataclass(slots=True)
class PhaseOutcome:
    """One finished phase."""

    phase: str
    agent_name: str
    command: str
    args: tuple[str, ...]
    success: bool
    output: str
    session_id: str | None
    result_code: str


@dataclass(slots=True)
class PhaseChainResult:
    """Combined outcome of a phase chain."""

    agent_id: str
    worktree_name: str
    success: bool = False
    plan_path: str | None = None
    error: str | None = None
    phases: list[PhaseOutcome] = field(default_factory=list)


def sanitize_worktree_name(name: str) -> str:
    """Lowercase, dash-only, at most 20 characters."""

    sanitized = _INVALID_WORKTREE_CHARS.sub("-", name.lower())[:_WORKTREE_NAME_MAX]
    sanitized = _REPEATED_DASHES.sub("-", sanitized).strip("-")
    if not sanitized:
        raise ValueError(f"Worktree name {name!r} has no usable characters")
    return sanitized


def plan_command_for(prototype: str | None) -> str:
    """Return the planning slash command for an optional prototype type."""

    if prototype and prototype in PROTOTYPE_PLAN_COMMANDS:
        return f"/plan_{prototype}"
    return "/plan"


def extract_plan_path(output: str) -> str | None:
    """The planner reports the plan file on the last line of its output."""

    lines = output.strip().split("\n")
    last_line = lines[-1].strip() if lines else ""
    if last_line and ("specs/" in last_line or "plan-" in last_line):
        return last_line
    return None


def format_agent_status(
    action: str,
    agent_id: str,
    worktree: str,
    phase: str | None = None,
) -> str:
    """Short status line such as ``Planning (abc123@todo-app • plan)``."""

    short_id = agent_id[:_SHORT_ID_CHARS]
    status = f"{action} ({short_id}@{worktree}"
    if phase:
        status += f" • {phase}"
    return status + ")"


class PhaseChain:
    """Runs build or plan-implement chains through a template runner."""

    def __init__(
        self,
        *,
        run_template: TemplateRunner,
        agents_root: Path,
        agent_id: str,
        model: AgentModel = AgentModel.SONNET,
    ) -> None:
        self.run_template = run_template
        self.agents_root = Path(agents_root)
        self.agent_id = agent_id
        self.model = model

    def run_build(self, *, task: str, worktree_name: str, working_dir: Path) -> PhaseChainResult:
        """Single ``/build`` phase."""

        worktree = sanitize_worktree_name(worktree_name)
        result = PhaseChainResult(agent_id=self.agent_id, worktree_name=worktree)
        try:
            outcome = self._run_phase(
                phase="build",
                agent_name=f"builder-{worktree}",
                command="/build",
                args=(self.agent_id, task),
                worktree=worktree,
                working_dir=working_dir,
            )
        except Exception as error:  # noqa: BLE001
            return _record_phase_error(result, "Build", error)
        result.phases.append(outcome)
        result.success = outcome.success
        if not outcome.success:
            result.error = f"Build phase failed: {outcome.output}"
        return result

    def run_plan_implement(
        self,
        *,
        task: str,
        worktree_name: str,
        working_dir: Path,
        prototype: str | None = None,
    ) -> PhaseChainResult:
        """Plan, then implement the reported plan file."""

        worktree = sanitize_worktree_name(worktree_name)
        result = PhaseChainResult(agent_id=self.agent_id, worktree_name=worktree)

        try:
            plan = self._run_phase(
                phase="plan",
                agent_name=f"planner-{worktree}",
                command=plan_command_for(prototype),
                args=(self.agent_id, task),
                worktree=worktree,
                working_dir=working_dir,
            )
        except Exception as error:  # noqa: BLE001
            return _record_phase_error(result, "Planning", error)
        result.phases.append(plan)
        if not plan.success:
            result.error = f"Planning phase failed: {plan.output}"
            logger.warning("Skipping implementation due to planning failure")
            return result

        result.plan_path = extract_plan_path(plan.output)
        if result.plan_path is None:
            result.error = "Planning completed but no plan path was returned"
            logger.warning("Skipping implementation: no plan path found")
            return result
        logger.info("Plan created: %s", result.plan_path)

        try:
            implement = self._run_phase(
                phase="implement",
                agent_name=f"implementer-{worktree}",
                command="/implement",
                args=(result.plan_path,),
                worktree=worktree,
                working_dir=working_dir,
                extra_summary={"plan_path": result.plan_path},
            )
        except Exception as error:  # noqa: BLE001
            return _record_phase_error(result, "Implementation", error)
        result.phases.append(implement)
        result.success = implement.success
        if not implement.success:
            result.error = f"Implementation phase failed: {implement.output}"
        return result

    def _run_phase(  # noqa: PLR0913
        self,
        *,
        phase: str,
        agent_name: str,
        command: str,
        args: tuple[str, ...],
        worktree: str,
        working_dir: Path,
        extra_summary: dict[str, Any] | None = None,
    ) -> PhaseOutcome:
        logger.info(
            "%s",
            format_agent_status(f"Starting {phase}", self.agent_id, worktree, phase),
        )
        response = self.run_template(
            TemplateRequest(
                agent_name=agent_name,
                command=command,
                args=args,
                agent_id=self.agent_id,
                model=self.model,
                working_dir=working_dir,
            ),
        )
        outcome = PhaseOutcome(
            phase=phase,
            agent_name=agent_name,
            command=command,
            args=args,
            success=response.success,
            output=response.output,
            session_id=response.session_id,
            result_code=response.result_code.value,
        )
        if outcome.success:
            logger.info("%s phase completed successfully", phase.capitalize())
        else:
            logger.error("%s phase failed: %s", phase.capitalize(), response.output)

        summary = {
            "phase": phase,
            "agent_id": self.agent_id,
            "worktree_name": worktree,
            "slash_command": command,
            "args": list(args),
            "model": self.model.value,
            "working_dir": str(working_dir),
            "success": response.success,
            "session_id": response.session_id,
            "result_code": response.result_code.value,
        }
        if extra_summary:
            summary.update(extra_summary)
        write_phase_summary(agent_dir(self.agents_root, self.agent_id, agent_name), summary)
        return outcome


def write_phase_summary(directory: Path, summary: dict[str, Any]) -> Path | None:
    """Best-effort per-phase summary file."""

    path = Path(directory) / SUMMARY_JSON
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(summary, ensure_ascii=False, indent=2), "utf-8")
    except (OSError, TypeError, ValueError) as error:
        logger.warning("Failed to write phase summary %s: %s", path, error)
        return None
    return path


def chain_result_to_dict(result: PhaseChainResult) -> dict[str, Any]:
    """Serialize a chain result for JSON output."""

    return asdict(result)


def _record_phase_error(
    result: PhaseChainResult,
    phase_label: str,
    error: Exception,
) -> PhaseChainResult:
    result.success = False
    result.error = f"{phase_label} phase error: {error}"
    logger.error("%s", result.error)
    return result
