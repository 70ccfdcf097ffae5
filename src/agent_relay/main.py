"""CLI entrypoint for agent-relay."""

import logging
import os
from pathlib import Path

import rich_click as click

from agent_relay import __version__
from agent_relay.controllers import (
    AgentCliController,
    CommandResult,
    PhaseChainCommand,
    PromptCommand,
    SlashCommand,
)
from agent_relay.executor.models import AgentModel

click.rich_click.USE_MARKDOWN = True
AGENT_CONTROLLER = AgentCliController()

_MODEL_CHOICE = click.Choice([model.value for model in AgentModel], case_sensitive=False)


@click.group()
@click.version_option(version=__version__, prog_name="agent-relay")
@click.option(
    "--log-level",
    default=None,
    help="Logging level. Defaults to AGENT_RELAY_LOG_LEVEL or INFO.",
)
def agent_relay(log_level: str | None) -> None:
    """Delegate coding tasks to the local coding-agent CLI."""

    level = (log_level or os.getenv("AGENT_RELAY_LOG_LEVEL", "INFO")).strip().upper()
    logging.basicConfig(
        level=level if isinstance(logging.getLevelName(level), int) else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@agent_relay.command("prompt")
@click.argument("prompt_words", nargs=-1, required=True)
@click.option("--model", type=_MODEL_CHOICE, default=None, help="Agent model tier.")
@click.option(
    "--working-dir",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=None,
    help="Directory the agent operates in. Defaults to the current directory.",
)
@click.option(
    "--agents-root",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Where per-agent artifacts are written. Defaults to AGENT_RELAY_AGENTS_ROOT.",
)
@click.option(
    "--skip-permissions",
    is_flag=True,
    default=False,
    help="Bypass interactive permission prompts of the agent.",
)
def prompt(
    prompt_words: tuple[str, ...],
    model: str | None,
    working_dir: Path | None,
    agents_root: Path | None,
    skip_permissions: bool,
) -> None:
    """Send a raw prompt to the agent once, without retry."""

    result = _guarded(
        lambda: AGENT_CONTROLLER.prompt(
            PromptCommand(
                prompt=" ".join(prompt_words),
                model=model,
                working_dir=working_dir,
                agents_root=agents_root,
                skip_permissions=skip_permissions,
            ),
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Prompt execution failed.")


@agent_relay.command("slash")
@click.argument("command")
@click.argument("args", nargs=-1)
@click.option("--model", type=_MODEL_CHOICE, default=None, help="Agent model tier.")
@click.option(
    "--working-dir",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=None,
    help="Directory the agent operates in. Defaults to the current directory.",
)
@click.option(
    "--agents-root",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Where per-agent artifacts are written. Defaults to AGENT_RELAY_AGENTS_ROOT.",
)
@click.option(
    "--parse-json",
    "parse_json_output",
    is_flag=True,
    default=False,
    help="Parse the agent result as JSON (fenced or inline) and print it formatted.",
)
def slash(  # noqa: PLR0913
    command: str,
    args: tuple[str, ...],
    model: str | None,
    working_dir: Path | None,
    agents_root: Path | None,
    parse_json_output: bool,
) -> None:
    """Run a slash command such as `/plan` with retry on transient failures."""

    if not command.startswith("/"):
        raise click.BadParameter(f"Command must start with '/', got: {command}")

    result = _guarded(
        lambda: AGENT_CONTROLLER.slash(
            SlashCommand(
                command=command,
                args=args,
                model=model,
                working_dir=working_dir,
                agents_root=agents_root,
                parse_json=parse_json_output,
            ),
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Slash command failed.")


@agent_relay.command("build")
@click.option("--task", required=True, help="Task description handed to the builder.")
@click.option("--worktree", "worktree_name", required=True, help="Worktree name.")
@click.option("--agent-id", default=None, help="Correlation id. Generated when omitted.")
@click.option("--model", type=_MODEL_CHOICE, default=None, help="Agent model tier.")
@click.option(
    "--working-dir",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=None,
    help="Directory the agent operates in. Defaults to the current directory.",
)
@click.option(
    "--agents-root",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Where per-agent artifacts are written. Defaults to AGENT_RELAY_AGENTS_ROOT.",
)
def build(  # noqa: PLR0913
    task: str,
    worktree_name: str,
    agent_id: str | None,
    model: str | None,
    working_dir: Path | None,
    agents_root: Path | None,
) -> None:
    """Run the single-phase `/build` workflow."""

    result = _guarded(
        lambda: AGENT_CONTROLLER.build(
            PhaseChainCommand(
                task=task,
                worktree_name=worktree_name,
                working_dir=working_dir,
                model=model,
                agent_id=agent_id,
                agents_root=agents_root,
            ),
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Build workflow failed.")


@agent_relay.command("plan-implement")
@click.option("--task", required=True, help="Task description handed to the planner.")
@click.option("--worktree", "worktree_name", required=True, help="Worktree name.")
@click.option(
    "--prototype",
    default=None,
    help="Prototype type selecting a specialised planner, for example vite_vue.",
)
@click.option("--agent-id", default=None, help="Correlation id. Generated when omitted.")
@click.option("--model", type=_MODEL_CHOICE, default=None, help="Agent model tier.")
@click.option(
    "--working-dir",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=None,
    help="Directory the agent operates in. Defaults to the current directory.",
)
@click.option(
    "--agents-root",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Where per-agent artifacts are written. Defaults to AGENT_RELAY_AGENTS_ROOT.",
)
def plan_implement(  # noqa: PLR0913
    task: str,
    worktree_name: str,
    prototype: str | None,
    agent_id: str | None,
    model: str | None,
    working_dir: Path | None,
    agents_root: Path | None,
) -> None:
    """Plan the task, then implement the plan file the planner reports."""

    result = _guarded(
        lambda: AGENT_CONTROLLER.plan_implement(
            PhaseChainCommand(
                task=task,
                worktree_name=worktree_name,
                working_dir=working_dir,
                model=model,
                prototype=prototype,
                agent_id=agent_id,
                agents_root=agents_root,
            ),
        ),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Plan-implement workflow failed.")


def _guarded(action) -> CommandResult:
    try:
        return action()
    except ValueError as error:
        raise click.ClickException(str(error)) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    agent_relay()
