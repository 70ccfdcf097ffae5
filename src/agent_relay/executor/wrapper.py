"""Agent CLI wrapper process.

Invoked as::

    python -m agent_relay.executor.wrapper PROMPT MODEL OUTPUT_FILE WORKING_DIR \
        MCP_CONFIG_PATH SKIP_PERMISSIONS

Exit codes:

- ``0``   agent succeeded
- ``1``   agent failed (retryable)
- ``2``   invalid arguments
- ``124`` agent timed out
- ``127`` agent binary not found
"""

from __future__ import annotations

import contextlib
import os
import shutil
import subprocess
import sys
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from agent_relay.executor.exit_codes import (
    AGENT_TIMEOUT_SECONDS,
    EXIT_AGENT_ERROR,
    EXIT_BINARY_NOT_FOUND,
    EXIT_INVALID_ARGS,
    EXIT_SUCCESS,
    EXIT_TIMEOUT,
)

ALLOWED_MODELS = ("sonnet", "opus")

_ARG_COUNT = 6
_POLL_INTERVAL_SECONDS = 0.1
_TERMINATE_GRACE_SECONDS = 2

_PASSTHROUGH_ENV_KEYS = (
    "ANTHROPIC_API_KEY",
    "GITHUB_PAT",
    "E2B_API_KEY",
    "CLOUDFLARED_TUNNEL_TOKEN",
    "HOME",
    "USER",
    "PATH",
    "SHELL",
    "TERM",
    "LANG",
    "LC_ALL",
    "PYTHONPATH",
)


class WrapperArgumentError(ValueError):
    """Wrapper invoked with arguments it cannot run."""


@dataclass(slots=True)
class WrapperArgs:
    """Validated positional wrapper arguments."""

    prompt: str
    model: str
    output_file: Path
    working_dir: Path
    mcp_config_path: Path | None
    skip_permissions: bool


def parse_wrapper_args(argv: Sequence[str]) -> WrapperArgs:
    """Validate the six positional arguments before anything is spawned."""

    if len(argv) != _ARG_COUNT:
        raise WrapperArgumentError(
            f"Invalid number of arguments: expected {_ARG_COUNT}, got {len(argv)}. "
            "Usage: <prompt> <model> <output_file> <working_dir> "
            "<mcp_config_path> <skip_permissions>",
        )
    prompt, model, output_file, working_dir, mcp_config_path, skip_permissions = argv

    if not prompt.strip():
        raise WrapperArgumentError("Prompt must not be empty")
    if model not in ALLOWED_MODELS:
        raise WrapperArgumentError(f"Model must be 'sonnet' or 'opus', got: {model}")
    if not output_file.strip():
        raise WrapperArgumentError("Output file path must not be empty")
    if not Path(working_dir).is_dir():
        raise WrapperArgumentError(f"Working directory does not exist: {working_dir}")
    if skip_permissions not in ("true", "false"):
        raise WrapperArgumentError(
            f"Skip-permissions flag must be 'true' or 'false', got: {skip_permissions}",
        )

    return WrapperArgs(
        prompt=prompt,
        model=model,
        output_file=Path(output_file),
        working_dir=Path(working_dir),
        mcp_config_path=Path(mcp_config_path) if mcp_config_path.strip() else None,
        skip_permissions=skip_permissions == "true",
    )


def build_safe_env(environ: Mapping[str, str], *, working_dir: Path) -> dict[str, str]:
    """Reduce `environ` to the allow-listed variables the agent may see."""

    env = {key: environ[key] for key in _PASSTHROUGH_ENV_KEYS if environ.get(key) is not None}
    env["CLAUDE_CODE_PATH"] = environ.get("CLAUDE_CODE_PATH") or "claude"
    env["CLAUDE_BASH_MAINTAIN_PROJECT_WORKING_DIR"] = (
        environ.get("CLAUDE_BASH_MAINTAIN_PROJECT_WORKING_DIR") or "true"
    )
    if environ.get("GITHUB_PAT"):
        env["GH_TOKEN"] = environ["GITHUB_PAT"]
    env["PYTHONUNBUFFERED"] = "1"
    env["PWD"] = str(working_dir)
    return env


def resolve_agent_binary(environ: Mapping[str, str]) -> str | None:
    """Resolve the agent executable from ``CLAUDE_CODE_PATH`` or PATH."""

    configured = environ.get("CLAUDE_CODE_PATH") or "claude"
    return shutil.which(configured, path=environ.get("PATH"))


def build_agent_command(binary: str, args: WrapperArgs) -> list[str]:
    """Assemble the agent CLI argv for one non-interactive stream-json run."""

    command = [
        binary,
        "-p",
        args.prompt,
        "--model",
        args.model,
        "--output-format",
        "stream-json",
        "--verbose",
    ]
    if args.mcp_config_path is not None and args.mcp_config_path.is_file():
        command.extend(["--mcp-config", str(args.mcp_config_path)])
    if args.skip_permissions:
        command.append("--dangerously-skip-permissions")
    return command


def run_wrapper(
    argv: Sequence[str],
    *,
    environ: Mapping[str, str] | None = None,
    timeout_seconds: float = AGENT_TIMEOUT_SECONDS,
) -> int:
    """Validate, spawn the agent with a wall-clock limit, and map its exit code."""

    source_env = os.environ if environ is None else environ
    try:
        args = parse_wrapper_args(argv)
    except WrapperArgumentError as error:
        _report(f"Error: {error}")
        return EXIT_INVALID_ARGS

    binary = resolve_agent_binary(source_env)
    if binary is None:
        _report(
            "Error: Claude Code CLI not found at: "
            f"{source_env.get('CLAUDE_CODE_PATH') or 'claude'}",
        )
        return EXIT_BINARY_NOT_FOUND

    env = build_safe_env(source_env, working_dir=args.working_dir)
    command = build_agent_command(binary, args)
    args.output_file.parent.mkdir(parents=True, exist_ok=True)

    try:
        with args.output_file.open("w", encoding="utf-8") as output_handle:
            exit_code, timed_out = _run_with_timeout(
                command=command,
                env=env,
                cwd=args.working_dir,
                output_handle=output_handle,
                timeout_seconds=timeout_seconds,
            )
    except OSError as error:
        _report(f"Error: Claude Code failed to start: {error}")
        return EXIT_AGENT_ERROR

    if timed_out:
        _report("Error: Claude Code command timed out after 5 minutes")
        return EXIT_TIMEOUT
    if exit_code != 0:
        _report(f"Error: Claude Code command failed with exit code {exit_code}")
        return EXIT_AGENT_ERROR
    return EXIT_SUCCESS


def _run_with_timeout(
    *,
    command: list[str],
    env: dict[str, str],
    cwd: Path,
    output_handle,
    timeout_seconds: float,
) -> tuple[int, bool]:
    process = subprocess.Popen(  # noqa: S603
        command,
        env=env,
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        stdout=output_handle,
        stderr=subprocess.STDOUT,
        text=True,
    )
    start_monotonic = time.monotonic()

    while True:
        returncode = process.poll()
        if returncode is not None:
            return returncode, False

        if time.monotonic() - start_monotonic >= timeout_seconds:
            _stop_agent(process)
            return EXIT_TIMEOUT, True

        time.sleep(_POLL_INTERVAL_SECONDS)


def _stop_agent(process: subprocess.Popen[str]) -> int:
    """SIGTERM, then SIGKILL once the grace period runs out; returns the exit status."""

    if process.poll() is not None:
        return process.returncode
    with contextlib.suppress(ProcessLookupError):
        process.terminate()
    try:
        return process.wait(timeout=_TERMINATE_GRACE_SECONDS)
    except subprocess.TimeoutExpired:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        return process.wait(timeout=_TERMINATE_GRACE_SECONDS)


def _report(message: str) -> None:
    print(message, file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``python -m agent_relay.executor.wrapper``."""

    return run_wrapper(sys.argv[1:] if argv is None else argv)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
