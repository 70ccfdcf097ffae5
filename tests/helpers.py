"""Test helpers for fake agent launchers and event streams."""

from __future__ import annotations

import json
import stat
import sys
from pathlib import Path

from agent_relay.executor.launcher import LaunchResult


def ndjson(*events: dict[str, object]) -> str:
    """Render events as one JSON object per line."""

    return "".join(json.dumps(event) + "\n" for event in events)


def result_event(
    *,
    result: str = "Done",
    is_error: bool = False,
    subtype: str = "success",
    session_id: str = "abc123",
) -> dict[str, object]:
    return {
        "type": "result",
        "subtype": subtype,
        "is_error": is_error,
        "duration_ms": 1200,
        "duration_api_ms": 900,
        "num_turns": 2,
        "result": result,
        "session_id": session_id,
        "total_cost_usd": 0.01,
    }


class FakeLauncher:
    """Writes a canned event stream to the requested output file."""

    def __init__(
        self,
        *,
        exit_code: int = 0,
        output: str = "",
        stderr: str = "",
        error: Exception | None = None,
    ) -> None:
        self.exit_code = exit_code
        self.output = output
        self.stderr = stderr
        self.error = error
        self.calls: list[list[str]] = []

    def run(self, argv, *, cwd, env=None) -> LaunchResult:
        self.calls.append(list(argv))
        if self.error is not None:
            raise self.error
        Path(argv[5]).write_text(self.output, "utf-8")
        return LaunchResult(exit_code=self.exit_code, stdout="", stderr=self.stderr)


def write_fake_agent(bin_dir: Path, name: str, body: str) -> Path:
    """Create an executable `name` in `bin_dir` running the Python `body`."""

    bin_dir.mkdir(parents=True, exist_ok=True)
    implementation = bin_dir / f"{name}_impl.py"
    implementation.write_text(body.strip() + "\n", "utf-8")
    launcher = bin_dir / name
    launcher.write_text(
        f'#!/bin/sh\nexec "{sys.executable}" "{implementation}" "$@"\n',
        "utf-8",
    )
    launcher.chmod(launcher.stat().st_mode | stat.S_IXUSR)
    return launcher


