"""Process launcher seam between the executor and the wrapper subprocess."""

from __future__ import annotations

import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(slots=True)
class LaunchResult:
    """Exit status and captured streams of one wrapper run."""

    exit_code: int
    stdout: str
    stderr: str


class ProcessLauncher(Protocol):
    """Protocol implemented by process launchers."""

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> LaunchResult:
        """Run `argv` to completion and return its exit status."""


class SubprocessLauncher:
    """Run the wrapper synchronously with captured text output."""

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> LaunchResult:
        completed = subprocess.run(  # noqa: S603
            list(argv),
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            check=False,
        )
        return LaunchResult(
            exit_code=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
