"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

import pytest
from helpers import write_fake_agent


@pytest.fixture()
def fake_claude(tmp_path: Path, monkeypatch) -> Callable[[str], Path]:
    """Install a fake agent CLI and point CLAUDE_CODE_PATH at it."""

    def _install(body: str) -> Path:
        launcher = write_fake_agent(tmp_path / "bin", "claude", body)
        monkeypatch.setenv("CLAUDE_CODE_PATH", str(launcher))
        monkeypatch.setenv("PATH", f"{launcher.parent}{os.pathsep}{os.environ.get('PATH', '')}")
        return launcher

    return _install
