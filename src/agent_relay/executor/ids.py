"""Correlation ids and per-invocation output path allocation."""

from __future__ import annotations

from pathlib import Path
from uuid import uuid4

from agent_relay.executor.events import OUTPUT_JSONL


def make_agent_id() -> str:
    """Return a short 8-character correlation id."""

    return uuid4().hex[:8]


def agent_dir(agents_root: Path, agent_id: str, agent_name: str) -> Path:
    """Directory holding all artifacts of one agent within one task."""

    return Path(agents_root) / agent_id / agent_name


class OutputPathAllocator:
    """Hands out event-stream paths, refusing to give the same path twice."""

    def __init__(self, agents_root: Path) -> None:
        self.agents_root = Path(agents_root)
        self._allocated: set[Path] = set()

    def allocate(self, agent_id: str, agent_name: str) -> Path:
        path = agent_dir(self.agents_root, agent_id, agent_name) / OUTPUT_JSONL
        resolved = path.resolve()
        if resolved in self._allocated:
            raise ValueError(f"Output path already allocated: {path}")
        self._allocated.add(resolved)
        return path

    def release(self, path: Path) -> None:
        self._allocated.discard(Path(path).resolve())
