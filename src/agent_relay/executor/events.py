"""NDJSON event stream parsing for agent output files."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

OUTPUT_JSONL = "cc_raw_output.jsonl"
OUTPUT_JSON = "cc_raw_output.json"
FINAL_OBJECT_JSON = "cc_final_object.json"


@dataclass(slots=True)
class ResultEvent:
    """Terminal event carrying the agent's final answer and status."""

    subtype: str
    is_error: bool
    result: str
    session_id: str | None
    raw: dict[str, Any] = field(default_factory=dict)

    type: str = "result"


@dataclass(slots=True)
class AssistantEvent:
    """Assistant message; only used as fallback source of readable text."""

    content: list[Any]
    raw: dict[str, Any] = field(default_factory=dict)

    type: str = "assistant"

    @property
    def text(self) -> str | None:
        """Return the first text block of the message, if any."""

        for block in self.content:
            if isinstance(block, dict) and isinstance(block.get("text"), str):
                return block["text"]
        return None


@dataclass(slots=True)
class UnknownEvent:
    """Passthrough variant for event types that are not interpreted.

    Decoded lines without a string ``type`` land here with ``type=""``.
    """

    type: str
    raw: Any = field(default_factory=dict)


Event = ResultEvent | AssistantEvent | UnknownEvent


@dataclass(slots=True)
class ParsedEventStream:
    """All decoded events in source order plus the located result event."""

    events: list[Event]
    result_event: ResultEvent | None


def parse_event(payload: dict[str, Any]) -> Event:
    """Map one decoded JSON object to its event variant."""

    event_type = payload.get("type")
    if event_type == "result":
        session_id = payload.get("session_id")
        result = payload.get("result")
        return ResultEvent(
            subtype=str(payload.get("subtype") or ""),
            is_error=bool(payload.get("is_error", False)),
            result=result if isinstance(result, str) else ("" if result is None else str(result)),
            session_id=session_id if isinstance(session_id, str) else None,
            raw=payload,
        )
    if event_type == "assistant":
        message = payload.get("message")
        content: list[Any] = []
        if isinstance(message, dict):
            raw_content = message.get("content")
            if isinstance(raw_content, list):
                content = raw_content
            elif isinstance(raw_content, str):
                content = [{"type": "text", "text": raw_content}]
        return AssistantEvent(content=content, raw=payload)
    return UnknownEvent(type=event_type if isinstance(event_type, str) else "", raw=payload)


def parse_event_stream(path: Path) -> ParsedEventStream:
    """Parse NDJSON file into events; a missing file yields an empty stream.

    Blank lines and lines that are not valid JSON are skipped: partial output
    is normal after a crash or timeout. Every decoded value is kept so the
    array mirror covers the whole stream.
    """

    try:
        text = Path(path).read_text("utf-8", errors="replace")
    except OSError as error:
        logger.debug("Event stream %s is not readable: %s", path, error)
        return ParsedEventStream(events=[], result_event=None)

    events: list[Event] = []
    skipped = 0
    for line in text.splitlines():
        if not line.strip():
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError:
            skipped += 1
            continue
        if isinstance(payload, dict):
            events.append(parse_event(payload))
        else:
            events.append(UnknownEvent(type="", raw=payload))

    if skipped:
        logger.debug("Skipped %d undecodable lines in %s", skipped, path)

    return ParsedEventStream(events=events, result_event=find_result_event(events))


def find_result_event(events: list[Event]) -> ResultEvent | None:
    """Return the last occurring result event."""

    for event in reversed(events):
        if isinstance(event, ResultEvent):
            return event
    return None


def write_event_array(stream_path: Path, events: list[Event]) -> Path | None:
    """Mirror the event stream as a pretty-printed JSON array next to it."""

    array_path = Path(stream_path).parent / OUTPUT_JSON
    try:
        array_path.write_text(
            json.dumps([event.raw for event in events], ensure_ascii=False, indent=2),
            "utf-8",
        )
    except (OSError, TypeError, ValueError) as error:
        logger.warning("Failed to write event array %s: %s", array_path, error)
        return None
    return array_path


def save_final_object(array_path: Path) -> Path | None:
    """Persist the last entry of the JSON array mirror as a standalone object."""

    try:
        entries = json.loads(Path(array_path).read_text("utf-8"))
        if not isinstance(entries, list) or not entries:
            return None
        final_path = Path(array_path).parent / FINAL_OBJECT_JSON
        final_path.write_text(json.dumps(entries[-1], ensure_ascii=False, indent=2), "utf-8")
    except (OSError, ValueError) as error:
        logger.warning("Failed to save final object from %s: %s", array_path, error)
        return None
    return final_path
