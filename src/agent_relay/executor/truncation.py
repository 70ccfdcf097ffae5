"""Display truncation for agent output text."""

from __future__ import annotations

import json

TRUNCATION_SUFFIX = "... (truncated)"

_NEWLINE_LOOKBACK = 50
_SPACE_LOOKBACK = 20


def truncate_output(
    output: str,
    max_length: int = 500,
    suffix: str = TRUNCATION_SUFFIX,
) -> str:
    """Shorten `output` to at most `max_length` characters for display.

    Raw NDJSON handed in by mistake is reduced to the text of its last
    result or assistant event before truncating.
    """

    if _looks_like_event_stream(output):
        lines = output.strip().split("\n")
        extracted = _extract_last_text(lines)
        if extracted is not None:
            return truncate_output(extracted, max_length, suffix)
        placeholder = f"[JSONL output with {len(lines)} messages]{suffix}"
        return placeholder[: max(max_length, 0)]

    if len(output) <= max_length:
        return output
    if max_length < len(suffix):
        # Suffix alone would exceed the limit.
        return output[: max(max_length, 0)]

    truncate_at = max_length - len(suffix)

    newline_pos = output.rfind("\n", 0, truncate_at)
    if newline_pos > 0 and newline_pos > truncate_at - _NEWLINE_LOOKBACK:
        return output[:newline_pos] + suffix

    space_pos = output.rfind(" ", 0, truncate_at)
    if space_pos > 0 and space_pos > truncate_at - _SPACE_LOOKBACK:
        return output[:space_pos] + suffix

    return output[:truncate_at] + suffix


def _looks_like_event_stream(text: str) -> bool:
    return text.startswith('{"type":') and '\n{"type":' in text


def _extract_last_text(lines: list[str]) -> str | None:
    for line in reversed(lines):
        if not line.strip():
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(data, dict):
            continue
        if data.get("type") == "result" and isinstance(data.get("result"), str):
            return data["result"]
        if data.get("type") == "assistant":
            message = data.get("message")
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, list) and content and isinstance(content[0], dict):
                text = content[0].get("text")
                if isinstance(text, str) and text:
                    return text
    return None
