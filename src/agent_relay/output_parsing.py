"""Recover JSON payloads from agent result text."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCED_JSON = re.compile(r"```(?:json)?\s*\n(.*?)\n```", re.DOTALL | re.IGNORECASE)

_PREVIEW_CHARS = 200


def parse_json(text: str) -> Any:
    """Parse JSON that may sit in a markdown fence or between prose."""

    fenced = _FENCED_JSON.search(text)
    candidate = fenced.group(1).strip() if fenced is not None else text.strip()

    if not candidate.startswith(("[", "{")):
        candidate = _slice_json_boundaries(candidate)

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as error:
        preview = candidate[:_PREVIEW_CHARS]
        raise ValueError(f"Failed to parse JSON: {error}. Text was: {preview}...") from error


def _slice_json_boundaries(text: str) -> str:
    array_start = text.find("[")
    array_end = text.rfind("]")
    object_start = text.find("{")
    object_end = text.rfind("}")

    if array_start != -1 and (object_start == -1 or array_start < object_start):
        if array_end > array_start:
            return text[array_start : array_end + 1]
    elif object_start != -1 and object_end > object_start:
        return text[object_start : object_end + 1]
    return text
