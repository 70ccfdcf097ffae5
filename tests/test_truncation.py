from __future__ import annotations

import allure
from helpers import ndjson, result_event

from agent_relay.executor.truncation import TRUNCATION_SUFFIX, truncate_output

pytestmark = [
    allure.epic("Agent Invocation"),
    allure.feature("Output Truncation"),
]


def test_short_output_is_returned_unchanged() -> None:
    assert truncate_output("all good") == "all good"
    assert truncate_output("x" * 500) == "x" * 500


def test_long_output_without_breaks_is_hard_cut() -> None:
    truncated = truncate_output("a" * 2000, max_length=500)

    assert len(truncated) <= 500
    assert truncated.endswith(TRUNCATION_SUFFIX)
    assert truncated == "a" * (500 - len(TRUNCATION_SUFFIX)) + TRUNCATION_SUFFIX


def test_truncation_prefers_nearby_newline() -> None:
    text = "a" * 470 + "\n" + "b" * 1000

    truncated = truncate_output(text, max_length=500)

    assert truncated == "a" * 470 + TRUNCATION_SUFFIX


def test_truncation_falls_back_to_nearby_space() -> None:
    text = "a" * 475 + " " + "b" * 1000

    truncated = truncate_output(text, max_length=500)

    assert truncated == "a" * 475 + TRUNCATION_SUFFIX


def test_distant_word_break_is_ignored() -> None:
    text = "a" * 100 + " " + "b" * 1900

    truncated = truncate_output(text, max_length=500)

    assert len(truncated) == 500
    assert truncated.startswith("a" * 100 + " b")


def test_event_stream_input_uses_last_result_text() -> None:
    raw = ndjson(
        {"type": "system", "subtype": "init"},
        {"type": "assistant", "message": {"content": [{"type": "text", "text": "thinking"}]}},
        result_event(result="Final answer"),
    )

    assert truncate_output(raw) == "Final answer"


def test_event_stream_input_falls_back_to_assistant_text() -> None:
    raw = ndjson(
        {"type": "system", "subtype": "init"},
        {"type": "assistant", "message": {"content": [{"type": "text", "text": "partial"}]}},
    )

    assert truncate_output(raw) == "partial"


def test_event_stream_without_text_becomes_placeholder() -> None:
    raw = ndjson(
        {"type": "system", "subtype": "init"},
        {"type": "user", "message": {"content": []}},
        {"type": "system", "subtype": "status"},
    )

    assert truncate_output(raw) == f"[JSONL output with 3 messages]{TRUNCATION_SUFFIX}"


def test_extracted_result_text_is_truncated_too() -> None:
    raw = ndjson({"type": "system"}, result_event(result="z" * 900))

    truncated = truncate_output(raw, max_length=100)

    assert len(truncated) <= 100
    assert truncated.endswith(TRUNCATION_SUFFIX)


def test_custom_suffix() -> None:
    assert truncate_output("c" * 50, max_length=20, suffix="~") == "c" * 19 + "~"


def test_limit_shorter_than_suffix_is_still_honoured() -> None:
    truncated = truncate_output("a" * 50, max_length=10)

    assert truncated == "a" * 10


def test_placeholder_respects_small_limit() -> None:
    raw = ndjson({"type": "system"}, {"type": "system"})

    truncated = truncate_output(raw, max_length=12)

    assert truncated == "[JSONL outpu"
    assert len(truncated) == 12
