from __future__ import annotations

import json
import sys
from pathlib import Path

import allure
import pytest
from helpers import FakeLauncher, ndjson, result_event

from agent_relay.executor import (
    ClaudeCodeExecutor,
    InvalidInvocationError,
    InvocationRequest,
    ResultCode,
)
from agent_relay.executor.claude import (
    ERROR_DURING_EXECUTION_MESSAGE,
    TIMEOUT_MESSAGE,
    WRAPPER_MODULE,
)
from agent_relay.executor.events import FINAL_OBJECT_JSON, OUTPUT_JSON

pytestmark = [
    allure.epic("Agent Invocation"),
    allure.feature("Claude Code Executor"),
]


def _request(tmp_path: Path, **overrides) -> InvocationRequest:
    values = {
        "prompt": "/build abc123 add login page",
        "agent_id": "abc123",
        "agent_name": "builder-demo",
        "output_path": tmp_path / "agents" / "abc123" / "builder-demo" / "cc_raw_output.jsonl",
        "working_dir": tmp_path,
    }
    values.update(overrides)
    return InvocationRequest(**values)


def test_success_returns_result_text_and_session(tmp_path: Path) -> None:
    launcher = FakeLauncher(output=ndjson({"type": "system"}, result_event()))
    request = _request(tmp_path)

    response = ClaudeCodeExecutor(launcher).invoke(request)

    assert response.success is True
    assert response.output == "Done"
    assert response.session_id == "abc123"
    assert response.result_code is ResultCode.NONE

    audit_dir = request.output_path.parent
    assert json.loads((audit_dir / OUTPUT_JSON).read_text("utf-8"))[0]["type"] == "system"
    final_object = json.loads((audit_dir / FINAL_OBJECT_JSON).read_text("utf-8"))
    assert final_object["result"] == "Done"


def test_agent_reported_error_is_final_answer(tmp_path: Path) -> None:
    launcher = FakeLauncher(output=ndjson(result_event(result="Cannot do that", is_error=True)))

    response = ClaudeCodeExecutor(launcher).invoke(_request(tmp_path))

    assert response.success is False
    assert response.output == "Cannot do that"
    assert response.result_code is ResultCode.NONE
    assert response.session_id == "abc123"


def test_long_agent_error_text_is_truncated(tmp_path: Path) -> None:
    long_error = "word " * 400
    launcher = FakeLauncher(output=ndjson(result_event(result=long_error, is_error=True)))

    response = ClaudeCodeExecutor(launcher).invoke(_request(tmp_path))

    assert response.success is False
    assert len(response.output) <= 800
    assert response.output.endswith("(truncated)")


def test_error_during_execution_wins_over_is_error_flag(tmp_path: Path) -> None:
    launcher = FakeLauncher(
        output=ndjson(
            result_event(result="", is_error=False, subtype="error_during_execution"),
        ),
    )

    response = ClaudeCodeExecutor(launcher).invoke(_request(tmp_path))

    assert response.success is False
    assert response.output == ERROR_DURING_EXECUTION_MESSAGE
    assert response.result_code is ResultCode.ERROR_DURING_EXECUTION
    assert response.session_id == "abc123"


def test_timeout_exit_code_maps_to_timeout_error(tmp_path: Path) -> None:
    launcher = FakeLauncher(exit_code=124, output=ndjson({"type": "system"}))

    response = ClaudeCodeExecutor(launcher).invoke(_request(tmp_path))

    assert response.success is False
    assert response.output == TIMEOUT_MESSAGE
    assert response.result_code is ResultCode.TIMEOUT_ERROR
    assert response.session_id is None


def test_nonzero_exit_uses_stderr_message(tmp_path: Path) -> None:
    launcher = FakeLauncher(exit_code=1, stderr="Error: rate limited\n")

    response = ClaudeCodeExecutor(launcher).invoke(_request(tmp_path))

    assert response.success is False
    assert response.output == "Error: rate limited"
    assert response.result_code is ResultCode.AGENT_ERROR


def test_nonzero_exit_without_stderr_reports_exit_code(tmp_path: Path) -> None:
    launcher = FakeLauncher(exit_code=127)

    response = ClaudeCodeExecutor(launcher).invoke(_request(tmp_path))

    assert response.output == "Claude Code command failed with exit code 127"
    assert response.result_code is ResultCode.AGENT_ERROR


def test_nonzero_exit_prefers_reported_agent_error(tmp_path: Path) -> None:
    launcher = FakeLauncher(
        exit_code=1,
        stderr="Error: Claude Code command failed with exit code 1",
        output=ndjson(result_event(result="API overloaded", is_error=True, session_id="s9")),
    )

    response = ClaudeCodeExecutor(launcher).invoke(_request(tmp_path))

    assert response.output == "Claude Code error: API overloaded"
    assert response.session_id == "s9"
    assert response.result_code is ResultCode.AGENT_ERROR


def test_exit_zero_without_result_event_is_agent_error(tmp_path: Path) -> None:
    launcher = FakeLauncher(output="garbage\n")

    response = ClaudeCodeExecutor(launcher).invoke(_request(tmp_path))

    assert response.success is False
    assert response.result_code is ResultCode.AGENT_ERROR
    assert response.output == "Claude Code command failed with exit code 0"


def test_launch_failure_maps_to_invocation_error(tmp_path: Path) -> None:
    launcher = FakeLauncher(error=OSError("spawn failed"))

    response = ClaudeCodeExecutor(launcher).invoke(_request(tmp_path))

    assert response.success is False
    assert response.output == "Error executing Claude Code: spawn failed"
    assert response.result_code is ResultCode.INVOCATION_ERROR
    assert response.session_id is None


def test_rejected_arguments_raise_invalid_invocation(tmp_path: Path) -> None:
    launcher = FakeLauncher(exit_code=2, stderr="Error: Model must be 'sonnet' or 'opus'\n")

    with pytest.raises(InvalidInvocationError) as error_info:
        ClaudeCodeExecutor(launcher).invoke(_request(tmp_path))

    assert "Model must be" in str(error_info.value)
    assert "sonnet" in error_info.value.stderr


def test_wrapper_argv_layout(tmp_path: Path) -> None:
    executor = ClaudeCodeExecutor(FakeLauncher(), python_executable="/usr/bin/python3")
    request = _request(tmp_path, model="opus", skip_permissions=True)

    argv = executor.build_wrapper_argv(request)

    assert argv == [
        "/usr/bin/python3",
        "-m",
        WRAPPER_MODULE,
        "/build abc123 add login page",
        "opus",
        str(request.output_path),
        str(tmp_path),
        str(tmp_path / ".mcp.json"),
        "true",
    ]


def test_wrapper_argv_without_working_dir_uses_cwd(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    executor = ClaudeCodeExecutor(FakeLauncher())
    request = _request(tmp_path, working_dir=None)

    argv = executor.build_wrapper_argv(request)

    assert argv[0] == sys.executable
    assert argv[6] == str(Path.cwd())
    assert argv[7] == ""
    assert argv[8] == "false"


def test_invoke_creates_output_directory(tmp_path: Path) -> None:
    launcher = FakeLauncher(output=ndjson(result_event()))
    request = _request(tmp_path)
    assert not request.output_path.parent.exists()

    ClaudeCodeExecutor(launcher).invoke(request)

    assert request.output_path.is_file()
    assert len(launcher.calls) == 1


def test_request_validation_rejects_bad_input(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="prompt"):
        _request(tmp_path, prompt="   ")
    with pytest.raises(ValueError, match="Unsupported model"):
        _request(tmp_path, model="haiku")
    with pytest.raises(ValueError, match="agent_id"):
        _request(tmp_path, agent_id="")


def test_audit_mirror_failure_keeps_classification(tmp_path: Path) -> None:
    launcher = FakeLauncher(output=ndjson(result_event()))
    request = _request(tmp_path)
    (request.output_path.parent / OUTPUT_JSON).mkdir(parents=True)

    response = ClaudeCodeExecutor(launcher).invoke(request)

    assert response.success is True
    assert response.output == "Done"
    assert response.result_code is ResultCode.NONE
    assert not (request.output_path.parent / FINAL_OBJECT_JSON).exists()


def test_rejected_arguments_still_write_audit_files(tmp_path: Path) -> None:
    launcher = FakeLauncher(
        exit_code=2,
        stderr="Error: Prompt must not be empty\n",
        output=ndjson({"type": "system", "subtype": "init"}),
    )
    request = _request(tmp_path)

    with pytest.raises(InvalidInvocationError):
        ClaudeCodeExecutor(launcher).invoke(request)

    audit_dir = request.output_path.parent
    assert json.loads((audit_dir / OUTPUT_JSON).read_text("utf-8")) == [
        {"type": "system", "subtype": "init"},
    ]
    assert (audit_dir / FINAL_OBJECT_JSON).is_file()
