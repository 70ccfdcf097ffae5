"""Claude Code executor: runs the wrapper and classifies its outcome."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from agent_relay.executor.events import (
    ParsedEventStream,
    parse_event_stream,
    save_final_object,
    write_event_array,
)
from agent_relay.executor.exit_codes import EXIT_INVALID_ARGS, EXIT_TIMEOUT
from agent_relay.executor.launcher import LaunchResult, ProcessLauncher, SubprocessLauncher
from agent_relay.executor.models import InvocationRequest, InvocationResponse, ResultCode
from agent_relay.executor.truncation import truncate_output

logger = logging.getLogger(__name__)

WRAPPER_MODULE = "agent_relay.executor.wrapper"
MCP_CONFIG_NAME = ".mcp.json"

ERROR_DURING_EXECUTION_SUBTYPE = "error_during_execution"

_ERROR_RESULT_TRUNCATE_THRESHOLD = 1000
_ERROR_OUTPUT_MAX_LENGTH = 800

TIMEOUT_MESSAGE = "Error: Claude Code command timed out after 5 minutes"
ERROR_DURING_EXECUTION_MESSAGE = (
    "Error during execution: Agent encountered an error and did not return a result"
)


class InvalidInvocationError(ValueError):
    """Wrapper rejected its arguments; a caller bug, never retried."""

    def __init__(self, message: str, *, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr


class ClaudeCodeExecutor:
    """Invoke the agent CLI through the wrapper process for one request."""

    def __init__(
        self,
        launcher: ProcessLauncher | None = None,
        *,
        python_executable: str | None = None,
    ) -> None:
        self.launcher = launcher or SubprocessLauncher()
        self.python_executable = python_executable or sys.executable

    def invoke(self, request: InvocationRequest) -> InvocationResponse:
        """Run one invocation; expected failures are classified, not raised."""

        try:
            launch, stream = self._launch_and_collect(request)
        except InvalidInvocationError:
            raise
        except Exception as error:  # noqa: BLE001
            logger.error(
                "Invocation failed for agent %s (%s): %s",
                request.agent_name,
                request.agent_id,
                error,
            )
            return InvocationResponse(
                output=f"Error executing Claude Code: {error}",
                success=False,
                session_id=None,
                result_code=ResultCode.INVOCATION_ERROR,
            )

        response = classify_outcome(launch, stream)
        log = logger.info if response.success else logger.warning
        log(
            "Agent %s (%s) finished: exit_code=%d success=%s result_code=%s",
            request.agent_name,
            request.agent_id,
            launch.exit_code,
            response.success,
            response.result_code.value,
        )
        return response

    def build_wrapper_argv(self, request: InvocationRequest) -> list[str]:
        """Return the wrapper command line for `request`."""

        working_dir = request.working_dir or Path.cwd()
        mcp_config_path = str(working_dir / MCP_CONFIG_NAME) if request.working_dir else ""
        return [
            self.python_executable,
            "-m",
            WRAPPER_MODULE,
            request.prompt,
            request.model.value,
            str(request.output_path),
            str(working_dir),
            mcp_config_path,
            "true" if request.skip_permissions else "false",
        ]

    def _launch_and_collect(
        self,
        request: InvocationRequest,
    ) -> tuple[LaunchResult, ParsedEventStream]:
        request.output_path.parent.mkdir(parents=True, exist_ok=True)
        working_dir = request.working_dir or Path.cwd()

        launch = self.launcher.run(self.build_wrapper_argv(request), cwd=working_dir)

        stream = parse_event_stream(request.output_path)
        array_path = write_event_array(request.output_path, stream.events)
        if array_path is not None:
            save_final_object(array_path)

        if launch.exit_code == EXIT_INVALID_ARGS:
            raise InvalidInvocationError(
                "Agent wrapper rejected invocation arguments: "
                f"{launch.stderr.strip() or 'no details'}",
                stderr=launch.stderr,
            )
        return launch, stream


def classify_outcome(launch: LaunchResult, stream: ParsedEventStream) -> InvocationResponse:
    """Map wrapper exit code and parsed events to a response."""

    result_event = stream.result_event

    if launch.exit_code == 0 and result_event is not None:
        # This subtype means the agent crashed before answering; it wins over is_error.
        if result_event.subtype == ERROR_DURING_EXECUTION_SUBTYPE:
            return InvocationResponse(
                output=ERROR_DURING_EXECUTION_MESSAGE,
                success=False,
                session_id=result_event.session_id,
                result_code=ResultCode.ERROR_DURING_EXECUTION,
            )

        output = result_event.result
        if result_event.is_error and len(output) > _ERROR_RESULT_TRUNCATE_THRESHOLD:
            output = truncate_output(output, _ERROR_OUTPUT_MAX_LENGTH)
        return InvocationResponse(
            output=output,
            success=not result_event.is_error,
            session_id=result_event.session_id,
            result_code=ResultCode.NONE,
        )

    if launch.exit_code == EXIT_TIMEOUT:
        return InvocationResponse(
            output=TIMEOUT_MESSAGE,
            success=False,
            session_id=None,
            result_code=ResultCode.TIMEOUT_ERROR,
        )

    error_message = (
        launch.stderr.strip()
        or f"Claude Code command failed with exit code {launch.exit_code}"
    )
    if result_event is not None and result_event.is_error:
        error_message = f"Claude Code error: {result_event.result}"

    return InvocationResponse(
        output=truncate_output(error_message, _ERROR_OUTPUT_MAX_LENGTH),
        success=False,
        session_id=result_event.session_id if result_event is not None else None,
        result_code=ResultCode.AGENT_ERROR,
    )
