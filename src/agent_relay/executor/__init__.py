"""Agent invocation and result-extraction pipeline.

The executor launches the agent CLI through a small wrapper process that owns
the hard wall-clock limit and the environment allow-list, then reads the
NDJSON event stream the agent left on disk and classifies the run into a
closed set of result codes. Retry policy sits on top and only re-invokes for
transient classes.
"""

from agent_relay.executor.claude import ClaudeCodeExecutor, InvalidInvocationError
from agent_relay.executor.events import ParsedEventStream, parse_event_stream
from agent_relay.executor.ids import OutputPathAllocator, make_agent_id
from agent_relay.executor.launcher import LaunchResult, ProcessLauncher, SubprocessLauncher
from agent_relay.executor.models import (
    RETRYABLE_RESULT_CODES,
    AgentModel,
    InvocationRequest,
    InvocationResponse,
    ResultCode,
    TemplateRequest,
)
from agent_relay.executor.retry import RetryLoopError, invoke_with_retry
from agent_relay.executor.templates import (
    build_template_prompt,
    execute_prompt,
    execute_template,
)
from agent_relay.executor.truncation import truncate_output

__all__ = [
    "RETRYABLE_RESULT_CODES",
    "AgentModel",
    "ClaudeCodeExecutor",
    "InvalidInvocationError",
    "InvocationRequest",
    "InvocationResponse",
    "LaunchResult",
    "OutputPathAllocator",
    "ParsedEventStream",
    "ProcessLauncher",
    "ResultCode",
    "RetryLoopError",
    "SubprocessLauncher",
    "TemplateRequest",
    "build_template_prompt",
    "execute_prompt",
    "execute_template",
    "invoke_with_retry",
    "make_agent_id",
    "parse_event_stream",
    "truncate_output",
]
