"""Blocking retry-with-backoff around a single invocation function."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Collection, Sequence

from agent_relay.executor.models import (
    RETRYABLE_RESULT_CODES,
    InvocationRequest,
    InvocationResponse,
    ResultCode,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAYS: tuple[float, ...] = (1, 3, 5)

_DELAY_EXTENSION_STEP = 2


class RetryLoopError(RuntimeError):
    """Retry loop fell through without returning a response."""


def extend_delays(delays_seconds: Sequence[float], max_attempts: int) -> list[float]:
    """Pad `delays_seconds` with ``last + 2`` until it covers every retry."""

    delays = list(delays_seconds) or [float(DEFAULT_RETRY_DELAYS[0])]
    while len(delays) < max_attempts:
        delays.append(delays[-1] + _DELAY_EXTENSION_STEP)
    return delays


def invoke_with_retry(  # noqa: PLR0913
    invoke: Callable[[InvocationRequest], InvocationResponse],
    request: InvocationRequest,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delays_seconds: Sequence[float] = DEFAULT_RETRY_DELAYS,
    *,
    retryable: Collection[ResultCode] = RETRYABLE_RESULT_CODES,
    sleep: Callable[[float], None] = time.sleep,
) -> InvocationResponse:
    """Call `invoke` until it succeeds, fails non-retryably, or retries run out.

    Attempt 0 runs immediately; retry ``n`` (1..max_attempts) first blocks for
    ``delays_seconds[n - 1]`` seconds.
    """

    if max_attempts < 0:
        raise ValueError("max_attempts must be >= 0")
    delays = extend_delays(delays_seconds, max_attempts)

    for attempt in range(max_attempts + 1):
        if attempt > 0:
            delay = delays[attempt - 1]
            logger.warning(
                "Retrying in %s seconds... (attempt %d/%d)",
                delay,
                attempt,
                max_attempts,
            )
            sleep(delay)

        response = invoke(request)

        if response.success or response.result_code is ResultCode.NONE:
            return response

        if response.result_code not in retryable:
            logger.warning(
                "Not retrying agent %s: result code %s is not retryable",
                request.agent_name,
                response.result_code.value,
            )
            return response

        if attempt < max_attempts:
            logger.warning(
                "Attempt %d failed for agent %s: %s",
                attempt + 1,
                request.agent_name,
                response.result_code.value,
            )
        else:
            logger.error(
                "Giving up on agent %s after %d attempts: %s",
                request.agent_name,
                attempt + 1,
                response.result_code.value,
            )
            return response

    raise RetryLoopError("Unexpected retry logic error")
