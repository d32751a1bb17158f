from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from weather_service.core.context import CallContext
from weather_service.core.exceptions import RetriesExhausted, UpstreamError


logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry(
    ctx: CallContext,
    max_attempts: int,
    initial_delay: float,
    fn: Callable[[CallContext], T],
) -> T:
    """Call ``fn`` until it succeeds, doubling the pause after each failure.

    ``max_attempts`` counts calls, not retries. Only ``UpstreamError`` is
    retried. The pause races ``ctx``: a cancelled context raises its own error,
    never ``RetriesExhausted``.
    """

    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    last_error: Optional[BaseException] = None

    def log_failure(state: RetryCallState) -> None:
        nonlocal last_error
        last_error = state.outcome.exception()
        logger.warning(
            "Upstream attempt %s/%s failed: %s trace_id=%s",
            state.attempt_number,
            max_attempts,
            last_error,
            ctx.trace_id,
        )

    def sleep(seconds: float) -> None:
        if ctx.wait(seconds):
            raise ctx.error() from last_error

    def attempt() -> T:
        ctx.raise_if_done()
        return fn(ctx)

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_delay),
        retry=retry_if_exception_type(UpstreamError),
        after=log_failure,
        sleep=sleep,
    )
    try:
        return retrying(attempt)
    except RetryError as exc:
        raise RetriesExhausted(max_attempts) from exc.last_attempt.exception()


__all__ = ["retry"]
