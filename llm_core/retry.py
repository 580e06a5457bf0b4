"""
Bounded retry with capped exponential backoff.

RetryPolicy wraps any awaitable-returning callable. Exactly `retries`
attempts are made; the wait after failed attempt i is
min(initial_delay * 2**(i-1), max_delay), or a constant initial_delay when
backoff is disabled. No jitter, so the delay sequence is deterministic.
A BackendRequestError that is not transient (4xx other than 429) ends the
loop at once.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
)

from llm_core.errors import BackendRequestError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryOptions:
    retries: int = 3
    backoff: bool = True
    initial_delay: float = 1.0
    max_delay: float = 10.0


class RetryPolicy:

    def __init__(
        self,
        defaults: RetryOptions | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._defaults = defaults or RetryOptions()
        self._sleep = sleep

    @property
    def defaults(self) -> RetryOptions:
        return self._defaults

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        retries: int | None = None,
        backoff: bool | None = None,
        initial_delay: float | None = None,
        max_delay: float | None = None,
    ) -> T:
        """Run `operation` until it succeeds or the attempts run out.

        The last error is re-raised unchanged; wrapping is up to the caller.
        """
        opts = self._resolve(retries, backoff, initial_delay, max_delay)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(opts.retries),
            retry=retry_if_exception(_is_retryable),
            wait=_wait_strategy(opts),
            sleep=self._sleep,
            before_sleep=_log_retry,
            reraise=True,
        )
        return await retrying(operation)

    def _resolve(
        self,
        retries: int | None,
        backoff: bool | None,
        initial_delay: float | None,
        max_delay: float | None,
    ) -> RetryOptions:
        overrides: dict[str, Any] = {
            k: v
            for k, v in (
                ("retries", retries),
                ("backoff", backoff),
                ("initial_delay", initial_delay),
                ("max_delay", max_delay),
            )
            if v is not None
        }
        opts = replace(self._defaults, **overrides)
        if opts.retries < 1:
            raise ValueError(f"retries must be >= 1, got {opts.retries}")
        if opts.initial_delay < 0 or opts.max_delay < 0:
            raise ValueError("retry delays must be non-negative")
        return opts


def _wait_strategy(opts: RetryOptions):
    if not opts.backoff:
        return wait_fixed(opts.initial_delay)
    return wait_exponential(
        multiplier=opts.initial_delay,
        exp_base=2,
        max=opts.max_delay,
    )


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    delay = state.next_action.sleep if state.next_action else 0.0
    logger.warning(
        "Attempt %d failed (%s), retrying in %.1fs",
        state.attempt_number,
        exc,
        delay,
    )


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, BackendRequestError):
        return exc.transient
    return True
