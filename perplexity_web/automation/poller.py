"""
Completion Poller

Perplexity streams its answer and exposes no "finished" event; the only
signal is a DOM side effect (the answer toolbar appears). This module turns
that into a bounded poll:

    check -> visible?  -> COMPLETED
          -> not yet   -> wait interval, check again
    ... after max_attempts checks -> TIMED_OUT

A timeout is an ordinary return value, not an exception: the caller extracts
whatever has rendered so far.
"""

import asyncio
import dataclasses
import enum
from typing import Any, Awaitable, Callable, Sequence

import structlog

from .selectors import SelectorStrategy, resolve_first_visible

logger = structlog.stdlib.get_logger(component=__name__)


class PollOutcome(str, enum.Enum):
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


@dataclasses.dataclass(frozen=True)
class PollResult:
    outcome: PollOutcome
    attempts: int

    @property
    def completed(self) -> bool:
        return self.outcome is PollOutcome.COMPLETED


async def _sleep_ms(ms: int) -> None:
    await asyncio.sleep(ms / 1000)


async def poll_for_completion(
    page: Any,
    strategies: Sequence[SelectorStrategy],
    *,
    interval_ms: int,
    max_attempts: int,
    check_timeout_ms: int,
    snapshot_every: int = 0,
    on_snapshot: Callable[[int], Awaitable[Any]] | None = None,
    sleep: Callable[[int], Awaitable[None]] = _sleep_ms,
) -> PollResult:
    """
    Check the completion indicator up to `max_attempts` times.

    Args:
        page: Playwright page
        strategies: Completion-indicator selector table
        interval_ms: Wait between checks
        max_attempts: Total number of checks before timing out
        check_timeout_ms: Visibility timeout of one check
        snapshot_every: Call `on_snapshot` every N unsuccessful checks (0 disables)
        on_snapshot: Receives the attempt number; used for diagnostic screenshots
        sleep: Awaitable sleep in milliseconds (injectable for tests)

    Returns:
        PollResult with the outcome and how many checks were made
    """
    for attempt in range(1, max_attempts + 1):
        match = await resolve_first_visible(page, strategies, check_timeout_ms)
        if match is not None:
            logger.info("Completion indicator found", attempt=attempt, strategy=match.strategy.label)
            return PollResult(PollOutcome.COMPLETED, attempt)

        if snapshot_every and on_snapshot is not None and attempt % snapshot_every == 0:
            await on_snapshot(attempt)

        if attempt < max_attempts:
            logger.debug("Waiting for answer", attempt=attempt, max_attempts=max_attempts)
            await sleep(interval_ms)

    logger.warning("Completion indicator not found, extracting anyway", attempts=max_attempts)
    return PollResult(PollOutcome.TIMED_OUT, max_attempts)
