"""Randomized exponential backoff for rate-limited calls."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


def backoff_delay(
    attempt: int,
    *,
    base_s: float,
    max_jitter_s: float,
    rng: random.Random | None = None,
) -> float:
    """Delay before retry number ``attempt`` (0-based).

    ``base_s * 2**attempt`` plus a uniform jitter in ``[0, max_jitter_s]``.
    Negative inputs are clamped to zero.
    """
    uniform = (rng or random).uniform
    base = max(base_s, 0.0) * (2 ** max(attempt, 0))
    jitter = uniform(0.0, max(max_jitter_s, 0.0))
    return base + jitter


async def backoff_sleep(
    attempt: int,
    *,
    base_s: float,
    max_jitter_s: float,
    sleep: SleepFn = asyncio.sleep,
    rng: random.Random | None = None,
) -> float:
    """Sleep for the backoff delay of ``attempt``.

    Returns the actual sleep duration (useful for testing).
    """
    duration = backoff_delay(attempt, base_s=base_s, max_jitter_s=max_jitter_s, rng=rng)
    logger.debug("Backing off %.2fs before retry %d", duration, attempt + 1)
    await sleep(duration)
    return duration
