"""Jittered exponential backoff for reconnection retries."""

import random


def backoff_ceiling(
    failure_count: int,
    min_delay_ms: float,
    max_delay_ms: float,
    max_failure_count: int,
) -> float:
    """Deterministic delay for a failure count, before jitter.

    Grows exponentially from ``min_delay_ms`` at the first failure to
    ``max_delay_ms`` at ``max_failure_count`` failures, then stays there.
    The count only caps the delay; it is not a retry limit.
    """
    count = min(max(failure_count, 1), max_failure_count)
    if max_failure_count <= 1 or min_delay_ms <= 0:
        return float(max_delay_ms)

    ratio = max_delay_ms / min_delay_ms
    progress = (count - 1) / (max_failure_count - 1)
    return min(min_delay_ms * ratio**progress, float(max_delay_ms))


def backoff_delay(
    failure_count: int,
    min_delay_ms: float,
    max_delay_ms: float,
    max_failure_count: int,
    jitter: float = 0.25,
) -> int:
    """Delay in milliseconds before the next retry.

    Adds up to ``jitter`` times the ceiling on top of it so that many
    clients losing the same server don't retry in lockstep.

    Args:
        failure_count: Number of consecutive failures so far.
        min_delay_ms: Delay after the first failure.
        max_delay_ms: Delay once growth saturates.
        max_failure_count: Failure count at which growth saturates.
        jitter: Fraction of the ceiling to randomize over.

    Returns:
        Delay in whole milliseconds.
    """
    ceiling = backoff_ceiling(failure_count, min_delay_ms, max_delay_ms, max_failure_count)
    return round(ceiling + random.uniform(0, ceiling * jitter))
