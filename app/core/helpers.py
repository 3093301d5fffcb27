"""
Helper functions for common infrastructure operations.

These utilities are pure infrastructure: they have no knowledge of
listings, packages or payments.

Usage:
    from core.helpers import backoff_delay

    time.sleep(backoff_delay(attempt, base=0.05, max_delay=1.0))
"""

from __future__ import annotations

import random


def backoff_delay(attempt: int, base: float = 1.0, max_delay: float = 60.0) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Jitter keeps concurrent retriers from colliding again on the next attempt.

    Args:
        attempt: Current attempt number (0-indexed)
        base: Base delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds before jitter (default: 60.0)

    Returns:
        Delay in seconds with jitter (0-25% of calculated delay)

    Example:
        # Attempt 0: 1.0 - 1.25 seconds
        # Attempt 1: 2.0 - 2.5 seconds
        # Attempt 2: 4.0 - 5.0 seconds
        delay = backoff_delay(attempt=2)
    """
    delay = min(base * (2**attempt), max_delay)
    jitter = delay * random.uniform(0, 0.25)
    return delay + jitter
