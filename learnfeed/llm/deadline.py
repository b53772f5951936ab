"""Monotonic deadlines for bounding summarization calls."""

import time

from learnfeed.llm.errors import LlmDeadlineExceededError


def deadline_after(seconds: float) -> float:
    """Monotonic deadline ``seconds`` from now."""
    return time.monotonic() + seconds


def remaining_seconds(deadline: float | None, cap: float) -> float:
    """Time left before a deadline, never more than ``cap``.

    Args:
        deadline: Monotonic deadline, or None for no deadline.
        cap: Upper bound, usually the client's own request timeout.

    Returns:
        Seconds to allow for the next request.

    Raises:
        LlmDeadlineExceededError: If the deadline has already passed.
    """
    if deadline is None:
        return cap
    left = deadline - time.monotonic()
    if left <= 0:
        msg = "Deadline passed before the request was sent"
        raise LlmDeadlineExceededError(msg)
    return min(cap, left)


def expired(deadline: float | None) -> bool:
    """Whether a deadline has passed."""
    return deadline is not None and time.monotonic() >= deadline
