"""Unit tests for monotonic deadline helpers."""

import time

import pytest

from learnfeed.llm.deadline import deadline_after, expired, remaining_seconds
from learnfeed.llm.errors import LlmApiError, LlmDeadlineExceededError


class TestRemainingSeconds:
    """Tests for remaining_seconds."""

    def test_no_deadline_uses_cap(self) -> None:
        """Should return the cap without a deadline."""
        assert remaining_seconds(None, 30.0) == 30.0

    def test_capped(self) -> None:
        """Should never exceed the cap."""
        assert remaining_seconds(deadline_after(60.0), 5.0) == 5.0

    def test_time_left(self) -> None:
        """Should return the time left when below the cap."""
        assert 0.0 < remaining_seconds(deadline_after(2.0), 30.0) <= 2.0

    def test_passed(self) -> None:
        """Should raise an API error subtype once the deadline has passed."""
        with pytest.raises(LlmDeadlineExceededError) as exc_info:
            remaining_seconds(time.monotonic() - 0.1, 30.0)

        assert isinstance(exc_info.value, LlmApiError)


class TestExpired:
    """Tests for expired."""

    def test_states(self) -> None:
        """Only a passed deadline is expired."""
        assert not expired(None)
        assert not expired(deadline_after(60.0))
        assert expired(time.monotonic() - 0.1)
