"""Observability module for structured logging."""

from learnfeed.observability.logging import (
    bind_user_context,
    clear_user_context,
    configure_logging,
)


__all__ = [
    "bind_user_context",
    "clear_user_context",
    "configure_logging",
]
