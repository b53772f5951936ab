"""SQLite persistence and repository interfaces."""

from learnfeed.store.errors import MigrationError, StoreConnectionError, StoreError
from learnfeed.store.metrics import StoreMetrics
from learnfeed.store.migrations import CURRENT_VERSION, MigrationManager
from learnfeed.store.protocols import (
    ContentRepository,
    InteractionRepository,
    ProfileRepository,
    UserRepository,
)
from learnfeed.store.store import StateStore


__all__ = [
    "CURRENT_VERSION",
    "ContentRepository",
    "InteractionRepository",
    "MigrationError",
    "MigrationManager",
    "ProfileRepository",
    "StateStore",
    "StoreConnectionError",
    "StoreError",
    "StoreMetrics",
    "UserRepository",
]
