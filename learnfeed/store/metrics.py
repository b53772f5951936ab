"""Metrics collection for the state store."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Metrics for state store operations.

    Attributes:
        db_tx_duration_ms: Cumulative transaction duration in milliseconds.
        db_tx_count: Number of committed transactions.
        db_tx_failed: Number of rolled back transactions.
        achievements_inserted_total: Award rows inserted.
        achievements_ignored_total: Award rows skipped as duplicates.
    """

    db_tx_duration_ms: float = 0.0
    db_tx_count: int = 0
    db_tx_failed: int = 0
    achievements_inserted_total: int = 0
    achievements_ignored_total: int = 0

    _instance: ClassVar["StoreMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record a committed transaction's duration.

        Args:
            duration_ms: Duration in milliseconds.
        """
        self.db_tx_duration_ms += duration_ms
        self.db_tx_count += 1

    def record_tx_failure(self) -> None:
        """Record a rolled back transaction."""
        self.db_tx_failed += 1

    def record_awards(self, inserted: int, ignored: int) -> None:
        """Record award insert outcomes."""
        self.achievements_inserted_total += inserted
        self.achievements_ignored_total += ignored

    @property
    def avg_tx_duration_ms(self) -> float:
        """Average committed transaction duration in milliseconds."""
        if self.db_tx_count == 0:
            return 0.0
        return self.db_tx_duration_ms / self.db_tx_count

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "db_tx_duration_ms": self.db_tx_duration_ms,
            "db_tx_count": self.db_tx_count,
            "db_tx_failed": self.db_tx_failed,
            "avg_tx_duration_ms": round(self.avg_tx_duration_ms, 3),
            "achievements_inserted_total": self.achievements_inserted_total,
            "achievements_ignored_total": self.achievements_ignored_total,
        }


@dataclass
class TransactionContext:
    """Context for a single transaction with timing.

    Attributes:
        tx_id: Unique transaction identifier.
        start_time_ns: Start time in nanoseconds.
        operation: The operation being performed.
        affected_rows: Rows written so far.
    """

    tx_id: str
    start_time_ns: int
    operation: str
    affected_rows: int = field(default=0)

    def add_affected_rows(self, count: int) -> None:
        """Add to the affected row count."""
        self.affected_rows += count
