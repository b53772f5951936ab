"""SQLite state store implementation."""

import json
import sqlite3
import threading
import time
import uuid
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

import structlog

from learnfeed.content.models import (
    LinkStoryRecord,
    NoteRecord,
    PaperClassification,
    PaperRecord,
)
from learnfeed.content.url import canonicalize_url
from learnfeed.interactions.models import Interaction, InteractionType
from learnfeed.learning.models import (
    Achievement,
    ContentDifficultyAssessment,
    DifficultyLevel,
    EarnedData,
    LearningProfile,
    UserAchievement,
)
from learnfeed.ranker.preferences import UserPreferenceProfile
from learnfeed.store.errors import StoreConnectionError
from learnfeed.store.metrics import StoreMetrics, TransactionContext
from learnfeed.store.migrations import CURRENT_VERSION, MigrationManager


logger = structlog.get_logger()

_ENGAGEMENT_COLUMNS: dict[InteractionType, str] = {
    InteractionType.LIKE: "like_count",
    InteractionType.SHARE: "share_count",
    InteractionType.SAVE: "save_count",
    InteractionType.APPLY: "apply_count",
}

_NOTE_SELECT = """
SELECT n.id, n.author_id, n.content, n.tags_json, n.created_at, u.handle
FROM notes n LEFT JOIN users u ON u.user_id = n.author_id
"""


def _iso(value: datetime) -> str:
    """Serialize a timestamp in UTC so stored strings sort chronologically."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def _keyword_clause(columns: Sequence[str], keywords: Sequence[str]) -> tuple[str, list[str]]:
    """Build an OR of case-insensitive LIKE matches.

    Args:
        columns: Trusted column expressions.
        keywords: Keywords to match.

    Returns:
        Tuple of (SQL fragment, parameters); empty fragment when no keywords.
    """
    if not keywords:
        return "", []
    parts: list[str] = []
    params: list[str] = []
    for keyword in keywords:
        for column in columns:
            parts.append(f"LOWER({column}) LIKE ?")
            params.append(f"%{keyword.lower()}%")
    return "(" + " OR ".join(parts) + ")", params


class StateStore:
    """SQLite store for content, users, interactions, and learning state.

    Uses WAL mode and versioned migrations. Implements every repository
    protocol in ``learnfeed.store.protocols``. Safe to share across threads:
    each transaction holds the store lock from its first statement to its
    commit or rollback.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize the state store.

        Args:
            db_path: Path to SQLite database file, or ``:memory:``.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._conn: sqlite3.Connection | None = None
        # One connection is shared by every thread; this lock serializes
        # transactions and reads on it.
        self._lock = threading.RLock()
        self._metrics = StoreMetrics.get_instance()
        self._log = logger.bind(component="store", db_path=str(self._db_path))

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open the connection and apply migrations.

        Creates the database file and parent directories if needed.
        """
        with self._lock:
            if self._conn is None:
                self._open()

    def _open(self) -> None:
        in_memory = str(self._db_path) == ":memory:"
        if not in_memory:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._log.info("connecting_to_database")
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        if not in_memory:
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        migration_mgr = MigrationManager(self._conn)
        old_version = migration_mgr.get_current_version()
        applied = migration_mgr.apply_migrations()
        self._log.info(
            "database_connected",
            old_version=old_version,
            new_version=CURRENT_VERSION,
            migrations_applied=applied,
        )

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                self._log.info("database_closed")

    def __enter__(self) -> "StateStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        """Return the connection.

        Raises:
            StoreConnectionError: If not connected.
        """
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[TransactionContext]:
        """Context manager for transactions with timing and logging.

        Args:
            operation: Name of the operation for logging.

        Yields:
            Transaction context with timing information.
        """
        with self._lock:
            conn = self._ensure_connected()
            tx_id = str(uuid.uuid4())[:8]
            start_ns = time.perf_counter_ns()
            ctx = TransactionContext(tx_id=tx_id, start_time_ns=start_ns, operation=operation)
            self._log.debug("transaction_started", tx_id=tx_id, op=operation)

            try:
                yield ctx
                conn.commit()
            except Exception:
                conn.rollback()
                self._metrics.record_tx_failure()
                duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
                self._log.error(
                    "transaction_failed",
                    tx_id=tx_id,
                    op=operation,
                    duration_ms=round(duration_ms, 2),
                )
                raise

            duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
            self._metrics.record_tx_duration(duration_ms)
            self._log.debug(
                "transaction_complete",
                tx_id=tx_id,
                op=operation,
                affected_rows=ctx.affected_rows,
                duration_ms=round(duration_ms, 2),
            )

    def _fetchone(self, sql: str, params: Sequence[object] = ()) -> sqlite3.Row | None:
        with self._lock:
            return self._ensure_connected().execute(sql, params).fetchone()

    def _fetchall(self, sql: str, params: Sequence[object] = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._ensure_connected().execute(sql, params).fetchall()

    # ===== Users =====

    def upsert_user(
        self,
        user_id: str,
        handle: str | None = None,
        preferences: UserPreferenceProfile | None = None,
    ) -> None:
        """Create or update a user.

        Args:
            user_id: User identifier.
            handle: Public handle.
            preferences: Preference profile, None to leave unset.
        """
        prefs_json = preferences.model_dump_json() if preferences else None
        with self._transaction("upsert_user") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT INTO users (user_id, handle, preferences_json, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    handle = excluded.handle,
                    preferences_json = excluded.preferences_json
                """,
                (user_id, handle, prefs_json, _iso(datetime.now(UTC))),
            )
            ctx.add_affected_rows(1)

    def get_preferences(self, user_id: str) -> UserPreferenceProfile | None:
        """Stored preferences, or None when absent."""
        row = self._fetchone(
            "SELECT preferences_json FROM users WHERE user_id = ?", (user_id,)
        )
        if row is None or row["preferences_json"] is None:
            return None
        return UserPreferenceProfile.from_mapping(json.loads(row["preferences_json"]))

    # ===== Notes =====

    @staticmethod
    def _row_to_note(row: sqlite3.Row) -> NoteRecord:
        return NoteRecord(
            id=row["id"],
            content=row["content"],
            tags=tuple(json.loads(row["tags_json"])),
            author_id=row["author_id"],
            author_handle=row["handle"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def add_note(self, note: NoteRecord) -> NoteRecord:
        """Insert or replace a note."""
        with self._transaction("add_note") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT OR REPLACE INTO notes (id, author_id, content, tags_json, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    note.id,
                    note.author_id,
                    note.content,
                    json.dumps(list(note.tags)),
                    _iso(note.created_at),
                ),
            )
            ctx.add_affected_rows(1)
        return note

    def get_note(self, note_id: str) -> NoteRecord | None:
        """Load a note by id."""
        row = self._fetchone(_NOTE_SELECT + " WHERE n.id = ?", (note_id,))
        return self._row_to_note(row) if row else None

    def delete_note(self, note_id: str) -> int:
        """Delete a note and its interactions.

        Returns:
            Number of rows removed.
        """
        with self._transaction("delete_note") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute("DELETE FROM interactions WHERE note_id = ?", (note_id,))
            ctx.add_affected_rows(cursor.rowcount)
            cursor = conn.execute("DELETE FROM notes WHERE id = ?", (note_id,))
            ctx.add_affected_rows(cursor.rowcount)
        return ctx.affected_rows

    def note_engagement(self, note_id: str) -> dict[str, int]:
        """Engagement counters of a note, empty when the note is absent."""
        row = self._fetchone(
            "SELECT like_count, share_count, save_count, apply_count FROM notes WHERE id = ?",
            (note_id,),
        )
        return dict(row) if row else {}

    def recent_notes(self, limit: int, keywords: Sequence[str] = ()) -> list[NoteRecord]:
        """Newest notes first, optionally keyword filtered."""
        clause, params = _keyword_clause(["n.content"], keywords)
        where = f" WHERE {clause}" if clause else ""
        rows = self._fetchall(
            _NOTE_SELECT + where + " ORDER BY n.created_at DESC, n.id ASC LIMIT ?",
            (*params, limit),
        )
        return [self._row_to_note(r) for r in rows]

    # ===== Link stories =====

    def upsert_link(self, story: LinkStoryRecord) -> None:
        """Insert or replace a link story, storing its canonical URL."""
        with self._transaction("upsert_link") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT OR REPLACE INTO link_stories
                    (id, title, url, text, author, score, comment_count, published_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    story.id,
                    story.title,
                    canonicalize_url(story.url) if story.url else None,
                    story.text,
                    story.author,
                    story.score,
                    story.comment_count,
                    _iso(story.published_at),
                ),
            )
            ctx.add_affected_rows(1)

    def top_links(
        self,
        limit: int,
        since: datetime | None = None,
        keywords: Sequence[str] = (),
    ) -> list[LinkStoryRecord]:
        """Highest-scored links first, newest first on equal score."""
        conditions: list[str] = []
        params: list[object] = []
        if since is not None:
            conditions.append("published_at >= ?")
            params.append(_iso(since))
        clause, kw_params = _keyword_clause(["title", "COALESCE(text, '')"], keywords)
        if clause:
            conditions.append(clause)
            params.extend(kw_params)
        where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
        rows = self._fetchall(
            "SELECT * FROM link_stories"
            + where
            + " ORDER BY score DESC, published_at DESC, id ASC LIMIT ?",
            (*params, limit),
        )
        return [
            LinkStoryRecord(
                id=r["id"],
                title=r["title"],
                url=r["url"],
                text=r["text"],
                author=r["author"],
                score=r["score"],
                comment_count=r["comment_count"],
                published_at=datetime.fromisoformat(r["published_at"]),
            )
            for r in rows
        ]

    # ===== Papers =====

    def upsert_paper(self, paper: PaperRecord) -> None:
        """Insert or replace a paper."""
        with self._transaction("upsert_paper") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT OR REPLACE INTO papers (
                    id, title, abstract, authors_json, categories_json, tags_json,
                    published_at, abstract_url, pdf_url, classification_json
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    paper.id,
                    paper.title,
                    paper.abstract,
                    json.dumps(list(paper.authors)),
                    json.dumps(list(paper.categories)),
                    json.dumps(list(paper.tags)),
                    _iso(paper.published_at),
                    paper.abstract_url,
                    paper.pdf_url,
                    paper.classification.model_dump_json(),
                ),
            )
            ctx.add_affected_rows(1)

    def recent_papers(
        self,
        limit: int,
        since: datetime | None = None,
        keywords: Sequence[str] = (),
        classification_flags: Sequence[str] = (),
    ) -> list[PaperRecord]:
        """Newest papers first.

        Args:
            limit: Maximum papers.
            since: Only papers published at or after this time.
            keywords: Title/abstract keyword filter.
            classification_flags: Keep papers with any of these flags set.

        Returns:
            Matching papers.
        """
        conditions: list[str] = []
        params: list[object] = []
        if since is not None:
            conditions.append("published_at >= ?")
            params.append(_iso(since))
        clause, kw_params = _keyword_clause(["title", "abstract"], keywords)
        if clause:
            conditions.append(clause)
            params.extend(kw_params)
        flags = [f for f in classification_flags if f in PaperClassification.model_fields]
        if flags:
            conditions.append(
                "("
                + " OR ".join(
                    f"json_extract(classification_json, '$.{flag}') = 1" for flag in flags
                )
                + ")"
            )
        where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
        rows = self._fetchall(
            "SELECT * FROM papers" + where + " ORDER BY published_at DESC, id ASC LIMIT ?",
            (*params, limit),
        )
        return [
            PaperRecord(
                id=r["id"],
                title=r["title"],
                abstract=r["abstract"],
                authors=tuple(json.loads(r["authors_json"])),
                categories=tuple(json.loads(r["categories_json"])),
                tags=tuple(json.loads(r["tags_json"])),
                published_at=datetime.fromisoformat(r["published_at"]),
                abstract_url=r["abstract_url"],
                pdf_url=r["pdf_url"],
                classification=PaperClassification.model_validate_json(
                    r["classification_json"]
                ),
            )
            for r in rows
        ]

    # ===== Content difficulty =====

    def upsert_difficulty(self, assessment: ContentDifficultyAssessment) -> None:
        """Insert or replace a content difficulty assessment."""
        with self._transaction("upsert_difficulty") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT OR REPLACE INTO content_difficulty (
                    content_type, content_id, primary_skill_area,
                    overall_difficulty, learning_value, assessment_json
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    assessment.content_type,
                    assessment.content_id,
                    assessment.primary_skill_area,
                    assessment.overall_difficulty.value,
                    assessment.learning_value,
                    assessment.model_dump_json(),
                ),
            )
            ctx.add_affected_rows(1)

    def difficulty_assessments(
        self, skill_area: str, difficulty: DifficultyLevel, limit: int
    ) -> list[ContentDifficultyAssessment]:
        """Content for a skill at a difficulty, best learning value first."""
        rows = self._fetchall(
            """
            SELECT assessment_json FROM content_difficulty
            WHERE primary_skill_area = ? AND overall_difficulty = ?
            ORDER BY learning_value DESC, content_id ASC
            LIMIT ?
            """,
            (skill_area, difficulty.value, limit),
        )
        return [
            ContentDifficultyAssessment.model_validate_json(r["assessment_json"])
            for r in rows
        ]

    # ===== Learning profiles =====

    def load_profile(self, user_id: str) -> LearningProfile | None:
        """Load a learning profile."""
        row = self._fetchone(
            "SELECT profile_json FROM learning_profiles WHERE user_id = ?", (user_id,)
        )
        if row is None:
            return None
        return LearningProfile.model_validate_json(row["profile_json"])

    def _write_profile(self, conn: sqlite3.Connection, profile: LearningProfile) -> None:
        conn.execute(
            """
            INSERT INTO learning_profiles (user_id, profile_json, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                profile_json = excluded.profile_json,
                updated_at = excluded.updated_at
            """,
            (profile.user_id, profile.model_dump_json(), _iso(datetime.now(UTC))),
        )

    def save_profile(self, profile: LearningProfile) -> LearningProfile:
        """Upsert a learning profile."""
        with self._transaction("save_profile") as ctx:
            self._write_profile(self._ensure_connected(), profile)
            ctx.add_affected_rows(1)
        return profile

    def commit_activity(
        self, profile: LearningProfile, awards: Sequence[UserAchievement]
    ) -> list[UserAchievement]:
        """Save a profile and insert awards in one transaction.

        Duplicate awards are skipped by the (user, achievement) unique
        constraint.

        Args:
            profile: Updated profile.
            awards: New awards.

        Returns:
            Awards actually inserted.
        """
        inserted: list[UserAchievement] = []
        with self._transaction("commit_activity") as ctx:
            conn = self._ensure_connected()
            self._write_profile(conn, profile)
            ctx.add_affected_rows(1)
            for award in awards:
                cursor = conn.execute(
                    """
                    INSERT OR IGNORE INTO user_achievements
                        (user_id, achievement_id, earned_at, earned_data_json)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        award.user_id,
                        award.achievement_id,
                        _iso(award.earned_at),
                        award.earned_data.model_dump_json(),
                    ),
                )
                if cursor.rowcount == 1:
                    inserted.append(award)
                    ctx.add_affected_rows(1)
        self._metrics.record_awards(len(inserted), len(awards) - len(inserted))
        return inserted

    # ===== Achievements =====

    def upsert_achievements(self, achievements: Sequence[Achievement]) -> int:
        """Insert or replace catalog entries.

        Returns:
            Number of entries written.
        """
        with self._transaction("upsert_achievements") as ctx:
            conn = self._ensure_connected()
            for achievement in achievements:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO achievements (id, is_active, achievement_json)
                    VALUES (?, ?, ?)
                    """,
                    (
                        achievement.id,
                        1 if achievement.is_active else 0,
                        achievement.model_dump_json(),
                    ),
                )
                ctx.add_affected_rows(1)
        return ctx.affected_rows

    def achievement_catalog(self) -> list[Achievement]:
        """All achievements ordered by id."""
        rows = self._fetchall(
            "SELECT achievement_json FROM achievements ORDER BY id"
        )
        return [Achievement.model_validate_json(r["achievement_json"]) for r in rows]

    def earned_achievement_ids(self, user_id: str) -> set[str]:
        """Ids of achievements the user holds."""
        rows = self._fetchall(
            "SELECT achievement_id FROM user_achievements WHERE user_id = ?", (user_id,)
        )
        return {r["achievement_id"] for r in rows}

    def user_achievements(self, user_id: str) -> list[UserAchievement]:
        """Awards of a user, oldest first."""
        rows = self._fetchall(
            """
            SELECT * FROM user_achievements WHERE user_id = ?
            ORDER BY earned_at ASC, achievement_id ASC
            """,
            (user_id,),
        )
        return [
            UserAchievement(
                user_id=r["user_id"],
                achievement_id=r["achievement_id"],
                earned_at=datetime.fromisoformat(r["earned_at"]),
                earned_data=EarnedData.model_validate_json(r["earned_data_json"]),
            )
            for r in rows
        ]

    # ===== Interactions =====

    @staticmethod
    def _row_to_interaction(row: sqlite3.Row) -> Interaction:
        return Interaction(
            id=row["id"],
            user_id=row["user_id"],
            note_id=row["note_id"],
            type=InteractionType(row["type"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def find_interaction(
        self, user_id: str, note_id: str, interaction_type: InteractionType
    ) -> Interaction | None:
        """Existing interaction of a type."""
        row = self._fetchone(
            "SELECT * FROM interactions WHERE user_id = ? AND note_id = ? AND type = ?",
            (user_id, note_id, interaction_type.value),
        )
        return self._row_to_interaction(row) if row else None

    def get_interaction(self, interaction_id: str) -> Interaction | None:
        """Load an interaction by id."""
        row = self._fetchone(
            "SELECT * FROM interactions WHERE id = ?", (interaction_id,)
        )
        return self._row_to_interaction(row) if row else None

    def add_interaction(self, interaction: Interaction) -> Interaction:
        """Insert an interaction and bump the note's engagement counter."""
        column = _ENGAGEMENT_COLUMNS[interaction.type]
        with self._transaction("add_interaction") as ctx:
            conn = self._ensure_connected()
            conn.execute(
                """
                INSERT INTO interactions (id, user_id, note_id, type, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    interaction.id,
                    interaction.user_id,
                    interaction.note_id,
                    interaction.type.value,
                    _iso(interaction.created_at),
                ),
            )
            conn.execute(
                f"UPDATE notes SET {column} = {column} + 1 WHERE id = ?",
                (interaction.note_id,),
            )
            ctx.add_affected_rows(2)
        return interaction

    def remove_interaction(self, interaction: Interaction) -> None:
        """Delete an interaction and decrement the note's engagement counter."""
        column = _ENGAGEMENT_COLUMNS[interaction.type]
        with self._transaction("remove_interaction") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute("DELETE FROM interactions WHERE id = ?", (interaction.id,))
            ctx.add_affected_rows(cursor.rowcount)
            if cursor.rowcount:
                conn.execute(
                    f"UPDATE notes SET {column} = MAX({column} - 1, 0) WHERE id = ?",
                    (interaction.note_id,),
                )

    # ===== Diagnostics =====

    def schema_version(self) -> int:
        """Applied migration version."""
        with self._lock:
            return MigrationManager(self._ensure_connected()).get_current_version()

    def stats(self) -> dict[str, int]:
        """Row counts per table."""
        tables = [
            "users",
            "notes",
            "link_stories",
            "papers",
            "interactions",
            "learning_profiles",
            "content_difficulty",
            "achievements",
            "user_achievements",
        ]
        with self._lock:
            conn = self._ensure_connected()
            return {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                for table in tables
            }
