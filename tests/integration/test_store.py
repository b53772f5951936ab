"""Integration tests for the SQLite state store."""

import sqlite3
import threading
import time
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from pathlib import Path

import pytest

from learnfeed.interactions.models import Interaction, InteractionType
from learnfeed.learning.achievements import DEFAULT_ACHIEVEMENTS
from learnfeed.learning.models import (
    ContentDifficultyAssessment,
    DifficultyLevel,
    EarnedData,
    LearningProfile,
    UserAchievement,
)
from learnfeed.ranker.preferences import UserPreferenceProfile
from learnfeed.store.errors import StoreConnectionError
from learnfeed.store.metrics import StoreMetrics
from learnfeed.store.migrations import CURRENT_VERSION
from learnfeed.store.store import StateStore
from tests.helpers.records import make_link, make_note, make_paper
from tests.helpers.time import FIXED_NOW


@pytest.fixture
def store(tmp_path: Path) -> Iterator[StateStore]:
    """Create a connected store in a temporary directory."""
    state = StateStore(tmp_path / "state" / "learnfeed.sqlite")
    state.connect()
    yield state
    state.close()


def _award(user_id: str, achievement_id: str) -> UserAchievement:
    return UserAchievement(
        user_id=user_id,
        achievement_id=achievement_id,
        earned_at=FIXED_NOW,
        earned_data=EarnedData(trigger="content_consumed", metrics={"skill_area": "ai"}),
    )


class TestConnection:
    """Tests for connection lifecycle and migrations."""

    def test_creates_file_and_migrates(self, tmp_path: Path) -> None:
        """Connecting creates parent directories and applies migrations."""
        db_path = tmp_path / "nested" / "db.sqlite"
        with StateStore(db_path) as store:
            assert store.is_connected
            assert store.schema_version() == CURRENT_VERSION == 2

        assert db_path.exists()

    def test_wal_mode(self, store: StateStore) -> None:
        """File databases use WAL journaling."""
        conn = sqlite3.connect(str(store.db_path))
        try:
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        finally:
            conn.close()

        assert mode == "wal"

    def test_reconnect_keeps_data(self, tmp_path: Path) -> None:
        """Migrations are idempotent across connections."""
        db_path = tmp_path / "db.sqlite"
        with StateStore(db_path) as store:
            store.add_note(make_note("n1"))
        with StateStore(db_path) as store:
            assert store.get_note("n1") is not None
            assert store.schema_version() == 2

    def test_requires_connect(self, tmp_path: Path) -> None:
        """Queries before connect fail clearly."""
        with pytest.raises(StoreConnectionError):
            StateStore(tmp_path / "db.sqlite").recent_notes(5)


class TestContent:
    """Tests for note, link, and paper persistence."""

    def test_note_roundtrip_with_handle(self, store: StateStore) -> None:
        """Notes come back with the author's handle from the users table."""
        store.upsert_user("author-1", handle="alice")
        store.add_note(make_note("n1", tags=["focus", "habits"], author_handle=None))

        note = store.get_note("n1")

        assert note is not None
        assert note.tags == ("focus", "habits")
        assert note.author_handle == "alice"
        assert note.created_at == FIXED_NOW - timedelta(hours=1)

    def test_recent_notes_order_and_keywords(self, store: StateStore) -> None:
        """Newest first, keyword filtering is case-insensitive."""
        store.add_note(make_note("old", content="Sleep and LLM tips", age=timedelta(hours=5)))
        store.add_note(make_note("new", content="llm prompting", age=timedelta(hours=1)))
        store.add_note(make_note("other", content="gardening", age=timedelta(minutes=5)))

        assert [n.id for n in store.recent_notes(10)] == ["other", "new", "old"]
        assert [n.id for n in store.recent_notes(10, keywords=["LLM"])] == ["new", "old"]

    def test_link_url_canonicalized(self, store: StateStore) -> None:
        """Tracking parameters are stripped before storage."""
        store.upsert_link(
            make_link("hn-1", url="https://Example.com/post/?utm_source=hn&id=7")
        )

        (link,) = store.top_links(5)

        assert link.url == "https://example.com/post?id=7"

    def test_top_links_order_and_window(self, store: StateStore) -> None:
        """Highest score first, optionally within a time window."""
        store.upsert_link(make_link("a", score=10, age=timedelta(hours=1)))
        store.upsert_link(make_link("b", score=50, age=timedelta(hours=72)))
        store.upsert_link(make_link("c", score=30, age=timedelta(hours=2)))

        assert [s.id for s in store.top_links(5)] == ["b", "c", "a"]
        since = FIXED_NOW - timedelta(hours=48)
        assert [s.id for s in store.top_links(5, since=since)] == ["c", "a"]

    def test_papers_filtered_by_flags(self, store: StateStore) -> None:
        """Classification flags select papers with any flag set."""
        store.upsert_paper(make_paper("p1", ai_ml=True, age=timedelta(days=1)))
        store.upsert_paper(make_paper("p2", psychology=True, age=timedelta(days=2)))
        store.upsert_paper(make_paper("p3", age=timedelta(days=3)))

        assert [p.id for p in store.recent_papers(10)] == ["p1", "p2", "p3"]
        flagged = store.recent_papers(10, classification_flags=["ai_ml", "psychology"])
        assert [p.id for p in flagged] == ["p1", "p2"]
        assert flagged[0].classification.ai_ml
        assert flagged[0].authors == ("Ada", "Grace")

    def test_unknown_flags_ignored(self, store: StateStore) -> None:
        """Flags that are not classification fields do not filter."""
        store.upsert_paper(make_paper("p1"))

        assert len(store.recent_papers(10, classification_flags=["nope"])) == 1


class TestUsers:
    """Tests for user preferences."""

    def test_preferences_roundtrip(self, store: StateStore) -> None:
        """Stored preferences validate back into a profile."""
        prefs = UserPreferenceProfile.from_mapping({"category_weights": {"ai_ml": 90}})
        store.upsert_user("u1", preferences=prefs)

        assert store.get_preferences("u1") == prefs

    def test_absent_preferences(self, store: StateStore) -> None:
        """Unknown users and users without preferences both return None."""
        store.upsert_user("u1", handle="bob")

        assert store.get_preferences("u1") is None
        assert store.get_preferences("nobody") is None


class TestInteractions:
    """Tests for interactions and engagement counters."""

    def _interaction(self, interaction_id: str, kind: InteractionType) -> Interaction:
        return Interaction(
            id=interaction_id,
            user_id="u1",
            note_id="n1",
            type=kind,
            created_at=FIXED_NOW,
        )

    def test_counters_follow_interactions(self, store: StateStore) -> None:
        """Adding and removing interactions moves the note's counters."""
        store.add_note(make_note("n1"))
        like = store.add_interaction(self._interaction("i1", InteractionType.LIKE))
        store.add_interaction(self._interaction("i2", InteractionType.SAVE))

        assert store.note_engagement("n1") == {
            "like_count": 1,
            "share_count": 0,
            "save_count": 1,
            "apply_count": 0,
        }
        assert store.find_interaction("u1", "n1", InteractionType.LIKE) == like

        store.remove_interaction(like)

        assert store.note_engagement("n1")["like_count"] == 0
        assert store.get_interaction("i1") is None

    def test_delete_note_cascades(self, store: StateStore) -> None:
        """Deleting a note removes its interactions."""
        store.add_note(make_note("n1"))
        store.add_interaction(self._interaction("i1", InteractionType.SHARE))

        assert store.delete_note("n1") == 2
        assert store.get_interaction("i1") is None
        assert store.note_engagement("n1") == {}


class TestLearningState:
    """Tests for profiles, difficulty, and achievements."""

    def test_profile_roundtrip(self, store: StateStore) -> None:
        """Profiles are saved as validated JSON."""
        profile = LearningProfile(user_id="u1", difficulty_preference=70)
        store.save_profile(profile)

        assert store.load_profile("u1") == profile
        assert store.load_profile("u2") is None

    def test_commit_activity_skips_duplicates(self, store: StateStore) -> None:
        """Awards already held are not inserted twice."""
        profile = LearningProfile(user_id="u1")

        first = store.commit_activity(profile, [_award("u1", "first-steps")])
        second = store.commit_activity(
            profile, [_award("u1", "first-steps"), _award("u1", "ai-novice")]
        )

        assert [a.achievement_id for a in first] == ["first-steps"]
        assert [a.achievement_id for a in second] == ["ai-novice"]
        assert store.earned_achievement_ids("u1") == {"first-steps", "ai-novice"}
        stored = store.user_achievements("u1")
        assert stored[0].earned_data.metrics == {"skill_area": "ai"}

    def test_catalog(self, store: StateStore) -> None:
        """Seeding is an upsert ordered by id."""
        assert store.upsert_achievements(DEFAULT_ACHIEVEMENTS) == 4
        assert store.upsert_achievements(DEFAULT_ACHIEVEMENTS) == 4

        assert [a.id for a in store.achievement_catalog()] == [
            "ai-novice",
            "first-steps",
            "learning-streak-3",
            "learning-streak-7",
        ]

    def test_difficulty_assessments(self, store: StateStore) -> None:
        """Assessments filter on skill and difficulty, best value first."""
        for content_id, value, level in [
            ("c1", 5.0, DifficultyLevel.BEGINNER),
            ("c2", 9.0, DifficultyLevel.BEGINNER),
            ("c3", 9.5, DifficultyLevel.ADVANCED),
        ]:
            store.upsert_difficulty(
                ContentDifficultyAssessment(
                    content_id=content_id,
                    content_type="paper",
                    primary_skill_area="ai",
                    overall_difficulty=level,
                    learning_value=value,
                )
            )

        rows = store.difficulty_assessments("ai", DifficultyLevel.BEGINNER, 10)

        assert [r.content_id for r in rows] == ["c2", "c1"]

    def test_stats(self, store: StateStore) -> None:
        """Stats count rows per table."""
        store.add_note(make_note("n1"))
        store.upsert_link(make_link("l1"))

        stats = store.stats()

        assert stats["notes"] == 1
        assert stats["link_stories"] == 1
        assert stats["papers"] == 0
        assert set(stats) >= {"learning_profiles", "user_achievements"}


class TestStoreMetrics:
    """Tests for transaction and award metrics."""

    def setup_method(self) -> None:
        """Reset metrics before each test."""
        StoreMetrics.reset()

    def test_counts_transactions_and_awards(self, tmp_path: Path) -> None:
        """Committed transactions and award outcomes are counted."""
        with StateStore(tmp_path / "db.sqlite") as store:
            store.commit_activity(LearningProfile(user_id="u1"), [_award("u1", "a")])
            store.commit_activity(LearningProfile(user_id="u1"), [_award("u1", "a")])

        snapshot = StoreMetrics.get_instance().to_dict()
        assert snapshot["db_tx_count"] == 2
        assert snapshot["db_tx_failed"] == 0
        assert snapshot["achievements_inserted_total"] == 1
        assert snapshot["achievements_ignored_total"] == 1
        assert snapshot["avg_tx_duration_ms"] >= 0.0

    def test_failed_transaction_rolls_back(self, tmp_path: Path) -> None:
        """A failing write is rolled back and counted."""
        with StateStore(tmp_path / "db.sqlite") as store:
            store.add_interaction(
                Interaction(
                    id="i1",
                    user_id="u1",
                    note_id="n1",
                    type=InteractionType.LIKE,
                    created_at=FIXED_NOW,
                )
            )
            with pytest.raises(sqlite3.IntegrityError):
                store.add_interaction(
                    Interaction(
                        id="i2",
                        user_id="u1",
                        note_id="n1",
                        type=InteractionType.LIKE,
                        created_at=FIXED_NOW,
                    )
                )
            assert store.get_interaction("i2") is None

        assert StoreMetrics.get_instance().db_tx_failed == 1


class TestConcurrency:
    """Tests for sharing one store across threads."""

    def test_failed_transaction_not_committed_by_other_thread(
        self, store: StateStore
    ) -> None:
        """Another user's commit waits for an open transaction and never publishes it."""
        entered = threading.Event()
        other_started = threading.Event()

        def failing_activity() -> None:
            with store._transaction("failing_activity"):
                store._write_profile(store._ensure_connected(), LearningProfile(user_id="a"))
                entered.set()
                other_started.wait(timeout=5)
                time.sleep(0.1)
                raise RuntimeError("activity failed")

        def other_user() -> None:
            other_started.set()
            store.save_profile(LearningProfile(user_id="b"))

        with ThreadPoolExecutor(max_workers=2) as pool:
            failing = pool.submit(failing_activity)
            assert entered.wait(timeout=5)
            other = pool.submit(other_user)

            with pytest.raises(RuntimeError, match="activity failed"):
                failing.result()
            other.result()

        assert store.load_profile("a") is None
        assert store.load_profile("b") is not None

    def test_parallel_activities_commit_together(self, store: StateStore) -> None:
        """Profiles and awards of many users all land, each with its own award."""
        users = [f"u{i}" for i in range(16)]

        def track(user_id: str) -> list[UserAchievement]:
            return store.commit_activity(
                LearningProfile(user_id=user_id), [_award(user_id, "first-steps")]
            )

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(track, users))

        assert all(len(inserted) == 1 for inserted in results)
        for user_id in users:
            assert store.load_profile(user_id) is not None
            assert store.earned_achievement_ids(user_id) == {"first-steps"}
