"""Repository interfaces consumed by the services.

``StateStore`` implements all of them; tests substitute in-memory fakes.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from learnfeed.content.models import LinkStoryRecord, NoteRecord, PaperRecord
from learnfeed.interactions.models import Interaction, InteractionType
from learnfeed.learning.models import (
    Achievement,
    ContentDifficultyAssessment,
    DifficultyLevel,
    LearningProfile,
    UserAchievement,
)
from learnfeed.ranker.preferences import UserPreferenceProfile


class ContentRepository(Protocol):
    """Source record lookups.

    Keyword filters match case-insensitively against the record's title and
    body; an empty keyword list disables filtering.
    """

    def recent_notes(
        self, limit: int, keywords: Sequence[str] = ()
    ) -> list[NoteRecord]:
        """Newest notes first."""
        ...

    def top_links(
        self,
        limit: int,
        since: datetime | None = None,
        keywords: Sequence[str] = (),
    ) -> list[LinkStoryRecord]:
        """Highest-scored links first, newest first on equal score."""
        ...

    def recent_papers(
        self,
        limit: int,
        since: datetime | None = None,
        keywords: Sequence[str] = (),
        classification_flags: Sequence[str] = (),
    ) -> list[PaperRecord]:
        """Newest papers first; any listed classification flag must be set."""
        ...

    def difficulty_assessments(
        self, skill_area: str, difficulty: DifficultyLevel, limit: int
    ) -> list[ContentDifficultyAssessment]:
        """Content tagged for a skill at a difficulty, best learning value first."""
        ...


class UserRepository(Protocol):
    """User preference lookups."""

    def get_preferences(self, user_id: str) -> UserPreferenceProfile | None:
        """Stored preferences, or None when the user has set none."""
        ...


class ProfileRepository(Protocol):
    """Learning profile and achievement persistence."""

    def load_profile(self, user_id: str) -> LearningProfile | None:
        """Load a profile, None when absent."""
        ...

    def save_profile(self, profile: LearningProfile) -> LearningProfile:
        """Upsert a profile."""
        ...

    def upsert_achievements(self, achievements: Sequence[Achievement]) -> int:
        """Insert or replace catalog entries; returns entries written."""
        ...

    def achievement_catalog(self) -> list[Achievement]:
        """All achievements in catalog order."""
        ...

    def earned_achievement_ids(self, user_id: str) -> set[str]:
        """Ids of achievements the user already holds."""
        ...

    def commit_activity(
        self, profile: LearningProfile, awards: Sequence[UserAchievement]
    ) -> list[UserAchievement]:
        """Save a profile and insert awards atomically.

        Returns:
            Awards actually inserted; duplicates are skipped.
        """
        ...


class InteractionRepository(Protocol):
    """Notes and interactions persistence."""

    def get_note(self, note_id: str) -> NoteRecord | None:
        """Load a note, None when absent."""
        ...

    def add_note(self, note: NoteRecord) -> NoteRecord:
        """Insert a note."""
        ...

    def delete_note(self, note_id: str) -> int:
        """Delete a note and its interactions; returns rows removed."""
        ...

    def find_interaction(
        self, user_id: str, note_id: str, interaction_type: InteractionType
    ) -> Interaction | None:
        """Existing interaction of a type, None when absent."""
        ...

    def get_interaction(self, interaction_id: str) -> Interaction | None:
        """Load an interaction by id."""
        ...

    def add_interaction(self, interaction: Interaction) -> Interaction:
        """Insert an interaction and bump the note's engagement count."""
        ...

    def remove_interaction(self, interaction: Interaction) -> None:
        """Delete an interaction and decrement the note's engagement count."""
        ...
