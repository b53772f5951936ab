"""Note and interaction commands.

Every successful change drops the acting user's cached feed pages and
nothing else.
"""

import uuid
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import structlog

from learnfeed.cache.keys import KeyIndex
from learnfeed.content.models import NoteRecord
from learnfeed.errors import ConflictError, NotFoundError, ValidationFailedError
from learnfeed.interactions.models import Interaction, InteractionResult, InteractionType
from learnfeed.store.protocols import InteractionRepository


logger = structlog.get_logger()

UNLIKED = "unliked"


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return uuid.uuid4().hex


class InteractionService:
    """Creates and removes notes and interactions."""

    def __init__(
        self,
        repository: InteractionRepository,
        feed_keys: KeyIndex,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        """Initialize the service.

        Args:
            repository: Notes and interactions persistence.
            feed_keys: Index of each user's cached feed pages.
            clock: Source of the current UTC time.
            id_factory: Generator of new ids.
        """
        self._repo = repository
        self._feed_keys = feed_keys
        self._clock = clock
        self._new_id = id_factory
        self._log = logger.bind(component="interactions", subcomponent="service")

    def _require_note(self, note_id: str) -> NoteRecord:
        note = self._repo.get_note(note_id)
        if note is None:
            raise NotFoundError("note", note_id)
        return note

    def create_interaction(
        self,
        user_id: str,
        note_id: str,
        interaction_type: InteractionType | str,
    ) -> InteractionResult:
        """Record an interaction.

        A repeated like removes the existing like. Repeating any other type
        is a conflict.

        Args:
            user_id: Acting user.
            note_id: Target note.
            interaction_type: Kind of interaction.

        Returns:
            The resulting action.

        Raises:
            ValidationFailedError: On an unknown interaction type.
            NotFoundError: If the note does not exist.
            ConflictError: On a repeated non-like interaction.
        """
        try:
            kind = InteractionType(interaction_type)
        except ValueError as exc:
            msg = f"Unknown interaction type: {interaction_type}"
            raise ValidationFailedError(msg, field="type") from exc

        self._require_note(note_id)
        existing = self._repo.find_interaction(user_id, note_id, kind)
        if existing is not None:
            if kind is not InteractionType.LIKE:
                raise ConflictError(
                    f"You have already {kind.past_tense} this note",
                    {"note_id": note_id, "type": kind.value},
                )
            self._repo.remove_interaction(existing)
            self._feed_keys.invalidate(user_id)
            self._log.info("interaction_toggled_off", user_id=user_id, note_id=note_id)
            return InteractionResult(action=UNLIKED)

        interaction = self._repo.add_interaction(
            Interaction(
                id=self._new_id(),
                user_id=user_id,
                note_id=note_id,
                type=kind,
                created_at=self._clock(),
            )
        )
        self._feed_keys.invalidate(user_id)
        self._log.info(
            "interaction_created",
            user_id=user_id,
            note_id=note_id,
            type=kind.value,
        )
        return InteractionResult(action=kind.past_tense, interaction_id=interaction.id)

    def remove_interaction(self, interaction_id: str, user_id: str) -> None:
        """Delete one of the user's interactions.

        Raises:
            NotFoundError: If absent or owned by another user.
        """
        interaction = self._repo.get_interaction(interaction_id)
        if interaction is None or interaction.user_id != user_id:
            raise NotFoundError("interaction", interaction_id)
        self._repo.remove_interaction(interaction)
        self._feed_keys.invalidate(user_id)
        self._log.info("interaction_removed", user_id=user_id, interaction_id=interaction_id)

    def create_note(
        self,
        author_id: str,
        content: str,
        tags: Sequence[str] = (),
    ) -> NoteRecord:
        """Publish a note.

        Raises:
            ValidationFailedError: If the content is blank.
        """
        if not content.strip():
            raise ValidationFailedError("content must not be empty", field="content")
        note = self._repo.add_note(
            NoteRecord(
                id=self._new_id(),
                content=content,
                tags=tuple(tags),
                author_id=author_id,
                created_at=self._clock(),
            )
        )
        self._feed_keys.invalidate(author_id)
        self._log.info("note_created", author_id=author_id, note_id=note.id)
        return note

    def delete_note(self, note_id: str, user_id: str) -> None:
        """Delete a note and its interactions.

        Raises:
            NotFoundError: If the note does not exist.
            ConflictError: If ``user_id`` is not the author.
        """
        note = self._require_note(note_id)
        if note.author_id != user_id:
            raise ConflictError(
                "Only the author can delete this note", {"note_id": note_id}
            )
        self._repo.delete_note(note_id)
        self._feed_keys.invalidate(user_id)
        self._log.info("note_deleted", user_id=user_id, note_id=note_id)
