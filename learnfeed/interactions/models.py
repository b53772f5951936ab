"""Data models for interactions with notes."""

from enum import Enum
from typing import Annotated

from pydantic import Field

from learnfeed.data_model import StrictBaseModel, UtcDatetime


class InteractionType(str, Enum):
    """Ways a user can interact with a note.

    ``LIKE`` toggles; the others may be recorded once per user and note.
    """

    LIKE = "like"
    SHARE = "share"
    SAVE = "save"
    APPLY = "apply"

    @property
    def past_tense(self) -> str:
        """Result label such as ``liked`` or ``applied``."""
        return _PAST_TENSE[self]


_PAST_TENSE: dict[InteractionType, str] = {
    InteractionType.LIKE: "liked",
    InteractionType.SHARE: "shared",
    InteractionType.SAVE: "saved",
    InteractionType.APPLY: "applied",
}


class Interaction(StrictBaseModel):
    """A stored interaction."""

    id: Annotated[str, Field(min_length=1)]
    user_id: Annotated[str, Field(min_length=1)]
    note_id: Annotated[str, Field(min_length=1)]
    type: InteractionType
    created_at: UtcDatetime


class InteractionResult(StrictBaseModel):
    """Outcome of creating an interaction.

    Attributes:
        action: ``liked``, ``unliked``, ``shared``, ``saved``, or ``applied``.
        interaction_id: Id of the created interaction, None when toggled off.
    """

    action: str
    interaction_id: str | None = None
