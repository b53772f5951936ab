"""Typed user preference profile.

Preferences are a fixed, versioned struct with named fields. Every weight
lies in [0, 100] and defaults to the center of the range when absent.
"""

from collections.abc import Mapping
from typing import Annotated, Literal

from pydantic import Field, ValidationError

from learnfeed.data_model import StrictBaseModel
from learnfeed.errors import ValidationFailedError


Weight = Annotated[float, Field(ge=0.0, le=100.0)]

DEFAULT_WEIGHT = 50.0


class ContentTypeWeights(StrictBaseModel):
    """Preference weight per content type."""

    note: Weight = DEFAULT_WEIGHT
    link: Weight = DEFAULT_WEIGHT
    paper: Weight = DEFAULT_WEIGHT
    discussion: Weight = DEFAULT_WEIGHT

    def weight_for(self, item_type: str) -> float:
        """Weight of a content type, default when the type has no field."""
        return float(getattr(self, item_type, DEFAULT_WEIGHT))


class CategoryWeights(StrictBaseModel):
    """Preference weight per topical category."""

    psychology: Weight = DEFAULT_WEIGHT
    behavioral_science: Weight = DEFAULT_WEIGHT
    health_science: Weight = DEFAULT_WEIGHT
    neuroscience: Weight = DEFAULT_WEIGHT
    cognitive_science: Weight = DEFAULT_WEIGHT
    ai_ml: Weight = DEFAULT_WEIGHT
    computer_science: Weight = DEFAULT_WEIGHT

    def weight_for(self, category: str) -> float | None:
        """Look up the weight for an item category label.

        Args:
            category: Category label such as ``behavioral-science``.

        Returns:
            Weight, or None when no field corresponds to the category.
        """
        name = category.replace("-", "_")
        if name not in type(self).model_fields:
            return None
        return float(getattr(self, name))

    def items(self) -> list[tuple[str, float]]:
        """Field name and weight pairs in declaration order."""
        return [(name, float(getattr(self, name))) for name in type(self).model_fields]


class FeedBehavior(StrictBaseModel):
    """How the feed balances freshness, popularity, and variety."""

    recency_weight: Weight = DEFAULT_WEIGHT
    popularity_weight: Weight = DEFAULT_WEIGHT
    diversity_importance: Weight = DEFAULT_WEIGHT


class UserPreferenceProfile(StrictBaseModel):
    """Versioned preference profile read by the relevance scorer.

    Attributes:
        version: Schema version of the profile.
        content_type_weights: Weight per content type.
        category_weights: Weight per category.
        feed_behavior: Recency/popularity/diversity weights.
    """

    version: Literal[1] = 1
    content_type_weights: ContentTypeWeights = Field(default_factory=ContentTypeWeights)
    category_weights: CategoryWeights = Field(default_factory=CategoryWeights)
    feed_behavior: FeedBehavior = Field(default_factory=FeedBehavior)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "UserPreferenceProfile":
        """Validate a raw preference mapping.

        Args:
            data: Untrusted preference data.

        Returns:
            Validated profile.

        Raises:
            ValidationFailedError: On unknown fields or out-of-range weights.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ValidationFailedError.from_pydantic(e) from e
