"""Source records and normalization to unified items."""

from learnfeed.content.models import (
    ItemType,
    LinkStoryRecord,
    NoteRecord,
    PaperClassification,
    PaperRecord,
    UnifiedItem,
)
from learnfeed.content.normalizer import ContentNormalizer


__all__ = [
    "ContentNormalizer",
    "ItemType",
    "LinkStoryRecord",
    "NoteRecord",
    "PaperClassification",
    "PaperRecord",
    "UnifiedItem",
]
