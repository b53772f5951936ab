"""Daily pack composition."""

from learnfeed.pack.builders import PackItemBuilder, truncate
from learnfeed.pack.composer import DailyPackComposer
from learnfeed.pack.enrichment import PaperEnricher
from learnfeed.pack.metrics import PackMetrics
from learnfeed.pack.models import (
    DailyPack,
    FeedbackAction,
    FeedbackEntry,
    PackItem,
    PackSource,
)
from learnfeed.pack.topics import TopicClassifier


__all__ = [
    "DailyPack",
    "DailyPackComposer",
    "FeedbackAction",
    "FeedbackEntry",
    "PackItem",
    "PackItemBuilder",
    "PackMetrics",
    "PackSource",
    "PaperEnricher",
    "TopicClassifier",
    "truncate",
]
