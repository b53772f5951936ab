"""Relevance scoring, diversity filtering, and feed ranking."""

from learnfeed.ranker.diversity import DiversityFilter
from learnfeed.ranker.metrics import RankerMetrics
from learnfeed.ranker.models import ScoreComponents, ScoredItem
from learnfeed.ranker.preferences import (
    CategoryWeights,
    ContentTypeWeights,
    FeedBehavior,
    UserPreferenceProfile,
)
from learnfeed.ranker.ranker import FeedRanker, order_scored, ranking_key
from learnfeed.ranker.scorer import RelevanceScorer, tag_overlap_ratio


__all__ = [
    "CategoryWeights",
    "ContentTypeWeights",
    "DiversityFilter",
    "FeedBehavior",
    "FeedRanker",
    "RankerMetrics",
    "RelevanceScorer",
    "ScoreComponents",
    "ScoredItem",
    "UserPreferenceProfile",
    "order_scored",
    "ranking_key",
    "tag_overlap_ratio",
]
