"""Personalized feed service."""

from learnfeed.feed.models import FeedPage, Pagination
from learnfeed.feed.service import FEED_NAMESPACE, FeedService


__all__ = ["FEED_NAMESPACE", "FeedPage", "FeedService", "Pagination"]
