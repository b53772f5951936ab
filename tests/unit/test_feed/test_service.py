"""Unit tests for the feed service."""

from datetime import timedelta

import pytest

from learnfeed.cache.memory import InMemoryCache
from learnfeed.content.models import ItemType
from learnfeed.errors import ValidationFailedError
from learnfeed.feed.service import FeedService
from learnfeed.ranker.metrics import RankerMetrics
from learnfeed.ranker.preferences import UserPreferenceProfile
from tests.helpers.fakes import InMemoryRepository
from tests.helpers.records import make_link, make_note, make_paper
from tests.helpers.time import FIXED_NOW


@pytest.fixture
def repository() -> InMemoryRepository:
    """Create a repository with a few of each source."""
    repo = InMemoryRepository()
    for i in range(3):
        note = make_note(f"note-{i}", content=f"note {i}", age=timedelta(hours=i + 1))
        repo.notes[note.id] = note
        link = make_link(f"hn-{i}", title=f"story {i}", score=300 - 100 * i)
        repo.links[link.id] = link
        paper = make_paper(f"p{i}", age=timedelta(hours=i + 1), ai_ml=True)
        repo.papers[paper.id] = paper
    return repo


@pytest.fixture
def service(repository: InMemoryRepository) -> FeedService:
    """Create a feed service at the fixed test time."""
    return FeedService(repository, repository, InMemoryCache(), clock=lambda: FIXED_NOW)


class TestDefaultFeed:
    """Tests for users without preferences."""

    def setup_method(self) -> None:
        """Reset metrics before each test."""
        RankerMetrics.reset()

    def test_notes_then_links(self, service: FeedService) -> None:
        """Newest notes then top links, unscored."""
        page = service.get_personalized_feed("u1", limit=4)

        assert not page.personalized
        assert [s.item.id for s in page.items] == ["note-0", "note-1", "hn-0", "hn-1"]
        assert all(s.score == 0.0 for s in page.items)
        assert page.pagination.total == 4
        assert not page.pagination.has_more

    def test_no_papers_requested(
        self, service: FeedService, repository: InMemoryRepository
    ) -> None:
        """The default feed never touches papers."""
        service.get_personalized_feed("u1", limit=4)

        assert [name for name, _ in repository.calls] == ["recent_notes", "top_links"]


class TestPersonalizedFeed:
    """Tests for users with preferences."""

    def setup_method(self) -> None:
        """Reset metrics before each test."""
        RankerMetrics.reset()

    def test_type_quotas(
        self, service: FeedService, repository: InMemoryRepository
    ) -> None:
        """Each source is fetched in proportion to its weight, oversampled."""
        repository.preferences["u1"] = UserPreferenceProfile.from_mapping(
            {"content_type_weights": {"note": 100, "link": 50, "paper": 0}}
        )

        page = service.get_personalized_feed("u1", limit=10)

        calls = dict(repository.calls)
        assert calls["recent_notes"]["limit"] == 20
        assert calls["top_links"]["limit"] == 10
        assert "recent_papers" not in calls
        assert page.personalized
        assert page.pagination.total == 6

    def test_paper_flags_from_category_weights(
        self, service: FeedService, repository: InMemoryRepository
    ) -> None:
        """Only categories weighted above the threshold are requested."""
        repository.preferences["u1"] = UserPreferenceProfile.from_mapping(
            {"category_weights": {"psychology": 10, "neuroscience": 30, "ai_ml": 90}}
        )

        service.get_personalized_feed("u1", limit=10)

        flags = dict(repository.calls)["recent_papers"]["classification_flags"]
        assert flags == (
            "behavioral_science",
            "health_science",
            "cognitive_science",
            "ai_ml",
        )

    def test_popularity_cap_against_baseline(
        self, service: FeedService, repository: InMemoryRepository
    ) -> None:
        """A very popular link saturates above the fixed baseline of other types."""
        repository.notes = {"n": make_note("n", age=timedelta(hours=1))}
        repository.links = {"l": make_link("l", score=600, age=timedelta(hours=1))}
        repository.papers = {"p": make_paper("p", age=timedelta(hours=1))}
        repository.preferences["u1"] = UserPreferenceProfile.from_mapping(
            {"feed_behavior": {"recency_weight": 60, "popularity_weight": 40}}
        )

        page = service.get_personalized_feed("u1", limit=10)

        popularity = {
            s.item.type: s.components.popularity_score
            for s in page.items
            if s.components is not None
        }
        assert popularity[ItemType.LINK] == pytest.approx(1.0 * 0.4 * 0.4)
        assert popularity[ItemType.NOTE] == pytest.approx(0.5 * 0.4 * 0.4)
        assert popularity[ItemType.PAPER] == popularity[ItemType.NOTE]
        assert popularity[ItemType.LINK] > popularity[ItemType.NOTE]

    def test_scores_descend_before_diversity(
        self, service: FeedService, repository: InMemoryRepository
    ) -> None:
        """Every fetched item appears once with its relevance."""
        repository.preferences["u1"] = UserPreferenceProfile()

        page = service.get_personalized_feed("u1", limit=20)

        ids = [s.item.id for s in page.items]
        assert len(ids) == len(set(ids)) == 9
        assert all(s.relevance == s.score > 0 for s in page.items)

    def test_pagination(
        self, service: FeedService, repository: InMemoryRepository
    ) -> None:
        """Pages are slices of one ranking."""
        repository.preferences["u1"] = UserPreferenceProfile()

        page = service.get_personalized_feed("u1", limit=2, offset=2)

        assert page.pagination.offset == 2
        assert page.pagination.has_more
        assert len(page.items) == 2


class TestValidationAndCaching:
    """Tests for input validation and page caching."""

    def setup_method(self) -> None:
        """Reset metrics before each test."""
        RankerMetrics.reset()

    @pytest.mark.parametrize(
        ("limit", "offset", "field"),
        [(0, 0, "limit"), (201, 0, "limit"), (10, -1, "offset")],
    )
    def test_rejects_out_of_range(
        self, service: FeedService, limit: int, offset: int, field: str
    ) -> None:
        """Out-of-range pages are rejected before any fetch."""
        with pytest.raises(ValidationFailedError) as exc_info:
            service.get_personalized_feed("u1", limit=limit, offset=offset)

        assert exc_info.value.field == field

    def test_default_limit(self, service: FeedService) -> None:
        """Omitting the limit uses the configured default."""
        assert service.get_personalized_feed("u1").pagination.limit == 50

    def test_cache_hit(
        self, service: FeedService, repository: InMemoryRepository
    ) -> None:
        """A repeated request is served from cache."""
        first = service.get_personalized_feed("u1", limit=4)
        repository.notes.clear()

        second = service.get_personalized_feed("u1", limit=4)

        assert second == first
        metrics = RankerMetrics.get_instance()
        assert (metrics.cache_hits, metrics.cache_misses) == (1, 1)

    def test_invalidate_user(
        self, service: FeedService, repository: InMemoryRepository
    ) -> None:
        """Invalidation drops every page of that user only."""
        service.get_personalized_feed("u1", limit=4)
        service.get_personalized_feed("u1", limit=2, offset=2)
        service.get_personalized_feed("u2", limit=4)
        repository.notes.clear()

        assert service.invalidate_user("u1") == 2

        assert [s.item.id for s in service.get_personalized_feed("u1", limit=4).items] == [
            "hn-0",
            "hn-1",
        ]
        assert len(service.get_personalized_feed("u2", limit=4).items) == 4
