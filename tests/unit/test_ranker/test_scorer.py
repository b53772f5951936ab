"""Unit tests for relevance scoring."""

import math
from datetime import timedelta

import pytest

from learnfeed.config.schemas import ScoringConfig
from learnfeed.content.models import ItemType
from learnfeed.ranker.preferences import UserPreferenceProfile
from learnfeed.ranker.scorer import RelevanceScorer, tag_overlap_ratio
from tests.helpers.records import make_item
from tests.helpers.time import FIXED_NOW


def _prefs(**overrides: dict[str, float]) -> UserPreferenceProfile:
    """Build a preference profile from nested overrides."""
    return UserPreferenceProfile.from_mapping(overrides)


@pytest.fixture
def scorer() -> RelevanceScorer:
    """Create a scorer with default constants."""
    return RelevanceScorer()


class TestTagOverlapRatio:
    """Tests for tag_overlap_ratio."""

    def test_empty_inputs(self) -> None:
        """Empty tags or interests score zero."""
        assert tag_overlap_ratio([], ["ai_ml"]) == 0.0
        assert tag_overlap_ratio(["llm"], []) == 0.0

    def test_substring_match_both_directions(self) -> None:
        """A tag matches when either string contains the other."""
        assert tag_overlap_ratio(["ai"], ["ai_ml"]) == 1.0
        assert tag_overlap_ratio(["neuroscience-lab"], ["neuroscience"]) == 1.0

    def test_divides_by_larger_set(self) -> None:
        """Ratio is matches over the larger of the two sizes."""
        assert tag_overlap_ratio(["llm", "AI_ML"], ["ai_ml"]) == 0.5
        assert tag_overlap_ratio(["psychology"], ["psychology", "ai_ml", "x"]) == (
            pytest.approx(1 / 3)
        )


class TestRelevanceScorer:
    """Tests for RelevanceScorer components."""

    def test_default_link_score(self, scorer: RelevanceScorer) -> None:
        """A fresh link with default preferences sums every term."""
        item = make_item(popularity=250.0, published_at=FIXED_NOW)

        components = scorer.components(item, UserPreferenceProfile(), FIXED_NOW)

        assert components.recency_score == pytest.approx(0.25)
        assert components.popularity_score == pytest.approx(0.125)
        assert components.content_type_score == pytest.approx(0.4)
        assert components.category_score == 0.0
        assert components.tag_score == 0.0
        assert scorer.score(item, UserPreferenceProfile(), FIXED_NOW) == pytest.approx(0.775)

    def test_recency_decays_exponentially(self, scorer: RelevanceScorer) -> None:
        """One decay period divides recency by e."""
        prefs = UserPreferenceProfile()
        fresh = scorer.components(make_item(published_at=FIXED_NOW), prefs, FIXED_NOW)
        day_old = scorer.components(
            make_item(published_at=FIXED_NOW - timedelta(hours=24)), prefs, FIXED_NOW
        )

        assert day_old.recency_score == pytest.approx(fresh.recency_score / math.e)

    def test_future_timestamp_counts_as_new(self, scorer: RelevanceScorer) -> None:
        """Negative ages are clamped to zero."""
        prefs = UserPreferenceProfile()
        future = scorer.components(
            make_item(published_at=FIXED_NOW + timedelta(hours=5)), prefs, FIXED_NOW
        )

        assert future.recency_score == pytest.approx(0.25)

    def test_zero_recency_weight_disables_recency(self, scorer: RelevanceScorer) -> None:
        """A zero weight contributes nothing despite the default boost."""
        prefs = _prefs(feed_behavior={"recency_weight": 0.0})

        assert scorer.components(make_item(), prefs, FIXED_NOW).recency_score == 0.0

    def test_popularity_capped(self, scorer: RelevanceScorer) -> None:
        """Link popularity saturates at the cap."""
        prefs = UserPreferenceProfile()
        capped = scorer.components(make_item(popularity=5000.0), prefs, FIXED_NOW)
        at_cap = scorer.components(make_item(popularity=500.0), prefs, FIXED_NOW)

        assert capped.popularity_score == at_cap.popularity_score == pytest.approx(0.25)

    def test_non_link_uses_neutral_popularity(self, scorer: RelevanceScorer) -> None:
        """Notes and papers get the neutral popularity signal."""
        note = make_item(item_type=ItemType.NOTE, popularity=0.0)

        components = scorer.components(note, UserPreferenceProfile(), FIXED_NOW)

        assert components.popularity_score == pytest.approx(0.5 * 0.5 * 0.5)

    def test_paper_category_and_tags(self, scorer: RelevanceScorer) -> None:
        """Papers score their category weight and tag overlap with interests."""
        prefs = _prefs(category_weights={"ai_ml": 90.0})
        paper = make_item(
            item_type=ItemType.PAPER,
            category="ai-ml",
            source_label="arXiv",
            tags=["llm", "ai_ml"],
        )

        components = scorer.components(paper, prefs, FIXED_NOW)

        assert components.category_score == pytest.approx(0.27)
        assert components.tag_score == pytest.approx(0.1)

    def test_unmapped_paper_category_uses_default(self, scorer: RelevanceScorer) -> None:
        """Categories without a weight field use the default weight."""
        paper = make_item(item_type=ItemType.PAPER, category="research")

        components = scorer.components(paper, UserPreferenceProfile(), FIXED_NOW)

        assert components.category_score == pytest.approx(0.15)

    def test_user_interests_threshold(self, scorer: RelevanceScorer) -> None:
        """Only weights strictly above the threshold are interests."""
        prefs = _prefs(category_weights={"psychology": 70.0, "neuroscience": 71.0})

        assert scorer.user_interests(prefs) == ["neuroscience"]

    def test_score_item_sets_relevance(self, scorer: RelevanceScorer) -> None:
        """Relevance mirrors the score."""
        scored = scorer.score_item(make_item(), UserPreferenceProfile(), FIXED_NOW)

        assert scored.relevance == scored.score
        assert scored.components is not None
        assert scored.score == pytest.approx(scored.components.total_score)

    def test_custom_constants(self) -> None:
        """Constants come from configuration."""
        scorer = RelevanceScorer(ScoringConfig(personalized_boost=2.0))

        components = scorer.components(make_item(), UserPreferenceProfile(), FIXED_NOW)

        assert components.content_type_score == pytest.approx(1.0)


class TestScoreMonotonicity:
    """Raising one preference weight never lowers a matching item's score."""

    @pytest.mark.parametrize("item_type", list(ItemType))
    def test_content_type_weight(self, scorer: RelevanceScorer, item_type: ItemType) -> None:
        """Higher type weight yields a strictly higher score."""
        item = make_item(item_type=item_type)
        scores = [
            scorer.score(item, _prefs(content_type_weights={item_type.value: w}), FIXED_NOW)
            for w in (0.0, 25.0, 50.0, 75.0, 100.0)
        ]

        assert scores == sorted(scores)
        assert len(set(scores)) == len(scores)

    def test_category_weight(self, scorer: RelevanceScorer) -> None:
        """Higher category weight never lowers a paper's score."""
        paper = make_item(item_type=ItemType.PAPER, category="neuroscience")
        scores = [
            scorer.score(paper, _prefs(category_weights={"neuroscience": w}), FIXED_NOW)
            for w in (0.0, 30.0, 60.0, 90.0, 100.0)
        ]

        assert scores == sorted(scores)

    def test_newer_scores_higher(self, scorer: RelevanceScorer) -> None:
        """With equal weights, newer items score higher."""
        prefs = UserPreferenceProfile()
        ages = [0, 1, 6, 24, 72]
        scores = [
            scorer.score(
                make_item(published_at=FIXED_NOW - timedelta(hours=h)), prefs, FIXED_NOW
            )
            for h in ages
        ]

        assert scores == sorted(scores, reverse=True)
