"""Engine configuration schemas.

Every tunable constant of the ranking, pack, and progression engines lives
here as data so it can be overridden from YAML and asserted in tests.
"""

from typing import Annotated, Literal

from pydantic import Field, model_validator

from learnfeed.data_model import StrictBaseModel


PackSourceName = Literal["research", "link", "note"]


class KeywordTagRule(StrictBaseModel):
    """Adds ``tag`` when ``phrase`` occurs in the lowercase item text."""

    phrase: Annotated[str, Field(min_length=1)]
    tag: Annotated[str, Field(min_length=1)]


class CategoryRule(StrictBaseModel):
    """Maps a paper classification flag to a category label."""

    flag: Annotated[str, Field(min_length=1)]
    category: Annotated[str, Field(min_length=1)]


class NormalizerConfig(StrictBaseModel):
    """Rule tables for the content normalizer.

    Attributes:
        note_title_max_chars: Note titles are the body cut to this length.
        link_keywords: Keywords copied verbatim into link tags when present.
        link_phrase_tags: Phrase rules producing prefixed tags (show/ask).
        popular_score_threshold: Score above which a link is tagged popular.
        discussion_comment_threshold: Comments above which a link is tagged
            discussion.
        paper_category_rules: Ordered flag rules, first true flag wins.
        paper_fallback_category: Category when no flag is set.
    """

    note_title_max_chars: Annotated[int, Field(ge=1)] = 100
    link_keywords: list[str] = Field(
        default_factory=lambda: [
            "ai",
            "ml",
            "javascript",
            "python",
            "react",
            "vue",
            "angular",
            "nodejs",
            "blockchain",
            "crypto",
            "startup",
            "programming",
        ]
    )
    link_phrase_tags: list[KeywordTagRule] = Field(
        default_factory=lambda: [
            KeywordTagRule(phrase="show hn", tag="show-hn"),
            KeywordTagRule(phrase="ask hn", tag="ask-hn"),
        ]
    )
    popular_score_threshold: Annotated[int, Field(ge=0)] = 100
    discussion_comment_threshold: Annotated[int, Field(ge=0)] = 50
    paper_category_rules: list[CategoryRule] = Field(
        default_factory=lambda: [
            CategoryRule(flag="psychology", category="psychology"),
            CategoryRule(flag="behavioral_science", category="behavioral-science"),
            CategoryRule(flag="health_science", category="health-science"),
            CategoryRule(flag="neuroscience", category="neuroscience"),
            CategoryRule(flag="cognitive_science", category="cognitive-science"),
            CategoryRule(flag="ai_ml", category="ai-ml"),
        ]
    )
    paper_fallback_category: str = "research"


class ScoringConfig(StrictBaseModel):
    """Relevance scoring constants.

    Attributes:
        recency_decay_hours: e-folding time of the recency term.
        default_recency_boost: Recency boost when the user weight is zero.
        default_popularity_boost: Popularity boost when the user weight is zero.
        popularity_cap: Link popularity normalizer; ratio is capped at 1.
        neutral_popularity: Popularity used for types without a native signal.
        personalized_boost: Multiplier on the content-type preference term.
        category_weight_factor: Multiplier on the paper category term.
        default_category_weight: Category weight when the user set none.
        tag_relevance_weight: Multiplier on the tag-overlap ratio.
        interest_threshold: Category weight above which a category is an
            interest.
    """

    recency_decay_hours: Annotated[float, Field(gt=0.0)] = 24.0
    default_recency_boost: Annotated[float, Field(ge=0.0, le=1.0)] = 0.6
    default_popularity_boost: Annotated[float, Field(ge=0.0, le=1.0)] = 0.3
    popularity_cap: Annotated[float, Field(gt=0.0)] = 500.0
    neutral_popularity: Annotated[float, Field(ge=0.0, le=1.0)] = 0.5
    personalized_boost: Annotated[float, Field(ge=0.0, le=5.0)] = 0.8
    category_weight_factor: Annotated[float, Field(ge=0.0, le=5.0)] = 0.3
    default_category_weight: Annotated[float, Field(ge=0.0, le=100.0)] = 50.0
    tag_relevance_weight: Annotated[float, Field(ge=0.0, le=5.0)] = 0.2
    interest_threshold: Annotated[float, Field(ge=0.0, le=100.0)] = 70.0


class DiversityConfig(StrictBaseModel):
    """Diversity filter window settings."""

    window_size: Annotated[int, Field(ge=1)] = 5
    max_consecutive: Annotated[int, Field(ge=1)] = 2


class FeedConfig(StrictBaseModel):
    """Personalized feed assembly settings.

    Attributes:
        default_limit: Page size when the caller gives none.
        max_limit: Largest accepted page size.
        oversample_factor: Source fetch multiplier before scoring.
        paper_category_min_weight: Category weight above which papers of that
            category are requested from storage.
        cache_ttl_seconds: Feed page cache lifetime.
    """

    default_limit: Annotated[int, Field(ge=1)] = 50
    max_limit: Annotated[int, Field(ge=1)] = 200
    oversample_factor: Annotated[int, Field(ge=1)] = 2
    paper_category_min_weight: Annotated[float, Field(ge=0.0, le=100.0)] = 30.0
    cache_ttl_seconds: Annotated[int, Field(ge=1)] = 300


class TopicRule(StrictBaseModel):
    """Resolves a topic to a keyword set when any trigger is contained in it."""

    name: Annotated[str, Field(min_length=1)]
    triggers: Annotated[list[str], Field(min_length=1)]
    keywords: Annotated[list[str], Field(min_length=1)]


class PackConfig(StrictBaseModel):
    """Daily pack composition settings.

    Attributes:
        size: Number of slots in a pack.
        default_topic: Topic used when the caller gives none.
        research_target: Research items to place.
        research_oversample: Research fetch multiplier.
        research_max_age_days: Research freshness window.
        link_target: Link items to place.
        link_oversample: Link fetch multiplier.
        link_max_age_hours: Link freshness window.
        note_target: Note items to place.
        note_oversample: Note fetch multiplier.
        words_per_minute: Reading speed for reading-time estimates.
        min_reading_minutes: Reading-time floor for every source.
        max_reading_minutes: Reading-time ceiling for research and links.
        max_note_reading_minutes: Reading-time ceiling for notes.
        tldr_max_chars: Summary length cap for research and links.
        note_title_max_chars: Title length cap for notes.
        note_tldr_max_chars: Summary length cap for notes.
        interleave_pattern: Preferred source per slot.
        topic_rules: Ordered topic classifier rules, first match wins.
        paradigm_threshold: Paradigm score that refines why-it-matters.
        cache_ttl_seconds: Pack cache lifetime.
        summary_ttl_seconds: Per-paper summary cache lifetime.
        feedback_ttl_seconds: Daily feedback list lifetime.
        enrichment_timeout_seconds: Per-paper summarization timeout.
        enrichment_workers: Concurrent summarization calls.
    """

    size: Annotated[int, Field(ge=1)] = 12
    default_topic: Annotated[str, Field(min_length=1)] = "ai-ml"
    research_target: Annotated[int, Field(ge=0)] = 6
    research_oversample: Annotated[int, Field(ge=1)] = 2
    research_max_age_days: Annotated[int, Field(ge=1)] = 14
    link_target: Annotated[int, Field(ge=0)] = 3
    link_oversample: Annotated[int, Field(ge=1)] = 3
    link_max_age_hours: Annotated[int, Field(ge=1)] = 48
    note_target: Annotated[int, Field(ge=0)] = 3
    note_oversample: Annotated[int, Field(ge=1)] = 3
    words_per_minute: Annotated[int, Field(ge=1)] = 200
    min_reading_minutes: Annotated[int, Field(ge=1)] = 1
    max_reading_minutes: Annotated[int, Field(ge=1)] = 6
    max_note_reading_minutes: Annotated[int, Field(ge=1)] = 3
    tldr_max_chars: Annotated[int, Field(ge=2)] = 280
    note_title_max_chars: Annotated[int, Field(ge=2)] = 80
    note_tldr_max_chars: Annotated[int, Field(ge=2)] = 200
    interleave_pattern: Annotated[list[PackSourceName], Field(min_length=1)] = Field(
        default_factory=lambda: [
            "research",
            "research",
            "link",
            "research",
            "note",
            "research",
            "link",
            "research",
            "note",
            "link",
            "research",
            "note",
        ]
    )
    topic_rules: list[TopicRule] = Field(
        default_factory=lambda: [
            TopicRule(
                name="ai",
                triggers=["ai"],
                keywords=[
                    "llm",
                    "transformer",
                    "inference",
                    "agents",
                    "fine-tune",
                    "alignment",
                    "distillation",
                    "ml",
                ],
            ),
            TopicRule(
                name="cognition",
                triggers=["cognitive", "behavior"],
                keywords=[
                    "attention",
                    "memory",
                    "cognitive",
                    "neuroscience",
                    "decision",
                    "behavior",
                ],
            ),
            TopicRule(
                name="productivity",
                triggers=["productivity", "habit"],
                keywords=[
                    "habit",
                    "timebox",
                    "focus",
                    "productivity",
                    "gtd",
                    "zettelkasten",
                    "pkm",
                ],
            ),
        ]
    )
    paradigm_threshold: Annotated[int, Field(ge=0, le=5)] = 3
    cache_ttl_seconds: Annotated[int, Field(ge=1)] = 60 * 60 * 24
    summary_ttl_seconds: Annotated[int, Field(ge=1)] = 7 * 24 * 60 * 60
    feedback_ttl_seconds: Annotated[int, Field(ge=1)] = 60 * 60 * 24
    enrichment_timeout_seconds: Annotated[float, Field(gt=0.0)] = 8.0
    enrichment_workers: Annotated[int, Field(ge=1, le=32)] = 4

    @model_validator(mode="after")
    def validate_reading_range(self) -> "PackConfig":
        """Ensure reading-time ceilings are not below the floor."""
        if min(self.max_reading_minutes, self.max_note_reading_minutes) < (
            self.min_reading_minutes
        ):
            msg = "Reading-time ceilings must be >= min_reading_minutes"
            raise ValueError(msg)
        return self


class ProgressionConfig(StrictBaseModel):
    """Skill progression and learning service settings.

    Attributes:
        experience_per_level: Experience needed to advance one level.
        experience_gain: Experience per activity keyed by difficulty.
        default_experience_gain: Gain when difficulty is unspecified.
        history_limit: Assessment history entries kept per skill.
        initial_confidence: Confidence of a lazily created skill.
        daily_experience_estimate: Assumed daily gain for milestone estimates.
        recent_assessment_days: Window for the recent-activity bonus.
        recommendation_ttl_seconds: Recommendation cache lifetime.
        insights_ttl_seconds: Progress insight cache lifetime.
    """

    experience_per_level: Annotated[int, Field(ge=1)] = 1000
    experience_gain: dict[str, int] = Field(
        default_factory=lambda: {
            "beginner": 5,
            "intermediate": 10,
            "advanced": 20,
            "expert": 30,
        }
    )
    default_experience_gain: Annotated[int, Field(ge=0)] = 10
    history_limit: Annotated[int, Field(ge=1)] = 10
    initial_confidence: Annotated[float, Field(ge=0.0, le=100.0)] = 50.0
    daily_experience_estimate: Annotated[int, Field(ge=1)] = 15
    recent_assessment_days: Annotated[int, Field(ge=0)] = 7
    recommendation_ttl_seconds: Annotated[int, Field(ge=1)] = 60 * 30
    insights_ttl_seconds: Annotated[int, Field(ge=1)] = 60 * 60


class EngineConfig(StrictBaseModel):
    """Root configuration for engine.yaml.

    Attributes:
        version: Schema version.
        normalizer: Content normalizer rule tables.
        scoring: Relevance scoring constants.
        diversity: Diversity filter settings.
        feed: Feed assembly settings.
        pack: Daily pack settings.
        progression: Skill progression settings.
    """

    version: Annotated[str, Field(pattern=r"^\d+\.\d+$")] = "1.0"
    normalizer: NormalizerConfig = Field(default_factory=NormalizerConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    diversity: DiversityConfig = Field(default_factory=DiversityConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    pack: PackConfig = Field(default_factory=PackConfig)
    progression: ProgressionConfig = Field(default_factory=ProgressionConfig)
