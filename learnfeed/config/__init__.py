"""Engine configuration schemas and loader."""

from learnfeed.config.loader import ConfigLoader, ConfigValidationError, load_engine_config
from learnfeed.config.schemas import (
    DiversityConfig,
    EngineConfig,
    FeedConfig,
    NormalizerConfig,
    PackConfig,
    ProgressionConfig,
    ScoringConfig,
    TopicRule,
)


__all__ = [
    "ConfigLoader",
    "ConfigValidationError",
    "DiversityConfig",
    "EngineConfig",
    "FeedConfig",
    "NormalizerConfig",
    "PackConfig",
    "ProgressionConfig",
    "ScoringConfig",
    "TopicRule",
    "load_engine_config",
]
