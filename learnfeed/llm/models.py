"""Data models for paper summaries."""

import math

from pydantic import Field

from learnfeed.data_model import StrictBaseModel


PARADIGM_KEYS: tuple[str, ...] = (
    "training",
    "agent_creation",
    "safeguards",
    "token_counting",
    "prompting",
)


def _clamp_rounded(value: object, upper: int) -> int:
    """Round half up and clamp to [0, upper]; unparseable values become 0."""
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    return max(0, min(upper, math.floor(number + 0.5)))


class PaperSummary(StrictBaseModel):
    """Normalized summary of a paper.

    Attributes:
        tldr: Short factual summary.
        paradigms: Relevance per paradigm, integers 0-5.
        merit_score: Novelty/rigor/impact judgement, 0-100.
        rationale: Optional model explanation.
    """

    tldr: str
    paradigms: dict[str, int] = Field(default_factory=dict)
    merit_score: int = Field(default=0, ge=0, le=100)
    rationale: str | None = None

    @classmethod
    def from_raw(cls, raw: dict[str, object]) -> "PaperSummary":
        """Normalize a parsed provider response.

        Paradigm scores are rounded and clamped to 0-5 for every known
        paradigm (missing ones become 0); the merit score is clamped to
        0-100.

        Args:
            raw: Parsed JSON object from the provider.

        Returns:
            Normalized summary.
        """
        raw_paradigms = raw.get("paradigms")
        source = raw_paradigms if isinstance(raw_paradigms, dict) else {}
        paradigms = {key: _clamp_rounded(source.get(key, 0), 5) for key in PARADIGM_KEYS}
        rationale = raw.get("rationale")
        return cls(
            tldr=str(raw.get("tldr") or ""),
            paradigms=paradigms,
            merit_score=_clamp_rounded(raw.get("meritScore", 0), 100),
            rationale=str(rationale) if rationale else None,
        )

    def dominant_paradigm(self) -> tuple[str, int] | None:
        """Highest-scoring paradigm, first in key order on ties."""
        if not self.paradigms:
            return None
        return max(self.paradigms.items(), key=lambda kv: kv[1])
