"""Topic normalization and keyword resolution."""

from collections.abc import Sequence

from learnfeed.config.schemas import TopicRule


class TopicClassifier:
    """Resolves a topic string to search keywords.

    Rules are checked in order; the first rule with a trigger contained in
    the lowercase topic wins. A topic matching no rule has no keywords,
    which means sources are queried unfiltered.
    """

    def __init__(self, rules: Sequence[TopicRule], default_topic: str) -> None:
        self._rules = list(rules)
        self._default_topic = default_topic.lower()

    def normalize(self, topic: str | None) -> str:
        """Lowercase a topic, substituting the default for empty input."""
        cleaned = (topic or "").strip().lower()
        return cleaned or self._default_topic

    def rule_for(self, topic: str) -> TopicRule | None:
        """First rule whose trigger occurs in ``topic``."""
        lowered = topic.lower()
        for rule in self._rules:
            if any(trigger in lowered for trigger in rule.triggers):
                return rule
        return None

    def keywords_for(self, topic: str) -> tuple[str, ...]:
        """Keywords for ``topic``; empty when no rule matches."""
        rule = self.rule_for(topic)
        return tuple(rule.keywords) if rule else ()
