"""Forward-only state machine for skill levels."""

import structlog

from learnfeed.learning.models import SkillLevel


logger = structlog.get_logger()


# Valid level transitions: one step forward, master is terminal
_VALID_TRANSITIONS: dict[SkillLevel, set[SkillLevel]] = {
    SkillLevel.BEGINNER: {SkillLevel.INTERMEDIATE},
    SkillLevel.INTERMEDIATE: {SkillLevel.ADVANCED},
    SkillLevel.ADVANCED: {SkillLevel.EXPERT},
    SkillLevel.EXPERT: {SkillLevel.MASTER},
    SkillLevel.MASTER: set(),
}


class SkillLevelTransitionError(Exception):
    """Raised when a demotion or a skipped level is attempted."""

    def __init__(
        self,
        skill_area: str,
        from_level: SkillLevel,
        to_level: SkillLevel,
    ) -> None:
        """Initialize the transition error.

        Args:
            skill_area: Skill being transitioned.
            from_level: Current level.
            to_level: Attempted target level.
        """
        self.skill_area = skill_area
        self.from_level = from_level
        self.to_level = to_level
        super().__init__(
            f"Illegal skill level transition for '{skill_area}': "
            f"{from_level.value} -> {to_level.value}"
        )


class SkillLevelStateMachine:
    """Guards level changes of one skill.

    Enforces valid transitions and logs all level changes.
    """

    def __init__(self, skill_area: str, level: SkillLevel) -> None:
        """Initialize the state machine.

        Args:
            skill_area: Skill being tracked.
            level: Current level.
        """
        self._skill_area = skill_area
        self._level = level
        self._log = logger.bind(component="learning", skill_area=skill_area)

    @property
    def level(self) -> SkillLevel:
        """Get the current level."""
        return self._level

    @property
    def is_terminal(self) -> bool:
        """Check if the level can no longer advance."""
        return not _VALID_TRANSITIONS[self._level]

    def can_transition_to(self, target: SkillLevel) -> bool:
        """Check if a transition to the target level is valid.

        Args:
            target: The target level.

        Returns:
            True if the transition is valid.
        """
        return target in _VALID_TRANSITIONS.get(self._level, set())

    def transition_to(self, target: SkillLevel) -> None:
        """Move to a new level.

        Args:
            target: The target level.

        Raises:
            SkillLevelTransitionError: If the transition is invalid.
        """
        if not self.can_transition_to(target):
            self._log.error(
                "illegal_skill_level_transition",
                from_level=self._level.value,
                to_level=target.value,
            )
            raise SkillLevelTransitionError(self._skill_area, self._level, target)

        old_level = self._level
        self._level = target
        self._log.info(
            "skill_level_transition",
            from_level=old_level.value,
            to_level=target.value,
        )

    def advance(self) -> SkillLevel:
        """Advance one level.

        Returns:
            The new level.

        Raises:
            SkillLevelTransitionError: If already at the terminal level.
        """
        targets = _VALID_TRANSITIONS[self._level]
        if not targets:
            raise SkillLevelTransitionError(self._skill_area, self._level, self._level)
        self.transition_to(next(iter(targets)))
        return self._level
