"""Notes and interactions."""

from learnfeed.interactions.models import Interaction, InteractionResult, InteractionType


__all__ = ["Interaction", "InteractionResult", "InteractionType"]
