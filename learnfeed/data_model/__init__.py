"""Shared data model primitives."""

from learnfeed.data_model.base import MutableModel, StrictBaseModel, UtcDatetime


__all__ = ["MutableModel", "StrictBaseModel", "UtcDatetime"]
