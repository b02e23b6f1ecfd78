from __future__ import annotations


class RecommendationError(Exception):
    """Base class for errors raised by the recommendation core."""


class StoreError(RecommendationError):
    """A single ItemStore query failed (connection lost, bad data file, ...)."""


class BackendUnavailableError(RecommendationError):
    """Every strategy that queried the store failed; no partial result exists."""
