"""Common types and enums shared across all models."""

from enum import Enum


class GenerationStatus(str, Enum):
    """Lifecycle status of a trip's generation run."""

    not_started = "not_started"
    generating_summary = "generating_summary"
    generating = "generating"
    paused = "paused"
    completed = "completed"
    failed = "failed"


ACTIVE_STATUSES = frozenset({GenerationStatus.generating_summary, GenerationStatus.generating})


class GenerationAction(str, Enum):
    """Orchestrator step action."""

    start = "start"
    continue_ = "continue"
    retry = "retry"
    resume = "resume"


class MatchConfidence(str, Enum):
    """Collapsed confidence tier for a place link."""

    exact = "exact"
    high = "high"
    low = "low"
    none = "none"


class Pace(str, Enum):
    """Trip pace preference."""

    relaxed = "relaxed"
    moderate = "moderate"
    intensive = "intensive"
