"""Models package - re-exports for convenience."""

from tripgen.app.models.common import (
    ACTIVE_STATUSES,
    GenerationAction,
    GenerationStatus,
    MatchConfidence,
    Pace,
)
from tripgen.app.models.generation import (
    MAX_RETRIES,
    Accepted,
    FailedDay,
    GenerationRecord,
    GenerationStatusView,
    InvokeStepRequest,
    RetryGenerationRequest,
    StartGenerationRequest,
    StepRequest,
    TripRequest,
)
from tripgen.app.models.itinerary import (
    AccommodationPlan,
    AccommodationSuggestion,
    DayNote,
    ItineraryDay,
    MealSuggestion,
    SummaryResult,
    TimelineEntry,
    TripPlan,
    TripSummary,
)
from tripgen.app.models.linking import DerivedLinkingMetrics, LinkingMetrics
from tripgen.app.models.places import Place, PlaceLocation, PlacesCatalog
from tripgen.app.models.trip import TravelPreferences, Trip

__all__ = [
    # Common
    "ACTIVE_STATUSES",
    "GenerationAction",
    "GenerationStatus",
    "MatchConfidence",
    "Pace",
    # Generation
    "MAX_RETRIES",
    "Accepted",
    "FailedDay",
    "GenerationRecord",
    "GenerationStatusView",
    "InvokeStepRequest",
    "RetryGenerationRequest",
    "StartGenerationRequest",
    "StepRequest",
    "TripRequest",
    # Itinerary
    "AccommodationPlan",
    "AccommodationSuggestion",
    "DayNote",
    "ItineraryDay",
    "MealSuggestion",
    "SummaryResult",
    "TimelineEntry",
    "TripPlan",
    "TripSummary",
    # Linking
    "DerivedLinkingMetrics",
    "LinkingMetrics",
    # Places
    "Place",
    "PlaceLocation",
    "PlacesCatalog",
    # Trip
    "TravelPreferences",
    "Trip",
]
