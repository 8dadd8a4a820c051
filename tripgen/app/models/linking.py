"""Place linking counters and derived health figures."""

from pydantic import BaseModel, Field


class DerivedLinkingMetrics(BaseModel):
    """Rates (percent, one decimal) and overall health score (0-100)."""

    link_rate: float
    exact_match_rate: float
    fallback_success_rate: float
    invalid_id_rate: float
    health_score: int


class LinkingMetrics(BaseModel):
    """Counts of place-linking decisions over one generation run."""

    total_timeline: int = Field(0, ge=0)
    total_meals: int = Field(0, ge=0)

    linked_exact: int = Field(0, ge=0)
    linked_high: int = Field(0, ge=0)
    linked_low: int = Field(0, ge=0)
    unlinked: int = Field(0, ge=0)

    fallbacks_attempted: int = Field(0, ge=0)
    fallbacks_successful: int = Field(0, ge=0)

    invalid_ids_detected: int = Field(0, ge=0)
    ids_used_as_names: int = Field(0, ge=0)

    processing_time_ms: float = Field(0, ge=0)

    @property
    def total_items(self) -> int:
        return self.total_timeline + self.total_meals

    @property
    def linked_items(self) -> int:
        return self.linked_exact + self.linked_high + self.linked_low

    def merge(self, other: "LinkingMetrics") -> "LinkingMetrics":
        """Return the field-wise sum of two metric sets."""
        data = self.model_dump()
        for key, value in other.model_dump().items():
            data[key] = data[key] + value
        return LinkingMetrics(**data)

    def derived(self) -> DerivedLinkingMetrics:
        """Compute link, exact-match and fallback rates plus the weighted health score.

        health = 0.5 * link_rate + 0.3 * exact_match_rate + 0.2 * max(0, 100 - invalid_id_rate)
        """
        total = self.total_items
        link_rate = self.linked_items / total * 100 if total else 0.0
        exact_match_rate = self.linked_exact / total * 100 if total else 0.0
        fallback_success_rate = (
            self.fallbacks_successful / self.fallbacks_attempted * 100
            if self.fallbacks_attempted
            else 100.0
        )
        invalid_id_rate = self.invalid_ids_detected / total * 100 if total else 0.0

        health_score = round(
            link_rate * 0.5 + exact_match_rate * 0.3 + max(0.0, 100 - invalid_id_rate) * 0.2
        )

        return DerivedLinkingMetrics(
            link_rate=round(link_rate, 1),
            exact_match_rate=round(exact_match_rate, 1),
            fallback_success_rate=round(fallback_success_rate, 1),
            invalid_id_rate=round(invalid_id_rate, 1),
            health_score=health_score,
        )
