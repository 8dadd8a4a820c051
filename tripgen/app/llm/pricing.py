"""Token pricing for completion cost tracking."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TokenPricing:
    """USD price per one million tokens."""

    input_per_1m: float
    output_per_1m: float


MODEL_PRICING: dict[str, TokenPricing] = {
    "gpt-4o-mini": TokenPricing(input_per_1m=0.15, output_per_1m=0.60),
    "gpt-4o": TokenPricing(input_per_1m=2.50, output_per_1m=10.0),
    "gpt-4.1": TokenPricing(input_per_1m=2.0, output_per_1m=8.0),
    "gpt-4.1-mini": TokenPricing(input_per_1m=0.40, output_per_1m=1.60),
    "stub": TokenPricing(input_per_1m=0.0, output_per_1m=0.0),
}

DEFAULT_PRICING = TokenPricing(input_per_1m=2.50, output_per_1m=10.0)


def pricing_for_model(model: str) -> TokenPricing:
    """Pricing for ``model``; dated snapshots fall back to their base model."""
    if model in MODEL_PRICING:
        return MODEL_PRICING[model]
    # e.g. "gpt-4o-mini-2024-07-18"
    for name in sorted(MODEL_PRICING, key=len, reverse=True):
        if model.startswith(f"{name}-"):
            return MODEL_PRICING[name]
    return DEFAULT_PRICING


def calculate_cost_cents(model: str, input_tokens: int, output_tokens: int) -> int:
    """Cost of one call in whole US cents (rounded)."""
    pricing = pricing_for_model(model)
    input_cost = input_tokens / 1_000_000 * pricing.input_per_1m
    output_cost = output_tokens / 1_000_000 * pricing.output_per_1m
    return round((input_cost + output_cost) * 100)
