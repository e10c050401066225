"""Static Gemini price table and cost computation."""

from dataclasses import dataclass
from typing import Optional

TOKENS_PER_MILLION = 1_000_000.0

# Pro models bill a higher tier once the prompt exceeds this many tokens
PRO_PROMPT_TOKEN_THRESHOLD = 200_000


@dataclass(frozen=True)
class ModelPrices:
    """Per-million-token prices for one model tier."""

    input_per_million: float = 0.0
    output_per_million: float = 0.0


_TIERED_PRICES = {
    # model: (low tier, high tier)
    "gemini-2.5-pro": (ModelPrices(1.25, 10.00), ModelPrices(2.50, 15.00)),
    "gemini-3-pro-preview": (ModelPrices(2.00, 12.00), ModelPrices(4.00, 18.00)),
}

# Older Pro names are billed at the 2.5 Pro rates
_TIERED_ALIASES = {
    "gemini-1.5-pro": "gemini-2.5-pro",
    "gemini-pro": "gemini-2.5-pro",
}

_FLAT_PRICES = {
    "gemini-2.5-flash": ModelPrices(0.30, 2.50),
    "gemini-2.5-flash-lite": ModelPrices(0.10, 0.40),
}


class UnsupportedModelError(KeyError):
    """Raised when a model has no entry in the price table."""


def get_model_prices(model_name: str, input_tokens: int) -> ModelPrices:
    """Return the prices for a model, picking the tier from the prompt size."""
    tiered_name = _TIERED_ALIASES.get(model_name, model_name)
    if tiered_name in _TIERED_PRICES:
        low, high = _TIERED_PRICES[tiered_name]
        return low if input_tokens <= PRO_PROMPT_TOKEN_THRESHOLD else high
    if model_name in _FLAT_PRICES:
        return _FLAT_PRICES[model_name]
    raise UnsupportedModelError(f"unsupported model for pricing: {model_name}")


def compute_cost(input_tokens: int, output_tokens: int, prices: Optional[ModelPrices]) -> float:
    """Dollar cost of one call."""
    if prices is None:
        return 0.0
    return (
        (input_tokens / TOKENS_PER_MILLION) * prices.input_per_million
        + (output_tokens / TOKENS_PER_MILLION) * prices.output_per_million
    )
