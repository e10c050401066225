"""Gemini API integration for aistory."""

from .gemini_client import (
    ClientCreationError,
    EmptyResponseError,
    GeminiClient,
    GeminiError,
    GenerationError,
    HistoryTurn,
    ModelCallResult,
)
from .pricing import ModelPrices, compute_cost, get_model_prices

__all__ = [
    "ClientCreationError",
    "EmptyResponseError",
    "GeminiClient",
    "GeminiError",
    "GenerationError",
    "HistoryTurn",
    "ModelCallResult",
    "ModelPrices",
    "compute_cost",
    "get_model_prices",
]
