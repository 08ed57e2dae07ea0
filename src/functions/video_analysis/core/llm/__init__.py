"""LLM clients and helpers for the video analysis module."""

from .gemini_client import GeminiVideoClient, GenerationRequest, VideoModelClient
from .request_budget import BudgetExhausted, RequestBudget

__all__ = [
    "GeminiVideoClient",
    "GenerationRequest",
    "VideoModelClient",
    "RequestBudget",
    "BudgetExhausted",
]
