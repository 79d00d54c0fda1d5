"""Client module for the LLM clip selector API."""

from .api import ClipSelectorClient, MODEL_ALIASES
from .models import (
    Part,
    Content,
    GenerationConfig,
    GenerateContentRequest,
    ClipCandidate,
    ApiError,
    AuthenticationError,
    RateLimitError,
    ClipSelectionError,
    parse_clip_candidates,
)

__all__ = [
    "ClipSelectorClient",
    "MODEL_ALIASES",
    "Part",
    "Content",
    "GenerationConfig",
    "GenerateContentRequest",
    "ClipCandidate",
    "ApiError",
    "AuthenticationError",
    "RateLimitError",
    "ClipSelectionError",
    "parse_clip_candidates",
]
