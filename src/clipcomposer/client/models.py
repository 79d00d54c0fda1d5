"""Pydantic models for the LLM clip selector client."""

import json
import re
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Tuple

from ..core.errors import FormatError, InvalidRangeError
from ..core.timecode import format_subtitle_time, parse_clock_time

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*|\s*```\s*$")

# Accepted spellings of the range keys in model output
START_KEYS = ("start", "startTime", "start_time")
END_KEYS = ("end", "endTime", "end_time")


class Part(BaseModel):
    """Text part of a message."""

    text: str


class Content(BaseModel):
    """One message in a generateContent request."""

    role: str = "user"
    parts: List[Part]


class GenerationConfig(BaseModel):
    """Sampling options sent with a request."""

    temperature: Optional[float] = None
    response_mime_type: Optional[str] = Field(
        default=None, serialization_alias="responseMimeType"
    )


class GenerateContentRequest(BaseModel):
    """Request body for ``models/{model}:generateContent``."""

    contents: List[Content]
    generation_config: Optional[GenerationConfig] = Field(
        default=None, serialization_alias="generationConfig"
    )


class ClipCandidate(BaseModel):
    """A time range suggested by the selector, plus whatever else it returned."""

    start: float
    end: float
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def duration(self) -> float:
        """Length of the range in seconds."""
        return self.end - self.start

    def to_cue_range(self) -> Tuple[str, str]:
        """Start and end as ``HH:MM:SS,mmm`` strings."""
        return format_subtitle_time(self.start), format_subtitle_time(self.end)


class ApiError(Exception):
    """Custom exception for API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[dict] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class AuthenticationError(ApiError):
    """Exception raised when the API key is rejected."""

    pass


class RateLimitError(ApiError):
    """Exception raised when the API quota is exhausted."""

    pass


class ClipSelectionError(ApiError):
    """Exception raised when the model output is not a clip list."""

    pass


def _first_key(item: Dict[str, Any], keys: Tuple[str, ...]) -> Optional[str]:
    return next((key for key in keys if key in item), None)


def _strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text.strip())


def parse_clip_candidates(text: str) -> List[ClipCandidate]:
    """
    Parse the selector's JSON answer into clip candidates.

    Only well-formedness is checked: every item must carry a parseable start
    and end with ``end > start``. Other keys are kept as metadata.

    Args:
        text: Model output, optionally wrapped in a Markdown code fence

    Returns:
        Candidates in output order

    Raises:
        ClipSelectionError: If the text is not a JSON array of objects
        FormatError: If a start or end cannot be read as a time
        InvalidRangeError: If a candidate ends at or before its start
    """
    try:
        data = json.loads(_strip_fences(text))
    except json.JSONDecodeError as e:
        raise ClipSelectionError(f"Clip selector returned invalid JSON: {e}")

    if not isinstance(data, list):
        raise ClipSelectionError(
            f"Clip selector returned {type(data).__name__}, expected a list"
        )

    candidates = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ClipSelectionError(f"Clip #{index} is not an object: {item!r}")

        start_key = _first_key(item, START_KEYS)
        end_key = _first_key(item, END_KEYS)
        if start_key is None or end_key is None:
            raise FormatError(f"Clip #{index} is missing start or end", str(item))

        start = parse_clock_time(item[start_key])
        end = parse_clock_time(item[end_key])
        if end <= start:
            raise InvalidRangeError(
                f"Clip #{index} ends at {end:.3f}s, before its start {start:.3f}s",
                start=start,
                end=end,
            )

        metadata = {
            key: value for key, value in item.items() if key not in (start_key, end_key)
        }
        candidates.append(ClipCandidate(start=start, end=end, metadata=metadata))

    return candidates
