"""Core types and enums for clipcomposer."""

from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel


class OutputFormat(str, Enum):
    """Container/codec family of the rendered clip."""

    MP4 = "mp4"  # H.264 + AAC
    WEBM = "webm"  # VP9 + Opus


class QualityTier(str, Enum):
    """Encoder quality tier, mapped to a CRF value per codec family."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OverlayMode(str, Enum):
    """How text overlays reach the filter graph."""

    NONE = "none"
    STATIC = "static"  # single looped PNG
    SEQUENCE = "sequence"  # numbered PNG frames
    MARKUP = "markup"  # second subtitle-markup burn-in


class FrameProgress(BaseModel):
    """Progress of overlay frame rasterization."""

    frames_done: int
    total_frames: int
    percent: float


class RenderProgress(BaseModel):
    """Progress of a render, reported per stage."""

    stage: str
    percent: float
    seconds_done: Optional[float] = None


# Progress sinks supplied by callers
FrameProgressCb = Optional[Callable[[FrameProgress], None]]
RenderProgressCb = Optional[Callable[[RenderProgress], None]]
