"""Core module for clipcomposer."""

from .types import (
    OutputFormat,
    QualityTier,
    OverlayMode,
    FrameProgress,
    RenderProgress,
    FrameProgressCb,
    RenderProgressCb,
)
from .errors import (
    ClipComposerError,
    FormatError,
    EncodingError,
    InvalidRangeError,
    ProbeFailure,
    TranscodeError,
    RasterizeError,
)
from .timecode import (
    MAX_SUBTITLE_SECONDS,
    parse_subtitle_time,
    format_subtitle_time,
    format_markup_time,
    duration_seconds,
    is_active_at,
    parse_clock_time,
    parse_progress_time,
)

__all__ = [
    "OutputFormat",
    "QualityTier",
    "OverlayMode",
    "FrameProgress",
    "RenderProgress",
    "FrameProgressCb",
    "RenderProgressCb",
    "ClipComposerError",
    "FormatError",
    "EncodingError",
    "InvalidRangeError",
    "ProbeFailure",
    "TranscodeError",
    "RasterizeError",
    "MAX_SUBTITLE_SECONDS",
    "parse_subtitle_time",
    "format_subtitle_time",
    "format_markup_time",
    "duration_seconds",
    "is_active_at",
    "parse_clock_time",
    "parse_progress_time",
]
