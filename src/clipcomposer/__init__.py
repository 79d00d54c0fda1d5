"""clipcomposer - Burn subtitles, text overlays and background music into video clips with FFmpeg."""

from .__version__ import __version__
from .client import ClipSelectorClient, ClipCandidate, parse_clip_candidates
from .media import (
    SubtitleCue,
    SubtitleStyle,
    OverlayStyle,
    OverlayTiming,
    TextOverlay,
    BackgroundAudio,
    CompositionRequest,
    Rendered,
    Stopped,
    Composer,
    EncoderProfile,
    extract_clip,
    extract_audio,
    FontRegistry,
    MediaContext,
    default_context,
    set_default_context,
)
from .core import (
    OutputFormat,
    QualityTier,
    OverlayMode,
    RenderProgress,
    FrameProgress,
    ClipComposerError,
    FormatError,
    EncodingError,
    InvalidRangeError,
    ProbeFailure,
    TranscodeError,
    RasterizeError,
)
from .transcript import parse_srt, format_srt, split_cue, chunk_transcript


__all__ = [
    "__version__",
    "ClipSelectorClient",
    "ClipCandidate",
    "parse_clip_candidates",
    "SubtitleCue",
    "SubtitleStyle",
    "OverlayStyle",
    "OverlayTiming",
    "TextOverlay",
    "BackgroundAudio",
    "CompositionRequest",
    "Rendered",
    "Stopped",
    "Composer",
    "EncoderProfile",
    "extract_clip",
    "extract_audio",
    "FontRegistry",
    "MediaContext",
    "default_context",
    "set_default_context",
    "OutputFormat",
    "QualityTier",
    "OverlayMode",
    "RenderProgress",
    "FrameProgress",
    "ClipComposerError",
    "FormatError",
    "EncodingError",
    "InvalidRangeError",
    "ProbeFailure",
    "TranscodeError",
    "RasterizeError",
    "parse_srt",
    "format_srt",
    "split_cue",
    "chunk_transcript",
]
