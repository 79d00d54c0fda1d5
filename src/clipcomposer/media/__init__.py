"""Media module for subtitle markup, overlay rasterization and rendering."""

from .models import (
    SubtitleCue,
    SubtitleStyle,
    OverlayStyle,
    OverlayTiming,
    TextOverlay,
    BackgroundAudio,
    CompositionRequest,
    Rendered,
    Stopped,
    RenderResult,
)
from .encoders import EncoderProfile
from .markup import (
    hex_to_ass_color,
    ass_color_or_default,
    anchor_position,
    escape_ass_text,
    compile_subtitles,
    compile_overlays,
    write_markup,
)
from .fonts import FontRegistry
from .rasterizer import OverlayRasterizer, SequenceInfo, FRAME_PATTERN
from .probe import MediaInfo, probe_media
from .graph import GraphStage, FilterGraph, CompositionPlan, build_filter_graph
from .transcoder import Transcoder, TranscodeOutcome
from .composition import Composer
from .clip import (
    build_clip_argv,
    build_audio_argv,
    extract_clip,
    extract_audio,
)
from .context import MediaContext, default_context, set_default_context

__all__ = [
    "SubtitleCue",
    "SubtitleStyle",
    "OverlayStyle",
    "OverlayTiming",
    "TextOverlay",
    "BackgroundAudio",
    "CompositionRequest",
    "Rendered",
    "Stopped",
    "RenderResult",
    "EncoderProfile",
    "hex_to_ass_color",
    "ass_color_or_default",
    "anchor_position",
    "escape_ass_text",
    "compile_subtitles",
    "compile_overlays",
    "write_markup",
    "FontRegistry",
    "OverlayRasterizer",
    "SequenceInfo",
    "FRAME_PATTERN",
    "MediaInfo",
    "probe_media",
    "GraphStage",
    "FilterGraph",
    "CompositionPlan",
    "build_filter_graph",
    "Transcoder",
    "TranscodeOutcome",
    "Composer",
    "build_clip_argv",
    "build_audio_argv",
    "extract_clip",
    "extract_audio",
    "MediaContext",
    "default_context",
    "set_default_context",
]
