"""Compile subtitle cues and text overlays into ASS subtitle markup.

The output is consumed by ffmpeg's ``ass`` filter (libass). Positions are
given as canvas percentages and every event re-asserts its own ``\\pos`` so
that per-item overrides never depend on a shared default.
"""

import asyncio
import logging
import math
import re
from typing import Iterable, List, Optional, Tuple

from ..core.errors import EncodingError, InvalidRangeError
from ..core.timecode import duration_seconds, format_markup_time, to_seconds
from .models import OverlayStyle, SubtitleCue, SubtitleStyle, TextOverlay

logger = logging.getLogger(__name__)

STYLE_NAME = "Default"
FALLBACK_COLOR = "FFFFFF"

_HEX_RE = re.compile(r"^#?([0-9A-Fa-f]{6})$")

_STYLE_FORMAT = (
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, "
    "OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, "
    "ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, "
    "MarginR, MarginV, Encoding"
)
_EVENT_FORMAT = (
    "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text"
)


def _half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _num(value: float) -> str:
    # Two decimals at most, no trailing zeros: 1.0 -> "1", 0.45 -> "0.45"
    text = f"{round(value, 2):.2f}".rstrip("0").rstrip(".")
    return text or "0"


def hex_to_ass_color(hex_color: str, opacity: float = 100) -> str:
    """
    Convert ``#RRGGBB`` plus an opacity percentage to ASS ``&HAABBGGRR``.

    ASS alpha is inverted: ``00`` is opaque and ``FF`` fully transparent.

    Args:
        hex_color: Color with or without the leading ``#``
        opacity: Opacity percentage, clamped to 0-100

    Returns:
        Encoded color, e.g. ``&H000000FF`` for opaque red

    Raises:
        EncodingError: If the color is not six hex digits
    """
    match = _HEX_RE.match(hex_color.strip()) if isinstance(hex_color, str) else None
    if not match:
        raise EncodingError(f"Invalid hex color: {hex_color!r}", str(hex_color))

    digits = match.group(1).upper()
    red, green, blue = digits[0:2], digits[2:4], digits[4:6]
    opacity = max(0.0, min(100.0, float(opacity)))
    alpha = _half_up((100 - opacity) / 100 * 255)
    return f"&H{alpha:02X}{blue}{green}{red}"


def ass_color_or_default(
    hex_color: str, opacity: float = 100, warnings: Optional[List[str]] = None
) -> str:
    """
    Encode a color, falling back to opaque white when it is malformed.

    The requested opacity is dropped along with the bad value. The fallback
    is logged and, when ``warnings`` is given, recorded there.
    """
    try:
        return hex_to_ass_color(hex_color, opacity)
    except EncodingError as e:
        message = f"{e}; using #{FALLBACK_COLOR}"
        logger.warning(message)
        if warnings is not None:
            warnings.append(message)
        return hex_to_ass_color(FALLBACK_COLOR, 100)


def anchor_position(
    x_pct: float, y_pct: float, width: int, height: int
) -> Tuple[int, int]:
    """Map percentage coordinates to the nearest canvas pixel."""
    return _half_up(x_pct / 100 * width), _half_up(y_pct / 100 * height)


def escape_ass_text(text: str) -> str:
    """
    Make plain text safe for an ASS ``Dialogue`` line.

    Braces would open an override block, so they are replaced with
    parentheses; line breaks become the ``\\N`` hard break.
    """
    return (
        text.replace("\\", "\\\\")
        .replace("{", "(")
        .replace("}", ")")
        .replace("\r\n", "\\N")
        .replace("\n", "\\N")
    )


def _scaled_size(size: float, font_scale: float) -> int:
    return max(1, _half_up(size * font_scale))


def _event_times(start: float, end: float) -> Tuple[str, str]:
    duration_seconds(start, end)
    start_text = format_markup_time(start)
    end_text = format_markup_time(end)
    if start_text == end_text:
        raise InvalidRangeError(
            f"Range {start:.3f}s-{end:.3f}s collapses to {start_text} "
            "at centisecond precision",
            start=start,
            end=end,
        )
    return start_text, end_text


def _header(
    style: SubtitleStyle,
    width: int,
    height: int,
    font_scale: float,
    warnings: Optional[List[str]],
) -> List[str]:
    primary = ass_color_or_default(style.font_color, style.opacity, warnings)
    outline = ass_color_or_default(style.stroke_color, style.opacity, warnings)
    if style.background_enabled:
        back = ass_color_or_default(
            style.background_color, style.background_opacity, warnings
        )
        border_style = 3  # opaque box
    else:
        back = "&H00000000"
        border_style = 1  # outline + shadow

    font_name = (style.font_family or "Arial").replace(",", " ")
    fields = [
        STYLE_NAME,
        font_name,
        str(_scaled_size(style.font_size, font_scale)),
        primary,
        "&H00000000",
        outline,
        back,
        "-1" if style.bold else "0",
        "-1" if style.italic else "0",
        "-1" if style.underline else "0",
        "0",  # strikeout
        "100",
        "100",
        "0",
        "0",
        str(border_style),
        _num(max(0.0, style.stroke_width * font_scale)),
        "0",  # shadow
        "5",  # centred on \pos
        "20",
        "20",
        "20",
        "1",
    ]

    return [
        "[Script Info]",
        "ScriptType: v4.00+",
        f"PlayResX: {width}",
        f"PlayResY: {height}",
        "ScaledBorderAndShadow: yes",
        "WrapStyle: 0",
        "",
        "[V4+ Styles]",
        _STYLE_FORMAT,
        "Style: " + ",".join(fields),
        "",
        "[Events]",
        _EVENT_FORMAT,
    ]


def _dialogue(start: str, end: str, text: str) -> str:
    return f"Dialogue: 0,{start},{end},{STYLE_NAME},,0,0,0,,{text}"


def compile_subtitles(
    cues: Iterable[SubtitleCue],
    style: SubtitleStyle,
    width: int,
    height: int,
    font_scale: float = 1.0,
    warnings: Optional[List[str]] = None,
) -> str:
    """
    Build a complete ASS document for a list of cues sharing one style.

    Args:
        cues: Subtitle cues, emitted in input order
        style: Style declared once as ``Default``
        width: Canvas width in pixels (PlayResX)
        height: Canvas height in pixels (PlayResY)
        font_scale: Calibration factor applied to font size and outline
        warnings: Optional list collecting recovered color errors

    Returns:
        ASS document text

    Raises:
        FormatError: If a cue timestamp is malformed
        InvalidRangeError: If a cue ends at or before its start, including
            after rounding to centiseconds
    """
    lines = _header(style, width, height, font_scale, warnings)
    x, y = anchor_position(style.x, style.y, width, height)

    for cue in cues:
        start, end = _event_times(cue.start_seconds(), cue.end_seconds())
        text = f"{{\\pos({x},{y})}}{escape_ass_text(cue.text)}"
        lines.append(_dialogue(start, end, text))

    return "\n".join(lines) + "\n"


def _overlay_override(
    overlay: TextOverlay,
    width: int,
    height: int,
    font_scale: float,
    warnings: Optional[List[str]],
) -> str:
    style: OverlayStyle = overlay.style
    opacity = style.opacity if style.opacity is not None else 100
    x, y = anchor_position(overlay.x, overlay.y, width, height)
    primary = ass_color_or_default(style.color or "#FFFFFF", opacity, warnings)
    outline = ass_color_or_default(style.stroke_color or "#000000", opacity, warnings)
    border = _num(max(0.0, (style.stroke_width or 0) * font_scale))

    return (
        f"{{\\pos({x},{y})"
        f"\\fs{_scaled_size(style.font_size, font_scale)}"
        f"\\c{primary}"
        f"\\3c{outline}"
        f"\\bord{border}"
        f"\\b{1 if style.bold else 0}"
        f"\\i{1 if style.italic else 0}"
        f"\\u{1 if style.underline else 0}}}"
    )


def compile_overlays(
    overlays: Iterable[TextOverlay],
    width: int,
    height: int,
    default_duration: float,
    font_scale: float = 1.0,
    warnings: Optional[List[str]] = None,
) -> str:
    """
    Build an ASS document where each overlay carries its own inline style.

    Overlays without a start begin at 0; overlays without an end last until
    ``default_duration``.
    """
    lines = _header(SubtitleStyle(), width, height, font_scale, warnings)

    for overlay in overlays:
        timing = overlay.timing
        start = to_seconds(timing.start) if timing and timing.start is not None else 0.0
        end = (
            to_seconds(timing.end)
            if timing and timing.end is not None
            else default_duration
        )
        start_text, end_text = _event_times(start, end)
        override = _overlay_override(overlay, width, height, font_scale, warnings)
        lines.append(
            _dialogue(start_text, end_text, override + escape_ass_text(overlay.text))
        )

    return "\n".join(lines) + "\n"


def _write_text(path: str, document: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(document)


async def write_markup(path: str, document: str) -> str:
    """Write a markup document as UTF-8 without blocking the event loop."""
    await asyncio.to_thread(_write_text, path, document)
    return path
