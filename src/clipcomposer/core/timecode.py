"""Timestamp parsing, formatting and range arithmetic.

Three encodings are in play:

- subtitle-file time ``HH:MM:SS,mmm`` (storage form for cues and overlays)
- markup time ``H:MM:SS.cc`` (emitted only into subtitle markup)
- plain float seconds (all arithmetic)

Every other component converts through this module.
"""

import math
import re
from typing import Optional, Union

from .errors import FormatError, InvalidRangeError

TimeValue = Union[str, float, int]

_SUBTITLE_TIME_RE = re.compile(r"(\d{2}):(\d{2}):(\d{2}),(\d{3})")
# Largest value the two-digit hour field can hold
MAX_SUBTITLE_SECONDS = 99 * 3600 + 59 * 60 + 59.999
_CLOCK_TIME_RE = re.compile(
    r"^(?:(?:(\d+):)?(\d{1,2}):)?(\d+)(?:[.,](\d{1,3}))?$"
)
_PROGRESS_TIME_RE = re.compile(r"time=\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")


def _to_millis(s: str) -> int:
    match = _SUBTITLE_TIME_RE.fullmatch(s) if isinstance(s, str) else None
    if not match:
        raise FormatError(f"Invalid subtitle timestamp: {s!r} (expected HH:MM:SS,mmm)", s)

    hours, minutes, seconds, millis = (int(part) for part in match.groups())
    if minutes >= 60 or seconds >= 60:
        raise FormatError(f"Minutes and seconds must be below 60: {s!r}", s)

    return ((hours * 60 + minutes) * 60 + seconds) * 1000 + millis


def parse_subtitle_time(s: str) -> float:
    """
    Parse a subtitle-file timestamp into seconds.

    Hours are elapsed time, so values past 24 are valid.

    Args:
        s: Timestamp in ``HH:MM:SS,mmm`` form

    Returns:
        Seconds as float (exact to the millisecond)

    Raises:
        FormatError: If the string does not match the pattern
    """
    return _to_millis(s) / 1000


def format_subtitle_time(seconds: float) -> str:
    """
    Format seconds as a subtitle-file timestamp (``HH:MM:SS,mmm``).

    Negative values clamp to zero.

    Raises:
        ValueError: If the time does not fit the two-digit hour field
            (past ``99:59:59,999``)
    """
    total_ms = int(math.floor(max(seconds, 0.0) * 1000 + 0.5))
    if total_ms > 359_999_999:
        raise ValueError(
            f"{seconds}s exceeds the largest subtitle timestamp (99:59:59,999)"
        )
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def format_markup_time(seconds: float) -> str:
    """
    Format seconds as a markup timestamp (``H:MM:SS.cc``).

    Centiseconds are rounded half-up; a value that rounds to 100 carries
    into the seconds field. This is the only lossy step of the codec.

    Args:
        seconds: Time in seconds

    Returns:
        Markup timestamp with an unpadded hour field
    """
    total_cs = int(math.floor(max(seconds, 0.0) * 100 + 0.5))
    hours, rem = divmod(total_cs, 360_000)
    minutes, rem = divmod(rem, 6000)
    secs, centis = divmod(rem, 100)
    return f"{hours}:{minutes:02d}:{secs:02d}.{centis:02d}"


def to_seconds(value: TimeValue) -> float:
    """Convert a subtitle timestamp or a number to seconds."""
    if isinstance(value, str):
        return parse_subtitle_time(value)
    return float(value)


def duration_seconds(start: TimeValue, end: TimeValue) -> float:
    """
    Length of a time range in seconds.

    Raises:
        InvalidRangeError: If end <= start
    """
    start_s = to_seconds(start)
    end_s = to_seconds(end)
    if end_s <= start_s:
        raise InvalidRangeError(
            f"Range end ({end_s:.3f}s) must be after start ({start_s:.3f}s)",
            start=start_s,
            end=end_s,
        )
    return end_s - start_s


def is_active_at(window, default_end: float, t: float) -> bool:
    """
    Check whether instant ``t`` lies inside a timing window.

    Bounds are inclusive: ``[start or 0, end or default_end]``.

    Args:
        window: Object or mapping with optional ``start``/``end`` (seconds or
            subtitle timestamps); None means always active
        default_end: End used when the window has none
        t: Instant in seconds
    """
    if window is None:
        return True

    if isinstance(window, dict):
        start = window.get("start")
        end = window.get("end")
    else:
        start = getattr(window, "start", None)
        end = getattr(window, "end", None)

    start_s = to_seconds(start) if start is not None else 0.0
    end_s = to_seconds(end) if end is not None else default_end
    return start_s <= t <= end_s


def parse_clock_time(s: TimeValue) -> float:
    """
    Parse a loosely formatted clock time into seconds.

    Accepts ``SS``, ``MM:SS`` and ``HH:MM:SS``, each optionally followed by a
    ``,mmm`` or ``.fff`` fraction, as well as plain numbers.

    Raises:
        FormatError: If the value cannot be read as a time
    """
    if isinstance(s, (int, float)):
        if s < 0:
            raise FormatError(f"Negative time: {s}", str(s))
        return float(s)

    text = str(s).strip()
    match = _CLOCK_TIME_RE.match(text)
    if not match:
        raise FormatError(f"Invalid clock time: {s!r}", text)

    hours, minutes, secs, frac = match.groups()
    if (minutes is not None and int(secs) >= 60) or (
        hours is not None and int(minutes) >= 60
    ):
        raise FormatError(f"Minutes and seconds must be below 60: {s!r}", text)

    total = int(secs) + int(minutes or 0) * 60 + int(hours or 0) * 3600
    if frac:
        total += int(frac.ljust(3, "0")) / 1000
    return float(total)


def parse_progress_time(line: str) -> Optional[float]:
    """Extract the ``time=`` position (seconds) from an ffmpeg progress line."""
    match = _PROGRESS_TIME_RE.search(line)
    if not match:
        return None
    hours, minutes, secs = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(secs)
