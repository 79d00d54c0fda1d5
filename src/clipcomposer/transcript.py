"""Helpers for SRT transcripts produced by the speech-to-text step."""

import logging
import re
from typing import Iterable, List

from .core.errors import FormatError
from .core.timecode import format_subtitle_time, parse_subtitle_time
from .media.models import SubtitleCue

logger = logging.getLogger(__name__)

_BLOCK_SPLIT_RE = re.compile(r"\n\s*\n")
_WHITESPACE_RE = re.compile(r"\s+")


def _normalize_time(value: str) -> str:
    # Some engines write HH:MM:SS.mmm
    return value.strip().replace(".", ",")


def parse_srt(text: str) -> List[SubtitleCue]:
    """
    Parse SRT text into cues.

    Blocks are separated by blank lines. The text lines of a block are joined
    with single spaces. Blocks without a valid ``start --> end`` line are
    skipped with a warning.

    Args:
        text: SRT document

    Returns:
        Cues in document order
    """
    cues: List[SubtitleCue] = []
    normalized = text.replace("\r\n", "\n").replace("\r", "\n").strip()
    if not normalized:
        return cues

    for block in _BLOCK_SPLIT_RE.split(normalized):
        lines = block.split("\n")
        timing_index = next((i for i, line in enumerate(lines) if "-->" in line), None)
        if timing_index is None:
            logger.warning(f"Skipping SRT block without timing: {block[:40]!r}")
            continue

        start, _, rest = lines[timing_index].partition("-->")
        # Trailing cue settings (e.g. "X1:40") follow the end time
        end_parts = rest.split()
        start = _normalize_time(start)
        end = _normalize_time(end_parts[0] if end_parts else "")
        try:
            parse_subtitle_time(start)
            parse_subtitle_time(end)
        except FormatError as e:
            logger.warning(f"Skipping SRT block with bad timing: {e}")
            continue

        body = " ".join(lines[timing_index + 1 :])
        cues.append(
            SubtitleCue(start=start, end=end, text=_WHITESPACE_RE.sub(" ", body).strip())
        )

    return cues


def format_srt(cues: Iterable[SubtitleCue]) -> str:
    """Serialize cues as an SRT document, numbered from 1."""
    blocks = [
        f"{i}\n{cue.start} --> {cue.end}\n{cue.text}"
        for i, cue in enumerate(cues, start=1)
    ]
    return "\n\n".join(blocks) + "\n" if blocks else ""


def split_cue(cue: SubtitleCue, words_per_line: int = 5) -> List[SubtitleCue]:
    """
    Split a long cue into chunks of at most ``words_per_line`` words.

    The cue's time span is divided evenly between the chunks.

    Raises:
        ValueError: If words_per_line is less than 1
    """
    if words_per_line < 1:
        raise ValueError("words_per_line must be at least 1")

    words = cue.text.split()
    if len(words) <= words_per_line:
        return [cue]

    chunks = [
        " ".join(words[i : i + words_per_line])
        for i in range(0, len(words), words_per_line)
    ]
    start = cue.start_seconds()
    total = max(cue.end_seconds() - start, 0.01)
    step = total / len(chunks)

    return [
        SubtitleCue(
            start=format_subtitle_time(start + i * step),
            end=format_subtitle_time(start + (i + 1) * step),
            text=chunk,
        )
        for i, chunk in enumerate(chunks)
    ]


def chunk_transcript(srt: str, max_chars: int = 2000) -> List[str]:
    """Split a transcript on line boundaries into prompt-sized chunks."""
    chunks: List[str] = []
    current = ""

    for line in srt.split("\n"):
        if current and len(current) + len(line) > max_chars:
            chunks.append(current.strip())
            current = ""
        current += line + "\n"

    if current.strip():
        chunks.append(current.strip())
    return chunks
