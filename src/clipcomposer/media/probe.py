"""Asynchronous ffprobe wrapper."""

import asyncio
import json
from pydantic import BaseModel
from typing import Optional

from ..core.errors import ProbeFailure
from .context import MediaContext


class MediaInfo(BaseModel):
    """Facts about a source file needed to plan a render."""

    duration: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None
    fps: Optional[float] = None
    has_audio: bool = False


def _parse_rate(rate: Optional[str]) -> Optional[float]:
    if not rate or "/" not in rate:
        return None
    try:
        num, den = rate.split("/")
        fps = float(num) / float(den)
    except (ValueError, ZeroDivisionError):
        return None
    return fps if fps > 0 else None


def parse_probe_output(data: dict) -> MediaInfo:
    """
    Turn ffprobe JSON into MediaInfo.

    Rotation metadata of 90/270 degrees swaps width and height so the
    reported size is the display size.

    Raises:
        ProbeFailure: If no usable duration is present
    """
    streams = data.get("streams") or []
    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    has_audio = any(s.get("codec_type") == "audio" for s in streams)

    duration = None
    raw = (data.get("format") or {}).get("duration")
    if raw is None and video is not None:
        raw = video.get("duration")
    try:
        duration = float(raw) if raw is not None else None
    except (TypeError, ValueError):
        duration = None
    if duration is None or duration <= 0:
        raise ProbeFailure(f"ffprobe reported no duration ({raw!r})")

    width = height = fps = None
    if video is not None:
        width = video.get("width")
        height = video.get("height")
        fps = _parse_rate(video.get("avg_frame_rate")) or _parse_rate(
            video.get("r_frame_rate")
        )

        rotation = 0
        if video.get("rotation"):
            rotation = abs(int(float(video["rotation"])))
        elif (video.get("tags") or {}).get("rotate"):
            rotation = abs(int(video["tags"]["rotate"]))
        if rotation in (90, 270) and width and height:
            width, height = height, width

    return MediaInfo(
        duration=duration,
        width=int(width) if width else None,
        height=int(height) if height else None,
        fps=fps,
        has_audio=has_audio,
    )


async def probe_media(
    path: str, ctx: MediaContext, timeout: float = 15.0
) -> MediaInfo:
    """
    Probe a media file.

    Args:
        path: Media file path
        ctx: Media context providing the ffprobe binary
        timeout: Seconds to wait for ffprobe

    Returns:
        MediaInfo for the file

    Raises:
        ProbeFailure: If ffprobe is missing, fails, times out or returns
            unusable output
    """
    cmd = [
        ctx.ffprobe,
        "-v",
        "quiet",
        "-print_format",
        "json",
        "-show_entries",
        "stream=codec_type,width,height,avg_frame_rate,r_frame_rate,duration,"
        "rotation:stream_tags=rotate:format=duration",
        path,
    ]
    ctx.logger.debug(f"Probing {path}: {' '.join(cmd)}")

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise ProbeFailure(f"ffprobe not found: {e}", path)

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise ProbeFailure(f"Timeout while probing {path}", path)

    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        raise ProbeFailure(f"ffprobe failed for {path}: {message}", path)

    try:
        data = json.loads(stdout.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as e:
        raise ProbeFailure(f"Invalid ffprobe output for {path}: {e}", path)

    try:
        return parse_probe_output(data)
    except ProbeFailure as e:
        raise ProbeFailure(f"{e} for {path}", path)
