"""Cut time ranges out of source videos and extract their audio tracks."""

import os
from typing import Dict, List, Optional

from ..core.errors import ProbeFailure
from ..core.timecode import TimeValue, duration_seconds, to_seconds
from ..core.types import RenderProgressCb
from .context import MediaContext, default_context
from .encoders import EncoderProfile
from .models import Rendered, RenderResult, Stopped
from .probe import probe_media
from .transcoder import Transcoder

# Codec flags per audio container
_AUDIO_CODECS: Dict[str, List[str]] = {
    "wav": ["-c:a", "pcm_s16le"],
    "mp3": ["-c:a", "libmp3lame"],
    "flac": ["-c:a", "flac"],
}


def _seconds_arg(value: float) -> str:
    return f"{value:.3f}"


def default_clip_encoder(output_path: str) -> EncoderProfile:
    """Encoder matching the output container (VP9 for .webm, else H.264)."""
    if os.path.splitext(output_path)[1].lower() == ".webm":
        return EncoderProfile.vp9()
    return EncoderProfile.h264(preset="fast")


def build_clip_argv(
    ctx: MediaContext,
    source_path: str,
    start: TimeValue,
    end: TimeValue,
    output_path: str,
    encoder: Optional[EncoderProfile] = None,
    accurate: bool = True,
) -> List[str]:
    """
    Build the ffmpeg command that cuts ``[start, end)`` out of a source.

    Seeking happens on the input. Accurate mode re-encodes so the cut lands
    on the exact frame; fast mode stream-copies and snaps to the keyframe
    before ``start``.

    Args:
        ctx: Media context providing the ffmpeg binary
        source_path: Source video path
        start: Range start (seconds or subtitle timestamp)
        end: Range end (seconds or subtitle timestamp)
        output_path: Output file path
        encoder: Encoder used in accurate mode; defaults by container
        accurate: Re-encode (True) or stream-copy (False)

    Returns:
        FFmpeg argument list, binary first

    Raises:
        FormatError: If a timestamp is malformed
        InvalidRangeError: If end <= start
    """
    length = duration_seconds(start, end)
    argv = [
        ctx.ffmpeg,
        "-y",
        "-hide_banner",
        "-ss",
        _seconds_arg(to_seconds(start)),
        "-i",
        source_path,
        "-t",
        _seconds_arg(length),
    ]

    if accurate:
        encoder = encoder or default_clip_encoder(output_path)
        argv.extend(encoder.args(output_path))
    else:
        argv.extend(["-c", "copy", output_path])

    return argv


def build_audio_argv(
    ctx: MediaContext,
    source_path: str,
    output_path: str,
    fmt: str = "wav",
    sample_rate: int = 16000,
    channels: int = 1,
    bitrate: str = "128k",
) -> List[str]:
    """
    Build the ffmpeg command that writes a source's audio track alone.

    The defaults (16 kHz mono PCM) are what speech recognition expects.

    Args:
        ctx: Media context providing the ffmpeg binary
        source_path: Video or audio file
        output_path: Output audio file
        fmt: "wav", "mp3" or "flac"
        sample_rate: Output sample rate in Hz
        channels: Output channel count
        bitrate: Bitrate for lossy formats (mp3)

    Raises:
        ValueError: If the format is not supported
    """
    if fmt not in _AUDIO_CODECS:
        supported = ", ".join(_AUDIO_CODECS)
        raise ValueError(f"Unsupported audio format: {fmt} (expected {supported})")

    argv = [
        ctx.ffmpeg,
        "-y",
        "-hide_banner",
        "-i",
        source_path,
        "-vn",
        "-ac",
        str(channels),
        "-ar",
        str(sample_rate),
    ]
    argv.extend(_AUDIO_CODECS[fmt])
    if fmt == "mp3":
        argv.extend(["-b:a", bitrate])
    argv.append(output_path)
    return argv


def _prepare_output(output_path: str) -> None:
    out_dir = os.path.dirname(os.path.abspath(output_path))
    os.makedirs(out_dir, exist_ok=True)


async def extract_clip(
    source_path: str,
    start: TimeValue,
    end: TimeValue,
    output_path: str,
    ctx: Optional[MediaContext] = None,
    encoder: Optional[EncoderProfile] = None,
    accurate: bool = True,
    on_progress: RenderProgressCb = None,
    stop_event=None,
    transcoder: Optional[Transcoder] = None,
) -> RenderResult:
    """
    Cut a time range out of a source video.

    The range is validated before ffmpeg starts, so an empty or inverted
    range never produces a file.

    Args:
        source_path: Source video path
        start: Range start (seconds or subtitle timestamp)
        end: Range end (seconds or subtitle timestamp)
        output_path: Output file path
        ctx: Media context (defaults to the process-wide context)
        encoder: Encoder used in accurate mode
        accurate: Re-encode for a frame-exact cut, or stream-copy
        on_progress: Optional RenderProgress sink (stage ``"trim"``)
        stop_event: Optional event; setting it stops ffmpeg
        transcoder: Transcoder to run ffmpeg with

    Returns:
        Rendered with the clip length, or Stopped(stage="trim")

    Raises:
        FormatError: If a timestamp is malformed
        InvalidRangeError: If end <= start
        TranscodeError: If ffmpeg fails
    """
    ctx = ctx or default_context()
    length = duration_seconds(start, end)
    argv = build_clip_argv(
        ctx, source_path, start, end, output_path, encoder=encoder, accurate=accurate
    )

    if stop_event is not None and stop_event.is_set():
        return Stopped(stage="trim")

    _prepare_output(output_path)
    ctx.logger.info(
        f"Extracting {length:.3f}s clip from {source_path} "
        f"({'accurate' if accurate else 'fast'} mode)"
    )
    outcome = await (transcoder or Transcoder(ctx)).run(
        argv,
        stage="trim",
        duration=length,
        on_progress=on_progress,
        stop_event=stop_event,
    )
    if outcome.stopped:
        return Stopped(stage="trim")

    return Rendered(output_path=output_path, duration=length)


async def extract_audio(
    source_path: str,
    output_path: str,
    fmt: str = "wav",
    sample_rate: int = 16000,
    channels: int = 1,
    ctx: Optional[MediaContext] = None,
    on_progress: RenderProgressCb = None,
    stop_event=None,
    transcoder: Optional[Transcoder] = None,
) -> RenderResult:
    """
    Write the audio track of a source to its own file.

    The source is probed first. A source without an audio stream is an
    error; a source that cannot be probed is still extracted, with a
    warning and no known duration.

    Returns:
        Rendered, or Stopped(stage="audio")

    Raises:
        ValueError: If the format is not supported
        ProbeFailure: If the source has no audio stream
        TranscodeError: If ffmpeg fails
    """
    ctx = ctx or default_context()
    argv = build_audio_argv(
        ctx,
        source_path,
        output_path,
        fmt=fmt,
        sample_rate=sample_rate,
        channels=channels,
    )

    warnings: List[str] = []
    duration = None
    try:
        info = await probe_media(source_path, ctx)
    except ProbeFailure as e:
        message = f"Could not probe {source_path}: {e}"
        ctx.logger.warning(message)
        warnings.append(message)
    else:
        if not info.has_audio:
            raise ProbeFailure(f"No audio stream found in {source_path}", source_path)
        duration = info.duration

    if stop_event is not None and stop_event.is_set():
        return Stopped(stage="audio", warnings=warnings)

    _prepare_output(output_path)
    outcome = await (transcoder or Transcoder(ctx)).run(
        argv,
        stage="audio",
        duration=duration,
        on_progress=on_progress,
        stop_event=stop_event,
    )
    if outcome.stopped:
        return Stopped(stage="audio", warnings=warnings)

    return Rendered(output_path=output_path, duration=duration, warnings=warnings)
