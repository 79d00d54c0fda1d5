"""Tests for clip trimming and audio extraction.

A small Python executable stands in for ffmpeg: it records its arguments
and writes the output file, so the real subprocess path is exercised.
"""

import json
import logging
import os
import stat
import sys
import threading
from unittest.mock import AsyncMock, patch

import pytest
from clipcomposer.core import (
    FormatError,
    InvalidRangeError,
    ProbeFailure,
    TranscodeError,
)
from clipcomposer.media import (
    EncoderProfile,
    MediaContext,
    MediaInfo,
    Rendered,
    Stopped,
    Transcoder,
    build_audio_argv,
    build_clip_argv,
    extract_audio,
    extract_clip,
)

PROBE = "clipcomposer.media.clip.probe_media"

RECORDING_BODY = """
import json, sys
with open(RECORD, "w") as f:
    json.dump(sys.argv[1:], f)
with open(sys.argv[-1], "wb") as f:
    f.write(b"media")
sys.stderr.write("frame=  10 fps=25 time=00:00:01.50 bitrate=1k\\n")
"""

FAILING_BODY = """
import sys
sys.stderr.write("Invalid data found when processing input\\n")
sys.exit(1)
"""

SLOW_BODY = """
import time
time.sleep(30)
"""

needs_shebang = pytest.mark.skipif(
    sys.platform == "win32", reason="stand-in ffmpeg needs a shebang"
)


@pytest.fixture
def make_ffmpeg(temp_dir):
    """Factory writing an executable ffmpeg stand-in and a context using it."""
    contexts = []

    def _make(body):
        record = os.path.join(temp_dir, "argv.json")
        path = os.path.join(temp_dir, "fake-ffmpeg")
        with open(path, "w") as f:
            f.write(f"#!{sys.executable}\n")
            f.write(f"RECORD = {record!r}\n")
            f.write(body)
        os.chmod(path, os.stat(path).st_mode | stat.S_IEXEC)

        ctx = MediaContext(
            ffmpeg=path,
            tmp_root=temp_dir,
            logger=logging.getLogger("clipcomposer.tests"),
            verify=False,
        )
        contexts.append(ctx)
        return ctx, record

    yield _make
    for ctx in contexts:
        ctx.cleanup()


def _recorded(record):
    with open(record) as f:
        return json.load(f)


class TestBuildClipArgv:
    """Test trim command assembly."""

    def test_accurate_mode(self, ctx):
        """Test accurate cuts seek the input and re-encode."""
        argv = build_clip_argv(ctx, "in.mp4", 1.5, 3.75, "out.mp4")

        assert argv[:9] == [
            "ffmpeg",
            "-y",
            "-hide_banner",
            "-ss",
            "1.500",
            "-i",
            "in.mp4",
            "-t",
            "2.250",
        ]
        assert "libx264" in argv
        assert argv[argv.index("-preset") + 1] == "fast"
        assert argv[-1] == "out.mp4"

    def test_fast_mode(self, ctx):
        """Test fast cuts copy the streams."""
        argv = build_clip_argv(ctx, "in.mp4", 0, 2, "out.mp4", accurate=False)
        assert argv[-3:] == ["-c", "copy", "out.mp4"]
        assert "libx264" not in argv

    def test_subtitle_timestamps(self, ctx):
        """Test ranges given as subtitle timestamps."""
        argv = build_clip_argv(ctx, "in.mp4", "00:01:00,250", "00:01:30,000", "o.mp4")
        assert argv[argv.index("-ss") + 1] == "60.250"
        assert argv[argv.index("-t") + 1] == "29.750"

    def test_encoder_follows_container(self, ctx):
        """Test .webm outputs default to VP9 and explicit encoders win."""
        webm = build_clip_argv(ctx, "in.mp4", 0, 1, "out.webm")
        assert "libvpx-vp9" in webm

        custom = build_clip_argv(
            ctx, "in.mp4", 0, 1, "out.mp4", encoder=EncoderProfile.h264(crf=18)
        )
        assert custom[custom.index("-crf") + 1] == "18"

    @pytest.mark.parametrize("start,end", [(5, 5), (5, 4), ("00:00:03,000", 2)])
    def test_empty_range(self, ctx, start, end):
        """Test empty and inverted ranges are rejected."""
        with pytest.raises(InvalidRangeError):
            build_clip_argv(ctx, "in.mp4", start, end, "out.mp4")

    def test_malformed_timestamp(self, ctx):
        """Test malformed timestamps are rejected."""
        with pytest.raises(FormatError):
            build_clip_argv(ctx, "in.mp4", "0:00:01", 4, "out.mp4")


class TestBuildAudioArgv:
    """Test audio extraction command assembly."""

    def test_defaults(self, ctx):
        """Test 16 kHz mono PCM is the default."""
        argv = build_audio_argv(ctx, "in.mp4", "out.wav")
        assert argv == [
            "ffmpeg",
            "-y",
            "-hide_banner",
            "-i",
            "in.mp4",
            "-vn",
            "-ac",
            "1",
            "-ar",
            "16000",
            "-c:a",
            "pcm_s16le",
            "out.wav",
        ]

    def test_mp3_bitrate(self, ctx):
        """Test lossy output gets a bitrate."""
        argv = build_audio_argv(ctx, "in.mp4", "out.mp3", fmt="mp3", channels=2)
        assert argv[argv.index("-c:a") + 1] == "libmp3lame"
        assert argv[argv.index("-b:a") + 1] == "128k"
        assert argv[argv.index("-ac") + 1] == "2"

    def test_flac_has_no_bitrate(self, ctx):
        """Test lossless output carries no bitrate."""
        argv = build_audio_argv(ctx, "in.mp4", "out.flac", fmt="flac")
        assert "flac" in argv
        assert "-b:a" not in argv

    def test_unsupported_format(self, ctx):
        """Test unknown formats are rejected."""
        with pytest.raises(ValueError, match="Unsupported audio format"):
            build_audio_argv(ctx, "in.mp4", "out.ogg", fmt="ogg")


@needs_shebang
class TestExtractClip:
    """Test running a trim."""

    @pytest.mark.asyncio
    async def test_success(self, make_ffmpeg, temp_dir):
        """Test a trim runs ffmpeg, writes the output and reports progress."""
        ctx, record = make_ffmpeg(RECORDING_BODY)
        output = os.path.join(temp_dir, "clips", "clip.mp4")
        updates = []

        result = await extract_clip(
            "in.mp4", 2, 5, output, ctx=ctx, on_progress=updates.append
        )

        assert isinstance(result, Rendered)
        assert result.output_path == output
        assert result.duration == 3.0
        assert os.path.isfile(output)
        assert _recorded(record) == build_clip_argv(ctx, "in.mp4", 2, 5, output)[1:]
        assert {u.stage for u in updates} == {"trim"}
        assert updates[0].seconds_done == 1.5
        assert updates[-1].percent == 100.0

    @pytest.mark.asyncio
    async def test_failure(self, make_ffmpeg, temp_dir):
        """Test a failing ffmpeg surfaces its exit code and stderr."""
        ctx, _ = make_ffmpeg(FAILING_BODY)
        with pytest.raises(TranscodeError) as exc_info:
            await extract_clip("in.mp4", 0, 1, os.path.join(temp_dir, "o.mp4"), ctx=ctx)

        assert exc_info.value.exit_code == 1
        assert exc_info.value.stage == "trim"
        assert "Invalid data found" in exc_info.value.stderr

    @pytest.mark.asyncio
    async def test_invalid_range_never_runs(self, make_ffmpeg, temp_dir):
        """Test an inverted range fails before ffmpeg starts."""
        ctx, record = make_ffmpeg(RECORDING_BODY)
        with pytest.raises(InvalidRangeError):
            await extract_clip("in.mp4", 4, 1, os.path.join(temp_dir, "o.mp4"), ctx=ctx)
        assert not os.path.exists(record)

    @pytest.mark.asyncio
    async def test_stop_while_running(self, make_ffmpeg, temp_dir):
        """Test setting the stop event ends the trim as Stopped."""
        ctx, _ = make_ffmpeg(SLOW_BODY)
        stop = threading.Event()
        timer = threading.Timer(0.2, stop.set)
        timer.start()
        try:
            result = await extract_clip(
                "in.mp4",
                0,
                10,
                os.path.join(temp_dir, "o.mp4"),
                ctx=ctx,
                stop_event=stop,
                transcoder=Transcoder(ctx, grace_period=1.0, poll_interval=0.05),
            )
        finally:
            timer.cancel()

        assert result == Stopped(stage="trim")

    @pytest.mark.asyncio
    async def test_stop_before_start(self, make_ffmpeg, temp_dir):
        """Test an already-set stop event skips ffmpeg entirely."""
        ctx, record = make_ffmpeg(RECORDING_BODY)
        stop = threading.Event()
        stop.set()
        result = await extract_clip(
            "in.mp4", 0, 1, os.path.join(temp_dir, "o.mp4"), ctx=ctx, stop_event=stop
        )

        assert isinstance(result, Stopped)
        assert not os.path.exists(record)


@needs_shebang
class TestExtractAudio:
    """Test running an audio extraction."""

    @pytest.mark.asyncio
    async def test_success(self, make_ffmpeg, temp_dir):
        """Test the audio track is written with the probed duration."""
        ctx, record = make_ffmpeg(RECORDING_BODY)
        output = os.path.join(temp_dir, "audio.wav")
        info = MediaInfo(duration=6.0, has_audio=True)

        with patch(PROBE, new=AsyncMock(return_value=info)):
            result = await extract_audio("in.mp4", output, ctx=ctx)

        assert isinstance(result, Rendered)
        assert result.duration == 6.0
        assert result.warnings == []
        assert os.path.isfile(output)
        assert "-vn" in _recorded(record)

    @pytest.mark.asyncio
    async def test_no_audio_stream(self, make_ffmpeg, temp_dir):
        """Test a silent source is rejected before ffmpeg runs."""
        ctx, record = make_ffmpeg(RECORDING_BODY)
        silent = MediaInfo(duration=6.0, has_audio=False)

        with patch(PROBE, new=AsyncMock(return_value=silent)):
            with pytest.raises(ProbeFailure, match="No audio stream"):
                await extract_audio("in.mp4", os.path.join(temp_dir, "a.wav"), ctx=ctx)
        assert not os.path.exists(record)

    @pytest.mark.asyncio
    async def test_probe_failure_still_extracts(self, make_ffmpeg, temp_dir):
        """Test an unprobeable source is extracted with a warning."""
        ctx, _ = make_ffmpeg(RECORDING_BODY)
        failure = AsyncMock(side_effect=ProbeFailure("no ffprobe"))

        with patch(PROBE, new=failure):
            result = await extract_audio(
                "in.mp4", os.path.join(temp_dir, "a.flac"), fmt="flac", ctx=ctx
            )

        assert isinstance(result, Rendered)
        assert result.duration is None
        assert len(result.warnings) == 1
        assert "no ffprobe" in result.warnings[0]
