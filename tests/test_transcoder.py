"""Tests for the ffmpeg subprocess driver.

A small Python script stands in for ffmpeg so the tests exercise the real
subprocess handling without requiring ffmpeg to be installed.
"""

import asyncio
import sys
import threading

import pytest
from clipcomposer.core import TranscodeError
from clipcomposer.media import Transcoder

PROGRESS_SCRIPT = r"""
import sys
for t in ("00:00:01.00", "00:00:02.00", "00:00:03.00"):
    sys.stderr.write("frame=  10 fps=25 time=%s bitrate=1k\r" % t)
    sys.stderr.flush()
sys.stderr.write("\nvideo:10kB audio:2kB\n")
"""

FAIL_SCRIPT = r"""
import sys
sys.stderr.write("Input #0, mov\n")
sys.stderr.write("Error opening input file\n")
sys.exit(1)
"""

SLOW_SCRIPT = r"""
import time
time.sleep(30)
"""

SELF_KILL_SCRIPT = r"""
import os, signal
os.kill(os.getpid(), signal.SIGTERM)
"""


def _argv(script):
    return [sys.executable, "-c", script]


@pytest.fixture
def transcoder(ctx):
    """Transcoder with short polling and grace periods."""
    return Transcoder(ctx, grace_period=1.0, poll_interval=0.05)


class TestTranscoder:
    """Test running, failing and stopping a transcode."""

    @pytest.mark.asyncio
    async def test_success_reports_progress(self, transcoder):
        """Test progress is parsed from time= and completes at 100%."""
        updates = []
        outcome = await transcoder.run(
            _argv(PROGRESS_SCRIPT), duration=4.0, on_progress=updates.append
        )

        assert outcome.returncode == 0
        assert not outcome.stopped
        assert [u.seconds_done for u in updates[:3]] == [1.0, 2.0, 3.0]
        assert [u.percent for u in updates] == [25.0, 50.0, 75.0, 100.0]
        assert all(u.stage == "transcode" for u in updates)
        assert "video:10kB audio:2kB" in outcome.stderr_tail

    @pytest.mark.asyncio
    async def test_failure_raises_with_last_line(self, transcoder):
        """Test a non-zero exit raises with the last stderr line."""
        with pytest.raises(TranscodeError) as exc_info:
            await transcoder.run(_argv(FAIL_SCRIPT), stage="export")

        error = exc_info.value
        assert error.exit_code == 1
        assert error.stage == "export"
        assert "Error opening input file" in str(error)
        assert "Input #0, mov" in error.stderr

    @pytest.mark.asyncio
    async def test_missing_binary(self, transcoder):
        """Test a missing ffmpeg binary raises TranscodeError."""
        with pytest.raises(TranscodeError, match="FFmpeg not found"):
            await transcoder.run(["/nonexistent/ffmpeg", "-version"])

    @pytest.mark.asyncio
    async def test_stop_event_terminates(self, transcoder):
        """Test setting the stop event ends the process without raising."""
        stop = threading.Event()
        loop = asyncio.get_running_loop()
        loop.call_later(0.3, stop.set)

        outcome = await asyncio.wait_for(
            transcoder.run(_argv(SLOW_SCRIPT), stop_event=stop), timeout=10
        )

        assert outcome.stopped
        assert outcome.returncode != 0

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    async def test_signal_exit_is_stopped(self, transcoder):
        """Test a process killed by a signal counts as stopped."""
        outcome = await transcoder.run(_argv(SELF_KILL_SCRIPT))

        assert outcome.stopped
        assert outcome.returncode < 0

    @pytest.mark.asyncio
    async def test_cancel_terminates_process(self, transcoder):
        """Test cancelling the task terminates ffmpeg and re-raises."""
        task = asyncio.create_task(transcoder.run(_argv(SLOW_SCRIPT)))
        await asyncio.sleep(0.3)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(task, timeout=10)
