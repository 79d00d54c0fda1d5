"""Run ffmpeg as an async subprocess with progress and stop support."""

import asyncio
import re
from collections import deque
from pydantic import BaseModel
from typing import Deque, List, Optional

from ..core.errors import TranscodeError
from ..core.timecode import parse_progress_time
from ..core.types import RenderProgress, RenderProgressCb
from .context import MediaContext

_LINE_SPLIT_RE = re.compile(rb"[\r\n]")
STDERR_TAIL_LINES = 40


class TranscodeOutcome(BaseModel):
    """How an ffmpeg run ended."""

    returncode: Optional[int] = None
    stopped: bool = False
    stderr_tail: str = ""


class Transcoder:
    """Drive one ffmpeg process at a time."""

    def __init__(
        self,
        ctx: MediaContext,
        grace_period: float = 5.0,
        poll_interval: float = 0.2,
    ):
        """
        Initialize transcoder.

        Args:
            ctx: Media context (binary paths and logger)
            grace_period: Seconds between terminate and kill when stopping
            poll_interval: How often the stop event is checked
        """
        self.ctx = ctx
        self.grace_period = grace_period
        self.poll_interval = poll_interval

    async def run(
        self,
        argv: List[str],
        stage: str = "transcode",
        duration: Optional[float] = None,
        on_progress: RenderProgressCb = None,
        stop_event=None,
    ) -> TranscodeOutcome:
        """
        Execute an ffmpeg command.

        Args:
            argv: Full command line, binary first
            stage: Stage name used in progress reports and errors
            duration: Expected output duration, for percent progress
            on_progress: Optional RenderProgress sink
            stop_event: Optional event; when set the process is terminated

        Returns:
            TranscodeOutcome; ``stopped`` is True when the run was stopped
            or the process died from a signal

        Raises:
            TranscodeError: If ffmpeg cannot start or exits non-zero
        """
        self.ctx.logger.info(f"Running FFmpeg: {' '.join(argv)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise TranscodeError(f"FFmpeg not found: {e}", stage=stage)

        tail: Deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        reader = asyncio.create_task(
            self._read_stderr(process.stderr, tail, stage, duration, on_progress)
        )

        stopped = False
        try:
            while True:
                if stop_event is not None and stop_event.is_set():
                    stopped = True
                    await self._terminate(process)
                    break
                try:
                    await asyncio.wait_for(process.wait(), self.poll_interval)
                    break
                except asyncio.TimeoutError:
                    continue
            await reader
        except asyncio.CancelledError:
            await self._terminate(process)
            reader.cancel()
            raise

        returncode = process.returncode
        stderr_tail = "\n".join(tail)

        if stopped or (returncode is not None and returncode < 0):
            self.ctx.logger.info(f"FFmpeg stopped during {stage} (code {returncode})")
            return TranscodeOutcome(
                returncode=returncode, stopped=True, stderr_tail=stderr_tail
            )

        if returncode != 0:
            last = tail[-1] if tail else "no output"
            raise TranscodeError(
                f"FFmpeg failed: {last}",
                exit_code=returncode,
                stage=stage,
                stderr=stderr_tail,
            )

        if on_progress:
            on_progress(RenderProgress(stage=stage, percent=100.0, seconds_done=duration))

        self.ctx.logger.info("FFmpeg completed successfully")
        return TranscodeOutcome(returncode=returncode, stderr_tail=stderr_tail)

    async def _terminate(self, process) -> None:
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(process.wait(), self.grace_period)
        except asyncio.TimeoutError:
            self.ctx.logger.warning("FFmpeg ignored terminate; killing")
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

    async def _read_stderr(
        self,
        stream,
        tail: Deque[str],
        stage: str,
        duration: Optional[float],
        on_progress: RenderProgressCb,
    ) -> None:
        # ffmpeg rewrites its progress line with \r, so split on both
        buffer = b""
        while True:
            chunk = await stream.read(4096)
            if not chunk:
                break
            buffer += chunk
            *lines, buffer = _LINE_SPLIT_RE.split(buffer)
            for line in lines:
                self._handle_line(line, tail, stage, duration, on_progress)
        if buffer:
            self._handle_line(buffer, tail, stage, duration, on_progress)

    def _handle_line(
        self,
        raw: bytes,
        tail: Deque[str],
        stage: str,
        duration: Optional[float],
        on_progress: RenderProgressCb,
    ) -> None:
        text = raw.decode("utf-8", errors="replace").strip()
        if not text:
            return
        tail.append(text)

        seconds = parse_progress_time(text)
        if seconds is None or not on_progress:
            return
        percent = min(100.0, seconds / duration * 100) if duration else 0.0
        on_progress(
            RenderProgress(stage=stage, percent=round(percent, 2), seconds_done=seconds)
        )
