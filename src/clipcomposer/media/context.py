"""Media runtime context: ffmpeg binaries, logger and render workspaces."""

import tempfile
import logging
import shutil
import subprocess
from typing import Optional

_VERSION_TIMEOUT = 10


class MediaContext:
    """
    Where the ffmpeg binaries live and where renders put their scratch files.

    Every render gets its own workspace directory under ``tmp``; the whole
    tree is removed by ``cleanup()`` or when the context is used as a
    context manager.
    """

    def __init__(
        self,
        ffmpeg: str = "ffmpeg",
        ffprobe: str = "ffprobe",
        tmp_root: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
        verify: bool = True,
    ):
        """
        Initialize media context.

        Args:
            ffmpeg: Path to ffmpeg binary
            ffprobe: Path to ffprobe binary
            tmp_root: Directory under which render workspaces are created
            logger: Logger used by every media component
            verify: Run both binaries once to fail early when missing
        """
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe
        self.logger = logger or logging.getLogger(__name__)

        self._tmp = tempfile.TemporaryDirectory(prefix="clipcomposer_", dir=tmp_root)
        self.tmp = self._tmp.name

        if verify:
            self._verify_ffmpeg()

    def _verify_ffmpeg(self) -> None:
        """Run ``-version`` on ffmpeg and ffprobe."""
        for label, binary in (("FFmpeg", self.ffmpeg), ("FFprobe", self.ffprobe)):
            try:
                result = subprocess.run(
                    [binary, "-version"],
                    capture_output=True,
                    text=True,
                    timeout=_VERSION_TIMEOUT,
                )
            except FileNotFoundError as e:
                raise RuntimeError(f"FFmpeg not found. Please install FFmpeg: {e}")
            except subprocess.TimeoutExpired:
                raise RuntimeError(f"{label} verification timed out")

            if result.returncode != 0:
                raise RuntimeError(f"{label} not working: {result.stderr}")

        self.logger.debug(f"Using {self.ffmpeg} and {self.ffprobe}")

    def supports_filter(self, name: str) -> bool:
        """
        Check whether ffmpeg was built with a filter (e.g. ``ass``).

        Subtitle burn-in needs ffmpeg compiled with libass; builds without
        it fail only once the render starts.
        """
        try:
            result = subprocess.run(
                [self.ffmpeg, "-hide_banner", "-filters"],
                capture_output=True,
                text=True,
                timeout=_VERSION_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            self.logger.warning(f"Could not list FFmpeg filters: {e}")
            return False

        if result.returncode != 0:
            self.logger.warning("Could not list FFmpeg filters")
            return False

        # Lines look like " T.C ass  V->V  Render ASS subtitles ..."
        found = any(
            len(parts) > 1 and parts[1] == name
            for parts in (line.split() for line in result.stdout.splitlines())
        )
        self.logger.debug(f"FFmpeg filter {name!r} available: {found}")
        return found

    def temp_dir(self, prefix: str = "render_") -> str:
        """Create a fresh workspace directory for one render."""
        return tempfile.mkdtemp(prefix=prefix, dir=self.tmp)

    def remove_tree(self, path: Optional[str]) -> None:
        """Delete a workspace directory; failures are logged, never raised."""
        if not path:
            return
        try:
            shutil.rmtree(path)
            self.logger.debug(f"Removed workspace {path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Error removing workspace {path}: {e}")

    def cleanup(self) -> None:
        """Remove the context directory and every workspace left in it."""
        try:
            self._tmp.cleanup()
        except OSError as e:
            self.logger.warning(f"Error removing {self.tmp}: {e}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()


_DEFAULT_CTX: Optional[MediaContext] = None


def default_context() -> MediaContext:
    """Process-wide context, created (and verified) on first use."""
    global _DEFAULT_CTX
    if _DEFAULT_CTX is None:
        _DEFAULT_CTX = MediaContext()
    return _DEFAULT_CTX


def set_default_context(ctx: Optional[MediaContext]) -> None:
    """
    Replace the process-wide context.

    Args:
        ctx: Context to return from ``default_context()``; None resets it
    """
    global _DEFAULT_CTX
    _DEFAULT_CTX = ctx
