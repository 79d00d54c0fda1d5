"""Error taxonomy for the composition pipeline."""

from typing import Optional


class ClipComposerError(Exception):
    """Base class for all clipcomposer errors."""


class FormatError(ClipComposerError):
    """Raised when a timestamp or color string is malformed."""

    def __init__(self, message: str, value: Optional[str] = None):
        super().__init__(message)
        self.value = value


class EncodingError(FormatError):
    """Raised when a color string cannot be encoded for subtitle markup."""


class InvalidRangeError(ClipComposerError):
    """Raised when a time range ends at or before its start."""

    def __init__(
        self,
        message: str,
        start: Optional[float] = None,
        end: Optional[float] = None,
    ):
        super().__init__(message)
        self.start = start
        self.end = end


class ProbeFailure(ClipComposerError):
    """Raised when ffprobe cannot report media information."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class TranscodeError(ClipComposerError):
    """Raised when ffmpeg exits with a non-zero status."""

    def __init__(
        self,
        message: str,
        exit_code: Optional[int] = None,
        stage: str = "transcode",
        stderr: Optional[str] = None,
    ):
        super().__init__(message)
        self.exit_code = exit_code
        self.stage = stage
        self.stderr = stderr

    def __str__(self) -> str:
        base = super().__str__()
        if self.exit_code is not None:
            return f"{base} (stage={self.stage}, exit_code={self.exit_code})"
        return f"{base} (stage={self.stage})"


class RasterizeError(ClipComposerError):
    """Raised when overlay images cannot be written to disk."""

    def __init__(self, message: str, stage: str = "rasterize"):
        super().__init__(message)
        self.stage = stage
