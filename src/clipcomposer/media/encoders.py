"""Encoder profiles for clip output with FFmpeg argument generation."""

from pydantic import BaseModel
from typing import Dict, List, Optional, Literal, Union

from ..core.types import OutputFormat, QualityTier

# CRF per quality tier; lower is better
_CRF_TABLE: Dict[str, Dict[str, int]] = {
    "h264": {"low": 28, "medium": 23, "high": 18},
    "vp9": {"low": 35, "medium": 30, "high": 25},
}


class EncoderProfile(BaseModel):
    """Encoder profile that generates FFmpeg arguments."""

    kind: Literal["h264", "vp9"]
    crf: Optional[int] = None
    preset: Optional[str] = None
    audio_codec: Optional[str] = None
    audio_bitrate: Optional[str] = None

    @staticmethod
    def h264(crf: int = 23, preset: str = "medium") -> "EncoderProfile":
        """
        H.264 + AAC encoder profile for MP4 output.

        Args:
            crf: Constant Rate Factor (lower = higher quality)
            preset: Encoding preset (ultrafast ... veryslow)

        Returns:
            H.264 encoder profile
        """
        return EncoderProfile(
            kind="h264", crf=crf, preset=preset, audio_codec="aac", audio_bitrate="192k"
        )

    @staticmethod
    def vp9(crf: int = 30) -> "EncoderProfile":
        """
        VP9 + Opus encoder profile for WebM output.

        Args:
            crf: Constant Rate Factor

        Returns:
            VP9 encoder profile
        """
        return EncoderProfile(
            kind="vp9", crf=crf, audio_codec="libopus", audio_bitrate="128k"
        )

    @staticmethod
    def for_format(
        fmt: Union[OutputFormat, str] = OutputFormat.MP4,
        quality: Union[QualityTier, str] = QualityTier.MEDIUM,
    ) -> "EncoderProfile":
        """
        Pick the profile for an output container and quality tier.

        Args:
            fmt: "mp4" or "webm"
            quality: "low", "medium" or "high"

        Returns:
            Encoder profile with the tier's CRF
        """
        fmt = OutputFormat(fmt)
        quality = QualityTier(quality)

        if fmt == OutputFormat.WEBM:
            return EncoderProfile.vp9(crf=_CRF_TABLE["vp9"][quality.value])
        return EncoderProfile.h264(crf=_CRF_TABLE["h264"][quality.value])

    @property
    def extension(self) -> str:
        """File extension matching this profile's container."""
        return ".webm" if self.kind == "vp9" else ".mp4"

    def args(self, out_path: str) -> List[str]:
        """
        Generate FFmpeg arguments for this encoder profile.

        Args:
            out_path: Output file path

        Returns:
            List of FFmpeg arguments
        """
        if self.kind == "h264":
            args = [
                "-c:v",
                "libx264",
                "-crf",
                str(self.crf if self.crf is not None else 23),
                "-preset",
                self.preset or "medium",
                "-pix_fmt",
                "yuv420p",
                "-c:a",
                self.audio_codec or "aac",
                "-b:a",
                self.audio_bitrate or "192k",
                "-movflags",
                "+faststart",  # index up front for streaming
            ]

        elif self.kind == "vp9":
            args = [
                "-c:v",
                "libvpx-vp9",
                "-crf",
                str(self.crf if self.crf is not None else 30),
                "-b:v",
                "0",  # Use CRF mode
                "-c:a",
                self.audio_codec or "libopus",
                "-b:a",
                self.audio_bitrate or "128k",
            ]

        else:
            raise ValueError(f"Unknown encoder kind: {self.kind}")

        # Add output path
        args.append(out_path)

        return args
