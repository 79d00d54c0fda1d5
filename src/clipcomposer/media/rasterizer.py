"""Rasterize text overlays into transparent PNG images with Pillow."""

import asyncio
import logging
import math
import os
import re
from typing import List, Optional, Sequence, Tuple

from PIL import Image, ImageColor, ImageDraw
from pydantic import BaseModel

from ..core.errors import RasterizeError
from ..core.timecode import is_active_at
from ..core.types import FrameProgress, FrameProgressCb
from .fonts import FontRegistry
from .markup import anchor_position
from .models import TextOverlay

FRAME_PATTERN = "frame_%06d.png"
PROGRESS_EVERY = 5
# Underline sits this fraction of the font size below the baseline
UNDERLINE_OFFSET = 0.1

_BARE_HEX_RE = re.compile(r"^[0-9A-Fa-f]{6}$")


class SequenceInfo(BaseModel):
    """Result of rendering an overlay frame sequence."""

    directory: str
    pattern: str = FRAME_PATTERN
    frame_count: int
    frames_written: int
    fps: float
    stopped: bool = False


def needs_sequence(overlays: Sequence[TextOverlay]) -> bool:
    """True when any overlay has a timing window."""
    return any(not overlay.is_static for overlay in overlays)


def active_overlays(
    overlays: Sequence[TextOverlay], default_end: float, t: float
) -> List[TextOverlay]:
    """Overlays visible at instant ``t``, in paint order."""
    return [o for o in overlays if is_active_at(o.timing, default_end, t)]


def frame_count(duration: float, fps: float) -> int:
    """Number of frames covering ``[0, duration)`` at ``fps``."""
    if duration <= 0 or fps <= 0:
        return 0
    # 0.1 * 30 is 3.0000000000000004 in floating point
    return int(math.ceil(round(duration * fps, 6)))


def frame_path(directory: str, index: int) -> str:
    """Path of the 1-based frame ``index``."""
    return os.path.join(directory, FRAME_PATTERN % index)


class OverlayRasterizer:
    """Paint overlays onto transparent canvases."""

    def __init__(
        self,
        fonts: Optional[FontRegistry] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.fonts = fonts or FontRegistry()
        self.logger = logger or logging.getLogger(__name__)

    def _color(
        self, value: Optional[str], fallback: str, warnings: Optional[List[str]]
    ) -> Tuple[int, int, int]:
        if not value:
            return ImageColor.getrgb(fallback)
        text = f"#{value}" if _BARE_HEX_RE.match(value) else value
        try:
            return ImageColor.getrgb(text)[:3]
        except ValueError:
            message = f"Invalid overlay color {value!r}; using {fallback}"
            # Once per bad value and call, not once per frame
            if warnings is None or message not in warnings:
                self.logger.warning(message)
                if warnings is not None:
                    warnings.append(message)
            return ImageColor.getrgb(fallback)

    def _paint_layer(
        self,
        overlay: TextOverlay,
        width: int,
        height: int,
        warnings: Optional[List[str]],
    ) -> Image.Image:
        style = overlay.style
        layer = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        font = self.fonts.resolve(
            style.font_family, style.font_size, bool(style.bold), bool(style.italic)
        )
        x, y = anchor_position(overlay.x, overlay.y, width, height)
        fill = self._color(style.color, "#FFFFFF", warnings)
        stroke_width = style.stroke_width or 0

        if stroke_width > 0:
            stroke = self._color(style.stroke_color, "#000000", warnings)
            # A canvas line of width w straddles the glyph edge
            stroke_px = max(1, int(math.ceil(stroke_width / 2)))
            draw.text(
                (x, y),
                overlay.text,
                font=font,
                fill=stroke,
                anchor="mm",
                stroke_width=stroke_px,
                stroke_fill=stroke,
            )

        draw.text((x, y), overlay.text, font=font, fill=fill, anchor="mm")

        if style.underline:
            left, _, right, bottom = draw.textbbox(
                (x, y), overlay.text, font=font, anchor="mm"
            )
            if hasattr(font, "getmetrics"):
                ascent, descent = font.getmetrics()
                baseline = y + (ascent - descent) / 2
            else:
                baseline = bottom
            uy = int(round(baseline + style.font_size * UNDERLINE_OFFSET))
            line_width = max(1, int(round(stroke_width or 1)))
            draw.line([(left, uy), (right, uy)], fill=fill, width=line_width)

        opacity = style.opacity if style.opacity is not None else 100
        if opacity < 100:
            factor = max(0.0, opacity) / 100
            alpha = layer.getchannel("A").point(lambda a: int(round(a * factor)))
            layer.putalpha(alpha)

        return layer

    def paint(
        self,
        overlays: Sequence[TextOverlay],
        width: int,
        height: int,
        warnings: Optional[List[str]] = None,
    ) -> Image.Image:
        """
        Paint overlays in array order onto one transparent canvas.

        Each overlay is drawn on its own layer (stroke, fill, underline) and
        composited, so one overlay's opacity never affects the next.

        Args:
            overlays: Overlays to paint; later ones draw on top
            width: Canvas width in pixels
            height: Canvas height in pixels
            warnings: Optional list collecting colour fallback messages

        Returns:
            RGBA image
        """
        canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        for overlay in overlays:
            if not overlay.text:
                continue
            layer = self._paint_layer(overlay, width, height, warnings)
            canvas.alpha_composite(layer)
        return canvas

    def _write(
        self,
        overlays: Sequence[TextOverlay],
        width: int,
        height: int,
        path: str,
        warnings: Optional[List[str]] = None,
    ) -> None:
        image = self.paint(overlays, width, height, warnings)
        try:
            image.save(path, "PNG")
        except OSError as e:
            raise RasterizeError(f"Failed to write overlay image {path}: {e}")

    async def render_static(
        self,
        overlays: Sequence[TextOverlay],
        width: int,
        height: int,
        out_path: str,
        warnings: Optional[List[str]] = None,
    ) -> str:
        """Render every overlay once into a single PNG."""
        await asyncio.to_thread(
            self._write, overlays, width, height, out_path, warnings
        )
        self.logger.debug(f"Static overlay written: {out_path}")
        return out_path

    async def render_sequence(
        self,
        overlays: Sequence[TextOverlay],
        width: int,
        height: int,
        fps: float,
        duration: float,
        out_dir: str,
        on_progress: FrameProgressCb = None,
        stop_event=None,
        warnings: Optional[List[str]] = None,
    ) -> SequenceInfo:
        """
        Render one transparent frame per output frame.

        Frame ``i`` (0-based) shows the overlays active at ``i / fps`` and is
        written as ``frame_{i+1:06d}.png``.

        Args:
            overlays: Overlays to paint
            width: Canvas width in pixels
            height: Canvas height in pixels
            fps: Output frame rate
            duration: Clip duration in seconds; also the end of open windows
            out_dir: Directory receiving the frames
            on_progress: Optional FrameProgress sink
            stop_event: Optional event; checked between frames
            warnings: Optional list collecting colour fallback messages

        Returns:
            SequenceInfo; ``stopped`` is True if the stop event interrupted it
        """
        total = frame_count(duration, fps)
        os.makedirs(out_dir, exist_ok=True)
        self.logger.info(f"Rendering {total} overlay frames at {fps} fps")

        written = 0
        for i in range(total):
            if stop_event is not None and stop_event.is_set():
                self.logger.info(f"Overlay rendering stopped at frame {i}/{total}")
                return SequenceInfo(
                    directory=out_dir,
                    frame_count=total,
                    frames_written=written,
                    fps=fps,
                    stopped=True,
                )

            visible = active_overlays(overlays, duration, i / fps)
            await asyncio.to_thread(
                self._write,
                visible,
                width,
                height,
                frame_path(out_dir, i + 1),
                warnings,
            )
            written += 1

            if on_progress and (written % PROGRESS_EVERY == 0 or written == total):
                on_progress(
                    FrameProgress(
                        frames_done=written,
                        total_frames=total,
                        percent=round(written / total * 100, 2),
                    )
                )

        return SequenceInfo(
            directory=out_dir, frame_count=total, frames_written=written, fps=fps
        )
