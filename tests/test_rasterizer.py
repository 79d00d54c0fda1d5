"""Tests for overlay rasterization."""

import os
import threading

import pytest
from PIL import Image
from clipcomposer.core import FrameProgress
from clipcomposer.media import (
    OverlayRasterizer,
    TextOverlay,
    OverlayStyle,
    OverlayTiming,
    FRAME_PATTERN,
)
from clipcomposer.media.rasterizer import (
    needs_sequence,
    active_overlays,
    frame_count,
    frame_path,
)


def _max_alpha(image, box=None):
    alpha = image.getchannel("A")
    if box is not None:
        alpha = alpha.crop(box)
    return alpha.getextrema()[1]


@pytest.fixture
def corner_overlays():
    """A static overlay top-left and a timed overlay bottom-right."""
    static = TextOverlay(text="Static", x=25, y=25, style=OverlayStyle(font_size=12))
    timed = TextOverlay(
        text="Timed",
        x=75,
        y=75,
        style=OverlayStyle(font_size=12),
        timing=OverlayTiming(start="00:00:02,000", end="00:00:04,000"),
    )
    return [static, timed]


class TestFrameMath:
    """Test frame counting and activation."""

    def test_frame_count(self):
        """Test ceil(duration * fps)."""
        assert frame_count(6, 10) == 60
        assert frame_count(1.01, 30) == 31
        assert frame_count(0, 30) == 0

    def test_frame_count_float_noise(self):
        """Test float noise does not add a frame."""
        assert frame_count(0.1, 30) == 3

    def test_frame_path(self):
        """Test frames are numbered from 1 with six digits."""
        assert FRAME_PATTERN == "frame_%06d.png"
        assert frame_path("/tmp/frames", 1) == os.path.join(
            "/tmp/frames", "frame_000001.png"
        )

    def test_needs_sequence(self, static_overlay, timed_overlay):
        """Test any timed overlay requires a sequence."""
        assert not needs_sequence([static_overlay])
        assert needs_sequence([static_overlay, timed_overlay])
        assert not needs_sequence([])

    def test_active_overlays(self, static_overlay, timed_overlay):
        """Test activation keeps array order and inclusive bounds."""
        overlays = [static_overlay, timed_overlay]
        assert active_overlays(overlays, 6.0, 1.9) == [static_overlay]
        assert active_overlays(overlays, 6.0, 2.0) == overlays
        assert active_overlays(overlays, 6.0, 4.0) == overlays
        assert active_overlays(overlays, 6.0, 4.1) == [static_overlay]


class TestPaint:
    """Test painting a single canvas."""

    def test_empty_canvas_is_transparent(self):
        """Test no overlays give a fully transparent RGBA image."""
        image = OverlayRasterizer().paint([], 64, 36)
        assert image.mode == "RGBA"
        assert image.size == (64, 36)
        assert image.getchannel("A").getbbox() is None

    def test_text_is_centered_on_anchor(self):
        """Test text pixels surround the anchor point."""
        overlay = TextOverlay(text="Hello", x=50, y=50, style=OverlayStyle(font_size=20))
        image = OverlayRasterizer().paint([overlay], 200, 100)

        left, top, right, bottom = image.getchannel("A").getbbox()
        assert left < 100 < right
        assert top < 50 < bottom

    def test_opacity_does_not_bleed(self):
        """Test a translucent overlay does not affect the next one."""
        faint = TextOverlay(
            text="AAAA", x=25, y=50, style=OverlayStyle(font_size=20, opacity=50)
        )
        solid = TextOverlay(text="BBBB", x=75, y=50, style=OverlayStyle(font_size=20))
        image = OverlayRasterizer().paint([faint, solid], 200, 100)

        assert _max_alpha(image, (0, 0, 100, 100)) <= 128
        assert _max_alpha(image, (100, 0, 200, 100)) > 200

    def test_stroke_widens_text(self):
        """Test the stroke is painted around the fill."""
        plain = TextOverlay(text="W", style=OverlayStyle(font_size=30))
        stroked = TextOverlay(
            text="W",
            style=OverlayStyle(font_size=30, stroke_width=6, stroke_color="#000000"),
        )
        rasterizer = OverlayRasterizer()
        plain_box = rasterizer.paint([plain], 100, 100).getchannel("A").getbbox()
        stroked_box = rasterizer.paint([stroked], 100, 100).getchannel("A").getbbox()

        assert stroked_box[2] - stroked_box[0] > plain_box[2] - plain_box[0]

    def test_underline_below_text(self):
        """Test underline adds pixels under the glyphs."""
        plain = TextOverlay(text="ace", style=OverlayStyle(font_size=30))
        underlined = TextOverlay(
            text="ace", style=OverlayStyle(font_size=30, underline=True)
        )
        rasterizer = OverlayRasterizer()
        plain_box = rasterizer.paint([plain], 120, 100).getchannel("A").getbbox()
        line_box = rasterizer.paint([underlined], 120, 100).getchannel("A").getbbox()

        assert line_box[3] > plain_box[3]

    def test_bad_color_falls_back(self):
        """Test a bad overlay color is recorded and painted white."""
        overlay = TextOverlay(
            text="X", style=OverlayStyle(font_size=30, color="not-a-color")
        )
        warnings = []
        image = OverlayRasterizer().paint([overlay, overlay], 60, 60, warnings)

        assert warnings == ["Invalid overlay color 'not-a-color'; using #FFFFFF"]
        colors = {pixel for _, pixel in image.getcolors(60 * 60)}
        assert (255, 255, 255, 255) in colors

    def test_warnings_belong_to_each_call(self):
        """Test a second paint with the same bad color reports it again."""
        overlay = TextOverlay(text="X", style=OverlayStyle(color="not-a-color"))
        rasterizer = OverlayRasterizer()
        first, second = [], []
        rasterizer.paint([overlay], 40, 40, first)
        rasterizer.paint([overlay], 40, 40, second)

        assert len(first) == 1
        assert second == first


class TestRenderStatic:
    """Test single image output."""

    @pytest.mark.asyncio
    async def test_render_static(self, temp_dir, static_overlay):
        """Test one PNG with alpha at the canvas size."""
        out_path = os.path.join(temp_dir, "overlay.png")
        result = await OverlayRasterizer().render_static(
            [static_overlay], 320, 180, out_path
        )

        assert result == out_path
        with Image.open(out_path) as image:
            assert image.mode == "RGBA"
            assert image.size == (320, 180)


class TestRenderSequence:
    """Test frame sequence output."""

    @pytest.mark.asyncio
    async def test_timed_overlay_window(self, temp_dir, corner_overlays):
        """Test 6 s at 10 fps gives 60 frames, timed overlay in frames 20..40."""
        out_dir = os.path.join(temp_dir, "frames")
        info = await OverlayRasterizer().render_sequence(
            corner_overlays, 160, 90, 10, 6.0, out_dir
        )

        assert info.frame_count == 60
        assert info.frames_written == 60
        assert not info.stopped
        assert sorted(os.listdir(out_dir)) == [
            FRAME_PATTERN % n for n in range(1, 61)
        ]

        timed_frames = []
        for i in range(60):
            with Image.open(frame_path(out_dir, i + 1)) as image:
                assert _max_alpha(image, (0, 0, 80, 45)) > 0
                if _max_alpha(image, (80, 45, 160, 90)) > 0:
                    timed_frames.append(i)

        assert timed_frames == list(range(20, 41))

    @pytest.mark.asyncio
    async def test_progress_throttled(self, temp_dir, timed_overlay):
        """Test progress every five frames and on the last one."""
        updates = []
        await OverlayRasterizer().render_sequence(
            [timed_overlay], 32, 18, 4, 3.0, temp_dir, on_progress=updates.append
        )

        assert all(isinstance(u, FrameProgress) for u in updates)
        assert [u.frames_done for u in updates] == [5, 10, 12]
        assert updates[-1].percent == 100.0
        assert updates[-1].total_frames == 12

    @pytest.mark.asyncio
    async def test_stop_between_frames(self, temp_dir, timed_overlay):
        """Test the stop event ends rendering early without raising."""
        stop = threading.Event()

        def on_progress(progress):
            if progress.frames_done == 10:
                stop.set()

        info = await OverlayRasterizer().render_sequence(
            [timed_overlay],
            32,
            18,
            10,
            6.0,
            temp_dir,
            on_progress=on_progress,
            stop_event=stop,
        )

        assert info.stopped
        assert info.frames_written == 10
        assert len(os.listdir(temp_dir)) == 10
