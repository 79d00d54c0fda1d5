"""Shared test fixtures and configuration."""

import logging
import os
import tempfile

import pytest

from clipcomposer.media import (
    MediaContext,
    CompositionRequest,
    SubtitleCue,
    TextOverlay,
    OverlayTiming,
    BackgroundAudio,
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield tmp_dir


@pytest.fixture
def ctx(temp_dir):
    """MediaContext that never touches the real ffmpeg binaries."""
    context = MediaContext(
        tmp_root=temp_dir, logger=logging.getLogger("clipcomposer.tests"), verify=False
    )
    yield context
    context.cleanup()


@pytest.fixture
def cues():
    """Three cues, the last one very short."""
    return [
        SubtitleCue(start="00:00:00,000", end="00:00:05,000", text="Hello"),
        SubtitleCue(start="00:00:05,000", end="00:00:10,000", text="World"),
        SubtitleCue(start="00:00:10,000", end="00:00:10,050", text="X"),
    ]


@pytest.fixture
def static_overlay():
    """Overlay visible for the whole clip."""
    return TextOverlay(text="Static", x=50, y=10)


@pytest.fixture
def timed_overlay():
    """Overlay visible between 2 s and 4 s."""
    return TextOverlay(
        text="Timed",
        x=50,
        y=50,
        timing=OverlayTiming(start="00:00:02,000", end="00:00:04,000"),
    )


@pytest.fixture
def make_request(temp_dir):
    """Factory building a request with the given optional inputs."""

    def _make(with_cues=False, overlays=None, background=False, **kwargs):
        cues = []
        if with_cues:
            cues = [SubtitleCue(start="00:00:00,000", end="00:00:02,000", text="Hi")]
        background_audio = None
        if background:
            background_audio = BackgroundAudio(
                path=os.path.join(temp_dir, "music.mp3"), volume=40
            )
        return CompositionRequest(
            source_path=os.path.join(temp_dir, "in.mp4"),
            output_path=os.path.join(temp_dir, "out", "clip.mp4"),
            cues=cues,
            overlays=overlays or [],
            background_audio=background_audio,
            **kwargs,
        )

    return _make

