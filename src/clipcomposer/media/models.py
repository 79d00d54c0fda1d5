"""Pydantic models describing one composition render."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Annotated, List, Literal, Optional, TypeAlias, Union

from ..core.timecode import parse_subtitle_time
from .encoders import EncoderProfile

Percent: TypeAlias = Annotated[float, Field(ge=0, le=100)]
TimeBound: TypeAlias = Union[str, float]


class SubtitleCue(BaseModel):
    """One subtitle line with its display window (``HH:MM:SS,mmm`` strings)."""

    model_config = ConfigDict(frozen=True)

    start: str
    end: str
    text: str

    def start_seconds(self) -> float:
        """Start time in seconds."""
        return parse_subtitle_time(self.start)

    def end_seconds(self) -> float:
        """End time in seconds."""
        return parse_subtitle_time(self.end)


class SubtitleStyle(BaseModel):
    """Style applied uniformly to every cue of a render."""

    font_family: str = "Arial"
    font_size: float = Field(default=28, gt=0)
    font_color: str = "#FFFFFF"
    stroke_color: str = "#000000"
    stroke_width: float = Field(default=1.0, ge=0)
    background_enabled: bool = False
    background_color: str = "#000000"
    background_opacity: Percent = 100
    background_radius: float = 0
    background_padding: float = 0
    opacity: Percent = 100
    bold: bool = False
    italic: bool = False
    underline: bool = False
    x: Percent = 50
    y: Percent = 50


class OverlayStyle(BaseModel):
    """Inline style of a single text overlay."""

    font_size: float = Field(default=48, gt=0)
    font_family: str = "Arial"
    color: str = "#FFFFFF"
    stroke_color: Optional[str] = None
    stroke_width: Optional[float] = Field(default=None, ge=0)
    opacity: Optional[Percent] = None
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    underline: Optional[bool] = None


class OverlayTiming(BaseModel):
    """Visibility window of an overlay; missing bounds are open."""

    start: Optional[TimeBound] = None
    end: Optional[TimeBound] = None


class TextOverlay(BaseModel):
    """Freely positioned text drawn on top of the video."""

    text: str
    x: Percent = 50
    y: Percent = 50
    style: OverlayStyle = Field(default_factory=OverlayStyle)
    timing: Optional[OverlayTiming] = None

    @property
    def is_static(self) -> bool:
        """True when the overlay is visible for the whole clip."""
        return self.timing is None


class BackgroundAudio(BaseModel):
    """Secondary audio track mixed under the primary audio."""

    path: str
    volume: float = 100


class CompositionRequest(BaseModel):
    """Everything needed for one render of a clip."""

    source_path: str
    output_path: str
    cues: List[SubtitleCue] = Field(default_factory=list)
    style: SubtitleStyle = Field(default_factory=SubtitleStyle)
    overlays: List[TextOverlay] = Field(default_factory=list)
    background_audio: Optional[BackgroundAudio] = None
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)
    fps: Optional[float] = Field(default=None, gt=0)
    encoder: EncoderProfile = Field(default_factory=EncoderProfile.h264)
    overlay_renderer: Literal["raster", "markup"] = "raster"
    fonts_dir: Optional[str] = None
    font_scale: float = Field(default=1.0, gt=0)


class Rendered(BaseModel):
    """Successful render."""

    status: Literal["rendered"] = "rendered"
    output_path: str
    # None when the output length could not be determined
    duration: Optional[float] = None
    warnings: List[str] = Field(default_factory=list)


class Stopped(BaseModel):
    """Render interrupted by the caller before completion."""

    status: Literal["stopped"] = "stopped"
    stage: str
    warnings: List[str] = Field(default_factory=list)


RenderResult = Union[Rendered, Stopped]
