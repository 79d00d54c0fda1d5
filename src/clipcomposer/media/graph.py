"""Filter-graph planning and assembly for the final ffmpeg render."""

from pydantic import BaseModel, Field
from typing import List, Optional

from ..core.types import OverlayMode
from .models import CompositionRequest
from .probe import MediaInfo
from .rasterizer import needs_sequence

DEFAULT_WIDTH = 1920
DEFAULT_HEIGHT = 1080
DEFAULT_FPS = 30.0
FALLBACK_DURATION = 30.0

VIDEO_OUT = "vout"
AUDIO_OUT = "aout"


def format_number(value: float) -> str:
    """Render a number for a filter argument without float noise."""
    return f"{float(value):g}"


def escape_filter_path(path: str) -> str:
    """Quote a file path for use as a filter option value."""
    path = path.replace("\\", "/")
    return "'" + path.replace("'", "'\\''") + "'"


class GraphStage(BaseModel):
    """One labelled filter: ``[in1][in2]op=p1:p2[out]``."""

    inputs: List[str]
    op: str
    params: List[str] = Field(default_factory=list)
    output: str

    def serialize(self) -> str:
        """Render this stage in ffmpeg filtergraph syntax."""
        labels = "".join(f"[{label}]" for label in self.inputs)
        body = f"{self.op}={':'.join(self.params)}" if self.params else self.op
        return f"{labels}{body}[{self.output}]"


class FilterGraph(BaseModel):
    """Linear video and audio filter chains."""

    video: List[GraphStage] = Field(default_factory=list)
    audio: List[GraphStage] = Field(default_factory=list)

    @property
    def stages(self) -> List[GraphStage]:
        """All stages, video chain first."""
        return self.video + self.audio

    def ops(self) -> List[str]:
        """Operation names in graph order."""
        return [stage.op for stage in self.stages]

    def serialize(self) -> str:
        """Join every stage into a ``-filter_complex`` value."""
        return ";".join(stage.serialize() for stage in self.stages)

    def map_args(self) -> List[str]:
        """``-map`` arguments selecting the graph outputs."""
        args = ["-map", f"[{self.video[-1].output}]" if self.video else "0:v"]
        if self.audio:
            args.extend(["-map", f"[{self.audio[-1].output}]"])
        else:
            # Primary audio passes through untouched, if the source has any
            args.extend(["-map", "0:a?"])
        return args


class CompositionPlan(BaseModel):
    """
    Which optional branches one render takes.

    Computed once per render from the request and the probed source, then
    handed to every later step so no step re-derives these decisions.
    """

    has_subtitles: bool
    overlay_mode: OverlayMode
    has_background_audio: bool
    has_primary_audio: bool = True
    width: int
    height: int
    fps: float
    duration: float
    duration_is_fallback: bool = False
    background_volume: float = 1.0
    overlay_input: Optional[int] = None
    audio_input: Optional[int] = None

    @property
    def needs_overlay_input(self) -> bool:
        """True when overlays arrive as a separate image input."""
        return self.overlay_mode in (OverlayMode.STATIC, OverlayMode.SEQUENCE)

    @classmethod
    def from_request(
        cls,
        request: CompositionRequest,
        info: Optional[MediaInfo] = None,
        fallback_duration: float = FALLBACK_DURATION,
    ) -> "CompositionPlan":
        """
        Decide the render branches for a request.

        Args:
            request: Composition request
            info: Probed source information, or None when probing failed
            fallback_duration: Duration used when the source length is unknown

        Returns:
            Composition plan
        """
        if not request.overlays:
            overlay_mode = OverlayMode.NONE
        elif request.overlay_renderer == "markup":
            overlay_mode = OverlayMode.MARKUP
        elif needs_sequence(request.overlays):
            overlay_mode = OverlayMode.SEQUENCE
        else:
            overlay_mode = OverlayMode.STATIC

        duration = info.duration if info and info.duration else None
        width = request.width or (info.width if info and info.width else DEFAULT_WIDTH)
        height = request.height or (
            info.height if info and info.height else DEFAULT_HEIGHT
        )
        fps = request.fps or (info.fps if info and info.fps else DEFAULT_FPS)

        next_input = 1
        overlay_input = None
        if overlay_mode in (OverlayMode.STATIC, OverlayMode.SEQUENCE):
            overlay_input = next_input
            next_input += 1

        audio_input = None
        volume = 1.0
        if request.background_audio is not None:
            audio_input = next_input
            volume = max(0.0, min(100.0, request.background_audio.volume)) / 100

        return cls(
            has_subtitles=bool(request.cues),
            overlay_mode=overlay_mode,
            has_background_audio=request.background_audio is not None,
            has_primary_audio=info.has_audio if info else True,
            width=width,
            height=height,
            fps=fps,
            duration=duration or fallback_duration,
            duration_is_fallback=duration is None,
            background_volume=volume,
            overlay_input=overlay_input,
            audio_input=audio_input,
        )


def _ass_stage(
    source: str, markup_path: str, fonts_dir: Optional[str], output: str
) -> GraphStage:
    params = [f"filename={escape_filter_path(markup_path)}"]
    if fonts_dir:
        params.append(f"fontsdir={escape_filter_path(fonts_dir)}")
    return GraphStage(inputs=[source], op="ass", params=params, output=output)


def build_filter_graph(
    plan: CompositionPlan,
    subtitle_markup: Optional[str] = None,
    overlay_markup: Optional[str] = None,
    fonts_dir: Optional[str] = None,
) -> FilterGraph:
    """
    Build the video and audio chains for a plan.

    Video: subtitle burn-in, then overlay compositing at the origin, then
    even-dimension scaling and ``yuv420p`` conversion (always present).
    Audio: only when background audio is requested; the secondary track is
    scaled by the clamped volume and mixed with the primary, which governs
    the output length.

    Args:
        plan: Composition plan
        subtitle_markup: Path of the subtitle ASS file (needed if the plan
            has subtitles)
        overlay_markup: Path of the overlay ASS file (needed in markup mode)
        fonts_dir: Directory handed to libass for font lookup

    Returns:
        Filter graph

    Raises:
        ValueError: If a markup path required by the plan is missing
    """
    video: List[GraphStage] = []
    current = "0:v"

    if plan.has_subtitles:
        if not subtitle_markup:
            raise ValueError("Subtitle markup path required when cues are present")
        video.append(_ass_stage(current, subtitle_markup, fonts_dir, "subbed"))
        current = "subbed"

    if plan.needs_overlay_input:
        video.append(
            GraphStage(
                inputs=[current, f"{plan.overlay_input}:v"],
                op="overlay",
                params=["0", "0"],
                output="overlaid",
            )
        )
        current = "overlaid"
    elif plan.overlay_mode == OverlayMode.MARKUP:
        if not overlay_markup:
            raise ValueError("Overlay markup path required in markup mode")
        video.append(_ass_stage(current, overlay_markup, fonts_dir, "overlaid"))
        current = "overlaid"

    # libx264/yuv420p reject odd dimensions
    video.append(
        GraphStage(
            inputs=[current],
            op="scale",
            params=["trunc(iw/2)*2", "trunc(ih/2)*2"],
            output="scaled",
        )
    )
    video.append(
        GraphStage(inputs=["scaled"], op="format", params=["yuv420p"], output=VIDEO_OUT)
    )

    audio: List[GraphStage] = []
    if plan.has_background_audio:
        volume_out = "bgvol" if plan.has_primary_audio else AUDIO_OUT
        audio.append(
            GraphStage(
                inputs=[f"{plan.audio_input}:a"],
                op="volume",
                params=[format_number(plan.background_volume)],
                output=volume_out,
            )
        )
        if plan.has_primary_audio:
            audio.append(
                GraphStage(
                    inputs=["0:a", volume_out],
                    op="amix",
                    params=[
                        "inputs=2",
                        "duration=first",
                        "dropout_transition=0",
                        "normalize=0",
                    ],
                    output=AUDIO_OUT,
                )
            )

    return FilterGraph(video=video, audio=audio)
