"""Render a composition request to a finished clip."""

import os
from typing import Dict, List, Optional

from ..core.errors import ProbeFailure
from ..core.types import FrameProgress, OverlayMode, RenderProgress, RenderProgressCb
from .context import MediaContext, default_context
from .fonts import FontRegistry
from .graph import (
    FALLBACK_DURATION,
    CompositionPlan,
    build_filter_graph,
    format_number,
)
from .markup import compile_overlays, compile_subtitles, write_markup
from .models import CompositionRequest, Rendered, RenderResult, Stopped
from .probe import MediaInfo, probe_media
from .rasterizer import FRAME_PATTERN, OverlayRasterizer
from .transcoder import Transcoder


def workspace_paths(workspace: str) -> Dict[str, str]:
    """Locations of every intermediate file inside a render workspace."""
    frames_dir = os.path.join(workspace, "overlay_frames")
    return {
        "subtitles": os.path.join(workspace, "subtitles.ass"),
        "overlay_markup": os.path.join(workspace, "overlays.ass"),
        "overlay_image": os.path.join(workspace, "overlay.png"),
        "overlay_frames": frames_dir,
        "overlay_pattern": os.path.join(frames_dir, FRAME_PATTERN),
    }


class Composer:
    """
    Burn subtitles, overlays and background audio into a clip.

    A render probes the source, plans the optional branches once, writes
    markup and overlay images into a private workspace, then runs ffmpeg.
    The workspace is removed on every exit path.
    """

    def __init__(
        self,
        ctx: Optional[MediaContext] = None,
        fonts: Optional[FontRegistry] = None,
        fallback_duration: float = FALLBACK_DURATION,
    ):
        """
        Initialize composer.

        Args:
            ctx: Media context (defaults to the process-wide context)
            fonts: Font registry shared by the rasterizer and libass
            fallback_duration: Duration assumed when probing fails
        """
        self.ctx = ctx or default_context()
        self.fonts = fonts or FontRegistry()
        self.fallback_duration = fallback_duration
        self.rasterizer = OverlayRasterizer(self.fonts, logger=self.ctx.logger)
        self.transcoder = Transcoder(self.ctx)

    async def render(
        self,
        request: CompositionRequest,
        on_progress: RenderProgressCb = None,
        stop_event=None,
    ) -> RenderResult:
        """
        Render a request.

        Args:
            request: Composition request
            on_progress: Optional RenderProgress sink
            stop_event: Optional event; setting it stops the render

        Returns:
            Rendered on success, Stopped if the stop event interrupted it

        Raises:
            FormatError: If a cue timestamp is malformed
            InvalidRangeError: If a cue or overlay range is empty
            RasterizeError: If overlay images cannot be written
            TranscodeError: If ffmpeg fails
        """
        warnings: List[str] = []
        workspace = self.ctx.temp_dir()
        self.ctx.logger.debug(f"Render workspace: {workspace}")
        try:
            return await self._render(
                request, workspace, warnings, on_progress, stop_event
            )
        finally:
            self.ctx.remove_tree(workspace)

    async def _render(
        self,
        request: CompositionRequest,
        workspace: str,
        warnings: List[str],
        on_progress: RenderProgressCb,
        stop_event,
    ) -> RenderResult:
        def stopped() -> bool:
            return stop_event is not None and stop_event.is_set()

        info = await self._probe(request.source_path, warnings)
        plan = CompositionPlan.from_request(request, info, self.fallback_duration)
        self.ctx.logger.info(
            f"Plan: subtitles={plan.has_subtitles} overlays={plan.overlay_mode.value} "
            f"background_audio={plan.has_background_audio} "
            f"{plan.width}x{plan.height}@{plan.fps:g} {plan.duration:.2f}s"
        )
        if stopped():
            return Stopped(stage="probe", warnings=warnings)

        paths = workspace_paths(workspace)
        if plan.has_subtitles:
            document = compile_subtitles(
                request.cues,
                request.style,
                plan.width,
                plan.height,
                font_scale=request.font_scale,
                warnings=warnings,
            )
            await write_markup(paths["subtitles"], document)

        if plan.overlay_mode == OverlayMode.MARKUP:
            document = compile_overlays(
                request.overlays,
                plan.width,
                plan.height,
                plan.duration,
                font_scale=request.font_scale,
                warnings=warnings,
            )
            await write_markup(paths["overlay_markup"], document)

        if stopped():
            return Stopped(stage="markup", warnings=warnings)

        if plan.overlay_mode == OverlayMode.STATIC:
            await self.rasterizer.render_static(
                request.overlays,
                plan.width,
                plan.height,
                paths["overlay_image"],
                warnings=warnings,
            )
        elif plan.overlay_mode == OverlayMode.SEQUENCE:

            def frame_progress(progress: FrameProgress) -> None:
                if on_progress:
                    on_progress(
                        RenderProgress(stage="rasterize", percent=progress.percent)
                    )

            sequence = await self.rasterizer.render_sequence(
                request.overlays,
                plan.width,
                plan.height,
                plan.fps,
                plan.duration,
                paths["overlay_frames"],
                on_progress=frame_progress,
                stop_event=stop_event,
                warnings=warnings,
            )
            if sequence.stopped:
                return Stopped(stage="rasterize", warnings=warnings)

        if stopped():
            return Stopped(stage="rasterize", warnings=warnings)

        out_dir = os.path.dirname(os.path.abspath(request.output_path))
        os.makedirs(out_dir, exist_ok=True)

        argv = self.build_argv(request, plan, workspace)
        outcome = await self.transcoder.run(
            argv,
            stage="transcode",
            duration=plan.duration,
            on_progress=on_progress,
            stop_event=stop_event,
        )
        if outcome.stopped:
            return Stopped(stage="transcode", warnings=warnings)

        return Rendered(
            output_path=request.output_path, duration=plan.duration, warnings=warnings
        )

    async def _probe(self, path: str, warnings: List[str]) -> Optional[MediaInfo]:
        try:
            return await probe_media(path, self.ctx)
        except ProbeFailure as e:
            message = (
                f"Could not probe {path}: {e}; "
                f"assuming {self.fallback_duration:g}s duration"
            )
            self.ctx.logger.warning(message)
            warnings.append(message)
            return None

    def build_argv(
        self, request: CompositionRequest, plan: CompositionPlan, workspace: str
    ) -> List[str]:
        """
        Build the ffmpeg command line for a planned render.

        Input 0 is always the source; the overlay image or frame sequence
        (if any) comes next, then the background audio track.

        Args:
            request: Composition request
            plan: Plan computed for the request
            workspace: Render workspace holding the intermediate files

        Returns:
            FFmpeg argument list, binary first
        """
        paths = workspace_paths(workspace)
        argv = [self.ctx.ffmpeg, "-y", "-hide_banner", "-i", request.source_path]

        if plan.overlay_mode == OverlayMode.STATIC:
            argv.extend(
                [
                    "-loop",
                    "1",
                    "-t",
                    format_number(plan.duration),
                    "-i",
                    paths["overlay_image"],
                ]
            )
        elif plan.overlay_mode == OverlayMode.SEQUENCE:
            argv.extend(
                [
                    "-framerate",
                    format_number(plan.fps),
                    "-i",
                    paths["overlay_pattern"],
                ]
            )

        if request.background_audio is not None:
            argv.extend(["-i", request.background_audio.path])

        graph = build_filter_graph(
            plan,
            subtitle_markup=paths["subtitles"] if plan.has_subtitles else None,
            overlay_markup=(
                paths["overlay_markup"]
                if plan.overlay_mode == OverlayMode.MARKUP
                else None
            ),
            fonts_dir=request.fonts_dir or self.fonts.fonts_dir(),
        )
        argv.extend(["-filter_complex", graph.serialize()])
        argv.extend(graph.map_args())

        if plan.has_background_audio and not plan.has_primary_audio:
            # Background track alone must not outlast the video
            argv.append("-shortest")

        if request.fps:
            argv.extend(["-r", format_number(request.fps)])

        argv.extend(request.encoder.args(request.output_path))
        return argv

    def dry_run(
        self, request: CompositionRequest, info: Optional[MediaInfo] = None
    ) -> str:
        """
        Generate the FFmpeg command for a request without executing anything.

        Args:
            request: Composition request
            info: Source information to plan with; None plans as if probing
                failed

        Returns:
            FFmpeg command string
        """
        plan = CompositionPlan.from_request(request, info, self.fallback_duration)
        argv = self.build_argv(request, plan, "WORKSPACE")
        return " ".join(map(str, argv))
