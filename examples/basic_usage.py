#!/usr/bin/env python3
"""
Basic usage example for clipcomposer.

This example demonstrates:
1. Loading an SRT transcript
2. Burning styled subtitles into a clip
3. Exporting the final result
"""

import asyncio
import os
import sys
from clipcomposer import (
    Composer,
    CompositionRequest,
    EncoderProfile,
    SubtitleStyle,
    Rendered,
    parse_srt,
    split_cue,
)


def main():
    """Run basic usage example."""
    if len(sys.argv) < 3:
        print("Usage: basic_usage.py <video> <transcript.srt>")
        return

    video_path, srt_path = sys.argv[1], sys.argv[2]
    if not os.path.exists(video_path):
        print(f"Video not found: {video_path}")
        return

    # Load transcript and keep lines short enough to read
    with open(srt_path, encoding="utf-8") as f:
        cues = [part for cue in parse_srt(f.read()) for part in split_cue(cue)]
    print(f"Loaded {len(cues)} subtitle lines")

    style = SubtitleStyle(
        font_family="Arial",
        font_size=42,
        font_color="#FFFFFF",
        stroke_color="#000000",
        stroke_width=2,
        bold=True,
        y=85,  # lower third
    )

    output_path = "output_with_subtitles.mp4"
    request = CompositionRequest(
        source_path=video_path,
        output_path=output_path,
        cues=cues,
        style=style,
        encoder=EncoderProfile.h264(crf=20, preset="medium"),
    )

    def progress_callback(progress):
        print(f"{progress.stage}: {progress.percent:.1f}%")

    print(f"Rendering to: {output_path}")
    result = asyncio.run(Composer().render(request, on_progress=progress_callback))

    if isinstance(result, Rendered):
        print("✅ Video processing completed!")
        print(f"Output saved to: {result.output_path}")
        for warning in result.warnings:
            print(f"  warning: {warning}")
    else:
        print(f"Render stopped during {result.stage}")


if __name__ == "__main__":
    main()
