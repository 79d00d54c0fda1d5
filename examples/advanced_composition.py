#!/usr/bin/env python3
"""
Advanced composition example for clipcomposer.

This example demonstrates:
1. Asking an LLM for the best clip ranges in a transcript
2. Subtitles with a background box, timed text overlays and music
3. Cutting the first selected range into its own file
4. Stopping a render from another thread
5. Exporting in different formats
"""

import asyncio
import os
import sys
import threading
from clipcomposer import (
    ClipSelectorClient,
    Composer,
    CompositionRequest,
    EncoderProfile,
    OverlayStyle,
    OverlayTiming,
    SubtitleStyle,
    TextOverlay,
    BackgroundAudio,
    Rendered,
    extract_clip,
    parse_srt,
)

PROMPT = (
    "Pick the three most engaging moments of this transcript. Answer with a "
    'JSON array of objects with "start", "end" and "title" keys.'
)


def pick_clips(transcript):
    """Ask the clip selector for ranges, if an API key is configured."""
    api_key = os.getenv("GEMINI_API_KEY")
    if not api_key:
        print("GEMINI_API_KEY not set; skipping clip selection")
        return []

    client = ClipSelectorClient(api_key, model="gemini-2.5-flash-latest")
    clips = client.select_clips(PROMPT, transcript, temperature=0.2)
    for clip in clips:
        start, end = clip.to_cue_range()
        print(f"  {start} -> {end}  {clip.metadata.get('title', '')}")
    return clips


async def render_all(video_path, cues, music_path):
    """Render the same clip in two formats, stopping the second early."""
    overlays = [
        # Static watermark for the whole clip
        TextOverlay(
            text="@clipcomposer",
            x=88,
            y=6,
            style=OverlayStyle(font_size=28, opacity=60),
        ),
        # Title card for the first three seconds
        TextOverlay(
            text="Best moments",
            x=50,
            y=20,
            style=OverlayStyle(
                font_size=72,
                color="#FFD400",
                stroke_color="#000000",
                stroke_width=4,
                bold=True,
            ),
            timing=OverlayTiming(start="00:00:00,000", end="00:00:03,000"),
        ),
    ]
    style = SubtitleStyle(
        font_size=40,
        background_enabled=True,
        background_color="#000000",
        background_opacity=60,
        y=82,
    )
    background_audio = BackgroundAudio(path=music_path, volume=25) if music_path else None

    composer = Composer()

    # 1. High-quality H.264
    print("Exporting H.264 version...")
    hq = CompositionRequest(
        source_path=video_path,
        output_path="clip_hq.mp4",
        cues=cues,
        style=style,
        overlays=overlays,
        background_audio=background_audio,
        encoder=EncoderProfile.for_format("mp4", "high"),
    )
    print("\nFFmpeg command that would be executed:")
    print(composer.dry_run(hq))
    result = await composer.render(hq)
    print(f"  -> {result.status}")

    # 2. WebM, stopped after two seconds to show cancellation
    print("Exporting WebM version (stopping after 2s)...")
    stop = threading.Event()
    threading.Timer(2.0, stop.set).start()
    webm = hq.model_copy(
        update={
            "output_path": "clip.webm",
            "encoder": EncoderProfile.for_format("webm", "medium"),
        }
    )
    result = await composer.render(webm, stop_event=stop)
    if isinstance(result, Rendered):
        print("  -> finished before the stop request")
    else:
        print(f"  -> stopped during {result.stage}")


def main():
    """Run advanced composition example."""
    if len(sys.argv) < 3:
        print("Usage: advanced_composition.py <video> <transcript.srt> [music]")
        return

    video_path, srt_path = sys.argv[1], sys.argv[2]
    music_path = sys.argv[3] if len(sys.argv) > 3 else None

    with open(srt_path, encoding="utf-8") as f:
        transcript = f.read()

    print("Selecting clips...")
    clips = pick_clips(transcript)
    if clips:
        first = clips[0]
        result = asyncio.run(
            extract_clip(video_path, first.start, first.end, "clip_1.mp4")
        )
        print(f"First range cut: {result.status}")

    asyncio.run(render_all(video_path, parse_srt(transcript), music_path))
    print("✅ All exports completed!")


if __name__ == "__main__":
    main()
