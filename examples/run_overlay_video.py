"""
Example: Analyse a video once, then replay it with a segmentation overlay.

This demonstrates the full pipeline:
1. Sample frames every 0.2s (top 20% cropped) and segment them
2. Cache results by timestamp
3. Play back, drawing the nearest cached masks (vehicles, traffic lights)
4. Optionally export the annotated playback to a video file
"""

import asyncio
import argparse
import logging
from dataclasses import replace

import cv2

from segment_replay import ReplayConfig, ReplaySession
from segment_replay.segmenter import RemoteSegmenter, create_segmenter
from segment_replay.utils import save_image
from segment_replay.video import OpenCVVideoSource


def parse_args():
    parser = argparse.ArgumentParser(description="Segmentation overlay replay")

    # Input source
    parser.add_argument("--source", type=str, required=True, help="Video file path")

    # Segmenter
    parser.add_argument("--model", type=str, default=None, help="Hugging Face model id")
    parser.add_argument("--segmenter-url", type=str, default=None, help="Remote segmentation endpoint")
    parser.add_argument("--device", type=str, default=None, help="Device (cuda/cpu/auto)")

    # Analysis config
    parser.add_argument("--interval", type=float, default=None, help="Sampling interval (seconds)")
    parser.add_argument("--cap", type=float, default=None, help="Duration cap (seconds)")
    parser.add_argument("--crop", type=float, default=None, help="Top crop fraction")
    parser.add_argument("--input-width", type=int, default=None, help="Model input width")

    # Output
    parser.add_argument("--container", type=str, default="1280x720", help="Display size WxH")
    parser.add_argument("--output", type=str, default=None, help="Export annotated video instead of showing a window")
    parser.add_argument("--snapshot", type=str, default=None, help="Save the overlay at t=0 as an image")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    return parser.parse_args()


def build_config(args) -> ReplayConfig:
    config = ReplayConfig.from_env()
    overrides = {
        "model_id": args.model,
        "segmenter_url": args.segmenter_url,
        "device": args.device,
        "sampling_interval": args.interval,
        "duration_cap": args.cap,
        "crop_fraction": args.crop,
        "model_input_width": args.input_width,
    }
    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})
    # Playback is driven below
    return replace(config, auto_play=False)


async def export_video(session: ReplaySession, video: OpenCVVideoSource, output: str) -> int:
    """Render the capped duration frame by frame into a video file."""
    sync = session.synchronizer
    width, height = sync.container_size
    fps = video.fps or 30.0
    end = min(video.duration or 0.0, session.config.duration_cap)

    writer = cv2.VideoWriter(output, cv2.VideoWriter_fourcc(*"mp4v"), fps, (width, height))
    written = 0
    try:
        index = 0
        while index / fps < end:
            t = index / fps
            await video.seek(t)
            cached = session.cache.nearest(t)
            sync.render(cached.results if cached else [])

            frame = await sync.capture_frame()
            if frame is not None:
                writer.write(cv2.cvtColor(frame, cv2.COLOR_RGB2BGR))
                written += 1
            index += 1
    finally:
        writer.release()
    return written


async def show_playback(session: ReplaySession) -> None:
    """Loop playback in a window until 'q' is pressed."""
    sync = session.synchronizer

    async def on_tick(s):
        frame = await s.capture_frame()
        if frame is not None:
            cv2.imshow("segment-replay", cv2.cvtColor(frame, cv2.COLOR_RGB2BGR))
        if cv2.waitKey(1) & 0xFF == ord("q"):
            s.stop()

    sync.set_on_tick_callback(on_tick)
    if await session.toggle_playback():
        await sync.wait()
    cv2.destroyAllWindows()


async def save_snapshot(session: ReplaySession, video: OpenCVVideoSource, path: str) -> bool:
    """Save the first frame with its cached overlay."""
    sync = session.synchronizer
    await video.seek(0.0)
    cached = session.cache.nearest(0.0)
    sync.render(cached.results if cached else [])

    frame = await sync.capture_frame()
    if frame is None:
        return False
    save_image(frame, path)
    return True


async def main():
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = build_config(args)
    errors = config.validate()
    if errors:
        for error in errors:
            print(f"Error: {error}")
        return
    config.print_config()

    container_w, container_h = (int(v) for v in args.container.lower().split("x"))

    segmenter = create_segmenter(config)
    segmenter.set_on_status_callback(
        lambda status: logging.info(f"Model {status.state.value}: {status.message or ''} ({status.progress:.0f}%)")
    )
    segmenter.load()

    video = OpenCVVideoSource(args.source)
    video.open()
    logging.info(f"Video info: {video.get_info()}")

    session = ReplaySession(segmenter, config)
    session.set_on_status_callback(
        lambda status: print(f"\r{status.state.value.upper()} {status.progress:3d}%", end="")
    )
    session.set_on_categories_callback(lambda categories: logging.debug(f"Active: {categories}"))

    try:
        await session.set_source(video, container_size=(container_w, container_h))
        status = await session.analyze()
        print(f"\nCached {status.frames_cached} frames ({status.frames_failed} failed)")
        logging.info(f"Cache stats: {session.cache.get_stats()}")

        if args.snapshot:
            if await save_snapshot(session, video, args.snapshot):
                print(f"Saved snapshot to {args.snapshot}")

        if args.output:
            written = await export_video(session, video, args.output)
            print(f"Wrote {written} frames to {args.output}")
        else:
            await show_playback(session)
    finally:
        await session.close()
        if isinstance(segmenter, RemoteSegmenter):
            await segmenter.close()
        segmenter.unload()


if __name__ == "__main__":
    asyncio.run(main())
