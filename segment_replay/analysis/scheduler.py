"""
Frame sampling and analysis scheduling.

Walks the video timeline at a fixed interval and fills a result cache:

    t = 0, interval, 2*interval, ... <= min(duration, cap) + epsilon

For each stop the visible frame is cropped (top band removed), scaled
to the model input width and sent to the segmenter. The seek to the
next stop runs while inference for the current one is in flight; both
finish before the next capture, so cache entries are appended in
strictly increasing timestamp order.
"""

import asyncio
import logging
import math
from dataclasses import replace
from typing import Callable

import numpy as np

from ..cache import ResultCache
from ..config import ReplayConfig
from ..exceptions import AnalysisError
from ..geometry import compute_analysis_size
from ..models import AnalysisState, AnalysisStatus, CachedFrame, SegmentationResult
from ..segmenter import BaseSegmenter
from ..utils import crop_and_resize, ensure_rgb
from ..video import VideoSource

logger = logging.getLogger(__name__)


def sample_timestamps(duration: float, interval: float, epsilon: float) -> list[float]:
    """
    Timestamps visited by one analysis pass.

    Each timestamp is derived from its step index rather than by repeated
    addition, so float error cannot drop the final stop. The tolerance past
    the duration is capped at half an interval so a short interval never
    samples whole steps beyond the end.
    """
    tolerance = min(epsilon, interval / 2)
    timestamps = []
    step = 0
    while True:
        t = round(step * interval, 6)
        if t > duration + tolerance:
            break
        timestamps.append(t)
        step += 1
    return timestamps


def progress_percent(completed: int, total: int) -> int:
    """Percentage done, halves rounded up, capped at 100."""
    return min(100, math.floor(100 * completed / total + 0.5))


class AnalysisScheduler:
    """
    Runs one analysis pass: Idle -> Analyzing -> Complete.

    A scheduler runs at most once. Starting a new pass for a new source
    means building a new scheduler (and a new cache).

    The capture buffer is reused for every step and handed to the
    segmenter without copying; it is only overwritten after the
    segmenter call for the previous step has returned.
    """

    def __init__(self, segmenter: BaseSegmenter, config: ReplayConfig | None = None):
        self.segmenter = segmenter
        self.config = config or ReplayConfig()

        self._status = AnalysisStatus()
        self._capture_buffer: np.ndarray | None = None
        self._on_progress_callback: Callable[[AnalysisStatus], None] | None = None

    @property
    def status(self) -> AnalysisStatus:
        """Snapshot of the current state."""
        return replace(self._status)

    @property
    def state(self) -> AnalysisState:
        return self._status.state

    @property
    def capture_buffer(self) -> np.ndarray | None:
        return self._capture_buffer

    def set_on_progress_callback(self, callback: Callable[[AnalysisStatus], None]) -> None:
        """Set callback invoked on every state or progress change."""
        self._on_progress_callback = callback

    def _emit(self) -> None:
        if self._on_progress_callback:
            self._on_progress_callback(self.status)

    def _ensure_capture_buffer(self, width: int, height: int) -> np.ndarray:
        if self._capture_buffer is None or self._capture_buffer.shape[:2] != (height, width):
            self._capture_buffer = np.zeros((height, width, 3), dtype=np.uint8)
        return self._capture_buffer

    async def run_analysis(
        self,
        video: VideoSource,
        cache: ResultCache,
        is_current: Callable[[], bool] | None = None,
    ) -> AnalysisStatus:
        """
        Sample the video and fill the cache.

        Args:
            video: Seekable video with loaded metadata
            cache: Empty cache owned by the calling session
            is_current: Returns False once the owning session was reset;
                late results are then dropped and the pass stops

        Returns:
            Final status

        Raises:
            AnalysisError: If a pass already ran or metadata is unavailable
        """
        if self._status.state != AnalysisState.IDLE:
            raise AnalysisError(f"Analysis already {self._status.state.value}")

        duration = video.duration
        if duration is None or not math.isfinite(duration) or duration < 0:
            raise AnalysisError("Video duration unavailable. Wait for metadata before analysing.")
        if video.width <= 0 or video.height <= 0:
            raise AnalysisError(f"Invalid video dimensions: {video.width}x{video.height}")

        is_current = is_current or (lambda: True)
        cfg = self.config

        self._status = AnalysisStatus(state=AnalysisState.ANALYZING)
        self._emit()

        if not video.paused:
            video.pause()

        effective_duration = min(duration, cfg.duration_cap)
        crop_top, crop_height, input_height = compute_analysis_size(
            video.width, video.height, cfg.crop_fraction, cfg.model_input_width,
        )
        buffer = self._ensure_capture_buffer(cfg.model_input_width, input_height)

        timestamps = sample_timestamps(effective_duration, cfg.sampling_interval, cfg.epsilon)
        total_steps = math.ceil(effective_duration / cfg.sampling_interval) + 1

        logger.info(
            f"Analysis started: {effective_duration:.2f}s, {len(timestamps)} steps, "
            f"input {cfg.model_input_width}x{input_height} (crop top {crop_top}px)"
        )

        await video.seek(0.0)

        consecutive_failures = 0
        for step, t in enumerate(timestamps):
            if not is_current():
                logger.info("Session reset during analysis, stopping pass")
                return self.status

            next_t = timestamps[step + 1] if step + 1 < len(timestamps) else None
            results = await self._analyze_step(video, t, next_t, buffer, crop_top, crop_height)

            if not is_current():
                logger.info(f"Discarding stale result for t={t:.2f}s")
                return self.status

            if results is not None:
                cache.append(CachedFrame(timestamp=t, results=results))
                self._status.frames_cached += 1
                consecutive_failures = 0
            else:
                self._status.frames_failed += 1
                consecutive_failures += 1

            self._status.progress = progress_percent(step + 1, total_steps)
            self._emit()

            if cfg.max_consecutive_failures and consecutive_failures >= cfg.max_consecutive_failures:
                logger.error(
                    f"Stopping analysis after {consecutive_failures} consecutive failures "
                    f"(t={t:.2f}s)"
                )
                break

            # Yield to the event loop between steps
            await asyncio.sleep(0)

        await video.seek(0.0)

        if not is_current():
            return self.status

        self._status.state = AnalysisState.COMPLETE
        self._status.progress = 100
        self._emit()

        logger.info(
            f"Analysis complete: {self._status.frames_cached} frames cached, "
            f"{self._status.frames_failed} failed"
        )
        return self.status

    async def _analyze_step(
        self,
        video: VideoSource,
        t: float,
        next_t: float | None,
        buffer: np.ndarray,
        crop_top: int,
        crop_height: int,
    ) -> list[SegmentationResult] | None:
        """
        Capture the current frame, then overlap the next seek with inference.

        Returns:
            Segmentation results, or None if this timestamp failed
        """
        frame = video.read_frame()

        input_image = None
        if frame is not None:
            input_image = crop_and_resize(ensure_rgb(frame), crop_top, crop_height, buffer)

        seek_task = asyncio.create_task(video.seek(next_t)) if next_t is not None else None

        results = None
        try:
            if input_image is None:
                logger.warning(f"No frame available at t={t:.2f}s, skipping")
            else:
                results = await self.segmenter.predict(input_image)
        except Exception as e:
            logger.warning(f"Analysis failed at t={t:.2f}s: {e}")
            results = None
        finally:
            if seek_task is not None:
                await self._await_seek(seek_task, next_t)

        return results

    @staticmethod
    async def _await_seek(seek_task: asyncio.Task, target: float) -> None:
        try:
            await seek_task
        except Exception as e:
            logger.warning(f"Seek to {target:.2f}s failed: {e}")
