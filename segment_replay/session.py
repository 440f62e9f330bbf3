"""
Session controller: one video source, one cache, one analysis pass.

Changing the source replaces the cache, the scheduler and the playback
loop wholesale and bumps a generation counter. A pass still awaiting
inference for the previous source sees the counter change and drops
its results instead of writing into the new session.
"""

import asyncio
import logging
from typing import Callable

from .analysis import AnalysisScheduler
from .cache import ResultCache
from .config import ReplayConfig
from .models import AnalysisState, AnalysisStatus
from .playback import PlaybackSynchronizer
from .segmenter import BaseSegmenter
from .video import VideoSource

logger = logging.getLogger(__name__)


class ReplaySession:
    """
    Owns the analysis and playback lifecycle for the current video.

    Usage:
        session = ReplaySession(segmenter, config)
        await session.set_source(video, container_size=(1280, 720))
        await session.on_metadata_loaded()  # starts analysis once
        await session.wait_for_analysis()
    """

    def __init__(self, segmenter: BaseSegmenter, config: ReplayConfig | None = None):
        self.segmenter = segmenter
        self.config = config or ReplayConfig()

        self._generation = 0
        self._video: VideoSource | None = None
        self._cache = ResultCache()
        self._scheduler = AnalysisScheduler(segmenter, self.config)
        self._synchronizer: PlaybackSynchronizer | None = None

        # One-shot analysis trigger, re-armed on every source change
        self._analysis_triggered = False
        self._analysis_task: asyncio.Task | None = None

        # Callbacks
        self._on_status_callback: Callable[[AnalysisStatus], None] | None = None
        self._on_categories_callback: Callable[[list[str]], None] | None = None
        self._on_error_callback: Callable[[Exception], None] | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def video(self) -> VideoSource | None:
        return self._video

    @property
    def cache(self) -> ResultCache:
        return self._cache

    @property
    def status(self) -> AnalysisStatus:
        return self._scheduler.status

    @property
    def synchronizer(self) -> PlaybackSynchronizer | None:
        return self._synchronizer

    @property
    def is_playing(self) -> bool:
        return self._synchronizer is not None and self._synchronizer.is_playing

    @property
    def active_categories(self) -> list[str]:
        if self._synchronizer is None:
            return []
        return self._synchronizer.active_categories

    def set_on_status_callback(self, callback: Callable[[AnalysisStatus], None]) -> None:
        """Set callback for analysis state and progress changes."""
        self._on_status_callback = callback

    def set_on_categories_callback(self, callback: Callable[[list[str]], None]) -> None:
        """Set callback for the categories drawn on each playback tick."""
        self._on_categories_callback = callback
        if self._synchronizer is not None:
            self._synchronizer.set_on_categories_callback(callback)

    def set_on_error_callback(self, callback: Callable[[Exception], None]) -> None:
        """Set callback for playback errors."""
        self._on_error_callback = callback
        if self._synchronizer is not None:
            self._synchronizer.set_on_error_callback(callback)

    # ------------------------------------------------------------------
    # Source lifecycle
    # ------------------------------------------------------------------

    async def set_source(
        self,
        video: VideoSource,
        container_size: tuple[int, int] | None = None,
    ) -> None:
        """
        Switch to a new video and reset to Idle with an empty cache.

        An in-flight analysis pass for the old source is not interrupted,
        but anything it produces from now on is discarded.
        """
        if self._synchronizer is not None:
            self._synchronizer.stop()
            self._synchronizer.surface.clear()

        self._generation += 1
        generation = self._generation

        self._video = video
        self._cache = ResultCache()
        self._scheduler = AnalysisScheduler(self.segmenter, self.config)
        self._scheduler.set_on_progress_callback(
            lambda status: self._emit_status(status, generation)
        )

        self._synchronizer = PlaybackSynchronizer(
            video, self._cache, self.config, container_size=container_size,
        )
        if self._on_categories_callback:
            self._synchronizer.set_on_categories_callback(self._on_categories_callback)
        if self._on_error_callback:
            self._synchronizer.set_on_error_callback(self._on_error_callback)

        self._analysis_triggered = False
        self._analysis_task = None

        if video.duration is not None:
            await video.seek(0.0)

        logger.info(f"Session reset (generation {generation})")
        self._emit_status(self._scheduler.status, generation)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _emit_status(self, status: AnalysisStatus, generation: int) -> None:
        if self._is_current(generation) and self._on_status_callback:
            self._on_status_callback(status)

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def on_metadata_loaded(self) -> bool:
        """Video metadata became available. Starts analysis if the model is ready."""
        return self._maybe_start_analysis()

    async def on_model_ready(self) -> bool:
        """Segmenter finished loading. Starts analysis if the video is ready."""
        return self._maybe_start_analysis()

    def _maybe_start_analysis(self) -> bool:
        """Fire the one-shot analysis trigger when every precondition holds."""
        video = self._video
        if (
            video is None
            or video.duration is None
            or not self.segmenter.is_loaded()
            or self._analysis_triggered
            or self._scheduler.state != AnalysisState.IDLE
        ):
            return False

        self._analysis_triggered = True
        self._analysis_task = asyncio.create_task(self.analyze())
        self._analysis_task.add_done_callback(self._on_analysis_done)
        return True

    def _on_analysis_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error(f"Analysis failed: {exc}", exc_info=exc)
        if self._on_error_callback and task is self._analysis_task:
            self._on_error_callback(exc)

    async def analyze(self) -> AnalysisStatus:
        """
        Run the analysis pass for the current source.

        Starts playback afterwards when config.auto_play is set and the
        session was not reset in the meantime.
        """
        if self._video is None:
            raise ValueError("No video source set")

        self._analysis_triggered = True
        generation = self._generation
        video = self._video
        scheduler = self._scheduler

        if self._synchronizer is not None and self._synchronizer.is_playing:
            self._synchronizer.stop()

        status = await scheduler.run_analysis(
            video,
            self._cache,
            is_current=lambda: self._is_current(generation),
        )

        if self._is_current(generation) and status.is_complete and self.config.auto_play:
            await self.toggle_playback()

        return status

    async def wait_for_analysis(self) -> AnalysisStatus | None:
        """Wait for a triggered analysis pass to finish."""
        if self._analysis_task is None:
            return None
        return await self._analysis_task

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    async def toggle_playback(self) -> bool:
        """
        Start or stop playback. Only available once analysis is complete.

        Returns:
            Whether the video is playing afterwards
        """
        if self._synchronizer is None or not self._scheduler.status.is_complete:
            logger.warning("Playback requested before analysis completed")
            return False
        return await self._synchronizer.toggle()

    async def close(self) -> None:
        """Stop playback and release the video."""
        if self._synchronizer is not None:
            self._synchronizer.stop()
        self._generation += 1

        close = getattr(self._video, "close", None)
        if callable(close):
            close()
        self._video = None
