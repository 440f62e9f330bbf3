"""
Playback synchronization.

While the video plays, each tick reads the playback position, looks up
the nearest cached analysis and redraws the overlay surface. Sparse
sampling (every 0.2s) is thereby decoupled from the display cadence.
"""

import asyncio
import logging
from typing import Awaitable, Callable

import numpy as np

from ..cache import ResultCache
from ..compositor import MaskCompositor, OverlaySurface, classify_label
from ..config import ReplayConfig
from ..exceptions import PlaybackError
from ..geometry import compute_display_rect, compute_overlay_rect
from ..models import SegmentationResult
from ..utils import blend_overlay, letterbox_frame
from ..video import VideoSource

logger = logging.getLogger(__name__)


class PlaybackSynchronizer:
    """
    Cooperative render loop tied to a playing video.

    Handles:
    - Nearest-timestamp overlay lookup
    - Loop-back to 0 at the duration cap
    - Overlay resize when the container changes size
    - Active category tracking for status display

    The tick cadence is config.tick_interval. Only one loop runs at a time.
    """

    def __init__(
        self,
        video: VideoSource,
        cache: ResultCache,
        config: ReplayConfig | None = None,
        container_size: tuple[int, int] | None = None,
        compositor: MaskCompositor | None = None,
    ):
        self.video = video
        self.cache = cache
        self.config = config or ReplayConfig()
        self.compositor = compositor or MaskCompositor()
        self.surface = OverlaySurface()

        self._container_w, self._container_h = container_size or (video.width, video.height)

        self._task: asyncio.Task | None = None
        self._is_playing = False
        self._active_categories: list[str] = []
        self._tick_count = 0

        # Callbacks
        self._on_categories_callback: Callable[[list[str]], None] | None = None
        self._on_error_callback: Callable[[Exception], None] | None = None
        self._on_tick_callback: Callable[["PlaybackSynchronizer"], Awaitable[None] | None] | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    @property
    def active_categories(self) -> list[str]:
        return list(self._active_categories)

    @property
    def container_size(self) -> tuple[int, int]:
        return (self._container_w, self._container_h)

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def set_container_size(self, width: int, height: int) -> None:
        """Record new container dimensions; the surface follows on the next render."""
        self._container_w, self._container_h = int(width), int(height)

    def set_on_categories_callback(self, callback: Callable[[list[str]], None]) -> None:
        """Set callback receiving the categories drawn on each render."""
        self._on_categories_callback = callback

    def set_on_error_callback(self, callback: Callable[[Exception], None]) -> None:
        """Set callback for playback errors."""
        self._on_error_callback = callback

    def set_on_tick_callback(
        self, callback: Callable[["PlaybackSynchronizer"], Awaitable[None] | None]
    ) -> None:
        """Set callback invoked after every rendered tick (sync or async)."""
        self._on_tick_callback = callback

    # ------------------------------------------------------------------
    # Playback control
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """
        Start the video and the render loop.

        Returns:
            True if playing afterwards. A rejected play() is reported
            through the error callback and leaves playback stopped.
        """
        if self._is_playing:
            return True

        try:
            await self.video.play()
        except Exception as e:
            logger.error(f"Playback failed to start: {e}")
            if self._on_error_callback:
                error = e if isinstance(e, PlaybackError) else PlaybackError(str(e))
                self._on_error_callback(error)
            return False

        self._is_playing = True
        self._task = asyncio.create_task(self._loop())
        return True

    def stop(self) -> None:
        """Pause the video and cancel the next scheduled tick."""
        self.video.pause()
        self._is_playing = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def toggle(self) -> bool:
        """Flip between playing and paused. Returns the new playing state."""
        if self._is_playing:
            self.stop()
            return False
        return await self.start()

    async def wait(self) -> None:
        """Wait until the render loop exits on its own (video ended or paused)."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def _loop(self) -> None:
        while True:
            try:
                keep_going = await self.tick()
            except Exception:
                logger.exception("Render tick failed")
                keep_going = self._is_playing
            if not keep_going:
                break
            await asyncio.sleep(self.config.tick_interval)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    async def tick(self) -> bool:
        """
        Run one display refresh.

        Returns:
            False once playback has stopped, True to schedule another tick
        """
        video = self.video
        if video.ended or video.paused:
            self._is_playing = False
            return False

        current_time = video.current_time
        if current_time >= self.config.duration_cap:
            logger.debug(f"Reached duration cap at {current_time:.2f}s, looping")
            await video.seek(0.0)
            return True

        frame = self.cache.nearest(current_time)
        if frame is not None:
            self.render(frame.results)

        self._tick_count += 1
        if self._on_tick_callback:
            ret = self._on_tick_callback(self)
            if asyncio.iscoroutine(ret):
                await ret
        return True

    def render(self, results: list[SegmentationResult]) -> list[str]:
        """
        Clear the overlay and draw every mapped result.

        Returns:
            Names of the categories drawn, in first-seen order
        """
        width, height = self._container_w, self._container_h
        self.surface.resize(width, height)
        self.surface.clear()

        found: list[str] = []
        rect = compute_overlay_rect(
            width, height, self.video.width, self.video.height, self.config.crop_fraction,
        )

        if rect is not None:
            for item in results:
                category = classify_label(item.label)
                if category is None:
                    continue
                if category.name not in found:
                    found.append(category.name)
                self.compositor.composite(
                    item.mask,
                    category.color,
                    self.surface,
                    rect.offset_x,
                    rect.offset_y,
                    rect.width,
                    rect.height,
                )

        self._active_categories = found
        if self._on_categories_callback:
            self._on_categories_callback(list(found))
        return found

    def compose_frame(self, frame: np.ndarray | None = None) -> np.ndarray | None:
        """
        Current video frame letterboxed into the container with the overlay on top.

        Args:
            frame: RGB frame to use (default: the video's current frame)

        Returns:
            RGB image of container size, or None if nothing can be shown
        """
        if frame is None:
            frame = self.video.read_frame()
        if frame is None:
            return None

        width, height = self._container_w, self._container_h
        rect = compute_display_rect(width, height, self.video.width, self.video.height)
        if rect is None:
            return None

        canvas = letterbox_frame(frame, width, height, rect)
        if self.surface.width != width or self.surface.height != height:
            return canvas
        return blend_overlay(canvas, self.surface.data)

    async def capture_frame(self) -> np.ndarray | None:
        """Decode the current frame in a worker thread, then compose it."""
        frame = await asyncio.to_thread(self.video.read_frame)
        if frame is None:
            return None
        return self.compose_frame(frame)
