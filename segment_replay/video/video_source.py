"""Seekable video handle with a playback clock."""

import asyncio
import logging
import threading
import time
from typing import Callable, Protocol, runtime_checkable

import cv2
import numpy as np

from ..exceptions import PlaybackError

logger = logging.getLogger(__name__)


@runtime_checkable
class VideoSource(Protocol):
    """
    What the analysis scheduler and playback synchronizer need from a video.

    current_time advances on its own while playing; seek() returns once
    the frame at the new position is available from read_frame().
    """

    @property
    def duration(self) -> float | None: ...

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    @property
    def current_time(self) -> float: ...

    @property
    def paused(self) -> bool: ...

    @property
    def ended(self) -> bool: ...

    async def seek(self, t: float) -> None: ...

    def read_frame(self) -> np.ndarray | None: ...

    async def play(self) -> None: ...

    def pause(self) -> None: ...


class OpenCVVideoSource:
    """
    Video file opened with OpenCV, driven like a media element.

    Supports:
    - Frame-accurate seeking (seek completes when the frame is decoded)
    - Wall-clock playback (position advances while playing)
    - Reading the frame shown at the current position (RGB)

    Decoding runs in worker threads; the capture is guarded by a lock.
    """

    def __init__(self, source_path: str, clock: Callable[[], float] = time.monotonic):
        self.source_path = source_path
        self._clock = clock

        self._capture: cv2.VideoCapture | None = None
        self._lock = threading.Lock()

        # Stream metadata
        self._frame_width = 0
        self._frame_height = 0
        self._source_fps = 0.0
        self._total_frames = 0

        # Decoded frame state
        self._frame: np.ndarray | None = None
        self._frame_index = -1

        # Playback clock
        self._position = 0.0
        self._paused = True
        self._anchor_clock = 0.0

    def open(self) -> bool:
        """Open the video file and read its metadata."""
        self._capture = cv2.VideoCapture(self.source_path)
        if not self._capture.isOpened():
            self._capture = None
            raise ValueError(f"Failed to open video: {self.source_path}")

        self._frame_width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        self._frame_height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self._source_fps = self._capture.get(cv2.CAP_PROP_FPS) or 0.0
        self._total_frames = int(self._capture.get(cv2.CAP_PROP_FRAME_COUNT))

        logger.info(
            f"Opened {self.source_path}: {self._frame_width}x{self._frame_height}, "
            f"{self._source_fps:.2f}fps, {self._total_frames} frames"
        )
        return True

    def close(self) -> None:
        """Release the video file."""
        self._paused = True
        with self._lock:
            if self._capture:
                self._capture.release()
                self._capture = None
            self._frame = None
            self._frame_index = -1

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    @property
    def duration(self) -> float | None:
        """Length in seconds, None until metadata is available."""
        if self._capture is None or self._source_fps <= 0 or self._total_frames <= 0:
            return None
        return self._total_frames / self._source_fps

    @property
    def width(self) -> int:
        return self._frame_width

    @property
    def height(self) -> int:
        return self._frame_height

    @property
    def fps(self) -> float:
        return self._source_fps

    @property
    def current_time(self) -> float:
        if self._paused:
            return self._position
        elapsed = self._clock() - self._anchor_clock
        position = self._position + elapsed
        duration = self.duration
        if duration is not None:
            position = min(position, duration)
        return position

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def ended(self) -> bool:
        duration = self.duration
        return duration is not None and self.current_time >= duration

    async def seek(self, t: float) -> None:
        """Move to time t and wait until the frame there is decoded."""
        duration = self.duration
        t = max(0.0, t)
        if duration is not None:
            t = min(t, duration)

        await asyncio.to_thread(self._decode_at, self._time_to_index(t))

        self._position = t
        self._anchor_clock = self._clock()

    def read_frame(self) -> np.ndarray | None:
        """RGB frame at the current position (decodes forward while playing)."""
        if self._capture is None:
            return None
        self._decode_at(self._time_to_index(self.current_time))
        return self._frame

    async def play(self) -> None:
        """Start advancing the playback clock."""
        if self._capture is None:
            raise PlaybackError(f"Video not open: {self.source_path}")
        if not self._paused:
            return
        if self.ended:
            await self.seek(0.0)
        self._anchor_clock = self._clock()
        self._paused = False

    def pause(self) -> None:
        """Freeze the playback clock at the current position."""
        if self._paused:
            return
        self._position = self.current_time
        self._paused = True

    def _time_to_index(self, t: float) -> int:
        if self._source_fps <= 0:
            return 0
        index = int(round(t * self._source_fps))
        if self._total_frames > 0:
            index = min(index, self._total_frames - 1)
        return max(index, 0)

    def _decode_at(self, index: int) -> None:
        """Decode the frame at index, reading forward when it is close ahead."""
        with self._lock:
            if self._capture is None or index == self._frame_index:
                return

            # Read forward only from a known position
            gap = index - self._frame_index
            if self._frame_index < 0 or not (0 < gap <= 5):
                self._capture.set(cv2.CAP_PROP_POS_FRAMES, index)
                gap = 1

            frame = None
            for _ in range(gap):
                ret, frame = self._capture.read()
                if not ret:
                    frame = None
                    break

            if frame is None:
                # Capture position is unknown after a failed read
                self._frame_index = -1
                logger.debug(f"No frame decoded at index {index}")
                return

            # Convert BGR to RGB
            self._frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            self._frame_index = index

    def get_info(self) -> dict:
        """Get video information."""
        return {
            "source_path": self.source_path,
            "dimensions": f"{self._frame_width}x{self._frame_height}",
            "fps": round(self._source_fps, 2),
            "total_frames": self._total_frames,
            "duration": round(self.duration, 3) if self.duration is not None else None,
            "current_time": round(self.current_time, 3),
            "paused": self._paused,
        }

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
