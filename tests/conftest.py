"""Shared pytest fixtures for segment_replay tests."""

import asyncio
import threading

import numpy as np
import pytest

from segment_replay.config import ReplayConfig
from segment_replay.exceptions import PlaybackError
from segment_replay.models import MaskRaster, ModelState, SegmentationResult
from segment_replay.segmenter import BaseSegmenter


# ── Fake video ──────────────────────────────────────────────────────


class FakeVideo:
    """
    In-memory stand-in for a seekable video.

    Frames are uniform images whose value encodes the seek position,
    and every seek is logged.
    """

    def __init__(
        self,
        duration: float | None = 1.0,
        width: int = 1280,
        height: int = 720,
        channels: int = 3,
    ):
        self._duration = duration
        self._width = width
        self._height = height
        self.channels = channels

        self.current_time = 0.0
        self.paused = True
        self.ended = False
        self.fail_play = False

        self.seeks: list[float] = []
        self.read_threads: list[int] = []
        self.play_calls = 0
        self.closed = False

    @property
    def duration(self) -> float | None:
        return self._duration

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    async def seek(self, t: float) -> None:
        await asyncio.sleep(0)
        self.current_time = t
        self.seeks.append(t)

    def read_frame(self) -> np.ndarray | None:
        self.read_threads.append(threading.get_ident())
        value = int(self.current_time * 10) % 256
        return np.full((self._height, self._width, self.channels), value, dtype=np.uint8)

    async def play(self) -> None:
        self.play_calls += 1
        if self.fail_play:
            raise PlaybackError("play() rejected")
        self.paused = False

    def pause(self) -> None:
        self.paused = True

    def close(self) -> None:
        self.closed = True


# ── Fake segmenter ─────────────────────────────────────────────────


def make_mask(width: int = 4, height: int = 4, fill: int = 255) -> MaskRaster:
    return MaskRaster(data=np.full((height, width), fill, dtype=np.uint8))


class FakeSegmenter(BaseSegmenter):
    """
    Segmenter test double.

    Returns one "car" mask per call. Calls whose index is in fail_on
    raise; when gate is set, predict waits on it before returning.
    """

    def __init__(self, fail_on: set[int] | None = None, always_fail: bool = False):
        super().__init__()
        self.fail_on = fail_on or set()
        self.always_fail = always_fail
        self.gate: asyncio.Event | None = None

        self.calls = 0
        self.inputs: list[tuple[int, ...]] = []

    def load(self) -> None:
        self._set_status(ModelState.READY, progress=100.0)

    def unload(self) -> None:
        self._set_status(ModelState.IDLE, progress=0.0)

    async def predict(self, image: np.ndarray) -> list[SegmentationResult]:
        self.validate_input(image)
        index = self.calls
        self.calls += 1
        self.inputs.append(image.shape)

        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)

        if self.always_fail or index in self.fail_on:
            raise RuntimeError(f"inference failed on call {index}")

        return [SegmentationResult(label="car", score=0.9, mask=make_mask())]


# ── Fixtures ───────────────────────────────────────────────────────


@pytest.fixture
def config() -> ReplayConfig:
    """Default config with auto-play off and a fast tick."""
    return ReplayConfig(auto_play=False, tick_interval=0.001)


@pytest.fixture
def video() -> FakeVideo:
    """One-second 1280x720 fake video."""
    return FakeVideo(duration=1.0)


@pytest.fixture
def segmenter() -> FakeSegmenter:
    seg = FakeSegmenter()
    seg.load()
    return seg
