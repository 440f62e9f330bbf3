"""Tests for playback.synchronizer: ticks, loop-back, overlay rendering."""

import asyncio
import threading
from dataclasses import replace

import cv2
import numpy as np
import pytest

from segment_replay.cache import ResultCache
from segment_replay.exceptions import PlaybackError
from segment_replay.models import CachedFrame, SegmentationResult
from segment_replay.playback import PlaybackSynchronizer
from segment_replay.utils import save_image

from conftest import FakeVideo, make_mask


def result(label: str, fill: int = 255) -> SegmentationResult:
    return SegmentationResult(label=label, score=0.5, mask=make_mask(fill=fill))


@pytest.fixture
def playing_video() -> FakeVideo:
    video = FakeVideo(duration=30.0, width=100, height=100)
    video.paused = False
    return video


@pytest.fixture
def cache() -> ResultCache:
    cache = ResultCache()
    cache.append(CachedFrame(timestamp=0.0, results=[result("car")]))
    cache.append(CachedFrame(timestamp=1.0, results=[result("Traffic Light"), result("pedestrian")]))
    return cache


# ── tick ───────────────────────────────────────────────────────────


class TestTick:
    @pytest.mark.asyncio
    async def test_paused_video_stops_loop(self, cache, config) -> None:
        video = FakeVideo(duration=30.0)
        sync = PlaybackSynchronizer(video, cache, config)
        assert await sync.tick() is False
        assert not sync.is_playing

    @pytest.mark.asyncio
    async def test_ended_video_stops_loop(self, playing_video, cache, config) -> None:
        playing_video.ended = True
        sync = PlaybackSynchronizer(playing_video, cache, config)
        assert await sync.tick() is False

    @pytest.mark.asyncio
    async def test_before_cap_renders(self, playing_video, cache, config) -> None:
        playing_video.current_time = 14.95
        sync = PlaybackSynchronizer(playing_video, cache, config)
        assert await sync.tick() is True
        assert playing_video.seeks == []
        assert sync.tick_count == 1

    @pytest.mark.asyncio
    async def test_at_cap_loops_to_zero(self, playing_video, cache, config) -> None:
        playing_video.current_time = 15.0
        sync = PlaybackSynchronizer(playing_video, cache, config)
        assert await sync.tick() is True
        assert playing_video.seeks == [0.0]
        assert playing_video.current_time == 0.0

    @pytest.mark.asyncio
    async def test_nearest_entry_drawn(self, playing_video, cache, config) -> None:
        playing_video.current_time = 0.6
        sync = PlaybackSynchronizer(playing_video, cache, config)
        await sync.tick()
        assert sync.active_categories == ["TRAFFIC LIGHT"]

    @pytest.mark.asyncio
    async def test_async_tick_callback_awaited(self, playing_video, cache, config) -> None:
        frames = []
        sync = PlaybackSynchronizer(playing_video, cache, config)

        async def on_tick(s: PlaybackSynchronizer) -> None:
            frames.append(await s.capture_frame())

        sync.set_on_tick_callback(on_tick)
        assert await sync.tick() is True
        assert len(frames) == 1
        assert frames[0].shape == (100, 100, 3)

    @pytest.mark.asyncio
    async def test_empty_cache_draws_nothing(self, playing_video, config) -> None:
        sync = PlaybackSynchronizer(playing_video, ResultCache(), config)
        assert await sync.tick() is True
        assert sync.surface.is_empty()
        assert sync.active_categories == []


# ── render ─────────────────────────────────────────────────────────


class TestRender:
    def test_categories_and_colors(self, config) -> None:
        video = FakeVideo(width=100, height=100)
        sync = PlaybackSynchronizer(video, ResultCache(), config, container_size=(100, 100))
        found = sync.render([result("car"), result("bus"), result("Traffic Light"), result("pedestrian")])

        assert found == ["VEHICLE", "TRAFFIC LIGHT"]
        assert "pedestrian" not in sync.active_categories
        # Yellow drawn last over green: red dominates, alpha accumulates
        r, g, b, a = sync.surface.data[99, 50].tolist()
        assert r > 200
        assert b < 40
        assert a > 200

    def test_single_category_exact_color(self, config) -> None:
        video = FakeVideo(width=100, height=100)
        sync = PlaybackSynchronizer(video, ResultCache(), config, container_size=(100, 100))
        sync.render([result("Traffic Light")])
        assert tuple(sync.surface.data[99, 50]) == (255, 230, 0, 200)

    def test_unmapped_labels_draw_nothing(self, config) -> None:
        video = FakeVideo(width=100, height=100)
        sync = PlaybackSynchronizer(video, ResultCache(), config, container_size=(100, 100))
        assert sync.render([result("pedestrian"), result("road")]) == []
        assert sync.surface.is_empty()

    def test_top_crop_band_left_clear(self, config) -> None:
        video = FakeVideo(width=100, height=100)
        sync = PlaybackSynchronizer(video, ResultCache(), config, container_size=(100, 100))
        sync.render([result("car")])
        alpha = sync.surface.data[:, :, 3]
        assert (alpha[:20] == 0).all()
        assert (alpha[20:] == 160).all()

    def test_letterbox_margins_left_clear(self, config) -> None:
        """16:9 video in a square container: bars above and below stay empty."""
        video = FakeVideo(width=160, height=90)
        sync = PlaybackSynchronizer(
            video, ResultCache(), replace(config, crop_fraction=0.0), container_size=(160, 160),
        )
        sync.render([result("car")])
        rows = np.where(sync.surface.data[:, :, 3].any(axis=1))[0]
        assert rows.min() == 35
        assert rows.max() == 124

    def test_clears_previous_frame(self, config) -> None:
        video = FakeVideo(width=100, height=100)
        sync = PlaybackSynchronizer(video, ResultCache(), config, container_size=(100, 100))
        sync.render([result("car")])
        sync.render([result("car", fill=0)])
        assert sync.surface.is_empty()

    def test_surface_follows_container(self, config) -> None:
        video = FakeVideo(width=100, height=100)
        sync = PlaybackSynchronizer(video, ResultCache(), config, container_size=(100, 100))
        sync.render([])
        sync.set_container_size(200, 120)
        sync.render([])
        assert (sync.surface.width, sync.surface.height) == (200, 120)

    def test_zero_video_dimensions_noop(self, config) -> None:
        video = FakeVideo(width=0, height=0)
        sync = PlaybackSynchronizer(video, ResultCache(), config, container_size=(100, 100))
        assert sync.render([result("car")]) == []
        assert sync.surface.is_empty()

    def test_categories_callback(self, config) -> None:
        seen = []
        video = FakeVideo(width=100, height=100)
        sync = PlaybackSynchronizer(video, ResultCache(), config, container_size=(100, 100))
        sync.set_on_categories_callback(seen.append)
        sync.render([result("truck")])
        assert seen == [["VEHICLE"]]

    def test_compose_frame(self, config) -> None:
        video = FakeVideo(width=100, height=100)
        sync = PlaybackSynchronizer(video, ResultCache(), config, container_size=(100, 100))
        sync.render([result("car")])
        frame = sync.compose_frame(np.zeros((100, 100, 3), dtype=np.uint8))
        assert frame.shape == (100, 100, 3)
        assert frame[0, 0].tolist() == [0, 0, 0]
        assert frame[99, 0, 1] > 0

    @pytest.mark.asyncio
    async def test_capture_frame_decodes_off_loop_thread(self, config) -> None:
        video = FakeVideo(width=100, height=100)
        sync = PlaybackSynchronizer(video, ResultCache(), config, container_size=(100, 100))
        sync.render([result("car")])

        frame = await sync.capture_frame()

        assert frame.shape == (100, 100, 3)
        assert frame[99, 0, 1] > 0
        assert len(video.read_threads) == 1
        assert video.read_threads[0] != threading.get_ident()

    @pytest.mark.asyncio
    async def test_captured_frame_saved(self, config, tmp_path) -> None:
        video = FakeVideo(width=100, height=100)
        sync = PlaybackSynchronizer(video, ResultCache(), config, container_size=(100, 100))
        sync.render([result("Traffic Light")])
        path = tmp_path / "snapshot.png"

        save_image(await sync.capture_frame(), path)

        saved = cv2.imread(str(path))
        assert saved.shape == (100, 100, 3)
        assert saved[0, 0].tolist() == [0, 0, 0]
        b, g, r = saved[99, 50].tolist()
        assert r > 150 and g > 150 and b < 40

    @pytest.mark.asyncio
    async def test_capture_frame_without_frame(self, config) -> None:
        video = FakeVideo(width=100, height=100)
        video.read_frame = lambda: None
        sync = PlaybackSynchronizer(video, ResultCache(), config, container_size=(100, 100))
        assert await sync.capture_frame() is None


# ── start / stop ───────────────────────────────────────────────────


class TestPlaybackControl:
    @pytest.mark.asyncio
    async def test_start_runs_loop_until_stopped(self, cache, config) -> None:
        video = FakeVideo(duration=30.0, width=100, height=100)
        sync = PlaybackSynchronizer(video, cache, config)

        assert await sync.start() is True
        assert sync.is_playing
        await asyncio.sleep(0.05)
        assert sync.tick_count > 0

        sync.stop()
        assert not sync.is_playing
        assert video.paused

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, cache, config) -> None:
        video = FakeVideo(duration=30.0)
        sync = PlaybackSynchronizer(video, cache, config)
        await sync.start()
        await sync.start()
        assert video.play_calls == 1
        sync.stop()

    @pytest.mark.asyncio
    async def test_toggle(self, cache, config) -> None:
        video = FakeVideo(duration=30.0)
        sync = PlaybackSynchronizer(video, cache, config)
        assert await sync.toggle() is True
        assert await sync.toggle() is False
        assert video.paused

    @pytest.mark.asyncio
    async def test_rejected_play_reported(self, cache, config) -> None:
        errors = []
        video = FakeVideo(duration=30.0)
        video.fail_play = True
        sync = PlaybackSynchronizer(video, cache, config)
        sync.set_on_error_callback(errors.append)

        assert await sync.start() is False
        assert not sync.is_playing
        assert len(errors) == 1
        assert isinstance(errors[0], PlaybackError)

    @pytest.mark.asyncio
    async def test_loop_exits_when_paused_externally(self, cache, config) -> None:
        video = FakeVideo(duration=30.0)
        sync = PlaybackSynchronizer(video, cache, config)
        await sync.start()
        video.pause()
        await asyncio.wait_for(sync.wait(), timeout=1.0)
        assert not sync.is_playing
