"""Tests for data models."""

import numpy as np
import pytest
from PIL import Image

from segment_replay.models import (
    AnalysisState,
    AnalysisStatus,
    CachedFrame,
    MaskRaster,
    ModelState,
    ModelStatus,
    SegmentationResult,
)


class TestMaskRaster:
    def test_rejects_wrong_rank(self) -> None:
        with pytest.raises(ValueError):
            MaskRaster(data=np.zeros((2, 2, 3), dtype=np.uint8))

    def test_rejects_wrong_dtype(self) -> None:
        with pytest.raises(ValueError):
            MaskRaster(data=np.zeros((2, 2), dtype=np.float32))

    def test_from_bool_array(self) -> None:
        mask = MaskRaster.from_array(np.array([[True, False]]))
        assert mask.data.tolist() == [[255, 0]]

    def test_from_float_array(self) -> None:
        mask = MaskRaster.from_array(np.array([[0.0, 0.3], [1.0, -1.0]]))
        assert mask.data.tolist() == [[0, 255], [255, 0]]

    def test_from_single_channel_array(self) -> None:
        mask = MaskRaster.from_array(np.ones((3, 5, 1), dtype=np.uint8))
        assert mask.shape == (5, 3)

    def test_from_pil_image(self) -> None:
        image = Image.fromarray(np.array([[0, 255, 0]], dtype=np.uint8))
        mask = MaskRaster.from_image(image)
        assert mask.width == 3
        assert mask.height == 1
        assert mask.pixel_count() == 1

    def test_dimensions(self) -> None:
        mask = MaskRaster(data=np.zeros((4, 6), dtype=np.uint8))
        assert (mask.width, mask.height, mask.channels) == (6, 4, 1)
        assert not mask.to_binary().any()


class TestResults:
    def test_normalized_label(self) -> None:
        mask = MaskRaster(data=np.zeros((1, 1), dtype=np.uint8))
        assert SegmentationResult(" Traffic Light ", 0.9, mask).normalized_label == "traffic light"

    def test_cached_frame_labels(self) -> None:
        mask = MaskRaster(data=np.zeros((1, 1), dtype=np.uint8))
        frame = CachedFrame(0.2, [SegmentationResult("car", 0.9, mask), SegmentationResult("bus", 0.8, mask)])
        assert frame.labels == ["car", "bus"]
        assert CachedFrame(0.0).results == []


class TestStatus:
    def test_analysis_status(self) -> None:
        status = AnalysisStatus()
        assert status.state == AnalysisState.IDLE
        assert not status.is_complete
        assert status.to_dict() == {
            "state": "idle",
            "progress": 0,
            "frames_cached": 0,
            "frames_failed": 0,
        }

    def test_model_status(self) -> None:
        assert not ModelStatus().is_ready
        assert ModelStatus(state=ModelState.READY).is_ready
