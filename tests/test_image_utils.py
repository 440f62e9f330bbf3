"""Tests for frame utilities."""

import numpy as np
import pytest

from segment_replay.models import DisplayRect
from segment_replay.utils import blend_overlay, crop_and_resize, ensure_rgb, letterbox_frame, save_image


def test_ensure_rgb_drops_alpha() -> None:
    rgba = np.zeros((2, 2, 4), dtype=np.uint8)
    rgba[..., 0] = 50
    rgba[..., 3] = 255
    rgb = ensure_rgb(rgba)
    assert rgb.shape == (2, 2, 3)
    assert rgb[0, 0].tolist() == [50, 0, 0]


def test_ensure_rgb_expands_gray() -> None:
    assert ensure_rgb(np.zeros((3, 2), dtype=np.uint8)).shape == (3, 2, 3)


def test_crop_and_resize_writes_into_buffer() -> None:
    frame = np.zeros((10, 8, 3), dtype=np.uint8)
    frame[:2] = 255  # top band, cropped away
    out = np.full((4, 4, 3), 7, dtype=np.uint8)

    result = crop_and_resize(frame, 2, 8, out)

    assert result is out
    assert not out.any()


def test_letterbox_places_frame() -> None:
    frame = np.full((9, 16, 3), 200, dtype=np.uint8)
    canvas = letterbox_frame(frame, 16, 16, DisplayRect(0, 3.5, 16, 9))
    rows = np.where(canvas.any(axis=(1, 2)))[0]
    assert canvas.shape == (16, 16, 3)
    assert rows.min() == 4
    assert rows.max() == 12


def test_letterbox_pillarbox_offset() -> None:
    frame = np.full((16, 9, 3), 200, dtype=np.uint8)
    canvas = letterbox_frame(frame, 16, 16, DisplayRect(3.5, 0, 9, 16))
    cols = np.where(canvas.any(axis=(0, 2)))[0]
    assert cols.min() == 4
    assert cols.max() == 12


def test_blend_overlay() -> None:
    image = np.zeros((1, 2, 3), dtype=np.uint8)
    overlay = np.array([[[255, 0, 0, 255], [0, 0, 0, 0]]], dtype=np.uint8)
    blended = blend_overlay(image, overlay)
    assert blended[0, 0].tolist() == [255, 0, 0]
    assert blended[0, 1].tolist() == [0, 0, 0]


def test_blend_overlay_size_mismatch() -> None:
    with pytest.raises(ValueError):
        blend_overlay(np.zeros((2, 2, 3), dtype=np.uint8), np.zeros((3, 3, 4), dtype=np.uint8))


def test_save_image(tmp_path) -> None:
    path = tmp_path / "out" / "frame.png"
    save_image(np.zeros((4, 4, 3), dtype=np.uint8), path)
    assert path.exists()
