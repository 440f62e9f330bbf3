"""Utility functions."""

from .image_utils import (
    ensure_rgb,
    crop_and_resize,
    letterbox_frame,
    blend_overlay,
    save_image,
)

__all__ = [
    "ensure_rgb",
    "crop_and_resize",
    "letterbox_frame",
    "blend_overlay",
    "save_image",
]
