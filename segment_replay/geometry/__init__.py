"""Viewport and crop geometry."""

from .viewport import (
    compute_display_rect,
    crop_adjusted_rect,
    compute_overlay_rect,
    compute_analysis_size,
)

__all__ = [
    "compute_display_rect",
    "crop_adjusted_rect",
    "compute_overlay_rect",
    "compute_analysis_size",
]
