"""Overlay compositing."""

from .categories import OverlayCategory, TRAFFIC_LIGHT, VEHICLE, CATEGORIES, classify_label
from .mask_compositor import MaskCompositor, OverlaySurface, blend_source_over

__all__ = [
    "OverlayCategory",
    "TRAFFIC_LIGHT",
    "VEHICLE",
    "CATEGORIES",
    "classify_label",
    "MaskCompositor",
    "OverlaySurface",
    "blend_source_over",
]
