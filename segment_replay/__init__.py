"""Offline segmentation and overlay replay for video."""

from .models import (
    AnalysisState,
    AnalysisStatus,
    CachedFrame,
    DisplayRect,
    MaskRaster,
    ModelState,
    ModelStatus,
    SegmentationResult,
)
from .config import ReplayConfig
from .session import ReplaySession

__version__ = "0.1.0"

__all__ = [
    "AnalysisState",
    "AnalysisStatus",
    "CachedFrame",
    "DisplayRect",
    "MaskRaster",
    "ModelState",
    "ModelStatus",
    "SegmentationResult",
    "ReplayConfig",
    "ReplaySession",
]
