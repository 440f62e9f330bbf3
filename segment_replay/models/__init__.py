"""Data models for the segmentation replay pipeline."""

from segment_replay.models.data_models import (
    AnalysisState,
    AnalysisStatus,
    CachedFrame,
    DisplayRect,
    MaskRaster,
    ModelState,
    ModelStatus,
    SegmentationResult,
)

__all__ = [
    "AnalysisState",
    "AnalysisStatus",
    "CachedFrame",
    "DisplayRect",
    "MaskRaster",
    "ModelState",
    "ModelStatus",
    "SegmentationResult",
]
