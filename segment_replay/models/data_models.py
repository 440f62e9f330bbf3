"""
Core data models for the segmentation replay pipeline.

Masks are modelled as typed rasters so the compositor can rely on
exact dimensions and pixel semantics.
"""

from dataclasses import dataclass, field
from enum import Enum
import numpy as np


class AnalysisState(Enum):
    """
    Lifecycle of one analysis pass.

    IDLE: No analysis has run for the current source
    ANALYZING: Frames are being sampled and segmented
    COMPLETE: The cache is final and playback may start
    """
    IDLE = "idle"
    ANALYZING = "analyzing"
    COMPLETE = "complete"


class ModelState(Enum):
    """Readiness of the segmentation collaborator."""
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass
class ModelStatus:
    """Segmenter readiness plus load progress (0-100)."""
    state: ModelState = ModelState.IDLE
    message: str | None = None
    progress: float = 0.0

    @property
    def is_ready(self) -> bool:
        return self.state == ModelState.READY


@dataclass(frozen=True)
class MaskRaster:
    """
    Single-channel membership raster in model-input space.

    The buffer is a uint8 numpy array of shape (height, width) where
    0 means absent and any positive value means present.
    """
    data: np.ndarray

    def __post_init__(self):
        if self.data.ndim != 2:
            raise ValueError(f"Mask must be 2D, got shape {self.data.shape}")
        if self.data.dtype != np.uint8:
            raise ValueError(f"Mask must be uint8, got {self.data.dtype}")

    @classmethod
    def from_array(cls, array: np.ndarray) -> "MaskRaster":
        """Build a raster from a bool, float or integer array."""
        array = np.asarray(array)
        if array.ndim == 3 and array.shape[2] == 1:
            array = array[:, :, 0]
        if array.dtype == bool:
            array = array.astype(np.uint8) * 255
        elif array.dtype != np.uint8:
            array = (array > 0).astype(np.uint8) * 255
        return cls(data=np.ascontiguousarray(array))

    @classmethod
    def from_image(cls, image) -> "MaskRaster":
        """Build a raster from a PIL image (mode L, 1 or anything convertible)."""
        return cls.from_array(np.array(image.convert("L")))

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def channels(self) -> int:
        return 1

    @property
    def shape(self) -> tuple[int, int]:
        """(width, height), the size the compositor keys its scratch buffer on."""
        return (self.width, self.height)

    def pixel_count(self) -> int:
        """Number of member pixels."""
        return int(np.count_nonzero(self.data))

    def to_binary(self) -> np.ndarray:
        """Return membership as a boolean array."""
        return self.data > 0


@dataclass(frozen=True)
class SegmentationResult:
    """One labelled mask from a single analysed frame."""
    label: str
    score: float
    mask: MaskRaster

    @property
    def normalized_label(self) -> str:
        return self.label.strip().lower()


@dataclass(frozen=True)
class CachedFrame:
    """Segmentation results recorded for one sampled timestamp."""
    timestamp: float  # Seconds from video start, the exact seek target
    results: list[SegmentationResult] = field(default_factory=list)

    @property
    def labels(self) -> list[str]:
        return [r.label for r in self.results]


@dataclass
class AnalysisStatus:
    """Observable state of the analysis pass."""
    state: AnalysisState = AnalysisState.IDLE
    progress: int = 0
    frames_cached: int = 0
    frames_failed: int = 0

    @property
    def is_complete(self) -> bool:
        return self.state == AnalysisState.COMPLETE

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "progress": self.progress,
            "frames_cached": self.frames_cached,
            "frames_failed": self.frames_failed,
        }


@dataclass(frozen=True)
class DisplayRect:
    """
    Axis-aligned rectangle in viewport (container) pixels.

    Offsets are measured from the container's top-left corner.
    """
    offset_x: float
    offset_y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.offset_x + self.width

    @property
    def bottom(self) -> float:
        return self.offset_y + self.height

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height > 0 else 0.0

    def to_xywh(self) -> tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.offset_x, self.offset_y, self.width, self.height)
