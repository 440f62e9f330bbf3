"""Base interface for segmentation collaborators."""

from abc import ABC, abstractmethod
from typing import Callable

import numpy as np

from ..models import ModelState, ModelStatus, SegmentationResult


class BaseSegmenter(ABC):
    """
    Abstract segmentation backend.

    Implementations receive an RGB (H, W, 3) uint8 buffer and return one
    labelled membership mask per detected class. Mask dimensions are
    chosen by the backend and may differ between calls.
    """

    def __init__(self):
        self._status = ModelStatus()
        self._on_status_callback: Callable[[ModelStatus], None] | None = None

    @abstractmethod
    def load(self) -> None:
        """Load the model into memory."""
        pass

    @abstractmethod
    def unload(self) -> None:
        """Unload the model from memory."""
        pass

    def is_loaded(self) -> bool:
        """Check if the segmenter can serve predictions."""
        return self._status.state == ModelState.READY

    @property
    def status(self) -> ModelStatus:
        return self._status

    def set_on_status_callback(self, callback: Callable[[ModelStatus], None]) -> None:
        """Set callback for readiness and load progress changes."""
        self._on_status_callback = callback

    def _set_status(
        self,
        state: ModelState,
        message: str | None = None,
        progress: float | None = None,
    ) -> None:
        self._status = ModelStatus(
            state=state,
            message=message,
            progress=self._status.progress if progress is None else progress,
        )
        if self._on_status_callback:
            self._on_status_callback(self._status)

    @abstractmethod
    async def predict(self, image: np.ndarray) -> list[SegmentationResult]:
        """
        Segment one frame.

        Args:
            image: RGB image (H, W, 3), uint8. Alpha must already be stripped.

        Returns:
            List of labelled masks

        Raises:
            SegmenterError: If the backend is not loaded or inference fails
            ValueError: If the image is not a 3-channel uint8 buffer
        """
        pass

    @staticmethod
    def validate_input(image: np.ndarray) -> None:
        """Reject anything but a non-empty 3-channel uint8 buffer."""
        if not isinstance(image, np.ndarray):
            raise ValueError("Image must be numpy array")
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(f"Image must be RGB (H, W, 3), got shape {image.shape}")
        if image.dtype != np.uint8:
            raise ValueError(f"Image must be uint8, got {image.dtype}")
        if image.size == 0:
            raise ValueError("Image is empty")
