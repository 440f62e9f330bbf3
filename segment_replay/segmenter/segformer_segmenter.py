"""SegFormer semantic segmenter running through transformers."""

import asyncio
from dataclasses import dataclass
import time
import logging
import numpy as np

from .base_segmenter import BaseSegmenter
from ..config import DEFAULT_MODEL_ID, get_device
from ..exceptions import SegmenterError
from ..models import MaskRaster, ModelState, SegmentationResult

logger = logging.getLogger(__name__)


@dataclass
class SegformerConfig:
    """Configuration for the SegFormer segmenter."""
    model_id: str = DEFAULT_MODEL_ID
    device: str = "auto"
    hf_token: str | None = None


class SegformerSegmenter(BaseSegmenter):
    """
    Cityscapes SegFormer wrapped in a transformers image-segmentation pipeline.

    Inference runs in a worker thread so the event loop keeps serving
    seeks and playback ticks while the model is busy.
    """

    def __init__(self, config: SegformerConfig | None = None):
        super().__init__()
        self.config = config or SegformerConfig()
        self._pipe = None
        self._device = None

    def load(self) -> None:
        """
        Load the SegFormer model.

        Progress is reported through status in three stages: image
        processor, model weights, then the inference pipeline.
        """
        if self.is_loaded():
            return

        self._set_status(ModelState.LOADING, message="Loading image processor", progress=0.0)

        try:
            self._device = get_device(self.config.device)
            logger.info(f"Loading segmentation model {self.config.model_id} on device: {self._device}")

            processor = self._load_processor()
            self._set_status(ModelState.LOADING, message="Loading model weights", progress=30.0)

            model = self._load_model()
            self._set_status(ModelState.LOADING, message="Building pipeline", progress=80.0)

            self._pipe = self._build_pipeline(model, processor)

        except ImportError as e:
            self._set_status(ModelState.ERROR, message="Initialization Failed.")
            raise ImportError(
                f"transformers/torch not installed. Install the 'model' extra.\nError: {e}"
            )
        except Exception as e:
            self._set_status(ModelState.ERROR, message="Initialization Failed.")
            logger.error(f"Failed to load segmentation model: {e}")
            raise SegmenterError(f"Failed to load {self.config.model_id}: {e}") from e

        self._set_status(ModelState.READY, progress=100.0)
        logger.info("Segmentation model loaded successfully")

    def _hub_kwargs(self) -> dict:
        return {"token": self.config.hf_token} if self.config.hf_token else {}

    def _load_processor(self):
        from transformers import AutoImageProcessor
        return AutoImageProcessor.from_pretrained(self.config.model_id, **self._hub_kwargs())

    def _load_model(self):
        from transformers import AutoModelForSemanticSegmentation
        return AutoModelForSemanticSegmentation.from_pretrained(self.config.model_id, **self._hub_kwargs())

    def _build_pipeline(self, model, processor):
        from transformers import pipeline
        return pipeline(
            "image-segmentation",
            model=model,
            image_processor=processor,
            device=self._device,
        )

    def unload(self) -> None:
        """Unload model from memory."""
        if self._pipe is not None:
            del self._pipe
            self._pipe = None

        self._set_status(ModelState.IDLE, progress=0.0)

        try:
            import torch
            if torch.cuda.is_available():
                torch.cuda.empty_cache()
        except ImportError:
            pass

    def is_loaded(self) -> bool:
        return super().is_loaded() and self._pipe is not None

    async def predict(self, image: np.ndarray) -> list[SegmentationResult]:
        """Segment an RGB frame."""
        if not self.is_loaded():
            raise SegmenterError("Model not loaded. Call load() first.")

        self.validate_input(image)
        return await asyncio.to_thread(self._predict_sync, image)

    def _predict_sync(self, image: np.ndarray) -> list[SegmentationResult]:
        from PIL import Image

        start_time = time.perf_counter()
        outputs = self._pipe(Image.fromarray(image), subtask="semantic")

        results = []
        for item in outputs:
            results.append(SegmentationResult(
                label=item["label"],
                # Semantic segmentation reports no per-class score
                score=float(item["score"]) if item.get("score") is not None else 0.0,
                mask=MaskRaster.from_image(item["mask"]),
            ))

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"SegFormer: {len(results)} classes in {elapsed_ms:.0f}ms")
        return results
