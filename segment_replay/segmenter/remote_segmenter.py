"""HTTP client for a remote segmentation endpoint."""

import asyncio
import base64
import logging
import time
from dataclasses import dataclass
from io import BytesIO

import aiohttp
import numpy as np

from .base_segmenter import BaseSegmenter
from ..exceptions import SegmenterError
from ..models import MaskRaster, ModelState, SegmentationResult

logger = logging.getLogger(__name__)


@dataclass
class RemoteSegmenterConfig:
    """Configuration for the remote segmenter."""
    url: str | None = None
    api_key: str | None = None
    timeout_seconds: float = 30.0


class RemoteSegmenter(BaseSegmenter):
    """
    Segmenter backed by an inference server.

    Request body:
        {"image": <base64 PNG>, "width": W, "height": H}

    Response body:
        {"segments": [{"label": str, "score": float, "mask": <base64 PNG>}]}
    """

    def __init__(self, config: RemoteSegmenterConfig):
        super().__init__()
        self.config = config
        self._session: aiohttp.ClientSession | None = None

    def load(self) -> None:
        """Validate the endpoint configuration."""
        if self.is_loaded():
            return

        if not self.config.url:
            self._set_status(ModelState.ERROR, message="Segmenter URL is required")
            raise ValueError("Segmenter URL is required")

        self._set_status(ModelState.READY, progress=100.0)
        logger.info(f"Remote segmenter ready: {self.config.url}")

    def unload(self) -> None:
        """Mark the client unavailable. Call close() to release the HTTP session."""
        self._set_status(ModelState.IDLE, progress=0.0)

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure HTTP session exists."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds + 5)
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    @staticmethod
    def encode_image(image: np.ndarray) -> str:
        """Encode an RGB array as base64 PNG (lossless, so masks line up)."""
        from PIL import Image

        buffer = BytesIO()
        Image.fromarray(image).save(buffer, format="PNG")
        return base64.b64encode(buffer.getvalue()).decode("utf-8")

    @staticmethod
    def decode_mask(mask_data: str) -> MaskRaster:
        """Decode a base64 PNG (optionally a data URL) into a mask raster."""
        from PIL import Image

        # Handle data URL format
        if "," in mask_data:
            mask_data = mask_data.split(",")[1]

        mask_bytes = base64.b64decode(mask_data)
        return MaskRaster.from_image(Image.open(BytesIO(mask_bytes)))

    def parse_response(self, data: dict) -> list[SegmentationResult]:
        """Convert a response payload into segmentation results."""
        results = []
        for segment in data.get("segments", []):
            label = segment.get("label")
            mask = segment.get("mask")
            if not label or not mask:
                continue
            score = segment.get("score")
            results.append(SegmentationResult(
                label=label,
                score=float(score) if score is not None else 0.0,
                mask=self.decode_mask(mask),
            ))
        return results

    async def predict(self, image: np.ndarray) -> list[SegmentationResult]:
        """Send one frame to the endpoint."""
        if not self.is_loaded():
            raise SegmenterError("Client not initialized (missing URL)")

        self.validate_input(image)
        start_time = time.perf_counter()

        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        payload = {
            "image": self.encode_image(image),
            "width": int(image.shape[1]),
            "height": int(image.shape[0]),
        }

        try:
            session = await self._ensure_session()
            async with session.post(
                self.config.url,
                headers=headers,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise SegmenterError(f"API error {response.status}: {error_text[:200]}")

                data = await response.json()

        except asyncio.TimeoutError as e:
            raise SegmenterError("Request timed out") from e
        except aiohttp.ClientError as e:
            raise SegmenterError(f"HTTP error: {str(e)}") from e

        results = self.parse_response(data)
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Remote segmenter: {len(results)} classes in {elapsed_ms:.0f}ms")
        return results
