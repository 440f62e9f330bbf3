"""Mask compositing onto an RGBA overlay surface."""

import numpy as np
import cv2

from ..models import MaskRaster


class OverlaySurface:
    """
    RGBA drawing surface the size of the display container.

    Pixels are non-premultiplied uint8 RGBA, shape (height, width, 4).
    """

    def __init__(self, width: int = 0, height: int = 0):
        self._data = np.zeros((max(height, 0), max(width, 0), 4), dtype=np.uint8)

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def width(self) -> int:
        return self._data.shape[1]

    @property
    def height(self) -> int:
        return self._data.shape[0]

    def resize(self, width: int, height: int) -> bool:
        """
        Match the surface to new container dimensions.

        Returns:
            True if the buffer was reallocated
        """
        width, height = max(int(width), 0), max(int(height), 0)
        if width == self.width and height == self.height:
            return False
        self._data = np.zeros((height, width, 4), dtype=np.uint8)
        return True

    def clear(self) -> None:
        """Make every pixel fully transparent."""
        self._data.fill(0)

    def is_empty(self) -> bool:
        """True if nothing has been drawn since the last clear."""
        return not self._data[:, :, 3].any()


def blend_source_over(src: np.ndarray, dst: np.ndarray) -> None:
    """
    Composite src over dst in place (both RGBA uint8, same shape).

    Only pixels with non-zero source alpha are touched.
    """
    drawn = src[:, :, 3] > 0
    if not drawn.any():
        return

    s = src[drawn].astype(np.float32) / 255.0
    d = dst[drawn].astype(np.float32) / 255.0

    sa = s[:, 3:4]
    da = d[:, 3:4]
    out_a = sa + da * (1.0 - sa)
    out_rgb = (s[:, :3] * sa + d[:, :3] * da * (1.0 - sa)) / np.maximum(out_a, 1e-6)

    out = np.concatenate([out_rgb, out_a], axis=1)
    dst[drawn] = np.clip(np.rint(out * 255.0), 0, 255).astype(np.uint8)


class MaskCompositor:
    """
    Paints boolean mask stencils in a solid color onto an overlay surface.

    Owns one scratch RGBA raster sized to the most recent mask. The
    scratch buffer is reused across calls and is not safe to share
    between concurrent callers.

    Usage:
        compositor = MaskCompositor()
        compositor.composite(mask, (0, 255, 100, 160), surface, x, y, w, h)
    """

    def __init__(self):
        self._scratch: np.ndarray | None = None
        self.scratch_allocations = 0

    @property
    def scratch_size(self) -> tuple[int, int] | None:
        """(width, height) of the scratch raster, None before first use."""
        if self._scratch is None:
            return None
        return (self._scratch.shape[1], self._scratch.shape[0])

    def _ensure_scratch(self, width: int, height: int) -> np.ndarray:
        """Reallocate the scratch raster only when the mask size changes."""
        if self._scratch is None or self.scratch_size != (width, height):
            self._scratch = np.zeros((height, width, 4), dtype=np.uint8)
            self.scratch_allocations += 1
        else:
            self._scratch.fill(0)
        return self._scratch

    def colorize(self, mask: MaskRaster, color: tuple[int, int, int, int]) -> np.ndarray:
        """
        Fill the scratch raster with the mask stencil.

        Member pixels get the solid color regardless of their raw value,
        the rest stay fully transparent.
        """
        scratch = self._ensure_scratch(mask.width, mask.height)
        scratch[mask.data > 0] = color
        return scratch

    def composite(
        self,
        mask: MaskRaster | None,
        color: tuple[int, int, int, int],
        surface: OverlaySurface,
        dest_x: float,
        dest_y: float,
        dest_w: float,
        dest_h: float,
    ) -> None:
        """
        Draw a colored mask into a destination rectangle of the surface.

        The mask is scaled with nearest-neighbor sampling to keep its
        blocky look. The surface is modified in place and never cleared.

        Args:
            mask: Membership raster (any size)
            color: RGBA color for member pixels
            surface: Overlay surface to draw on
            dest_x, dest_y: Top-left corner in surface pixels
            dest_w, dest_h: Destination size in surface pixels
        """
        if mask is None or mask.width == 0 or mask.height == 0:
            return

        # Snap to whole pixels
        x0, y0 = int(round(dest_x)), int(round(dest_y))
        x1, y1 = int(round(dest_x + dest_w)), int(round(dest_y + dest_h))
        target_w, target_h = x1 - x0, y1 - y0
        if target_w <= 0 or target_h <= 0:
            return

        # Clip against the surface
        cx0, cy0 = max(x0, 0), max(y0, 0)
        cx1, cy1 = min(x1, surface.width), min(y1, surface.height)
        if cx0 >= cx1 or cy0 >= cy1:
            return

        scratch = self.colorize(mask, color)
        scaled = cv2.resize(scratch, (target_w, target_h), interpolation=cv2.INTER_NEAREST)

        src = scaled[cy0 - y0:cy1 - y0, cx0 - x0:cx1 - x0]
        dst = surface.data[cy0:cy1, cx0:cx1]
        blend_source_over(src, dst)
