"""Frame manipulation utilities."""

from pathlib import Path
import numpy as np
import cv2

from ..models import DisplayRect


def ensure_rgb(image: np.ndarray) -> np.ndarray:
    """
    Convert image to 3-channel RGB.

    Grayscale is expanded and an alpha channel is dropped; segmentation
    backends must never see a fourth channel.
    """
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2RGB)
    return image


def crop_and_resize(
    frame: np.ndarray,
    crop_top: int,
    crop_height: int,
    out: np.ndarray,
) -> np.ndarray:
    """
    Crop rows [crop_top, crop_top + crop_height) and scale into out.

    Args:
        frame: RGB source frame (H, W, 3)
        crop_top: First row kept
        crop_height: Number of rows kept
        out: Preallocated (h, w, 3) uint8 destination, reused across calls

    Returns:
        out, filled with the resized region
    """
    region = frame[crop_top:crop_top + crop_height]
    target_h, target_w = out.shape[:2]
    cv2.resize(region, (target_w, target_h), dst=out, interpolation=cv2.INTER_LINEAR)
    return out


def letterbox_frame(
    frame: np.ndarray,
    container_w: int,
    container_h: int,
    rect: DisplayRect,
) -> np.ndarray:
    """
    Place a frame into a black container canvas at its display rectangle.

    Returns:
        RGB canvas (container_h, container_w, 3)
    """
    canvas = np.zeros((container_h, container_w, 3), dtype=np.uint8)

    x, y, rw, rh = rect.to_xywh()
    x0, y0 = int(round(x)), int(round(y))
    w = min(int(round(rw)), container_w - x0)
    h = min(int(round(rh)), container_h - y0)
    if w <= 0 or h <= 0:
        return canvas

    canvas[y0:y0 + h, x0:x0 + w] = cv2.resize(frame, (w, h), interpolation=cv2.INTER_LINEAR)
    return canvas


def blend_overlay(image: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    """
    Alpha-blend an RGBA overlay onto an RGB image of the same size.

    Args:
        image: RGB image (H, W, 3)
        overlay: RGBA overlay (H, W, 4), non-premultiplied

    Returns:
        New RGB image with the overlay applied
    """
    if image.shape[:2] != overlay.shape[:2]:
        raise ValueError(f"Size mismatch: image {image.shape[:2]} vs overlay {overlay.shape[:2]}")

    alpha = overlay[:, :, 3:4].astype(np.float32) / 255.0
    if not alpha.any():
        return image.copy()

    blended = overlay[:, :, :3].astype(np.float32) * alpha + image.astype(np.float32) * (1.0 - alpha)
    return np.clip(np.rint(blended), 0, 255).astype(np.uint8)


def save_image(image: np.ndarray, path: str | Path) -> None:
    """
    Save an RGB image to disk.

    Args:
        image: RGB image array
        path: Output path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)

    cv2.imwrite(str(path), image)
