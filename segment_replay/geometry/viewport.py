"""
Viewport geometry for overlay placement.

Three coordinate spaces are involved:
    - Model input: the cropped, resized buffer sent to the segmenter
    - Source frame: the video's intrinsic pixel grid
    - Viewport: the container the video is displayed in (letterboxed)

Masks cover the cropped part of the source frame only, so the overlay
rectangle is the letterboxed display rectangle minus its top crop band.
"""

import math

from segment_replay.models.data_models import DisplayRect


def compute_display_rect(
    container_w: float,
    container_h: float,
    video_w: float,
    video_h: float,
) -> DisplayRect | None:
    """
    Fit a video inside a container, preserving aspect ratio.

    Args:
        container_w: Container width in pixels
        container_h: Container height in pixels
        video_w: Intrinsic video width
        video_h: Intrinsic video height

    Returns:
        Centered display rectangle, or None when any dimension is zero
        (nothing can be rendered)
    """
    if video_w <= 0 or video_h <= 0 or container_w <= 0 or container_h <= 0:
        return None

    video_ratio = video_w / video_h
    container_ratio = container_w / container_h

    if container_ratio > video_ratio:
        # Container is relatively wider: pillarbox
        displayed_h = float(container_h)
        displayed_w = container_h * video_ratio
        offset_x = (container_w - displayed_w) / 2
        offset_y = 0.0
    else:
        # Container is relatively taller: letterbox
        displayed_w = float(container_w)
        displayed_h = container_w / video_ratio
        offset_x = 0.0
        offset_y = (container_h - displayed_h) / 2

    return DisplayRect(
        offset_x=offset_x,
        offset_y=offset_y,
        width=displayed_w,
        height=displayed_h,
    )


def crop_adjusted_rect(rect: DisplayRect, crop_fraction: float) -> DisplayRect:
    """
    Remove the top crop band from a display rectangle.

    Horizontal placement is untouched since the full width is analysed.
    """
    return DisplayRect(
        offset_x=rect.offset_x,
        offset_y=rect.offset_y + rect.height * crop_fraction,
        width=rect.width,
        height=rect.height * (1 - crop_fraction),
    )


def compute_overlay_rect(
    container_w: float,
    container_h: float,
    video_w: float,
    video_h: float,
    crop_fraction: float,
) -> DisplayRect | None:
    """Display rectangle of the analysed region, or None if nothing can be drawn."""
    rect = compute_display_rect(container_w, container_h, video_w, video_h)
    if rect is None:
        return None
    return crop_adjusted_rect(rect, crop_fraction)


def compute_analysis_size(
    video_w: int,
    video_h: int,
    crop_fraction: float,
    model_input_width: int,
) -> tuple[int, int, int]:
    """
    Size the segmenter input for a source frame.

    The bottom part of the frame (below the crop band) is scaled to
    model_input_width, keeping the cropped region's aspect ratio.

    Returns:
        (crop_top_pixels, crop_height, input_height)
    """
    if video_w <= 0 or video_h <= 0:
        raise ValueError(f"Invalid video dimensions: {video_w}x{video_h}")

    crop_top = math.floor(video_h * crop_fraction)
    crop_height = video_h - crop_top
    input_height = math.floor(model_input_width * crop_height / video_w)
    return crop_top, crop_height, max(input_height, 1)
