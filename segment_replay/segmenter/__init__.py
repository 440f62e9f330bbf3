"""Segmentation collaborators."""

from segment_replay.segmenter.base_segmenter import BaseSegmenter
from segment_replay.segmenter.segformer_segmenter import (
    SegformerSegmenter,
    SegformerConfig,
)
from segment_replay.segmenter.remote_segmenter import (
    RemoteSegmenter,
    RemoteSegmenterConfig,
)

__all__ = [
    "BaseSegmenter",
    "SegformerSegmenter",
    "SegformerConfig",
    "RemoteSegmenter",
    "RemoteSegmenterConfig",
    "create_segmenter",
]


def create_segmenter(config) -> BaseSegmenter:
    """Build the segmenter a ReplayConfig asks for (remote if a URL is set)."""
    if config.segmenter_url:
        return RemoteSegmenter(RemoteSegmenterConfig(
            url=config.segmenter_url,
            timeout_seconds=config.segmenter_timeout_seconds,
        ))
    return SegformerSegmenter(SegformerConfig(
        model_id=config.model_id,
        device=config.device,
    ))
