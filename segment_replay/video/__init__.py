"""Video access."""

from .video_source import VideoSource, OpenCVVideoSource

__all__ = ["VideoSource", "OpenCVVideoSource"]
