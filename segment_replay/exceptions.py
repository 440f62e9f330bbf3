"""Exception types raised by the replay pipeline."""


class SegmentReplayError(Exception):
    """Base class for pipeline errors."""


class SegmenterError(SegmentReplayError, RuntimeError):
    """The segmentation collaborator is unavailable or failed."""


class AnalysisError(SegmentReplayError, RuntimeError):
    """An analysis pass cannot be started."""


class PlaybackError(SegmentReplayError, RuntimeError):
    """The video refused to start playing."""
