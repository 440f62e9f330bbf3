"""Playback-time overlay rendering."""

from .synchronizer import PlaybackSynchronizer

__all__ = ["PlaybackSynchronizer"]
