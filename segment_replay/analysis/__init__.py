"""Offline analysis of sampled frames."""

from .scheduler import AnalysisScheduler, progress_percent, sample_timestamps

__all__ = ["AnalysisScheduler", "progress_percent", "sample_timestamps"]
