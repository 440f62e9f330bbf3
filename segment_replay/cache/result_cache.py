"""Time-indexed cache of per-frame segmentation results."""

from typing import Iterator

from ..models import CachedFrame


class ResultCache:
    """
    Append-only, time-ordered collection of cached frames.

    Entries must be appended in strictly increasing timestamp order.
    A session replaces its cache with a fresh instance on reset rather
    than clearing this one, so late writers holding the old instance
    cannot leak into the new session.
    """

    def __init__(self):
        self._frames: list[CachedFrame] = []

    def append(self, frame: CachedFrame) -> None:
        """Add an entry after the current last one."""
        if self._frames and frame.timestamp <= self._frames[-1].timestamp:
            raise ValueError(
                f"Timestamp {frame.timestamp} is not after last cached "
                f"timestamp {self._frames[-1].timestamp}"
            )
        self._frames.append(frame)

    def nearest(self, t: float) -> CachedFrame | None:
        """
        Find the entry closest in time to t.

        Ties go to the first (earliest) entry. There is no distance
        limit: any non-empty cache always yields a match.

        Returns:
            Closest cached frame, or None if the cache is empty
        """
        closest = None
        min_diff = float("inf")
        for frame in self._frames:
            diff = abs(frame.timestamp - t)
            if diff < min_diff:
                min_diff = diff
                closest = frame
        return closest

    @property
    def timestamps(self) -> list[float]:
        return [f.timestamp for f in self._frames]

    @property
    def is_empty(self) -> bool:
        return not self._frames

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[CachedFrame]:
        return iter(list(self._frames))

    def get_stats(self) -> dict:
        """Get cache statistics."""
        return {
            "entries": len(self._frames),
            "first_timestamp": self._frames[0].timestamp if self._frames else None,
            "last_timestamp": self._frames[-1].timestamp if self._frames else None,
            "total_results": sum(len(f.results) for f in self._frames),
        }
