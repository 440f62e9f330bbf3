"""Label to overlay category mapping."""

from dataclasses import dataclass

from ..config import TRAFFIC_LIGHT_LABELS, VEHICLE_LABELS


@dataclass(frozen=True)
class OverlayCategory:
    """A visual category drawn with one fixed RGBA color."""
    name: str
    color: tuple[int, int, int, int]
    labels: frozenset[str]


TRAFFIC_LIGHT = OverlayCategory(
    name="TRAFFIC LIGHT",
    color=(255, 230, 0, 200),  # Bright yellow
    labels=frozenset(TRAFFIC_LIGHT_LABELS),
)

VEHICLE = OverlayCategory(
    name="VEHICLE",
    color=(0, 255, 100, 160),  # Green
    labels=frozenset(VEHICLE_LABELS),
)

CATEGORIES = (TRAFFIC_LIGHT, VEHICLE)


def classify_label(label: str) -> OverlayCategory | None:
    """
    Map a segmenter label to its overlay category.

    Matching is case-insensitive. Labels outside every category
    (e.g. "pedestrian", "road") return None and are not drawn.
    """
    key = label.strip().lower()
    for category in CATEGORIES:
        if key in category.labels:
            return category
    return None
