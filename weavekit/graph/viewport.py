"""Viewport sampling: deciding when the camera has moved far enough to need a new segment."""

from typing import Optional

from weavekit.core.models import Position, SegmentBounds, ViewportSample
from weavekit.graph.focus import distance


def segment_bounds(sample: ViewportSample) -> SegmentBounds:
    """Spherical segment window around the sampled camera target."""
    center = sample.center
    return SegmentBounds(center=Position(x=center.x, y=center.y, z=center.z), radius=sample.radius)


def needs_segment(
    previous: Optional[ViewportSample],
    current: ViewportSample,
    reload_ratio: float = 0.5,
) -> bool:
    """
    Whether ``current`` warrants loading a new segment.

    Args:
        previous: Sample the last segment was loaded for (None if none yet)
        current: Latest camera sample
        reload_ratio: Allowed drift as a fraction of the previous radius

    Returns:
        True when nothing was loaded yet, the center moved more than
        ``reload_ratio * previous.radius``, or the radius changed by more
        than that fraction.
    """
    if previous is None or previous.radius <= 0:
        return True

    threshold = reload_ratio * previous.radius
    if distance(previous.center, current.center) > threshold:
        return True
    return abs(current.radius - previous.radius) > threshold
