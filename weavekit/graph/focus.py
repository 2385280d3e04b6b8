"""
Camera focus geometry.

Pure helpers used by the graph store to turn a selection into a focus
target. Missing z coordinates count as 0.
"""

import math
from collections.abc import Mapping, Sequence

from weavekit.core.models import Position, SelectionState, WeaveEdge, WeaveNode

ORIGIN = Position(x=0.0, y=0.0, z=0.0)


def distance(a: Position, b: Position) -> float:
    """Euclidean distance between two positions."""
    return math.sqrt((a.x - b.x) ** 2 + (a.y - b.y) ** 2 + ((a.z or 0.0) - (b.z or 0.0)) ** 2)


def centroid(positions: Sequence[Position]) -> Position:
    """Arithmetic mean of the positions. Empty input yields the origin."""
    if not positions:
        return ORIGIN
    count = len(positions)
    return Position(
        x=sum(p.x for p in positions) / count,
        y=sum(p.y for p in positions) / count,
        z=sum(p.z or 0.0 for p in positions) / count,
    )


def bounding_radius(center: Position, positions: Sequence[Position]) -> float:
    """Largest distance from center to any position (0 for no positions)."""
    return max((distance(center, p) for p in positions), default=0.0)


def compute_focus(
    positions: Sequence[Position],
    min_radius: float = 20.0,
    padding: float = 1.6,
    empty_radius: float = 60.0,
) -> tuple[Position, float]:
    """
    Center and radius that frame all positions.

    The padded bounding radius is floored at ``min_radius``. The floor
    applies after padding, so a tight selection is framed at exactly
    ``min_radius`` rather than ``min_radius * padding``. With no
    positions the origin is framed at ``empty_radius``.
    """
    if not positions:
        return ORIGIN, empty_radius
    center = centroid(positions)
    return center, max(min_radius, bounding_radius(center, positions) * padding)


def resolve_focus_node_ids(
    selection: SelectionState,
    nodes: Mapping[str, WeaveNode],
    edges: Mapping[str, WeaveEdge],
) -> list[str]:
    """
    Node ids a focus request should frame.

    Selected nodes if any; otherwise the endpoints of selected edges;
    otherwise a single cached node so the camera still has something to
    look at.
    """
    node_ids: list[str] = list(selection.nodes)
    if not node_ids:
        for edge_id in selection.edges:
            edge = edges.get(edge_id)
            if edge is not None:
                node_ids.extend([edge.source, edge.target])
    if not node_ids:
        node_ids = list(nodes)[:1]
    return list(dict.fromkeys(node_ids))
