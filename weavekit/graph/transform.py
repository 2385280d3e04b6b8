"""
Entity transforms for the graph cache.

Pure functions that turn canonical service nodes/edges into cache entries,
carrying forward what the cache already knew when a partial payload leaves
a field out. Safe to call redundantly.
"""

import math
from collections.abc import Mapping
from typing import Any, Optional, TypeVar

from weavekit.core.models import Position, WeaveEdge, WeaveNode

T = TypeVar("T")


def resolve_sticky(incoming: Optional[T], previous: Optional[T]) -> Optional[T]:
    """Precedence for sticky fields: incoming value, then previous cached value, then None."""
    return incoming if incoming is not None else previous


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def extract_position(node: WeaveNode, fallback: Optional[Position] = None) -> Optional[Position]:
    """
    Resolve a node position.

    Order: the node's own position, a position embedded in its metadata,
    then the fallback (usually the previously cached position).
    """
    if node.position is not None:
        return node.position

    embedded = node.metadata.get("position")
    if isinstance(embedded, Mapping):
        x, y, z = embedded.get("x"), embedded.get("y"), embedded.get("z")
        return Position(
            x=x if _is_number(x) else (fallback.x if fallback else 0.0),
            y=y if _is_number(y) else (fallback.y if fallback else 0.0),
            z=z if _is_number(z) else (fallback.z if fallback else None),
        )

    return fallback


def transform_node(
    node: WeaveNode,
    cluster_lookup: Mapping[str, str],
    previous: Optional[WeaveNode] = None,
) -> WeaveNode:
    """
    Build the cache entry for a node.

    Args:
        node: Canonical node from the service (possibly partial)
        cluster_lookup: node id → cluster id for the active clustering
        previous: Entry already cached under the same id, if any

    Returns:
        New node; position, cluster, summary, strand link and metadata fall
        back to ``previous`` when the payload omits them. A cluster id sent
        by the service is ignored in favour of ``cluster_lookup``.
    """
    position = extract_position(node, previous.position if previous else None)
    cluster_id = resolve_sticky(cluster_lookup.get(node.id), previous.cluster_id if previous else None)
    metadata = resolve_sticky(node.metadata or None, previous.metadata if previous else None)

    return node.model_copy(
        update={
            "position": position,
            "cluster_id": cluster_id,
            "summary": resolve_sticky(node.summary, previous.summary if previous else None),
            "strand_id": resolve_sticky(node.strand_id, previous.strand_id if previous else None),
            "metadata": dict(metadata or {}),
        }
    )


def edge_key(edge: WeaveEdge) -> str:
    """De-duplication key: explicit id, else ``source->target:type``."""
    return edge.id or f"{edge.source}->{edge.target}:{edge.type}"


def transform_edge(edge: WeaveEdge, previous: Optional[WeaveEdge] = None) -> WeaveEdge:
    """Build the cache entry for an edge; the result always carries an id."""
    edge_id = edge.id or (previous.id if previous else None) or edge_key(edge)
    metadata = resolve_sticky(edge.metadata or None, previous.metadata if previous else None)

    return edge.model_copy(
        update={
            "id": edge_id,
            "weight": edge.weight if _is_number(edge.weight) else 1.0,
            "note": resolve_sticky(edge.note, previous.note if previous else None),
            "created_by": resolve_sticky(edge.created_by, previous.created_by if previous else None),
            "metadata": dict(metadata or {}),
        }
    )
