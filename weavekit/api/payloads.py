"""
Payload normalization for the weave service.

This is the only place that knows about the service's alternate key
spellings (camelCase, snake_case, legacy names, values tucked into
``metadata`` or a nested ``config`` object). Everything past this module
works with the canonical models in ``weavekit.core.models``.
"""

import logging
import math
import uuid
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import ValidationError

from weavekit.core.exceptions import InvalidPayloadError
from weavekit.core.models import (
    EdgeDeletionResult,
    EdgeMutationResult,
    GraphSegment,
    NodeDeletionResult,
    NodeMutationResult,
    PathResult,
    Position,
    Weave,
    WeaveEdge,
    WeaveNode,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Coercion helpers
# =============================================================================

def first_present(*values: Any) -> Any:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def coerce_string(value: Any, fallback: str = "") -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return fallback
    return str(value)


def coerce_number(value: Any, fallback: Optional[float] = None) -> Optional[float]:
    """Finite float from a number or numeric string, else fallback."""
    if isinstance(value, bool) or value is None:
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if math.isfinite(number) else fallback


def ensure_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def unwrap_data(payload: Any) -> Any:
    """Strip the optional ``{"data": ...}`` envelope."""
    if isinstance(payload, Mapping) and "data" in payload:
        return payload["data"]
    return payload


def _drop_none(metadata: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in metadata.items() if value is not None}


# =============================================================================
# Nodes and edges
# =============================================================================

def _normalize_position(source: Any) -> Optional[Position]:
    if not isinstance(source, Mapping):
        return None
    return Position(
        x=coerce_number(source.get("x"), 0.0),
        y=coerce_number(source.get("y"), 0.0),
        z=coerce_number(source.get("z")),
    )


def normalize_node(raw: Any) -> WeaveNode:
    """Normalize a single raw node payload."""
    if not isinstance(raw, Mapping):
        raise InvalidPayloadError("Invalid weave node payload", payload=raw)

    metadata = dict(raw.get("metadata") or {})

    strand_id = coerce_string(
        first_present(
            raw.get("strandId"),
            raw.get("strand_id"),
            metadata.pop("strandId", None),
            metadata.pop("strand_id", None),
        )
    )

    title = coerce_string(
        first_present(raw.get("title"), metadata.get("title"), raw.get("name"), metadata.get("name"), "Untitled node")
    )
    metadata.setdefault("title", title)

    node_type = coerce_string(first_present(raw.get("type"), metadata.get("type"), "strand"))
    metadata.setdefault("type", node_type)

    importance = coerce_number(first_present(raw.get("importance"), metadata.get("importance")), 1.0)
    metadata.setdefault("importance", importance)

    summary = first_present(raw.get("summary"), metadata.get("summary"))

    position = _normalize_position(first_present(raw.get("position"), metadata.get("position")))
    if position is not None:
        metadata["position"] = position.model_dump(exclude_none=True)
    else:
        metadata.pop("position", None)

    node_id = coerce_string(first_present(raw.get("id"), raw.get("strandId"), metadata.pop("id", None), strand_id))
    if not node_id:
        node_id = f"node-{uuid.uuid4().hex[:8]}"
        logger.debug(f"[Payloads] Node without id, assigned {node_id}")

    return WeaveNode(
        id=node_id,
        type=node_type,
        title=title,
        importance=importance,
        summary=coerce_string(summary) if summary is not None else None,
        strand_id=strand_id or None,
        position=position,
        metadata=_drop_none(metadata),
    )


def normalize_nodes(raw_nodes: Any) -> list[WeaveNode]:
    """Normalize a list of raw nodes, skipping entries that are not objects."""
    nodes = []
    for raw in ensure_list(raw_nodes):
        if not isinstance(raw, Mapping):
            logger.warning(f"[Payloads] Skipping malformed node entry: {raw!r}")
            continue
        nodes.append(normalize_node(raw))
    return nodes


def normalize_edge(raw: Any) -> WeaveEdge:
    """Normalize a single raw edge payload."""
    if not isinstance(raw, Mapping):
        raise InvalidPayloadError("Invalid weave edge payload", payload=raw)

    metadata = dict(raw.get("metadata") or {})

    source = coerce_string(first_present(raw.get("source"), raw.get("sourceId"), raw.get("source_id")))
    target = coerce_string(first_present(raw.get("target"), raw.get("targetId"), raw.get("target_id")))
    edge_type = coerce_string(
        first_present(raw.get("type"), raw.get("relationshipType"), metadata.get("type"), "related")
    )
    weight = coerce_number(first_present(raw.get("weight"), metadata.get("weight")), 1.0)

    note = first_present(raw.get("note"), raw.get("justification"), metadata.pop("note", None))
    created_by = first_present(
        raw.get("createdBy"),
        raw.get("created_by"),
        metadata.pop("createdBy", None),
        metadata.pop("created_by", None),
    )
    edge_id = first_present(raw.get("id"), raw.get("edgeId"), raw.get("edge_id"), metadata.pop("id", None))

    return WeaveEdge(
        id=coerce_string(edge_id) if edge_id is not None else None,
        source=source,
        target=target,
        type=edge_type,
        weight=weight,
        note=coerce_string(note) if note is not None else None,
        created_by=coerce_string(created_by) if created_by is not None else None,
        metadata=_drop_none(metadata),
    )


def normalize_edges(raw_edges: Any) -> list[WeaveEdge]:
    """Normalize a list of raw edges, skipping entries that are not objects."""
    edges = []
    for raw in ensure_list(raw_edges):
        if not isinstance(raw, Mapping):
            logger.warning(f"[Payloads] Skipping malformed edge entry: {raw!r}")
            continue
        edges.append(normalize_edge(raw))
    return edges


def normalize_communities(raw: Any) -> list[list[str]]:
    return [[coerce_string(node_id) for node_id in ensure_list(group)] for group in ensure_list(raw)]


# =============================================================================
# Weaves and composite responses
# =============================================================================

def deserialize_weave(raw: Any) -> Weave:
    """
    Build a Weave snapshot from a raw service payload.

    Graph content may sit at the top level or under ``config``.

    Raises:
        InvalidPayloadError: If the payload is empty or malformed
    """
    if not raw or not isinstance(raw, Mapping):
        raise InvalidPayloadError("Invalid weave payload", payload=raw)

    config = raw.get("config") or {}
    fields: dict[str, Any] = {
        "id": coerce_string(raw.get("id")) or None,
        "name": coerce_string(first_present(raw.get("name"), "Knowledge Graph")),
        "domain": coerce_string(first_present(raw.get("domain"), config.get("domain"), "default")),
        "nodes": normalize_nodes(first_present(raw.get("nodes"), config.get("nodes"), [])),
        "edges": normalize_edges(first_present(raw.get("edges"), config.get("edges"), [])),
        "metadata": first_present(raw.get("metadata"), config.get("metadata")),
        "metrics": first_present(raw.get("metrics"), config.get("metrics")),
        "communities": normalize_communities(first_present(raw.get("communities"), config.get("communities"), [])),
    }

    created = first_present(raw.get("created"), raw.get("created_at"))
    modified = first_present(raw.get("updated"), raw.get("updated_at"), raw.get("modified"))
    if created is not None:
        fields["created"] = created
    if modified is not None:
        fields["modified"] = modified

    try:
        return Weave(**fields)
    except ValidationError as e:
        raise InvalidPayloadError(f"Invalid weave payload: {e}", payload=raw) from e


def deserialize_segment(raw: Any) -> GraphSegment:
    """Build a GraphSegment; ``clusters`` stays None when the service sent none."""
    raw = raw if isinstance(raw, Mapping) else {}
    clusters = raw.get("clusters")
    return GraphSegment(
        nodes=normalize_nodes(raw.get("nodes") or []),
        edges=normalize_edges(raw.get("edges") or []),
        metadata=dict(raw.get("metadata") or {}),
        clusters=normalize_communities(clusters) if clusters is not None else None,
    )


def _require_mapping(raw: Any, what: str) -> Mapping:
    if not isinstance(raw, Mapping):
        raise InvalidPayloadError(f"Invalid {what} response", payload=raw)
    return raw


def deserialize_node_mutation(raw: Any) -> NodeMutationResult:
    raw = _require_mapping(raw, "node mutation")
    return NodeMutationResult(weave=deserialize_weave(raw.get("weave")), node=normalize_node(raw.get("node")))


def deserialize_node_deletion(raw: Any, node_id: str) -> NodeDeletionResult:
    raw = _require_mapping(raw, "node deletion")
    return NodeDeletionResult(
        weave=deserialize_weave(raw.get("weave")),
        node_id=coerce_string(first_present(raw.get("nodeId"), raw.get("node_id")), node_id),
        removed_edge_ids=[coerce_string(edge_id) for edge_id in ensure_list(raw.get("removedEdgeIds"))],
    )


def deserialize_edge_mutation(raw: Any) -> EdgeMutationResult:
    raw = _require_mapping(raw, "edge mutation")
    return EdgeMutationResult(weave=deserialize_weave(raw.get("weave")), edge=normalize_edge(raw.get("edge")))


def deserialize_edge_deletion(raw: Any, edge_id: str) -> EdgeDeletionResult:
    raw = _require_mapping(raw, "edge deletion")
    return EdgeDeletionResult(
        weave=deserialize_weave(raw.get("weave")),
        edge_id=coerce_string(first_present(raw.get("edgeId"), raw.get("edge_id")), edge_id),
    )


def deserialize_path(raw: Any) -> PathResult:
    raw = raw if isinstance(raw, Mapping) else {}
    return PathResult(
        path=[coerce_string(node_id) for node_id in ensure_list(raw.get("path"))],
        edges=normalize_edges(raw.get("edges") or []),
    )
