"""Pydantic models for weavekit.

Canonical shapes only. Raw service payloads (with their alternate key
spellings) are turned into these by ``weavekit.api.payloads``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _WireModel(BaseModel):
    """Snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """Serialize only the fields the caller set, using wire names."""
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


# =============================================================================
# Geometry
# =============================================================================

class Position(BaseModel):
    """Scene position. 2D layouts leave z unset."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    z: Optional[float] = None


class PositionPatch(_WireModel):
    """Partial position used by node updates."""

    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None


# =============================================================================
# Graph entities
# =============================================================================

class WeaveNode(_WireModel):
    """A content item in a weave."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    type: str = "strand"
    title: str = "Untitled node"
    importance: float = 1.0
    summary: Optional[str] = None
    strand_id: Optional[str] = Field(default=None, alias="strandId")
    position: Optional[Position] = None
    cluster_id: Optional[str] = Field(default=None, alias="clusterId")
    metadata: dict[str, Any] = Field(default_factory=dict)


class WeaveEdge(_WireModel):
    """A typed relationship between two nodes.

    ``id`` is only guaranteed once the edge has passed through the cache
    (see ``weavekit.graph.transform.edge_key``).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: Optional[str] = None
    source: str
    target: str
    type: str = "related"
    weight: float = 1.0
    note: Optional[str] = None
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    metadata: dict[str, Any] = Field(default_factory=dict)


class Weave(_WireModel):
    """A knowledge graph snapshot as returned by the service.

    ``id`` is None for the aggregated cross-weave view.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: Optional[str] = None
    name: str = "Knowledge Graph"
    domain: str = "default"
    nodes: list[WeaveNode] = Field(default_factory=list)
    edges: list[WeaveEdge] = Field(default_factory=list)
    metadata: Optional[dict[str, Any]] = None
    metrics: Optional[dict[str, Any]] = None
    communities: list[list[str]] = Field(default_factory=list)
    created: datetime = Field(default_factory=utcnow)
    modified: datetime = Field(default_factory=utcnow)


class GraphSegment(BaseModel):
    """A partial slice of a weave."""

    nodes: list[WeaveNode] = Field(default_factory=list)
    edges: list[WeaveEdge] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    clusters: Optional[list[list[str]]] = None  # None when the segment carries no community data


class PathResult(BaseModel):
    """Shortest path between two nodes."""

    path: list[str] = Field(default_factory=list)
    edges: list[WeaveEdge] = Field(default_factory=list)


# =============================================================================
# Segment queries
# =============================================================================

class SegmentBounds(BaseModel):
    """Spherical window around the camera target."""

    center: Position
    radius: float


class GraphQueryOptions(BaseModel):
    """Filters for a segment request."""

    types: Optional[list[str]] = None
    cluster: bool = False
    limit: Optional[int] = None
    depth: Optional[int] = None
    bounds: Optional[SegmentBounds] = None

    def to_params(self) -> dict[str, str]:
        """Render as query-string parameters."""
        params: dict[str, str] = {}
        if self.types:
            params["types"] = ",".join(self.types)
        if self.cluster:
            params["cluster"] = "true"
        if self.limit is not None:
            params["limit"] = str(self.limit)
        if self.depth is not None:
            params["depth"] = str(self.depth)
        if self.bounds is not None:
            params["radius"] = str(self.bounds.radius)
            params["cx"] = str(self.bounds.center.x)
            params["cy"] = str(self.bounds.center.y)
            if self.bounds.center.z is not None:
                params["cz"] = str(self.bounds.center.z)
        return params


# =============================================================================
# Mutation inputs
# =============================================================================

class NodeInput(_WireModel):
    """Payload for creating a node."""

    id: Optional[str] = None
    strand_id: Optional[str] = Field(default=None, alias="strandId")
    label: Optional[str] = None
    type: Optional[str] = None
    position: Optional[Position] = None
    metadata: Optional[dict[str, Any]] = None


class NodeUpdateInput(_WireModel):
    """Payload for updating a node. Setting strand_id to None unlinks it."""

    strand_id: Optional[str] = Field(default=None, alias="strandId")
    label: Optional[str] = None
    type: Optional[str] = None
    position: Optional[PositionPatch] = None
    metadata: Optional[dict[str, Any]] = None


class EdgeInput(_WireModel):
    """Payload for creating an edge."""

    source: str
    target: str
    type: Optional[str] = None
    weight: Optional[float] = None
    metadata: Optional[dict[str, Any]] = None
    note: Optional[str] = None


class EdgeUpdateInput(_WireModel):
    """Payload for updating an edge. Setting note to None clears it."""

    type: Optional[str] = None
    weight: Optional[float] = None
    metadata: Optional[dict[str, Any]] = None
    note: Optional[str] = None


# =============================================================================
# Mutation results
# =============================================================================

class NodeMutationResult(BaseModel):
    weave: Weave
    node: WeaveNode


class NodeDeletionResult(BaseModel):
    weave: Weave
    node_id: str
    removed_edge_ids: list[str] = Field(default_factory=list)


class EdgeMutationResult(BaseModel):
    weave: Weave
    edge: WeaveEdge


class EdgeDeletionResult(BaseModel):
    weave: Weave
    edge_id: str


# =============================================================================
# Derived and transient client state
# =============================================================================

@dataclass(frozen=True)
class ClusterRecord:
    """A community projected onto the client. Ids follow enumeration order."""

    id: str
    node_ids: tuple[str, ...]


@dataclass(frozen=True)
class SelectionState:
    """Selected node and edge ids, in selection order."""

    nodes: tuple[str, ...] = ()
    edges: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.edges


@dataclass(frozen=True)
class ViewportSample:
    """Sampled camera state reported by the renderer."""

    center: Position
    radius: float
    distance: float = 0.0
    updated_at: float = 0.0


@dataclass(frozen=True)
class FocusTarget:
    """One-shot camera movement request, consumed by nonce."""

    center: Position
    radius: float
    nonce: int
    requested_at: float = field(default=0.0, compare=False)
