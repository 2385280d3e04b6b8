"""Test helpers: entity builders and an in-memory weave service."""

import asyncio
from typing import Any, Optional

from weavekit.core.exceptions import WeaveServiceError
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


def node(node_id: str, x: Optional[float] = None, y: float = 0.0, z: float = 0.0, **fields) -> WeaveNode:
    position = Position(x=x, y=y, z=z) if x is not None else None
    return WeaveNode(id=node_id, title=fields.pop("title", node_id.upper()), position=position, **fields)


def edge(source: str, target: str, edge_type: str = "related", edge_id: Optional[str] = None, **fields) -> WeaveEdge:
    return WeaveEdge(id=edge_id, source=source, target=target, type=edge_type, **fields)


def weave(weave_id: Optional[str], nodes=(), edges=(), communities=(), **fields) -> Weave:
    return Weave(
        id=weave_id,
        name=fields.pop("name", f"Weave {weave_id}"),
        nodes=list(nodes),
        edges=list(edges),
        communities=[list(group) for group in communities],
        **fields,
    )


class FakeWeaveService:
    """
    In-memory stand-in for WeaveAPIClient.

    Records every call in ``calls``. ``failures[name]`` makes a method raise;
    ``gates[(name, key)]`` holds a call until the event is set so tests can
    control completion order. ``snapshot_override[name]`` replaces the
    snapshot a mutation returns.
    """

    def __init__(self, weaves=(), aggregated: Optional[Weave] = None):
        self.weaves: dict[str, Weave] = {w.id: w for w in weaves}
        self.aggregated = aggregated or weave(None, name="All weaves")
        self.segments: list[GraphSegment] = []
        self.path_result = PathResult()
        self.calls: list[tuple[str, tuple]] = []
        self.failures: dict[str, Exception] = {}
        self.gates: dict[tuple[str, Any], asyncio.Event] = {}
        self.snapshot_override: dict[str, Weave] = {}
        self._edge_counter = 0

    def calls_to(self, name: str) -> list[tuple]:
        return [args for called, args in self.calls if called == name]

    async def _enter(self, name: str, key: Any = None, *args):
        self.calls.append((name, (key, *args) if key is not None else args))
        gate = self.gates.get((name, key))
        if gate is not None:
            await gate.wait()
        if name in self.failures:
            raise self.failures[name]

    # Reads

    async def list_weaves(self) -> list[Weave]:
        await self._enter("list_weaves")
        return list(self.weaves.values())

    async def get_weave(self, weave_id: str) -> Weave:
        await self._enter("get_weave", weave_id)
        if weave_id not in self.weaves:
            raise WeaveServiceError("API Error 404: Not Found", status_code=404)
        return self.weaves[weave_id]

    async def get_aggregated_weave(self, **filters) -> Weave:
        await self._enter("get_aggregated_weave")
        return self.aggregated

    async def get_graph_segment(self, weave_id: str, options=None) -> GraphSegment:
        await self._enter("get_graph_segment", weave_id, options)
        return self.segments.pop(0) if self.segments else GraphSegment()

    async def find_path(self, source: str, target: str) -> PathResult:
        await self._enter("find_path", source, target)
        return self.path_result

    # Mutations

    def _store(self, name: str, weave_id: str, updated: Weave) -> Weave:
        self.weaves[weave_id] = updated
        return self.snapshot_override.get(name, updated)

    async def create_node(self, weave_id, payload) -> NodeMutationResult:
        await self._enter("create_node", weave_id, payload)
        current = self.weaves[weave_id]
        created = WeaveNode(
            id=payload.id or f"node-{len(current.nodes) + 1}",
            title=payload.label or "Untitled node",
            type=payload.type or "strand",
            strand_id=payload.strand_id,
            position=payload.position,
        )
        snapshot = self._store(
            "create_node", weave_id, current.model_copy(update={"nodes": [*current.nodes, created]})
        )
        return NodeMutationResult(weave=snapshot, node=created)

    async def update_node(self, weave_id, node_id, payload) -> NodeMutationResult:
        await self._enter("update_node", weave_id, node_id, payload)
        current = self.weaves[weave_id]
        nodes = []
        updated = None
        for item in current.nodes:
            if item.id == node_id:
                changes = {}
                if payload.label is not None:
                    changes["title"] = payload.label
                if payload.type is not None:
                    changes["type"] = payload.type
                item = item.model_copy(update=changes)
                updated = item
            nodes.append(item)
        snapshot = self._store("update_node", weave_id, current.model_copy(update={"nodes": nodes}))
        return NodeMutationResult(weave=snapshot, node=updated or WeaveNode(id=node_id))

    async def delete_node(self, weave_id, node_id) -> NodeDeletionResult:
        await self._enter("delete_node", weave_id, node_id)
        current = self.weaves[weave_id]
        removed = [e.id for e in current.edges if node_id in (e.source, e.target)]
        snapshot = self._store(
            "delete_node",
            weave_id,
            current.model_copy(
                update={
                    "nodes": [n for n in current.nodes if n.id != node_id],
                    "edges": [e for e in current.edges if node_id not in (e.source, e.target)],
                }
            ),
        )
        return NodeDeletionResult(weave=snapshot, node_id=node_id, removed_edge_ids=removed)

    async def create_edge(self, weave_id, payload) -> EdgeMutationResult:
        await self._enter("create_edge", weave_id, payload)
        self._edge_counter += 1
        current = self.weaves[weave_id]
        created = WeaveEdge(
            id=f"edge-{self._edge_counter}",
            source=payload.source,
            target=payload.target,
            type=payload.type or "related",
            note=payload.note,
        )
        snapshot = self._store(
            "create_edge", weave_id, current.model_copy(update={"edges": [*current.edges, created]})
        )
        return EdgeMutationResult(weave=snapshot, edge=created)

    async def update_edge(self, weave_id, edge_id, payload) -> EdgeMutationResult:
        await self._enter("update_edge", weave_id, edge_id, payload)
        current = self.weaves[weave_id]
        edges = []
        updated = None
        for item in current.edges:
            if item.id == edge_id:
                item = item.model_copy(update=payload.model_dump(exclude_unset=True))
                updated = item
            edges.append(item)
        snapshot = self._store("update_edge", weave_id, current.model_copy(update={"edges": edges}))
        return EdgeMutationResult(weave=snapshot, edge=updated or WeaveEdge(id=edge_id, source="?", target="?"))

    async def delete_edge(self, weave_id, edge_id) -> EdgeDeletionResult:
        await self._enter("delete_edge", weave_id, edge_id)
        current = self.weaves[weave_id]
        snapshot = self._store(
            "delete_edge",
            weave_id,
            current.model_copy(update={"edges": [e for e in current.edges if e.id != edge_id]}),
        )
        return EdgeDeletionResult(weave=snapshot, edge_id=edge_id)

    async def apply_layout(self, weave_id, algorithm, options=None) -> Weave:
        await self._enter("apply_layout", weave_id, algorithm)
        current = self.weaves[weave_id]
        nodes = [
            n.model_copy(update={"position": Position(x=float(index * 10), y=0.0, z=0.0)})
            for index, n in enumerate(current.nodes)
        ]
        return self._store("apply_layout", weave_id, current.model_copy(update={"nodes": nodes}))
