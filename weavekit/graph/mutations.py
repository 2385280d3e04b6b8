"""
Graph mutations.

Every mutation checks that the store is editable before touching the
network, then lets the store re-apply the full weave snapshot the service
returns. The touched entity is always read back from that snapshot, never
from the response's standalone entity.
"""

import logging
from typing import TYPE_CHECKING, Any, Optional

from weavekit.core.exceptions import EntityDesyncError, ReadOnlyModeError
from weavekit.core.models import (
    EdgeDeletionResult,
    EdgeInput,
    EdgeMutationResult,
    EdgeUpdateInput,
    NodeDeletionResult,
    NodeInput,
    NodeMutationResult,
    NodeUpdateInput,
    Weave,
    WeaveEdge,
    WeaveNode,
)
from weavekit.graph.transform import edge_key

if TYPE_CHECKING:
    from weavekit.graph.store import KnowledgeGraphStore, SnapshotMaps

logger = logging.getLogger(__name__)


def _require_node(snapshot: "SnapshotMaps", node_id: str) -> WeaveNode:
    node = snapshot.nodes.get(node_id)
    if node is None:
        raise EntityDesyncError("node", node_id)
    return node


def _require_edge(snapshot: "SnapshotMaps", edge: WeaveEdge) -> WeaveEdge:
    key = edge_key(edge)
    cached = snapshot.edges.get(key)
    if cached is None:
        raise EntityDesyncError("edge", key)
    return cached


class MutationFacade:
    """Create/update/delete operations bound to one store."""

    def __init__(self, store: "KnowledgeGraphStore"):
        self._store = store

    def ensure_editable(self) -> str:
        """
        Return the active weave id, or raise if the graph cannot be edited.

        Raises:
            ReadOnlyModeError: ``aggregated_view`` when the cross-weave view
                is shown, ``no_weave_selected`` when nothing is loaded
        """
        store = self._store
        if store.weave_id and not store.read_only:
            return store.weave_id

        if store.read_only and store.weave is not None:
            reason = ReadOnlyModeError.AGGREGATED_VIEW
        else:
            reason = ReadOnlyModeError.NO_WEAVE_SELECTED
        logger.warning(f"[Mutations] Rejected edit while read-only ({reason})")
        raise ReadOnlyModeError(reason, context={"weave_id": store.weave_id})

    async def create_node(self, payload: NodeInput) -> WeaveNode:
        """Create a node and select it."""
        self.ensure_editable()
        client = self._store.client

        def resolve(snapshot, result: NodeMutationResult) -> WeaveNode:
            return _require_node(snapshot, result.node.id)

        node = await self._store.run_mutation(
            "create_node",
            lambda weave_id: client.create_node(weave_id, payload),
            resolve,
        )
        if self._store.nodes.get(node.id) is node:
            self._store.clear_selection()
            self._store.select_nodes([node.id])
        logger.info(f"[Mutations] Created node {node.id}")
        return node

    async def update_node(self, node_id: str, payload: NodeUpdateInput) -> WeaveNode:
        self.ensure_editable()
        client = self._store.client

        def resolve(snapshot, result: NodeMutationResult) -> WeaveNode:
            return _require_node(snapshot, result.node.id or node_id)

        return await self._store.run_mutation(
            "update_node",
            lambda weave_id: client.update_node(weave_id, node_id, payload),
            resolve,
        )

    async def delete_node(self, node_id: str) -> list[str]:
        """Delete a node. Returns the ids of edges the service removed with it."""
        self.ensure_editable()
        client = self._store.client

        def resolve(snapshot, result: NodeDeletionResult) -> list[str]:
            return list(result.removed_edge_ids)

        removed = await self._store.run_mutation(
            "delete_node",
            lambda weave_id: client.delete_node(weave_id, node_id),
            resolve,
        )
        logger.info(f"[Mutations] Deleted node {node_id} ({len(removed)} edges removed)")
        return removed

    async def create_edge(self, payload: EdgeInput) -> WeaveEdge:
        self.ensure_editable()
        client = self._store.client

        def resolve(snapshot, result: EdgeMutationResult) -> WeaveEdge:
            return _require_edge(snapshot, result.edge)

        edge = await self._store.run_mutation(
            "create_edge",
            lambda weave_id: client.create_edge(weave_id, payload),
            resolve,
        )
        logger.info(f"[Mutations] Created edge {edge.id} ({edge.source} -> {edge.target})")
        return edge

    async def update_edge(self, edge_id: str, payload: EdgeUpdateInput) -> WeaveEdge:
        self.ensure_editable()
        client = self._store.client

        def resolve(snapshot, result: EdgeMutationResult) -> WeaveEdge:
            return _require_edge(snapshot, result.edge)

        return await self._store.run_mutation(
            "update_edge",
            lambda weave_id: client.update_edge(weave_id, edge_id, payload),
            resolve,
        )

    async def delete_edge(self, edge_id: str) -> None:
        self.ensure_editable()
        client = self._store.client

        def resolve(snapshot, result: EdgeDeletionResult) -> None:
            return None

        await self._store.run_mutation(
            "delete_edge",
            lambda weave_id: client.delete_edge(weave_id, edge_id),
            resolve,
        )

    async def apply_layout(self, algorithm: str, options: Optional[dict[str, Any]] = None) -> Weave:
        """Ask the service to lay the weave out and adopt the repositioned snapshot."""
        self.ensure_editable()
        client = self._store.client

        def resolve(snapshot, weave: Weave) -> Weave:
            return weave

        return await self._store.run_mutation(
            "apply_layout",
            lambda weave_id: client.apply_layout(weave_id, algorithm, options),
            resolve,
            weave_of=lambda weave: weave,
        )
