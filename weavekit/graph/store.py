"""
Knowledge graph cache store.

Holds the client-side projection of one weave (or of the aggregated
cross-weave view): node/edge/cluster maps, selection, focus signalling and
loading/error status. Every state change replaces whole values through
``_set`` so subscribers can detect changes by identity.

Concurrency:
    Each network-backed operation takes a generation number when it starts.
    Only the newest generation may apply its result or clear ``loading``;
    results of superseded requests are dropped and logged. Stale mutation
    responses still resolve the touched entity from their own snapshot so
    the caller gets an answer, but they never overwrite the cache.
"""

import itertools
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Optional

from weavekit.core.config import Settings, get_settings, load_segment_presets
from weavekit.core.exceptions import EntityDesyncError, WeaveKitError
from weavekit.core.logging_config import log_sync_end, log_sync_start
from weavekit.core.models import (
    ClusterRecord,
    EdgeInput,
    EdgeUpdateInput,
    FocusTarget,
    GraphQueryOptions,
    GraphSegment,
    NodeInput,
    NodeUpdateInput,
    PathResult,
    Position,
    SelectionState,
    ViewportSample,
    Weave,
    WeaveEdge,
    WeaveNode,
)
from weavekit.graph.clusters import build_cluster_records, cluster_lookup
from weavekit.graph.focus import compute_focus, resolve_focus_node_ids
from weavekit.graph.mutations import MutationFacade
from weavekit.graph.transform import edge_key, transform_edge, transform_node
from weavekit.graph.viewport import needs_segment, segment_bounds

logger = logging.getLogger(__name__)

Listener = Callable[["KnowledgeGraphStore"], None]


# =============================================================================
# Snapshot and merge algorithms
# =============================================================================

@dataclass(frozen=True)
class SnapshotMaps:
    """Cache maps derived from a weave or a merge."""

    nodes: dict[str, WeaveNode]
    edges: dict[str, WeaveEdge]
    clusters: list[ClusterRecord]


def build_snapshot(weave: Weave, clustering_enabled: bool) -> SnapshotMaps:
    """
    Rebuild every cache map from a full weave snapshot.

    Clusters are recomputed from the weave's communities; with clustering
    disabled no node carries a cluster id.
    """
    clusters = build_cluster_records(weave.communities) if clustering_enabled else []
    lookup = cluster_lookup(clusters)

    nodes: dict[str, WeaveNode] = {}
    for node in weave.nodes:
        nodes[node.id] = transform_node(node, lookup)

    edges: dict[str, WeaveEdge] = {}
    for edge in weave.edges:
        normalized = transform_edge(edge)
        edges[normalized.id] = normalized

    return SnapshotMaps(nodes=nodes, edges=edges, clusters=clusters)


def merge_segment(
    nodes: dict[str, WeaveNode],
    edges: dict[str, WeaveEdge],
    clusters: list[ClusterRecord],
    segment: GraphSegment,
    clustering_enabled: bool,
) -> SnapshotMaps:
    """
    Merge a partial segment into existing maps without mutating them.

    Entities are keyed by node id / edge key, so overlapping segments update
    entries in place instead of duplicating them. Cached entities outside
    the segment are kept. Cluster records are rebuilt only when the segment
    carries its own communities.
    """
    next_nodes = dict(nodes)
    next_edges = dict(edges)

    if segment.clusters is not None and clustering_enabled:
        next_clusters = build_cluster_records(segment.clusters)
    else:
        next_clusters = list(clusters)
    lookup = cluster_lookup(next_clusters)

    for node in segment.nodes:
        next_nodes[node.id] = transform_node(node, lookup, next_nodes.get(node.id))

    for edge in segment.edges:
        key = edge_key(edge)
        next_edges[key] = transform_edge(edge, next_edges.get(key))

    return SnapshotMaps(nodes=next_nodes, edges=next_edges, clusters=next_clusters)


def prune_selection(
    selection: SelectionState,
    nodes: dict[str, WeaveNode],
    edges: dict[str, WeaveEdge],
) -> SelectionState:
    """Drop selected ids that are no longer cached."""
    kept_nodes = tuple(node_id for node_id in selection.nodes if node_id in nodes)
    kept_edges = tuple(edge_id for edge_id in selection.edges if edge_id in edges)
    if kept_nodes == selection.nodes and kept_edges == selection.edges:
        return selection
    return SelectionState(nodes=kept_nodes, edges=kept_edges)


# =============================================================================
# Store
# =============================================================================

class KnowledgeGraphStore:
    """
    Client-side cache and synchronization engine for one weave.

    Args:
        client: Remote weave service (defaults to the shared WeaveAPIClient)
        settings: Settings (defaults to get_settings())
        weave_id: Start editable against this weave before any snapshot is loaded
    """

    def __init__(self, client=None, settings: Optional[Settings] = None, weave_id: Optional[str] = None):
        if client is None:
            from weavekit.api.client import get_weave_client
            client = get_weave_client()

        self.client = client
        self.settings = settings or get_settings()

        # Reactive state
        self.weave_id: Optional[str] = weave_id
        self.weave: Optional[Weave] = None
        self.nodes: dict[str, WeaveNode] = {}
        self.edges: dict[str, WeaveEdge] = {}
        self.clusters: list[ClusterRecord] = []
        self.selection = SelectionState()
        self.loading = False
        self.error: Optional[str] = None
        self.clustering_enabled = self.settings.graph.clustering_enabled
        self.available_weaves: list[Weave] = []
        self.read_only = weave_id is None
        self.last_segment_at: Optional[float] = None
        self.viewport_sample: Optional[ViewportSample] = None
        self.focus_target: Optional[FocusTarget] = None
        self.composer_node_id: Optional[str] = None

        self.mutations = MutationFacade(self)

        self._listeners: list[Listener] = []
        self._generation = 0
        self._nonces = itertools.count(1)
        self._segment_sample: Optional[ViewportSample] = None
        self._segment_presets: Optional[dict[str, Any]] = None

    # =========================================================================
    # State plumbing
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes) -> None:
        for name, value in changes.items():
            setattr(self, name, value)
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.warning(f"[GraphStore] Listener failed: {e}")

    def _begin(self, action: str, target: Optional[str]) -> int:
        self._generation += 1
        self._set(loading=True, error=None)
        log_sync_start(logger, self._generation, action, target)
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _fail(self, generation: int, action: str, error: Exception, started: float) -> None:
        message = error.message if isinstance(error, WeaveKitError) else (str(error) or f"Failed to {action}")
        log_sync_end(logger, generation, action, False, (time.monotonic() - started) * 1000)
        if self._is_current(generation):
            self._set(loading=False, error=message)
        else:
            logger.info(f"[GraphStore] Ignoring failure of superseded {action} (sync#{generation}): {message}")

    @property
    def is_editable(self) -> bool:
        return bool(self.weave_id) and not self.read_only

    def clear_error(self) -> None:
        self._set(error=None)

    # =========================================================================
    # Snapshots
    # =========================================================================

    async def initialize(self, weave_id: Optional[str] = None) -> None:
        """
        Load a weave snapshot.

        With ``weave_id`` the weave is loaded in editable mode. Without it the
        first available weave is loaded, or the read-only aggregated view
        when the user has no weaves. Resets selection.

        Raises:
            WeaveServiceError: On service failure (also recorded on ``error``)
        """
        await self._fetch_snapshot(weave_id, aggregate=False, action="initialize")

    async def refresh(self) -> None:
        """Reload the active weave, or the aggregated view when read-only."""
        if self.read_only or not self.weave_id:
            await self._fetch_snapshot(None, aggregate=True, action="refresh")
        else:
            await self._fetch_snapshot(self.weave_id, aggregate=False, action="refresh")

    async def set_active_weave(self, weave_id: Optional[str]) -> None:
        """Switch to another weave (None selects the aggregated view). The previous cache is discarded."""
        await self._fetch_snapshot(weave_id, aggregate=weave_id is None, action="set_active_weave")

    async def _resolve_available(self, requested_id: Optional[str]) -> list[Weave]:
        available = self.available_weaves
        needs_listing = not available or (
            requested_id is not None and not any(weave.id == requested_id for weave in available)
        )
        if not needs_listing:
            return available

        try:
            return await self.client.list_weaves()
        except WeaveKitError as e:
            if not available:
                raise
            logger.warning(f"[GraphStore] Weave listing failed, keeping cached listing: {e.message}")
            return available

    async def _fetch_snapshot(self, requested_id: Optional[str], aggregate: bool, action: str) -> None:
        generation = self._begin(action, requested_id)
        started = time.monotonic()

        try:
            if aggregate:
                available = self.available_weaves
                target_id = None
            else:
                available = await self._resolve_available(requested_id)
                target_id = requested_id or (available[0].id if available else None)

            if target_id:
                weave = await self.client.get_weave(target_id)
            else:
                weave = await self.client.get_aggregated_weave()
        except Exception as e:
            self._fail(generation, action, e, started)
            raise

        if not self._is_current(generation):
            logger.info(f"[GraphStore] Dropping stale {action} result (sync#{generation})")
            return

        snapshot = build_snapshot(weave, self.clustering_enabled)
        self._segment_sample = None
        self._set(
            available_weaves=available,
            read_only=target_id is None,
            weave_id=target_id,
            weave=weave,
            nodes=snapshot.nodes,
            edges=snapshot.edges,
            clusters=snapshot.clusters,
            selection=SelectionState(),
            composer_node_id=None,
            loading=False,
            error=None,
            last_segment_at=time.time(),
        )
        log_sync_end(logger, generation, action, True, (time.monotonic() - started) * 1000)
        logger.info(
            f"[GraphStore] Loaded {'aggregated view' if target_id is None else f'weave {target_id}'}: "
            f"{len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges, {len(snapshot.clusters)} clusters"
        )

    def set_clustering_enabled(self, enabled: bool) -> None:
        """Toggle clustering and reapply the held snapshot (no network call)."""
        self._set(clustering_enabled=enabled)
        if self.weave is None:
            return
        snapshot = build_snapshot(self.weave, enabled)
        self._set(
            nodes=snapshot.nodes,
            edges=snapshot.edges,
            clusters=snapshot.clusters,
            selection=prune_selection(self.selection, snapshot.nodes, snapshot.edges),
        )

    # =========================================================================
    # Segments
    # =========================================================================

    async def load_graph_segment(self, options: Optional[GraphQueryOptions] = None) -> bool:
        """
        Fetch a partial slice of the active weave and merge it into the cache.

        In read-only mode this falls back to ``refresh()``.

        Returns:
            True if the segment was merged; False when it was superseded by a
            newer request or the read-only fallback ran instead

        Raises:
            WeaveServiceError: On service failure (also recorded on ``error``)
        """
        if not self.is_editable:
            logger.info("[GraphStore] Segment requested without an editable weave, refreshing instead")
            await self.refresh()
            return False

        weave_id = self.weave_id
        generation = self._begin("load_graph_segment", weave_id)
        started = time.monotonic()

        try:
            segment = await self.client.get_graph_segment(weave_id, options or GraphQueryOptions())
        except Exception as e:
            self._fail(generation, "load_graph_segment", e, started)
            raise

        if not self._is_current(generation):
            logger.info(f"[GraphStore] Dropping stale segment (sync#{generation})")
            return False

        merged = merge_segment(self.nodes, self.edges, self.clusters, segment, self.clustering_enabled)
        self._set(
            weave=self._segment_wrapper(weave_id, segment, merged),
            nodes=merged.nodes,
            edges=merged.edges,
            clusters=merged.clusters,
            selection=prune_selection(self.selection, merged.nodes, merged.edges),
            loading=False,
            error=None,
            last_segment_at=time.time(),
        )
        log_sync_end(logger, generation, "load_graph_segment", True, (time.monotonic() - started) * 1000)
        logger.debug(
            f"[GraphStore] Merged segment: +{len(segment.nodes)} nodes, +{len(segment.edges)} edges "
            f"(cache now {len(merged.nodes)}/{len(merged.edges)})"
        )
        return True

    def _segment_wrapper(self, weave_id: str, segment: GraphSegment, merged: SnapshotMaps) -> Weave:
        nodes = list(merged.nodes.values())
        edges = list(merged.edges.values())

        if self.weave is None:
            # First load arrived as a segment
            return Weave(
                id=weave_id,
                nodes=nodes,
                edges=edges,
                metadata=dict(segment.metadata),
                communities=segment.clusters or [],
            )

        update: dict[str, Any] = {
            "nodes": nodes,
            "edges": edges,
            "metadata": {**(self.weave.metadata or {}), **segment.metadata},
        }
        if segment.clusters is not None:
            update["communities"] = segment.clusters
        return self.weave.model_copy(update=update)

    def update_viewport_sample(self, sample: ViewportSample) -> None:
        """Record the latest camera sample from the renderer."""
        self._set(viewport_sample=sample)

    async def load_segment_for_viewport(self, sample: ViewportSample, preset: str = "viewport", **overrides) -> bool:
        """
        Record a camera sample and load the segment around it if it moved enough.

        Args:
            sample: Camera sample
            preset: Name of the segment preset supplying limit/depth defaults
            **overrides: GraphQueryOptions fields overriding the preset

        Returns:
            True if a segment was loaded and merged
        """
        self.update_viewport_sample(sample)
        if not self.is_editable:
            return False
        if not needs_segment(self._segment_sample, sample, self.settings.graph.segment_reload_ratio):
            return False

        if self._segment_presets is None:
            self._segment_presets = load_segment_presets(self.settings.config_dir / "segment-presets.yaml")
        params = {**self._segment_presets.get(preset, {}), **overrides, "bounds": segment_bounds(sample)}

        applied = await self.load_graph_segment(GraphQueryOptions(**params))
        if applied:
            self._segment_sample = sample
        return applied

    # =========================================================================
    # Selection and focus
    # =========================================================================

    def select_nodes(self, node_ids: list[str]) -> None:
        """Replace the selected nodes. Unknown ids are ignored."""
        unique = [node_id for node_id in dict.fromkeys(node_ids) if node_id in self.nodes]
        if len(unique) != len(set(node_ids)):
            logger.debug("[GraphStore] Ignoring selection of uncached nodes")
        self._set(selection=replace(self.selection, nodes=tuple(unique)))

    def select_edges(self, edge_ids: list[str]) -> None:
        """Replace the selected edges. Unknown ids are ignored."""
        unique = [edge_id for edge_id in dict.fromkeys(edge_ids) if edge_id in self.edges]
        if len(unique) != len(set(edge_ids)):
            logger.debug("[GraphStore] Ignoring selection of uncached edges")
        self._set(selection=replace(self.selection, edges=tuple(unique)))

    def clear_selection(self) -> None:
        self._set(selection=SelectionState())

    def _next_focus(self, center: Position, radius: float) -> FocusTarget:
        return FocusTarget(
            center=Position(x=center.x, y=center.y, z=center.z or 0.0),
            radius=radius,
            nonce=next(self._nonces),
            requested_at=time.time(),
        )

    def focus_on_selection(self) -> FocusTarget:
        """Issue a focus target framing the current selection."""
        graph = self.settings.graph
        node_ids = resolve_focus_node_ids(self.selection, self.nodes, self.edges)
        positions = [
            self.nodes[node_id].position
            for node_id in node_ids
            if node_id in self.nodes and self.nodes[node_id].position is not None
        ]
        center, radius = compute_focus(
            positions,
            min_radius=graph.focus_min_radius,
            padding=graph.focus_padding,
            empty_radius=graph.focus_empty_radius,
        )
        target = self._next_focus(center, radius)
        self._set(focus_target=target)
        return target

    def request_focus(self, center: Position, radius: Optional[float] = None) -> FocusTarget:
        """Issue a focus target at an arbitrary point."""
        graph = self.settings.graph
        target = self._next_focus(
            center,
            max(graph.focus_min_radius, radius if radius is not None else graph.focus_default_radius),
        )
        self._set(focus_target=target)
        return target

    def acknowledge_focus(self, nonce: int) -> bool:
        """Consume the pending focus target if ``nonce`` still matches it."""
        if self.focus_target is None or self.focus_target.nonce != nonce:
            return False
        self._set(focus_target=None)
        return True

    async def select_path(self, source: str, target: str) -> PathResult:
        """Select the shortest path between two nodes (cached parts only) and focus on it."""
        result = await self.client.find_path(source, target)
        path_edges = [edge_key(edge) for edge in result.edges]
        self.select_nodes(result.path)
        self.select_edges(path_edges)
        if self.selection.nodes:
            self.focus_on_selection()
        return result

    # =========================================================================
    # Inline composer
    # =========================================================================

    def open_composer_for_node(self, node_id: str) -> Optional[FocusTarget]:
        """Open the inline composer for a node and focus the camera on it."""
        node = self.nodes.get(node_id)
        if node is None:
            logger.warning(f"[GraphStore] Attempted to open composer for missing node {node_id}")
            return None

        if node.position is None:
            self._set(composer_node_id=node_id)
            return None

        graph = self.settings.graph
        target = self._next_focus(
            node.position,
            max(graph.focus_min_radius, abs(node.importance) * graph.composer_radius_scale),
        )
        self._set(composer_node_id=node_id, focus_target=target)
        return target

    def close_composer(self) -> None:
        self._set(composer_node_id=None)

    # =========================================================================
    # Mutations (precondition checks live in MutationFacade)
    # =========================================================================

    async def run_mutation(
        self,
        action: str,
        call: Callable[[str], Awaitable[Any]],
        resolve: Callable[[SnapshotMaps, Any], Any],
        weave_of: Callable[[Any], Weave] = lambda result: result.weave,
    ) -> Any:
        """
        Run one remote mutation and resynchronize from its snapshot.

        Args:
            action: Name used in logs and default error messages
            call: Issues the remote call for the active weave id
            resolve: Picks the touched entity out of the rebuilt maps; raises
                EntityDesyncError when it is missing
            weave_of: Extracts the full weave snapshot from the response

        Returns:
            Whatever ``resolve`` returns
        """
        weave_id = self.weave_id
        generation = self._begin(action, weave_id)
        started = time.monotonic()

        try:
            result = await call(weave_id)
        except Exception as e:
            self._fail(generation, action, e, started)
            raise

        weave = weave_of(result)
        snapshot = build_snapshot(weave, self.clustering_enabled)
        current = self._is_current(generation)
        if current:
            self._set(
                weave=weave,
                nodes=snapshot.nodes,
                edges=snapshot.edges,
                clusters=snapshot.clusters,
                selection=prune_selection(self.selection, snapshot.nodes, snapshot.edges),
                loading=False,
                error=None,
                last_segment_at=time.time(),
            )
        else:
            logger.info(f"[GraphStore] Not applying superseded {action} snapshot (sync#{generation})")

        try:
            resolved = resolve(snapshot, result)
        except EntityDesyncError as e:
            logger.error(f"[GraphStore] {e.message}; a refresh is required")
            log_sync_end(logger, generation, action, False, (time.monotonic() - started) * 1000)
            if current:
                self._set(error=e.message)
            raise

        log_sync_end(logger, generation, action, True, (time.monotonic() - started) * 1000)
        return resolved

    async def create_node(self, payload: NodeInput) -> WeaveNode:
        return await self.mutations.create_node(payload)

    async def update_node(self, node_id: str, payload: NodeUpdateInput) -> WeaveNode:
        return await self.mutations.update_node(node_id, payload)

    async def delete_node(self, node_id: str) -> list[str]:
        return await self.mutations.delete_node(node_id)

    async def create_edge(self, payload: EdgeInput) -> WeaveEdge:
        return await self.mutations.create_edge(payload)

    async def update_edge(self, edge_id: str, payload: EdgeUpdateInput) -> WeaveEdge:
        return await self.mutations.update_edge(edge_id, payload)

    async def delete_edge(self, edge_id: str) -> None:
        await self.mutations.delete_edge(edge_id)

    async def apply_layout(self, algorithm: str, options: Optional[dict[str, Any]] = None) -> Weave:
        return await self.mutations.apply_layout(algorithm, options)
