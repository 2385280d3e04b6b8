"""Community → cluster projection."""

from collections.abc import Iterable, Sequence

from weavekit.core.models import ClusterRecord


def build_cluster_records(communities: Iterable[Sequence[str]] = ()) -> list[ClusterRecord]:
    """
    Turn server communities into cluster records.

    Ids are ``cluster-<n>`` by 1-based position in the community list, so the
    same community list always yields the same ids. Duplicate members within
    a community are collapsed, keeping first-seen order.
    """
    return [
        ClusterRecord(id=f"cluster-{index}", node_ids=tuple(dict.fromkeys(node_ids)))
        for index, node_ids in enumerate(communities or (), start=1)
    ]


def cluster_lookup(clusters: Iterable[ClusterRecord]) -> dict[str, str]:
    """Map node id → cluster id. A node listed in several clusters keeps the last one."""
    lookup: dict[str, str] = {}
    for cluster in clusters:
        for node_id in cluster.node_ids:
            lookup[node_id] = cluster.id
    return lookup
