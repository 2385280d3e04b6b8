"""
Graph cache.

Contains:
- KnowledgeGraphStore: Reactive cache of one weave with selection and focus
- MutationFacade: Editable-mode mutations re-synchronized from server snapshots
- transform / clusters: Pure node, edge and community projections
- focus / viewport: Camera framing and viewport-driven segment decisions
- hierarchy: Explorer tree helpers over flat document/collection lists
"""

from weavekit.graph.mutations import MutationFacade
from weavekit.graph.store import KnowledgeGraphStore, build_snapshot, merge_segment

__all__ = ["KnowledgeGraphStore", "MutationFacade", "build_snapshot", "merge_segment"]
