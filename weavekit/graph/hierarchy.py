"""
Hierarchical explorer helpers.

Operates on the flat item list the collections service returns
(documents and collections linked by ``parent_id``) and answers the tree
questions the explorer needs: children, descendants, breadcrumbs, search
filtering and drag-and-drop resolution.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class ExplorerItem(BaseModel):
    """A document or collection in the explorer tree."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    title: str
    slug: str = ""
    strand_type: str = Field(default="document", alias="strandType")
    is_collection: bool = Field(default=False, alias="isCollection")
    parent_id: Optional[str] = Field(default=None, alias="parentId")
    tags: list[str] = Field(default_factory=list)
    child_count: Optional[int] = Field(default=None, alias="childCount")
    depth: int = 0
    summary: Optional[str] = None


@dataclass(frozen=True)
class DropTarget:
    """Where a dragged item should be moved."""

    item_id: str
    parent_id: Optional[str]
    position: int


def build_tree(items: list[ExplorerItem], parent_id: Optional[str] = None) -> list[ExplorerItem]:
    """Direct children of ``parent_id`` sorted by title, case-insensitively."""
    children = [item for item in items if item.parent_id == parent_id]
    return sorted(children, key=lambda item: item.title.casefold())


def descendant_ids(items: list[ExplorerItem], parent_id: str) -> list[str]:
    """All ids below ``parent_id``, depth first. Only collections are descended into."""
    result: list[str] = []
    seen = {parent_id}

    def walk(current: str) -> None:
        for child in items:
            if child.parent_id != current or child.id in seen:
                continue
            seen.add(child.id)
            result.append(child.id)
            if child.is_collection:
                walk(child.id)

    walk(parent_id)
    return result


def is_ancestor_of(items: list[ExplorerItem], ancestor_id: str, descendant_id: str) -> bool:
    return descendant_id in descendant_ids(items, ancestor_id)


def ancestor_path(items: list[ExplorerItem], item_id: Optional[str]) -> list[ExplorerItem]:
    """Breadcrumb from the root down to ``item_id`` (inclusive). Empty for unknown ids."""
    by_id = {item.id: item for item in items}
    path: list[ExplorerItem] = []
    visited: set[str] = set()

    current = by_id.get(item_id) if item_id else None
    while current is not None and current.id not in visited:
        visited.add(current.id)
        path.append(current)
        current = by_id.get(current.parent_id) if current.parent_id else None

    path.reverse()
    return path


def filter_with_ancestors(items: list[ExplorerItem], query: str) -> list[ExplorerItem]:
    """
    Items matching ``query`` plus every ancestor needed to reach them.

    An item matches when its title or one of its tags contains the query,
    ignoring case. Input order is kept. A blank query returns all items.
    """
    needle = (query or "").strip().casefold()
    if not needle:
        return list(items)

    by_id = {item.id: item for item in items}
    keep: set[str] = set()

    for item in items:
        if needle in item.title.casefold() or any(needle in tag.casefold() for tag in item.tags):
            keep.add(item.id)
            parent_id = item.parent_id
            while parent_id and parent_id not in keep:
                keep.add(parent_id)
                parent = by_id.get(parent_id)
                parent_id = parent.parent_id if parent else None

    return [item for item in items if item.id in keep]


def resolve_drop(items: list[ExplorerItem], active_id: str, over_id: Optional[str]) -> Optional[DropTarget]:
    """
    Resolve a drag-and-drop gesture into a move.

    Dropping onto a collection moves the item into it at position 0;
    dropping onto a document places it next to that document (same parent,
    at the document's index among its siblings).

    Returns:
        The move to perform, or None when the drop is rejected (no target,
        dropped onto itself, unknown items, or into its own subtree)
    """
    if over_id is None or active_id == over_id:
        return None

    by_id = {item.id: item for item in items}
    active = by_id.get(active_id)
    over = by_id.get(over_id)
    if active is None or over is None:
        return None

    if is_ancestor_of(items, active_id, over_id):
        logger.debug(f"[Explorer] Rejected drop of {active_id} into its own descendant {over_id}")
        return None

    if over.is_collection:
        return DropTarget(item_id=active_id, parent_id=over.id, position=0)

    siblings = [item.id for item in items if item.parent_id == over.parent_id]
    return DropTarget(item_id=active_id, parent_id=over.parent_id, position=siblings.index(over.id))


@dataclass
class ExplorerState:
    """Expanded and selected ids of one explorer view."""

    expanded_ids: set[str] = field(default_factory=set)
    selected_ids: set[str] = field(default_factory=set)
    focused_id: Optional[str] = None
    search_query: str = ""

    def toggle_expand(self, item_id: str) -> None:
        if item_id in self.expanded_ids:
            self.expanded_ids.discard(item_id)
        else:
            self.expanded_ids.add(item_id)

    def toggle_select(self, item_id: str, multi: bool = False) -> None:
        """With ``multi`` toggle ``item_id`` in the selection; otherwise select only it."""
        selected = set(self.selected_ids) if multi else set()
        if item_id in selected:
            selected.discard(item_id)
        else:
            selected.add(item_id)
        self.selected_ids = selected
