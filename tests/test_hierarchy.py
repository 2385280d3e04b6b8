"""
Unit tests for the explorer tree helpers in weavekit/graph/hierarchy.py.
"""

import pytest

from weavekit.graph.hierarchy import (
    DropTarget,
    ExplorerItem,
    ExplorerState,
    ancestor_path,
    build_tree,
    descendant_ids,
    filter_with_ancestors,
    is_ancestor_of,
    resolve_drop,
)


@pytest.fixture
def items():
    """
    research/            (collection)
        notes/           (collection)
            Zeta draft
        alpha paper
        Beta paper       (tag: ml)
    inbox item
    """
    return [
        ExplorerItem(id="research", title="Research", isCollection=True),
        ExplorerItem(id="notes", title="notes", isCollection=True, parentId="research"),
        ExplorerItem(id="zeta", title="Zeta draft", parentId="notes"),
        ExplorerItem(id="beta", title="Beta paper", parentId="research", tags=["ml"]),
        ExplorerItem(id="alpha", title="alpha paper", parentId="research"),
        ExplorerItem(id="inbox", title="Inbox item"),
    ]


class TestTree:
    def test_build_tree_sorts_case_insensitively(self, items):
        assert [i.id for i in build_tree(items, "research")] == ["alpha", "beta", "notes"]
        assert [i.id for i in build_tree(items)] == ["inbox", "research"]

    def test_descendants_are_depth_first(self, items):
        assert descendant_ids(items, "research") == ["notes", "zeta", "beta", "alpha"]

    def test_documents_are_not_descended(self):
        items = [
            ExplorerItem(id="doc", title="Doc"),
            ExplorerItem(id="attachment", title="Attachment", parent_id="doc"),
        ]

        assert descendant_ids(items, "doc") == ["attachment"]
        assert descendant_ids(items, "attachment") == []

    def test_is_ancestor_of(self, items):
        assert is_ancestor_of(items, "research", "zeta") is True
        assert is_ancestor_of(items, "notes", "alpha") is False

    def test_ancestor_path(self, items):
        assert [i.id for i in ancestor_path(items, "zeta")] == ["research", "notes", "zeta"]
        assert ancestor_path(items, "unknown") == []
        assert ancestor_path(items, None) == []

    def test_ancestor_path_survives_cycles(self):
        items = [
            ExplorerItem(id="a", title="A", parent_id="b"),
            ExplorerItem(id="b", title="B", parent_id="a"),
        ]

        assert [i.id for i in ancestor_path(items, "a")] == ["b", "a"]


class TestFilter:
    def test_blank_query_returns_everything(self, items):
        assert filter_with_ancestors(items, "  ") == items

    def test_title_match_keeps_ancestors_in_input_order(self, items):
        assert [i.id for i in filter_with_ancestors(items, "ZETA")] == ["research", "notes", "zeta"]

    def test_tag_match(self, items):
        assert [i.id for i in filter_with_ancestors(items, "ml")] == ["research", "beta"]

    def test_no_match(self, items):
        assert filter_with_ancestors(items, "quantum") == []


class TestDrop:
    def test_drop_onto_collection(self, items):
        assert resolve_drop(items, "inbox", "notes") == DropTarget(item_id="inbox", parent_id="notes", position=0)

    def test_drop_onto_document_uses_sibling_index(self, items):
        assert resolve_drop(items, "inbox", "alpha") == DropTarget(item_id="inbox", parent_id="research", position=2)

    def test_drop_rejections(self, items):
        assert resolve_drop(items, "research", "zeta") is None
        assert resolve_drop(items, "alpha", "alpha") is None
        assert resolve_drop(items, "alpha", "ghost") is None
        assert resolve_drop(items, "alpha", None) is None


class TestExplorerState:
    def test_toggle_expand(self):
        state = ExplorerState()

        state.toggle_expand("research")
        assert state.expanded_ids == {"research"}

        state.toggle_expand("research")
        assert state.expanded_ids == set()

    def test_single_select_replaces(self):
        state = ExplorerState()

        state.toggle_select("a")
        state.toggle_select("b")

        assert state.selected_ids == {"b"}

    def test_multi_select_toggles(self):
        state = ExplorerState()

        state.toggle_select("a")
        state.toggle_select("b", multi=True)
        state.toggle_select("a", multi=True)

        assert state.selected_ids == {"b"}
