"""
Unit tests for focus geometry and viewport sampling.
"""

import pytest

from weavekit.core.models import Position, SelectionState, ViewportSample, WeaveEdge, WeaveNode
from weavekit.graph.focus import ORIGIN, centroid, compute_focus, distance, resolve_focus_node_ids
from weavekit.graph.viewport import needs_segment, segment_bounds


class TestFocusGeometry:
    def test_distance_treats_missing_z_as_zero(self):
        assert distance(Position(x=0.0, y=0.0), Position(x=3.0, y=4.0, z=0.0)) == 5.0

    def test_centroid(self):
        center = centroid([Position(x=0.0, y=0.0, z=0.0), Position(x=10.0, y=0.0, z=4.0)])

        assert center == Position(x=5.0, y=0.0, z=2.0)

    def test_compute_focus_floors_radius(self):
        center, radius = compute_focus([Position(x=0.0, y=0.0, z=0.0), Position(x=10.0, y=0.0, z=0.0)])

        assert center == Position(x=5.0, y=0.0, z=0.0)
        assert radius == 20.0

    def test_compute_focus_pads_radius(self):
        _, radius = compute_focus([Position(x=0.0, y=0.0), Position(x=0.0, y=100.0)])

        assert radius == pytest.approx(80.0)

    def test_floor_applies_after_padding(self):
        _, radius = compute_focus([Position(x=0.0, y=0.0), Position(x=30.0, y=0.0)])

        assert radius == pytest.approx(24.0)

    def test_compute_focus_without_positions(self):
        assert compute_focus([]) == (ORIGIN, 60.0)

    def test_single_node_uses_minimum(self):
        center, radius = compute_focus([Position(x=7.0, y=7.0, z=7.0)], min_radius=32.0)

        assert center == Position(x=7.0, y=7.0, z=7.0)
        assert radius == 32.0


class TestFocusNodeIds:
    nodes = {"a": WeaveNode(id="a"), "b": WeaveNode(id="b"), "c": WeaveNode(id="c")}
    edges = {"e1": WeaveEdge(id="e1", source="b", target="c")}

    def test_selected_nodes_first(self):
        selection = SelectionState(nodes=("c",), edges=("e1",))

        assert resolve_focus_node_ids(selection, self.nodes, self.edges) == ["c"]

    def test_edge_endpoints(self):
        selection = SelectionState(edges=("e1", "missing"))

        assert resolve_focus_node_ids(selection, self.nodes, self.edges) == ["b", "c"]

    def test_falls_back_to_first_cached_node(self):
        assert resolve_focus_node_ids(SelectionState(), self.nodes, self.edges) == ["a"]

    def test_nothing_cached(self):
        assert resolve_focus_node_ids(SelectionState(), {}, {}) == []


class TestViewport:
    sample = ViewportSample(center=Position(x=0.0, y=0.0, z=0.0), radius=100.0)

    def test_first_sample_needs_segment(self):
        assert needs_segment(None, self.sample) is True

    def test_small_moves_do_not_reload(self):
        moved = ViewportSample(center=Position(x=30.0, y=30.0, z=0.0), radius=120.0)

        assert needs_segment(self.sample, moved) is False

    def test_large_move_reloads(self):
        moved = ViewportSample(center=Position(x=0.0, y=60.0, z=0.0), radius=100.0)

        assert needs_segment(self.sample, moved) is True

    def test_zoom_reloads(self):
        zoomed = ViewportSample(center=Position(x=0.0, y=0.0, z=0.0), radius=300.0)

        assert needs_segment(self.sample, zoomed) is True

    def test_custom_ratio(self):
        moved = ViewportSample(center=Position(x=20.0, y=0.0, z=0.0), radius=100.0)

        assert needs_segment(self.sample, moved, reload_ratio=0.1) is True

    def test_segment_bounds(self):
        bounds = segment_bounds(ViewportSample(center=Position(x=1.0, y=2.0), radius=40.0))

        assert bounds.center == Position(x=1.0, y=2.0)
        assert bounds.radius == 40.0
