"""Shared fixtures: settings, a seeded in-memory weave service and a store bound to it."""

import pytest

from weavekit.core.config import Settings
from weavekit.graph.store import KnowledgeGraphStore

from helpers import FakeWeaveService, edge, node, weave


@pytest.fixture
def settings(tmp_path):
    """Default settings rooted in a temporary project directory."""
    return Settings(project_root=tmp_path)


@pytest.fixture
def alpha_weave():
    return weave(
        "w1",
        nodes=[node("a", 0.0), node("b", 10.0), node("c", 0.0, 10.0)],
        edges=[edge("a", "b", edge_id="e1"), edge("b", "c", "supports")],
        communities=[["a", "b"], ["c"]],
    )


@pytest.fixture
def service(alpha_weave):
    return FakeWeaveService(
        weaves=[alpha_weave, weave("w2", nodes=[node("x", 1.0)])],
        aggregated=weave(None, nodes=[node("a", 0.0), node("x", 1.0)], name="All weaves"),
    )


@pytest.fixture
def store(service, settings):
    return KnowledgeGraphStore(client=service, settings=settings)
