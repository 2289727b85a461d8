"""
nodeflow Test Configuration and Fixtures

Provides stores pre-populated with the small A/B/C graphs used across the
unit tests.
"""

import pytest

from nodeflow.config import StoreConfig
from nodeflow.core.model import EdgeKind
from nodeflow.store.graph_store import ExpressionGraphStore, TypedGraphStore


@pytest.fixture
def config():
    """Explicit defaults, independent of NODEFLOW_* environment variables."""
    return StoreConfig()


@pytest.fixture
def expression_store(config):
    """
    Expression graph A("1") <- B("A" + 1) <- C("B" + 1).

    Node ids are 1, 2, 3.
    """
    store = ExpressionGraphStore(config)
    store.create_node("1", label="A", position=(0.5, 0.25))
    store.create_node('"A" + 1', label="B", position=(0.25, 0.75))
    store.create_node('"B" + 1', label="C", position=(0.75, 0.75))
    return store


@pytest.fixture
def typed_store(config):
    """
    Typed graph A=1, B=2, C=3 with increment edges A->B and B->C.

    Node ids are 1, 2, 3; edge ids are 1, 2.
    """
    store = TypedGraphStore(config)
    store.create_node(1, label="A", position=(0.5, 0.25))
    store.create_node(2, label="B", position=(0.25, 0.75))
    store.create_node(3, label="C", position=(0.75, 0.75))
    store.create_edge(1, 2, EdgeKind.INCREMENT)
    store.create_edge(2, 3, EdgeKind.INCREMENT)
    store.clear_selection()
    return store
