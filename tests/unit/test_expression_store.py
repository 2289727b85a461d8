"""
Unit tests for ExpressionGraphStore

Tests the mutation contract of expression-mode graphs: creation, rename
rewriting, expression edits with downstream propagation, deletion, cycles
and generation stepping.
"""

import pytest

from nodeflow.config import StoreConfig
from nodeflow.core.model import DerivedEdge, Position
from nodeflow.dependencies.trigger_log import TriggerType
from nodeflow.errors import (
    ErrorCode,
    GraphStoreError,
    MalformedExpressionError,
    UnknownIdError,
)
from nodeflow.store.graph_store import ExpressionGraphStore, Selection, format_value
from nodeflow.store.snapshot import GraphSnapshot


def values_by_label(store):
    return {node.label: node.value for node in store.list_nodes()}


class TestFormatValue:

    def test_integral_values_drop_fraction(self):
        assert format_value(2.0) == "2"
        assert format_value(-3.0) == "-3"

    def test_fractional_values(self):
        assert format_value(2.5) == "2.5"


class TestCreateNode:
    """Test ExpressionGraphStore.create_node."""

    def test_chain_values(self, expression_store):
        assert values_by_label(expression_store) == {"A": 1.0, "B": 2.0, "C": 3.0}

    def test_ids_increase_and_are_not_reused(self, config):
        store = ExpressionGraphStore(config)
        first = store.create_node("1").node_id
        second = store.create_node("2").node_id
        store.delete_node(second)
        third = store.create_node("3").node_id
        assert (first, second, third) == (1, 2, 3)

    def test_defaults(self, config):
        store = ExpressionGraphStore(config)
        result = store.create_node()
        node = store.get_node(result.node_id)
        assert node.label == "New node"
        assert node.expression == "1"
        assert node.value == 1.0
        assert node.position == Position(0.5, 0.5)

    def test_numeric_initial_value(self, config):
        store = ExpressionGraphStore(config)
        node = store.get_node(store.create_node(2.5, label="X").node_id)
        assert node.expression == "2.5"
        assert node.value == 2.5

    def test_selects_new_node(self, expression_store):
        assert expression_store.selected == Selection("node", 3)

    def test_snapshot_edges(self, expression_store):
        result = expression_store.create_node('"C" * 2', label="D")
        edges = {(e.source, e.target) for e in result.snapshot.edges}
        assert edges == {(1, 2), (2, 3), (3, 4)}
        assert result.snapshot.node(4).value == 6.0

    def test_failing_expression_keeps_default(self, config):
        store = ExpressionGraphStore(config)
        result = store.create_node('"Missing" + 1', label="X")
        assert not result.success
        assert result.failures[0].code == ErrorCode.REF_UNRESOLVED
        assert store.get_node(result.node_id).value == config.default_value

    def test_label_with_delimiter_rejected(self, config):
        store = ExpressionGraphStore(config)
        with pytest.raises(GraphStoreError):
            store.create_node("1", label='a"b')
        assert len(store) == 0

    def test_position_clamped(self, config):
        store = ExpressionGraphStore(config)
        result = store.create_node("1", position=(1.5, -0.2))
        assert store.get_node(result.node_id).position == Position(1.0, 0.0)

    def test_position_rejected_without_clamping(self):
        store = ExpressionGraphStore(StoreConfig(clamp_positions=False))
        with pytest.raises(GraphStoreError):
            store.create_node("1", position=(1.5, 0.5))
        assert len(store) == 0


class TestRenameNode:
    """Test ExpressionGraphStore.rename_node."""

    def test_rewrites_referencing_expressions(self, expression_store):
        result = expression_store.rename_node(1, "Alpha")
        assert expression_store.get_node(1).label == "Alpha"
        assert expression_store.get_node(2).expression == '"Alpha" + 1'
        assert "label: A -> Alpha" in result.messages

    def test_topology_preserved(self, expression_store):
        before = expression_store.list_edges()
        expression_store.rename_node(2, "Beta")
        assert expression_store.list_edges() == before
        assert expression_store.list_edges() == [DerivedEdge(1, 2), DerivedEdge(2, 3)]

    def test_values_not_reevaluated(self, expression_store):
        expression_store.rename_node(1, "Z")
        assert values_by_label(expression_store) == {"Z": 1.0, "B": 2.0, "C": 3.0}

    def test_only_exact_references_rewritten(self, config):
        store = ExpressionGraphStore(config)
        store.create_node("1", label="A")
        store.create_node("2", label="AB")
        store.create_node('"A" + "AB"', label="C")
        store.rename_node(1, "X")
        assert store.get_node(3).expression == '"X" + "AB"'

    def test_rewrite_recorded(self, expression_store):
        result = expression_store.rename_node(2, "Beta")
        rewritten = [e for e in result.events if e.trigger_type == TriggerType.EXPRESSION_REWRITTEN]
        assert len(rewritten) == 1
        assert rewritten[0].node_id == 3
        assert rewritten[0].new_value == '"Beta" + 1'

    def test_same_label_is_noop(self, expression_store):
        result = expression_store.rename_node(1, "A")
        assert result.events == []

    def test_unknown_id(self, expression_store):
        with pytest.raises(UnknownIdError):
            expression_store.rename_node(99, "X")

    def test_delimiter_rejected(self, expression_store):
        with pytest.raises(GraphStoreError):
            expression_store.rename_node(1, 'A"')
        assert expression_store.get_node(1).label == "A"

    def test_label_in_use_rejected(self, config):
        """Taking another node's label would redirect the rewritten references."""
        store = ExpressionGraphStore(config)
        store.create_node("1", label="A")
        store.create_node("2", label="B")
        store.create_node('"B" + 1', label="C")
        before = store.snapshot()

        with pytest.raises(GraphStoreError):
            store.rename_node(2, "A")

        assert store.snapshot() == before
        assert store.list_edges() == [DerivedEdge(2, 3)]
        assert store.resolve(3) == 3.0


class TestEditExpression:
    """Test ExpressionGraphStore.edit_expression."""

    def test_propagates_downstream(self, expression_store):
        result = expression_store.edit_expression(1, "10")
        assert values_by_label(expression_store) == {"A": 10.0, "B": 11.0, "C": 12.0}
        assert result.success
        assert "'C' evaluated to 12" in result.messages

    def test_without_propagation(self):
        store = ExpressionGraphStore(StoreConfig(propagate_on_edit=False))
        store.create_node("1", label="A")
        store.create_node('"A" + 1', label="B")
        store.edit_expression(1, "10")
        assert values_by_label(store) == {"A": 10.0, "B": 2.0}
        store.evaluate()
        assert values_by_label(store) == {"A": 10.0, "B": 11.0}

    def test_adds_and_removes_edges(self, expression_store):
        expression_store.edit_expression(3, '"A" * 5')
        assert expression_store.list_edges() == [DerivedEdge(1, 2), DerivedEdge(1, 3)]
        assert expression_store.get_node(3).value == 5.0

    def test_failure_keeps_value(self, expression_store):
        result = expression_store.edit_expression(2, '"A" +')
        assert not result.success
        failure = result.failure_for(2)
        assert failure.code == ErrorCode.EXP_MALFORMED
        assert expression_store.get_node(2).value == 2.0
        assert expression_store.get_node(2).expression == '"A" +'
        assert expression_store.last_failure(2) is failure

    def test_creating_cycle(self, expression_store):
        result = expression_store.edit_expression(1, '"C" + 1')
        assert not result.success
        codes = {f.node_id: f.code for f in result.failures}
        assert codes[1] == ErrorCode.DEP_CYCLIC
        assert result.failure_for(1).related == ["A", "C", "B", "A"]
        assert values_by_label(expression_store) == {"A": 1.0, "B": 2.0, "C": 3.0}
        assert not expression_store.dependency_graph.is_acyclic()

    def test_breaking_cycle_recovers(self, expression_store):
        expression_store.edit_expression(1, '"C" + 1')
        result = expression_store.edit_expression(1, "5")
        assert result.success
        assert values_by_label(expression_store) == {"A": 5.0, "B": 6.0, "C": 7.0}
        assert expression_store.last_failure(1) is None

    def test_deep_nesting_reported_as_failure(self, expression_store):
        """Deeply nested arithmetic fails inside the mutation, not out of it."""
        deep = "(" * 400 + "1" + ")" * 400
        result = expression_store.edit_expression(1, deep)

        assert result.failure_for(1).code == ErrorCode.EXP_MALFORMED
        assert expression_store.get_node(1).value == 1.0
        assert expression_store.edit_expression(1, "4").success
        assert values_by_label(expression_store) == {"A": 4.0, "B": 5.0, "C": 6.0}

    def test_unknown_id_changes_nothing(self, expression_store):
        before = expression_store.snapshot()
        with pytest.raises(UnknownIdError):
            expression_store.edit_expression(42, "1")
        assert expression_store.snapshot() == before


class TestDeleteNode:
    """Test ExpressionGraphStore.delete_node."""

    def test_removes_incident_edges(self, expression_store):
        result = expression_store.delete_node(1)
        assert 1 not in expression_store
        assert expression_store.list_edges() == [DerivedEdge(2, 3)]
        assert result.events[0].metadata["removed_edges"] == [{"source": 1, "target": 2}]

    def test_dangling_reference_reported_on_evaluate(self, expression_store):
        expression_store.delete_node(1)
        assert expression_store.get_node(2).value == 2.0

        result = expression_store.evaluate(2)
        failure = result.failure_for(2)
        assert failure.code == ErrorCode.REF_UNRESOLVED
        assert failure.related == ["A"]
        assert expression_store.get_node(2).value == 2.0

    def test_clears_selection(self, expression_store):
        expression_store.delete_node(3)
        assert expression_store.selected is None

    def test_unknown_id(self, expression_store):
        with pytest.raises(UnknownIdError):
            expression_store.delete_node(7)
        assert len(expression_store) == 3


class TestEvaluate:
    """Test ExpressionGraphStore.evaluate."""

    def test_long_chain(self):
        nodes = [{"id": 1, "label": "n0", "x": 0.5, "y": 0.5, "value": 0.0, "expression": "1"}]
        for i in range(1, 1200):
            nodes.append({
                "id": i + 1, "label": f"n{i}", "x": 0.5, "y": 0.5,
                "value": 0.0, "expression": f'"n{i - 1}" + 1',
            })
        store = ExpressionGraphStore.from_snapshot(GraphSnapshot.from_dict({"nodes": nodes}))

        result = store.evaluate()
        assert result.success
        assert store.get_node(1200).value == 1200.0

        result = store.edit_expression(1, "101")
        assert result.success
        assert store.get_node(1200).value == 1300.0

    def test_evaluate_all_in_dependency_order(self, config):
        store = ExpressionGraphStore(config)
        store.create_node('"B" + 1', label="C")
        store.create_node('"A" + 1', label="B")
        store.create_node("1", label="A")
        result = store.evaluate()
        assert result.success
        assert values_by_label(store) == {"C": 3.0, "B": 2.0, "A": 1.0}

    def test_resolve_raises_directly(self, expression_store):
        assert expression_store.resolve(3) == 3.0
        expression_store.edit_expression(1, "1 / 0")
        with pytest.raises(MalformedExpressionError) as exc_info:
            expression_store.resolve(3)
        assert exc_info.value.code == ErrorCode.EXP_DIVISION_BY_ZERO

    def test_evaluation_events(self, expression_store):
        result = expression_store.evaluate(3)
        assert [e.trigger_type for e in result.events] == [TriggerType.NODE_EVALUATED]


class TestMoveAndSelect:
    """Test move_node and selection."""

    def test_move(self, expression_store):
        result = expression_store.move_node(1, (0.1, 0.9))
        assert expression_store.get_node(1).position == Position(0.1, 0.9)
        assert result.events[0].metadata["was_clamped"] is False

    def test_move_clamps(self, expression_store):
        result = expression_store.move_node(1, {"x": -1.0, "y": 2.0})
        assert expression_store.get_node(1).position == Position(0.0, 1.0)
        assert result.events[0].metadata["was_clamped"] is True

    def test_move_does_not_evaluate(self, expression_store):
        result = expression_store.move_node(2, (0.2, 0.2))
        assert [e.trigger_type for e in result.events] == [TriggerType.NODE_MOVED]

    def test_select_and_clear(self, expression_store):
        expression_store.select_node(1)
        assert expression_store.selected == Selection("node", 1)
        assert expression_store.snapshot().selected.id == 1
        expression_store.select_node(None)
        assert expression_store.selected is None

    def test_select_unknown(self, expression_store):
        with pytest.raises(UnknownIdError):
            expression_store.select_node(99)


class TestStepGeneration:
    """Test ExpressionGraphStore.step_generation."""

    def test_steps_then_wraps(self, expression_store):
        first = expression_store.step_generation(1)
        assert first.generation.node_ids == [2]
        assert first.generation.depth == 1

        second = expression_store.step_generation()
        assert second.generation.node_ids == [3]

        third = expression_store.step_generation()
        assert third.generation.wrapped
        assert third.generation.node_ids == [1]
        assert expression_store.generation_depth == 0

    def test_reevaluates_generation(self):
        store = ExpressionGraphStore(StoreConfig(propagate_on_edit=False))
        store.create_node("1", label="A")
        store.create_node('"A" + 1', label="B")
        store.create_node('"B" + 1', label="C")
        store.edit_expression(1, "5")
        assert store.get_node(2).value == 2.0

        result = store.step_generation(1)
        assert result.generation.node_ids == [2]
        assert store.get_node(2).value == 6.0
        assert store.get_node(3).value == 3.0

        store.step_generation()
        assert store.get_node(3).value == 7.0

    def test_new_root_restarts(self, expression_store):
        expression_store.step_generation(1)
        result = expression_store.step_generation(2)
        assert result.generation.depth == 1
        assert expression_store.generation_root == 2

    def test_requires_root(self, expression_store):
        with pytest.raises(GraphStoreError):
            expression_store.step_generation()

    def test_deleting_root_clears_walk(self, expression_store):
        expression_store.step_generation(1)
        expression_store.delete_node(1)
        assert expression_store.generation_root is None
