"""
Unit tests for dependencies/trigger_log.py
"""

import json

from nodeflow.dependencies.trigger_log import TriggerEntry, TriggerLog, TriggerType


class TestTriggerLog:
    """Test TriggerLog."""

    def test_record_and_query(self):
        log = TriggerLog()
        log.record(TriggerType.NODE_CREATED, "'A' created", node_id=1)
        log.record(TriggerType.NODE_CREATED, "'B' created", node_id=2)
        log.record(TriggerType.NODE_EVALUATED, "'A' evaluated to 1", node_id=1, new_value=1.0)

        assert len(log) == 3
        assert [e.message for e in log.query(node_id=1)] == ["'A' evaluated to 1", "'A' created"]
        created = log.query(trigger_types={TriggerType.NODE_CREATED})
        assert [e.node_id for e in created] == [2, 1]

    def test_query_by_mutation(self):
        log = TriggerLog()
        log.record(TriggerType.NODE_MOVED, "moved", node_id=1, mutation_id="m1")
        log.record(TriggerType.NODE_MOVED, "moved", node_id=1, mutation_id="m2")
        assert len(log.query(mutation_id="m2")) == 1

    def test_messages_oldest_first(self):
        log = TriggerLog()
        log.record(TriggerType.NODE_CREATED, "first")
        log.record(TriggerType.NODE_CREATED, "second")
        assert log.messages() == ["first", "second"]

    def test_trims_to_max_entries(self):
        log = TriggerLog(max_entries=3)
        for i in range(5):
            log.record(TriggerType.NODE_CREATED, f"node {i}", node_id=i)
        assert len(log) == 3
        assert log.messages() == ["node 2", "node 3", "node 4"]
        assert log.query(node_id=0) == []

    def test_metadata_kept(self):
        log = TriggerLog()
        entry = log.record(TriggerType.EVALUATION_FAILED, "failed", error_code=2001)
        assert entry.metadata == {"error_code": 2001}

    def test_export_to_json(self, tmp_path):
        log = TriggerLog()
        log.record(TriggerType.NODE_MOVED, "moved", node_id=1, old_value=(0.5, 0.5), new_value=(1.0, 0.0))
        path = tmp_path / "log.json"
        assert log.export_to_json(path) == 1

        data = json.loads(path.read_text())
        assert data["entry_count"] == 1
        assert data["entries"][0]["new_value"] == [1.0, 0.0]

    def test_entry_dict_round_trip(self):
        entry = TriggerEntry(trigger_type=TriggerType.IMPULSE_APPLIED, node_id=2, message="'B' incremented to 3")
        restored = TriggerEntry.from_dict(entry.to_dict())
        assert restored.trigger_type == TriggerType.IMPULSE_APPLIED
        assert restored.timestamp == entry.timestamp
        assert restored.message == entry.message

    def test_store_mutations_share_mutation_id(self, expression_store):
        result = expression_store.edit_expression(1, "5")
        entries = expression_store.trigger_log.query(mutation_id=result.mutation_id)
        assert len(entries) == len(result.events) == 4

    def test_clear(self):
        log = TriggerLog()
        log.record(TriggerType.NODE_CREATED, "'A' created", node_id=1)
        log.clear()
        assert len(log) == 0
        assert log.query(node_id=1) == []
