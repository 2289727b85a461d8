"""
nodeflow Trigger Log

Audit trail of graph mutations, evaluations and impulse propagation.

Every entry carries a one-line human message ("'B' incremented to 3",
"label: A -> Z") alongside structured fields, so the same records feed a
visible activity log and programmatic queries.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Set
import json
import logging
import uuid

logger = logging.getLogger(__name__)


# =============================================================================
# TRIGGER TYPES
# =============================================================================

class TriggerType(Enum):
    """Type of trigger event."""
    NODE_CREATED = "node_created"
    NODE_RENAMED = "node_renamed"
    NODE_MOVED = "node_moved"
    NODE_DELETED = "node_deleted"
    EXPRESSION_EDITED = "expression_edited"
    EXPRESSION_REWRITTEN = "expression_rewritten"   # Rename rewrote a reference
    NODE_EVALUATED = "node_evaluated"
    EVALUATION_FAILED = "evaluation_failed"
    VALUE_ADJUSTED = "value_adjusted"               # Manual increment/decrement
    EDGE_CREATED = "edge_created"
    EDGE_UPDATED = "edge_updated"
    EDGE_DELETED = "edge_deleted"
    IMPULSE_APPLIED = "impulse_applied"
    IMPULSES_RESET = "impulses_reset"
    GENERATION_STEP = "generation_step"


# =============================================================================
# TRIGGER ENTRY
# =============================================================================

@dataclass
class TriggerEntry:
    """A single entry in the trigger log."""
    entry_id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    trigger_type: TriggerType = TriggerType.NODE_EVALUATED

    # Subject
    node_id: Optional[int] = None
    edge_id: Optional[int] = None
    label: Optional[str] = None

    # Values
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None

    message: str = ""
    source: str = "unknown"

    # Mutation this entry belongs to
    mutation_id: Optional[str] = None

    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize entry to dict."""
        return {
            "entry_id": self.entry_id,
            "timestamp": self.timestamp.isoformat(),
            "trigger_type": self.trigger_type.value,
            "node_id": self.node_id,
            "edge_id": self.edge_id,
            "label": self.label,
            "old_value": _serialize_value(self.old_value),
            "new_value": _serialize_value(self.new_value),
            "message": self.message,
            "source": self.source,
            "mutation_id": self.mutation_id,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TriggerEntry":
        """Load entry from dict."""
        return cls(
            entry_id=data.get("entry_id", str(uuid.uuid4())[:12]),
            timestamp=(
                datetime.fromisoformat(data["timestamp"])
                if data.get("timestamp") else datetime.now(timezone.utc)
            ),
            trigger_type=TriggerType(data.get("trigger_type", "node_evaluated")),
            node_id=data.get("node_id"),
            edge_id=data.get("edge_id"),
            label=data.get("label"),
            old_value=data.get("old_value"),
            new_value=data.get("new_value"),
            message=data.get("message", ""),
            source=data.get("source", "unknown"),
            mutation_id=data.get("mutation_id"),
            metadata=data.get("metadata", {}),
        )


def _serialize_value(value: Any) -> Any:
    """Serialize a value for JSON storage."""
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple, dict)):
        try:
            json.dumps(value)
            return list(value) if isinstance(value, tuple) else value
        except (TypeError, ValueError):
            return str(value)
    return str(value)


# =============================================================================
# TRIGGER LOG
# =============================================================================

class TriggerLog:
    """Bounded, queryable audit trail."""

    DEFAULT_MAX_ENTRIES = 10000

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self._entries: List[TriggerEntry] = []
        self._max_entries = max_entries

        # Index for fast lookup
        self._by_node: Dict[int, List[TriggerEntry]] = {}

    def log(self, entry: TriggerEntry) -> TriggerEntry:
        """Add an entry to the log."""
        self._entries.append(entry)

        if entry.node_id is not None:
            self._by_node.setdefault(entry.node_id, []).append(entry)

        if entry.message:
            logger.debug(entry.message)

        if len(self._entries) > self._max_entries:
            self._trim_entries()

        return entry

    def record(
        self,
        trigger_type: TriggerType,
        message: str,
        node_id: Optional[int] = None,
        edge_id: Optional[int] = None,
        label: Optional[str] = None,
        old_value: Any = None,
        new_value: Any = None,
        source: str = "GraphStore",
        mutation_id: Optional[str] = None,
        **metadata: Any,
    ) -> TriggerEntry:
        """Convenience method building and logging an entry."""
        return self.log(TriggerEntry(
            trigger_type=trigger_type,
            node_id=node_id,
            edge_id=edge_id,
            label=label,
            old_value=old_value,
            new_value=new_value,
            message=message,
            source=source,
            mutation_id=mutation_id,
            metadata=metadata,
        ))

    def query(
        self,
        node_id: Optional[int] = None,
        trigger_types: Optional[Set[TriggerType]] = None,
        mutation_id: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[TriggerEntry]:
        """
        Query the trigger log.

        Returns:
            Matching entries, newest first
        """
        if node_id is not None:
            entries = self._by_node.get(node_id, [])
        else:
            entries = self._entries

        filtered = []
        for entry in reversed(entries):
            if since and entry.timestamp < since:
                continue
            if trigger_types and entry.trigger_type not in trigger_types:
                continue
            if mutation_id and entry.mutation_id != mutation_id:
                continue

            filtered.append(entry)
            if len(filtered) >= limit:
                break

        return filtered

    def messages(self) -> List[str]:
        """All messages, oldest first."""
        return [e.message for e in self._entries if e.message]

    def export_to_json(self, path: Path, limit: int = 10000) -> int:
        """
        Export log entries to a JSON file.

        Returns:
            Number of entries exported
        """
        entries = list(reversed(self.query(limit=limit)))

        data = {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "entry_count": len(entries),
            "entries": [e.to_dict() for e in entries],
        }

        with open(path, "w") as f:
            json.dump(data, f, indent=2)

        logger.info(f"Exported {len(entries)} trigger log entries to {path}")
        return len(entries)

    def _trim_entries(self) -> None:
        """Trim to max entries."""
        trim_count = len(self._entries) - self._max_entries
        if trim_count <= 0:
            return

        self._entries = self._entries[trim_count:]

        self._by_node.clear()
        for entry in self._entries:
            if entry.node_id is not None:
                self._by_node.setdefault(entry.node_id, []).append(entry)

        logger.debug(f"Trimmed {trim_count} trigger log entries")

    def clear(self) -> None:
        """Clear all entries."""
        self._entries.clear()
        self._by_node.clear()

    def __len__(self) -> int:
        return len(self._entries)
