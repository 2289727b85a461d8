"""
nodeflow Dependency & Propagation Engine

Provides:
- derive_edges / DependencyGraph: edges derived from node expressions
- ImpulsePropagator: typed-edge impulse stepping
- GenerationalPropagator: depth-by-depth walk over derived edges
- TriggerLog: audit trail for mutations
"""

from .graph import (
    DependencyGraph,
    derive_edges,
)
from .propagation import (
    GenerationStep,
    GenerationalPropagator,
    ImpulseApplication,
    ImpulsePropagator,
    PropagationStep,
    PropagatorState,
    unique,
)
from .trigger_log import (
    TriggerEntry,
    TriggerLog,
    TriggerType,
)

__all__ = [
    # Graph
    "DependencyGraph",
    "derive_edges",
    # Propagation
    "GenerationStep",
    "GenerationalPropagator",
    "ImpulseApplication",
    "ImpulsePropagator",
    "PropagationStep",
    "PropagatorState",
    "unique",
    # Trigger Log
    "TriggerEntry",
    "TriggerLog",
    "TriggerType",
]
