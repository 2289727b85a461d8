"""
cli/ - Command Line Interface

Commands operate on graph snapshot JSON files:
- evaluate: evaluate every node of an expression graph
- edges: list derived edges and reference cycles
- propagate: charge nodes and step impulse propagation
"""

from .core import (
    CLICommand,
    CommandRegistry,
    CommandResult,
    OutputFormat,
    format_output,
    load_snapshot,
)
from .commands import (
    EdgesCommand,
    EvaluateCommand,
    PropagateCommand,
)
from .main import main, setup_logging

__all__ = [
    # Core
    "CLICommand",
    "CommandRegistry",
    "CommandResult",
    "OutputFormat",
    "format_output",
    "load_snapshot",
    # Commands
    "EdgesCommand",
    "EvaluateCommand",
    "PropagateCommand",
    # Entry point
    "main",
    "setup_logging",
]
