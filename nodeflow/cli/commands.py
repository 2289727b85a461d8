"""
cli/commands.py - CLI command implementations
"""

from __future__ import annotations
from pathlib import Path
import argparse

from ..config import get_store_config
from ..errors import NodeFlowError
from ..store.graph_store import ExpressionGraphStore, TypedGraphStore, format_value
from .core import CLICommand, CommandResult, load_snapshot


class EvaluateCommand(CLICommand):
    """Evaluate every node of an expression graph."""

    name = "evaluate"
    description = "Evaluate every node of an expression graph snapshot"

    def configure_parser(self, parser: argparse.ArgumentParser) -> None:
        super().configure_parser(parser)
        parser.add_argument("--output", "-o", help="Write the evaluated snapshot here")

    def execute(self, args: argparse.Namespace) -> CommandResult:
        try:
            store = ExpressionGraphStore.from_snapshot(load_snapshot(args.snapshot), get_store_config())
            result = store.evaluate()
            if args.output:
                store.export_json(Path(args.output))
        except (NodeFlowError, ValueError, OSError) as e:
            return CommandResult(success=False, error=str(e), exit_code=1)

        values = {}
        for node in store.list_nodes():
            failure = result.failure_for(node.id)
            values[node.label] = f"error: {failure.message}" if failure else format_value(node.value)

        return CommandResult(
            success=result.success,
            message=f"Evaluated {len(values)} nodes, {len(result.failures)} failed",
            data=values,
            error=None if result.success else f"{len(result.failures)} node(s) failed to evaluate",
            exit_code=0 if result.success else 2,
        )


class EdgesCommand(CLICommand):
    """Print the edges derived from node expressions."""

    name = "edges"
    description = "List derived edges of an expression graph snapshot"

    def execute(self, args: argparse.Namespace) -> CommandResult:
        try:
            store = ExpressionGraphStore.from_snapshot(load_snapshot(args.snapshot), get_store_config())
        except (NodeFlowError, ValueError, OSError) as e:
            return CommandResult(success=False, error=str(e), exit_code=1)

        labels = {node.id: node.label for node in store.list_nodes()}
        edges = [f"{labels[e.source]} -> {labels[e.target]}" for e in store.derived_edges()]
        graph = store.dependency_graph
        cycles = [] if graph.is_acyclic() else graph.find_cycles()

        message = f"{len(edges)} derived edges"
        if cycles:
            rendered = "; ".join(" -> ".join(labels[i] for i in cycle) for cycle in cycles)
            message += f", {len(cycles)} cycle(s): {rendered}"
        return CommandResult(success=True, message=message, data=edges)


class PropagateCommand(CLICommand):
    """Run impulse propagation on a typed-edge graph."""

    name = "propagate"
    description = "Charge nodes and step impulse propagation on a typed-edge snapshot"

    def configure_parser(self, parser: argparse.ArgumentParser) -> None:
        super().configure_parser(parser)
        parser.add_argument(
            "--charge", "-c", type=int, nargs="*", default=[],
            help="Node ids to charge before stepping",
        )
        parser.add_argument("--steps", "-n", type=int, default=1, help="Number of steps")
        parser.add_argument("--output", "-o", help="Write the resulting snapshot here")

    def execute(self, args: argparse.Namespace) -> CommandResult:
        try:
            store = TypedGraphStore.from_snapshot(load_snapshot(args.snapshot), get_store_config())
            if args.charge:
                store.charge(args.charge)

            rows = []
            for _ in range(max(0, args.steps)):
                result = store.propagate()
                step = result.propagation
                rows.append(
                    f"step {step.step_index}: impulses {step.impulses_before} -> {step.impulses_after}"
                    + (f" ({'; '.join(result.messages)})" if result.messages else " (no change)")
                )

            if args.output:
                store.export_json(Path(args.output))
        except (NodeFlowError, ValueError, OSError) as e:
            return CommandResult(success=False, error=str(e), exit_code=1)

        values = ", ".join(f"{n.label}={format_value(n.value)}" for n in store.list_nodes())
        return CommandResult(
            success=True,
            message=f"{len(rows)} step(s); values: {values}",
            data=rows,
        )
