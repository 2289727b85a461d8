"""
cli/core.py - Core CLI infrastructure
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
import argparse
import json
import logging

from ..store.snapshot import GraphSnapshot

logger = logging.getLogger("cli")


class OutputFormat(Enum):
    """Output format options."""
    TEXT = "text"
    JSON = "json"


@dataclass
class CommandResult:
    """Result of a CLI command execution."""

    success: bool = True
    message: str = ""
    data: Any = None
    error: Optional[str] = None
    exit_code: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": self.data,
            "error": self.error,
        }


class CLICommand(ABC):
    """Base class for CLI commands."""

    name: str = "command"
    description: str = "Base command"

    @abstractmethod
    def execute(self, args: argparse.Namespace) -> CommandResult:
        """Execute the command."""

    def configure_parser(self, parser: argparse.ArgumentParser) -> None:
        """Configure argument parser for this command."""
        parser.add_argument("snapshot", help="Path to a graph snapshot JSON file")


class CommandRegistry:
    """Registry for CLI commands."""

    def __init__(self):
        self._commands: Dict[str, CLICommand] = {}

    def register(self, command: CLICommand) -> None:
        self._commands[command.name] = command

    def get(self, name: str) -> Optional[CLICommand]:
        return self._commands.get(name)

    def list_commands(self) -> List[str]:
        return list(self._commands.keys())


def load_snapshot(path: str) -> GraphSnapshot:
    """Read and validate a snapshot file."""
    text = Path(path).read_text()
    snapshot = GraphSnapshot.from_json(text)
    logger.debug(f"Loaded snapshot {path}: {len(snapshot.nodes)} nodes")
    return snapshot


def format_output(result: CommandResult, output_format: OutputFormat) -> str:
    """Format command result for display."""
    if output_format == OutputFormat.JSON:
        return json.dumps(result.to_dict(), indent=2, default=str)

    if not result.success and result.data is None:
        return f"Error: {result.error}"

    output = result.message
    if isinstance(result.data, list):
        for row in result.data:
            output += f"\n  {row}"
    elif isinstance(result.data, dict):
        for key, value in result.data.items():
            output += f"\n  {key}: {value}"
    elif result.data:
        output += f"\n{result.data}"
    if not result.success:
        output += f"\nError: {result.error}"
    return output
