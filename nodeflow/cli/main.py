"""
cli/main.py - nodeflow entry point
"""

from __future__ import annotations
from typing import List, Optional
import argparse
import json
import logging
import sys

from .commands import EdgesCommand, EvaluateCommand, PropagateCommand
from .core import CommandRegistry, OutputFormat, format_output

logger = logging.getLogger("cli.main")


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format for logs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:
        class JSONFormatter(logging.Formatter):
            def format(self, record):
                return json.dumps({
                    "timestamp": self.formatTime(record),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                })

        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    # Logs go to stderr; command output owns stdout
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(log_level)
    handler.set_name("nodeflow-cli")

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for existing in list(root_logger.handlers):
        if existing.get_name() == "nodeflow-cli":
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)


def build_registry() -> CommandRegistry:
    registry = CommandRegistry()
    for command in (EvaluateCommand(), EdgesCommand(), PropagateCommand()):
        registry.register(command)
    return registry


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Returns:
        Exit code
    """
    registry = build_registry()

    parser = argparse.ArgumentParser(
        prog="nodeflow",
        description="Evaluate and propagate values over dependency graphs",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level",
    )
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON")
    parser.add_argument(
        "--format", "-f",
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.TEXT.value,
        help="Output format",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    for name in registry.list_commands():
        command = registry.get(name)
        command.configure_parser(subparsers.add_parser(name, help=command.description))

    parsed = parser.parse_args(argv)
    setup_logging(level=parsed.log_level, json_format=parsed.log_json)

    command = registry.get(parsed.command)
    result = command.execute(parsed)
    print(format_output(result, OutputFormat(parsed.format)))
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
