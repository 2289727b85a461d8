"""
config.py - Store configuration

Defaults for both graph stores, overridable from NODEFLOW_* environment
variables.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
import os

logger = logging.getLogger(__name__)


# =============================================================================
# STORE CONFIG
# =============================================================================

@dataclass
class StoreConfig:
    """Configuration shared by ExpressionGraphStore and TypedGraphStore."""

    # Character that opens and closes a label reference inside an expression
    reference_delimiter: str = '"'

    # Re-resolve every transitive dependent after an expression edit
    propagate_on_edit: bool = True

    # Out-of-range positions are clamped into [0, 1]; rejected when False
    clamp_positions: bool = True

    # Value given to a node whose initial expression fails to evaluate
    default_value: float = 0.0

    # Trigger log bound
    max_log_entries: int = 10000

    def __post_init__(self):
        if len(self.reference_delimiter) != 1:
            raise ValueError(
                f"reference_delimiter must be a single character, got {self.reference_delimiter!r}"
            )

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """Create store configuration from environment variables."""
        return cls(
            reference_delimiter=os.getenv("NODEFLOW_REFERENCE_DELIMITER", '"'),
            propagate_on_edit=os.getenv(
                "NODEFLOW_PROPAGATE_ON_EDIT", "true"
            ).lower() == "true",
            clamp_positions=os.getenv(
                "NODEFLOW_CLAMP_POSITIONS", "true"
            ).lower() == "true",
            default_value=float(os.getenv("NODEFLOW_DEFAULT_VALUE", "0.0")),
            max_log_entries=int(os.getenv("NODEFLOW_MAX_LOG_ENTRIES", "10000")),
        )


# =============================================================================
# DEFAULT CONFIGURATION
# =============================================================================

DEFAULT_STORE_CONFIG = StoreConfig.from_env()


def get_store_config() -> StoreConfig:
    """Get the default store configuration."""
    return DEFAULT_STORE_CONFIG


def set_store_config(config: StoreConfig) -> None:
    """Set the default store configuration."""
    global DEFAULT_STORE_CONFIG
    DEFAULT_STORE_CONFIG = config
    logger.debug(f"Default store config replaced: {config}")
