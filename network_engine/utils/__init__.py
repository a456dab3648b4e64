"""
Utility modules for the network engine.

Provides logging utilities and identifier generation.
"""

from network_engine.utils.ids import generate_id, timestamp_millis
from network_engine.utils.logger import (
    LogContext,
    get_logger,
    setup_logging,
)

__all__ = [
    # Identifiers
    "generate_id",
    "timestamp_millis",
    # Logging
    "get_logger",
    "setup_logging",
    "LogContext",
]
