"""Identifier helpers shared by the store, resolver and normalizer."""

import time
from uuid import uuid4


def timestamp_millis() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def generate_id() -> str:
    """
    Generate a fresh entity/relationship identifier.

    Format is ``<millis>-<9 hex chars>``; unique within a session.
    """
    return f"{timestamp_millis()}-{uuid4().hex[:9]}"
