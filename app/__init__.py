"""
Investigation Network Engine - FastAPI Application.

Provides REST API endpoints for importing, editing and restoring
one in-process investigation network session.
"""

from app.config import Settings, get_settings
from app.main import app

__all__ = [
    "app",
    "get_settings",
    "Settings",
]
