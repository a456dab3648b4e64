"""
Investigation Network Engine - Source Package.

This package contains the core functionality for:
- Validating and normalizing imported network JSON
- Merging imports into the live entity/relationship graph
- Snapshot history with restore
- AI extraction results routed through the same merge path
"""

from network_engine.ingestion import (
    ExtractionClient,
    ImportReport,
    NetworkImporter,
    SchemaError,
    normalize_import_data,
    validate_import_data,
)
from network_engine.knowledge import (
    Entity,
    GraphStore,
    HistoryTracker,
    ImportMode,
    MergeResolver,
    Network,
    Relationship,
)

__all__ = [
    # Ingestion
    "validate_import_data",
    "normalize_import_data",
    "NetworkImporter",
    "ImportReport",
    "SchemaError",
    "ExtractionClient",
    # Knowledge
    "GraphStore",
    "MergeResolver",
    "HistoryTracker",
    "Entity",
    "Relationship",
    "Network",
    "ImportMode",
]
