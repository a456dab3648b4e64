"""
Knowledge Layer - The Live Investigation Graph.

Graph store, merge resolution, undo history and derived graph views.
"""

from network_engine.knowledge.graph_store import (
    Connection,
    DuplicateIdError,
    GraphStore,
    GraphStoreError,
    NotFoundError,
)
from network_engine.knowledge.graph_views import (
    NetworkStats,
    connected_components,
    entity_neighborhood,
    network_stats,
    to_networkx,
)
from network_engine.knowledge.history import (
    HistoryAction,
    HistoryEntry,
    HistoryTracker,
    RestoreError,
    classify_transition,
)
from network_engine.knowledge.merge_resolver import MergeResolver, MergeResult, merge_network
from network_engine.knowledge.schemas import (
    Entity,
    EntityType,
    ImportedData,
    ImportMode,
    MutationEvent,
    MutationKind,
    Network,
    Relationship,
    RelationshipStatus,
    SourceType,
)

__all__ = [
    # Store
    "GraphStore",
    "Connection",
    "GraphStoreError",
    "DuplicateIdError",
    "NotFoundError",
    # Resolution
    "MergeResolver",
    "MergeResult",
    "merge_network",
    # History
    "HistoryTracker",
    "HistoryEntry",
    "HistoryAction",
    "RestoreError",
    "classify_transition",
    # Views
    "to_networkx",
    "entity_neighborhood",
    "connected_components",
    "network_stats",
    "NetworkStats",
    # Schemas
    "Entity",
    "EntityType",
    "Relationship",
    "RelationshipStatus",
    "SourceType",
    "Network",
    "ImportedData",
    "ImportMode",
    "MutationEvent",
    "MutationKind",
]
