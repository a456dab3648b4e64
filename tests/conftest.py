"""
Pytest Configuration and Fixtures.

All fixtures use REAL components - no mocks. The AI backend is the one
external collaborator; its tests stub the HTTP transport only.
"""

from typing import Any

import pytest

from network_engine.ingestion.importer import NetworkImporter
from network_engine.knowledge.graph_store import GraphStore
from network_engine.knowledge.history import HistoryTracker
from network_engine.knowledge.schemas import (
    Entity,
    EntityType,
    Network,
    Relationship,
    RelationshipStatus,
)


# ============================================================================
# Record Fixtures
# ============================================================================

@pytest.fixture
def acme() -> Entity:
    """A corporation already on the board."""
    return Entity(
        id="e-acme",
        name="Acme Corp",
        type=EntityType.CORPORATION,
        description="Holding company",
        importance=8,
    )


@pytest.fixture
def jane() -> Entity:
    """A person already on the board."""
    return Entity(id="e-jane", name="Jane Doe", type=EntityType.PERSON, importance=6)


@pytest.fixture
def bank() -> Entity:
    """A financial institution."""
    return Entity(id="e-bank", name="First Offshore Bank", type=EntityType.FINANCIAL)


@pytest.fixture
def director_of(jane: Entity, acme: Entity) -> Relationship:
    """Jane Doe -> Acme Corp."""
    return Relationship(
        id="r-director",
        source=jane.id,
        target=acme.id,
        type="director_of",
        label="Director",
        status=RelationshipStatus.CONFIRMED,
    )


@pytest.fixture
def sample_network(acme: Entity, jane: Entity, bank: Entity, director_of: Relationship) -> Network:
    """Three entities, one relationship."""
    return Network(
        title="Acme Investigation",
        description="Shell company review",
        entities=[acme, jane, bank],
        relationships=[director_of],
        investigation_context={"topic": "Acme", "keyQuestions": ["Who owns Acme?"]},
    )


# ============================================================================
# Component Fixtures
# ============================================================================

@pytest.fixture
def store() -> GraphStore:
    """An empty graph store."""
    return GraphStore()


@pytest.fixture
def populated_store(sample_network: Network) -> GraphStore:
    """A store holding the sample network."""
    return GraphStore(sample_network)


@pytest.fixture
def history(store: GraphStore) -> HistoryTracker:
    """History attached to the empty store."""
    return HistoryTracker(store)


@pytest.fixture
def importer(store: GraphStore) -> NetworkImporter:
    """Importer writing into the empty store."""
    return NetworkImporter(store)


# ============================================================================
# Payload Fixtures
# ============================================================================

@pytest.fixture
def import_payload() -> dict[str, Any]:
    """A valid import payload in the export shape."""
    return {
        "title": "Imported Network",
        "description": "From a colleague",
        "entities": [
            {"id": "p1", "name": "John Smith", "type": "person", "importance": 7},
            {"id": "c1", "name": "Shell Holdings", "type": "corporation"},
            {"id": "l1", "name": "Cayman Islands", "type": "location"},
        ],
        "relationships": [
            {"id": "r1", "source": "p1", "target": "c1", "type": "owner_of", "status": "suspected"},
            {"id": "r2", "source": "c1", "target": "l1", "type": "registered_in"},
        ],
        "investigationContext": {"topic": "Offshore structures", "domain": "finance"},
    }


@pytest.fixture
def acme_payload() -> dict[str, Any]:
    """Import that re-mentions Acme Corp and Jane Doe under other ids and casing."""
    return {
        "entities": [
            {"id": "x1", "name": "ACME CORP", "type": "corporation"},
            {"id": "x2", "name": "jane doe", "type": "person"},
            {"id": "x3", "name": "Bob Roe", "type": "person"},
        ],
        "relationships": [
            {"id": "y1", "source": "x2", "target": "x1", "type": "ceo_of"},
            {"id": "y2", "source": "x3", "target": "x1", "type": "employee_of"},
        ],
    }
