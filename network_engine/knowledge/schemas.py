"""
Pydantic Schemas for the Knowledge Layer.

Defines entities, relationships and the investigation network aggregate.
These models are the only shapes that cross into the Graph Store.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TITLE = "Untitled Network"

# Opaque to the engine; passed through unchanged.
InvestigationContext = dict[str, Any]


class EntityType(str, Enum):
    """
    Types of entities in an investigation network.

    These are the "nodes" of the graph.
    """

    # People & Organizations
    PERSON = "person"
    CORPORATION = "corporation"
    ORGANIZATION = "organization"
    GOVERNMENT = "government"

    # Money & Property
    FINANCIAL = "financial"
    ASSET = "asset"

    # Generic
    LOCATION = "location"
    EVENT = "event"
    UNKNOWN = "unknown"


class SourceType(str, Enum):
    """Where an entity came from."""

    DOCUMENT = "document"
    WEB = "web"
    MANUAL = "manual"
    ENRICHMENT = "enrichment"


class RelationshipStatus(str, Enum):
    """Confidence status of a relationship."""

    CONFIRMED = "confirmed"
    SUSPECTED = "suspected"
    FORMER = "former"


class ImportMode(str, Enum):
    """Strategy for applying an import to the live network."""

    MERGE = "merge"
    REPLACE = "replace"


ENTITY_TYPE_VALUES = frozenset(t.value for t in EntityType)
RELATIONSHIP_STATUS_VALUES = frozenset(s.value for s in RelationshipStatus)


class Entity(BaseModel):
    """
    A node in the investigation graph.

    Identity is the ``id``; ``name`` is what merges compare (case-insensitively).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Unique entity ID within a network")
    name: str = Field(..., min_length=1, description="Display name")
    type: EntityType = Field(default=EntityType.UNKNOWN, description="Entity type")
    description: str | None = Field(default=None)
    importance: int | float | None = Field(
        default=None,
        description="Rank, 1-10 by convention; not enforced",
    )

    # Provenance
    source_type: SourceType | None = Field(default=None, description="Where this entity came from")
    source_snippet: str | None = Field(default=None, description="Supporting source text")
    created_at: datetime | None = Field(default=None)

    # Layout hint, no meaning to the engine
    x: float | None = Field(default=None)
    y: float | None = Field(default=None)

    @property
    def name_key(self) -> str:
        """Case-folded name used for duplicate detection."""
        return self.name.lower()


class Relationship(BaseModel):
    """
    A directed edge between two entities.

    Endpoints are entity ids and may dangle; see ``GraphStore.orphaned_relationships``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Unique relationship ID within a network")
    source: str = Field(..., description="Source entity ID")
    target: str = Field(..., description="Target entity ID")
    type: str | None = Field(default=None, description="Free-text relationship type")
    label: str | None = Field(default=None)
    status: RelationshipStatus | None = Field(default=None)
    strength: int | float | None = Field(default=None)
    start_date: str | None = Field(default=None, alias="startDate")
    end_date: str | None = Field(default=None, alias="endDate")

    @property
    def pair(self) -> frozenset[str]:
        """Unordered endpoint pair; the merge duplicate key."""
        return frozenset((self.source, self.target))


class Network(BaseModel):
    """
    The investigation network aggregate.

    Entities and relationships keep insertion order.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = Field(default=DEFAULT_TITLE)
    description: str = Field(default="")
    entities: list[Entity] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    investigation_context: InvestigationContext | None = Field(
        default=None,
        alias="investigationContext",
    )

    @property
    def entity_count(self) -> int:
        return len(self.entities)

    @property
    def relationship_count(self) -> int:
        return len(self.relationships)

    def to_export(self) -> dict[str, Any]:
        """Serialize to the import/export JSON shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ImportedData(BaseModel):
    """
    A normalized external payload, ready for the Merge Resolver.

    Title, description and context are None when the payload omitted them.
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str | None = Field(default=None)
    description: str | None = Field(default=None)
    entities: list[Entity] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    investigation_context: InvestigationContext | None = Field(
        default=None,
        alias="investigationContext",
    )

    @property
    def entity_count(self) -> int:
        return len(self.entities)

    @property
    def relationship_count(self) -> int:
        return len(self.relationships)


class MutationKind(str, Enum):
    """Kinds of Graph Store mutation events."""

    ADD_ENTITY = "add_entity"
    UPDATE_ENTITY = "update_entity"
    DELETE_ENTITY = "delete_entity"
    ADD_RELATIONSHIP = "add_relationship"
    UPDATE_RELATIONSHIP = "update_relationship"
    DELETE_RELATIONSHIP = "delete_relationship"
    SET_TITLE = "set_title"
    SET_DESCRIPTION = "set_description"
    SET_CONTEXT = "set_context"
    CLEAR_NETWORK = "clear_network"
    REPLACE_NETWORK = "replace_network"


class MutationEvent(BaseModel):
    """
    One completed Graph Store operation.

    The payload is JSON-safe and sufficient to replay the operation
    on another store via ``GraphStore.apply``.
    """

    kind: MutationKind = Field(...)
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
