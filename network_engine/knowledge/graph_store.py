"""
Graph Store - The Live Investigation Network.

Single source of truth for entities and relationships in a session.
Every mutation is a primitive operation that emits one replayable
MutationEvent to subscribed listeners (the History Tracker, the API, ...).
"""

import copy
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from network_engine.knowledge.schemas import (
    DEFAULT_TITLE,
    Entity,
    InvestigationContext,
    MutationEvent,
    MutationKind,
    Network,
    Relationship,
)
from network_engine.utils.logger import get_logger

logger = get_logger(__name__)

Listener = Callable[[MutationEvent], None]


class GraphStoreError(Exception):
    """Raised when graph store operations fail."""

    pass


class DuplicateIdError(GraphStoreError):
    """Raised when adding an item whose id already exists."""

    def __init__(self, kind: str, item_id: str) -> None:
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind.capitalize()} '{item_id}' already exists")


class NotFoundError(GraphStoreError):
    """Raised when updating or deleting an item that does not exist."""

    def __init__(self, kind: str, item_id: str) -> None:
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind.capitalize()} '{item_id}' not found")


@dataclass
class Connection:
    """A relationship seen from one of its endpoints."""

    relationship: Relationship
    other_id: str
    other: Entity | None
    direction: str  # "outgoing" or "incoming"

    @property
    def is_orphaned(self) -> bool:
        """True when the far endpoint does not resolve to an entity."""
        return self.other is None


class GraphStore:
    """
    In-memory store for one investigation network.

    Provides:
    - Add/update/delete for entities and relationships
    - Whole-network replace and clear
    - Title, description and investigation context setters
    - Mutation events for observers, and replay of those events
    - Derived reads (connections, orphans) computed from current state

    Deleting an entity does not delete relationships that reference it;
    those relationships are reported by ``orphaned_relationships``.

    Usage:
        store = GraphStore()
        unsubscribe = store.subscribe(print)
        store.add_entity(entity)
        store.add_relationship(relationship)
        connections = store.connections(entity.id)
    """

    def __init__(self, network: Network | None = None) -> None:
        """
        Initialize the graph store.

        Args:
            network: Optional initial contents (no event is emitted for it)
        """
        self._title: str = DEFAULT_TITLE
        self._description: str = ""
        self._context: InvestigationContext | None = None
        self._entities: dict[str, Entity] = {}
        self._relationships: dict[str, Relationship] = {}
        self._listeners: list[Listener] = []

        if network is not None:
            self._load(network)

    # =========================================================================
    # Observers
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called after every mutation.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: MutationKind, payload: dict[str, Any] | None = None) -> MutationEvent:
        event = MutationEvent(kind=kind, payload=payload or {})
        for listener in list(self._listeners):
            listener(event)
        return event

    # =========================================================================
    # Reads
    # =========================================================================

    @property
    def network(self) -> Network:
        """Independent deep copy of the current network."""
        return Network(
            title=self._title,
            description=self._description,
            entities=[e.model_copy(deep=True) for e in self._entities.values()],
            relationships=[r.model_copy(deep=True) for r in self._relationships.values()],
            investigation_context=copy.deepcopy(self._context),
        )

    @property
    def title(self) -> str:
        return self._title

    @property
    def description(self) -> str:
        return self._description

    @property
    def investigation_context(self) -> InvestigationContext | None:
        return copy.deepcopy(self._context)

    @property
    def entities(self) -> list[Entity]:
        return [e.model_copy(deep=True) for e in self._entities.values()]

    @property
    def relationships(self) -> list[Relationship]:
        return [r.model_copy(deep=True) for r in self._relationships.values()]

    def entity_count(self) -> int:
        """Get total number of entities."""
        return len(self._entities)

    def relationship_count(self) -> int:
        """Get total number of relationships."""
        return len(self._relationships)

    def has_entity(self, entity_id: str) -> bool:
        return entity_id in self._entities

    def has_relationship(self, relationship_id: str) -> bool:
        return relationship_id in self._relationships

    def get_entity(self, entity_id: str) -> Entity | None:
        """
        Get an entity by ID.

        Returns:
            A copy of the entity, or None if not found
        """
        entity = self._entities.get(entity_id)
        return entity.model_copy(deep=True) if entity else None

    def get_relationship(self, relationship_id: str) -> Relationship | None:
        """Get a relationship by ID, or None if not found."""
        relationship = self._relationships.get(relationship_id)
        return relationship.model_copy(deep=True) if relationship else None

    def find_entities_by_name(self, name: str, fuzzy: bool = False) -> list[Entity]:
        """
        Find entities by name (case-insensitive).

        Args:
            name: Name to search for
            fuzzy: Whether to do substring matching

        Returns:
            List of matching entities in insertion order
        """
        needle = name.lower()
        results: list[Entity] = []

        for entity in self._entities.values():
            key = entity.name_key
            match = needle in key if fuzzy else needle == key
            if match:
                results.append(entity.model_copy(deep=True))

        return results

    def connections(self, entity_id: str, direction: str = "both") -> list[Connection]:
        """
        Get the relationships touching an entity.

        Args:
            entity_id: Entity to look around
            direction: "outgoing", "incoming" or "both"

        Returns:
            Connections in relationship insertion order
        """
        if direction not in ("outgoing", "incoming", "both"):
            raise ValueError(f"Invalid direction: {direction}")

        results: list[Connection] = []

        for rel in self._relationships.values():
            if rel.source == entity_id and direction in ("outgoing", "both"):
                other_id = rel.target
                results.append(
                    Connection(
                        relationship=rel.model_copy(deep=True),
                        other_id=other_id,
                        other=self.get_entity(other_id),
                        direction="outgoing",
                    )
                )
            elif rel.target == entity_id and direction in ("incoming", "both"):
                other_id = rel.source
                results.append(
                    Connection(
                        relationship=rel.model_copy(deep=True),
                        other_id=other_id,
                        other=self.get_entity(other_id),
                        direction="incoming",
                    )
                )

        return results

    def orphaned_relationships(self) -> list[Relationship]:
        """Relationships with a source or target that is not a known entity."""
        return [
            rel.model_copy(deep=True)
            for rel in self._relationships.values()
            if rel.source not in self._entities or rel.target not in self._entities
        ]

    def export(self) -> dict[str, Any]:
        """Serialize the current network to the import/export JSON shape."""
        return self.network.to_export()

    # =========================================================================
    # Entity operations
    # =========================================================================

    def add_entity(self, entity: Entity) -> Entity:
        """
        Add an entity.

        Raises:
            DuplicateIdError: If the id is already present
        """
        if entity.id in self._entities:
            raise DuplicateIdError("entity", entity.id)

        stored = entity.model_copy(deep=True)
        self._entities[stored.id] = stored

        logger.debug(f"Added entity: {stored.name} ({stored.type.value})")
        self._emit(MutationKind.ADD_ENTITY, {"entity": stored.model_dump(mode="json")})
        return stored.model_copy(deep=True)

    def add_entities(self, entities: list[Entity]) -> list[Entity]:
        """Add multiple entities."""
        return [self.add_entity(e) for e in entities]

    def update_entity(self, entity_id: str, **changes: Any) -> Entity:
        """
        Apply a partial patch to an entity.

        Raises:
            NotFoundError: If the entity does not exist
            GraphStoreError: If the patch renames the entity or has unknown fields
        """
        current = self._entities.get(entity_id)
        if current is None:
            raise NotFoundError("entity", entity_id)

        updated = _patched(current, changes, "entity")
        self._entities[entity_id] = updated

        logger.debug(f"Updated entity {entity_id}: {sorted(changes)}")
        self._emit(
            MutationKind.UPDATE_ENTITY,
            {"id": entity_id, "changes": updated.model_dump(mode="json", include=set(changes))},
        )
        return updated.model_copy(deep=True)

    def delete_entity(self, entity_id: str) -> Entity:
        """
        Delete an entity. Relationships referencing it are kept.

        Raises:
            NotFoundError: If the entity does not exist
        """
        if entity_id not in self._entities:
            raise NotFoundError("entity", entity_id)

        removed = self._entities.pop(entity_id)

        dangling = sum(
            1 for r in self._relationships.values() if entity_id in (r.source, r.target)
        )
        if dangling:
            logger.info(f"Deleted entity {entity_id}; {dangling} relationship(s) now orphaned")
        else:
            logger.debug(f"Deleted entity {entity_id}")

        self._emit(MutationKind.DELETE_ENTITY, {"id": entity_id})
        return removed

    # =========================================================================
    # Relationship operations
    # =========================================================================

    def add_relationship(self, relationship: Relationship) -> Relationship:
        """
        Add a relationship. Unknown endpoints are tolerated and logged.

        Raises:
            DuplicateIdError: If the id is already present
        """
        if relationship.id in self._relationships:
            raise DuplicateIdError("relationship", relationship.id)

        for endpoint in (relationship.source, relationship.target):
            if endpoint not in self._entities:
                logger.warning(
                    f"Relationship {relationship.id} references unknown entity {endpoint}"
                )

        stored = relationship.model_copy(deep=True)
        self._relationships[stored.id] = stored

        logger.debug(f"Added relationship: {stored.source} --[{stored.type or 'related'}]--> {stored.target}")
        self._emit(
            MutationKind.ADD_RELATIONSHIP,
            {"relationship": stored.model_dump(mode="json", by_alias=True)},
        )
        return stored.model_copy(deep=True)

    def add_relationships(self, relationships: list[Relationship]) -> list[Relationship]:
        """Add multiple relationships."""
        return [self.add_relationship(r) for r in relationships]

    def update_relationship(self, relationship_id: str, **changes: Any) -> Relationship:
        """
        Apply a partial patch to a relationship.

        Raises:
            NotFoundError: If the relationship does not exist
            GraphStoreError: If the patch renames it or has unknown fields
        """
        current = self._relationships.get(relationship_id)
        if current is None:
            raise NotFoundError("relationship", relationship_id)

        updated = _patched(current, changes, "relationship")
        self._relationships[relationship_id] = updated

        logger.debug(f"Updated relationship {relationship_id}: {sorted(changes)}")
        self._emit(
            MutationKind.UPDATE_RELATIONSHIP,
            {"id": relationship_id, "changes": updated.model_dump(mode="json", include=set(changes))},
        )
        return updated.model_copy(deep=True)

    def delete_relationship(self, relationship_id: str) -> Relationship:
        """
        Delete a relationship.

        Raises:
            NotFoundError: If the relationship does not exist
        """
        if relationship_id not in self._relationships:
            raise NotFoundError("relationship", relationship_id)

        removed = self._relationships.pop(relationship_id)
        logger.debug(f"Deleted relationship {relationship_id}")
        self._emit(MutationKind.DELETE_RELATIONSHIP, {"id": relationship_id})
        return removed

    # =========================================================================
    # Network-level operations
    # =========================================================================

    def set_title(self, title: str) -> None:
        self._title = title
        self._emit(MutationKind.SET_TITLE, {"title": title})

    def set_description(self, description: str) -> None:
        self._description = description
        self._emit(MutationKind.SET_DESCRIPTION, {"description": description})

    def set_investigation_context(self, context: InvestigationContext | None) -> None:
        self._context = copy.deepcopy(context)
        self._emit(MutationKind.SET_CONTEXT, {"investigation_context": copy.deepcopy(context)})

    def clear_network(self) -> None:
        """Reset to an empty, untitled network."""
        self._title = DEFAULT_TITLE
        self._description = ""
        self._context = None
        self._entities = {}
        self._relationships = {}

        logger.info("Cleared network")
        self._emit(MutationKind.CLEAR_NETWORK)

    def replace_network(self, network: Network) -> None:
        """
        Replace the whole network in one step.

        Observers see a single REPLACE_NETWORK event, never a partial state.

        Raises:
            DuplicateIdError: If the new network repeats an entity or relationship id
        """
        self._load(network)

        logger.info(
            f"Replaced network ({self.entity_count()} entities, "
            f"{self.relationship_count()} relationships)"
        )
        self._emit(
            MutationKind.REPLACE_NETWORK,
            {"network": network.model_dump(mode="json", by_alias=True)},
        )

    def _load(self, network: Network) -> None:
        entities: dict[str, Entity] = {}
        for entity in network.entities:
            if entity.id in entities:
                raise DuplicateIdError("entity", entity.id)
            entities[entity.id] = entity.model_copy(deep=True)

        relationships: dict[str, Relationship] = {}
        for rel in network.relationships:
            if rel.id in relationships:
                raise DuplicateIdError("relationship", rel.id)
            relationships[rel.id] = rel.model_copy(deep=True)

        self._title = network.title
        self._description = network.description
        self._context = copy.deepcopy(network.investigation_context)
        self._entities = entities
        self._relationships = relationships

    # =========================================================================
    # Replay
    # =========================================================================

    def apply(self, event: MutationEvent) -> None:
        """
        Re-apply a mutation event produced by this or another store.

        Raises:
            GraphStoreError: If the event kind is not recognized
        """
        kind = event.kind
        payload = event.payload

        if kind is MutationKind.ADD_ENTITY:
            self.add_entity(Entity.model_validate(payload["entity"]))
        elif kind is MutationKind.UPDATE_ENTITY:
            self.update_entity(payload["id"], **payload["changes"])
        elif kind is MutationKind.DELETE_ENTITY:
            self.delete_entity(payload["id"])
        elif kind is MutationKind.ADD_RELATIONSHIP:
            self.add_relationship(Relationship.model_validate(payload["relationship"]))
        elif kind is MutationKind.UPDATE_RELATIONSHIP:
            self.update_relationship(payload["id"], **payload["changes"])
        elif kind is MutationKind.DELETE_RELATIONSHIP:
            self.delete_relationship(payload["id"])
        elif kind is MutationKind.SET_TITLE:
            self.set_title(payload["title"])
        elif kind is MutationKind.SET_DESCRIPTION:
            self.set_description(payload["description"])
        elif kind is MutationKind.SET_CONTEXT:
            self.set_investigation_context(payload["investigation_context"])
        elif kind is MutationKind.CLEAR_NETWORK:
            self.clear_network()
        elif kind is MutationKind.REPLACE_NETWORK:
            self.replace_network(Network.model_validate(payload["network"]))
        else:
            raise GraphStoreError(f"Cannot replay event kind: {kind}")


def _patched(model: Entity | Relationship, changes: dict[str, Any], kind: str) -> Any:
    """Validate ``changes`` over ``model`` and return the patched copy."""
    if "id" in changes and changes["id"] != model.id:
        raise GraphStoreError(f"Cannot change {kind} id '{model.id}' through an update")

    unknown = set(changes) - set(type(model).model_fields)
    if unknown:
        raise GraphStoreError(f"Unknown {kind} fields: {', '.join(sorted(unknown))}")

    data = model.model_dump()
    data.update(changes)
    return type(model).model_validate(data)
