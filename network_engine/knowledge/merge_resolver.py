"""
Merge Resolver - Reconcile Imports Against the Live Network.

Recognizes that an imported "ACME CORP" is the entity already on the board
as "Acme Corp", remaps identifiers so nothing collides, and skips
relationships that would duplicate an existing connection.
"""

from collections.abc import Callable

from pydantic import BaseModel, Field

from network_engine.knowledge.schemas import Entity, ImportedData, ImportMode, Network
from network_engine.utils.ids import generate_id
from network_engine.utils.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Schemas
# ============================================================================


class MergeResult(BaseModel):
    """The network produced by a merge, and exactly what it wrote."""

    network: Network = Field(..., description="Resulting network")
    mode: ImportMode = Field(...)
    added_entities: int = Field(default=0, ge=0)
    added_relationships: int = Field(default=0, ge=0)
    skipped_entities: int = Field(default=0, ge=0, description="Entities matched by name")
    skipped_relationships: int = Field(
        default=0,
        ge=0,
        description="Relationships whose endpoint pair was already connected",
    )
    id_mapping: dict[str, str] = Field(
        default_factory=dict,
        description="Imported entity id -> id in the resulting network",
    )


# ============================================================================
# Merge Resolver
# ============================================================================


class MergeResolver:
    """
    Apply an imported payload to a network without breaking identity.

    Merge mode rules:
    1. Entity names match exactly after case-folding (no fuzzy matching)
    2. A name match reuses the existing entity and remaps the imported id
    3. Colliding ids are regenerated and remapped
    4. A relationship is skipped when the network already connects the same
       unordered endpoint pair, whatever its type or label

    The resolver is pure: it never mutates the network it is given.

    Usage:
        resolver = MergeResolver()
        result = resolver.merge(store.network, imported, ImportMode.MERGE)
        store.replace_network(result.network)
    """

    def __init__(self, id_factory: Callable[[], str] = generate_id) -> None:
        """
        Initialize the Merge Resolver.

        Args:
            id_factory: Source of fresh ids for colliding entities/relationships
        """
        self.id_factory = id_factory

    def merge(
        self,
        current: Network,
        imported: ImportedData,
        mode: ImportMode = ImportMode.MERGE,
    ) -> MergeResult:
        """
        Reconcile ``imported`` against ``current``.

        Args:
            current: The live network (left untouched)
            imported: Normalized import payload
            mode: Merge into, or replace, the current network

        Returns:
            MergeResult with the resulting network and exact counts
        """
        mode = ImportMode(mode)

        if mode is ImportMode.REPLACE:
            result = self._replace(current, imported)
        else:
            result = self._merge(current, imported)

        logger.info(
            f"{mode.value.capitalize()}: +{result.added_entities} entities, "
            f"+{result.added_relationships} relationships, "
            f"{result.skipped_entities} duplicate entities skipped"
        )
        return result

    def _replace(self, current: Network, imported: ImportedData) -> MergeResult:
        """Substitute the imported data, keeping metadata the payload omits."""
        network = Network(
            title=imported.title if imported.title is not None else current.title,
            description=(
                imported.description if imported.description is not None else current.description
            ),
            entities=[e.model_copy(deep=True) for e in imported.entities],
            relationships=[r.model_copy(deep=True) for r in imported.relationships],
            investigation_context=(
                imported.investigation_context
                if imported.investigation_context is not None
                else current.investigation_context
            ),
        )

        return MergeResult(
            network=network,
            mode=ImportMode.REPLACE,
            added_entities=len(network.entities),
            added_relationships=len(network.relationships),
        )

    def _merge(self, current: Network, imported: ImportedData) -> MergeResult:
        """Union the import into the current network, skipping duplicates."""
        network = current.model_copy(deep=True)

        # Indexes over the current network
        id_by_name: dict[str, str] = {}
        for entity in network.entities:
            id_by_name.setdefault(entity.name_key, entity.id)

        existing_entity_ids = {e.id for e in network.entities}
        entity_ids = set(existing_entity_ids)
        relationship_ids = {r.id for r in network.relationships}
        connected_pairs = {r.pair for r in network.relationships}

        id_mapping: dict[str, str] = {}
        claimed: set[str] = set()
        added_entities = 0
        skipped_entities = 0

        for entity in imported.entities:
            first_occurrence = entity.id not in claimed
            claimed.add(entity.id)

            existing_id = id_by_name.get(entity.name_key)
            if existing_id is not None:
                if first_occurrence:
                    id_mapping[entity.id] = existing_id
                skipped_entities += 1
                logger.debug(f"Skipped duplicate entity '{entity.name}' -> {existing_id}")
                continue

            new_id = entity.id
            if new_id in entity_ids:
                new_id = self._fresh_id(entity_ids)
                # Only remap ids that belonged to the network before this import;
                # a repeated id inside the batch keeps pointing at its first entity.
                if first_occurrence and entity.id in existing_entity_ids:
                    id_mapping[entity.id] = new_id

            network.entities.append(_with_id(entity, new_id))
            entity_ids.add(new_id)
            id_by_name[entity.name_key] = new_id
            added_entities += 1

        added_relationships = 0
        skipped_relationships = 0

        for rel in imported.relationships:
            source = id_mapping.get(rel.source, rel.source)
            target = id_mapping.get(rel.target, rel.target)
            pair = frozenset((source, target))

            if pair in connected_pairs:
                skipped_relationships += 1
                logger.debug(f"Skipped duplicate relationship {source} <-> {target}")
                continue

            new_id = rel.id
            if new_id in relationship_ids:
                new_id = self._fresh_id(relationship_ids)

            network.relationships.append(
                rel.model_copy(update={"id": new_id, "source": source, "target": target}, deep=True)
            )
            relationship_ids.add(new_id)
            added_relationships += 1

        return MergeResult(
            network=network,
            mode=ImportMode.MERGE,
            added_entities=added_entities,
            added_relationships=added_relationships,
            skipped_entities=skipped_entities,
            skipped_relationships=skipped_relationships,
            id_mapping=id_mapping,
        )

    def _fresh_id(self, taken: set[str]) -> str:
        new_id = self.id_factory()
        while new_id in taken:
            new_id = self.id_factory()
        return new_id


def _with_id(entity: Entity, new_id: str) -> Entity:
    return entity.model_copy(update={"id": new_id}, deep=True)


def merge_network(
    current: Network,
    imported: ImportedData,
    mode: ImportMode = ImportMode.MERGE,
) -> MergeResult:
    """Convenience function: merge with a default resolver."""
    return MergeResolver().merge(current, imported, mode)

