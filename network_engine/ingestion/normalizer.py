"""
Import Normalizer - Reshape a Validated Payload into Network Records.

Pure transformation of one external payload: fills defaults, coerces
enums, generates missing ids. Never looks at the live network.
"""

import copy
import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from network_engine.ingestion.validator import SchemaError, validate_import_data
from network_engine.knowledge.schemas import (
    ENTITY_TYPE_VALUES,
    RELATIONSHIP_STATUS_VALUES,
    Entity,
    EntityType,
    ImportedData,
    Relationship,
    RelationshipStatus,
    SourceType,
)
from network_engine.utils.logger import get_logger

logger = get_logger(__name__)


def decode_import_payload(data: str | bytes) -> Any:
    """
    Decode JSON text (or UTF-8 bytes, BOM tolerated) into a Python value.

    Raises:
        SchemaError: If the text is not valid JSON
    """
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8-sig")
        return json.loads(data)
    except UnicodeDecodeError as e:
        raise SchemaError([f"Invalid file encoding: {e}"]) from e
    except json.JSONDecodeError as e:
        raise SchemaError([f"Invalid JSON syntax: {e.msg} (line {e.lineno}, column {e.colno})"]) from e
    except RecursionError as e:
        raise SchemaError(["Invalid JSON: nesting too deep"]) from e


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _number(value: Any) -> int | float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _normalize_entity(raw: Mapping[str, Any], index: int, millis: int, now: datetime) -> Entity:
    entity_id = raw.get("id")
    if not isinstance(entity_id, str) or not entity_id:
        entity_id = f"imported-{millis}-{index}"

    entity_type = raw.get("type")
    if not isinstance(entity_type, str) or entity_type not in ENTITY_TYPE_VALUES:
        entity_type = EntityType.UNKNOWN.value

    return Entity(
        id=entity_id,
        name=raw["name"],
        type=EntityType(entity_type),
        description=_text(raw.get("description")),
        importance=_number(raw.get("importance")),
        source_type=SourceType.MANUAL,
        source_snippet=_text(raw.get("source_snippet")),
        created_at=now,
        x=_number(raw.get("x")),
        y=_number(raw.get("y")),
    )


def _normalize_relationship(raw: Mapping[str, Any], rel_id: str) -> Relationship:
    status = raw.get("status")
    if not isinstance(status, str) or status not in RELATIONSHIP_STATUS_VALUES:
        status = RelationshipStatus.CONFIRMED.value

    return Relationship(
        id=rel_id,
        source=raw["source"],
        target=raw["target"],
        type=_text(raw.get("type")),
        label=_text(raw.get("label")),
        status=RelationshipStatus(status),
        strength=_number(raw.get("strength")),
        start_date=_text(raw.get("startDate")),
        end_date=_text(raw.get("endDate")),
    )


def normalize_import_data(data: Any, now: datetime | None = None) -> ImportedData | None:
    """
    Turn a raw payload into canonical records.

    Args:
        data: Decoded JSON value
        now: Timestamp for ``created_at`` and generated ids (defaults to now)

    Returns:
        ImportedData, or None if the payload fails validation
    """
    validation = validate_import_data(data)
    if not validation.is_valid:
        return None

    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)

    entities: list[Entity] = []
    seen_entity_ids: set[str] = set()

    for index, raw in enumerate(data["entities"]):
        entity = _normalize_entity(raw, index, millis, now)
        if entity.id in seen_entity_ids:
            # First occurrence wins
            logger.debug(f"Dropped duplicate entity id {entity.id} at index {index}")
            continue
        seen_entity_ids.add(entity.id)
        entities.append(entity)

    relationships: list[Relationship] = []
    seen_relationship_ids: set[str] = set()

    for index, raw in enumerate(data["relationships"]):
        rel_id = raw.get("id")
        if not isinstance(rel_id, str) or not rel_id or rel_id in seen_relationship_ids:
            rel_id = f"imported-rel-{millis}-{index}"
        seen_relationship_ids.add(rel_id)
        relationships.append(_normalize_relationship(raw, rel_id))

    context = data.get("investigationContext")

    imported = ImportedData(
        title=_text(data.get("title")),
        description=_text(data.get("description")),
        entities=entities,
        relationships=relationships,
        investigation_context=copy.deepcopy(dict(context)) if isinstance(context, Mapping) else None,
    )

    logger.debug(
        f"Normalized import: {imported.entity_count} entities, "
        f"{imported.relationship_count} relationships"
    )
    return imported
