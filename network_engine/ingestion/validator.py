"""
Schema Validator - Check Import Payloads Before They Become Records.

Inspects an arbitrary decoded JSON value against the network export shape.
Collects every problem in one pass: errors are fatal, warnings describe
fields that will be defaulted, dropped, or tolerated downstream.
"""

from collections.abc import Mapping
from typing import Any

from network_engine.ingestion.schemas import ValidationResult, ValidationStats
from network_engine.knowledge.schemas import ENTITY_TYPE_VALUES


class SchemaError(Exception):
    """
    Raised when an import payload is structurally unusable.

    Carries the complete list of errors so callers can show them all at once.
    """

    def __init__(self, errors: list[str], warnings: list[str] | None = None) -> None:
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        message = self.errors[0] if self.errors else "Invalid import data"
        if len(self.errors) > 1:
            message += f" (and {len(self.errors) - 1} more errors)"
        super().__init__(message)


def _is_text(value: Any) -> bool:
    """Non-empty string, the same test the export format relies on."""
    return isinstance(value, str) and bool(value)


def _invalid(errors: list[str]) -> ValidationResult:
    return ValidationResult(is_valid=False, errors=errors, warnings=[], stats=ValidationStats())


def validate_import_data(data: Any) -> ValidationResult:
    """
    Validate a decoded import payload.

    Never mutates ``data``.

    Args:
        data: Any decoded JSON value

    Returns:
        ValidationResult with all errors, warnings and stats
    """
    if not isinstance(data, Mapping):
        return _invalid(["Invalid JSON: Expected an object with entities and relationships"])

    errors: list[str] = []
    warnings: list[str] = []

    entities = data.get("entities")
    relationships = data.get("relationships")

    if not isinstance(entities, list):
        errors.append('Missing or invalid "entities" array')
    if not isinstance(relationships, list):
        errors.append('Missing or invalid "relationships" array')

    if errors:
        return _invalid(errors)

    for key in ("title", "description"):
        if key in data and data[key] is not None and not isinstance(data[key], str):
            warnings.append(f'"{key}" is not a string and will be ignored')

    context = data.get("investigationContext")
    if context is not None and not isinstance(context, Mapping):
        warnings.append('"investigationContext" is not an object and will be ignored')

    entity_types: dict[str, int] = {}
    entity_ids: set[str] = set()

    # Entities
    for index, entity in enumerate(entities):
        if not isinstance(entity, Mapping):
            errors.append(f"Entity at index {index} is not an object")
            continue

        entity_id = entity.get("id")
        if not _is_text(entity_id):
            errors.append(f'Entity at index {index} missing required "id" field')
        else:
            if entity_id in entity_ids:
                warnings.append(f'Duplicate entity ID: "{entity_id}"')
            entity_ids.add(entity_id)

        name = entity.get("name")
        if not _is_text(name):
            errors.append(f'Entity at index {index} missing required "name" field')

        label = name if _is_text(name) else index
        entity_type = entity.get("type")
        if not _is_text(entity_type):
            warnings.append(f'Entity "{label}" missing "type" field, will default to "unknown"')
        elif entity_type not in ENTITY_TYPE_VALUES:
            warnings.append(
                f'Entity "{label}" has invalid type "{entity_type}", will default to "unknown"'
            )
        else:
            entity_types[entity_type] = entity_types.get(entity_type, 0) + 1

    # Relationships
    relationship_ids: set[str] = set()

    for index, rel in enumerate(relationships):
        if not isinstance(rel, Mapping):
            errors.append(f"Relationship at index {index} is not an object")
            continue

        rel_id = rel.get("id")
        if not _is_text(rel_id):
            warnings.append(f'Relationship at index {index} missing "id" field, will be auto-generated')
        else:
            if rel_id in relationship_ids:
                warnings.append(f'Duplicate relationship ID: "{rel_id}", will be auto-generated')
            relationship_ids.add(rel_id)

        for endpoint in ("source", "target"):
            value = rel.get(endpoint)
            if not _is_text(value):
                errors.append(f'Relationship at index {index} missing required "{endpoint}" field')
            elif value not in entity_ids:
                warnings.append(
                    f'Relationship at index {index} references unknown {endpoint} entity: "{value}"'
                )

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        stats=ValidationStats(
            entities=len(entities),
            relationships=len(relationships),
            entity_types=entity_types,
        ),
    )
