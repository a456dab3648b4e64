"""
Pydantic Schemas for the Ingestion Layer.

Shapes produced while turning an external payload into network records.
Nothing here touches the live network.
"""

from pydantic import BaseModel, Field

from network_engine.knowledge.schemas import ImportMode


class ValidationStats(BaseModel):
    """Counts gathered while validating an import payload."""

    entities: int = Field(default=0, ge=0)
    relationships: int = Field(default=0, ge=0)
    entity_types: dict[str, int] = Field(
        default_factory=dict,
        description="Histogram of valid entity types",
    )


class ValidationResult(BaseModel):
    """
    Outcome of schema validation.

    Errors are fatal and block normalization. Warnings describe fields
    that will be defaulted or tolerated.
    """

    is_valid: bool = Field(..., description="True when there are no errors")
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    stats: ValidationStats = Field(default_factory=ValidationStats)


class ImportReport(BaseModel):
    """What an import did to the live network."""

    mode: ImportMode = Field(...)
    added_entities: int = Field(default=0, ge=0)
    added_relationships: int = Field(default=0, ge=0)
    skipped_entities: int = Field(default=0, ge=0)
    skipped_relationships: int = Field(default=0, ge=0)
    dropped_relationships: int = Field(
        default=0,
        ge=0,
        description="Extraction relationships whose endpoints could not be resolved",
    )
    warnings: list[str] = Field(default_factory=list)
    entity_count: int = Field(default=0, ge=0, description="Entities after the import")
    relationship_count: int = Field(default=0, ge=0, description="Relationships after the import")

    @property
    def summary(self) -> str:
        """Human-readable one-liner, e.g. for a toast or CLI."""
        text = (
            f"Added {self.added_entities} entities and "
            f"{self.added_relationships} relationships"
        )
        if self.skipped_entities:
            text += f" ({self.skipped_entities} duplicate entities were skipped)"
        return text
