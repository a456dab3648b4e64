"""
Network Importer - Apply External Payloads to the Live Network.

Pipeline: decode -> validate -> normalize -> merge -> one store mutation.
Every externally-sourced batch (pasted JSON, dropped files, AI extraction)
enters the store through ``NetworkImporter.apply``.
"""

from pathlib import Path
from typing import Any

from network_engine.ingestion.normalizer import decode_import_payload, normalize_import_data
from network_engine.ingestion.schemas import ImportReport, ValidationResult
from network_engine.ingestion.validator import SchemaError, validate_import_data
from network_engine.knowledge.graph_store import GraphStore
from network_engine.knowledge.merge_resolver import MergeResolver
from network_engine.knowledge.schemas import ImportedData, ImportMode
from network_engine.utils.logger import LogContext, get_logger

logger = get_logger(__name__)


class NetworkImporter:
    """
    Import JSON payloads and extraction results into a GraphStore.

    The merge is computed off to the side and written with a single
    ``replace_network`` call, so observers never see a half-applied import.

    Usage:
        importer = NetworkImporter(store)
        report = importer.import_text(path.read_text(), mode=ImportMode.MERGE)
        print(report.summary)
    """

    def __init__(
        self,
        store: GraphStore,
        resolver: MergeResolver | None = None,
    ) -> None:
        """
        Initialize the importer.

        Args:
            store: Store that receives the import
            resolver: Merge resolver (defaults to a fresh MergeResolver)
        """
        self.store = store
        self.resolver = resolver or MergeResolver()

    def validate(self, data: Any) -> ValidationResult:
        """Validate a decoded payload without importing it."""
        return validate_import_data(data)

    def import_data(self, data: Any, mode: ImportMode = ImportMode.MERGE) -> ImportReport:
        """
        Import a decoded JSON payload.

        Raises:
            SchemaError: With every validation error, if the payload is invalid
        """
        validation = validate_import_data(data)
        if not validation.is_valid:
            logger.warning(f"Import rejected: {len(validation.errors)} error(s)")
            raise SchemaError(validation.errors, validation.warnings)

        if validation.warnings:
            logger.info(f"Import has {len(validation.warnings)} warning(s)")

        imported = normalize_import_data(data)
        if imported is None:
            raise SchemaError(validation.errors or ["Invalid import data"], validation.warnings)

        return self.apply(imported, mode, warnings=validation.warnings)

    def import_text(self, text: str | bytes, mode: ImportMode = ImportMode.MERGE) -> ImportReport:
        """
        Import raw JSON text or bytes.

        Raises:
            SchemaError: If the text is not JSON or fails validation
        """
        return self.import_data(decode_import_payload(text), mode)

    def import_file(
        self,
        path: Path,
        mode: ImportMode = ImportMode.MERGE,
        max_bytes: int | None = None,
    ) -> ImportReport:
        """
        Import a JSON file from disk.

        Args:
            path: File to read
            mode: Merge or replace
            max_bytes: Optional size limit

        Raises:
            SchemaError: If the file is too large, not JSON, or invalid
        """
        size = path.stat().st_size
        if max_bytes is not None and size > max_bytes:
            raise SchemaError([f"File too large: {size} bytes (limit {max_bytes})"])

        logger.info(f"Importing {path.name} ({size} bytes, mode={ImportMode(mode).value})")
        return self.import_text(path.read_bytes(), mode)

    def apply(
        self,
        imported: ImportedData,
        mode: ImportMode = ImportMode.MERGE,
        warnings: list[str] | None = None,
        dropped_relationships: int = 0,
    ) -> ImportReport:
        """
        Reconcile a normalized payload with the store and write the result.

        Args:
            imported: Normalized payload
            mode: Merge or replace
            warnings: Validation warnings to carry into the report
            dropped_relationships: Relationships discarded before this step

        Returns:
            ImportReport with exact counts
        """
        mode = ImportMode(mode)

        with LogContext(logger, import_mode=mode.value):
            result = self.resolver.merge(self.store.network, imported, mode)

            if mode is ImportMode.MERGE and not (result.added_entities or result.added_relationships):
                logger.info("Merge found nothing new; network left unchanged")
            else:
                self.store.replace_network(result.network)

        return ImportReport(
            mode=mode,
            added_entities=result.added_entities,
            added_relationships=result.added_relationships,
            skipped_entities=result.skipped_entities,
            skipped_relationships=result.skipped_relationships,
            dropped_relationships=dropped_relationships,
            warnings=list(warnings or []),
            entity_count=self.store.entity_count(),
            relationship_count=self.store.relationship_count(),
        )
