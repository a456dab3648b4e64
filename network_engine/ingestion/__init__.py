"""
Ingestion Layer - Getting Outside Data Into the Network.

Schema validation, normalization, AI extraction and the import pipeline.
"""

from network_engine.ingestion.extraction import (
    ExtractionBatch,
    ExtractionClient,
    ExtractionClientError,
    ExtractionOutput,
    extraction_to_imported,
)
from network_engine.ingestion.importer import NetworkImporter
from network_engine.ingestion.normalizer import decode_import_payload, normalize_import_data
from network_engine.ingestion.schemas import ImportReport, ValidationResult, ValidationStats
from network_engine.ingestion.validator import SchemaError, validate_import_data

__all__ = [
    # Validation
    "validate_import_data",
    "SchemaError",
    "ValidationResult",
    "ValidationStats",
    # Normalization
    "decode_import_payload",
    "normalize_import_data",
    # Import
    "NetworkImporter",
    "ImportReport",
    # Extraction
    "ExtractionClient",
    "ExtractionClientError",
    "ExtractionOutput",
    "ExtractionBatch",
    "extraction_to_imported",
]
