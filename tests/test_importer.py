"""
Tests for the Network Importer pipeline.
"""

import json
from pathlib import Path
from typing import Any

import pytest

from network_engine.ingestion.importer import NetworkImporter
from network_engine.ingestion.validator import SchemaError
from network_engine.knowledge.graph_store import GraphStore
from network_engine.knowledge.history import HistoryTracker
from network_engine.knowledge.schemas import ImportMode, MutationEvent, MutationKind


class TestImportData:
    """Decoded payload imports."""

    def test_merge_into_empty_store(
        self,
        store: GraphStore,
        importer: NetworkImporter,
        import_payload: dict[str, Any],
    ) -> None:
        report = importer.import_data(import_payload, ImportMode.MERGE)

        assert report.added_entities == 3
        assert report.added_relationships == 2
        assert report.entity_count == 3
        assert store.entity_count() == 3
        assert report.summary == "Added 3 entities and 2 relationships"

    def test_acme_scenario_through_store(
        self,
        populated_store: GraphStore,
        acme_payload: dict[str, Any],
    ) -> None:
        """Test the full pipeline against a populated store."""
        report = NetworkImporter(populated_store).import_data(acme_payload, ImportMode.MERGE)

        assert report.added_entities == 1
        assert report.skipped_entities == 2
        assert report.added_relationships == 1
        assert report.skipped_relationships == 1
        assert report.summary == (
            "Added 1 entities and 1 relationships (2 duplicate entities were skipped)"
        )
        assert populated_store.entity_count() == 4
        assert populated_store.relationship_count() == 2

    def test_replace(self, populated_store: GraphStore, import_payload: dict[str, Any]) -> None:
        report = NetworkImporter(populated_store).import_data(import_payload, ImportMode.REPLACE)

        assert report.mode is ImportMode.REPLACE
        assert populated_store.entity_count() == 3
        assert populated_store.title == "Imported Network"
        assert not populated_store.has_entity("e-acme")

    def test_invalid_payload_raises_with_all_errors(self, store: GraphStore, importer: NetworkImporter) -> None:
        with pytest.raises(SchemaError) as exc_info:
            importer.import_data({"entities": [{}], "relationships": [{}]})

        assert len(exc_info.value.errors) == 4
        assert store.entity_count() == 0

    def test_warnings_carried_into_report(self, importer: NetworkImporter) -> None:
        report = importer.import_data(
            {"entities": [{"id": "a", "name": "A"}], "relationships": []},
        )

        assert report.warnings == ['Entity "A" missing "type" field, will default to "unknown"']

    def test_single_event_per_import(
        self,
        store: GraphStore,
        importer: NetworkImporter,
        import_payload: dict[str, Any],
    ) -> None:
        """Test that observers see one atomic mutation."""
        events: list[MutationEvent] = []
        store.subscribe(events.append)

        importer.import_data(import_payload)

        assert [e.kind for e in events] == [MutationKind.REPLACE_NETWORK]

    def test_nothing_new_leaves_store_untouched(
        self,
        store: GraphStore,
        importer: NetworkImporter,
        import_payload: dict[str, Any],
    ) -> None:
        importer.import_data(import_payload)
        events: list[MutationEvent] = []
        store.subscribe(events.append)

        report = importer.import_data(import_payload)

        assert report.added_entities == 0
        assert report.skipped_entities == 3
        assert events == []

    def test_import_recorded_in_history(
        self,
        store: GraphStore,
        history: HistoryTracker,
        importer: NetworkImporter,
        import_payload: dict[str, Any],
    ) -> None:
        importer.import_data(import_payload)

        assert len(history) == 1
        assert history.entries[0].entity_count == 3


class TestImportText:
    """Raw text and file imports."""

    def test_import_text(self, importer: NetworkImporter, import_payload: dict[str, Any]) -> None:
        report = importer.import_text(json.dumps(import_payload))
        assert report.added_entities == 3

    def test_malformed_json(self, importer: NetworkImporter) -> None:
        with pytest.raises(SchemaError):
            importer.import_text("{entities: []")

    def test_import_file(
        self,
        tmp_path: Path,
        importer: NetworkImporter,
        import_payload: dict[str, Any],
    ) -> None:
        path = tmp_path / "network.json"
        path.write_text(json.dumps(import_payload))

        report = importer.import_file(path, ImportMode.REPLACE)

        assert report.entity_count == 3

    def test_import_file_too_large(
        self,
        tmp_path: Path,
        importer: NetworkImporter,
        import_payload: dict[str, Any],
    ) -> None:
        path = tmp_path / "network.json"
        path.write_text(json.dumps(import_payload))

        with pytest.raises(SchemaError) as exc_info:
            importer.import_file(path, max_bytes=10)

        assert exc_info.value.errors[0].startswith("File too large")
