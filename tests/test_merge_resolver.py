"""
Tests for the Merge Resolver.
"""

import itertools
from typing import Any

import pytest

from network_engine.ingestion.normalizer import normalize_import_data
from network_engine.knowledge.merge_resolver import MergeResolver, merge_network
from network_engine.knowledge.schemas import (
    Entity,
    ImportedData,
    ImportMode,
    Network,
    Relationship,
)


def _imported(data: dict[str, Any]) -> ImportedData:
    imported = normalize_import_data(data)
    assert imported is not None
    return imported


def _counter_ids() -> MergeResolver:
    counter = itertools.count(1)
    return MergeResolver(id_factory=lambda: f"gen-{next(counter)}")


class TestReplaceMode:
    """Replace mode discards the current contents."""

    def test_replace_substitutes_everything(
        self,
        sample_network: Network,
        import_payload: dict[str, Any],
    ) -> None:
        result = merge_network(sample_network, _imported(import_payload), ImportMode.REPLACE)

        assert [e.id for e in result.network.entities] == ["p1", "c1", "l1"]
        assert result.network.title == "Imported Network"
        assert result.network.investigation_context == {
            "topic": "Offshore structures",
            "domain": "finance",
        }
        assert result.added_entities == 3
        assert result.added_relationships == 2
        assert result.skipped_entities == 0

    def test_replace_keeps_metadata_the_import_omits(self, sample_network: Network) -> None:
        """Test that title/description/context survive when absent from the payload."""
        imported = _imported({"entities": [{"id": "z", "name": "Z"}], "relationships": []})
        result = merge_network(sample_network, imported, ImportMode.REPLACE)

        assert result.network.title == "Acme Investigation"
        assert result.network.description == "Shell company review"
        assert result.network.investigation_context == sample_network.investigation_context
        assert result.network.entity_count == 1


class TestMergeMode:
    """Merge mode unions the import into the current network."""

    def test_acme_scenario(self, sample_network: Network, acme_payload: dict[str, Any]) -> None:
        """Test name-based reuse and remapped duplicate relationships."""
        result = merge_network(sample_network, _imported(acme_payload), ImportMode.MERGE)

        assert result.added_entities == 1
        assert result.skipped_entities == 2
        assert result.added_relationships == 1
        assert result.skipped_relationships == 1
        assert result.id_mapping == {"x1": "e-acme", "x2": "e-jane"}

        names = [e.name for e in result.network.entities]
        assert names == ["Acme Corp", "Jane Doe", "First Offshore Bank", "Bob Roe"]

        new_rel = result.network.relationships[-1]
        assert new_rel.source == "x3"
        assert new_rel.target == "e-acme"

    def test_metadata_untouched(self, sample_network: Network, import_payload: dict[str, Any]) -> None:
        result = merge_network(sample_network, _imported(import_payload), ImportMode.MERGE)

        assert result.network.title == "Acme Investigation"
        assert result.network.description == "Shell company review"
        assert result.network.investigation_context == sample_network.investigation_context

    def test_current_network_not_mutated(
        self,
        sample_network: Network,
        acme_payload: dict[str, Any],
    ) -> None:
        before = sample_network.model_dump()
        merge_network(sample_network, _imported(acme_payload), ImportMode.MERGE)
        assert sample_network.model_dump() == before

    def test_colliding_entity_id_regenerated(self, sample_network: Network) -> None:
        """Test that a new entity reusing an existing id is re-identified."""
        imported = _imported(
            {
                "entities": [{"id": "e-acme", "name": "Globex", "type": "corporation"}],
                "relationships": [{"id": "r-new", "source": "e-acme", "target": "e-bank"}],
            }
        )
        result = _counter_ids().merge(sample_network, imported, ImportMode.MERGE)

        assert result.id_mapping == {"e-acme": "gen-1"}
        globex = result.network.entities[-1]
        assert globex.id == "gen-1"
        assert globex.name == "Globex"

        rel = result.network.relationships[-1]
        assert (rel.source, rel.target) == ("gen-1", "e-bank")

    def test_colliding_relationship_id_regenerated(self, sample_network: Network) -> None:
        imported = _imported(
            {
                "entities": [],
                "relationships": [{"id": "r-director", "source": "e-acme", "target": "e-bank"}],
            }
        )
        result = _counter_ids().merge(sample_network, imported, ImportMode.MERGE)

        assert result.added_relationships == 1
        assert result.network.relationships[-1].id == "gen-1"
        assert len({r.id for r in result.network.relationships}) == 2

    def test_intra_batch_name_duplicates_added_once(self, store_network: Network) -> None:
        """Test that later entities in a batch see earlier ones."""
        imported = _imported(
            {
                "entities": [
                    {"id": "a", "name": "Viktor Bout"},
                    {"id": "b", "name": "VIKTOR BOUT"},
                ],
                "relationships": [],
            }
        )
        result = merge_network(store_network, imported, ImportMode.MERGE)

        assert result.added_entities == 1
        assert result.skipped_entities == 1
        assert result.id_mapping == {"b": "a"}

    def test_symmetric_relationship_suppression(self, sample_network: Network) -> None:
        """Test that (A,B) is skipped when (B,A) already exists."""
        imported = _imported(
            {
                "entities": [],
                "relationships": [
                    {"id": "r-rev", "source": "e-acme", "target": "e-jane", "type": "employs"},
                ],
            }
        )
        result = merge_network(sample_network, imported, ImportMode.MERGE)

        assert result.added_relationships == 0
        assert result.skipped_relationships == 1
        assert result.network.relationship_count == 1

    def test_dangling_references_kept(self, sample_network: Network) -> None:
        imported = _imported(
            {
                "entities": [],
                "relationships": [{"id": "r-x", "source": "e-acme", "target": "ghost"}],
            }
        )
        result = merge_network(sample_network, imported, ImportMode.MERGE)

        assert result.added_relationships == 1
        assert result.network.relationships[-1].target == "ghost"


class TestMergeProperties:
    """Whole-operation properties of merge mode."""

    def test_merge_into_empty_equals_replace(self, import_payload: dict[str, Any]) -> None:
        imported = _imported(import_payload)
        empty = Network(title="", description="")

        merged = merge_network(empty, imported, ImportMode.MERGE).network
        replaced = merge_network(empty, imported, ImportMode.REPLACE).network

        assert merged.entities == replaced.entities
        assert merged.relationships == replaced.relationships

    def test_remerge_is_idempotent(self, sample_network: Network, import_payload: dict[str, Any]) -> None:
        """Test that merging the same import twice adds nothing the second time."""
        imported = _imported(import_payload)

        first = merge_network(sample_network, imported, ImportMode.MERGE)
        second = merge_network(first.network, imported, ImportMode.MERGE)

        assert first.added_entities == 3
        assert second.added_entities == 0
        assert second.added_relationships == 0
        assert second.skipped_entities == first.added_entities
        assert second.network.entities == first.network.entities
        assert second.network.relationships == first.network.relationships

    @pytest.mark.parametrize("order", list(itertools.permutations(range(3))))
    def test_order_independent_without_name_collisions(
        self,
        sample_network: Network,
        import_payload: dict[str, Any],
        order: tuple[int, ...],
    ) -> None:
        entities = [import_payload["entities"][i] for i in order]
        imported = _imported({"entities": entities, "relationships": []})

        result = merge_network(sample_network, imported, ImportMode.MERGE)

        assert {e.id for e in result.network.entities} == {
            "e-acme", "e-jane", "e-bank", "p1", "c1", "l1",
        }

    def test_counts_match_what_was_written(
        self,
        sample_network: Network,
        acme_payload: dict[str, Any],
    ) -> None:
        result = merge_network(sample_network, _imported(acme_payload), ImportMode.MERGE)

        assert result.network.entity_count == sample_network.entity_count + result.added_entities
        assert (
            result.network.relationship_count
            == sample_network.relationship_count + result.added_relationships
        )


@pytest.fixture
def store_network() -> Network:
    """An empty network."""
    return Network()


@pytest.fixture
def two_people() -> list[Entity]:
    return [Entity(id="a", name="A"), Entity(id="b", name="B")]


def test_resolver_accepts_prebuilt_imported_data(two_people: list[Entity]) -> None:
    """Test merging ImportedData built without the normalizer."""
    imported = ImportedData(
        entities=two_people,
        relationships=[Relationship(id="r", source="a", target="b")],
    )
    result = MergeResolver().merge(Network(), imported)

    assert result.mode is ImportMode.MERGE
    assert result.added_entities == 2
    assert result.added_relationships == 1
