"""
Tests for derived Graph Views.
"""

import pytest

from network_engine.knowledge.graph_views import (
    connected_components,
    entity_neighborhood,
    entity_type_counts,
    most_connected,
    network_stats,
    to_networkx,
)
from network_engine.knowledge.schemas import Entity, EntityType, Network, Relationship


@pytest.fixture
def chain() -> Network:
    """a - b - c - d chain, an isolated e, and a dangling edge d -> ghost."""
    return Network(
        title="Chain",
        entities=[
            Entity(id="a", name="A", type=EntityType.PERSON),
            Entity(id="b", name="B", type=EntityType.CORPORATION),
            Entity(id="c", name="C", type=EntityType.CORPORATION),
            Entity(id="d", name="D", type=EntityType.LOCATION),
            Entity(id="e", name="E", type=EntityType.PERSON),
        ],
        relationships=[
            Relationship(id="r1", source="a", target="b"),
            Relationship(id="r2", source="c", target="b"),
            Relationship(id="r3", source="c", target="d"),
            Relationship(id="r4", source="d", target="ghost"),
        ],
    )


class TestNetworkx:
    """Graph construction."""

    def test_placeholders_for_dangling_endpoints(self, chain: Network) -> None:
        graph = to_networkx(chain)

        assert graph.number_of_nodes() == 6
        assert graph.number_of_edges() == 4
        assert graph.nodes["ghost"]["placeholder"] is True
        assert graph.nodes["a"]["name"] == "A"


class TestNeighborhood:
    """Hop-limited sub-networks."""

    def test_one_hop(self, chain: Network) -> None:
        sub = entity_neighborhood(chain, "b", hops=1)

        assert {e.id for e in sub.entities} == {"a", "b", "c"}
        assert {r.id for r in sub.relationships} == {"r1", "r2"}

    def test_two_hops_follow_both_directions(self, chain: Network) -> None:
        sub = entity_neighborhood(chain, "a", hops=2)

        assert {e.id for e in sub.entities} == {"a", "b", "c"}

    def test_max_nodes(self, chain: Network) -> None:
        sub = entity_neighborhood(chain, "b", hops=3, max_nodes=2)

        assert len(sub.entities) == 2

    def test_unknown_entity(self, chain: Network) -> None:
        sub = entity_neighborhood(chain, "ghost")

        assert sub.entities == []
        assert sub.title == "Chain"


class TestStatistics:
    """Components, hubs and histograms."""

    def test_components(self, chain: Network) -> None:
        assert connected_components(chain) == [["a", "b", "c", "d"], ["e"]]

    def test_most_connected(self, chain: Network) -> None:
        ranked = most_connected(chain, limit=2)

        assert [(e.id, degree) for e, degree in ranked] == [("b", 2), ("c", 2)]

    def test_type_counts(self, chain: Network) -> None:
        assert entity_type_counts(chain) == {"person": 2, "corporation": 2, "location": 1}

    def test_network_stats(self, chain: Network) -> None:
        stats = network_stats(chain, top=1)

        assert stats.entity_count == 5
        assert stats.relationship_count == 4
        assert stats.orphaned_relationship_count == 1
        assert stats.component_count == 2
        assert stats.most_connected == [("b", 2)]

    def test_empty_network(self) -> None:
        stats = network_stats(Network())

        assert stats.entity_count == 0
        assert stats.component_count == 0
        assert stats.most_connected == []
