"""
Graph Views - Derived Reads over a Network Snapshot.

Everything here is a pure function of a Network: build a NetworkX graph,
walk it, and hand back plain records. Nothing is cached between calls.
"""

from collections import Counter

import networkx as nx
from pydantic import BaseModel, Field

from network_engine.knowledge.schemas import Entity, Network
from network_engine.utils.logger import get_logger

logger = get_logger(__name__)


class NetworkStats(BaseModel):
    """Summary figures for a network."""

    entity_count: int = Field(default=0, ge=0)
    relationship_count: int = Field(default=0, ge=0)
    orphaned_relationship_count: int = Field(default=0, ge=0)
    component_count: int = Field(default=0, ge=0, description="Weakly connected components")
    entity_types: dict[str, int] = Field(default_factory=dict)
    most_connected: list[tuple[str, int]] = Field(
        default_factory=list,
        description="(entity id, degree) pairs, highest degree first",
    )


def to_networkx(network: Network) -> nx.MultiDiGraph:
    """
    Build a directed multigraph keyed by relationship id.

    Endpoints that do not resolve to an entity become placeholder nodes.
    """
    graph = nx.MultiDiGraph()

    for entity in network.entities:
        graph.add_node(entity.id, name=entity.name, entity_type=entity.type.value)

    for rel in network.relationships:
        for endpoint in (rel.source, rel.target):
            if not graph.has_node(endpoint):
                graph.add_node(endpoint, placeholder=True)
        graph.add_edge(
            rel.source,
            rel.target,
            key=rel.id,
            relationship_type=rel.type,
            label=rel.label,
        )

    return graph


def _real_nodes(graph: nx.MultiDiGraph, nodes) -> set[str]:  # type: ignore[no-untyped-def]
    return {n for n in nodes if not graph.nodes[n].get("placeholder")}


def entity_neighborhood(
    network: Network,
    entity_id: str,
    hops: int = 2,
    max_nodes: int = 50,
) -> Network:
    """
    Get the sub-network around an entity.

    Args:
        network: Network to search
        entity_id: Center entity
        hops: Number of relationship hops to include
        max_nodes: Maximum entities to return

    Returns:
        Network holding the reachable entities and the relationships among them
    """
    graph = to_networkx(network)

    if not graph.has_node(entity_id) or graph.nodes[entity_id].get("placeholder"):
        return Network(title=network.title, description=network.description)

    # BFS in both directions; placeholders are never traversed
    visited: set[str] = {entity_id}
    current_layer = {entity_id}

    for _ in range(hops):
        next_layer: set[str] = set()
        for node in current_layer:
            next_layer.update(graph.predecessors(node))
            next_layer.update(graph.successors(node))
        next_layer = _real_nodes(graph, next_layer) - visited

        for node in sorted(next_layer):
            if len(visited) >= max_nodes:
                break
            visited.add(node)

        current_layer = next_layer & visited

    entities = [e.model_copy(deep=True) for e in network.entities if e.id in visited]
    relationships = [
        r.model_copy(deep=True)
        for r in network.relationships
        if r.source in visited and r.target in visited
    ]

    logger.debug(f"Extracted neighborhood: {len(entities)} entities, {len(relationships)} relationships")
    return Network(
        title=network.title,
        description=network.description,
        entities=entities,
        relationships=relationships,
    )


def connected_components(network: Network) -> list[list[str]]:
    """
    Weakly connected groups of entity ids, largest first.

    Placeholder endpoints are left out of the groups.
    """
    graph = to_networkx(network)
    components = [
        sorted(_real_nodes(graph, component))
        for component in nx.weakly_connected_components(graph)
    ]
    components = [c for c in components if c]
    return sorted(components, key=lambda c: (-len(c), c[0]))


def most_connected(network: Network, limit: int = 5) -> list[tuple[Entity, int]]:
    """Entities ranked by degree (in + out), ties broken by insertion order."""
    graph = to_networkx(network)
    ranked = sorted(
        enumerate(network.entities),
        key=lambda item: (-graph.degree(item[1].id), item[0]),
    )
    return [(entity, graph.degree(entity.id)) for _, entity in ranked[:limit]]


def entity_type_counts(network: Network) -> dict[str, int]:
    """Histogram of entity types."""
    return dict(Counter(e.type.value for e in network.entities))


def network_stats(network: Network, top: int = 5) -> NetworkStats:
    """Summary figures for display."""
    entity_ids = {e.id for e in network.entities}
    orphaned = sum(
        1
        for r in network.relationships
        if r.source not in entity_ids or r.target not in entity_ids
    )

    return NetworkStats(
        entity_count=network.entity_count,
        relationship_count=network.relationship_count,
        orphaned_relationship_count=orphaned,
        component_count=len(connected_components(network)),
        entity_types=entity_type_counts(network),
        most_connected=[(e.id, degree) for e, degree in most_connected(network, top)],
    )
