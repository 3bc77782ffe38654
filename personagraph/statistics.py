"""Derived graph statistics for a persona."""

from __future__ import annotations

from personagraph.db.graph_protocol import GraphStore
from personagraph.models import Complexity, GraphStatistics, RawGraphStats
from personagraph.observability import LoguruObserver, Observer, ReadResult, guard_read


def graph_density(nodes: int, edges: int) -> float:
    """2E / (N(N-1)), or 0 for fewer than two nodes.

    This is the undirected density formula applied to a directed graph, an
    approximation. It is kept as is until the product owner confirms it; a
    directed graph would use E / (N(N-1)).
    """
    if nodes <= 1:
        return 0.0
    return (2 * edges) / (nodes * (nodes - 1))


def average_relationships_per_entity(nodes: int, edges: int) -> float:
    return edges / nodes if nodes > 0 else 0.0


def graph_complexity(nodes: int) -> Complexity:
    """Coarse size bucket from the entity count alone."""
    if nodes < 10:
        return "low"
    if nodes < 50:
        return "medium"
    if nodes < 200:
        return "high"
    return "very_high"


def derive_statistics(raw: RawGraphStats) -> GraphStatistics:
    nodes, edges = raw.total_entities, raw.total_relationships
    return GraphStatistics(
        total_entities=nodes,
        total_relationships=edges,
        entity_types=list(raw.entity_types),
        relationship_types=list(raw.relationship_types),
        graph_density=round(graph_density(nodes, edges), 4),
        average_relationships_per_entity=round(average_relationships_per_entity(nodes, edges), 2),
        graph_complexity=graph_complexity(nodes),
    )


class StatisticsCalculator:
    """Best-effort statistics; failures yield a zeroed record."""

    def __init__(self, store: GraphStore, observer: Observer | None = None):
        self.store = store
        self.observer = observer or LoguruObserver("statistics")

    async def get_graph_statistics(self, persona_id: str) -> ReadResult[GraphStatistics]:
        return await guard_read(
            self.observer,
            "get_graph_statistics",
            GraphStatistics(),
            self._get_graph_statistics(persona_id),
            persona_id=persona_id,
        )

    async def _get_graph_statistics(self, persona_id: str) -> GraphStatistics:
        stats = derive_statistics(await self.store.get_graph_stats(persona_id))
        self.observer.info(
            "Retrieved graph statistics",
            persona_id=persona_id,
            total_entities=stats.total_entities,
            total_relationships=stats.total_relationships,
            graph_density=stats.graph_density,
        )
        return stats
