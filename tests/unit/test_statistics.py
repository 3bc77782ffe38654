"""Unit tests for graph statistics."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from personagraph.errors import StorageError
from personagraph.models import GraphStatistics, RawGraphStats
from personagraph.observability import Degraded, Ok
from personagraph.statistics import (
    StatisticsCalculator,
    average_relationships_per_entity,
    derive_statistics,
    graph_complexity,
    graph_density,
)


class TestDensity:
    def test_five_nodes_four_edges(self):
        assert graph_density(5, 4) == pytest.approx(0.4)

    @pytest.mark.parametrize("nodes", [0, 1])
    def test_degenerate_graphs(self, nodes):
        assert graph_density(nodes, 3) == 0.0

    def test_average(self):
        assert average_relationships_per_entity(4, 6) == 1.5
        assert average_relationships_per_entity(0, 6) == 0.0


class TestComplexity:
    @pytest.mark.parametrize(
        "nodes,expected",
        [
            (0, "low"),
            (9, "low"),
            (10, "medium"),
            (49, "medium"),
            (50, "high"),
            (199, "high"),
            (200, "very_high"),
        ],
    )
    def test_buckets(self, nodes, expected):
        assert graph_complexity(nodes) == expected


class TestDeriveStatistics:
    def test_rounding_and_passthrough(self):
        stats = derive_statistics(
            RawGraphStats(
                total_entities=7,
                total_relationships=5,
                entity_types=["person", "project"],
                relationship_types=["KNOWS"],
            )
        )
        assert stats.graph_density == 0.2381  # 10 / 42
        assert stats.average_relationships_per_entity == 0.71
        assert stats.graph_complexity == "low"
        assert stats.entity_types == ["person", "project"]


class TestStatisticsCalculator:
    @pytest.mark.asyncio
    async def test_from_store(self, store, observer, make_entity, make_relationship, persona_id):
        for i in range(5):
            await store.insert_entity(make_entity(f"e{i}"))
        for i in range(4):
            await store.insert_relationship(make_relationship(f"r{i}", f"e{i}", f"e{i + 1}"))

        result = await StatisticsCalculator(store, observer).get_graph_statistics(persona_id)

        assert isinstance(result, Ok)
        assert result.value.total_entities == 5
        assert result.value.graph_density == 0.4
        assert result.value.relationship_types == ["KNOWS"]

    @pytest.mark.asyncio
    async def test_failure_returns_zeroed_record(self, store, observer, persona_id):
        store.get_graph_stats = AsyncMock(side_effect=StorageError("down"))

        result = await StatisticsCalculator(store, observer).get_graph_statistics(persona_id)

        assert isinstance(result, Degraded)
        zero = GraphStatistics()
        assert result.value.total_entities == zero.total_entities == 0
        assert result.value.graph_density == 0.0
        assert result.value.graph_complexity == "low"
        assert result.value.entity_types == []
