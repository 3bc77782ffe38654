"""Unit tests for TraversalEnricher.

Tests:
- find_related_entities() - filters, relationship summaries, degradation
- get_graph_context() - connections, deduplication, skipped entities
- deduplicate_relationships()
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from personagraph.errors import StorageError
from personagraph.models import GraphContext
from personagraph.observability import Degraded, Ok
from personagraph.traversal import TraversalEnricher, deduplicate_relationships


@pytest.fixture
def enricher(store, observer) -> TraversalEnricher:
    return TraversalEnricher(store, observer)


@pytest_asyncio.fixture
async def seeded(store, make_entity, make_relationship):
    """a -> b -> c, a -> d (project), e isolated."""
    for entity in (
        make_entity("a", "Ada"),
        make_entity("b", "Babbage"),
        make_entity("c", "Carol", confidence=0.05),
        make_entity("d", "Difference Engine", type="project"),
        make_entity("e", "Eve"),
    ):
        await store.insert_entity(entity)
    await store.insert_relationship(make_relationship("r1", "a", "b", strength=0.9))
    await store.insert_relationship(make_relationship("r2", "b", "c", type="MENTORS"))
    await store.insert_relationship(make_relationship("r3", "a", "d", type="WORKS_ON"))
    return store


class TestFindRelatedEntities:
    @pytest.mark.asyncio
    async def test_depth_and_default_confidence_filter(self, enricher, seeded):
        result = await enricher.find_related_entities("a", max_depth=2)

        assert isinstance(result, Ok)
        by_id = {r.id: r for r in result.value}
        # c is two hops away but below the default 0.1 confidence floor
        assert set(by_id) == {"b", "d"}
        assert by_id["b"].depth == 1

    @pytest.mark.asyncio
    async def test_min_strength_zero_disables_filter(self, enricher, seeded):
        result = await enricher.find_related_entities("a", max_depth=2, min_strength=0)
        assert {r.id for r in result.value} == {"b", "c", "d"}
        assert next(r for r in result.value if r.id == "c").depth == 2

    @pytest.mark.asyncio
    async def test_entity_type_allow_list(self, enricher, seeded):
        result = await enricher.find_related_entities("a", entity_types=["project"])
        assert [r.id for r in result.value] == ["d"]

    @pytest.mark.asyncio
    async def test_relationship_summaries(self, enricher, seeded):
        result = await enricher.find_related_entities("a", max_depth=1)
        babbage = next(r for r in result.value if r.id == "b")

        summaries = {s.id: s for s in babbage.relationships}
        assert summaries["r1"].direction == "incoming"
        assert summaries["r1"].connected_entity_id == "a"
        assert summaries["r1"].strength == 0.9
        assert summaries["r2"].direction == "outgoing"
        assert summaries["r2"].connected_entity_id == "c"
        assert summaries["r2"].type == "MENTORS"

    @pytest.mark.asyncio
    async def test_relationship_type_allow_list(self, enricher, seeded):
        result = await enricher.find_related_entities("a", max_depth=1, relationship_types=["MENTORS"])
        babbage = next(r for r in result.value if r.id == "b")
        assert [s.id for s in babbage.relationships] == ["r2"]

    @pytest.mark.asyncio
    async def test_enrichment_limit(self, store, observer, seeded):
        enricher = TraversalEnricher(store, observer, enrichment_relationship_limit=1)
        result = await enricher.find_related_entities("a", max_depth=1)
        assert all(len(r.relationships) <= 1 for r in result.value)

    @pytest.mark.asyncio
    async def test_enrichment_failure_degrades_per_entity(self, enricher, seeded, observer):
        seeded.get_entity_relationships = AsyncMock(side_effect=StorageError("boom"))

        result = await enricher.find_related_entities("a", max_depth=1)

        assert isinstance(result, Ok)
        assert {r.id for r in result.value} == {"b", "d"}
        assert all(r.relationships == [] for r in result.value)
        assert observer.errors

    @pytest.mark.asyncio
    async def test_traversal_failure_degrades_to_empty(self, enricher, store, observer):
        store.find_related_entities = AsyncMock(side_effect=StorageError("unreachable"))

        result = await enricher.find_related_entities("a")

        assert isinstance(result, Degraded)
        assert result.value == []
        assert isinstance(result.cause, StorageError)
        assert observer.errors[0][2]["operation"] == "find_related_entities"


class TestGetGraphContext:
    @pytest.mark.asyncio
    async def test_entities_relationships_and_connections(self, enricher, seeded):
        result = await enricher.get_graph_context(["a", "b"])
        context = result.value

        assert [e.id for e in context.entities] == ["a", "b"]
        # r1 is fetched for both a and b but kept once
        assert sorted(r.id for r in context.relationships) == ["r1", "r2", "r3"]
        assert sorted(r.id for r in context.connections) == ["r1", "r2", "r3"]

    @pytest.mark.asyncio
    async def test_missing_entities_skipped(self, enricher, seeded):
        result = await enricher.get_graph_context(["e", "missing"])

        assert isinstance(result, Ok)
        assert [e.id for e in result.value.entities] == ["e"]
        assert result.value.relationships == []

    @pytest.mark.asyncio
    async def test_without_relationships(self, enricher, seeded):
        result = await enricher.get_graph_context(["a", "b"], include_relationships=False)
        assert len(result.value.entities) == 2
        assert result.value.relationships == []
        assert result.value.connections == []

    @pytest.mark.asyncio
    async def test_per_entity_failure_skipped(self, enricher, seeded, observer):
        original = seeded.get_entity

        async def flaky_get(entity_id):
            if entity_id == "a":
                raise StorageError("boom")
            return await original(entity_id)

        seeded.get_entity = flaky_get
        result = await enricher.get_graph_context(["a", "b"])

        assert [e.id for e in result.value.entities] == ["b"]
        assert observer.errors[0][2] == {"entity_id": "a"}

    @pytest.mark.asyncio
    async def test_to_dict(self, enricher, seeded):
        data = (await enricher.get_graph_context(["d"])).value.to_dict()
        assert data["entities"][0]["name"] == "Difference Engine"
        assert data["connections"][0]["relationship_type"] == "WORKS_ON"

    @pytest.mark.asyncio
    async def test_unusable_id_list_degrades(self, enricher, observer):
        result = await enricher.get_graph_context(None)

        assert isinstance(result, Degraded)
        assert result.value.entities == []
        assert observer.errors[0][2]["operation"] == "get_graph_context"

    def test_default_context_is_empty(self):
        assert GraphContext().to_dict() == {"entities": [], "relationships": [], "connections": []}


class TestDeduplicateRelationships:
    def test_keeps_first_occurrence_per_key(self, make_relationship):
        first = make_relationship("r1", "a", "b", strength=0.1)
        dup = make_relationship("r2", "a", "b", strength=0.9)
        other = make_relationship("r3", "b", "a")

        assert [r.id for r in deduplicate_relationships([first, other, dup])] == ["r1", "r3"]
        assert [r.id for r in deduplicate_relationships([dup, first, other])] == ["r2", "r3"]

    def test_type_distinguishes(self, make_relationship):
        rels = [make_relationship("r1", "a", "b", type="KNOWS"), make_relationship("r2", "a", "b", type="LIKES")]
        assert len(deduplicate_relationships(rels)) == 2
