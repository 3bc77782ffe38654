"""Tests for the in-memory graph store."""

from __future__ import annotations

import pytest

from personagraph.db.graph_protocol import GraphStore
from personagraph.errors import StorageError


class TestProtocol:
    def test_implements_graph_store(self, store):
        assert isinstance(store, GraphStore)
        assert store.backend_name == "memory"
        assert store.health_check() is True


class TestEntityCrud:
    @pytest.mark.asyncio
    async def test_insert_get_update_delete(self, store, make_entity):
        entity = make_entity("e1", "Ada", properties={"a": 1})
        await store.insert_entity(entity)

        fetched = await store.get_entity("e1")
        assert fetched == entity
        assert fetched is not entity

        fetched.confidence = 0.2
        assert (await store.get_entity("e1")).confidence == 1.0  # copies only

        await store.update_entity(fetched)
        assert (await store.get_entity("e1")).confidence == 0.2

        assert await store.delete_entity("e1") is True
        assert await store.delete_entity("e1") is False
        assert await store.get_entity("e1") is None

    @pytest.mark.asyncio
    async def test_duplicate_insert_and_missing_update_fail(self, store, make_entity):
        await store.insert_entity(make_entity("e1"))
        with pytest.raises(StorageError):
            await store.insert_entity(make_entity("e1"))
        with pytest.raises(StorageError):
            await store.update_entity(make_entity("nope"))

    @pytest.mark.asyncio
    async def test_delete_detaches_relationships(self, store, make_entity, make_relationship):
        await store.insert_entity(make_entity("a"))
        await store.insert_entity(make_entity("b"))
        await store.insert_relationship(make_relationship("r", "a", "b"))

        await store.delete_entity("a")

        assert await store.get_entity_relationships("b", "both", 10) == []

    @pytest.mark.asyncio
    async def test_search_by_name_ranks_exact_then_shortest(self, store, make_entity, persona_id):
        await store.insert_entity(make_entity("1", "Acme Corporation"))
        await store.insert_entity(make_entity("2", "Acme Corp"))
        await store.insert_entity(make_entity("3", "ACME"))
        await store.insert_entity(make_entity("4", "Acme", persona_id="persona-bob"))

        results = await store.search_entities_by_name(persona_id, "acme", 5)
        assert [e.id for e in results] == ["3", "2", "1"]

        assert len(await store.search_entities_by_name(persona_id, "acme", 2)) == 2

    @pytest.mark.asyncio
    async def test_entities_by_persona_limit(self, store, make_entity, persona_id):
        for i in range(4):
            await store.insert_entity(make_entity(f"e{i}"))
        assert len(await store.get_entities_by_persona(persona_id)) == 4
        assert len(await store.get_entities_by_persona(persona_id, limit=2)) == 2

    @pytest.mark.asyncio
    async def test_graph_stats(self, store, make_entity, make_relationship, persona_id):
        await store.insert_entity(make_entity("a", type="person"))
        await store.insert_entity(make_entity("b", type="project"))
        await store.insert_entity(make_entity("c", type="person"))
        await store.insert_relationship(make_relationship("r", "a", "b", type="WORKS_ON"))

        stats = await store.get_graph_stats(persona_id)
        assert stats.total_entities == 3
        assert stats.total_relationships == 1
        assert stats.entity_types == ["person", "project"]
        assert stats.relationship_types == ["WORKS_ON"]


class TestRelationships:
    @pytest.mark.asyncio
    async def test_direction_filter_and_limit(self, store, make_relationship):
        await store.insert_relationship(make_relationship("out1", "a", "b"))
        await store.insert_relationship(make_relationship("out2", "a", "c"))
        await store.insert_relationship(make_relationship("in1", "d", "a"))

        assert [r.id for r in await store.get_entity_relationships("a", "outgoing", 10)] == ["out1", "out2"]
        assert [r.id for r in await store.get_entity_relationships("a", "incoming", 10)] == ["in1"]
        assert len(await store.get_entity_relationships("a", "both", 10)) == 3
        assert len(await store.get_entity_relationships("a", "both", 1)) == 1

    @pytest.mark.asyncio
    async def test_invalid_direction(self, store):
        with pytest.raises(ValueError):
            await store.get_entity_relationships("a", "sideways", 1)

    @pytest.mark.asyncio
    async def test_update_missing_relationship_fails(self, store, make_relationship):
        with pytest.raises(StorageError):
            await store.update_relationship(make_relationship("r", "a", "b"))


class TestTraversal:
    @pytest.mark.asyncio
    async def test_shortest_depth_and_limit(self, store, make_entity, make_relationship):
        # a - b - c - d, plus shortcut a - c
        for name in "abcd":
            await store.insert_entity(make_entity(name))
        await store.insert_relationship(make_relationship("1", "a", "b"))
        await store.insert_relationship(make_relationship("2", "b", "c"))
        await store.insert_relationship(make_relationship("3", "c", "d"))
        await store.insert_relationship(make_relationship("4", "c", "a"))

        hits = await store.find_related_entities("a", max_depth=3, limit=10)
        depths = {hit.entity.id: hit.depth for hit in hits}
        assert depths == {"b": 1, "c": 1, "d": 2}

        assert {h.entity.id for h in await store.find_related_entities("a", max_depth=1, limit=10)} == {"b", "c"}
        assert len(await store.find_related_entities("a", max_depth=3, limit=2)) == 2

    @pytest.mark.asyncio
    async def test_isolated_entity(self, store, make_entity):
        await store.insert_entity(make_entity("solo"))
        assert await store.find_related_entities("solo", max_depth=2, limit=10) == []
