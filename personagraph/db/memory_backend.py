"""In-process graph store for PersonaGraph.

Embedded fallback used when no FalkorDB server is reachable, and the store
the test-suite runs against. Records are deep-copied across the boundary so
callers only ever hold copies, as they would with a real database.
"""

import copy
from collections import deque

from personagraph.db.graph_protocol import BaseGraphStore
from personagraph.errors import StorageError
from personagraph.log_config import get_logger
from personagraph.models import Direction, Entity, RawGraphStats, Relationship, TraversalHit

log = get_logger("db.memory")


class InMemoryGraphStore(BaseGraphStore):
    """Dict-backed graph store.

    Each primitive runs without awaiting, so it is atomic with respect to
    other coroutines on the same event loop.
    """

    def __init__(self):
        self._entities: dict[str, Entity] = {}
        self._relationships: dict[str, Relationship] = {}
        log.debug("In-memory graph store created")

    @property
    def backend_name(self) -> str:
        return "memory"

    def health_check(self) -> bool:
        return True

    def close(self) -> None:
        log.debug("Closing in-memory graph store")

    def init_schema(self) -> None:
        pass

    # =========================================================================
    # Entities
    # =========================================================================

    async def insert_entity(self, entity: Entity) -> None:
        if entity.id in self._entities:
            raise StorageError(f"Entity already exists: {entity.id}")
        self._entities[entity.id] = copy.deepcopy(entity)
        log.trace(f"Inserted entity {entity.id} ({entity.type}:{entity.name})")

    async def update_entity(self, entity: Entity) -> None:
        if entity.id not in self._entities:
            raise StorageError(f"Entity not found: {entity.id}")
        self._entities[entity.id] = copy.deepcopy(entity)

    async def delete_entity(self, entity_id: str) -> bool:
        if self._entities.pop(entity_id, None) is None:
            return False
        # Detach: drop edges touching the entity
        for rel_id in [
            r.id for r in self._relationships.values()
            if entity_id in (r.source_entity_id, r.target_entity_id)
        ]:
            del self._relationships[rel_id]
        return True

    async def get_entity(self, entity_id: str) -> Entity | None:
        entity = self._entities.get(entity_id)
        return copy.deepcopy(entity) if entity else None

    async def search_entities_by_name(self, persona_id: str, name: str, limit: int) -> list[Entity]:
        needle = name.lower()
        matches = [
            e for e in self._entities.values()
            if e.persona_id == persona_id and needle in e.name.lower()
        ]
        matches.sort(key=lambda e: (e.name.lower() != needle, len(e.name)))
        return copy.deepcopy(matches[:limit])

    async def get_entities_by_persona(self, persona_id: str, limit: int | None = None) -> list[Entity]:
        entities = [e for e in self._entities.values() if e.persona_id == persona_id]
        if limit is not None:
            entities = entities[:limit]
        return copy.deepcopy(entities)

    async def get_graph_stats(self, persona_id: str) -> RawGraphStats:
        entities = [e for e in self._entities.values() if e.persona_id == persona_id]
        relationships = [r for r in self._relationships.values() if r.persona_id == persona_id]
        return RawGraphStats(
            total_entities=len(entities),
            total_relationships=len(relationships),
            entity_types=sorted({e.type for e in entities}),
            relationship_types=sorted({r.relationship_type for r in relationships}),
        )

    # =========================================================================
    # Relationships
    # =========================================================================

    async def insert_relationship(self, relationship: Relationship) -> None:
        if relationship.id in self._relationships:
            raise StorageError(f"Relationship already exists: {relationship.id}")
        self._relationships[relationship.id] = copy.deepcopy(relationship)

    async def update_relationship(self, relationship: Relationship) -> None:
        if relationship.id not in self._relationships:
            raise StorageError(f"Relationship not found: {relationship.id}")
        self._relationships[relationship.id] = copy.deepcopy(relationship)

    async def get_entity_relationships(
        self, entity_id: str, direction: Direction = "both", limit: int = 10
    ) -> list[Relationship]:
        if direction not in ("outgoing", "incoming", "both"):
            raise ValueError(f"Invalid direction: {direction}")

        found = []
        for rel in self._relationships.values():
            outgoing = rel.source_entity_id == entity_id
            incoming = rel.target_entity_id == entity_id
            if (
                (direction == "outgoing" and outgoing)
                or (direction == "incoming" and incoming)
                or (direction == "both" and (outgoing or incoming))
            ):
                found.append(rel)
                if len(found) >= limit:
                    break
        return copy.deepcopy(found)

    async def find_related_entities(self, entity_id: str, max_depth: int, limit: int) -> list[TraversalHit]:
        max_depth = self.clamp_depth(max_depth)
        adjacency: dict[str, set[str]] = {}
        for rel in self._relationships.values():
            adjacency.setdefault(rel.source_entity_id, set()).add(rel.target_entity_id)
            adjacency.setdefault(rel.target_entity_id, set()).add(rel.source_entity_id)

        # Breadth-first, so the first visit records the shortest hop count
        hits: list[TraversalHit] = []
        seen = {entity_id}
        queue = deque([(entity_id, 0)])
        while queue and len(hits) < limit:
            node, depth = queue.popleft()
            if depth >= max_depth:
                continue
            for neighbour in sorted(adjacency.get(node, ())):
                if neighbour in seen:
                    continue
                seen.add(neighbour)
                entity = self._entities.get(neighbour)
                if entity is None:
                    continue
                hits.append(TraversalHit(entity=copy.deepcopy(entity), depth=depth + 1))
                if len(hits) >= limit:
                    break
                queue.append((neighbour, depth + 1))
        return hits
