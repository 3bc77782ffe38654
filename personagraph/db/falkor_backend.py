"""FalkorDB graph store for PersonaGraph.

FalkorDB is a Redis-based graph database that requires a running server
(typically via Docker). Entities are ``(:Entity)`` nodes and relationships
are ``[:RELATES]`` edges carrying their own type tag, so one traversal
pattern covers every relationship type. Open property maps are stored as
JSON strings because FalkorDB properties must be scalars or arrays.

The FalkorDB client is blocking; every query runs in a worker thread.
"""

import asyncio
import json
from typing import Any

from personagraph.db.graph_protocol import BaseGraphStore, QueryResult
from personagraph.errors import StorageError
from personagraph.log_config import get_logger
from personagraph.models import Direction, Entity, RawGraphStats, Relationship, TraversalHit

log = get_logger("db.falkor")

_ENTITY_COLUMNS = "e.id, e.persona_id, e.vector_id, e.type, e.name, e.properties, e.confidence, e.created_at"
_RELATIONSHIP_COLUMNS = (
    "r.id, r.persona_id, s.id, t.id, r.relationship_type, r.strength, r.context, r.properties, r.created_at"
)


def _dump_properties(properties: dict[str, Any] | None) -> str:
    return json.dumps(properties or {}, default=str)


def _load_properties(raw: Any) -> dict[str, Any]:
    if not raw:
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        log.warning(f"Unparseable properties payload: {str(raw)[:80]}")
        return {}
    return value if isinstance(value, dict) else {}


def row_to_entity(row: list[Any]) -> Entity:
    """Build an Entity from a row laid out as ``_ENTITY_COLUMNS``."""
    return Entity(
        id=row[0],
        persona_id=row[1],
        vector_id=row[2],
        type=row[3],
        name=row[4],
        properties=_load_properties(row[5]),
        confidence=float(row[6]) if row[6] is not None else 1.0,
        created_at=int(row[7] or 0),
    )


def row_to_relationship(row: list[Any]) -> Relationship:
    """Build a Relationship from a row laid out as ``_RELATIONSHIP_COLUMNS``."""
    return Relationship(
        id=row[0],
        persona_id=row[1],
        source_entity_id=row[2],
        target_entity_id=row[3],
        relationship_type=row[4],
        strength=float(row[5]) if row[5] is not None else 1.0,
        context=row[6],
        properties=_load_properties(row[7]),
        created_at=int(row[8] or 0),
    )


def _entity_params(entity: Entity) -> dict[str, Any]:
    return {
        "id": entity.id,
        "persona_id": entity.persona_id,
        "vector_id": entity.vector_id,
        "type": entity.type,
        "name": entity.name,
        "properties": _dump_properties(entity.properties),
        "confidence": float(entity.confidence),
        "created_at": int(entity.created_at),
    }


def _relationship_params(rel: Relationship) -> dict[str, Any]:
    return {
        "id": rel.id,
        "persona_id": rel.persona_id,
        "source_id": rel.source_entity_id,
        "target_id": rel.target_entity_id,
        "relationship_type": rel.relationship_type,
        "strength": float(rel.strength),
        "context": rel.context,
        "properties": _dump_properties(rel.properties),
        "created_at": int(rel.created_at),
    }


class FalkorGraphStore(BaseGraphStore):
    """FalkorDB-backed graph store (requires a FalkorDB/Redis server)."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        password: str | None = None,
        graph_name: str | None = None,
    ):
        """Initialize FalkorDB connection.

        Args:
            host: FalkorDB host address
            port: FalkorDB port (default: 6379)
            password: Optional Redis password
            graph_name: Graph to select (default: personagraph)
        """
        from falkordb import FalkorDB

        self.host = host
        self.port = port
        self.graph_name = graph_name or self.GRAPH_NAME

        log.info(f"Connecting to FalkorDB at {host}:{port}")
        self._db = FalkorDB(host=host, port=port, password=password)
        self._graph = self._db.select_graph(self.graph_name)
        log.info(f"FalkorDB connected: graph={self.graph_name}")

    @property
    def backend_name(self) -> str:
        return "falkordb"

    # =========================================================================
    # Query plumbing
    # =========================================================================

    def query(self, cypher: str, params: dict[str, Any] | None = None) -> QueryResult:
        """Execute a Cypher query synchronously.

        Raises:
            StorageError: If FalkorDB rejects the query or is unreachable
        """
        log.trace(f"FalkorDB query: {cypher[:100]}...")
        try:
            result = self._graph.query(cypher, params) if params else self._graph.query(cypher)
        except Exception as e:
            log.error(f"FalkorDB query failed: {e}")
            log.debug(f"Query was: {cypher}")
            raise StorageError(str(e)) from e

        header = None
        if getattr(result, "header", None):
            header = [col[1] if isinstance(col, (tuple, list)) else str(col) for col in result.header]
        return QueryResult(
            result_set=list(result.result_set) if result.result_set else [],
            header=header,
            stats={
                "backend": "falkordb",
                "nodes_deleted": getattr(result, "nodes_deleted", 0),
            },
        )

    async def _aquery(self, cypher: str, params: dict[str, Any] | None = None) -> QueryResult:
        return await asyncio.to_thread(self.query, cypher, params)

    def health_check(self) -> bool:
        try:
            self._graph.query("RETURN 1")
            return True
        except Exception as e:
            log.warning(f"FalkorDB health check failed: {e}")
            return False

    def close(self) -> None:
        # Redis connection pool handles cleanup
        log.info("Closing FalkorDB connection")

    def init_schema(self) -> None:
        """Create Entity indexes; existing indexes are left alone."""
        log.info("Creating FalkorDB indexes")
        for prop in ("id", "persona_id", "name"):
            try:
                self._graph.query(f"CREATE INDEX FOR (e:Entity) ON (e.{prop})")
            except Exception as e:
                log.trace(f"Index on Entity.{prop} (may already exist): {e}")

    # =========================================================================
    # Entities
    # =========================================================================

    async def insert_entity(self, entity: Entity) -> None:
        await self._aquery(
            """
            CREATE (e:Entity {
                id: $id, persona_id: $persona_id, vector_id: $vector_id,
                type: $type, name: $name, properties: $properties,
                confidence: $confidence, created_at: $created_at
            })
            """,
            _entity_params(entity),
        )

    async def update_entity(self, entity: Entity) -> None:
        result = await self._aquery(
            """
            MATCH (e:Entity {id: $id})
            SET e.persona_id = $persona_id, e.vector_id = $vector_id,
                e.type = $type, e.name = $name, e.properties = $properties,
                e.confidence = $confidence, e.created_at = $created_at
            RETURN e.id
            """,
            _entity_params(entity),
        )
        if not result:
            raise StorageError(f"Entity not found: {entity.id}")

    async def delete_entity(self, entity_id: str) -> bool:
        result = await self._aquery(
            "MATCH (e:Entity {id: $id}) DETACH DELETE e",
            {"id": entity_id},
        )
        return bool((result.stats or {}).get("nodes_deleted"))

    async def get_entity(self, entity_id: str) -> Entity | None:
        result = await self._aquery(
            f"MATCH (e:Entity {{id: $id}}) RETURN {_ENTITY_COLUMNS} LIMIT 1",
            {"id": entity_id},
        )
        return row_to_entity(result.result_set[0]) if result else None

    async def search_entities_by_name(self, persona_id: str, name: str, limit: int) -> list[Entity]:
        result = await self._aquery(
            f"""
            MATCH (e:Entity {{persona_id: $persona_id}})
            WHERE toLower(e.name) CONTAINS toLower($name)
            WITH e, CASE WHEN toLower(e.name) = toLower($name) THEN 0 ELSE 1 END AS rank
            ORDER BY rank, size(e.name)
            LIMIT $limit
            RETURN {_ENTITY_COLUMNS}
            """,
            {"persona_id": persona_id, "name": name, "limit": int(limit)},
        )
        return [row_to_entity(row) for row in result]

    async def get_entities_by_persona(self, persona_id: str, limit: int | None = None) -> list[Entity]:
        cypher = f"""
            MATCH (e:Entity {{persona_id: $persona_id}})
            RETURN {_ENTITY_COLUMNS}
            ORDER BY e.created_at
            """
        params: dict[str, Any] = {"persona_id": persona_id}
        if limit is not None:
            cypher += " LIMIT $limit"
            params["limit"] = int(limit)
        result = await self._aquery(cypher, params)
        return [row_to_entity(row) for row in result]

    async def get_graph_stats(self, persona_id: str) -> RawGraphStats:
        entities = await self._aquery(
            """
            MATCH (e:Entity {persona_id: $persona_id})
            RETURN count(e), collect(DISTINCT e.type)
            """,
            {"persona_id": persona_id},
        )
        relationships = await self._aquery(
            """
            MATCH (:Entity)-[r:RELATES {persona_id: $persona_id}]->(:Entity)
            RETURN count(r), collect(DISTINCT r.relationship_type)
            """,
            {"persona_id": persona_id},
        )
        entity_row = entities.result_set[0] if entities else [0, []]
        rel_row = relationships.result_set[0] if relationships else [0, []]
        return RawGraphStats(
            total_entities=int(entity_row[0] or 0),
            total_relationships=int(rel_row[0] or 0),
            entity_types=sorted(entity_row[1] or []),
            relationship_types=sorted(rel_row[1] or []),
        )

    # =========================================================================
    # Relationships
    # =========================================================================

    async def insert_relationship(self, relationship: Relationship) -> None:
        result = await self._aquery(
            """
            MATCH (s:Entity {id: $source_id}), (t:Entity {id: $target_id})
            CREATE (s)-[r:RELATES {
                id: $id, persona_id: $persona_id,
                relationship_type: $relationship_type, strength: $strength,
                context: $context, properties: $properties, created_at: $created_at
            }]->(t)
            RETURN r.id
            """,
            _relationship_params(relationship),
        )
        if not result:
            raise StorageError(
                f"Cannot create relationship {relationship.id}: endpoint missing "
                f"({relationship.source_entity_id} -> {relationship.target_entity_id})"
            )

    async def update_relationship(self, relationship: Relationship) -> None:
        result = await self._aquery(
            """
            MATCH (:Entity)-[r:RELATES {id: $id}]->(:Entity)
            SET r.relationship_type = $relationship_type, r.strength = $strength,
                r.context = $context, r.properties = $properties
            RETURN r.id
            """,
            _relationship_params(relationship),
        )
        if not result:
            raise StorageError(f"Relationship not found: {relationship.id}")

    async def get_entity_relationships(
        self, entity_id: str, direction: Direction = "both", limit: int = 10
    ) -> list[Relationship]:
        if direction == "outgoing":
            pattern = "(s:Entity {id: $id})-[r:RELATES]->(t:Entity)"
            where = ""
        elif direction == "incoming":
            pattern = "(s:Entity)-[r:RELATES]->(t:Entity {id: $id})"
            where = ""
        elif direction == "both":
            pattern = "(s:Entity)-[r:RELATES]->(t:Entity)"
            where = "WHERE s.id = $id OR t.id = $id"
        else:
            raise ValueError(f"Invalid direction: {direction}")

        result = await self._aquery(
            f"""
            MATCH {pattern}
            {where}
            RETURN {_RELATIONSHIP_COLUMNS}
            ORDER BY r.created_at
            LIMIT $limit
            """,
            {"id": entity_id, "limit": int(limit)},
        )
        return [row_to_relationship(row) for row in result]

    async def find_related_entities(self, entity_id: str, max_depth: int, limit: int) -> list[TraversalHit]:
        # Path length bounds cannot be parameters; depth is clamped to an int
        depth = self.clamp_depth(max_depth)
        result = await self._aquery(
            f"""
            MATCH p = (start:Entity {{id: $id}})-[:RELATES*1..{depth}]-(e:Entity)
            WHERE e.id <> $id
            WITH e, min(length(p)) AS depth
            RETURN {_ENTITY_COLUMNS}, depth
            ORDER BY depth
            LIMIT $limit
            """,
            {"id": entity_id, "limit": int(limit)},
        )
        return [TraversalHit(entity=row_to_entity(row[:8]), depth=int(row[8])) for row in result]


def is_falkordb_available(host: str = "localhost", port: int = 6379, password: str | None = None) -> bool:
    """Check if FalkorDB is reachable at the given address."""
    try:
        from falkordb import FalkorDB

        db = FalkorDB(host=host, port=port, password=password)
        db.select_graph("personagraph_probe").query("RETURN 1")
        return True
    except Exception as e:
        log.debug(f"FalkorDB not available at {host}:{port}: {e}")
        return False
