"""Graph storage protocol for PersonaGraph.

Defines the storage collaborator the consolidation engine runs against.
The engine only needs primitive CRUD, per-entity relationship listing and a
bounded multi-hop traversal; uniqueness of natural keys is enforced above
this layer.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from personagraph.models import Direction, Entity, RawGraphStats, Relationship, TraversalHit


@dataclass
class QueryResult:
    """Unified raw query result from a Cypher backend.

    Attributes:
        result_set: List of result rows (each row is a list of values)
        header: Column names if available
        stats: Query statistics (nodes created, relationships created, etc.)
    """
    result_set: list[list[Any]]
    header: list[str] | None = None
    stats: dict[str, Any] | None = None

    def __iter__(self):
        return iter(self.result_set)

    def __len__(self):
        return len(self.result_set)

    def __bool__(self):
        return len(self.result_set) > 0


@runtime_checkable
class GraphStore(Protocol):
    """Protocol for graph storage backends.

    Mutations either succeed or raise; there is no partial-field update.
    """

    @property
    def backend_name(self) -> str:
        ...

    async def insert_entity(self, entity: Entity) -> None:
        ...

    async def update_entity(self, entity: Entity) -> None:
        """Replace the stored record with the same id."""
        ...

    async def delete_entity(self, entity_id: str) -> bool:
        ...

    async def get_entity(self, entity_id: str) -> Entity | None:
        ...

    async def search_entities_by_name(self, persona_id: str, name: str, limit: int) -> list[Entity]:
        """Entities whose name contains ``name`` (case-insensitive), closest names first."""
        ...

    async def get_entities_by_persona(self, persona_id: str, limit: int | None = None) -> list[Entity]:
        ...

    async def get_graph_stats(self, persona_id: str) -> RawGraphStats:
        ...

    async def insert_relationship(self, relationship: Relationship) -> None:
        ...

    async def update_relationship(self, relationship: Relationship) -> None:
        ...

    async def get_entity_relationships(
        self, entity_id: str, direction: Direction = "both", limit: int = 10
    ) -> list[Relationship]:
        ...

    async def find_related_entities(self, entity_id: str, max_depth: int, limit: int) -> list[TraversalHit]:
        """Entities reachable from ``entity_id`` within ``max_depth`` hops (start excluded)."""
        ...

    def health_check(self) -> bool:
        ...

    def close(self) -> None:
        ...

    def init_schema(self) -> None:
        """Create indexes. Idempotent."""
        ...


class BaseGraphStore(ABC):
    """Abstract base class for graph stores."""

    GRAPH_NAME = "personagraph"

    @property
    @abstractmethod
    def backend_name(self) -> str:
        pass

    @abstractmethod
    def health_check(self) -> bool:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @abstractmethod
    def init_schema(self) -> None:
        pass

    @staticmethod
    def clamp_depth(max_depth: int, ceiling: int = 5) -> int:
        """Keep traversal depth within [1, ceiling]."""
        return min(max(int(max_depth), 1), ceiling)
