"""Data model for the persona knowledge graph.

Stored records (Entity, Relationship) are plain dataclasses owned by the
storage layer; ingestion inputs are pydantic models so that malformed
extraction output is rejected before it reaches the merge logic.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Direction = Literal["outgoing", "incoming", "both"]
ItemStatus = Literal["processed", "failed"]
Complexity = Literal["low", "medium", "high", "very_high"]

# Property key tracking how many times a relationship has been merged
UPDATE_COUNT_KEY = "updateCount"


def _now() -> int:
    return int(time.time())


def merge_properties(existing: dict[str, Any] | None, incoming: dict[str, Any] | None) -> dict[str, Any]:
    """Shallow-merge two property maps; incoming keys override existing ones.

    Neither argument is mutated.
    """
    merged = dict(existing or {})
    merged.update(incoming or {})
    return merged


# =============================================================================
# Stored records
# =============================================================================


@dataclass
class Entity:
    """A persona-scoped graph node.

    (persona_id, lower(name), type) is the natural key enforced by the
    merge resolver; the storage layer itself does not enforce it.
    """

    id: str
    persona_id: str
    type: str
    name: str
    properties: dict[str, Any] = field(default_factory=dict)
    confidence: float = 1.0
    vector_id: str | None = None
    created_at: int = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Relationship:
    """A directed, persona-scoped edge.

    (persona_id, source_entity_id, target_entity_id, relationship_type) is
    the natural key; A->B and B->A are distinct records.
    """

    id: str
    persona_id: str
    source_entity_id: str
    target_entity_id: str
    relationship_type: str
    strength: float = 1.0
    context: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)
    created_at: int = field(default_factory=_now)

    @property
    def natural_key(self) -> tuple[str, str, str]:
        return (self.source_entity_id, self.target_entity_id, self.relationship_type)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# Ingestion inputs
# =============================================================================


class EntityInput(BaseModel):
    """An extracted entity to create or merge."""

    model_config = ConfigDict(extra="ignore")

    persona_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    properties: dict[str, Any] = Field(default_factory=dict)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    vector_id: str | None = None
    id: str | None = Field(default=None, description="Explicit id for a new entity")


class RelationshipInput(BaseModel):
    """An extracted relationship to create or merge."""

    model_config = ConfigDict(extra="ignore")

    persona_id: str = Field(..., min_length=1)
    source_entity_id: str = Field(..., min_length=1)
    target_entity_id: str = Field(..., min_length=1)
    relationship_type: str = Field(..., min_length=1)
    strength: float = Field(default=1.0, ge=0.0, le=1.0)
    context: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)
    id: str | None = Field(default=None, description="Explicit id for a new relationship")


# =============================================================================
# Batch results
# =============================================================================


@dataclass
class ProcessedItem:
    """Outcome of merging one batch item."""

    input: EntityInput | RelationshipInput
    status: ItemStatus
    id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = self.input.model_dump()
        if self.id is not None:
            data["id"] = self.id
        data["status"] = self.status
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class BatchSummary:
    entities_processed: int = 0
    entities_failed: int = 0
    relationships_processed: int = 0
    relationships_failed: int = 0


@dataclass
class BatchResult:
    entities: list[ProcessedItem]
    relationships: list[ProcessedItem]
    summary: BatchSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "entities": [item.to_dict() for item in self.entities],
            "relationships": [item.to_dict() for item in self.relationships],
            "summary": asdict(self.summary),
        }


# =============================================================================
# Read-path results
# =============================================================================


@dataclass
class TraversalHit:
    """An entity reached by multi-hop traversal, with its hop depth."""

    entity: Entity
    depth: int


@dataclass
class RelationshipSummary:
    """Normalized view of a relationship from one endpoint's perspective."""

    id: str
    type: str
    strength: float
    direction: Literal["outgoing", "incoming"]
    connected_entity_id: str

    @classmethod
    def from_relationship(cls, rel: Relationship, entity_id: str) -> RelationshipSummary:
        outgoing = rel.source_entity_id == entity_id
        return cls(
            id=rel.id,
            type=rel.relationship_type,
            strength=rel.strength,
            direction="outgoing" if outgoing else "incoming",
            connected_entity_id=rel.target_entity_id if outgoing else rel.source_entity_id,
        )


@dataclass
class RelatedEntity:
    id: str
    name: str
    type: str
    confidence: float
    depth: int
    relationships: list[RelationshipSummary] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GraphContext:
    """Entities, their relationships and the induced edges among them."""

    entities: list[Entity] = field(default_factory=list)
    relationships: list[Relationship] = field(default_factory=list)
    connections: list[Relationship] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "relationships": [r.to_dict() for r in self.relationships],
            "connections": [r.to_dict() for r in self.connections],
        }


@dataclass
class ScoredEntity:
    """Search hit: the entity plus its lexical relevance score."""

    entity: Entity
    search_score: float

    def to_dict(self) -> dict[str, Any]:
        data = self.entity.to_dict()
        data["search_score"] = self.search_score
        return data


@dataclass
class RawGraphStats:
    """Counts reported by the storage collaborator for one persona."""

    total_entities: int = 0
    total_relationships: int = 0
    entity_types: list[str] = field(default_factory=list)
    relationship_types: list[str] = field(default_factory=list)


@dataclass
class GraphStatistics:
    total_entities: int = 0
    total_relationships: int = 0
    entity_types: list[str] = field(default_factory=list)
    relationship_types: list[str] = field(default_factory=list)
    graph_density: float = 0.0
    average_relationships_per_entity: float = 0.0
    graph_complexity: Complexity = "low"
    last_updated: int = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
