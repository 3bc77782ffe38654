"""Merge resolution for entities and relationships.

Decides whether an incoming observation is new or an update of a stored
record, and computes the merged record:

- Entities are keyed by (persona, lower(name), type). A stored entity is
  only updated when the new observation is strictly more confident, so
  confidence never regresses and repeated identical input is a no-op.
- Relationships are keyed by (persona, source, target, type), directional.
  A repeat observation moves strength to the mean of stored and incoming
  strength. Because each merge halves the weight of history, the result
  depends on merge order beyond two observations (mean of means, not a
  running average).

Lookups scan a bounded candidate set, so at scale an existing entity can be
missed and duplicated. Merges for one natural key are serialised through a
KeyedLock; this does not protect against writers in other processes.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable

from personagraph.db.graph_protocol import GraphStore
from personagraph.errors import GraphWriteError
from personagraph.locks import KeyedLock
from personagraph.models import (
    UPDATE_COUNT_KEY,
    Entity,
    EntityInput,
    Relationship,
    RelationshipInput,
    merge_properties,
)
from personagraph.observability import LoguruObserver, Observer


def _new_id() -> str:
    return str(uuid.uuid4())


class MergeResolver:
    """Creates or merges entities and relationships against a GraphStore."""

    def __init__(
        self,
        store: GraphStore,
        observer: Observer | None = None,
        entity_lookup_limit: int = 5,
        relationship_scan_limit: int = 100,
        id_factory: Callable[[], str] = _new_id,
    ):
        """Initialize MergeResolver.

        Args:
            store: Storage collaborator
            observer: Telemetry sink (default: loguru)
            entity_lookup_limit: Name-search candidates checked for an existing entity
            relationship_scan_limit: Outgoing relationships checked for an existing edge
            id_factory: Generates ids for new records
        """
        self.store = store
        self.observer = observer or LoguruObserver("merge")
        self.entity_lookup_limit = entity_lookup_limit
        self.relationship_scan_limit = relationship_scan_limit
        self.id_factory = id_factory
        self._locks = KeyedLock()

    # =========================================================================
    # Lookups
    # =========================================================================

    async def find_entity_by_name_and_type(self, persona_id: str, name: str, type: str) -> Entity | None:
        """Find the stored entity for a natural key among the top name matches."""
        candidates = await self.store.search_entities_by_name(persona_id, name, self.entity_lookup_limit)
        wanted = name.lower()
        for entity in candidates:
            if entity.persona_id == persona_id and entity.type == type and entity.name.lower() == wanted:
                return entity
        return None

    async def find_relationship(
        self, persona_id: str, source_entity_id: str, target_entity_id: str, relationship_type: str
    ) -> Relationship | None:
        """Find a stored edge with the exact directional natural key."""
        outgoing = await self.store.get_entity_relationships(
            source_entity_id, "outgoing", self.relationship_scan_limit
        )
        for rel in outgoing:
            if (
                rel.persona_id == persona_id
                and rel.target_entity_id == target_entity_id
                and rel.relationship_type == relationship_type
            ):
                return rel
        return None

    # =========================================================================
    # Entities
    # =========================================================================

    async def create_or_merge_entity(self, data: EntityInput) -> str:
        """Create an entity or merge into the existing one with the same natural key.

        Returns:
            Id of the created or existing entity

        Raises:
            GraphWriteError: If any storage call fails
        """
        key = ("entity", data.persona_id, data.name.lower(), data.type)
        async with self._locks.acquire(key):
            try:
                return await self._create_or_merge_entity(data)
            except Exception as e:
                self.observer.error(
                    "Entity create/merge failed",
                    exc=e,
                    persona_id=data.persona_id,
                    name=data.name,
                    type=data.type,
                )
                raise GraphWriteError(
                    "create_or_merge_entity",
                    cause=e,
                    persona_id=data.persona_id,
                    name=data.name,
                    type=data.type,
                ) from e

    async def _create_or_merge_entity(self, data: EntityInput) -> str:
        existing = await self.find_entity_by_name_and_type(data.persona_id, data.name, data.type)

        if existing is not None:
            if data.confidence <= existing.confidence:
                return existing.id

            old_confidence = existing.confidence
            existing.confidence = data.confidence
            existing.vector_id = data.vector_id or existing.vector_id
            existing.properties = merge_properties(existing.properties, data.properties)
            await self.store.update_entity(existing)
            self.observer.info(
                "Updated existing entity with higher confidence",
                entity_id=existing.id,
                name=data.name,
                old_confidence=old_confidence,
                new_confidence=data.confidence,
            )
            return existing.id

        entity = Entity(
            id=data.id or self.id_factory(),
            persona_id=data.persona_id,
            vector_id=data.vector_id,
            type=data.type,
            name=data.name,
            properties=dict(data.properties),
            confidence=data.confidence,
        )
        await self.store.insert_entity(entity)
        self.observer.info(
            "Created new entity",
            entity_id=entity.id,
            persona_id=entity.persona_id,
            type=entity.type,
            name=entity.name,
            confidence=entity.confidence,
        )
        return entity.id

    # =========================================================================
    # Relationships
    # =========================================================================

    async def create_or_merge_relationship(self, data: RelationshipInput) -> str:
        """Create a relationship or merge into the existing edge with the same natural key.

        Returns:
            Id of the created or existing relationship

        Raises:
            GraphWriteError: If any storage call fails
        """
        key = (
            "relationship",
            data.persona_id,
            data.source_entity_id,
            data.target_entity_id,
            data.relationship_type,
        )
        async with self._locks.acquire(key):
            try:
                return await self._create_or_merge_relationship(data)
            except Exception as e:
                self.observer.error(
                    "Relationship create/merge failed",
                    exc=e,
                    persona_id=data.persona_id,
                    source_entity_id=data.source_entity_id,
                    target_entity_id=data.target_entity_id,
                    relationship_type=data.relationship_type,
                )
                raise GraphWriteError(
                    "create_or_merge_relationship",
                    cause=e,
                    persona_id=data.persona_id,
                    source_entity_id=data.source_entity_id,
                    target_entity_id=data.target_entity_id,
                    relationship_type=data.relationship_type,
                ) from e

    async def _create_or_merge_relationship(self, data: RelationshipInput) -> str:
        existing = await self.find_relationship(
            data.persona_id, data.source_entity_id, data.target_entity_id, data.relationship_type
        )

        if existing is not None:
            old_strength = existing.strength
            update_count = existing.properties.get(UPDATE_COUNT_KEY) or 0
            existing.strength = (existing.strength + data.strength) / 2
            existing.context = data.context or existing.context
            existing.properties = merge_properties(existing.properties, data.properties)
            existing.properties[UPDATE_COUNT_KEY] = update_count + 1
            await self.store.update_relationship(existing)
            self.observer.info(
                "Updated existing relationship",
                relationship_id=existing.id,
                old_strength=old_strength,
                new_strength=existing.strength,
            )
            return existing.id

        rel = Relationship(
            id=data.id or self.id_factory(),
            persona_id=data.persona_id,
            source_entity_id=data.source_entity_id,
            target_entity_id=data.target_entity_id,
            relationship_type=data.relationship_type,
            strength=data.strength,
            context=data.context,
            properties=dict(data.properties),
        )
        await self.store.insert_relationship(rel)
        self.observer.info(
            "Created new relationship",
            relationship_id=rel.id,
            persona_id=rel.persona_id,
            source_entity_id=rel.source_entity_id,
            target_entity_id=rel.target_entity_id,
            relationship_type=rel.relationship_type,
            strength=rel.strength,
        )
        return rel.id
