"""Traversal enrichment over the storage layer's multi-hop primitive.

Every method here is a read path: failures degrade to empty results and are
reported to the observer, never raised.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence

from personagraph.db.graph_protocol import GraphStore
from personagraph.models import (
    GraphContext,
    RelatedEntity,
    Relationship,
    RelationshipSummary,
    TraversalHit,
)
from personagraph.observability import LoguruObserver, Observer, ReadResult, guard_read


def deduplicate_relationships(relationships: Iterable[Relationship]) -> list[Relationship]:
    """Keep the first relationship seen for each (source, target, type)."""
    seen: set[tuple[str, str, str]] = set()
    unique = []
    for rel in relationships:
        if rel.natural_key in seen:
            continue
        seen.add(rel.natural_key)
        unique.append(rel)
    return unique


class TraversalEnricher:
    """Filters traversal results and attaches relationship summaries."""

    def __init__(
        self,
        store: GraphStore,
        observer: Observer | None = None,
        enrichment_relationship_limit: int = 5,
        context_relationship_limit: int = 10,
    ):
        """Initialize TraversalEnricher.

        Args:
            store: Storage collaborator
            observer: Telemetry sink (default: loguru)
            enrichment_relationship_limit: Relationships attached per related entity
            context_relationship_limit: Default relationships fetched per context entity
        """
        self.store = store
        self.observer = observer or LoguruObserver("traversal")
        self.enrichment_relationship_limit = enrichment_relationship_limit
        self.context_relationship_limit = context_relationship_limit

    # =========================================================================
    # Related entities
    # =========================================================================

    async def find_related_entities(
        self,
        entity_id: str,
        max_depth: int = 2,
        limit: int = 50,
        min_strength: float = 0.1,
        entity_types: Sequence[str] | None = None,
        relationship_types: Sequence[str] | None = None,
    ) -> ReadResult[list[RelatedEntity]]:
        """Find entities within ``max_depth`` hops, filtered and enriched.

        Args:
            entity_id: Start entity
            max_depth: Hop bound passed to the storage traversal
            limit: Result cap passed to the storage traversal
            min_strength: Minimum entity confidence (confidence stands in for
                strength here; traversal edge weights are not consulted).
                Not applied when <= 0.
            entity_types: Entity-type allow-list
            relationship_types: Relationship-type allow-list for attached summaries

        Returns:
            Ok(list of RelatedEntity) or Degraded([]) if the traversal failed
        """
        return await guard_read(
            self.observer,
            "find_related_entities",
            [],
            self._find_related_entities(
                entity_id, max_depth, limit, min_strength, entity_types, relationship_types
            ),
            entity_id=entity_id,
        )

    async def _find_related_entities(
        self,
        entity_id: str,
        max_depth: int,
        limit: int,
        min_strength: float,
        entity_types: Sequence[str] | None,
        relationship_types: Sequence[str] | None,
    ) -> list[RelatedEntity]:
        hits = await self.store.find_related_entities(entity_id, max_depth, limit)

        if entity_types is not None:
            allowed = set(entity_types)
            hits = [hit for hit in hits if hit.entity.type in allowed]
        if min_strength > 0:
            hits = [hit for hit in hits if hit.entity.confidence >= min_strength]

        enriched = await asyncio.gather(*(self._enrich(hit, relationship_types) for hit in hits))

        self.observer.info(
            "Found related entities",
            source_entity_id=entity_id,
            related_count=len(enriched),
            max_depth=max_depth,
        )
        return list(enriched)

    async def _enrich(self, hit: TraversalHit, relationship_types: Sequence[str] | None) -> RelatedEntity:
        entity = hit.entity
        related = RelatedEntity(
            id=entity.id,
            name=entity.name,
            type=entity.type,
            confidence=entity.confidence,
            depth=hit.depth,
        )
        try:
            relationships = await self.store.get_entity_relationships(
                entity.id, "both", self.enrichment_relationship_limit
            )
        except Exception as e:
            self.observer.error("Failed to enrich related entity", exc=e, entity_id=entity.id)
            return related

        if relationship_types is not None:
            allowed = set(relationship_types)
            relationships = [rel for rel in relationships if rel.relationship_type in allowed]
        related.relationships = [RelationshipSummary.from_relationship(rel, entity.id) for rel in relationships]
        return related

    # =========================================================================
    # Graph context
    # =========================================================================

    async def get_graph_context(
        self,
        entity_ids: Sequence[str],
        include_relationships: bool = True,
        max_relationships: int | None = None,
    ) -> ReadResult[GraphContext]:
        """Assemble entities, their relationships and the edges among them.

        Missing entities and per-entity fetch failures are skipped.
        ``connections`` holds relationships with an endpoint in ``entity_ids``.
        Both relationship lists are deduplicated by (source, target, type).
        """
        return await guard_read(
            self.observer,
            "get_graph_context",
            GraphContext(),
            self._get_graph_context(
                entity_ids,
                include_relationships,
                self.context_relationship_limit if max_relationships is None else max_relationships,
            ),
        )

    async def _get_graph_context(
        self,
        entity_ids: Sequence[str],
        include_relationships: bool,
        max_relationships: int,
    ) -> GraphContext:
        context = GraphContext()
        requested = set(entity_ids)

        for entity_id in entity_ids:
            try:
                entity = await self.store.get_entity(entity_id)
                if entity is None:
                    continue
                context.entities.append(entity)
                if not include_relationships:
                    continue
                relationships = await self.store.get_entity_relationships(
                    entity_id, "both", max_relationships
                )
            except Exception as e:
                self.observer.error("Failed to fetch entity context", exc=e, entity_id=entity_id)
                continue

            context.relationships.extend(relationships)
            context.connections.extend(
                rel for rel in relationships
                if rel.source_entity_id in requested or rel.target_entity_id in requested
            )

        context.relationships = deduplicate_relationships(context.relationships)
        context.connections = deduplicate_relationships(context.connections)

        self.observer.info(
            "Retrieved graph context",
            requested_entities=len(entity_ids),
            found_entities=len(context.entities),
            relationships=len(context.relationships),
            connections=len(context.connections),
        )
        return context
