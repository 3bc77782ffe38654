"""Batch ingestion of extracted entities and relationships.

Entities are merged before relationships so that relationships can point
at freshly created entities. Each item succeeds or fails on its own; a
failed item becomes a ``failed`` entry and the batch carries on. There is
no cross-item atomicity.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from personagraph.log_config import get_logger, log_timing
from personagraph.merge import MergeResolver
from personagraph.models import (
    BatchResult,
    BatchSummary,
    EntityInput,
    ProcessedItem,
    RelationshipInput,
)
from personagraph.observability import LoguruObserver, Observer

log = get_logger("batch")

ItemT = TypeVar("ItemT", EntityInput, RelationshipInput)


class BatchIngestor:
    """Drives a MergeResolver over batches with per-item failure isolation."""

    def __init__(self, resolver: MergeResolver, observer: Observer | None = None, concurrency: int = 1):
        """Initialize BatchIngestor.

        Args:
            resolver: Merge resolver used for every item
            observer: Telemetry sink (default: loguru)
            concurrency: Items merged at once within a phase (1 = sequential)
        """
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.resolver = resolver
        self.observer = observer or LoguruObserver("batch")
        self.concurrency = concurrency

    async def process_batch(
        self,
        entities: Sequence[EntityInput],
        relationships: Sequence[RelationshipInput],
    ) -> BatchResult:
        """Merge all entities, then all relationships.

        Returns:
            BatchResult with one ProcessedItem per input, in input order,
            and processed/failed counts per category
        """
        with log_timing(f"Batch of {len(entities)} entities, {len(relationships)} relationships", log):
            processed_entities = await self._run_phase(
                entities, self.resolver.create_or_merge_entity, self._entity_failed
            )
            processed_relationships = await self._run_phase(
                relationships, self.resolver.create_or_merge_relationship, self._relationship_failed
            )

        summary = BatchSummary(
            entities_processed=sum(1 for item in processed_entities if item.status == "processed"),
            entities_failed=sum(1 for item in processed_entities if item.status == "failed"),
            relationships_processed=sum(1 for item in processed_relationships if item.status == "processed"),
            relationships_failed=sum(1 for item in processed_relationships if item.status == "failed"),
        )
        self.observer.info(
            "Graph processing completed",
            entities_processed=summary.entities_processed,
            entities_failed=summary.entities_failed,
            relationships_processed=summary.relationships_processed,
            relationships_failed=summary.relationships_failed,
        )
        return BatchResult(
            entities=processed_entities,
            relationships=processed_relationships,
            summary=summary,
        )

    async def _run_phase(
        self,
        items: Sequence[ItemT],
        merge: Callable[[ItemT], Awaitable[str]],
        on_failure: Callable[[ItemT, Exception], None],
    ) -> list[ProcessedItem]:
        async def process(item: ItemT) -> ProcessedItem:
            try:
                item_id = await merge(item)
            except Exception as e:
                on_failure(item, e)
                return ProcessedItem(input=item, status="failed", error=str(e))
            return ProcessedItem(input=item, status="processed", id=item_id)

        if self.concurrency == 1:
            return [await process(item) for item in items]

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(item: ItemT) -> ProcessedItem:
            async with semaphore:
                return await process(item)

        # gather keeps input order regardless of completion order
        return list(await asyncio.gather(*(bounded(item) for item in items)))

    def _entity_failed(self, item: EntityInput, exc: Exception) -> None:
        self.observer.error(
            "Failed to process entity",
            exc=exc,
            operation="process_entity",
            entity_name=item.name,
            entity_type=item.type,
        )

    def _relationship_failed(self, item: RelationshipInput, exc: Exception) -> None:
        self.observer.error(
            "Failed to process relationship",
            exc=exc,
            operation="process_relationship",
            source_entity_id=item.source_entity_id,
            target_entity_id=item.target_entity_id,
            relationship_type=item.relationship_type,
        )
