"""GraphService: one entry point over all consolidation and query components.

Write methods raise ``GraphWriteError``; read methods always return a value
(an empty or zeroed one if the underlying read degraded).
"""

from __future__ import annotations

from collections.abc import Sequence

from personagraph.batch import BatchIngestor
from personagraph.config import Config
from personagraph.db.graph_protocol import GraphStore
from personagraph.merge import MergeResolver
from personagraph.models import (
    BatchResult,
    EntityInput,
    GraphContext,
    GraphStatistics,
    RelatedEntity,
    RelationshipInput,
    ScoredEntity,
)
from personagraph.observability import LoguruObserver, Observer
from personagraph.reaper import OrphanReaper
from personagraph.scheduler import ReaperScheduler, ReaperSchedulerConfig
from personagraph.search import LexicalSearchScorer
from personagraph.statistics import StatisticsCalculator
from personagraph.traversal import TraversalEnricher


class GraphService:
    """Wires every component over one store and one observer."""

    def __init__(self, store: GraphStore, config: Config | None = None, observer: Observer | None = None):
        self.store = store
        self.config = config or Config()
        self.observer = observer or LoguruObserver("service")

        self.resolver = MergeResolver(
            store,
            self.observer,
            entity_lookup_limit=self.config.entity_lookup_limit,
            relationship_scan_limit=self.config.relationship_scan_limit,
        )
        self.ingestor = BatchIngestor(self.resolver, self.observer, concurrency=self.config.batch_concurrency)
        self.traversal = TraversalEnricher(
            store,
            self.observer,
            enrichment_relationship_limit=self.config.enrichment_relationship_limit,
            context_relationship_limit=self.config.context_relationship_limit,
        )
        self.search = LexicalSearchScorer(store, self.observer, candidate_limit=self.config.search_candidate_limit)
        self.statistics = StatisticsCalculator(store, self.observer)
        self.reaper = OrphanReaper(store, self.observer, confidence_threshold=self.config.orphan_confidence_threshold)
        self.scheduler = ReaperScheduler(
            self.reaper,
            ReaperSchedulerConfig(
                enabled=self.config.reaper_enabled,
                interval_hours=self.config.reaper_interval_hours,
                max_age_days=self.config.orphan_max_age_days,
                personas=list(self.config.reaper_personas),
            ),
        )

    @classmethod
    def from_config(cls, config: Config | None = None, observer: Observer | None = None) -> GraphService:
        """Build the store selected by ``config.graph_backend`` and wrap it."""
        from personagraph.db.graph_factory import create_graph_store_from_config

        config = config or Config()
        return cls(create_graph_store_from_config(config), config, observer)

    async def start(self) -> None:
        """Start periodic orphan cleanup if enabled in the config."""
        await self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()

    def close(self) -> None:
        self.store.close()

    # Writes

    async def create_or_merge_entity(self, data: EntityInput) -> str:
        return await self.resolver.create_or_merge_entity(data)

    async def create_or_merge_relationship(self, data: RelationshipInput) -> str:
        return await self.resolver.create_or_merge_relationship(data)

    async def process_batch(
        self, entities: Sequence[EntityInput], relationships: Sequence[RelationshipInput]
    ) -> BatchResult:
        return await self.ingestor.process_batch(entities, relationships)

    # Reads

    async def find_related_entities(self, entity_id: str, **options) -> list[RelatedEntity]:
        return (await self.traversal.find_related_entities(entity_id, **options)).value

    async def get_graph_context(self, entity_ids: Sequence[str], **options) -> GraphContext:
        return (await self.traversal.get_graph_context(entity_ids, **options)).value

    async def search_entities(self, persona_id: str, query: str, **options) -> list[ScoredEntity]:
        return (await self.search.search_entities(persona_id, query, **options)).value

    async def get_graph_statistics(self, persona_id: str) -> GraphStatistics:
        return (await self.statistics.get_graph_statistics(persona_id)).value

    # Maintenance

    async def cleanup_orphaned_entities(self, persona_id: str, max_age: float | None = None) -> int:
        if max_age is None:
            max_age = self.config.orphan_max_age_seconds
        return await self.reaper.cleanup_orphaned_entities(persona_id, max_age)
