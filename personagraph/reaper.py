"""Orphan entity garbage collection.

An entity is reaped only when all three hold: it is older than the age
gate, it has no relationship in either direction, and its confidence is
below the threshold. Recent or connected entities are never touched.
"""

from __future__ import annotations

import time

from personagraph.db.graph_protocol import GraphStore
from personagraph.observability import LoguruObserver, Observer

DEFAULT_MAX_AGE_SECONDS = 30 * 24 * 60 * 60


class OrphanReaper:
    def __init__(
        self,
        store: GraphStore,
        observer: Observer | None = None,
        confidence_threshold: float = 0.5,
        clock=time.time,
    ):
        """Initialize OrphanReaper.

        Args:
            store: Storage collaborator
            observer: Telemetry sink (default: loguru)
            confidence_threshold: Orphans with confidence below this are deleted
            clock: Returns the current epoch time in seconds
        """
        self.store = store
        self.observer = observer or LoguruObserver("reaper")
        self.confidence_threshold = confidence_threshold
        self.clock = clock

    async def cleanup_orphaned_entities(
        self, persona_id: str, max_age: float = DEFAULT_MAX_AGE_SECONDS
    ) -> int:
        """Delete aged, disconnected, low-confidence entities of a persona.

        Args:
            persona_id: Persona to clean
            max_age: Minimum age in seconds before an entity is considered

        Returns:
            Number of entities deleted; 0 if the run failed at any point
        """
        try:
            cleaned = await self._cleanup(persona_id, max_age)
        except Exception as e:
            self.observer.error(
                "Orphan cleanup failed", exc=e, operation="cleanup_orphaned_entities", persona_id=persona_id
            )
            return 0

        self.observer.info(
            "Cleaned up orphaned entities", persona_id=persona_id, cleaned_count=cleaned, max_age=max_age
        )
        return cleaned

    async def _cleanup(self, persona_id: str, max_age: float) -> int:
        cutoff = self.clock() - max_age
        cleaned = 0
        for entity in await self.store.get_entities_by_persona(persona_id):
            if entity.created_at > cutoff:
                continue
            if entity.confidence >= self.confidence_threshold:
                continue
            # Existence check only
            if await self.store.get_entity_relationships(entity.id, "both", 1):
                continue
            if await self.store.delete_entity(entity.id):
                cleaned += 1
        return cleaned
