"""Scheduler for periodic orphan cleanup.

Runs the orphan reaper for a fixed list of personas on an interval.
This is a simple in-process scheduler; deployments with several workers
should run it in exactly one of them.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from personagraph.log_config import get_logger
from personagraph.reaper import OrphanReaper

log = get_logger("scheduler")


@dataclass
class ReaperSchedulerConfig:
    """Configuration for the orphan cleanup scheduler."""

    enabled: bool = False
    interval_hours: float = 24
    max_age_days: float = 30
    personas: list[str] = field(default_factory=list)


@dataclass
class ReaperScheduler:
    reaper: OrphanReaper
    config: ReaperSchedulerConfig = field(default_factory=ReaperSchedulerConfig)
    _task: asyncio.Task | None = field(default=None, init=False)
    _running: bool = field(default=False, init=False)

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the scheduler background task."""
        if not self.config.enabled:
            log.info("Orphan cleanup scheduler disabled")
            return
        if self._running:
            log.warning("Scheduler already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        log.info(
            f"Orphan cleanup scheduler started (every {self.config.interval_hours}h, "
            f"{len(self.config.personas)} personas)"
        )

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        log.info("Orphan cleanup scheduler stopped")

    async def run_once(self) -> dict[str, int]:
        """Run cleanup for every configured persona.

        Returns:
            Deleted-entity count per persona
        """
        max_age = self.config.max_age_days * 24 * 60 * 60
        results = {}
        for persona_id in self.config.personas:
            results[persona_id] = await self.reaper.cleanup_orphaned_entities(persona_id, max_age)
        log.info(f"Orphan cleanup pass finished: {sum(results.values())} deleted")
        return results

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.run_once()
                await asyncio.sleep(self.config.interval_hours * 3600)
            except asyncio.CancelledError:
                break
            except Exception as e:
                log.error(f"Scheduler error: {e}")
                await asyncio.sleep(60)
