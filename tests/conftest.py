"""Shared pytest fixtures for PersonaGraph tests."""

from __future__ import annotations

import time
from typing import Any

import pytest

from personagraph.db.memory_backend import InMemoryGraphStore
from personagraph.merge import MergeResolver
from personagraph.models import Entity, Relationship

DAY = 24 * 60 * 60


class RecordingObserver:
    """Observer that keeps every event for assertions."""

    def __init__(self):
        self.infos: list[tuple[str, dict[str, Any]]] = []
        self.errors: list[tuple[str, BaseException | None, dict[str, Any]]] = []

    def info(self, message: str, **fields: Any) -> None:
        self.infos.append((message, fields))

    def error(self, message: str, exc: BaseException | None = None, **fields: Any) -> None:
        self.errors.append((message, exc, fields))


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def store() -> InMemoryGraphStore:
    return InMemoryGraphStore()


@pytest.fixture
def resolver(store, observer) -> MergeResolver:
    return MergeResolver(store, observer)


@pytest.fixture
def persona_id() -> str:
    """Standard test persona."""
    return "persona-alice"


@pytest.fixture
def make_entity(persona_id):
    """Factory for Entity records created ``age_days`` ago."""

    def _make(
        entity_id: str,
        name: str | None = None,
        type: str = "person",
        confidence: float = 1.0,
        age_days: float = 0,
        **kwargs: Any,
    ) -> Entity:
        kwargs.setdefault("persona_id", persona_id)
        return Entity(
            id=entity_id,
            type=type,
            name=name or entity_id,
            confidence=confidence,
            created_at=int(time.time() - age_days * DAY),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_relationship(persona_id):
    """Factory for Relationship records."""

    def _make(
        rel_id: str,
        source: str,
        target: str,
        type: str = "KNOWS",
        strength: float = 1.0,
        **kwargs: Any,
    ) -> Relationship:
        kwargs.setdefault("persona_id", persona_id)
        return Relationship(
            id=rel_id,
            source_entity_id=source,
            target_entity_id=target,
            relationship_type=type,
            strength=strength,
            **kwargs,
        )

    return _make
