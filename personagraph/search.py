"""Lexical entity search.

A placeholder for semantic (embedding) search: names are scored against the
query with substring and whole-word heuristics, weighted by entity
confidence. A vector-similarity scorer can replace it behind the same
contract: query in, entities ranked by ``search_score`` out.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from personagraph.db.graph_protocol import GraphStore
from personagraph.models import Entity, ScoredEntity
from personagraph.observability import LoguruObserver, Observer, ReadResult, guard_read

EXACT_MATCH_SCORE = 1.0
SUBSTRING_WEIGHT = 0.5
WHOLE_WORD_WEIGHT = 0.3


def score_name(name: str, query: str) -> float:
    """Score an entity name against a free-text query, before confidence weighting.

    An exact (case-insensitive) match scores 1.0. Otherwise each query term
    adds 0.5/n if it is a substring of the name and another 0.3/n if it is a
    whole word in the name, where n is the number of terms.
    """
    name = name.lower()
    query = query.lower()
    if name == query:
        return EXACT_MATCH_SCORE

    terms = query.split()
    if not terms:
        return 0.0

    score = 0.0
    for term in terms:
        if term in name:
            score += SUBSTRING_WEIGHT / len(terms)
        if re.search(rf"\b{re.escape(term)}\b", name):
            score += WHOLE_WORD_WEIGHT / len(terms)
    return score


class LexicalSearchScorer:
    """Ranks a persona's entities against a query string."""

    def __init__(self, store: GraphStore, observer: Observer | None = None, candidate_limit: int = 1000):
        self.store = store
        self.observer = observer or LoguruObserver("search")
        self.candidate_limit = candidate_limit

    async def search_entities(
        self,
        persona_id: str,
        query: str,
        limit: int = 10,
        entity_types: Sequence[str] | None = None,
        min_confidence: float = 0.0,
    ) -> ReadResult[list[ScoredEntity]]:
        """Return up to ``limit`` entities with a positive score, best first."""
        return await guard_read(
            self.observer,
            "search_entities",
            [],
            self._search_entities(persona_id, query, limit, entity_types, min_confidence),
            persona_id=persona_id,
            query=query,
        )

    async def _search_entities(
        self,
        persona_id: str,
        query: str,
        limit: int,
        entity_types: Sequence[str] | None,
        min_confidence: float,
    ) -> list[ScoredEntity]:
        candidates: list[Entity] = await self.store.get_entities_by_persona(persona_id, limit=self.candidate_limit)

        if entity_types is not None:
            allowed = set(entity_types)
            candidates = [e for e in candidates if e.type in allowed]
        candidates = [e for e in candidates if e.confidence >= min_confidence]

        scored = [ScoredEntity(entity=e, search_score=score_name(e.name, query) * e.confidence) for e in candidates]
        results = sorted((s for s in scored if s.search_score > 0), key=lambda s: s.search_score, reverse=True)
        results = results[:limit]

        self.observer.info(
            "Entity search completed",
            persona_id=persona_id,
            query=query,
            results_found=len(results),
            total_searched=len(candidates),
        )
        return results
