"""PersonaGraph - persona-scoped knowledge graph consolidation and query engine.

Ingests extracted entities and relationships, merges them idempotently into
a per-persona graph, and serves traversal, lexical search and statistics.
"""

from personagraph.config import Config
from personagraph.errors import GraphWriteError, PersonaGraphError, StorageError
from personagraph.models import (
    Entity,
    EntityInput,
    Relationship,
    RelationshipInput,
)
from personagraph.service import GraphService

__version__ = "0.1.0"

__all__ = [
    "Config",
    "Entity",
    "EntityInput",
    "GraphService",
    "GraphWriteError",
    "PersonaGraphError",
    "Relationship",
    "RelationshipInput",
    "StorageError",
]
