"""Graph storage for PersonaGraph.

Backends:
- FalkorDB: Redis-based graph server, full Cypher (preferred)
- In-memory: embedded fallback and test store

Environment Variables:
- PERSONAGRAPH_GRAPH_BACKEND: Force "falkordb" or "memory"
- PERSONAGRAPH_FALKOR_HOST / PERSONAGRAPH_FALKOR_PORT / PERSONAGRAPH_FALKOR_PASSWORD

Example:
    from personagraph.db import create_graph_store

    store = create_graph_store("memory")
    print(store.backend_name)  # "memory"
"""

from personagraph.db.graph_factory import create_graph_store, get_backend_info
from personagraph.db.graph_protocol import BaseGraphStore, GraphStore, QueryResult
from personagraph.db.memory_backend import InMemoryGraphStore

__all__ = [
    "BaseGraphStore",
    "GraphStore",
    "InMemoryGraphStore",
    "QueryResult",
    "create_graph_store",
    "get_backend_info",
]
