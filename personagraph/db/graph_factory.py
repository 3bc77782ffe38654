"""Graph store factory with auto-detection and fallback.

Selection order:
1. PERSONAGRAPH_GRAPH_BACKEND environment variable ('falkordb' or 'memory')
2. Explicit backend argument if not "auto"
3. Auto-detection: FalkorDB if reachable, else the in-memory store
"""

import os
from typing import Literal

from personagraph.config import Config
from personagraph.db.graph_protocol import GraphStore
from personagraph.log_config import get_logger

log = get_logger("db.factory")

BackendType = Literal["falkordb", "memory", "auto"]


def create_graph_store(
    backend: BackendType = "auto",
    falkor_host: str | None = None,
    falkor_port: int | None = None,
    falkor_password: str | None = None,
    graph_name: str | None = None,
) -> GraphStore:
    """Create a graph store.

    Args:
        backend: "falkordb", "memory", or "auto"
        falkor_host: FalkorDB host (default: localhost, or PERSONAGRAPH_FALKOR_HOST)
        falkor_port: FalkorDB port (default: 6379, or PERSONAGRAPH_FALKOR_PORT)
        falkor_password: FalkorDB password (or PERSONAGRAPH_FALKOR_PASSWORD)
        graph_name: FalkorDB graph name

    Returns:
        Initialized GraphStore

    Raises:
        RuntimeError: If FalkorDB was requested explicitly and cannot be reached
    """
    env_backend = os.environ.get("PERSONAGRAPH_GRAPH_BACKEND", "").lower()
    if env_backend in ("falkordb", "memory"):
        backend = env_backend
        log.info(f"Using backend from environment: {backend}")

    if falkor_host is None:
        falkor_host = os.environ.get("PERSONAGRAPH_FALKOR_HOST", "localhost")
    if falkor_port is None:
        falkor_port = int(os.environ.get("PERSONAGRAPH_FALKOR_PORT", "6379"))
    if falkor_password is None:
        falkor_password = os.environ.get("PERSONAGRAPH_FALKOR_PASSWORD") or None

    if backend == "memory":
        return _create_memory()

    if backend == "falkordb":
        return _create_falkor(falkor_host, falkor_port, falkor_password, graph_name)

    from personagraph.db.falkor_backend import is_falkordb_available

    if is_falkordb_available(falkor_host, falkor_port, falkor_password):
        log.info("Auto-detected FalkorDB")
        return _create_falkor(falkor_host, falkor_port, falkor_password, graph_name)

    log.warning(f"FalkorDB unreachable at {falkor_host}:{falkor_port}, falling back to in-memory store")
    return _create_memory()


def create_graph_store_from_config(config: Config) -> GraphStore:
    return create_graph_store(
        backend=config.graph_backend,
        falkor_host=config.falkor_host,
        falkor_port=config.falkor_port,
        falkor_password=config.falkor_password,
        graph_name=config.graph_name,
    )


def _create_memory() -> GraphStore:
    from personagraph.db.memory_backend import InMemoryGraphStore

    store = InMemoryGraphStore()
    store.init_schema()
    return store


def _create_falkor(host: str, port: int, password: str | None, graph_name: str | None) -> GraphStore:
    from personagraph.db.falkor_backend import FalkorGraphStore

    try:
        store = FalkorGraphStore(host=host, port=port, password=password, graph_name=graph_name)
    except Exception as e:
        raise RuntimeError(f"Failed to connect to FalkorDB at {host}:{port}: {e}") from e
    store.init_schema()
    return store


def get_backend_info() -> dict:
    """Report which backends are usable in this environment."""
    from personagraph.db.falkor_backend import is_falkordb_available

    host = os.environ.get("PERSONAGRAPH_FALKOR_HOST", "localhost")
    port = int(os.environ.get("PERSONAGRAPH_FALKOR_PORT", "6379"))
    password = os.environ.get("PERSONAGRAPH_FALKOR_PASSWORD") or None
    falkor_ok = is_falkordb_available(host, port, password)
    return {
        "falkordb": {"available": falkor_ok, "host": host, "port": port},
        "memory": {"available": True},
        "env_override": os.environ.get("PERSONAGRAPH_GRAPH_BACKEND") or None,
        "auto_selection": "falkordb" if falkor_ok else "memory",
    }
