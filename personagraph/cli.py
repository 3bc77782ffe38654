"""PersonaGraph CLI with Rich output.

Provides commands for:
- Backend status
- Batch ingestion of extracted entities/relationships from JSON
- Entity search, traversal and context inspection
- Graph statistics and orphan cleanup

Usage:
    personagraph status
    personagraph ingest extracted.json --persona alice
    personagraph search alice "acme corp"
    personagraph related <entity-id> --depth 2
    personagraph stats alice
    personagraph cleanup alice --max-age-days 30
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from personagraph.config import Config
from personagraph.models import EntityInput, RelationshipInput
from personagraph.service import GraphService

app = typer.Typer(
    name="personagraph",
    help="PersonaGraph - knowledge graph consolidation and query engine",
    rich_markup_mode="rich",
    no_args_is_help=True,
)
console = Console()

BackendOption = typer.Option(None, "--backend", "-b", help="Graph backend: auto, falkordb or memory")


def _get_service(backend: Optional[str]) -> GraphService:
    config = Config(graph_backend=backend) if backend else Config()
    return GraphService.from_config(config)


@app.command()
def status():
    """Show which graph backends are reachable."""
    from personagraph.db.graph_factory import get_backend_info

    info = get_backend_info()
    table = Table(title="Graph Backends", box=box.ROUNDED)
    table.add_column("Backend", style="cyan")
    table.add_column("Available")
    table.add_column("Details", style="dim")

    falkor = info["falkordb"]
    table.add_row(
        "falkordb",
        "[green]yes[/green]" if falkor["available"] else "[red]no[/red]",
        f"{falkor['host']}:{falkor['port']}",
    )
    table.add_row("memory", "[green]yes[/green]", "in-process, not persistent")
    console.print(table)
    console.print(f"Auto selection: [bold]{info['auto_selection']}[/bold]")
    if info["env_override"]:
        console.print(f"Environment override: [yellow]{info['env_override']}[/yellow]")


@app.command()
def ingest(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON with 'entities' and 'relationships'"),
    persona: Optional[str] = typer.Option(None, "--persona", "-p", help="Persona for items without persona_id"),
    backend: Optional[str] = BackendOption,
):
    """Merge a batch of extracted entities and relationships."""
    payload = json.loads(file.read_text())
    raw_entities = payload.get("entities", [])
    raw_relationships = payload.get("relationships", [])
    if persona:
        for item in [*raw_entities, *raw_relationships]:
            item.setdefault("persona_id", persona)

    try:
        entities = [EntityInput.model_validate(item) for item in raw_entities]
        relationships = [RelationshipInput.model_validate(item) for item in raw_relationships]
    except ValidationError as e:
        console.print(f"[red]Invalid input:[/red] {e}")
        raise typer.Exit(1)

    service = _get_service(backend)
    try:
        result = asyncio.run(service.process_batch(entities, relationships))
    finally:
        service.close()

    summary = result.summary
    table = Table(title="Ingestion Summary", box=box.ROUNDED)
    table.add_column("Kind", style="cyan")
    table.add_column("Processed", style="green", justify="right")
    table.add_column("Failed", style="red", justify="right")
    table.add_row("entities", str(summary.entities_processed), str(summary.entities_failed))
    table.add_row("relationships", str(summary.relationships_processed), str(summary.relationships_failed))
    console.print(table)

    for item in [*result.entities, *result.relationships]:
        if item.status == "failed":
            console.print(f"[red]failed[/red] {item.input.model_dump(exclude_none=True)}: {item.error}")

    if summary.entities_failed or summary.relationships_failed:
        raise typer.Exit(2)


@app.command()
def search(
    persona: str = typer.Argument(..., help="Persona id"),
    query: str = typer.Argument(..., help="Free-text query"),
    limit: int = typer.Option(10, "--limit", "-n"),
    entity_type: Optional[list[str]] = typer.Option(None, "--type", "-t", help="Entity type allow-list"),
    min_confidence: float = typer.Option(0.0, "--min-confidence"),
    backend: Optional[str] = BackendOption,
):
    """Search a persona's entities by name."""
    service = _get_service(backend)
    try:
        results = asyncio.run(
            service.search_entities(
                persona, query, limit=limit, entity_types=entity_type, min_confidence=min_confidence
            )
        )
    finally:
        service.close()

    if not results:
        console.print("[yellow]No matching entities[/yellow]")
        return

    table = Table(title=f"Search: {query}", box=box.ROUNDED)
    table.add_column("Score", justify="right", style="green")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Confidence", justify="right")
    table.add_column("Id", style="dim")
    for hit in results:
        table.add_row(
            f"{hit.search_score:.3f}", hit.entity.name, hit.entity.type, f"{hit.entity.confidence:.2f}", hit.entity.id
        )
    console.print(table)


@app.command()
def related(
    entity_id: str = typer.Argument(..., help="Start entity id"),
    depth: int = typer.Option(2, "--depth", "-d"),
    limit: int = typer.Option(50, "--limit", "-n"),
    min_strength: float = typer.Option(0.1, "--min-strength"),
    entity_type: Optional[list[str]] = typer.Option(None, "--type", "-t"),
    relationship_type: Optional[list[str]] = typer.Option(None, "--rel-type", "-r"),
    backend: Optional[str] = BackendOption,
):
    """Show entities reachable from an entity, with their relationships."""
    service = _get_service(backend)
    try:
        results = asyncio.run(
            service.find_related_entities(
                entity_id,
                max_depth=depth,
                limit=limit,
                min_strength=min_strength,
                entity_types=entity_type,
                relationship_types=relationship_type,
            )
        )
    finally:
        service.close()

    if not results:
        console.print("[yellow]No related entities[/yellow]")
        return

    table = Table(title=f"Related to {entity_id}", box=box.ROUNDED)
    table.add_column("Depth", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Relationships", style="dim")
    for entity in results:
        rels = ", ".join(
            f"{'->' if r.direction == 'outgoing' else '<-'}{r.type}({r.strength:.2f})" for r in entity.relationships
        )
        table.add_row(str(entity.depth), entity.name, entity.type, rels or "-")
    console.print(table)


@app.command()
def context(
    entity_ids: list[str] = typer.Argument(..., help="Entity ids"),
    no_relationships: bool = typer.Option(False, "--no-relationships"),
    max_relationships: int = typer.Option(10, "--max-relationships"),
    backend: Optional[str] = BackendOption,
):
    """Print the graph context of a set of entities as JSON."""
    service = _get_service(backend)
    try:
        result = asyncio.run(
            service.get_graph_context(
                entity_ids,
                include_relationships=not no_relationships,
                max_relationships=max_relationships,
            )
        )
    finally:
        service.close()
    console.print_json(json.dumps(result.to_dict(), default=str))


@app.command()
def stats(
    persona: str = typer.Argument(..., help="Persona id"),
    backend: Optional[str] = BackendOption,
):
    """Show graph statistics for a persona."""
    service = _get_service(backend)
    try:
        result = asyncio.run(service.get_graph_statistics(persona))
    finally:
        service.close()

    table = Table(title=f"Graph: {persona}", box=box.ROUNDED, show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Entities", str(result.total_entities))
    table.add_row("Relationships", str(result.total_relationships))
    table.add_row("Entity types", ", ".join(result.entity_types) or "-")
    table.add_row("Relationship types", ", ".join(result.relationship_types) or "-")
    table.add_row("Density", f"{result.graph_density:.4f}")
    table.add_row("Avg relationships/entity", f"{result.average_relationships_per_entity:.2f}")
    table.add_row("Complexity", result.graph_complexity)
    console.print(table)


@app.command()
def cleanup(
    persona: str = typer.Argument(..., help="Persona id"),
    max_age_days: float = typer.Option(30, "--max-age-days"),
    backend: Optional[str] = BackendOption,
):
    """Delete aged, disconnected, low-confidence entities."""
    service = _get_service(backend)
    try:
        deleted = asyncio.run(service.cleanup_orphaned_entities(persona, max_age_days * 24 * 60 * 60))
    finally:
        service.close()
    console.print(f"Deleted [bold]{deleted}[/bold] orphaned entities")


if __name__ == "__main__":
    app()
