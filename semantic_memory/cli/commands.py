"""CLI commands for semantic-memory."""

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from semantic_memory.config import Config, load_config, save_default_config
from semantic_memory.config.loader import resolve_config_path
from semantic_memory.memory.entry import MemoryFilter, MemorySearchOptions
from semantic_memory.memory.errors import MemoryStoreError
from semantic_memory.runtime import MemoryRuntime
from semantic_memory.utils.helpers import truncate_output
from semantic_memory.utils.log import setup_logging

T = TypeVar("T")

app = typer.Typer(
    name="semantic-memory",
    help="semantic-memory: store short memories and search them by meaning",
)
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
    json_output: bool = typer.Option(False, "--json", help="Output strictly in JSON format"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override the configured log level"),
) -> None:
    """semantic-memory CLI entrypoint."""
    config = load_config(config_path)
    setup_logging(log_level or config.log_level)
    ctx.obj = {"config": config, "config_path": config_path, "json": json_output}


def _build_runtime(config: Config) -> MemoryRuntime:
    return MemoryRuntime.from_config(config)


def _run(ctx: typer.Context, action: Callable[[MemoryRuntime], Awaitable[T]]) -> T:
    """Run an async action against a fresh runtime, closing it afterwards."""
    runtime = _build_runtime(ctx.obj["config"])

    async def runner() -> T:
        try:
            return await action(runtime)
        finally:
            await runtime.close()

    try:
        return asyncio.run(runner())
    except MemoryStoreError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _parse_meta(items: list[str]) -> dict[str, Any] | None:
    if not items:
        return None
    metadata: dict[str, Any] = {}
    for item in items:
        key, sep, raw = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got {item!r}", param_hint="--meta")
        metadata[key] = _parse_scalar(raw)
    return metadata


def _parse_scalar(raw: str) -> Any:
    lowered = raw.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            continue
    return raw


def _emit(ctx: typer.Context, payload: Any) -> bool:
    """Print JSON when --json is set; returns True if output was handled."""
    if ctx.obj["json"]:
        console.print_json(json.dumps(payload, ensure_ascii=False))
        return True
    return False


@app.command()
def init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config file"),
) -> None:
    """Write a default config file."""
    try:
        path = save_default_config(ctx.obj["config_path"], overwrite=force)
    except FileExistsError as e:
        console.print(f"[yellow]{e}[/yellow] (use --force to overwrite)")
        raise typer.Exit(1)
    console.print(f"[green]Config created at:[/green] {path}")


@app.command()
def add(
    ctx: typer.Context,
    content: str = typer.Argument(..., help="Text to remember"),
    session: Optional[str] = typer.Option(None, "--session", "-s", help="Session ID"),
    agent: Optional[str] = typer.Option(None, "--agent", "-a", help="Agent ID"),
    meta: List[str] = typer.Option([], "--meta", "-m", help="Metadata as key=value (repeatable)"),
) -> None:
    """Store a new memory."""
    metadata = _parse_meta(meta)
    memory = _run(
        ctx,
        lambda rt: rt.service.add_memory(content, session_id=session, agent_id=agent, metadata=metadata),
    )
    if _emit(ctx, memory.to_dict()):
        return
    console.print(f"[green]Memory stored:[/green] {memory.id}")
    if not memory.has_embedding:
        console.print("[yellow]Warning:[/yellow] embedding failed; memory is not searchable")


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Search text"),
    session: Optional[str] = typer.Option(None, "--session", "-s", help="Session ID"),
    agent: Optional[str] = typer.Option(None, "--agent", "-a", help="Agent ID"),
    threshold: Optional[float] = typer.Option(None, "--threshold", "-t", help="Similarity threshold (0-1)"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Maximum number of results"),
) -> None:
    """Search memories by semantic similarity."""
    options = MemorySearchOptions(
        threshold=threshold,
        limit=limit,
        filter=MemoryFilter(session_id=session, agent_id=agent),
    )
    results = _run(ctx, lambda rt: rt.service.search_memories(query, options))

    if _emit(ctx, [r.to_dict() for r in results]):
        return
    if not results:
        console.print("[dim]No matching memories.[/dim]")
        return

    table = Table(title=f"Memories matching {query!r}")
    table.add_column("Similarity", style="magenta", justify="right")
    table.add_column("ID", style="cyan")
    table.add_column("Content", style="green")
    for result in results:
        table.add_row(f"{result.similarity:.3f}", result.memory.id, truncate_output(result.memory.content))
    console.print(table)


@app.command()
def get(
    ctx: typer.Context,
    memory_id: str = typer.Argument(..., help="Memory ID"),
) -> None:
    """Show a single memory."""
    memory = _run(ctx, lambda rt: rt.service.get_memory(memory_id))
    if memory is None:
        if not _emit(ctx, {"success": False, "error": f"Memory not found: {memory_id}"}):
            console.print(f"[red]Error:[/red] Memory not found: {memory_id}")
        raise typer.Exit(1)
    if _emit(ctx, memory.to_dict()):
        return

    table = Table(title=f"Memory {memory.id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Content", memory.content)
    table.add_row("Session", memory.session_id or "[dim]-[/dim]")
    table.add_row("Agent", memory.agent_id or "[dim]-[/dim]")
    table.add_row("Metadata", json.dumps(memory.metadata) if memory.metadata else "[dim]-[/dim]")
    table.add_row(
        "Embedding",
        f"{memory.embedding.dimensions} dims" if memory.embedding else "[red]none[/red]",
    )
    table.add_row("Created", memory.created_at.isoformat())
    console.print(table)


@app.command()
def delete(
    ctx: typer.Context,
    memory_id: str = typer.Argument(..., help="Memory ID"),
) -> None:
    """Delete a memory."""
    deleted = _run(ctx, lambda rt: rt.service.delete_memory(memory_id))
    if _emit(ctx, {"deleted": deleted}):
        return
    if not deleted:
        console.print(f"[red]Error:[/red] Memory not found: {memory_id}")
        raise typer.Exit(1)
    console.print(f"[green]Memory deleted:[/green] {memory_id}")


@app.command("list")
def list_memories(
    ctx: typer.Context,
    session: Optional[str] = typer.Option(None, "--session", "-s", help="Session ID"),
    agent: Optional[str] = typer.Option(None, "--agent", "-a", help="Agent ID"),
) -> None:
    """List stored memories, newest first."""
    memories = _run(
        ctx,
        lambda rt: rt.service.get_all_memories(MemoryFilter(session_id=session, agent_id=agent)),
    )
    if _emit(ctx, [m.to_dict() for m in memories]):
        return

    table = Table(title=f"Memories ({len(memories)})")
    table.add_column("Created", style="dim")
    table.add_column("ID", style="cyan")
    table.add_column("Session")
    table.add_column("Agent")
    table.add_column("Content", style="green")
    for memory in memories:
        table.add_row(
            memory.created_at.strftime("%Y-%m-%d %H:%M"),
            memory.id,
            memory.session_id or "",
            memory.agent_id or "",
            truncate_output(memory.content),
        )
    console.print(table)


@app.command()
def status(ctx: typer.Context) -> None:
    """Show current configuration."""
    config: Config = ctx.obj["config"]

    table = Table(title="semantic-memory Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Config File", str(resolve_config_path(ctx.obj["config_path"])))
    table.add_row("Database", str(config.db_path))
    table.add_row("Database Exists", "Yes" if config.db_path.exists() else "[yellow]No[/yellow]")
    table.add_row("Embedding Model", config.embedding.model_name)
    table.add_row("Dimensions", str(config.embedding.dimensions))
    table.add_row("Device", config.embedding.device or "auto")
    table.add_row("Default Threshold", str(config.search.threshold))
    table.add_row("Default Limit", str(config.search.limit))
    table.add_row("Log Level", config.log_level)

    console.print(table)


@app.command()
def serve(ctx: typer.Context) -> None:
    """Run the MCP server over stdio."""
    from semantic_memory.server import serve as serve_mcp

    asyncio.run(serve_mcp(ctx.obj["config"]))
