import asyncio
from contextlib import contextmanager
import logging
import os
import random
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from vaultgraph.config import GraphSettings
from vaultgraph.core.models import HubMetric, HubMetrics, PathAnalysis
from vaultgraph.core.report import (
    analysis_to_markdown,
    export_report,
    hubs_to_markdown,
    path_to_markdown,
)
from vaultgraph.core.resolver import note_basename
from vaultgraph.core.service import GraphService, NoteNotFoundError
from vaultgraph.core.vault import VaultDocumentSource

logger = logging.getLogger(__name__)

APP_HELP = """
vaultgraph: connection analysis for Markdown note vaults.

Builds a typed graph of your notes ([[links]], ![[embeds]], shared #tags and
backlinks), then finds how two notes are connected and which notes act as hubs.

CORE WORKFLOW:
1. PATHS:  Run `vaultgraph path "Note A" "Note B"` to see how two notes connect.
2. HUBS:   Run `vaultgraph hubs --sort-by in_degree` to rank notes by a hub metric.
3. EXPORT: Run `vaultgraph export "Note A" "Note B"` to save the analysis as a note.
4. SERVE:  Run `vaultgraph serve` to expose the same analyses over HTTP.
"""

app = typer.Typer(name="vaultgraph", help=APP_HELP, no_args_is_help=True)
console = Console()

state = {"vault": None}


@app.callback()
def main(
    vault: Optional[Path] = typer.Option(
        None, "--vault", "-v", help="Vault directory (defaults to VAULTGRAPH_VAULT_PATH or '.')."
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
):
    """
    vaultgraph: connection analysis for Markdown note vaults.
    """
    state["vault"] = vault
    settings = _settings()
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _settings() -> GraphSettings:
    if state["vault"] is not None:
        return GraphSettings(vault_path=state["vault"])
    return GraphSettings()


def _service(seed: Optional[int] = None) -> GraphService:
    settings = _settings()
    rng = random.Random(seed) if seed is not None else None
    return GraphService(VaultDocumentSource(settings.vault_path), settings, rng)


@contextmanager
def _progress_bar(description: str):
    """Yield an on_progress callback that drives a transient rich progress bar."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(description, total=100)

        def on_progress(message: str, percent: float) -> None:
            progress.update(task, description=message, completed=percent)

        yield on_progress


def _run_analysis(service: GraphService, start: str, end: str, max_paths: Optional[int]) -> PathAnalysis:
    with _progress_bar("Analyzing...") as on_progress:
        try:
            return asyncio.run(service.analyze_path(start, end, on_progress, max_paths=max_paths))
        except NoteNotFoundError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        except OSError as e:
            console.print(f"[red]Error building graph: {e}[/red]")
            raise typer.Exit(code=1)


def _run_hub_metrics(service: GraphService) -> HubMetrics:
    with _progress_bar("Analyzing hubs...") as on_progress:
        try:
            return asyncio.run(service.calculate_hub_metrics(on_progress))
        except OSError as e:
            console.print(f"[red]Error building graph: {e}[/red]")
            raise typer.Exit(code=1)


@app.command("path")
def path_command(
    start: str = typer.Argument(..., help="Start note name or path"),
    end: str = typer.Argument(..., help="End note name or path"),
    max_paths: Optional[int] = typer.Option(None, "--max-paths", "-n", min=1, help="Paths to show"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for alternative path search"),
):
    """
    Show how two notes are connected.
    """
    service = _service(seed)
    analysis = _run_analysis(service, start, end, max_paths)
    source = service.source

    console.print(
        f"[bold blue]{note_basename(analysis.start)}[/bold blue] → "
        f"[bold blue]{note_basename(analysis.end)}[/bold blue]"
    )
    if not analysis.shortest.found:
        console.print("[yellow]No path found between these notes.[/yellow]")
        return

    console.print(f"Shortest path ({analysis.shortest.distance} steps):")
    console.print(path_to_markdown(analysis.shortest, source), markup=False)

    if len(analysis.alternatives) > 1:
        console.print()
        console.print("[bold]Alternative paths:[/bold]")
        for index, result in enumerate(analysis.alternatives[1:], start=1):
            console.print(f"{index}. ({result.distance} steps) ", end="")
            console.print(path_to_markdown(result, source), markup=False)

    if analysis.clustering:
        table = Table(title="Path Metrics")
        table.add_column("Note", style="cyan")
        table.add_column("Betweenness", style="magenta")
        table.add_column("Clustering", style="magenta")
        for node in analysis.shortest.path:
            table.add_row(
                note_basename(node),
                f"{analysis.betweenness.get(node, 0)}/10",
                f"{analysis.clustering.get(node, 0.0) * 100:.1f}%",
            )
        console.print()
        console.print(table)


@app.command("hubs")
def hubs_command(
    count: int = typer.Option(20, "--count", "-c", min=1, help="Number of notes to show"),
    sort_by: HubMetric = typer.Option(HubMetric.PAGE_RANK, "--sort-by", "-s", help="Metric to rank by"),
):
    """
    Rank notes by a hub metric (PageRank by default) and show all their metrics.
    """
    service = _service()
    metrics = _run_hub_metrics(service)

    table = Table(title=f"Hub Notes by {sort_by.label}")
    table.add_column("Rank", style="dim")
    table.add_column("Note", style="cyan")
    table.add_column("PageRank", style="magenta")
    table.add_column("In", style="magenta")
    table.add_column("Out", style="magenta")
    table.add_column("Total", style="magenta")
    table.add_column("Eigenvector", style="magenta")
    table.add_column("Bridging", style="magenta")

    for rank, note in enumerate(service.rank_hub_notes(metrics, count, sort_by), start=1):
        table.add_row(
            str(rank),
            note.basename,
            f"{note.page_rank:.3f}",
            str(note.in_degree),
            str(note.out_degree),
            str(note.total_degree),
            f"{note.eigenvector_centrality:.3f}",
            f"{note.bridging_coefficient:.3f}",
        )
    console.print(table)


@app.command("export")
def export_command(
    start: Optional[str] = typer.Argument(None, help="Start note name or path"),
    end: Optional[str] = typer.Argument(None, help="End note name or path"),
    hubs: bool = typer.Option(False, "--hubs", help="Export the hub ranking instead"),
    count: int = typer.Option(20, "--count", "-c", min=1, help="Hub notes to export"),
    sort_by: HubMetric = typer.Option(HubMetric.PAGE_RANK, "--sort-by", "-s", help="Metric to rank hubs by"),
):
    """
    Save a path analysis (or the hub ranking) as a new note in the vault.
    """
    service = _service()

    if hubs:
        metrics = _run_hub_metrics(service)
        markdown = hubs_to_markdown(
            service.rank_hub_notes(metrics, count, sort_by), sort_by=sort_by
        )
        prefix = "Hub Analysis"
    else:
        if not start or not end:
            console.print("[red]Error: provide START and END, or use --hubs.[/red]")
            raise typer.Exit(code=1)
        analysis = _run_analysis(service, start, end, None)
        markdown = analysis_to_markdown(analysis, service.source)
        prefix = "Connection Analysis"

    try:
        note_path = export_report(service.source, markdown, prefix)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error exporting analysis: {e}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Analysis exported to {note_path}[/green]")


@app.command("serve")
def serve_command(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(int(os.getenv("PORT", "8000")), "--port"),
):
    """
    Serve the HTTP API with uvicorn.
    """
    import uvicorn

    if state["vault"] is not None:
        os.environ["VAULTGRAPH_VAULT_PATH"] = str(state["vault"])
    uvicorn.run("vaultgraph.api.main:app", host=host, port=port)


if __name__ == "__main__":
    app()
