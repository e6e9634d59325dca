"""Command-line interface for the RepuShield pipeline using Typer and Rich."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from repushield import __version__
from repushield.config.logging import get_logger
from repushield.config.settings import settings
from repushield.data_management.configuration_store import ConfigurationStore
from repushield.data_management.job_log_store import JobLogStore
from repushield.data_management.mention_repository import InMemoryMentionRepository
from repushield.data_management.post_store import PostStore
from repushield.data_management.schemas import Configuration, OrchestrationResult
from repushield.orchestration.orchestrator import PipelineOrchestrator
from repushield.orchestration.run_context import RunContext
from repushield.orchestration.scheduler import PipelineScheduler

app = typer.Typer(
    help="RepuShield - reputation monitoring pipeline",
    add_completion=False,
)

console = Console()

logger = get_logger("cli")


def _data_path(name: str) -> Optional[str]:
    if not settings.data_dir:
        return None
    return str(Path(settings.data_dir) / name)


def _build_pipeline(apply_filter: bool) -> tuple[ConfigurationStore, PipelineOrchestrator]:
    configuration_store = ConfigurationStore(_data_path("configurations.json"))
    post_store = PostStore(InMemoryMentionRepository(_data_path("mentions.json")))
    orchestrator = PipelineOrchestrator(
        post_store=post_store,
        job_log=JobLogStore(_data_path("job_log.json")),
        apply_filter=apply_filter,
    )
    return configuration_store, orchestrator


def _load_configuration(path: Path) -> Configuration:
    try:
        return Configuration.model_validate(json.loads(path.read_text()))
    except (OSError, ValueError, ValidationError) as e:
        console.print(f"[red]✗[/red] Could not load configuration {path}: {e}")
        raise typer.Exit(1)


async def _register(store: ConfigurationStore, configuration: Configuration) -> Configuration:
    if await store.get(configuration.id) is None:
        await store.create(configuration)
    return await store.activate(configuration.id)


def _print_result(result: OrchestrationResult) -> None:
    table = Table(title=f"Run {result.run_id[:8]}", show_header=True, header_style="bold magenta")
    table.add_column("Stage", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Fetched", justify="right")
    table.add_column("Stored", justify="right")
    table.add_column("Errors", justify="right", style="yellow")

    for stage in result.agent_results:
        table.add_row(
            stage.platform,
            stage.status.value,
            str(stage.posts_fetched),
            str(stage.posts_stored),
            str(len(stage.errors)),
        )
    console.print(table)

    if result.completeness is not None:
        report = result.completeness
        console.print(
            f"Completeness: {report.incomplete_before} incomplete, "
            f"{report.rescored} re-scored, {report.still_incomplete} still incomplete"
        )
    for error in result.errors[:10]:
        console.print(f"[yellow]•[/yellow] {error}")

    state = "[yellow]cancelled[/yellow]" if result.cancelled else "[green]finished[/green]"
    console.print(
        f"\nRun {state} in {result.duration_seconds:.2f}s: "
        f"{result.total_posts_fetched} fetched, {result.total_posts_stored} stored"
    )


@app.command()
def status() -> None:
    """Display pipeline settings and API configuration."""
    logger.info("Displaying system status")

    table = Table(title="RepuShield Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", width=20)
    table.add_column("Status", style="green", width=16)
    table.add_column("Details", style="yellow")

    python_version = f"Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    table.add_row("Environment", "✓ Ready", python_version)

    def configured(value: str) -> str:
        return "✓ Configured" if value else "⚠ Not Configured"

    table.add_row(
        "Gemini API",
        configured(settings.gemini_api_key),
        f"{settings.gemini_model} (RPM: {settings.max_rpm}, TPM: {settings.max_tpm:,})",
    )
    table.add_row("RapidAPI", configured(settings.rapidapi_key), "twitter, reddit, facebook")
    table.add_row("Serper", configured(settings.serper_api_key), "news, fact-check evidence")
    table.add_row(
        "Pipeline",
        "✓ Active",
        f"page {settings.fetch_page_size}, batch {settings.risk_batch_size}, "
        f"fact-check ≥ {settings.fact_check_threshold}",
    )
    table.add_row("Schedule", "✓ Active", f"every {settings.schedule_interval_minutes} min")
    table.add_row("Logging", "✓ Active", f"Level: {settings.log_level}, Format: {settings.log_format}")
    table.add_row("Storage", "✓ Active", settings.data_dir or "memory only")

    console.print(table)


@app.command()
def run(
    config_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Configuration JSON"),
    apply_filter: bool = typer.Option(False, "--filter", help="Drop items failing the ontology filter"),
) -> None:
    """Activate a configuration and run one pipeline pass."""
    configuration = _load_configuration(config_file)
    configuration_store, orchestrator = _build_pipeline(apply_filter)

    async def _main() -> OrchestrationResult:
        active = await _register(configuration_store, configuration)
        context = RunContext(configuration_id=active.id, trigger_source="cli")
        async with orchestrator:
            return await orchestrator.run(active, context)

    logger.info(f"Running pipeline for {configuration.entity_name}")
    console.print(f"[bold cyan]Entity:[/bold cyan] {configuration.entity_name}")
    try:
        result = asyncio.run(_main())
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)

    _print_result(result)


@app.command()
def schedule(
    config_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Configuration JSON"),
    interval: Optional[int] = typer.Option(None, "--interval", "-i", help="Minutes between runs"),
    apply_filter: bool = typer.Option(False, "--filter", help="Drop items failing the ontology filter"),
) -> None:
    """Run the pipeline on a fixed interval until interrupted."""
    configuration = _load_configuration(config_file)
    configuration_store, orchestrator = _build_pipeline(apply_filter)
    scheduler = PipelineScheduler(orchestrator, configuration_store, interval_minutes=interval)

    async def _main() -> None:
        await _register(configuration_store, configuration)
        scheduler.start()
        try:
            result = await scheduler.trigger_manual(configuration.id)
            _print_result(result)
            await asyncio.Event().wait()
        finally:
            await scheduler.shutdown()

    console.print(
        f"[bold cyan]Scheduling[/bold cyan] {configuration.entity_name} "
        f"every {scheduler.interval_minutes} minutes (Ctrl+C to stop)"
    )
    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        console.print("\n[yellow]Scheduler stopped[/yellow]")


@app.command()
def version() -> None:
    """Display version information."""
    console.print("[bold]RepuShield[/bold]")
    console.print(f"Version: {__version__}")


if __name__ == "__main__":
    app()
