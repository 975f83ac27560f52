"""Typer CLI entrypoint for zipfeed."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, ErrorPolicy, PipelineConfig
from .engine import Ledger
from .errors import LedgerError
from .infra import RedisManager
from .logging_conf import ERROR_LOG, PIPELINE_LOG, configure_logging, default_log_dir, tail_log
from .orchestrator import Orchestrator

app = typer.Typer(
    help="zipfeed: crawl a listing of zip archives and feed their entries into Redis.",
    no_args_is_help=True,
    rich_markup_mode=None,
)

console = Console()

CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Pipeline config file (YAML or JSON).")


def _load_config(config_path: Optional[Path], overrides: dict[str, object] | None = None) -> PipelineConfig:
    repository = ConfigRepository()
    try:
        return repository.load_pipeline_config(config_path, overrides=overrides)
    except FileNotFoundError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=2) from exc
    except (ValidationError, ValueError) as exc:
        console.print(f"Invalid configuration: {exc}", style="red")
        raise typer.Exit(code=2) from exc


@app.command("run", help="Crawl the listing once and process every new archive.")
def run(
    config_path: Optional[Path] = CONFIG_OPTION,
    listing_url: Optional[str] = typer.Option(None, "--listing-url", help="Override crawl.listing_url."),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Number of download workers."),
    on_error: Optional[ErrorPolicy] = typer.Option(None, "--on-error", help="halt or skip on worker failures."),
    drain: bool = typer.Option(False, "--drain", help="Finish every handed-off link before exiting."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    logger = configure_logging(verbose=verbose)
    config = _load_config(
        config_path,
        {
            "crawl.listing_url": listing_url,
            "workers": workers,
            "on_error": on_error.value if on_error else None,
            "drain_on_complete": True if drain else None,
        },
    )
    storage = RedisManager(config.redis, min_connections=config.workers)
    try:
        result = Orchestrator(config, storage).run()
    finally:
        storage.close_all()
    if not result.ok:
        error = result.error
        logger.critical("pipeline_aborted", error=str(error), cause=repr(error.__cause__) if error else None)
        console.print(f"Pipeline failed: {error}", style="red")
        raise typer.Exit(code=1)
    logger.info(
        "pipeline_finished",
        discovered=result.discovered,
        skipped_errors=len(result.skipped_errors),
    )


@app.command("status", help="Show ledger sizes and the output queue length.")
def status(config_path: Optional[Path] = CONFIG_OPTION) -> None:
    config = _load_config(config_path)
    storage = RedisManager(config.redis)
    try:
        stats = Ledger(storage.client(), config.redis).stats()
    except LedgerError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1) from exc
    finally:
        storage.close_all()
    table = Table(title="Ledger", box=box.SIMPLE_HEAD)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Kind", style="magenta")
    table.add_column("Size", style="green", justify="right")
    table.add_row(config.redis.downloaded_key, "archives downloaded", str(stats.downloaded))
    table.add_row(config.redis.processed_key, "entries processed", str(stats.processed))
    table.add_row(config.redis.output_queue, "records queued", str(stats.queued))
    console.print(table)


@app.command("check", help="Tell whether an archive link is already marked downloaded.")
def check(
    link: str = typer.Argument(..., help="Archive link as it appears on the listing page."),
    config_path: Optional[Path] = CONFIG_OPTION,
) -> None:
    config = _load_config(config_path)
    storage = RedisManager(config.redis)
    try:
        downloaded = Ledger(storage.client(), config.redis).is_downloaded(link)
    except LedgerError as exc:
        console.print(str(exc), style="red")
        raise typer.Exit(code=1) from exc
    finally:
        storage.close_all()
    if downloaded:
        console.print(f"{link}: downloaded", style="green")
    else:
        console.print(f"{link}: pending", style="yellow")


@app.command("logs", help="Show the most recent log lines.")
def logs(
    tail: int = typer.Option(100, "--tail", "-n", min=1, help="Number of lines to show."),
    errors: bool = typer.Option(False, "--errors", help="Show the error log instead."),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir", help="Directory holding the log files."),
) -> None:
    base_dir = log_dir or default_log_dir()
    path = base_dir / (ERROR_LOG if errors else PIPELINE_LOG)
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log lines yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} lines", style="cyan")
    console.print("".join(lines), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
