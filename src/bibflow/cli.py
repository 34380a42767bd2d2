"""Command-line interface for bibflow."""

from __future__ import annotations

import asyncio
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import Optional, TextIO

import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bibflow.errors import ConfigFatal, StreamFatal
from bibflow.exporters import EXPORTERS
from bibflow.formats import build_registry
from bibflow.holdings import HoldingsIndex, load_holdings
from bibflow.logconfig import configure_logging
from bibflow.services import ConversionPipeline, HoldingsLabeler, JsonLinesWriter, RunStats, open_source
from bibflow.settings import Settings, get_settings

console = Console(stderr=True)
app = typer.Typer(help="bibflow: normalize bibliographic sources into one intermediate schema")
logger = structlog.get_logger(__name__)


def _load_index(path: Path) -> HoldingsIndex:
    if not path.is_file():
        raise ConfigFatal(f"holdings file not found: {path}")
    try:
        with path.open("rb") as handle:
            return load_holdings(handle)
    except OSError as exc:
        raise ConfigFatal(f"cannot read holdings file {path}: {exc}") from exc


async def _handle_convert(
    settings: Settings,
    fmt: str,
    source: str,
    output: TextIO,
    exporter: str,
    holdings: Optional[Path],
    isil: str,
) -> RunStats:
    adapter = build_registry(settings).get(fmt)
    convert = adapter.convert
    if holdings is not None:
        convert = HoldingsLabeler(convert, _load_index(holdings), isil)
    writer = JsonLinesWriter(output, EXPORTERS[exporter])
    pipeline = ConversionPipeline(
        adapter,
        writer,
        batch_size=settings.batch_size,
        queue_size=settings.queue_size,
        consumers=settings.consumers,
        convert=convert,
    )
    with open_source(source, timeout=settings.http_timeout) as stream:
        stats = await pipeline.run(stream)
    stats.export_failed = writer.failed
    return stats


def _print_stats(stats: RunStats) -> None:
    table = Table(title="Conversion Summary")
    table.add_column("Counter")
    table.add_column("Value", justify="right")
    for key in ("seen", "converted", "skipped", "errors", "malformed", "export_failed", "batches"):
        table.add_row(key, str(getattr(stats, key)))
    console.print(table)
    if stats.skip_reasons:
        reasons = Table(title="Skip Reasons")
        reasons.add_column("Reason", overflow="fold")
        reasons.add_column("Count", justify="right")
        for reason, count in stats.skip_reasons.most_common():
            reasons.add_row(reason, str(count))
        console.print(reasons)


@app.command()
def convert(
    fmt: str = typer.Argument(..., metavar="FORMAT", help="Source format, see `bibflow formats`"),
    source: str = typer.Argument(..., help="File, http(s) link or - for stdin"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write here instead of stdout"),
    holdings: Optional[Path] = typer.Option(None, "--holdings", help="Holdings XML for ISIL labels"),
    isil: str = typer.Option("DE-15", "--isil", help="Label for records covered by the holdings"),
    exporter: str = typer.Option("intermediate", "--exporter", "-x", help="Output schema"),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", min=1, help="Records per batch"),
    consumers: Optional[int] = typer.Option(None, "--consumers", min=1, help="Writer tasks"),
) -> None:
    """Convert a source stream into newline delimited JSON."""
    settings = get_settings()
    updates = {"batch_size": batch_size, "consumers": consumers}
    settings = settings.model_copy(update={k: v for k, v in updates.items() if v is not None})
    configure_logging(settings.log_level)
    if exporter not in EXPORTERS:
        raise typer.BadParameter(f"Exporter must be one of: {', '.join(sorted(EXPORTERS))}.")

    with ExitStack() as stack:
        handle: TextIO = sys.stdout
        if output is not None:
            output.parent.mkdir(parents=True, exist_ok=True)
            handle = stack.enter_context(output.open("w", encoding="utf-8"))
        try:
            stats = asyncio.run(
                _handle_convert(settings, fmt, source, handle, exporter, holdings, isil)
            )
        except (StreamFatal, ConfigFatal) as exc:
            logger.error("convert.aborted", error=str(exc))
            console.print(f"[red]{escape(str(exc))}[/red]")
            raise typer.Exit(code=1) from exc
    _print_stats(stats)


@app.command()
def formats() -> None:
    """List the supported source formats."""
    settings = get_settings()
    try:
        registry = build_registry(settings)
    except ConfigFatal as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    table = Table(title="Source Formats")
    table.add_column("Format")
    table.add_column("Source ID")
    table.add_column("Decoding")
    for name in registry.names():
        adapter = registry.get(name)
        decoding = f"XML <{adapter.record_tag}>" if adapter.record_tag else "JSON lines"
        table.add_row(name, adapter.source_id, decoding)
    typer.echo(", ".join(registry.names()))
    console.print(table)


@app.command("holdings")
def holdings_command(
    path: Path = typer.Argument(..., help="Holdings XML file"),
    issn: Optional[str] = typer.Option(None, "--issn", help="Show a single ISSN"),
) -> None:
    """Inspect a holdings file: entitlements, delays and moving walls."""
    configure_logging(get_settings().log_level)
    try:
        index = _load_index(path)
    except ConfigFatal as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc

    table = Table(title=f"Holdings ({len(index)})")
    table.add_column("ISSN")
    table.add_column("Title", overflow="fold")
    table.add_column("Entitlement")
    table.add_column("Boundary")
    selected = [issn] if issn else index.issns()
    for key in selected:
        for holding in index.lookup(key):
            for entitlement in holding.entitlements:
                try:
                    boundary = entitlement.boundary().date().isoformat() if entitlement.has_delay else "-"
                except ValueError as exc:
                    boundary = f"[red]{escape(str(exc))}[/red]"
                table.add_row(key, holding.title, entitlement.describe(), boundary)
    console.print(table)
    typer.echo(f"{len(index)} holdings, {len(index.issns())} ISSNs")


@app.command()
def config(
    json_output: bool = typer.Option(False, "--json", help="Output settings as JSON"),
) -> None:
    """Display the resolved settings."""
    settings = get_settings()
    if json_output:
        typer.echo(settings.model_dump_json(indent=2))
        return
    table = Table(title="bibflow Settings")
    table.add_column("Key")
    table.add_column("Value", overflow="fold")
    for key, value in settings.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
