"""
CLI Interface
=============
Command-line interface for the package parser.

Usage:
    python -m siq_parser.cli parse <package.siq> [options]
    python -m siq_parser.cli batch <directory> [options]
    python -m siq_parser.cli info <package.siq>
    python -m siq_parser.cli serve [options]
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from . import __version__
from .archive import Archive
from .engine import ParserConfig, ParserEngine
from .exceptions import PackageError
from .storage import contents_to_json, export_media

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="siq-parser")
def cli():
    """SIQ Package Parser — quiz package ingestion and media resolution."""
    pass


@cli.command()
@click.argument("package_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output", "-o",
    default=None,
    help="Directory to save <name>_parsed.json into",
)
@click.option(
    "--media-dir",
    default=None,
    help="Directory to export resolved media into",
)
@click.option(
    "--workers", "-j",
    default=1,
    type=int,
    help="Number of question worker threads (1 = sequential)",
)
@click.option(
    "--random-ids",
    is_flag=True,
    default=False,
    help="Use random id suffixes instead of document positions",
)
@click.option(
    "--include-media",
    is_flag=True,
    default=False,
    help="Embed media as data URLs in JSON output",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only JSON result to stdout (for programmatic use)",
)
def parse(
    package_path: str,
    output: str,
    media_dir: str,
    workers: int,
    random_ids: bool,
    include_media: bool,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Parse a single package into an ordered question set."""

    if json_output:
        # Suppress console output for JSON mode
        log_level = "ERROR"

    config = ParserConfig(
        max_workers=max(1, workers),
        stable_ids=not random_ids,
        log_level=log_level,
        log_file=log_file,
    )

    if not json_output:
        console.print()
        console.print(
            Panel.fit(
                f"[bold cyan]SIQ Package Parser v{__version__}[/]\n"
                f"[dim]Parsing: {os.path.basename(package_path)}[/]",
                border_style="cyan",
            )
        )
        console.print()

    try:
        engine = ParserEngine(config)

        if not json_output:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Parsing questions...", total=None)

                def on_progress(done: int, total: int):
                    progress.update(task, completed=done, total=total)

                contents = engine.parse_file(package_path, progress_callback=on_progress)

            _display_results(contents)
        else:
            contents = engine.parse_file(package_path)
            print(json.dumps(
                contents_to_json(contents, include_media=include_media),
                indent=2,
                ensure_ascii=False,
            ))

        if output:
            out_dir = Path(output)
            out_dir.mkdir(parents=True, exist_ok=True)
            out_file = out_dir / f"{Path(package_path).stem}_parsed.json"
            out_file.write_text(
                json.dumps(
                    contents_to_json(contents, include_media=include_media),
                    indent=2,
                    ensure_ascii=False,
                ),
                encoding="utf-8",
            )
            if not json_output:
                console.print(f"[green]Saved:[/] {out_file}")

        if media_dir:
            manifest = export_media(contents, media_dir)
            if not json_output:
                count = sum(len(slots) for slots in manifest.values())
                console.print(f"[green]Exported {count} media files to:[/] {media_dir}")

    except FileNotFoundError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except PackageError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Unexpected error:[/] {e}")
        if log_level == "DEBUG":
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--output", "-o", default=None, help="Output directory for JSON results")
@click.option("--log-level", default="WARNING", help="Logging level")
@click.option(
    "--workers", "-j",
    default=1,
    type=int,
    help="Number of question worker threads per package",
)
def batch(directory: str, output: str, log_level: str, workers: int):
    """Batch parse all .siq packages in a directory."""

    packages = sorted(Path(directory).glob("*.siq"))

    if not packages:
        console.print(f"[yellow]No .siq packages found in: {directory}[/]")
        return

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Batch Package Parser[/]\n"
            f"[dim]Found {len(packages)} packages in: {directory}[/]",
            border_style="cyan",
        )
    )
    console.print()

    results = []
    errors = []

    engine = ParserEngine(ParserConfig(max_workers=max(1, workers), log_level=log_level))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Processing packages...", total=len(packages))

        for package in packages:
            progress.update(task, description=f"Parsing: {package.name}")

            try:
                contents = engine.parse_file(str(package))
                results.append((package.name, contents))
                if output:
                    out_dir = Path(output)
                    out_dir.mkdir(parents=True, exist_ok=True)
                    (out_dir / f"{package.stem}_parsed.json").write_text(
                        json.dumps(contents_to_json(contents), indent=2, ensure_ascii=False),
                        encoding="utf-8",
                    )
            except (PackageError, OSError) as e:
                errors.append((package.name, str(e)))

            progress.advance(task)

    _display_batch_summary(results, errors)


@cli.command()
@click.argument("package_path", type=click.Path(exists=True, dir_okay=False))
def info(package_path: str):
    """Display package archive information."""

    try:
        archive = Archive.open(Path(package_path).read_bytes())
    except PackageError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    with archive:
        try:
            pkg = ParserEngine(ParserConfig(log_level="WARNING")).read_info(archive)
        except PackageError as e:
            console.print(f"[red]Error:[/] {e}")
            sys.exit(1)

        entries = archive.list_entries()
        files = [p for p in entries if not archive.is_dir(p)]

        console.print()
        table = Table(title="Package Information", border_style="cyan")
        table.add_column("Property", style="bold")
        table.add_column("Value")
        table.add_row("File", os.path.basename(package_path))
        table.add_row("Name", pkg.name or "(unnamed)")
        table.add_row("Schema Version", pkg.version or "(not set)")
        table.add_row("Package Id", pkg.package_id or "(not set)")
        table.add_row("Date", pkg.date or "(not set)")
        table.add_row(
            "File Size",
            f"{os.path.getsize(package_path) / 1024 / 1024:.2f} MB",
        )
        table.add_row("Root Document", archive.root_document)
        table.add_row("Entries", str(len(entries)))
        table.add_row("Files", str(len(files)))
        console.print(table)
        console.print()

        folders: dict[str, int] = {}
        for p in files:
            folder = p.rsplit("/", 1)[0] if "/" in p else "(root)"
            folders[folder] = folders.get(folder, 0) + 1

        folder_table = Table(title="Files by Folder", border_style="green")
        folder_table.add_column("Folder", style="bold")
        folder_table.add_column("Files", justify="right")
        for folder, count in sorted(folders.items()):
            folder_table.add_row(folder, str(count))
        console.print(folder_table)
        console.print()


@cli.command()
@click.option("--host", default="0.0.0.0", help="Server host")
@click.option("--port", default=5000, type=int, help="Server port")
@click.option("--debug", is_flag=True, default=False, help="Debug mode")
def serve(host: str, port: int, debug: bool):
    """Start the HTTP parsing service."""
    from .server import run_server

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]SIQ Parser Service[/]\n"
            f"[dim]Starting on {host}:{port}[/]",
            border_style="cyan",
        )
    )
    console.print()

    run_server(host=host, port=port, debug=debug)


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _display_results(contents):
    """Display parse results in formatted tables."""
    console.print()

    pkg = contents.info
    table = Table(title="Package", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")
    table.add_row("Name", pkg.name or "(unnamed)")
    table.add_row("Schema Version", pkg.version or "(not set)")
    table.add_row("Date", pkg.date or "(not set)")
    console.print(table)
    console.print()

    buckets = contents.questions_by_round()
    round_table = Table(title="Rounds", border_style="cyan")
    round_table.add_column("Round", style="bold")
    round_table.add_column("Kind")
    round_table.add_column("Questions", justify="right")
    round_table.add_column("With Media", justify="right")
    for name, kind in contents.round_types.items():
        questions = buckets.get(name, [])
        round_table.add_row(
            name,
            kind.value,
            str(len(questions)),
            str(sum(1 for q in questions if q.has_media)),
        )
    console.print(round_table)
    console.print()

    _display_report_table(contents.report.model_dump(mode="json"))


def _display_report_table(report: dict):
    """Display the parse report as a rich table."""
    table = Table(title="Parse Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[yellow]⚠[/]"

    total = report.get("question_count", 0)
    table.add_row(
        "Questions",
        str(total),
        "[green]✓[/]" if total > 0 else "[red]✗[/]",
    )
    table.add_row("Questions With Media", str(report.get("questions_with_media", 0)), "")

    misses = report.get("media_misses", [])
    table.add_row("Media Misses", str(len(misses)), status_icon(len(misses)))

    empty = report.get("empty_slots", [])
    table.add_row("Empty Question Slots", str(len(empty)), status_icon(len(empty)))

    scores = report.get("malformed_scores", [])
    table.add_row("Malformed Scores", str(len(scores)), status_icon(len(scores)))

    console.print(table)
    console.print()

    breakdown = report.get("type_breakdown", {})
    if breakdown:
        type_table = Table(title="Question Types", border_style="yellow")
        type_table.add_column("Type", style="bold")
        type_table.add_column("Count", justify="right")
        for qtype, count in sorted(breakdown.items()):
            type_table.add_row(qtype, str(count))
        console.print(type_table)
        console.print()

    if misses:
        miss_table = Table(title="Unresolved Media", border_style="red")
        miss_table.add_column("Question", style="bold")
        miss_table.add_column("Slot")
        miss_table.add_column("Kind")
        miss_table.add_column("Reference")
        for miss in misses:
            miss_table.add_row(
                miss["question_id"], miss["slot"], miss["kind"], miss["reference"]
            )
        console.print(miss_table)
        console.print()


def _display_batch_summary(results, errors):
    """Display batch processing summary."""
    console.print()

    table = Table(title="Batch Processing Summary", border_style="cyan")
    table.add_column("Package", style="bold")
    table.add_column("Rounds", justify="right")
    table.add_column("Questions", justify="right")
    table.add_column("Media Misses", justify="right")
    table.add_column("Status", justify="center")

    total_questions = 0
    total_misses = 0

    for name, contents in results:
        q_count = len(contents.questions)
        misses = contents.report.media_miss_count

        total_questions += q_count
        total_misses += misses

        status = "[green]✓[/]" if misses == 0 else "[yellow]⚠[/]"
        table.add_row(
            name,
            str(len(contents.round_types)),
            str(q_count),
            str(misses),
            status,
        )

    for name, error in errors:
        table.add_row(name, "-", "-", "-", "[red]✗ FAILED[/]")

    console.print(table)
    console.print()
    console.print(
        f"[bold]Total:[/] {total_questions} questions from "
        f"{len(results)} packages, {total_misses} media misses, "
        f"{len(errors)} failures"
    )
    for name, error in errors:
        console.print(f"[red]{name}:[/] {error}")
    console.print()


# ─── Entry point (for python -m siq_parser.cli) ───────────────────────────────


if __name__ == "__main__":
    cli()
