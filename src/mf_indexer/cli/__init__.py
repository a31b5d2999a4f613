"""
CLI for mf-indexer.

Scans a directory tree and writes one NDJSON record per matched file.
Records go to stdout (or --output); logs, errors and summaries go to stderr.
"""

import logging
import sys
from pathlib import Path
from typing import IO, Iterable, List, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mf_indexer.core.config import IndexerConfig, LoggingConfig, load_config
from mf_indexer.core.errors import ScanError
from mf_indexer.core.file_scanner import FileRecord, FileScanner, ScanSummary
from mf_indexer.core.ignore_rules import build_ignore_rule_set
from mf_indexer.core.path_utils import canonicalize_root, to_posix

# Records own stdout; everything human-facing goes to stderr
console = Console(stderr=True)

app = typer.Typer(
    name="mf-indexer",
    help="Filesystem scanner producing an NDJSON file inventory for indexing pipelines",
    add_completion=False,
)


def _setup_logging(config: LoggingConfig, level_override: Optional[str] = None) -> None:
    """Send log output to stderr so the NDJSON stream stays clean."""
    level_name = (level_override or config.level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format=config.format,
        stream=sys.stderr,
    )


def _load(config_path: Optional[Path], log_level: Optional[str]) -> IndexerConfig:
    """Load .env, the config file and environment overrides, then set up logging."""
    load_dotenv()
    try:
        cfg = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    _setup_logging(cfg.logging, log_level)
    return cfg


def _write_records(records: Iterable[FileRecord], stream: IO[str]) -> None:
    for record in records:
        stream.write(record.to_json())
        stream.write("\n")


def _print_summary(summary: ScanSummary, root: str) -> None:
    table = Table.grid(padding=1)
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Root:", root)
    table.add_row("Records:", str(summary.records))
    table.add_row("Skipped on error:", str(summary.diagnostics))
    table.add_row("Duration:", f"{summary.duration_seconds:.2f}s")
    console.print(Panel(table, title="Scan Complete", expand=False))


@app.command()
def scan(
    root: Optional[Path] = typer.Argument(
        None, help="Directory to scan (default: configured root, usually the current directory)"
    ),
    include: Optional[List[str]] = typer.Option(
        None, "--include", "-i", help="Include glob, gitignore syntax (repeatable)"
    ),
    ignore: Optional[List[str]] = typer.Option(
        None, "--ignore", help="Extra ignore pattern, gitignore syntax (repeatable)"
    ),
    max_size_bytes: Optional[int] = typer.Option(
        None, "--max-size-bytes", help="Skip files larger than this many bytes"
    ),
    no_size_limit: bool = typer.Option(False, "--no-size-limit", help="Disable the size limit"),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", help="Number of worker threads"
    ),
    follow_symlinks: bool = typer.Option(
        False, "--follow-symlinks", help="Follow symbolic links"
    ),
    absolute: bool = typer.Option(False, "--absolute", help="Include abs_path in each record"),
    sample_bytes: Optional[int] = typer.Option(
        None, "--sample-bytes", help="Leading bytes sampled for binary detection"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write NDJSON to this file instead of stdout"
    ),
    sort: bool = typer.Option(False, "--sort", help="Sort records by rel_path before writing"),
    summary: bool = typer.Option(False, "--summary", help="Print a summary to stderr"),
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="YAML or JSON configuration file"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
):
    """Scan a directory and write one NDJSON record per matched file."""
    cfg = _load(config_path, log_level)
    scan_cfg = cfg.scan

    # Command-line values override the config file and environment
    if root is not None:
        scan_cfg.root = str(root)
    if include:
        scan_cfg.include_globs = list(include)
    if ignore:
        scan_cfg.extra_ignore = list(scan_cfg.extra_ignore) + list(ignore)
    if max_size_bytes is not None:
        scan_cfg.max_size_bytes = max_size_bytes
    if no_size_limit:
        scan_cfg.max_size_bytes = None
    if concurrency is not None:
        scan_cfg.concurrency = max(1, concurrency)
    if follow_symlinks:
        scan_cfg.follow_symlinks = True
    if absolute:
        scan_cfg.absolute = True
    if sample_bytes is not None:
        scan_cfg.sample_bytes = sample_bytes

    scanner = FileScanner(scan_cfg)
    try:
        results = scanner.scan()
    except (ScanError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    out: IO[str] = sys.stdout
    opened = None
    try:
        if output is not None:
            output.parent.mkdir(parents=True, exist_ok=True)
            opened = output.open("w", encoding="utf-8", newline="\n")
            out = opened

        with results:
            if sort:
                _write_records(sorted(results, key=lambda r: r.rel_path), out)
            else:
                _write_records(results, out)
        out.flush()
    except OSError as e:
        console.print(f"[bold red]Error:[/bold red] Cannot write output: {e}")
        raise typer.Exit(1)
    finally:
        if opened is not None:
            opened.close()

    if summary and results.summary is not None:
        _print_summary(results.summary, scan_cfg.root)


@app.command("check-ignore")
def check_ignore(
    root: Path = typer.Argument(..., help="Scan root whose ignore files apply"),
    paths: List[str] = typer.Argument(..., help="Paths relative to the root"),
    directory: bool = typer.Option(False, "--dir", help="Treat the paths as directories"),
    ignore: Optional[List[str]] = typer.Option(
        None, "--ignore", help="Extra ignore pattern, gitignore syntax (repeatable)"
    ),
):
    """Show whether paths would be ignored by the compiled rule set."""
    try:
        rule_set = build_ignore_rule_set(canonicalize_root(root), ignore or [])
    except ScanError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    for path in paths:
        verdict = "ignored" if rule_set.should_ignore(to_posix(path), is_dir=directory) else "kept"
        typer.echo(f"{verdict}\t{path}")


@app.command("config")
def show_config(
    config_path: Optional[Path] = typer.Option(
        None, "--config", help="YAML or JSON configuration file"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Save to a .yaml/.yml/.json file instead of printing"
    ),
):
    """Print (or save) the effective configuration."""
    cfg = _load(config_path, None)

    if output is None:
        typer.echo(cfg.to_yaml(), nl=False)
        return

    try:
        cfg.save(output)
    except (OSError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]Saved configuration to {output}[/green]")


def main() -> None:
    app()
