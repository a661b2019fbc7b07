"""CLI interface for reclaim."""

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

import typer

from reclaim import __version__
from reclaim.analyzer import scan
from reclaim.cleaner import clean_cache_directory, clean_duplicate_group, clean_file
from reclaim.config import build_scan_config, get_protected_paths, load_user_config
from reclaim.display import (
    confirm_action,
    console,
    show_caches,
    show_cleanup_result,
    show_cleanup_summary,
    show_containers,
    show_duplicates,
    show_images,
    show_patterns,
    show_prune_result,
    show_report,
    show_scanning_progress,
)
from reclaim.docker import (
    count_dangling_images,
    disk_usage,
    list_containers,
    list_images,
    prune_dangling_images,
    prune_stopped_containers,
    system_prune,
)
from reclaim.errors import ConfigurationError, DockerError, ScanCancelled
from reclaim.models import CleanupResult, ScanConfig, ScanReport, format_size

log = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 2
EXIT_CANCELLED = 130

app = typer.Typer(
    name="reclaim",
    help="Find reclaimable disk space: caches, duplicates, large and stale files, docker leftovers",
    add_completion=False,
)


def _setup_logging(verbosity: int, log_file: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"reclaim version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-V", count=True, help="Increase log verbosity (-V info, -VV debug)."
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Also write log messages to this file."
    ),
) -> None:
    """reclaim - find and reclaim wasted disk space."""
    _setup_logging(verbose, log_file)


def _build_config(
    path: Path,
    large_mb: Optional[float],
    stale_days: Optional[int],
    top: Optional[int],
    follow_symlinks: bool,
    verify: bool,
    workers: Optional[int],
) -> tuple[ScanConfig, dict]:
    user_config = load_user_config()
    try:
        config = build_scan_config(
            path,
            user_config,
            large_file_threshold_mb=large_mb,
            stale_after_days=stale_days,
            max_large_files_reported=top,
            hash_workers=workers,
            follow_symlinks=follow_symlinks,
            verify_duplicates=verify,
        )
    except (ValueError, TypeError) as e:
        console.print(f"[red]Invalid option: {e}[/red]")
        raise typer.Exit(EXIT_CONFIG_ERROR)
    return config, user_config


def _run_scan(config: ScanConfig) -> ScanReport:
    """Run a scan with a spinner; Ctrl-C cancels it and no report is shown."""
    cancel_event = threading.Event()

    with show_scanning_progress() as progress:
        task = progress.add_task("Scanning...", total=None)

        def update_progress(directory: str, files_scanned: int) -> None:
            progress.update(task, description=f"Scanning ({files_scanned} files) {directory}")

        with ThreadPoolExecutor(max_workers=1) as runner:
            future = runner.submit(scan, config.root_path, config, cancel_event, update_progress)
            try:
                return future.result()
            except KeyboardInterrupt:
                cancel_event.set()
                raise


def _scan_or_exit(config: ScanConfig) -> ScanReport:
    try:
        return _run_scan(config)
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(EXIT_CONFIG_ERROR)
    except (ScanCancelled, KeyboardInterrupt):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(EXIT_CANCELLED)


@app.command(name="scan")
def scan_command(
    path: Path = typer.Argument(Path("."), help="Directory to scan"),
    large_mb: Optional[float] = typer.Option(
        None, "--large-mb", help="Large-file threshold in MiB (default 100)"
    ),
    stale_days: Optional[int] = typer.Option(
        None, "--stale-days", help="Days without access before a file is stale (default 180)"
    ),
    top: Optional[int] = typer.Option(None, "--top", help="Number of large files to report"),
    follow_symlinks: bool = typer.Option(
        False, "--follow-symlinks", help="Follow symbolic links (cycles are detected)"
    ),
    verify: bool = typer.Option(
        False, "--verify", help="Confirm duplicates byte for byte, not by digest alone"
    ),
    workers: Optional[int] = typer.Option(None, "--workers", help="Hashing threads"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
) -> None:
    """Scan a directory and report reclaimable space."""
    config, _ = _build_config(path, large_mb, stale_days, top, follow_symlinks, verify, workers)
    report = _scan_or_exit(config)

    if as_json:
        typer.echo(json.dumps(report.model_dump(mode="json"), indent=2))
        return

    show_report(report)
    if report.total_reclaimable_bytes:
        console.print()
        console.print(f"[dim]Run [bold]reclaim clean {path}[/bold] to delete items one by one[/dim]")


def _confirm(message: str, yes: bool, dry_run: bool) -> bool:
    if yes or dry_run:
        return True
    return confirm_action(message)


@app.command()
def clean(
    path: Path = typer.Argument(Path("."), help="Directory to scan and clean"),
    review: bool = typer.Option(
        False, "--review", help="Also offer large and stale files (always asks, even with --yes)"
    ),
    large_mb: Optional[float] = typer.Option(None, "--large-mb", help="Large-file threshold in MiB"),
    stale_days: Optional[int] = typer.Option(None, "--stale-days", help="Stale threshold in days"),
    verify: bool = typer.Option(False, "--verify", help="Confirm duplicates byte for byte"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Simulate without deleting"),
    yes: bool = typer.Option(
        False, "-y", "--yes", help="Skip prompts for caches and duplicates"
    ),
) -> None:
    """Scan, then delete reported items after confirming each one."""
    config, user_config = _build_config(path, large_mb, stale_days, None, False, verify, None)
    protected = get_protected_paths(user_config)
    report = _scan_or_exit(config)

    if report.is_empty:
        console.print("[green]Nothing to reclaim.[/green]")
        raise typer.Exit(0)

    if dry_run:
        console.print("[yellow]DRY RUN - No files will be deleted[/yellow]\n")

    show_duplicates(report)
    show_caches(report)
    results: list[CleanupResult] = []

    for group in report.duplicate_groups:
        question = (
            f"Keep {group.keep_path} and delete {len(group.redundant_paths)} "
            f"copies ({format_size(group.reclaimable_bytes)})?"
        )
        if _confirm(question, yes, dry_run):
            for result in clean_duplicate_group(group, dry_run=dry_run, protected=protected):
                show_cleanup_result(result)
                results.append(result)

    for entry in report.cache_directories:
        question = f"Delete {entry.ecosystem_tag.value} directory {entry.path} ({entry.size_human})?"
        if _confirm(question, yes, dry_run):
            result = clean_cache_directory(entry, dry_run=dry_run, protected=protected)
            show_cleanup_result(result)
            results.append(result)

    if review:
        reviewed = [("large", r) for r in report.large_files]
        reviewed += [("stale", r) for r in report.stale_files]
        for kind, record in reviewed:
            question = f"Delete {kind} file {record.path} ({record.size_human})?"
            if dry_run or confirm_action(question):
                result = clean_file(record, kind, dry_run=dry_run, protected=protected)
                show_cleanup_result(result)
                results.append(result)

    show_cleanup_summary(results, dry_run=dry_run)


@app.command()
def docker(
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompts"),
) -> None:
    """List docker images and containers and offer to prune unused ones."""
    try:
        images = list_images()
        show_images(images)

        dangling = count_dangling_images()
        if dangling > 0:
            console.print(f"Found {dangling} dangling image(s) (not tagged)")
            if yes or confirm_action("Remove dangling images?"):
                show_prune_result(prune_dangling_images())

        containers = list_containers()
        show_containers(containers)

        stopped = [c for c in containers if c.stopped]
        if stopped:
            console.print(f"Found {len(stopped)} stopped container(s)")
            if yes or confirm_action("Remove stopped containers?"):
                show_prune_result(prune_stopped_containers())

        console.print("\n[bold]═══ Docker Disk Usage ═══[/bold]")
        console.print(disk_usage())
    except DockerError as e:
        console.print(f"[red]Docker error: {e}[/red]")
        raise typer.Exit(1)

    if yes or confirm_action("Run full system prune (removes unused data)?"):
        show_prune_result(system_prune())


@app.command()
def patterns() -> None:
    """List the cache and build directory patterns."""
    show_patterns()


if __name__ == "__main__":
    app()
