"""Rich terminal display for reclaim."""

from datetime import datetime

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from reclaim.categories import get_all_patterns
from reclaim.models import (
    CleanupResult,
    DockerContainer,
    DockerImage,
    PruneResult,
    ScanReport,
    format_size,
)

console = Console()


def show_large_files(report: ScanReport) -> None:
    """Display the large-file list."""
    if not report.large_files:
        return

    console.print("[bold yellow]! Large Files[/bold yellow] [dim](review, not counted)[/dim]")
    table = Table(show_header=True, header_style="bold yellow")
    table.add_column("Size", justify="right")
    table.add_column("Last Accessed", justify="right")
    table.add_column("Path")

    for record in report.large_files:
        table.add_row(
            format_size(record.size_bytes),
            record.last_accessed.strftime("%Y-%m-%d"),
            record.path,
        )

    console.print(table)
    console.print()


def show_duplicates(report: ScanReport) -> None:
    """Display duplicate groups, retained copy first."""
    if not report.duplicate_groups:
        return

    console.print("[bold green]✓ Duplicate Files[/bold green]")
    table = Table(show_header=True, header_style="bold green")
    table.add_column("Copies", justify="right")
    table.add_column("Size Each", justify="right")
    table.add_column("Reclaimable", justify="right", style="green")
    table.add_column("Paths")

    for group in report.duplicate_groups:
        paths = [f"[bold]{group.keep_path}[/bold] [dim](keep)[/dim]"]
        paths.extend(group.redundant_paths)
        table.add_row(
            str(group.copies),
            format_size(group.size_bytes),
            format_size(group.reclaimable_bytes),
            "\n".join(paths),
        )

    console.print(table)
    console.print(
        f"[green]Duplicates reclaimable: {format_size(report.duplicate_reclaimable_bytes)}[/green]"
    )
    console.print()


def show_caches(report: ScanReport) -> None:
    """Display cache and build-artifact directories."""
    if not report.cache_directories:
        return

    console.print("[bold green]✓ Cache & Build Directories[/bold green]")
    table = Table(show_header=True, header_style="bold green")
    table.add_column("Ecosystem", style="green")
    table.add_column("Size", justify="right")
    table.add_column("Files", justify="right")
    table.add_column("Path")

    for entry in report.cache_directories:
        table.add_row(
            entry.ecosystem_tag.value,
            format_size(entry.total_size_bytes),
            str(entry.file_count),
            entry.path,
        )

    console.print(table)
    console.print(
        f"[green]Caches reclaimable: {format_size(report.cache_reclaimable_bytes)}[/green]"
    )
    console.print()


def show_stale_files(report: ScanReport, limit: int = 20) -> None:
    """Display the least recently accessed stale files."""
    if not report.stale_files:
        return

    now = datetime.now()
    console.print(
        f"[bold yellow]! Stale Files ({report.stale_count})[/bold yellow] "
        "[dim](review, not counted)[/dim]"
    )
    table = Table(show_header=True, header_style="bold yellow")
    table.add_column("Days Unused", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Path")

    for record in report.stale_files[:limit]:
        table.add_row(str(record.age_days(now)), format_size(record.size_bytes), record.path)

    console.print(table)
    if report.stale_count > limit:
        console.print(f"[dim]... and {report.stale_count - limit} more[/dim]")
    console.print()


def show_report(report: ScanReport) -> None:
    """Display a full scan report."""
    console.print(f"[bold]Scan of[/bold] {report.root_path}\n")

    if report.is_empty:
        console.print("[green]Nothing to reclaim.[/green]\n")

    show_caches(report)
    show_duplicates(report)
    show_large_files(report)
    show_stale_files(report)

    stats = report.stats
    summary = (
        f"[bold]Reclaimable space:[/bold] {format_size(report.total_reclaimable_bytes)}\n"
        f"  Caches: {format_size(report.cache_reclaimable_bytes)}\n"
        f"  Duplicates: {format_size(report.duplicate_reclaimable_bytes)}\n"
        f"[dim]Needs review: {len(report.large_files)} large, "
        f"{report.stale_count} stale ({format_size(report.stale_bytes)})[/dim]\n"
        f"[dim]Scanned {stats.files_scanned} files in {stats.dirs_scanned} directories, "
        f"hashed {stats.files_hashed}[/dim]"
    )
    if stats.error_count:
        summary += (
            f"\n[yellow]Skipped: {stats.inaccessible} inaccessible, "
            f"{stats.transient_errors} changed during scan[/yellow]"
        )

    console.print(Panel(summary, title="Summary", border_style="blue"))


def show_patterns() -> None:
    """Display the cache directory patterns."""
    table = Table(title="Cache Directory Patterns", show_header=True, header_style="bold")
    table.add_column("Directory")
    table.add_column("Ecosystem", style="cyan")
    table.add_column("Contents")
    table.add_column("Recovery", style="dim")

    for pattern in get_all_patterns():
        table.add_row(pattern.key, pattern.ecosystem_tag.value, pattern.description, pattern.recovery)

    console.print(table)


def show_cleanup_result(result: CleanupResult) -> None:
    """Display result of a single deletion."""
    verb = "would free" if result.dry_run else "freed"
    if result.success:
        console.print(f"  [green]✓[/green] {result.path}: {format_size(result.bytes_freed)} {verb}")
    else:
        console.print(f"  [red]✗[/red] {result.path}: {result.error}")


def show_cleanup_summary(results: list[CleanupResult], dry_run: bool = False) -> None:
    """Display cleanup summary."""
    total_freed = sum(r.bytes_freed for r in results if r.success)
    success_count = sum(1 for r in results if r.success)
    failure_count = sum(1 for r in results if not r.success)

    console.print()
    if dry_run:
        console.print("[yellow]DRY RUN - No files were deleted[/yellow]")
    console.print("[bold green]Cleanup Complete![/bold green]")

    table = Table(show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Space freed", format_size(total_freed))
    table.add_row("Items deleted", str(success_count))
    if failure_count > 0:
        table.add_row("[red]Failed[/red]", str(failure_count))

    console.print(table)


def show_images(images: list[DockerImage]) -> None:
    """Display docker images."""
    console.print("[bold]═══ Docker Images ═══[/bold]")
    if not images:
        console.print("No images found.\n")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Repository")
    table.add_column("Tag")
    table.add_column("Size", justify="right")

    for image in images:
        style = "dim" if image.dangling else None
        table.add_row(image.id, image.repository, image.tag, image.size, style=style)

    console.print(table)
    console.print()


def show_containers(containers: list[DockerContainer]) -> None:
    """Display docker containers, stopped ones in yellow."""
    console.print("[bold]═══ Docker Containers ═══[/bold]")
    if not containers:
        console.print("No containers found.\n")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Image")
    table.add_column("Status")

    for container in containers:
        status = f"[yellow]{container.status}[/yellow]" if container.stopped else container.status
        table.add_row(container.id, container.name, container.image, status)

    console.print(table)
    console.print()


def show_prune_result(result: PruneResult) -> None:
    """Display result of a docker prune."""
    if result.success:
        console.print(f"[green]✓[/green] {result.command}")
        if result.output.strip():
            console.print(f"[dim]{result.output.strip()}[/dim]")
    else:
        console.print(f"[red]✗[/red] {result.command}: {result.error}")


def show_scanning_progress() -> Progress:
    """Create spinner for scanning."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message, default=False)
