"""Scan entry point and report aggregation for reclaim."""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from reclaim.duplicates import find_duplicate_groups
from reclaim.errors import ConfigurationError, ScanCancelled
from reclaim.models import (
    CacheDirectoryEntry,
    DuplicateGroup,
    FileRecord,
    ScanConfig,
    ScanReport,
    ScanStats,
)
from reclaim.scanner import expand_path, walk_tree

log = logging.getLogger(__name__)


def filter_large_files(
    records: list[FileRecord],
    threshold_bytes: int,
    top_n: int = 10,
) -> list[FileRecord]:
    """
    Get the largest files above a threshold.

    Args:
        records: File records
        threshold_bytes: Files strictly larger than this qualify
        top_n: Number of files to return

    Returns:
        Up to top_n records, largest first (ties by path)
    """
    large = [r for r in records if r.size_bytes > threshold_bytes]
    large.sort(key=lambda r: (-r.size_bytes, r.path))
    return large[:top_n]


def filter_stale_files(
    records: list[FileRecord],
    stale_after: timedelta,
    now: Optional[datetime] = None,
) -> list[FileRecord]:
    """
    Get files not accessed for longer than stale_after.

    Returns:
        Stale records, least recently accessed first (ties by path)
    """
    now = now or datetime.now()
    stale = [r for r in records if now - r.last_accessed > stale_after]
    stale.sort(key=lambda r: (r.last_accessed, r.path))
    return stale


def calculate_reclaimable(
    duplicates: list[DuplicateGroup],
    caches: list[CacheDirectoryEntry],
) -> int:
    """
    Bytes that can be freed without human judgment.

    Only cache directories and redundant duplicate copies count. Large and
    stale files need review and are never part of this number.
    """
    cache_bytes = sum(c.total_size_bytes for c in caches)
    duplicate_bytes = sum(g.reclaimable_bytes for g in duplicates)
    return cache_bytes + duplicate_bytes


def aggregate_report(
    root: str,
    large: list[FileRecord],
    duplicates: list[DuplicateGroup],
    caches: list[CacheDirectoryEntry],
    stale: list[FileRecord],
    stats: Optional[ScanStats] = None,
) -> ScanReport:
    """Merge the four classification results into one report."""
    return ScanReport(
        root_path=root,
        large_files=large,
        duplicate_groups=duplicates,
        cache_directories=sorted(caches, key=lambda c: (-c.total_size_bytes, c.path)),
        stale_files=stale,
        stats=stats or ScanStats(),
        total_reclaimable_bytes=calculate_reclaimable(duplicates, caches),
    )


def validate_root(root: str | Path) -> Path:
    """
    Resolve and check the scan root.

    Raises:
        ConfigurationError: If the root does not exist or is not a directory
    """
    path = expand_path(str(root))
    if not path.exists():
        raise ConfigurationError(f"Path does not exist: {path}")
    if not path.is_dir():
        raise ConfigurationError(f"Not a directory: {path}")
    if not os.access(path, os.R_OK | os.X_OK):
        raise ConfigurationError(f"Cannot read directory: {path}")
    return Path(os.path.abspath(path))


def scan(
    root: str | Path | None = None,
    config: Optional[ScanConfig] = None,
    cancel_event: Optional[threading.Event] = None,
    progress_callback: Callable[[str, int], None] | None = None,
) -> ScanReport:
    """
    Scan a directory tree and report reclaimable space.

    The tree is walked once. The large-file filter, stale-file filter and
    duplicate grouper then run concurrently over the same records and are
    joined before the report is built.

    Args:
        root: Directory to scan (defaults to config.root_path)
        config: Scan options (defaults to ScanConfig())
        cancel_event: Optional event; when set the scan stops and no report is made
        progress_callback: Optional callback(directory, files_scanned)

    Returns:
        Immutable ScanReport

    Raises:
        ConfigurationError: If the root is missing or not a directory
        ScanCancelled: If cancel_event is set before the scan finishes
    """
    config = config or ScanConfig()
    if root is None:
        root = config.root_path
    if root is None:
        raise ConfigurationError("No scan root given")

    root_path = validate_root(root)
    log.info("Scanning %s", root_path)

    traversal = walk_tree(root_path, config, cancel_event, progress_callback)
    records = traversal.records

    with ThreadPoolExecutor(max_workers=3) as executor:
        large_future = executor.submit(
            filter_large_files,
            records,
            config.large_file_threshold_bytes,
            config.max_large_files_reported,
        )
        stale_future = executor.submit(filter_stale_files, records, config.stale_after)
        duplicate_future = executor.submit(
            find_duplicate_groups,
            records,
            config.hash_workers,
            config.verify_duplicates,
            config.min_duplicate_size_bytes,
            cancel_event,
        )
        large = large_future.result()
        stale = stale_future.result()
        duplicates = duplicate_future.result()

    if cancel_event is not None and cancel_event.is_set():
        raise ScanCancelled("scan cancelled")

    stats = traversal.stats.model_copy(
        update={
            "files_hashed": duplicates.files_hashed,
            "transient_errors": traversal.stats.transient_errors + duplicates.transient_errors,
        }
    )

    report = aggregate_report(
        str(root_path),
        large=large,
        duplicates=duplicates.groups,
        caches=traversal.caches,
        stale=stale,
        stats=stats,
    )
    log.info(
        "Scan of %s done: %d bytes reclaimable, %d errors",
        root_path,
        report.total_reclaimable_bytes,
        stats.error_count,
    )
    return report
