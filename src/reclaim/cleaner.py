"""Deletion of reported items, one confirmed item at a time."""

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable

from reclaim.models import CacheDirectoryEntry, CleanupResult, DuplicateGroup, FileRecord
from reclaim.scanner import expand_path, get_directory_size

log = logging.getLogger(__name__)

# Paths that should NEVER be deleted themselves
BLOCKED_PATHS = [
    "~",
    "~/Documents",
    "~/Desktop",
    "~/Pictures",
    "~/Music",
    "~/Movies",
    "~/Downloads",
    "/",
    "/bin",
    "/boot",
    "/etc",
    "/home",
    "/lib",
    "/opt",
    "/sbin",
    "/usr",
    "/var",
    "/System",
    "/Library",
    "/Applications",
    "/Users",
]


def is_path_safe(path: Path, protected: Iterable[Path] = ()) -> bool:
    """
    Check if a path may be deleted.

    Args:
        path: Path to check
        protected: User-protected paths; these and everything beneath them are refused

    Returns:
        True if safe to delete, False otherwise
    """
    path_str = os.path.abspath(str(path))

    for blocked in BLOCKED_PATHS:
        if path_str == os.path.abspath(str(expand_path(blocked))):
            return False

    for guarded in protected:
        guarded_str = os.path.abspath(str(guarded))
        if path_str == guarded_str or path_str.startswith(guarded_str.rstrip("/") + "/"):
            return False

    return True


def delete_path(path: Path, dry_run: bool = False) -> tuple[int, int, str | None]:
    """
    Delete a file or directory.

    Symbolic links are removed, never followed.

    Args:
        path: Path to delete
        dry_run: If True, don't actually delete

    Returns:
        Tuple of (bytes_freed, files_deleted, error_message)
    """
    if not path.exists() and not path.is_symlink():
        return 0, 0, None

    try:
        if path.is_dir() and not path.is_symlink():
            size, files = get_directory_size(path)
        else:
            size = path.lstat().st_size
            files = 1

        if dry_run:
            return size, files, None

        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()

        return size, files, None

    except PermissionError as e:
        return 0, 0, f"Permission denied: {e}"
    except OSError as e:
        return 0, 0, f"OS error: {e}"


def _failed(path: str, kind: str, error: str, dry_run: bool) -> CleanupResult:
    log.warning("Not deleting %s: %s", path, error)
    return CleanupResult(
        path=path,
        kind=kind,
        success=False,
        error=error,
        dry_run=dry_run,
    )


def _delete(path: str, kind: str, dry_run: bool, protected: Iterable[Path]) -> CleanupResult:
    target = Path(path)
    if not is_path_safe(target, protected):
        return _failed(path, kind, f"Blocked path: {path}", dry_run)

    bytes_freed, files_deleted, error = delete_path(target, dry_run)
    if error:
        return _failed(path, kind, error, dry_run)

    if not dry_run:
        log.info("Deleted %s (%d bytes)", path, bytes_freed)
    return CleanupResult(
        path=path,
        kind=kind,
        bytes_freed=bytes_freed,
        files_deleted=files_deleted,
        success=True,
        dry_run=dry_run,
    )


def clean_file(
    record: FileRecord,
    kind: str,
    dry_run: bool = False,
    protected: Iterable[Path] = (),
) -> CleanupResult:
    """
    Delete one reported file (large or stale).

    The file must still be a regular file of the reported size; anything
    else means it changed since the scan and is left alone.
    """
    target = Path(record.path)
    try:
        st = target.lstat()
    except FileNotFoundError:
        return _failed(record.path, kind, "File no longer exists", dry_run)
    except OSError as e:
        return _failed(record.path, kind, f"OS error: {e}", dry_run)

    if not target.is_file() or target.is_symlink():
        return _failed(record.path, kind, "No longer a regular file", dry_run)
    if st.st_size != record.size_bytes:
        return _failed(record.path, kind, "File changed since scan", dry_run)

    return _delete(record.path, kind, dry_run, protected)


def clean_duplicate_group(
    group: DuplicateGroup,
    dry_run: bool = False,
    protected: Iterable[Path] = (),
) -> list[CleanupResult]:
    """
    Delete every copy in a group except the first.

    Nothing is deleted unless the retained copy still exists.
    """
    keep = Path(group.keep_path)
    if not keep.is_file():
        return [
            _failed(path, "duplicate", f"Retained copy missing: {group.keep_path}", dry_run)
            for path in group.redundant_paths
        ]

    results = []
    for path in group.redundant_paths:
        target = Path(path)
        try:
            size = target.lstat().st_size
        except OSError:
            results.append(_failed(path, "duplicate", "File no longer exists", dry_run))
            continue
        if size != group.size_bytes:
            results.append(_failed(path, "duplicate", "File changed since scan", dry_run))
            continue
        results.append(_delete(path, "duplicate", dry_run, protected))
    return results


def clean_cache_directory(
    entry: CacheDirectoryEntry,
    dry_run: bool = False,
    protected: Iterable[Path] = (),
) -> CleanupResult:
    """Delete a cache directory as a unit."""
    target = Path(entry.path)
    if target.is_symlink() or not target.is_dir():
        return _failed(entry.path, "cache", "No longer a directory", dry_run)
    return _delete(entry.path, "cache", dry_run, protected)
