"""Filesystem traversal for reclaim.

One depth-first walk collects a FileRecord for every regular file and a
CacheDirectoryEntry for every recognized cache root. Nothing beneath a cache
root is recorded as a file, so cache bytes are never reported twice.
"""

import logging
import os
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from reclaim.categories import match_cache_directory
from reclaim.errors import ScanCancelled
from reclaim.models import CacheDirectoryEntry, FileRecord, ScanConfig, ScanStats

log = logging.getLogger(__name__)

# Version control metadata, never worth scanning
VCS_DIRECTORIES = frozenset({".git", ".svn", ".hg", ".bzr"})

# Virtual or OS-owned trees, pruned where they appear (the scan root is or contains them)
SYSTEM_ROOTS = ("/proc", "/sys", "/dev", "/run", "/System", "/Volumes")

# Skipped by name wherever they appear
SKIP_NAMES = frozenset({".Trash", ".Trashes"})

MAX_INACCESSIBLE_SAMPLES = 100


@dataclass
class TraversalResult:
    """Everything one walk produced."""

    records: list[FileRecord] = field(default_factory=list)
    caches: list[CacheDirectoryEntry] = field(default_factory=list)
    stats: ScanStats = field(default_factory=ScanStats)


@dataclass
class _Tally:
    """Counters updated during a walk, frozen into ScanStats when it ends."""

    files_scanned: int = 0
    dirs_scanned: int = 0
    inaccessible: int = 0
    transient_errors: int = 0
    symlinks_skipped: int = 0
    aliases_skipped: int = 0
    inaccessible_paths: list[str] = field(default_factory=list)

    def freeze(self) -> ScanStats:
        return ScanStats(**asdict(self))


def expand_path(path: str) -> Path:
    """Expand ~ and environment variables in path."""
    return Path(os.path.expanduser(os.path.expandvars(path)))


def should_skip(path: str, is_dir: bool) -> bool:
    """
    Decide whether a path is excluded from the scan outright.

    Args:
        path: Absolute path of the entry
        is_dir: Whether the entry is a directory

    Returns:
        True if the entry must not be visited or recorded
    """
    name = os.path.basename(path.rstrip("/")) or path
    if is_dir and name in VCS_DIRECTORIES:
        return True
    if name in SKIP_NAMES:
        return True
    return path in SYSTEM_ROOTS


def inside_cache(real_path: str, real_root: str) -> bool:
    """
    Check whether a resolved directory is, or lies beneath, a cache directory.

    Components at or above the scan root are not considered, so scanning
    inside a directory named like a cache still works.
    """
    path = Path(real_path)
    root = Path(real_root)
    parts = path.parts
    first = len(root.parts) if path.is_relative_to(root) else 1
    return any(
        match_cache_directory(parts[i], parts[i - 1]) is not None
        for i in range(first, len(parts))
    )


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ScanCancelled("scan cancelled")


def _record_inaccessible(tally: _Tally, path: str, error: OSError) -> None:
    tally.inaccessible += 1
    if len(tally.inaccessible_paths) < MAX_INACCESSIBLE_SAMPLES:
        tally.inaccessible_paths.append(path)
    log.debug("Permission denied: %s (%s)", path, error)


def get_directory_size(
    path: str | Path,
    cancel_event: Optional[threading.Event] = None,
) -> tuple[int, int]:
    """
    Sum the size of every file beneath a directory.

    Symbolic links are never followed, so the walk always terminates. A file
    with several hard links inside the directory is counted once. Errors on
    individual entries are ignored; the sum covers what could be read.

    Args:
        path: Directory to measure
        cancel_event: Optional event that stops the walk when set

    Returns:
        Tuple of (total_bytes, file_count)
    """
    total_size = 0
    file_count = 0
    linked: set[tuple[int, int]] = set()
    pending = [str(path)]

    while pending:
        _check_cancelled(cancel_event)
        current = pending.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_file(follow_symlinks=False):
                            st = entry.stat(follow_symlinks=False)
                            if st.st_nlink > 1:
                                key = (st.st_dev, st.st_ino)
                                if key in linked:
                                    continue
                                linked.add(key)
                            total_size += st.st_size
                            file_count += 1
                        elif entry.is_dir(follow_symlinks=False):
                            pending.append(entry.path)
                    except OSError:
                        continue
        except OSError as e:
            log.debug("Cannot size %s: %s", current, e)

    return total_size, file_count


def _make_record(path: str, st: os.stat_result) -> FileRecord:
    return FileRecord(
        path=path,
        size_bytes=st.st_size,
        last_accessed=datetime.fromtimestamp(st.st_atime),
        last_modified=datetime.fromtimestamp(st.st_mtime),
    )


def walk_tree(
    root: str | Path,
    config: ScanConfig,
    cancel_event: Optional[threading.Event] = None,
    progress_callback: Callable[[str, int], None] | None = None,
) -> TraversalResult:
    """
    Walk a directory tree once and collect file records and cache roots.

    Directories are visited depth-first with entries sorted by name, so the
    discovery order is stable for an unchanged tree. A file reachable through
    several hard links is recorded once, under the first path found.

    Symbolic links are counted and skipped unless config.follow_symlinks is
    set. When following, directories and files already seen (by device and
    inode) are not visited again, cache roots included, and a link that
    resolves into a cache directory is skipped because those bytes belong
    to the cache.

    Args:
        root: Directory to scan (must exist)
        config: Scan options
        cancel_event: Optional event checked before every directory and file
        progress_callback: Optional callback(directory, files_scanned) per directory

    Returns:
        TraversalResult with records, caches and stats

    Raises:
        ScanCancelled: If cancel_event is set during the walk
    """
    result = TraversalResult()
    tally = _Tally()
    follow = config.follow_symlinks
    root_str = os.path.abspath(str(root))
    real_root = os.path.realpath(root_str)

    if should_skip(root_str, True):
        log.info("Scan root %s is excluded, nothing to scan", root_str)
        return result

    visited_dirs: set[tuple[int, int]] = set()
    seen_files: set[tuple[int, int]] = set()
    if follow:
        st = os.stat(root_str)
        visited_dirs.add((st.st_dev, st.st_ino))

    stack = [root_str]
    while stack:
        _check_cancelled(cancel_event)
        current = stack.pop()
        tally.dirs_scanned += 1

        if progress_callback:
            progress_callback(current, tally.files_scanned)

        try:
            with os.scandir(current) as it:
                entries = sorted(it, key=lambda e: e.name)
        except PermissionError as e:
            _record_inaccessible(tally, current, e)
            continue
        except OSError as e:
            tally.transient_errors += 1
            log.debug("Cannot list %s: %s", current, e)
            continue

        parent_name = os.path.basename(current)
        subdirs: list[str] = []

        for entry in entries:
            _check_cancelled(cancel_event)
            try:
                is_link = entry.is_symlink()
                if is_link and not follow:
                    tally.symlinks_skipped += 1
                    continue

                is_dir = entry.is_dir(follow_symlinks=follow)
                if should_skip(entry.path, is_dir):
                    log.debug("Skipping %s", entry.path)
                    continue

                if is_dir:
                    key = None
                    if follow:
                        st = entry.stat(follow_symlinks=True)
                        key = (st.st_dev, st.st_ino)
                        if key in visited_dirs:
                            log.debug("Already visited %s, not descending", entry.path)
                            tally.aliases_skipped += 1
                            continue

                    tag = match_cache_directory(entry.name, parent_name)
                    if tag is None and is_link and inside_cache(
                        os.path.realpath(entry.path), real_root
                    ):
                        log.debug("Link %s points into a cache directory", entry.path)
                        tally.aliases_skipped += 1
                        continue
                    if key is not None:
                        visited_dirs.add(key)

                    if tag is not None:
                        size, count = get_directory_size(entry.path, cancel_event)
                        result.caches.append(
                            CacheDirectoryEntry(
                                path=entry.path,
                                ecosystem_tag=tag,
                                total_size_bytes=size,
                                file_count=count,
                            )
                        )
                        continue
                    subdirs.append(entry.path)

                elif entry.is_file(follow_symlinks=follow):
                    if is_link and inside_cache(
                        os.path.dirname(os.path.realpath(entry.path)), real_root
                    ):
                        log.debug("Link %s points into a cache directory", entry.path)
                        tally.aliases_skipped += 1
                        continue

                    st = entry.stat(follow_symlinks=follow)
                    # Hard links share an inode; only the first path is recorded
                    if follow or st.st_nlink > 1:
                        key = (st.st_dev, st.st_ino)
                        if key in seen_files:
                            log.debug("Already recorded %s under another path", entry.path)
                            tally.aliases_skipped += 1
                            continue
                        seen_files.add(key)
                    result.records.append(_make_record(entry.path, st))
                    tally.files_scanned += 1

            except PermissionError as e:
                _record_inaccessible(tally, entry.path, e)
            except OSError as e:
                # Vanished or unreadable mid-walk
                tally.transient_errors += 1
                log.debug("Skipping %s: %s", entry.path, e)

        # Reversed so the alphabetically first directory is popped first
        stack.extend(reversed(subdirs))

    result.stats = tally.freeze()
    log.info(
        "Walked %s: %d files, %d directories, %d cache roots",
        root_str,
        tally.files_scanned,
        tally.dirs_scanned,
        len(result.caches),
    )
    return result
