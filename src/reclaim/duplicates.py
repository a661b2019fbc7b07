"""Duplicate file detection for reclaim."""

import hashlib
import logging
import os
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Optional

from reclaim.errors import ScanCancelled
from reclaim.models import DuplicateGroup, FileRecord

log = logging.getLogger(__name__)

CHUNK_SIZE = 65_536  # 64 KB


@dataclass
class DuplicateOutcome:
    """Groups found plus the bookkeeping the report needs."""

    groups: list[DuplicateGroup] = field(default_factory=list)
    files_hashed: int = 0
    transient_errors: int = 0


def _open_for_read(path: str | Path) -> BinaryIO:
    """Open a file without touching its access time where the OS allows it."""
    noatime = getattr(os, "O_NOATIME", 0)
    try:
        fd = os.open(path, os.O_RDONLY | noatime)
    except PermissionError:
        # O_NOATIME is refused for files we do not own
        if not noatime:
            raise
        fd = os.open(path, os.O_RDONLY)
    return os.fdopen(fd, "rb")


def compute_digest(path: str | Path, chunk_size: int = CHUNK_SIZE) -> str:
    """
    Compute the SHA-256 of a file using chunked reads.

    Memory use does not depend on file size. Reading does not update the
    file's access time on Linux, so hashing never makes a stale file look
    recently used.

    Raises:
        OSError: If the file cannot be opened or read
    """
    h = hashlib.sha256()
    with _open_for_read(path) as f:
        while chunk := f.read(chunk_size):
            h.update(chunk)
    return h.hexdigest()


def files_identical(first: str | Path, second: str | Path, chunk_size: int = CHUNK_SIZE) -> bool:
    """Compare two files byte for byte."""
    with _open_for_read(first) as a, _open_for_read(second) as b:
        while True:
            chunk_a = a.read(chunk_size)
            chunk_b = b.read(chunk_size)
            if chunk_a != chunk_b:
                return False
            if not chunk_a:
                return True


def find_size_candidates(
    records: list[FileRecord], min_size_bytes: int = 1
) -> list[FileRecord]:
    """
    Keep only files that share their size with at least one other file.

    A file with a unique size cannot have a duplicate, so it is never hashed.
    Discovery order is preserved.
    """
    counts: dict[int, int] = defaultdict(int)
    for record in records:
        counts[record.size_bytes] += 1
    return [
        r for r in records if r.size_bytes >= min_size_bytes and counts[r.size_bytes] > 1
    ]


def _hash_record(record: FileRecord, cancel_event: Optional[threading.Event]) -> FileRecord | None:
    if cancel_event is not None and cancel_event.is_set():
        return None
    try:
        digest = compute_digest(record.path)
    except OSError as e:
        log.debug("Dropping %s from duplicate candidates: %s", record.path, e)
        return None
    return record.model_copy(update={"digest": digest})


def _split_identical(paths: list[str]) -> tuple[list[list[str]], int]:
    """Split paths into byte-identical subsets, each compared to its first member."""
    subsets: list[list[str]] = []
    errors = 0
    remaining = list(paths)
    while remaining:
        keep = remaining[0]
        same = [keep]
        rest = []
        for other in remaining[1:]:
            try:
                if files_identical(keep, other):
                    same.append(other)
                else:
                    log.warning("Digest collision: %s and %s differ", keep, other)
                    rest.append(other)
            except OSError as e:
                errors += 1
                log.debug("Cannot compare %s with %s: %s", keep, other, e)
        subsets.append(same)
        remaining = rest
    return subsets, errors


def find_duplicate_groups(
    records: list[FileRecord],
    max_workers: int = 4,
    verify: bool = False,
    min_size_bytes: int = 1,
    cancel_event: Optional[threading.Event] = None,
) -> DuplicateOutcome:
    """
    Group files with identical content.

    Files are first partitioned by size; only sizes shared by two or more
    files are hashed. Candidates are then grouped by (size, digest) and
    groups with a single member are dropped. Paths within a group keep
    discovery order, so paths[0] is the copy to retain.

    Args:
        records: File records in discovery order (not modified)
        max_workers: Number of hashing threads
        verify: Confirm each group with a byte-for-byte comparison
        min_size_bytes: Files smaller than this are ignored
        cancel_event: Optional event that stops hashing when set

    Returns:
        DuplicateOutcome with groups sorted by reclaimable bytes, then digest

    Raises:
        ScanCancelled: If cancel_event is set before hashing finishes
    """
    outcome = DuplicateOutcome()
    candidates = find_size_candidates(records, min_size_bytes)
    if not candidates:
        return outcome

    log.info("Hashing %d duplicate candidates", len(candidates))

    # map() yields in submission order, which keeps discovery order intact
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        hashed = list(executor.map(lambda r: _hash_record(r, cancel_event), candidates))

    if cancel_event is not None and cancel_event.is_set():
        raise ScanCancelled("scan cancelled while hashing")

    buckets: dict[tuple[int, str], list[str]] = defaultdict(list)
    for record in hashed:
        if record is None:
            outcome.transient_errors += 1
            continue
        outcome.files_hashed += 1
        buckets[(record.size_bytes, record.digest)].append(record.path)

    for (size, digest), paths in buckets.items():
        if len(paths) < 2:
            continue
        if verify:
            subsets, errors = _split_identical(paths)
            outcome.transient_errors += errors
        else:
            subsets = [paths]
        for subset in subsets:
            if len(subset) >= 2:
                outcome.groups.append(DuplicateGroup(digest=digest, size_bytes=size, paths=subset))

    outcome.groups.sort(key=lambda g: (-g.reclaimable_bytes, g.digest))
    return outcome
