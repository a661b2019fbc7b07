"""Data models for reclaim."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MiB = 1024**2


class EcosystemTag(str, Enum):
    """Ecosystem that owns a cache or build-artifact directory."""

    NPM = "npm/yarn"
    NPM_GLOBAL = "npm-global"
    CARGO = "Rust/Cargo"
    CARGO_REGISTRY = "cargo-registry"
    PYTHON_CACHE = "Python"
    PIP = "pip"
    PYTEST = "pytest"
    MYPY = "mypy"
    RUFF = "ruff"
    TOX = "tox"
    GENERIC_CACHE = "Generic cache"
    BUILD = "Build output"
    DIST = "Distribution"
    GRADLE = "Gradle"
    NEXT = "Next.js"


class CachePattern(BaseModel):
    """A directory name that marks a regenerable cache or build tree."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Directory name to match exactly")
    ecosystem_tag: EcosystemTag = Field(..., description="Tag recorded for matches")
    parent: Optional[str] = Field(
        None, description="Required parent directory name, if the name alone is too generic"
    )
    description: str = Field(..., description="What the directory contains")
    recovery: str = Field(..., description="How the contents are regenerated")

    @property
    def key(self) -> str:
        return f"{self.parent}/{self.name}" if self.parent else self.name


def format_size(size_bytes: int) -> str:
    """Format bytes to human-readable string (binary units)."""
    size = float(size_bytes)
    for unit in ["B", "KiB", "MiB", "GiB", "TiB"]:
        if size < 1024:
            return f"{size_bytes} B" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} PiB"


class FileRecord(BaseModel):
    """One regular file discovered during traversal."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Absolute path of the file")
    size_bytes: int = Field(..., ge=0, description="Size in bytes")
    last_accessed: datetime = Field(..., description="Last access time (atime)")
    last_modified: datetime = Field(..., description="Last modification time (mtime)")
    digest: Optional[str] = Field(
        None, description="SHA-256 hex digest, only set for duplicate candidates"
    )

    @property
    def size_human(self) -> str:
        return format_size(self.size_bytes)

    def age_days(self, now: Optional[datetime] = None) -> int:
        """Whole days since the file was last accessed."""
        now = now or datetime.now()
        return max((now - self.last_accessed).days, 0)


class CacheDirectoryEntry(BaseModel):
    """A cache or build-artifact directory, reclaimable as a unit."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Absolute path of the cache root")
    ecosystem_tag: EcosystemTag = Field(..., description="Ecosystem that owns the directory")
    total_size_bytes: int = Field(..., ge=0, description="Sum of all file sizes beneath it")
    file_count: int = Field(0, ge=0, description="Number of files beneath it")

    @property
    def size_human(self) -> str:
        return format_size(self.total_size_bytes)


class DuplicateGroup(BaseModel):
    """Files that share identical content."""

    model_config = ConfigDict(frozen=True)

    digest: str = Field(..., description="SHA-256 hex digest shared by every copy")
    size_bytes: int = Field(..., ge=0, description="Size of a single copy")
    paths: tuple[str, ...] = Field(..., min_length=2, description="Copies in discovery order")

    @property
    def copies(self) -> int:
        return len(self.paths)

    @property
    def reclaimable_bytes(self) -> int:
        """Bytes freed by keeping one copy and deleting the rest."""
        return self.size_bytes * (len(self.paths) - 1)

    @property
    def keep_path(self) -> str:
        """The copy that is conventionally retained."""
        return self.paths[0]

    @property
    def redundant_paths(self) -> list[str]:
        return list(self.paths[1:])


class ScanStats(BaseModel):
    """Counters collected while scanning."""

    model_config = ConfigDict(frozen=True)

    files_scanned: int = Field(0, description="Regular files recorded")
    dirs_scanned: int = Field(0, description="Directories visited")
    inaccessible: int = Field(0, description="Paths skipped on permission errors")
    transient_errors: int = Field(0, description="Files that vanished or failed to read")
    symlinks_skipped: int = Field(0, description="Symbolic links seen and not followed")
    aliases_skipped: int = Field(
        0, description="Hard links or followed links to something already recorded"
    )
    files_hashed: int = Field(0, description="Files whose content digest was computed")
    inaccessible_paths: tuple[str, ...] = Field(
        (), description="Sample of paths that could not be read"
    )

    @property
    def error_count(self) -> int:
        return self.inaccessible + self.transient_errors


class ScanConfig(BaseModel):
    """Immutable options for one scan."""

    model_config = ConfigDict(frozen=True)

    root_path: Optional[str] = Field(None, description="Root of the scanned subtree")
    large_file_threshold_bytes: int = Field(
        100 * MiB, ge=0, description="Files strictly larger than this are reported as large"
    )
    stale_after: timedelta = Field(
        timedelta(days=180), description="Files not accessed for longer than this are stale"
    )
    follow_symlinks: bool = Field(False, description="Follow symbolic links during traversal")
    max_large_files_reported: int = Field(10, ge=1, description="Top-N large files to report")
    verify_duplicates: bool = Field(
        False, description="Confirm digest matches with a byte-for-byte comparison"
    )
    hash_workers: int = Field(4, ge=1, description="Threads used for content hashing")
    min_duplicate_size_bytes: int = Field(
        1, ge=0, description="Files smaller than this are never duplicate candidates"
    )

    @field_validator("stale_after")
    @classmethod
    def _stale_after_not_negative(cls, value: timedelta) -> timedelta:
        if value < timedelta(0):
            raise ValueError("stale_after must not be negative")
        return value


class ScanReport(BaseModel):
    """Aggregated result of one filesystem scan."""

    model_config = ConfigDict(frozen=True)

    root_path: str = Field(..., description="Root that was scanned")
    large_files: tuple[FileRecord, ...] = ()
    duplicate_groups: tuple[DuplicateGroup, ...] = ()
    cache_directories: tuple[CacheDirectoryEntry, ...] = ()
    stale_files: tuple[FileRecord, ...] = ()
    stats: ScanStats = Field(default_factory=ScanStats)
    total_reclaimable_bytes: int = Field(
        0, description="Caches plus redundant duplicate copies; excludes large and stale"
    )

    @property
    def stale_count(self) -> int:
        return len(self.stale_files)

    @property
    def cache_reclaimable_bytes(self) -> int:
        return sum(c.total_size_bytes for c in self.cache_directories)

    @property
    def duplicate_reclaimable_bytes(self) -> int:
        return sum(g.reclaimable_bytes for g in self.duplicate_groups)

    @property
    def large_bytes(self) -> int:
        """Bytes in reported large files (informational only)."""
        return sum(f.size_bytes for f in self.large_files)

    @property
    def stale_bytes(self) -> int:
        """Bytes in stale files (needs review, not counted as reclaimable)."""
        return sum(f.size_bytes for f in self.stale_files)

    @property
    def is_empty(self) -> bool:
        return not (
            self.large_files or self.duplicate_groups or self.cache_directories or self.stale_files
        )


class CleanupResult(BaseModel):
    """Result of deleting one reported item."""

    path: str = Field(..., description="Path that was deleted")
    kind: str = Field(..., description="duplicate, cache, large or stale")
    bytes_freed: int = Field(0, description="Bytes freed by cleanup")
    files_deleted: int = Field(0, description="Number of files deleted")
    success: bool = Field(True, description="Whether cleanup succeeded")
    error: Optional[str] = Field(None, description="Error message if failed")
    dry_run: bool = Field(False, description="Whether this was a dry run")


class DockerImage(BaseModel):
    """An image known to the container runtime."""

    id: str
    repository: str
    tag: str
    size: str = Field(..., description="Size as printed by docker")
    size_bytes: int = Field(0, description="Parsed size in bytes")

    @property
    def dangling(self) -> bool:
        return self.repository == "<none>"


class DockerContainer(BaseModel):
    """A container known to the container runtime."""

    id: str
    name: str
    image: str
    status: str

    @property
    def stopped(self) -> bool:
        return self.status.startswith(("Exited", "Created"))


class PruneResult(BaseModel):
    """Outcome of a docker prune command."""

    command: str = Field(..., description="Command that was run")
    success: bool = Field(True)
    output: str = Field("", description="Standard output of the command")
    error: Optional[str] = Field(None, description="Error message if failed")
