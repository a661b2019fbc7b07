"""Cache and build-artifact directory patterns for reclaim."""

from typing import Optional

from reclaim.models import CachePattern, EcosystemTag

# Parent-qualified patterns are listed first so that they win over plain names.
CACHE_PATTERNS: dict[str, CachePattern] = {
    # =============================================================================
    # Parent-qualified patterns - generic names that only count in one place
    # =============================================================================
    ".cargo/registry": CachePattern(
        name="registry",
        parent=".cargo",
        ecosystem_tag=EcosystemTag.CARGO_REGISTRY,
        description="Downloaded crate sources and index",
        recovery="Automatic - cargo re-downloads crates on next build",
    ),
    "Caches/pip": CachePattern(
        name="pip",
        parent="Caches",
        ecosystem_tag=EcosystemTag.PIP,
        description="Cached pip wheels and HTTP responses (macOS)",
        recovery="Automatic - pip re-downloads packages when needed",
    ),
    ".npm/_cacache": CachePattern(
        name="_cacache",
        parent=".npm",
        ecosystem_tag=EcosystemTag.NPM_GLOBAL,
        description="Global npm content-addressable package cache",
        recovery="Automatic - npm re-downloads packages when needed",
    ),
    # =============================================================================
    # Plain directory names
    # =============================================================================
    "node_modules": CachePattern(
        name="node_modules",
        ecosystem_tag=EcosystemTag.NPM,
        description="Installed Node.js dependencies for a project",
        recovery="Run 'npm install' or 'yarn' in the project",
    ),
    "target": CachePattern(
        name="target",
        ecosystem_tag=EcosystemTag.CARGO,
        description="Rust compilation output",
        recovery="Run 'cargo build' to recompile",
    ),
    "__pycache__": CachePattern(
        name="__pycache__",
        ecosystem_tag=EcosystemTag.PYTHON_CACHE,
        description="Compiled Python bytecode",
        recovery="Automatic - Python recompiles on next import",
    ),
    ".cache": CachePattern(
        name=".cache",
        ecosystem_tag=EcosystemTag.GENERIC_CACHE,
        description="Application caches following the XDG convention",
        recovery="Automatic - applications rebuild their caches",
    ),
    "build": CachePattern(
        name="build",
        ecosystem_tag=EcosystemTag.BUILD,
        description="Build output directory",
        recovery="Re-run the project's build",
    ),
    "dist": CachePattern(
        name="dist",
        ecosystem_tag=EcosystemTag.DIST,
        description="Packaged distribution artifacts",
        recovery="Re-run the project's packaging step",
    ),
    ".pytest_cache": CachePattern(
        name=".pytest_cache",
        ecosystem_tag=EcosystemTag.PYTEST,
        description="pytest cross-run state (last failures, cache plugin)",
        recovery="Automatic - recreated on next pytest run",
    ),
    ".mypy_cache": CachePattern(
        name=".mypy_cache",
        ecosystem_tag=EcosystemTag.MYPY,
        description="mypy incremental type-check cache",
        recovery="Automatic - recreated on next mypy run",
    ),
    ".ruff_cache": CachePattern(
        name=".ruff_cache",
        ecosystem_tag=EcosystemTag.RUFF,
        description="ruff lint cache",
        recovery="Automatic - recreated on next ruff run",
    ),
    ".tox": CachePattern(
        name=".tox",
        ecosystem_tag=EcosystemTag.TOX,
        description="tox virtual environments",
        recovery="Run 'tox' to recreate the environments",
    ),
    ".gradle": CachePattern(
        name=".gradle",
        ecosystem_tag=EcosystemTag.GRADLE,
        description="Gradle build cache and wrapper distributions",
        recovery="Automatic - Gradle re-downloads on next build",
    ),
    ".next": CachePattern(
        name=".next",
        ecosystem_tag=EcosystemTag.NEXT,
        description="Next.js build output",
        recovery="Run 'next build' or 'next dev'",
    ),
}

_QUALIFIED = {(p.parent, p.name): p for p in CACHE_PATTERNS.values() if p.parent}
_PLAIN = {p.name: p for p in CACHE_PATTERNS.values() if not p.parent}


def match_cache_directory(name: str, parent_name: Optional[str] = None) -> EcosystemTag | None:
    """
    Match a directory name against the known cache patterns.

    Args:
        name: Directory name (not a path)
        parent_name: Name of the containing directory, used for qualified patterns

    Returns:
        The ecosystem tag for a match, or None
    """
    pattern = get_pattern(name, parent_name)
    return pattern.ecosystem_tag if pattern else None


def get_pattern(name: str, parent_name: Optional[str] = None) -> CachePattern | None:
    """Get the pattern matching a directory name, qualified patterns first."""
    if parent_name is not None:
        qualified = _QUALIFIED.get((parent_name, name))
        if qualified:
            return qualified
    return _PLAIN.get(name)


def get_all_patterns() -> list[CachePattern]:
    """Get all cache patterns."""
    return list(CACHE_PATTERNS.values())
