"""Tests for cache directory patterns."""

import pytest

from reclaim.categories import (
    CACHE_PATTERNS,
    get_all_patterns,
    get_pattern,
    match_cache_directory,
)
from reclaim.models import EcosystemTag


class TestCachePatterns:
    def test_patterns_not_empty(self):
        assert len(CACHE_PATTERNS) > 0

    def test_keys_match_patterns(self):
        for key, pattern in CACHE_PATTERNS.items():
            assert pattern.key == key
            assert pattern.description
            assert pattern.recovery

    def test_get_all_patterns(self):
        assert len(get_all_patterns()) == len(CACHE_PATTERNS)


class TestMatchCacheDirectory:
    @pytest.mark.parametrize(
        "name,tag",
        [
            ("node_modules", EcosystemTag.NPM),
            ("target", EcosystemTag.CARGO),
            ("__pycache__", EcosystemTag.PYTHON_CACHE),
            (".cache", EcosystemTag.GENERIC_CACHE),
            ("build", EcosystemTag.BUILD),
            ("dist", EcosystemTag.DIST),
            (".pytest_cache", EcosystemTag.PYTEST),
            (".mypy_cache", EcosystemTag.MYPY),
        ],
    )
    def test_plain_names(self, name, tag):
        assert match_cache_directory(name) == tag

    def test_node_modules_tag_value(self):
        assert match_cache_directory("node_modules").value == "npm/yarn"

    def test_no_match(self):
        assert match_cache_directory("src") is None
        assert match_cache_directory("Node_Modules") is None

    def test_qualified_requires_parent(self):
        assert match_cache_directory("registry") is None
        assert match_cache_directory("registry", ".cargo") == EcosystemTag.CARGO_REGISTRY

    def test_pip_under_caches(self):
        assert match_cache_directory("pip", "Caches") == EcosystemTag.PIP
        assert match_cache_directory("pip", "projects") is None

    def test_npm_cacache(self):
        assert match_cache_directory("_cacache", ".npm") == EcosystemTag.NPM_GLOBAL

    def test_plain_name_still_matches_with_parent(self):
        assert match_cache_directory("node_modules", "webapp") == EcosystemTag.NPM

    def test_get_pattern_returns_metadata(self):
        pattern = get_pattern("node_modules")
        assert pattern is not None
        assert "npm" in pattern.recovery
