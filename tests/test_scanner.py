"""Tests for filesystem traversal."""

import os
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from reclaim.errors import ScanCancelled
from reclaim.models import EcosystemTag, ScanConfig
from reclaim.scanner import (
    expand_path,
    get_directory_size,
    inside_cache,
    should_skip,
    walk_tree,
)


class TestExpandPath:
    def test_expands_tilde(self):
        result = expand_path("~/test")
        assert str(result).startswith(str(Path.home()))

    def test_handles_absolute_path(self):
        assert str(expand_path("/absolute/path")) == "/absolute/path"


class TestShouldSkip:
    def test_skips_vcs_directories(self):
        assert should_skip("/home/me/project/.git", True)
        assert should_skip("/home/me/project/.hg", True)
        assert should_skip("/home/me/project/.svn", True)

    def test_vcs_name_as_file_not_skipped(self):
        # .git can be a file in worktrees and submodules
        assert not should_skip("/home/me/project/.git", False)

    def test_skips_virtual_filesystems(self):
        assert should_skip("/proc", True)
        assert should_skip("/sys", True)
        assert should_skip("/dev", True)

    def test_only_the_root_itself_is_matched(self):
        # Descendants are never reached once the root is pruned
        assert not should_skip("/run/user/1000/project", True)

    def test_does_not_skip_lookalikes(self):
        assert not should_skip("/tmp/proc", True)
        assert not should_skip("/process", True)
        assert not should_skip("/home/me/devices", True)

    def test_skips_trash(self):
        assert should_skip("/home/me/.Trash", True)

    def test_regular_paths(self):
        assert not should_skip("/home/me/project/src", True)
        assert not should_skip("/home/me/project/main.py", False)


class TestGetDirectorySize:
    def test_empty_directory(self, tmp_path):
        assert get_directory_size(tmp_path) == (0, 0)

    def test_nested_files(self, tmp_path, make_file):
        make_file(tmp_path / "a.txt", b"hello")
        make_file(tmp_path / "sub" / "deeper" / "b.txt", b"world!")
        assert get_directory_size(tmp_path) == (11, 2)

    def test_does_not_follow_symlinks(self, tmp_path, make_file):
        outside = make_file(tmp_path / "outside" / "big.bin", b"x" * 1000)
        inside = tmp_path / "cache"
        inside.mkdir()
        os.symlink(outside.parent, inside / "link")
        size, count = get_directory_size(inside)
        assert size == 0
        assert count == 0

    def test_hard_links_counted_once(self, tmp_path, make_file):
        first_link = make_file(tmp_path / "a.bin", b"x" * 100)
        os.link(first_link, tmp_path / "b.bin")
        assert get_directory_size(tmp_path) == (100, 1)

    def test_missing_directory(self, tmp_path):
        assert get_directory_size(tmp_path / "missing") == (0, 0)

    def test_cancellation(self, tmp_path, make_file):
        make_file(tmp_path / "a.txt", b"x")
        event = threading.Event()
        event.set()
        with pytest.raises(ScanCancelled):
            get_directory_size(tmp_path, event)


class TestWalkTree:
    def test_records_files(self, tmp_path, make_file):
        make_file(tmp_path / "a.txt", b"abc")
        make_file(tmp_path / "docs" / "b.txt", b"defg")

        result = walk_tree(tmp_path, ScanConfig())
        paths = {r.path: r.size_bytes for r in result.records}
        assert paths == {str(tmp_path / "a.txt"): 3, str(tmp_path / "docs" / "b.txt"): 4}
        assert result.stats.files_scanned == 2
        assert result.stats.dirs_scanned == 2

    def test_digest_left_unset(self, tmp_path, make_file):
        make_file(tmp_path / "a.txt", b"abc")
        result = walk_tree(tmp_path, ScanConfig())
        assert all(r.digest is None for r in result.records)

    def test_discovery_order_is_deterministic(self, tmp_path, make_file):
        for name in ["zeta", "alpha", "mid"]:
            make_file(tmp_path / name / "f.txt", b"x")
        make_file(tmp_path / "top.txt", b"x")

        first = [r.path for r in walk_tree(tmp_path, ScanConfig()).records]
        second = [r.path for r in walk_tree(tmp_path, ScanConfig()).records]
        assert first == second
        assert first == [
            str(tmp_path / "top.txt"),
            str(tmp_path / "alpha" / "f.txt"),
            str(tmp_path / "mid" / "f.txt"),
            str(tmp_path / "zeta" / "f.txt"),
        ]

    def test_skips_git_directory(self, tmp_path, make_file):
        make_file(tmp_path / "repo" / ".git" / "objects" / "pack.bin", b"x" * 100)
        make_file(tmp_path / "repo" / "main.py", b"print()")

        result = walk_tree(tmp_path, ScanConfig())
        assert [r.path for r in result.records] == [str(tmp_path / "repo" / "main.py")]

    def test_cache_directory_recorded_once(self, tmp_path, make_file, make_sparse):
        node_modules = tmp_path / "webapp" / "node_modules"
        make_sparse(node_modules / "big" / "a.bin", 600_000_000)
        make_sparse(node_modules / "big" / "b.bin", 600_000_000)
        make_file(node_modules / "node_modules" / "nested.js", b"")
        make_file(tmp_path / "webapp" / "index.js", b"console.log(1)")

        result = walk_tree(tmp_path, ScanConfig())

        assert len(result.caches) == 1
        entry = result.caches[0]
        assert entry.path == str(node_modules)
        assert entry.ecosystem_tag == EcosystemTag.NPM
        assert entry.total_size_bytes == 1_200_000_000
        assert entry.file_count == 3
        assert not any(r.path.startswith(str(node_modules)) for r in result.records)
        assert [r.path for r in result.records] == [str(tmp_path / "webapp" / "index.js")]

    def test_qualified_cache_pattern(self, tmp_path, make_file):
        make_file(tmp_path / ".cargo" / "registry" / "cache" / "crate.crate", b"x" * 10)
        make_file(tmp_path / ".cargo" / "config.toml", b"[build]")

        result = walk_tree(tmp_path, ScanConfig())
        assert [c.ecosystem_tag for c in result.caches] == [EcosystemTag.CARGO_REGISTRY]
        assert [r.path for r in result.records] == [str(tmp_path / ".cargo" / "config.toml")]

    def test_library_caches_is_walked(self, tmp_path, make_file):
        caches = tmp_path / "Library" / "Caches"
        make_file(caches / "pip" / "http" / "wheel.bin", b"x" * 100)
        make_file(caches / "com.example.app" / "state.db", b"state")

        result = walk_tree(tmp_path, ScanConfig())
        assert [(c.path, c.ecosystem_tag) for c in result.caches] == [
            (str(caches / "pip"), EcosystemTag.PIP)
        ]
        assert [r.path for r in result.records] == [str(caches / "com.example.app" / "state.db")]

    def test_root_is_not_classified_as_cache(self, tmp_path, make_file):
        root = tmp_path / "build"
        make_file(root / "out.o", b"x")
        result = walk_tree(root, ScanConfig())
        assert result.caches == []
        assert len(result.records) == 1

    def test_excluded_root(self):
        result = walk_tree("/proc", ScanConfig())
        assert result.records == []
        assert result.stats.dirs_scanned == 0

    def test_symlink_loop_not_followed(self, tmp_path, make_file):
        make_file(tmp_path / "a" / "file.txt", b"data")
        os.symlink(tmp_path / "a", tmp_path / "a" / "loop")
        os.symlink(tmp_path / "a" / "file.txt", tmp_path / "alias.txt")

        result = walk_tree(tmp_path, ScanConfig(follow_symlinks=False))
        assert [r.path for r in result.records] == [str(tmp_path / "a" / "file.txt")]
        assert result.stats.symlinks_skipped == 2

    def test_symlink_loop_followed_terminates(self, tmp_path, make_file):
        make_file(tmp_path / "a" / "file.txt", b"data")
        os.symlink(tmp_path, tmp_path / "a" / "up")

        result = walk_tree(tmp_path, ScanConfig(follow_symlinks=True))
        assert [r.path for r in result.records] == [str(tmp_path / "a" / "file.txt")]

    def test_followed_symlink_to_new_directory(self, tmp_path, make_file):
        make_file(tmp_path / "real" / "x.txt", b"x")
        root = tmp_path / "root"
        root.mkdir()
        os.symlink(tmp_path / "real", root / "linked")

        followed = walk_tree(root, ScanConfig(follow_symlinks=True))
        unfollowed = walk_tree(root, ScanConfig(follow_symlinks=False))
        assert [r.path for r in followed.records] == [str(root / "linked" / "x.txt")]
        assert unfollowed.records == []

    def test_hard_links_recorded_once(self, tmp_path, make_file):
        first_link = make_file(tmp_path / "a.bin", b"x" * 10240)
        os.link(first_link, tmp_path / "b.bin")

        result = walk_tree(tmp_path, ScanConfig())
        assert [r.path for r in result.records] == [str(first_link)]
        assert result.stats.files_scanned == 1
        assert result.stats.aliases_skipped == 1

    def test_two_links_to_one_cache_followed(self, tmp_path, make_file):
        make_file(tmp_path / "a" / "node_modules" / "pkg" / "index.js", b"x" * 4096)
        (tmp_path / "b").mkdir()
        os.symlink(tmp_path / "a" / "node_modules", tmp_path / "b" / "node_modules")

        result = walk_tree(tmp_path, ScanConfig(follow_symlinks=True))
        assert [c.path for c in result.caches] == [str(tmp_path / "a" / "node_modules")]
        assert sum(c.total_size_bytes for c in result.caches) == 4096
        assert result.stats.aliases_skipped == 1

    def test_link_into_cache_followed(self, tmp_path, make_file):
        root = tmp_path / "proj"
        make_file(root / "node_modules" / "pkg" / "index.js", b"x" * 4096)
        os.symlink(root / "node_modules", root / "deps")

        result = walk_tree(root, ScanConfig(follow_symlinks=True))
        assert [c.path for c in result.caches] == [str(root / "node_modules")]
        assert result.records == []
        assert result.stats.files_scanned == 0
        assert result.stats.aliases_skipped == 1

    def test_link_sorted_after_cache_followed(self, tmp_path, make_file):
        root = tmp_path / "proj"
        make_file(root / "node_modules" / "pkg" / "index.js", b"x" * 4096)
        os.symlink(root / "node_modules", root / "vendored")

        result = walk_tree(root, ScanConfig(follow_symlinks=True))
        assert [c.path for c in result.caches] == [str(root / "node_modules")]
        assert result.records == []
        assert result.stats.aliases_skipped == 1

    def test_file_link_into_cache_followed(self, tmp_path, make_file):
        target = make_file(tmp_path / "node_modules" / "pkg" / "index.js", b"x" * 10)
        os.symlink(target, tmp_path / "index.js")

        result = walk_tree(tmp_path, ScanConfig(follow_symlinks=True))
        assert result.records == []
        assert len(result.caches) == 1
        assert result.stats.aliases_skipped == 1

    def test_permission_denied_is_counted(self, tmp_path, make_file):
        make_file(tmp_path / "open" / "ok.txt", b"ok")
        make_file(tmp_path / "locked" / "secret.txt", b"no")
        locked = str(tmp_path / "locked")
        real_scandir = os.scandir

        def fake_scandir(path):
            if str(path) == locked:
                raise PermissionError(13, "Permission denied", locked)
            return real_scandir(path)

        with patch("reclaim.scanner.os.scandir", side_effect=fake_scandir):
            result = walk_tree(tmp_path, ScanConfig())

        assert [r.path for r in result.records] == [str(tmp_path / "open" / "ok.txt")]
        assert result.stats.inaccessible == 1
        assert result.stats.inaccessible_paths == (locked,)

    def test_vanished_file_is_skipped(self, tmp_path, make_file):
        victim = make_file(tmp_path / "gone.txt", b"bye")
        make_file(tmp_path / "stays.txt", b"hi")
        real_scandir = os.scandir

        class ListThenDelete:
            def __init__(self, path):
                with real_scandir(path) as it:
                    self.entries = list(it)
                if victim.exists():
                    victim.unlink()

            def __enter__(self):
                return iter(self.entries)

            def __exit__(self, *exc):
                return False

        with patch("reclaim.scanner.os.scandir", side_effect=ListThenDelete):
            result = walk_tree(tmp_path, ScanConfig())

        assert [r.path for r in result.records] == [str(tmp_path / "stays.txt")]
        assert result.stats.transient_errors == 1

    def test_cancellation(self, tmp_path, make_file):
        make_file(tmp_path / "a.txt", b"x")
        event = threading.Event()
        event.set()
        with pytest.raises(ScanCancelled):
            walk_tree(tmp_path, ScanConfig(), cancel_event=event)

    def test_cancellation_mid_walk(self, tmp_path, make_file):
        for i in range(5):
            make_file(tmp_path / f"d{i}" / "f.txt", b"x")
        event = threading.Event()

        def cancel_after_first(directory, files_scanned):
            if directory != str(tmp_path):
                event.set()

        with pytest.raises(ScanCancelled):
            walk_tree(tmp_path, ScanConfig(), event, cancel_after_first)

    def test_progress_callback(self, tmp_path, make_file):
        make_file(tmp_path / "sub" / "a.txt", b"x")
        seen = []
        walk_tree(tmp_path, ScanConfig(), progress_callback=lambda d, n: seen.append(d))
        assert seen == [str(tmp_path), str(tmp_path / "sub")]

    def test_records_access_time(self, tmp_path, make_file):
        make_file(tmp_path / "old.txt", b"x", days_ago=200)
        result = walk_tree(tmp_path, ScanConfig())
        assert result.records[0].age_days() >= 199


class TestInsideCache:
    def test_path_below_cache(self):
        assert inside_cache("/home/me/proj/node_modules/pkg", "/home/me/proj")

    def test_cache_itself(self):
        assert inside_cache("/home/me/proj/node_modules", "/home/me/proj")

    def test_plain_directory(self):
        assert not inside_cache("/home/me/proj/src/lib", "/home/me/proj")

    def test_root_named_like_cache_ignored(self):
        assert not inside_cache("/home/me/build/src", "/home/me/build")

    def test_outside_root_checks_every_component(self):
        assert inside_cache("/srv/shared/node_modules/pkg", "/home/me/proj")
