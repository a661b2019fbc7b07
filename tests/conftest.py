"""Shared fixtures for reclaim tests."""

import os
import time
from pathlib import Path

import pytest


def write_file(path: Path, content: bytes = b"", days_ago: float | None = None) -> Path:
    """Create a file (and parents), optionally back-dating its access time."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    if days_ago is not None:
        when = time.time() - days_ago * 86400
        os.utime(path, (when, when))
    return path


def sparse_file(path: Path, size: int) -> Path:
    """Create a file of the given size without writing its blocks."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.truncate(size)
    return path


@pytest.fixture
def make_file():
    return write_file


@pytest.fixture
def make_sparse():
    return sparse_file
