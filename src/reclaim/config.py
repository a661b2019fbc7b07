"""User defaults for reclaim, read from ~/.reclaim/config.json."""

import json
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Any

from reclaim.models import MiB, ScanConfig
from reclaim.scanner import expand_path

log = logging.getLogger(__name__)

CONFIG_ENV = "RECLAIM_CONFIG"
CONFIG_DIR = expand_path("~/.reclaim")
CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_CONFIG: dict[str, Any] = {
    "large_file_threshold_mb": 100,
    "stale_after_days": 180,
    "max_large_files_reported": 10,
    "hash_workers": 4,
    "protected_paths": [],
}


def config_path() -> Path:
    """Location of the user config file, honouring RECLAIM_CONFIG."""
    override = os.environ.get(CONFIG_ENV)
    return expand_path(override) if override else CONFIG_FILE


def load_user_config(path: Path | None = None) -> dict[str, Any]:
    """
    Load user defaults, falling back to DEFAULT_CONFIG.

    Unknown keys are ignored. A missing file is not an error; an unreadable
    or malformed one is logged and ignored.
    """
    path = path or config_path()
    config = dict(DEFAULT_CONFIG)
    if not path.exists():
        return config

    try:
        with open(path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        log.warning("Could not load config from %s: %s", path, e)
        return config

    if not isinstance(data, dict):
        log.warning("Ignoring config %s: expected a JSON object", path)
        return config

    for key in DEFAULT_CONFIG:
        if key not in data:
            continue
        if _valid_value(key, data[key]):
            config[key] = data[key]
        else:
            log.warning(
                "Ignoring %s=%r in %s, using default %r", key, data[key], path, DEFAULT_CONFIG[key]
            )
    return config


def _valid_value(key: str, value: Any) -> bool:
    """Type check for one user config value; ranges are left to ScanConfig."""
    # bool is an int subclass but never a meaningful size or count
    if isinstance(value, bool):
        return False
    if key == "protected_paths":
        return isinstance(value, list) and all(isinstance(p, str) for p in value)
    if key in ("max_large_files_reported", "hash_workers"):
        return isinstance(value, int)
    return isinstance(value, (int, float))


def build_scan_config(root: str | Path, user_config: dict[str, Any], **overrides: Any) -> ScanConfig:
    """
    Build a ScanConfig from user defaults plus explicit overrides.

    Overrides use the same keys as the user config; None means "not given".
    """
    merged = dict(user_config)
    merged.update({k: v for k, v in overrides.items() if v is not None})

    return ScanConfig(
        root_path=str(root),
        large_file_threshold_bytes=int(merged["large_file_threshold_mb"] * MiB),
        stale_after=timedelta(days=merged["stale_after_days"]),
        max_large_files_reported=merged["max_large_files_reported"],
        hash_workers=merged["hash_workers"],
        follow_symlinks=merged.get("follow_symlinks", False),
        verify_duplicates=merged.get("verify_duplicates", False),
    )


def get_protected_paths(user_config: dict[str, Any]) -> list[Path]:
    """Paths the cleaner must never delete, expanded."""
    return [expand_path(p) for p in user_config.get("protected_paths", [])]
