"""Exceptions raised by reclaim."""


class ReclaimError(Exception):
    """Base class for reclaim errors."""


class ConfigurationError(ReclaimError):
    """The scan cannot start (missing root, not a directory, bad option)."""


class DockerError(ReclaimError):
    """The docker CLI is missing, not running, or returned a failure."""


class ScanCancelled(Exception):
    """A scan was stopped before it finished. No report is produced."""
