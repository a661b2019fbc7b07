"""reclaim - find reclaimable disk space before you delete anything."""

__version__ = "0.1.0"
