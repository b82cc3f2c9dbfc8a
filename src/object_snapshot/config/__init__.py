"""Configuration management: TOML loading and config models.

Usage:
    >>> from object_snapshot.config import load_config, SnapshotConfig
"""

from object_snapshot.config.loader import load_config
from object_snapshot.config.models import SnapshotConfig

__all__ = ["load_config", "SnapshotConfig"]
