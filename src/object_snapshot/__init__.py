"""object-snapshot: identity-keyed snapshot, diff, and restore of object state.

Captures an object's serialized fields keyed by a stable identity, previews
the difference between a live object and its snapshot, and reapplies the
snapshot (optionally renaming fields) after schema changes.

Usage:
    from object_snapshot import ObjectLibrary, SnapshotStore
    from object_snapshot import backup_objects, diff_objects, restore_objects
    from object_snapshot import flatten, diff_property_maps, rename_keys
    from object_snapshot import load_config, SnapshotConfig
"""

__version__ = "0.1.0"

# Adapters
from object_snapshot.adapters.base import (
    DocumentError,
    IdentityResolver,
    KindMismatchError,
    ObjectIntrospector,
    ObjectSnapshotError,
)
from object_snapshot.adapters.library import ObjectLibrary

# Backup
from object_snapshot.backup.backup_restore import (
    backup_objects,
    diff_objects,
    restore_objects,
)
from object_snapshot.backup.codec import decode_identity, encode_file_name
from object_snapshot.backup.models import BatchReport, ItemResult, ItemState
from object_snapshot.backup.renames import find_rename_conflicts, rename_keys
from object_snapshot.backup.store import SnapshotDirectoryError, SnapshotStore

# Config
from object_snapshot.config.loader import load_config
from object_snapshot.config.models import SnapshotConfig

# Schema
from object_snapshot.schema.comparator import diff_property_maps
from object_snapshot.schema.flattener import flatten, flatten_object
from object_snapshot.schema.models import DiffEntry, DiffKind

__all__ = [
    # Adapters
    "IdentityResolver",
    "ObjectIntrospector",
    "ObjectLibrary",
    "ObjectSnapshotError",
    "KindMismatchError",
    "DocumentError",
    # Backup
    "backup_objects",
    "restore_objects",
    "diff_objects",
    "encode_file_name",
    "decode_identity",
    "rename_keys",
    "find_rename_conflicts",
    "SnapshotStore",
    "SnapshotDirectoryError",
    "BatchReport",
    "ItemResult",
    "ItemState",
    # Config
    "load_config",
    "SnapshotConfig",
    # Schema
    "flatten",
    "flatten_object",
    "diff_property_maps",
    "DiffEntry",
    "DiffKind",
]
