"""Snapshot backup, restore, and diff.

Provides the identity codec, the key-rename transform, the snapshot store,
and the batch orchestrator.

Usage:
    from object_snapshot.backup import SnapshotStore
    from object_snapshot.backup import backup_objects, restore_objects, diff_objects
    from object_snapshot.backup import rename_keys, encode_file_name, decode_identity
"""

from object_snapshot.backup.backup_restore import (
    backup_objects,
    diff_objects,
    restore_objects,
)
from object_snapshot.backup.codec import (
    decode_identity,
    encode_file_name,
    is_identity,
    sanitize_alias,
)
from object_snapshot.backup.models import BatchReport, ItemResult, ItemState
from object_snapshot.backup.renames import find_rename_conflicts, rename_keys
from object_snapshot.backup.store import (
    SnapshotDirectoryError,
    SnapshotIndex,
    SnapshotStore,
)

__all__ = [
    "backup_objects",
    "restore_objects",
    "diff_objects",
    "encode_file_name",
    "decode_identity",
    "is_identity",
    "sanitize_alias",
    "rename_keys",
    "find_rename_conflicts",
    "SnapshotStore",
    "SnapshotIndex",
    "SnapshotDirectoryError",
    "BatchReport",
    "ItemResult",
    "ItemState",
]
