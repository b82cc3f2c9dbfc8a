"""Backup, restore, and diff of objects against a snapshot directory.

This module sequences the collaborators for a batch of objects: identity
resolution (``IdentityResolver``), serialization and overwrite
(``ObjectIntrospector``), snapshot file I/O (``SnapshotStore``), the
key-rename transform, and the diff engine.

Batches are a single sequential pass. Each item ends ``DONE``, ``SKIPPED``
or ``FAILED`` and one item's problem never stops the next. Only unusable
snapshot directories abort a batch, before any item is processed.

Usage:
    from object_snapshot.adapters.library import ObjectLibrary
    from object_snapshot.backup.backup_restore import (
        backup_objects,
        diff_objects,
        restore_objects,
    )
    from object_snapshot.backup.store import SnapshotStore

    library = ObjectLibrary("assets", kinds=kinds)
    store = SnapshotStore("_snapshots")

    # Backup
    report = backup_objects(library, library, library.objects(), store)

    # Preview what a restore would change
    report = diff_objects(library, library, store, renames={"damage": "baseDamage"})

    # Restore
    report = restore_objects(library, library, store, renames={"damage": "baseDamage"})
    print(report.format_report())
"""

import logging
from pathlib import Path
from typing import Any, Callable, Iterable

from object_snapshot.adapters.base import (
    IdentityResolver,
    KindMismatchError,
    ObjectIntrospector,
    ObjectSnapshotError,
)
from object_snapshot.backup.codec import decode_identity, normalize_identity
from object_snapshot.backup.models import BatchReport, ItemResult, ItemState
from object_snapshot.backup.renames import find_rename_conflicts, rename_keys
from object_snapshot.backup.store import (
    SnapshotDirectoryError,
    SnapshotIndex,
    SnapshotStore,
)
from object_snapshot.schema.comparator import diff_property_maps
from object_snapshot.schema.flattener import flatten_object

logger = logging.getLogger(__name__)

# progress(index, total, label) -> False cancels the batch before that item
ProgressCallback = Callable[[int, int, str], bool | None]


def backup_objects(
    resolver: IdentityResolver,
    introspector: ObjectIntrospector,
    handles: Iterable[Any],
    store: SnapshotStore,
    kind: str | None = None,
    use_alias: bool = True,
    progress: ProgressCallback | None = None,
) -> BatchReport:
    """Write one snapshot file per object.

    For each handle: resolve its identity, check its kind, serialize it and
    write the document to *store*, replacing any earlier snapshot of the
    same identity.

    Args:
        resolver: Identity collaborator.
        introspector: Serialization collaborator.
        handles: Objects to back up (the host's selection).
        store: Destination snapshot store.
        kind: Only back up objects of this kind; others are skipped.
        use_alias: Prefix file names with the object's label.
        progress: Optional progress hook; returning ``False`` cancels.

    Returns:
        ``BatchReport`` with one item per processed handle.

    Raises:
        SnapshotDirectoryError: If the destination cannot be written.
    """
    store.ensure_writable()

    report = BatchReport(operation="backup", directory=str(store.directory))
    handles = list(handles)

    for i, handle in enumerate(handles):
        label = resolver.label_of(handle)
        if _should_cancel(progress, i, len(handles), label):
            report.cancelled = True
            break

        item = ItemResult(label=label)
        report.items.append(item)
        _backup_item(resolver, introspector, handle, store, kind, use_alias, item)

    logger.info(
        f"Backed up {report.done_count} object(s) to {store.directory} "
        f"({report.skipped_count} skipped, {report.failed_count} failed)"
    )
    return report


def restore_objects(
    resolver: IdentityResolver,
    introspector: ObjectIntrospector,
    store: SnapshotStore,
    renames: dict[str, str] | None = None,
    kind: str | None = None,
    identities: Iterable[str] | None = None,
    save: bool = True,
    progress: ProgressCallback | None = None,
) -> BatchReport:
    """Overwrite live objects from their snapshots.

    For each snapshot file: decode its identity, resolve the live object,
    check its kind, apply the rename table to the document, overwrite the
    object (all-or-nothing) and mark it modified. Restore never creates
    objects. Modified objects are saved once at the end when *save* is set.

    Args:
        resolver: Identity collaborator.
        introspector: Serialization collaborator.
        store: Snapshot store to restore from.
        renames: Optional ``{old_key: new_key}`` table applied to documents.
        kind: Only restore objects of this kind; others are skipped.
        identities: Restrict the batch to these identities.
        save: Persist modified objects via ``introspector.save_modified()``.
        progress: Optional progress hook; returning ``False`` cancels.
            Items applied before cancellation stay applied (and saved).

    Returns:
        ``BatchReport`` with one item per snapshot file.

    Raises:
        SnapshotDirectoryError: If the directory holds no snapshot files.
    """
    index = _load_index(store)
    report = _start_report("restore", store, index, renames)

    entries = _snapshot_entries(index, identities)
    for i, (file_name, identity, document, error) in enumerate(entries):
        if _should_cancel(progress, i, len(entries), file_name):
            report.cancelled = True
            break

        item = ItemResult(label=file_name, identity=identity)
        report.items.append(item)

        handle = _resolve_snapshot_item(
            resolver, introspector, item, identity, document, error, kind
        )
        if handle is None:
            continue

        document = rename_keys(document, renames)
        item.state = ItemState.SERIALIZED

        try:
            ignored = introspector.overwrite_from_document(document, handle)
        except KindMismatchError as e:
            _finish(item, ItemState.SKIPPED, f"Type mismatch: {e}")
            continue
        except ObjectSnapshotError as e:
            _finish(item, ItemState.FAILED, f"Overwrite failed: {e}")
            continue

        introspector.mark_modified(handle)
        item.state = ItemState.APPLIED
        _record_ignored(report, item, ignored)
        _finish(item, ItemState.DONE, _with_ignored(f"Restored from {file_name}", item))

    if save and report.done_count:
        try:
            report.saved = introspector.save_modified()
        except OSError as e:
            logger.error(f"Saving restored objects failed: {e}")
            report.warnings.append(f"Saving restored objects failed: {e}")

    logger.info(
        f"Restored {report.done_count} object(s) from {store.directory} "
        f"({report.skipped_count} skipped, {report.failed_count} failed)"
    )
    return report


def diff_objects(
    resolver: IdentityResolver,
    introspector: ObjectIntrospector,
    store: SnapshotStore,
    renames: dict[str, str] | None = None,
    kind: str | None = None,
    identities: Iterable[str] | None = None,
    progress: ProgressCallback | None = None,
) -> BatchReport:
    """Compare live objects with what their snapshots would restore.

    For each snapshot: materialize a scratch copy of the live object,
    overwrite it from the (renamed) document exactly as a restore would,
    flatten both objects and diff them. The scratch object is always
    disposed. Live objects are never modified. Snapshot fields a restore
    would not apply are listed on the item and in the report warnings.

    Args:
        resolver: Identity collaborator.
        introspector: Serialization collaborator.
        store: Snapshot store to compare against.
        renames: Optional ``{old_key: new_key}`` table applied to documents.
        kind: Only compare objects of this kind; others are skipped.
        identities: Restrict the batch to these identities.
        progress: Optional progress hook; returning ``False`` cancels.

    Returns:
        ``BatchReport`` whose items carry their ``diff`` entries.

    Raises:
        SnapshotDirectoryError: If the directory holds no snapshot files.
    """
    index = _load_index(store)
    report = _start_report("diff", store, index, renames)

    entries = _snapshot_entries(index, identities)
    for i, (file_name, identity, document, error) in enumerate(entries):
        if _should_cancel(progress, i, len(entries), file_name):
            report.cancelled = True
            break

        item = ItemResult(label=file_name, identity=identity)
        report.items.append(item)

        handle = _resolve_snapshot_item(
            resolver, introspector, item, identity, document, error, kind
        )
        if handle is None:
            continue

        document = rename_keys(document, renames)
        item.state = ItemState.SERIALIZED
        _diff_item(introspector, handle, document, item, report)

    return report


# ============================================================================
# Per-item steps
# ============================================================================


def _backup_item(
    resolver: IdentityResolver,
    introspector: ObjectIntrospector,
    handle: Any,
    store: SnapshotStore,
    kind: str | None,
    use_alias: bool,
    item: ItemResult,
) -> None:
    identity = resolver.identity_of(handle)
    if not identity:
        _finish(item, ItemState.SKIPPED, "Object has no identity")
        return
    try:
        item.identity = normalize_identity(identity)
    except ValueError as e:
        _finish(item, ItemState.SKIPPED, str(e))
        return
    item.state = ItemState.RESOLVED

    actual_kind = introspector.kind_of(handle)
    if kind is not None and actual_kind != kind:
        _finish(item, ItemState.SKIPPED, f"Type mismatch: '{actual_kind}' is not '{kind}'")
        return

    try:
        document = introspector.to_document(handle)
        item.state = ItemState.SERIALIZED

        path = store.write(item.identity, item.label if use_alias else None, document)
        item.state = ItemState.APPLIED
    except (OSError, ObjectSnapshotError) as e:
        _finish(item, ItemState.FAILED, f"Backup failed: {e}")
        return

    _finish(item, ItemState.DONE, f"Saved {path.name}")


def _resolve_snapshot_item(
    resolver: IdentityResolver,
    introspector: ObjectIntrospector,
    item: ItemResult,
    identity: str | None,
    document: str | None,
    error: str | None,
    kind: str | None,
) -> Any | None:
    """Resolve the live object for a snapshot entry, or finish the item."""
    if identity is None:
        _finish(item, ItemState.SKIPPED, "No identity in file name")
        return None
    if document is None:
        _finish(item, ItemState.FAILED, f"Cannot read snapshot: {error}")
        return None

    handle = resolver.handle_of(identity)
    if handle is None:
        _finish(item, ItemState.SKIPPED, f"No live object for identity {identity}")
        return None

    item.label = resolver.label_of(handle)
    item.state = ItemState.RESOLVED

    actual_kind = introspector.kind_of(handle)
    if kind is not None and actual_kind != kind:
        _finish(item, ItemState.SKIPPED, f"Type mismatch: '{actual_kind}' is not '{kind}'")
        return None

    return handle


def _diff_item(
    introspector: ObjectIntrospector,
    handle: Any,
    document: str,
    item: ItemResult,
    report: BatchReport,
) -> None:
    scratch = introspector.create_scratch(introspector.kind_of(handle), source=handle)
    try:
        ignored = introspector.overwrite_from_document(document, scratch)
        item.state = ItemState.APPLIED
        backup_map = flatten_object(introspector, scratch)
        current_map = flatten_object(introspector, handle)
    except KindMismatchError as e:
        _finish(item, ItemState.SKIPPED, f"Type mismatch: {e}")
        return
    except ObjectSnapshotError as e:
        _finish(item, ItemState.FAILED, f"Cannot materialize snapshot: {e}")
        return
    finally:
        introspector.dispose(scratch)

    item.diff = diff_property_maps(current_map, backup_map)
    _record_ignored(report, item, ignored)
    if item.diff:
        detail = f"{len(item.diff)} difference(s)"
    else:
        detail = "No differences"
    _finish(item, ItemState.DONE, _with_ignored(detail, item))


# ============================================================================
# Helpers
# ============================================================================


def _finish(item: ItemResult, state: ItemState, detail: str) -> None:
    item.state = state
    item.detail = detail
    if state == ItemState.SKIPPED:
        logger.warning(f"Skipping {item.label}: {detail}")
    elif state == ItemState.FAILED:
        logger.error(f"{item.label}: {detail}")
    else:
        logger.debug(f"{item.label}: {detail}")


def _record_ignored(report: BatchReport, item: ItemResult, ignored: Iterable[str] | None) -> None:
    item.ignored = list(ignored or [])
    if item.ignored:
        report.warnings.append(
            f"{item.label}: snapshot field(s) not restored: {', '.join(item.ignored)}"
        )


def _with_ignored(detail: str, item: ItemResult) -> str:
    if not item.ignored:
        return detail
    return f"{detail}; not restored: {', '.join(item.ignored)}"


def _should_cancel(
    progress: ProgressCallback | None, index: int, total: int, label: str
) -> bool:
    if progress is None:
        return False
    if progress(index, total, label) is False:
        logger.info(f"Batch cancelled before item {index + 1} of {total}")
        return True
    return False


def _load_index(store: SnapshotStore) -> SnapshotIndex:
    if not store.directory.is_dir():
        raise SnapshotDirectoryError(
            f"Snapshot directory not found: {store.directory}"
        )

    index = store.read_all()
    if index.file_count == 0:
        raise SnapshotDirectoryError(
            f"No snapshot files found in {store.directory}"
        )
    return index


def _start_report(
    operation: str,
    store: SnapshotStore,
    index: SnapshotIndex,
    renames: dict[str, str] | None,
) -> BatchReport:
    report = BatchReport(operation=operation, directory=str(store.directory))
    report.warnings.extend(index.warnings())
    for warning in find_rename_conflicts(renames):
        logger.warning(warning)
        report.warnings.append(warning)
    return report


def _snapshot_entries(
    index: SnapshotIndex,
    identities: Iterable[str] | None,
) -> list[tuple[str, str | None, str | None, str | None]]:
    """Ordered ``(file name, identity, document, read error)`` per snapshot file.

    Undecodable and unreadable files are included so they are reported;
    an identity filter drops undecodable files.
    """
    wanted = {i.lower() for i in identities} if identities is not None else None

    entries: list[tuple[str, str | None, str | None, str | None]] = []
    for identity, path in index.paths.items():
        entries.append((Path(path).name, identity, index.documents[identity], None))
    for name, error in index.unreadable.items():
        entries.append((name, decode_identity(name), None, error))
    if wanted is None:
        for name in index.undecodable:
            entries.append((name, None, None, None))

    if wanted is not None:
        entries = [e for e in entries if e[1] in wanted]

    return sorted(entries, key=lambda e: e[0])
