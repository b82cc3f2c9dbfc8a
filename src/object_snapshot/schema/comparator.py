"""Property map comparison using set operations.

Compares the flattened property map of a live object against the map of
an object materialized from its snapshot. Pure logic -- no I/O.

This is a flat set/map difference, not a tree diff: sequence element paths
carry their index, so an insertion in the middle of a sequence shows up as
modified entries at the shifted indices plus one entry at the tail.

Usage:
    from object_snapshot.schema.comparator import diff_property_maps
    from object_snapshot.schema.flattener import flatten_object

    entries = diff_property_maps(
        flatten_object(introspector, live),
        flatten_object(introspector, scratch),
    )
    for entry in entries:
        print(entry.describe())
"""

from object_snapshot.schema.models import DiffEntry, DiffKind


def diff_property_maps(
    current_map: dict[str, str],
    backup_map: dict[str, str],
) -> list[DiffEntry]:
    """Classify every path that differs between two property maps.

    Performs pure set operations over the union of both path sets:
    - Added: path only in *backup_map* (restore would introduce it)
    - Removed: path only in *current_map*
    - Modified: path in both with differing canonical strings

    Args:
        current_map: Flattened map of the live object.
        backup_map: Flattened map of the snapshot-materialized object.

    Returns:
        List of ``DiffEntry`` sorted by path. Empty when both maps agree.

    Examples:
        >>> diff_property_maps({"damage": "10"}, {"damage": "10"})
        []

        >>> [e.kind.value for e in diff_property_maps({"a": "1"}, {"b": "1"})]
        ['removed', 'added']

        >>> diff_property_maps({"a": "1"}, {"a": "2"})[0].describe()
        '~ a: 1 -> 2'
    """
    current_paths: set[str] = set(current_map.keys())
    backup_paths: set[str] = set(backup_map.keys())

    entries: list[DiffEntry] = []

    for path in sorted(current_paths | backup_paths):
        in_current = path in current_paths
        in_backup = path in backup_paths

        if in_current and in_backup:
            if current_map[path] == backup_map[path]:
                continue
            entries.append(
                DiffEntry(
                    path=path,
                    kind=DiffKind.MODIFIED,
                    current=current_map[path],
                    backup=backup_map[path],
                )
            )
        elif in_backup:
            entries.append(
                DiffEntry(path=path, kind=DiffKind.ADDED, backup=backup_map[path])
            )
        else:
            entries.append(
                DiffEntry(path=path, kind=DiffKind.REMOVED, current=current_map[path])
            )

    return entries


def format_diff(entries: list[DiffEntry]) -> str:
    """Format diff entries as a human-readable report."""
    if not entries:
        return "No differences"

    lines = [f"{len(entries)} difference(s):"]
    for entry in entries:
        lines.append(f"  {entry.describe()}")
    return "\n".join(lines)
