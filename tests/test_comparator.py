"""Tests for the property map diff engine.

Verifies set-based classification into added/removed/modified entries,
deterministic ordering, symmetry, and the documented sequence behavior.
"""

import ast
import inspect
from pathlib import Path

from object_snapshot.schema.comparator import diff_property_maps, format_diff
from object_snapshot.schema.models import DiffEntry, DiffKind

COMPARATOR_PATH = (
    Path(__file__).parent.parent / "src" / "object_snapshot" / "schema" / "comparator.py"
)


class TestPureLogic:
    """The comparator is pure: no I/O imports."""

    def test_no_io_imports(self) -> None:
        """comparator.py imports nothing but the schema models."""
        tree = ast.parse(COMPARATOR_PATH.read_text())
        modules = [
            node.module
            for node in ast.walk(tree)
            if isinstance(node, ast.ImportFrom)
        ]
        assert modules == ["object_snapshot.schema.models"]

    def test_signature(self) -> None:
        """diff_property_maps takes (current_map, backup_map)."""
        params = list(inspect.signature(diff_property_maps).parameters)
        assert params == ["current_map", "backup_map"]


class TestClassification:
    """Added / removed / modified classification."""

    def test_identical_maps(self) -> None:
        """Identical maps produce no entries."""
        assert diff_property_maps({"a": "1", "b": "x"}, {"a": "1", "b": "x"}) == []

    def test_empty_maps(self) -> None:
        """Two empty maps produce no entries."""
        assert diff_property_maps({}, {}) == []

    def test_added(self) -> None:
        """A path only in the backup map is added."""
        entries = diff_property_maps({}, {"a": "1"})
        assert entries == [DiffEntry(path="a", kind=DiffKind.ADDED, backup="1")]

    def test_removed(self) -> None:
        """A path only in the current map is removed."""
        entries = diff_property_maps({"a": "1"}, {})
        assert entries == [DiffEntry(path="a", kind=DiffKind.REMOVED, current="1")]

    def test_modified(self) -> None:
        """A path in both maps with different values is modified."""
        entries = diff_property_maps({"a": "1"}, {"a": "2"})
        assert entries == [
            DiffEntry(path="a", kind=DiffKind.MODIFIED, current="1", backup="2")
        ]

    def test_sorted_by_path(self) -> None:
        """Entries are sorted by path regardless of input order."""
        entries = diff_property_maps(
            {"z": "1", "b": "1", "m": "1"},
            {"a": "1", "m": "2"},
        )
        assert [e.path for e in entries] == ["a", "b", "m", "z"]
        assert [e.kind for e in entries] == [
            DiffKind.ADDED,
            DiffKind.REMOVED,
            DiffKind.MODIFIED,
            DiffKind.REMOVED,
        ]

    def test_renamed_field(self) -> None:
        """A renamed field shows as one added and one removed entry."""
        entries = diff_property_maps(
            {"baseDamage": "0", "name": "Sword"},
            {"damage": "10", "name": "Sword"},
        )
        assert [(e.path, e.kind) for e in entries] == [
            ("baseDamage", DiffKind.REMOVED),
            ("damage", DiffKind.ADDED),
        ]


class TestSymmetry:
    """Swapping inputs swaps added/removed and current/backup."""

    def test_swap(self) -> None:
        """Added <-> removed, modified keeps its path with swapped values."""
        current = {"a": "1", "b": "2", "c": "3"}
        backup = {"b": "20", "c": "3", "d": "4"}

        forward = diff_property_maps(current, backup)
        reverse = diff_property_maps(backup, current)

        swap = {
            DiffKind.ADDED: DiffKind.REMOVED,
            DiffKind.REMOVED: DiffKind.ADDED,
            DiffKind.MODIFIED: DiffKind.MODIFIED,
        }
        assert [(e.path, swap[e.kind], e.backup, e.current) for e in forward] == [
            (e.path, e.kind, e.current, e.backup) for e in reverse
        ]


class TestSequences:
    """Sequence elements are compared by index (no move detection)."""

    def test_missing_tail_element(self) -> None:
        """Backup with 3 elements vs current with 2: one added, nothing modified."""
        current = {"items[0]": "a", "items[1]": "b"}
        backup = {"items[0]": "a", "items[1]": "b", "items[2]": "c"}

        entries = diff_property_maps(current, backup)

        assert entries == [
            DiffEntry(path="items[2]", kind=DiffKind.ADDED, backup="c")
        ]

    def test_insertion_cascades(self) -> None:
        """An insertion in the middle shifts indices: modified entries + one at the tail."""
        current = {"items[0]": "a", "items[1]": "c"}
        backup = {"items[0]": "a", "items[1]": "b", "items[2]": "c"}

        entries = diff_property_maps(current, backup)

        assert [(e.path, e.kind) for e in entries] == [
            ("items[1]", DiffKind.MODIFIED),
            ("items[2]", DiffKind.ADDED),
        ]


class TestFormat:
    """Human-readable output."""

    def test_no_differences(self) -> None:
        """Empty diffs format as 'No differences'."""
        assert format_diff([]) == "No differences"

    def test_lines(self) -> None:
        """Each entry is one line with a +/-/~ marker."""
        text = format_diff(diff_property_maps({"a": "1", "b": "1"}, {"a": "2", "c": "3"}))
        assert text.splitlines() == [
            "3 difference(s):",
            "  ~ a: 1 -> 2",
            "  - b = 1",
            "  + c = 3",
        ]
