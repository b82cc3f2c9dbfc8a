"""Batch report models for backup, restore, and diff runs.

Every processed item ends in one terminal state (``DONE``, ``SKIPPED`` or
``FAILED``) with a detail message. Diff runs also attach the item's diff
entries, and both restore and diff list the snapshot fields the object
does not declare (``ignored``).

Usage:
    from object_snapshot.backup.models import BatchReport, ItemResult, ItemState

    report = restore_objects(library, library, store)
    print(report.format_report())
    if report.failed_count:
        ...
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from object_snapshot.schema.models import DiffEntry


class ItemState(str, Enum):
    """Per-item progress through a batch."""

    PENDING = "pending"
    RESOLVED = "resolved"  # identity and live handle found
    SERIALIZED = "serialized"  # document produced or loaded
    APPLIED = "applied"  # written to the store or onto the object
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ItemState.DONE, ItemState.SKIPPED, ItemState.FAILED)


class ItemResult(BaseModel):
    """Outcome of one item in a batch."""

    label: str
    identity: str | None = None
    state: ItemState = ItemState.PENDING
    detail: str = ""
    diff: list[DiffEntry] = Field(default_factory=list)
    ignored: list[str] = Field(default_factory=list)  # snapshot fields not applied


class BatchReport(BaseModel):
    """Ordered result of a backup, restore, or diff batch."""

    operation: Literal["backup", "restore", "diff"]
    directory: str
    items: list[ItemResult] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    cancelled: bool = False
    saved: int = 0  # objects persisted after a restore

    def _count(self, state: ItemState) -> int:
        return sum(1 for item in self.items if item.state == state)

    @property
    def done_count(self) -> int:
        return self._count(ItemState.DONE)

    @property
    def skipped_count(self) -> int:
        return self._count(ItemState.SKIPPED)

    @property
    def failed_count(self) -> int:
        return self._count(ItemState.FAILED)

    @property
    def success(self) -> bool:
        """``True`` when every item finished, none failed, and the batch was not cancelled."""
        return (
            not self.cancelled
            and self.failed_count == 0
            and all(item.state.is_terminal for item in self.items)
        )

    def format_report(self) -> str:
        """Format the report as human-readable text."""
        lines = [
            f"{self.operation.capitalize()} {self.directory}: "
            f"{self.done_count} done, {self.skipped_count} skipped, "
            f"{self.failed_count} failed"
        ]
        if self.cancelled:
            lines.append("  Cancelled before all items were processed")

        for item in self.items:
            lines.append(f"  [{item.state.value}] {item.label}: {item.detail}")
            for entry in item.diff:
                lines.append(f"      {entry.describe()}")

        if self.warnings:
            lines.append(f"\n  Warnings ({len(self.warnings)}):")
            for warning in self.warnings:
                lines.append(f"    - {warning}")

        return "\n".join(lines)
