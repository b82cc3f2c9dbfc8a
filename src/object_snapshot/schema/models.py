"""Pydantic models for field trees, object references, and diff entries."""

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, Field


# ============================================================================
# Field Tree Models
# ============================================================================


class FieldKind(str, Enum):
    """Declared kind of a leaf field."""

    INTEGER = "integer"
    BOOLEAN = "boolean"
    FLOAT = "float"
    TEXT = "text"
    VECTOR = "vector"  # 2/3/4-component numeric tuple
    COLOR = "color"  # r, g, b, a channels
    REFERENCE = "reference"
    UNKNOWN = "unknown"  # not compared


class ContainerKind(str, Enum):
    """Kind of an aggregate node (never assigned a value itself)."""

    RECORD = "record"
    SEQUENCE = "sequence"
    PAYLOAD = "payload"  # polymorphic embedded object


class ObjectReference(BaseModel):
    """Reference from a leaf field to another identified object.

    ``index`` disambiguates sub-objects that share one identity.
    """

    identity: str | None = None
    index: int = 0
    locator: str | None = None
    name: str | None = None


class LeafNode(BaseModel):
    """A scalar-like field."""

    name: str
    kind: FieldKind
    value: Any = None


class ContainerNode(BaseModel):
    """An aggregate field whose children are walked individually."""

    name: str
    kind: ContainerKind = ContainerKind.RECORD
    children: list[Union["ContainerNode", LeafNode]] = Field(default_factory=list)


FieldNode = Union[ContainerNode, LeafNode]

ContainerNode.model_rebuild()


# ============================================================================
# Diff Models
# ============================================================================


class DiffKind(str, Enum):
    """Classification of one path between a live object and a snapshot."""

    ADDED = "added"  # only in the snapshot: restore would introduce it
    REMOVED = "removed"  # only in the live object
    MODIFIED = "modified"


class DiffEntry(BaseModel):
    """One path-level difference.

    ``current`` is the live object's canonical value, ``backup`` the value
    materialized from the snapshot. Either is ``None`` when absent.
    """

    path: str
    kind: DiffKind
    current: str | None = None
    backup: str | None = None

    def describe(self) -> str:
        """Format as a single human-readable line."""
        if self.kind == DiffKind.ADDED:
            return f"+ {self.path} = {self.backup}"
        if self.kind == DiffKind.REMOVED:
            return f"- {self.path} = {self.current}"
        return f"~ {self.path}: {self.current} -> {self.backup}"
