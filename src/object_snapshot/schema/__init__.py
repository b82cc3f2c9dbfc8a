"""Field trees, canonical flattening, and property map diffing.

Provides the field-tree node models (``LeafNode``, ``ContainerNode``),
the canonical flattener (``flatten``, ``flatten_object``), and the
set-based diff engine (``diff_property_maps``).

Usage:
    from object_snapshot.schema import flatten, diff_property_maps
    from object_snapshot.schema import DiffEntry, DiffKind
"""

from object_snapshot.schema.comparator import diff_property_maps, format_diff
from object_snapshot.schema.flattener import (
    BOOKKEEPING_FIELD,
    UNRESOLVED,
    canonical_value,
    flatten,
    flatten_object,
    member_path,
)
from object_snapshot.schema.models import (
    ContainerKind,
    ContainerNode,
    DiffEntry,
    DiffKind,
    FieldKind,
    FieldNode,
    LeafNode,
    ObjectReference,
)

__all__ = [
    "diff_property_maps",
    "format_diff",
    "flatten",
    "flatten_object",
    "member_path",
    "canonical_value",
    "BOOKKEEPING_FIELD",
    "UNRESOLVED",
    "ContainerKind",
    "ContainerNode",
    "DiffEntry",
    "DiffKind",
    "FieldKind",
    "FieldNode",
    "LeafNode",
    "ObjectReference",
]
