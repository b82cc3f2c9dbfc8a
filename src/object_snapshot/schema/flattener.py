"""Canonical, path-addressed flattening of field trees.

Walks a ``ContainerNode`` tree depth-first and produces an ordered mapping
from structural path to a canonical string per leaf. Containers never get a
value of their own; their children are emitted individually. Leaves of an
unknown kind are skipped, so they never take part in a comparison.

Pure logic -- the tree comes from an ``ObjectIntrospector``.

Usage:
    from object_snapshot.schema.flattener import flatten, flatten_object

    property_map = flatten(introspector.field_tree(handle))
    # {"name": "Sword", "stats.damage": "10", "tags[0]": "melee", ...}

    property_map = flatten_object(introspector, handle)
"""

import json
import math
from typing import TYPE_CHECKING, Any, Iterable

from object_snapshot.schema.models import (
    ContainerKind,
    ContainerNode,
    FieldKind,
    LeafNode,
    ObjectReference,
)

if TYPE_CHECKING:
    from object_snapshot.adapters.base import ObjectIntrospector

# Type-identity field of every document; never compared.
BOOKKEEPING_FIELD = "$kind"

UNRESOLVED = "<unresolved>"

# Member names containing any of these are written as ["quoted"] segments
PATH_SYNTAX = frozenset('.[]"')

VECTOR_COMPONENTS = ("x", "y", "z", "w")
COLOR_CHANNELS = ("r", "g", "b", "a")


def flatten(
    root: ContainerNode,
    skip: Iterable[str] = (BOOKKEEPING_FIELD,),
) -> dict[str, str]:
    """Flatten a field tree into ``{path: canonical value}``.

    Args:
        root: Root container of the object's field tree.
        skip: Paths excluded from the result (the bookkeeping field by default).

    Returns:
        Dict ordered by depth-first traversal. Sequence elements carry their
        index (``items[2].name``), record members are dotted (``stats.damage``).
        A member name that is empty or contains ``.``, ``[``, ``]`` or ``"``
        becomes a JSON-quoted segment (``stats["a.b"]``), so distinct fields
        never share a path.

    Example:
        >>> root = ContainerNode(name="", children=[
        ...     LeafNode(name="damage", kind=FieldKind.INTEGER, value=10),
        ... ])
        >>> flatten(root)
        {'damage': '10'}
    """
    skipped = set(skip)
    result: dict[str, str] = {}
    for child_path, child in _child_paths("", root):
        _walk(child_path, child, skipped, result)
    return result


def flatten_object(introspector: "ObjectIntrospector", handle: Any) -> dict[str, str]:
    """Flatten a live object's field tree via its introspector."""
    return flatten(introspector.field_tree(handle))


def _child_paths(prefix: str, node: ContainerNode):
    for i, child in enumerate(node.children):
        if node.kind == ContainerKind.SEQUENCE:
            yield f"{prefix}[{i}]", child
        else:
            yield member_path(prefix, child.name), child


def member_path(prefix: str, name: str) -> str:
    """Path of record member *name* under *prefix*.

    >>> member_path("stats", "damage")
    'stats.damage'
    >>> member_path("stats", "a.b")
    'stats["a.b"]'
    """
    if not name or PATH_SYNTAX.intersection(name):
        return f"{prefix}[{json.dumps(name)}]"
    return f"{prefix}.{name}" if prefix else name


def _walk(path: str, node, skipped: set[str], result: dict[str, str]) -> None:
    if path in skipped:
        return
    if isinstance(node, ContainerNode):
        for child_path, child in _child_paths(path, node):
            _walk(child_path, child, skipped, result)
        return

    value = canonical_value(node)
    if value is not None:
        result[path] = value


def canonical_value(leaf: LeafNode) -> str | None:
    """Canonical comparable string for a leaf, or ``None`` if not comparable.

    Floats use ``repr`` (shortest round-trip form) so values that survive a
    serialize/parse cycle never produce spurious differences.
    """
    kind = leaf.kind
    value = leaf.value

    if kind == FieldKind.UNKNOWN or (value is None and kind != FieldKind.REFERENCE):
        return None

    try:
        if kind == FieldKind.BOOLEAN:
            return "true" if value else "false"
        if kind == FieldKind.INTEGER:
            return str(int(value))
        if kind == FieldKind.FLOAT:
            return format_float(value)
        if kind == FieldKind.TEXT:
            return str(value)
        if kind == FieldKind.VECTOR:
            return _join_components(value, VECTOR_COMPONENTS)
        if kind == FieldKind.COLOR:
            return _join_components(value, COLOR_CHANNELS)
        if kind == FieldKind.REFERENCE:
            return canonical_reference(value)
    except (TypeError, ValueError):
        # Value does not fit its declared kind
        return None

    return None


def format_float(value: Any) -> str:
    """Round-trip-safe text for a float (``1.0``, ``0.1``, ``nan``, ``inf``)."""
    number = float(value)
    if math.isnan(number):
        return "nan"
    return repr(number)


def canonical_reference(value: Any) -> str:
    """Canonical string for a reference leaf.

    Fallback chain, in priority order: identity (with sub-index), locator,
    display name, ``<unresolved>``.
    """
    if value is None:
        return UNRESOLVED
    if isinstance(value, dict):
        value = ObjectReference(**value)

    if value.identity:
        return f"{value.identity.lower()}:{value.index}"
    if value.locator:
        return f"locator:{value.locator}"
    if value.name:
        return f"name:{value.name}"
    return UNRESOLVED


def _join_components(value: Any, names: tuple[str, ...]) -> str:
    if isinstance(value, dict):
        components = [value[n] for n in names if n in value]
    else:
        components = list(value)
    if not 2 <= len(components) <= 4:
        raise ValueError(f"Expected 2-4 components, got {len(components)}")
    return ",".join(format_float(c) for c in components)
