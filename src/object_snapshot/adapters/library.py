"""File-backed object library implementing both collaborator Protocols.

Objects are pretty-printed JSON files under a library root. Each file holds
a root-level ``"$kind"`` field naming the object's kind, and a sidecar
``<file>.meta`` JSON file holds its stable identity::

    assets/weapons/Sword.json       {"$kind": "Weapon", "damage": 10, ...}
    assets/weapons/Sword.json.meta  {"identity": "0f3c...e1"}

Because identity lives in the sidecar, an object keeps it across renames
and moves as long as the sidecar travels with it.

Kinds are declared with default field values. Overwriting an object from a
document absorbs only the fields its kind declares; undeclared fields are
ignored and logged, nested records merge, and sequences and scalars are
replaced. A document that does not fit the kind is rejected before anything
is applied. Objects loaded from disk get the default of every declared field
their file lacks.

A nested object is a reference to another object when it has a ``kind`` key
and an ``identity`` or ``locator`` (plus optional ``index`` and ``name``).

Usage:
    from object_snapshot.adapters.library import ObjectLibrary

    library = ObjectLibrary("assets", kinds={"Weapon": {"damage": 0, "name": ""}})
    sword = library.create("weapons/Sword.json", "Weapon", {"damage": 10, "name": "Sword"})

    document = library.to_document(sword)
    library.overwrite_from_document(document, sword)
    library.mark_modified(sword)
    library.save_modified()
"""

import copy
import json
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from object_snapshot.adapters.base import DocumentError, KindMismatchError
from object_snapshot.schema.flattener import member_path
from object_snapshot.schema.models import (
    ContainerKind,
    ContainerNode,
    FieldKind,
    FieldNode,
    LeafNode,
    ObjectReference,
)

logger = logging.getLogger(__name__)

KIND_FIELD = "$kind"
DOCUMENT_INDENT = 4
META_SUFFIX = ".meta"

_REFERENCE_KEYS = {"identity", "index", "locator", "name", "kind"}
_VECTOR_KEYS = [("x", "y"), ("x", "y", "z"), ("x", "y", "z", "w")]
_COLOR_KEYS = [("r", "g", "b"), ("r", "g", "b", "a")]


@dataclass(eq=False)
class LibraryObject:
    """Handle to one object in an ``ObjectLibrary``.

    ``path`` is ``None`` for scratch objects, which live in memory only.
    """

    data: dict[str, Any]
    path: Path | None = None
    identity: str | None = None
    disposed: bool = field(default=False, repr=False)

    @property
    def kind(self) -> str:
        return self.data.get(KIND_FIELD, "")


def dump_document(data: dict[str, Any]) -> str:
    """Serialize object data the way the library writes it to disk."""
    return json.dumps(data, indent=DOCUMENT_INDENT, ensure_ascii=False)


class ObjectLibrary:
    """JSON object library: an ``IdentityResolver`` and ``ObjectIntrospector``.

    Args:
        root: Library root directory (scanned recursively for ``*.json``).
        kinds: Mapping of kind name to its default field values. Objects of
            an undeclared kind accept every document field on overwrite.
        exclude: Directories under *root* that are never scanned (for
            example a snapshot directory kept inside the library).
    """

    def __init__(
        self,
        root: str | Path,
        kinds: dict[str, dict[str, Any]] | None = None,
        exclude: Iterable[str | Path] = (),
    ):
        self._root = Path(root)
        self._kinds: dict[str, dict[str, Any]] = dict(kinds or {})
        self._exclude = [Path(p).resolve() for p in exclude]
        self._objects: dict[Path, LibraryObject] = {}
        self._by_identity: dict[str, LibraryObject] = {}
        self._modified: list[LibraryObject] = []
        self._scanned = False

    @property
    def root(self) -> Path:
        return self._root

    @property
    def kinds(self) -> dict[str, dict[str, Any]]:
        return self._kinds

    # ------------------------------------------------------------------
    # Loading and enumeration
    # ------------------------------------------------------------------

    def scan(self) -> list[LibraryObject]:
        """(Re)load every object under the library root, sorted by path."""
        self._objects.clear()
        self._by_identity.clear()
        self._scanned = True

        if not self._root.is_dir():
            return []

        for path in sorted(self._root.rglob("*.json")):
            if self._is_excluded(path):
                continue
            obj = self._load(path)
            if obj is not None:
                self._register(obj)

        return list(self._objects.values())

    def objects(self, paths: Iterable[str | Path] | None = None) -> list[LibraryObject]:
        """Return objects in the given files/folders, or the whole library.

        Args:
            paths: Files or folders (relative to the library root or
                absolute). ``None`` or empty selects every object.
        """
        self._ensure_scanned()
        selected = [self._resolve_path(p) for p in (paths or [])]
        if not selected:
            return list(self._objects.values())

        result: list[LibraryObject] = []
        for obj_path, obj in self._objects.items():
            for sel in selected:
                if obj_path == sel or sel in obj_path.parents:
                    result.append(obj)
                    break
        return result

    def get(self, path: str | Path) -> LibraryObject | None:
        """Return the object stored at *path*, if any."""
        self._ensure_scanned()
        return self._objects.get(self._resolve_path(path))

    def create(
        self,
        relative_path: str | Path,
        kind: str,
        fields: dict[str, Any] | None = None,
        identity: str | None = None,
    ) -> LibraryObject:
        """Create a new object file and its identity sidecar.

        Fields start from the kind's defaults and are updated with *fields*.
        """
        self._ensure_scanned()
        path = self._resolve_path(relative_path)
        data: dict[str, Any] = {KIND_FIELD: kind}
        data.update(copy.deepcopy(self._kinds.get(kind, {})))
        data.update(copy.deepcopy(fields or {}))

        obj = LibraryObject(
            data=data,
            path=path,
            identity=(identity or uuid.uuid4().hex).lower(),
        )
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_document(obj.data), encoding="utf-8")
        _meta_path(path).write_text(
            json.dumps({"identity": obj.identity}, indent=DOCUMENT_INDENT),
            encoding="utf-8",
        )
        self._register(obj)
        return obj

    def _ensure_scanned(self) -> None:
        if not self._scanned:
            self.scan()

    def _is_excluded(self, path: Path) -> bool:
        resolved = path.resolve()
        return any(resolved == ex or ex in resolved.parents for ex in self._exclude)

    def _resolve_path(self, path: str | Path) -> Path:
        p = Path(path)
        if not p.is_absolute():
            p = self._root / p
        return p.resolve()

    def _load(self, path: Path) -> LibraryObject | None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Skipping unreadable object file {path}: {e}")
            return None

        if not isinstance(data, dict) or KIND_FIELD not in data:
            logger.debug(f"Skipping {path}: no '{KIND_FIELD}' field")
            return None

        schema = self._kinds.get(data[KIND_FIELD])
        if schema is not None:
            _fill_defaults(data, schema)
        return LibraryObject(data=data, path=path.resolve(), identity=_read_identity(path))

    def _register(self, obj: LibraryObject) -> None:
        self._objects[obj.path] = obj
        if obj.identity is None:
            return
        if obj.identity in self._by_identity:
            logger.warning(
                f"Identity {obj.identity} shared by "
                f"{self._by_identity[obj.identity].path} and {obj.path}; "
                f"keeping the first"
            )
            return
        self._by_identity[obj.identity] = obj

    # ------------------------------------------------------------------
    # IdentityResolver
    # ------------------------------------------------------------------

    def identity_of(self, handle: LibraryObject) -> str | None:
        return handle.identity

    def handle_of(self, identity: str) -> LibraryObject | None:
        self._ensure_scanned()
        return self._by_identity.get(identity.lower())

    def label_of(self, handle: LibraryObject) -> str:
        if handle.path is None:
            return f"<scratch {handle.kind}>"
        return handle.path.stem

    # ------------------------------------------------------------------
    # ObjectIntrospector
    # ------------------------------------------------------------------

    def kind_of(self, handle: LibraryObject) -> str:
        return handle.kind

    def to_document(self, handle: LibraryObject) -> str:
        return dump_document(handle.data)

    def overwrite_from_document(self, document: str, handle: LibraryObject) -> list[str]:
        """Apply *document* onto *handle*.

        The merge runs on a copy and replaces the object's data only once
        every field has been validated.

        Returns:
            Paths of document fields the kind does not declare (not applied).

        Raises:
            DocumentError: Unparseable document or a field of the wrong type.
            KindMismatchError: Document ``$kind`` differs from the object's.
        """
        try:
            source = json.loads(document)
        except json.JSONDecodeError as e:
            raise DocumentError(f"Invalid document: {e}") from e

        if not isinstance(source, dict):
            raise DocumentError("Document root must be an object")

        doc_kind = source.get(KIND_FIELD)
        if doc_kind is not None and doc_kind != handle.kind:
            raise KindMismatchError(
                f"Document kind '{doc_kind}' does not match object kind '{handle.kind}'"
            )

        schema = self._kinds.get(handle.kind)
        merged = copy.deepcopy(handle.data)
        ignored: list[str] = []
        _merge(merged, source, schema, "", ignored)

        if ignored:
            logger.warning(
                f"Ignored field(s) not declared by kind '{handle.kind}' "
                f"on {self.label_of(handle)}: {', '.join(ignored)}"
            )

        handle.data = merged
        return ignored

    def field_tree(self, handle: LibraryObject) -> ContainerNode:
        return ContainerNode(
            name="",
            kind=ContainerKind.RECORD,
            children=[self._node(name, value) for name, value in handle.data.items()],
        )

    def create_scratch(self, kind: str, source: LibraryObject | None = None) -> LibraryObject:
        if source is not None:
            data = copy.deepcopy(source.data)
            data[KIND_FIELD] = kind
            return LibraryObject(data=data)
        data = {KIND_FIELD: kind}
        data.update(copy.deepcopy(self._kinds.get(kind, {})))
        return LibraryObject(data=data)

    def dispose(self, handle: LibraryObject) -> None:
        handle.disposed = True
        handle.data = {}

    def mark_modified(self, handle: LibraryObject) -> None:
        if handle.path is None or handle in self._modified:
            return
        self._modified.append(handle)

    def save_modified(self) -> int:
        count = 0
        while self._modified:
            obj = self._modified.pop(0)
            obj.path.write_text(dump_document(obj.data), encoding="utf-8")
            count += 1
        return count

    # ------------------------------------------------------------------
    # Field tree construction
    # ------------------------------------------------------------------

    def _node(self, name: str, value: Any) -> FieldNode:
        if isinstance(value, bool):
            return LeafNode(name=name, kind=FieldKind.BOOLEAN, value=value)
        if isinstance(value, int):
            return LeafNode(name=name, kind=FieldKind.INTEGER, value=value)
        if isinstance(value, float):
            return LeafNode(name=name, kind=FieldKind.FLOAT, value=value)
        if isinstance(value, str):
            return LeafNode(name=name, kind=FieldKind.TEXT, value=value)
        if isinstance(value, list):
            return ContainerNode(
                name=name,
                kind=ContainerKind.SEQUENCE,
                children=[self._node(str(i), item) for i, item in enumerate(value)],
            )
        if isinstance(value, dict):
            if _is_reference(value):
                return LeafNode(
                    name=name, kind=FieldKind.REFERENCE, value=self._reference(value)
                )
            if _matches_keys(value, _VECTOR_KEYS):
                return LeafNode(name=name, kind=FieldKind.VECTOR, value=value)
            if _matches_keys(value, _COLOR_KEYS):
                return LeafNode(name=name, kind=FieldKind.COLOR, value=value)
            kind = ContainerKind.PAYLOAD if KIND_FIELD in value else ContainerKind.RECORD
            return ContainerNode(
                name=name,
                kind=kind,
                children=[self._node(k, v) for k, v in value.items()],
            )
        return LeafNode(name=name, kind=FieldKind.UNKNOWN, value=value)

    def _reference(self, value: dict[str, Any]) -> ObjectReference:
        ref = ObjectReference(
            identity=value.get("identity"),
            index=value.get("index") or 0,
            locator=value.get("locator"),
            name=value.get("name"),
        )
        if not ref.identity and ref.locator:
            target = self.get(ref.locator)
            if target is not None and target.identity:
                ref.identity = target.identity
        return ref


def _meta_path(path: Path) -> Path:
    return path.with_name(path.name + META_SUFFIX)


def _read_identity(path: Path) -> str | None:
    meta = _meta_path(path)
    if not meta.exists():
        return None
    try:
        identity = json.loads(meta.read_text(encoding="utf-8")).get("identity")
    except (OSError, json.JSONDecodeError, AttributeError) as e:
        logger.warning(f"Unreadable identity sidecar {meta}: {e}")
        return None
    return identity.lower() if isinstance(identity, str) and identity else None


def _is_reference(value: dict[str, Any]) -> bool:
    keys = set(value)
    return "kind" in keys and keys <= _REFERENCE_KEYS and bool(
        keys & {"identity", "locator"}
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _matches_keys(value: dict[str, Any], layouts: list[tuple[str, ...]]) -> bool:
    keys = tuple(value)
    return any(
        set(keys) == set(layout) and all(_is_number(v) for v in value.values())
        for layout in layouts
    )


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _coerce(declared: Any, value: Any, path: str) -> Any:
    """Check *value* against the declared default and return what to store."""
    if declared is None or value is None:
        return value

    expected, actual = _json_type(declared), _json_type(value)
    if expected != actual:
        raise DocumentError(f"Field '{path}' expects {expected}, got {actual}")

    if isinstance(declared, float) and isinstance(value, int):
        return float(value)
    if isinstance(declared, int) and isinstance(value, float):
        if not value.is_integer():
            raise DocumentError(f"Field '{path}' expects an integer, got {value!r}")
        return int(value)
    return value


def _is_record(declared: Any) -> bool:
    """A declared default that merges field by field (not a leaf or payload)."""
    return (
        isinstance(declared, dict)
        and not _is_reference(declared)
        and KIND_FIELD not in declared
        and not _matches_keys(declared, _VECTOR_KEYS + _COLOR_KEYS)
    )


def _fill_defaults(data: dict[str, Any], schema: dict[str, Any]) -> None:
    """Add declared fields missing from *data*, recursing into records.

    Objects loaded from files written before a field was declared get that
    field's default, as deserializing into the kind would.
    """
    for key, declared in schema.items():
        if key not in data:
            data[key] = copy.deepcopy(declared)
        elif _is_record(declared) and isinstance(data[key], dict):
            _fill_defaults(data[key], declared)


def _merge(
    target: dict[str, Any],
    source: dict[str, Any],
    schema: dict[str, Any] | None,
    prefix: str,
    ignored: list[str],
) -> None:
    """Merge *source* into *target* in place, validated against *schema*.

    A ``None`` schema accepts every field as-is.
    """
    for key, value in source.items():
        path = member_path(prefix, key)
        if not prefix and key == KIND_FIELD:
            continue

        if schema is None:
            target[key] = copy.deepcopy(value)
            continue

        if key not in schema:
            ignored.append(path)
            continue

        declared = schema[key]
        value = _coerce(declared, value, path)

        if _is_record(declared) and isinstance(value, dict):
            nested = target.get(key)
            if not isinstance(nested, dict):
                nested = copy.deepcopy(declared)
                target[key] = nested
            _merge(nested, value, declared, path, ignored)
        else:
            target[key] = copy.deepcopy(value)
