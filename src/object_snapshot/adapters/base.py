"""Collaborator protocol definitions.

Defines the ``IdentityResolver`` and ``ObjectIntrospector`` Protocols the
backup/restore engine drives. The engine never parses object storage
itself: identity lookup and document (de)serialization are delegated to
these collaborators.

Usage:
    from object_snapshot.adapters.base import IdentityResolver, ObjectIntrospector

    def describe(resolver: IdentityResolver, introspector: ObjectIntrospector, handle) -> str:
        identity = resolver.identity_of(handle)
        return f"{resolver.label_of(handle)} ({identity}): {introspector.kind_of(handle)}"
"""

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from object_snapshot.schema.models import ContainerNode


class ObjectSnapshotError(Exception):
    """Base class for object-snapshot errors."""

    pass


class KindMismatchError(ObjectSnapshotError):
    """Raised when an object or document is not of the expected kind."""

    pass


class DocumentError(ObjectSnapshotError):
    """Raised when a document cannot be applied to an object.

    Overwrites are all-or-nothing: when this is raised the target object
    is left untouched.
    """

    pass


class IdentityResolver(Protocol):
    """Maps objects to stable identities and back.

    Identities are 32-character hex tokens that survive renames and moves
    of the underlying storage location.
    """

    def identity_of(self, handle: Any) -> str | None:
        """Return the stable identity of *handle*, or ``None`` if it has none."""
        ...

    def handle_of(self, identity: str) -> Any | None:
        """Return the live object for *identity*, or ``None`` if unresolved."""
        ...

    def label_of(self, handle: Any) -> str:
        """Return a human-readable name for *handle* (cosmetic only)."""
        ...


class ObjectIntrospector(Protocol):
    """Enumerates serializable fields and converts objects to/from documents."""

    def kind_of(self, handle: Any) -> str:
        """Return the declared kind (type name) of *handle*."""
        ...

    def to_document(self, handle: Any) -> str:
        """Serialize *handle* to pretty-printed document text.

        Serializing an unmodified object twice must yield identical text.
        """
        ...

    def overwrite_from_document(self, document: str, handle: Any) -> list[str]:
        """Apply *document* onto *handle*, all-or-nothing.

        Returns:
            Paths of document fields the object does not declare and that
            were therefore not applied.

        Raises:
            KindMismatchError: If the document describes another kind.
            DocumentError: If the document cannot be applied.
        """
        ...

    def field_tree(self, handle: Any) -> "ContainerNode":
        """Return the root container of the object's field tree."""
        ...

    def create_scratch(self, kind: str, source: Any = None) -> Any:
        """Create a throwaway object of *kind*.

        It holds the kind's default values, or a copy of the state of
        *source* when given, so that overwriting it from a document shows
        what the same overwrite would leave on *source*.
        """
        ...

    def dispose(self, handle: Any) -> None:
        """Release a scratch object created by ``create_scratch``."""
        ...

    def mark_modified(self, handle: Any) -> None:
        """Flag *handle* so its changes are persisted by ``save_modified``."""
        ...

    def save_modified(self) -> int:
        """Persist every modified object and return how many were written."""
        ...
