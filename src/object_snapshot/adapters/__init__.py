"""Collaborator adapters package.

Provides the ``IdentityResolver`` and ``ObjectIntrospector`` Protocols and
``ObjectLibrary``, a concrete implementation of both over a directory of
JSON object files with identity sidecars.

Usage:
    from object_snapshot.adapters import IdentityResolver, ObjectIntrospector
    from object_snapshot.adapters import ObjectLibrary
"""

from object_snapshot.adapters.base import (
    DocumentError,
    IdentityResolver,
    KindMismatchError,
    ObjectIntrospector,
    ObjectSnapshotError,
)
from object_snapshot.adapters.library import LibraryObject, ObjectLibrary

__all__ = [
    "IdentityResolver",
    "ObjectIntrospector",
    "ObjectSnapshotError",
    "KindMismatchError",
    "DocumentError",
    "ObjectLibrary",
    "LibraryObject",
]
