"""Snapshot store: one document file per identity in a directory.

The store owns the file-naming convention (see ``backup.codec``) and the
lookup index. Writing a snapshot replaces every earlier file for that
identity in the directory, so at most one snapshot per identity exists.
Files are never deleted otherwise.

Usage:
    from object_snapshot.backup.store import SnapshotStore

    store = SnapshotStore("_snapshots")
    path = store.write(identity, "Sword", document)

    index = store.read_all()
    for identity, document in index.documents.items():
        ...
    store.lookup(identity)  # same bytes as written
"""

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field

from object_snapshot.adapters.base import ObjectSnapshotError
from object_snapshot.backup.codec import (
    DEFAULT_EXTENSION,
    DEFAULT_SEPARATOR,
    decode_identity,
    encode_file_name,
    normalize_identity,
)

logger = logging.getLogger(__name__)


class SnapshotDirectoryError(ObjectSnapshotError):
    """Raised when the snapshot directory cannot be used for a batch."""

    pass


class SnapshotIndex(BaseModel):
    """Identity index of a snapshot directory."""

    directory: str
    documents: dict[str, str] = Field(default_factory=dict)  # identity -> text
    paths: dict[str, str] = Field(default_factory=dict)  # identity -> file path
    undecodable: list[str] = Field(default_factory=list)  # file names
    collisions: dict[str, list[str]] = Field(default_factory=dict)  # identity -> ignored files
    unreadable: dict[str, str] = Field(default_factory=dict)  # file name -> error

    @property
    def file_count(self) -> int:
        """Number of snapshot files seen, decodable or not."""
        return (
            len(self.paths)
            + len(self.undecodable)
            + len(self.unreadable)
            + sum(len(v) for v in self.collisions.values())
        )

    def warnings(self) -> list[str]:
        """Human-readable warnings for collisions."""
        return [
            f"Identity {identity} found in several files; using "
            f"{Path(self.paths.get(identity, '?')).name}, ignoring {', '.join(ignored)}"
            for identity, ignored in self.collisions.items()
        ]


class SnapshotStore:
    """Reads and writes snapshot documents under one directory.

    Args:
        directory: Snapshot directory (created on first write).
        separator: Text between alias and identity in file names.
        extension: Snapshot file extension including the dot.
    """

    def __init__(
        self,
        directory: str | Path,
        separator: str = DEFAULT_SEPARATOR,
        extension: str = DEFAULT_EXTENSION,
    ):
        self._directory = Path(directory)
        self._separator = separator
        self._extension = extension

    @property
    def directory(self) -> Path:
        return self._directory

    def ensure_writable(self) -> None:
        """Create the directory if needed and check it can be written.

        Raises:
            SnapshotDirectoryError: If the directory is unusable.
        """
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SnapshotDirectoryError(
                f"Cannot create snapshot directory {self._directory}: {e}"
            ) from e

        if not self._directory.is_dir() or not os.access(self._directory, os.W_OK):
            raise SnapshotDirectoryError(
                f"Snapshot directory is not writable: {self._directory}"
            )

    def list_files(self) -> list[Path]:
        """Snapshot files in the directory (top level only), sorted by name."""
        if not self._directory.is_dir():
            return []
        return sorted(
            p
            for p in self._directory.iterdir()
            if p.is_file() and p.name.endswith(self._extension)
        )

    def path_for(self, identity: str, alias: str | None = None) -> Path:
        """Path a snapshot for *identity* is written to."""
        name = encode_file_name(
            identity, alias, separator=self._separator, extension=self._extension
        )
        return self._directory / name

    def write(self, identity: str, alias: str | None, document: str) -> Path:
        """Persist *document* as the only snapshot of *identity*.

        Earlier files for the same identity (for example under an older
        alias) are removed after the new file is written.

        Returns:
            Path of the written file.

        Raises:
            ValueError: If *identity* is invalid.
            OSError: If the file cannot be written.
        """
        identity = normalize_identity(identity)
        path = self.path_for(identity, alias)

        self._directory.mkdir(parents=True, exist_ok=True)
        path.write_bytes(document.encode("utf-8"))

        for other in self.list_files():
            if other.name != path.name and decode_identity(other.name) == identity:
                logger.info(f"Replacing earlier snapshot {other.name} with {path.name}")
                other.unlink()

        return path

    def read_all(self) -> SnapshotIndex:
        """Index every snapshot file by the identity in its name.

        Files are visited in sorted name order; when several decode to the
        same identity the first one is used and the rest are recorded as
        collisions. Names without an identity are recorded as undecodable.
        """
        index = SnapshotIndex(directory=str(self._directory))

        for path in self.list_files():
            identity = decode_identity(path.name)
            if identity is None:
                logger.warning(f"Skipping snapshot without identity in its name: {path.name}")
                index.undecodable.append(path.name)
                continue

            if identity in index.documents:
                logger.warning(
                    f"Snapshot collision for {identity}: ignoring {path.name}"
                )
                index.collisions.setdefault(identity, []).append(path.name)
                continue

            try:
                index.documents[identity] = _read_text(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Cannot read snapshot {path.name}: {e}")
                index.unreadable[path.name] = str(e)
                continue
            index.paths[identity] = str(path)

        return index

    def lookup(self, identity: str) -> str | None:
        """Return the stored document for *identity*, or ``None``."""
        identity = normalize_identity(identity)
        for path in self.list_files():
            if decode_identity(path.name) == identity:
                return _read_text(path)
        return None


def _read_text(path: Path) -> str:
    return path.read_bytes().decode("utf-8")
