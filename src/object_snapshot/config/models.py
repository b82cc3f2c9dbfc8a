"""Pydantic models for object-snapshot configuration."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from object_snapshot.backup.renames import find_rename_conflicts


class SnapshotConfig(BaseModel):
    """Complete configuration from object-snapshot.toml."""

    library_root: str = "."
    snapshot_dir: str = "_snapshots"
    separator: str = "__"
    extension: str = ".json"
    use_alias: bool = True
    renames: dict[str, str] = Field(default_factory=dict)  # old key -> new key
    kinds: dict[str, dict[str, Any]] = Field(default_factory=dict)  # kind -> defaults

    @field_validator("separator")
    @classmethod
    def _separator_not_hex(cls, value: str) -> str:
        if not value or any(c in "0123456789abcdefABCDEF" for c in value):
            raise ValueError("separator must be non-empty and contain no hex digits")
        return value

    @field_validator("extension")
    @classmethod
    def _extension_has_dot(cls, value: str) -> str:
        if not value.startswith(".") or len(value) < 2:
            raise ValueError(f"extension must start with '.', got '{value}'")
        return value

    @property
    def rename_conflicts(self) -> list[str]:
        """Warnings for rename rules whose application order matters."""
        return find_rename_conflicts(self.renames)
