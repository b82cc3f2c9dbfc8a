"""Configuration loading from object-snapshot.toml."""

import tomllib
from pathlib import Path

from pydantic import ValidationError

from object_snapshot.config.models import SnapshotConfig

CONFIG_FILE_NAME = "object-snapshot.toml"


def load_config(config_path: Path | None = None) -> SnapshotConfig:
    """Load configuration from a TOML file.

    Relative ``library.root`` and ``snapshots.directory`` paths are resolved
    against the directory holding the config file.

    Args:
        config_path: Path to the TOML file
            (default: ``object-snapshot.toml`` in the current directory).

    Returns:
        SnapshotConfig with library, snapshot, rename, and kind settings.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config format is invalid.

    Example TOML::

        [library]
        root = "assets"

        [snapshots]
        directory = "_snapshots"
        separator = "__"
        alias = true

        [renames]
        damage = "baseDamage"

        [kinds.Weapon]
        name = ""
        baseDamage = 0
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILE_NAME

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config not found: {config_path}\n"
            f"Create {CONFIG_FILE_NAME} with [library] and [snapshots] sections."
        )

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    base_dir = config_path.resolve().parent
    library = data.get("library", {})
    snapshots = data.get("snapshots", {})

    settings: dict = {
        "library_root": str(base_dir / library.get("root", ".")),
        "snapshot_dir": str(base_dir / snapshots.get("directory", "_snapshots")),
        "renames": data.get("renames", {}),
        "kinds": data.get("kinds", {}),
    }
    if "separator" in snapshots:
        settings["separator"] = snapshots["separator"]
    if "extension" in snapshots:
        settings["extension"] = snapshots["extension"]
    if "alias" in snapshots:
        settings["use_alias"] = snapshots["alias"]

    try:
        return SnapshotConfig(**settings)
    except ValidationError as e:
        raise ValueError(f"Invalid config in {config_path}: {e}") from e
