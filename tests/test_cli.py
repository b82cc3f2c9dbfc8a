"""Tests for the object-snapshot CLI.

Verifies argument parsing (``main`` with patched ``sys.argv``), the
``old=new`` rename parser, config/override resolution, and each command
run end to end against a temporary library.
"""

import argparse
import json
import textwrap
from pathlib import Path
from unittest.mock import patch

import pytest

from object_snapshot.adapters.library import ObjectLibrary
from object_snapshot.cli import (
    _load_settings,
    _parse_rename,
    cmd_backup,
    cmd_check_renames,
    cmd_diff,
    cmd_inspect,
    cmd_restore,
    main,
)

CLI_INIT_PY = Path(__file__).parent.parent / "src" / "object_snapshot" / "cli" / "__init__.py"

SWORD_ID = "0123456789abcdef0123456789abcdef"
KINDS = {"Weapon": {"name": "", "damage": 0}}


def _args(**overrides) -> argparse.Namespace:
    values = dict(
        config=None,
        library=None,
        dir=None,
        verbose=False,
        paths=[],
        kind=None,
        no_alias=False,
        rename=None,
        identity=None,
        yes=True,
        no_save=False,
        path=None,
    )
    values.update(overrides)
    return argparse.Namespace(**values)


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Config file, a library with one Sword, and cwd set to the workspace."""
    (tmp_path / "object-snapshot.toml").write_text(textwrap.dedent("""\
        [library]
        root = "assets"

        [snapshots]
        directory = "_snapshots"

        [kinds.Weapon]
        name = ""
        damage = 0
    """))
    library = ObjectLibrary(tmp_path / "assets", kinds=KINDS)
    library.create(
        "weapons/Sword.json", "Weapon", {"name": "Sword", "damage": 10}, identity=SWORD_ID
    )
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _sword_file(workspace: Path) -> Path:
    return workspace / "assets" / "weapons" / "Sword.json"


def _set_damage(workspace: Path, damage: int) -> None:
    path = _sword_file(workspace)
    data = json.loads(path.read_text())
    data["damage"] = damage
    path.write_text(json.dumps(data))


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


class TestParseRename:
    """_parse_rename() argument type."""

    def test_valid(self):
        """old=new splits into a pair."""
        assert _parse_rename("damage=baseDamage") == ("damage", "baseDamage")

    def test_whitespace_stripped(self):
        """Spaces around either side are ignored."""
        assert _parse_rename(" hp = health ") == ("hp", "health")

    @pytest.mark.parametrize("value", ["damage", "=x", "x=", ""])
    def test_invalid(self, value):
        """Missing '=' or an empty side is rejected."""
        with pytest.raises(argparse.ArgumentTypeError):
            _parse_rename(value)


class TestLoadSettings:
    """_load_settings() config discovery and overrides."""

    def test_default_config_file(self, workspace):
        """object-snapshot.toml in the cwd is picked up."""
        config = _load_settings(_args())
        assert config.library_root == str(workspace.resolve() / "assets")
        assert config.kinds == KINDS

    def test_no_config_file(self, tmp_path, monkeypatch):
        """Without a config file the cwd is the library root."""
        monkeypatch.chdir(tmp_path)
        config = _load_settings(_args())
        assert Path(config.library_root).resolve() == tmp_path.resolve()

    def test_explicit_missing_config(self, tmp_path, monkeypatch):
        """An explicit --config that does not exist is an error."""
        monkeypatch.chdir(tmp_path)
        with pytest.raises(FileNotFoundError):
            _load_settings(_args(config=str(tmp_path / "missing.toml")))

    def test_overrides(self, workspace):
        """--library, --dir and --rename override the file."""
        config = _load_settings(
            _args(library="elsewhere", dir="snaps", rename=[("damage", "baseDamage")])
        )
        assert config.library_root == str((workspace / "elsewhere").resolve())
        assert config.snapshot_dir == str((workspace / "snaps").resolve())
        assert config.renames == {"damage": "baseDamage"}


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


class TestMainParsing:
    """main() dispatches parsed arguments to the command handlers."""

    def test_prog_name(self):
        """The parser is named object-snapshot."""
        assert 'prog="object-snapshot"' in CLI_INIT_PY.read_text()

    def test_dispatch_restore(self):
        """Repeated --rename and --identity options are collected."""
        argv = [
            "object-snapshot", "--dir", "snaps", "restore",
            "-r", "a=b", "-r", "c=d", "-i", SWORD_ID, "--yes",
        ]
        with patch("sys.argv", argv):
            with patch("object_snapshot.cli.cmd_restore", return_value=0) as mock_restore:
                assert main() == 0

        args = mock_restore.call_args[0][0]
        assert args.dir == "snaps"
        assert args.rename == [("a", "b"), ("c", "d")]
        assert args.identity == [SWORD_ID]
        assert args.yes is True

    def test_dispatch_backup_paths(self):
        """backup takes optional positional paths."""
        with patch("sys.argv", ["object-snapshot", "backup", "weapons", "armor", "--no-alias"]):
            with patch("object_snapshot.cli.cmd_backup", return_value=0) as mock_backup:
                main()

        args = mock_backup.call_args[0][0]
        assert args.paths == ["weapons", "armor"]
        assert args.no_alias is True

    def test_bad_rename_is_usage_error(self):
        """A malformed --rename exits with argparse's usage code."""
        with patch("sys.argv", ["object-snapshot", "diff", "--rename", "nope"]):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 2

    def test_command_required(self):
        """Running without a command is a usage error."""
        with patch("sys.argv", ["object-snapshot"]):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 2

    def test_config_errors_return_1(self, tmp_path):
        """Config errors are printed and exit with 1."""
        argv = ["object-snapshot", "--config", str(tmp_path / "missing.toml"), "diff"]
        with patch("sys.argv", argv):
            assert main() == 1


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


class TestCommands:
    """Commands run against a real library in a temporary workspace."""

    def test_backup(self, workspace):
        """backup writes the aliased snapshot file."""
        assert cmd_backup(_args()) == 0
        assert (workspace / "_snapshots" / f"Sword__{SWORD_ID}.json").exists()

    def test_backup_no_alias(self, workspace):
        """--no-alias writes identity-only names."""
        assert cmd_backup(_args(no_alias=True)) == 0
        assert (workspace / "_snapshots" / f"{SWORD_ID}.json").exists()

    def test_backup_empty_scope(self, workspace, capsys):
        """A selection with no objects is not an error."""
        assert cmd_backup(_args(paths=["nowhere"])) == 0
        assert "No objects found" in capsys.readouterr().out

    def test_restore(self, workspace):
        """restore --yes puts the snapshot values back on disk."""
        cmd_backup(_args())
        _set_damage(workspace, 1)

        assert cmd_restore(_args(yes=True)) == 0
        assert json.loads(_sword_file(workspace).read_text())["damage"] == 10

    def test_restore_declined(self, workspace, capsys):
        """Answering no at the prompt leaves objects untouched."""
        cmd_backup(_args())
        _set_damage(workspace, 1)

        with patch("builtins.input", return_value="n"):
            assert cmd_restore(_args(yes=False)) == 0

        assert json.loads(_sword_file(workspace).read_text())["damage"] == 1
        assert "Cancelled" in capsys.readouterr().out

    def test_restore_confirmed(self, workspace):
        """Answering yes at the prompt restores."""
        cmd_backup(_args())
        _set_damage(workspace, 1)

        with patch("builtins.input", return_value="y"):
            assert cmd_restore(_args(yes=False)) == 0

        assert json.loads(_sword_file(workspace).read_text())["damage"] == 10

    def test_restore_no_save(self, workspace):
        """--no-save leaves object files unchanged."""
        cmd_backup(_args())
        _set_damage(workspace, 1)

        assert cmd_restore(_args(no_save=True)) == 0
        assert json.loads(_sword_file(workspace).read_text())["damage"] == 1

    def test_restore_without_snapshots(self, workspace):
        """An empty snapshot directory fails with exit code 1."""
        (workspace / "_snapshots").mkdir()
        assert cmd_restore(_args()) == 1

    def test_restore_failed_item(self, workspace):
        """A snapshot that cannot be applied makes the run fail."""
        snapshots = workspace / "_snapshots"
        snapshots.mkdir()
        (snapshots / f"Sword__{SWORD_ID}.json").write_text('{"damage": "lots"}')

        assert cmd_restore(_args()) == 1

    def test_diff(self, workspace, capsys):
        """diff prints changed paths and leaves the object alone."""
        cmd_backup(_args())
        _set_damage(workspace, 1)
        capsys.readouterr()

        assert cmd_diff(_args()) == 0

        out = capsys.readouterr().out
        assert "damage" in out
        assert "modified" in out
        assert json.loads(_sword_file(workspace).read_text())["damage"] == 1

    def test_diff_missing_directory(self, workspace):
        """diff without a snapshot directory exits with 1."""
        assert cmd_diff(_args()) == 1

    def test_inspect(self, workspace, capsys):
        """inspect prints the flattened property map and identity."""
        assert cmd_inspect(_args(path="weapons/Sword.json")) == 0
        out = capsys.readouterr().out
        assert "damage" in out
        assert SWORD_ID in out

    def test_inspect_missing(self, workspace):
        """inspect of an unknown file exits with 1."""
        assert cmd_inspect(_args(path="weapons/Nope.json")) == 1

    def test_check_renames_clean(self, workspace):
        """A confluent table exits with 0."""
        assert cmd_check_renames(_args(rename=[("damage", "baseDamage")])) == 0

    def test_check_renames_conflict(self, workspace, capsys):
        """A chained table exits with 1 and is reported."""
        assert cmd_check_renames(_args(rename=[("a", "b"), ("b", "c")])) == 1
        assert "targets the source" in capsys.readouterr().out

    def test_check_renames_empty(self, workspace):
        """No renames at all is fine."""
        assert cmd_check_renames(_args()) == 0
