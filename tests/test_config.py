"""Tests for the configuration store."""

import json
import logging
import stat
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from notesync.config import (
    Config,
    get_config_dir,
    get_config_path,
    mask_token,
    prompt_with_default,
)
from notesync.errors import ConfigPathUnresolvable, IoFailure


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """A config file location whose parent directory does not exist yet."""
    return tmp_path / "conf" / "config.json"


@pytest.fixture
def stored(config_path: Path) -> Config:
    """Writes a fully populated configuration to `config_path`."""
    conf = Config("ghp_secret1234", "user/notes", "/home/user/notes")
    conf.save(config_path)
    return conf


def test_config_defaults() -> None:
    """Verifies that every field defaults to an empty string."""
    conf = Config()
    assert conf.to_dict() == {
        "github_token": "",
        "github_repo": "",
        "directory_path": "",
    }
    assert conf.missing_fields() == ["github_token", "github_repo", "directory_path"]


def test_missing_fields_ignores_whitespace_only_values() -> None:
    """Verifies that blank values still count as missing."""
    conf = Config("token", "  ", "/notes")
    assert conf.missing_fields() == ["github_repo"]


def test_load_missing_file_returns_none(config_path: Path) -> None:
    """Verifies that a missing file yields None and creates nothing."""
    assert Config.load(config_path) is None
    assert not config_path.parent.exists()


def test_save_and_load(config_path: Path, stored: Config) -> None:
    """Verifies that a saved configuration loads back unchanged."""
    assert Config.load(config_path) == stored


def test_save_is_pretty_json_without_leftovers(config_path: Path) -> None:
    """Verifies the on-disk format and that no temporary file remains.

    Args:
        config_path (Path): Target configuration path.
    """
    saved_to = Config("t", "a/b", "/d").save(config_path)

    assert saved_to == config_path
    text = config_path.read_text()
    assert text.endswith("\n")
    assert '\n  "github_repo": "a/b"' in text
    assert json.loads(text) == {
        "github_token": "t",
        "github_repo": "a/b",
        "directory_path": "/d",
    }
    assert not (config_path.parent / "config.json.tmp").exists()


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
def test_save_restricts_permissions(config_path: Path) -> None:
    """Verifies that the token file is only readable by its owner."""
    Config("t", "a/b", "/d").save(config_path)
    assert stat.S_IMODE(config_path.stat().st_mode) == 0o600


def test_save_failure_raises_and_keeps_previous(
    config_path: Path, stored: Config, mocker: MagicMock
) -> None:
    """Verifies that a failed rename leaves the old file intact and no temp file.

    Args:
        config_path (Path): Target configuration path.
        stored (Config): The configuration already on disk.
        mocker (MagicMock): Pytest fixture for mocking.
    """
    mocker.patch("notesync.config.os.replace", side_effect=OSError("disk full"))

    with pytest.raises(IoFailure, match="disk full"):
        Config("other", "x/y", "/z").save(config_path)

    assert Config.load(config_path) == stored
    assert not (config_path.parent / "config.json.tmp").exists()


def test_load_corrupt_file_backs_up_and_returns_none(
    config_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that invalid JSON is diagnosed, backed up and treated as absent.

    Args:
        config_path (Path): Target configuration path.
        caplog (pytest.LogCaptureFixture): Pytest fixture for capturing logs.
    """
    caplog.set_level(logging.WARNING)
    config_path.parent.mkdir(parents=True)
    config_path.write_text('{"github_token": "abc",')

    assert Config.load(config_path) is None

    backup = config_path.parent / "config.json.bak"
    assert backup.exists()
    assert backup.read_text() == '{"github_token": "abc",'
    assert f"Config syntax error in {config_path}" in caplog.text


@pytest.mark.parametrize(
    "content",
    [
        "[]",
        '{"github_token": "a", "github_repo": "b"}',
        '{"github_token": 1, "github_repo": "b", "directory_path": "c"}',
        b'{"github_token": "\xff", "github_repo": "b", "directory_path": "c"}',
    ],
)
def test_load_schema_violations_are_corruption(
    config_path: Path, content: str | bytes
) -> None:
    """Verifies that structurally wrong documents are handled like bad JSON."""
    config_path.parent.mkdir(parents=True)
    if isinstance(content, bytes):
        config_path.write_bytes(content)
    else:
        config_path.write_text(content)

    assert Config.load(config_path) is None
    assert (config_path.parent / "config.json.bak").exists()


def test_load_deeply_nested_json_is_corruption(
    config_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that nesting beyond the decoder's recursion limit is not fatal."""
    caplog.set_level(logging.ERROR)
    config_path.parent.mkdir(parents=True)
    config_path.write_text("[" * 100000 + "]" * 100000)

    assert Config.load(config_path) is None
    assert (config_path.parent / "config.json.bak").exists()
    assert "Config syntax error" in caplog.text


def test_load_backup_failure_is_only_logged(
    config_path: Path, caplog: pytest.LogCaptureFixture, mocker: MagicMock
) -> None:
    """Verifies that a failing backup copy does not escape `load`."""
    caplog.set_level(logging.WARNING)
    config_path.parent.mkdir(parents=True)
    config_path.write_text("not json")
    mocker.patch("notesync.config.shutil.copy2", side_effect=OSError("read-only"))

    assert Config.load(config_path) is None
    assert "Could not back up corrupt config" in caplog.text


def test_load_unreadable_file_returns_none(
    config_path: Path,
    stored: Config,
    caplog: pytest.LogCaptureFixture,
    mocker: MagicMock,
) -> None:
    """Verifies that read errors degrade to 'no configuration'."""
    caplog.set_level(logging.ERROR)
    mocker.patch.object(Path, "read_bytes", side_effect=PermissionError("denied"))

    assert Config.load(config_path) is None
    assert "Could not read config" in caplog.text
    assert not (config_path.parent / "config.json.bak").exists()


def test_load_ignores_unknown_keys(
    config_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that extra keys are warned about but do not invalidate the file."""
    caplog.set_level(logging.WARNING)
    config_path.parent.mkdir(parents=True)
    config_path.write_text(
        json.dumps(
            {
                "github_token": "t",
                "github_repo": "a/b",
                "directory_path": "/d",
                "branch": "dev",
            }
        )
    )

    assert Config.load(config_path) == Config("t", "a/b", "/d")
    assert "Unknown config keys: branch" in caplog.text


def test_setup_empty_answers_keep_existing(
    config_path: Path, stored: Config, mocker: MagicMock
) -> None:
    """Verifies that pressing Enter for every prompt changes nothing.

    Args:
        config_path (Path): Target configuration path.
        stored (Config): The configuration already on disk.
        mocker (MagicMock): Pytest fixture for mocking.
    """
    mocker.patch("notesync.config.Prompt.ask", side_effect=["", "", ""])

    conf = Config.setup(config_path)

    assert conf == stored
    assert Config.load(config_path) == stored


def test_setup_replaces_only_answered_field(
    config_path: Path, stored: Config, mocker: MagicMock
) -> None:
    """Verifies that a single non-empty answer only changes its own field."""
    mocker.patch("notesync.config.Prompt.ask", side_effect=["", "  user/journal ", ""])

    conf = Config.setup(config_path)

    assert conf.github_repo == "user/journal"
    assert conf.github_token == stored.github_token
    assert conf.directory_path == stored.directory_path
    assert Config.load(config_path) == conf


def test_setup_from_scratch(config_path: Path, mocker: MagicMock) -> None:
    """Verifies that setup without an existing file saves the entered values."""
    mocker.patch(
        "notesync.config.Prompt.ask", side_effect=["tok", "user/notes", "/notes"]
    )

    conf = Config.setup(config_path)

    assert conf == Config("tok", "user/notes", "/notes")
    assert config_path.exists()


def test_setup_masks_existing_token_in_prompt(
    config_path: Path, stored: Config, mocker: MagicMock
) -> None:
    """Verifies that the stored token is never echoed in full."""
    mock_ask = mocker.patch("notesync.config.Prompt.ask", side_effect=["", "", ""])

    Config.setup(config_path)

    token_prompt = mock_ask.call_args_list[0].args[0]
    repo_prompt = mock_ask.call_args_list[1].args[0]
    assert "ghp_secret1234" not in token_prompt
    assert "1234" in token_prompt
    assert "user/notes" in repo_prompt


def test_prompt_with_default(mocker: MagicMock) -> None:
    """Verifies the keep-on-empty semantics of a single prompt."""
    mock_ask = mocker.patch("notesync.config.Prompt.ask")

    mock_ask.return_value = ""
    assert prompt_with_default("Question", "old") == "old"

    mock_ask.return_value = "   "
    assert prompt_with_default("Question", "old") == "old"

    mock_ask.return_value = " new "
    assert prompt_with_default("Question", "old") == "new"

    mock_ask.return_value = ""
    assert prompt_with_default("Question", "") == ""


def test_mask_token() -> None:
    """Verifies that secrets are reduced to their last four characters."""
    assert mask_token("") == ""
    assert mask_token("abc") == "***"
    assert mask_token("ghp_abcdefgh1234") == "********1234"


def test_config_dir_linux_prefers_xdg(
    tmp_path: Path, mocker: MagicMock, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Verifies XDG_CONFIG_HOME handling and the fixed file name."""
    mocker.patch("sys.platform", "linux")
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

    assert get_config_dir() == tmp_path / "notesync"
    assert get_config_path() == tmp_path / "notesync" / "config.json"


def test_config_dir_linux_falls_back_to_home(
    tmp_path: Path, mocker: MagicMock, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Verifies the ~/.config fallback when XDG_CONFIG_HOME is unset."""
    mocker.patch("sys.platform", "linux")
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    mocker.patch.object(Path, "home", return_value=tmp_path)

    assert get_config_dir() == tmp_path / ".config" / "notesync"


def test_config_dir_macos(tmp_path: Path, mocker: MagicMock) -> None:
    """Verifies the macOS Application Support location."""
    mocker.patch("sys.platform", "darwin")
    mocker.patch.object(Path, "home", return_value=tmp_path)

    support = tmp_path / "Library" / "Application Support"
    assert get_config_dir() == support / "com.notesync.notesync"


def test_config_dir_windows(
    tmp_path: Path, mocker: MagicMock, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Verifies the roaming AppData location used on Windows."""
    mocker.patch("sys.platform", "win32")
    monkeypatch.setenv("APPDATA", str(tmp_path))

    assert get_config_dir() == tmp_path / "notesync" / "notesync" / "config"


def test_config_dir_unresolvable(
    mocker: MagicMock, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Verifies that a missing home directory is a fatal configuration error."""
    mocker.patch("sys.platform", "linux")
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    mocker.patch.object(
        Path, "home", side_effect=RuntimeError("Could not determine home directory.")
    )

    with pytest.raises(ConfigPathUnresolvable):
        get_config_path()
