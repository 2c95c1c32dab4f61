import contextlib
import json
import logging
import os
import shutil
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table

from .constants import (
    APP_NAME,
    APP_QUALIFIER,
    BACKUP_SUFFIX,
    CONFIG_FIELDS,
    CONFIG_FILENAME,
    TEMP_SUFFIX,
)
from .errors import ConfigPathUnresolvable, IoFailure

console = Console()
logger = logging.getLogger(APP_NAME)

PROMPTS = {
    "github_token": "Enter your GitHub token (https://github.com/settings/tokens)",
    "github_repo": "Enter repository (format: username/repo)",
    "directory_path": "Enter path to your directory to sync",
}


def get_config_dir() -> Path:
    """Resolves the platform-specific per-user configuration directory.

    Returns:
        Path: `~/Library/Application Support/com.notesync.notesync` on macOS,
        `%APPDATA%/notesync/notesync/config` on Windows, and
        `$XDG_CONFIG_HOME/notesync` (falling back to `~/.config/notesync`)
        elsewhere.

    Raises:
        ConfigPathUnresolvable: If no base directory can be determined.
    """
    try:
        if sys.platform == "darwin":
            base = Path.home() / "Library" / "Application Support"
            return base / f"{APP_QUALIFIER}.{APP_NAME}.{APP_NAME}"
        if sys.platform == "win32":
            appdata = os.environ.get("APPDATA")
            base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
            return base / APP_NAME / APP_NAME / "config"
        xdg = os.environ.get("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else Path.home() / ".config"
    except RuntimeError as e:
        # Path.home() raises RuntimeError when no home directory is known.
        raise ConfigPathUnresolvable(
            f"Could not determine the configuration directory: {e}"
        ) from e
    return base / APP_NAME


def get_config_path() -> Path:
    """Returns the full path of the configuration file."""
    return get_config_dir() / CONFIG_FILENAME


def _sibling(path: Path, suffix: str) -> Path:
    return path.with_name(path.name + suffix)


def mask_token(token: str) -> str:
    """Hides all but the last four characters of a secret for display."""
    if not token:
        return ""
    if len(token) <= 4:
        return "*" * len(token)
    return "*" * 8 + token[-4:]


@dataclass
class Config:
    """The persisted Notesync configuration.

    Attributes:
        github_token (str): Personal access token for GitHub.
        github_repo (str): Target repository in `owner/name` form.
        directory_path (str): Local directory that is synchronized.
    """

    github_token: str = ""
    github_repo: str = ""
    directory_path: str = ""

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "Config":
        """Builds a Config from parsed JSON, enforcing the three-field schema.

        Args:
            data (Any): The decoded JSON document.

        Returns:
            Config: The validated configuration.

        Raises:
            ValueError: If the document is not an object, or a field is missing
                or is not a string.
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")

        unknown = set(data) - set(CONFIG_FIELDS)
        if unknown:
            logger.warning(
                f"Unknown config keys: {', '.join(sorted(unknown))}. Ignoring."
            )

        values = {}
        for name in CONFIG_FIELDS:
            if name not in data:
                raise ValueError(f"missing field '{name}'")
            if not isinstance(data[name], str):
                raise ValueError(f"field '{name}' must be a string")
            values[name] = data[name]
        return cls(**values)

    def missing_fields(self) -> list[str]:
        """Lists the fields that are empty and therefore block a sync."""
        return [f.name for f in fields(self) if not getattr(self, f.name).strip()]

    @classmethod
    def load(cls, path: Path | None = None) -> "Config | None":
        """Loads the configuration file, degrading to None on any problem.

        A corrupt file is copied to a `.bak` sibling (best-effort) so the user
        can recover it after running setup again.

        Args:
            path (Path | None): Override for the configuration file location.

        Returns:
            Config | None: The stored configuration, or None if the file is
            absent, unreadable or corrupt.
        """
        path = path or get_config_path()
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Could not read config {path}: {e}")
            return None

        try:
            return cls.from_dict(json.loads(raw.decode("utf-8")))
        except (ValueError, RecursionError) as e:
            # Deeply nested documents exhaust the decoder's recursion limit.
            logger.error(f"Config syntax error in {path}: {e}")
            _backup_corrupt(path)
            return None

    def save(self, path: Path | None = None) -> Path:
        """Persists the configuration atomically.

        The document is written to a `.tmp` sibling, flushed to disk, and then
        swapped into place with `os.replace`, so readers only ever see the old
        or the new file.

        Args:
            path (Path | None): Override for the configuration file location.

        Returns:
            Path: The location the configuration was written to.

        Raises:
            IoFailure: If the directory, temp file or rename cannot be written.
        """
        path = path or get_config_path()
        tmp_file = _sibling(path, TEMP_SUFFIX)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Owner-only permissions: the file holds a token.
            fd = os.open(tmp_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())

            os.replace(tmp_file, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp_file.unlink(missing_ok=True)
            raise IoFailure(f"Failed to write config to {path}: {e}") from e

        logger.debug(f"Config saved to {path}")
        return path

    @classmethod
    def setup(cls, path: Path | None = None) -> "Config":
        """Runs the interactive setup, keeping existing values on empty input.

        Args:
            path (Path | None): Override for the configuration file location.

        Returns:
            Config: The merged configuration that was saved.
        """
        path = path or get_config_path()
        console.print("[bold]Notesync Setup[/bold]")

        existing = cls.load(path) or cls()
        values = {}
        for name in CONFIG_FIELDS:
            current = getattr(existing, name)
            shown = mask_token(current) if name == "github_token" else current
            values[name] = prompt_with_default(PROMPTS[name], current, shown)

        config = cls(**values)
        saved_to = config.save(path)
        console.print("\n[bold green]✔ Configuration saved at:[/bold green]")
        console.print(f"   [cyan]{escape(str(saved_to))}[/cyan]")
        return config


def prompt_with_default(message: str, default: str, shown: str | None = None) -> str:
    """Asks for a value; an empty answer keeps `default`.

    Args:
        message (str): The question to display.
        default (str): The value returned when the answer is empty.
        shown (str | None): How the default is displayed (e.g. masked).
            Defaults to `default` itself.

    Returns:
        str: The trimmed answer, or `default` if nothing was entered.
    """
    shown = default if shown is None else shown
    if shown:
        message = f"{message} [dim]\\[{escape(shown)}][/dim]"
    answer = Prompt.ask(message, console=console, default="", show_default=False)
    answer = answer.strip()
    return answer if answer else default


def _backup_corrupt(path: Path) -> Path | None:
    """Copies a corrupt config file aside; failures are logged, not raised."""
    backup = _sibling(path, BACKUP_SUFFIX)
    try:
        shutil.copy2(path, backup)
    except OSError as e:
        logger.warning(f"Could not back up corrupt config to {backup}: {e}")
        return None
    logger.warning(f"Corrupt config backed up to {backup}")
    return backup


def show_config(config: Config, path: Path | None = None) -> None:
    """Renders the configuration as a table, with the token masked."""
    table = Table(title="Current configuration", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    table.add_row("github_token", mask_token(config.github_token) or "[dim]-[/dim]")
    table.add_row("github_repo", escape(config.github_repo) or "[dim]-[/dim]")
    table.add_row("directory_path", escape(config.directory_path) or "[dim]-[/dim]")

    console.print(table)
    if path:
        console.print(f"[dim]{escape(str(path))}[/dim]")
