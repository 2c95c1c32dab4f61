"""Global constants for Notesync.

This module defines application identifiers, file names and the fixed git
conventions (remote, branch, commit message format) used across the
application.
"""

# --- Identity ---
APP_NAME = "notesync"
"""str: The application name, also used as the logger name and config dir."""

APP_QUALIFIER = "com"
"""str: Reverse-domain qualifier used in the macOS config directory name."""

__version__ = "0.1.0"
"""str: The installed package version."""

# --- Configuration Paths ---
CONFIG_FILENAME = "config.json"
"""str: The name of the configuration file inside the config directory."""

BACKUP_SUFFIX = ".bak"
"""str: Suffix appended to a corrupt configuration file when backing it up."""

TEMP_SUFFIX = ".tmp"
"""str: Suffix of the transient file written during an atomic save."""

CONFIG_FIELDS = ("github_token", "github_repo", "directory_path")
"""tuple[str, ...]: The persisted configuration keys, in prompt order."""

# --- Git / Logic Constants ---
REMOTE_NAME = "origin"
"""str: The git remote that receives pushes."""

DEFAULT_BRANCH = "main"
"""str: The branch that is created on init and pushed on every sync."""

GITHUB_URL_TEMPLATE = "https://github.com/{repo}.git"
"""str: Remote URL format; `repo` is the configured `owner/name`."""

COMMIT_PREFIX = "git-sync"
"""str: Prefix of every automatic commit message."""

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
"""str: strftime format of the timestamp in commit messages."""

# --- Logging ---
LOG_LEVEL_ENV = "NOTESYNC_LOG_LEVEL"
"""str: Environment variable overriding the console log level."""

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
