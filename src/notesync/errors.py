"""Exception hierarchy for Notesync.

Every error surfaced to the command line derives from `NoteSyncError`, so the
CLI can report it and exit with a non-zero status without a traceback.
"""


class NoteSyncError(Exception):
    """Base class for all expected, user-reportable failures."""


class IoFailure(NoteSyncError):
    """A filesystem read, write or rename failed (other than a missing file)."""


class ConfigPathUnresolvable(NoteSyncError):
    """The per-user configuration directory could not be determined."""


class MissingConfiguration(NoteSyncError):
    """Sync was requested without a (complete) configuration."""


class DirectoryUnavailable(NoteSyncError):
    """The configured sync directory is missing or inaccessible."""


class ProcessSpawnFailure(NoteSyncError):
    """The git executable could not be found or started."""


class ExternalToolFailure(NoteSyncError):
    """Git ran but exited with a non-zero status.

    Attributes:
        args_ (list[str]): The git arguments that were executed.
        returncode (int): The exit status of the process.
        stderr (str): The diagnostic text git wrote to stderr.
    """

    def __init__(self, args: list[str], returncode: int, stderr: str):
        self.args_ = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr or f"exit status {returncode}"
        super().__init__(f"git {' '.join(self.args_)} failed: {detail}")
