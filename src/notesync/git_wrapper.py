import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .constants import APP_NAME
from .errors import ExternalToolFailure, ProcessSpawnFailure

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class GitResult:
    """The outcome of a single git invocation.

    Attributes:
        returncode (int): The process exit status.
        stdout (str): Captured standard output, decoded lossily as UTF-8.
        stderr (str): Captured standard error, decoded lossily as UTF-8.
    """

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class GitRepo:
    """A wrapper around the Git command-line interface for a specific directory.

    Every command runs with `cwd` set to the target directory; the process-wide
    working directory is never changed. The directory does not need to be a
    repository yet, since `is_repo` and `init` are part of this interface.

    Attributes:
        path (Path): The directory git commands are executed in.
        git (str): The git executable to invoke.
    """

    def __init__(self, path: Path, git: str = "git"):
        self.path = path
        self.git = git

    def _run(self, args: list[str], check: bool = True) -> GitResult:
        """Executes a git command inside the target directory.

        Args:
            args (list[str]): Arguments passed to git (never through a shell).
            check (bool, optional): Whether a non-zero exit raises.
                                    Defaults to True.

        Returns:
            GitResult: The exit status and captured output.

        Raises:
            ExternalToolFailure: If git exits non-zero and `check` is True.
            ProcessSpawnFailure: If the git executable cannot be started.
        """
        logger.debug(f"git {' '.join(args)} (cwd={self.path})")
        try:
            res = subprocess.run(
                [self.git, *args],
                cwd=self.path,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise ProcessSpawnFailure(f"Could not run '{self.git}': {e}") from e

        result = GitResult(res.returncode, res.stdout or "", res.stderr or "")
        if check and not result.ok:
            raise ExternalToolFailure(args, result.returncode, result.stderr)
        return result

    def is_repo(self) -> bool:
        """Checks whether the directory is inside a git work tree.

        Returns:
            bool: True if `git rev-parse --git-dir` succeeds.
        """
        return self._run(["rev-parse", "--git-dir"], check=False).ok

    def init(self, branch: str) -> str:
        """Initializes a new repository whose first branch is `branch`.

        Returns:
            str: The message git prints on success.
        """
        return self._run(["init", "-b", branch]).stdout.strip()

    def remove_remote(self, name: str) -> bool:
        """Removes a remote if present. Failure is expected and not an error.

        Returns:
            bool: True if a remote was removed.
        """
        res = self._run(["remote", "remove", name], check=False)
        if not res.ok:
            logger.debug(f"No remote '{name}' to remove: {res.stderr.strip()}")
        return res.ok

    def add_remote(self, name: str, url: str) -> None:
        self._run(["remote", "add", name, url])

    def status_porcelain(self) -> list[str]:
        """Returns the porcelain (machine-readable) status of the work tree.

        Returns:
            list[str]: One line per changed path, leading status columns intact.
        """
        output = self._run(["status", "--porcelain"]).stdout.rstrip("\n")
        return output.splitlines() if output else []

    def add_all(self) -> None:
        """Stages all changes in the directory, untracked files included."""
        self._run(["add", "."])

    def commit(self, message: str) -> str:
        """Creates a new commit with the provided message.

        Returns:
            str: The commit summary printed by git.
        """
        return self._run(["commit", "-m", message]).stdout.strip()

    def push(self, remote: str, branch: str) -> str:
        """Pushes `branch` to `remote`.

        Returns:
            str: Anything git printed on stdout (usually empty).
        """
        return self._run(["push", remote, branch]).stdout.strip()

    def ref_exists(self, ref: str) -> bool:
        return self._run(["rev-parse", "--verify", "--quiet", ref], check=False).ok

    def count_ahead(self, base: str, head: str = "HEAD") -> int:
        """Counts commits reachable from `head` but not from `base`.

        Args:
            base (str): The reference to compare against (e.g. 'origin/main').
            head (str, optional): The local reference. Defaults to 'HEAD'.

        Returns:
            int: The number of commits `head` is ahead of `base`.
        """
        output = self._run(["rev-list", "--count", f"{base}..{head}"]).stdout
        try:
            return int(output.strip())
        except ValueError:
            logger.warning(f"Unexpected rev-list output: {output!r}")
            return 0
