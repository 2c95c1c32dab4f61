"""The synchronization sequence: ensure a repository, then commit and push.

A run walks a fixed state machine and stops at the first failure:

    resolve directory -> ensure repository -> inspect
        -> nothing to sync (done)
        -> stage -> commit -> push (done)

Every side effect that succeeds is kept. Re-running is the recovery path.
"""

import datetime
import enum
import logging
import os
from collections.abc import Callable
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from .config import Config
from .constants import (
    APP_NAME,
    COMMIT_PREFIX,
    DEFAULT_BRANCH,
    GITHUB_URL_TEMPLATE,
    REMOTE_NAME,
    TIMESTAMP_FORMAT,
)
from .errors import DirectoryUnavailable, MissingConfiguration
from .git_wrapper import GitRepo

console = Console()
logger = logging.getLogger(APP_NAME)


class SyncOutcome(enum.Enum):
    """How a sync run finished."""

    NOTHING_TO_SYNC = "nothing_to_sync"
    SYNCED = "synced"
    PUSHED_PENDING = "pushed_pending"


def remote_url(github_repo: str) -> str:
    """Builds the HTTPS remote URL for an `owner/name` repository."""
    return GITHUB_URL_TEMPLATE.format(repo=github_repo.strip().strip("/"))


def commit_message(now: datetime.datetime) -> str:
    """Formats the automatic commit message, e.g. 'git-sync: 2024-01-31 09:15:00'."""
    return f"{COMMIT_PREFIX}: {now.strftime(TIMESTAMP_FORMAT)}"


def resolve_directory(directory_path: str) -> Path:
    """Validates the configured sync directory.

    Args:
        directory_path (str): The configured path; `~` is expanded.

    Returns:
        Path: The absolute directory path.

    Raises:
        DirectoryUnavailable: If the path is missing, not a directory, or not
            readable and traversable.
    """
    path = Path(directory_path).expanduser()
    if not path.is_dir():
        raise DirectoryUnavailable(f"Directory not found: {path}")
    if not os.access(path, os.R_OK | os.X_OK):
        raise DirectoryUnavailable(f"Directory not accessible: {path}")
    return path.resolve()


class Sync:
    """Runs one synchronization pass for a configured directory.

    Attributes:
        config (Config): The loaded configuration.
        remote (str): The remote that receives pushes.
        branch (str): The branch that is pushed.
    """

    def __init__(
        self,
        config: Config,
        repo: GitRepo | None = None,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ):
        """Initializes the orchestrator.

        Args:
            config (Config): The loaded configuration.
            repo (GitRepo | None, optional): The git capability to use. Built
                for the configured directory when omitted.
            clock (Callable[[], datetime.datetime], optional): Source of the
                commit timestamp. Defaults to local time.
        """
        self.config = config
        self.remote = REMOTE_NAME
        self.branch = DEFAULT_BRANCH
        self._repo = repo
        self._clock = clock

    def run(self) -> SyncOutcome:
        """Executes the full sequence.

        Returns:
            SyncOutcome: What the run did.

        Raises:
            MissingConfiguration: If a required field is empty.
            DirectoryUnavailable: If the configured directory cannot be used.
            ExternalToolFailure: If a git step exits non-zero.
            ProcessSpawnFailure: If git cannot be started.
        """
        missing = self.config.missing_fields()
        if missing:
            raise MissingConfiguration(
                f"Configuration incomplete ({', '.join(missing)} empty). "
                "Run 'notesync setup' first."
            )

        path = resolve_directory(self.config.directory_path)
        repo = self._repo if self._repo is not None else GitRepo(path)
        shown = escape(str(path))
        console.print(f"📂 Synchronizing directory: [cyan]{shown}[/cyan]")

        self._ensure_repository(repo)

        console.print("\n📝 Changed files:")
        changes = repo.status_porcelain()
        for line in changes:
            console.print(f"  {line}", markup=False, highlight=False)

        if not changes:
            return self._finish_clean(repo)

        message = commit_message(self._clock())

        console.print("\n🔄 Adding changes...")
        repo.add_all()

        console.print("📦 Committing changes...")
        summary = repo.commit(message)
        if summary:
            console.print(f"  {summary}", markup=False, highlight=False)
        logger.info(f"Committed '{message}' in {path}")

        self._push(repo)

        console.print("\n[bold green]✔ Synchronization complete![/bold green]")
        return SyncOutcome.SYNCED

    def _ensure_repository(self, repo: GitRepo) -> None:
        """Initializes the directory and wires `origin` if it is not a repo yet."""
        if repo.is_repo():
            return

        console.print("\n🚀 Initializing git repository...")
        output = repo.init(self.branch)
        if output:
            console.print(f"  {output}", markup=False, highlight=False)

        # Replace any stale remote left behind by a previous attempt.
        repo.remove_remote(self.remote)
        url = remote_url(self.config.github_repo)
        repo.add_remote(self.remote, url)
        logger.info(f"Initialized repository in {repo.path} with {self.remote}={url}")
        console.print("[green]✔ Git repository initialized successfully![/green]")

    def _finish_clean(self, repo: GitRepo) -> SyncOutcome:
        """Handles a clean work tree, retrying a push that failed earlier.

        A commit whose push failed leaves the tree clean. If the pushed branch
        has been pushed before and is now ahead of its remote-tracking ref,
        push again. Commits on other checked-out branches are never counted.
        """
        local = f"refs/heads/{self.branch}"
        tracking = f"refs/remotes/{self.remote}/{self.branch}"
        if repo.ref_exists(local) and repo.ref_exists(tracking):
            ahead = repo.count_ahead(tracking, local)
            if ahead:
                console.print(
                    f"\n[yellow]⚠ {ahead} local commit(s) not yet on "
                    f"{self.remote}/{self.branch}.[/yellow]"
                )
                self._push(repo)
                console.print("\n[bold green]✔ Pending commits pushed![/bold green]")
                return SyncOutcome.PUSHED_PENDING

        console.print("\n✨ Nothing to synchronize!")
        return SyncOutcome.NOTHING_TO_SYNC

    def _push(self, repo: GitRepo) -> None:
        console.print("⬆️  Pushing to remote...")
        output = repo.push(self.remote, self.branch)
        if output:
            console.print(f"  {output}", markup=False, highlight=False)
        logger.info(f"Pushed {self.branch} to {self.remote}")
