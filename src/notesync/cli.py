import argparse
import logging
import os
import sys

from rich.console import Console
from rich.markup import escape

from .config import Config, get_config_path, show_config
from .constants import (
    APP_NAME,
    LOG_DATE_FORMAT,
    LOG_FORMAT,
    LOG_LEVEL_ENV,
    __version__,
)
from .errors import MissingConfiguration, NoteSyncError
from .sync import Sync, SyncOutcome

logger = logging.getLogger(APP_NAME)
console = Console()
err_console = Console(stderr=True)


def setup_logging() -> None:
    """Attaches a single stderr handler to the application logger.

    The level defaults to WARNING and can be raised or lowered with the
    NOTESYNC_LOG_LEVEL environment variable (e.g. DEBUG to trace git calls).
    """
    level_name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING

    logger.setLevel(level)
    if any(getattr(h, "_notesync", False) for h in logger.handlers):
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    handler._notesync = True  # type: ignore[attr-defined]
    logger.addHandler(handler)


def run_setup() -> Config:
    """Runs the interactive setup and prints the resulting configuration."""
    config = Config.setup()
    console.print()
    show_config(config)
    return config


def run_sync() -> SyncOutcome:
    """Loads the configuration and runs one synchronization pass.

    Raises:
        MissingConfiguration: If setup has never been run.
    """
    config = Config.load()
    if config is None:
        raise MissingConfiguration(
            f"No configuration found at {get_config_path()}. "
            "Please run 'notesync setup' first."
        )
    return Sync(config).run()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Commit and push a local directory to a GitHub repository.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="command")
    subparsers.required = True
    subparsers.add_parser("setup", help="Configure the application")
    subparsers.add_parser("sync", help="Synchronize the directory with GitHub")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the Notesync CLI."""
    args = build_parser().parse_args(argv)
    setup_logging()

    try:
        if args.command == "setup":
            run_setup()
        elif args.command == "sync":
            run_sync()
    except NoteSyncError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        err_console.print(
            f"[bold red]ERROR:[/bold red] {escape(str(e))}", highlight=False
        )
        sys.exit(1)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Aborted.[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
