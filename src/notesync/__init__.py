"""Notesync: commit and push a local directory to GitHub on demand.

This package provides the command-line interface, the JSON configuration store
and the git orchestration that stages, commits and pushes pending changes.
"""

from . import (
    cli,
    config,
    constants,
    errors,
    git_wrapper,
    sync,
)
from .constants import __version__

__all__ = [
    "__version__",
    "cli",
    "config",
    "constants",
    "errors",
    "git_wrapper",
    "sync",
]
