# git.py
# Small, focused wrapper around the Git CLI.
# This module centralizes all Git interactions so the rest of the codebase
# never needs to call git directly.

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Optional

from ..errors import CommandError, FetchError
from ..process import run_command


def _git(args: list[str], cwd: Optional[str | Path] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    Args:
        args: List of git arguments (e.g. ["checkout", "abc123"])
        cwd: Optional working directory in which to run the git command.

    Returns:
        Stdout from the git command with surrounding whitespace removed.

    Raises:
        CommandError: If git is missing or exits non-zero
    """
    return run_command(["git", *args], cwd=cwd).strip()


def reset_dir(target_dir: str | Path) -> Path:
    """Forcibly remove `target_dir` if present; the parent is created."""
    path = Path(target_dir)
    if path.exists() or path.is_symlink():
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def clone_and_checkout(clone_url: str, commit_ref: str, target_dir: str | Path) -> Path:
    """
    Clone `clone_url` into a fresh `target_dir` and check out `commit_ref`.

    Any previous content of `target_dir` is removed first, so calling this
    twice for the same directory always starts from a clean tree.

    Args:
        clone_url: Repository URL understood by `git clone`
        commit_ref: Commit SHA (or any ref) to check out
        target_dir: Directory the repository is cloned into

    Returns:
        Path to the checked out repository.

    Raises:
        FetchError: stage="clone" or stage="checkout"; no retry is attempted
    """
    try:
        path = reset_dir(target_dir)
    except OSError as e:
        raise FetchError("clone", f"could not reset {target_dir}", cause=str(e)) from e

    try:
        _git(["clone", clone_url, str(path)])
    except CommandError as e:
        raise FetchError("clone", f"git clone {clone_url} failed", cause=str(e)) from e

    try:
        _git(["checkout", commit_ref], cwd=path)
    except CommandError as e:
        raise FetchError("checkout", f"git checkout {commit_ref} failed", cause=str(e)) from e

    return path
