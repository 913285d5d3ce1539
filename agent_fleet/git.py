"""
Git helpers: the authoritative list of worktrees for a project.

Every call shells out to the ``git`` CLI with a timeout. A failing query
raises ``GitError``; callers that need "is this a project at all" get the
more specific ``NotAProjectError`` so it can never be confused with a
project that simply has no extra worktrees.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess

from .constants import DETACHED_BRANCH, GIT_TIMEOUT, UNKNOWN_BRANCH

logger = logging.getLogger(__name__)

_BRANCH_REF_PREFIX = "refs/heads/"

# git@github.com:org/repo.git -> repo, https://github.com/org/repo.git -> repo
_REMOTE_NAME_RE = re.compile(r"[/:]([^/:]+?)(?:\.git)?/?$")


class GitError(RuntimeError):
    """Raised when a git command fails, times out, or git is not installed."""


class NotAProjectError(GitError):
    """Raised when a directory is not inside a git-managed project."""


def run_git(args: list[str], cwd: str) -> str:
    """Run ``git <args>`` in ``cwd`` and return stripped stdout."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise GitError(f"git {' '.join(args)} failed: {e}") from e
    if result.returncode != 0:
        raise GitError(f"git {' '.join(args)} failed: {result.stderr.strip()}")
    return result.stdout.strip()


def is_git_repo(cwd: str) -> bool:
    try:
        run_git(["rev-parse", "--git-dir"], cwd)
        return True
    except GitError:
        return False


def get_main_worktree_path(cwd: str) -> str:
    """Path of the primary worktree: the parent of the shared git dir."""
    common_dir = run_git(["rev-parse", "--path-format=absolute", "--git-common-dir"], cwd)
    return os.path.dirname(common_dir.rstrip("/\\"))


def get_current_branch(cwd: str) -> str | None:
    """Checked-out branch name, or None when detached or not a repo."""
    try:
        return run_git(["branch", "--show-current"], cwd) or None
    except GitError as e:
        logger.debug("Could not read current branch for %s: %s", cwd, e)
        return None


def get_repo_name(cwd: str) -> str:
    """Short repository name from the origin remote, else the main worktree dir."""
    try:
        url = run_git(["remote", "get-url", "origin"], cwd)
        match = _REMOTE_NAME_RE.search(url)
        if match:
            return match.group(1)
    except GitError as e:
        logger.debug("No origin remote for %s: %s", cwd, e)
    return os.path.basename(get_main_worktree_path(cwd))


def parse_worktree_porcelain(output: str) -> list[tuple[str, str]]:
    """Parse ``git worktree list --porcelain`` into ``(path, branch)`` pairs.

    Records are separated by blank lines. A detached HEAD is labelled
    ``DETACHED_BRANCH``; a record with neither (e.g. a bare repository entry)
    gets ``UNKNOWN_BRANCH``.
    """
    worktrees: list[tuple[str, str]] = []
    path: str | None = None
    branch: str | None = None

    for line in output.splitlines():
        if line.startswith("worktree "):
            path = line[len("worktree ") :]
        elif line.startswith("branch "):
            ref = line[len("branch ") :]
            branch = ref[len(_BRANCH_REF_PREFIX) :] if ref.startswith(_BRANCH_REF_PREFIX) else ref
        elif line == "detached":
            branch = DETACHED_BRANCH
        elif line == "":
            if path:
                worktrees.append((path, branch or UNKNOWN_BRANCH))
            path, branch = None, None

    if path:
        worktrees.append((path, branch or UNKNOWN_BRANCH))
    return worktrees


def list_worktrees(cwd: str) -> list[tuple[str, str]]:
    """All worktrees of the project containing ``cwd``, in git's order.

    Raises NotAProjectError if ``cwd`` is not inside a git project.
    """
    try:
        output = run_git(["worktree", "list", "--porcelain"], cwd)
    except GitError as e:
        raise NotAProjectError(str(e)) from e
    return parse_worktree_porcelain(output)
