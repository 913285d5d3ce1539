"""
Fleet discovery: merges three independently-sourced layers.

  1. git worktree list   -> every worktree (ground truth)
  2. session directories -> which worktrees have history
  3. heartbeat files     -> which worktrees have a live agent right now

A pass only reads; the one side effect is the opportunistic reclamation
performed by ``HeartbeatStore.scan``.
"""

from __future__ import annotations

import logging
import os
from collections import Counter
from datetime import UTC, datetime

from .activity import count_sessions
from .constants import (
    JUST_NOW_SECONDS,
    SECONDS_PER_DAY,
    SECONDS_PER_HOUR,
    SECONDS_PER_MINUTE,
)
from .git import GitError, NotAProjectError, get_main_worktree_path, list_worktrees
from .heartbeat import HeartbeatStore
from .models import ActivityStatus, Heartbeat, WorktreeEntry

logger = logging.getLogger(__name__)


def _normalize(path: str) -> str:
    return os.path.realpath(path)


def _index_heartbeats(store: HeartbeatStore) -> dict[str, Heartbeat]:
    """Live heartbeats keyed by normalised working directory."""
    by_cwd: dict[str, Heartbeat] = {}
    for hb in store.scan():
        try:
            by_cwd[_normalize(hb.cwd)] = hb
        except (OSError, ValueError) as e:
            logger.debug("Skipping heartbeat for PID %d with unusable cwd: %s", hb.pid, e)
    return by_cwd


def _safe_session_count(path: str, sessions_dir: str | None) -> int:
    try:
        return count_sessions(path, sessions_dir)
    except Exception as e:
        logger.debug("Session count failed for %s: %s", path, e)
        return 0


def discover_fleet(
    cwd: str,
    *,
    store: HeartbeatStore | None = None,
    sessions_dir: str | None = None,
) -> list[WorktreeEntry]:
    """Run one reconciliation pass for the project containing ``cwd``.

    Returns one entry per worktree in the order git reports them. Exactly one
    entry has ``is_main`` set; at most one has ``is_current`` set.
    Raises NotAProjectError if ``cwd`` is not inside a git project.
    """
    worktrees = list_worktrees(cwd)
    try:
        main_path = _normalize(get_main_worktree_path(cwd))
    except GitError as e:
        raise NotAProjectError(str(e)) from e
    current_path = _normalize(cwd)

    if store is None:
        store = HeartbeatStore()
    heartbeats = _index_heartbeats(store)

    normalized = [_normalize(path) for path, _branch in worktrees]
    # git always lists the main worktree first; fall back to it when the
    # common-dir parent matches nothing (bare or symlinked layouts)
    main_index = normalized.index(main_path) if main_path in normalized else 0

    entries: list[WorktreeEntry] = []
    seen_current = False
    for i, (path, branch) in enumerate(worktrees):
        norm = normalized[i]
        is_current = not seen_current and norm == current_path
        seen_current = seen_current or is_current
        session_count = _safe_session_count(path, sessions_dir)
        entries.append(
            WorktreeEntry(
                path=path,
                branch=branch,
                name=os.path.basename(path.rstrip("/\\")) or path,
                is_main=i == main_index,
                is_current=is_current,
                heartbeat=heartbeats.get(norm),
                has_session_history=session_count > 0,
                session_count=session_count,
            )
        )
    return entries


def find_worktree(entries: list[WorktreeEntry], name: str) -> WorktreeEntry | None:
    """Look up a worktree by exact name, then name substring, then branch substring."""
    lower = name.lower()
    for match in (
        lambda e: e.name.lower() == lower,
        lambda e: lower in e.name.lower(),
        lambda e: lower in e.branch.lower(),
    ):
        for entry in entries:
            if match(entry):
                return entry
    return None


def summarize_fleet(entries: list[WorktreeEntry]) -> str:
    """One-line status summary for a reconciliation pass."""
    running = [e for e in entries if e.heartbeat]
    statuses = Counter(e.heartbeat.status for e in running if e.heartbeat)

    count = len(entries)
    parts = [f"Fleet: {count} worktree{'s' if count != 1 else ''}"]

    if running:
        details = []
        if statuses[ActivityStatus.IDLE]:
            details.append(f"{statuses[ActivityStatus.IDLE]} idle")
        if statuses[ActivityStatus.STREAMING]:
            details.append(f"{statuses[ActivityStatus.STREAMING]} streaming")
        if statuses[ActivityStatus.EXECUTING_TOOL]:
            details.append(f"{statuses[ActivityStatus.EXECUTING_TOOL]} running tools")
        parts.append(f"{len(running)} active ({', '.join(details)})")
    else:
        parts.append("none active")

    stopped = count - len(running)
    if stopped > 0:
        parts.append(f"{stopped} without pi")

    return " • ".join(parts)


def time_ago(iso_str: str | None) -> str:
    """Convert an ISO timestamp to a human-readable relative time string."""
    if not iso_str:
        return "unknown"
    try:
        dt = datetime.fromisoformat(iso_str.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        seconds = int((datetime.now(UTC) - dt).total_seconds())
    except (ValueError, TypeError):
        return iso_str
    if seconds < JUST_NOW_SECONDS:
        return "just now"
    if seconds < SECONDS_PER_MINUTE:
        return f"{seconds}s ago"
    if seconds < SECONDS_PER_HOUR:
        return f"{seconds // SECONDS_PER_MINUTE}m ago"
    if seconds < SECONDS_PER_DAY:
        return f"{seconds // SECONDS_PER_HOUR}h ago"
    return f"{seconds // SECONDS_PER_DAY}d ago"
