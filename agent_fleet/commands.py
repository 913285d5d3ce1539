"""Shell commands shown to the user for copying into a new terminal tab."""

from __future__ import annotations

import shlex

from .constants import AGENT_COMMAND
from .models import WorktreeEntry


def get_cd_command(worktree_path: str) -> str:
    return f"cd {shlex.quote(worktree_path)}"


def get_launch_command(worktree_path: str) -> str:
    """Command that starts an agent inside a worktree."""
    return f"{get_cd_command(worktree_path)} && {AGENT_COMMAND}"


def build_run_message(entry: WorktreeEntry, switching: bool = False) -> str:
    """Multi-line hint telling the user how to get to (or start) an agent.

    A worktree that already has a live agent only needs a ``cd``; otherwise
    the user gets the launch command.
    """
    hb = entry.heartbeat
    if hb:
        cmd = get_cd_command(entry.path)
        hint = f"pi already running (PID {hb.pid}). cd to the directory:"
    else:
        cmd = get_launch_command(entry.path)
        hint = "Open a new tab and run:"

    if switching:
        title = f"Switch to {entry.name}"
    else:
        title = f"{'Go to' if hb else 'Launch pi in'} {entry.name}"

    lines = [title, "", hint, "", f"  {cmd}"]
    if switching:
        lines += ["", "Then you can close this tab / pi instance."]
    return "\n".join(lines)
