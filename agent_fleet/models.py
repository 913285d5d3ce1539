"""Typed data models for Agent Fleet."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class ActivityStatus(StrEnum):
    """What a live agent process is doing right now."""

    IDLE = "idle"
    STREAMING = "streaming"
    EXECUTING_TOOL = "executing-tool"


# Older agent builds wrote "tool_running" for a tool in flight
_STATUS_ALIASES = {"tool_running": ActivityStatus.EXECUTING_TOOL}

# Python attribute -> on-disk JSON key
_HEARTBEAT_KEYS = {
    "pid": "pid",
    "cwd": "cwd",
    "git_repo": "gitRepo",
    "git_branch": "gitBranch",
    "worktree_name": "worktreeName",
    "model": "model",
    "status": "status",
    "current_tool": "currentTool",
    "last_user_message": "lastUserMessage",
    "last_assistant_snippet": "lastAssistantSnippet",
    "turns": "turns",
    "session_file": "sessionFile",
    "started_at": "startedAt",
    "updated_at": "updatedAt",
}

_OPTIONAL_TEXT = (
    "git_repo",
    "git_branch",
    "model",
    "current_tool",
    "last_user_message",
    "last_assistant_snippet",
    "session_file",
)


def parse_status(value: Any) -> ActivityStatus:
    """Parse a status string, accepting legacy aliases. Raises ValueError."""
    if isinstance(value, str) and value in _STATUS_ALIASES:
        return _STATUS_ALIASES[value]
    return ActivityStatus(value)


@dataclass
class Heartbeat:
    """A self-published record describing one live agent process."""

    pid: int
    cwd: str
    worktree_name: str = ""
    git_repo: str | None = None
    git_branch: str | None = None
    model: str | None = None
    status: ActivityStatus = ActivityStatus.IDLE
    current_tool: str | None = None
    last_user_message: str | None = None
    last_assistant_snippet: str | None = None
    turns: int = 0
    session_file: str | None = None
    started_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the camelCase JSON shape written on disk."""
        data = {json_key: getattr(self, attr) for attr, json_key in _HEARTBEAT_KEYS.items()}
        data["status"] = str(self.status)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Heartbeat:
        """Build a Heartbeat from its on-disk JSON shape.

        Raises ValueError when the content is not a well-formed record, so
        callers can treat the file as corrupt.
        """
        if not isinstance(data, dict):
            raise ValueError("heartbeat must be a JSON object")

        pid = data.get("pid")
        if isinstance(pid, bool) or not isinstance(pid, int):
            raise ValueError(f"invalid pid: {pid!r}")
        cwd = data.get("cwd")
        if not isinstance(cwd, str) or not cwd or "\0" in cwd:
            raise ValueError(f"invalid cwd: {cwd!r}")

        turns = data.get("turns", 0)
        if isinstance(turns, bool) or not isinstance(turns, int) or turns < 0:
            raise ValueError(f"invalid turns: {turns!r}")

        kwargs: dict[str, Any] = {}
        for attr in _OPTIONAL_TEXT:
            value = data.get(_HEARTBEAT_KEYS[attr])
            if value is not None and not isinstance(value, str):
                raise ValueError(f"invalid {attr}: {value!r}")
            kwargs[attr] = value

        return cls(
            pid=pid,
            cwd=cwd,
            worktree_name=str(data.get("worktreeName") or ""),
            status=parse_status(data.get("status", ActivityStatus.IDLE.value)),
            turns=turns,
            started_at=str(data.get("startedAt") or ""),
            updated_at=str(data.get("updatedAt") or ""),
            **kwargs,
        )


@dataclass
class WorktreeEntry:
    """One git worktree as seen by a single reconciliation pass."""

    path: str
    branch: str
    name: str
    is_main: bool = False
    is_current: bool = False
    heartbeat: Heartbeat | None = None
    has_session_history: bool = False
    session_count: int = 0
