"""
Pydantic response models for the fleet API.

These define the JSON shapes for all API endpoints and give us
automatic OpenAPI schema generation + Swagger UI.
"""

from __future__ import annotations

from pydantic import BaseModel

# ── Heartbeats (/api/heartbeats) ─────────────────────────────────────────────


class HeartbeatResponse(BaseModel):
    """A live agent process as described by its own heartbeat."""

    pid: int
    cwd: str
    worktree_name: str = ""
    git_repo: str | None = None
    git_branch: str | None = None
    model: str | None = None
    status: str = "idle"
    current_tool: str | None = None
    last_user_message: str | None = None
    last_assistant_snippet: str | None = None
    turns: int = 0
    session_file: str | None = None
    started_at: str = ""
    updated_at: str = ""
    updated_ago: str = ""


# ── Worktrees (/api/worktrees) ───────────────────────────────────────────────


class WorktreeResponse(BaseModel):
    """One worktree from a reconciliation pass."""

    path: str
    branch: str
    name: str
    is_main: bool = False
    is_current: bool = False
    heartbeat: HeartbeatResponse | None = None
    has_session_history: bool = False
    session_count: int = 0
    launch_cmd: str = ""


# ── Status (/api/status) ─────────────────────────────────────────────────────


class StatusResponse(BaseModel):
    worktrees: int
    active: int
    idle: int
    streaming: int
    executing_tool: int
    summary: str


# ── Generic ─────────────────────────────────────────────────────────────────


class ErrorResponse(BaseModel):
    error: str


class ServerInfoResponse(BaseModel):
    pid: int
    project_dir: str
