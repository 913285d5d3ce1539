"""
Agent Fleet: read-only FastAPI web application.

Serves the reconciled fleet of one project as JSON:
  - every worktree with its live heartbeat and session history
  - a one-line status summary with per-status counts
  - the raw list of live heartbeats across all projects, or one by PID
  - auto-generated OpenAPI docs at /docs
"""

from __future__ import annotations

import os
from collections import Counter
from dataclasses import asdict

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from .__version__ import __version__
from .commands import get_launch_command
from .discovery import discover_fleet, summarize_fleet, time_ago
from .git import NotAProjectError
from .heartbeat import HeartbeatStore
from .models import ActivityStatus, Heartbeat, WorktreeEntry
from .schemas import (
    ErrorResponse,
    HeartbeatResponse,
    ServerInfoResponse,
    StatusResponse,
    WorktreeResponse,
)

# ── App setup ────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Agent Fleet",
    version=__version__,
    description="Live status of agent processes across the git worktrees of a project.",
)
app.state.project_dir = os.getcwd()
app.state.fleet_dir = None
app.state.sessions_dir = None


# ── Helpers ──────────────────────────────────────────────────────────────────


def _store() -> HeartbeatStore:
    return HeartbeatStore(app.state.fleet_dir)


def _discover() -> list[WorktreeEntry]:
    return discover_fleet(
        app.state.project_dir, store=_store(), sessions_dir=app.state.sessions_dir
    )


def _not_a_project(e: NotAProjectError) -> JSONResponse:
    return JSONResponse(
        {"error": f"Not in a git repository: {app.state.project_dir} ({e})"}, status_code=404
    )


def heartbeat_to_dict(hb: Heartbeat) -> dict:
    data = asdict(hb)
    data["status"] = str(hb.status)
    data["updated_ago"] = time_ago(hb.updated_at)
    return data


def entry_to_dict(entry: WorktreeEntry) -> dict:
    data = asdict(entry)
    data["heartbeat"] = heartbeat_to_dict(entry.heartbeat) if entry.heartbeat else None
    data["launch_cmd"] = get_launch_command(entry.path)
    return data


# ── API Routes ───────────────────────────────────────────────────────────────


@app.get(
    "/api/worktrees",
    response_model=list[WorktreeResponse],
    responses={404: {"model": ErrorResponse}},
)
def api_worktrees():
    """List every worktree of the project with live status and history."""
    try:
        entries = _discover()
    except NotAProjectError as e:
        return _not_a_project(e)
    return [entry_to_dict(e) for e in entries]


@app.get("/api/status", response_model=StatusResponse, responses={404: {"model": ErrorResponse}})
def api_status():
    """Counts of worktrees and live agents by activity status."""
    try:
        entries = _discover()
    except NotAProjectError as e:
        return _not_a_project(e)
    statuses = Counter(e.heartbeat.status for e in entries if e.heartbeat)
    return {
        "worktrees": len(entries),
        "active": sum(statuses.values()),
        "idle": statuses[ActivityStatus.IDLE],
        "streaming": statuses[ActivityStatus.STREAMING],
        "executing_tool": statuses[ActivityStatus.EXECUTING_TOOL],
        "summary": summarize_fleet(entries),
    }


@app.get("/api/heartbeats", response_model=list[HeartbeatResponse])
def api_heartbeats():
    """Every live heartbeat in the fleet directory, across all projects."""
    return [heartbeat_to_dict(hb) for hb in _store().scan()]


@app.get(
    "/api/heartbeats/{pid}",
    response_model=HeartbeatResponse,
    responses={404: {"model": ErrorResponse}},
)
def api_heartbeat(pid: int):
    """One live heartbeat by PID; stale or corrupt records are reclaimed."""
    hb = _store().get(pid)
    if hb is None:
        return JSONResponse({"error": f"No live agent with PID {pid}"}, status_code=404)
    return heartbeat_to_dict(hb)


@app.get("/api/server-info", response_model=ServerInfoResponse)
def server_info():
    """Return server metadata including PID."""
    return {"pid": os.getpid(), "project_dir": app.state.project_dir}
