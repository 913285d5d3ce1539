"""Tests for fleet_api.py: the read-only JSON endpoints."""

import os
from unittest.mock import patch

import pytest
from conftest import make_heartbeat, write_raw_heartbeat
from fastapi.testclient import TestClient

from agent_fleet.fleet_api import app
from agent_fleet.git import NotAProjectError
from agent_fleet.models import ActivityStatus, WorktreeEntry


@pytest.fixture
def client(fleet_dir, sessions_dir, monkeypatch):
    monkeypatch.setattr(app.state, "project_dir", "/repo", raising=False)
    monkeypatch.setattr(app.state, "fleet_dir", str(fleet_dir), raising=False)
    monkeypatch.setattr(app.state, "sessions_dir", str(sessions_dir), raising=False)
    return TestClient(app)


def _entries():
    running = WorktreeEntry(
        path="/repo.worktrees/auth",
        branch="feature/auth",
        name="auth",
        heartbeat=make_heartbeat(
            cwd="/repo.worktrees/auth",
            status=ActivityStatus.EXECUTING_TOOL,
            current_tool="edit",
        ),
    )
    main = WorktreeEntry(
        path="/repo",
        branch="main",
        name="repo",
        is_main=True,
        is_current=True,
        has_session_history=True,
        session_count=3,
    )
    return [main, running]


# ---------------------------------------------------------------------------
# /api/worktrees
# ---------------------------------------------------------------------------


class TestWorktreesEndpoint:
    def test_lists_entries(self, client):
        with patch("agent_fleet.fleet_api.discover_fleet", return_value=_entries()) as discover:
            resp = client.get("/api/worktrees")
        assert resp.status_code == 200
        data = resp.json()
        assert [w["name"] for w in data] == ["repo", "auth"]
        assert data[0]["is_main"] is True
        assert data[0]["session_count"] == 3
        assert data[0]["heartbeat"] is None
        assert data[0]["launch_cmd"] == "cd /repo && pi"
        assert data[1]["heartbeat"]["status"] == "executing-tool"
        assert data[1]["heartbeat"]["current_tool"] == "edit"
        assert "updated_ago" in data[1]["heartbeat"]
        assert discover.call_args.args[0] == "/repo"

    def test_not_a_project_is_404(self, client):
        with patch(
            "agent_fleet.fleet_api.discover_fleet", side_effect=NotAProjectError("fatal")
        ):
            resp = client.get("/api/worktrees")
        assert resp.status_code == 404
        assert "Not in a git repository" in resp.json()["error"]


# ---------------------------------------------------------------------------
# /api/status
# ---------------------------------------------------------------------------


class TestStatusEndpoint:
    def test_counts(self, client):
        with patch("agent_fleet.fleet_api.discover_fleet", return_value=_entries()):
            resp = client.get("/api/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["worktrees"] == 2
        assert data["active"] == 1
        assert data["executing_tool"] == 1
        assert data["idle"] == 0
        assert data["streaming"] == 0
        assert data["summary"].startswith("Fleet: 2 worktrees")

    def test_not_a_project_is_404(self, client):
        with patch(
            "agent_fleet.fleet_api.discover_fleet", side_effect=NotAProjectError("fatal")
        ):
            resp = client.get("/api/status")
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# /api/heartbeats and /api/server-info
# ---------------------------------------------------------------------------


class TestHeartbeatsEndpoint:
    def test_empty(self, client):
        assert client.get("/api/heartbeats").json() == []

    def test_lists_live_records(self, client, store):
        store.publish(make_heartbeat(cwd="/elsewhere", model="sonnet", turns=4))
        data = client.get("/api/heartbeats").json()
        assert len(data) == 1
        assert data[0]["pid"] == os.getpid()
        assert data[0]["model"] == "sonnet"
        assert data[0]["turns"] == 4
        assert data[0]["status"] == "idle"


class TestSingleHeartbeatEndpoint:
    def test_returns_live_record(self, client, store):
        store.publish(make_heartbeat(cwd="/repo.worktrees/auth", current_tool="edit"))
        resp = client.get(f"/api/heartbeats/{os.getpid()}")
        assert resp.status_code == 200
        assert resp.json()["current_tool"] == "edit"

    def test_missing_pid_is_404(self, client):
        resp = client.get("/api/heartbeats/999999")
        assert resp.status_code == 404
        assert "999999" in resp.json()["error"]

    def test_corrupt_record_is_reclaimed_and_404(self, client, fleet_dir):
        path = write_raw_heartbeat(fleet_dir, os.getpid(), b"\xff\xfe")
        resp = client.get(f"/api/heartbeats/{os.getpid()}")
        assert resp.status_code == 404
        assert not path.exists()


class TestServerInfo:
    def test_returns_pid_and_project(self, client):
        data = client.get("/api/server-info").json()
        assert data == {"pid": os.getpid(), "project_dir": "/repo"}


class TestOpenApi:
    def test_schema_lists_routes(self, client):
        paths = client.get("/openapi.json").json()["paths"]
        for route in ("/api/worktrees", "/api/status", "/api/heartbeats", "/api/server-info"):
            assert route in paths
