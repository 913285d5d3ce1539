"""Shared pytest fixtures for the test suite."""

import json
import os

import pytest

import agent_fleet.config as _config
from agent_fleet.activity import session_dir_for
from agent_fleet.heartbeat import HeartbeatStore
from agent_fleet.models import ActivityStatus, Heartbeat


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep every test away from the real ~/.pi directory."""
    monkeypatch.setattr(_config, "FLEET_CONFIG_PATH", str(tmp_path / "no-config.json"))
    monkeypatch.setenv("PI_FLEET_DIR", str(tmp_path / "default-fleet"))
    monkeypatch.setenv("PI_SESSIONS_DIR", str(tmp_path / "default-sessions"))
    monkeypatch.delenv("PI_FLEET_HEARTBEAT_INTERVAL", raising=False)
    _config.reset_config()
    yield
    _config.reset_config()


@pytest.fixture
def fleet_dir(tmp_path):
    path = tmp_path / "fleet"
    path.mkdir()
    return path


@pytest.fixture
def sessions_dir(tmp_path):
    path = tmp_path / "sessions"
    path.mkdir()
    return path


@pytest.fixture
def store(fleet_dir):
    return HeartbeatStore(str(fleet_dir))


def make_heartbeat(pid=None, cwd="/repo", **overrides):
    """Build a Heartbeat for the current (live) process unless told otherwise."""
    fields = {
        "pid": os.getpid() if pid is None else pid,
        "cwd": cwd,
        "worktree_name": os.path.basename(cwd),
        "status": ActivityStatus.IDLE,
        "started_at": "2026-01-01T00:00:00+00:00",
        "updated_at": "2026-01-01T00:00:00+00:00",
    }
    fields.update(overrides)
    return Heartbeat(**fields)


def write_raw_heartbeat(fleet_dir, pid, content):
    """Write arbitrary content (dict, str or bytes) to ``<pid>.json``."""
    path = fleet_dir / f"{pid}.json"
    if isinstance(content, dict):
        content = json.dumps(content)
    if isinstance(content, str):
        content = content.encode("utf-8")
    path.write_bytes(content)
    return path


@pytest.fixture
def make_sessions(sessions_dir):
    """Fixture that returns a helper to create N session files for a worktree."""

    def _make(worktree_path, count, suffix=".jsonl"):
        session_dir = session_dir_for(worktree_path, str(sessions_dir))
        os.makedirs(session_dir, exist_ok=True)
        for i in range(count):
            with open(os.path.join(session_dir, f"session-{i}{suffix}"), "w") as f:
                f.write('{"type": "session"}\n')
        return session_dir

    return _make


def porcelain(*worktrees):
    """Render ``(path, branch)`` pairs as ``git worktree list --porcelain`` output.

    ``branch=None`` renders a detached HEAD.
    """
    blocks = []
    for path, branch in worktrees:
        lines = [f"worktree {path}", "HEAD 0123456789abcdef0123456789abcdef01234567"]
        lines.append("detached" if branch is None else f"branch refs/heads/{branch}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n"
