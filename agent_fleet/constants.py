"""
Centralised constants for Agent Fleet.

Paths, timeouts, limits and sentinel labels used across the package.
Runtime overrides for the paths and the interval live in ``config``.
"""

from __future__ import annotations

import os

# ── Network & server ──────────────────────────────────────────────────────────

DEFAULT_PORT = 5112
"""Default HTTP port for the read-only fleet API."""

LOCALHOST = "127.0.0.1"
"""Bind address: the API is local-only."""

# ── File-system paths ─────────────────────────────────────────────────────────

PI_AGENT_DIR = os.path.join(os.path.expanduser("~"), ".pi", "agent")
FLEET_DIR = os.path.join(PI_AGENT_DIR, "fleet")
SESSIONS_DIR = os.path.join(PI_AGENT_DIR, "sessions")
FLEET_CONFIG_PATH = os.path.join(PI_AGENT_DIR, "fleet-config.json")

FLEET_DIR_ENV = "PI_FLEET_DIR"
SESSIONS_DIR_ENV = "PI_SESSIONS_DIR"
HEARTBEAT_INTERVAL_ENV = "PI_FLEET_HEARTBEAT_INTERVAL"

# ── Heartbeat files ──────────────────────────────────────────────────────────

HEARTBEAT_SUFFIX = ".json"
"""Heartbeat files are named ``<pid>.json``."""

HEARTBEAT_TMP_SUFFIX = ".tmp"
"""In-flight writes land in ``<pid>.json.<random>.tmp`` before the rename."""

HEARTBEAT_INTERVAL = 30.0
"""Seconds between periodic re-publishes of a live heartbeat."""

SNIPPET_MAX_LEN = 200
"""Max characters kept for the last user / assistant message excerpts."""

# ── Session history ──────────────────────────────────────────────────────────

SESSION_FILE_SUFFIX = ".jsonl"
"""Only files with this suffix count as recorded sessions."""

SESSION_KEY_MARKER = "--"
"""Wraps an encoded session directory name on both sides."""

# ── Git ──────────────────────────────────────────────────────────────────────

GIT_TIMEOUT = 10
"""Timeout (seconds) for every git subprocess call."""

DETACHED_BRANCH = "HEAD (detached)"
"""Branch label for a worktree with a detached HEAD."""

UNKNOWN_BRANCH = "unknown"
"""Branch label when git reports neither a branch nor a detached HEAD."""

# ── Agent launch ─────────────────────────────────────────────────────────────

AGENT_COMMAND = "pi"
"""Command the user runs to start an agent inside a worktree."""

# ── Time unit divisors (for time_ago display) ─────────────────────────────────

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
JUST_NOW_SECONDS = 5
"""Anything younger than this is shown as "just now"."""
