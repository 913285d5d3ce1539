"""User configuration for Agent Fleet.

Defaults come from ``constants``. An optional JSON file at
~/.pi/agent/fleet-config.json can override them, and environment variables
override both.
"""

from __future__ import annotations

import json
import logging
import os

from .constants import (
    FLEET_CONFIG_PATH,
    FLEET_DIR,
    FLEET_DIR_ENV,
    HEARTBEAT_INTERVAL,
    HEARTBEAT_INTERVAL_ENV,
    SESSIONS_DIR,
    SESSIONS_DIR_ENV,
)

logger = logging.getLogger(__name__)

# Loaded once on first call
_custom_config: dict | None = None


def _load_config() -> dict:
    """Load optional user config from ~/.pi/agent/fleet-config.json.

    Expected format:
    {
        "fleet_dir": "~/.pi/agent/fleet",
        "sessions_dir": "~/.pi/agent/sessions",
        "heartbeat_interval": 30
    }
    """
    global _custom_config
    if _custom_config is not None:
        return _custom_config
    _custom_config = {}
    if os.path.exists(FLEET_CONFIG_PATH):
        try:
            with open(FLEET_CONFIG_PATH, encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                _custom_config = data
            else:
                logger.debug("Ignoring non-object config in %s", FLEET_CONFIG_PATH)
        except (OSError, json.JSONDecodeError) as e:
            logger.debug("Error reading config %s: %s", FLEET_CONFIG_PATH, e)
    return _custom_config


def reset_config() -> None:
    """Forget the cached config so the next accessor re-reads it."""
    global _custom_config
    _custom_config = None


def _path_setting(env_var: str, key: str, default: str) -> str:
    value = os.environ.get(env_var) or _load_config().get(key)
    if not isinstance(value, str) or not value:
        return default
    return os.path.expanduser(value)


def get_fleet_dir() -> str:
    """Directory holding one ``<pid>.json`` heartbeat per live agent."""
    return _path_setting(FLEET_DIR_ENV, "fleet_dir", FLEET_DIR)


def get_sessions_dir() -> str:
    """Root directory of the per-worktree session history directories."""
    return _path_setting(SESSIONS_DIR_ENV, "sessions_dir", SESSIONS_DIR)


def get_heartbeat_interval() -> float:
    """Seconds between periodic heartbeat re-publishes."""
    raw = os.environ.get(HEARTBEAT_INTERVAL_ENV)
    if raw is None:
        raw = _load_config().get("heartbeat_interval")
    if raw is None:
        return HEARTBEAT_INTERVAL
    try:
        interval = float(raw)
    except (TypeError, ValueError):
        logger.debug("Invalid heartbeat interval %r, using default", raw)
        return HEARTBEAT_INTERVAL
    return interval if interval > 0 else HEARTBEAT_INTERVAL
