"""
Heartbeat publisher: keeps the calling process's own heartbeat current.

``start_heartbeat`` returns a ``HeartbeatPublisher`` handle. Lifecycle event
handlers receive that handle explicitly and call its ``on_*`` methods; every
call stamps ``updated_at`` and re-publishes the record. A daemon thread also
re-publishes on a fixed interval so readers can tell an idle agent from a
missing one.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from .config import get_heartbeat_interval
from .constants import SNIPPET_MAX_LEN
from .git import GitError, get_current_branch, get_repo_name
from .heartbeat import HeartbeatStore
from .models import ActivityStatus, Heartbeat

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(UTC).isoformat()


def extract_text(message: Any) -> str | None:
    """Pull plain text out of a chat message dict, capped at SNIPPET_MAX_LEN.

    ``content`` may be a string or a list of parts; only ``text`` parts count.
    """
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str):
        text = content
    elif isinstance(content, list):
        text = " ".join(
            str(part.get("text", ""))
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        )
    else:
        return None
    return text[:SNIPPET_MAX_LEN] or None


class HeartbeatPublisher:
    """Handle owning one process's heartbeat record for its lifetime."""

    def __init__(self, record: Heartbeat, store: HeartbeatStore, interval: float):
        self._record = record
        self._store = store
        self._interval = interval
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._stopped = False

    @property
    def record(self) -> Heartbeat:
        """A snapshot copy of the current record."""
        with self._lock:
            return replace(self._record)

    def start(self) -> None:
        """Publish the initial record and start the periodic timer."""
        self.update()
        self._thread = threading.Thread(
            target=self._run, name=f"heartbeat-{self._record.pid}", daemon=True
        )
        self._thread.start()

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.update()
            except Exception as e:
                logger.warning("Periodic heartbeat publish failed: %s", e)

    def _mutate(self, mutate: Callable[[Heartbeat], None]) -> None:
        """Apply ``mutate`` to the record, stamp ``updated_at`` and re-publish."""
        with self._lock:
            if self._stopped:
                return
            mutate(self._record)
            self._record.updated_at = _now()
            self._store.publish(self._record)

    def update(self, **changes: Any) -> None:
        """Set record fields by name and re-publish."""
        for name in changes:
            if not hasattr(self._record, name):
                raise AttributeError(f"Heartbeat has no field {name!r}")

        def _apply(record: Heartbeat) -> None:
            for name, value in changes.items():
                setattr(record, name, value)

        self._mutate(_apply)

    def stop(self) -> None:
        """Stop the timer and retract the record. Safe to call twice."""
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self._interval)
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._store.retract(self._record.pid)

    def __enter__(self) -> HeartbeatPublisher:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    # ── Lifecycle events ────────────────────────────────────────────────────

    def on_agent_start(self) -> None:
        self.update(status=ActivityStatus.STREAMING, current_tool=None)

    def on_agent_end(self) -> None:
        self.update(status=ActivityStatus.IDLE, current_tool=None)

    def on_tool_start(self, tool_name: str) -> None:
        self.update(status=ActivityStatus.EXECUTING_TOOL, current_tool=tool_name)

    def on_tool_end(self) -> None:
        self.update(status=ActivityStatus.STREAMING, current_tool=None)

    def on_model_select(self, model_id: str) -> None:
        self.update(model=model_id)

    def on_turn_end(self) -> None:
        def _bump(record: Heartbeat) -> None:
            record.turns += 1

        self._mutate(_bump)

    def on_message_end(self, message: dict) -> None:
        """Record the latest user or assistant text."""
        text = extract_text(message)
        if not text:
            return
        role = message.get("role")
        if role == "user":
            self.update(last_user_message=text)
        elif role == "assistant":
            self.update(last_assistant_snippet=text)


def build_heartbeat(
    cwd: str, session_file: str | None = None, model: str | None = None
) -> Heartbeat:
    """Initial record for the current process. Git metadata is best-effort."""
    git_repo = None
    try:
        git_repo = get_repo_name(cwd)
    except GitError as e:
        logger.debug("Could not resolve repo name for %s: %s", cwd, e)

    now = _now()
    return Heartbeat(
        pid=os.getpid(),
        cwd=cwd,
        git_repo=git_repo,
        git_branch=get_current_branch(cwd),
        worktree_name=os.path.basename(cwd.rstrip("/\\")) or cwd,
        model=model,
        session_file=session_file,
        started_at=now,
        updated_at=now,
    )


def start_heartbeat(
    cwd: str,
    session_file: str | None = None,
    *,
    model: str | None = None,
    store: HeartbeatStore | None = None,
    interval: float | None = None,
) -> HeartbeatPublisher:
    """Publish this process's heartbeat and keep it fresh until ``stop()``."""
    publisher = HeartbeatPublisher(
        build_heartbeat(cwd, session_file, model),
        store or HeartbeatStore(),
        interval if interval is not None else get_heartbeat_interval(),
    )
    publisher.start()
    return publisher
