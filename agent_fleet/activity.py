"""
Session history lookup for worktrees.

Each worktree's sessions live in ``<sessions_dir>/<key>/*.jsonl`` where the
key is derived from the worktree's absolute path. The encoding rule,
applied in this order:

1. ``%`` -> ``%25``, ``-`` -> ``%2D``, ``\\`` -> ``%5C``
2. drop one leading ``/``
3. every remaining ``/`` -> ``-``
4. wrap the result in ``--`` on both sides

Step 1 frees ``-`` to stand for a separator, so two different paths can never
share a key. Paths without ``%``, ``-`` or ``\\`` encode exactly as the agent
itself names its session directories (``/Users/me/foo`` ->
``--Users-me-foo--``).
"""

from __future__ import annotations

import logging
import os

from .config import get_sessions_dir
from .constants import SESSION_FILE_SUFFIX, SESSION_KEY_MARKER

logger = logging.getLogger(__name__)

_ESCAPES = (("%", "%25"), ("-", "%2D"), ("\\", "%5C"))


def encode_session_path(absolute_path: str) -> str:
    """Map an absolute path to its session-directory name."""
    escaped = absolute_path
    for raw, code in _ESCAPES:
        escaped = escaped.replace(raw, code)
    if escaped.startswith("/"):
        escaped = escaped[1:]
    return SESSION_KEY_MARKER + escaped.replace("/", "-") + SESSION_KEY_MARKER


def decode_session_path(key: str) -> str:
    """Inverse of ``encode_session_path`` for keys it produced."""
    marker = SESSION_KEY_MARKER
    if len(key) < 2 * len(marker) or not (key.startswith(marker) and key.endswith(marker)):
        raise ValueError(f"not an encoded session key: {key!r}")
    body = key[len(marker) : -len(marker)]
    path = "/" + body.replace("-", "/")
    for raw, code in reversed(_ESCAPES):
        path = path.replace(code, raw)
    return path


def session_dir_for(absolute_path: str, sessions_dir: str | None = None) -> str:
    """Directory holding the session files for a worktree."""
    return os.path.join(sessions_dir or get_sessions_dir(), encode_session_path(absolute_path))


def count_sessions(absolute_path: str, sessions_dir: str | None = None) -> int:
    """Number of recorded sessions for a worktree; 0 if none or unreadable."""
    session_dir = session_dir_for(absolute_path, sessions_dir)
    try:
        with os.scandir(session_dir) as entries:
            return sum(
                1
                for entry in entries
                if entry.name.endswith(SESSION_FILE_SUFFIX) and entry.is_file()
            )
    except FileNotFoundError:
        return 0
    except OSError as e:
        logger.debug("Cannot read session dir %s: %s", session_dir, e)
        return 0
