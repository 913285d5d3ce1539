"""
Heartbeat store: a leaderless, file-backed presence registry.

Each live agent process owns exactly one ``<pid>.json`` file in the fleet
directory and rewrites it whenever its state changes (and periodically).
Any process may scan the directory. A scan re-derives liveness from the OS
for every file and reclaims records whose owner is gone or whose content is
corrupt. There are no locks: writers only touch their own key and always
rename a complete file into place, so readers never see a torn record.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import sys
import tempfile

from .config import get_fleet_dir
from .constants import HEARTBEAT_SUFFIX, HEARTBEAT_TMP_SUFFIX
from .models import Heartbeat

logger = logging.getLogger(__name__)

# Windows process-query constants
_PROCESS_QUERY_LIMITED_INFORMATION = 0x1000
_STILL_ACTIVE = 259
_ERROR_ACCESS_DENIED = 5


def _is_pid_running_windows(pid: int) -> bool:
    """Probe a pid on Windows via OpenProcess/GetExitCodeProcess."""
    import ctypes

    kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
    handle = kernel32.OpenProcess(_PROCESS_QUERY_LIMITED_INFORMATION, False, pid)
    if not handle:
        # Access denied means the process exists but belongs to someone else
        return kernel32.GetLastError() == _ERROR_ACCESS_DENIED
    try:
        code = ctypes.c_ulong()
        if not kernel32.GetExitCodeProcess(handle, ctypes.byref(code)):
            return True
        return code.value == _STILL_ACTIVE
    finally:
        kernel32.CloseHandle(handle)


def is_pid_running(pid: int) -> bool:
    """Return True unless the OS confirms that ``pid`` names no process.

    A probe that fails for any reason other than "no such process" (most
    commonly a permission error for another user's process) counts as alive:
    a record is never reclaimed just because we could not confirm its owner.
    """
    if pid <= 0:
        return False
    if sys.platform == "win32":
        try:
            return _is_pid_running_windows(pid)
        except OSError as e:
            logger.debug("Liveness probe for PID %d inconclusive: %s", pid, e)
            return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    except OSError as e:
        logger.debug("Liveness probe for PID %d inconclusive: %s", pid, e)
        return True
    return True


def _pid_from_filename(name: str) -> int | None:
    """``4242.json`` -> 4242; anything else -> None."""
    if not name.endswith(HEARTBEAT_SUFFIX):
        return None
    stem = name[: -len(HEARTBEAT_SUFFIX)]
    if not stem.isdigit():
        return None
    return int(stem)


def _pid_from_tmp_filename(name: str) -> int | None:
    """``4242.json.x1y2.tmp`` -> 4242; anything else -> None."""
    if not name.endswith(HEARTBEAT_TMP_SUFFIX):
        return None
    stem, sep, _rest = name.partition(HEARTBEAT_SUFFIX + ".")
    if not sep or not stem.isdigit():
        return None
    return int(stem)


class HeartbeatStore:
    """Shared namespace of heartbeat records keyed by process id."""

    def __init__(self, fleet_dir: str | None = None):
        self.fleet_dir = fleet_dir or get_fleet_dir()

    def path_for(self, pid: int) -> str:
        return os.path.join(self.fleet_dir, f"{pid}{HEARTBEAT_SUFFIX}")

    def _ensure_dir(self) -> None:
        os.makedirs(self.fleet_dir, exist_ok=True)

    def publish(self, record: Heartbeat) -> None:
        """Atomically overwrite the record stored under ``record.pid``.

        The full content is written to a temp file in the same directory and
        then renamed over the final name, so a concurrent reader sees either
        the previous record or the new one, never a partial write.
        """
        self._ensure_dir()
        data = json.dumps(record.to_dict(), indent=2)
        fd, tmp_path = tempfile.mkstemp(
            dir=self.fleet_dir,
            prefix=f"{record.pid}{HEARTBEAT_SUFFIX}.",
            suffix=HEARTBEAT_TMP_SUFFIX,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(data)
            os.replace(tmp_path, self.path_for(record.pid))
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_path)
            raise

    def retract(self, pid: int) -> None:
        """Remove the record for ``pid``. Removing an absent record is a no-op."""
        with contextlib.suppress(FileNotFoundError):
            os.unlink(self.path_for(pid))

    def _reclaim(self, path: str, reason: str) -> None:
        """Best-effort delete; another reader may have beaten us to it."""
        try:
            os.unlink(path)
            logger.debug("Reclaimed %s (%s)", path, reason)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug("Could not reclaim %s (%s): %s", path, reason, e)

    def _read(self, pid: int) -> Heartbeat | None:
        """Read one record, reclaiming it if stale or corrupt."""
        path = self.path_for(pid)
        if not is_pid_running(pid):
            self._reclaim(path, f"PID {pid} not running")
            return None
        try:
            with open(path, "rb") as f:
                raw = f.read()
        except FileNotFoundError:
            # Retracted or reclaimed between listing and reading
            return None
        except OSError as e:
            logger.debug("Error reading heartbeat %s: %s", path, e)
            return None
        try:
            record = Heartbeat.from_dict(json.loads(raw.decode("utf-8")))
            if record.pid != pid:
                raise ValueError(f"record pid {record.pid} does not match file key {pid}")
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors
            self._reclaim(path, f"corrupt: {e}")
            return None
        return record

    def get(self, pid: int) -> Heartbeat | None:
        """Return the live record for ``pid``, or None."""
        return self._read(pid)

    def scan(self) -> list[Heartbeat]:
        """Return every valid record, reclaiming stale and corrupt ones.

        Reclamation is best-effort and never raises. The result is sorted by
        pid so repeated scans over the same state compare equal.
        """
        try:
            names = os.listdir(self.fleet_dir)
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.debug("Cannot list fleet dir %s: %s", self.fleet_dir, e)
            return []

        heartbeats: list[Heartbeat] = []
        for name in names:
            pid = _pid_from_filename(name)
            if pid is None:
                tmp_pid = _pid_from_tmp_filename(name)
                if tmp_pid is not None and not is_pid_running(tmp_pid):
                    # Writer died between mkstemp and rename
                    self._reclaim(os.path.join(self.fleet_dir, name), "orphaned temp file")
                continue
            record = self._read(pid)
            if record is not None:
                heartbeats.append(record)

        heartbeats.sort(key=lambda h: h.pid)
        return heartbeats
