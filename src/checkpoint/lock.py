# src/checkpoint/lock.py
"""Single-writer marker per project.

The owner's PID is written to a private temp file first, then published
with ``os.link``, which fails if the lock already exists. The lock file
therefore never exists without a PID in it.

A lock whose PID is dead is reclaimed. A lock with unreadable content is
treated as held until it is older than ``stale_after_s``. Reclaiming
renames the old file aside before deleting it, and restores it if a live
owner turns out to have replaced it in the meantime.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
import time
import uuid
from pathlib import Path
from typing import Callable

logger = logging.getLogger(__name__)

STALE_AFTER_S = 60.0


class ProjectLockedError(RuntimeError):
    """Another live worker already owns the project."""

    def __init__(self, project_id: str, pid: int | None):
        self.project_id = project_id
        self.pid = pid
        super().__init__(f"Project {project_id!r} is locked by process {pid}")


def _pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def _parse_pid(text: str) -> int | None:
    try:
        pid = int(text.strip())
    except ValueError:
        return None
    return pid if pid > 0 else None


class ProjectLock:
    """Exclusive lock file for one project.

    Usable as a context manager::

        with ProjectLock(path, project_id):
            ...

    Args:
        path: Lock file location.
        project_id: Project the lock guards (for error messages).
        stale_after_s: Age after which a lock without a readable PID is
            considered abandoned.
        clock: Returns epoch seconds (injectable for tests).
    """

    def __init__(
        self,
        path: Path,
        project_id: str,
        stale_after_s: float = STALE_AFTER_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._path = Path(path)
        self._project_id = project_id
        self._stale_after_s = stale_after_s
        self._clock = clock
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def owner_pid(self) -> int | None:
        try:
            return _parse_pid(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            ProjectLockedError: A live process holds the lock, or a lock
                without a readable PID is still recent.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._write_pid_file()
        try:
            for _ in range(3):
                try:
                    os.link(tmp, self._path)
                except FileExistsError:
                    self._reclaim_if_stale()
                    continue
                self._held = True
                return
        finally:
            tmp.unlink(missing_ok=True)
        raise ProjectLockedError(self._project_id, self.owner_pid())

    def release(self) -> None:
        if not self._held:
            return
        if self.owner_pid() == os.getpid():
            self._path.unlink(missing_ok=True)
        else:
            logger.warning("Lock for %s changed owner; leaving it in place", self._project_id)
        self._held = False

    def __enter__(self) -> ProjectLock:
        self.acquire()
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()

    # --- Internal helpers ---

    def _write_pid_file(self) -> Path:
        fd, name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent,
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(str(os.getpid()))
            f.flush()
            os.fsync(f.fileno())
        return Path(name)

    def _inspect(self, path: Path) -> tuple[int | None, float] | None:
        """PID and mtime of ``path``, or None when it does not exist."""
        try:
            mtime = path.stat().st_mtime
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return _parse_pid(text), mtime

    def _is_stale(self, pid: int | None, mtime: float) -> bool:
        if pid is None:
            return self._clock() - mtime > self._stale_after_s
        return not _pid_alive(pid)

    def _reclaim_if_stale(self) -> None:
        """Remove the existing lock if abandoned.

        Raises:
            ProjectLockedError: The existing lock is held.
        """
        found = self._inspect(self._path)
        if found is None:
            return
        pid, mtime = found
        if not self._is_stale(pid, mtime):
            raise ProjectLockedError(self._project_id, pid)

        aside = self._path.with_name(f".{self._path.name}.{uuid.uuid4().hex[:8]}.stale")
        try:
            os.rename(self._path, aside)
        except FileNotFoundError:
            return
        moved = self._inspect(aside)
        if moved is not None and not self._is_stale(*moved):
            # A live owner published between the check and the rename.
            with contextlib.suppress(FileExistsError):
                os.link(aside, self._path)
            aside.unlink(missing_ok=True)
            raise ProjectLockedError(self._project_id, moved[0])

        logger.warning("Reclaiming stale lock for %s (pid %s)", self._project_id, pid)
        aside.unlink(missing_ok=True)
