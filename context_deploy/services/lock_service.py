# context_deploy/services/lock_service.py
"""Cross-process file lock service

A lock is a JSON file named after the resource. It is created atomically by
writing a private temporary file and hard-linking it into place, so a lock
file is never visible half-written. Waiters judge a held lock stale when it
is older than its lease or when its owner is a dead process on this host.
"""

import asyncio
import json
import logging
import os
import socket
import time
import uuid
from pathlib import Path
from typing import List, Optional

from ..api.exceptions import LockError, LockTimeoutError
from ..constants import (
    LOCK_FILE_SUFFIX,
    DEFAULT_LOCK_TIMEOUT,
    DEFAULT_LOCK_RETRY_INTERVAL,
    DEFAULT_LOCK_STALE_AFTER,
)
from ..models.lock import Lock
from ..utils.file_utils import sanitize_file_name

logger = logging.getLogger(__name__)


def is_process_alive(pid: int) -> bool:
    """Check whether a process exists on this host"""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but owned by another user
        return True
    except OSError:
        return False
    return True


class LockService:
    """Acquire and release named locks under a lock directory"""

    def __init__(self, lock_dir: Path,
                 retry_interval: float = DEFAULT_LOCK_RETRY_INTERVAL,
                 stale_after: float = DEFAULT_LOCK_STALE_AFTER):
        """Initialize lock service

        Args:
            lock_dir: Directory holding lock files
            retry_interval: Default polling interval in seconds
            stale_after: Default lease duration in seconds
        """
        self.lock_dir = Path(lock_dir)
        self.retry_interval = retry_interval
        self.stale_after = stale_after

    def lock_path(self, resource: str) -> Path:
        return self.lock_dir / f"{sanitize_file_name(resource)}{LOCK_FILE_SUFFIX}"

    async def acquire(self, resource: str,
                      timeout: float = DEFAULT_LOCK_TIMEOUT,
                      retry_interval: Optional[float] = None,
                      stale_after: Optional[float] = None) -> Lock:
        """
        Acquire a lock, waiting up to ``timeout`` seconds

        Args:
            resource: Resource name
            timeout: Seconds to wait for a valid lock held elsewhere
            retry_interval: Polling interval (defaults to the service setting)
            stale_after: Lease duration (defaults to the service setting)

        Returns:
            The held Lock

        Raises:
            LockTimeoutError: A valid lock persisted past the timeout
            LockError: The lock file could not be created
        """
        retry_interval = retry_interval if retry_interval is not None else self.retry_interval
        stale_after = stale_after if stale_after is not None else self.stale_after
        path = self.lock_path(resource)
        deadline = time.monotonic() + timeout
        holder_pid = None

        self.lock_dir.mkdir(parents=True, exist_ok=True)

        while True:
            lock = Lock(
                resource=resource,
                owner_pid=os.getpid(),
                acquired_at=time.time(),
                lease_duration=stale_after,
                token=uuid.uuid4().hex,
                path=path
            )
            if self._try_create(lock):
                logger.debug(f"Acquired lock {resource} ({path})")
                return lock

            existing = self.read_lock(path)
            if self._is_stale(path, existing, stale_after):
                if self._remove_stale(path, existing):
                    owner = existing.owner_pid if existing else "unknown"
                    logger.warning(f"Removed stale lock {resource} (owner pid {owner})")
                continue

            holder_pid = existing.owner_pid if existing else None
            if time.monotonic() >= deadline:
                raise LockTimeoutError(resource, timeout, holder_pid)
            await asyncio.sleep(min(retry_interval, max(deadline - time.monotonic(), 0)))

    def _try_create(self, lock: Lock) -> bool:
        """Atomically create the lock file; False if it already exists"""
        temp_path = lock.path.with_name(f".{lock.path.name}.{lock.token}.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(lock.to_dict(), f)
            try:
                os.link(temp_path, lock.path)
            except FileExistsError:
                return False
            return True
        except OSError as e:
            raise LockError(f"Cannot create lock file {lock.path}: {e}", lock.resource)
        finally:
            try:
                os.unlink(temp_path)
            except FileNotFoundError:
                pass

    def read_lock(self, path: Path) -> Optional[Lock]:
        """Read lock metadata; None if missing or unreadable"""
        try:
            with open(path, "r", encoding="utf-8") as f:
                return Lock.from_dict(json.load(f), path)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug(f"Unreadable lock file {path}: {e}")
            return None

    def _is_stale(self, path: Path, lock: Optional[Lock], stale_after: float) -> bool:
        if lock is None:
            # Missing (released meanwhile) or corrupt: judge by file age
            try:
                age = time.time() - path.stat().st_mtime
            except FileNotFoundError:
                return True
            return age > stale_after

        if lock.age() > min(lock.lease_duration, stale_after):
            return True
        if lock.hostname == socket.gethostname() and not is_process_alive(lock.owner_pid):
            return True
        return False

    def _remove_stale(self, path: Path, judged: Optional[Lock]) -> bool:
        """Remove a lock file only if it is still the one judged stale"""
        current = self.read_lock(path)
        if judged is not None and (current is None or current.token != judged.token):
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    async def release(self, lock: Lock) -> None:
        """
        Release a lock

        Idempotent: releasing twice, or releasing a lock that expired and
        was taken over by another owner, leaves other owners' files alone.

        Args:
            lock: Lock returned by ``acquire``
        """
        path = lock.path or self.lock_path(lock.resource)
        current = self.read_lock(path)
        if current is None:
            logger.debug(f"Lock {lock.resource} already released")
            return
        if current.token != lock.token:
            logger.warning(f"Lock {lock.resource} is now held by pid {current.owner_pid}; not releasing")
            return
        try:
            path.unlink()
            logger.debug(f"Released lock {lock.resource}")
        except FileNotFoundError:
            pass

    def is_locked(self, resource: str) -> bool:
        """Whether a non-stale lock exists for a resource"""
        path = self.lock_path(resource)
        if not path.exists():
            return False
        return not self._is_stale(path, self.read_lock(path), self.stale_after)

    def cleanup_stale_locks(self) -> List[str]:
        """
        Remove every stale lock in the lock directory

        Returns:
            Resource names whose locks were removed
        """
        removed = []
        if not self.lock_dir.exists():
            return removed
        for path in sorted(self.lock_dir.glob(f"*{LOCK_FILE_SUFFIX}")):
            lock = self.read_lock(path)
            if self._is_stale(path, lock, self.stale_after) and self._remove_stale(path, lock):
                removed.append(lock.resource if lock else path.stem)
        if removed:
            logger.info(f"Removed {len(removed)} stale lock(s)")
        return removed
