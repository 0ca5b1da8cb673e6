"""
Per-project exclusive locks.

Renumbering touches many rows of one project, so two requests on the same
project must not interleave. Requests on different projects never contend.
"""

import logging
import threading
import weakref
from contextlib import contextmanager

from tracker import settings
from tracker.errors import ConcurrencyConflictError

logger = logging.getLogger("tracker.ordering")


class ProjectLocks:
    """
    Registry of one lock per project id, created on first use.

    Entries are weak: a lock nobody holds or waits on is dropped, so ids of
    missing or finished projects do not pile up.
    """

    def __init__(self, timeout: float = None):
        self.timeout = settings.ORDERING_LOCK_TIMEOUT_SECONDS if timeout is None else timeout
        self._locks = weakref.WeakValueDictionary()
        self._registry_lock = threading.Lock()

    def _lock_for(self, project_id: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(project_id)
            if lock is None:
                lock = self._locks[project_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, project_id: int):
        """
        Acquire the project lock, yield, release on every exit path.

        Raises ConcurrencyConflictError when the lock is not free within
        the configured timeout.
        """
        lock = self._lock_for(project_id)
        if not lock.acquire(timeout=self.timeout):
            logger.warning(
                "project_lock_timeout",
                extra={"project_id": project_id, "timeout_seconds": self.timeout},
            )
            raise ConcurrencyConflictError(
                f"Could not acquire ordering lock for project {project_id} within {self.timeout}s"
            )
        try:
            yield
        finally:
            lock.release()


# shared by every BacklogService in the process
project_locks = ProjectLocks()
