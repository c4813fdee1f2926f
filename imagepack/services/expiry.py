# imagepack/services/expiry.py
import heapq
import itertools
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from imagepack.core.logging import get_logger

logger = get_logger(__name__)


class ExpiryWorker:
    """
    Deletes batch directories once their deadline passes

    A single daemon thread owns a heap of deadlines. Scheduling only pushes
    onto the heap, so it never blocks a request, and there is no way to
    cancel a scheduled deletion. Failures are logged inside the worker.
    """

    def __init__(self, remove: Callable[[Path], None]):
        self._remove = remove
        self._heap: List[Tuple[float, int, Path]] = []
        self._counter = itertools.count()
        self._cond = threading.Condition()
        self._thread: Optional[threading.Thread] = None

    def schedule(self, directory: Path, delay_seconds: float) -> float:
        """
        Schedule a directory for deletion

        Returns:
            Monotonic deadline of the deletion
        """
        deadline = time.monotonic() + delay_seconds
        with self._cond:
            heapq.heappush(self._heap, (deadline, next(self._counter), directory))
            self._ensure_started()
            self._cond.notify()
        logger.info(f"Scheduled cleanup of {directory} in {delay_seconds:.0f}s")
        return deadline

    def pending(self) -> int:
        """Number of deletions still waiting"""
        with self._cond:
            return len(self._heap)

    def _ensure_started(self) -> None:
        if self._thread is None or not self._thread.is_alive():
            self._thread = threading.Thread(target=self._run, name="batch-expiry", daemon=True)
            self._thread.start()

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._heap:
                    self._cond.wait()
                deadline, _, directory = self._heap[0]
                remaining = deadline - time.monotonic()
                if remaining > 0:
                    self._cond.wait(remaining)
                    continue
                heapq.heappop(self._heap)
            self._expire(directory)

    def _expire(self, directory: Path) -> None:
        try:
            self._remove(directory)
        except Exception as e:
            logger.error(f"Error cleaning up batch directory {directory}: {e}")
