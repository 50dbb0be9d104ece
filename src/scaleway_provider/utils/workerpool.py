"""Bounded worker pool collecting task errors."""

import os
import threading
from concurrent.futures import ThreadPoolExecutor, Future
from typing import Callable, List, Optional

from scaleway_provider.utils.errors import FatalError
from scaleway_provider.utils.logging import get_logger

logger = get_logger(__name__)

Task = Callable[[], Optional[Exception]]


def default_pool_size() -> int:
    """Default number of workers: CPU count capped at 8."""
    return min(os.cpu_count() or 1, 8)


class WorkerPool:
    """Runs tasks on at most `size` threads and gathers their errors.

    A task returns None on success or the error it wants reported. A task that
    raises is reported as a FatalError wrapping the exception.
    """

    def __init__(self, size: Optional[int] = None):
        """Initialize worker pool.

        Args:
            size: Maximum number of concurrent tasks
        """
        self.size = size or default_pool_size()
        self._executor = ThreadPoolExecutor(max_workers=self.size, thread_name_prefix='worker-pool')
        self._futures: List[Future] = []
        self._lock = threading.Lock()
        self._closed = False

    def add_task(self, task: Task) -> None:
        """Queue a task.

        Args:
            task: Zero-argument callable returning None or an error

        Raises:
            RuntimeError: If the pool is already closed
        """
        with self._lock:
            if self._closed:
                raise RuntimeError('cannot add a task to a closed worker pool')
            self._futures.append(self._executor.submit(self._run, task))

    @staticmethod
    def _run(task: Task) -> Optional[Exception]:
        try:
            return task()
        except Exception as e:
            logger.debug(f"Worker pool task raised: {e}")
            return FatalError(f"task failed: {e}", cause=e)

    def close_and_wait(self) -> List[Exception]:
        """Stop accepting tasks and wait for the queued ones.

        Returns:
            The errors reported by the tasks, in submission order
        """
        with self._lock:
            self._closed = True
            futures = list(self._futures)

        errors = []
        for future in futures:
            error = future.result()
            if error is not None:
                errors.append(error)

        self._executor.shutdown(wait=True)
        return errors
