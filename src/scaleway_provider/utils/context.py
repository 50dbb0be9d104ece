"""Cancellation token passed through every host callback."""

import threading
import time
from typing import List, Optional

from scaleway_provider.utils.errors import CancelledError


class Context:
    """Cancellation token with an optional deadline.

    The host cancels a callback by calling cancel() on the context it handed
    over. Child contexts created with with_timeout() are cancelled with their
    parent.
    """

    def __init__(self, deadline: Optional[float] = None, parent: Optional['Context'] = None):
        """Initialize context.

        Args:
            deadline: Absolute time.monotonic() deadline, or None
            parent: Parent context whose cancellation propagates here
        """
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: List['Context'] = []
        self.deadline = deadline
        if parent is not None:
            if parent.deadline is not None:
                self.deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
            parent._add_child(self)

    @classmethod
    def background(cls) -> 'Context':
        """Context that is never cancelled and has no deadline."""
        return cls()

    def _add_child(self, child: 'Context') -> None:
        with self._lock:
            if self._event.is_set():
                child.cancel()
            else:
                self._children.append(child)

    def with_timeout(self, seconds: Optional[float]) -> 'Context':
        """Create a child context expiring after the given number of seconds.

        Args:
            seconds: Timeout in seconds, None for no extra deadline

        Returns:
            Child context
        """
        deadline = time.monotonic() + seconds if seconds is not None else None
        return Context(deadline=deadline, parent=self)

    def cancel(self) -> None:
        """Cancel this context and all of its children."""
        with self._lock:
            self._event.set()
            children = list(self._children)
        for child in children:
            child.cancel()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self) -> None:
        """Raise CancelledError if the context was cancelled."""
        if self.cancelled:
            raise CancelledError()

    def sleep(self, seconds: float) -> None:
        """Sleep, waking up early when cancelled.

        Args:
            seconds: Time to sleep

        Raises:
            CancelledError: If the context is cancelled before or during the sleep
        """
        self.check()
        if seconds > 0 and self._event.wait(seconds):
            raise CancelledError()
