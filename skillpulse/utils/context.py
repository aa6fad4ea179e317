"""
Run-scoped cancellation and deadlines.

A RunContext is threaded through every call that may block during a scraping
run (rate limiter admission, retry backoff, token cool-down). Blocking is done
with RunContext.sleep(), which wakes up as soon as the run is cancelled or its
deadline passes instead of sleeping to completion.
"""

import threading
import time
from typing import Optional


class Cancelled(Exception):
    """Raised when a run is cancelled or its deadline passes during a wait."""


class RunContext:
    """
    Cancellation handle with an optional deadline.

    Contexts form a tree: cancelling a context cancels every child derived from
    it with child(), and a child's deadline never extends past its parent's.
    """

    def __init__(self, timeout: Optional[float] = None, parent: "RunContext" = None):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children = []
        self.parent = parent

        deadline = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline

        if parent is not None:
            parent._register(self)

    def _register(self, child: "RunContext") -> None:
        with self._lock:
            cancelled = self._event.is_set()
            if not cancelled:
                self._children.append(child)
        if cancelled:
            child.cancel()

    def _unregister(self, child: "RunContext") -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def child(self, timeout: Optional[float] = None) -> "RunContext":
        """Derive a context that is cancelled together with this one."""
        return RunContext(timeout=timeout, parent=self)

    def release(self) -> None:
        """Detach from the parent once the work guarded by this context is done."""
        if self.parent is not None:
            self.parent._unregister(self)

    def cancel(self) -> None:
        self._event.set()
        with self._lock:
            children = list(self._children)
            self._children.clear()
        for child in children:
            child.cancel()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled("run cancelled")
        if self.expired:
            raise Cancelled("deadline exceeded")

    def sleep(self, seconds: float) -> None:
        """
        Suspend the calling thread for up to `seconds`.

        Raises:
            Cancelled: If the context is cancelled before or during the wait, or
                if the deadline falls inside the requested interval.
        """
        self.raise_if_cancelled()
        if seconds <= 0:
            return

        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            # Wait out what is left so cancellation still wakes us, then fail.
            if self._event.wait(remaining):
                raise Cancelled("run cancelled")
            raise Cancelled("deadline exceeded")

        if self._event.wait(seconds):
            raise Cancelled("run cancelled")

    def __enter__(self) -> "RunContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
