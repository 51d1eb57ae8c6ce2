#!/usr/bin/env python3
"""
Cancellation and deadlines for store operations.

Every store operation takes an optional ``Context``. The store checks it
before doing any work and the bulk importer keeps checking it while jobs
are dispatched and collected. A context is safe to share between threads.

Example:
    ctx = Context.with_timeout(2.0)
    store.bulk_import(products, ctx=ctx)

    # from another thread
    ctx.cancel()
"""
import signal
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from inventorystore.errors import DeadlineExceededError, OperationCancelledError


class Context:
    """A cancellation signal with an optional deadline."""

    def __init__(self, deadline: Optional[float] = None, name: Optional[str] = None):
        """
        Args:
            deadline: Absolute ``time.monotonic()`` value after which the context is done
            name: Name used in error messages
        """
        self.name = name or f"ctx-{id(self)}"
        self.deadline = deadline
        self.cancel_event = threading.Event()

    @classmethod
    def with_timeout(cls, seconds: float, name: Optional[str] = None) -> "Context":
        return cls(deadline=time.monotonic() + seconds, name=name)

    def cancel(self) -> None:
        """Request cancellation. Idempotent."""
        self.cancel_event.set()

    def _expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def done(self) -> bool:
        return self.cancel_event.is_set() or self._expired()

    def err(self) -> Optional[OperationCancelledError]:
        """
        Return the error describing why the context is done, or None.

        Explicit cancellation wins over an expired deadline.
        """
        if self.cancel_event.is_set():
            return OperationCancelledError(f"operation cancelled ({self.name})")
        if self._expired():
            return DeadlineExceededError(f"deadline exceeded ({self.name})")
        return None

    def check(self) -> None:
        """Raise the cancellation error if the context is done."""
        error = self.err()
        if error is not None:
            raise error

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the context is done or ``timeout`` seconds pass.

        Returns:
            True if the context is done
        """
        if self.deadline is not None:
            remaining = max(0.0, self.deadline - time.monotonic())
            timeout = remaining if timeout is None else min(timeout, remaining)
        self.cancel_event.wait(timeout)
        return self.done


class _Background(Context):
    """A context that is never done."""

    def cancel(self) -> None:
        pass


_BACKGROUND = _Background(name="background")


def background() -> Context:
    return _BACKGROUND


@contextmanager
def cancel_on_interrupt(ctx: Context) -> Iterator[Context]:
    """
    Cancel ``ctx`` on SIGINT instead of raising KeyboardInterrupt.

    Lets a long bulk import stop dispatching and return its partial
    result. The previous handler is restored on exit. Outside the main
    thread signals cannot be trapped, so this is a no-op there.
    """
    if threading.current_thread() is not threading.main_thread():
        yield ctx
        return

    def _handler(signum, frame):
        ctx.cancel()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield ctx
    finally:
        signal.signal(signal.SIGINT, previous if previous is not None else signal.SIG_DFL)
