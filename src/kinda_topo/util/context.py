import threading
import time

from kinda_topo.core.errors import Cancelled


class Context:
    '''
    Cancellation signal handed down to every remote call and to the readiness poller.

    A context is done when `cancel()` was called on it (or on its parent) or when its deadline passed.
    '''

    def __init__(self, timeout: float | None = None, parent: "Context" = None) -> None:
        self._event = threading.Event()
        self._children: list[Context] = []
        self._lock = threading.Lock()
        self.deadline: float | None = None
        if timeout is not None:
            self.deadline = time.monotonic() + timeout
        if parent is not None:
            if parent.deadline is not None and (self.deadline is None or parent.deadline < self.deadline):
                self.deadline = parent.deadline
            parent._add_child(self)

    @classmethod
    def background(cls) -> "Context":
        return cls()

    def with_timeout(self, timeout: float) -> "Context":
        return Context(timeout, parent=self)

    def cancel(self):
        self._event.set()
        with self._lock:
            children = list(self._children)
        for child in children:
            child.cancel()

    def cancelled(self) -> bool:
        return self._event.is_set()

    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def done(self) -> bool:
        return self.cancelled() or self.expired()

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self):
        if self.cancelled():
            raise Cancelled('context cancelled')
        if self.expired():
            raise Cancelled('context deadline exceeded')

    def wait(self, seconds: float) -> bool:
        '''Sleeps up to `seconds`, returns True if the context got done meanwhile.'''
        end = time.monotonic() + seconds
        if self.deadline is not None:
            end = min(end, self.deadline)
        while not self._event.is_set():
            left = end - time.monotonic()
            if left <= 0:
                break
            self._event.wait(left)
        return self.done()

    def _add_child(self, child: "Context"):
        with self._lock:
            self._children.append(child)
        if self.cancelled():
            child.cancel()
