from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Hashable, Optional


class _Call:
    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Any = None
        self.error: Optional[BaseException] = None


class SingleFlight:
    """
    Collapses concurrent calls for the same key into one execution.

    The first caller for a key runs `fn`; callers arriving while it is in
    flight block until it finishes and receive the same result, or the same
    exception. The key is released once the call completes, so a later call
    runs `fn` again.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: Dict[Hashable, _Call] = {}

    def do(self, key: Hashable, fn: Callable[[], Any]) -> Any:
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = _Call()
                self._calls[key] = call

        if not leader:
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.result

        try:
            call.result = fn()
            return call.result
        except BaseException as e:
            call.error = e
            raise
        finally:
            with self._lock:
                self._calls.pop(key, None)
            call.done.set()

    def in_flight(self) -> int:
        with self._lock:
            return len(self._calls)
