# observers.py
# Synchronous fan-out of engine events to registered callbacks.

import logging
from collections import deque
from itertools import count
from typing import Any, Callable, Deque, Dict, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)


class ObserverRegistry:
    """
    Ordered slot map of callbacks.

    Handles are unique integers, never reused. Callbacks run in
    registration order; an exception in one callback is logged and the
    rest still run. Subscribing or unsubscribing from inside a callback is
    allowed. An event raised from inside a callback is queued and
    delivered after the current one, so deliveries never interleave.

    Usage:
        registry = ObserverRegistry("navigation")
        handle = registry.subscribe(print)
        registry.notify("hello")
        registry.unsubscribe(handle)
    """

    def __init__(self, name: str, handles: Optional[Iterator[int]] = None) -> None:
        self.name = name
        self._slots: Dict[int, Callable[..., Any]] = {}
        # Registries that share an iterator never hand out the same handle
        self._handles = handles or count(1)
        self._pending: Deque[Tuple[Any, ...]] = deque()
        self._delivering = False

    def __len__(self) -> int:
        return len(self._slots)

    def subscribe(self, callback: Callable[..., Any]) -> int:
        handle = next(self._handles)
        self._slots[handle] = callback
        return handle

    def unsubscribe(self, handle: int) -> bool:
        """Remove one registration. Returns False if the handle was unknown."""
        return self._slots.pop(handle, None) is not None

    def clear(self) -> None:
        self._slots.clear()
        self._pending.clear()

    def notify(self, *args: Any) -> None:
        self._pending.append(args)
        if self._delivering:
            return

        self._delivering = True
        try:
            while self._pending:
                self._deliver(self._pending.popleft())
        finally:
            self._delivering = False

    def _deliver(self, args: Tuple[Any, ...]) -> None:
        for handle, callback in list(self._slots.items()):
            # Removed by an earlier callback of this same delivery
            if handle not in self._slots:
                continue
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Error in {self.name} callback #{handle}: {e}")
