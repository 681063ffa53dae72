"""
Scoped global-listener subscriptions.

An editing surface needs document-level listeners (pointer-up anywhere ends
a drag, Escape cancels a connection). Every such listener is registered
through a ListenerScope owned by the surface, and the scope is released when
the surface goes away, so listeners never outlive the surface that
registered them:

    with ListenerScope() as scope:
        scope.on('pointerup', handle_pointer_up)
        ...
    # all handlers dropped here

After release, emit() is a no-op and further subscriptions are refused.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class ListenerScope:
    """Owns the global event handlers of one editing surface."""

    def __init__(self, name: str = 'canvas'):
        self.name = name
        self._callbacks: Dict[str, List[Callable]] = {}
        self._on_release: List[Callable[[], Any]] = []
        self._released = False

    @property
    def active(self) -> bool:
        return not self._released

    def on(self, event: str, callback: Callable) -> Callable[[], None]:
        """
        Register a callback for an event type.

        Returns a function that removes just this callback.
        """
        if self._released:
            raise RuntimeError(f"Listener scope '{self.name}' was already released")
        self._callbacks.setdefault(event, []).append(callback)

        def unsubscribe():
            self.off(event, callback)

        return unsubscribe

    def off(self, event: str, callback: Callable) -> None:
        """Remove a callback for an event type."""
        if event in self._callbacks and callback in self._callbacks[event]:
            self._callbacks[event].remove(callback)

    def on_release(self, callback: Callable[[], Any]) -> None:
        """Run callback when the scope is released (e.g. detach a JS listener)."""
        if self._released:
            callback()
            return
        self._on_release.append(callback)

    def listener_count(self, event: str = None) -> int:
        if event is not None:
            return len(self._callbacks.get(event, []))
        return sum(len(cbs) for cbs in self._callbacks.values())

    def emit(self, event: str, data: Any = None) -> int:
        """Emit an event to all registered callbacks. Returns how many ran."""
        if self._released:
            logger.debug(f"Dropped '{event}' on released scope '{self.name}'")
            return 0

        callbacks = list(self._callbacks.get(event, []))
        for callback in callbacks:
            try:
                result = callback(data)
                if asyncio.iscoroutine(result):
                    asyncio.create_task(result)
            except Exception as e:
                logger.exception(f"Error in '{event}' listener of scope '{self.name}': {e}")
        return len(callbacks)

    def release(self) -> None:
        """Drop every handler and run release hooks. Idempotent."""
        if self._released:
            return
        self._released = True
        self._callbacks.clear()
        hooks, self._on_release = self._on_release, []
        for hook in hooks:
            try:
                hook()
            except Exception as e:
                logger.exception(f"Release hook of scope '{self.name}' failed: {e}")
        logger.debug(f"Released listener scope '{self.name}'")

    def __enter__(self) -> 'ListenerScope':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
