"""Page lifecycle events for presentation collaborators."""

import logging
from typing import Any, Callable, Dict, List, Tuple

logger = logging.getLogger(__name__)

DATA_READY = "page:data-ready"

Listener = Callable[..., None]


class EventBus:
    """Minimal synchronous publish/subscribe."""

    def __init__(self):
        self._listeners: Dict[str, List[Tuple[Listener, bool]]] = {}

    def on(self, name: str, listener: Listener, once: bool = False) -> None:
        self._listeners.setdefault(name, []).append((listener, once))

    def off(self, name: str, listener: Listener) -> None:
        self._listeners[name] = [
            (fn, once) for fn, once in self._listeners.get(name, []) if fn is not listener
        ]

    def emit(self, name: str, **payload: Any) -> int:
        """Call listeners in subscription order; returns how many were called."""
        listeners = self._listeners.get(name, [])
        self._listeners[name] = [(fn, once) for fn, once in listeners if not once]
        for listener, _ in listeners:
            listener(**payload)
        logger.debug(f"Emitted {name} to {len(listeners)} listener(s)")
        return len(listeners)
