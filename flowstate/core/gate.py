"""
Submission gate.

At most one webhook request is in flight per driver. The gate is a two
state latch:

    IDLE -> BUSY   try_acquire(), only when IDLE (otherwise the attempt is dropped)
    BUSY -> IDLE   release(), on every exit path

While BUSY every registered control is disabled. Each control's previous
disabled flag is remembered and restored on release, so a control that was
disabled for another reason stays disabled.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_STATUS_MESSAGE = "Waiting for response..."


class GateState(Enum):
    """Busy state of the gate."""

    IDLE = "idle"
    BUSY = "busy"


@dataclass
class Control:
    """An interactive control (button, submit input, action trigger)."""

    name: str
    disabled: bool = False


GateListener = Callable[[GateState, str], None]


class SubmissionGate:
    """
    Single-slot guard for outbound requests.

    The check-and-set in try_acquire() is done under a mutex and before any
    await, so two triggers racing to start cannot both pass.

    Example:
        ```python
        gate = SubmissionGate()
        with gate.hold("Saving...") as acquired:
            if not acquired:
                return
            await client.post_json(url, payload)
        ```
    """

    def __init__(
        self,
        controls: Optional[List[Control]] = None,
        default_message: str = DEFAULT_STATUS_MESSAGE,
    ):
        self._lock = threading.Lock()
        self._state = GateState.IDLE
        self._controls: List[Control] = list(controls or [])
        self._previous_disabled: Dict[int, bool] = {}
        self._listeners: List[GateListener] = []
        self.default_message = default_message
        self.status_message = default_message

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state == GateState.BUSY

    @property
    def controls(self) -> List[Control]:
        return list(self._controls)

    def register(self, control: Control) -> Control:
        self._controls.append(control)
        return control

    def add_listener(self, listener: GateListener) -> None:
        """Subscribe to busy/idle changes (for status rendering)."""
        self._listeners.append(listener)

    def try_acquire(self, message: Optional[str] = None) -> bool:
        """Move IDLE -> BUSY. Returns False, changing nothing, when already BUSY."""
        with self._lock:
            if self._state == GateState.BUSY:
                logger.debug("Gate busy; dropping trigger")
                return False
            self._state = GateState.BUSY
            self.status_message = message or self.default_message
            self._previous_disabled = {id(c): c.disabled for c in self._controls}
            for control in self._controls:
                control.disabled = True

        self._notify()
        return True

    def release(self) -> None:
        """Move to IDLE and restore every control's previous disabled flag."""
        with self._lock:
            for control in self._controls:
                control.disabled = self._previous_disabled.get(id(control), control.disabled)
            self._previous_disabled = {}
            self._state = GateState.IDLE
            self.status_message = self.default_message

        self._notify()

    @contextmanager
    def hold(self, message: Optional[str] = None) -> Iterator[bool]:
        """Acquire for the duration of the block; yields whether acquisition succeeded."""
        acquired = self.try_acquire(message)
        try:
            yield acquired
        finally:
            if acquired:
                self.release()

    def _notify(self) -> None:
        for listener in self._listeners:
            try:
                listener(self._state, self.status_message)
            except Exception:
                logger.exception(f"Gate listener failed on {self._state.value}")
