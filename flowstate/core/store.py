"""
Durable session store.

Holds the single session record of a flow:
- variables: named facts accumulated over the flow
- form: last submitted field values
- initialized: whether the initialization round trip has completed

The record lives under one fixed key of a storage backend and survives page
navigation. Reads never raise: a missing or corrupt record collapses to the
default empty state.

Example:
    ```python
    store = SessionStore(FileStorage(".flowstate"))
    state = store.read()
    store.write(state.merge_variables({"name": "Lee"}))
    store.clear()
    ```
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Union

if TYPE_CHECKING:
    from flowstate.config.settings import FlowStateSettings

logger = logging.getLogger(__name__)

STORAGE_KEY = "n8nFormDemoState"


@dataclass
class SessionState:
    """The persisted session record."""

    variables: Dict[str, Any] = field(default_factory=dict)
    form: Dict[str, Any] = field(default_factory=dict)
    initialized: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "variables": dict(self.variables),
            "form": dict(self.form),
            "initialized": self.initialized,
        }

    def merge_variables(self, variables: Optional[Mapping[str, Any]]) -> "SessionState":
        """Return a new state with variables added or overwritten."""
        if not isinstance(variables, Mapping):
            return self
        return SessionState(
            variables={**self.variables, **variables},
            form=dict(self.form),
            initialized=self.initialized,
        )

    def merge_form(self, form: Optional[Mapping[str, Any]]) -> "SessionState":
        """Return a new state with the given form fields replaced."""
        if not isinstance(form, Mapping):
            return self
        return SessionState(
            variables=dict(self.variables),
            form={**self.form, **form},
            initialized=self.initialized,
        )

    def mark_initialized(self) -> "SessionState":
        return SessionState(
            variables=dict(self.variables),
            form=dict(self.form),
            initialized=True,
        )


@dataclass(frozen=True)
class Ok:
    """A successful storage read."""

    state: SessionState


@dataclass(frozen=True)
class Corrupt:
    """A stored record that could not be decoded."""

    reason: str


ReadResult = Union[Ok, Corrupt]


def decode_state(raw: Optional[str]) -> ReadResult:
    """Decode a stored blob. Absence is a valid, empty session."""
    if not raw:
        return Ok(SessionState())

    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        return Corrupt(f"not valid JSON: {e}")

    if not isinstance(data, dict):
        return Corrupt(f"expected an object, got {type(data).__name__}")

    variables = data.get("variables")
    form = data.get("form")
    if variables is None:
        variables = {}
    if form is None:
        form = {}
    if not isinstance(variables, dict) or not isinstance(form, dict):
        return Corrupt("variables and form must be objects")

    return Ok(
        SessionState(
            variables=variables,
            form=form,
            initialized=data.get("initialized") is True,
        )
    )


class StorageBackend(ABC):
    """Key/value string storage, the equivalent of a browser storage origin."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        ...


class MemoryStorage(StorageBackend):
    """Process-local storage; useful for tests and one-shot runs."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage(StorageBackend):
    """
    One JSON file per key inside a directory.

    The directory plays the role of the storage origin. Writes go to a
    temporary file first and are moved into place with os.replace, so a
    reader never sees a half-written record.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read session record {path}: {e}")
            return None

    def set_item(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, self._path(key))
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class SessionStore:
    """
    Reads and writes the single session record under a fixed key.

    There is never more than one live record per backend and key.
    """

    def __init__(self, storage: StorageBackend, key: str = STORAGE_KEY):
        self.storage = storage
        self.key = key

    @classmethod
    def from_settings(cls, settings: "FlowStateSettings") -> "SessionStore":
        """Store on the configured backend ("memory" or "file") and key."""
        if settings.storage.backend == "memory":
            storage: StorageBackend = MemoryStorage()
        else:
            storage = FileStorage(settings.storage.directory)
        return cls(storage, key=settings.storage.key)

    def load(self) -> ReadResult:
        """Read the record as a result, without collapsing corruption."""
        return decode_state(self.storage.get_item(self.key))

    def read(self) -> SessionState:
        """Read the record; missing or corrupt data yields the default state."""
        result = self.load()
        if isinstance(result, Corrupt):
            logger.warning(f"Ignoring corrupt session record '{self.key}': {result.reason}")
            return SessionState()
        return result.state

    def write(self, state: SessionState) -> None:
        """Persist the full record, replacing any previous value."""
        self.storage.set_item(self.key, json.dumps(state.to_dict()))
        logger.debug(
            f"Session '{self.key}' written "
            f"({len(state.variables)} variables, {len(state.form)} form fields, "
            f"initialized={state.initialized})"
        )

    def clear(self) -> None:
        """Remove the record; the next read recreates defaults."""
        self.storage.remove_item(self.key)
        logger.info(f"Session '{self.key}' cleared")
