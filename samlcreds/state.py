"""
Remembered role selection.

The last successfully assumed role is kept in a key-value store whose scope is
chosen by configuration: in memory for the current session, or in a JSON file
that survives restarts.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from .constants import LAST_ROLE_SELECTION_KEY, STATE_DIR_NAME, STATE_FILENAME
from .enums import RememberRole
from .errors import CredentialStoreError
from .types import RoleSelection

logger = logging.getLogger(__name__)


def default_state_file() -> Path:
    """Return ~/.config/samlcreds/state.json, honoring XDG_CONFIG_HOME."""
    config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / STATE_DIR_NAME / STATE_FILENAME


class StateStore(ABC):
    """Minimal key-value store used for remembered state."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the value for key, or None."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store value under key."""

    @abstractmethod
    def clear(self, key: str) -> None:
        """Remove key. Removing a missing key is a no-op."""


class MemoryStateStore(StateStore):
    """Session-scoped store that lives as long as the process."""

    def __init__(self) -> None:
        self._values: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def clear(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileStateStore(StateStore):
    """
    Persistent store backed by a small JSON document.

    The whole document is read on every call and rewritten atomically on every
    change.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise CredentialStoreError(f"Unable to read state file {self.path}: {e}") from e
        if not isinstance(data, dict):
            logger.warning(f"Ignoring unexpected content in state file {self.path}")
            return {}
        return data

    def _save(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".state.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(data, f, indent=2)
                os.replace(temp_path, self.path)
            except OSError:
                os.unlink(temp_path)
                raise
        except OSError as e:
            raise CredentialStoreError(f"Unable to write state file {self.path}: {e}") from e

    def get(self, key: str) -> Optional[Any]:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def clear(self, key: str) -> None:
        data = self._load()
        if key not in data:
            return
        del data[key]
        self._save(data)


class RememberedSelection:
    """
    The last successfully assumed role, scoped by the RememberRole policy.

    Clearing always clears both scopes so a policy change never resurrects an
    older selection.
    """

    def __init__(
        self,
        policy: RememberRole,
        session_store: StateStore,
        persistent_store: StateStore,
    ) -> None:
        self.policy = policy
        self.session_store = session_store
        self.persistent_store = persistent_store

    def _store(self) -> Optional[StateStore]:
        if self.policy == RememberRole.GLOBAL:
            return self.persistent_store
        if self.policy == RememberRole.SESSION:
            return self.session_store
        return None

    def get(self) -> Optional[RoleSelection]:
        store = self._store()
        if store is None:
            return None
        value = store.get(LAST_ROLE_SELECTION_KEY)
        if not isinstance(value, dict):
            return None
        return RoleSelection.from_dict(value)

    def set(self, selection: RoleSelection) -> None:
        store = self._store()
        if store is None:
            return
        store.set(LAST_ROLE_SELECTION_KEY, selection.to_dict())

    def clear(self) -> None:
        self.session_store.clear(LAST_ROLE_SELECTION_KEY)
        self.persistent_store.clear(LAST_ROLE_SELECTION_KEY)
