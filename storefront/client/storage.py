"""Key/value stores holding the client's session state.

``SharedStorageArea`` stands in for the browser's per-origin storage:
every tab view reads and writes the same data, and a write from one
tab is announced to the others as a ``StorageEvent``. ``SessionStore``
wraps all writes to the session keys and emits a ``SessionChange`` for
each, so same-tab listeners never need to patch the storage itself.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

TOKEN_KEY = "authToken"
ROLE_KEY = "role"
USER_KEY = "user"
SESSION_KEYS = (TOKEN_KEY, ROLE_KEY, USER_KEY)

# session-scoped keys
AUTH_REDIRECT_KEY = "authRedirect"
AUTH_MESSAGE_KEY = "authMessage"

Unsubscribe = Callable[[], None]


class Storage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemoryStorage:
    """Storage backed by a plain dict."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


@dataclass(frozen=True)
class StorageEvent:
    """A write made by another tab. ``key`` is None when storage was cleared."""

    key: Optional[str]
    old_value: Optional[str]
    new_value: Optional[str]


StorageListener = Callable[[StorageEvent], None]


class TabStorage:
    """One tab's view of a :class:`SharedStorageArea`."""

    def __init__(self, area: "SharedStorageArea"):
        self._area = area
        self._listeners: List[StorageListener] = []

    def get_item(self, key: str) -> Optional[str]:
        return self._area.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._area.write(self, key, str(value))

    def remove_item(self, key: str) -> None:
        self._area.write(self, key, None)

    def clear(self) -> None:
        self._area.clear(self)

    def add_listener(self, listener: StorageListener) -> Unsubscribe:
        """Receive writes made by other tabs."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event: StorageEvent) -> None:
        for listener in list(self._listeners):
            listener(event)


class SharedStorageArea:
    """Storage shared by several tabs of the same origin."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self._tabs: List[TabStorage] = []

    def tab(self) -> TabStorage:
        view = TabStorage(self)
        self._tabs.append(view)
        return view

    def close_tab(self, view: TabStorage) -> None:
        if view in self._tabs:
            self._tabs.remove(view)

    def write(self, origin: TabStorage, key: str, value: Optional[str]) -> None:
        old = self.data.get(key)
        if old == value:
            return
        if value is None:
            self.data.pop(key, None)
        else:
            self.data[key] = value
        self._broadcast(origin, StorageEvent(key, old, value))

    def clear(self, origin: TabStorage) -> None:
        if not self.data:
            return
        self.data.clear()
        self._broadcast(origin, StorageEvent(None, None, None))

    def _broadcast(self, origin: TabStorage, event: StorageEvent) -> None:
        # the writing tab never hears its own writes
        for view in list(self._tabs):
            if view is not origin:
                view.dispatch(event)


@dataclass(frozen=True)
class SessionChange:
    key: str
    old: Optional[str]
    new: Optional[str]
    source: str = "local"


SessionListener = Callable[[SessionChange], None]


class SessionStore:
    """The auth token, role and user record, with change notification."""

    def __init__(self, storage: Optional[Storage] = None):
        self.storage: Storage = storage if storage is not None else MemoryStorage()
        self._listeners: List[SessionListener] = []

    @property
    def token(self) -> Optional[str]:
        return self.storage.get_item(TOKEN_KEY)

    @property
    def role(self) -> Optional[str]:
        return self.storage.get_item(ROLE_KEY)

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        raw = self.storage.get_item(USER_KEY)
        if not raw:
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            return None
        return value if isinstance(value, dict) else None

    def subscribe(self, listener: SessionListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_token(self, token: str) -> None:
        self._write(TOKEN_KEY, token)

    def set_role(self, role: str) -> None:
        self._write(ROLE_KEY, role)

    def set_user(self, user: Dict[str, Any]) -> None:
        self._write(USER_KEY, json.dumps(user))

    def clear(self) -> None:
        """Remove every session key."""
        for key in SESSION_KEYS:
            self._write(key, None)

    def _write(self, key: str, value: Optional[str]) -> None:
        old = self.storage.get_item(key)
        if value is None:
            self.storage.remove_item(key)
        else:
            self.storage.set_item(key, value)
        self._emit(SessionChange(key=key, old=old, new=value))

    def _emit(self, change: SessionChange) -> None:
        for listener in list(self._listeners):
            listener(change)
