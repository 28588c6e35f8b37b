"""In-process registry of live push channels, one per user."""
from __future__ import annotations

import logging
import threading

from estate_chat.application.ports.connection import ConnectionHandle

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Maps a user id to its single active connection handle.

    A newer connection for the same user replaces the older one; the old
    handle is not closed here. All operations hold the lock only for the
    dict access and never suspend.
    """

    def __init__(self) -> None:
        self._handles: dict[str, ConnectionHandle] = {}
        self._lock = threading.Lock()

    def register(self, user_id: str, handle: ConnectionHandle) -> None:
        if not user_id:
            raise ValueError("user_id must be non-empty")
        with self._lock:
            previous = self._handles.get(user_id)
            self._handles[user_id] = handle
        if previous is not None and previous is not handle:
            logger.info("User %s reconnected; superseding previous connection", user_id)
        else:
            logger.debug("User %s registered", user_id)

    def remove(self, user_id: str, handle: ConnectionHandle | None = None) -> bool:
        """Drop the user's entry. No-op if absent.

        With ``handle`` given, the entry is only dropped while it still points
        at that handle, so a superseded connection closing late cannot evict
        its replacement. Returns True if an entry was removed.
        """
        with self._lock:
            current = self._handles.get(user_id)
            if current is None:
                return False
            if handle is not None and current is not handle:
                return False
            del self._handles[user_id]
        logger.debug("User %s unregistered", user_id)
        return True

    def lookup(self, user_id: str) -> ConnectionHandle | None:
        with self._lock:
            return self._handles.get(user_id)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._handles

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)
