"""In-memory registry of which users hold a live connection."""

from __future__ import annotations

import logging
from threading import Lock
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sugarpot.services.delivery import ConnectionHandle

logger = logging.getLogger(__name__)

__all__ = ["PresenceRegistry"]


class PresenceRegistry:
    """Maps a user id to its single active connection handle.

    One instance is built per process and handed to every connection
    handler. The last connection to register wins; a superseded connection
    gets no eviction signal and simply stops receiving pushes.
    Entries are never persisted, so a restart starts with nobody online.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._connections: dict[int, ConnectionHandle] = {}

    def register(self, user_id: int, handle: ConnectionHandle) -> ConnectionHandle | None:
        """Make ``handle`` the user's active connection.

        Returns:
            The handle that was superseded, if any.
        """
        with self._lock:
            previous = self._connections.get(user_id)
            self._connections[user_id] = handle
        if previous is not None and previous is not handle:
            logger.info("User %s reconnected; previous connection superseded", user_id)
            return previous
        logger.info("User %s connected", user_id)
        return None

    def lookup(self, user_id: int) -> ConnectionHandle | None:
        with self._lock:
            return self._connections.get(user_id)

    def unregister(self, user_id: int, handle: ConnectionHandle) -> bool:
        """Remove the user's entry only if it still points at ``handle``.

        A late disconnect from a superseded connection must not evict the
        newer one.
        """
        with self._lock:
            if self._connections.get(user_id) is not handle:
                return False
            del self._connections[user_id]
        logger.info("User %s disconnected", user_id)
        return True

    def is_online(self, user_id: int) -> bool:
        with self._lock:
            return user_id in self._connections

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)
