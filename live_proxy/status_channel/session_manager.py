import logging
import threading
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger("uvicorn.error")


class ConnectionRegistry:
    """
    Tracks the Status Channel sessions that are currently open.

    Connection ids start at 1, increase monotonically and are never reused.
    Each id is registered and removed by the session that owns it, exactly
    once. The lock keeps the counter and the open-id set consistent while
    other sessions register or read the active count.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._next_id = 1
        self._connections: dict[int, None] = {}

    def register(self) -> int:
        with self._lock:
            connection_id = self._next_id
            self._next_id += 1
            self._connections[connection_id] = None
            return connection_id

    def deregister(self, connection_id: int) -> bool:
        with self._lock:
            if connection_id not in self._connections:
                logger.warning(
                    f"[StatusChannel] Connection {connection_id} already deregistered"
                )
                return False
            del self._connections[connection_id]
            return True

    @contextmanager
    def connection(self) -> Iterator[int]:
        """
        Register a connection for the duration of the ``with`` block. The id
        is released even when the block is cancelled.
        """
        connection_id = self.register()
        try:
            yield connection_id
        finally:
            self.deregister(connection_id)
            logger.info(
                f"[StatusChannel] Connection {connection_id} closed, "
                f"active connections: {self.active_count}"
            )

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def __len__(self) -> int:
        return self.active_count

    def __contains__(self, connection_id: object) -> bool:
        with self._lock:
            return connection_id in self._connections
