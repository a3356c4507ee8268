import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from fastapi import WebSocket
from starlette import status
from starlette.websockets import WebSocketDisconnect, WebSocketState

logger = logging.getLogger("uvicorn.error")


class SessionCancelled(Exception):
    """Raised by a handler when its session was cancelled (usually a client close)."""

    def __init__(self, connection_id: int, reason: Optional[str] = None):
        self.connection_id = connection_id
        self.reason = reason or "cancelled"
        super().__init__(f"session {connection_id} {self.reason}")


class SessionContext:
    """Cancellation signal and identity of one Status Channel session."""

    def __init__(self, connection_id: int):
        self.connection_id = connection_id
        self.cancel_reason: Optional[str] = None
        self._cancelled = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._cancelled.is_set():
            self.cancel_reason = reason
            self._cancelled.set()

    def raise_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise SessionCancelled(self.connection_id, self.cancel_reason)

    async def sleep(self, seconds: float) -> bool:
        """Wait ``seconds`` or until cancelled. Returns True if cancelled."""
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True


class StatusConnection:
    """The write side of an accepted Status Channel WebSocket."""

    def __init__(self, websocket: WebSocket):
        self._websocket = websocket

    async def send_text(self, message: str) -> None:
        await self._websocket.send_text(message)

    async def close(self, reason: str = "going away") -> None:
        """Close with 1001 (going away). A no-op once either side has closed."""
        if (
            self._websocket.application_state != WebSocketState.CONNECTED
            or self._websocket.client_state != WebSocketState.CONNECTED
        ):
            return
        try:
            await self._websocket.close(code=status.WS_1001_GOING_AWAY, reason=reason)
        except (RuntimeError, OSError, WebSocketDisconnect) as e:
            logger.debug(f"[StatusChannel] Close after peer hang-up ignored: {e!r}")

    async def drain_until_closed(self, ctx: SessionContext) -> None:
        """
        Read and discard client frames, cancelling ``ctx`` once the client
        disconnects. Runs beside the handler for the whole session.
        """
        try:
            while True:
                message = await self._websocket.receive()
                if message["type"] == "websocket.disconnect":
                    ctx.cancel(f"closed by client (code {message.get('code')})")
                    return
        except (RuntimeError, WebSocketDisconnect) as e:
            ctx.cancel(f"read failed: {e}")


class SessionHandler(ABC):
    """Drives one accepted Status Channel session until it ends."""

    @abstractmethod
    async def handle(self, ctx: SessionContext, conn: StatusConnection) -> None:
        """
        Run the session. Returning or raising ends it; raise
        ``SessionCancelled`` when stopping because ``ctx`` was cancelled.
        """
