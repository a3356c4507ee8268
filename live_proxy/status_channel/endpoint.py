import asyncio
import logging
from fnmatch import fnmatch
from typing import Optional, Sequence
from urllib.parse import urlparse

from fastapi import WebSocket
from fastapi.responses import PlainTextResponse
from opentelemetry import trace
from starlette import status

from live_proxy.utils.exception_logging import log_exception_with_details

from .session import SessionCancelled, SessionContext, SessionHandler, StatusConnection
from .session_manager import ConnectionRegistry

logger = logging.getLogger("uvicorn.error")
tracer = trace.get_tracer(__name__)


class HandshakeRejected(Exception):
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail)


def negotiate_subprotocol(
    offered: Sequence[str], supported: Optional[Sequence[str]]
) -> Optional[str]:
    """
    Pick the first client-offered subprotocol we support.

    With no supported list configured any offer is fine and none is echoed.
    """
    if not supported:
        return None
    for candidate in offered:
        if candidate in supported:
            return candidate
    raise HandshakeRejected(
        status.HTTP_400_BAD_REQUEST,
        f"client must speak one of the {', '.join(supported)} subprotocols",
    )


def check_origin(
    origin: Optional[str], host: Optional[str], patterns: Optional[Sequence[str]]
) -> None:
    """
    Allow same-origin and non-browser clients, plus origins whose host matches
    one of ``patterns`` (shell-style wildcards).
    """
    if not origin:
        return
    origin_host = urlparse(origin).netloc
    if host and origin_host.lower() == host.lower():
        return
    for pattern in patterns or ():
        if fnmatch(origin_host.lower(), pattern.lower()):
            return
    raise HandshakeRejected(
        status.HTTP_403_FORBIDDEN, f"origin {origin!r} is not authorized"
    )


async def _reject(websocket: WebSocket, rejection: HandshakeRejected) -> None:
    logger.debug(f"[StatusChannel] Handshake rejected: {rejection.detail}")
    try:
        await websocket.send_denial_response(
            PlainTextResponse(rejection.detail, status_code=rejection.status_code)
        )
    except RuntimeError:
        # server lacks the denial-response extension; a pre-accept close is a 403
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)


async def serve_status_channel(
    websocket: WebSocket,
    handler: SessionHandler,
    registry: ConnectionRegistry,
    subprotocols: Optional[Sequence[str]] = None,
    origin_patterns: Optional[Sequence[str]] = None,
) -> None:
    """
    Accept a Status Channel WebSocket and run ``handler`` on it.

    Errors end this session only: they are logged here and never reach the
    listener. The connection id is deregistered however the session ends.
    """
    try:
        check_origin(
            websocket.headers.get("origin"),
            websocket.headers.get("host"),
            origin_patterns,
        )
        subprotocol = negotiate_subprotocol(
            websocket.scope.get("subprotocols") or [], subprotocols
        )
    except HandshakeRejected as rejection:
        await _reject(websocket, rejection)
        return

    await websocket.accept(subprotocol=subprotocol)
    conn = StatusConnection(websocket)

    with registry.connection() as connection_id:
        logger.info(f"[StatusChannel] New connection {connection_id}")
        logger.info(f"[StatusChannel] Active connections: {registry.active_count}")
        await _run_session(connection_id, conn, handler)


async def _run_session(
    connection_id: int, conn: StatusConnection, handler: SessionHandler
) -> None:
    ctx = SessionContext(connection_id)
    reader = asyncio.create_task(
        conn.drain_until_closed(ctx), name=f"status-channel-reader-{connection_id}"
    )
    try:
        with tracer.start_as_current_span("status_channel.session") as span:
            span.set_attribute("status_channel.connection_id", connection_id)
            try:
                await handler.handle(ctx, conn)
            except SessionCancelled as e:
                span.set_attribute("status_channel.end", e.reason)
                logger.info(f"[StatusChannel] Connection {connection_id} {e.reason}")
            except Exception as e:
                span.set_attribute("status_channel.end", "error")
                log_exception_with_details(
                    logger, f"[StatusChannel] Connection {connection_id}", e
                )
    finally:
        if not reader.done():
            reader.cancel()
        await conn.close("going away")
        await asyncio.wait([reader])
