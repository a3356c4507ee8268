import asyncio
import logging

import websockets
from fastapi import WebSocket
from starlette import status
from starlette.websockets import WebSocketDisconnect
from websockets.asyncio.client import ClientConnection, connect

from live_proxy.utils import log_exception_with_details

logger = logging.getLogger("uvicorn.error")

# headers the websockets client sets itself during the handshake
_HANDSHAKE_HEADERS = {
    "host",
    "connection",
    "upgrade",
    "sec-websocket-key",
    "sec-websocket-version",
    "sec-websocket-extensions",
    "sec-websocket-protocol",
}

# codes that may be reported locally but never sent in a close frame
_RESERVED_CLOSE_CODES = {1005, 1006, 1015}


async def _client_to_upstream(websocket: WebSocket, upstream: ClientConnection) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            await upstream.close()
            return
        if message.get("text") is not None:
            await upstream.send(message["text"])
        elif message.get("bytes") is not None:
            await upstream.send(message["bytes"])


async def _upstream_to_client(websocket: WebSocket, upstream: ClientConnection) -> None:
    async for message in upstream:
        if isinstance(message, str):
            await websocket.send_text(message)
        else:
            await websocket.send_bytes(message)
    code = upstream.close_code
    if code is None or code in _RESERVED_CLOSE_CODES:
        code = status.WS_1000_NORMAL_CLOSURE
    await websocket.close(code=code)


async def relay_websocket(websocket: WebSocket, upstream_url: str, open_timeout: float = 5) -> None:
    """
    Bridge ``websocket`` to ``upstream_url`` frame by frame until either side
    closes. The client is only accepted once the upstream handshake succeeded,
    so a failed upstream surfaces as a rejected upgrade.
    """
    headers = [
        (name, value)
        for name, value in websocket.headers.items()
        if name.lower() not in _HANDSHAKE_HEADERS
    ]
    offered = websocket.scope.get("subprotocols") or None

    try:
        upstream = await connect(
            upstream_url,
            additional_headers=headers,
            subprotocols=offered,
            open_timeout=open_timeout,
        )
    except (OSError, asyncio.TimeoutError, websockets.exceptions.InvalidHandshake) as e:
        logger.warning(f"[Proxy] WebSocket upstream {upstream_url} unavailable: {e!r}")
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    await websocket.accept(subprotocol=upstream.subprotocol)
    logger.debug(f"[Proxy] WebSocket relay open -> {upstream_url}")

    to_upstream = asyncio.create_task(_client_to_upstream(websocket, upstream))
    to_client = asyncio.create_task(_upstream_to_client(websocket, upstream))
    try:
        done, pending = await asyncio.wait(
            {to_upstream, to_client}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)
        for task in done:
            exc = task.exception()
            if exc and not isinstance(
                exc, (WebSocketDisconnect, websockets.exceptions.ConnectionClosed)
            ):
                log_exception_with_details(logger, "[Proxy] WebSocket relay", exc)
    finally:
        await upstream.close()
        logger.debug(f"[Proxy] WebSocket relay closed -> {upstream_url}")
