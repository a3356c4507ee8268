import logging

from fastapi import Request, WebSocket
from fastapi.responses import Response
from starlette import status

from live_proxy.liveness import LivenessProber

from .forwarder import ProxyForwarder
from .websocket_relay import relay_websocket

logger = logging.getLogger("uvicorn.error")


class RequestRouter:
    """
    Sends each request to the backend when it accepts connections and to the
    landing page otherwise.

    The backend is probed on every request; nothing is cached, so a request
    may race a backend that is just starting or stopping. The next request
    sees the new state.
    """

    def __init__(
        self,
        prober: LivenessProber,
        backend: ProxyForwarder,
        landing: ProxyForwarder,
    ):
        self.prober = prober
        self.backend = backend
        self.landing = landing

    async def route(self, request: Request) -> Response:
        if await self.prober.probe():
            return await self.backend.forward(request)

        logger.debug(
            f"[Router] {self.prober.address} unreachable, "
            f"serving landing page for {request.method} {request.url.path}"
        )
        # every path lands on the landing page root; it reloads the original URL later
        return await self.landing.forward(request, path="/")

    async def route_websocket(self, websocket: WebSocket) -> None:
        if not await self.prober.probe():
            logger.debug(
                f"[Router] {self.prober.address} unreachable, "
                f"refusing WebSocket {websocket.url.path}"
            )
            await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
            return

        upstream_url = self.backend.target.websocket_url_for(
            websocket.url.path, str(websocket.url.query)
        )
        await relay_websocket(websocket, upstream_url)

    async def aclose(self) -> None:
        await self.backend.aclose()
        await self.landing.aclose()
