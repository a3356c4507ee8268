import logging

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket
from fastapi.requests import HTTPConnection
from fastapi.responses import HTMLResponse, Response

from live_proxy.app_proxy import RequestRouter
from live_proxy.landing import LandingPageRenderError, LandingPageRenderer
from live_proxy.settings import Settings
from live_proxy.status_channel import ConnectionRegistry, SessionHandler, serve_status_channel

logger = logging.getLogger("uvicorn.error")

PROXIED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def get_settings(conn: HTTPConnection) -> Settings:
    return conn.app.state.settings


def get_request_router(conn: HTTPConnection) -> RequestRouter:
    return conn.app.state.request_router


def get_connections(conn: HTTPConnection) -> ConnectionRegistry:
    return conn.app.state.connections


def get_status_handler(conn: HTTPConnection) -> SessionHandler:
    return conn.app.state.status_handler


def get_landing_renderer(conn: HTTPConnection) -> LandingPageRenderer:
    return conn.app.state.landing_renderer


def build_router(base_path: str) -> APIRouter:
    """
    Routes of the proxy. ``base_path`` is where the landing page and the
    Status Channel live; every other path goes through the request router,
    so the catch-all routes are registered last.
    """
    router = APIRouter()

    @router.get("/healthy")
    async def healthy():
        return Response(status_code=200)

    @router.websocket(f"{base_path}/ws")
    async def status_channel(
        websocket: WebSocket,
        settings: Settings = Depends(get_settings),
        connections: ConnectionRegistry = Depends(get_connections),
        handler: SessionHandler = Depends(get_status_handler),
    ):
        await serve_status_channel(
            websocket,
            handler,
            connections,
            subprotocols=settings.subprotocols,
            origin_patterns=settings.origin_patterns,
        )

    @router.api_route(
        f"{base_path}/", methods=["GET", "HEAD"], response_class=HTMLResponse
    )
    async def landing_page(
        settings: Settings = Depends(get_settings),
        renderer: LandingPageRenderer = Depends(get_landing_renderer),
    ):
        try:
            content = renderer.render(
                title=settings.title,
                websocket_path=settings.websocket_path,
                base_path=settings.base_path,
            )
        except LandingPageRenderError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return HTMLResponse(content=content)

    @router.api_route("/", methods=PROXIED_METHODS)
    @router.api_route("/{path:path}", methods=PROXIED_METHODS)
    async def proxy_all(
        request: Request,
        request_router: RequestRouter = Depends(get_request_router),
    ):
        """Forward to the backend when it is up, else to the landing page."""
        return await request_router.route(request)

    @router.websocket("/{path:path}")
    async def proxy_websocket(
        websocket: WebSocket,
        request_router: RequestRouter = Depends(get_request_router),
    ):
        await request_router.route_websocket(websocket)

    return router
