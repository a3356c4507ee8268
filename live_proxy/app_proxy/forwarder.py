import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import HTTPException, Request
from fastapi.responses import StreamingResponse
from opentelemetry import trace
from starlette.background import BackgroundTask

from live_proxy.liveness import BackendAddress
from live_proxy.utils import format_exception_message, traced_request
from live_proxy.vars import PROXY_TIMEOUT

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# httpx recomputes these for the forwarded request
_RECOMPUTED_REQUEST_HEADERS = {"host", "content-length"}


def join_paths(base: str, path: str) -> str:
    """Join a target base path and a request path with exactly one slash."""
    if not base:
        return path if path.startswith("/") else f"/{path}"
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


@dataclass(frozen=True)
class ProxyTarget:
    """Where a forwarder sends requests. Resolved once at startup."""

    scheme: str
    netloc: str
    base_path: str = ""

    @classmethod
    def from_address(
        cls, address: BackendAddress | str, base_path: str = "", scheme: str = "http"
    ) -> "ProxyTarget":
        if isinstance(address, str):
            address = BackendAddress.parse(address)
        return cls(scheme=scheme, netloc=address.netloc, base_path=base_path.rstrip("/"))

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.netloc}{self.base_path}"

    def url_for(self, path: str, query: str = "") -> str:
        url = f"{self.scheme}://{self.netloc}{join_paths(self.base_path, path)}"
        return f"{url}?{query}" if query else url

    def websocket_url_for(self, path: str, query: str = "") -> str:
        scheme = "wss" if self.scheme == "https" else "ws"
        url = f"{scheme}://{self.netloc}{join_paths(self.base_path, path)}"
        return f"{url}?{query}" if query else url


def prepare_headers(request: Request, target: ProxyTarget) -> dict[str, str]:
    """
    Prepare headers for forwarding to ``target``.
    Removes hop-by-hop headers, points Host at the target and adds proxy headers.
    """
    headers = {}
    for name, value in request.headers.items():
        name_lower = name.lower()
        if name_lower in HOP_BY_HOP_HEADERS or name_lower in _RECOMPUTED_REQUEST_HEADERS:
            continue
        headers[name_lower] = value

    headers["host"] = target.netloc

    # X-Forwarded-For: append client IP
    client_ip = request.client.host if request.client else "unknown"
    existing_xff = headers.get("x-forwarded-for", "")
    headers["x-forwarded-for"] = f"{existing_xff}, {client_ip}".strip(", ")

    headers["x-forwarded-host"] = request.headers.get("host", "")
    headers["x-forwarded-proto"] = request.url.scheme
    headers["x-real-ip"] = client_ip

    return headers


def response_headers(upstream: httpx.Response) -> list[tuple[bytes, bytes]]:
    """Upstream response headers minus hop-by-hop ones, duplicates kept."""
    return [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in upstream.headers.multi_items()
        if name.lower() not in HOP_BY_HOP_HEADERS
    ]


class ProxyForwarder:
    """
    Forwards HTTP requests to a single ``ProxyTarget`` and streams the answer
    back byte for byte.

    Pass ``transport`` to dispatch somewhere other than the network, e.g. an
    ``httpx.ASGITransport`` wrapping this very application.
    """

    def __init__(
        self,
        target: ProxyTarget,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = PROXY_TIMEOUT,
    ):
        self.target = target
        self._client = httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(timeout),
            follow_redirects=False,  # redirects go back to the browser untouched
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def forward(self, request: Request, path: Optional[str] = None) -> StreamingResponse:
        """
        Forward ``request`` to the target, at ``path`` if given, else at the
        request's own path. The query string is always preserved.

        Raises:
            HTTPException: 504 on upstream timeout, 502 on any other transport failure.
        """
        target_url = self.target.url_for(
            request.url.path if path is None else path, str(request.url.query)
        )
        with traced_request(
            tracer,
            operation="proxy_request",
            target=target_url,
            start_message=f"[Proxy] {request.method} {request.url.path} -> {target_url}",
            extra_attrs={"proxy.method": request.method},
        ) as span:
            body = await request.body()
            upstream_request = self._client.build_request(
                method=request.method,
                url=target_url,
                headers=prepare_headers(request, self.target),
                content=body,
            )

            try:
                upstream = await self._client.send(upstream_request, stream=True)
            except httpx.TimeoutException as e:
                logger.error(f"[Proxy] Timeout for {target_url}: {e}")
                span.set_attribute("proxy.error", "timeout")
                raise HTTPException(status_code=504, detail="Gateway timeout")
            except httpx.ConnectError as e:
                logger.error(f"[Proxy] Failed to connect to target {target_url}: {e}")
                span.set_attribute("proxy.error", "connection_failed")
                raise HTTPException(
                    status_code=502, detail="Bad gateway - cannot connect to target"
                )
            except httpx.HTTPError as e:
                logger.error(f"[Proxy] Error for {target_url}: {e}", exc_info=True)
                span.set_attribute("proxy.error", str(e))
                raise HTTPException(
                    status_code=502, detail=f"Bad gateway: {format_exception_message(e)}"
                )

            span.set_attribute("proxy.status_code", upstream.status_code)

            response = StreamingResponse(
                upstream.aiter_raw(),
                status_code=upstream.status_code,
                background=BackgroundTask(upstream.aclose),
            )
            response.raw_headers = response_headers(upstream)
            return response
