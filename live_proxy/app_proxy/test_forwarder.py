"""
Tests for the HTTP forwarder.

Tests cover:
- Target URL construction (base paths, query strings)
- Header preparation (hop-by-hop removal, Host rewrite, X-Forwarded-*)
- Transparent streaming of upstream responses
- Error mapping (timeout -> 504, connection/transport errors -> 502)
"""

import httpx
import pytest
from fastapi import HTTPException, Request

from live_proxy.app_proxy.forwarder import (
    ProxyForwarder,
    ProxyTarget,
    join_paths,
    prepare_headers,
)


def make_request(
    method="GET",
    path="/",
    query="",
    headers=None,
    body=b"",
    client=("192.168.1.100", 50000),
):
    headers = {"host": "proxy.example.com", "user-agent": "test-agent", **(headers or {})}
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "https",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": query.encode(),
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "server": ("proxy.example.com", 443),
        "client": client,
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


async def read_body(response) -> bytes:
    chunks = [chunk async for chunk in response.body_iterator]
    if response.background:
        await response.background()
    return b"".join(chunks)


class TestProxyTarget:
    def test_from_address(self):
        target = ProxyTarget.from_address("localhost:8081")
        assert target == ProxyTarget(scheme="http", netloc="localhost:8081")
        assert target.url == "http://localhost:8081"

    def test_empty_host_targets_localhost(self):
        target = ProxyTarget.from_address(":8080", base_path="/_live-proxy/")
        assert target.url == "http://localhost:8080/_live-proxy"

    def test_url_for_joins_base_path(self):
        target = ProxyTarget.from_address("localhost:8080", base_path="/_live-proxy")
        assert target.url_for("/") == "http://localhost:8080/_live-proxy/"
        assert target.url_for("/", "a=1") == "http://localhost:8080/_live-proxy/?a=1"

    def test_url_for_without_base_path(self):
        target = ProxyTarget.from_address("backend:3000")
        assert target.url_for("/api/users", "q=hello%20world") == (
            "http://backend:3000/api/users?q=hello%20world"
        )

    def test_websocket_url(self):
        assert ProxyTarget.from_address("backend:3000").websocket_url_for("/hmr", "t=1") == (
            "ws://backend:3000/hmr?t=1"
        )
        secure = ProxyTarget(scheme="https", netloc="backend:443")
        assert secure.websocket_url_for("/hmr") == "wss://backend:443/hmr"

    @pytest.mark.parametrize(
        "base,path,expected",
        [
            ("", "/", "/"),
            ("", "x", "/x"),
            ("/base", "/", "/base/"),
            ("/base/", "/x/y", "/base/x/y"),
        ],
    )
    def test_join_paths(self, base, path, expected):
        assert join_paths(base, path) == expected


class TestPrepareHeaders:
    def test_host_points_at_target(self):
        headers = prepare_headers(make_request(), ProxyTarget.from_address("localhost:8081"))
        assert headers["host"] == "localhost:8081"
        assert headers["x-forwarded-host"] == "proxy.example.com"
        assert headers["x-forwarded-proto"] == "https"
        assert headers["user-agent"] == "test-agent"

    def test_hop_by_hop_headers_removed(self):
        request = make_request(
            headers={
                "connection": "keep-alive",
                "keep-alive": "timeout=5",
                "transfer-encoding": "chunked",
                "upgrade": "h2c",
                "content-length": "12",
                "accept": "text/html",
            }
        )
        headers = prepare_headers(request, ProxyTarget.from_address("localhost:8081"))
        for name in ("connection", "keep-alive", "transfer-encoding", "upgrade", "content-length"):
            assert name not in headers
        assert headers["accept"] == "text/html"

    def test_forwarded_for_is_appended(self):
        request = make_request(headers={"x-forwarded-for": "10.0.0.1"})
        headers = prepare_headers(request, ProxyTarget.from_address("localhost:8081"))
        assert headers["x-forwarded-for"] == "10.0.0.1, 192.168.1.100"
        assert headers["x-real-ip"] == "192.168.1.100"

    def test_missing_client(self):
        headers = prepare_headers(
            make_request(client=None), ProxyTarget.from_address("localhost:8081")
        )
        assert headers["x-forwarded-for"] == "unknown"


class TestForward:
    @pytest.mark.asyncio
    async def test_preserves_method_path_query_and_body(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["host"] = request.headers["host"]
            seen["body"] = request.content
            return httpx.Response(201, content=b"created", headers={"x-upstream": "1"})

        forwarder = ProxyForwarder(
            ProxyTarget.from_address("backend:3000"), transport=httpx.MockTransport(handler)
        )
        request = make_request("POST", "/api/items", "page=2", body=b'{"a": 1}')
        response = await forwarder.forward(request)

        assert response.status_code == 201
        assert await read_body(response) == b"created"
        assert (b"x-upstream", b"1") in response.raw_headers
        assert seen == {
            "method": "POST",
            "url": "http://backend:3000/api/items?page=2",
            "host": "backend:3000",
            "body": b'{"a": 1}',
        }
        await forwarder.aclose()

    @pytest.mark.asyncio
    async def test_explicit_path_overrides_request_path(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = str(request.url)
            return httpx.Response(200, content=b"landing")

        forwarder = ProxyForwarder(
            ProxyTarget.from_address("localhost:8080", base_path="/_live-proxy"),
            transport=httpx.MockTransport(handler),
        )
        response = await forwarder.forward(make_request(path="/deep/link", query="x=1"), path="/")

        assert await read_body(response) == b"landing"
        assert seen["url"] == "http://localhost:8080/_live-proxy/?x=1"

    @pytest.mark.asyncio
    async def test_response_streamed_back_unmodified(self):
        body = b"\x1f\x8b not really gzip, but must arrive byte for byte"

        def handler(request: httpx.Request):
            return httpx.Response(
                200,
                headers=[
                    ("content-encoding", "gzip"),
                    ("set-cookie", "a=1"),
                    ("set-cookie", "b=2"),
                    ("connection", "keep-alive"),
                ],
                content=body,
            )

        forwarder = ProxyForwarder(
            ProxyTarget.from_address("backend:3000"), transport=httpx.MockTransport(handler)
        )
        response = await forwarder.forward(make_request())

        assert await read_body(response) == body
        assert (b"content-encoding", b"gzip") in response.raw_headers
        cookies = [v for k, v in response.raw_headers if k == b"set-cookie"]
        assert cookies == [b"a=1", b"b=2"]
        assert all(k != b"connection" for k, _ in response.raw_headers)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,status",
        [
            (httpx.ConnectError("connection refused"), 502),
            (httpx.ReadTimeout("upstream too slow"), 504),
            (httpx.RemoteProtocolError("garbage"), 502),
        ],
    )
    async def test_upstream_errors_become_gateway_errors(self, error, status):
        def handler(request: httpx.Request):
            raise error

        forwarder = ProxyForwarder(
            ProxyTarget.from_address("backend:3000"), transport=httpx.MockTransport(handler)
        )
        with pytest.raises(HTTPException) as exc_info:
            await forwarder.forward(make_request())
        assert exc_info.value.status_code == status
