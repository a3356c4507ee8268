"""A small real backend for end-to-end proxy tests."""

import socket
import threading
import time

import uvicorn
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse

STUB_BODY = "hello from the backend <b>unmodified</b>"


def wait_for_port(port, host="127.0.0.1", timeout=10.0):
    start = time.time()
    while time.time() - start < timeout:
        try:
            with socket.create_connection((host, port), timeout=1):
                return True
        except OSError:
            time.sleep(0.05)
    raise RuntimeError(f"Timeout waiting for {host}:{port}")


def unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def build_stub_backend() -> FastAPI:
    stub = FastAPI()

    @stub.get("/")
    async def root():
        return PlainTextResponse(STUB_BODY, headers={"x-stub": "yes"})

    @stub.api_route("/echo/{path:path}", methods=["GET", "POST", "PUT"])
    async def echo(request: Request, path: str):
        body = await request.body()
        return {
            "method": request.method,
            "path": path,
            "query": str(request.url.query),
            "host": request.headers.get("host"),
            "x_forwarded_for": request.headers.get("x-forwarded-for"),
            "body": body.decode("utf-8"),
        }

    @stub.get("/cookies")
    async def cookies():
        response = PlainTextResponse("cookies")
        response.set_cookie("a", "1")
        response.set_cookie("b", "2")
        return response

    @stub.websocket("/ws-echo")
    async def ws_echo(websocket: WebSocket):
        await websocket.accept()
        try:
            while True:
                message = await websocket.receive_text()
                await websocket.send_text(f"echo: {message}")
        except WebSocketDisconnect:
            pass

    return stub


class StubBackendServer:
    """Runs the stub backend with uvicorn in a daemon thread."""

    def __init__(self, port: int | None = None):
        self.port = port or unused_port()
        self._server = uvicorn.Server(
            uvicorn.Config(
                build_stub_backend(), host="127.0.0.1", port=self.port, log_level="warning"
            )
        )
        self._thread = threading.Thread(target=self._server.run, daemon=True)

    @property
    def address(self) -> str:
        return f"127.0.0.1:{self.port}"

    def start(self) -> "StubBackendServer":
        self._thread.start()
        wait_for_port(self.port)
        return self

    def stop(self) -> None:
        self._server.should_exit = True
        self._thread.join(timeout=5)
