"""
Command line entry point.

Usage:
    live-proxy --addr :8080 --proxy-addr localhost:8081
    python -m live_proxy --proxy-addr localhost:3000
"""

import argparse
import logging
import socket
import sys
from typing import Optional, Sequence

import uvicorn

from live_proxy.server import create_app
from live_proxy.settings import Settings
from live_proxy.vars import LIVE_PROXY_ADDR, LIVE_PROXY_BACKEND_ADDR

logger = logging.getLogger("uvicorn.error")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="live-proxy",
        description="Reverse proxy that shows a live status page until the backend is up",
    )
    parser.add_argument("--addr", default=LIVE_PROXY_ADDR, help="http service address")
    parser.add_argument(
        "--proxy-addr",
        default=LIVE_PROXY_BACKEND_ADDR,
        help="address of the backend to probe and forward to",
    )
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    return Settings(addr=args.addr, proxy_addr=args.proxy_addr)


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind the listener ourselves so a bind failure is reported before serving."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = build_settings(args)
    except ValueError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"invalid configuration: {e}")
        return 2

    config = uvicorn.Config(
        create_app(settings),
        log_level=settings.log_level,
    )
    host, port = settings.bind_host, settings.listen_address.port

    try:
        sock = bind_socket(host, port)
    except OSError as e:
        logger.error(f"failed to start http-server addr={settings.addr} err={e}")
        return 1

    logger.info(f"starting http-server addr={settings.addr}")
    server = uvicorn.Server(config)
    server.run(sockets=[sock])
    return 0


if __name__ == "__main__":
    sys.exit(main())
