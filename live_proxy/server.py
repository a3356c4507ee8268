import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional, Sequence

import httpx
from fastapi import FastAPI, Request
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from prometheus_client import CollectorRegistry, Gauge, Info
from prometheus_fastapi_instrumentator import Instrumentator

from live_proxy import __version__
from live_proxy.app_proxy import ProxyForwarder, ProxyTarget, RequestRouter
from live_proxy.landing import LandingPageRenderer
from live_proxy.liveness import BackendAddress, LivenessProber
from live_proxy.routes import build_router
from live_proxy.settings import Settings
from live_proxy.status_channel import ConnectionRegistry, LivenessStatusHandler
from live_proxy.vars import OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME

logger = logging.getLogger("uvicorn.error")

REQUEST_ID_HEADER = "X-Request-ID"

# ASGI send/receive spans, one per body chunk or WebSocket frame
_NOISY_ASGI_EVENTS = {
    "http.response.body",
    "websocket.send",
    "websocket.receive",
}


class FilteringSpanExporter(SpanExporter):
    """
    Wrapper exporter that drops per-message ASGI spans. A Status Channel
    session would otherwise emit one span per status payload.
    """

    def __init__(self, exporter: SpanExporter):
        self.exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        filtered_spans = [
            span
            for span in spans
            if not (
                span.attributes
                and span.attributes.get("asgi.event.type") in _NOISY_ASGI_EVENTS
            )
        ]
        if filtered_spans:
            return self.exporter.export(filtered_spans)
        return SpanExportResult.SUCCESS

    def shutdown(self):
        return self.exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000):
        return self.exporter.force_flush(timeout_millis)


_tracer_provider_configured = False


def configure_tracing(app: FastAPI) -> None:
    """Install the tracer provider once per process and instrument ``app``."""
    global _tracer_provider_configured
    if not _tracer_provider_configured:
        provider = TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
        if OTLP_ENDPOINT:
            otlp_exporter = OTLPSpanExporter(
                endpoint=OTLP_ENDPOINT,
                headers=OTLP_HEADERS or None,
            )
            provider.add_span_processor(
                BatchSpanProcessor(FilteringSpanExporter(otlp_exporter))
            )
        trace.set_tracer_provider(provider)
        _tracer_provider_configured = True

    FastAPIInstrumentor.instrument_app(app, excluded_urls="healthy,metrics")


def configure_metrics(app: FastAPI, connections: ConnectionRegistry) -> CollectorRegistry:
    # one registry per app so several apps can live in one process
    registry = CollectorRegistry()
    Instrumentator(registry=registry).instrument(app).expose(app)

    app_info = Info("fastapi_app_info", "Application Info", registry=registry)
    app_info.info({"app_name": SERVICE_NAME, "version": __version__})

    sessions = Gauge(
        "live_proxy_status_channel_sessions",
        "Status Channel sessions currently open",
        registry=registry,
    )
    sessions.set_function(lambda: connections.active_count)
    return registry


def landing_target(settings: Settings) -> ProxyTarget:
    """The landing page, addressed the way a client of our own listener would."""
    listen = settings.listen_address
    return ProxyTarget.from_address(
        BackendAddress(host=listen.host or "localhost", port=listen.port),
        base_path=settings.base_path,
    )


def create_app(
    settings: Optional[Settings] = None,
    connections: Optional[ConnectionRegistry] = None,
) -> FastAPI:
    settings = settings or Settings()
    connections = connections or ConnectionRegistry()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        request_router = app.state.request_router
        logger.info(
            f"Proxying to {request_router.backend.target.url}, "
            f"landing page at {request_router.landing.target.url}/"
        )
        yield
        await request_router.aclose()

    app = FastAPI(title="live-proxy", version=__version__, lifespan=lifespan)

    prober = LivenessProber(settings.backend_address, timeout=settings.probe_timeout)
    backend = ProxyForwarder(
        ProxyTarget.from_address(settings.backend_address),
        timeout=settings.proxy_timeout,
    )
    # the landing page is served by this app; skip the network round trip
    landing = ProxyForwarder(
        landing_target(settings),
        transport=httpx.ASGITransport(app=app),
        timeout=settings.proxy_timeout,
    )

    app.state.settings = settings
    app.state.connections = connections
    app.state.prober = prober
    app.state.status_handler = LivenessStatusHandler(prober, interval=settings.poll_interval)
    app.state.landing_renderer = LandingPageRenderer()
    app.state.request_router = RequestRouter(prober, backend=backend, landing=landing)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        started = time.monotonic()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.debug(
            f"[{request_id}] {request.method} {request.url.path} -> "
            f"{response.status_code} in {(time.monotonic() - started) * 1000:.1f}ms"
        )
        return response

    # /metrics must be registered before the catch-all proxy routes
    app.state.metrics_registry = configure_metrics(app, connections)
    configure_tracing(app)
    app.include_router(build_router(settings.base_path))
    return app

