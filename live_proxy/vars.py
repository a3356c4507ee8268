import os


def _split_csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


SERVICE_NAME = os.getenv("SERVICE_NAME", "live-proxy")
LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()

LIVE_PROXY_ADDR = os.getenv("LIVE_PROXY_ADDR", ":8080")
LIVE_PROXY_BACKEND_ADDR = os.getenv("LIVE_PROXY_BACKEND_ADDR", "localhost:8081")
LIVE_PROXY_BASE_PATH = os.getenv("LIVE_PROXY_BASE_PATH", "/_live-proxy").rstrip("/")
LIVE_PROXY_TITLE = os.getenv("LIVE_PROXY_TITLE", "Live Proxy Home")

PROBE_TIMEOUT_S = float(os.getenv("LIVE_PROXY_PROBE_TIMEOUT_S", "1"))
POLL_INTERVAL_S = float(os.getenv("LIVE_PROXY_POLL_INTERVAL_S", "1"))
PROXY_TIMEOUT = int(os.getenv("PROXY_TIMEOUT", "300"))  # 5 minutes default

# Empty means "accept whatever the client offers"
LIVE_PROXY_SUBPROTOCOLS = _split_csv(os.getenv("LIVE_PROXY_SUBPROTOCOLS", ""))
LIVE_PROXY_ORIGIN_PATTERNS = _split_csv(os.getenv("LIVE_PROXY_ORIGIN_PATTERNS", ""))

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
