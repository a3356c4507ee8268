import logging
from typing import Optional

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError, select_autoescape

logger = logging.getLogger("uvicorn.error")

HOME_PAGE = "index.html"


class LandingPageRenderError(Exception):
    """Raised when the landing page template cannot be loaded or rendered."""


class LandingPageRenderer:
    """
    Renders the landing page shown while the backend is down.

    The page opens the Status Channel at either a path relative to the
    current origin or an absolute ``ws://``/``wss://`` URL.
    """

    def __init__(self, environment: Optional[Environment] = None):
        self._env = environment or Environment(
            loader=PackageLoader("live_proxy.landing", "templates"),
            autoescape=select_autoescape(["html"]),
            undefined=StrictUndefined,
        )

    def render(
        self,
        title: str,
        websocket_path: Optional[str] = None,
        websocket_url: Optional[str] = None,
        base_path: str = "",
    ) -> str:
        """
        ``base_path`` is where the landing page itself is mounted. Once the
        backend is reachable a visitor there is sent to ``/``; anywhere else
        the page reloads the URL the visitor asked for.

        Raises:
            ValueError: when neither a path nor a URL is given.
            LandingPageRenderError: when the template fails.
        """
        if not websocket_path and not websocket_url:
            raise ValueError("a websocket path or URL is required")

        try:
            template = self._env.get_template(HOME_PAGE)
            return template.render(
                title=title,
                websocket_path=websocket_path or "",
                websocket_url=websocket_url or "",
                base_path=base_path.rstrip("/"),
            )
        except TemplateError as e:
            logger.error(f"[Landing] Failed to render {HOME_PAGE}: {e}")
            raise LandingPageRenderError(str(e)) from e
