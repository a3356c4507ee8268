from .renderer import HOME_PAGE, LandingPageRenderError, LandingPageRenderer

__all__ = ["HOME_PAGE", "LandingPageRenderError", "LandingPageRenderer"]
