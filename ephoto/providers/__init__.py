"""ephoto generators."""

import httpx

from ..core.config import SiteConfig, load_config
from .base import FALLBACK_KINDS, FallbackGenerator, Generator, validate_request
from .browser import BrowserGenerator
from .http import HttpGenerator


def create_generator(config: SiteConfig | None = None, transport: httpx.AsyncBaseTransport | None = None) -> Generator:
    """Build the generator the configuration asks for.

    HttpGenerator alone by default; wrapped with a BrowserGenerator fallback when
    `browser_fallback` is set.
    """
    config = config or load_config()
    primary = HttpGenerator(config, transport=transport)
    if not config.browser_fallback:
        return primary
    return FallbackGenerator(primary, BrowserGenerator(config), config=config)


__all__ = [
    "FALLBACK_KINDS",
    "BrowserGenerator",
    "FallbackGenerator",
    "Generator",
    "HttpGenerator",
    "create_generator",
    "validate_request",
]
