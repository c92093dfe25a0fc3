"""HTTP transport - one httpx.AsyncClient per pipeline run, failures mapped to typed errors."""

from typing import Any

import httpx

from ..pipeline.types import RawResponse
from .config import SiteConfig
from .exceptions import RequestTimeout, TransportError
from .utils import debug_log


def cookie_pairs(response: httpx.Response) -> tuple[str, ...]:
    """name=value pairs from every Set-Cookie header, in order."""
    pairs = []
    for header in response.headers.get_list("set-cookie"):
        pair = header.split(";", 1)[0].strip()
        if "=" in pair:
            pairs.append(pair)
    return tuple(pairs)


class HttpSession:
    """Thin async wrapper over httpx used by the pipeline stages.

    Use as async context manager so the client is always closed:

        async with HttpSession(config) as http:
            page = await http.get(url)
    """

    def __init__(self, config: SiteConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport
        self.client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HttpSession":
        self.client = httpx.AsyncClient(
            headers=self.config.headers,
            max_redirects=self.config.max_redirects,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.client is not None:
            await self.client.aclose()
            self.client = None
        return False

    def replay_cookies(self, pairs: tuple[str, ...]) -> None:
        """Make the captured name=value pairs the client's cookies for the rest of the run.

        They go into the client jar with no domain, so redirects and status polls send them too.
        """
        jar = self._require_client().cookies
        jar.clear()
        for pair in pairs:
            name, _, value = pair.partition("=")
            jar.set(name.strip(), value)

    async def get(
        self,
        url: str,
        headers: dict | None = None,
        timeout: float | None = None,
        follow_redirects: bool = True,
    ) -> RawResponse:
        return await self.request(
            "GET",
            url,
            headers=headers,
            timeout=timeout or self.config.page_timeout,
            follow_redirects=follow_redirects,
        )

    async def post(
        self,
        url: str,
        headers: dict | None = None,
        timeout: float | None = None,
        follow_redirects: bool = True,
        **body: Any,
    ) -> RawResponse:
        """POST with `content=`, `data=` or `files=` passed through to httpx."""
        return await self.request(
            "POST",
            url,
            headers=headers,
            timeout=timeout or self.config.submit_timeout,
            follow_redirects=follow_redirects,
            **body,
        )

    async def request(self, method: str, url: str, timeout: float, **kwargs: Any) -> RawResponse:
        client = self._require_client()
        debug_log(f"{method} {url}")
        try:
            response = await client.request(method, url, timeout=timeout, **kwargs)
        except httpx.TimeoutException as e:
            raise RequestTimeout(f"{method} {url}", timeout) from e
        except httpx.TooManyRedirects as e:
            raise TransportError(url, f"more than {self.config.max_redirects} redirects") from e
        except httpx.HTTPError as e:
            raise TransportError(url, str(e) or type(e).__name__) from e

        if response.status_code >= 500:
            raise TransportError(url, f"HTTP {response.status_code}", status=response.status_code)

        history = response.history
        return RawResponse(
            url=str(response.url),
            status=response.status_code,
            body=response.text,
            headers=dict(response.headers),
            cookies=cookie_pairs(response),
            redirected_from=str(history[0].url) if history else None,
        )

    def _require_client(self) -> httpx.AsyncClient:
        if self.client is None:
            raise RuntimeError("HttpSession used outside 'async with'")
        return self.client
