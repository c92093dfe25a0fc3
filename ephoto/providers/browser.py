"""Browser generator - drives the effect page in Firefox when plain HTTP is not enough."""

import asyncio

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..core.browser import close_browser, create_browser
from ..core.config import SiteConfig
from ..core.debug import dump_debug_info
from ..core.exceptions import ArtifactNotFound, RemoteRejected, RequestTimeout, TransportError
from ..core.utils import debug_log, log
from ..pipeline.diagnostics import build_snapshot
from ..pipeline.poll import poll_until_ready
from ..pipeline.resolver import resolve
from ..pipeline.types import ExtractionResult, ExtractionState, PipelineResult
from .base import Generator
from .http import image_id_from

SELECTORS = {
    "text": 'input[name="text[]"], textarea[name="text[]"]',
    "submit": 'input[name="submit"], button[name="submit"], #submit, button[type="submit"]',
}

# Floor for the browser poll interval; the page needs time to render between checks
MIN_BROWSER_INTERVAL = 0.5


class BrowserGenerator(Generator):
    """Fills and submits the form in a real browser, then reads the rendered result page.

    The launcher and closer are injectable so the flow can run against a fake page.
    """

    name = "BrowserGenerator"

    def __init__(self, config: SiteConfig | None = None, launcher=create_browser, closer=close_browser):
        super().__init__(config)
        self.launcher = launcher
        self.closer = closer

    async def _generate_impl(self, page_url: str, text: str, cancel: asyncio.Event | None) -> PipelineResult:
        config = self.config
        playwright, browser, context, page = await self.launcher(user_agent=config.headers.get("User-Agent"))
        try:
            try:
                await self._fill_and_submit(page, page_url, text)
                result, body = await self._wait_for_image(page, cancel)
            except PlaywrightTimeoutError as e:
                raise RequestTimeout("browser navigation", config.browser_timeout) from e
            except PlaywrightError as e:
                raise TransportError(page_url, str(e).split("\n")[0]) from e

            if result.state is ExtractionState.TIMEOUT:
                raise RequestTimeout(
                    "waiting for image", config.browser_timeout, snapshot=build_snapshot(body, config, url=page.url)
                )
            if not result.is_found:
                raise ArtifactNotFound(snapshot=build_snapshot(body, config, url=page.url))

            return PipelineResult(
                success=True,
                text=text,
                effect_url=page_url,
                image_url=result.image_url,
                download_url=result.download_url,
                server=config.build_server,
                image_id=image_id_from(result.image_url or ""),
            )
        except Exception as e:
            await dump_debug_info(page, e, label="browser")
            raise
        finally:
            await self.closer(playwright, context, browser)

    async def _fill_and_submit(self, page, page_url: str, text: str):
        timeout_ms = int(self.config.browser_timeout * 1000)
        log("Opening effect page...", "↓")
        await page.goto(page_url, timeout=timeout_ms, wait_until="domcontentloaded")
        await page.wait_for_selector(SELECTORS["text"], timeout=timeout_ms)

        log(f'Typing text: "{text[:60]}"', "✎")
        await page.locator(SELECTORS["text"]).first.fill(text)
        await page.locator(SELECTORS["submit"]).first.click()
        log("Form submitted", "↑")

    async def _wait_for_image(self, page, cancel: asyncio.Event | None) -> tuple[ExtractionResult, str]:
        """Re-read the rendered page until an image shows up or the browser timeout passes.

        Until the deadline a missing image counts as still generating, and so does the
        form itself, since the page may not have navigated yet.
        """
        config = self.config
        interval = max(config.poll_interval, MIN_BROWSER_INTERVAL)
        attempts = max(1, int(config.browser_timeout / interval))
        latest = {"body": "", "rejected": None}

        async def query() -> ExtractionResult:
            try:
                body = await page.content()
            except PlaywrightError as e:
                # Content is unavailable while the submit navigation is in flight
                reason = str(e).split("\n")[0]
                debug_log(f"Page not readable yet: {reason}")
                return ExtractionResult.pending()
            latest["body"] = body
            try:
                result = resolve(body, config, base_url=page.url)
            except RemoteRejected as e:
                latest["rejected"] = e
                return ExtractionResult.pending()
            latest["rejected"] = None
            if result.state is ExtractionState.NOT_FOUND:
                return ExtractionResult.pending()
            return result

        result = await poll_until_ready(query, attempts, interval, cancel)
        if result.state is ExtractionState.TIMEOUT and latest["rejected"] is not None:
            raise latest["rejected"]
        return result, latest["body"]
