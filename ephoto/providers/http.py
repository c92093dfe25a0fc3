"""Lightweight generator - plain HTTP: fetch form, extract token, submit, resolve, poll."""

import asyncio
import os
from urllib.parse import urlencode, urlsplit

import httpx

from ..core.config import SiteConfig
from ..core.debug import dump_response
from ..core.exceptions import ArtifactNotFound, EphotoException, GenerationPending, RequestTimeout
from ..core.transport import HttpSession
from ..core.utils import log
from ..pipeline.diagnostics import build_snapshot
from ..pipeline.poll import poll_until_ready
from ..pipeline.resolver import find_status_url, json_image, resolve
from ..pipeline.submit import create_image, submission_headers, submit
from ..pipeline.tokens import extract_form_context
from ..pipeline.types import ExtractionResult, ExtractionState, FormContext, PipelineResult, RawResponse
from .base import Generator


def merge_cookies(*groups: tuple[str, ...]) -> tuple[str, ...]:
    """Combine name=value pairs; a later pair replaces an earlier one with the same name."""
    merged: dict[str, str] = {}
    for group in groups:
        for pair in group:
            merged[pair.split("=", 1)[0]] = pair
    return tuple(merged.values())


def image_id_from(url: str) -> str | None:
    name = os.path.basename(urlsplit(url).path)
    stem, _ = os.path.splitext(name)
    return stem or None


class _Run:
    """Per-call state: the last response seen, for diagnostics."""

    def __init__(self):
        self.last: RawResponse | None = None

    def snapshot(self, config: SiteConfig):
        if self.last is None:
            return None
        return build_snapshot(self.last.body, config, status=self.last.status, url=self.last.url)


class HttpGenerator(Generator):
    """The default strategy. Every call opens its own client, so calls share nothing.

    Args:
        config: Site configuration (defaults to load_config())
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests
    """

    name = "HttpGenerator"

    def __init__(self, config: SiteConfig | None = None, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(config)
        self.transport = transport

    async def _generate_impl(self, page_url: str, text: str, cancel: asyncio.Event | None) -> PipelineResult:
        run = _Run()
        try:
            async with HttpSession(self.config, self.transport) as http:
                ctx = await self._load_form(http, run, page_url)
                if self.config.submit_mode == "api":
                    result = await self._run_api(http, run, ctx, text, cancel)
                else:
                    result = await self._run_form(http, run, ctx, text, cancel)
                return self._finish(result, run, ctx, text, page_url)
        except EphotoException as e:
            if run.last is not None:
                dump_response(run.last.body, e, label="http", url=run.last.url)
            raise

    async def _load_form(self, http: HttpSession, run: _Run, page_url: str) -> FormContext:
        config = self.config
        bootstrap_cookies: tuple[str, ...] = ()
        if config.bootstrap_session:
            log("Bootstrapping session...", "○")
            root = await http.get(config.site_origin.rstrip("/") + "/")
            bootstrap_cookies = root.cookies

        log("Fetching initial page...", "↓")
        page = await http.get(page_url)
        run.last = page
        return extract_form_context(
            page.body,
            page.url,
            config,
            cookies=merge_cookies(bootstrap_cookies, page.cookies),
            status=page.status,
        )

    async def _run_form(
        self, http: HttpSession, run: _Run, ctx: FormContext, text: str, cancel: asyncio.Event | None
    ) -> ExtractionResult:
        config = self.config
        response = await submit(http, ctx, text, config)
        run.last = response

        result = resolve(response.body, config, base_url=response.url)
        if not result.is_pending:
            return result

        status_url = find_status_url(response.body, response.url)
        if status_url is None and response.redirected_from:
            status_url = response.url
        if status_url is None:
            raise GenerationPending(snapshot=run.snapshot(config))

        async def query() -> ExtractionResult:
            latest = await http.get(status_url, headers={"Referer": ctx.page_url})
            run.last = latest
            return resolve(latest.body, config, base_url=latest.url)

        log(f"Polling {status_url}", "⟳")
        return await poll_until_ready(query, config.poll_attempts, config.poll_interval, cancel)

    async def _run_api(
        self, http: HttpSession, run: _Run, ctx: FormContext, text: str, cancel: asyncio.Event | None
    ) -> ExtractionResult:
        config = self.config
        job_id, response = await create_image(http, ctx, text, config)
        run.last = response
        headers = {**submission_headers(ctx, config), "Content-Type": "application/x-www-form-urlencoded"}

        async def query() -> ExtractionResult:
            latest = await http.post(
                config.status_url,
                headers=headers,
                content=urlencode({"id": job_id}),
            )
            run.last = latest
            if json_image(latest.body):
                return resolve(latest.body, config, base_url=ctx.build_server)
            return ExtractionResult.pending()

        return await poll_until_ready(query, config.poll_attempts, config.poll_interval, cancel)

    def _finish(self, result: ExtractionResult, run: _Run, ctx: FormContext, text: str, page_url: str) -> PipelineResult:
        config = self.config
        if result.state is ExtractionState.TIMEOUT:
            raise RequestTimeout(
                "waiting for image", config.poll_attempts * config.poll_interval, snapshot=run.snapshot(config)
            )
        if result.state is not ExtractionState.FOUND:
            raise ArtifactNotFound(snapshot=run.snapshot(config))

        return PipelineResult(
            success=True,
            text=text,
            effect_url=page_url,
            image_url=result.image_url,
            download_url=result.download_url,
            server=ctx.build_server,
            image_id=image_id_from(result.image_url or ""),
        )
