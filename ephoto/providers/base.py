import asyncio
import time
from abc import ABC, abstractmethod
from urllib.parse import urlsplit

from ..core.config import SiteConfig, load_config
from ..core.exceptions import EphotoException, InvalidRequest
from ..core.utils import log, log_context, shorten
from ..pipeline.types import PipelineResult

# Failures the browser path can plausibly get past; network and timeouts are not among them
FALLBACK_KINDS = ("TokenNotFound", "RemoteRejected", "NotFound")


def validate_request(page_url: str | None, text: str | None):
    """Caller-side validation. Raises InvalidRequest; never produces a PipelineResult."""
    if not page_url or not str(page_url).strip():
        raise InvalidRequest("url")
    if not text or not str(text).strip():
        raise InvalidRequest("name")
    parts = urlsplit(str(page_url).strip())
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise InvalidRequest("url", "not an absolute http(s) URL")


class Generator(ABC):
    """Abstract base class for ways of running the text-effect form.

    Implements the template method for one generate call: validate, run the
    strategy, and turn every pipeline failure into a PipelineResult.
    Subclasses implement _generate_impl and raise EphotoException subclasses.

    Instances hold configuration only; nothing is cached between calls.
    """

    name = "Generator"

    def __init__(self, config: SiteConfig | None = None):
        self.config = config or load_config()

    async def generate(self, page_url: str, text: str, cancel: asyncio.Event | None = None) -> PipelineResult:
        """Run the form for page_url with text and return a result object, success or not.

        Raises:
            InvalidRequest: page_url or text missing
        """
        validate_request(page_url, text)
        page_url = page_url.strip()

        with log_context(self.name):
            log(f'Processing: {page_url} with text: "{shorten(text)}"', "●")
            started = time.monotonic()
            try:
                result = await self._generate_impl(page_url, text, cancel)
            except asyncio.CancelledError:
                log("Interrupted", "✕")
                raise
            except EphotoException as e:
                log(f"{e.error_kind}: {e.message}", "✕")
                result = PipelineResult.failure(
                    text, page_url, e.error_kind, e.message, debug=e.snapshot, retry=e.retry
                )
            except Exception as e:
                log(f"Unexpected error: {str(e).split(chr(10))[0]}", "✕")
                result = PipelineResult.failure(text, page_url, "InternalError", f"{type(e).__name__}: {e}")

            result.generator = result.generator or self.name
            elapsed = time.monotonic() - started
            if result.success:
                log(f"Success in {elapsed:.1f}s: {result.image_url}", "★")
            else:
                log(f"Failed in {elapsed:.1f}s ({result.error_kind})", "⚠")
            return result

    @abstractmethod
    async def _generate_impl(self, page_url: str, text: str, cancel: asyncio.Event | None) -> PipelineResult:
        """Produce a successful result or raise an EphotoException."""
        pass


class FallbackGenerator(Generator):
    """Runs the primary generator and, only if it fails in a recoverable way, the secondary one."""

    name = "FallbackGenerator"

    def __init__(
        self,
        primary: Generator,
        secondary: Generator,
        fallback_kinds: tuple[str, ...] = FALLBACK_KINDS,
        config: SiteConfig | None = None,
    ):
        super().__init__(config or primary.config)
        self.primary = primary
        self.secondary = secondary
        self.fallback_kinds = fallback_kinds

    async def _generate_impl(self, page_url: str, text: str, cancel: asyncio.Event | None) -> PipelineResult:
        result = await self.primary.generate(page_url, text, cancel)
        if result.success or result.error_kind not in self.fallback_kinds:
            return result

        log(f"{self.primary.name} failed ({result.error_kind}) - trying {self.secondary.name}", "⟳")
        fallback = await self.secondary.generate(page_url, text, cancel)
        if not fallback.success and fallback.debug is None:
            # The lightweight path's snapshot is usually the more telling one
            fallback.debug = result.debug
        return fallback
