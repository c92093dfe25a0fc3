"""Artifact resolution - finds the generated image URL in a submission response.

The strategies run in a fixed order, most structural first and most generic last:

    1. background image     img.bg-image and friends
    2. save link            #save-image-btn; canonical path derived from its identifier
    3. artifact pattern     artifact-host URL under /user_image/ with an allowed extension
    4. script variable      image_url = "...", "image": "..." in scripts or JSON bodies
    5. share text           plain URL inside the share-link box

Each strategy is a pure function of the response and returns an ArtifactMatch or None.
When none match the body is classified by its markers: error → rejected, in-progress →
Pending, reposted token form → rejected, otherwise NotFound.
"""

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import cached_property
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from ..core.config import SiteConfig
from ..core.exceptions import RemoteRejected
from ..core.utils import debug_log, log, origin_of
from .diagnostics import build_snapshot, find_error_marker, find_pending_marker, has_token_field
from .types import ExtractionResult

SAVE_LINK_SELECTORS = ("#save-image-btn", "a.save-image-btn", 'a[href*="/save-image/"]')
SHARE_SELECTORS = ("#share-link", ".share-link", "#link-image")
BACKGROUND_SELECTORS = ("img.bg-image", "[class*=bg-image] img", "img[class*=bg-image]")

SAVE_ID_PATTERN = re.compile(r"/save-image/([\w.-]+?)\.(jpe?g|png)(?:[/?#]|$)", re.IGNORECASE)
URL_IN_TEXT = re.compile(r"(?:https?:)?//[^\s\"'<>]+")
IMAGE_VARIABLE = re.compile(
    r"""["']?\b(\w*(?:image|img)\w*)["']?\s*[:=]\s*(["'])((?:https?:)?(?:\\?/)[^"'\s]+)\2""",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ArtifactMatch:
    image_url: str
    download_url: str | None = None


class ResolverInput:
    """One response body with its parsed tree, shared by every strategy."""

    def __init__(self, body: str, config: SiteConfig, base_url: str | None = None):
        self.body = body
        self.config = config
        self.base_url = base_url or config.site_origin

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.body, "html.parser")

    @cached_property
    def artifact_pattern(self) -> re.Pattern:
        host = self.config.artifact_host_pattern
        segment = re.escape(self.config.artifact_path_segment)
        extensions = "|".join(re.escape(ext) for ext in self.config.image_extensions)
        return re.compile(
            rf"(?:https?:)?//{host}/[^\s\"'<>]*?{segment}[^\s\"'<>]*?\.(?:{extensions})\b",
            re.IGNORECASE,
        )

    def complete(self, url: str) -> str:
        """Give scheme-less URLs a scheme and relative paths the site origin."""
        url = url.strip().replace("\\/", "/")
        if url.startswith("//"):
            return "https:" + url
        if "://" in url:
            return url
        return urljoin(origin_of(self.base_url) + "/", url)

    def is_allowed_image(self, url: str) -> bool:
        path = urlsplit(url).path.lower()
        return any(path.endswith("." + ext) for ext in self.config.image_extensions)


Strategy = Callable[[ResolverInput], ArtifactMatch | None]


def _first_attr(data: ResolverInput, selectors: tuple, attrs: tuple) -> str | None:
    for selector in selectors:
        for node in data.soup.select(selector):
            for attr in attrs:
                value = node.get(attr)
                if isinstance(value, str) and value.strip() and not value.startswith("data:"):
                    return value.strip()
    return None


def find_save_link(data: ResolverInput) -> str | None:
    href = _first_attr(data, SAVE_LINK_SELECTORS, ("href", "data-href"))
    return data.complete(href) if href else None


def canonical_from_save_link(save_link: str, build_server: str | None = None) -> tuple[str, str] | None:
    """Map a save link to (identifier, canonical image URL).

    /save-image/<id>.<ext>/<n> corresponds to /images/user_image/<YYYY>/<MM>/<id>.<ext>
    on the same build host. The identifier starts with a hex unix timestamp, which
    dates the directory; identifiers that do not decode fall back to today's date.
    """
    match = SAVE_ID_PATTERN.search(save_link)
    if not match:
        return None
    identifier, ext = match.group(1), match.group(2)
    try:
        created = datetime.fromtimestamp(int(identifier[:8], 16), tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        created = datetime.now(timezone.utc)

    parts = urlsplit(save_link)
    host = f"{parts.scheme}://{parts.netloc}" if parts.netloc else (build_server or "").rstrip("/")
    path = f"/images/user_image/{created:%Y}/{created:%m}/{identifier}.{ext}"
    return identifier, host + path


def _direct_image_with(data: ResolverInput, identifier: str) -> str | None:
    for match in data.artifact_pattern.finditer(data.body):
        if identifier in match.group(0):
            return data.complete(match.group(0))
    return None


def from_background_image(data: ResolverInput) -> ArtifactMatch | None:
    src = _first_attr(data, BACKGROUND_SELECTORS, ("src", "data-src"))
    if not src:
        return None
    return ArtifactMatch(data.complete(src), find_save_link(data))


def from_save_link(data: ResolverInput) -> ArtifactMatch | None:
    save_link = find_save_link(data)
    if not save_link:
        return None
    derived = canonical_from_save_link(save_link)
    if derived is None:
        return None
    identifier, canonical = derived
    # A directly displayed image for the same identifier beats the derived path
    image_url = _direct_image_with(data, identifier) or canonical
    return ArtifactMatch(image_url, save_link)


def from_artifact_pattern(data: ResolverInput) -> ArtifactMatch | None:
    match = data.artifact_pattern.search(data.body)
    if not match:
        return None
    return ArtifactMatch(data.complete(match.group(0)))


def from_script_variable(data: ResolverInput) -> ArtifactMatch | None:
    candidates = [s.get_text() for s in data.soup.find_all("script")]
    if data.body.lstrip().startswith("{"):
        candidates.insert(0, data.body)
    for text in candidates:
        for match in IMAGE_VARIABLE.finditer(text):
            url = data.complete(match.group(3))
            if data.is_allowed_image(url):
                return ArtifactMatch(url)
    return None


def from_share_text(data: ResolverInput) -> ArtifactMatch | None:
    for selector in SHARE_SELECTORS:
        for node in data.soup.select(selector):
            text = " ".join(filter(None, [node.get("value"), node.get_text(" ")]))
            for match in URL_IN_TEXT.finditer(text):
                url = data.complete(match.group(0))
                if data.is_allowed_image(url):
                    return ArtifactMatch(url)
    return None


STRATEGIES: tuple[Strategy, ...] = (
    from_background_image,
    from_save_link,
    from_artifact_pattern,
    from_script_variable,
    from_share_text,
)


def json_image(body: str) -> str | None:
    """The "image" field of a JSON status answer, if the body is one."""
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if isinstance(data, dict):
        image = data.get("image") or data.get("image_url")
        if isinstance(image, str) and image.strip():
            return image
    return None


def resolve(body: str, config: SiteConfig, base_url: str | None = None) -> ExtractionResult:
    """Locate the artifact URL in a response body.

    Args:
        body: Response body (HTML or JSON)
        config: Site configuration
        base_url: Origin used to complete relative URLs (defaults to the site origin)

    Returns:
        Found (image_url, download_url), Pending or NotFound

    Raises:
        RemoteRejected: the body carries an error marker or is the input form again
    """
    data = ResolverInput(body, config, base_url)

    image = json_image(body)
    if image:
        url = data.complete(image)
        log(f"Found image URL: {url}", "★")
        return ExtractionResult.found(url, strategy="json_image")

    for strategy in STRATEGIES:
        match = strategy(data)
        if match:
            log(f"Found image URL: {match.image_url} ({strategy.__name__})", "★")
            if match.download_url and match.download_url != match.image_url:
                log(f"Save link: {match.download_url}", "○")
            return ExtractionResult.found(match.image_url, match.download_url, strategy=strategy.__name__)
        debug_log(f"{strategy.__name__}: no match")

    return classify(body, config)


def classify(body: str, config: SiteConfig) -> ExtractionResult:
    """Decide what an unmatched body means."""
    error = find_error_marker(body, config)
    if error:
        log(f"Error marker in response: {error!r}", "✕")
        raise RemoteRejected(f"error marker {error!r} in response", snapshot=build_snapshot(body, config))

    pending = find_pending_marker(body, config)
    if pending:
        log(f"Generation still in progress ({pending!r})", "⟳")
        return ExtractionResult.pending()

    if has_token_field(body):
        log("Response is the input form again", "✕")
        raise RemoteRejected("submission bounced back to the input form", snapshot=build_snapshot(body, config))

    log("Could not find image URL in response", "⚠")
    return ExtractionResult.not_found()


def find_status_url(body: str, base_url: str) -> str | None:
    """Target of a meta refresh on a pending page, the only pollable location such pages give."""
    soup = BeautifulSoup(body, "html.parser")
    meta = soup.find("meta", attrs={"http-equiv": re.compile("^refresh$", re.I)})
    if meta is None:
        return None
    content = meta.get("content") or ""
    match = re.search(r"url\s*=\s*['\"]?([^'\";]+)", content, re.IGNORECASE)
    if not match:
        return base_url
    parts = urlsplit(urljoin(base_url, match.group(1).strip()))
    return urlunsplit(parts)
