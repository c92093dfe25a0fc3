"""Token extraction - reads the anti-forgery token and routing fields from a form page.

Every field goes through the same three lookups, most structural first:

    1. a parsed input-like node whose name or id equals the field
    2. a regex over the raw markup (tolerates attribute order and quoting)
    3. an assignment inside inline script text

Only the token is mandatory. The routing fields fall back to configured defaults.
"""

import re
from collections.abc import Callable
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup

from ..core.config import SiteConfig
from ..core.exceptions import TokenNotFound
from ..core.utils import debug_log, log, shorten
from .diagnostics import build_snapshot
from .types import FormContext

FieldLookup = Callable[[BeautifulSoup, str, str], str | None]

INPUT_TAGS = ["input", "textarea", "meta"]
UNUSABLE_ACTIONS = ("", "#")


def _attr_regex(attr: str, value: str) -> str:
    return rf"""\b{attr}\s*=\s*["']{re.escape(value)}["']"""


def _from_structure(soup: BeautifulSoup, _html: str, name: str) -> str | None:
    for attrs in ({"name": name}, {"id": name}):
        for node in soup.find_all(INPUT_TAGS, attrs=attrs):
            value = node.get("value") or node.get("content")
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def _from_markup(_soup: BeautifulSoup, html: str, name: str) -> str | None:
    # Whole tags carrying name=/id= for the field, value= on either side
    tag_pattern = re.compile(
        rf"<[a-z]+[^>]*(?:{_attr_regex('name', name)}|{_attr_regex('id', name)})[^>]*>",
        re.IGNORECASE,
    )
    value_pattern = re.compile(r"""\bvalue\s*=\s*(["'])(.*?)\1""", re.IGNORECASE | re.DOTALL)
    for tag in tag_pattern.finditer(html):
        match = value_pattern.search(tag.group(0))
        if match and match.group(2).strip():
            return match.group(2).strip()
    return None


def _from_script(soup: BeautifulSoup, html: str, name: str) -> str | None:
    pattern = re.compile(rf"""(?<![\w.]){re.escape(name)}["']?\s*[:=]\s*(["'])([^"'\n]+)\1""")
    scripts = [s.get_text() for s in soup.find_all("script")] or [html]
    for script in scripts:
        match = pattern.search(script)
        if match and match.group(2).strip():
            return match.group(2).strip()
    return None


FIELD_LOOKUPS: tuple[FieldLookup, ...] = (_from_structure, _from_markup, _from_script)


def find_field(soup: BeautifulSoup, html: str, name: str) -> str | None:
    """Run the lookup chain for one field; first hit wins."""
    for lookup in FIELD_LOOKUPS:
        value = lookup(soup, html, name)
        if value:
            debug_log(f"{name} found via {lookup.__name__}")
            return value
    return None


def _action_from_structure(soup: BeautifulSoup, _html: str) -> str | None:
    token_node = soup.find(INPUT_TAGS, attrs={"name": "token"}) or soup.find(INPUT_TAGS, attrs={"id": "token"})
    form = token_node.find_parent("form") if token_node else None
    if form is None:
        form = soup.find("form", attrs={"method": re.compile("^post$", re.I)}) or soup.find("form")
    if form is None:
        return None
    action = form.get("action")
    return action if isinstance(action, str) else ""


def _action_from_markup(_soup: BeautifulSoup, html: str) -> str | None:
    match = re.search(r"""<form[^>]*\baction\s*=\s*(["'])(.*?)\1""", html, re.IGNORECASE | re.DOTALL)
    return match.group(2) if match else None


def _action_from_script(soup: BeautifulSoup, html: str) -> str | None:
    return _from_script(soup, html, "form_action") or _from_script(soup, html, "action_url")


ACTION_LOOKUPS = (_action_from_structure, _action_from_markup, _action_from_script)


def resolve_action(raw: str | None, page_url: str) -> str:
    """Absolute form action; the page URL when the action is empty, '#' or unparsable."""
    if raw is None:
        return page_url
    raw = raw.strip()
    if raw in UNUSABLE_ACTIONS or raw.lower().startswith("javascript:"):
        return page_url
    try:
        absolute = urljoin(page_url, raw)
        parts = urlsplit(absolute)
    except ValueError:
        return page_url
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return page_url
    return absolute


def find_action(soup: BeautifulSoup, html: str, page_url: str) -> str:
    """The first lookup that sees a form decides, even if its action is unusable."""
    for lookup in ACTION_LOOKUPS:
        raw = lookup(soup, html)
        if raw is not None:
            return resolve_action(raw, page_url)
    return page_url


def extract_form_context(
    html: str,
    page_url: str,
    config: SiteConfig,
    cookies: tuple[str, ...] | list[str] = (),
    status: int | None = None,
) -> FormContext:
    """Read token, build server, build server id and form action from a page.

    Raises:
        TokenNotFound: when none of the lookups finds a token. No default is made up.
    """
    soup = BeautifulSoup(html, "html.parser")

    token = find_field(soup, html, "token")
    if not token:
        log("Token not found on page", "✕")
        debug_log(f"HTML sample: {html[:1000]}")
        raise TokenNotFound(page_url, snapshot=build_snapshot(html, config, status=status, url=page_url))

    build_server = find_field(soup, html, "build_server") or config.build_server
    build_server_id = find_field(soup, html, "build_server_id") or config.build_server_id
    action_url = find_action(soup, html, page_url)

    log(f"Extracted token: {shorten(token, 10)}", "✓")
    debug_log(f"build_server={build_server} build_server_id={build_server_id} action={action_url}")

    return FormContext(
        token=token,
        build_server=build_server,
        build_server_id=build_server_id,
        action_url=action_url,
        page_url=page_url,
        session_cookies=tuple(cookies),
    )
