"""Form submission - posts the token and text back to the effect form."""

from urllib.parse import urlencode, urljoin

from ..core.config import SiteConfig
from ..core.exceptions import RemoteRejected
from ..core.transport import HttpSession
from ..core.utils import log, origin_of, shorten
from .diagnostics import build_snapshot
from .types import Encoding, FormContext, RawResponse, SubmissionRequest

REDIRECT_STATUSES = (301, 302, 303, 307, 308)


def build_request(ctx: FormContext, text: str, config: SiteConfig) -> SubmissionRequest:
    return SubmissionRequest(text=text, form_context=ctx, encoding=Encoding(config.encoding))


def submission_headers(ctx: FormContext, config: SiteConfig) -> dict:
    """Origin and Referer are mandatory; the site drops posts without a plausible referrer."""
    return {
        "Origin": origin_of(config.site_origin),
        "Referer": ctx.page_url,
        "X-Requested-With": "XMLHttpRequest",
    }


def encode_body(request: SubmissionRequest) -> dict:
    """httpx keyword arguments for the request body."""
    fields = request.fields()
    if request.encoding is Encoding.MULTIPART:
        # (None, value) tuples make plain form-data parts without a filename
        return {"files": [(name, (None, value)) for name, value in fields]}
    return {
        "content": urlencode(fields),
        "headers": {"Content-Type": "application/x-www-form-urlencoded"},
    }


async def submit(http: HttpSession, ctx: FormContext, text: str, config: SiteConfig) -> RawResponse:
    """Post the form and return the response body to resolve.

    With redirect_policy "follow", httpx follows up to max_redirects hops. With "capture",
    the Location of a redirect is read and fetched with one explicit GET.

    Raises:
        TransportError: network failure or 5xx
        RequestTimeout: the post exceeded submit_timeout
    """
    request = build_request(ctx, text, config)
    body = encode_body(request)
    headers = {**submission_headers(ctx, config), **body.pop("headers", {})}
    follow = config.redirect_policy == "follow"

    http.replay_cookies(ctx.session_cookies)
    log(f'Submitting "{shorten(text, 40)}" to {ctx.action_url} ({request.encoding.value})', "→")
    response = await http.post(
        ctx.action_url,
        headers=headers,
        follow_redirects=follow,
        **body,
    )
    log(f"Response status: {response.status}", "○")

    if not follow and response.status in REDIRECT_STATUSES:
        location = response.headers.get("location")
        if not location:
            return response
        target = urljoin(response.url, location)
        log(f"Following captured redirect to {target}", "↪")
        result = await http.get(target, headers={"Referer": ctx.action_url}, timeout=config.submit_timeout)
        return RawResponse(
            url=result.url,
            status=result.status,
            body=result.body,
            headers=result.headers,
            cookies=result.cookies,
            redirected_from=response.url,
        )

    return response


async def create_image(http: HttpSession, ctx: FormContext, text: str, config: SiteConfig) -> tuple[str, RawResponse]:
    """JSON flavour: post to the create-image endpoint and return the job id.

    Raises:
        RemoteRejected: the endpoint answered without an id
    """
    request = build_request(ctx, text, config)
    fields = [f for f in request.fields() if f[0] != "submit"]
    headers = {
        **submission_headers(ctx, config),
        "Content-Type": "application/x-www-form-urlencoded",
        "Accept": "application/json, text/javascript, */*; q=0.01",
    }

    http.replay_cookies(ctx.session_cookies)
    log(f'Creating image for "{shorten(text, 40)}" via {config.create_image_url}', "→")
    response = await http.post(
        config.create_image_url,
        headers=headers,
        content=urlencode(fields),
    )
    data = response.json() or {}
    job_id = data.get("id")
    if not job_id:
        raise RemoteRejected(
            "Image creation failed (no job id returned)",
            snapshot=build_snapshot(response.body, config, status=response.status, url=response.url),
        )
    log(f"Image job id: {job_id}", "✓")
    return str(job_id), response
