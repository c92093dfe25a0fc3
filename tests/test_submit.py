"""Form submission: field set, encodings, headers, cookies and redirect handling."""

from urllib.parse import parse_qsl

import httpx
import pytest

from ephoto.core.exceptions import RemoteRejected, RequestTimeout, TransportError
from ephoto.core.transport import HttpSession
from ephoto.pipeline.submit import create_image, submit
from ephoto.pipeline.types import FormContext

from .conftest import EFFECT_URL

ACTION = "https://en.ephoto360.com/effect/submit"


@pytest.fixture
def ctx():
    return FormContext(
        token="XYZ",
        build_server="https://e1.yotools.net",
        build_server_id="2",
        action_url=ACTION,
        page_url=EFFECT_URL,
        session_cookies=("PHPSESSID=s1", "lang=en"),
    )


@pytest.mark.asyncio
async def test_urlencoded_field_set_and_headers(site, ctx, config):
    site.html("POST", ACTION, "<p>ok</p>")

    async with HttpSession(config, site.transport) as http:
        response = await submit(http, ctx, "Hello World", config)

    assert response.status == 200
    (request,) = site.requests_to("POST", ACTION)
    assert parse_qsl(request.content.decode()) == [
        ("text[]", "Hello World"),
        ("token", "XYZ"),
        ("build_server", "https://e1.yotools.net"),
        ("build_server_id", "2"),
        ("submit", "GO"),
    ]
    assert request.headers["content-type"] == "application/x-www-form-urlencoded"
    assert request.headers["origin"] == "https://en.ephoto360.com"
    assert request.headers["referer"] == EFFECT_URL
    assert request.headers["cookie"] == "PHPSESSID=s1; lang=en"
    assert "Mozilla" in request.headers["user-agent"]


@pytest.mark.asyncio
async def test_multipart_encoding(site, ctx, config):
    config = config.replace(encoding="multipart")
    site.html("POST", ACTION, "<p>ok</p>")

    async with HttpSession(config, site.transport) as http:
        await submit(http, ctx, "Naruto", config)

    (request,) = site.requests_to("POST", ACTION)
    assert request.headers["content-type"].startswith("multipart/form-data; boundary=")
    body = request.content.decode()
    assert 'name="text[]"' in body
    assert "Naruto" in body
    assert 'name="token"' in body
    assert "filename=" not in body


@pytest.mark.asyncio
async def test_follow_policy_follows_redirects(site, ctx, config):
    result_url = "https://en.ephoto360.com/result/77"
    site.html("POST", ACTION, "", status=302, headers={"Location": "/result/77"})
    site.html("GET", result_url, "<p>result page</p>")

    async with HttpSession(config, site.transport) as http:
        response = await submit(http, ctx, "Hi", config)

    assert response.url == result_url
    assert response.body == "<p>result page</p>"
    assert response.redirected_from == ACTION


@pytest.mark.asyncio
async def test_capture_policy_reads_location(site, ctx, config):
    config = config.replace(redirect_policy="capture")
    result_url = "https://en.ephoto360.com/result/78"
    site.html("POST", ACTION, "", status=303, headers={"Location": result_url})
    site.html("GET", result_url, "<p>captured</p>")

    async with HttpSession(config, site.transport) as http:
        response = await submit(http, ctx, "Hi", config)

    assert response.body == "<p>captured</p>"
    assert response.redirected_from == ACTION
    (follow_up,) = site.requests_to("GET", result_url)
    assert follow_up.headers["referer"] == ACTION


@pytest.mark.asyncio
async def test_redirect_loop_is_transport_error(site, ctx, config):
    config = config.replace(max_redirects=2)
    site.html("POST", ACTION, "", status=302, headers={"Location": ACTION})
    site.html("GET", ACTION, "", status=302, headers={"Location": ACTION})

    async with HttpSession(config, site.transport) as http:
        with pytest.raises(TransportError):
            await submit(http, ctx, "Hi", config)


@pytest.mark.asyncio
async def test_server_error_is_transport_error(site, ctx, config):
    site.html("POST", ACTION, "boom", status=502)

    async with HttpSession(config, site.transport) as http:
        with pytest.raises(TransportError) as excinfo:
            await submit(http, ctx, "Hi", config)

    assert excinfo.value.status == 502


@pytest.mark.asyncio
async def test_timeout_is_typed(ctx, config):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async with HttpSession(config, httpx.MockTransport(handler)) as http:
        with pytest.raises(RequestTimeout) as excinfo:
            await submit(http, ctx, "Hi", config)

    assert excinfo.value.retry is True


@pytest.mark.asyncio
async def test_create_image_returns_job_id(site, ctx, config):
    site.json("POST", config.create_image_url, {"success": True, "id": "job-9"})

    async with HttpSession(config, site.transport) as http:
        job_id, _response = await create_image(http, ctx, "Hi", config)

    assert job_id == "job-9"
    (request,) = site.requests_to("POST", config.create_image_url)
    fields = dict(parse_qsl(request.content.decode()))
    assert fields["token"] == "XYZ"
    assert "submit" not in fields


@pytest.mark.asyncio
async def test_create_image_without_id_is_rejected(site, ctx, config):
    site.json("POST", config.create_image_url, {"success": False, "message": "blocked"})

    async with HttpSession(config, site.transport) as http:
        with pytest.raises(RemoteRejected):
            await create_image(http, ctx, "Hi", config)


@pytest.mark.asyncio
@pytest.mark.parametrize("policy", ["follow", "capture"])
async def test_result_page_fetch_keeps_session_cookies(site, ctx, config, policy):
    config = config.replace(redirect_policy=policy)
    result_url = "https://en.ephoto360.com/result/1"
    site.html("POST", ACTION, "", status=302, headers={"Location": "/result/1"})
    site.html("GET", result_url, "<p>result page</p>")

    async with HttpSession(config, site.transport) as http:
        response = await submit(http, ctx, "Hi", config)

    assert response.body == "<p>result page</p>"
    (follow_up,) = site.requests_to("GET", result_url)
    assert follow_up.headers["cookie"] == "PHPSESSID=s1; lang=en"
