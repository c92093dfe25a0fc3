"""Token and form-field extraction."""

import pytest

from ephoto.core.exceptions import TokenNotFound
from ephoto.pipeline.tokens import extract_form_context, resolve_action

from .conftest import EFFECT_URL, load_fixture


def test_token_from_input_attribute(config):
    ctx = extract_form_context(load_fixture("form_page.html"), EFFECT_URL, config)

    assert ctx.token == "XYZ"
    assert ctx.build_server_id == "2"
    # build_server is absent from the page, so the configured default applies
    assert ctx.build_server == config.build_server
    # Empty action posts back to the page itself
    assert ctx.action_url == EFFECT_URL


def test_token_from_id_attribute(config):
    html = '<form method="post"><input type="hidden" id="token" value="BY-ID"><input name="text[]"></form>'
    ctx = extract_form_context(html, EFFECT_URL, config)
    assert ctx.token == "BY-ID"


def test_token_from_meta_content(config):
    html = '<html><head><meta name="token" content="META-TOKEN"></head><body></body></html>'
    ctx = extract_form_context(html, EFFECT_URL, config)
    assert ctx.token == "META-TOKEN"


def test_token_from_script_assignment(config):
    ctx = extract_form_context(load_fixture("form_page_script_token.html"), EFFECT_URL, config)

    assert ctx.token == "SCRIPT-TOKEN-42"
    assert ctx.build_server == "https://e7.yotools.net"
    assert ctx.build_server_id == "7"
    assert ctx.action_url == "https://en.ephoto360.com/effect/submit"


def test_token_from_malformed_markup(config):
    # Value before name, unquoted neighbours and no closing form tag
    html = "<form method=post><input value='RAW-42' type=hidden name='token'><input name=text[]>"
    ctx = extract_form_context(html, EFFECT_URL, config)
    assert ctx.token == "RAW-42"


def test_missing_token_raises_without_inventing_one(config):
    with pytest.raises(TokenNotFound) as excinfo:
        extract_form_context(load_fixture("no_token_page.html"), EFFECT_URL, config, status=200)

    error = excinfo.value
    assert error.error_kind == "TokenNotFound"
    assert error.snapshot is not None
    assert error.snapshot.token_found is False
    assert error.snapshot.status_code == 200
    assert error.snapshot.url == EFFECT_URL


def test_empty_token_value_is_not_a_token(config):
    html = '<form method="post"><input type="hidden" name="token" value=""></form>'
    with pytest.raises(TokenNotFound):
        extract_form_context(html, EFFECT_URL, config)


def test_cookies_are_carried_into_context(config):
    ctx = extract_form_context(load_fixture("form_page.html"), EFFECT_URL, config, cookies=["PHPSESSID=abc", "lang=en"])
    assert ctx.session_cookies == ("PHPSESSID=abc", "lang=en")


def test_action_of_the_token_form_wins(config):
    html = """
        <form action="/search" method="get"><input name="q"></form>
        <form action="https://e2.yotools.net/effect/create" method="post">
            <input type="hidden" name="token" value="T">
        </form>
    """
    ctx = extract_form_context(html, EFFECT_URL, config)
    assert ctx.action_url == "https://e2.yotools.net/effect/create"


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, EFFECT_URL),
        ("", EFFECT_URL),
        ("#", EFFECT_URL),
        ("javascript:void(0)", EFFECT_URL),
        ("/effect/submit", "https://en.ephoto360.com/effect/submit"),
        ("https://e1.yotools.net/x", "https://e1.yotools.net/x"),
    ],
)
def test_resolve_action(raw, expected):
    assert resolve_action(raw, EFFECT_URL) == expected
