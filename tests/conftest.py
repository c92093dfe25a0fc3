"""Shared fixtures: hermetic configuration, HTML fixtures and a scripted httpx transport."""

from pathlib import Path

import httpx
import pytest

from ephoto.core import config as config_module
from ephoto.core import debug as debug_module
from ephoto.core.config import SiteConfig

FIXTURES = Path(__file__).parent / "fixtures"

EFFECT_URL = "https://en.ephoto360.com/naruto-shippuden-logo-style-text-effect-online-808.html"


def load_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the settings file at an empty temp location and drop cached settings."""
    monkeypatch.setenv("EPHOTO_CONFIG", str(tmp_path / "settings.json"))
    monkeypatch.delenv("EPHOTO_DEBUG", raising=False)
    config_module._config = None
    debug_module._settings = None
    yield
    config_module._config = None
    debug_module._settings = None


@pytest.fixture
def config():
    return SiteConfig(poll_attempts=3, poll_interval=0)


class ScriptedSite:
    """httpx handler serving canned responses per (method, url), recording every request.

    Each route is a list of handlers taking the request; they are used in order and
    the last one repeats. A fresh httpx.Response is built for every request.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, *handlers):
        self.routes[(method.upper(), url)] = list(handlers)
        return self

    def html(self, method: str, url: str, *bodies: str, status: int = 200, headers: dict | None = None):
        return self.add(
            method, url, *[lambda _request, body=body: httpx.Response(status, text=body, headers=headers) for body in bodies]
        )

    def json(self, method: str, url: str, *payloads: dict):
        return self.add(method, url, *[lambda _request, data=data: httpx.Response(200, json=data) for data in payloads])

    def requests_to(self, method: str, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and str(r.url) == url]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handlers = self.routes.get((request.method, str(request.url)))
        if not handlers:
            return httpx.Response(404, text="not found")
        handler = handlers.pop(0) if len(handlers) > 1 else handlers[0]
        return handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def site():
    return ScriptedSite()
