"""Command-line entry point."""

import json

import pytest

from ephoto.cli import main as cli
from ephoto.pipeline.types import PipelineResult

from .conftest import EFFECT_URL


class CapturingGenerator:
    def __init__(self, result):
        self.result = result

    async def generate(self, page_url, text, cancel=None):
        return self.result


@pytest.fixture
def captured_config(monkeypatch):
    """Replace the generator factory and remember the config it was built with."""
    seen = {}

    def factory(config=None, transport=None):
        seen["config"] = config
        return CapturingGenerator(seen.get("result"))

    monkeypatch.setattr("ephoto.providers.create_generator", factory)
    return seen


def run(argv):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)
    return excinfo.value.code


def test_generate_prints_result_and_exits_zero(captured_config, capsys):
    captured_config["result"] = PipelineResult(
        success=True, text="Naruto", effect_url=EFFECT_URL, image_url="https://x/a.jpg", download_url="https://x/s"
    )

    code = run(["generate", EFFECT_URL, "Naruto"])

    assert code == 0
    document = json.loads(capsys.readouterr().out)
    assert document["result"]["image_url"] == "https://x/a.jpg"


def test_generate_failure_exits_one(captured_config, capsys):
    captured_config["result"] = PipelineResult.failure("Naruto", EFFECT_URL, "NotFound", "Image URL not found in response")

    assert run(["generate", EFFECT_URL, "Naruto"]) == 1
    assert json.loads(capsys.readouterr().out)["error_kind"] == "NotFound"


def test_flags_become_config_overrides(captured_config):
    captured_config["result"] = PipelineResult.failure("t", EFFECT_URL, "NotFound", "x")

    run(
        [
            "generate",
            EFFECT_URL,
            "t",
            "--multipart",
            "--capture-redirects",
            "--api",
            "--browser-fallback",
            "--attempts",
            "7",
            "--interval",
            "0.25",
        ]
    )

    config = captured_config["config"]
    assert config.encoding == "multipart"
    assert config.redirect_policy == "capture"
    assert config.submit_mode == "api"
    assert config.browser_fallback is True
    assert config.poll_attempts == 7
    assert config.poll_interval == 0.25


def test_invalid_override_exits_two(captured_config, capsys):
    assert run(["generate", EFFECT_URL, "t", "--attempts", "0"]) == 2
    assert "poll_attempts" in capsys.readouterr().err


def test_invalid_request_exits_two(monkeypatch, capsys):
    assert run(["generate", "not-a-url", "t"]) == 2
    assert "url" in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    assert run([]) == 1
    assert "generate" in capsys.readouterr().out
