"""Textual markers in response bodies and the diagnostic snapshot built from them."""

import re

from ..core.config import SiteConfig
from .types import DiagnosticSnapshot

_TOKEN_INPUT = re.compile(
    r"""<input[^>]*\b(?:name|id)\s*=\s*["']token["']""",
    re.IGNORECASE,
)


def has_token_field(html: str) -> bool:
    """Whether the markup still carries a token input (form page, not a result page)."""
    return _TOKEN_INPUT.search(html) is not None


def find_marker(body: str, markers: tuple) -> str | None:
    lowered = body.lower()
    for marker in markers:
        if marker.lower() in lowered:
            return marker
    return None


def find_pending_marker(body: str, config: SiteConfig) -> str | None:
    return find_marker(body, config.pending_markers)


def find_error_marker(body: str, config: SiteConfig) -> str | None:
    return find_marker(body, config.error_markers)


def contains_known_host(body: str, config: SiteConfig) -> bool:
    return re.search(config.artifact_host_pattern, body, re.IGNORECASE) is not None


def contains_known_path(body: str, config: SiteConfig) -> bool:
    return config.artifact_path_segment in body


def build_snapshot(body: str, config: SiteConfig, status: int | None = None, url: str | None = None) -> DiagnosticSnapshot:
    """Summarize a body for triage: length, marker flags and a truncated sample."""
    return DiagnosticSnapshot(
        response_length=len(body),
        token_found=has_token_field(body),
        has_known_host=contains_known_host(body, config),
        has_known_path=contains_known_path(body, config),
        pending_marker=find_pending_marker(body, config) is not None,
        sample=body[: config.sample_length],
        status_code=status,
        url=url,
    )
