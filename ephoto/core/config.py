"""Configuration loader for the ephoto pipeline."""

import dataclasses
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlsplit

from .exceptions import ConfigurationException

PACKAGE_DIR = Path(__file__).parent.parent
SETTINGS_PATH = PACKAGE_DIR / "settings.json"

ENCODINGS = ("urlencoded", "multipart")
REDIRECT_POLICIES = ("follow", "capture")
SUBMIT_MODES = ("form", "api")

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
}


@dataclass(frozen=True)
class SiteConfig:
    """Every default the pipeline relies on, in one immutable place."""

    site_origin: str = "https://en.ephoto360.com"
    build_server: str = "https://e1.yotools.net"
    build_server_id: str = "2"
    headers: dict = field(default_factory=lambda: dict(DEFAULT_HEADERS))

    # Transport
    page_timeout: float = 30.0
    submit_timeout: float = 45.0
    max_redirects: int = 5
    redirect_policy: str = "follow"
    encoding: str = "urlencoded"

    # Submission flavour: "form" posts the page form, "api" uses the JSON endpoints
    submit_mode: str = "form"
    bootstrap_session: bool = False
    create_image_path: str = "/effect/create-image"
    status_path: str = "/effect/get-image"

    # Polling
    poll_attempts: int = 12
    poll_interval: float = 1.0

    # Resolution
    artifact_host_pattern: str = r"e\d+\.yotools\.net"
    artifact_path_segment: str = "/user_image/"
    image_extensions: tuple = ("jpg", "jpeg", "png")
    pending_markers: tuple = ("creating image", "please wait", "processing")
    error_markers: tuple = ("alert-danger", "invalid token", "an error occurred")
    sample_length: int = 2000

    # Alternate execution strategy
    browser_fallback: bool = False
    browser_timeout: float = 60.0

    def __post_init__(self):
        if self.encoding not in ENCODINGS:
            raise ConfigurationException("encoding", f"must be one of {ENCODINGS}, got {self.encoding!r}")
        if self.redirect_policy not in REDIRECT_POLICIES:
            raise ConfigurationException(
                "redirect_policy", f"must be one of {REDIRECT_POLICIES}, got {self.redirect_policy!r}"
            )
        if self.submit_mode not in SUBMIT_MODES:
            raise ConfigurationException("submit_mode", f"must be one of {SUBMIT_MODES}, got {self.submit_mode!r}")
        if self.submit_timeout < 20:
            raise ConfigurationException("submit_timeout", "must be at least 20 seconds")
        if not 1 <= self.poll_attempts <= 60:
            raise ConfigurationException("poll_attempts", "must be between 1 and 60")
        if self.poll_interval < 0:
            raise ConfigurationException("poll_interval", "must not be negative")
        if self.max_redirects < 0:
            raise ConfigurationException("max_redirects", "must not be negative")
        for name in ("site_origin", "build_server"):
            parts = urlsplit(getattr(self, name))
            if parts.scheme not in ("http", "https") or not parts.netloc:
                raise ConfigurationException(name, f"must be an absolute http(s) URL, got {getattr(self, name)!r}")

    @property
    def create_image_url(self) -> str:
        return self.site_origin.rstrip("/") + self.create_image_path

    @property
    def status_url(self) -> str:
        return self.site_origin.rstrip("/") + self.status_path

    def replace(self, **changes) -> "SiteConfig":
        """Return a copy with the given fields changed (None values are ignored)."""
        return dataclasses.replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_dict(cls, data: dict, source: str = "<dict>") -> "SiteConfig":
        """Build a config from a plain mapping, rejecting unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationException(source, f"unknown keys: {', '.join(unknown)}")
        values = dict(data)
        for key in ("image_extensions", "pending_markers", "error_markers"):
            if key in values:
                values[key] = tuple(values[key])
        if "headers" in values:
            values["headers"] = {**DEFAULT_HEADERS, **values["headers"]}
        return cls(**values)


_config: SiteConfig | None = None


def get_config_path() -> Path:
    """Config file path: EPHOTO_CONFIG if set, otherwise settings.json beside the package."""
    override = os.getenv("EPHOTO_CONFIG")
    return Path(override) if override else SETTINGS_PATH


def load_config() -> SiteConfig:
    """Load site configuration (cached)."""
    global _config
    if _config is not None:
        return _config

    path = get_config_path()
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        _config = SiteConfig()
        return _config
    except json.JSONDecodeError as e:
        raise ConfigurationException(str(path), f"Invalid JSON: {e}")

    _config = SiteConfig.from_dict(data.get("site", {}), source=str(path))
    return _config


def reload():
    """Force reload of the configuration and the shared settings cache."""
    global _config
    from . import debug

    _config = None
    debug._settings = None
    return load_config()
