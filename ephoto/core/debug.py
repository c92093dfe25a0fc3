"""Debug utilities - dumps response bodies, screenshots and page info on failure."""

import json
import os
from datetime import datetime
from pathlib import Path


def _env_bool(name: str) -> bool:
    """Check if env var is set to a truthy value."""
    return os.getenv(name, "").lower() in ("1", "true", "yes")


def is_debug_logging_enabled() -> bool:
    """Check if EPHOTO_DEBUG env var is set."""
    return _env_bool("EPHOTO_DEBUG")


def is_trace_enabled() -> bool:
    """Check if EPHOTO_TRACE env var is set."""
    return _env_bool("EPHOTO_TRACE")


# ephoto/ directory (parent of core/)
PACKAGE_DIR = Path(__file__).parent.parent
DEBUG_DIR = PACKAGE_DIR / "debug_dumps"

_settings: dict | None = None


def load_settings() -> dict:
    """Load settings from the shared settings file."""
    global _settings
    if _settings is not None:
        return _settings
    from .config import get_config_path

    try:
        with open(get_config_path(), encoding="utf-8") as f:
            _settings = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        _settings = {}
    return _settings or {}


def get_setting(key: str, default=None):
    """Get a setting value."""
    return load_settings().get(key, default)


def is_headed_mode() -> bool:
    """Check if headed browser mode is enabled."""
    return bool(get_setting("headed_browser", False))


def is_debug_dumps_enabled() -> bool:
    """Check if debug dumps are enabled (default: False)."""
    return bool(get_setting("debug_dumps", False))


def _dump_paths(label: str) -> tuple[Path, str]:
    now = datetime.now()
    date_dir = DEBUG_DIR / now.strftime("%Y-%m-%d")
    date_dir.mkdir(parents=True, exist_ok=True)
    return date_dir, f"{label}_{now.strftime('%H%M%S_%f')}"


def dump_response(body: str, error: Exception, label: str = "http", url: str | None = None) -> dict | None:
    """Write a failed response body and a JSON summary to the debug directory.

    Args:
        body: Raw response body that could not be resolved
        error: The exception that ended the run
        label: File name prefix (generator name)
        url: URL the body was fetched from

    Returns:
        Paths of the written files, or None when dumps are disabled
    """
    if not is_debug_dumps_enabled():
        return None

    cleanup_old_dumps()
    date_dir, base_name = _dump_paths(label)
    html_path = date_dir / f"{base_name}.html"
    json_path = date_dir / f"{base_name}.json"

    debug_info = {
        "timestamp": datetime.now().isoformat(),
        "url": url,
        "error": str(error),
        "error_type": type(error).__name__,
        "error_kind": getattr(error, "error_kind", None),
        "response_length": len(body),
        "html_snapshot": html_path.name,
    }
    snapshot = getattr(error, "snapshot", None)
    if snapshot is not None:
        debug_info["snapshot"] = snapshot.to_dict()

    try:
        html_path.write_text(body, encoding="utf-8")
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(debug_info, f, indent=2, default=str)
    except OSError as e:
        print(f"[Ephoto] Failed to save debug dump: {e}")
        return None

    print(f"[Ephoto] Debug dump saved to: {date_dir}")
    print(f"[Ephoto]   {json_path.name} - error details and diagnostic snapshot")
    print(f"[Ephoto]   {html_path.name} - response body at failure")
    return {"html": str(html_path), "json": str(json_path)}


async def dump_debug_info(page, error: Exception, label: str = "browser"):
    """Dump screenshot and page info on a browser-path failure.

    Args:
        page: Playwright page object
        error: The exception that occurred
        label: File name prefix
    """
    if page is None or not is_debug_dumps_enabled():
        return None

    date_dir, base_name = _dump_paths(label)
    screenshot_path = date_dir / f"{base_name}.png"
    json_path = date_dir / f"{base_name}.json"

    debug_info: dict = {
        "timestamp": datetime.now().isoformat(),
        "error": str(error),
        "error_type": type(error).__name__,
    }

    try:
        await page.screenshot(path=str(screenshot_path), full_page=True)
        debug_info["screenshot"] = screenshot_path.name
        debug_info["url"] = page.url
        debug_info["title"] = await page.title()

        # Form and result elements only, enough to see which selector drifted
        debug_info["elements"] = await page.evaluate("""() => {
            const elements = [];
            document.querySelectorAll('form, input, button, img, a[href*="save-image"]').forEach(el => {
                elements.push({
                    tag: el.tagName.toLowerCase(),
                    id: el.id || null,
                    class: el.className || null,
                    name: el.getAttribute('name'),
                    src: el.tagName === 'IMG' && !(el.src || '').startsWith('data:') ? el.src : null,
                    href: el.getAttribute('href'),
                });
            });
            return elements.slice(0, 50);
        }""")

        visible_text = await page.evaluate("() => (document.body ? document.body.innerText : '').substring(0, 2000)")
        debug_info["visible_text"] = visible_text

        issues = []
        lowered = (visible_text or "").lower()
        if "cloudflare" in lowered:
            issues.append("Cloudflare challenge detected")
        if "captcha" in lowered:
            issues.append("CAPTCHA detected")
        debug_info["detected_issues"] = issues
    except Exception as e:
        debug_info["dump_error"] = str(e)

    try:
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(debug_info, f, indent=2, default=str)
    except OSError as e:
        print(f"[Ephoto] Failed to save debug JSON: {e}")

    print(f"[Ephoto] Debug dump saved to: {date_dir}")
    return {"screenshot": str(screenshot_path), "json": str(json_path)}


def cleanup_old_dumps(max_age_days: int = 7):
    """Clean up old debug dump folders."""
    if not DEBUG_DIR.exists():
        return

    import time

    cutoff_time = time.time() - (max_age_days * 24 * 60 * 60)

    for date_dir in DEBUG_DIR.iterdir():
        if not date_dir.is_dir():
            continue
        try:
            if date_dir.stat().st_mtime < cutoff_time:
                for f in date_dir.iterdir():
                    f.unlink()
                date_dir.rmdir()
        except OSError:
            pass
