"""Firefox launch and teardown for the browser generator."""

import asyncio
import os
import re
import subprocess
import sys
from datetime import datetime

from playwright.async_api import async_playwright

from .debug import DEBUG_DIR, cleanup_old_dumps, is_debug_dumps_enabled, is_headed_mode, is_trace_enabled
from .utils import log

# Track if we've already checked/installed Firefox this session
_firefox_installed = False


def ensure_firefox_installed():
    """Install Playwright Firefox if not already installed."""
    global _firefox_installed
    if _firefox_installed:
        return

    result = subprocess.run(
        [sys.executable, "-m", "playwright", "install", "firefox", "--dry-run"],
        capture_output=True,
        text=True,
    )
    match = re.search(r"Install location:\s+(\S+)", result.stdout)
    if match and os.path.isdir(match.group(1)):
        _firefox_installed = True
        return

    log("Installing Playwright Firefox (first run)...", "◈")
    try:
        subprocess.run([sys.executable, "-m", "playwright", "install", "firefox"], check=True)
        log("Firefox installed successfully", "✓")
    except (OSError, subprocess.CalledProcessError) as e:
        log(f"Failed to install Firefox: {e}", "✕")
        raise RuntimeError(f"Failed to install Playwright Firefox: {e}") from e

    _firefox_installed = True


FIREFOX_PREFS: dict[str, str | float | bool | int] = {
    # No disk cache; every run starts from a clean page
    "browser.cache.disk.enable": False,
    "dom.security.https_first": False,
}
DEFAULT_VIEWPORT = {"width": 1280, "height": 900}

# Removes the webdriver flag only
STEALTH_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
"""


async def create_browser(headless: bool | None = None, viewport: dict | None = None, user_agent: str | None = None):
    """Create a throwaway Firefox with standard config.

    Args:
        headless: Run browser headless (None = use the headed_browser setting)
        viewport: Browser viewport size
        user_agent: Override the browser's own user agent

    Returns:
        (playwright, browser, context, page)
    """
    # Blocking: runs a subprocess and may download Firefox
    await asyncio.to_thread(ensure_firefox_installed)
    cleanup_old_dumps()

    headless = headless if headless is not None else not is_headed_mode()
    vp = viewport or DEFAULT_VIEWPORT
    headed_str = ", headed" if not headless else ""
    log(f"Launching Firefox ({vp['width']}x{vp['height']}{headed_str})...", "◈")

    playwright = await async_playwright().start()
    try:
        browser = await playwright.firefox.launch(
            headless=headless,
            firefox_user_prefs=FIREFOX_PREFS,
            timeout=10000,
        )
        context = await browser.new_context(viewport=vp, user_agent=user_agent)  # type: ignore[arg-type]
        page = await context.new_page()
    except Exception:
        await playwright.stop()
        raise

    await page.add_init_script(STEALTH_SCRIPT)
    if is_debug_dumps_enabled():
        await context.tracing.start(screenshots=True, snapshots=True, sources=True)
    return playwright, browser, context, page


async def close_browser(playwright, context, browser=None):
    """Clean up browser resources. Failures are logged, never raised."""
    if context:
        if is_debug_dumps_enabled():
            try:
                if is_trace_enabled():
                    now = datetime.now()
                    date_dir = DEBUG_DIR / now.strftime("%Y-%m-%d")
                    date_dir.mkdir(parents=True, exist_ok=True)
                    trace_path = date_dir / f"trace_{now.strftime('%H%M%S')}.zip"
                    await context.tracing.stop(path=str(trace_path))
                    log(f"Trace saved: {trace_path}", "◆")
                    log(f"View: npx playwright show-trace {trace_path}", "◆")
                else:
                    await context.tracing.stop()
            except Exception as e:
                log(f"Warning stopping trace: {e}", "⚠")

        try:
            await context.close()
        except Exception as e:
            log(f"Warning closing context: {e}", "⚠")

    if browser:
        try:
            await browser.close()
        except Exception as e:
            log(f"Warning closing browser: {e}", "⚠")

    if playwright:
        try:
            await playwright.stop()
        except Exception as e:
            log(f"Warning stopping playwright: {e}", "⚠")
