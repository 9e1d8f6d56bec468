"""
Browser sessions for login attempts.

A session is one Playwright driver + browser + context + page, created for a
single attempt and closed at its end. How the browser executable is found is
decided once per process by ``select_launcher``.
"""

import logging
import shutil
from pathlib import Path
from typing import Any, Optional, Protocol

from playwright.async_api import (
    Browser,
    BrowserContext,
    ElementHandle,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .settings import Settings

logger = logging.getLogger(__name__)

LOCAL_BROWSER_NAMES = (
    "google-chrome",
    "google-chrome-stable",
    "chromium",
    "chromium-browser",
    "chrome",
)

LOCAL_BROWSER_PATHS = (
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    r"C:\Program Files\Google\Chrome\Application\chrome.exe",
    r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
)


class BrowserLaunchError(Exception): ...


class SessionHandle(Protocol):
    async def navigate(self, url: str, wait_until: str, timeout_ms: int) -> bool: ...
    async def wait_for_selector(self, selector: str, timeout_ms: int) -> bool: ...
    async def wait_for_navigation(self, timeout_ms: int) -> bool: ...
    async def type(self, selector: str, text: str, delay_ms: int = 0) -> None: ...
    async def click(self, selector: str) -> None: ...
    async def current_url(self) -> str: ...
    async def title(self) -> str: ...
    async def content(self) -> str: ...
    async def query_selector(self, selector: str) -> Optional[Any]: ...
    async def is_visible(self, element: Any) -> bool: ...
    async def text_of(self, element: Any) -> str: ...
    async def close(self) -> None: ...


class Launcher(Protocol):
    async def open_session(self) -> SessionHandle: ...


class PlaywrightSession:
    """SessionHandle backed by an async Playwright page.

    Waits return False on timeout instead of raising; any other Playwright
    error propagates to the caller.
    """

    def __init__(self, playwright: Playwright, browser: Browser, context: BrowserContext, page: Page):
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._page = page
        self._closed = False

    async def navigate(self, url: str, wait_until: str = "networkidle", timeout_ms: int = 30000) -> bool:
        try:
            await self._page.goto(url, wait_until=wait_until, timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            logger.warning(f"Navigation to {url} not settled after {timeout_ms}ms")
            return False

    async def wait_for_selector(self, selector: str, timeout_ms: int = 10000) -> bool:
        try:
            await self._page.wait_for_selector(selector, state="visible", timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def wait_for_navigation(self, timeout_ms: int = 30000) -> bool:
        """Wait for the main frame to navigate, then for the network to go idle."""
        main_frame = self._page.main_frame
        try:
            await self._page.wait_for_event(
                "framenavigated", predicate=lambda frame: frame == main_frame, timeout=timeout_ms
            )
            await self._page.wait_for_load_state("networkidle", timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def type(self, selector: str, text: str, delay_ms: int = 0) -> None:
        await self._page.locator(selector).press_sequentially(text, delay=delay_ms)

    async def click(self, selector: str) -> None:
        await self._page.click(selector)

    async def current_url(self) -> str:
        return self._page.url

    async def title(self) -> str:
        return await self._page.title()

    async def content(self) -> str:
        return await self._page.content()

    async def query_selector(self, selector: str) -> Optional[ElementHandle]:
        return await self._page.query_selector(selector)

    async def is_visible(self, element: ElementHandle) -> bool:
        try:
            return await element.is_visible()
        except PlaywrightError:
            # node detached by a client-side re-render
            return False

    async def text_of(self, element: ElementHandle) -> str:
        try:
            return await element.inner_text()
        except PlaywrightError:
            return ""

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        first_error: Optional[Exception] = None
        for name, release in (
            ("context", self._context.close),
            ("browser", self._browser.close),
            ("playwright", self._playwright.stop),
        ):
            try:
                await release()
            except Exception as e:
                logger.warning(f"Closing {name} failed: {e}")
                first_error = first_error or e
        if first_error is not None:
            raise first_error


class BrowserLauncher:
    """Opens isolated Chromium sessions, either Playwright's bundled build or a local binary."""

    def __init__(self, settings: Settings, executable_path: Optional[str] = None):
        self.settings = settings
        self.executable_path = executable_path

    @property
    def mode(self) -> str:
        return "local" if self.executable_path else "packaged"

    async def open_session(self) -> PlaywrightSession:
        s = self.settings
        pw = await async_playwright().start()
        try:
            browser = await pw.chromium.launch(
                headless=s.HEADLESS,
                args=list(s.BROWSER_ARGS),
                executable_path=self.executable_path,
            )
            context = await browser.new_context(
                viewport={"width": s.VIEWPORT_WIDTH, "height": s.VIEWPORT_HEIGHT},
                user_agent=s.USER_AGENT,
            )
            page = await context.new_page()
        except Exception as e:
            try:
                await pw.stop()
            except Exception as stop_error:
                logger.warning(f"Stopping Playwright after a failed launch failed: {stop_error}")
            raise BrowserLaunchError(str(e)) from e
        return PlaywrightSession(pw, browser, context, page)


def discover_local_browser() -> Optional[str]:
    for name in LOCAL_BROWSER_NAMES:
        found = shutil.which(name)
        if found:
            return found
    for candidate in LOCAL_BROWSER_PATHS:
        if Path(candidate).exists():
            return candidate
    return None


def select_launcher(settings: Settings) -> BrowserLauncher:
    """Pick the launcher for this process from BROWSER_MODE."""
    if settings.BROWSER_MODE == "packaged":
        logger.info("Using Playwright's packaged Chromium")
        return BrowserLauncher(settings)

    executable = settings.BROWSER_EXECUTABLE or discover_local_browser()
    if not executable:
        raise BrowserLaunchError("no local Chrome/Chromium installation found; set BROWSER_EXECUTABLE")
    if not Path(executable).exists():
        raise BrowserLaunchError(f"browser executable {executable} does not exist")
    logger.info(f"Using local browser at {executable}")
    return BrowserLauncher(settings, executable_path=executable)
