"""Test configuration and fakes for the login API."""

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

import pytest

from login_api.browser import BrowserLaunchError
from login_api.settings import Settings

IDP_LOGIN_URL = "https://idp.example/realms/x/auth?redirect_uri=https%3A%2F%2Fportal.example%2Fapp%2F"
IDP_ACTION_URL = "https://idp.example/realms/x/login-actions/authenticate?execution=1"
PORTAL_URL = "https://portal.example/app/"


@dataclass
class FakeElement:
    text: str
    visible: bool = True


class FakeSession:
    """In-memory SessionHandle with scriptable timing and failure injection."""

    def __init__(
        self,
        url: str = IDP_LOGIN_URL,
        title: str = "Se connecter",
        markup: str = "<html><body></body></html>",
        elements: Optional[dict] = None,
        appear: Optional[dict] = None,
        nav_delay: Optional[float] = 0.01,
        on_click: Optional[Callable[["FakeSession"], None]] = None,
        navigate_result: bool = True,
        fail_at: tuple = (),
        fail_close: bool = False,
    ):
        self.url = url
        self.page_title = title
        self.markup = markup
        self.elements = dict(elements or {})
        # selector -> seconds before it becomes visible
        self.appear = dict(appear if appear is not None else {"#username": 0})
        self.nav_delay = nav_delay
        self.on_click = on_click
        self.navigate_result = navigate_result
        self.fail_at = set(fail_at)
        self.fail_close = fail_close
        self.typed: list[tuple[str, str]] = []
        self.clicked: list[str] = []
        self.navigations: list[tuple[str, str, int]] = []
        self.close_calls = 0

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail_at:
            raise RuntimeError(f"boom in {name}")

    async def navigate(self, url, wait_until="networkidle", timeout_ms=30000):
        self._maybe_fail("navigate")
        self.navigations.append((url, wait_until, timeout_ms))
        return self.navigate_result

    async def wait_for_selector(self, selector, timeout_ms=10000):
        self._maybe_fail("wait_for_selector")
        if selector in self.appear:
            await asyncio.sleep(self.appear[selector])
            return True
        await asyncio.sleep(timeout_ms / 1000)
        return False

    async def wait_for_navigation(self, timeout_ms=30000):
        self._maybe_fail("wait_for_navigation")
        if self.nav_delay is None:
            await asyncio.sleep(timeout_ms / 1000)
            return False
        await asyncio.sleep(self.nav_delay)
        return True

    async def type(self, selector, text, delay_ms=0):
        self._maybe_fail("type")
        self.typed.append((selector, text))

    async def click(self, selector):
        self._maybe_fail("click")
        self.clicked.append(selector)
        if self.on_click:
            self.on_click(self)

    async def current_url(self):
        self._maybe_fail("current_url")
        return self.url

    async def title(self):
        self._maybe_fail("title")
        return self.page_title

    async def content(self):
        self._maybe_fail("content")
        return self.markup

    async def query_selector(self, selector):
        self._maybe_fail("query_selector")
        return self.elements.get(selector)

    async def is_visible(self, element):
        return element.visible

    async def text_of(self, element):
        return element.text

    async def close(self):
        self.close_calls += 1
        if self.fail_close:
            raise RuntimeError("close failed")


class FakeLauncher:
    def __init__(self, session: Optional[FakeSession] = None, fail: bool = False):
        self.session = session
        self.fail = fail
        self.opened = 0

    async def open_session(self):
        self.opened += 1
        if self.fail:
            raise BrowserLaunchError("Executable doesn't exist at /ms-playwright/chromium")
        return self.session


@pytest.fixture
def test_settings() -> Settings:
    """Settings pointed at example hosts with short timeouts."""
    return Settings(
        PORTAL_LOGIN_URL=IDP_LOGIN_URL,
        SUCCESS_URL_FRAGMENTS=["portal.example/app"],
        IDP_URL_FRAGMENTS=["idp.example", "login-actions"],
        NAVIGATION_TIMEOUT_MS=100,
        FORM_TIMEOUT_MS=50,
        SUBMIT_TIMEOUT_MS=300,
        SETTLE_DELAY_MS=0,
        TYPE_DELAY_MS=0,
    )
