"""
Tests for the browser session adapter: interception policy and cleanup.
No real browser is launched.
"""
from types import SimpleNamespace

import pytest

from serpavi.adapters.browser import BrowserSession, BrowserSettings, should_block


class FakeRoute:
    def __init__(self, resource_type: str, url: str):
        self.request = SimpleNamespace(resource_type=resource_type, url=url)
        self.outcome = None

    async def abort(self):
        self.outcome = "abort"

    async def continue_(self):
        self.outcome = "continue"


class Closable:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.closed = False

    async def close(self):
        self.closed = True
        if self.fail:
            raise RuntimeError("boom")

    async def stop(self):
        await self.close()


@pytest.mark.parametrize("resource_type,url", [
    ("image", "https://serpavi.mivau.gob.es/logo.png"),
    ("font", "https://fonts.example/roboto.woff2"),
    ("media", "https://serpavi.mivau.gob.es/intro.mp4"),
    ("script", "https://www.googletagmanager.com/gtm.js"),
    ("xhr", "https://static.hotjar.com/c/hotjar.js"),
])
def test_should_block_media_and_trackers(resource_type, url):
    assert should_block(resource_type, url)


@pytest.mark.parametrize("resource_type,url", [
    ("document", "https://serpavi.mivau.gob.es/"),
    ("script", "https://serpavi.mivau.gob.es/app.js"),
    ("xhr", "https://serpavi.mivau.gob.es/api/catastro"),
    ("stylesheet", "https://serpavi.mivau.gob.es/styles.css"),
])
def test_should_block_lets_application_traffic_through(resource_type, url):
    assert not should_block(resource_type, url)


async def test_intercept_aborts_and_counts_blocked_requests():
    session = BrowserSession(BrowserSettings())
    blocked = FakeRoute("image", "https://serpavi.mivau.gob.es/a.png")
    allowed = FakeRoute("document", "https://serpavi.mivau.gob.es/")

    await session._intercept(blocked)
    await session._intercept(allowed)

    assert blocked.outcome == "abort"
    assert allowed.outcome == "continue"
    assert session.blocked_requests == 1


async def test_close_releases_everything_even_when_one_step_fails():
    session = BrowserSession(BrowserSettings())
    context, browser, driver = Closable(fail=True), Closable(), Closable()
    session.context, session._browser, session._playwright = context, browser, driver

    await session.close()

    assert context.closed and browser.closed and driver.closed
    assert session.context is None
    assert not session.is_open


async def test_close_without_open_is_a_no_op():
    session = BrowserSession(BrowserSettings())
    await session.close()
    assert not session.is_open


async def test_failed_open_still_cleans_up(monkeypatch):
    session = BrowserSession(BrowserSettings())
    driver = Closable()

    async def broken_open():
        session._playwright = driver
        raise RuntimeError("chromium missing")

    monkeypatch.setattr(session, "open", broken_open)

    with pytest.raises(RuntimeError):
        async with session:
            pass

    assert driver.closed
    assert not session.is_open


def test_settings_from_config():
    cfg = SimpleNamespace(
        BROWSER_HEADLESS=False,
        BROWSER_LOCALE="es-ES",
        BROWSER_USER_AGENT="ua",
        VIEWPORT_WIDTH=800,
        VIEWPORT_HEIGHT=600,
    )
    settings = BrowserSettings.from_config(cfg)
    assert settings == BrowserSettings(
        headless=False, locale="es-ES", user_agent="ua", viewport_width=800, viewport_height=600
    )
