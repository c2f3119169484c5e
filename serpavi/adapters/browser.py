"""
Browser Session Adapter for the SERPAVI rent reference scraper.
Owns one Playwright driver, one Chromium process and one isolated context.
"""
import re
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright, Route, async_playwright

from serpavi.config import config
from serpavi.utils.logger import LayerLogger

BLOCKED_RESOURCE_TYPES = frozenset({"image", "font", "media"})
BLOCKED_URL_PATTERN = re.compile(r"analytics|googletag|gtm|hotjar|matomo|doubleclick|facebook|cook", re.IGNORECASE)


@dataclass(frozen=True)
class BrowserSettings:
    """Launch and context options for one session."""
    headless: bool = True
    locale: str = "es-ES"
    user_agent: str = ""
    viewport_width: int = 1280
    viewport_height: int = 900

    @classmethod
    def from_config(cls, cfg=config) -> "BrowserSettings":
        return cls(
            headless=cfg.BROWSER_HEADLESS,
            locale=cfg.BROWSER_LOCALE,
            user_agent=cfg.BROWSER_USER_AGENT,
            viewport_width=cfg.VIEWPORT_WIDTH,
            viewport_height=cfg.VIEWPORT_HEIGHT,
        )


def should_block(resource_type: str, url: str) -> bool:
    """Static interception policy: heavy media and known trackers are aborted."""
    return resource_type in BLOCKED_RESOURCE_TYPES or bool(BLOCKED_URL_PATTERN.search(url))


class BrowserSession:
    """
    Exclusive browser session for a single request.

    Usage:
        async with BrowserSession(settings) as session:
            page = await session.context.new_page()

    Every resource acquired on entry is released on exit, whatever the
    outcome; a failure closing one resource does not skip the others.
    """

    def __init__(self, settings: Optional[BrowserSettings] = None):
        self.settings = settings or BrowserSettings.from_config()
        self.logger = LayerLogger("browser_session")
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.blocked_requests = 0

    async def __aenter__(self) -> "BrowserSession":
        try:
            await self.open()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def is_open(self) -> bool:
        return self._playwright is not None

    async def open(self) -> None:
        self.logger.log_action("browser_launch", "started", headless=self.settings.headless)
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.settings.headless,
            args=["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"],
        )
        self.context = await self._browser.new_context(
            viewport={"width": self.settings.viewport_width, "height": self.settings.viewport_height},
            user_agent=self.settings.user_agent or None,
            locale=self.settings.locale,
            ignore_https_errors=True,
        )
        await self.context.route("**/*", self._intercept)
        self.logger.log_action("browser_launch", "completed")

    async def _intercept(self, route: Route) -> None:
        request = route.request
        if should_block(request.resource_type, request.url):
            self.blocked_requests += 1
            await route.abort()
        else:
            await route.continue_()

    async def close(self) -> None:
        """Close context, browser and driver; each step runs even if a previous one failed."""
        context, browser, driver = self.context, self._browser, self._playwright
        self.context = self._browser = self._playwright = None

        for name, closer in (
            ("context", context.close if context else None),
            ("browser", browser.close if browser else None),
            ("playwright", driver.stop if driver else None),
        ):
            if closer is None:
                continue
            try:
                await closer()
            except Exception as e:
                self.logger.log_error(f"Failed to close {name}: {e}", error_type="cleanup_error")

        if driver is not None:
            self.logger.log_action("browser_close", "completed", blocked_requests=self.blocked_requests)
