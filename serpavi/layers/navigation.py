"""
Navigator for the SERPAVI rent reference scraper.

Resolves the live interactive surface of the calculator. The calculator
may be served directly, embedded in a frame, or opened from the ministry's
informational page in the same tab or in a popup. Paths are tried in order:

    direct -> landing page -> direct (retry) -> unreachable

all under one navigation deadline.
"""
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union
from urllib.parse import urlparse

from playwright.async_api import BrowserContext, Frame, Locator, Page
from playwright.async_api import Error as PlaywrightError

from serpavi.layers.consent import ConsentHandler
from serpavi.utils.cancellation import CancellationToken
from serpavi.utils.exceptions import PipelineCancelled, TargetUnreachableError
from serpavi.utils.logger import LayerLogger
from serpavi.utils.waits import first_success

LANDING_LINK_SELECTORS = (
    'a[href*="serpavi.mivau.gob.es"]',
    'a:has-text("SERPAVI")',
    'a:has-text("Sistema Estatal de Referencia")',
    'a:has-text("precio del alquiler")',
)


class SurfaceKind(str, Enum):
    """Where the calculator was found."""
    TOP_PAGE = "page"
    FRAME = "frame"
    POPUP = "popup"


@dataclass
class NavigationTarget:
    """
    The active interactive surface for one request.

    ``page`` is the top-level page owning ``surface`` (used for screenshots
    and network waits); ``surface`` is that page or one of its frames.
    """
    page: Page
    surface: Union[Page, Frame]
    kind: SurfaceKind
    path: str

    @property
    def page_url(self) -> str:
        return self.page.url

    @property
    def frame_url(self) -> Optional[str]:
        return self.surface.url if self.kind == SurfaceKind.FRAME else None


class Navigator:
    """Finds the calculator on the target domain via ordered fallback paths."""

    def __init__(
        self,
        consent: ConsentHandler,
        target_url: str,
        landing_url: str,
        target_domain: str,
        navigation_timeout: float = 25.0,
        goto_timeout: float = 20.0,
        popup_timeout: float = 7.0,
        click_timeout: float = 2.0,
        link_selectors: Sequence[str] = LANDING_LINK_SELECTORS,
    ):
        self.consent = consent
        self.target_url = target_url
        self.landing_url = landing_url
        self.target_domain = target_domain.lower()
        self.navigation_timeout = navigation_timeout
        self.goto_timeout = goto_timeout
        self.popup_timeout = popup_timeout
        self.click_timeout = click_timeout
        self.link_selectors = tuple(link_selectors)
        self.logger = LayerLogger("navigator")

    def is_on_target(self, url: Optional[str]) -> bool:
        """True when the URL's host is the target domain or one of its subdomains."""
        if not url:
            return False
        try:
            host = (urlparse(url).hostname or "").lower()
        except ValueError:
            return False
        return host == self.target_domain or host.endswith("." + self.target_domain)

    def match_surface(self, page: Page, kind: SurfaceKind, path: str) -> Optional[NavigationTarget]:
        """Return the page itself if it is on target, else the first child frame that is."""
        for frame in page.frames:
            if frame is page.main_frame:
                continue
            if self.is_on_target(frame.url):
                return NavigationTarget(page=page, surface=frame, kind=SurfaceKind.FRAME, path=path)
        if self.is_on_target(page.url):
            return NavigationTarget(page=page, surface=page, kind=kind, path=path)
        return None

    async def resolve(self, context: BrowserContext, token: CancellationToken) -> NavigationTarget:
        """
        Resolve the calculator surface within the navigation deadline.

        Raises:
            TargetUnreachableError: no path landed on the target domain in time
            PipelineCancelled: the request-wide token expired or was cancelled
        """
        nav_token = token.child(self.navigation_timeout)
        self.logger.log_action("resolve_target", "started", deadline=self.navigation_timeout)
        page_holder = {}
        try:
            return await asyncio.wait_for(
                self._resolve(context, nav_token, page_holder),
                timeout=nav_token.remaining(),
            )
        except asyncio.TimeoutError:
            token.checkpoint()
        except PipelineCancelled:
            if token.cancelled or token.expired:
                raise
        page = page_holder.get("page")
        raise TargetUnreachableError(
            f"navigation deadline of {self.navigation_timeout}s expired",
            context={"currentUrl": page.url if page else None},
        )

    async def _resolve(self, context: BrowserContext, token: CancellationToken, page_holder: dict) -> NavigationTarget:
        page = await context.new_page()
        page_holder["page"] = page

        target = await self._try_direct(page, token, "direct")
        if target:
            return target

        self.logger.log_fallback("direct", "landing_page", "target not reached directly", url=page.url)
        target = await self._try_landing(context, page, token)
        if target:
            return target

        self.logger.log_fallback("landing_page", "direct_retry", "landing page did not lead to target", url=page.url)
        target = await self._try_direct(page, token, "direct_retry")
        if target:
            return target

        raise TargetUnreachableError(
            "no navigation path reached the target domain",
            context={"currentUrl": page.url},
        )

    async def _goto(self, page: Page, url: str, token: CancellationToken) -> bool:
        token.checkpoint()
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=token.step_timeout_ms(self.goto_timeout))
            return True
        except PlaywrightError as e:
            self.logger.log_step_skipped("goto", str(e), url=url)
            return False

    async def _try_direct(self, page: Page, token: CancellationToken, path: str) -> Optional[NavigationTarget]:
        await self._goto(page, self.target_url, token)
        await self.consent.dismiss(page, token)
        target = self.match_surface(page, SurfaceKind.TOP_PAGE, path)
        if target:
            self.logger.log_decision("target_resolved", f"{path} path landed on target", url=page.url, kind=target.kind.value)
        return target

    async def _try_landing(
        self,
        context: BrowserContext,
        page: Page,
        token: CancellationToken,
    ) -> Optional[NavigationTarget]:
        await self._goto(page, self.landing_url, token)
        await self.consent.dismiss(page, token)

        link = await self._find_link(page, token)
        if link is None:
            self.logger.log_step_skipped("landing_link", "no link to the calculator", url=page.url)
            return None

        popup = await self._activate(context, page, link, token)
        if popup is not None:
            token.checkpoint()
            try:
                await popup.wait_for_load_state("domcontentloaded", timeout=token.step_timeout_ms(self.goto_timeout))
            except PlaywrightError as e:
                self.logger.log_step_skipped("popup_load", str(e))
            await self.consent.dismiss(popup, token)
            target = self.match_surface(popup, SurfaceKind.POPUP, "landing_popup")
        else:
            await self.consent.dismiss(page, token)
            target = self.match_surface(page, SurfaceKind.TOP_PAGE, "landing_same_tab")

        if target:
            self.logger.log_decision("target_resolved", "landing page link led to target", url=target.page_url, kind=target.kind.value)
        return target

    async def _find_link(self, page: Page, token: CancellationToken) -> Optional[Locator]:
        for selector in self.link_selectors:
            token.checkpoint()
            try:
                link = page.locator(selector).first
                if await link.count():
                    return link
            except PlaywrightError as e:
                self.logger.log_step_skipped("landing_link", str(e), selector=selector)
        return None

    async def _activate(
        self,
        context: BrowserContext,
        page: Page,
        link: Locator,
        token: CancellationToken,
    ) -> Optional[Page]:
        """Click the link, racing a spawned popup against same-tab navigation."""
        token.checkpoint()
        wait_ms = token.step_timeout_ms(self.popup_timeout)

        async def click_then_wait_same_tab():
            try:
                await link.click(timeout=token.step_timeout_ms(self.click_timeout))
            except PlaywrightError as e:
                self.logger.log_step_skipped("landing_click", str(e))
            await page.wait_for_url(self.is_on_target, wait_until="domcontentloaded", timeout=wait_ms)
            return None

        winner, result = await first_success(
            context.wait_for_event("page", timeout=wait_ms),
            click_then_wait_same_tab(),
            tolerate=(PlaywrightError,),
        )
        if winner == 0:
            self.logger.log_decision("landing_popup", "link opened a new page")
            return result
        if winner is None:
            self.logger.log_step_skipped("landing_activate", "neither popup nor same-tab navigation observed")
        return None
