"""
Consent Handler for the SERPAVI rent reference scraper.
Best-effort dismissal of cookie/consent prompts at navigation checkpoints.
"""
from typing import Sequence, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Frame, Page

from serpavi.utils.cancellation import CancellationToken
from serpavi.utils.logger import LayerLogger

CONSENT_SELECTORS = (
    'button:has-text("Aceptar")',
    'button:has-text("Acepto")',
    'button:has-text("ACEPTAR")',
    '[id*="aceptar"]',
    '[id*="accept"]',
    "role=button[name=/acept|accept/i]",
    "text=/De acuerdo/i",
    "text=/Aceptar cookies/i",
)

CLICK_TIMEOUT = 1.0


class ConsentHandler:
    """
    Clicks the first visible consent control, if any.

    Never raises for a missing or unclickable prompt; only cancellation
    propagates.
    """

    def __init__(self, selectors: Sequence[str] = CONSENT_SELECTORS, click_timeout: float = CLICK_TIMEOUT):
        self.selectors = tuple(selectors)
        self.click_timeout = click_timeout
        self.logger = LayerLogger("consent_handler")

    async def dismiss(self, surface: Union[Page, Frame], token: CancellationToken) -> bool:
        for selector in self.selectors:
            token.checkpoint()
            try:
                control = surface.locator(selector).first
                if not await control.count() or not await control.is_visible():
                    continue
                await control.click(timeout=token.step_timeout_ms(self.click_timeout))
            except PlaywrightError as e:
                self.logger.log_step_skipped("dismiss_consent", str(e), selector=selector)
                continue
            self.logger.log_action("dismiss_consent", "completed", selector=selector)
            return True
        return False
