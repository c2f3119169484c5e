"""
Extraction Layer for the SERPAVI rent reference scraper.

Reads visible text from the result view and hands it to the extraction
engine. Keyword-anchored regions are read first; only when none of them
yields a monetary value is the full body text used. When even that fails
the request ends as "layout changed" with a bounded text sample.
"""
import base64
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator

from serpavi.extraction.engine import ExtractionEngine, PriceEstimate
from serpavi.layers.navigation import NavigationTarget
from serpavi.models.result import Diagnostics, ExtractionMethod
from serpavi.utils.cancellation import CancellationToken
from serpavi.utils.exceptions import ExtractionFailedError
from serpavi.utils.logger import LayerLogger

# Nearest block container of a text match.
CONTAINER_XPATH = "xpath=ancestor-or-self::*[self::section or self::article or self::div or self::main][1]"

# (selector, climb to container) in priority order.
ANCHORS: Tuple[Tuple[str, bool], ...] = (
    ("text=/precio\\s+(m[aá]ximo\\s+)?(de\\s+)?referencia/i", True),
    ("text=/rango/i", True),
    ('section:has-text("Precio")', False),
    ('div:has-text("Precio")', False),
    ('main:has-text("Precio")', False),
)

SCREENSHOT_QUALITY = 60


@dataclass
class ExtractionOutcome:
    estimate: PriceEstimate
    method: ExtractionMethod
    regions: int


class ExtractionLayer:
    """Reads result-page text and produces a reconciled price estimate."""

    def __init__(
        self,
        engine: ExtractionEngine,
        anchors: Sequence[Tuple[str, bool]] = ANCHORS,
        step_timeout: float = 15.0,
        sample_chars: int = 2000,
        debug_html_chars: int = 20000,
    ):
        self.engine = engine
        self.anchors = tuple(anchors)
        self.step_timeout = step_timeout
        self.sample_chars = sample_chars
        self.debug_html_chars = debug_html_chars
        self.logger = LayerLogger("extraction_layer")

    async def extract(
        self,
        target: NavigationTarget,
        token: CancellationToken,
        area: Optional[float] = None,
        debug: bool = False,
    ) -> ExtractionOutcome:
        """
        Extract prices from the result view.

        Raises:
            ExtractionFailedError: no monetary value in any region or the body;
                ``context["diagnostics"]`` holds a Diagnostics instance
        """
        regions = await self.anchored_texts(target, token)
        candidates = [self.engine.extract(text) for text in regions]
        merged = self.engine.merge(candidates)
        method = ExtractionMethod.ANCHORED

        body = None
        if not merged.has_prices():
            self.logger.log_fallback("anchored", "full_text", "no prices in anchored regions", regions=len(regions))
            body = await self.body_text(target, token)
            merged = self.engine.extract(body)
            method = ExtractionMethod.FULL_TEXT

        if not merged.has_prices():
            diagnostics = await self.diagnostics(target, token, debug=debug, text=body)
            self.logger.log_error("no monetary value found", error_type="layout_changed", url=diagnostics.currentUrl)
            raise ExtractionFailedError(
                "no monetary value found on the result page",
                context={"diagnostics": diagnostics},
            )

        estimate = self.engine.reconcile(merged, area=area)
        self.logger.log_extraction(method.value, merged.present_fields(), merged.missing_fields(), strategy=merged.strategy)
        return ExtractionOutcome(estimate=estimate, method=method, regions=len(regions))

    async def anchored_texts(self, target: NavigationTarget, token: CancellationToken) -> List[str]:
        texts = []
        for selector, climb in self.anchors:
            token.checkpoint()
            try:
                anchor = target.surface.locator(selector).first
                if not await anchor.count():
                    continue
                region: Locator = anchor.locator(CONTAINER_XPATH).first if climb else anchor
                text = await region.inner_text(timeout=token.step_timeout_ms(self.step_timeout))
            except PlaywrightError as e:
                self.logger.log_step_skipped("read_region", str(e), selector=selector)
                continue
            if text and text.strip():
                texts.append(text)
        return texts

    async def body_text(self, target: NavigationTarget, token: CancellationToken) -> str:
        token.checkpoint()
        try:
            return await target.surface.locator("body").inner_text(timeout=token.step_timeout_ms(self.step_timeout))
        except PlaywrightError as e:
            self.logger.log_step_skipped("read_body", str(e))
            return ""

    async def diagnostics(
        self,
        target: NavigationTarget,
        token: CancellationToken,
        debug: bool = False,
        text: Optional[str] = None,
    ) -> Diagnostics:
        """
        Best-effort failure context. Never raises for a browser error, since
        the page may already be closing.
        """
        if text is None:
            text = await self.body_text(target, token)
        diagnostics = Diagnostics(
            currentUrl=target.page_url,
            frameUrl=target.frame_url,
            sample=(text or "")[: self.sample_chars],
        )
        if not debug:
            return diagnostics

        try:
            html = await target.surface.content()
            diagnostics.html = html[: self.debug_html_chars]
        except PlaywrightError as e:
            self.logger.log_step_skipped("capture_html", str(e))
        try:
            image = await target.page.screenshot(
                type="jpeg",
                quality=SCREENSHOT_QUALITY,
                timeout=token.step_timeout_ms(self.step_timeout),
            )
            diagnostics.screenshot = base64.b64encode(image).decode("ascii")
        except PlaywrightError as e:
            self.logger.log_step_skipped("capture_screenshot", str(e))
        return diagnostics
