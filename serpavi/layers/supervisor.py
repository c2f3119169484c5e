"""
Estimate Supervisor for the SERPAVI rent reference scraper.

Orchestrates one request end to end:
1. Reject requests missing required attributes (no browser work)
2. Open an exclusive browser session
3. Navigate -> search -> fill attributes -> calculate -> extract
4. Map load-bearing failures to soft-failure results
5. Enforce the global deadline and always release the session

Settings are passed in per request; nothing here reads ambient config.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Callable, Optional

from serpavi.adapters.browser import BrowserSession, BrowserSettings
from serpavi.config import Config, config
from serpavi.extraction.engine import TOTAL_POLICY_REFERENCE, ExtractionEngine
from serpavi.extraction.numbers import PriceBounds
from serpavi.layers.attributes import AttributeFiller
from serpavi.layers.calculation import CalculationTrigger
from serpavi.layers.consent import ConsentHandler
from serpavi.layers.extraction import ExtractionLayer
from serpavi.layers.navigation import NavigationTarget, Navigator
from serpavi.layers.search import SearchLayer
from serpavi.models.request import EstimateRequest
from serpavi.models.result import Diagnostics, ErrorKind, EstimateResult, ResultStatus
from serpavi.utils.cancellation import CancellationToken
from serpavi.utils.exceptions import (
    ExtractionFailedError,
    PipelineCancelled,
    SearchInputNotFoundError,
    TargetUnreachableError,
)
from serpavi.utils.logger import LayerLogger


@dataclass(frozen=True)
class PipelineSettings:
    """Request-scoped snapshot of everything the pipeline needs."""
    target_url: str
    landing_url: str
    target_domain: str
    browser: BrowserSettings = field(default_factory=BrowserSettings)
    bounds: PriceBounds = field(default_factory=PriceBounds)
    total_policy: str = TOTAL_POLICY_REFERENCE
    global_timeout: float = 65.0
    navigation_timeout: float = 25.0
    step_timeout: float = 15.0
    goto_timeout: float = 20.0
    popup_timeout: float = 7.0
    suggestion_timeout: float = 4.0
    confirm_timeout: float = 8.0
    attribute_timeout: float = 4.0
    settle_delay: float = 1.5
    max_suggestions: int = 5
    sample_chars: int = 2000
    debug_html_chars: int = 20000
    debug: bool = False

    @classmethod
    def from_config(cls, cfg: Config = config, debug: bool = False) -> "PipelineSettings":
        return cls(
            target_url=cfg.TARGET_URL,
            landing_url=cfg.LANDING_URL,
            target_domain=cfg.TARGET_DOMAIN,
            browser=BrowserSettings.from_config(cfg),
            bounds=PriceBounds.from_config(cfg),
            total_policy=cfg.TOTAL_PRICE_POLICY,
            global_timeout=cfg.GLOBAL_TIMEOUT,
            navigation_timeout=cfg.NAVIGATION_TIMEOUT,
            step_timeout=cfg.STEP_TIMEOUT,
            goto_timeout=cfg.GOTO_TIMEOUT,
            popup_timeout=cfg.POPUP_TIMEOUT,
            suggestion_timeout=cfg.SUGGESTION_TIMEOUT,
            confirm_timeout=cfg.CONFIRM_TIMEOUT,
            attribute_timeout=cfg.ATTRIBUTE_TIMEOUT,
            settle_delay=cfg.SETTLE_DELAY,
            max_suggestions=cfg.MAX_SUGGESTIONS,
            sample_chars=cfg.SAMPLE_CHARS,
            debug_html_chars=cfg.DEBUG_HTML_CHARS,
            debug=debug or cfg.DEBUG,
        )


class EstimateSupervisor:
    """
    Runs the estimate pipeline for one request.

    ``session_factory`` builds the browser session from BrowserSettings; it
    must return an async context manager exposing ``context``.
    """

    def __init__(
        self,
        settings: PipelineSettings,
        session_factory: Callable[[BrowserSettings], BrowserSession] = BrowserSession,
        navigator: Optional[Navigator] = None,
        search: Optional[SearchLayer] = None,
        filler: Optional[AttributeFiller] = None,
        trigger: Optional[CalculationTrigger] = None,
        extraction: Optional[ExtractionLayer] = None,
    ):
        self.settings = settings
        self.session_factory = session_factory
        self.navigator = navigator or Navigator(
            ConsentHandler(),
            target_url=settings.target_url,
            landing_url=settings.landing_url,
            target_domain=settings.target_domain,
            navigation_timeout=settings.navigation_timeout,
            goto_timeout=settings.goto_timeout,
            popup_timeout=settings.popup_timeout,
        )
        self.search = search or SearchLayer(
            step_timeout=settings.step_timeout,
            suggestion_timeout=settings.suggestion_timeout,
            confirm_timeout=settings.confirm_timeout,
            max_suggestions=settings.max_suggestions,
        )
        self.filler = filler or AttributeFiller(step_timeout=settings.attribute_timeout)
        self.trigger = trigger or CalculationTrigger(
            step_timeout=settings.step_timeout,
            settle_delay=settings.settle_delay,
        )
        self.extraction = extraction or ExtractionLayer(
            ExtractionEngine(bounds=settings.bounds, total_policy=settings.total_policy),
            step_timeout=settings.step_timeout,
            sample_chars=settings.sample_chars,
            debug_html_chars=settings.debug_html_chars,
        )
        self.logger = LayerLogger("estimate_supervisor")

    async def run(self, request: EstimateRequest) -> EstimateResult:
        missing = request.missing_attributes()
        if missing:
            self.logger.log_decision("needs_attributes", "required attributes missing", missing=missing)
            return EstimateResult.needs_attributes(missing)

        token = CancellationToken(self.settings.global_timeout)
        self.logger.log_action("estimate", "started", identifier=request.identifier, deadline=self.settings.global_timeout)
        try:
            result = await asyncio.wait_for(self._in_session(request, token), timeout=token.remaining())
        except (asyncio.TimeoutError, PipelineCancelled) as e:
            token.cancel("global deadline")
            self.logger.log_error(
                f"global deadline of {self.settings.global_timeout}s exceeded",
                error_type="timeout",
                detail=str(e) or type(e).__name__,
            )
            return EstimateResult.failure(
                ErrorKind.TIMEOUT,
                f"global timeout after {self.settings.global_timeout:g}s",
            )

        self.logger.log_action("estimate", "completed", result_status=result.status.value, error_kind=result.errorKind)
        return result

    async def _in_session(self, request: EstimateRequest, token: CancellationToken) -> EstimateResult:
        async with self.session_factory(self.settings.browser) as session:
            return await self._pipeline(session, request, token)

    async def _pipeline(
        self,
        session: BrowserSession,
        request: EstimateRequest,
        token: CancellationToken,
    ) -> EstimateResult:
        debug = self.settings.debug or request.debug

        try:
            target = await self.navigator.resolve(session.context, token)
        except TargetUnreachableError as e:
            self.logger.log_error(e.message, error_type=ErrorKind.UNREACHABLE.value)
            return EstimateResult.failure(
                ErrorKind.UNREACHABLE,
                e.message,
                Diagnostics(currentUrl=e.context.get("currentUrl")),
            )

        try:
            await self.search.search(target.surface, request.identifier, token)
        except SearchInputNotFoundError as e:
            self.logger.log_error(e.message, error_type=ErrorKind.SEARCH_INPUT_NOT_FOUND.value)
            return EstimateResult.failure(
                ErrorKind.SEARCH_INPUT_NOT_FOUND,
                e.message,
                await self.extraction.diagnostics(target, token, debug=debug),
            )

        await self.filler.fill(target.surface, request, token)
        await self.trigger.trigger(target, token)

        try:
            outcome = await self.extraction.extract(target, token, area=request.area, debug=debug)
        except ExtractionFailedError as e:
            return EstimateResult.failure(ErrorKind.LAYOUT_CHANGED, e.message, e.context.get("diagnostics"))

        return self._success(request, target, outcome)

    def _success(self, request: EstimateRequest, target: NavigationTarget, outcome) -> EstimateResult:
        estimate = outcome.estimate
        self.logger.log_decision(
            "estimate_ready",
            f"prices read via {outcome.method.value}",
            url=target.page_url,
            total_price=estimate.total_price,
        )
        return EstimateResult(
            status=ResultStatus.OK,
            identifier=request.identifier,
            minPrice=estimate.min_price,
            maxPrice=estimate.max_price,
            referencePrice=estimate.reference_price,
            pricePerArea=estimate.price_per_area,
            totalPrice=estimate.total_price,
            area=estimate.area,
            method=outcome.method,
        )
