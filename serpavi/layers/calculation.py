"""
Calculation Trigger for the SERPAVI rent reference scraper.
Presses the calculator's action control and waits for the result to render.
"""
from typing import Optional, Sequence

from playwright.async_api import Error as PlaywrightError

from serpavi.adapters.actions import action_locators, click_first, verbs
from serpavi.layers.navigation import NavigationTarget
from serpavi.utils.cancellation import CancellationToken
from serpavi.utils.logger import LayerLogger

# Tried in order; "calcular" is the real trigger, the rest cover multi-step variants.
ACTION_VERBS = ("calcular", "consultar", "continuar", "siguiente", "buscar")


class CalculationTrigger:
    """Activates the first visible action control from an allow-list of verbs."""

    def __init__(
        self,
        action_verbs: Sequence[str] = ACTION_VERBS,
        step_timeout: float = 15.0,
        settle_delay: float = 1.5,
        click_timeout: float = 2.0,
    ):
        self.action_verbs = tuple(action_verbs)
        self.step_timeout = step_timeout
        self.settle_delay = settle_delay
        self.click_timeout = click_timeout
        self.logger = LayerLogger("calculation_trigger")

    async def trigger(self, target: NavigationTarget, token: CancellationToken) -> Optional[str]:
        """Click the action control and settle. Returns the verb used, or None."""
        used = None
        for verb in self.action_verbs:
            control = await click_first(action_locators(target.surface, verbs(verb)), token, self.click_timeout)
            if control is not None:
                used = verb
                break

        if used:
            self.logger.log_action("trigger_calculation", "completed", verb=used)
        else:
            self.logger.log_step_skipped("trigger_calculation", "no action control visible")

        await self.settle(target, token)
        return used

    async def settle(self, target: NavigationTarget, token: CancellationToken) -> None:
        """Wait for DOM load and network quiescence (both bounded), then a fixed delay."""
        for surface, state in ((target.surface, "domcontentloaded"), (target.page, "networkidle")):
            token.checkpoint()
            try:
                await surface.wait_for_load_state(state, timeout=token.step_timeout_ms(self.step_timeout))
            except PlaywrightError as e:
                self.logger.log_step_skipped("wait_for_load_state", str(e), state=state)
        await token.sleep(self.settle_delay)
