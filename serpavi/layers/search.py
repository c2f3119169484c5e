"""
Search Layer for the SERPAVI rent reference scraper.

Enters the cadastral reference and disambiguates the autocomplete:
1. Best-effort flow entry and "Referencia catastral" tab selection
2. Locate the search input (ordered strategies, first visible match)
3. Clear, then type the identifier key by key
4. Pick the first acceptable suggestion, or confirm with Enter
5. Confirm the search by a detail-form marker or the input going away,
   pressing a submit control once if neither shows up
"""
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Frame, Locator, Page

from serpavi.adapters.actions import action_locators, click_first, first_visible, verbs
from serpavi.utils.cancellation import CancellationToken
from serpavi.utils.exceptions import SearchInputNotFoundError
from serpavi.utils.logger import LayerLogger
from serpavi.utils.waits import first_success

Surface = Union[Page, Frame]

ENTRY_VERBS = verbs("iniciar", "acceder", "consultar")
SUBMIT_VERBS = verbs("buscar", "consultar", "continuar")
CADASTRAL_TAB = re.compile(r"(referencia|ref\.)\s*catastral", re.IGNORECASE)
CADASTRAL_FIELD = re.compile(r"catastral|referencia", re.IGNORECASE)

INPUT_SELECTORS = (
    'input[placeholder*="catastral" i]',
    'input[name*="catastral" i]',
    'input[aria-label*="catastral" i]',
    'input[name*="referencia" i]',
    'input[aria-label*="referencia" i]',
)

# Ordered (name, factory) pairs; the first strategy with a visible match wins.
INPUT_STRATEGIES: Tuple[Tuple[str, Callable[[Surface], Locator]], ...] = (
    ("attribute", lambda s: s.locator(", ".join(INPUT_SELECTORS))),
    ("placeholder", lambda s: s.get_by_placeholder(CADASTRAL_FIELD)),
    ("role", lambda s: s.get_by_role("textbox", name=CADASTRAL_FIELD)),
    ("generic_text", lambda s: s.locator('input[type="text"]')),
)

SUGGESTION_SELECTORS = (
    '[role="listbox"] [role="option"]',
    ".ui-autocomplete li",
    ".autocomplete-suggestions > *",
    "ul.dropdown-menu li",
    '[class*="suggest"] li',
)

NO_RESULTS = re.compile(
    r"sin\s+resultados|no\s+(se\s+)?(han\s+)?encontr|no\s+hay\s+(resultados|coincidencias)|no\s+results",
    re.IGNORECASE,
)

# Visible once the property has been selected and its detail form rendered.
RESULT_MARKER = "text=/planta|etiqueta\\s+energ|estado\\s+de\\s+conservaci|precio\\s+de\\s+referencia/i"

TYPE_DELAY_MS = 30


@dataclass
class SearchOutcome:
    """How the identifier was submitted and whether the result view was confirmed."""
    input_strategy: str
    submitted_via: str  # "suggestion" or "enter"
    confirmed: bool
    suggestion: Optional[str] = None
    used_submit: bool = False


class SearchLayer:
    """Types the identifier into the calculator and selects the matching property."""

    def __init__(
        self,
        step_timeout: float = 15.0,
        suggestion_timeout: float = 4.0,
        confirm_timeout: float = 8.0,
        max_suggestions: int = 5,
        click_timeout: float = 2.0,
        input_strategies: Sequence[Tuple[str, Callable[[Surface], Locator]]] = INPUT_STRATEGIES,
        suggestion_selectors: Sequence[str] = SUGGESTION_SELECTORS,
    ):
        self.step_timeout = step_timeout
        self.suggestion_timeout = suggestion_timeout
        self.confirm_timeout = confirm_timeout
        self.max_suggestions = max_suggestions
        self.click_timeout = click_timeout
        self.input_strategies = tuple(input_strategies)
        self.suggestion_selectors = tuple(suggestion_selectors)
        self.logger = LayerLogger("search_layer")

    async def search(self, surface: Surface, identifier: str, token: CancellationToken) -> SearchOutcome:
        """
        Run the full search step.

        Raises:
            SearchInputNotFoundError: no strategy located a visible input
        """
        await self.enter_flow(surface, token)
        strategy, field = await self.locate_input(surface, token)
        await self.type_identifier(field, identifier, token)

        suggestion = await self.pick_suggestion(surface, token)
        if suggestion is None:
            self.logger.log_fallback("suggestion", "enter_key", "no acceptable suggestion rendered")
            token.checkpoint()
            try:
                await field.press("Enter", timeout=token.step_timeout_ms(self.click_timeout))
            except PlaywrightError as e:
                self.logger.log_step_skipped("press_enter", str(e))

        outcome = SearchOutcome(
            input_strategy=strategy,
            submitted_via="enter" if suggestion is None else "suggestion",
            suggestion=suggestion,
            confirmed=await self.confirm(surface, field, token),
        )
        if not outcome.confirmed:
            submit = await click_first(action_locators(surface, SUBMIT_VERBS), token, self.click_timeout)
            if submit is not None:
                outcome.used_submit = True
                outcome.confirmed = await self.confirm(surface, field, token)

        self.logger.log_action(
            "search",
            "completed",
            input_strategy=outcome.input_strategy,
            submitted_via=outcome.submitted_via,
            confirmed=outcome.confirmed,
            used_submit=outcome.used_submit,
        )
        return outcome

    async def enter_flow(self, surface: Surface, token: CancellationToken) -> None:
        """Click an entry control and the cadastral-reference tab when present."""
        entry = await click_first(action_locators(surface, ENTRY_VERBS), token, self.click_timeout)
        if entry is None:
            self.logger.log_step_skipped("enter_flow", "no entry control")

        tab = await click_first(
            [
                surface.get_by_role("tab", name=CADASTRAL_TAB),
                surface.get_by_role("radio", name=CADASTRAL_TAB),
                surface.get_by_text(CADASTRAL_TAB),
            ],
            token,
            self.click_timeout,
        )
        if tab is None:
            self.logger.log_step_skipped("select_tab", "no cadastral reference tab")

    async def locate_input(self, surface: Surface, token: CancellationToken) -> Tuple[str, Locator]:
        for name, factory in self.input_strategies:
            field = await first_visible([factory(surface)], token)
            if field is not None:
                self.logger.log_decision("input_located", f"matched by {name} strategy", strategy=name)
                return name, field
        raise SearchInputNotFoundError(
            "cadastral reference input not found",
            context={"strategies": [name for name, _ in self.input_strategies]},
        )

    async def type_identifier(self, field: Locator, identifier: str, token: CancellationToken) -> None:
        """
        Clear the input and type the identifier key by key.

        Raises:
            SearchInputNotFoundError: the located input rejected the text
        """
        try:
            token.checkpoint()
            await field.fill("", timeout=token.step_timeout_ms(self.step_timeout))
            token.checkpoint()
            await field.press_sequentially(
                identifier,
                delay=TYPE_DELAY_MS,
                timeout=token.step_timeout_ms(self.step_timeout),
            )
        except PlaywrightError as e:
            self.logger.log_error(f"typing into search input failed: {e}", error_type="search_input_unusable")
            raise SearchInputNotFoundError(
                "cadastral reference input not usable",
                context={"error": str(e)},
            ) from e

    async def pick_suggestion(self, surface: Surface, token: CancellationToken) -> Optional[str]:
        """Click the first acceptable suggestion. Returns its text, or None."""
        token.checkpoint()
        wait_ms = token.step_timeout_ms(self.suggestion_timeout)
        index, _ = await first_success(
            *[
                surface.locator(selector).first.wait_for(state="visible", timeout=wait_ms)
                for selector in self.suggestion_selectors
            ],
            tolerate=(PlaywrightError,),
        )
        if index is None:
            return None

        items = surface.locator(self.suggestion_selectors[index])
        skipped: List[str] = []
        for position in range(min(await items.count(), self.max_suggestions)):
            token.checkpoint()
            item = items.nth(position)
            try:
                text = (await item.inner_text(timeout=token.step_timeout_ms(self.click_timeout))).strip()
                if not text or NO_RESULTS.search(text):
                    skipped.append(text)
                    continue
                await item.click(timeout=token.step_timeout_ms(self.click_timeout))
            except PlaywrightError as e:
                self.logger.log_step_skipped("suggestion", str(e), position=position)
                continue
            self.logger.log_decision("suggestion_selected", "first acceptable suggestion", position=position, skipped=len(skipped))
            return text
        return None

    async def confirm(self, surface: Surface, field: Locator, token: CancellationToken) -> bool:
        """True once a detail-form marker is visible or the search input is gone."""
        token.checkpoint()
        wait_ms = token.step_timeout_ms(self.confirm_timeout)
        index, _ = await first_success(
            surface.locator(RESULT_MARKER).first.wait_for(state="visible", timeout=wait_ms),
            field.wait_for(state="hidden", timeout=wait_ms),
            tolerate=(PlaywrightError,),
        )
        if index is None:
            return False
        self.logger.log_decision(
            "search_confirmed",
            "result marker visible" if index == 0 else "search input hidden",
        )
        return True
