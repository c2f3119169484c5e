"""
Action helpers shared by the pipeline layers.

Locators are tried in order and the first visible one wins. Lookups that
error out (detached frame, strict-mode violation) count as a miss.
"""
import re
from typing import List, Optional, Pattern, Sequence, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Frame, Locator, Page

from serpavi.utils.cancellation import CancellationToken

Surface = Union[Page, Frame]

# How many matches of one locator are checked for visibility.
MAX_MATCHES_CHECKED = 5


def action_locators(surface: Surface, pattern: Pattern) -> List[Locator]:
    """Controls whose accessible name or visible text matches ``pattern``, best match first."""
    return [
        surface.get_by_role("button", name=pattern),
        surface.get_by_role("link", name=pattern),
        surface.get_by_role("tab", name=pattern),
        surface.get_by_text(pattern),
    ]


def verbs(*words: str) -> Pattern:
    """Case-insensitive alternation of ``words``."""
    return re.compile("|".join(words), re.IGNORECASE)


async def first_visible(
    locators: Sequence[Locator],
    token: CancellationToken,
    max_matches: int = MAX_MATCHES_CHECKED,
) -> Optional[Locator]:
    for locator in locators:
        token.checkpoint()
        try:
            count = await locator.count()
            for index in range(min(count, max_matches)):
                candidate = locator.nth(index)
                if await candidate.is_visible():
                    return candidate
        except PlaywrightError:
            continue
    return None


async def click_first(
    locators: Sequence[Locator],
    token: CancellationToken,
    timeout: float = 2.0,
) -> Optional[Locator]:
    """Click the first visible locator. Returns it, or None if nothing was clicked."""
    control = await first_visible(locators, token)
    if control is None:
        return None
    try:
        await control.click(timeout=token.step_timeout_ms(timeout))
    except PlaywrightError:
        return None
    return control
