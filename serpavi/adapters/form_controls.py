"""
Form Control Adapter for the SERPAVI rent reference scraper.

Wraps heterogeneous form widgets behind one set/get contract:
- SelectControl: <select> lists
- TextControl: free-text inputs
- ToggleControl: yes/no radio or checkbox groups, or a lone checkbox

FieldLocator resolves a label pattern to the right variant once, so the
callers never inspect tag names themselves.
"""
import re
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Pattern, Tuple, Union

from playwright.async_api import Frame, Locator, Page

from serpavi.utils.logger import LayerLogger

# Accessible names of the yes/no options in the es-ES calculator.
# Evaluated in the browser as JavaScript regexes: \b is ASCII-only there
# and never matches after "í", so no \b in these.
AFFIRMATIVE = re.compile(r"^\s*(s[ií]|yes)(?![a-z0-9])", re.IGNORECASE)
NEGATIVE = re.compile(r"^\s*no(?![a-z0-9])", re.IGNORECASE)

Surface = Union[Page, Frame]


def format_value(value: Any) -> str:
    """Stringify a form value; integral floats lose their ".0"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class FormControl(ABC):
    """A resolved form control with a uniform set/get contract."""

    kind = "control"

    def __init__(self, locator: Locator, timeout_ms: float = 4000):
        self.locator = locator
        self.timeout_ms = timeout_ms

    @abstractmethod
    async def set(self, value: Any) -> bool:
        """Apply a value; returns False when the control offered no matching option."""

    @abstractmethod
    async def get(self) -> Any:
        """Read the current value."""

    async def set_flag(self, flag: bool) -> bool:
        """Apply a yes/no value."""
        return await self.set("Sí" if flag else "No")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class SelectControl(FormControl):
    kind = "select"

    async def options(self) -> List[Tuple[str, str]]:
        """Return (value, label) pairs of the list's options."""
        pairs = await self.locator.evaluate(
            "el => Array.from(el.options).map(o => [o.value, (o.textContent || '').trim()])"
        )
        return [(str(v), str(label)) for v, label in pairs]

    async def set(self, value: Any) -> bool:
        """Choose by option value, falling back to a case-insensitive label prefix."""
        text = format_value(value)
        options = await self.options()
        if any(v == text for v, _ in options):
            await self.locator.select_option(value=text, timeout=self.timeout_ms)
            return True
        for v, label in options:
            if label.lower().startswith(text.lower()):
                await self.locator.select_option(value=v, timeout=self.timeout_ms)
                return True
        return False

    async def set_flag(self, flag: bool) -> bool:
        pattern = AFFIRMATIVE if flag else NEGATIVE
        for v, label in await self.options():
            if pattern.search(label):
                await self.locator.select_option(value=v, timeout=self.timeout_ms)
                return True
        return False

    async def get(self) -> Any:
        return await self.locator.input_value(timeout=self.timeout_ms)


class TextControl(FormControl):
    kind = "text"

    async def set(self, value: Any) -> bool:
        await self.locator.fill(format_value(value), timeout=self.timeout_ms)
        return True

    async def get(self) -> Any:
        return await self.locator.input_value(timeout=self.timeout_ms)


class ToggleControl(FormControl):
    """
    Yes/no control.

    With ``single=True`` the locator is one checkbox that is checked or
    unchecked directly. Otherwise it is the labelled group, and the option
    whose accessible name matches the affirmative/negative pattern is checked.
    """

    kind = "toggle"

    def __init__(self, locator: Locator, timeout_ms: float = 4000, single: bool = False):
        super().__init__(locator, timeout_ms)
        self.single = single

    async def set(self, value: Any) -> bool:
        flag = value if isinstance(value, bool) else bool(AFFIRMATIVE.search(str(value)))
        return await self.set_flag(flag)

    async def set_flag(self, flag: bool) -> bool:
        if self.single:
            await self.locator.set_checked(flag, timeout=self.timeout_ms)
            return True
        option = await self._option(AFFIRMATIVE if flag else NEGATIVE)
        if option is None:
            return False
        await option.check(timeout=self.timeout_ms)
        return True

    async def get(self) -> Any:
        if self.single:
            return await self.locator.is_checked(timeout=self.timeout_ms)
        for pattern, result in ((AFFIRMATIVE, True), (NEGATIVE, False)):
            option = await self._option(pattern)
            if option is not None and await option.is_checked(timeout=self.timeout_ms):
                return result
        return None

    async def _option(self, pattern: Pattern) -> Optional[Locator]:
        for role in ("radio", "checkbox"):
            option = self.locator.get_by_role(role, name=pattern).first
            if await option.count():
                return option
        option = self.locator.get_by_label(pattern).first
        if await option.count():
            return option
        return None


class FieldLocator:
    """
    Resolves a label pattern to a FormControl on a page or frame.

    Lookup order: an element labelled by the pattern (select, checkbox or
    text input), then a group or radiogroup named by the pattern. Returns
    None when nothing matches; absence is normal on this calculator.
    """

    def __init__(self, surface: Surface, timeout_ms: float = 4000):
        self.surface = surface
        self.timeout_ms = timeout_ms
        self.logger = LayerLogger("field_locator")

    async def resolve(self, label: Pattern) -> Optional[FormControl]:
        labelled = self.surface.get_by_label(label).first
        if await labelled.count():
            tag, input_type = await labelled.evaluate(
                "el => [el.tagName.toLowerCase(), (el.getAttribute('type') || '').toLowerCase()]"
            )
            if tag == "select":
                return SelectControl(labelled, self.timeout_ms)
            if input_type == "checkbox":
                return ToggleControl(labelled, self.timeout_ms, single=True)
            if input_type != "radio":
                return TextControl(labelled, self.timeout_ms)

        for role in ("group", "radiogroup"):
            group = self.surface.get_by_role(role, name=label).first
            if await group.count():
                return ToggleControl(group, self.timeout_ms)

        self.logger.log_step_skipped("resolve_control", "no_matching_control", label=label.pattern)
        return None
