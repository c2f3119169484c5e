"""
Attribute Filler for the SERPAVI rent reference scraper.

Fills the property attributes the calculator asks for after the search.
Every attribute is best-effort: the form varies by property type, so a
control that is missing or rejects the value is recorded and skipped.
Attributes the caller did not send are left untouched on the form.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Pattern, Tuple, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Frame, Page

from serpavi.adapters.form_controls import FieldLocator
from serpavi.models.request import EstimateRequest
from serpavi.utils.cancellation import CancellationToken
from serpavi.utils.logger import LayerLogger

Surface = Union[Page, Frame]

VALUE = "value"
TOGGLE = "toggle"


@dataclass(frozen=True)
class AttributeSpec:
    """How one request attribute maps onto the calculator form."""
    name: str  # public request key
    field: str  # EstimateRequest attribute
    label: Pattern
    kind: str = VALUE


def _label(pattern: str) -> Pattern:
    return re.compile(pattern, re.IGNORECASE)


# Fill order follows the calculator's form: location first, then building, then extras.
ATTRIBUTE_SPECS: Tuple[AttributeSpec, ...] = (
    AttributeSpec("floor", "floor", _label(r"planta")),
    AttributeSpec("condition", "condition", _label(r"estado")),
    AttributeSpec("energyLabel", "energy_label", _label(r"etiqueta|calificaci[oó]n\s+energ")),
    AttributeSpec("area", "area", _label(r"superficie")),
    AttributeSpec("bedrooms", "bedrooms", _label(r"dormitorios|habitaciones")),
    AttributeSpec("bathrooms", "bathrooms", _label(r"ba(ñ|n)os")),
    AttributeSpec("elevator", "elevator", _label(r"ascensor"), TOGGLE),
    AttributeSpec("parking", "parking", _label(r"aparcamiento|parking|garaje"), TOGGLE),
    AttributeSpec("furnished", "furnished", _label(r"amueblad"), TOGGLE),
    AttributeSpec("concierge", "concierge", _label(r"conserje|porter"), TOGGLE),
    AttributeSpec("specialViews", "special_views", _label(r"vistas"), TOGGLE),
    AttributeSpec("amenities", "amenities", _label(r"equipamiento|piscina"), TOGGLE),
    AttributeSpec("communalAreas", "communal_areas", _label(r"zonas\s+comunes"), TOGGLE),
    AttributeSpec("exterior", "exterior", _label(r"exterior"), TOGGLE),
)


@dataclass
class FillReport:
    """What happened to each supplied attribute."""
    filled: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)  # no control on this form
    failed: Dict[str, str] = field(default_factory=dict)  # control found, value not applied

    def as_log(self) -> Dict[str, Any]:
        return {"filled": self.filled, "skipped": self.skipped, "failed": sorted(self.failed)}


class AttributeFiller:
    """Applies request attributes through the form-control abstraction."""

    def __init__(self, specs: Tuple[AttributeSpec, ...] = ATTRIBUTE_SPECS, step_timeout: float = 4.0):
        self.specs = specs
        self.step_timeout = step_timeout
        self.logger = LayerLogger("attribute_filler")

    async def fill(self, surface: Surface, request: EstimateRequest, token: CancellationToken) -> FillReport:
        report = FillReport()
        for spec in self.specs:
            value = getattr(request, spec.field)
            if value is None:
                continue
            token.checkpoint()
            locator = FieldLocator(surface, token.step_timeout_ms(self.step_timeout))
            try:
                control = await locator.resolve(spec.label)
                if control is None:
                    report.skipped.append(spec.name)
                    continue
                if spec.kind == TOGGLE:
                    applied = await control.set_flag(bool(value))
                else:
                    applied = await control.set(value)
            except PlaywrightError as e:
                report.failed[spec.name] = str(e)
                self.logger.log_step_skipped("fill_attribute", str(e), attribute=spec.name)
                continue
            if applied:
                report.filled.append(spec.name)
            else:
                report.failed[spec.name] = "no matching option"
                self.logger.log_step_skipped("fill_attribute", "no matching option", attribute=spec.name, value=str(value))

        self.logger.log_action("fill_attributes", "completed", **report.as_log())
        return report
