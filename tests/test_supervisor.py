"""Tests for the estimate supervisor: outcome mapping and session cleanup."""
import asyncio

import pytest
from fakes import FakeContext, FakeElement, FakePage, FakeSession

from serpavi.extraction.numbers import PriceBounds
from serpavi.layers.extraction import ANCHORS
from serpavi.layers.supervisor import EstimateSupervisor, PipelineSettings
from serpavi.models.request import EstimateRequest
from serpavi.models.result import ErrorKind, ExtractionMethod, ResultStatus
from serpavi.utils.exceptions import TargetUnreachableError

TARGET = "https://serpavi.mivau.gob.es/"
IDENTIFIER = "9872023VH5797S0001WX"


def _settings(**overrides):
    values = dict(
        target_url=TARGET,
        landing_url="https://www.mivau.gob.es/vivienda/serpavi",
        target_domain="serpavi.mivau.gob.es",
        settle_delay=0,
        suggestion_timeout=0.1,
        confirm_timeout=0.1,
    )
    values.update(overrides)
    return PipelineSettings(**values)


def _calculator(page):
    """A minimal calculator: search input, one suggestion, a floor select and a Calcular button."""
    field = FakeElement(tag="input", role="textbox", placeholder="Referencia catastral")

    def pick():
        field.visible = False

    def calculate():
        region = FakeElement(text="Precio de referencia: 1.050,00 € Rango: 900 € - 1.150 €")
        page.add(FakeElement(text="Precio de referencia", selectors=[ANCHORS[0][0]], container=region))

    page.add(
        field,
        FakeElement(role="option", text=f"{IDENTIFIER} CL MAYOR 1", selectors=['[role="listbox"] [role="option"]'], on_click=pick),
        FakeElement(tag="select", label="Planta", options=[["2", "Segunda"]]),
        FakeElement(tag="button", role="button", name="Calcular", text="Calcular", on_click=calculate),
    )


class StubNavigator:
    def __init__(self, error=None, delay=0):
        self.error = error
        self.delay = delay

    async def resolve(self, context, token):
        if self.delay:
            await asyncio.sleep(self.delay)
        raise self.error


@pytest.fixture
def request_model(sample_payload):
    return EstimateRequest.model_validate(sample_payload)


async def test_success_releases_session(request_model):
    page = FakePage()
    page.routes[TARGET] = _calculator
    session = FakeSession(FakeContext(page))

    result = await EstimateSupervisor(_settings(), session_factory=lambda settings: session).run(request_model)

    assert result.status == ResultStatus.OK
    assert result.identifier == IDENTIFIER
    assert (result.minPrice, result.maxPrice, result.referencePrice) == (900, 1150, 1050)
    assert result.totalPrice == 1050
    assert result.method == ExtractionMethod.ANCHORED
    assert session.closed


async def test_needs_attributes_never_opens_a_session():
    def explode(settings):
        raise AssertionError("browser session must not be created")

    request = EstimateRequest.model_validate({"identifier": IDENTIFIER, "floor": "1"})
    result = await EstimateSupervisor(_settings(), session_factory=explode).run(request)

    assert result.status == ResultStatus.NEEDS_ATTRIBUTES
    assert result.needs == ["energyLabel", "condition"]


async def test_unreachable_is_soft_failure(request_model):
    session = FakeSession(FakeContext(FakePage()))
    navigator = StubNavigator(TargetUnreachableError("no path", context={"currentUrl": "about:blank"}))

    result = await EstimateSupervisor(_settings(), session_factory=lambda s: session, navigator=navigator).run(request_model)

    assert result.status == ResultStatus.FAILED
    assert result.errorKind == ErrorKind.UNREACHABLE
    assert result.diagnostics.currentUrl == "about:blank"
    assert session.closed


async def test_search_input_missing_is_soft_failure(request_model):
    page = FakePage()
    page.routes[TARGET] = lambda p: p.add(FakeElement(text="Página en mantenimiento", selectors=["body"]))
    session = FakeSession(FakeContext(page))

    result = await EstimateSupervisor(_settings(), session_factory=lambda s: session).run(request_model)

    assert result.errorKind == ErrorKind.SEARCH_INPUT_NOT_FOUND
    assert result.diagnostics.sample == "Página en mantenimiento"
    assert session.closed


async def test_global_timeout_releases_session(request_model):
    session = FakeSession(FakeContext(FakePage()))
    supervisor = EstimateSupervisor(
        _settings(global_timeout=0.05),
        session_factory=lambda s: session,
        navigator=StubNavigator(RuntimeError("unreachable"), delay=5),
    )

    result = await supervisor.run(request_model)

    assert result.errorKind == ErrorKind.TIMEOUT
    assert result.to_response()["ok"] is False
    assert session.closed


async def test_unexpected_fault_propagates_after_cleanup(request_model):
    session = FakeSession(FakeContext(FakePage()))
    supervisor = EstimateSupervisor(
        _settings(),
        session_factory=lambda s: session,
        navigator=StubNavigator(RuntimeError("driver crashed")),
    )

    with pytest.raises(RuntimeError):
        await supervisor.run(request_model)
    assert session.closed


def test_settings_from_config():
    class Cfg:
        TARGET_URL = TARGET
        LANDING_URL = "https://www.mivau.gob.es/"
        TARGET_DOMAIN = "serpavi.mivau.gob.es"
        BROWSER_HEADLESS = True
        BROWSER_LOCALE = "es-ES"
        BROWSER_USER_AGENT = "UA"
        VIEWPORT_WIDTH, VIEWPORT_HEIGHT = 1280, 900
        RENT_MIN, RENT_MAX = 100, 20000
        PER_AREA_MIN, PER_AREA_MAX = 1, 200
        AREA_MIN, AREA_MAX = 10, 2000
        TOTAL_PRICE_POLICY = "midpoint"
        GLOBAL_TIMEOUT, NAVIGATION_TIMEOUT, STEP_TIMEOUT, GOTO_TIMEOUT = 65, 25, 15, 20
        POPUP_TIMEOUT, SUGGESTION_TIMEOUT, CONFIRM_TIMEOUT, SETTLE_DELAY = 7, 4, 8, 1.5
        ATTRIBUTE_TIMEOUT = 3
        MAX_SUGGESTIONS, SAMPLE_CHARS, DEBUG_HTML_CHARS = 5, 2000, 20000
        DEBUG = False

    settings = PipelineSettings.from_config(Cfg, debug=True)

    assert settings.debug
    assert settings.total_policy == "midpoint"
    assert settings.bounds == PriceBounds()
    assert settings.browser.user_agent == "UA"
    assert settings.attribute_timeout == 3


def _search_then_nothing(page):
    """The lookup works but the result view carries no prices."""
    field = FakeElement(tag="input", role="textbox", placeholder="Referencia catastral")

    def pick():
        field.visible = False

    page.add(
        field,
        FakeElement(role="option", text=f"{IDENTIFIER} CL MAYOR 1", selectors=['[role="listbox"] [role="option"]'], on_click=pick),
        FakeElement(text="Resultado no disponible", selectors=["body"]),
    )


async def test_no_prices_is_layout_changed_with_diagnostics(request_model):
    page = FakePage()
    page.routes[TARGET] = _search_then_nothing
    session = FakeSession(FakeContext(page))

    result = await EstimateSupervisor(_settings(debug=True), session_factory=lambda s: session).run(request_model)

    assert result.status == ResultStatus.FAILED
    assert result.errorKind == ErrorKind.LAYOUT_CHANGED
    assert result.diagnostics.currentUrl == TARGET
    assert result.diagnostics.sample == "Resultado no disponible"
    assert result.diagnostics.html.startswith("<html>")
    assert result.diagnostics.screenshot
    assert result.to_response()["errorKind"] == "layout-changed"
    assert session.closed


async def test_search_input_rejecting_text_is_soft_failure(request_model):
    page = FakePage()
    page.routes[TARGET] = lambda p: p.add(
        FakeElement(tag="input", role="textbox", placeholder="Referencia catastral", disabled=True),
        FakeElement(text="Servicio temporalmente deshabilitado", selectors=["body"]),
    )
    session = FakeSession(FakeContext(page))

    result = await EstimateSupervisor(_settings(), session_factory=lambda s: session).run(request_model)

    assert result.errorKind == ErrorKind.SEARCH_INPUT_NOT_FOUND
    assert result.diagnostics.sample == "Servicio temporalmente deshabilitado"
    assert session.closed


def test_attribute_step_timeout_comes_from_settings():
    supervisor = EstimateSupervisor(_settings(attribute_timeout=2.5))
    assert supervisor.filler.step_timeout == 2.5
