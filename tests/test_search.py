"""Tests for identifier entry and autocomplete disambiguation."""
import pytest
from fakes import FakeElement, FakeFrame

from serpavi.layers.search import RESULT_MARKER, SUGGESTION_SELECTORS, SearchLayer
from serpavi.utils.exceptions import SearchInputNotFoundError

IDENTIFIER = "9872023VH5797S0001WX"


def _search_input(**kwargs):
    return FakeElement(tag="input", role="textbox", placeholder="Referencia catastral", **kwargs)


def _suggestion(text, on_click=None):
    return FakeElement(tag="li", role="option", text=text, selectors=[SUGGESTION_SELECTORS[0]], on_click=on_click)


@pytest.fixture
def layer():
    return SearchLayer(suggestion_timeout=0.1, confirm_timeout=0.1)


async def test_skips_no_results_and_clicks_first_real_suggestion(layer, token):
    field = _search_input(value="old")

    def hide_input():
        field.visible = False

    sentinel = _suggestion("Sin resultados")
    match = _suggestion(f"{IDENTIFIER} - CL MAYOR 1", on_click=hide_input)
    surface = FakeFrame(elements=[field, sentinel, match])

    outcome = await layer.search(surface, IDENTIFIER, token)

    assert field.value == IDENTIFIER
    assert field.typed == [IDENTIFIER]
    assert sentinel.clicks == 0
    assert match.clicks == 1
    assert outcome.submitted_via == "suggestion"
    assert outcome.suggestion.startswith(IDENTIFIER)
    assert outcome.input_strategy == "placeholder"
    assert outcome.confirmed
    assert not outcome.used_submit


async def test_enter_then_submit_when_no_suggestions(layer, token):
    field = _search_input()
    surface = FakeFrame(elements=[field])

    def show_detail_form():
        surface.add(FakeElement(text="Planta", selectors=[RESULT_MARKER]))

    surface.add(FakeElement(tag="button", role="button", name="Buscar", text="Buscar", on_click=show_detail_form))

    outcome = await layer.search(surface, IDENTIFIER, token)

    assert field.pressed == ["Enter"]
    assert outcome.submitted_via == "enter"
    assert outcome.used_submit
    assert outcome.confirmed


async def test_unconfirmed_search_is_reported_not_raised(layer, token):
    outcome = await layer.search(FakeFrame(elements=[_search_input()]), IDENTIFIER, token)
    assert not outcome.confirmed


async def test_suggestion_limit(token):
    layer = SearchLayer(suggestion_timeout=0.1, confirm_timeout=0.1, max_suggestions=2)
    items = [_suggestion("No se han encontrado resultados"), _suggestion("Sin resultados"), _suggestion(IDENTIFIER)]
    surface = FakeFrame(elements=[_search_input()] + items)

    outcome = await layer.search(surface, IDENTIFIER, token)

    assert items[2].clicks == 0
    assert outcome.submitted_via == "enter"


async def test_hidden_inputs_are_skipped(layer, token):
    hidden = _search_input(visible=False)
    generic = FakeElement(tag="input", selectors=['input[type="text"]'])
    strategy, field = await layer.locate_input(FakeFrame(elements=[hidden, generic]), token)
    assert strategy == "generic_text"
    assert await field.count() == 1


async def test_missing_input_raises(layer, token):
    with pytest.raises(SearchInputNotFoundError):
        await layer.search(FakeFrame(elements=[FakeElement(text="Mantenimiento")]), IDENTIFIER, token)


async def test_input_that_rejects_typing_raises(layer, token):
    frame = FakeFrame(elements=[_search_input(disabled=True)])

    with pytest.raises(SearchInputNotFoundError) as excinfo:
        await layer.search(frame, IDENTIFIER, token)

    assert "not usable" in excinfo.value.message
    assert "not enabled" in excinfo.value.context["error"]


async def test_flow_entry_clicks_tab(layer, token):
    tab = FakeElement(role="tab", name="Referencia catastral", text="Referencia catastral")
    entry = FakeElement(role="button", name="Iniciar consulta", text="Iniciar consulta")
    await layer.enter_flow(FakeFrame(elements=[entry, tab]), token)
    assert entry.clicks == 1
    assert tab.clicks == 1
