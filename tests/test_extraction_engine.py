"""Tests for the layered extraction strategies and the engine's merge/reconcile rules."""
import pytest

from serpavi.extraction.engine import TOTAL_POLICY_MIDPOINT, ExtractionEngine
from serpavi.extraction.numbers import PriceBounds
from serpavi.extraction.strategies import (
    AreaStrategy,
    ExtractionCandidate,
    FallbackScanStrategy,
    PricePerAreaStrategy,
    RangeStrategy,
    ReferencePriceStrategy,
)


@pytest.fixture
def engine():
    return ExtractionEngine()


def test_reference_price_scenario(engine):
    estimate = engine.extract_text("Precio de referencia: 1.050,00 €")
    assert estimate.reference_price == 1050.0
    assert estimate.total_price == 1050.0
    assert estimate.min_price is None
    assert estimate.max_price is None


def test_range_scenario(engine):
    estimate = engine.extract_text("entre 900 € y 1.100 €")
    assert estimate.min_price == 900
    assert estimate.max_price == 1100
    assert estimate.reference_price is None
    assert estimate.total_price == 1100


def test_no_currency_marked_numbers_yield_nothing(engine):
    candidate = engine.extract("Referencia catastral 9872023VH5797S0001WX, año 2024, planta 3")
    assert not candidate.has_prices()


def test_parsing_is_idempotent(engine):
    text = "Rango: 850 € - 1.200 € Precio de referencia 1.000 € (12,50 €/m2)"
    assert engine.extract(text) == engine.extract(text)


def test_reference_wins_over_range_by_default(engine):
    estimate = engine.extract_text("Rango entre 900 € y 1.100 €. Precio de referencia: 1.000 €")
    assert (estimate.min_price, estimate.max_price) == (900, 1100)
    assert estimate.total_price == 1000


def test_midpoint_policy_uses_range():
    engine = ExtractionEngine(total_policy=TOTAL_POLICY_MIDPOINT)
    estimate = engine.extract_text("Rango entre 900 € y 1.100 €. Precio de referencia: 1.050 €")
    assert estimate.total_price == 1000
    assert estimate.reference_price == 1050


def test_sanitize_swaps_inverted_range(engine):
    candidate = engine.sanitize(ExtractionCandidate(min_price=1200, max_price=900))
    assert (candidate.min_price, candidate.max_price) == (900, 1200)


def test_sanitize_drops_implausible_values(engine):
    candidate = engine.sanitize(ExtractionCandidate(min_price=3, max_price=25000, reference_price=950))
    assert candidate.min_price is None
    assert candidate.max_price is None
    assert candidate.reference_price == 950


def test_years_are_not_prices(engine):
    candidate = engine.extract("Datos de 2023. Importe mensual 780 €")
    assert candidate.max_price == 780
    assert candidate.min_price is None


def test_per_area_price_is_not_a_monthly_amount():
    assert PricePerAreaStrategy().attempt("12,50 €/m2").price_per_area == 12.5
    assert RangeStrategy().attempt("12,50 €/m2 - 14 €/m2") is None


def test_per_area_times_area(engine):
    estimate = engine.extract_text("Precio: 11,20 € por m2. Superficie construida 80 m²")
    assert estimate.price_per_area == 11.2
    assert estimate.area == 80
    assert estimate.total_price == pytest.approx(896.0)


def test_caller_area_wins_over_parsed_area(engine):
    estimate = engine.extract_text("11 €/m² · superficie 80 m2", area=100)
    assert estimate.total_price == 1100


def test_area_strategy():
    assert AreaStrategy().attempt("Superficie: 72,5 m2").area == 72.5
    assert AreaStrategy().attempt("95 m² construidos").area == 95


def test_reference_strategy_variants():
    strategy = ReferencePriceStrategy()
    assert strategy.attempt("Precio máximo de referencia 1.234,56 €").reference_price == 1234.56
    assert strategy.attempt("referencia: 800 euros").reference_price == 800
    assert strategy.attempt("sin importes") is None


def test_fallback_picks_separated_pair():
    bounds = PriceBounds().rent
    candidate = FallbackScanStrategy(bounds).attempt("Gastos 30 €. Importes 950 € 955 € 1.200 €")
    assert (candidate.min_price, candidate.max_price) == (955, 1200)


def test_fallback_single_value_becomes_max():
    candidate = FallbackScanStrategy(PriceBounds().rent).attempt("Total 700 €")
    assert candidate.min_price is None
    assert candidate.max_price == 700


def test_merge_takes_extremes_and_first_reference(engine):
    merged = engine.merge([
        ExtractionCandidate(strategy="a", min_price=900, max_price=1000, reference_price=950),
        ExtractionCandidate(strategy="b", min_price=850, max_price=1100, reference_price=990),
        ExtractionCandidate(strategy="c"),
    ])
    assert (merged.min_price, merged.max_price) == (850, 1100)
    assert merged.reference_price == 950


def test_custom_strategy_list():
    engine = ExtractionEngine(strategies=[RangeStrategy()])
    candidate = engine.extract("Precio de referencia: 1.000 € entre 900 € y 1.100 €")
    assert candidate.reference_price is None
    assert candidate.max_price == 1100
