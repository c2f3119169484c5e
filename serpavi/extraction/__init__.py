"""Extraction package initialization."""
from serpavi.extraction.numbers import PlausibilityBounds, PriceBounds, normalize_text, parse_eur
from serpavi.extraction.strategies import ExtractionCandidate, ExtractionStrategy, default_strategies
from serpavi.extraction.engine import ExtractionEngine, PriceEstimate

__all__ = [
    "PlausibilityBounds",
    "PriceBounds",
    "normalize_text",
    "parse_eur",
    "ExtractionCandidate",
    "ExtractionStrategy",
    "default_strategies",
    "ExtractionEngine",
    "PriceEstimate",
]
