"""
Layered price extraction strategies.

Each strategy implements ``attempt(text)`` over whitespace-normalized text
and returns an ExtractionCandidate, or None when its pattern does not
match. The engine runs them in order; the first hit per category wins.
"""
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields, replace
from typing import List, Optional, Pattern, Sequence

from serpavi.extraction.numbers import (
    AMOUNT,
    AREA_UNIT,
    CURRENCY,
    NUMBER,
    PER_AREA_SUFFIX,
    PlausibilityBounds,
    parse_eur,
)

# Strategy categories
REFERENCE = "reference"
RANGE = "range"
PER_AREA = "per_area"
AREA = "area"
FALLBACK = "fallback"

_FLAGS = re.IGNORECASE

_SEPARATOR = r"\s*(?:-|–|—|a|y|hasta)\s*"


@dataclass
class ExtractionCandidate:
    """Structured values produced by one or more strategy passes over one text region."""
    strategy: str = ""
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    reference_price: Optional[float] = None
    price_per_area: Optional[float] = None
    area: Optional[float] = None

    def has_prices(self) -> bool:
        return any(
            v is not None
            for v in (self.min_price, self.max_price, self.reference_price, self.price_per_area)
        )

    def present_fields(self) -> List[str]:
        return [f.name for f in fields(self) if f.name != "strategy" and getattr(self, f.name) is not None]

    def missing_fields(self) -> List[str]:
        return [f.name for f in fields(self) if f.name != "strategy" and getattr(self, f.name) is None]

    def fill_from(self, other: "ExtractionCandidate") -> "ExtractionCandidate":
        """Return a copy whose empty fields are taken from ``other``."""
        updates = {
            f.name: getattr(other, f.name)
            for f in fields(self)
            if f.name != "strategy" and getattr(self, f.name) is None
        }
        return replace(self, **updates)


class ExtractionStrategy(ABC):
    """Common contract: attempt extraction from normalized text."""

    name: str = "strategy"
    category: str = ""

    @abstractmethod
    def attempt(self, text: str) -> Optional[ExtractionCandidate]:
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class PatternStrategy(ExtractionStrategy):
    """Try an ordered list of regexes; the first match is converted by ``build``."""

    patterns: Sequence[str] = ()

    def __init__(self, patterns: Optional[Sequence[str]] = None):
        source = patterns if patterns is not None else self.patterns
        self._compiled: List[Pattern] = [re.compile(p, _FLAGS) for p in source]

    def attempt(self, text: str) -> Optional[ExtractionCandidate]:
        for pattern in self._compiled:
            match = pattern.search(text)
            if not match:
                continue
            candidate = self.build(match)
            if candidate is not None:
                return candidate
        return None

    @abstractmethod
    def build(self, match: re.Match) -> Optional[ExtractionCandidate]:
        ...


class ReferencePriceStrategy(PatternStrategy):
    name = "reference_price"
    category = REFERENCE
    patterns = (
        rf"precio\s+(?:m[aá]ximo\s+)?(?:de\s+)?referencia[^\d€]{{0,60}}?{AMOUNT}",
        rf"referencia\s*:\s*{AMOUNT}",
        rf"reference\s+price[^\d€]{{0,60}}?{AMOUNT}",
    )

    def build(self, match: re.Match) -> Optional[ExtractionCandidate]:
        value = parse_eur(match.group(1))
        if value is None:
            return None
        return ExtractionCandidate(strategy=self.name, reference_price=value)


class RangeStrategy(PatternStrategy):
    name = "explicit_range"
    category = RANGE
    patterns = (
        rf"entre\s+{AMOUNT}\s*(?:y|e|-|–|a)\s*{AMOUNT}",
        rf"m[ií]nimo[^\d€]{{0,40}}?{AMOUNT}.{{0,80}}?m[aá]ximo[^\d€]{{0,40}}?{AMOUNT}",
        rf"rango[^\d€]{{0,60}}?{AMOUNT}{_SEPARATOR}{AMOUNT}",
        rf"{AMOUNT}{_SEPARATOR}{AMOUNT}",
    )

    def build(self, match: re.Match) -> Optional[ExtractionCandidate]:
        low, high = parse_eur(match.group(1)), parse_eur(match.group(2))
        if low is None or high is None:
            return None
        return ExtractionCandidate(strategy=self.name, min_price=low, max_price=high)


class PricePerAreaStrategy(PatternStrategy):
    name = "price_per_area"
    category = PER_AREA
    patterns = (
        rf"(?<![\d.,])({NUMBER})\s*{CURRENCY}{PER_AREA_SUFFIX}",
    )

    def build(self, match: re.Match) -> Optional[ExtractionCandidate]:
        value = parse_eur(match.group(1))
        if value is None:
            return None
        return ExtractionCandidate(strategy=self.name, price_per_area=value)


class AreaStrategy(PatternStrategy):
    """Read the dwelling's floor area, used to derive a total from a per-area price."""

    name = "area"
    category = AREA
    patterns = (
        rf"superficie[^\d€]{{0,40}}?(?<![\d.,])({NUMBER})\s*{AREA_UNIT}",
        rf"(?<![\d.,/])({NUMBER})\s*{AREA_UNIT}\s*(?:construidos|útiles|utiles)",
    )

    def build(self, match: re.Match) -> Optional[ExtractionCandidate]:
        value = parse_eur(match.group(1))
        if value is None:
            return None
        return ExtractionCandidate(strategy=self.name, area=value)


class FallbackScanStrategy(ExtractionStrategy):
    """
    Positional heuristic used only when no explicit phrasing produced a value.

    Collects every currency-marked amount, keeps the plausible ones, sorts
    ascending and returns the first adjacent pair at least ``min_separation``
    apart as (min, max). With no such pair the largest value becomes max.
    """

    name = "fallback_scan"
    category = FALLBACK

    def __init__(self, bounds: PlausibilityBounds, min_separation: float = 10.0):
        self.bounds = bounds
        self.min_separation = min_separation
        self._amount_re = re.compile(AMOUNT, _FLAGS)

    def attempt(self, text: str) -> Optional[ExtractionCandidate]:
        values = []
        for match in self._amount_re.finditer(text):
            value = parse_eur(match.group(1))
            if self.bounds.contains(value):
                values.append(value)
        if not values:
            return None
        values.sort()
        for low, high in zip(values, values[1:]):
            if high - low >= self.min_separation:
                return ExtractionCandidate(strategy=self.name, min_price=low, max_price=high)
        return ExtractionCandidate(strategy=self.name, max_price=values[-1])


def default_strategies(rent_bounds: PlausibilityBounds) -> List[ExtractionStrategy]:
    """Ordered strategy list: explicit phrasing first, positional scan last."""
    return [
        ReferencePriceStrategy(),
        RangeStrategy(),
        PricePerAreaStrategy(),
        AreaStrategy(),
        FallbackScanStrategy(rent_bounds),
    ]
