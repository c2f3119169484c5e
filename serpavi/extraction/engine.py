"""
Extraction engine: turns result-page text into validated price data.

Pipeline per text region:
1. Normalize whitespace
2. Run explicit strategies (reference, range, per-area, area) in order,
   first hit per category wins
3. Sanitize: drop implausible values, swap an inverted min/max
4. Only if nothing explicit survived, run the fallback scan

Regions are then merged (min of mins, max of maxes, first reference and
per-area in region order) and reconciled into a total price.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from serpavi.extraction.numbers import PriceBounds, normalize_text
from serpavi.extraction.strategies import (
    FALLBACK,
    ExtractionCandidate,
    ExtractionStrategy,
    default_strategies,
)

TOTAL_POLICY_REFERENCE = "reference"
TOTAL_POLICY_MIDPOINT = "midpoint"


@dataclass
class PriceEstimate:
    """Reconciled prices for one property."""
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    reference_price: Optional[float] = None
    price_per_area: Optional[float] = None
    total_price: Optional[float] = None
    area: Optional[float] = None


class ExtractionEngine:
    """
    Configurable layered-strategy extraction engine.

    Strategies are plain objects honouring ``ExtractionStrategy.attempt``;
    they can be added or reordered without touching the browser pipeline.
    """

    def __init__(
        self,
        strategies: Optional[Sequence[ExtractionStrategy]] = None,
        bounds: Optional[PriceBounds] = None,
        total_policy: str = TOTAL_POLICY_REFERENCE,
    ):
        self.bounds = bounds or PriceBounds()
        self.strategies = list(strategies) if strategies is not None else default_strategies(self.bounds.rent)
        self.total_policy = total_policy

    def extract(self, text: Optional[str]) -> ExtractionCandidate:
        """Run all strategies over one text region and return the sanitized candidate."""
        normalized = normalize_text(text)
        result = ExtractionCandidate(strategy="")
        if not normalized:
            return result

        explicit = [s for s in self.strategies if s.category != FALLBACK]
        fallback = [s for s in self.strategies if s.category == FALLBACK]

        result = self._run(explicit, normalized, result)
        result = self.sanitize(result)

        if not result.has_prices() and fallback:
            result = self._run(fallback, normalized, result)
            result = self.sanitize(result)
        return result

    def _run(
        self,
        strategies: Iterable[ExtractionStrategy],
        text: str,
        result: ExtractionCandidate,
    ) -> ExtractionCandidate:
        seen = set()
        hits = []
        for strategy in strategies:
            if strategy.category in seen:
                continue
            candidate = strategy.attempt(text)
            if candidate is None:
                continue
            seen.add(strategy.category)
            hits.append(strategy.name)
            result = result.fill_from(candidate)
        if hits:
            names = [result.strategy] if result.strategy else []
            result.strategy = "+".join(names + hits)
        return result

    def sanitize(self, candidate: ExtractionCandidate) -> ExtractionCandidate:
        """Discard values outside their plausibility bounds and order min/max."""
        rent = self.bounds.rent
        low = rent.keep(candidate.min_price)
        high = rent.keep(candidate.max_price)
        if low is not None and high is not None and low > high:
            low, high = high, low
        return ExtractionCandidate(
            strategy=candidate.strategy,
            min_price=low,
            max_price=high,
            reference_price=rent.keep(candidate.reference_price),
            price_per_area=self.bounds.per_area.keep(candidate.price_per_area),
            area=self.bounds.area.keep(candidate.area),
        )

    def merge(self, candidates: Iterable[ExtractionCandidate]) -> ExtractionCandidate:
        """
        Merge per-region candidates given in region priority order.

        min/max take the extreme over all regions; reference, per-area and
        area take the first non-null value.
        """
        merged = ExtractionCandidate(strategy="merged")
        strategies: List[str] = []
        for candidate in candidates:
            if candidate.strategy:
                strategies.append(candidate.strategy)
            if candidate.min_price is not None and (merged.min_price is None or candidate.min_price < merged.min_price):
                merged.min_price = candidate.min_price
            if candidate.max_price is not None and (merged.max_price is None or candidate.max_price > merged.max_price):
                merged.max_price = candidate.max_price
            if merged.reference_price is None:
                merged.reference_price = candidate.reference_price
            if merged.price_per_area is None:
                merged.price_per_area = candidate.price_per_area
            if merged.area is None:
                merged.area = candidate.area
        if strategies:
            merged.strategy = ",".join(dict.fromkeys(strategies))
        return self.sanitize(merged)

    def reconcile(self, candidate: ExtractionCandidate, area: Optional[float] = None) -> PriceEstimate:
        """
        Derive the total price.

        A reference price is authoritative for the total; without one the
        total is max, else min. Under the midpoint policy a complete range
        yields its midpoint instead. With only a per-area price the total is
        per-area times the area (caller-supplied area wins over parsed area).
        """
        candidate = self.sanitize(candidate)
        known_area = area if area is not None else candidate.area
        low, high, ref = candidate.min_price, candidate.max_price, candidate.reference_price

        total = None
        if self.total_policy == TOTAL_POLICY_MIDPOINT and low is not None and high is not None:
            total = round((low + high) / 2, 2)
        elif ref is not None:
            total = ref
        elif high is not None:
            total = high
        elif low is not None:
            total = low
        elif candidate.price_per_area is not None and known_area:
            total = round(candidate.price_per_area * known_area, 2)

        return PriceEstimate(
            min_price=low,
            max_price=high,
            reference_price=ref,
            price_per_area=candidate.price_per_area,
            total_price=total,
            area=known_area,
        )

    def extract_text(self, text: Optional[str], area: Optional[float] = None) -> PriceEstimate:
        """Convenience wrapper: extract, then reconcile a single text."""
        return self.reconcile(self.extract(text), area=area)
