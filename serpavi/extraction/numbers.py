"""
Locale-aware number parsing and plausibility bounds for Spanish price text.
"""
import math
import re
from dataclasses import dataclass
from typing import Optional

# "1.234,56" / "950" / "12,5"; thousands with dots, decimals with a comma.
NUMBER = r"\d{1,3}(?:\.\d{3})+(?:,\d{1,2})?|\d+(?:,\d{1,2})?"
CURRENCY = r"(?:€|euros?\b|eur\b)"
AREA_UNIT = r"(?:m2|m²|metros?\s+cuadrados?)(?!\d)"
PER_AREA_SUFFIX = r"\s*(?:/|por)\s*(?:m2|m²|metro\s+cuadrado)"

# A currency-marked amount that is not a per-area price. One capture group.
AMOUNT = rf"(?<![\d.,])({NUMBER})\s*{CURRENCY}(?!{PER_AREA_SUFFIX})"

_WHITESPACE_RE = re.compile(r"\s+")
_STRIP_RE = re.compile(r"\s|€|eur(?:os?)?", re.IGNORECASE)


def normalize_text(text: Optional[str]) -> str:
    """Collapse whitespace runs (including NBSP and newlines) to single spaces."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", str(text)).strip()


def parse_eur(text: Optional[str]) -> Optional[float]:
    """
    Parse a Spanish-formatted amount into a float.

    Thousands dots are removed and the decimal comma becomes a point:
    "1.234,56" -> 1234.56, "950" -> 950.0. Returns None for empty,
    malformed or non-finite input.
    """
    if text is None:
        return None
    cleaned = _STRIP_RE.sub("", str(text))
    if not cleaned:
        return None
    cleaned = cleaned.replace(".", "").replace(",", ".")
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


@dataclass(frozen=True)
class PlausibilityBounds:
    """Inclusive numeric range a parsed value must fall in to be kept."""
    low: float
    high: float

    def contains(self, value: Optional[float]) -> bool:
        return value is not None and self.low <= value <= self.high

    def keep(self, value: Optional[float]) -> Optional[float]:
        """Return the value if plausible, else None."""
        return value if self.contains(value) else None


@dataclass(frozen=True)
class PriceBounds:
    """Bounds for monthly rents, per-area prices and floor areas."""
    rent: PlausibilityBounds = PlausibilityBounds(100, 20000)
    per_area: PlausibilityBounds = PlausibilityBounds(1, 200)
    area: PlausibilityBounds = PlausibilityBounds(10, 2000)

    @classmethod
    def from_config(cls, cfg) -> "PriceBounds":
        return cls(
            rent=PlausibilityBounds(cfg.RENT_MIN, cfg.RENT_MAX),
            per_area=PlausibilityBounds(cfg.PER_AREA_MIN, cfg.PER_AREA_MAX),
            area=PlausibilityBounds(cfg.AREA_MIN, cfg.AREA_MAX),
        )
