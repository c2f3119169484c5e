"""
Request model for the rent reference estimate endpoint.

Accepts the camelCase keys of the public API as well as the Spanish keys
used by earlier clients (rc, etiqueta, estado, planta, ...).
"""
import re
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

IDENTIFIER_PATTERN = re.compile(r"^[A-Z0-9]{20}$")
ENERGY_LABELS = ("A", "B", "C", "D", "E", "F", "G")

# Public names of the attributes the calculator cannot price without.
REQUIRED_ATTRIBUTES = ("energyLabel", "condition", "floor")

_TRUE_WORDS = {"1", "true", "si", "sí", "yes", "y", "s"}
_FALSE_WORDS = {"0", "false", "no", "n"}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def coerce_boolish(value: Any) -> Optional[bool]:
    """Interpret JSON booleans, numbers and yes/no words; None stays unknown."""
    if _blank(value):
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    word = str(value).strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"not a yes/no value: {value!r}")


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class EstimateRequest(BaseModel):
    """Inbound estimate request. Only the identifier is validated strictly here."""

    identifier: str = Field(validation_alias=_alias("identifier", "rc"))

    # Required by the calculator, but checked separately so a missing one
    # produces a needsAttributes answer instead of a validation error.
    energy_label: Optional[str] = Field(default=None, validation_alias=_alias("energy_label", "energyLabel", "etiqueta"))
    condition: Optional[str] = Field(default=None, validation_alias=_alias("condition", "estado"))
    floor: Optional[str] = Field(default=None, validation_alias=_alias("floor", "planta"))

    # Optional yes/no attributes
    elevator: Optional[bool] = Field(default=None, validation_alias=_alias("elevator", "ascensor"))
    parking: Optional[bool] = Field(default=None, validation_alias=_alias("parking", "aparcamiento"))
    furnished: Optional[bool] = Field(default=None, validation_alias=_alias("furnished", "amueblado"))
    concierge: Optional[bool] = Field(default=None, validation_alias=_alias("concierge", "conserje", "portero"))
    special_views: Optional[bool] = Field(default=None, validation_alias=_alias("special_views", "specialViews", "vistas"))
    amenities: Optional[bool] = Field(default=None, validation_alias=_alias("amenities", "equipamientos"))
    communal_areas: Optional[bool] = Field(default=None, validation_alias=_alias("communal_areas", "communalAreas", "zonasComunes"))
    exterior: Optional[bool] = Field(default=None, validation_alias=_alias("exterior"))

    # Optional numeric attributes
    bedrooms: Optional[int] = Field(default=None, ge=0, le=50, validation_alias=_alias("bedrooms", "dormitorios"))
    bathrooms: Optional[int] = Field(default=None, ge=0, le=50, validation_alias=_alias("bathrooms", "banos", "baños"))
    area: Optional[float] = Field(default=None, gt=0, validation_alias=_alias("area", "superficie"))

    debug: bool = False

    @field_validator("identifier", mode="before")
    @classmethod
    def _check_identifier(cls, value: Any) -> str:
        text = "" if value is None else str(value)
        if not IDENTIFIER_PATTERN.fullmatch(text):
            raise ValueError("identifier must be a 20-character alphanumeric cadastral reference")
        return text

    @field_validator("energy_label", mode="before")
    @classmethod
    def _check_energy_label(cls, value: Any) -> Optional[str]:
        if _blank(value):
            return None
        label = str(value).strip().upper()
        if label not in ENERGY_LABELS:
            raise ValueError("energyLabel must be one of A-G")
        return label

    @field_validator("condition", "floor", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Optional[str]:
        if _blank(value):
            return None
        return str(value).strip()

    @field_validator(
        "elevator", "parking", "furnished", "concierge", "special_views",
        "amenities", "communal_areas", "exterior",
        mode="before",
    )
    @classmethod
    def _check_boolish(cls, value: Any) -> Optional[bool]:
        return coerce_boolish(value)

    @field_validator("debug", mode="before")
    @classmethod
    def _check_debug(cls, value: Any) -> bool:
        return bool(coerce_boolish(value))

    @field_validator("bedrooms", "bathrooms", "area", mode="before")
    @classmethod
    def _blank_numbers(cls, value: Any) -> Any:
        if _blank(value):
            return None
        if isinstance(value, str):
            return value.strip().replace(",", ".")
        return value

    def missing_attributes(self) -> List[str]:
        """Return the public names of required attributes that were not supplied."""
        values = {
            "energyLabel": self.energy_label,
            "condition": self.condition,
            "floor": self.floor,
        }
        return [name for name in REQUIRED_ATTRIBUTES if values[name] is None]
