"""
Result models for the rent reference estimate endpoint.
Field names mirror the JSON envelope returned to callers.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ResultStatus(str, Enum):
    """Outcome of one estimate request."""
    OK = "ok"
    NEEDS_ATTRIBUTES = "needsAttributes"
    FAILED = "failed"


class ErrorKind(str, Enum):
    """Soft-failure classification reported to callers."""
    UNREACHABLE = "unreachable"
    SEARCH_INPUT_NOT_FOUND = "search-input-not-found"
    LAYOUT_CHANGED = "layout-changed"
    TIMEOUT = "timeout"


class ExtractionMethod(str, Enum):
    """Which text the prices were read from."""
    ANCHORED = "anchored"  # keyword-anchored page regions
    FULL_TEXT = "full-text"  # whole visible body


class Diagnostics(BaseModel):
    """Best-effort context attached to soft failures."""
    currentUrl: Optional[str] = None
    frameUrl: Optional[str] = None
    sample: Optional[str] = None
    html: Optional[str] = None  # debug mode only
    screenshot: Optional[str] = None  # debug mode only, base64 JPEG


class EstimateResult(BaseModel):
    """
    Outcome of the estimate pipeline.

    ``status`` decides which fields are meaningful:
    - ok: prices, identifier, method
    - needsAttributes: needs
    - failed: errorKind, error, diagnostics
    """
    status: ResultStatus

    identifier: Optional[str] = None
    minPrice: Optional[float] = None
    maxPrice: Optional[float] = None
    referencePrice: Optional[float] = None
    pricePerArea: Optional[float] = None
    totalPrice: Optional[float] = None
    area: Optional[float] = None
    method: Optional[ExtractionMethod] = None
    via: str = "playwright"

    needs: List[str] = Field(default_factory=list)

    errorKind: Optional[ErrorKind] = None
    error: Optional[str] = None
    diagnostics: Optional[Diagnostics] = None

    @property
    def ok(self) -> bool:
        return self.status != ResultStatus.FAILED

    @classmethod
    def needs_attributes(cls, missing: List[str]) -> "EstimateResult":
        return cls(status=ResultStatus.NEEDS_ATTRIBUTES, needs=list(missing))

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        error: str,
        diagnostics: Optional[Diagnostics] = None,
    ) -> "EstimateResult":
        return cls(status=ResultStatus.FAILED, errorKind=kind, error=error, diagnostics=diagnostics)

    def to_response(self, trace_id: Optional[str] = None) -> Dict[str, Any]:
        """Build the flat JSON envelope for this result."""
        body: Dict[str, Any] = {"ok": self.ok, "status": self.status.value}

        if self.status == ResultStatus.OK:
            body.update(
                minPrice=self.minPrice,
                maxPrice=self.maxPrice,
                referencePrice=self.referencePrice,
                pricePerArea=self.pricePerArea,
                totalPrice=self.totalPrice,
                area=self.area,
                identifier=self.identifier,
                via=self.via,
                method=self.method.value if self.method else None,
            )
        elif self.status == ResultStatus.NEEDS_ATTRIBUTES:
            body.update(
                needs=self.needs,
                hint="Missing attributes required to complete the SERPAVI calculation",
            )
        else:
            body.update(errorKind=self.errorKind.value if self.errorKind else None, error=self.error)
            if self.diagnostics:
                body.update(self.diagnostics.model_dump(exclude_none=True))

        if trace_id:
            body["traceId"] = trace_id
        return body
