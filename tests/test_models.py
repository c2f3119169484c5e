"""Tests for the request model and the response envelopes."""
import pytest
from pydantic import ValidationError

from serpavi.models.request import EstimateRequest, coerce_boolish
from serpavi.models.result import Diagnostics, ErrorKind, EstimateResult, ExtractionMethod, ResultStatus


def test_identifier_kept_as_sent(sample_payload):
    request = EstimateRequest.model_validate(sample_payload)
    assert request.identifier == "9872023VH5797S0001WX"


@pytest.mark.parametrize("identifier", [
    "",
    "123",
    "9872023VH5797S0001W",
    "9872023VH5797S0001WX1",
    "9872023VH5797S0001W-",
    "9872023vh5797s0001wx",
    " 9872023VH5797S0001WX ",
    "9872023VH5797S0001WX\n",
])
def test_bad_identifier_rejected(sample_payload, identifier):
    sample_payload["identifier"] = identifier
    with pytest.raises(ValidationError):
        EstimateRequest.model_validate(sample_payload)


def test_missing_identifier_rejected():
    with pytest.raises(ValidationError):
        EstimateRequest.model_validate({"energyLabel": "A"})


def test_missing_attributes_listed_exactly():
    request = EstimateRequest.model_validate({"identifier": "9872023VH5797S0001WX", "floor": "1"})
    assert request.missing_attributes() == ["energyLabel", "condition"]


def test_blank_required_attribute_counts_as_missing(sample_payload):
    sample_payload["condition"] = "  "
    request = EstimateRequest.model_validate(sample_payload)
    assert request.missing_attributes() == ["condition"]


def test_spanish_aliases():
    request = EstimateRequest.model_validate({
        "rc": "9872023VH5797S0001WX",
        "etiqueta": "c",
        "estado": "reformado",
        "planta": 3,
        "ascensor": "sí",
        "aparcamiento": 0,
        "dormitorios": "2",
        "banos": "1",
        "superficie": "72,5",
    })
    assert request.energy_label == "C"
    assert request.floor == "3"
    assert request.elevator is True
    assert request.parking is False
    assert request.bedrooms == 2
    assert request.bathrooms == 1
    assert request.area == 72.5
    assert request.missing_attributes() == []


def test_omitted_optional_attributes_stay_unknown(sample_payload):
    request = EstimateRequest.model_validate(sample_payload)
    assert request.furnished is None
    assert request.exterior is None
    assert request.debug is False


def test_invalid_energy_label_rejected(sample_payload):
    sample_payload["energyLabel"] = "Z"
    with pytest.raises(ValidationError):
        EstimateRequest.model_validate(sample_payload)


@pytest.mark.parametrize(
    "value,expected",
    [(True, True), (1, True), ("Si", True), ("yes", True), ("no", False), ("0", False), (None, None), ("", None)],
)
def test_coerce_boolish(value, expected):
    assert coerce_boolish(value) is expected


def test_coerce_boolish_rejects_other_words():
    with pytest.raises(ValueError):
        coerce_boolish("quizás")


def test_success_envelope():
    result = EstimateResult(
        status=ResultStatus.OK,
        identifier="9872023VH5797S0001WX",
        minPrice=900,
        maxPrice=1100,
        totalPrice=1100,
        method=ExtractionMethod.ANCHORED,
    )
    body = result.to_response("abc123")
    assert body["ok"] is True
    assert body["status"] == "ok"
    assert body["maxPrice"] == 1100
    assert body["referencePrice"] is None
    assert body["method"] == "anchored"
    assert body["via"] == "playwright"
    assert body["traceId"] == "abc123"


def test_needs_attributes_envelope():
    body = EstimateResult.needs_attributes(["floor"]).to_response()
    assert body["ok"] is True
    assert body["status"] == "needsAttributes"
    assert body["needs"] == ["floor"]
    assert "traceId" not in body


def test_soft_failure_envelope_flattens_diagnostics():
    result = EstimateResult.failure(
        ErrorKind.LAYOUT_CHANGED,
        "no monetary value",
        Diagnostics(currentUrl="https://serpavi.mivau.gob.es/", sample="Sin datos"),
    )
    body = result.to_response()
    assert body["ok"] is False
    assert body["errorKind"] == "layout-changed"
    assert body["currentUrl"] == "https://serpavi.mivau.gob.es/"
    assert body["sample"] == "Sin datos"
    assert "screenshot" not in body
