"""
SERPAVI Rent Reference Scraper - FastAPI Application
Main entry point with REST API endpoints.
"""
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from serpavi.adapters.connectivity import ConnectivityProbe
from serpavi.config import config
from serpavi.layers.supervisor import EstimateSupervisor, PipelineSettings
from serpavi.models.request import EstimateRequest
from serpavi.models.result import ErrorKind
from serpavi.utils.logger import get_logger, set_trace_id


# Initialize FastAPI app
app = FastAPI(
    title="SERPAVI Rent Reference Scraper",
    description="Reads the official SERPAVI rent reference range for a cadastral reference",
    version="1.0.0",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

logger = get_logger("main")

for problem in config.get_config_problems():
    logger.warning("config_problem", problem=problem)

USAGE = """SERPAVI rent reference scraper
POST /  {identifier, energyLabel, condition, floor, elevator?, parking?, furnished?,
         concierge?, specialViews?, amenities?, communalAreas?, exterior?,
         bedrooms?, bathrooms?, area?, debug?}
-> {ok:true, status:"ok", minPrice, maxPrice, referencePrice, pricePerArea, totalPrice}
GET /health  GET /diag
"""


def build_supervisor(debug: bool = False) -> EstimateSupervisor:
    """Build a supervisor with a request-scoped settings snapshot."""
    return EstimateSupervisor(PipelineSettings.from_config(config, debug=debug))


def _validation_message(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        field = ".".join(str(p) for p in item.get("loc", ())) or "body"
        message = str(item.get("msg", "invalid value"))
        parts.append(f"{field}: {message.removeprefix('Value error, ')}")
    return "; ".join(parts)


def _error(status_code: int, message: str, trace_id: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message, "traceId": trace_id})


# API Routes
@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}


@app.get("/diag")
async def connectivity_diagnostic():
    """
    Plain HTTP fetch of the calculator and its landing page.
    Never launches a browser.
    """
    trace_id = set_trace_id()
    probe = ConnectivityProbe(timeout=config.DIAG_TIMEOUT, user_agent=config.BROWSER_USER_AGENT)
    try:
        report = await probe.probe({"serpavi": config.TARGET_URL, "info": config.LANDING_URL})
    except httpx.HTTPError as e:
        logger.error("diag_error", error=str(e))
        return _error(500, str(e) or type(e).__name__, trace_id)
    return {"ok": True, **report}


@app.get("/", response_class=PlainTextResponse)
async def usage():
    """Short usage banner."""
    return USAGE


@app.post("/")
async def estimate(request: Request):
    """
    Estimate the reference rent for one property.

    Responses:
    - 200 ok / needsAttributes / soft failure (ok=false with errorKind)
    - 400 malformed body or identifier
    - 504 global deadline exceeded
    - 500 unexpected fault
    """
    trace_id = set_trace_id()

    try:
        payload = await request.json()
    except ValueError:
        return _error(400, "request body must be valid JSON", trace_id)
    if not isinstance(payload, dict):
        return _error(400, "request body must be a JSON object", trace_id)

    try:
        estimate_request = EstimateRequest.model_validate(payload)
    except ValidationError as e:
        message = _validation_message(e)
        logger.info("estimate_rejected", reason=message)
        return _error(400, message, trace_id)

    logger.info(
        "estimate_request",
        identifier=estimate_request.identifier,
        missing=estimate_request.missing_attributes(),
        debug=estimate_request.debug,
    )

    try:
        supervisor = build_supervisor(debug=estimate_request.debug)
        result = await supervisor.run(estimate_request)
    except Exception as e:
        logger.error("estimate_error", error=str(e), error_type=type(e).__name__)
        return _error(500, str(e) or type(e).__name__, trace_id)

    status_code = 504 if result.errorKind == ErrorKind.TIMEOUT else 200
    return JSONResponse(status_code=status_code, content=result.to_response(trace_id))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
