"""
Structured logging utility for the SERPAVI rent reference scraper.
Every entry logged while a request is served carries that request's trace ID.
"""
import uuid
import logging
import structlog
from contextvars import ContextVar
from typing import Any, Dict, Optional

from serpavi.config import config

# Trace ID of the request being served; empty outside a request
trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Start a new trace for the current request context."""
    new_trace_id = trace_id or uuid.uuid4().hex[:8]
    trace_id_var.set(new_trace_id)
    return new_trace_id


def add_trace_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Processor adding the request trace ID, when one is active."""
    trace_id = trace_id_var.get()
    if trace_id:
        event_dict["trace_id"] = trace_id
    return event_dict


def configure_logging():
    """Configure structlog with appropriate processors."""
    processors = [
        structlog.contextvars.merge_contextvars,
        add_trace_id,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if config.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, config.LOG_LEVEL.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance with the given name."""
    return structlog.get_logger(name)


class LayerLogger:
    """
    Logger for one pipeline step (navigation, search, form filling,
    extraction ...). Every entry is tagged with the layer name, and the
    event names are shared across layers so one request reads as a timeline.
    """

    def __init__(self, layer_name: str):
        self.layer_name = layer_name
        self.logger = get_logger(layer_name).bind(layer=layer_name)

    def log_decision(self, decision: str, reason: str, **extra):
        """A branch taken by this layer and why."""
        self.logger.info("decision_made", decision=decision, reason=reason, **extra)

    def log_action(self, action: str, status: str = "started", **extra):
        """A browser or network action; the status is part of the event name."""
        self.logger.info(f"action_{status}", action=action, **extra)

    def log_fallback(self, from_source: str, to_source: str, reason: str, **extra):
        self.logger.warning("fallback_triggered", from_source=from_source, to_source=to_source, reason=reason, **extra)

    def log_step_skipped(self, step: str, reason: str, **extra):
        """An optional step that failed or found nothing."""
        self.logger.debug("step_skipped", step=step, reason=reason, **extra)

    def log_error(self, error: str, error_type: str = "unknown", **extra):
        self.logger.error("error_occurred", error=error, error_type=error_type, **extra)

    def log_http_probe(self, url: str, status_code: Optional[int], result: str, **extra):
        """Plain HTTP fetch made by the connectivity diagnostic."""
        self.logger.info("http_probe", url=url, status_code=status_code, result=result, **extra)

    def log_extraction(self, method: str, fields_present: list, fields_missing: list, **extra):
        self.logger.info(
            "prices_extracted",
            method=method,
            fields_present=fields_present,
            fields_missing=fields_missing,
            **extra
        )


# Initialize logging on module import
configure_logging()
