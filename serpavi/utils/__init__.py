"""Utils package initialization."""
from serpavi.utils.logger import get_logger, LayerLogger, set_trace_id
from serpavi.utils.cancellation import CancellationToken

__all__ = ["get_logger", "LayerLogger", "set_trace_id", "CancellationToken"]
