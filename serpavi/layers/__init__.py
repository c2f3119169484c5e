"""Layers package initialization."""
from serpavi.layers.consent import ConsentHandler
from serpavi.layers.navigation import NavigationTarget, Navigator, SurfaceKind
from serpavi.layers.search import SearchLayer, SearchOutcome
from serpavi.layers.attributes import AttributeFiller, FillReport
from serpavi.layers.calculation import CalculationTrigger
from serpavi.layers.extraction import ExtractionLayer, ExtractionOutcome
from serpavi.layers.supervisor import EstimateSupervisor, PipelineSettings

__all__ = [
    "ConsentHandler",
    "NavigationTarget",
    "Navigator",
    "SurfaceKind",
    "SearchLayer",
    "SearchOutcome",
    "AttributeFiller",
    "FillReport",
    "CalculationTrigger",
    "ExtractionLayer",
    "ExtractionOutcome",
    "EstimateSupervisor",
    "PipelineSettings",
]
