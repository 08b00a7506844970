"""Top-level package for the map-listing lead discovery pipeline."""

from . import models  # noqa: F401
from .classifier import ProspectClassifier  # noqa: F401
from .config import ConfigurationError, PipelineSettings, load_settings  # noqa: F401
from .control import RunControl  # noqa: F401
from .models import (
    Lead,
    LeadKeys,
    ProspectDecision,
    ProspectReason,
    QualityResult,
    RunSummary,
    ScrapedBusiness,
    SearchTerm,
    WorkerResult,
)
from .orchestrator import DiscoveryOrchestrator  # noqa: F401

__all__ = [
    "ConfigurationError",
    "DiscoveryOrchestrator",
    "Lead",
    "LeadKeys",
    "PipelineSettings",
    "ProspectClassifier",
    "ProspectDecision",
    "ProspectReason",
    "QualityResult",
    "RunControl",
    "RunSummary",
    "ScrapedBusiness",
    "SearchTerm",
    "WorkerResult",
    "load_settings",
    "persistence",
    "quality",
    "scrapers",
    "orchestrator",
]
