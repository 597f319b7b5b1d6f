"""Project intake and script analysis client for the production backend."""

from vadis_intake.analysis import AnalysisAggregator, AnalysisWatcher, MergePolicy
from vadis_intake.clients import ProductionAPIClient
from vadis_intake.config import Settings, get_settings
from vadis_intake.intake import IntakeController
from vadis_intake.repository import ProjectRepository
from vadis_intake.workflow import ProductionWorkflow

__version__ = "0.1.0"

__all__ = [
    "AnalysisAggregator",
    "AnalysisWatcher",
    "IntakeController",
    "MergePolicy",
    "ProductionAPIClient",
    "ProductionWorkflow",
    "ProjectRepository",
    "Settings",
    "get_settings",
]
