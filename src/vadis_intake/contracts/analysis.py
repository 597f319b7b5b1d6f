from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from vadis_intake.contracts.project import ProjectId


class FeatureKey(str, Enum):
    """The eight independent script analysis features."""

    SCENE_EXTRACTION = "scene_extraction"
    CHARACTER_ANALYSIS = "character_analysis"
    CASTING_SUGGESTIONS = "casting_suggestions"
    LOCATION_ANALYSIS = "location_analysis"
    VFX_ANALYSIS = "vfx_analysis"
    PRODUCT_PLACEMENT = "product_placement"
    FINANCIAL_PLANNING = "financial_planning"
    PROJECT_SUMMARY = "project_summary"


ALL_FEATURES: tuple[FeatureKey, ...] = tuple(FeatureKey)


class FeatureState(str, Enum):
    """Lifecycle of one feature within the current run."""

    NOT_RUN = "not_run"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FeatureStatus(str, Enum):
    """Status shown next to each feature."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({FeatureState.SUCCEEDED, FeatureState.FAILED})


class AnalysisResultSet(BaseModel):
    """Merged outcome of an analysis run for one project.

    ``results`` only holds features that completed with a non-null payload;
    ``errors`` holds the failure message of every feature that failed.
    """

    project_id: ProjectId
    requested: list[FeatureKey] = Field(default_factory=list)
    results: dict[FeatureKey, Any] = Field(default_factory=dict)
    errors: dict[FeatureKey, str] = Field(default_factory=dict)

    @property
    def completed(self) -> list[FeatureKey]:
        return [key for key in ALL_FEATURES if self.results.get(key) is not None]

    @property
    def failed(self) -> list[FeatureKey]:
        return [key for key in ALL_FEATURES if key in self.errors]


class FeatureReportEntry(BaseModel):
    status: FeatureStatus
    result: Any = None
    error: str | None = None


class AnalysisReport(BaseModel):
    """Exportable analysis report for a project."""

    project_id: ProjectId
    project: str
    date: datetime
    completion: int
    features: dict[FeatureKey, FeatureReportEntry]
