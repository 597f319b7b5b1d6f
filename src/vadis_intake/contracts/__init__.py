from vadis_intake.contracts.analysis import (
    ALL_FEATURES,
    AnalysisReport,
    AnalysisResultSet,
    FeatureKey,
    FeatureReportEntry,
    FeatureState,
    FeatureStatus,
)
from vadis_intake.contracts.project import (
    FieldIssue,
    ProjectCreate,
    ProjectDTO,
    ProjectId,
    ProjectStatus,
    ProjectUpdate,
    WorkflowStep,
)
from vadis_intake.contracts.script import FileRejection, ScriptFile

__all__ = [
    "ALL_FEATURES",
    "AnalysisReport",
    "AnalysisResultSet",
    "FeatureKey",
    "FeatureReportEntry",
    "FeatureState",
    "FeatureStatus",
    "FieldIssue",
    "FileRejection",
    "ProjectCreate",
    "ProjectDTO",
    "ProjectId",
    "ProjectStatus",
    "ProjectUpdate",
    "ScriptFile",
    "WorkflowStep",
]
