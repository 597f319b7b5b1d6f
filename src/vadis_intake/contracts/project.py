from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

LOGLINE_MIN_LENGTH = 10
SYNOPSIS_MIN_LENGTH = 50
MIN_FUNDING_GOAL = 1000

ProjectId = int | str


def coerce_project_id(value: str) -> ProjectId:
    """Numeric ids are sent as numbers, anything else as-is."""
    value = value.strip()
    if not value:
        raise ValueError("project id must not be empty")
    return int(value) if value.isdigit() else value


class ProjectStatus(str, Enum):
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    PUBLISHED = "published"


class WorkflowStep(str, Enum):
    """Named steps of the intake wizards."""

    PROJECT_INFO = "project_info"
    SCRIPT_UPLOAD = "script_upload"
    FEATURE_SELECTION = "feature_selection"
    ANALYSIS = "analysis"
    FINALIZE_PROJECT = "finalize_project"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProjectCreate(_CamelModel):
    """Create project request.

    Only ``title`` is mandatory here; which other fields are required depends
    on the intake flow and is enforced by the controller.
    """

    title: str = Field(..., min_length=1, max_length=200)
    logline: str | None = Field(default=None, min_length=LOGLINE_MIN_LENGTH)
    synopsis: str | None = Field(default=None, min_length=SYNOPSIS_MIN_LENGTH)
    genre: str | None = None
    budget_range: str | None = None
    funding_goal: int | None = Field(default=None, ge=MIN_FUNDING_GOAL)
    production_timeline: str | None = None
    target_genres: set[str] = Field(default_factory=set)
    script_content: str | None = None
    project_type: str = "script_analysis"

    @field_validator("title", "logline", "synopsis", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("target_genres")
    @classmethod
    def validate_genres(cls, v: set[str]) -> set[str]:
        cleaned = {genre.strip() for genre in v}
        if "" in cleaned:
            raise ValueError("genre names must not be empty")
        return cleaned

    @field_serializer("target_genres")
    def serialize_genres(self, v: set[str]) -> list[str]:
        return sorted(v)


class ProjectUpdate(_CamelModel):
    """Partial project update (profile, tier or status changes)."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    logline: str | None = Field(default=None, min_length=LOGLINE_MIN_LENGTH)
    synopsis: str | None = Field(default=None, min_length=SYNOPSIS_MIN_LENGTH)
    genre: str | None = None
    budget_range: str | None = None
    funding_goal: int | None = Field(default=None, ge=MIN_FUNDING_GOAL)
    production_timeline: str | None = None
    target_genres: list[str] | None = None
    status: ProjectStatus | None = None
    tier: str | None = None
    is_published: bool | None = None


class ProjectDTO(_CamelModel):
    """Project response."""

    id: ProjectId
    title: str
    logline: str | None = None
    synopsis: str | None = None
    genre: str | None = None
    budget_range: str | None = None
    funding_goal: int | None = None
    production_timeline: str | None = None
    target_genres: list[str] | None = None
    status: ProjectStatus = ProjectStatus.DRAFT
    workflow_status: str | None = None
    is_published: bool = False
    script_file_name: str | None = None
    created_at: datetime | None = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: ProjectId) -> ProjectId:
        if isinstance(v, str) and not v.strip():
            raise ValueError("project id must not be empty")
        return v


class FieldIssue(BaseModel):
    """A single client-side validation problem, tied to the field it concerns."""

    field: str
    reason: str
