"""Field and file validation for project drafts.

Field constraints live on ``ProjectCreate``; this module only decides which
errors belong to which field and turns them into ``FieldIssue`` values.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from vadis_intake.contracts.project import FieldIssue, ProjectCreate
from vadis_intake.contracts.script import FileRejection, ScriptFile

# Fields a draft may hold; project_type is fixed by the flow.
DRAFT_FIELDS: tuple[str, ...] = tuple(
    name for name in ProjectCreate.model_fields if name != "project_type"
)

SCRIPT_FILE_FIELD = "script_file"

# Placeholder title so single-field checks don't report a missing title.
_PLACEHOLDER_TITLE = "untitled"


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    return False


def clean_draft(draft: Mapping[str, Any]) -> dict[str, Any]:
    """Drop blank values so optional fields left empty are simply absent."""
    return {name: value for name, value in draft.items() if not is_blank(value)}


def _issues_from(error: ValidationError, only: Iterable[str] | None = None) -> list[FieldIssue]:
    wanted = set(only) if only is not None else None
    issues: list[FieldIssue] = []
    seen: set[str] = set()
    for err in error.errors():
        loc = err["loc"][0] if err["loc"] else "draft"
        name = next((f for f in DRAFT_FIELDS if loc in (f, to_camel(f))), str(loc))
        if wanted is not None and name not in wanted:
            continue
        if name in seen:
            continue
        seen.add(name)
        issues.append(FieldIssue(field=name, reason=f"{name}: {err['msg']}"))
    return issues


def check_field(name: str, value: Any, required: bool = False) -> FieldIssue | None:
    """Validate a single draft value.

    Blank values are only a problem when the field is required.
    """
    if name not in DRAFT_FIELDS:
        raise ValueError(f"Unknown project field '{name}'")

    if is_blank(value):
        if required:
            return FieldIssue(field=name, reason=f"{name} required")
        return None

    data = {name: value}
    if name != "title":
        data["title"] = _PLACEHOLDER_TITLE
    try:
        ProjectCreate.model_validate(data)
    except ValidationError as e:
        issues = _issues_from(e, only=[name])
        return issues[0] if issues else None
    return None


def build_project(draft: Mapping[str, Any]) -> tuple[ProjectCreate | None, list[FieldIssue]]:
    """Validate a whole draft, returning the request model or the issues."""
    try:
        return ProjectCreate.model_validate(clean_draft(draft)), []
    except ValidationError as e:
        return None, _issues_from(e)


def check_file(file: ScriptFile, accepted_type: str, max_bytes: int) -> FileRejection | None:
    if file.mime_type.lower() != accepted_type.lower():
        return FileRejection.INVALID_TYPE
    if file.size > max_bytes:
        return FileRejection.TOO_LARGE
    return None
