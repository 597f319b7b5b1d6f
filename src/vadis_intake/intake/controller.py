"""Multi-step project intake controller.

State machine::

    Editing(step) -> Submitting -> Created(project_id)
                              \\-> Editing(step) with error

The draft only lives in memory until ``submit()`` succeeds; the project id is
assigned by the backend.
"""

from collections.abc import Sequence
from enum import Enum
from typing import Any, Protocol

from pydantic import BaseModel

from vadis_intake.config import MAX_SCRIPT_BYTES, PDF_MIME_TYPE
from vadis_intake.contracts.project import FieldIssue, ProjectCreate, ProjectDTO, WorkflowStep
from vadis_intake.contracts.script import FileRejection, ScriptFile
from vadis_intake.errors import APIError, DraftValidationError, IntakeError
from vadis_intake.intake.flows import SCRIPT_ANALYSIS, FlowVariant
from vadis_intake.intake.validation import (
    DRAFT_FIELDS,
    SCRIPT_FILE_FIELD,
    build_project,
    check_field,
    check_file,
)
from vadis_intake.logging_config import get_logger

logger = get_logger(__name__)


class ProjectCreator(Protocol):
    async def create_project(
        self, draft: ProjectCreate, script_file: ScriptFile | None = None
    ) -> ProjectDTO: ...


class IntakePhase(str, Enum):
    EDITING = "editing"
    SUBMITTING = "submitting"
    CREATED = "created"


class StepOutcome(BaseModel):
    """Result of a step transition attempt."""

    advanced: bool
    step: WorkflowStep
    issues: list[FieldIssue] = []


class IntakeController:
    """Collects a project draft and an optional script file, then creates the project.

    Field values are stored as typed, valid or not; invalid values only block
    step advancement and submission. At most one creation request is in flight
    per controller.
    """

    def __init__(
        self,
        api: ProjectCreator,
        variant: FlowVariant = SCRIPT_ANALYSIS,
        *,
        accepted_script_type: str = PDF_MIME_TYPE,
        max_script_bytes: int = MAX_SCRIPT_BYTES,
    ):
        self._api = api
        self.variant = variant
        self.accepted_script_type = accepted_script_type
        self.max_script_bytes = max_script_bytes

        self._draft: dict[str, Any] = {}
        self._issues: dict[str, FieldIssue] = {}
        self._file: ScriptFile | None = None
        self._step_index = 0
        self._phase = IntakePhase.EDITING

        self.project: ProjectDTO | None = None
        self.error: IntakeError | None = None

    # === State ===

    @property
    def phase(self) -> IntakePhase:
        return self._phase

    @property
    def step(self) -> WorkflowStep:
        return self.variant.steps[self._step_index]

    @property
    def draft(self) -> dict[str, Any]:
        return dict(self._draft)

    @property
    def issues(self) -> list[FieldIssue]:
        return list(self._issues.values())

    @property
    def file(self) -> ScriptFile | None:
        return self._file

    @property
    def project_id(self):
        return self.project.id if self.project else None

    # === Editing ===

    def set_field(self, name: str, value: Any) -> FieldIssue | None:
        """Store a draft value and flag it if invalid.

        Raises:
            ValueError: If ``name`` is not a project draft field.
        """
        if name not in DRAFT_FIELDS:
            raise ValueError(f"Unknown project field '{name}'")

        self._draft[name] = value
        issue = check_field(name, value, required=self.variant.is_required(name))
        if issue:
            self._issues[name] = issue
        else:
            self._issues.pop(name, None)
        return issue

    def select_file(self, file: ScriptFile) -> FileRejection | None:
        """Hold ``file`` for submission, unless its type or size is rejected.

        A rejected file leaves the previously selected one in place.
        """
        rejection = check_file(file, self.accepted_script_type, self.max_script_bytes)
        if rejection:
            logger.info(
                "script_file_rejected",
                filename=file.filename,
                size=file.size,
                mime_type=file.mime_type,
                reason=rejection.value,
            )
            return rejection

        self._file = file
        self._issues.pop(SCRIPT_FILE_FIELD, None)
        logger.debug("script_file_selected", filename=file.filename, size=file.size)
        return None

    def select_files(self, files: Sequence[ScriptFile]) -> FileRejection | None:
        if len(files) != 1:
            return FileRejection.NOT_SINGLE
        return self.select_file(files[0])

    def clear_file(self) -> None:
        """Drop the selected file ("change file")."""
        self._file = None

    def discard(self) -> None:
        """Release the file handle and any unsaved draft (view closed)."""
        self._file = None
        if self._phase is not IntakePhase.CREATED:
            self._draft.clear()
            self._issues.clear()
            self._step_index = 0
        self.error = None

    # === Navigation ===

    def _step_issues(self, step: WorkflowStep) -> list[FieldIssue]:
        issues = []
        for rule in self.variant.rules_for(step):
            issue = check_field(rule.name, self._draft.get(rule.name), required=rule.required)
            if issue:
                issues.append(issue)
        if step is self.variant.file_step and self.variant.file_required and self._file is None:
            issues.append(FieldIssue(field=SCRIPT_FILE_FIELD, reason="script file required"))
        return issues

    def advance_step(self) -> StepOutcome:
        """Move to the next step if the current one validates; otherwise change nothing."""
        if self._phase is IntakePhase.SUBMITTING:
            return StepOutcome(
                advanced=False,
                step=self.step,
                issues=[FieldIssue(field="step", reason="project creation in progress")],
            )
        if self._step_index >= len(self.variant.steps) - 1:
            return StepOutcome(
                advanced=False,
                step=self.step,
                issues=[FieldIssue(field="step", reason="already on the last step")],
            )
        if self._phase is IntakePhase.EDITING and self._step_index >= self.variant.submit_index:
            return StepOutcome(
                advanced=False,
                step=self.step,
                issues=[FieldIssue(field="step", reason="project must be submitted first")],
            )

        issues = self._step_issues(self.step)
        if issues:
            for issue in issues:
                self._issues[issue.field] = issue
            return StepOutcome(advanced=False, step=self.step, issues=issues)

        self._step_index += 1
        return StepOutcome(advanced=True, step=self.step)

    def go_back(self) -> StepOutcome:
        """Return to the previous step without validation. Entered data is kept.

        Steps up to the submit step are closed once the project exists.
        """
        floor = self.variant.submit_index + 1 if self._phase is IntakePhase.CREATED else 0
        if self._phase is IntakePhase.SUBMITTING or self._step_index <= floor:
            return StepOutcome(advanced=False, step=self.step)
        self._step_index -= 1
        return StepOutcome(advanced=True, step=self.step)

    # === Submission ===

    def _submission_issues(self) -> list[FieldIssue]:
        issues: list[FieldIssue] = []
        for step in self.variant.steps[: self.variant.submit_index + 1]:
            issues.extend(self._step_issues(step))
        return issues

    async def submit(self) -> ProjectDTO | None:
        """Create the project from the current draft and file.

        Returns the created project, or None when nothing was created. The
        reason is available in ``self.error``. Calls made while a submission
        is in flight are ignored.
        """
        if self._phase is IntakePhase.CREATED:
            return self.project
        if self._phase is IntakePhase.SUBMITTING:
            logger.debug("project_submit_ignored", reason="submission_in_flight")
            return None

        if self.step is not self.variant.submit_step:
            reason = f"submit is only allowed on {self.variant.submit_step.value}"
            self.error = DraftValidationError([FieldIssue(field="step", reason=reason)])
            return None

        issues = self._submission_issues()
        draft: ProjectCreate | None = None
        if not issues:
            draft, issues = build_project({**self._draft, "project_type": self.variant.name})
        if issues or draft is None:
            for issue in issues:
                self._issues[issue.field] = issue
            self.error = DraftValidationError(issues)
            logger.info("project_submit_blocked", issues=[i.reason for i in issues])
            return None

        script_file = self._file
        self._phase = IntakePhase.SUBMITTING
        self.error = None
        try:
            project = await self._api.create_project(draft, script_file)
        except APIError as e:
            self.error = e
            logger.warning(
                "project_creation_failed",
                title=draft.title,
                status_code=e.status_code,
                error=e.message,
            )
            return None
        else:
            self.project = project
            self._file = None
            self._phase = IntakePhase.CREATED
            self._step_index = min(self._step_index + 1, len(self.variant.steps) - 1)
            logger.info("project_intake_completed", project_id=project.id, step=self.step.value)
            return project
        finally:
            if self._phase is IntakePhase.SUBMITTING:
                self._phase = IntakePhase.EDITING
