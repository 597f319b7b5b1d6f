"""Intake flow variants.

A flow is an ordered list of wizard steps, the fields shown on each step, and
the step on which the project is actually created.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

from vadis_intake.contracts.project import WorkflowStep


@dataclass(frozen=True)
class FieldRule:
    name: str
    required: bool = False


@dataclass(frozen=True)
class FlowVariant:
    name: str
    steps: tuple[WorkflowStep, ...]
    submit_step: WorkflowStep
    fields: Mapping[WorkflowStep, tuple[FieldRule, ...]] = field(default_factory=dict)
    file_step: WorkflowStep | None = None
    file_required: bool = False

    def __post_init__(self):
        if self.submit_step not in self.steps:
            raise ValueError(f"submit step {self.submit_step} is not part of flow {self.name}")
        if self.file_step is not None and self.file_step not in self.steps:
            raise ValueError(f"file step {self.file_step} is not part of flow {self.name}")

    @property
    def submit_index(self) -> int:
        return self.steps.index(self.submit_step)

    def rules_for(self, step: WorkflowStep) -> tuple[FieldRule, ...]:
        return self.fields.get(step, ())

    def is_required(self, name: str) -> bool:
        return any(
            rule.name == name and rule.required for rules in self.fields.values() for rule in rules
        )


# Three-step script analysis intake: details, PDF upload, then analysis.
SCRIPT_ANALYSIS = FlowVariant(
    name="script_analysis",
    steps=(WorkflowStep.PROJECT_INFO, WorkflowStep.SCRIPT_UPLOAD, WorkflowStep.ANALYSIS),
    submit_step=WorkflowStep.SCRIPT_UPLOAD,
    fields={
        WorkflowStep.PROJECT_INFO: (
            FieldRule("title", required=True),
            FieldRule("logline", required=True),
            FieldRule("budget_range", required=True),
            FieldRule("funding_goal", required=True),
            FieldRule("production_timeline", required=True),
            FieldRule("synopsis"),
            FieldRule("genre"),
            FieldRule("target_genres"),
        ),
    },
    file_step=WorkflowStep.SCRIPT_UPLOAD,
    file_required=True,
)

# Four-step project workflow: only the title is mandatory and the script is optional.
PROJECT_WORKFLOW = FlowVariant(
    name="project_workflow",
    steps=(
        WorkflowStep.PROJECT_INFO,
        WorkflowStep.SCRIPT_UPLOAD,
        WorkflowStep.FEATURE_SELECTION,
        WorkflowStep.FINALIZE_PROJECT,
    ),
    submit_step=WorkflowStep.SCRIPT_UPLOAD,
    fields={
        WorkflowStep.PROJECT_INFO: (
            FieldRule("title", required=True),
            FieldRule("logline"),
            FieldRule("synopsis"),
            FieldRule("genre"),
            FieldRule("budget_range"),
            FieldRule("funding_goal"),
            FieldRule("production_timeline"),
            FieldRule("target_genres"),
        ),
        WorkflowStep.SCRIPT_UPLOAD: (FieldRule("script_content"),),
    },
    file_step=WorkflowStep.SCRIPT_UPLOAD,
    file_required=False,
)

FLOWS: dict[str, FlowVariant] = {flow.name: flow for flow in (SCRIPT_ANALYSIS, PROJECT_WORKFLOW)}


def get_flow(name: str) -> FlowVariant:
    try:
        return FLOWS[name]
    except KeyError:
        raise ValueError(f"Unknown intake flow '{name}'. Valid flows: {', '.join(FLOWS)}") from None
