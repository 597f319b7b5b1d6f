from vadis_intake.intake.controller import IntakeController, IntakePhase, StepOutcome
from vadis_intake.intake.flows import (
    FLOWS,
    PROJECT_WORKFLOW,
    SCRIPT_ANALYSIS,
    FieldRule,
    FlowVariant,
    get_flow,
)

__all__ = [
    "FLOWS",
    "PROJECT_WORKFLOW",
    "SCRIPT_ANALYSIS",
    "FieldRule",
    "FlowVariant",
    "IntakeController",
    "IntakePhase",
    "StepOutcome",
    "get_flow",
]
