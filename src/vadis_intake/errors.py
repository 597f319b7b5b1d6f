"""Error taxonomy for the intake client.

Per-feature analysis failures are not exceptions: the aggregator records them
as data (see ``vadis_intake.analysis.aggregator``).
"""

from typing import Any

from vadis_intake.contracts.project import FieldIssue

GENERIC_API_ERROR = "Request failed. Please try again."


class IntakeError(Exception):
    """Base class for all intake client errors."""

    pass


class APIError(IntakeError):
    """Raised when a backend call fails at the transport or HTTP level.

    ``message`` is the server-provided text when there is one, so callers can
    surface it verbatim.
    """

    def __init__(
        self,
        message: str | None,
        status_code: int | None = None,
        payload: Any = None,
    ):
        self.message = message or GENERIC_API_ERROR
        self.status_code = status_code
        self.payload = payload
        super().__init__(self.message)


class DraftValidationError(IntakeError):
    """Raised for client-local validation failures. Never reaches the network."""

    def __init__(self, issues: list[FieldIssue]):
        self.issues = list(issues)
        summary = "; ".join(issue.reason for issue in self.issues) or "invalid draft"
        super().__init__(summary)


class AnalysisRunError(IntakeError):
    """Raised when an analysis run cannot start at all.

    Distinct from per-feature failures, which never escape a run.
    """

    pass


class WatchStoppedError(IntakeError):
    """Raised to waiters when a watcher is stopped before every feature is present."""

    pass
