"""Fan-out of the analysis features with per-feature failure isolation.

Every feature request runs in its own coroutine. A failure is recorded for
that feature only; ``run_all`` / ``run_selected`` return once every request
has settled and never raise because of a single feature.

Re-run policy:
    MERGE    re-running a subset clears only the features being re-run and
             keeps earlier results for the others (default).
    REPLACE  every run starts from an empty result set.
Switching to another project always starts from an empty result set.
"""

import asyncio
from collections.abc import Iterable
import contextlib
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol

import structlog

from vadis_intake.contracts.analysis import (
    ALL_FEATURES,
    TERMINAL_STATES,
    AnalysisReport,
    AnalysisResultSet,
    FeatureKey,
    FeatureReportEntry,
    FeatureState,
    FeatureStatus,
)
from vadis_intake.contracts.project import ProjectId
from vadis_intake.errors import APIError, AnalysisRunError
from vadis_intake.logging_config import get_logger

logger = get_logger(__name__)


class FeatureRunner(Protocol):
    async def run_feature(self, project_id: ProjectId, feature: FeatureKey) -> Any: ...

    async def start_analysis(
        self, project_id: ProjectId, features: list[FeatureKey]
    ) -> str | None: ...


class MergePolicy(str, Enum):
    MERGE = "merge"
    REPLACE = "replace"


def _valid_project_id(project_id: Any) -> bool:
    if project_id is None or isinstance(project_id, bool):
        return False
    if isinstance(project_id, str):
        return bool(project_id.strip())
    return isinstance(project_id, int)


class AnalysisAggregator:
    """Runs analysis features for one project and tracks each feature's state."""

    def __init__(
        self,
        api: FeatureRunner,
        *,
        policy: MergePolicy | str = MergePolicy.MERGE,
        max_concurrency: int | None = None,
        feature_timeout: float | None = 300.0,
        notify_start: bool = False,
    ):
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._api = api
        self.policy = MergePolicy(policy)
        self.max_concurrency = max_concurrency
        self.feature_timeout = feature_timeout
        self.notify_start = notify_start

        self._project_id: ProjectId | None = None
        self._states: dict[FeatureKey, FeatureState] = dict.fromkeys(
            ALL_FEATURES, FeatureState.NOT_RUN
        )
        self._results: dict[FeatureKey, Any] = {}
        self._errors: dict[FeatureKey, str] = {}
        self._requested: tuple[FeatureKey, ...] = ()
        self._running = False

    # === Read side ===

    @property
    def project_id(self) -> ProjectId | None:
        return self._project_id

    @property
    def running(self) -> bool:
        return self._running

    @property
    def requested(self) -> tuple[FeatureKey, ...]:
        return self._requested

    @property
    def results(self) -> dict[FeatureKey, Any]:
        return dict(self._results)

    @property
    def errors(self) -> dict[FeatureKey, str]:
        return dict(self._errors)

    def feature_state(self, feature: FeatureKey) -> FeatureState:
        return self._states[FeatureKey(feature)]

    def feature_status(self, feature: FeatureKey) -> FeatureStatus:
        """Status of a feature: completed if a result is present, else derived from its state."""
        feature = FeatureKey(feature)
        if self._results.get(feature) is not None:
            return FeatureStatus.COMPLETED
        state = self._states[feature]
        if state is FeatureState.IN_FLIGHT:
            return FeatureStatus.PROCESSING
        if state is FeatureState.FAILED:
            return FeatureStatus.FAILED
        return FeatureStatus.PENDING

    def completion_percentage(self) -> int:
        """Share of the requested features that reached a terminal state, 0-100."""
        if not self._requested:
            return 0
        settled = sum(1 for key in self._requested if self._states[key] in TERMINAL_STATES)
        if settled == len(self._requested):
            return 100
        return int(settled * 100 / len(self._requested))

    def result_set(self) -> AnalysisResultSet:
        return AnalysisResultSet(
            project_id=self._project_id if self._project_id is not None else "",
            requested=list(self._requested),
            results=dict(self._results),
            errors=dict(self._errors),
        )

    def report(self, project_title: str) -> AnalysisReport:
        """Build the exportable report of the current results."""
        return AnalysisReport(
            project_id=self._project_id if self._project_id is not None else "",
            project=project_title,
            date=datetime.now(UTC),
            completion=self.completion_percentage(),
            features={
                key: FeatureReportEntry(
                    status=self.feature_status(key),
                    result=self._results.get(key),
                    error=self._errors.get(key),
                )
                for key in ALL_FEATURES
            },
        )

    # === Write side ===

    def reset(self) -> None:
        if self._running:
            raise AnalysisRunError("Cannot reset while an analysis run is in progress")
        self._clear(ALL_FEATURES)
        self._requested = ()
        self._project_id = None

    def _clear(self, features: Iterable[FeatureKey]) -> None:
        for key in features:
            self._states[key] = FeatureState.NOT_RUN
            self._results.pop(key, None)
            self._errors.pop(key, None)

    def _bind(self, project_id: ProjectId, features: tuple[FeatureKey, ...]) -> None:
        if self._project_id != project_id or self.policy is MergePolicy.REPLACE:
            self._clear(ALL_FEATURES)
        else:
            self._clear(features)
        self._project_id = project_id
        self._requested = features

    def load_snapshot(self, project_id: ProjectId, snapshot: dict[FeatureKey, Any]) -> None:
        """Rebuild feature states from the aggregated read path without running anything.

        Failures recorded locally are kept for features the snapshot does not cover.
        """
        if self._running:
            raise AnalysisRunError("Cannot load a snapshot while an analysis run is in progress")
        if self._project_id != project_id:
            self._clear(ALL_FEATURES)
        self._project_id = project_id
        self._requested = ALL_FEATURES

        for key in ALL_FEATURES:
            value = snapshot.get(key)
            if value is not None:
                self._states[key] = FeatureState.SUCCEEDED
                self._results[key] = value
                self._errors.pop(key, None)
            elif self._states[key] is not FeatureState.FAILED:
                self._states[key] = FeatureState.NOT_RUN
                self._results.pop(key, None)

    async def run_all(self, project_id: ProjectId) -> AnalysisResultSet:
        return await self.run_selected(project_id, ALL_FEATURES)

    async def run_selected(
        self, project_id: ProjectId, features: Iterable[FeatureKey | str]
    ) -> AnalysisResultSet:
        """Run the given features and return the merged results.

        Raises:
            AnalysisRunError: Only if the run cannot start (bad project id,
                no or unknown features, a run already in progress, or the
                start notification was rejected). Per-feature failures never raise.
        """
        if not _valid_project_id(project_id):
            raise AnalysisRunError(f"Invalid project id: {project_id!r}")
        try:
            keys = tuple(dict.fromkeys(FeatureKey(f) for f in features))
        except ValueError as e:
            raise AnalysisRunError(str(e)) from e
        if not keys:
            raise AnalysisRunError("No analysis features selected")
        if self._running:
            raise AnalysisRunError("An analysis run is already in progress")

        self._running = True
        try:
            with structlog.contextvars.bound_contextvars(project_id=project_id):
                if self.notify_start:
                    await self._announce(project_id, keys)

                self._bind(project_id, keys)
                logger.info(
                    "analysis_run_started",
                    features=[k.value for k in keys],
                    policy=self.policy.value,
                    max_concurrency=self.max_concurrency,
                )

                semaphore = (
                    asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
                )
                await asyncio.gather(*(self._run_one(project_id, key, semaphore) for key in keys))

                settled = self.result_set()
                logger.info(
                    "analysis_run_settled",
                    completed=[k.value for k in settled.completed],
                    failed=[k.value for k in settled.failed],
                )
        finally:
            self._running = False
            # cancelled runs leave no half-started features behind
            for key in keys:
                if self._states[key] is FeatureState.IN_FLIGHT:
                    self._states[key] = FeatureState.NOT_RUN

        return self.result_set()

    async def _announce(self, project_id: ProjectId, keys: tuple[FeatureKey, ...]) -> None:
        try:
            analysis_id = await self._api.start_analysis(project_id, list(keys))
        except APIError as e:
            logger.warning("analysis_start_rejected", error=e.message, status_code=e.status_code)
            raise AnalysisRunError(f"Failed to start script analysis: {e.message}") from e
        logger.debug("analysis_start_acknowledged", analysis_id=analysis_id)

    async def _run_one(
        self,
        project_id: ProjectId,
        feature: FeatureKey,
        semaphore: asyncio.Semaphore | None,
    ) -> None:
        async with semaphore if semaphore is not None else contextlib.nullcontext():
            self._states[feature] = FeatureState.IN_FLIGHT
            try:
                payload = await asyncio.wait_for(
                    self._api.run_feature(project_id, feature), timeout=self.feature_timeout
                )
            except TimeoutError:
                self._fail(feature, f"timed out after {self.feature_timeout}s")
            except APIError as e:
                self._fail(feature, e.message, status_code=e.status_code)
            except Exception as e:
                logger.exception("analysis_feature_crashed", feature=feature.value)
                self._fail(feature, str(e) or type(e).__name__)
            else:
                if payload is None:
                    self._fail(feature, "no result returned")
                    return
                self._results[feature] = payload
                self._errors.pop(feature, None)
                self._states[feature] = FeatureState.SUCCEEDED
                logger.info("analysis_feature_completed", feature=feature.value)

    def _fail(self, feature: FeatureKey, message: str, status_code: int | None = None) -> None:
        self._results.pop(feature, None)
        self._errors[feature] = message
        self._states[feature] = FeatureState.FAILED
        logger.warning(
            "analysis_feature_failed",
            feature=feature.value,
            error=message,
            status_code=status_code,
        )
