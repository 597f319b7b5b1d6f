"""One intake-to-analysis session.

Usage:
    async with ProductionWorkflow.from_settings() as session:
        session.intake.set_field("title", "Night Train")
        ...
        project = await session.submit()
        results = await session.analyze()
"""

from collections.abc import Iterable
from typing import Any

from vadis_intake.analysis.aggregator import AnalysisAggregator
from vadis_intake.analysis.watcher import AnalysisWatcher, SnapshotCallback
from vadis_intake.clients.api import ProductionAPIClient
from vadis_intake.config import Settings, get_settings
from vadis_intake.contracts.analysis import ALL_FEATURES, AnalysisResultSet, FeatureKey
from vadis_intake.contracts.project import ProjectDTO, ProjectId
from vadis_intake.errors import APIError, AnalysisRunError
from vadis_intake.intake.controller import IntakeController
from vadis_intake.intake.flows import SCRIPT_ANALYSIS, FlowVariant
from vadis_intake.logging_config import get_logger
from vadis_intake.repository import ProjectRepository

logger = get_logger(__name__)


class ProductionWorkflow:
    """Owns the intake controller, project cache, aggregator and watchers of a session.

    Leaving the session stops every watcher and releases the selected file,
    whether it ends normally or with an exception.
    """

    def __init__(
        self,
        api: ProductionAPIClient,
        variant: FlowVariant = SCRIPT_ANALYSIS,
        settings: Settings | None = None,
        *,
        owns_api: bool = False,
    ):
        self.settings = settings or get_settings()
        self.api = api
        self.intake = IntakeController(
            api,
            variant,
            accepted_script_type=self.settings.accepted_script_type,
            max_script_bytes=self.settings.max_script_bytes,
        )
        self.repository = ProjectRepository(api)
        self.aggregator = AnalysisAggregator(
            api,
            policy=self.settings.merge_policy,
            max_concurrency=self.settings.max_concurrency,
            feature_timeout=self.settings.feature_timeout,
            notify_start=self.settings.notify_analysis_start,
        )
        self._watchers: list[AnalysisWatcher] = []
        self._owns_api = owns_api

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, variant: FlowVariant = SCRIPT_ANALYSIS
    ) -> "ProductionWorkflow":
        settings = settings or get_settings()
        api = ProductionAPIClient(
            settings.api_url,
            timeout=settings.request_timeout,
            feature_timeout=settings.feature_timeout,
        )
        return cls(api, variant, settings, owns_api=True)

    async def __aenter__(self) -> "ProductionWorkflow":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _project_id(self, project_id: ProjectId | None) -> ProjectId:
        if project_id is not None:
            return project_id
        if self.intake.project_id is None:
            raise AnalysisRunError("No project has been created yet")
        return self.intake.project_id

    async def submit(self) -> ProjectDTO | None:
        project = await self.intake.submit()
        if project is not None:
            self.repository.remember(project)
        return project

    async def save_progress(self, step_data: dict[str, Any] | None = None) -> bool:
        """Store the created project's wizard step so a reopened flow resumes there.

        The project already exists at this point, so a failure is logged and
        reported as ``False`` instead of raised.
        """
        project_id = self._project_id(None)
        step = self.intake.step
        try:
            await self.api.save_workflow_step(project_id, step, step_data)
        except APIError as e:
            logger.warning(
                "workflow_step_save_failed",
                project_id=project_id,
                step=step.value,
                error=e.message,
            )
            return False
        logger.debug("workflow_step_saved", project_id=project_id, step=step.value)
        return True

    async def analyze(
        self,
        features: Iterable[FeatureKey | str] | None = None,
        *,
        project_id: ProjectId | None = None,
    ) -> AnalysisResultSet:
        """Run analysis for the created project (or ``project_id``).

        All features run when ``features`` is None.
        """
        target = self._project_id(project_id)
        try:
            return await self.aggregator.run_selected(
                target, ALL_FEATURES if features is None else features
            )
        finally:
            self.repository.invalidate(target)

    def watch(
        self,
        *,
        project_id: ProjectId | None = None,
        on_update: SnapshotCallback | None = None,
    ) -> AnalysisWatcher:
        """Create a watcher that is stopped together with the session."""
        watcher = AnalysisWatcher(
            self.api,
            self._project_id(project_id),
            interval=self.settings.poll_interval,
            on_update=on_update,
        )
        self._watchers.append(watcher)
        return watcher

    async def close(self) -> None:
        try:
            for watcher in self._watchers:
                await watcher.stop()
            self._watchers.clear()
        finally:
            self.intake.discard()
            if self._owns_api:
                await self.api.close()
            logger.debug("workflow_session_closed", project_id=self.intake.project_id)
