"""Cached read access to projects and their aggregated analysis."""

from typing import Any

from vadis_intake.clients.api import ProductionAPIClient
from vadis_intake.contracts.analysis import FeatureKey
from vadis_intake.contracts.project import ProjectDTO, ProjectId, ProjectUpdate
from vadis_intake.logging_config import get_logger

logger = get_logger(__name__)


class ProjectRepository:
    """Per-project cache in front of the production API.

    Entries stay until invalidated. Mutations made through the repository
    invalidate the affected project; callers that mutate elsewhere (an
    analysis run, for instance) call ``invalidate`` themselves.
    """

    def __init__(self, api: ProductionAPIClient):
        self._api = api
        self._projects: dict[str, ProjectDTO] = {}
        self._analysis: dict[str, dict[FeatureKey, Any]] = {}

    @staticmethod
    def _key(project_id: ProjectId) -> str:
        return str(project_id)

    def cached(self, project_id: ProjectId) -> ProjectDTO | None:
        return self._projects.get(self._key(project_id))

    def remember(self, project: ProjectDTO) -> None:
        self._projects[self._key(project.id)] = project

    async def get(self, project_id: ProjectId, *, refresh: bool = False) -> ProjectDTO:
        key = self._key(project_id)
        if refresh or key not in self._projects:
            self._projects[key] = await self._api.get_project(project_id)
            logger.debug("project_cache_filled", project_id=project_id)
        return self._projects[key]

    async def analysis(
        self, project_id: ProjectId, *, refresh: bool = False
    ) -> dict[FeatureKey, Any]:
        key = self._key(project_id)
        if refresh or key not in self._analysis:
            self._analysis[key] = await self._api.fetch_analysis(project_id)
            logger.debug("analysis_cache_filled", project_id=project_id)
        return dict(self._analysis[key])

    async def update(self, project_id: ProjectId, update: ProjectUpdate) -> ProjectDTO:
        project = await self._api.update_project(project_id, update)
        self.invalidate(project_id)
        self.remember(project)
        return project

    async def finalize(
        self, project_id: ProjectId, publish_to_marketplace: bool = False
    ) -> ProjectDTO:
        project = await self._api.finalize_project(project_id, publish_to_marketplace)
        self.invalidate(project_id)
        self.remember(project)
        logger.info(
            "project_finalized",
            project_id=project_id,
            published=publish_to_marketplace,
        )
        return project

    def invalidate(self, project_id: ProjectId) -> None:
        key = self._key(project_id)
        self._projects.pop(key, None)
        self._analysis.pop(key, None)

    def invalidate_all(self) -> None:
        self._projects.clear()
        self._analysis.clear()
