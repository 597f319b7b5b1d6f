"""HTTP client for the production backend."""

from __future__ import annotations

from typing import Any

import httpx

from vadis_intake.analysis.features import feature_path, parse_snapshot, unwrap_payload
from vadis_intake.contracts.analysis import FeatureKey
from vadis_intake.contracts.project import (
    ProjectCreate,
    ProjectDTO,
    ProjectId,
    ProjectUpdate,
    WorkflowStep,
)
from vadis_intake.contracts.script import ScriptFile
from vadis_intake.errors import APIError
from vadis_intake.logging_config import get_logger

logger = get_logger(__name__)

SCRIPT_FILE_FIELD = "scriptFile"


def _error_message(response: httpx.Response) -> str | None:
    """Pull the human-readable message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return response.reason_phrase or None


def _form_fields(draft: ProjectCreate) -> dict[str, str | list[str]]:
    """Flatten a draft into multipart form fields (camelCase, strings only)."""
    fields: dict[str, str | list[str]] = {}
    for key, value in draft.model_dump(by_alias=True, exclude_none=True).items():
        if isinstance(value, list):
            if value:
                fields[key] = [str(item) for item in value]
        else:
            fields[key] = str(value)
    return fields


def _project_from(body: Any) -> ProjectDTO:
    """Endpoints return either the project or ``{"project": ...}``."""
    if isinstance(body, dict) and isinstance(body.get("project"), dict):
        body = body["project"]
    try:
        return ProjectDTO.model_validate(body)
    except ValueError as e:
        raise APIError(f"Unexpected project payload: {e}", payload=body) from e


class ProductionAPIClient:
    """Async client for the project and script analysis endpoints."""

    def __init__(
        self, base_url: str, timeout: float = 30.0, feature_timeout: float = 300.0
    ) -> None:
        self.base_url = base_url.rstrip("/")
        if self.base_url.endswith("/api"):
            raise ValueError("base_url must not include /api")
        self.timeout = timeout
        # analysis features run synchronously on the backend and take minutes
        self.feature_timeout = feature_timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> ProductionAPIClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                follow_redirects=True,
                timeout=self.timeout,
            )
        return self._client

    def _api_path(self, path: str) -> str:
        cleaned = path.lstrip("/")
        if cleaned.startswith("api/"):
            raise ValueError("API path should not include /api prefix")
        return f"/api/{cleaned}"

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            APIError: On network failure, timeout or a non-2xx status.
        """
        client = await self._get_client()
        try:
            resp = await client.request(method, self._api_path(path), **kwargs)
        except httpx.HTTPError as e:
            logger.warning("api_transport_error", method=method, path=path, error=str(e))
            raise APIError(str(e) or type(e).__name__) from e

        if resp.is_error:
            message = _error_message(resp)
            logger.warning(
                "api_error_response",
                method=method,
                path=path,
                status_code=resp.status_code,
                error=message,
            )
            raise APIError(message, status_code=resp.status_code, payload=resp.text)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise APIError(
                "Backend returned a non-JSON response", status_code=resp.status_code
            ) from e

    # === Projects ===

    async def create_project(
        self, draft: ProjectCreate, script_file: ScriptFile | None = None
    ) -> ProjectDTO:
        """Create a project, attaching the script as multipart upload when present."""
        if script_file is not None:
            files = {
                SCRIPT_FILE_FIELD: (
                    script_file.filename,
                    script_file.content,
                    script_file.mime_type,
                )
            }
            body = await self._request(
                "POST", "projects/script-analysis", data=_form_fields(draft), files=files
            )
        else:
            body = await self._request(
                "POST",
                "projects/script-analysis",
                json=draft.model_dump(mode="json", by_alias=True, exclude_none=True),
            )
        project = _project_from(body)
        logger.info("project_created", project_id=project.id, title=project.title)
        return project

    async def get_project(self, project_id: ProjectId) -> ProjectDTO:
        body = await self._request("GET", f"projects/{project_id}")
        return _project_from(body)

    async def update_project(self, project_id: ProjectId, update: ProjectUpdate) -> ProjectDTO:
        payload = update.model_dump(mode="json", by_alias=True, exclude_none=True)
        body = await self._request("PATCH", f"projects/{project_id}", json=payload)
        return _project_from(body)

    async def finalize_project(
        self, project_id: ProjectId, publish_to_marketplace: bool = False
    ) -> ProjectDTO:
        body = await self._request(
            "POST",
            f"projects/{project_id}/finalize",
            json={"publishToMarketplace": publish_to_marketplace},
        )
        return _project_from(body)

    async def save_workflow_step(
        self,
        project_id: ProjectId,
        step: WorkflowStep,
        step_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Persist the wizard position so a reopened view can resume it."""
        payload: dict[str, Any] = {"currentStep": step.value, "projectId": project_id}
        if step_data:
            payload["stepData"] = step_data
        return await self._request("PUT", f"projects/{project_id}/workflow", json=payload)

    # === Analysis ===

    async def start_analysis(self, project_id: ProjectId, features: list[FeatureKey]) -> str | None:
        """Announce an analysis run. Returns the backend's analysis id, if any."""
        body = await self._request(
            "POST",
            f"projects/{project_id}/analyze",
            json={"features": [f.value for f in features]},
        )
        if isinstance(body, dict):
            return body.get("analysisId")
        return None

    async def run_feature(self, project_id: ProjectId, feature: FeatureKey) -> Any:
        """Run one analysis feature and return its (feature-specific) payload."""
        body = await self._request(
            "POST",
            feature_path(feature),
            json={"projectId": project_id},
            timeout=self.feature_timeout,
        )
        return unwrap_payload(body)

    async def fetch_analysis(self, project_id: ProjectId) -> dict[FeatureKey, Any]:
        """Current best-known analysis results, keyed by feature."""
        body = await self._request("GET", f"projects/{project_id}/analysis")
        return parse_snapshot(body)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
