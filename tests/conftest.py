from unittest.mock import AsyncMock

import pytest

from vadis_intake.clients.api import ProductionAPIClient
from vadis_intake.config import Settings, get_settings
from vadis_intake.contracts.project import ProjectDTO
from vadis_intake.contracts.script import ScriptFile

PDF_BYTES = b"%PDF-1.4\n" + b"0" * 2048


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings():
    return Settings(
        api_url="http://backend.test",
        feature_timeout=1.0,
        poll_interval=0.01,
        watch_timeout=1.0,
    )


@pytest.fixture
def project_info():
    """A complete first step of the script analysis flow."""
    return {
        "title": "Ocean's Edge",
        "logline": "A lighthouse keeper finds letters from a drowned future.",
        "budget_range": "1m-5m",
        "funding_goal": 250_000,
        "production_timeline": "12 months",
    }


@pytest.fixture
def pdf_script():
    return ScriptFile.from_bytes("oceans_edge.pdf", PDF_BYTES)


@pytest.fixture
def created_project():
    return ProjectDTO(id=42, title="Ocean's Edge", status="draft")


@pytest.fixture
def mock_api(created_project):
    """API client double; every coroutine method is an AsyncMock."""
    api = AsyncMock(spec=ProductionAPIClient)
    api.create_project.return_value = created_project
    api.get_project.return_value = created_project
    api.fetch_analysis.return_value = {}
    api.start_analysis.return_value = "analysis-1"
    api.run_feature.side_effect = lambda project_id, feature: {"feature": feature.value}
    return api
