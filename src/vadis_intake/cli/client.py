from vadis_intake.clients.api import ProductionAPIClient
from vadis_intake.config import Settings, get_settings


def get_config() -> Settings:
    return get_settings()


def get_api_client() -> ProductionAPIClient:
    config = get_config()
    return ProductionAPIClient(
        config.api_url,
        timeout=config.request_timeout,
        feature_timeout=config.feature_timeout,
    )
