from vadis_intake.clients.api import ProductionAPIClient

__all__ = ["ProductionAPIClient"]
