"""
Catalog Client Factory
Centralizes the construction of catalog adapters and review sessions from config.
"""

from lexis.application.config import AppConfig
from lexis.application.review.session import ReviewSession
from lexis.domain.interfaces import CatalogClient
from lexis.infrastructure.adapters.http_catalog import HttpCatalogClient


def get_catalog_client(config: AppConfig) -> CatalogClient:
    """
    Returns the CatalogClient implementation for the configured service.
    """
    return HttpCatalogClient(base_url=config.api_base_url, timeout=config.request_timeout)


def create_review_session(config: AppConfig, catalog: CatalogClient) -> ReviewSession:
    return ReviewSession(catalog, track_response_time=config.track_response_time)
