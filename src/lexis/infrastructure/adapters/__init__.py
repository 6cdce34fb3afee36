# Infrastructure Adapters Package
from .http_catalog import HttpCatalogClient

__all__ = ["HttpCatalogClient"]
