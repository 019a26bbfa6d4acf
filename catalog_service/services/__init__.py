"""Service layer."""

from catalog_service.services.catalog_service import CatalogService, ResourceTtls

__all__ = ["CatalogService", "ResourceTtls"]
