"""
Shared dependencies for the application.

Provides dependency injection functions used across routers.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from catalog_service.services.catalog_service import CatalogService

# Global service instance (set by main app)
_catalog_service: Optional["CatalogService"] = None


def set_catalog_service(service: Optional["CatalogService"]) -> None:
    """
    Set the global catalog service instance.

    Called by main app during startup and cleared on shutdown.
    """
    global _catalog_service
    _catalog_service = service


async def get_catalog_service() -> "CatalogService":
    """
    Get catalog service instance for dependency injection.

    Used by all routers that need the catalog service.
    """
    if _catalog_service is None:
        raise RuntimeError("Catalog service not initialized")
    return _catalog_service
