"""
API routers for catalog service endpoints.
"""

from catalog_service.routers import catalog_router, discount_router, health_router

__all__ = ["catalog_router", "discount_router", "health_router"]
