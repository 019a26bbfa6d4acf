"""Infrastructure module initialization."""

from catalog_service.infrastructure.catalog_api_client import CatalogApiClient
from catalog_service.infrastructure.checkout_gateway import CheckoutGateway, build_order_request
from catalog_service.infrastructure.retrying_client import (
    ErrorReporter,
    LoggingErrorReporter,
    RetryingClient,
)

__all__ = [
    "CatalogApiClient",
    "CheckoutGateway",
    "ErrorReporter",
    "LoggingErrorReporter",
    "RetryingClient",
    "build_order_request",
]
