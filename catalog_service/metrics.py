"""
Prometheus metrics for Catalog Service.

Tracks upstream API calls and retries, cache performance, and discount
validation outcomes.
"""

from fastapi import Response
from prometheus_client import (CONTENT_TYPE_LATEST, Counter, Gauge, Histogram,
                               generate_latest)

# Upstream API metrics
catalog_upstream_calls_total = Counter(
    "catalog_upstream_calls_total",
    "Total calls to the upstream commerce API",
    ["operation", "status"],
)

catalog_upstream_call_duration_seconds = Histogram(
    "catalog_upstream_call_duration_seconds",
    "Upstream call duration in seconds (all attempts included)",
    ["operation"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

catalog_upstream_retries_total = Counter(
    "catalog_upstream_retries_total",
    "Total retry attempts against the upstream API",
    ["operation"],
)

catalog_upstream_failures_total = Counter(
    "catalog_upstream_failures_total",
    "Upstream operations that failed after all attempts",
    ["operation", "error_type"],
)

# Cache metrics
catalog_cache_hits_total = Counter(
    "catalog_cache_hits_total", "Total cache hits", ["cache_name"]
)

catalog_cache_misses_total = Counter(
    "catalog_cache_misses_total", "Total cache misses", ["cache_name"]
)

catalog_cache_evictions_total = Counter(
    "catalog_cache_evictions_total", "Total cache evictions", ["cache_name"]
)

catalog_cache_size = Gauge(
    "catalog_cache_size", "Current cache size in items", ["cache_name"]
)

# Mapping metrics
catalog_items_skipped_total = Counter(
    "catalog_items_skipped_total",
    "Upstream catalog objects skipped during mapping",
    ["object_type", "reason"],
)

# Discount metrics
discount_validations_total = Counter(
    "discount_validations_total",
    "Discount code validations",
    ["outcome"],
)


def track_upstream_call(operation: str, success: bool, duration: float):
    """Track one upstream operation (all attempts)."""
    status = "success" if success else "failure"
    catalog_upstream_calls_total.labels(operation=operation, status=status).inc()
    catalog_upstream_call_duration_seconds.labels(operation=operation).observe(duration)


def track_upstream_retry(operation: str):
    """Track a retry attempt."""
    catalog_upstream_retries_total.labels(operation=operation).inc()


def track_upstream_failure(operation: str, error_type: str):
    """Track an operation that exhausted its attempts or failed terminally."""
    catalog_upstream_failures_total.labels(
        operation=operation, error_type=error_type
    ).inc()


def track_cache_hit(cache_name: str):
    """Track cache hits."""
    catalog_cache_hits_total.labels(cache_name=cache_name).inc()


def track_cache_miss(cache_name: str):
    """Track cache misses."""
    catalog_cache_misses_total.labels(cache_name=cache_name).inc()


def track_cache_eviction(cache_name: str):
    """Track cache evictions."""
    catalog_cache_evictions_total.labels(cache_name=cache_name).inc()


def update_cache_size(cache_name: str, size: int):
    """Update cache size gauge."""
    catalog_cache_size.labels(cache_name=cache_name).set(size)


def track_item_skipped(object_type: str, reason: str):
    """Track a catalog object dropped by the mapper."""
    catalog_items_skipped_total.labels(object_type=object_type, reason=reason).inc()


def track_discount_validation(outcome: str):
    """Track a discount validation outcome (valid, invalid_code, expired, ...)."""
    discount_validations_total.labels(outcome=outcome).inc()


async def metrics_endpoint():
    """
    Prometheus metrics endpoint.

    Returns:
        Response with Prometheus metrics in text format
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
