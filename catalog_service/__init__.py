"""
Catalog Service Package.

Talks to the upstream commerce API, normalizes its catalog into stable
domain objects, caches them, and evaluates category availability and
discount codes.
"""

__version__ = "1.0.0"
__description__ = "Catalog integration layer for the storefront"

__all__ = ["__version__"]
