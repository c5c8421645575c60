"""
Services package for the Catalog Cleaner.

This package contains the business logic services:
- Catalog maintenance operations (image review, duplicate cleanup)
- The WooCommerce REST catalog host
"""

from .catalog_cleanup_service import CatalogCleanupService, CleanupResult
from .woocommerce_host import WooCommerceCatalogHost, RateLimiter

__all__ = [
    'CatalogCleanupService',
    'CleanupResult',
    'WooCommerceCatalogHost',
    'RateLimiter'
]
