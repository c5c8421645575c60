"""
Repository modules for database operations
"""

from .base import BaseRepository
from .cleanup_run_repository import CleanupRunRepository
from .product_repository import ProductRepository, SqlCatalogHost

__all__ = [
    'BaseRepository',
    'CleanupRunRepository',
    'ProductRepository',
    'SqlCatalogHost'
]
