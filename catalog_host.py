"""
Catalog Host Interface

Contract between the cleanup operations and the store that owns the
product data. Implementations live in repositories.product_repository
(SQL database) and services.woocommerce_host (WooCommerce REST API).
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

from dedup_engine import ProductRecord


class CatalogHost(ABC):
    """Query and mutation interface of a product catalog."""

    name = "catalog"

    @abstractmethod
    def fetch_candidate_products(self, statuses: Iterable[str]) -> List[ProductRecord]:
        """Return products in the given statuses, oldest first."""

    @abstractmethod
    def fetch_products_without_primary_image(self, limit: Optional[int] = None) -> List[ProductRecord]:
        """Return published products that have no primary image."""

    @abstractmethod
    def remove_product(self, product_id: Any) -> bool:
        """Move a product to the trash. Trashing an already trashed product succeeds."""

    @abstractmethod
    def set_product_status(self, product_id: Any, status: str) -> bool:
        """Change the status of a product."""

    def is_available(self) -> bool:
        """Whether the catalog can be reached at all."""
        return True
