"""
Product Repository for managing product database operations.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import or_, func

from catalog_host import CatalogHost
from database import DatabaseManager
from dedup_engine import ProductRecord, ProductStatus
from models import Product
from .base import BaseRepository

logger = logging.getLogger(__name__)

class ProductRepository(BaseRepository):
    """Repository for Product model operations."""

    def __init__(self, session: Session):
        super().__init__(Product, session)

    def get_by_statuses(self, statuses: Iterable[str]) -> List[Product]:
        """Get products in any of the given statuses, oldest first."""
        return self.session.query(Product).filter(
            Product.status.in_(list(statuses))
        ).order_by(Product.created_at.asc(), Product.id.asc()).all()

    def get_published_missing_images(self, limit: Optional[int] = None) -> List[Product]:
        """Get published products without a featured image."""
        query = self.session.query(Product).filter(
            Product.status == ProductStatus.PUBLISHED.value,
            or_(
                Product.featured_image_url.is_(None),
                func.trim(Product.featured_image_url) == ''
            )
        ).order_by(Product.created_at.asc(), Product.id.asc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def trash(self, product_id: int) -> Optional[Product]:
        """Move a product to the trash, remembering its previous status."""
        product = self.get(product_id)
        if not product:
            return None

        if product.status == ProductStatus.TRASHED.value:
            return product

        product.pre_trash_status = product.status
        product.status = ProductStatus.TRASHED.value
        product.trashed_at = datetime.utcnow()
        self.session.flush()
        return product

    def set_status(self, product_id: int, status: str) -> Optional[Product]:
        """Change a product's status."""
        if status == ProductStatus.TRASHED.value:
            return self.trash(product_id)
        return self.update(product_id, status=status)

    def count_by_status(self) -> Dict[str, int]:
        """Get product count for each status."""
        counts = self.session.query(
            Product.status,
            func.count(Product.id).label('count')
        ).group_by(Product.status).all()

        return {status: count for status, count in counts}


class SqlCatalogHost(CatalogHost):
    """Catalog host backed by the local products table.

    Every mutation runs in its own session scope so a failing product does
    not roll back the ones already processed.
    """

    name = "sql"

    def __init__(self, db: DatabaseManager):
        self.db = db

    def is_available(self) -> bool:
        if not self.db.is_initialized:
            return False
        return self.db.health_check().get('status') == 'healthy'

    def fetch_candidate_products(self, statuses: Iterable[str]) -> List[ProductRecord]:
        with self.db.session_scope() as session:
            products = ProductRepository(session).get_by_statuses(statuses)
            return [product.to_record() for product in products]

    def fetch_products_without_primary_image(self, limit: Optional[int] = None) -> List[ProductRecord]:
        with self.db.session_scope() as session:
            products = ProductRepository(session).get_published_missing_images(limit)
            return [product.to_record() for product in products]

    def remove_product(self, product_id: Any) -> bool:
        with self.db.session_scope() as session:
            product = ProductRepository(session).trash(product_id)
            if not product:
                logger.warning(f"Cannot trash product {product_id}: not found")
                return False
            return True

    def set_product_status(self, product_id: Any, status: str) -> bool:
        with self.db.session_scope() as session:
            product = ProductRepository(session).set_status(product_id, status)
            if not product:
                logger.warning(f"Cannot set status of product {product_id}: not found")
                return False
            return True
