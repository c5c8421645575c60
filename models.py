"""
Database Models for the Catalog Cleaner

This module contains SQLAlchemy models for the local product catalog and
the history of cleanup runs.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, Index
from sqlalchemy.orm import declarative_base, validates
from sqlalchemy.sql import func
import enum

from dedup_engine import ProductRecord, ProductStatus

Base = declarative_base()

# Enums for type safety
class CleanupOperation(enum.Enum):
    IMAGE_REVIEW = "image_review"
    DUPLICATE_CLEANUP = "duplicate_cleanup"

class RunStatus(enum.Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"

class Product(Base):
    """Catalog product."""
    __tablename__ = 'products'

    id = Column(Integer, primary_key=True)

    title = Column(String(500), nullable=False, default='')
    # Not unique: duplicate SKUs are exactly what the cleanup looks for
    sku = Column(String(100), index=True)
    status = Column(String(20), nullable=False, default=ProductStatus.PUBLISHED.value, index=True)
    featured_image_url = Column(String(1000))

    # Status the product had before it was trashed
    pre_trash_status = Column(String(20))
    trashed_at = Column(DateTime)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_product_status_created', 'status', 'created_at'),
    )

    @validates('status')
    def validate_status(self, key, status):
        allowed = {s.value for s in ProductStatus}
        if status not in allowed:
            raise ValueError(f"Invalid product status '{status}', expected one of {sorted(allowed)}")
        return status

    @property
    def has_primary_image(self) -> bool:
        return bool(self.featured_image_url and self.featured_image_url.strip())

    def to_record(self) -> ProductRecord:
        return ProductRecord(
            id=self.id,
            title=self.title,
            sku=self.sku,
            created_order=self.created_at,
            status=self.status,
            has_primary_image=self.has_primary_image
        )

    def __repr__(self):
        return f"<Product(id={self.id}, sku='{self.sku}', status='{self.status}')>"

class CleanupRun(Base):
    """History of cleanup operations, shown in the summary view."""
    __tablename__ = 'cleanup_runs'

    id = Column(Integer, primary_key=True)
    operation = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=RunStatus.SUCCESS.value)
    dry_run = Column(Boolean, default=False, nullable=False)
    triggered_by = Column(String(255))

    processed = Column(Integer, default=0, nullable=False)
    succeeded = Column(Integer, default=0, nullable=False)
    failed = Column(Integer, default=0, nullable=False)
    failed_ids = Column(JSON)

    message = Column(Text)
    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime)
    duration = Column(Integer)  # seconds

    __table_args__ = (
        Index('idx_cleanup_run_started', 'started_at'),
    )

    def __repr__(self):
        return f"<CleanupRun(id={self.id}, operation='{self.operation}', status='{self.status}')>"
