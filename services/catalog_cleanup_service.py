"""
Catalog Cleanup Service

The two on-demand maintenance operations of the catalog:

* image review: published products without a primary image are moved to
  the review status so someone can add one;
* duplicate cleanup: products sharing a SKU (or, without SKU, a title) are
  reduced to the oldest one, the others are moved to the trash.

Mutations are best effort. Products are processed one at a time in the
order the duplicate engine emits them, and a failure on one product is
recorded in ``failed_ids`` without stopping the run.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from catalog_host import CatalogHost
from dedup_engine import DEFAULT_DEDUP_STATUSES, DeduplicationReport, ProductRecord, ProductStatus, find_duplicates
from errors import CatalogHostError, PreconditionError
from models import CleanupOperation

logger = logging.getLogger(__name__)


@dataclass
class CleanupResult:
    """Outcome of one cleanup operation."""
    operation: str
    processed: int = 0
    succeeded: int = 0
    failed_ids: List[Any] = field(default_factory=list)
    dry_run: bool = False
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None
    message: str = ""

    @property
    def count_label(self) -> str:
        """Name under which the success count is reported to the operator."""
        if self.operation == CleanupOperation.IMAGE_REVIEW.value:
            return "updated"
        return "trashed"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'operation': self.operation,
            self.count_label: self.succeeded,
            'processed': self.processed,
            'failed_ids': list(self.failed_ids),
            'dry_run': self.dry_run,
            'started_at': self.started_at.isoformat(),
            'finished_at': self.finished_at.isoformat() if self.finished_at else None,
            'message': self.message
        }


class CatalogCleanupService:
    """Runs the catalog maintenance operations against a catalog host."""

    def __init__(self, host: Optional[CatalogHost],
                 dedup_statuses: Iterable[str] = DEFAULT_DEDUP_STATUSES,
                 image_review_limit: Optional[int] = 1000,
                 review_status: str = ProductStatus.PENDING.value):
        self.host = host
        # Trashed products are never candidates, whatever the configuration says
        self.dedup_statuses = [s for s in dedup_statuses if s != ProductStatus.TRASHED.value]
        self.image_review_limit = image_review_limit
        self.review_status = review_status

    @classmethod
    def from_config(cls, host: Optional[CatalogHost], config: Dict[str, Any]) -> "CatalogCleanupService":
        return cls(
            host,
            dedup_statuses=config.get('DEDUP_STATUSES') or DEFAULT_DEDUP_STATUSES,
            image_review_limit=config.get('IMAGE_REVIEW_BATCH_LIMIT', 1000),
            review_status=config.get('IMAGE_REVIEW_TARGET_STATUS', ProductStatus.PENDING.value)
        )

    def ensure_available(self) -> CatalogHost:
        """Raise PreconditionError unless the catalog can be used."""
        if self.host is None:
            raise PreconditionError("No catalog backend is configured")
        if not self.host.is_available():
            raise PreconditionError(
                f"Catalog backend '{self.host.name}' is not available",
                details={'backend': self.host.name}
            )
        return self.host

    def preview_duplicates(self) -> DeduplicationReport:
        """Compute the duplicate groups without changing anything."""
        host = self.ensure_available()
        records = self._list_products(host.fetch_candidate_products, self.dedup_statuses)
        return find_duplicates(records)

    def run_duplicate_cleanup(self, dry_run: bool = False) -> CleanupResult:
        """Keep the oldest product of each duplicate group and trash the rest."""
        result = CleanupResult(operation=CleanupOperation.DUPLICATE_CLEANUP.value, dry_run=dry_run)
        report = self.preview_duplicates()
        logger.info(
            f"Duplicate cleanup: {report.scanned} products scanned, "
            f"{len(report.groups)} groups, {report.removed_count} duplicates"
        )

        if dry_run:
            result.processed = report.removed_count
            result.succeeded = report.removed_count
            result.finished_at = datetime.utcnow()
            result.message = f"Dry run: {result.succeeded} duplicate product(s) would be moved to the trash."
            return result

        self._apply(result, report.removals, self.host.remove_product, "trash")
        result.message = f"Finished: {result.succeeded} duplicate product(s) moved to the trash."
        return result

    def run_image_review_scan(self) -> CleanupResult:
        """Move published products without a primary image to review."""
        result = CleanupResult(operation=CleanupOperation.IMAGE_REVIEW.value)
        host = self.ensure_available()

        records = self._list_products(host.fetch_products_without_primary_image, self.image_review_limit)
        # The host may return products whose image was set in the meantime
        product_ids = [record.id for record in records if not record.has_primary_image]
        logger.info(f"Image review: {len(product_ids)} published products without image")

        self._apply(
            result,
            product_ids,
            lambda product_id: host.set_product_status(product_id, self.review_status),
            f"set status '{self.review_status}' on"
        )
        result.message = f"Finished: {result.succeeded} product(s) without image sent to review."
        return result

    def _list_products(self, fetch: Callable[..., List[ProductRecord]], *args) -> List[ProductRecord]:
        """Run a host listing; a failed listing means the catalog cannot be used."""
        try:
            return fetch(*args)
        except CatalogHostError as e:
            logger.error(f"Listing products from '{self.host.name}' failed: {str(e)}")
            raise PreconditionError(
                f"Catalog backend '{self.host.name}' failed: {e}",
                details={'backend': self.host.name}
            ) from e

    def _apply(self, result: CleanupResult, product_ids: List[Any],
               mutate: Callable[[Any], bool], action: str) -> None:
        for product_id in product_ids:
            result.processed += 1
            try:
                if mutate(product_id):
                    result.succeeded += 1
                else:
                    logger.warning(f"Could not {action} product {product_id}")
                    result.failed_ids.append(product_id)
            except CatalogHostError as e:
                logger.error(f"Error trying to {action} product {product_id}: {str(e)}")
                result.failed_ids.append(product_id)
            except Exception as e:
                logger.exception(f"Unexpected error trying to {action} product {product_id}: {str(e)}")
                result.failed_ids.append(product_id)

        result.finished_at = datetime.utcnow()
        if result.failed_ids:
            logger.warning(f"{result.operation}: {len(result.failed_ids)} product(s) failed: {result.failed_ids}")
