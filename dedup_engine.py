"""Duplicate detection for catalog products.

Groups products by an identity key (SKU first, title as fallback) and picks
the oldest product of each group as the survivor. The engine is a pure
function of its input: it never touches storage, the caller applies the
removals.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

logger = logging.getLogger(__name__)


class ProductStatus(Enum):
    """Catalog post statuses, as used by WooCommerce."""
    PUBLISHED = "publish"
    PENDING = "pending"
    DRAFT = "draft"
    PRIVATE = "private"
    TRASHED = "trash"


DEFAULT_DEDUP_STATUSES = (
    ProductStatus.PUBLISHED.value,
    ProductStatus.PENDING.value,
    ProductStatus.DRAFT.value,
    ProductStatus.PRIVATE.value,
)


class IdentityNamespace(Enum):
    SKU = "sku"
    TITLE = "title"


class IdentityKey(NamedTuple):
    """Key two products must share to be considered the same item."""
    namespace: IdentityNamespace
    value: str

    def __str__(self) -> str:
        return f"{self.namespace.value}::{self.value}"


@dataclass
class ProductRecord:
    """A catalog product as seen by the cleanup operations."""
    id: Any
    title: Optional[str] = ""
    sku: Optional[str] = None
    created_order: Any = None
    status: str = ProductStatus.PUBLISHED.value
    has_primary_image: bool = True

    def to_dict(self) -> Dict[str, Any]:
        created = self.created_order
        if hasattr(created, "isoformat"):
            created = created.isoformat()
        return {
            "id": self.id,
            "title": self.title,
            "sku": self.sku,
            "created_order": created,
            "status": self.status,
            "has_primary_image": self.has_primary_image,
        }


@dataclass
class DuplicateGroup:
    """Products sharing one identity key, oldest first."""
    key: IdentityKey
    records: List[ProductRecord] = field(default_factory=list)

    @property
    def survivor(self) -> ProductRecord:
        return self.records[0]

    @property
    def duplicates(self) -> List[ProductRecord]:
        return self.records[1:]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": str(self.key),
            "survivor": self.survivor.to_dict(),
            "duplicates": [record.to_dict() for record in self.duplicates],
        }


@dataclass
class DeduplicationReport:
    """Result of a duplicate scan."""
    removals: List[Any] = field(default_factory=list)
    groups: List[DuplicateGroup] = field(default_factory=list)
    scanned: int = 0

    @property
    def removed_count(self) -> int:
        return len(self.removals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scanned": self.scanned,
            "removals": list(self.removals),
            "removed_count": self.removed_count,
            "groups": [group.to_dict() for group in self.groups],
        }


def _clean(value: Optional[str]) -> str:
    return str(value).strip() if value is not None else ""


def derive_identity_key(record: ProductRecord) -> IdentityKey:
    """Return the identity key of a product.

    A non-blank SKU always wins. Without one the trimmed title is used,
    even when it is empty, so untitled products without SKU all share the
    same key.
    """
    sku = _clean(record.sku)
    if sku:
        return IdentityKey(IdentityNamespace.SKU, sku.lower())
    return IdentityKey(IdentityNamespace.TITLE, _clean(record.title).lower())


def group_by_identity(records: Iterable[ProductRecord]) -> "OrderedDict[IdentityKey, List[ProductRecord]]":
    """Partition records by identity key, keeping input order inside each group."""
    groups: "OrderedDict[IdentityKey, List[ProductRecord]]" = OrderedDict()
    for record in records:
        groups.setdefault(derive_identity_key(record), []).append(record)
    return groups


def find_duplicates(records: Iterable[ProductRecord]) -> DeduplicationReport:
    """Compute which products to remove so only the oldest of each group remains.

    Records must already be sorted oldest first; the first record of each
    group is kept.
    """
    records = list(records)
    report = DeduplicationReport(scanned=len(records))

    for key, members in group_by_identity(records).items():
        if len(members) <= 1:
            continue
        group = DuplicateGroup(key=key, records=members)
        report.groups.append(group)
        report.removals.extend(record.id for record in group.duplicates)

    logger.debug(
        f"Scanned {report.scanned} products: {len(report.groups)} duplicate groups, "
        f"{report.removed_count} to remove"
    )
    return report
