"""
WooCommerce Catalog Host

Runs the cleanup operations against a live WooCommerce store through the
WooCommerce REST API (v3). Deleting without ``force`` moves a product to
the trash, which is the soft delete the duplicate cleanup relies on.
"""

import time
import random
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

import requests

from catalog_host import CatalogHost
from dedup_engine import ProductRecord, ProductStatus
from errors import CatalogHostError

API_PREFIX = "/wp-json/wc/v3"

# Status codes worth another attempt
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class RateLimiter:
    """Keeps a minimum delay between requests, backing off after 429s."""

    def __init__(self, base_delay: float = 0.2):
        self.base_delay = base_delay
        self.last_request_time = 0.0
        self.consecutive_rate_limits = 0

    def wait(self) -> None:
        """Wait appropriate amount of time before next request."""
        delay = self.base_delay * (1 + self.consecutive_rate_limits * 0.5)
        elapsed = time.time() - self.last_request_time
        if elapsed < delay:
            time.sleep(delay - elapsed)
        self.last_request_time = time.time()

    def record_success(self) -> None:
        self.consecutive_rate_limits = 0

    def record_rate_limit(self) -> None:
        self.consecutive_rate_limits += 1


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
    # Compare everything as naive UTC
    if parsed.tzinfo:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def product_to_record(product: Dict[str, Any]) -> ProductRecord:
    """Convert a WooCommerce product payload to a ProductRecord."""
    created = _parse_date(product.get('date_created_gmt')) or _parse_date(product.get('date_created'))
    return ProductRecord(
        id=product['id'],
        title=product.get('name') or '',
        sku=product.get('sku') or None,
        created_order=created,
        status=product.get('status', ProductStatus.PUBLISHED.value),
        has_primary_image=bool(product.get('images'))
    )


class WooCommerceCatalogHost(CatalogHost):
    """Catalog host talking to the WooCommerce REST API."""

    name = "woocommerce"

    def __init__(self, store_url: str, consumer_key: str, consumer_secret: str,
                 timeout: int = 30, max_retries: int = 3, per_page: int = 100,
                 rate_limiter: Optional[RateLimiter] = None):
        """Initialize WooCommerce API client."""
        self.store_url = (store_url or '').strip().rstrip('/')
        if self.store_url and not self.store_url.startswith(('http://', 'https://')):
            self.store_url = f"https://{self.store_url}"

        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.per_page = per_page
        self.rate_limiter = rate_limiter or RateLimiter()
        self.logger = logging.getLogger(self.__class__.__name__)

        self.session = requests.Session()
        self.session.auth = (consumer_key or '', consumer_secret or '')
        self.session.headers.update({'Content-Type': 'application/json'})

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "WooCommerceCatalogHost":
        return cls(
            store_url=config.get('WOOCOMMERCE_URL'),
            consumer_key=config.get('WOOCOMMERCE_CONSUMER_KEY'),
            consumer_secret=config.get('WOOCOMMERCE_CONSUMER_SECRET'),
            timeout=config.get('WOOCOMMERCE_TIMEOUT', 30),
            max_retries=config.get('WOOCOMMERCE_MAX_RETRIES', 3),
            per_page=config.get('WOOCOMMERCE_PER_PAGE', 100)
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.store_url and self.consumer_key and self.consumer_secret)

    def _url(self, path: str) -> str:
        return f"{self.store_url}{API_PREFIX}{path}"

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                 payload: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Send a request with rate limiting and retries.

        Returns the final response, including 4xx ones; the caller decides
        what they mean. Raises CatalogHostError when the store cannot be
        reached or keeps failing.
        """
        for attempt in range(self.max_retries):
            try:
                self.rate_limiter.wait()
                response = self.session.request(
                    method,
                    self._url(path),
                    params=params,
                    json=payload,
                    timeout=self.timeout
                )
            except requests.exceptions.RequestException as e:
                if attempt < self.max_retries - 1:
                    wait_time = 2 ** attempt + random.uniform(0, 1)
                    self.logger.warning(f"Request failed, retrying in {wait_time:.1f}s: {str(e)}")
                    time.sleep(wait_time)
                    continue
                self.logger.error(f"{method} {path} failed after {self.max_retries} attempts: {str(e)}")
                raise CatalogHostError(f"Request failed: {str(e)}")

            if response.status_code in RETRYABLE_STATUS_CODES:
                if response.status_code == 429:
                    self.rate_limiter.record_rate_limit()
                if attempt < self.max_retries - 1:
                    wait_time = 2 ** attempt + random.uniform(0, 1)
                    self.logger.warning(
                        f"{method} {path} returned {response.status_code}, waiting {wait_time:.1f}s..."
                    )
                    time.sleep(wait_time)
                    continue
                raise CatalogHostError(
                    f"{method} {path} returned {response.status_code} after {self.max_retries} attempts"
                )

            self.rate_limiter.record_success()
            return response

        raise CatalogHostError("Max retries exceeded")

    def _get_all_pages(self, params: Dict[str, Any], limit: Optional[int] = None,
                       keep: Optional[Callable[[Dict[str, Any]], bool]] = None) -> List[Dict[str, Any]]:
        """Page through /products, stopping early once ``limit`` kept products are collected."""
        products: List[Dict[str, Any]] = []
        page = 1
        while True:
            response = self._request('GET', '/products', params={**params, 'page': page, 'per_page': self.per_page})
            if response.status_code != 200:
                raise CatalogHostError(f"Listing products failed with HTTP {response.status_code}: {response.text}")

            batch = response.json()
            products.extend(p for p in batch if keep is None or keep(p))

            if limit and len(products) >= limit:
                return products[:limit]

            total_pages = int(response.headers.get('X-WP-TotalPages', 0) or 0)
            if len(batch) < self.per_page or (total_pages and page >= total_pages):
                return products
            page += 1

    def is_available(self) -> bool:
        if not self.is_configured:
            return False
        try:
            response = self._request('GET', '/products', params={'per_page': 1})
        except CatalogHostError as e:
            self.logger.error(f"WooCommerce store not reachable: {e}")
            return False
        return response.status_code == 200

    def fetch_candidate_products(self, statuses: Iterable[str]) -> List[ProductRecord]:
        records: List[ProductRecord] = []
        for status in statuses:
            products = self._get_all_pages({'status': status, 'orderby': 'date', 'order': 'asc'})
            records.extend(product_to_record(product) for product in products)

        # Each status is a separate listing, so restore the global creation order
        records.sort(key=lambda r: (r.created_order or datetime.min, r.id))
        self.logger.info(f"Fetched {len(records)} candidate products")
        return records

    def fetch_products_without_primary_image(self, limit: Optional[int] = None) -> List[ProductRecord]:
        products = self._get_all_pages(
            {'status': ProductStatus.PUBLISHED.value, 'orderby': 'date', 'order': 'asc'},
            limit=limit,
            keep=lambda product: not product.get('images')
        )
        return [product_to_record(p) for p in products]

    def remove_product(self, product_id: Any) -> bool:
        response = self._request('DELETE', f"/products/{product_id}")

        if response.status_code == 200:
            return True
        if response.status_code == 410:
            # woocommerce_rest_already_trashed
            self.logger.debug(f"Product {product_id} already in trash")
            return True

        self.logger.error(f"Failed to trash product {product_id}: HTTP {response.status_code} {response.text}")
        return False

    def set_product_status(self, product_id: Any, status: str) -> bool:
        response = self._request('PUT', f"/products/{product_id}", payload={'status': status})

        if response.status_code == 200:
            return True

        self.logger.error(
            f"Failed to set status '{status}' on product {product_id}: HTTP {response.status_code} {response.text}"
        )
        return False
