"""Inventory search strategies.

Both strategies expose ``search(criteria) -> List[Product]``, ``catalog()`` and ``close()``.
The local strategy filters an in-memory dataset and cannot fail; the remote strategy
delegates to an HTTP endpoint and raises InventoryError on any failure, so an outage is
never mistaken for "no matching parts".
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional, Sequence, Union

import httpx
from pydantic import ValidationError

from .catalog_loader import CatalogLoader
from .config import INVENTORY_REMOTE, Settings
from .criteria import SearchCriteria
from .models import Product
from .utils import normalize_text, singular_variants

logger = logging.getLogger("autoparts.inventory")


class InventoryError(RuntimeError):
    """Remote inventory could not be queried (HTTP status, transport, timeout or payload)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def build_search_blob(product: Product) -> str:
    """Lowercase id + name + compatibility + category + description used for matching."""
    parts = [product.id, product.name, *product.compatible_models, product.category, product.description]
    return normalize_text(" ".join(part for part in parts if part))


def matches_blob(blob: str, criteria: SearchCriteria) -> bool:
    """Every supplied field must appear in the blob; absent fields always match.

    A supplied field that normalizes to nothing (punctuation only) matches nothing.
    """
    if criteria.part_name:
        term = normalize_text(criteria.part_name)
        if not term or not any(variant in blob for variant in singular_variants(term)):
            return False
    for value in (criteria.make, criteria.model):
        if not value:
            continue
        term = normalize_text(value)
        if not term or term not in blob:
            return False
    return True


class LocalInventory:
    """Predicate filtering over a read-only product list."""

    def __init__(
        self,
        products: Sequence[Product],
        min_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._products = tuple(products)
        self._blobs = tuple(build_search_blob(product) for product in self._products)
        self._min_delay = max(0.0, min_delay)
        self._sleep = sleep

    def catalog(self) -> List[Product]:
        return list(self._products)

    def close(self) -> None:
        pass

    def search(self, criteria: SearchCriteria) -> List[Product]:
        """Purpose: Return catalog products matching all supplied criteria, in catalog order.
        Side Effects / State: Sleeps so the call lasts at least ``min_delay`` seconds,
            which keeps instant local answers from flickering in the UI.
        Failure Modes: None; no match is an empty list.
        """
        started = time.monotonic()
        results = [
            product for product, blob in zip(self._products, self._blobs) if matches_blob(blob, criteria)
        ]
        logger.info("inventory=local criteria=%s results=%d", criteria.to_dict(), len(results))
        remaining = self._min_delay - (time.monotonic() - started)
        if remaining > 0:
            self._sleep(remaining)
        return results


class RemoteInventory:
    """Delegates searches to ``GET <base_url>?part=&make=&model=`` returning a Product array."""

    def __init__(self, base_url: str, timeout: float = 30.0, client: Optional[httpx.Client] = None) -> None:
        self._base_url = base_url.strip()
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self._catalog: Optional[List[Product]] = None

    def search(self, criteria: SearchCriteria) -> List[Product]:
        params: Dict[str, str] = {}
        if criteria.part_name:
            params["part"] = criteria.part_name
        if criteria.make:
            params["make"] = criteria.make
        if criteria.model:
            params["model"] = criteria.model
        products = self._fetch(params)
        logger.info("inventory=remote params=%s results=%d", params, len(products))
        return products

    def catalog(self) -> List[Product]:
        """Full catalog snapshot, fetched once and cached after the first success."""
        if self._catalog is None:
            self._catalog = self._fetch({})
            logger.info("inventory=remote catalog_loaded=%d", len(self._catalog))
        return list(self._catalog)

    def close(self) -> None:
        """Release the pooled HTTP connections; the inventory owns its client."""
        self._client.close()

    def _fetch(self, params: Dict[str, str]) -> List[Product]:
        """Purpose: Issue the GET and decode the JSON array into Product records.
        Failure Modes: Non-2xx status, transport errors, timeouts, non-JSON bodies,
            non-array payloads and invalid product records all raise InventoryError.
        """
        try:
            response = self._client.get(self._base_url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error("inventory=remote status=%s url=%s", status, self._base_url)
            raise InventoryError(f"Inventory service returned HTTP {status}", status_code=status) from exc
        except httpx.RequestError as exc:
            logger.error("inventory=remote request_failed error=%s", exc)
            raise InventoryError(f"Inventory service unreachable: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("inventory=remote malformed_json body=%r", response.text[:200])
            raise InventoryError("Inventory service returned malformed JSON") from exc
        if not isinstance(data, list):
            raise InventoryError("Inventory service did not return a product array")
        try:
            return [Product.model_validate(item) for item in data]
        except ValidationError as exc:
            logger.error("inventory=remote invalid_product error=%s", exc)
            raise InventoryError("Inventory service returned invalid products") from exc


Inventory = Union[LocalInventory, RemoteInventory]


def build_inventory(
    settings: Settings,
    products: Optional[Sequence[Product]] = None,
    client: Optional[httpx.Client] = None,
) -> Inventory:
    """Select the strategy from configuration; results from both are never mixed."""
    if settings.use_remote_inventory:
        return RemoteInventory(settings.inventory_url, timeout=settings.request_timeout, client=client)
    if settings.inventory_mode == INVENTORY_REMOTE:
        logger.warning("inventory=remote requested without INVENTORY_URL; using local dataset")
    if products is None:
        products, _ = CatalogLoader(settings.catalog_path).load()
    return LocalInventory(products, min_delay=settings.min_search_delay)
