#!/usr/bin/env python3
"""
Thread-safe in-memory store for the inventory store.

This module provides a memory-based implementation of the ProductStore
interface. The ID -> Product map is guarded by a reader/writer lock so
reads run concurrently while mutations are serialized.
"""
import logging
from typing import Dict, List, Optional, Sequence

from ..context import Context, background
from ..errors import BulkImportError, DuplicateProductError, ProductNotFoundError
from ..models.product import ListFilter, Product, SortField, SortOrder
from ..models.validation import validate_new_product, validate_product
from .adapter import ProductStore
from .bulk import run_bulk_import
from .locks import ReadWriteLock

logger = logging.getLogger(__name__)


_SORT_KEYS = {
    SortField.NAME: lambda p: p.name,
    SortField.PRICE: lambda p: p.price,
    SortField.QUANTITY: lambda p: p.quantity,
}


def apply_filter(products: List[Product], filter: ListFilter) -> List[Product]:
    """
    Filter and sort a snapshot of products.

    Ties on the sort field are broken by ID ascending, which is also the
    order used when no sort field is requested.
    """
    out = [p for p in products if filter.matches(p)]
    out.sort(key=lambda p: p.id)
    if filter.sort_by is not None:
        # list.sort is stable, so the ID order survives among equal keys
        out.sort(key=_SORT_KEYS[filter.sort_by], reverse=filter.order == SortOrder.DESC)
    return out


class MemoryStore(ProductStore):
    """
    Volatile product store.

    Records are immutable, so the store can hand out the stored instances
    without callers being able to change its state.
    """

    def __init__(self) -> None:
        self._products: Dict[str, Product] = {}
        self._lock = ReadWriteLock()

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._products)

    def _persist(self) -> None:
        """Called with the write lock held after every successful mutation."""

    def create(self, product: Product, ctx: Optional[Context] = None) -> None:
        (ctx or background()).check()
        validate_new_product(product)

        with self._lock.write_locked():
            if product.id in self._products:
                raise DuplicateProductError(product.id)
            self._products[product.id] = product
            self._persist()
        logger.debug(f"Created product {product.id}")

    def get(self, product_id: str, ctx: Optional[Context] = None) -> Product:
        (ctx or background()).check()

        with self._lock.read_locked():
            try:
                return self._products[product_id]
            except KeyError:
                raise ProductNotFoundError(product_id) from None

    def update(self, product_id: str, product: Product, ctx: Optional[Context] = None) -> None:
        (ctx or background()).check()
        validate_product(product)

        with self._lock.write_locked():
            if product_id not in self._products:
                raise ProductNotFoundError(product_id)
            self._products[product_id] = product.model_copy(update={"id": product_id})
            self._persist()
        logger.debug(f"Updated product {product_id}")

    def delete(self, product_id: str, ctx: Optional[Context] = None) -> None:
        (ctx or background()).check()

        with self._lock.write_locked():
            if product_id not in self._products:
                raise ProductNotFoundError(product_id)
            del self._products[product_id]
            self._persist()
        logger.debug(f"Deleted product {product_id}")

    def list(self, filter: Optional[ListFilter] = None, ctx: Optional[Context] = None) -> List[Product]:
        (ctx or background()).check()

        with self._lock.read_locked():
            snapshot = list(self._products.values())
        return apply_filter(snapshot, filter or ListFilter())

    def bulk_import(self, products: Sequence[Product], ctx: Optional[Context] = None) -> None:
        """
        Insert a batch by running ``create`` for each record on the worker pool.

        Successful inserts are visible to other callers as soon as each
        worker's ``create`` returns.
        """
        ctx = ctx or background()
        failures = run_bulk_import(products, lambda p: self.create(p, ctx=ctx), ctx)
        if failures:
            raise BulkImportError(failures)
