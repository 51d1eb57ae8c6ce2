"""
store/file.py - JSON File Product Store

This module provides a FileStore that keeps the same in-memory map as
MemoryStore and mirrors it to a JSON file. The file is loaded once at
construction and rewritten atomically after every successful mutation.

On-disk format: a UTF-8 JSON array of products sorted by ID, e.g.

    [
      {"id": "a1", "name": "Laptop", "price": 999.0, "quantity": 3, "category": "Electronics"}
    ]
"""

import json
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from ..context import Context, background
from ..errors import (
    BulkImportError,
    ConfigError,
    DuplicateProductError,
    OperationCancelledError,
    StorageError,
)
from ..models.product import PRODUCT_LIST, Product
from ..models.validation import validate_new_product
from .atomic import atomic_write_text
from .bulk import Failure, run_bulk_import
from .memory import MemoryStore

logger = logging.getLogger(__name__)


def dump_products(products: Sequence[Product]) -> str:
    """Render products as the indented JSON array used on disk and for exports."""
    return json.dumps([p.to_dict() for p in products], indent=2) + "\n"


class FileStore(MemoryStore):
    """
    A product store persisted to a single JSON file.

    Only this process's lock guards the file; concurrent writers in other
    processes are not detected.

    If saving fails, the mutating call raises StorageError but the change
    stays in memory and will be written by the next successful save.
    """

    def __init__(self, path: Union[str, Path]):
        """
        Load the store from ``path``.

        A missing or empty file gives an empty store.

        Raises:
            ConfigError: If ``path`` is empty
            StorageError: If the file cannot be read or does not hold a JSON array of products
        """
        if path is None or not Path(path).parts:
            raise ConfigError("file path required for file store")
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        with self._lock.write_locked():
            try:
                raw = self.path.read_text(encoding="utf-8-sig")
            except FileNotFoundError:
                logger.debug(f"No store file at {self.path}, starting empty")
                return
            except OSError as e:
                raise StorageError(f"Failed to read {self.path}: {e}") from e
            except UnicodeDecodeError as e:
                raise StorageError(f"Malformed store file {self.path}: not UTF-8: {e}") from e

            if not raw.strip():
                return

            try:
                products = PRODUCT_LIST.validate_json(raw, strict=True)
            except ValidationError as e:
                raise StorageError(f"Malformed store file {self.path}: {e}") from e

            for product in products:
                self._products[product.id] = product
            logger.info(f"Loaded {len(self._products)} products from {self.path}")

    def _persist(self) -> None:
        """Write every record, sorted by ID, to the store file."""
        products = sorted(self._products.values(), key=lambda p: p.id)
        try:
            atomic_write_text(self.path, dump_products(products))
        except OSError as e:
            logger.error(f"Error saving products to {self.path}: {e}")
            raise StorageError(f"Failed to save products: {e}") from e
        logger.debug(f"Saved {len(products)} products to {self.path}")

    def bulk_import(self, products: Sequence[Product], ctx: Optional[Context] = None) -> None:
        """
        Validate a batch on the worker pool, then merge it with one save.

        Workers only stage records in a private map, catching duplicates
        inside the batch. A single holder of the write lock then merges the
        staged records in batch order, rejecting IDs already in the store,
        and writes the file once.

        If ``ctx`` is cancelled part-way, the records staged so far are
        still merged and saved before the cancellation error is raised.
        """
        ctx = ctx or background()
        ctx.check()
        if not products:
            return

        staged: Dict[str, Product] = {}
        staged_lock = threading.Lock()

        def stage(product: Product) -> None:
            validate_new_product(product)
            with staged_lock:
                if product.id in staged:
                    raise DuplicateProductError(product.id)
                staged[product.id] = product

        cancel_error: Optional[OperationCancelledError] = None
        try:
            failures = run_bulk_import(products, stage, ctx)
        except OperationCancelledError as e:
            # cancellation: keep whatever was staged before it
            cancel_error = e
            cause = e.__cause__
            failures = list(cause.failures) if isinstance(cause, BulkImportError) else []

        self._merge(staged, products, failures)

        if cancel_error is not None:
            if failures:
                raise cancel_error from BulkImportError(failures)
            raise cancel_error
        if failures:
            raise BulkImportError(failures)

    def _merge(self, staged: Dict[str, Product], products: Sequence[Product], failures: List[Failure]) -> None:
        """Move staged records into the store and save once. Appends rejected IDs to ``failures``."""
        with self._lock.write_locked():
            for product in products:
                staged_product = staged.pop(product.id, None)
                if staged_product is None:
                    continue
                if product.id in self._products:
                    failures.append((product.id, DuplicateProductError(product.id)))
                    continue
                self._products[product.id] = staged_product
            try:
                self._persist()
            except StorageError as e:
                if failures:
                    raise e from BulkImportError(failures)
                raise
