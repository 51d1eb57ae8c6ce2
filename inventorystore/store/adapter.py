"""
store/adapter.py - Product Store Interface

This module defines the abstract ProductStore interface that every storage
backend implements, so that the CLI and tests can work with any backend.
"""

import abc
from typing import List, Optional, Sequence

from ..context import Context
from ..models.product import ListFilter, Product


class ProductStore(abc.ABC):
    """
    Abstract base class for product stores.

    All operations are synchronous and safe to call from many threads at
    once. Each one checks ``ctx`` first and raises its cancellation error
    without touching any lock if the context is already done.
    """

    @abc.abstractmethod
    def create(self, product: Product, ctx: Optional[Context] = None) -> None:
        """
        Insert a new product.

        Raises:
            InvalidProductError: If the ID is empty or a field is invalid
            DuplicateProductError: If a product with the same ID exists
        """

    @abc.abstractmethod
    def get(self, product_id: str, ctx: Optional[Context] = None) -> Product:
        """
        Get a single product by ID.

        Raises:
            ProductNotFoundError: If no product has this ID
        """

    @abc.abstractmethod
    def update(self, product_id: str, product: Product, ctx: Optional[Context] = None) -> None:
        """
        Replace an existing product. The stored record takes ``product_id``
        as its ID whatever ``product.id`` says.

        Raises:
            InvalidProductError: If a field is invalid
            ProductNotFoundError: If no product has this ID
        """

    @abc.abstractmethod
    def delete(self, product_id: str, ctx: Optional[Context] = None) -> None:
        """
        Remove a product.

        Raises:
            ProductNotFoundError: If no product has this ID
        """

    @abc.abstractmethod
    def list(self, filter: Optional[ListFilter] = None, ctx: Optional[Context] = None) -> List[Product]:
        """
        Return a consistent snapshot of the products matching ``filter``,
        sorted as it requests.
        """

    @abc.abstractmethod
    def bulk_import(self, products: Sequence[Product], ctx: Optional[Context] = None) -> None:
        """
        Insert many products concurrently.

        The batch is not atomic: valid records are committed even when
        others fail.

        Raises:
            BulkImportError: If one or more records failed
            OperationCancelledError: If ``ctx`` was cancelled before the batch finished
        """
