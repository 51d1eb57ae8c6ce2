"""
conftest.py - Shared fixtures for store, importer and CLI tests

Provides one fixture per backend plus a parametrized ``store`` fixture so
contract tests run against every backend.
"""
import itertools
from pathlib import Path
from typing import Callable, Optional

import pytest

from inventorystore import main as cli_main
from inventorystore.models.product import Product
from inventorystore.store import FileStore, MemoryStore


_ids = itertools.count(1)


@pytest.fixture
def product_factory() -> Callable[..., Product]:
    """Factory fixture to build valid test products with unique IDs."""

    def create_product(
        id: Optional[str] = None,
        name: str = "Widget",
        price: float = 9.99,
        quantity: int = 10,
        category: str = "Tools",
    ) -> Product:
        if id is None:
            id = f"prod-{next(_ids):05d}"
        return Product(id=id, name=name, price=price, quantity=quantity, category=category)

    return create_product


@pytest.fixture
def store_path(tmp_path) -> Path:
    """A path for a store file that does not exist yet."""
    return tmp_path / "data" / "products.json"


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def file_store(store_path) -> FileStore:
    return FileStore(store_path)


# Parametrize store fixture to test all backends
@pytest.fixture(params=["memory_store", "file_store"])
def store(request):
    """Parametrized fixture that provides each store backend."""
    return request.getfixturevalue(request.param)


@pytest.fixture
def priced_products(product_factory):
    """Three products priced 20, 50 and 80."""
    return [
        product_factory(id="cheap", name="Pencil", price=20, quantity=7, category="Office"),
        product_factory(id="mid", name="Lamp", price=50, quantity=3, category="Home"),
        product_factory(id="dear", name="Chair", price=80, quantity=5, category="Office"),
    ]


@pytest.fixture(autouse=True)
def fresh_cli_state():
    """Every test starts without a CLI store."""
    cli_main.reset_state()
    yield
    cli_main.reset_state()
