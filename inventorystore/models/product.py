from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, TypeAdapter


class Product(BaseModel):
    """One inventory record. Immutable; use ``model_copy(update=...)`` to change fields."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: str = ""
    price: float = 0.0
    quantity: int = 0
    category: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted JSON representation."""
        return self.model_dump()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        """Create a Product from dictionary data."""
        return cls.model_validate(data)


class SortField(str, Enum):
    """Fields ``list`` can sort by."""
    NAME = "name"
    PRICE = "price"
    QUANTITY = "quantity"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ListFilter(BaseModel):
    """
    Filter and sort options for listing products.

    Price bounds are inclusive. An empty category means no category filter.
    """

    category: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    sort_by: Optional[SortField] = None
    order: SortOrder = SortOrder.ASC

    def matches(self, product: Product) -> bool:
        if self.category and product.category != self.category:
            return False
        if self.min_price is not None and product.price < self.min_price:
            return False
        if self.max_price is not None and product.price > self.max_price:
            return False
        return True


# Parses a JSON array of products (store files, array-shaped imports).
PRODUCT_LIST = TypeAdapter(List[Product])
