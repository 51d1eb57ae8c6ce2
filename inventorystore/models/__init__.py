from inventorystore.models.product import ListFilter, Product, SortField, SortOrder
from inventorystore.models.validation import validate_new_product, validate_product

__all__ = [
    "ListFilter",
    "Product",
    "SortField",
    "SortOrder",
    "validate_new_product",
    "validate_product",
]
