"""Field checks shared by every store backend."""
from inventorystore.errors import InvalidProductError
from inventorystore.models.product import Product


def validate_product(product: Product) -> None:
    """
    Check the field invariants of a product.

    Checks run in order (name, price, quantity) and stop at the first
    violation, so only one field is ever reported.

    Raises:
        InvalidProductError: naming the offending field
    """
    if product.name == "":
        raise InvalidProductError("name", "cannot be empty", product.name)
    # written as "not >=" so NaN is rejected too
    if not product.price >= 0:
        raise InvalidProductError("price", "must be non-negative", product.price)
    if product.quantity < 0:
        raise InvalidProductError("quantity", "must be non-negative", product.quantity)


def validate_new_product(product: Product) -> None:
    """Validate a product about to be inserted; the ID must be set."""
    if product.id == "":
        raise InvalidProductError("id", "cannot be empty", product.id)
    validate_product(product)
