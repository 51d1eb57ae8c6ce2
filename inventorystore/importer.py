#!/usr/bin/env python3
"""
importer.py - Reading import payloads and writing exports

Import payloads are detected by their first non-whitespace character:

- ``[``: a JSON array of product objects
- ``{``: a single JSON object, or newline-delimited JSON (one object per line)

Parsing is all-or-nothing: any bad line aborts the import before a single
product reaches the store. Field types must match exactly ("12" is not a
price, 1.0 is not a quantity). Field invariants (empty name, negative
price...) are not checked here; the store reports those per item.
"""

import logging
from pathlib import Path
from typing import List, Sequence, Union

from pydantic import ValidationError

from inventorystore.errors import ImportParseError, StorageError
from inventorystore.models.product import PRODUCT_LIST, Product
from inventorystore.store.atomic import atomic_write_text
from inventorystore.store.file import dump_products

logger = logging.getLogger(__name__)


def _describe(error: ValidationError) -> str:
    """Condense a pydantic error to one line."""
    parts = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"])
        parts.append(f"{location}: {err['msg']}" if location else err["msg"])
    return "; ".join(parts)


def _parse_lines(text: str) -> List[Product]:
    products = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            products.append(Product.model_validate_json(line, strict=True))
        except ValidationError as e:
            raise ImportParseError(f"line {line_number}: {_describe(e)}") from e
    return products


def parse_products(data: Union[bytes, str]) -> List[Product]:
    """
    Parse an import payload into products.

    Args:
        data: Raw file content; bytes are decoded as UTF-8 (a BOM is allowed)

    Returns:
        The products in payload order

    Raises:
        ImportParseError: If the payload is empty, not UTF-8 or not valid for its format
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ImportParseError(f"import file is not UTF-8: {e}") from e

    text = data.lstrip()
    if not text:
        raise ImportParseError("empty import file")

    if text[0] == "[":
        try:
            return PRODUCT_LIST.validate_json(text, strict=True)
        except ValidationError as e:
            raise ImportParseError(_describe(e)) from e

    if text[0] == "{":
        # one object, possibly spread over several lines
        try:
            return [Product.model_validate_json(text, strict=True)]
        except ValidationError:
            pass
        return _parse_lines(data)

    raise ImportParseError("unsupported JSON format for import")


def load_import_file(path: Union[str, Path]) -> List[Product]:
    """
    Read and parse an import file.

    Raises:
        StorageError: If the file cannot be read
        ImportParseError: If its content cannot be parsed
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise StorageError(f"Failed to read import file {path}: {e}") from e
    products = parse_products(data)
    logger.debug(f"Parsed {len(products)} products from {path}")
    return products


def export_products(products: Sequence[Product], path: Union[str, Path]) -> None:
    """
    Write products to ``path`` as a JSON array, replacing it atomically.

    Raises:
        StorageError: If the file cannot be written
    """
    try:
        atomic_write_text(path, dump_products(products))
    except OSError as e:
        raise StorageError(f"Failed to export products to {path}: {e}") from e
    logger.info(f"Exported {len(products)} products to {path}")
