#!/usr/bin/env python3
"""
Error handling for the inventory store.

This module provides:
1. The exception taxonomy raised by stores, the importer and configuration
2. An aggregated error for bulk imports that keeps every per-item failure
3. Global exception handling for the Typer app with user-friendly messages
"""
import functools
import logging
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple, Type

import typer

logger = logging.getLogger(__name__)


class InventoryStoreError(Exception):
    """Base class for all inventory store exceptions."""
    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code or "INVSTR-GEN-ERR"
        super().__init__(message)


class ProductNotFoundError(InventoryStoreError):
    """The requested product ID is not in the store."""
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"product not found: id={product_id}", "INVSTR-NF-ERR")


class InvalidProductError(InventoryStoreError):
    """A product field violates its invariant."""
    def __init__(self, field: str, reason: str, value: Any):
        self.field = field
        self.reason = reason
        self.value = value
        super().__init__(
            f"invalid product: field={field}, reason={reason}, value={value}",
            "INVSTR-VAL-ERR",
        )


class DuplicateProductError(InventoryStoreError):
    """A product with the same ID already exists."""
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"duplicate product: id={product_id} already exists", "INVSTR-DUP-ERR")


class OperationCancelledError(InventoryStoreError):
    """The caller's context was cancelled."""
    def __init__(self, message: str = "operation cancelled"):
        super().__init__(message, "INVSTR-CNL-ERR")


class DeadlineExceededError(OperationCancelledError):
    """The caller's context deadline passed."""
    def __init__(self, message: str = "deadline exceeded"):
        super().__init__(message)
        self.error_code = "INVSTR-DDL-ERR"


class StorageError(InventoryStoreError):
    """Error related to reading or writing the persisted file."""
    def __init__(self, message: str):
        super().__init__(message, "INVSTR-STR-ERR")


class ImportParseError(InventoryStoreError):
    """The bulk import payload could not be parsed."""
    def __init__(self, message: str):
        super().__init__(message, "INVSTR-IMP-ERR")


class ConfigError(InventoryStoreError):
    """Error related to configuration issues."""
    def __init__(self, message: str):
        super().__init__(message, "INVSTR-CFG-ERR")


class BulkImportError(InventoryStoreError):
    """
    One or more records of a bulk import failed.

    The batch is not atomic: records that did not fail were committed.
    Each failure is kept as an ``(product_id, error)`` pair so callers can
    recover the underlying kinds.
    """
    def __init__(self, failures: Sequence[Tuple[str, Exception]]):
        self.failures: List[Tuple[str, Exception]] = list(failures)
        message = "; ".join(f"id={product_id}: {error}" for product_id, error in self.failures)
        super().__init__(message, "INVSTR-BLK-ERR")

    @property
    def errors(self) -> List[Exception]:
        return [error for _, error in self.failures]

    def has(self, kind: Type[Exception]) -> bool:
        """Return True if any per-item failure is an instance of ``kind``."""
        return any(isinstance(error, kind) for error in self.errors)

    def __len__(self) -> int:
        return len(self.failures)


def generate_error_id() -> str:
    """
    Generate a unique error ID for tracking purposes.

    Returns:
        String error ID (truncated UUID)
    """
    return str(uuid.uuid4())[:8]


def get_log_file_location() -> str:
    """Return the configured log file path, or a hint when logging to console only."""
    for handler in logging.getLogger().handlers:
        filename = getattr(handler, "baseFilename", None)
        if filename:
            return str(Path(filename))
    return "application logs"


def exception_handler(func: Callable) -> Callable:
    """
    Wrap a Typer command so that failures are logged and reported cleanly.

    Known store errors show their message; anything else shows a generic
    message with a reference ID. The command then exits with status 1.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (typer.Exit, typer.Abort, typer.BadParameter):
            raise
        except Exception as e:
            error_id = generate_error_id()
            is_known_error = isinstance(e, InventoryStoreError)
            error_code = e.error_code if is_known_error else "INVSTR-UNK-ERR"

            tb_text = "".join(traceback.format_exception(*sys.exc_info()))
            logger.error(
                f"Exception occurred [ID: {error_id}] [Code: {error_code}]\n"
                f"Command: {func.__name__}\n"
                f"Error: {e}"
            )
            logger.debug(f"Traceback:\n{tb_text}")

            typer.secho("Error: ", fg=typer.colors.RED, bold=True, nl=False, err=True)
            if is_known_error:
                typer.secho(str(e), fg=typer.colors.RED, err=True)
            else:
                typer.secho(
                    f"An unexpected error occurred [ID: {error_id}].\n"
                    f"See log for details: {get_log_file_location()}",
                    fg=typer.colors.RED,
                    err=True,
                )
            raise typer.Exit(code=1)

    return wrapper


def patch_typer_commands(app: typer.Typer, decorator: Callable) -> None:
    """
    Patch all Typer commands with a decorator.

    This recursively processes the app and all subcommands.
    """
    for command in app.registered_commands:
        if callable(command.callback):
            command.callback = decorator(command.callback)

    for group in app.registered_groups:
        if group.typer_instance is not None:
            patch_typer_commands(group.typer_instance, decorator)


def handle_keyboard_interrupt(func):
    """Decorator to handle keyboard interrupts gracefully."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            typer.echo("\nOperation cancelled by user.")
            sys.exit(130)  # Standard exit code for SIGINT

    return wrapper


def apply_error_handling(app: typer.Typer) -> typer.Typer:
    """
    Apply error handling to a Typer app.

    Must be called after all commands are registered.
    """
    patch_typer_commands(app, exception_handler)
    return app
