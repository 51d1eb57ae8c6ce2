#!/usr/bin/env python3
"""
Command-line interface for the inventory store.

Commands operate on one ProductStore, built on first use from the global
options (--store, --store-file, --config, ...) and reused for the rest of
the process, so the interactive shell keeps its state between commands.
"""
import json
import shlex
import time
from enum import Enum
from pathlib import Path
from typing import Optional
from uuid import uuid4

import typer
from rich.console import Console
from rich.table import Table

from inventorystore.config import LogLevel, StoreKind, load_config
from inventorystore.context import Context, cancel_on_interrupt
from inventorystore.errors import (
    BulkImportError,
    apply_error_handling,
    exception_handler,
    handle_keyboard_interrupt,
)
from inventorystore.importer import export_products, load_import_file
from inventorystore.logging import configure_logging, logger
from inventorystore.models.product import ListFilter, Product, SortField, SortOrder
from inventorystore.store import ProductStore, new_store

app = typer.Typer(help="A product inventory management system", no_args_is_help=True)

SHELL_PROMPT = "inventory> "


class OutputFormat(str, Enum):
    TABLE = "table"
    JSON = "json"


class _State:
    """The store shared by every command of this process."""
    store: Optional[ProductStore] = None


state = _State()


def reset_state() -> None:
    """Forget the current store; the next command builds a new one."""
    state.store = None


def get_store() -> ProductStore:
    if state.store is None:
        raise RuntimeError("store not initialized")
    return state.store


def echo_json(data) -> None:
    typer.echo(json.dumps(data, indent=2))


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


@app.callback()
@exception_handler
def main(
    store: Optional[StoreKind] = typer.Option(None, "--store", help="Store backend"),
    store_file: Optional[str] = typer.Option(None, "--store-file", help="File path for the file store"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a TOML config file"),
    log_level: Optional[LogLevel] = typer.Option(None, "--log-level", help="Log level"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also log to this file"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Manage a product inventory stored in memory or in a JSON file."""
    if state.store is not None:
        return

    config = load_config(
        config_file,
        overrides={"store": store, "store_file": store_file, "log_level": log_level, "log_file": log_file},
    )
    configure_logging(config, log_level=log_level, debug=debug)
    state.store = new_store(config.store.value, config.store_file)
    logger.debug(f"Using {config.store.value} store")


@app.command()
def create(
    name: str = typer.Option("", "--name", help="Product name"),
    price: float = typer.Option(0.0, "--price", help="Product price"),
    quantity: int = typer.Option(0, "--quantity", help="Units in stock"),
    category: str = typer.Option("", "--category", help="Product category"),
):
    """Create a new product with a generated ID."""
    product = Product(id=str(uuid4()), name=name, price=price, quantity=quantity, category=category)
    started = time.perf_counter()
    get_store().create(product)
    logger.info(f"product created: id={product.id} duration_ms={_elapsed_ms(started):.2f}")
    echo_json(product.to_dict())


@app.command()
def get(product_id: str = typer.Argument(..., metavar="ID")):
    """Show one product as JSON."""
    echo_json(get_store().get(product_id).to_dict())


@app.command("list")
def list_products(
    category: Optional[str] = typer.Option(None, "--category", help="Only this category"),
    min_price: Optional[float] = typer.Option(None, "--min-price", help="Minimum price (inclusive)"),
    max_price: Optional[float] = typer.Option(None, "--max-price", help="Maximum price (inclusive)"),
    sort_by: Optional[SortField] = typer.Option(None, "--sort-by", help="Sort field"),
    order: SortOrder = typer.Option(SortOrder.ASC, "--order", help="Sort direction"),
    output: OutputFormat = typer.Option(OutputFormat.TABLE, "--output", "-o", help="Output format"),
):
    """List products with optional filtering and sorting."""
    products = get_store().list(
        ListFilter(category=category, min_price=min_price, max_price=max_price, sort_by=sort_by, order=order)
    )

    if output == OutputFormat.JSON:
        echo_json([p.to_dict() for p in products])
        return

    if not products:
        typer.echo("No products found.")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name")
    table.add_column("Price", justify="right")
    table.add_column("Quantity", justify="right")
    table.add_column("Category")
    for p in products:
        table.add_row(p.id, p.name, f"{p.price:.2f}", str(p.quantity), p.category)
    Console().print(table)


@app.command()
def update(
    product_id: str = typer.Argument(..., metavar="ID"),
    name: Optional[str] = typer.Option(None, "--name", help="New name"),
    price: Optional[float] = typer.Option(None, "--price", help="New price"),
    quantity: Optional[int] = typer.Option(None, "--quantity", help="New quantity"),
    category: Optional[str] = typer.Option(None, "--category", help="New category"),
):
    """Change the given fields of a product."""
    store = get_store()
    changes = {"name": name, "price": price, "quantity": quantity, "category": category}
    product = store.get(product_id).model_copy(
        update={field: value for field, value in changes.items() if value is not None}
    )
    started = time.perf_counter()
    store.update(product_id, product)
    logger.info(f"product updated: id={product_id} duration_ms={_elapsed_ms(started):.2f}")
    echo_json(product.to_dict())


@app.command()
def delete(
    product_id: str = typer.Argument(..., metavar="ID"),
    force: bool = typer.Option(False, "--force", "-f", help="Delete without confirmation"),
):
    """Delete a product."""
    if not force and not typer.confirm(f"Delete {product_id}?", default=False):
        typer.echo("aborted")
        return
    started = time.perf_counter()
    get_store().delete(product_id)
    logger.info(f"product deleted: id={product_id} duration_ms={_elapsed_ms(started):.2f}")
    typer.echo("deleted")


@app.command("import")
def import_products(
    file: Path = typer.Option(..., "--file", help="JSON array, JSON object or NDJSON file"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Give up after this many seconds"),
):
    """Import products concurrently from a JSON file."""
    products = load_import_file(file)
    ctx = Context.with_timeout(timeout, name="import") if timeout else Context(name="import")

    started = time.perf_counter()
    try:
        with cancel_on_interrupt(ctx):
            get_store().bulk_import(products, ctx=ctx)
    except BulkImportError as e:
        typer.echo(f"imported {len(products) - len(e)} of {len(products)} products")
        raise
    logger.info(f"bulk import finished: count={len(products)} duration_ms={_elapsed_ms(started):.2f}")
    typer.echo(f"imported {len(products)} products")


@app.command()
def export(
    file: Path = typer.Option(..., "--file", help="Output file"),
    category: Optional[str] = typer.Option(None, "--category", help="Only this category"),
):
    """Export products to a JSON file."""
    products = get_store().list(ListFilter(category=category))
    export_products(products, file)
    typer.echo(f"exported {len(products)} products to {file}")


@app.command()
def shell():
    """Interactive shell mode (type 'exit' or 'quit' to leave)."""
    while True:
        try:
            line = input(SHELL_PROMPT)
        except EOFError:
            typer.echo()
            return
        line = line.strip()
        if not line:
            continue
        if line in ("exit", "quit"):
            return

        try:
            args = shlex.split(line)
        except ValueError as e:
            typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
            continue
        if args[0] == "shell":
            typer.echo("already in shell mode")
            continue

        # standalone mode lets typer print usage errors itself; only the exit is trapped
        try:
            app(args=args, prog_name="invstore")
        except SystemExit as e:
            if e.code:
                logger.debug(f"Shell command exited with status {e.code}: {line}")


apply_error_handling(app)


@handle_keyboard_interrupt
def run() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run()
