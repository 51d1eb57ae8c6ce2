"""
store/bulk.py - Concurrent bulk import

Fans a batch of products out to a bounded pool of worker threads and
collects the per-item outcomes back on the calling thread.

    dispatcher thread --jobs queue--> N workers --results queue--> collector (caller)

Each call builds and tears down its own pool. The backends decide what a
worker does with one product by passing a ``handler``.
"""
import logging
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple

from ..context import Context
from ..errors import BulkImportError, InventoryStoreError
from ..models.product import Product

logger = logging.getLogger(__name__)

# Upper bound on worker threads per bulk import, whatever the batch size.
MAX_IMPORT_WORKERS = 10

# How long blocked queue operations wait before re-checking the context.
POLL_INTERVAL = 0.05

Failure = Tuple[str, Exception]
Handler = Callable[[Product], None]

_STOP = object()


def run_bulk_import(products: Sequence[Product], handler: Handler, ctx: Context) -> List[Failure]:
    """
    Run ``handler`` over every product using at most MAX_IMPORT_WORKERS threads.

    Args:
        products: The batch to import
        handler: Called once per product by a worker; raises to report a failure
        ctx: Cancellation signal, checked by the dispatcher, the workers and the collector

    Returns:
        ``(product_id, error)`` for every product whose handler raised, in completion order

    Raises:
        OperationCancelledError: If ``ctx`` is done before every result is collected.
            Failures collected up to that point are chained as a BulkImportError.
    """
    ctx.check()
    if not products:
        return []

    total = len(products)
    n_workers = min(MAX_IMPORT_WORKERS, total)
    jobs: "queue.Queue[object]" = queue.Queue(maxsize=n_workers)
    # Sized to the batch so a worker never blocks on a collector that has stopped draining.
    results: "queue.Queue[Tuple[str, Optional[Exception]]]" = queue.Queue(maxsize=total)

    def put_job(item: object) -> bool:
        while not ctx.done:
            try:
                jobs.put(item, timeout=POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def dispatch() -> None:
        for product in products:
            if not put_job(product):
                logger.debug("Dispatcher stopped early: context done")
                return
        for _ in range(n_workers):
            if not put_job(_STOP):
                return

    def work() -> None:
        while not ctx.done:
            try:
                item = jobs.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue
            if item is _STOP:
                return
            try:
                handler(item)
            except InventoryStoreError as e:
                results.put((item.id, e))
            except Exception as e:
                logger.exception(f"Unexpected error importing product {item.id}")
                results.put((item.id, e))
            else:
                results.put((item.id, None))

    started = time.monotonic()
    logger.debug(f"Bulk import of {total} products with {n_workers} workers")

    failures: List[Failure] = []
    received = 0
    dispatcher = threading.Thread(target=dispatch, name="bulk-import-dispatch", daemon=True)

    with ThreadPoolExecutor(max_workers=n_workers, thread_name_prefix="bulk-import") as pool:
        for _ in range(n_workers):
            pool.submit(work)
        dispatcher.start()

        while received < total:
            if ctx.done:
                break
            try:
                product_id, error = results.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue
            received += 1
            if error is not None:
                failures.append((product_id, error))
    # Leaving the executor waits for in-flight handlers to finish.
    dispatcher.join()

    if received < total:
        while True:
            try:
                product_id, error = results.get_nowait()
            except queue.Empty:
                break
            if error is not None:
                failures.append((product_id, error))
        cancel_error = ctx.err()
        logger.warning(f"Bulk import interrupted: {cancel_error}")
        if failures:
            raise cancel_error from BulkImportError(failures)
        raise cancel_error

    logger.debug(
        f"Bulk import finished: {total - len(failures)} ok, {len(failures)} failed "
        f"in {(time.monotonic() - started) * 1000:.1f} ms"
    )
    return failures
