"""
tests/test_bulk_import.py - Concurrent bulk import tests

Covers the worker pool on its own and the bulk_import operation of every
backend: partial success, duplicate detection, cancellation and deadlines.
"""
import threading
import time
from unittest.mock import patch

import pytest

from inventorystore.context import Context
from inventorystore.errors import (
    BulkImportError,
    DeadlineExceededError,
    DuplicateProductError,
    InvalidProductError,
    OperationCancelledError,
    StorageError,
)
from inventorystore.store import MAX_IMPORT_WORKERS, FileStore, MemoryStore
from inventorystore.store import file as file_module
from inventorystore.store.bulk import run_bulk_import


def cancel_after(ctx: Context, seconds: float) -> threading.Timer:
    timer = threading.Timer(seconds, ctx.cancel)
    timer.start()
    return timer


class TestRunBulkImport:

    def test_all_items_reach_the_handler(self, product_factory):
        products = [product_factory() for _ in range(25)]
        seen = []
        lock = threading.Lock()

        def handler(product):
            with lock:
                seen.append(product.id)

        assert run_bulk_import(products, handler, Context()) == []
        assert sorted(seen) == sorted(p.id for p in products)

    def test_empty_batch(self):
        def handler(product):
            raise AssertionError("handler should not run")

        assert run_bulk_import([], handler, Context()) == []

    def test_failures_are_reported_per_item(self, product_factory):
        products = [product_factory(id=f"p{i}") for i in range(6)]

        def handler(product):
            if product.id in ("p1", "p4"):
                raise DuplicateProductError(product.id)

        failures = run_bulk_import(products, handler, Context())
        assert sorted(product_id for product_id, _ in failures) == ["p1", "p4"]
        assert all(isinstance(error, DuplicateProductError) for _, error in failures)

    def test_unexpected_exceptions_become_failures(self, product_factory):
        products = [product_factory(id="ok"), product_factory(id="boom")]

        def handler(product):
            if product.id == "boom":
                raise ValueError("kaboom")

        failures = run_bulk_import(products, handler, Context())
        assert len(failures) == 1
        assert failures[0][0] == "boom"
        assert isinstance(failures[0][1], ValueError)

    def test_never_more_than_ten_workers(self, product_factory):
        products = [product_factory() for _ in range(60)]
        active = 0
        peak = 0
        threads = set()
        lock = threading.Lock()

        def handler(product):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
                threads.add(threading.get_ident())
            time.sleep(0.01)
            with lock:
                active -= 1

        run_bulk_import(products, handler, Context())
        assert MAX_IMPORT_WORKERS == 10
        assert peak <= MAX_IMPORT_WORKERS
        assert len(threads) <= MAX_IMPORT_WORKERS

    def test_small_batches_use_fewer_workers(self, product_factory):
        products = [product_factory() for _ in range(3)]
        threads = set()
        lock = threading.Lock()

        def handler(product):
            with lock:
                threads.add(threading.get_ident())
            time.sleep(0.01)

        run_bulk_import(products, handler, Context())
        assert 1 <= len(threads) <= 3

    def test_cancelled_before_start(self, product_factory):
        ctx = Context()
        ctx.cancel()
        calls = []

        with pytest.raises(OperationCancelledError):
            run_bulk_import([product_factory()], calls.append, ctx)
        assert calls == []

    def test_cancel_mid_run_stops_dispatch(self, product_factory):
        products = [product_factory() for _ in range(100)]
        handled = []
        lock = threading.Lock()

        def handler(product):
            time.sleep(0.02)
            with lock:
                handled.append(product.id)

        ctx = Context()
        timer = cancel_after(ctx, 0.05)
        with pytest.raises(OperationCancelledError) as exc_info:
            run_bulk_import(products, handler, ctx)
        timer.join()

        assert not isinstance(exc_info.value, DeadlineExceededError)
        assert len(handled) < len(products)

    def test_failures_before_cancel_are_chained(self, product_factory):
        products = [product_factory(id="bad")] + [product_factory() for _ in range(40)]

        def handler(product):
            if product.id == "bad":
                raise InvalidProductError("name", "cannot be empty", "")
            time.sleep(0.05)

        ctx = Context()
        timer = cancel_after(ctx, 0.1)
        with pytest.raises(OperationCancelledError) as exc_info:
            run_bulk_import(products, handler, ctx)
        timer.join()

        cause = exc_info.value.__cause__
        assert isinstance(cause, BulkImportError)
        assert cause.has(InvalidProductError)
        assert [product_id for product_id, _ in cause.failures] == ["bad"]

    def test_deadline(self, product_factory):
        products = [product_factory() for _ in range(100)]

        def handler(product):
            time.sleep(0.02)

        with pytest.raises(DeadlineExceededError):
            run_bulk_import(products, handler, Context.with_timeout(0.05))


class TestStoreBulkImport:

    def test_imports_every_valid_product(self, store, product_factory):
        products = [product_factory() for _ in range(30)]

        store.bulk_import(products)

        assert len(store.list()) == 30
        for product in products:
            assert store.get(product.id) == product

    def test_empty_batch_is_a_no_op(self, store):
        store.bulk_import([])
        assert store.list() == []

    def test_duplicate_within_batch(self, store, product_factory):
        first = product_factory(id="twin", name="First")
        second = product_factory(id="twin", name="Second")

        with pytest.raises(BulkImportError) as exc_info:
            store.bulk_import([first, second, product_factory(id="solo")])

        assert exc_info.value.has(DuplicateProductError)
        assert len(exc_info.value) == 1
        assert store.get("twin") in (first, second)
        assert {p.id for p in store.list()} == {"twin", "solo"}

    def test_duplicate_of_existing_record(self, store, product_factory):
        original = product_factory(id="taken", name="Original")
        store.create(original)

        with pytest.raises(BulkImportError) as exc_info:
            store.bulk_import([product_factory(id="taken", name="Newcomer"), product_factory(id="fresh")])

        assert [product_id for product_id, _ in exc_info.value.failures] == ["taken"]
        assert store.get("taken") == original
        assert store.get("fresh").id == "fresh"

    def test_invalid_items_do_not_block_valid_ones(self, store, product_factory):
        products = [
            product_factory(id="good"),
            product_factory(id="nameless", name=""),
            product_factory(id="negative", price=-1),
            product_factory(id="", name="No ID"),
        ]

        with pytest.raises(BulkImportError) as exc_info:
            store.bulk_import(products)

        err = exc_info.value
        assert len(err) == 3
        assert all(isinstance(e, InvalidProductError) for e in err.errors)
        assert {product_id for product_id, _ in err.failures} == {"nameless", "negative", ""}
        assert [p.id for p in store.list()] == ["good"]

    def test_cancelled_context_imports_nothing(self, store, product_factory):
        ctx = Context()
        ctx.cancel()

        with pytest.raises(OperationCancelledError):
            store.bulk_import([product_factory() for _ in range(5)], ctx=ctx)

        assert store.list() == []

    def test_expired_deadline_imports_nothing(self, store, product_factory):
        with pytest.raises(DeadlineExceededError):
            store.bulk_import([product_factory()], ctx=Context.with_timeout(0))
        assert store.list() == []


class SlowMemoryStore(MemoryStore):

    def create(self, product, ctx=None):
        time.sleep(0.02)
        super().create(product, ctx=ctx)


class TestMemoryStoreBulkImport:

    def test_cancel_mid_run_keeps_what_was_committed(self, product_factory):
        store = SlowMemoryStore()
        products = [product_factory() for _ in range(100)]
        ctx = Context()
        timer = cancel_after(ctx, 0.05)

        with pytest.raises(OperationCancelledError):
            store.bulk_import(products, ctx=ctx)
        timer.join()

        committed = store.list()
        assert len(committed) < len(products)
        originals = {p.id: p for p in products}
        for product in committed:
            assert originals[product.id] == product

    def test_records_are_visible_while_import_runs(self, product_factory):
        store = SlowMemoryStore()
        products = [product_factory() for _ in range(50)]
        observed = []

        def watch():
            time.sleep(0.05)
            observed.append(len(store))

        watcher = threading.Thread(target=watch)
        watcher.start()
        store.bulk_import(products)
        watcher.join()

        assert 0 < observed[0] <= 50
        assert len(store) == 50


class TestFileStoreBulkImport:

    @pytest.fixture
    def persist_calls(self, monkeypatch):
        calls = []
        original = FileStore._persist

        def counting_persist(self):
            calls.append(len(self._products))
            original(self)

        monkeypatch.setattr(FileStore, "_persist", counting_persist)
        return calls

    def test_saves_once_per_batch(self, file_store, store_path, product_factory, persist_calls):
        file_store.bulk_import([product_factory() for _ in range(40)])

        assert persist_calls == [40]
        assert len(FileStore(store_path).list()) == 40

    def test_saves_once_even_with_failures(self, file_store, store_path, product_factory, persist_calls):
        with pytest.raises(BulkImportError):
            file_store.bulk_import([product_factory(id="a"), product_factory(id="a"), product_factory(name="")])

        assert persist_calls == [1]
        assert [p.id for p in FileStore(store_path).list()] == ["a"]

    def test_cancel_mid_run_saves_staged_records(self, file_store, store_path, product_factory, monkeypatch):
        original_validate = file_module.validate_new_product

        def slow_validate(product):
            time.sleep(0.02)
            original_validate(product)

        monkeypatch.setattr(file_module, "validate_new_product", slow_validate)
        products = [product_factory() for _ in range(100)]
        ctx = Context()
        timer = cancel_after(ctx, 0.05)

        with pytest.raises(OperationCancelledError):
            file_store.bulk_import(products, ctx=ctx)
        timer.join()

        in_memory = file_store.list()
        assert len(in_memory) < len(products)
        assert FileStore(store_path).list() == in_memory

    def test_failed_save_raises_storage_error(self, file_store, store_path, product_factory):
        products = [product_factory() for _ in range(5)]

        with patch("os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError) as exc_info:
                file_store.bulk_import(products)

        assert isinstance(exc_info.value.__cause__, OSError)
        assert not store_path.exists()
        # merged records stay in memory and reach the file on the next save
        assert len(file_store.list()) == 5
        file_store.create(product_factory(id="later"))
        assert len(FileStore(store_path).list()) == 6

    def test_failed_save_chains_item_failures(self, file_store, product_factory):
        products = [product_factory(id="ok"), product_factory(id="bad", price=-1), product_factory(id="ok")]

        with patch("os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError) as exc_info:
                file_store.bulk_import(products)

        cause = exc_info.value.__cause__
        assert isinstance(cause, BulkImportError)
        assert sorted(product_id for product_id, _ in cause.failures) == ["bad", "ok"]
        assert cause.has(InvalidProductError)
        assert cause.has(DuplicateProductError)
        assert [p.id for p in file_store.list()] == ["ok"]
