"""
True concurrency tests for per-item serialization.

Many threads hit the same item at once, each through its own connection and
unit of work.  Against SQLite the writers serialize on BEGIN IMMEDIATE;
against PostgreSQL (STOCK_TEST_DATABASE_URL) on the item row lock.

Run with:
    pytest tests/concurrency -v -m concurrency
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from stock_kernel.domain.dtos import ApplicationUpdate
from stock_kernel.exceptions import InsufficientStockError
from stock_kernel.selectors import ApplicationSelector

pytestmark = [pytest.mark.concurrency]


def _run_concurrently(fn, count: int) -> list:
    """Start ``count`` calls of ``fn(i)`` behind a barrier; collect results or errors."""
    barrier = Barrier(count)

    def _worker(i):
        barrier.wait()
        try:
            return fn(i)
        except Exception as exc:  # collected for assertions
            return exc

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(_worker, range(count)))


class TestConcurrentCreates:
    """N concurrent dose=1 creates against stock K < N."""

    @pytest.mark.parametrize("threads, stock", [(10, 4), (8, 0), (6, 6)])
    def test_exactly_stock_many_succeed(self, engine, database, make_item, stock_of, threads, stock):
        item = make_item(stock)

        results = _run_concurrently(
            lambda i: engine.create_application(f"cow-{i}", item.id, 1),
            threads,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        successes = [r for r in results if not isinstance(r, Exception)]
        assert len(successes) == min(stock, threads)
        assert len(failures) == threads - min(stock, threads)
        assert all(isinstance(f, InsufficientStockError) for f in failures)
        assert stock_of(item.id) == stock - len(successes)

        with database.session_scope() as session:
            doses = sum(
                a.dose_quantity
                for a in ApplicationSelector(session).list_applications(item.id)
            )
        assert doses + stock_of(item.id) == stock


class TestConcurrentMoves:
    """Opposing moves between two items must neither deadlock nor lose stock."""

    def test_cross_moves_preserve_totals(self, engine, make_item, stock_of):
        a = make_item(20, name="A")
        b = make_item(20, name="B")
        on_a = [engine.create_application(f"a-{i}", a.id, 1) for i in range(4)]
        on_b = [engine.create_application(f"b-{i}", b.id, 1) for i in range(4)]

        def _move(i):
            if i % 2 == 0:
                return engine.update_application(on_a[i // 2].id, ApplicationUpdate(item_id=b.id))
            return engine.update_application(on_b[i // 2].id, ApplicationUpdate(item_id=a.id))

        results = _run_concurrently(_move, 8)

        assert not [r for r in results if isinstance(r, Exception)]
        # Four moved each way: balances are back where they started
        assert stock_of(a.id) == 16
        assert stock_of(b.id) == 16

    def test_concurrent_delete_and_create(self, engine, make_item, stock_of):
        item = make_item(1)
        existing = engine.create_application("cow-0", item.id, 1)

        def _op(i):
            if i == 0:
                return engine.delete_application(existing.id)
            return engine.create_application(f"cow-{i}", item.id, 1)

        results = _run_concurrently(_op, 4)

        assert results[0] is True
        created = [r for r in results[1:] if not isinstance(r, Exception)]
        assert len(created) <= 1
        assert stock_of(item.id) == 1 - len(created)
