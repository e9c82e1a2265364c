"""
Concurrency tests for numbering and status transitions.

Each worker thread uses its own orchestrator call, and therefore its own
session and connection.  Against SQLite the writers serialise on the
database lock; against PostgreSQL (DATABASE_URL) they race on row locks and
conditional UPDATEs.

Expected Behavior:
- Concurrent creates receive distinct, gap-free numbers when none fail
- Of N concurrent accepts on one order exactly one succeeds
- Concurrent pay/cancel on one invoice leaves exactly one outcome
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from threading import Barrier

import pytest

from billing_kernel.domain.dtos import LineRequest
from billing_kernel.domain.workflow import InvoiceStatus, SalesOrderStatus
from billing_kernel.exceptions import ConflictError, InvalidTransitionError

pytestmark = pytest.mark.slow_locks

WORKERS = 8


def _run_concurrently(fn, count: int = WORKERS) -> list:
    """Start ``fn(0) .. fn(count - 1)`` together; return results or exceptions."""
    barrier = Barrier(count)

    def worker(index):
        barrier.wait()
        try:
            return fn(index)
        except Exception as exc:  # collected for assertions below
            return exc

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(worker, range(count)))


class TestConcurrentNumbering:

    def test_sales_order_numbers_are_distinct(self, orchestrator, customer, widget):
        results = _run_concurrently(
            lambda _: orchestrator.create_sales_order(
                customer.id, [LineRequest(widget.id, 1)]
            )
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert all(isinstance(e, ConflictError) for e in errors)
        numbers = [r.order_number for r in results if not isinstance(r, Exception)]
        assert len(numbers) == len(set(numbers))
        if not errors:
            assert sorted(numbers) == list(range(1, WORKERS + 1))

    def test_invoice_numbers_are_distinct(self, orchestrator, customer, widget):
        results = _run_concurrently(
            lambda _: orchestrator.create_invoice_direct(
                customer.id, [LineRequest(widget.id, 1)], date(2024, 1, 1)
            )
        )
        numbers = [r.invoice_number for r in results if not isinstance(r, Exception)]
        assert numbers
        assert len(numbers) == len(set(numbers))


class TestConcurrentTransitions:

    def test_single_winner_for_accept(self, orchestrator, customer, widget):
        order = orchestrator.create_sales_order(customer.id, [LineRequest(widget.id, 1)])

        results = _run_concurrently(
            lambda _: orchestrator.transition_sales_order(order.id, "accept")
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert all(isinstance(e, (InvalidTransitionError, ConflictError)) for e in losers)
        assert orchestrator.get_sales_order(order.id).status == SalesOrderStatus.ACCEPTED

    def test_accept_reject_race(self, orchestrator, customer, widget):
        order = orchestrator.create_sales_order(customer.id, [LineRequest(widget.id, 1)])
        planned = ["accept", "reject"] * (WORKERS // 2)

        results = _run_concurrently(
            lambda i: orchestrator.transition_sales_order(order.id, planned[i])
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        assert len(winners) == 1
        final = orchestrator.get_sales_order(order.id).status
        assert final == winners[0].status
        assert final in (SalesOrderStatus.ACCEPTED, SalesOrderStatus.REJECTED)

    def test_pay_cancel_race(self, orchestrator, customer, widget):
        invoice = orchestrator.create_invoice_direct(
            customer.id, [LineRequest(widget.id, 1)], date(2024, 1, 1)
        )
        planned = ["paid", "cancelled"] * (WORKERS // 2)

        results = _run_concurrently(
            lambda i: orchestrator.transition_invoice(invoice.id, planned[i])
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        assert len(winners) == 1
        final = orchestrator.get_invoice(invoice.id).status
        assert final == winners[0].status
        assert final in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED)
