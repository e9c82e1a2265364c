"""
Tests for billing_kernel.logging_config.

Covers the JSON line format, document context binding, the fields a
billing error contributes to a failure line, and the lifecycle events the
orchestrator emits for orders and invoices.
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from billing_kernel.domain.dtos import LineRequest
from billing_kernel.domain.workflow import InvoiceStatus, SalesOrderStatus
from billing_kernel.exceptions import (
    ConflictError,
    InvalidTransitionError,
    OrderNotAcceptableError,
)
from billing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture
def log_stream():
    """A fresh JSON handler on the billing_kernel logger; yields a reader."""
    reset_logging()
    stream = StringIO()
    configure_logging(handler=logging.StreamHandler(stream), level="DEBUG")

    def _lines() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield _lines
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _log_failure(exc: Exception) -> None:
    try:
        raise exc
    except Exception:
        get_logger("test").warning("operation_failed", exc_info=True)


class TestJsonLines:

    def test_one_object_per_record(self, log_stream):
        logger = get_logger("services.invoice")
        logger.info("invoice_created", extra={"invoice_number": 7, "total": 23600})
        logger.debug("transaction_committed")

        first, second = log_stream()
        assert first["message"] == "invoice_created"
        assert first["logger"] == "billing_kernel.services.invoice"
        assert first["level"] == "INFO"
        assert first["invoice_number"] == 7
        assert first["total"] == 23600
        assert "ts" in first
        assert second["level"] == "DEBUG"

    def test_billing_values_serialised(self, log_stream):
        item_id = uuid4()
        get_logger("test").info(
            "line_resolved",
            extra={
                "inventory_item_id": item_id,
                "tax_rate": Decimal("18.00"),
                "status": SalesOrderStatus.ACCEPTED,
                "due_date": date(2024, 1, 15),
            },
        )
        (record,) = log_stream()
        assert record["inventory_item_id"] == str(item_id)
        assert record["tax_rate"] == "18.00"
        assert record["status"] == "ACCEPTED"
        assert record["due_date"] == "2024-01-15"

    def test_level_name_from_config(self, log_stream):
        assert logging.getLogger("billing_kernel").level == logging.DEBUG


class TestDocumentContext:

    def test_bound_fields_on_every_line(self, log_stream):
        order_id = uuid4()
        with LogContext.bind(document_type="sales_order", document_id=order_id):
            get_logger("test").info("sales_order_transitioned")
        get_logger("test").info("after_scope")

        inside, outside = log_stream()
        assert inside["document_type"] == "sales_order"
        assert inside["document_id"] == str(order_id)
        assert "document_id" not in outside

    def test_nested_bind_restores_outer_document(self):
        with LogContext.bind(document_type="invoice", correlation_id="order-1"):
            with LogContext.bind(document_id="inv-9"):
                assert LogContext.get_all() == {
                    "document_type": "invoice",
                    "correlation_id": "order-1",
                    "document_id": "inv-9",
                }
            assert "document_id" not in LogContext.get_all()
        assert LogContext.get_all() == {}

    def test_none_values_ignored(self):
        with LogContext.bind(document_type="invoice", document_id=None):
            assert LogContext.get_all() == {"document_type": "invoice"}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(invoice_number="1")


class TestFailureLines:

    def test_transition_error_fields(self, log_stream):
        _log_failure(
            InvalidTransitionError(
                "sales_order", "ACCEPTED", "reject", document_id="so-1"
            )
        )
        (record,) = log_stream()
        assert record["exc_code"] == "INVALID_TRANSITION"
        assert record["exc_current_status"] == "ACCEPTED"
        assert record["exc_action"] == "reject"
        assert record["document_id"] == "so-1"
        assert "traceback" in record

    def test_order_id_lifted_to_document_id(self, log_stream):
        _log_failure(OrderNotAcceptableError("so-2", "PENDING"))
        (record,) = log_stream()
        assert record["exc_code"] == "ORDER_NOT_ACCEPTABLE"
        assert record["exc_status"] == "PENDING"
        assert record["document_id"] == "so-2"

    def test_bound_document_wins_over_exception(self, log_stream):
        with LogContext.bind(document_id="bound-id"):
            _log_failure(
                InvalidTransitionError("invoice", "PAID", "cancelled", document_id="other")
            )
        (record,) = log_stream()
        assert record["document_id"] == "bound-id"
        assert record["exc_document_id"] == "other"

    def test_chained_cause_reported(self, log_stream):
        try:
            try:
                raise RuntimeError("database is locked")
            except RuntimeError as exc:
                raise ConflictError("invoice.paid", "locked") from exc
        except ConflictError:
            get_logger("test").warning("billing_operation_conflict", exc_info=True)

        (record,) = log_stream()
        assert record["exc_code"] == "CONFLICT"
        assert record["exc_operation"] == "invoice.paid"
        assert record["exc_cause"] == "RuntimeError: database is locked"

    def test_plain_exception_has_no_code(self, log_stream):
        _log_failure(ValueError("boom"))
        (record,) = log_stream()
        assert record["exc_type"] == "ValueError"
        assert "exc_code" not in record


class TestLifecycleEvents:

    def test_sales_order_transitioned(self, orchestrator, customer, widget, captured_logs):
        order = orchestrator.create_sales_order(customer.id, [LineRequest(widget.id, 1)])
        orchestrator.transition_sales_order(order.id, "accept")

        event = next(
            r for r in captured_logs() if r["message"] == "sales_order_transitioned"
        )
        assert event["document_type"] == "sales_order"
        assert event["document_id"] == str(order.id)
        assert event["from_status"] == SalesOrderStatus.PENDING.value
        assert event["to_status"] == SalesOrderStatus.ACCEPTED.value

    def test_invoice_transitioned(self, orchestrator, customer, widget, captured_logs):
        invoice = orchestrator.create_invoice_direct(
            customer.id, [LineRequest(widget.id, 1)], date(2024, 1, 1)
        )
        orchestrator.transition_invoice(invoice.id, "paid")

        event = next(
            r for r in captured_logs() if r["message"] == "invoice_transitioned"
        )
        assert event["document_type"] == "invoice"
        assert event["document_id"] == str(invoice.id)
        assert event["to_status"] == InvoiceStatus.PAID.value

    def test_conversion_carries_order_as_correlation(
        self, orchestrator, customer, widget, captured_logs
    ):
        order = orchestrator.create_sales_order(customer.id, [LineRequest(widget.id, 1)])
        orchestrator.transition_sales_order(order.id, "accept")
        orchestrator.create_invoice_from_order(order.id, date(2024, 1, 1))

        created = next(r for r in captured_logs() if r["message"] == "invoice_created")
        assert created["correlation_id"] == str(order.id)
        assert created["sales_order_id"] == str(order.id)


class TestConfigureLogging:

    def test_second_call_keeps_first_handler(self):
        reset_logging()
        first = logging.StreamHandler(StringIO())
        second = logging.StreamHandler(StringIO())
        try:
            configure_logging(handler=first)
            configure_logging(handler=second)
            handlers = logging.getLogger("billing_kernel").handlers
            assert first in handlers
            assert second not in handlers
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG)

    def test_reset_leaves_foreign_handlers(self):
        root = logging.getLogger("billing_kernel")
        foreign = logging.NullHandler()
        root.addHandler(foreign)
        try:
            reset_logging()
            assert foreign in root.handlers
            assert not any(
                isinstance(h.formatter, StructuredFormatter) for h in root.handlers
            )
        finally:
            root.removeHandler(foreign)
            configure_logging(level=logging.DEBUG)
