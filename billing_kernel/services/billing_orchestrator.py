"""
Billing Orchestrator - the public surface of the billing kernel.

The Orchestrator ties together:
- SequenceService: document number allocation
- SalesOrderService / InvoiceService: document persistence and lifecycle
- CatalogService / CustomerService: reference data

Manages its own transaction boundaries.  Every operation runs in a
``session_scope`` of its own; nothing relies on an ambient transaction.

Order of work for a create:
    1. Pure boundary checks (lines present, quantities, date range, action
       names).  A failure here writes nothing.
    2. A short read transaction confirming the customer and catalog items
       exist and that the resolved lines total within range, so an unknown
       reference or an oversized amount does not burn a number.
    3. A committed transaction that allocates the document number.
    4. The create transaction: snapshot, compute totals, insert.  If it
       fails, the number from step 3 stays allocated and is never reused.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import date, timedelta
from typing import Generator, Mapping, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from billing_kernel.db.engine import get_session_factory, session_scope
from billing_kernel.domain.calculator import compute_document_totals
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.dtos import (
    CustomerInfo,
    DocumentMeta,
    InventoryItemInfo,
    InvoiceInfo,
    LineRequest,
    SalesOrderInfo,
)
from billing_kernel.domain.numbering import (
    DEFAULT_NUMBER_WIDTH,
    DocumentType,
    format_document_number,
)
from billing_kernel.domain.validation import (
    validate_date_range,
    validate_line_requests,
    validate_meta,
)
from billing_kernel.domain.values import Money
from billing_kernel.domain.workflow import (
    InvoiceAction,
    InvoiceStatus,
    SalesOrderAction,
    SalesOrderStatus,
    coerce_invoice_action,
    coerce_sales_order_action,
)
from billing_kernel.exceptions import ConflictError, OrderNotAcceptableError
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.services.catalog_service import CatalogService
from billing_kernel.services.customer_service import CustomerService
from billing_kernel.services.invoice_service import InvoiceService
from billing_kernel.services.sales_order_service import SalesOrderService
from billing_kernel.services.sequence_service import SequenceService

logger = get_logger("services.billing_orchestrator")

DEFAULT_PAYMENT_TERMS_DAYS = 14


class BillingOrchestrator:
    """
    Coordinates billing operations.

    Contract:
        Every public method is one atomic unit: it either commits in full
        or leaves the database as it was (apart from a number already
        allocated in step 3 of a create).  Return values are DTOs that
        stay valid after the session closes.

    Usage:
        orchestrator = BillingOrchestrator(get_session_factory())
        order = orchestrator.create_sales_order(customer_id, [
            LineRequest(inventory_item_id=item_id, quantity=2),
        ])
        orchestrator.transition_sales_order(order.id, "accept")
        invoice = orchestrator.create_invoice_from_order(
            order.id, issue_date=date.today(), due_date=None,
        )
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
        *,
        payment_terms_days: int = DEFAULT_PAYMENT_TERMS_DAYS,
        number_prefixes: Mapping[str, str] | None = None,
        number_width: int = DEFAULT_NUMBER_WIDTH,
        major_unit_divisor: int = 100,
        currency_symbol: str = "",
    ):
        self._session_factory = session_factory or get_session_factory()
        self._clock = clock or SystemClock()
        self._payment_terms_days = payment_terms_days
        self._number_prefixes = dict(number_prefixes or {})
        self._number_width = number_width
        self._major_unit_divisor = major_unit_divisor
        self._currency_symbol = currency_symbol

    # -------------------------------------------------------------------------
    # Transaction plumbing
    # -------------------------------------------------------------------------

    @contextmanager
    def _transaction(self, operation: str) -> Generator[Session, None, None]:
        """
        One unit of work.  Lock timeouts and constraint races from the
        database surface as ConflictError; nothing was committed.
        """
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except (OperationalError, IntegrityError) as exc:
            logger.warning(
                "billing_operation_conflict",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise ConflictError(operation, str(exc.orig)) from exc

    def _allocate_number(self, document_type: DocumentType) -> int:
        with self._transaction(f"{document_type.value}.allocate_number") as session:
            number = SequenceService(session).next_value(document_type)
        logger.info(
            "document_number_allocated",
            extra={
                "document_type": document_type.value,
                "number": number,
                "display_number": self.display_number(document_type, number),
            },
        )
        return number

    def _check_references(
        self, customer_id: UUID, line_requests: Sequence[LineRequest]
    ) -> None:
        """Resolve references and totals once so bad input never reaches step 3."""
        with self._transaction("check_references") as session:
            CustomerService(session).ensure_exists(customer_id)
            lines = CatalogService(session).resolve_lines(line_requests)
        compute_document_totals(lines)

    # -------------------------------------------------------------------------
    # Sales orders
    # -------------------------------------------------------------------------

    def create_sales_order(
        self,
        customer_id: UUID,
        line_requests: Sequence[LineRequest],
        meta: DocumentMeta | None = None,
    ) -> SalesOrderInfo:
        """
        Create a PENDING sales order with a freshly allocated number.

        Raises:
            EmptyDocumentError, InvalidQuantityError, InvalidAmountError,
            InvalidTaxRateError, FieldTooLongError: malformed request.
            CustomerNotFoundError, InventoryItemNotFoundError: unknown reference.
            ConflictError: the database refused the write; safe to retry.
        """
        requests = validate_line_requests(
            line_requests, DocumentType.SALES_ORDER.value
        )
        meta = validate_meta(meta)
        self._check_references(customer_id, requests)
        number = self._allocate_number(DocumentType.SALES_ORDER)

        with LogContext.bind(document_type=DocumentType.SALES_ORDER.value):
            with self._transaction("sales_order.create") as session:
                order = SalesOrderService(session).create_order(
                    number, customer_id, requests, meta
                )
        return self._present_order(order)

    def transition_sales_order(
        self, order_id: UUID, action: SalesOrderAction | str
    ) -> SalesOrderInfo:
        """
        Accept or reject a PENDING order.

        Raises:
            InvalidActionError: ``action`` is not "accept" or "reject".
            SalesOrderNotFoundError: unknown order.
            InvalidTransitionError: the order is no longer PENDING.
            ConflictError: a concurrent writer changed the order first.
        """
        action = coerce_sales_order_action(action)
        with LogContext.bind(
            document_type=DocumentType.SALES_ORDER.value, document_id=order_id
        ):
            with self._transaction(f"sales_order.{action.value}") as session:
                order = SalesOrderService(session).transition(order_id, action)
        return self._present_order(order)

    def get_sales_order(self, order_id: UUID) -> SalesOrderInfo:
        with self._transaction("sales_order.get") as session:
            order = SalesOrderService(session).get_order(order_id)
        return self._present_order(order)

    def list_sales_orders(
        self, status: SalesOrderStatus | str | None = None
    ) -> list[SalesOrderInfo]:
        with self._transaction("sales_order.list") as session:
            orders = SalesOrderService(session).list_orders(status)
        return [self._present_order(order) for order in orders]

    # -------------------------------------------------------------------------
    # Invoices
    # -------------------------------------------------------------------------

    def default_due_date(self, issue_date: date) -> date:
        """Due date used when a caller does not give one."""
        return issue_date + timedelta(days=self._payment_terms_days)

    def create_invoice_direct(
        self,
        customer_id: UUID,
        line_requests: Sequence[LineRequest],
        issue_date: date,
        due_date: date | None = None,
        meta: DocumentMeta | None = None,
    ) -> InvoiceInfo:
        """
        Create a PENDING invoice straight from line requests.

        ``due_date`` defaults to ``issue_date`` plus the payment terms.

        Raises:
            EmptyDocumentError, InvalidQuantityError, InvalidDateRangeError:
                malformed request.
            CustomerNotFoundError, InventoryItemNotFoundError: unknown reference.
            ConflictError: the database refused the write; safe to retry.
        """
        due_date = due_date or self.default_due_date(issue_date)
        validate_date_range(issue_date, due_date)
        requests = validate_line_requests(line_requests, DocumentType.INVOICE.value)
        self._check_references(customer_id, requests)
        number = self._allocate_number(DocumentType.INVOICE)

        with LogContext.bind(document_type=DocumentType.INVOICE.value):
            with self._transaction("invoice.create") as session:
                invoice = InvoiceService(session, self._clock).create_direct(
                    number, customer_id, requests, issue_date, due_date, meta
                )
        return self._present_invoice(invoice)

    def create_invoice_from_order(
        self,
        sales_order_id: UUID,
        issue_date: date,
        due_date: date | None = None,
        meta: DocumentMeta | None = None,
    ) -> InvoiceInfo:
        """
        Invoice an ACCEPTED sales order.

        The invoice copies the order's stored lines and totals.  The order
        is read, never written.

        Raises:
            InvalidDateRangeError: ``due_date`` precedes ``issue_date``.
            SalesOrderNotFoundError: unknown order.
            OrderNotAcceptableError: the order is not ACCEPTED.
            TotalsMismatchError: the stored order does not add up.
            ConflictError: the database refused the write; safe to retry.
        """
        due_date = due_date or self.default_due_date(issue_date)
        validate_date_range(issue_date, due_date)

        # Reject unknown or unaccepted orders before a number is taken
        order = self.get_sales_order(sales_order_id)
        if order.status != SalesOrderStatus.ACCEPTED:
            raise OrderNotAcceptableError(str(order.id), order.status.value)
        number = self._allocate_number(DocumentType.INVOICE)

        with LogContext.bind(
            document_type=DocumentType.INVOICE.value,
            correlation_id=str(sales_order_id),
        ):
            with self._transaction("invoice.create_from_order") as session:
                invoice = InvoiceService(session, self._clock).create_from_order(
                    number, sales_order_id, issue_date, due_date, meta
                )
        return self._present_invoice(invoice)

    def transition_invoice(
        self, invoice_id: UUID, action: InvoiceAction | str
    ) -> InvoiceInfo:
        """
        Mark an open invoice "paid" or "cancelled".

        Raises:
            InvalidActionError: unknown action name.
            InvoiceNotFoundError: unknown invoice.
            InvalidTransitionError: the invoice is already PAID or CANCELLED.
            ConflictError: a concurrent writer changed the invoice first.
        """
        action = coerce_invoice_action(action)
        with LogContext.bind(
            document_type=DocumentType.INVOICE.value, document_id=invoice_id
        ):
            with self._transaction(f"invoice.{action.value}") as session:
                invoice = InvoiceService(session, self._clock).transition(
                    invoice_id, action
                )
        return self._present_invoice(invoice)

    def get_invoice(self, invoice_id: UUID) -> InvoiceInfo:
        with self._transaction("invoice.get") as session:
            invoice = InvoiceService(session, self._clock).get_invoice(invoice_id)
        return self._present_invoice(invoice)

    def list_invoices(
        self, status: InvoiceStatus | str | None = None
    ) -> list[InvoiceInfo]:
        with self._transaction("invoice.list") as session:
            invoices = InvoiceService(session, self._clock).list_invoices(status)
        return [self._present_invoice(invoice) for invoice in invoices]

    # -------------------------------------------------------------------------
    # Catalog and customers
    # -------------------------------------------------------------------------

    def create_inventory_item(self, name: str, unit_price: int, **fields) -> InventoryItemInfo:
        with self._transaction("inventory_item.create") as session:
            return CatalogService(session).create_item(name, unit_price, **fields)

    def update_inventory_item(self, item_id: UUID, **changes) -> InventoryItemInfo:
        with self._transaction("inventory_item.update") as session:
            return CatalogService(session).update_item(item_id, **changes)

    def delete_inventory_item(self, item_id: UUID) -> None:
        with self._transaction("inventory_item.delete") as session:
            CatalogService(session).delete_item(item_id)

    def get_inventory_item(self, item_id: UUID) -> InventoryItemInfo:
        with self._transaction("inventory_item.get") as session:
            return CatalogService(session).get_item(item_id)

    def list_inventory_items(self) -> list[InventoryItemInfo]:
        with self._transaction("inventory_item.list") as session:
            return CatalogService(session).list_items()

    def create_customer(
        self,
        name: str,
        email: str | None = None,
        address: str | None = None,
    ) -> CustomerInfo:
        with self._transaction("customer.create") as session:
            return CustomerService(session).create_customer(name, email, address)

    def get_customer(self, customer_id: UUID) -> CustomerInfo:
        with self._transaction("customer.get") as session:
            return CustomerService(session).get_customer(customer_id)

    def list_customers(self) -> list[CustomerInfo]:
        with self._transaction("customer.list") as session:
            return CustomerService(session).list_customers()

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    def display_number(self, document_type: DocumentType, number: int) -> str:
        """``SO-00001`` style rendering with the configured prefixes."""
        return format_document_number(
            document_type, number, self._number_prefixes, self._number_width
        )

    def format_money(self, money: Money) -> str:
        return money.format(self._major_unit_divisor, self._currency_symbol)

    def _present_order(self, order: SalesOrderInfo) -> SalesOrderInfo:
        return replace(
            order,
            display_number=self.display_number(
                DocumentType.SALES_ORDER, order.order_number
            ),
        )

    def _present_invoice(self, invoice: InvoiceInfo) -> InvoiceInfo:
        return replace(
            invoice,
            display_number=self.display_number(
                DocumentType.INVOICE, invoice.invoice_number
            ),
        )
