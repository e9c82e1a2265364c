"""
InvoiceService -- persistence and lifecycle for invoices.

Responsibility:
    Creates invoices directly from line requests or by converting an
    ACCEPTED sales order, and applies paid/cancelled transitions.

Architecture position:
    Kernel > Services -- imperative shell over the pure domain layer.

Invariants enforced:
    - Invoice lines belong to the invoice alone; conversion copies the
      order's stored line snapshots and never re-reads the catalog.
    - A converted invoice's totals equal the order's stored totals
      (integer equality, checked before the INSERT).
    - OVERDUE is never written.  Reads derive it from ``due_date`` and the
      injected clock; transitions accept it as a source status.

Failure modes:
    - OrderNotAcceptableError / TotalsMismatchError from conversion.
    - InvalidTransitionError when the effective status does not allow
      the action; ConflictError when a concurrent writer got there first.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy import and_, or_, select

from billing_kernel.domain.calculator import compute_document_totals
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.conversion import from_sales_order
from billing_kernel.domain.dtos import (
    DocumentMeta,
    DocumentTotals,
    InvoiceInfo,
    LineItemSnapshot,
    LineRequest,
)
from billing_kernel.domain.validation import validate_date_range
from billing_kernel.domain.workflow import (
    INVOICE_WORKFLOW,
    InvoiceAction,
    InvoiceStatus,
    coerce_invoice_action,
    effective_invoice_status,
)
from billing_kernel.exceptions import (
    ConflictError,
    EmptyDocumentError,
    InvoiceNotFoundError,
    SalesOrderNotFoundError,
)
from billing_kernel.logging_config import get_logger
from billing_kernel.models.documents import Invoice, InvoiceLine, SalesOrder
from billing_kernel.services.base import BaseService
from billing_kernel.services.catalog_service import CatalogService
from billing_kernel.services.customer_service import CustomerService

logger = get_logger("services.invoice")


class InvoiceService(BaseService[Invoice]):
    """
    Service for invoices.

    Contract:
        The caller supplies an already-allocated ``invoice_number`` and
        owns the transaction.  Reads report the effective status as of
        ``clock.today()``.
    """

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._catalog = CatalogService(session)
        self._customers = CustomerService(session)

    def _get_by_id(self, invoice_id: UUID) -> Invoice:
        invoice = self.session.get(Invoice, invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(str(invoice_id))
        return invoice

    def _reload(self, invoice_id: UUID) -> Invoice:
        return self.session.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        ).scalar_one()

    def get_invoice(self, invoice_id: UUID) -> InvoiceInfo:
        """
        Get an invoice by ID with its effective status.

        Raises:
            InvoiceNotFoundError: If the invoice doesn't exist.
        """
        return self._get_by_id(invoice_id).to_dto(self._clock.today())

    def list_invoices(
        self, status: InvoiceStatus | None = None
    ) -> list[InvoiceInfo]:
        """
        List invoices in number order, optionally filtered by effective status.

        Filtering by OVERDUE matches PENDING invoices past their due date;
        filtering by PENDING excludes them.
        """
        today = self._clock.today()
        stmt = select(Invoice)
        if status is not None:
            status = InvoiceStatus(status)
            pending = Invoice.status == InvoiceStatus.PENDING.value
            if status == InvoiceStatus.OVERDUE:
                stmt = stmt.where(
                    or_(
                        and_(pending, Invoice.due_date < today),
                        Invoice.status == InvoiceStatus.OVERDUE.value,
                    )
                )
            elif status == InvoiceStatus.PENDING:
                stmt = stmt.where(pending, Invoice.due_date >= today)
            else:
                stmt = stmt.where(Invoice.status == status.value)
        stmt = stmt.order_by(Invoice.invoice_number)
        return [i.to_dto(today) for i in self.session.execute(stmt).scalars()]

    def _insert(
        self,
        invoice_number: int,
        customer_id: UUID,
        lines: tuple[LineItemSnapshot, ...],
        totals: DocumentTotals,
        issue_date: date,
        due_date: date,
        meta: DocumentMeta,
        sales_order_id: UUID | None = None,
    ) -> Invoice:
        invoice = Invoice(
            invoice_number=invoice_number,
            customer_id=customer_id,
            sales_order_id=sales_order_id,
            status=INVOICE_WORKFLOW.initial_state,
            issue_date=issue_date,
            due_date=due_date,
            sub_total=totals.sub_total.amount,
            tax_amount=totals.tax_amount.amount,
            total=totals.total.amount,
            notes=meta.notes,
            terms=meta.terms,
            lines=[InvoiceLine.from_snapshot(line) for line in lines],
        )
        self.session.add(invoice)
        self.session.flush()

        logger.info(
            "invoice_created",
            extra={
                "invoice_id": str(invoice.id),
                "invoice_number": invoice_number,
                "sales_order_id": str(sales_order_id) if sales_order_id else None,
                "line_count": len(lines),
                "total": totals.total.amount,
            },
        )
        return invoice

    def create_direct(
        self,
        invoice_number: int,
        customer_id: UUID,
        line_requests: Sequence[LineRequest],
        issue_date: date,
        due_date: date,
        meta: DocumentMeta | None = None,
    ) -> InvoiceInfo:
        """
        Create a PENDING invoice from line requests.

        Raises:
            EmptyDocumentError: No line requests.
            InvalidDateRangeError: ``due_date`` precedes ``issue_date``.
            CustomerNotFoundError: Unknown customer.
            InventoryItemNotFoundError: A line references an unknown item.
        """
        if not line_requests:
            raise EmptyDocumentError(INVOICE_WORKFLOW.name)
        validate_date_range(issue_date, due_date)

        self._customers.ensure_exists(customer_id)
        # Invoice lines carry no classification code
        lines = tuple(
            replace(line, classification_code=None)
            for line in self._catalog.resolve_lines(line_requests)
        )
        totals = compute_document_totals(lines)

        invoice = self._insert(
            invoice_number, customer_id, lines, totals,
            issue_date, due_date, meta or DocumentMeta(),
        )
        return invoice.to_dto(self._clock.today())

    def create_from_order(
        self,
        invoice_number: int,
        sales_order_id: UUID,
        issue_date: date,
        due_date: date,
        meta: DocumentMeta | None = None,
    ) -> InvoiceInfo:
        """
        Create a PENDING invoice from an ACCEPTED sales order.

        The order's stored lines and totals are copied as they are; later
        catalog edits have no effect.  The order itself is not modified.

        Raises:
            SalesOrderNotFoundError: Unknown order.
            OrderNotAcceptableError: The order is not ACCEPTED.
            TotalsMismatchError: The stored lines do not reproduce the
                stored totals.
            InvalidDateRangeError: ``due_date`` precedes ``issue_date``.
        """
        validate_date_range(issue_date, due_date)

        order = self.session.get(SalesOrder, sales_order_id)
        if order is None:
            raise SalesOrderNotFoundError(str(sales_order_id))
        converted = from_sales_order(order.to_dto())

        invoice = self._insert(
            invoice_number,
            converted.customer_id,
            converted.lines,
            converted.totals,
            issue_date,
            due_date,
            meta or DocumentMeta(notes=order.notes, terms=order.terms),
            sales_order_id=converted.sales_order_id,
        )
        return invoice.to_dto(self._clock.today())

    def transition(
        self, invoice_id: UUID, action: InvoiceAction | str
    ) -> InvoiceInfo:
        """
        Mark an open invoice paid or cancelled.

        "Open" means PENDING or OVERDUE; the check runs against the
        effective status so an overdue invoice can still be settled.

        Raises:
            InvalidActionError: ``action`` is not paid/cancelled.
            InvoiceNotFoundError: Unknown invoice.
            InvalidTransitionError: The invoice is already PAID or CANCELLED.
            ConflictError: A concurrent writer moved the invoice first.
        """
        action = coerce_invoice_action(action)
        today = self._clock.today()
        invoice = self._get_by_id(invoice_id)
        current = effective_invoice_status(
            InvoiceStatus(invoice.status), invoice.due_date, today
        )
        transition = INVOICE_WORKFLOW.transition_for(
            current.value, action.value, document_id=str(invoice_id)
        )

        changed = self._compare_and_set_status(
            Invoice,
            invoice_id,
            INVOICE_WORKFLOW.sources_for(action.value),
            transition.to_state,
        )
        invoice = self._reload(invoice_id)
        if not changed:
            logger.warning(
                "invoice_transition_lost_race",
                extra={
                    "invoice_id": str(invoice_id),
                    "action": action.value,
                    "current_status": invoice.status,
                },
            )
            raise ConflictError(
                f"invoice.{action.value}", f"status changed to {invoice.status}"
            )

        logger.info(
            "invoice_transitioned",
            extra={
                "invoice_id": str(invoice_id),
                "from_status": transition.from_state,
                "to_status": transition.to_state,
            },
        )
        return invoice.to_dto(today)
