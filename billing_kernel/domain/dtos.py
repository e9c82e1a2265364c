"""
Data Transfer Objects for the billing kernel.

Pure frozen dataclasses crossing the boundary between services and their
callers.  Services return these, never ORM rows, so a caller can hold a
document after its session is closed and cannot mutate stored state by
accident.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from billing_kernel.domain.numbering import DocumentType, format_document_number
from billing_kernel.domain.values import Money
from billing_kernel.domain.workflow import InvoiceStatus, SalesOrderStatus


@dataclass(frozen=True)
class LineRequest:
    """
    A caller's request to add one catalog item to a document.

    ``None`` means "take the catalog value"; an explicit ``0`` tax rate is
    kept as zero.
    """

    inventory_item_id: UUID
    quantity: int
    unit_price: int | None = None
    tax_rate: Decimal | int | str | None = None
    classification_code: str | None = None


@dataclass(frozen=True)
class LineItemSnapshot:
    """
    One priced line, with catalog values copied at add time.

    ``amount`` is stored rather than recomputed on read so that an audited
    document always shows what was billed.
    """

    inventory_item_id: UUID
    line_number: int
    description: str
    quantity: int
    unit_price: Money
    tax_rate: Decimal
    amount: Money
    classification_code: str | None = None


@dataclass(frozen=True)
class DocumentTotals:
    sub_total: Money
    tax_amount: Money
    total: Money

    def as_dict(self) -> dict[str, int]:
        return {
            "sub_total": self.sub_total.amount,
            "tax_amount": self.tax_amount.amount,
            "total": self.total.amount,
        }


@dataclass(frozen=True)
class DocumentMeta:
    """Free-text fields shared by orders and invoices."""

    notes: str | None = None
    terms: str | None = None
    place_of_supply: str | None = None


@dataclass(frozen=True)
class InventoryItemInfo:
    id: UUID
    name: str
    unit_price: Money
    tax_rate: Decimal
    quantity_on_hand: int = 0
    description: str | None = None
    classification_code: str | None = None


@dataclass(frozen=True)
class CustomerInfo:
    id: UUID
    name: str
    email: str | None = None
    address: str | None = None


@dataclass(frozen=True)
class SalesOrderInfo:
    """Immutable view of a stored sales order."""

    id: UUID
    order_number: int
    customer_id: UUID
    status: SalesOrderStatus
    lines: tuple[LineItemSnapshot, ...]
    totals: DocumentTotals
    created_at: datetime | None = None
    place_of_supply: str | None = None
    notes: str | None = None
    terms: str | None = None
    # Default prefixes unless the orchestrator restamps it from configuration
    display_number: str = ""

    def __post_init__(self) -> None:
        if not self.display_number:
            object.__setattr__(
                self,
                "display_number",
                format_document_number(DocumentType.SALES_ORDER, self.order_number),
            )


@dataclass(frozen=True)
class InvoiceInfo:
    """
    Immutable view of a stored invoice.

    ``status`` is the effective status at read time (OVERDUE derived);
    ``stored_status`` is what the database holds.
    """

    id: UUID
    invoice_number: int
    customer_id: UUID
    status: InvoiceStatus
    stored_status: InvoiceStatus
    lines: tuple[LineItemSnapshot, ...]
    totals: DocumentTotals
    issue_date: date
    due_date: date
    sales_order_id: UUID | None = None
    created_at: datetime | None = None
    notes: str | None = None
    terms: str | None = None
    display_number: str = ""

    def __post_init__(self) -> None:
        if not self.display_number:
            object.__setattr__(
                self,
                "display_number",
                format_document_number(DocumentType.INVOICE, self.invoice_number),
            )


@dataclass(frozen=True)
class ConvertedInvoice:
    """Invoice contents derived from an accepted sales order."""

    customer_id: UUID
    sales_order_id: UUID
    lines: tuple[LineItemSnapshot, ...]
    totals: DocumentTotals
