"""
Module: billing_kernel.models.documents
Responsibility: ORM persistence for sales orders, invoices and their lines.
Architecture position: Kernel > Models.  May import from db/base.py and the
    pure domain layer (for DTO conversion) only.

Invariants enforced:
    - Each document owns its own line table; no line row is shared between
      an order and an invoice.
    - order_number / invoice_number are unique (uq_* constraints); a
      duplicate allocation surfaces as IntegrityError, never as two
      documents with one number.
    - sub_total + tax_amount == total, all non-negative minor units
      (check constraints).  Totals are written together with the lines in
      one INSERT transaction and never recomputed afterwards.
    - Lines are created once and never updated; status changes are the only
      UPDATE a document sees.
    - Invoice due_date >= issue_date (check constraint).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_kernel.db.base import Base, TrackedBase, UUIDString
from billing_kernel.domain.dtos import (
    DocumentTotals,
    InvoiceInfo,
    LineItemSnapshot,
    SalesOrderInfo,
)
from billing_kernel.domain.snapshot import CLASSIFICATION_CODE_LENGTH
from billing_kernel.domain.validation import PLACE_OF_SUPPLY_LENGTH
from billing_kernel.domain.values import (
    Money,
    tax_rate_from_basis_points,
    tax_rate_to_basis_points,
)
from billing_kernel.domain.workflow import (
    InvoiceStatus,
    SalesOrderStatus,
    effective_invoice_status,
)


class _LineColumns:
    """Columns shared by order and invoice lines (snapshot of catalog values)."""

    inventory_item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    line_number: Mapped[int] = mapped_column(nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_price: Mapped[int] = mapped_column(nullable=False)
    tax_rate_bp: Mapped[int] = mapped_column(nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)

    def _snapshot(self, classification_code: str | None) -> LineItemSnapshot:
        return LineItemSnapshot(
            inventory_item_id=self.inventory_item_id,
            line_number=self.line_number,
            description=self.description,
            quantity=self.quantity,
            unit_price=Money(self.unit_price),
            tax_rate=tax_rate_from_basis_points(self.tax_rate_bp),
            amount=Money(self.amount),
            classification_code=classification_code,
        )

    @staticmethod
    def _columns_from(line: LineItemSnapshot) -> dict:
        return {
            "inventory_item_id": line.inventory_item_id,
            "line_number": line.line_number,
            "description": line.description,
            "quantity": line.quantity,
            "unit_price": line.unit_price.amount,
            "tax_rate_bp": tax_rate_to_basis_points(line.tax_rate),
            "amount": line.amount.amount,
        }


class _TotalsColumns:
    sub_total: Mapped[int] = mapped_column(nullable=False)
    tax_amount: Mapped[int] = mapped_column(nullable=False)
    total: Mapped[int] = mapped_column(nullable=False)

    @property
    def totals(self) -> DocumentTotals:
        return DocumentTotals(
            sub_total=Money(self.sub_total),
            tax_amount=Money(self.tax_amount),
            total=Money(self.total),
        )


def _totals_checks(prefix: str) -> tuple:
    return (
        CheckConstraint(
            "sub_total >= 0 AND tax_amount >= 0", name=f"ck_{prefix}_non_negative"
        ),
        CheckConstraint(
            "total = sub_total + tax_amount", name=f"ck_{prefix}_total"
        ),
    )


# ---------------------------------------------------------------------------
# Sales orders
# ---------------------------------------------------------------------------


class SalesOrder(_TotalsColumns, TrackedBase):
    """
    ORM model for sales orders.

    Guarantees:
        - status is stored as the SalesOrderStatus value string.
        - lines load eagerly (selectin) in line_number order.
    """

    __tablename__ = "sales_orders"

    __table_args__ = (
        UniqueConstraint("order_number", name="uq_sales_orders_order_number"),
        Index("idx_sales_orders_customer_id", "customer_id"),
        Index("idx_sales_orders_status", "status"),
        *_totals_checks("sales_orders"),
    )

    order_number: Mapped[int] = mapped_column(nullable=False)
    customer_id: Mapped[UUID] = mapped_column(
        ForeignKey("customers.id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=SalesOrderStatus.PENDING.value,
        nullable=False,
    )
    place_of_supply: Mapped[str | None] = mapped_column(
        String(PLACE_OF_SUPPLY_LENGTH), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    terms: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["SalesOrderLine"]] = relationship(
        back_populates="sales_order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SalesOrderLine.line_number",
    )

    def to_dto(self) -> SalesOrderInfo:
        return SalesOrderInfo(
            id=self.id,
            order_number=self.order_number,
            customer_id=self.customer_id,
            status=SalesOrderStatus(self.status),
            lines=tuple(line.to_dto() for line in self.lines),
            totals=self.totals,
            created_at=self.created_at,
            place_of_supply=self.place_of_supply,
            notes=self.notes,
            terms=self.terms,
        )

    def __repr__(self) -> str:
        return f"<SalesOrder {self.order_number} status={self.status}>"


class SalesOrderLine(_LineColumns, Base):
    """A line on a sales order.  Carries the classification (HSN/SAC) code."""

    __tablename__ = "sales_order_lines"

    __table_args__ = (
        UniqueConstraint(
            "sales_order_id", "line_number", name="uq_sales_order_lines_number"
        ),
        CheckConstraint("quantity >= 1", name="ck_sales_order_lines_quantity"),
    )

    sales_order_id: Mapped[UUID] = mapped_column(
        ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False
    )
    classification_code: Mapped[str | None] = mapped_column(
        String(CLASSIFICATION_CODE_LENGTH), nullable=True
    )

    sales_order: Mapped[SalesOrder] = relationship(back_populates="lines")

    def to_dto(self) -> LineItemSnapshot:
        return self._snapshot(self.classification_code)

    @classmethod
    def from_snapshot(cls, line: LineItemSnapshot) -> "SalesOrderLine":
        return cls(
            classification_code=line.classification_code,
            **cls._columns_from(line),
        )


# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------


class Invoice(_TotalsColumns, TrackedBase):
    """
    ORM model for invoices.

    Guarantees:
        - status holds the stored status only; OVERDUE is derived in
          ``to_dto`` from the due date and never written.
        - sales_order_id is a back-reference; the invoice owns its lines.
    """

    __tablename__ = "invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        Index("idx_invoices_customer_id", "customer_id"),
        Index("idx_invoices_status", "status"),
        Index("idx_invoices_sales_order_id", "sales_order_id"),
        CheckConstraint("due_date >= issue_date", name="ck_invoices_date_range"),
        *_totals_checks("invoices"),
    )

    invoice_number: Mapped[int] = mapped_column(nullable=False)
    customer_id: Mapped[UUID] = mapped_column(
        ForeignKey("customers.id"), nullable=False
    )
    sales_order_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("sales_orders.id"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=InvoiceStatus.PENDING.value,
        nullable=False,
    )
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    terms: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["InvoiceLine"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceLine.line_number",
    )

    def to_dto(self, today: date) -> InvoiceInfo:
        stored = InvoiceStatus(self.status)
        return InvoiceInfo(
            id=self.id,
            invoice_number=self.invoice_number,
            customer_id=self.customer_id,
            status=effective_invoice_status(stored, self.due_date, today),
            stored_status=stored,
            lines=tuple(line.to_dto() for line in self.lines),
            totals=self.totals,
            issue_date=self.issue_date,
            due_date=self.due_date,
            sales_order_id=self.sales_order_id,
            created_at=self.created_at,
            notes=self.notes,
            terms=self.terms,
        )

    def __repr__(self) -> str:
        return f"<Invoice {self.invoice_number} status={self.status}>"


class InvoiceLine(_LineColumns, Base):
    """A line on an invoice."""

    __tablename__ = "invoice_lines"

    __table_args__ = (
        UniqueConstraint("invoice_id", "line_number", name="uq_invoice_lines_number"),
        CheckConstraint("quantity >= 1", name="ck_invoice_lines_quantity"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False
    )

    invoice: Mapped[Invoice] = relationship(back_populates="lines")

    def to_dto(self) -> LineItemSnapshot:
        return self._snapshot(None)

    @classmethod
    def from_snapshot(cls, line: LineItemSnapshot) -> "InvoiceLine":
        return cls(**cls._columns_from(line))
