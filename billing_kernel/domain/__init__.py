"""
Pure domain layer of the billing kernel: values, calculator, snapshot
resolution, lifecycles, conversion and numbering.  ZERO I/O.
"""

from billing_kernel.domain.calculator import (
    LineAmounts,
    compute_document_totals,
    compute_line,
)
from billing_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from billing_kernel.domain.conversion import from_sales_order
from billing_kernel.domain.dtos import (
    ConvertedInvoice,
    CustomerInfo,
    DocumentMeta,
    DocumentTotals,
    InventoryItemInfo,
    InvoiceInfo,
    LineItemSnapshot,
    LineRequest,
    SalesOrderInfo,
)
from billing_kernel.domain.numbering import DocumentType, format_document_number
from billing_kernel.domain.snapshot import resolve_line
from billing_kernel.domain.validation import (
    validate_date_range,
    validate_line_requests,
    validate_meta,
)
from billing_kernel.domain.values import Money, parse_tax_rate
from billing_kernel.domain.workflow import (
    INVOICE_WORKFLOW,
    SALES_ORDER_WORKFLOW,
    InvoiceAction,
    InvoiceStatus,
    SalesOrderAction,
    SalesOrderStatus,
    effective_invoice_status,
)

__all__ = [
    "Clock",
    "ConvertedInvoice",
    "CustomerInfo",
    "DocumentMeta",
    "DocumentTotals",
    "DeterministicClock",
    "DocumentType",
    "INVOICE_WORKFLOW",
    "InventoryItemInfo",
    "InvoiceAction",
    "InvoiceInfo",
    "InvoiceStatus",
    "LineAmounts",
    "LineItemSnapshot",
    "LineRequest",
    "Money",
    "SALES_ORDER_WORKFLOW",
    "SalesOrderAction",
    "SalesOrderInfo",
    "SalesOrderStatus",
    "SystemClock",
    "compute_document_totals",
    "compute_line",
    "effective_invoice_status",
    "format_document_number",
    "from_sales_order",
    "parse_tax_rate",
    "resolve_line",
    "validate_date_range",
    "validate_line_requests",
    "validate_meta",
]
