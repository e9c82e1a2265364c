"""
Order-to-Invoice Converter.

Responsibility:
    Derives an invoice's customer binding and lines from an ACCEPTED sales
    order, reproducing the order's stored totals exactly.

Architecture position:
    Kernel > Domain -- pure function over DTOs.  Never touches the catalog:
    current catalog prices are irrelevant once an order exists.

Invariants enforced:
    - Only ACCEPTED orders convert.
    - Every line is a new value; the invoice shares nothing with the order.
    - compute_document_totals(invoice lines) == order's stored totals,
      checked with integer equality.  A mismatch is an error, not a
      recomputation.
"""

from __future__ import annotations

from dataclasses import replace

from billing_kernel.domain.calculator import compute_document_totals
from billing_kernel.domain.dtos import ConvertedInvoice, SalesOrderInfo
from billing_kernel.domain.workflow import SalesOrderStatus
from billing_kernel.exceptions import OrderNotAcceptableError, TotalsMismatchError


def from_sales_order(order: SalesOrderInfo) -> ConvertedInvoice:
    """
    Copy an accepted order into invoice contents.

    Invoice lines do not carry a classification code; that field belongs
    to order documents.

    Raises:
        OrderNotAcceptableError: order status is not ACCEPTED.
        TotalsMismatchError: the copied lines do not reproduce the stored
            order totals.
    """
    if order.status != SalesOrderStatus.ACCEPTED:
        raise OrderNotAcceptableError(str(order.id), order.status.value)

    lines = tuple(
        replace(line, classification_code=None) for line in order.lines
    )
    totals = compute_document_totals(lines)
    if totals != order.totals:
        raise TotalsMismatchError(
            str(order.id),
            expected=order.totals.as_dict(),
            actual=totals.as_dict(),
        )

    return ConvertedInvoice(
        customer_id=order.customer_id,
        sales_order_id=order.id,
        lines=lines,
        totals=totals,
    )
