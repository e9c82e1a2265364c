"""
LineItem Calculator -- the single authoritative totals computation.

Responsibility:
    Derives amount, tax and line total for one line, and aggregates a
    document's lines into subtotal, tax and total.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - Tax is rounded per line (ROUND_HALF_UP) and the document tax is the
      sum of those rounded line taxes.  It is never re-derived from the
      subtotal, so lines with different rates cannot drift.
    - Totals are independent of line order (integer addition).

Failure modes:
    - EmptyDocumentError when asked to total zero lines.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from billing_kernel.domain.dtos import DocumentTotals
from billing_kernel.domain.values import Money
from billing_kernel.exceptions import EmptyDocumentError


class PricedLine(Protocol):
    """Anything with a quantity, a unit price and a tax rate."""

    quantity: int
    unit_price: Money
    tax_rate: Decimal


@dataclass(frozen=True)
class LineAmounts:
    amount: Money
    tax_amount: Money
    line_total: Money


def compute_line(item: PricedLine) -> LineAmounts:
    """Amounts for a single line: 2 x 10000 at 18% is 20000 + 3600 = 23600."""
    amount = item.unit_price.multiply_by_quantity(item.quantity)
    tax_amount = amount.percent_of(item.tax_rate)
    return LineAmounts(
        amount=amount,
        tax_amount=tax_amount,
        line_total=amount + tax_amount,
    )


def compute_document_totals(items: Iterable[PricedLine]) -> DocumentTotals:
    """
    Subtotal, tax and total over a non-empty collection of lines.

    Raises:
        EmptyDocumentError: ``items`` is empty.
    """
    lines = [compute_line(item) for item in items]
    if not lines:
        raise EmptyDocumentError()

    sub_total = Money.sum(line.amount for line in lines)
    tax_amount = Money.sum(line.tax_amount for line in lines)
    return DocumentTotals(
        sub_total=sub_total,
        tax_amount=tax_amount,
        total=sub_total + tax_amount,
    )
