"""
Unit tests for the line item calculator.

Tax is rounded per line and summed; it is never recomputed on the
document subtotal.
"""

from dataclasses import dataclass
from decimal import Decimal

import pytest

from billing_kernel.domain.calculator import compute_document_totals, compute_line
from billing_kernel.domain.values import Money
from billing_kernel.exceptions import EmptyDocumentError


@dataclass(frozen=True)
class Line:
    quantity: int
    unit_price: Money
    tax_rate: Decimal


class TestComputeLine:

    def test_amount_tax_and_total(self):
        result = compute_line(Line(2, Money(10000), Decimal("18")))
        assert result.amount == Money(20000)
        assert result.tax_amount == Money(3600)
        assert result.line_total == Money(23600)

    def test_zero_rate(self):
        result = compute_line(Line(3, Money(5000), Decimal("0")))
        assert result.tax_amount.is_zero
        assert result.line_total == Money(15000)


class TestComputeDocumentTotals:

    def test_single_line(self):
        totals = compute_document_totals([Line(2, Money(10000), Decimal("18"))])
        assert totals.sub_total == Money(20000)
        assert totals.tax_amount == Money(3600)
        assert totals.total == Money(23600)

    def test_two_lines(self):
        totals = compute_document_totals([
            Line(2, Money(10000), Decimal("18")),
            Line(1, Money(5000), Decimal("0")),
        ])
        assert totals.sub_total == Money(25000)
        assert totals.tax_amount == Money(3600)
        assert totals.total == Money(28600)

    def test_empty_raises(self):
        with pytest.raises(EmptyDocumentError):
            compute_document_totals([])

    def test_tax_rounded_per_line(self):
        # Each line: 18% of 1 = 0.18 -> 0.  On the subtotal (3) it would be 1.
        lines = [Line(1, Money(1), Decimal("18"))] * 3
        totals = compute_document_totals(lines)
        assert totals.sub_total == Money(3)
        assert totals.tax_amount == Money(0)

    def test_total_is_sum_of_parts(self):
        totals = compute_document_totals([
            Line(7, Money(333), Decimal("12.5")),
            Line(1, Money(99), Decimal("5")),
        ])
        assert totals.total == totals.sub_total + totals.tax_amount

    def test_accepts_generator(self):
        totals = compute_document_totals(
            Line(1, Money(100), Decimal("10")) for _ in range(2)
        )
        assert totals.total == Money(220)

    def test_as_dict(self):
        totals = compute_document_totals([Line(2, Money(10000), Decimal("18"))])
        assert totals.as_dict() == {
            "sub_total": 20000,
            "tax_amount": 3600,
            "total": 23600,
        }
