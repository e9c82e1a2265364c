"""Tests for converting an accepted sales order into invoice contents."""

from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

import pytest

from billing_kernel.domain.calculator import compute_document_totals
from billing_kernel.domain.conversion import from_sales_order
from billing_kernel.domain.dtos import LineItemSnapshot, SalesOrderInfo
from billing_kernel.domain.values import Money
from billing_kernel.domain.workflow import SalesOrderStatus
from billing_kernel.exceptions import OrderNotAcceptableError, TotalsMismatchError


def _line(line_number, quantity, unit_price, rate, code="8471"):
    price = Money(unit_price)
    return LineItemSnapshot(
        inventory_item_id=uuid4(),
        line_number=line_number,
        description=f"Item {line_number}",
        quantity=quantity,
        unit_price=price,
        tax_rate=Decimal(rate),
        amount=price.multiply_by_quantity(quantity),
        classification_code=code,
    )


def _order(status=SalesOrderStatus.ACCEPTED, lines=None, totals=None):
    lines = lines or (_line(1, 2, 10000, "18"), _line(2, 1, 5000, "0"))
    return SalesOrderInfo(
        id=uuid4(),
        order_number=1,
        customer_id=uuid4(),
        status=status,
        lines=tuple(lines),
        totals=totals or compute_document_totals(lines),
    )


class TestFromSalesOrder:

    def test_totals_reproduced(self):
        order = _order()
        converted = from_sales_order(order)
        assert converted.totals == order.totals
        assert converted.totals.total == Money(28600)

    def test_binding(self):
        order = _order()
        converted = from_sales_order(order)
        assert converted.customer_id == order.customer_id
        assert converted.sales_order_id == order.id

    def test_lines_copied_without_classification(self):
        order = _order()
        converted = from_sales_order(order)
        assert len(converted.lines) == len(order.lines)
        for copied, original in zip(converted.lines, order.lines):
            assert copied.classification_code is None
            assert copied.unit_price == original.unit_price
            assert copied.quantity == original.quantity
            assert copied.tax_rate == original.tax_rate
            assert copied.description == original.description

    def test_source_order_untouched(self):
        order = _order()
        from_sales_order(order)
        assert all(line.classification_code == "8471" for line in order.lines)

    @pytest.mark.parametrize(
        "status", [SalesOrderStatus.PENDING, SalesOrderStatus.REJECTED]
    )
    def test_only_accepted_orders_convert(self, status):
        with pytest.raises(OrderNotAcceptableError) as exc_info:
            from_sales_order(_order(status=status))
        assert exc_info.value.status == status.value

    def test_totals_mismatch(self):
        order = _order()
        tampered = replace(
            order.totals, total=order.totals.total + Money(1)
        )
        with pytest.raises(TotalsMismatchError) as exc_info:
            from_sales_order(replace(order, totals=tampered))
        assert exc_info.value.expected["total"] == 28601
        assert exc_info.value.actual["total"] == 28600
