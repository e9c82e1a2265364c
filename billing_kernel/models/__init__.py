"""ORM models for the billing kernel."""

from billing_kernel.models.customer import Customer
from billing_kernel.models.documents import (
    Invoice,
    InvoiceLine,
    SalesOrder,
    SalesOrderLine,
)
from billing_kernel.models.inventory import InventoryItem

__all__ = [
    "Customer",
    "InventoryItem",
    "Invoice",
    "InvoiceLine",
    "SalesOrder",
    "SalesOrderLine",
]
