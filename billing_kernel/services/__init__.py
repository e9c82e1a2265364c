"""Services for the billing kernel (write side)."""

from billing_kernel.services.billing_orchestrator import BillingOrchestrator
from billing_kernel.services.catalog_service import CatalogService
from billing_kernel.services.customer_service import CustomerService
from billing_kernel.services.invoice_service import InvoiceService
from billing_kernel.services.sales_order_service import SalesOrderService
from billing_kernel.services.sequence_service import SequenceCounter, SequenceService

__all__ = [
    "BillingOrchestrator",
    "CatalogService",
    "CustomerService",
    "InvoiceService",
    "SalesOrderService",
    "SequenceCounter",
    "SequenceService",
]
