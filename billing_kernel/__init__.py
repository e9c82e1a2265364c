"""
Billing Kernel

A transactional engine for sales orders and invoices with:
- Integer minor-unit money and exact half-up tax rounding
- Catalog snapshots taken when a line is added
- Explicit status machines with compare-and-set transitions
- Gap-tolerant, never-reused document numbering
- Order-to-invoice conversion that reproduces stored totals exactly
"""

__version__ = "0.1.0"
