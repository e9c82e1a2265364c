"""
Module: billing_kernel.models.customer
Responsibility: ORM persistence for customers.  Documents reference a
    customer by id; the kernel only checks that the id exists.
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase
from billing_kernel.domain.dtos import CustomerInfo


class Customer(TrackedBase):
    """A customer that orders and invoices are raised against."""

    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> CustomerInfo:
        return CustomerInfo(
            id=self.id,
            name=self.name,
            email=self.email,
            address=self.address,
        )

    def __repr__(self) -> str:
        return f"<Customer {self.name}>"
