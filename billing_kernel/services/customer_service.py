"""
Service layer for customer operations.

Returns CustomerInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from billing_kernel.domain.dtos import CustomerInfo
from billing_kernel.exceptions import CustomerNotFoundError
from billing_kernel.logging_config import get_logger
from billing_kernel.models.customer import Customer
from billing_kernel.services.base import BaseService

logger = get_logger("services.customer")


class CustomerService(BaseService[Customer]):
    """Service for the customers documents are raised against."""

    def _get_by_id(self, customer_id: UUID) -> Customer:
        customer = self.session.get(Customer, customer_id)
        if customer is None:
            raise CustomerNotFoundError(str(customer_id))
        return customer

    def get_customer(self, customer_id: UUID) -> CustomerInfo:
        """
        Get customer by ID.

        Raises:
            CustomerNotFoundError: If customer doesn't exist.
        """
        return self._get_by_id(customer_id).to_dto()

    def ensure_exists(self, customer_id: UUID) -> None:
        """Raise CustomerNotFoundError unless ``customer_id`` resolves."""
        self._get_by_id(customer_id)

    def list_customers(self) -> list[CustomerInfo]:
        stmt = select(Customer).order_by(Customer.name, Customer.id)
        return [c.to_dto() for c in self.session.execute(stmt).scalars()]

    def create_customer(
        self,
        name: str,
        email: str | None = None,
        address: str | None = None,
    ) -> CustomerInfo:
        customer = Customer(name=name, email=email, address=address)
        self.session.add(customer)
        self.session.flush()
        logger.info("customer_created", extra={"customer_id": str(customer.id)})
        return customer.to_dto()
