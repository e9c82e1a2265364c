"""
SalesOrderService -- persistence and lifecycle for sales orders.

Responsibility:
    Creates sales orders from line requests (snapshotting the catalog and
    computing totals in the same transaction) and applies accept/reject
    transitions.

Architecture position:
    Kernel > Services -- imperative shell.  Pricing and status rules come
    from the pure domain layer; this module only reads and writes rows.

Invariants enforced:
    - An order and its lines are inserted together with totals computed
      from those exact lines.
    - A status change is one conditional UPDATE guarded by the set of legal
      source statuses.  Two concurrent accepts cannot both succeed.

Failure modes:
    - CustomerNotFoundError / InventoryItemNotFoundError before any INSERT.
    - InvalidTransitionError when the stored status does not allow the action.
    - ConflictError when another writer changed the status between this
      transaction's read and its UPDATE.
"""

from __future__ import annotations

from typing import Sequence
from uuid import UUID

from sqlalchemy import select

from billing_kernel.domain.calculator import compute_document_totals
from billing_kernel.domain.dtos import DocumentMeta, LineRequest, SalesOrderInfo
from billing_kernel.domain.validation import validate_meta
from billing_kernel.domain.workflow import (
    SALES_ORDER_WORKFLOW,
    SalesOrderAction,
    SalesOrderStatus,
    coerce_sales_order_action,
)
from billing_kernel.exceptions import (
    ConflictError,
    EmptyDocumentError,
    SalesOrderNotFoundError,
)
from billing_kernel.logging_config import get_logger
from billing_kernel.models.documents import SalesOrder, SalesOrderLine
from billing_kernel.services.base import BaseService
from billing_kernel.services.catalog_service import CatalogService
from billing_kernel.services.customer_service import CustomerService

logger = get_logger("services.sales_order")


class SalesOrderService(BaseService[SalesOrder]):
    """
    Service for sales orders.

    Contract:
        The caller supplies an already-allocated ``order_number`` and owns
        the transaction.  Every public method returns SalesOrderInfo DTOs.
    """

    def __init__(self, session):
        super().__init__(session)
        self._catalog = CatalogService(session)
        self._customers = CustomerService(session)

    def _get_by_id(self, order_id: UUID) -> SalesOrder:
        order = self.session.get(SalesOrder, order_id)
        if order is None:
            raise SalesOrderNotFoundError(str(order_id))
        return order

    def _reload(self, order_id: UUID) -> SalesOrder:
        return self.session.execute(
            select(SalesOrder)
            .where(SalesOrder.id == order_id)
            .execution_options(populate_existing=True)
        ).scalar_one()

    def get_order(self, order_id: UUID) -> SalesOrderInfo:
        """
        Get a sales order by ID.

        Raises:
            SalesOrderNotFoundError: If the order doesn't exist.
        """
        return self._get_by_id(order_id).to_dto()

    def list_orders(
        self, status: SalesOrderStatus | None = None
    ) -> list[SalesOrderInfo]:
        """List orders in number order, optionally filtered by status."""
        stmt = select(SalesOrder)
        if status is not None:
            stmt = stmt.where(SalesOrder.status == SalesOrderStatus(status).value)
        stmt = stmt.order_by(SalesOrder.order_number)
        return [o.to_dto() for o in self.session.execute(stmt).scalars()]

    def create_order(
        self,
        order_number: int,
        customer_id: UUID,
        line_requests: Sequence[LineRequest],
        meta: DocumentMeta | None = None,
    ) -> SalesOrderInfo:
        """
        Create a PENDING sales order.

        Args:
            order_number: Number already allocated by SequenceService.
            customer_id: Customer the order is raised against.
            line_requests: One request per line; catalog values fill
                whatever the request leaves unset.
            meta: Optional notes, terms and place of supply.

        Returns:
            SalesOrderInfo DTO of the stored order.

        Raises:
            EmptyDocumentError: No line requests.
            CustomerNotFoundError: Unknown customer.
            InventoryItemNotFoundError: A line references an unknown item.
        """
        if not line_requests:
            raise EmptyDocumentError(SALES_ORDER_WORKFLOW.name)
        meta = validate_meta(meta)

        self._customers.ensure_exists(customer_id)
        lines = self._catalog.resolve_lines(line_requests)
        totals = compute_document_totals(lines)

        order = SalesOrder(
            order_number=order_number,
            customer_id=customer_id,
            status=SALES_ORDER_WORKFLOW.initial_state,
            sub_total=totals.sub_total.amount,
            tax_amount=totals.tax_amount.amount,
            total=totals.total.amount,
            place_of_supply=meta.place_of_supply,
            notes=meta.notes,
            terms=meta.terms,
            lines=[SalesOrderLine.from_snapshot(line) for line in lines],
        )
        self.session.add(order)
        self.session.flush()

        logger.info(
            "sales_order_created",
            extra={
                "sales_order_id": str(order.id),
                "order_number": order_number,
                "line_count": len(lines),
                "total": totals.total.amount,
            },
        )
        return order.to_dto()

    def transition(
        self, order_id: UUID, action: SalesOrderAction | str
    ) -> SalesOrderInfo:
        """
        Accept or reject a PENDING order.

        Raises:
            InvalidActionError: ``action`` is not accept/reject.
            SalesOrderNotFoundError: Unknown order.
            InvalidTransitionError: The order is not PENDING.
            ConflictError: A concurrent writer moved the order first.
        """
        action = coerce_sales_order_action(action)
        order = self._get_by_id(order_id)
        transition = SALES_ORDER_WORKFLOW.transition_for(
            order.status, action.value, document_id=str(order_id)
        )

        changed = self._compare_and_set_status(
            SalesOrder,
            order_id,
            SALES_ORDER_WORKFLOW.sources_for(action.value),
            transition.to_state,
        )
        order = self._reload(order_id)
        if not changed:
            logger.warning(
                "sales_order_transition_lost_race",
                extra={
                    "sales_order_id": str(order_id),
                    "action": action.value,
                    "current_status": order.status,
                },
            )
            raise ConflictError(
                f"sales_order.{action.value}",
                f"status changed to {order.status}",
            )

        logger.info(
            "sales_order_transitioned",
            extra={
                "sales_order_id": str(order_id),
                "from_status": transition.from_state,
                "to_status": transition.to_state,
            },
        )
        return order.to_dto()
