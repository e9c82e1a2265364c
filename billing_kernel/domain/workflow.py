"""
Document lifecycle state machines (``billing_kernel.domain.workflow``).

Responsibility
--------------
Closed status enums and explicit transition tables for sales orders and
invoices.  A transition that is not in the table is rejected; there is no
ad hoc status string anywhere else in the kernel.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  The services
layer turns ``Workflow.transition_for`` into a compare-and-set UPDATE.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
* OVERDUE is derived on read from ``due_date`` and never written by a
  transition; it stays non-terminal (PAID and CANCELLED remain allowed).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

from billing_kernel.exceptions import InvalidActionError, InvalidTransitionError


class SalesOrderStatus(str, Enum):
    """Sales order lifecycle states."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states."""

    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class SalesOrderAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class InvoiceAction(str, Enum):
    MARK_PAID = "paid"
    CANCEL = "cancelled"


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    Guarantees: ``initial_state`` is a member of ``states``.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"{self.name}: initial state {self.initial_state} not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(f"{self.name}: transition {t} references unknown state")
            if t.from_state in self.terminal_states:
                raise ValueError(f"{self.name}: terminal state {t.from_state} has an exit")

    @property
    def actions(self) -> frozenset[str]:
        return frozenset(t.action for t in self.transitions)

    def sources_for(self, action: str) -> tuple[str, ...]:
        """States from which ``action`` is legal."""
        return tuple(t.from_state for t in self.transitions if t.action == action)

    def target_for(self, action: str) -> str:
        for t in self.transitions:
            if t.action == action:
                return t.to_state
        raise InvalidActionError(self.name, action)

    def transition_for(
        self, current: str, action: str, document_id: str | None = None
    ) -> Transition:
        """
        Look up the transition for ``action`` from ``current``.

        Raises:
            InvalidActionError: ``action`` is not an action of this workflow.
            InvalidTransitionError: ``action`` is not legal from ``current``.
        """
        if action not in self.actions:
            raise InvalidActionError(self.name, action)
        for t in self.transitions:
            if t.from_state == current and t.action == action:
                return t
        raise InvalidTransitionError(
            document_type=self.name,
            current_status=current,
            action=action,
            target_status=self.target_for(action),
            document_id=document_id,
        )

    def apply(self, current: str, action: str) -> str:
        """Return the status reached by ``action`` from ``current``."""
        return self.transition_for(current, action).to_state


# -----------------------------------------------------------------------------
# Sales Order Workflow
# -----------------------------------------------------------------------------

SALES_ORDER_WORKFLOW = Workflow(
    name="sales_order",
    description="Sales order acceptance lifecycle",
    initial_state=SalesOrderStatus.PENDING.value,
    states=tuple(s.value for s in SalesOrderStatus),
    transitions=(
        Transition("PENDING", "ACCEPTED", action=SalesOrderAction.ACCEPT.value),
        Transition("PENDING", "REJECTED", action=SalesOrderAction.REJECT.value),
    ),
    terminal_states=("ACCEPTED", "REJECTED"),
)


# -----------------------------------------------------------------------------
# Invoice Workflow
# -----------------------------------------------------------------------------

INVOICE_WORKFLOW = Workflow(
    name="invoice",
    description="Invoice settlement lifecycle",
    initial_state=InvoiceStatus.PENDING.value,
    states=tuple(s.value for s in InvoiceStatus),
    transitions=(
        Transition("PENDING", "PAID", action=InvoiceAction.MARK_PAID.value),
        Transition("PENDING", "CANCELLED", action=InvoiceAction.CANCEL.value),
        Transition("OVERDUE", "PAID", action=InvoiceAction.MARK_PAID.value),
        Transition("OVERDUE", "CANCELLED", action=InvoiceAction.CANCEL.value),
    ),
    terminal_states=("PAID", "CANCELLED"),
)


def coerce_sales_order_action(action: SalesOrderAction | str) -> SalesOrderAction:
    try:
        return SalesOrderAction(action)
    except ValueError as exc:
        raise InvalidActionError(SALES_ORDER_WORKFLOW.name, str(action)) from exc


def coerce_invoice_action(action: InvoiceAction | str) -> InvoiceAction:
    try:
        return InvoiceAction(action)
    except ValueError as exc:
        raise InvalidActionError(INVOICE_WORKFLOW.name, str(action)) from exc


def accept(status: SalesOrderStatus) -> SalesOrderStatus:
    return SalesOrderStatus(
        SALES_ORDER_WORKFLOW.apply(status.value, SalesOrderAction.ACCEPT.value)
    )


def reject(status: SalesOrderStatus) -> SalesOrderStatus:
    return SalesOrderStatus(
        SALES_ORDER_WORKFLOW.apply(status.value, SalesOrderAction.REJECT.value)
    )


def mark_paid(status: InvoiceStatus) -> InvoiceStatus:
    return InvoiceStatus(
        INVOICE_WORKFLOW.apply(status.value, InvoiceAction.MARK_PAID.value)
    )


def cancel(status: InvoiceStatus) -> InvoiceStatus:
    return InvoiceStatus(
        INVOICE_WORKFLOW.apply(status.value, InvoiceAction.CANCEL.value)
    )


def effective_invoice_status(
    stored: InvoiceStatus, due_date: date, today: date
) -> InvoiceStatus:
    """The status a reader sees: PENDING past its due date reads as OVERDUE."""
    if stored == InvoiceStatus.PENDING and due_date < today:
        return InvoiceStatus.OVERDUE
    return stored
