"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  All concrete services inherit
    from BaseService, receiving a SQLAlchemy ``Session`` that they use
    via ``session.flush()`` -- never ``session.commit()``.

Invariants enforced:
    Transaction boundaries: services flush within the caller's
    transaction and never commit or rollback themselves.  The caller
    (BillingOrchestrator or a test harness) owns commit/rollback, which
    is what makes "document and totals together, or nothing" hold.
"""

from abc import ABC
from typing import Generic, Iterable, TypeVar
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from billing_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    def __init__(self, session: Session):
        self.session = session

    def _compare_and_set_status(
        self,
        model: type[ModelType],
        row_id: UUID,
        allowed_from: Iterable[str],
        to_status: str,
    ) -> bool:
        """
        Move ``row_id`` to ``to_status`` only if it is still in ``allowed_from``.

        A single conditional UPDATE: of two writers racing from the same
        source status exactly one sees a row count of 1.

        Returns:
            True if this call changed the row.
        """
        result = self.session.execute(
            update(model)
            .where(model.id == row_id, model.status.in_(tuple(allowed_from)))
            .values(status=to_status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
