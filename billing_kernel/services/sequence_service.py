"""
SequenceService -- monotonic document number allocation via locked counter rows.

Responsibility:
    Provides strictly increasing numbers per document type (sales orders,
    invoices).  Uses a dedicated counter table with row-level locking
    (``SELECT ... FOR UPDATE``) to guarantee uniqueness and ordering under
    concurrent access.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by BillingOrchestrator in a short transaction of its own, before
    the document-create transaction opens.

Invariants enforced:
    - Monotonicity: numbers are strictly increasing per sequence.  The SQL
      aggregate-max-plus-one anti-pattern is FORBIDDEN -- the locked counter
      row is the sole source of truth for the next value.
    - No reuse: because the orchestrator commits the allocation before the
      document is written, a failed or rolled-back create burns its number.
      Gaps are allowed; duplicates and decreases are not.

Failure modes:
    - IntegrityError: Concurrent counter creation race (handled via
      savepoint rollback and retry).
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from billing_kernel.db.base import Base
from billing_kernel.domain.numbering import DocumentType
from billing_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    Row-level locking ensures monotonicity under concurrency.
    """

    __tablename__ = "sequence_counters"

    # Sequence name (a DocumentType value)
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    # Last value handed out
    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating document sequence numbers.

    Contract:
        Accepts a sequence name and returns the next strictly-monotonic
        integer value.  The increment is visible to others once the caller's
        transaction commits.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.

    Usage:
        with session_scope() as session:
            number = SequenceService(session).next_value(DocumentType.INVOICE)
    """

    def __init__(self, session: Session):
        self._session = session

    def next_value(self, sequence_name: DocumentType | str) -> int:
        """
        Get the next value for a named sequence.

        This method:
        1. Locks the sequence row (or creates it if not exists)
        2. Increments the counter
        3. Returns the new value

        Postconditions:
            - Returns an integer > 0 that is strictly greater than any
              previously committed value for this sequence name.
            - The counter row is locked until the transaction completes.
        """
        name = sequence_name.value if isinstance(sequence_name, DocumentType) else sequence_name

        # Expire any cached counter objects to ensure fresh read from DB
        self._session.expire_all()

        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == name)
            .with_for_update()  # Row-level lock
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if counter is None:
            # First use of this sequence; another writer may race us to it.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": name},
                )
                savepoint.rollback()
                self._session.expire_all()
                counter = self._session.execute(
                    select(SequenceCounter)
                    .where(SequenceCounter.name == name)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                ).scalar_one()

        # Increment via locked row, never aggregate-max+1
        counter.current_value += 1
        assert counter.current_value > 0, "sequence value must be strictly positive"
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: DocumentType | str) -> int | None:
        """Current value of a sequence without incrementing, or None."""
        name = sequence_name.value if isinstance(sequence_name, DocumentType) else sequence_name
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == name)
        ).scalar_one_or_none()

        return counter.current_value if counter else None

    def initialize_sequences(self) -> None:
        """
        Create a zeroed counter for every DocumentType that lacks one.

        Called during database setup to ensure sequences exist.
        """
        for document_type in DocumentType:
            existing = self._session.execute(
                select(SequenceCounter)
                .where(SequenceCounter.name == document_type.value)
            ).scalar_one_or_none()

            if existing is None:
                self._session.add(
                    SequenceCounter(name=document_type.value, current_value=0)
                )

        self._session.flush()
