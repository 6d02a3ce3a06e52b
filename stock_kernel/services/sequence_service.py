"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing sequence numbers for movement rows so that
    ledgers and paginated histories sort stably by ``(date, seq)``.  Uses a
    counter table with row-level locking (``SELECT ... FOR UPDATE``).

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Called by every
    service that inserts movements.

Invariants enforced:
    - Monotonicity: the locked counter row is the sole source of the next
      value.  Aggregate max-plus-one is never used.
    - Transactional: an allocation is only visible after the caller's
      transaction commits; a rollback returns the value.

Failure modes:
    - Concurrent counter creation race: handled by savepoint rollback and
      re-read under lock.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from stock_kernel.db.base import Base
from stock_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """One row per named sequence holding its current value."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Does NOT call ``session.commit()``; the caller controls boundaries.
    """

    PADDY_MOVEMENT = "paddy_movement"
    RICE_PRODUCTION = "rice_production"
    RICE_STOCK_MOVEMENT = "rice_stock_movement"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock the counter row (creating it on first use), increment, return.

        Returns:
            An integer > 0, strictly greater than any value previously
            returned for this sequence name.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                self._session.add(SequenceCounter(name=sequence_name, current_value=1))
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except DBIntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing, or None if never allocated."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None
