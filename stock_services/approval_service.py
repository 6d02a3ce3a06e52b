"""
stock_services.approval_service -- Paddy movement approval gate.

Responsibility:
    Moves paddy movements from pending to approved or rejected, singly or
    in bulk.  Rule evaluation is delegated to the pure transition engine
    (``stock_engines.approval``); this service owns locking, persistence
    and logging.

Architecture position:
    Services layer.  May import from stock_kernel (domain, models, db,
    selectors, services) and the pure engines.

Invariants enforced:
    - pending -> approved | rejected only; both are terminal.
    - A movement becomes effective for every balance query the moment its
      approval flushes; nothing is cached.
    - Bulk actions run each item in its own savepoint: one failing item
      never blocks or undoes the others.
    - Per-movement serialization via the key lock plus a row lock.
    - A movement that earmarks bags to an outturn is approved only while
      that outturn is open, under the outturn's key lock and row lock, so
      approval and clearing never interleave.

Failure modes:
    - MovementNotFoundError if the id is unknown.
    - MovementAlreadyResolvedError when the movement is already approved or
      rejected (approving twice is rejected, not silently accepted).
    - InvalidTransitionError for any other illegal transition.
    - OutturnClearedError when approving into a cleared outturn.
    - LockContentionError when the movement is locked by another writer.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from stock_engines.approval import TransitionEvaluation, evaluate_transition
from stock_kernel.domain.approval import (
    ApprovalDecision,
    ApprovalStatus,
    BulkOutcome,
    ItemOutcome,
    ItemOutcomeStatus,
)
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.movements import PaddyMovement
from stock_kernel.exceptions import (
    InvalidTransitionError,
    MovementAlreadyResolvedError,
    MovementNotFoundError,
    OutturnClearedError,
    OutturnNotFoundError,
    StockKernelError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.master_data import Outturn
from stock_kernel.models.movements import PaddyMovementModel
from stock_kernel.services.key_lock import (
    KeyLockRegistry,
    get_key_locks,
    lock_row,
    movement_key,
    outturn_key,
)

logger = get_logger("services.approval")

_OUTCOME_FOR = {
    ApprovalDecision.APPROVE: ItemOutcomeStatus.APPROVED,
    ApprovalDecision.REJECT: ItemOutcomeStatus.REJECTED,
}


class ApprovalService:
    """Approve / reject paddy movements."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        locks: KeyLockRegistry | None = None,
    ) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        self._locks = locks or get_key_locks()

    # ------------------------------------------------------------------
    # Single item
    # ------------------------------------------------------------------

    def approve(self, movement_id: UUID, actor_id: UUID) -> PaddyMovement:
        return self._decide(movement_id, ApprovalDecision.APPROVE, actor_id)

    def reject(self, movement_id: UUID, actor_id: UUID, reason: str | None = None) -> PaddyMovement:
        return self._decide(movement_id, ApprovalDecision.REJECT, actor_id, reason)

    def _decide(
        self,
        movement_id: UUID,
        decision: ApprovalDecision,
        actor_id: UUID,
        reason: str | None = None,
    ) -> PaddyMovement:
        with LogContext.bind(movement_id=movement_id, actor_id=actor_id), \
                self._locks.hold(movement_key(movement_id)):
            row = lock_row(self._session, PaddyMovementModel, movement_id)
            if row is None:
                raise MovementNotFoundError(str(movement_id))

            evaluation = evaluate_transition(ApprovalStatus(row.status), decision)
            if not evaluation.allowed:
                logger.warning(
                    "movement_transition_rejected",
                    extra={
                        "current_status": evaluation.current.value,
                        "target_status": evaluation.target.value,
                        "reason": evaluation.reason,
                    },
                )
                if evaluation.already_resolved:
                    raise MovementAlreadyResolvedError(str(movement_id), evaluation.current.value)
                raise InvalidTransitionError(evaluation.current.value, evaluation.target.value)

            if decision == ApprovalDecision.APPROVE and row.outturn_id is not None:
                with self._locks.hold(outturn_key(row.outturn_id)):
                    self._require_open_outturn(row)
                    return self._apply(row, evaluation, decision, actor_id, reason)
            return self._apply(row, evaluation, decision, actor_id, reason)

    def _require_open_outturn(self, row: PaddyMovementModel) -> None:
        """Earmarked bags may only become effective in an uncleared outturn."""
        outturn = lock_row(self._session, Outturn, row.outturn_id)
        if outturn is None:
            raise OutturnNotFoundError(str(row.outturn_id))
        if outturn.is_cleared:
            logger.warning(
                "movement_approval_rejected_cleared",
                extra={"outturn_code": outturn.code},
            )
            raise OutturnClearedError(str(row.outturn_id))

    def _apply(
        self,
        row: PaddyMovementModel,
        evaluation: TransitionEvaluation,
        decision: ApprovalDecision,
        actor_id: UUID,
        reason: str | None,
    ) -> PaddyMovement:
        row.status = evaluation.target.value
        row.resolved_at = self._clock.now()
        row.resolved_by_id = actor_id
        row.updated_by_id = actor_id
        if decision == ApprovalDecision.REJECT:
            row.rejection_reason = reason
        self._session.flush()

        logger.info(
            f"movement_{evaluation.target.value}",
            extra={
                "kind": row.kind,
                "bags": row.bags,
                "movement_date": str(row.movement_date),
                "reason": reason,
            },
        )
        return row.to_dto()

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    def bulk_approve(self, movement_ids: Iterable[UUID], actor_id: UUID) -> BulkOutcome:
        return self._bulk(movement_ids, ApprovalDecision.APPROVE, actor_id)

    def bulk_reject(
        self,
        movement_ids: Iterable[UUID],
        actor_id: UUID,
        reason: str | None = None,
    ) -> BulkOutcome:
        return self._bulk(movement_ids, ApprovalDecision.REJECT, actor_id, reason)

    def _bulk(
        self,
        movement_ids: Iterable[UUID],
        decision: ApprovalDecision,
        actor_id: UUID,
        reason: str | None = None,
    ) -> BulkOutcome:
        items: list[ItemOutcome] = []
        for movement_id in dict.fromkeys(movement_ids):
            savepoint = self._session.begin_nested()
            try:
                self._decide(movement_id, decision, actor_id, reason)
            except StockKernelError as exc:
                savepoint.rollback()
                items.append(ItemOutcome(
                    movement_id=movement_id,
                    outcome=ItemOutcomeStatus.FAILED,
                    error_code=exc.code,
                    message=str(exc),
                ))
                continue
            savepoint.commit()
            items.append(ItemOutcome(movement_id=movement_id, outcome=_OUTCOME_FOR[decision]))

        outcome = BulkOutcome(decision=decision, items=tuple(items))
        logger.info(
            "bulk_transition_completed",
            extra={
                "decision": decision.value,
                "requested": len(items),
                "succeeded": len(outcome.succeeded),
                "failed": len(outcome.failed),
            },
        )
        return outcome
