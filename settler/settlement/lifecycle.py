"""Batch Lifecycle — state machine batch и proposal.

OPEN → CLOSED → PROPOSED → SETTLED, альтернативно PROPOSED → CANCELLED.
CANCELLED batch остаётся закрытым и может быть предложен заново.

Состояние не хранится отдельно: оно выводится из флагов batch
(is_closed / is_settled) и статуса последнего proposal этого batch.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Type

from settler.core.domain.batch import Batch, BatchState
from settler.core.domain.proposal import ProposalStatus
from settler.core.exceptions import (
    BatchAlreadyClosed,
    BatchAlreadySettled,
    BatchNotClosed,
    ProposalAlreadyPending,
    ProposalNotPending,
    StateViolation,
)


class BatchEvent(str, Enum):
    """Событие жизненного цикла."""

    CLOSE = "CLOSE"
    PROPOSE = "PROPOSE"
    EXECUTE = "EXECUTE"
    CANCEL = "CANCEL"


# Допустимые переходы
TRANSITIONS: Dict[Tuple[BatchState, BatchEvent], BatchState] = {
    (BatchState.OPEN, BatchEvent.CLOSE): BatchState.CLOSED,
    (BatchState.CLOSED, BatchEvent.PROPOSE): BatchState.PROPOSED,
    (BatchState.CANCELLED, BatchEvent.PROPOSE): BatchState.PROPOSED,
    (BatchState.PROPOSED, BatchEvent.EXECUTE): BatchState.SETTLED,
    (BatchState.PROPOSED, BatchEvent.CANCEL): BatchState.CANCELLED,
}

# Ошибка для недопустимой пары (state, event); по умолчанию ProposalNotPending
_VIOLATIONS: Dict[Tuple[BatchState, BatchEvent], Type[StateViolation]] = {
    (BatchState.CLOSED, BatchEvent.CLOSE): BatchAlreadyClosed,
    (BatchState.PROPOSED, BatchEvent.CLOSE): BatchAlreadyClosed,
    (BatchState.CANCELLED, BatchEvent.CLOSE): BatchAlreadyClosed,
    (BatchState.SETTLED, BatchEvent.CLOSE): BatchAlreadySettled,
    (BatchState.OPEN, BatchEvent.PROPOSE): BatchNotClosed,
    (BatchState.PROPOSED, BatchEvent.PROPOSE): ProposalAlreadyPending,
    (BatchState.SETTLED, BatchEvent.PROPOSE): BatchAlreadySettled,
    (BatchState.SETTLED, BatchEvent.EXECUTE): BatchAlreadySettled,
}


@dataclass(frozen=True)
class LifecycleTransition:
    """Результат перехода."""

    batch_id: str
    previous_state: BatchState
    new_state: BatchState
    event: BatchEvent

    # Для отладки
    details: str


def derive_state(batch: Batch, proposal_status: Optional[ProposalStatus] = None) -> BatchState:
    """Состояние batch по его флагам и статусу последнего proposal.

    Args:
        batch: Снапшот batch из vault ledger
        proposal_status: Статус последнего proposal batch (None — не было)
    """
    if batch.is_settled:
        return BatchState.SETTLED
    if not batch.is_closed:
        return BatchState.OPEN
    if proposal_status == ProposalStatus.PENDING:
        return BatchState.PROPOSED
    if proposal_status == ProposalStatus.CANCELLED:
        return BatchState.CANCELLED
    return BatchState.CLOSED


def _violation(
    batch_id: str, state: BatchState, event: BatchEvent, proposal_id: Optional[str]
) -> StateViolation:
    error_cls = _VIOLATIONS.get((state, event), ProposalNotPending)
    if error_cls is ProposalNotPending:
        return ProposalNotPending(proposal_id or batch_id, state.value)
    return error_cls(batch_id)


def transition(
    batch: Batch,
    event: BatchEvent,
    proposal_status: Optional[ProposalStatus] = None,
    proposal_id: Optional[str] = None,
) -> LifecycleTransition:
    """Проверка и вычисление перехода.

    Функция чистая: она не меняет batch, а только подтверждает, что
    событие допустимо, и возвращает новое состояние. Применяет переход
    владелец состояния (vault ledger / settlement ledger).

    Raises:
        StateViolation: Если событие недопустимо в текущем состоянии
    """
    state = derive_state(batch, proposal_status)
    new_state = TRANSITIONS.get((state, event))
    if new_state is None:
        raise _violation(batch.batch_id, state, event, proposal_id)
    return LifecycleTransition(
        batch_id=batch.batch_id,
        previous_state=state,
        new_state=new_state,
        event=event,
        details=f"{state.value} --{event.value}--> {new_state.value}",
    )


def ensure_open(batch: Batch) -> None:
    """Batch ещё принимает заявки (close допустим)."""
    transition(batch, BatchEvent.CLOSE)
