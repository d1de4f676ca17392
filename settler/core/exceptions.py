"""
Settlement Exceptions — типизированная иерархия ошибок

Все ошибки settler наследуются от SettlementError и делятся на четыре
класса, которые вызывающая сторона различает явно:

- StateViolation: нарушение жизненного цикла batch/proposal
  (повторный close, повторный settle, cooldown ещё не истёк)
- InvariantViolation: неверный вызов (bps > 100%, zero address,
  неверное направление netting); отклоняется ДО любого внешнего вызова
- ResourceShortfall: баланс после перевода меньше ожидаемого минимума
- Unauthorized: у вызывающего нет нужной роли

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Любая ошибка фатальна для всей операции (полный rollback)
2. Автоматических повторов нет: решение о повторе принимает relayer
"""

from typing import Any, Optional


class SettlementError(Exception):
    """Базовая ошибка settler."""


# =============================================================================
# STATE VIOLATIONS
# =============================================================================


class StateViolation(SettlementError):
    """Операция недопустима в текущем состоянии batch или proposal."""


class BatchAlreadyClosed(StateViolation):
    def __init__(self, batch_id: str):
        super().__init__(f"Batch {batch_id} is already closed")
        self.batch_id = batch_id


class BatchAlreadySettled(StateViolation):
    def __init__(self, batch_id: str):
        super().__init__(f"Batch {batch_id} is already settled")
        self.batch_id = batch_id


class BatchNotClosed(StateViolation):
    def __init__(self, batch_id: str):
        super().__init__(f"Batch {batch_id} must be closed before it can be proposed")
        self.batch_id = batch_id


class UnknownBatch(StateViolation):
    def __init__(self, batch_id: str):
        super().__init__(f"Unknown batch {batch_id}")
        self.batch_id = batch_id


class ProposalAlreadyPending(StateViolation):
    def __init__(self, subject: str):
        super().__init__(f"A settlement proposal is already pending for {subject}")
        self.subject = subject


class ProposalNotPending(StateViolation):
    def __init__(self, proposal_id: str, status: str):
        super().__init__(f"Proposal {proposal_id} is not pending (status={status})")
        self.proposal_id = proposal_id
        self.status = status


class ProposalNotAccepted(StateViolation):
    def __init__(self, proposal_id: str):
        super().__init__(f"Proposal {proposal_id} requires guardian acceptance before execution")
        self.proposal_id = proposal_id


class UnknownProposal(StateViolation):
    def __init__(self, proposal_id: str):
        super().__init__(f"Unknown proposal {proposal_id}")
        self.proposal_id = proposal_id


class CooldownActive(StateViolation):
    """Proposal нельзя исполнить до истечения execute_after."""

    def __init__(self, proposal_id: str, execute_after: int, now: int):
        super().__init__(
            f"Proposal {proposal_id} cannot execute before {execute_after} "
            f"(now={now}, remaining={execute_after - now}s)"
        )
        self.proposal_id = proposal_id
        self.execute_after = execute_after
        self.now = now


class CustodialSettlementPending(StateViolation):
    def __init__(self, asset: str, batch_id: str):
        super().__init__(
            f"Custodial settlement of batch {batch_id} for asset {asset} is still in flight"
        )
        self.asset = asset
        self.batch_id = batch_id


class NoCustodialSettlement(StateViolation):
    def __init__(self, asset: str):
        super().__init__(f"No custodial settlement in flight for asset {asset}")
        self.asset = asset


class CancelledBatchPending(StateViolation):
    """Отменённый batch asset должен быть предложен заново до новых settlements."""

    def __init__(self, asset: str, batch_id: str, proposal_id: str):
        super().__init__(
            f"Batch {batch_id} of asset {asset} was cancelled (proposal {proposal_id}) "
            f"and must be re-proposed first"
        )
        self.asset = asset
        self.batch_id = batch_id
        self.proposal_id = proposal_id


# =============================================================================
# INVARIANT VIOLATIONS
# =============================================================================


class InvariantViolation(SettlementError, ValueError):
    """Неверные аргументы или неверный путь исполнения."""


class WrongNettingDirection(InvariantViolation):
    def __init__(self, expected: str, actual: str):
        super().__init__(f"Netting flow expects direction {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class InvalidBasisPoints(InvariantViolation):
    def __init__(self, name: str, value: Any):
        super().__init__(f"{name} must be within [0, 10000] bps, got {value}")
        self.name = name
        self.value = value


class ZeroAddress(InvariantViolation):
    def __init__(self, name: str):
        super().__init__(f"{name} must not be the zero address")
        self.name = name


class DustCorrectionExceeded(InvariantViolation):
    def __init__(self, assets: int, steps: int):
        super().__init__(
            f"Dust correction for {assets} assets did not converge within {steps} steps"
        )
        self.assets = assets
        self.steps = steps


# =============================================================================
# RESOURCE SHORTFALL
# =============================================================================


class ResourceShortfall(SettlementError):
    """Фактический баланс меньше ожидаемого минимума."""


class InsufficientBalance(ResourceShortfall):
    def __init__(self, account: str, required: int, available: int, what: str = "balance"):
        super().__init__(
            f"Insufficient {what} for {account}: required {required}, available {available}"
        )
        self.account = account
        self.required = required
        self.available = available


# =============================================================================
# AUTHORIZATION / DISPATCH
# =============================================================================


class Unauthorized(SettlementError):
    def __init__(self, caller: str, role: str):
        super().__init__(f"{caller} lacks role {role}")
        self.caller = caller
        self.role = role


class CommandFailed(SettlementError):
    """Команду нельзя доставить: неизвестный target или метод."""

    def __init__(self, index: int, target: str, call: str, reason: Optional[str] = None):
        message = f"Command #{index} {call} on {target} cannot be dispatched"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.index = index
        self.target = target
        self.call = call
