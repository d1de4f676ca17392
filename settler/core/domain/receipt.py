"""
SettlementReceipt — итог одного вызова coordinator

Receipt возвращается relayer'у после close/propose. proposal_id=None —
sentinel "proposal не создан" (netted == 0 у institutional batch).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from settler.core.domain.distribution import ProfitDistributionResult
from settler.core.math.fees import ZERO_FEES, FeeQuote


@dataclass(frozen=True)
class SettlementReceipt:
    """Результат settlement batch."""

    asset: str
    vault: str
    batch_id: str
    proposal_id: Optional[str]
    netted: int
    total_assets: int

    distribution: Optional[ProfitDistributionResult] = None
    fee_quote: FeeQuote = ZERO_FEES
    loss_recovery_shares: int = 0
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_proposal(self) -> bool:
        return self.proposal_id is not None


@dataclass(frozen=True)
class CustodialRequest:
    """
    Первая половина custodial settlement: request отправлен, claim ждёт
    исполнения custodian'ом.

    direction — значение NettingDirection ("INFLOW" / "OUTFLOW").
    """

    asset: str
    vault: str
    batch_id: str
    netted: int
    direction: str
    assets: int
    shares: int
    balance_before: int = 0  # баланс adapter до request (token или position shares)
