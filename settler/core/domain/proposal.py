"""
SettlementProposal — Модель предложения settlement

Proposal создаётся coordinator, хранится settlement ledger и
исполняется не раньше execute_after (cooldown). Терминальные состояния:
EXECUTED или CANCELLED.

Контракт сериализации: to_contract() возвращает JSON-совместимый dict
(большие целые — десятичные строки), валидный по схеме
settlement_proposal.json.
"""

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class ProposalStatus(str, Enum):
    """Статус proposal."""

    PENDING = "PENDING"
    EXECUTED = "EXECUTED"
    CANCELLED = "CANCELLED"


class SettlementProposal(BaseModel):
    """
    Предложение settlement одного batch.

    netted и yield_ — знаковые:
    - netted > 0: активы поступили в позицию vault
    - yield_ > 0: позиция выросла сверх ожидаемого ledger
    """

    proposal_id: str = Field(..., min_length=1)
    asset: str = Field(..., min_length=1)
    vault: str = Field(..., min_length=1)
    batch_id: str = Field(..., min_length=1)

    total_assets: int = Field(..., ge=0, description="Активы, прочитанные из позиции")
    netted: int = Field(..., description="deposited - requested (assets)")
    yield_: int = Field(..., alias="yield", description="total_assets - last_total_assets - netted")
    fees_charged: int = Field(0, ge=0, description="Комиссии, списанные в этом settlement")

    execute_after: int = Field(..., ge=0, description="Unix timestamp окончания cooldown")
    last_fees_charged_management: int = Field(0, ge=0)
    last_fees_charged_performance: int = Field(0, ge=0)

    accepted: bool = Field(False, description="Одобрено guardian")
    status: ProposalStatus = Field(ProposalStatus.PENDING)

    model_config = {"frozen": True, "populate_by_name": True}

    @property
    def is_pending(self) -> bool:
        return self.status == ProposalStatus.PENDING

    @property
    def is_net_negative(self) -> bool:
        """True если выводы батча превышают депозиты."""
        return self.netted < 0

    def to_contract(self) -> Dict[str, Any]:
        """JSON-совместимое представление (uint/int как строки)."""
        return {
            "proposal_id": self.proposal_id,
            "asset": self.asset,
            "vault": self.vault,
            "batch_id": self.batch_id,
            "total_assets": str(self.total_assets),
            "netted": str(self.netted),
            "yield": str(self.yield_),
            "fees_charged": str(self.fees_charged),
            "execute_after": self.execute_after,
            "last_fees_charged_management": self.last_fees_charged_management,
            "last_fees_charged_performance": self.last_fees_charged_performance,
            "accepted": self.accepted,
            "status": self.status.value,
        }
