"""
Batch — Модель батча заявок

Batch накапливает заявки одного asset/vault за период и закрывается и
сеттлится как единое целое.

- Minter (институциональный ledger): deposited и requested в assets
- Staking vault: deposited в assets, requested в shares vault
  (конвертируется в assets по текущей цене при netting)

Immutable Pydantic модель: каждое изменение создаёт новый экземпляр
через model_copy. Batch никогда не удаляется.
"""

from enum import Enum

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class BatchState(str, Enum):
    """
    Состояние жизненного цикла batch.

    OPEN → CLOSED → PROPOSED → SETTLED, альтернативно PROPOSED → CANCELLED.
    """

    OPEN = "OPEN"
    CLOSED = "CLOSED"
    PROPOSED = "PROPOSED"
    SETTLED = "SETTLED"
    CANCELLED = "CANCELLED"


# =============================================================================
# MODELS
# =============================================================================


class BatchBalances(BaseModel):
    """Балансы batch, как их видит settlement ledger."""

    deposited: int = Field(..., ge=0, description="Сумма депозитов (assets)")
    requested: int = Field(..., ge=0, description="Сумма заявок на вывод")

    model_config = {"frozen": True}

    @property
    def netted(self) -> int:
        """deposited - requested (знаковое, без потерь)."""
        return self.deposited - self.requested


class Batch(BaseModel):
    """
    Модель batch заявок.

    Флаги is_closed / is_settled выполняют роль mutex: batch закрывается
    ровно один раз и сеттлится ровно один раз.
    """

    asset: str = Field(..., min_length=1, description="Адрес underlying asset")
    vault: str = Field(..., min_length=1, description="Адрес vault/ledger")
    batch_id: str = Field(..., min_length=1, description="Неизменяемый id batch")

    deposited: int = Field(0, ge=0, description="Депозиты (assets)")
    requested: int = Field(0, ge=0, description="Заявки на вывод (assets или shares vault)")

    is_closed: bool = Field(False, description="Batch закрыт для новых заявок")
    is_settled: bool = Field(False, description="Batch сеттлен")

    gross_share_price: int = Field(0, ge=0, description="Share price до комиссий")
    net_share_price: int = Field(0, ge=0, description="Share price после комиссий")

    model_config = {"frozen": True}

    @property
    def balances(self) -> BatchBalances:
        return BatchBalances(deposited=self.deposited, requested=self.requested)

    @property
    def is_open(self) -> bool:
        return not self.is_closed and not self.is_settled
