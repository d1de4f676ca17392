"""
ProfitDistributionResult — результат profit cascade

insurance → treasury → vault adapter → residual. Сумма трёх переводов
никогда не превышает total_profit_shares; residual остаётся капиталом
ledger без перевода.
"""

from pydantic import BaseModel, Field, model_validator


class ProfitDistributionResult(BaseModel):
    """Распределение прибыли в shares внешней позиции."""

    total_profit_shares: int = Field(..., ge=0)
    insurance_shares: int = Field(0, ge=0)
    treasury_shares: int = Field(0, ge=0)
    vault_adapter_shares: int = Field(0, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_total(self) -> "ProfitDistributionResult":
        if self.distributed_shares > self.total_profit_shares:
            raise ValueError(
                f"distributed {self.distributed_shares} shares exceed profit "
                f"{self.total_profit_shares}"
            )
        return self

    @property
    def distributed_shares(self) -> int:
        return self.insurance_shares + self.treasury_shares + self.vault_adapter_shares

    @property
    def residual_shares(self) -> int:
        return self.total_profit_shares - self.distributed_shares
