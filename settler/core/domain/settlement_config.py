"""
SettlementConfig — Конфигурация распределения прибыли по asset

Адреса treasury и insurance и их доли в basis points. Нулевой адрес
допустим только вместе с нулевой долей (получатель отключён).
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from settler.core.math.fixed_point import ZERO_ADDRESS, is_zero_address, validate_bps

ADDRESS_PATTERN = r"^0x[0-9a-fA-F]{40}$"


class VaultType(str, Enum):
    """Тип vault в registry."""

    MINTER = "MINTER"  # институциональный mint/redeem ledger
    DN = "DN"  # delta-neutral staking vault
    ALPHA = "ALPHA"
    BETA = "BETA"

    @property
    def is_yield_bearing(self) -> bool:
        return self != VaultType.MINTER


class SettlementConfig(BaseModel):
    """Получатели profit cascade для одного asset."""

    treasury: str = Field(ZERO_ADDRESS, pattern=ADDRESS_PATTERN)
    insurance: str = Field(ZERO_ADDRESS, pattern=ADDRESS_PATTERN)
    treasury_bps: int = Field(0, description="Доля остатка прибыли treasury (bps)")
    insurance_bps: int = Field(0, description="Целевой резерв insurance (bps от ledger total assets)")

    model_config = {"frozen": True}

    @field_validator("treasury_bps", "insurance_bps")
    @classmethod
    def validate_share(cls, v: int, info) -> int:
        return validate_bps(v, info.field_name)

    @model_validator(mode="after")
    def validate_recipients(self) -> "SettlementConfig":
        """Получатель с ненулевой долей должен иметь адрес."""
        if self.treasury_bps > 0 and is_zero_address(self.treasury):
            raise ValueError("treasury must be set when treasury_bps > 0")
        if self.insurance_bps > 0 and is_zero_address(self.insurance):
            raise ValueError("insurance must be set when insurance_bps > 0")
        return self

    @property
    def insurance_enabled(self) -> bool:
        return self.insurance_bps > 0

    @property
    def treasury_enabled(self) -> bool:
        return self.treasury_bps > 0
