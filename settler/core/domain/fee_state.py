"""
FeeState — Параметры и состояние комиссий vault

Мутируется только уведомлениями о списании комиссий после исполнения
proposal. Watermark только растёт.
"""

from pydantic import BaseModel, Field, field_validator

from settler.core.math.fixed_point import validate_bps


class FeeState(BaseModel):
    """Комиссии одного vault."""

    management_fee_bps: int = Field(0, description="Годовая management fee (bps)")
    performance_fee_bps: int = Field(0, description="Performance fee (bps)")
    hurdle_rate_bps: int = Field(0, description="Годовой hurdle rate (bps)")
    is_hard_hurdle: bool = Field(False, description="Hard hurdle: fee только с превышения")

    share_price_watermark: int = Field(..., gt=0, description="Максимальная share price")
    last_charged_management: int = Field(0, ge=0, description="Timestamp списания management")
    last_charged_performance: int = Field(0, ge=0, description="Timestamp списания performance")

    model_config = {"frozen": True}

    @field_validator("management_fee_bps", "performance_fee_bps", "hurdle_rate_bps")
    @classmethod
    def validate_rate(cls, v: int, info) -> int:
        return validate_bps(v, info.field_name)

    def with_management_charged(self, timestamp: int) -> "FeeState":
        return self.model_copy(update={"last_charged_management": timestamp})

    def with_performance_charged(self, timestamp: int, share_price: int) -> "FeeState":
        """Списание performance fee; watermark поднимается до share_price."""
        return self.model_copy(
            update={
                "last_charged_performance": timestamp,
                "share_price_watermark": max(self.share_price_watermark, share_price),
            }
        )
