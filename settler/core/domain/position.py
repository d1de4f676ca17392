"""
AdapterPosition — снапшот позиции execution agent во внешнем venue

Read-only для core: позиция меняется только переводами через agent.
"""

from pydantic import BaseModel, Field


class AdapterPosition(BaseModel):
    """Позиция adapter в yield-bearing venue для пары (vault, asset)."""

    adapter: str = Field(..., min_length=1, description="Адрес execution agent")
    vault: str = Field(..., min_length=1, description="Vault, от имени которого держится позиция")
    asset: str = Field(..., min_length=1, description="Underlying asset")
    target: str = Field(..., min_length=1, description="Адрес внешней позиции")

    shares: int = Field(..., ge=0, description="Shares позиции у adapter")
    assets: int = Field(..., ge=0, description="Стоимость shares в assets (floor)")

    model_config = {"frozen": True}
