"""
SettlerConfig — конфигурация settler

Загрузка из JSON файла или dict: документ сначала проверяется схемой
(settler_config.json / settlement_config.json), затем строится frozen
Pydantic модель.
"""

import json
from pathlib import Path
from typing import Any, Dict, Mapping, Union

from pydantic import BaseModel, Field, field_validator

from settler.core.contracts import validate_settlement_config, validate_settler_config
from settler.core.domain.settlement_config import SettlementConfig
from settler.core.math.fixed_point import validate_bps

# Cooldown по умолчанию: 1 час
DEFAULT_COOLDOWN_SECONDS = 3600

# Предел dust correction при конверсии assets → shares
DEFAULT_MAX_DUST_STEPS = 1000


class SettlerConfig(BaseModel):
    """Параметры coordinator и settlement ledger."""

    cooldown_seconds: int = Field(
        DEFAULT_COOLDOWN_SECONDS, ge=0, description="Задержка между propose и execute"
    )
    require_guardian_acceptance: bool = Field(
        False, description="Execute только после accept_proposal guardian'ом"
    )
    max_dust_steps: int = Field(
        DEFAULT_MAX_DUST_STEPS, ge=1, description="Максимум шагов dust correction"
    )
    default_profit_share_bps: int = Field(
        0, description="Доля прибыли vault adapter, если relayer её не передал"
    )

    model_config = {"frozen": True}

    @field_validator("default_profit_share_bps")
    @classmethod
    def validate_profit_share(cls, v: int) -> int:
        return validate_bps(v, "default_profit_share_bps")


ConfigSource = Union[str, Path, Mapping[str, Any]]


def _read_document(source: ConfigSource) -> Dict[str, Any]:
    if isinstance(source, (str, Path)):
        with open(source, "r", encoding="utf-8") as f:
            return json.load(f)
    return dict(source)


def load_config(source: ConfigSource) -> SettlerConfig:
    """
    Загрузка SettlerConfig.

    Args:
        source: Путь к JSON файлу или уже разобранный dict

    Returns:
        SettlerConfig

    Raises:
        jsonschema.ValidationError: Документ не соответствует схеме
        FileNotFoundError: Файл не найден
    """
    data = _read_document(source)
    validate_settler_config(data)
    return SettlerConfig(**data)


def load_settlement_config(source: ConfigSource) -> SettlementConfig:
    """
    Загрузка SettlementConfig asset (получатели profit cascade).

    Документ проверяется схемой settlement_config.json, затем моделью.

    Raises:
        jsonschema.ValidationError: Документ не соответствует схеме
        pydantic.ValidationError: Доля > 0 при нулевом адресе получателя
    """
    data = _read_document(source)
    validate_settlement_config(data)
    return SettlementConfig(**data)
