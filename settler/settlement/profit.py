"""
ProfitDistributor — распределение прибыли и возмещение убытка

Прибыль появляется только при отрицательном depeg (позиция ledger стоит
больше, чем ожидает ledger). Cascade в shares позиции:

1. profit → shares (CEIL, с dust correction)
2. Insurance: target = insurance_bps * ledger_total_assets / 10000,
   deficit = max(0, target - insurance_assets),
   insurance = min(remaining, shares(deficit))
3. Treasury: remaining * treasury_bps / 10000
4. Vault adapter (только vault settlement и vault total supply != 0):
   remaining * profit_share_bps / 10000
5. Residual: без перевода, остаётся капиталом ledger

Убыток (положительный depeg): один перевод CEIL shares от vault adapter
к ledger adapter до расчёта комиссий.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. insurance + treasury + vault <= total_profit_shares
2. profit_share_bps проверяется до любого внешнего вызова
3. Переводы с нулём shares не попадают в пакет команд
"""

import logging
from typing import List, Optional

from settler.core.domain.distribution import ProfitDistributionResult
from settler.core.domain.settlement_config import SettlementConfig
from settler.core.exceptions import InsufficientBalance
from settler.core.math.fixed_point import apply_bps, saturating_sub, validate_bps, validate_uint
from settler.settlement.interfaces import YieldPosition
from settler.settlement.netting import NettingEngine, ShareTransfer

logger = logging.getLogger(__name__)


class ProfitDistributor:
    """Profit cascade и loss recovery поверх NettingEngine."""

    def __init__(self, netting: Optional[NettingEngine] = None):
        self.netting = netting or NettingEngine()

    def distribute(
        self,
        *,
        profit_assets: int,
        position: YieldPosition,
        config: SettlementConfig,
        ledger_total_assets: int,
        insurance_assets: int,
        vault_total_supply: int,
        profit_share_bps: int,
        is_vault_settlement: bool = True,
    ) -> ProfitDistributionResult:
        """
        Расчёт cascade.

        Args:
            profit_assets: Прибыль в assets (-depeg)
            position: Внешняя позиция (конверсия assets → shares)
            config: Получатели и их доли
            ledger_total_assets: Ожидаемые активы ledger (база insurance target)
            insurance_assets: Текущая стоимость позиции insurance
            vault_total_supply: Supply vault, получающего долю
            profit_share_bps: Доля vault adapter
            is_vault_settlement: False — доля vault adapter не начисляется

        Returns:
            ProfitDistributionResult

        Raises:
            InvalidBasisPoints: profit_share_bps вне [0, 10000]
        """
        validate_bps(profit_share_bps, "profit_share_bps")
        validate_uint(profit_assets, "profit_assets")

        total = self.netting.shares_for_assets(position, profit_assets)
        remaining = total

        # 1. Insurance: только дефицит до целевого резерва
        insurance = 0
        if config.insurance_enabled and remaining > 0:
            target = apply_bps(ledger_total_assets, config.insurance_bps)
            deficit = saturating_sub(target, insurance_assets)
            if deficit > 0:
                insurance = min(remaining, self.netting.shares_for_assets(position, deficit))
            remaining -= insurance

        # 2. Treasury
        treasury = apply_bps(remaining, config.treasury_bps) if config.treasury_enabled else 0
        remaining -= treasury

        # 3. Vault adapter
        vault = 0
        if is_vault_settlement and vault_total_supply != 0:
            vault = apply_bps(remaining, profit_share_bps)

        result = ProfitDistributionResult(
            total_profit_shares=total,
            insurance_shares=insurance,
            treasury_shares=treasury,
            vault_adapter_shares=vault,
        )
        logger.debug(
            "Profit cascade: profit=%d shares=%d insurance=%d treasury=%d vault=%d residual=%d",
            profit_assets, total, insurance, treasury, vault, result.residual_shares,
        )
        return result

    @staticmethod
    def transfers(
        result: ProfitDistributionResult,
        config: SettlementConfig,
        ledger_adapter: str,
        vault_adapter: str,
    ) -> List[ShareTransfer]:
        """Переводы cascade от ledger adapter (нулевые опускаются)."""
        candidates = [
            (config.insurance, result.insurance_shares),
            (config.treasury, result.treasury_shares),
            (vault_adapter, result.vault_adapter_shares),
        ]
        return [
            ShareTransfer(sender=ledger_adapter, recipient=recipient, shares=shares)
            for recipient, shares in candidates
            if shares > 0
        ]

    def loss_recovery(
        self,
        loss_assets: int,
        position: YieldPosition,
        vault_adapter: str,
        ledger_adapter: str,
        available_shares: int,
    ) -> ShareTransfer:
        """
        Перевод от vault adapter к ledger adapter, покрывающий убыток.

        Raises:
            InsufficientBalance: У vault adapter меньше shares, чем нужно
        """
        shares = self.netting.shares_for_assets(position, loss_assets)
        if shares > available_shares:
            raise InsufficientBalance(vault_adapter, shares, available_shares, what="position shares")
        logger.debug("Loss recovery: loss=%d shares=%d", loss_assets, shares)
        return ShareTransfer(sender=vault_adapter, recipient=ledger_adapter, shares=shares)
