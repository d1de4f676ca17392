"""
NettingEngine — взаимозачёт заявок batch и перевод дельты во внешнюю позицию

netted = deposited - requested (assets, знаковое, без потерь).

- netted == 0 → no-op
- |netted| конвертируется в shares позиции (FLOOR), затем dust
  correction: пока convert_to_assets(shares) < |netted|, shares += 1.
  Получатель никогда не получает меньше |netted| в assets.
- Знак задаёт направление:
  INFLOW  (netted > 0) — активы поступают в позицию vault
  OUTFLOW (netted < 0) — активы выходят из позиции vault

Движок ничего не исполняет сам: он строит план и списки Command для
execution agent. Двухшаговые протоколы (request → claim) остаются
двумя командами одного атомарного пакета.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from settler.config import DEFAULT_MAX_DUST_STEPS
from settler.core.domain.batch import Batch
from settler.core.domain.commands import Command
from settler.core.exceptions import (
    BatchAlreadyClosed,
    BatchAlreadySettled,
    DustCorrectionExceeded,
    WrongNettingDirection,
)
from settler.core.math.fixed_point import validate_uint
from settler.settlement.interfaces import YieldPosition

logger = logging.getLogger(__name__)


class NettingDirection(str, Enum):
    NONE = "NONE"
    INFLOW = "INFLOW"
    OUTFLOW = "OUTFLOW"


@dataclass(frozen=True)
class NettingPlan:
    """План взаимозачёта."""

    netted: int  # deposited - requested
    direction: NettingDirection
    assets: int  # |netted|
    shares: int  # shares позиции, покрывающие assets (после dust correction)

    @property
    def is_noop(self) -> bool:
        return self.direction == NettingDirection.NONE


NOOP_PLAN = NettingPlan(0, NettingDirection.NONE, 0, 0)


def compute_netting(deposited: int, requested: int) -> int:
    """
    Examples:
        >>> compute_netting(100, 50)
        50
        >>> compute_netting(50, 100)
        -50
    """
    validate_uint(deposited, "deposited")
    validate_uint(requested, "requested")
    return deposited - requested


def direction_of(netted: int) -> NettingDirection:
    if netted > 0:
        return NettingDirection.INFLOW
    if netted < 0:
        return NettingDirection.OUTFLOW
    return NettingDirection.NONE


@dataclass(frozen=True)
class ShareTransfer:
    """Перевод shares позиции между двумя adapter."""

    sender: str
    recipient: str
    shares: int

    def command(self, position_address: str) -> Command:
        # sender: agent, исполняющий пакет
        return Command(position_address, "transfer", (self.recipient, self.shares))


class NettingEngine:
    """Расчёт netting и построение команд переводов."""

    def __init__(self, max_dust_steps: int = DEFAULT_MAX_DUST_STEPS):
        if max_dust_steps < 1:
            raise ValueError(f"max_dust_steps must be >= 1, got {max_dust_steps}")
        self.max_dust_steps = max_dust_steps

    # -------------------------------------------------------------------------
    # РАСЧЁТ
    # -------------------------------------------------------------------------

    def shares_for_assets(self, position: YieldPosition, assets: int) -> int:
        """
        Минимальное число shares позиции, стоимость которых >= assets.

        Raises:
            DustCorrectionExceeded: Если коррекция не сошлась за max_dust_steps
        """
        validate_uint(assets, "assets")
        if assets == 0:
            return 0

        shares = position.convert_to_shares(assets)
        steps = 0
        while position.convert_to_assets(shares) < assets:
            if steps >= self.max_dust_steps:
                raise DustCorrectionExceeded(assets, self.max_dust_steps)
            shares += 1
            steps += 1

        if steps:
            logger.debug("Dust correction for %d assets: +%d shares", assets, steps)
        return shares

    def plan(self, deposited: int, requested: int, position: YieldPosition) -> NettingPlan:
        """План по балансам batch (requested уже в assets)."""
        netted = compute_netting(deposited, requested)
        direction = direction_of(netted)
        if direction == NettingDirection.NONE:
            return NOOP_PLAN

        assets = abs(netted)
        shares = self.shares_for_assets(position, assets)
        logger.debug(
            "Netting plan: deposited=%d requested=%d netted=%d direction=%s shares=%d",
            deposited, requested, netted, direction.value, shares,
        )
        return NettingPlan(netted=netted, direction=direction, assets=assets, shares=shares)

    def plan_for_batch(
        self,
        batch: Batch,
        position: YieldPosition,
        requested_assets: Optional[int] = None,
        allow_closed: bool = False,
    ) -> NettingPlan:
        """
        План по снапшоту batch, прочитанному ДО close.

        Args:
            batch: Снапшот batch
            position: Внешняя позиция (для конверсии в shares)
            requested_assets: requested в assets (staking vault: shares vault,
                уже пересчитанные по текущей share price); None — batch.requested
            allow_closed: Batch уже закрыт ранее (propose без close)

        Raises:
            BatchAlreadyClosed, BatchAlreadySettled: Снапшот не в состоянии OPEN
        """
        if batch.is_settled:
            raise BatchAlreadySettled(batch.batch_id)
        if batch.is_closed and not allow_closed:
            raise BatchAlreadyClosed(batch.batch_id)

        requested = batch.requested if requested_assets is None else requested_assets
        return self.plan(batch.deposited, requested, position)

    # -------------------------------------------------------------------------
    # КОМАНДЫ
    # -------------------------------------------------------------------------

    @staticmethod
    def _expect(plan: NettingPlan, direction: NettingDirection) -> None:
        if plan.direction != direction:
            raise WrongNettingDirection(direction.value, plan.direction.value)

    def transfer(self, plan: NettingPlan, sender: str, recipient: str) -> ShareTransfer:
        """Перевод plan.shares между adapter (направление задаёт вызывающий)."""
        if plan.is_noop:
            raise WrongNettingDirection("INFLOW|OUTFLOW", plan.direction.value)
        return ShareTransfer(sender=sender, recipient=recipient, shares=plan.shares)

    def request_deposit_commands(
        self, plan: NettingPlan, position: YieldPosition, adapter: str
    ) -> List[Command]:
        self._expect(plan, NettingDirection.INFLOW)
        return [
            Command(position.asset, "approve", (position.address, plan.assets)),
            Command(position.address, "request_deposit", (plan.assets, adapter, adapter)),
        ]

    def claim_deposit_commands(
        self, assets: int, position: YieldPosition, adapter: str
    ) -> List[Command]:
        return [Command(position.address, "deposit", (assets, adapter, adapter))]

    def deposit_commands(
        self, plan: NettingPlan, position: YieldPosition, adapter: str
    ) -> List[Command]:
        """approve → request_deposit → deposit."""
        return self.request_deposit_commands(plan, position, adapter) + self.claim_deposit_commands(
            plan.assets, position, adapter
        )

    def request_redeem_commands(
        self, plan: NettingPlan, position: YieldPosition, adapter: str
    ) -> List[Command]:
        self._expect(plan, NettingDirection.OUTFLOW)
        return [Command(position.address, "request_redeem", (plan.shares, adapter, adapter))]

    def claim_redeem_commands(
        self, shares: int, position: YieldPosition, adapter: str
    ) -> List[Command]:
        return [Command(position.address, "redeem", (shares, adapter, adapter))]

    def redeem_commands(
        self, plan: NettingPlan, position: YieldPosition, adapter: str
    ) -> List[Command]:
        """request_redeem → redeem."""
        return self.request_redeem_commands(plan, position, adapter) + self.claim_redeem_commands(
            plan.shares, position, adapter
        )
