"""SettlementCoordinator — жизненный цикл batch по asset.

Публичные операции (role-gated):
- close_vault_batch: закрыть batch без settlement
- close_and_propose_minter_batch: institutional settlement (синхронный)
- close_and_request_custodial_batch / finalize_custodial_settlement:
  institutional settlement через custodian (request и claim разнесены)
- close_and_propose_vault_batch: settlement yield-bearing vault
- propose_settlement: proposal для уже закрытого batch
- execute_settlement, accept_proposal, cancel_proposal
- is_proposal_net_negative, quote_fees (read-only)

Порядок vault settlement:
1. Все чтения (registry, batch, fee state, depeg) до внешних вызовов
2. close batch
3. depeg > 0 → loss recovery; depeg < 0 → profit cascade
4. fees по стоимости позиции vault adapter; fee shares → treasury
5. netting против уже обновлённой позиции
6. total_assets читается из позиции → propose

Каждая операция — одна AtomicSection: любая ошибка откатывает всё.
"""

import logging
from typing import Dict, List, NamedTuple, Optional

from settler.config import SettlerConfig
from settler.core.auth import AuthContext, Role, RoleBook
from settler.core.domain.batch import Batch, BatchState
from settler.core.domain.commands import CommandResult
from settler.core.domain.position import AdapterPosition
from settler.core.domain.proposal import SettlementProposal
from settler.core.domain.receipt import CustodialRequest, SettlementReceipt
from settler.core.domain.settlement_config import VaultType
from settler.core.exceptions import (
    CancelledBatchPending,
    CustodialSettlementPending,
    InsufficientBalance,
    InvariantViolation,
    NoCustodialSettlement,
)
from settler.core.math.conversions import share_price, shares_to_assets_at_price
from settler.core.math.fees import FeeQuote, quote_fees
from settler.core.math.fixed_point import validate_address, validate_bps
from settler.core.transaction import AtomicSection, SnapshotMixin
from settler.settlement.interfaces import Clock, ExecutionAgent, Registry, SettlementLedger, YieldPosition
from settler.settlement.lifecycle import BatchEvent, derive_state, ensure_open, transition
from settler.settlement.netting import NettingDirection, NettingEngine, NettingPlan, ShareTransfer
from settler.settlement.profit import ProfitDistributor

logger = logging.getLogger(__name__)


class _Leg(NamedTuple):
    """Adapter vault и его позиция во внешнем venue."""

    agent: ExecutionAgent
    position: YieldPosition
    snapshot: AdapterPosition


class SettlementCoordinator(SnapshotMixin):
    """Оркестратор settlement: close → reconcile → fees → propose → execute."""

    # in-flight custodial requests откатываются вместе с участниками
    _state_fields = ("_custodial",)

    def __init__(
        self,
        *,
        address: str,
        registry: Registry,
        ledger: SettlementLedger,
        roles: RoleBook,
        clock: Clock,
        atomic: Optional[AtomicSection] = None,
        config: Optional[SettlerConfig] = None,
        netting: Optional[NettingEngine] = None,
        profit: Optional[ProfitDistributor] = None,
    ):
        """
        Args:
            address: Адрес coordinator
            registry: Адресная книга vaults/adapters
            ledger: Settlement ledger (хранит proposals)
            roles: Книга ролей
            clock: Источник времени (unix seconds)
            atomic: Общая атомарная секция (default: собственная)
            config: SettlerConfig (default: значения по умолчанию)
            netting: NettingEngine (default: max_dust_steps из config)
            profit: ProfitDistributor (default: поверх netting)
        """
        validate_address(address, "coordinator")
        self.address = address
        self.registry = registry
        self.ledger = ledger
        self.roles = roles
        self.clock = clock
        self.config = config or SettlerConfig()
        self.netting = netting or NettingEngine(self.config.max_dust_steps)
        self.profit = profit or ProfitDistributor(self.netting)
        self.atomic = atomic or AtomicSection()
        self.atomic.register(self)

        self._custodial: Dict[str, CustodialRequest] = {}

    # =========================================================================
    # ROLES
    # =========================================================================

    def grant_role(self, ctx: AuthContext, account: str, role: Role) -> None:
        self.roles.grant(ctx, account, role)

    def revoke_role(self, ctx: AuthContext, account: str, role: Role) -> None:
        self.roles.revoke(ctx, account, role)

    # =========================================================================
    # READS
    # =========================================================================

    def _leg(self, vault: str, asset: str) -> _Leg:
        adapter = self.registry.get_adapter(vault, asset)
        target = self.registry.get_adapter_target(adapter, asset)
        position = self.registry.resolve(target)
        shares = position.balance_of(adapter)
        snapshot = AdapterPosition(
            adapter=adapter,
            vault=vault,
            asset=asset,
            target=target,
            shares=shares,
            assets=position.convert_to_assets(shares),
        )
        return _Leg(self.registry.resolve(adapter), position, snapshot)

    @staticmethod
    def _position_value(leg: _Leg) -> int:
        return leg.position.convert_to_assets(leg.position.balance_of(leg.snapshot.adapter))

    def _ensure_no_custodial(self, asset: str) -> None:
        pending = self._custodial.get(asset)
        if pending is not None:
            raise CustodialSettlementPending(asset, pending.batch_id)

    def _ensure_settleable(self, asset: str, resuming: Optional[str] = None) -> None:
        """
        Новый settlement asset допустим без custodial запроса в процессе и
        без отменённых batch (кроме resuming, который предлагается заново).

        Raises:
            CustodialSettlementPending: Custodial запрос ещё не завершён
            CancelledBatchPending: Отменённый batch ещё не предложен заново
        """
        self._ensure_no_custodial(asset)
        for cancelled in self.ledger.cancelled_proposals(asset):
            if cancelled.batch_id != resuming:
                raise CancelledBatchPending(asset, cancelled.batch_id, cancelled.proposal_id)

    def _resolve_profit_share(self, profit_share_bps: Optional[int]) -> int:
        if profit_share_bps is None:
            profit_share_bps = self.config.default_profit_share_bps
        return validate_bps(profit_share_bps, "profit_share_bps")

    # =========================================================================
    # CLOSE
    # =========================================================================

    def close_vault_batch(
        self,
        ctx: AuthContext,
        vault: str,
        batch_id: Optional[str] = None,
        create_next: bool = True,
    ) -> Batch:
        """Закрыть batch без settlement (propose позже через propose_settlement)."""
        self.roles.require(ctx, Role.RELAYER)
        with self.atomic.atomic("close_vault_batch"):
            vault_ledger = self.registry.resolve(vault)
            batch_id = batch_id or vault_ledger.current_batch_id()
            closed = vault_ledger.close_batch(batch_id, create_next)
        logger.info("Batch %s of vault %s closed by %s", batch_id, vault, ctx.caller)
        return closed

    # =========================================================================
    # INSTITUTIONAL (MINTER) SETTLEMENT
    # =========================================================================

    def close_and_propose_minter_batch(self, ctx: AuthContext, asset: str) -> SettlementReceipt:
        """
        Institutional settlement: close → netting → deposit/redeem → propose.

        netted == 0 → proposal не создаётся (receipt.proposal_id is None).
        """
        self.roles.require(ctx, Role.RELAYER)
        with self.atomic.atomic("close_and_propose_minter_batch"):
            minter = self.registry.get_vault_by_type(asset, VaultType.MINTER)
            batch_id = self.registry.resolve(minter).current_batch_id()
            return self._settle_minter_batch(asset, minter, batch_id, close=True)

    def _settle_minter_batch(
        self, asset: str, minter_address: str, batch_id: str, close: bool
    ) -> SettlementReceipt:
        self._ensure_settleable(asset)

        # 1. Reads
        minter = self.registry.resolve(minter_address)
        batch = minter.get_batch(batch_id)
        leg = self._leg(minter_address, asset)
        plan = self.netting.plan_for_batch(batch, leg.position, allow_closed=not close)
        now = self.clock()

        # 2. Close
        if close:
            minter.close_batch(batch_id, True)

        if plan.is_noop:
            logger.info("Minter batch %s netted to zero: no proposal", batch_id)
            return SettlementReceipt(
                asset=asset,
                vault=minter_address,
                batch_id=batch_id,
                proposal_id=None,
                netted=0,
                total_assets=self._position_value(leg),
                details={"direction": plan.direction.value},
            )

        # 3. Netting во внешней позиции
        if plan.direction == NettingDirection.INFLOW:
            commands = self.netting.deposit_commands(plan, leg.position, leg.snapshot.adapter)
        else:
            commands = self.netting.redeem_commands(plan, leg.position, leg.snapshot.adapter)
        results = leg.agent.execute(commands)

        # 4. Propose: total_assets только из позиции
        total_assets = self._position_value(leg)
        proposal_id = self.ledger.propose_settle_batch(
            asset, minter_address, batch_id, total_assets, plan.netted, now, now
        )
        return SettlementReceipt(
            asset=asset,
            vault=minter_address,
            batch_id=batch_id,
            proposal_id=proposal_id,
            netted=plan.netted,
            total_assets=total_assets,
            details={
                "direction": plan.direction.value,
                "shares": plan.shares,
                "commands": [r.call for r in results],
            },
        )

    # =========================================================================
    # CUSTODIAL INSTITUTIONAL SETTLEMENT
    # =========================================================================

    def close_and_request_custodial_batch(self, ctx: AuthContext, asset: str) -> CustodialRequest:
        """
        Первая половина custodial settlement: close → request_deposit / request_redeem.

        Claim и propose выполняет finalize_custodial_settlement после
        исполнения запроса custodian'ом. netted == 0 → запрос не создаётся
        (direction NONE), batch просто закрывается.
        """
        self.roles.require(ctx, Role.RELAYER)
        with self.atomic.atomic("close_and_request_custodial_batch"):
            self._ensure_settleable(asset)

            minter_address = self.registry.get_vault_by_type(asset, VaultType.MINTER)
            minter = self.registry.resolve(minter_address)
            batch_id = minter.current_batch_id()
            batch = minter.get_batch(batch_id)
            leg = self._leg(minter_address, asset)
            plan = self.netting.plan_for_batch(batch, leg.position)

            if plan.direction == NettingDirection.INFLOW:
                balance_before = leg.snapshot.shares
            else:
                balance_before = self.registry.resolve(asset).balance_of(leg.snapshot.adapter)

            minter.close_batch(batch_id, True)

            request = CustodialRequest(
                asset=asset,
                vault=minter_address,
                batch_id=batch_id,
                netted=plan.netted,
                direction=plan.direction.value,
                assets=plan.assets,
                shares=plan.shares,
                balance_before=balance_before,
            )
            if plan.is_noop:
                logger.info("Custodial batch %s netted to zero: nothing requested", batch_id)
                return request

            if plan.direction == NettingDirection.INFLOW:
                commands = self.netting.request_deposit_commands(plan, leg.position, leg.snapshot.adapter)
            else:
                commands = self.netting.request_redeem_commands(plan, leg.position, leg.snapshot.adapter)
            leg.agent.execute(commands)
            self._custodial[asset] = request

        logger.info(
            "Custodial %s request for batch %s submitted (assets=%d shares=%d)",
            request.direction, batch_id, request.assets, request.shares,
        )
        return request

    def finalize_custodial_settlement(self, ctx: AuthContext, asset: str) -> SettlementReceipt:
        """
        Вторая половина custodial settlement: claim → проверка баланса → propose.

        Raises:
            NoCustodialSettlement: Для asset нет запроса в процессе
            InsufficientBalance: Запрос ещё не исполнен или получено меньше ожидаемого
        """
        self.roles.require(ctx, Role.RELAYER)
        with self.atomic.atomic("finalize_custodial_settlement"):
            request = self._custodial.get(asset)
            if request is None:
                raise NoCustodialSettlement(asset)

            leg = self._leg(request.vault, asset)
            adapter = leg.snapshot.adapter
            now = self.clock()

            if request.direction == NettingDirection.INFLOW.value:
                claimable = leg.position.claimable_deposit_request(adapter)
                if claimable < request.assets:
                    raise InsufficientBalance(adapter, request.assets, claimable, what="claimable deposit")
                results = leg.agent.execute(
                    self.netting.claim_deposit_commands(request.assets, leg.position, adapter)
                )
                claimed = results[-1].value
                received = leg.position.balance_of(adapter) - request.balance_before
                if claimed == 0 or received != claimed:
                    raise InsufficientBalance(adapter, claimed, received, what="position shares")
            else:
                claimable = leg.position.claimable_redeem_request(adapter)
                if claimable < request.shares:
                    raise InsufficientBalance(adapter, request.shares, claimable, what="claimable redeem")
                results = leg.agent.execute(
                    self.netting.claim_redeem_commands(request.shares, leg.position, adapter)
                )
                received = self.registry.resolve(asset).balance_of(adapter) - request.balance_before
                if received < request.assets:
                    raise InsufficientBalance(adapter, request.assets, received, what="token balance")

            del self._custodial[asset]

            total_assets = self._position_value(leg)
            proposal_id = self.ledger.propose_settle_batch(
                asset, request.vault, request.batch_id, total_assets, request.netted, now, now
            )
            return SettlementReceipt(
                asset=asset,
                vault=request.vault,
                batch_id=request.batch_id,
                proposal_id=proposal_id,
                netted=request.netted,
                total_assets=total_assets,
                details={"direction": request.direction, "received": received},
            )

    # =========================================================================
    # YIELD-BEARING VAULT SETTLEMENT
    # =========================================================================

    def close_and_propose_vault_batch(
        self,
        ctx: AuthContext,
        asset: str,
        vault: str,
        profit_share_bps: Optional[int] = None,
    ) -> SettlementReceipt:
        """
        Settlement staking vault: close → loss recovery / profit cascade →
        fees → netting → propose.

        Args:
            ctx: Контекст вызывающего (RELAYER)
            asset: Underlying asset
            vault: Адрес staking vault
            profit_share_bps: Доля прибыли vault adapter (default из SettlerConfig)

        Raises:
            InvalidBasisPoints: profit_share_bps вне [0, 10000] (до любых вызовов)
        """
        self.roles.require(ctx, Role.RELAYER)
        psb = self._resolve_profit_share(profit_share_bps)
        with self.atomic.atomic("close_and_propose_vault_batch"):
            batch_id = self.registry.resolve(vault).current_batch_id()
            return self._settle_vault_batch(asset, vault, batch_id, psb, close=True)

    def _settle_vault_batch(
        self, asset: str, vault_address: str, batch_id: str, profit_share_bps: int, close: bool
    ) -> SettlementReceipt:
        self._ensure_settleable(asset)

        # 1. Reads
        vault = self.registry.resolve(vault_address)
        minter_address = self.registry.get_vault_by_type(asset, VaultType.MINTER)
        config = self.registry.get_settlement_config(asset)
        treasury = self.registry.get_treasury()

        batch = vault.get_batch(batch_id)
        if close:
            ensure_open(batch)
        fee_state = vault.fee_state()
        supply = vault.total_supply()
        decimals = vault.decimals

        ledger_leg = self._leg(minter_address, asset)
        vault_leg = self._leg(vault_address, asset)
        if ledger_leg.snapshot.target != vault_leg.snapshot.target:
            raise InvariantViolation(
                f"vault {vault_address} and minter {minter_address} hold different positions"
            )
        position = vault_leg.position
        ledger_adapter = ledger_leg.snapshot.adapter
        vault_adapter = vault_leg.snapshot.adapter

        expected = self.ledger.get_virtual_balance(minter_address)
        actual = ledger_leg.snapshot.assets
        depeg = expected - actual
        now = self.clock()

        # 2. Close
        if close:
            vault.close_batch(batch_id, True)

        # 3. Reconcile: loss recovery или profit cascade
        distribution = None
        loss_shares = 0
        if depeg > 0:
            recovery = self.profit.loss_recovery(
                depeg, position, vault_adapter, ledger_adapter, vault_leg.snapshot.shares
            )
            vault_leg.agent.execute([recovery.command(position.address)])
            loss_shares = recovery.shares
            logger.info("Loss of %d assets recovered from vault %s (%d shares)",
                        depeg, vault_address, loss_shares)
        elif depeg < 0:
            insurance_assets = 0
            if config.insurance_enabled:
                insurance_assets = position.convert_to_assets(position.balance_of(config.insurance))
            distribution = self.profit.distribute(
                profit_assets=-depeg,
                position=position,
                config=config,
                ledger_total_assets=expected,
                insurance_assets=insurance_assets,
                vault_total_supply=supply,
                profit_share_bps=profit_share_bps,
            )
            transfers = self.profit.transfers(distribution, config, ledger_adapter, vault_adapter)
            if transfers:
                ledger_leg.agent.execute([t.command(position.address) for t in transfers])

        # 4. Fees по текущей стоимости позиции vault
        vault_assets = self._position_value(vault_leg)
        quote = quote_fees(
            fee_state, total_assets=vault_assets, total_supply=supply, decimals=decimals, now=now
        )
        logger.debug("Fee quote for %s: %s", vault_address, quote)
        mgmt_ts = now if quote.elapsed_management > 0 else fee_state.last_charged_management
        perf_ts = now if quote.elapsed_performance > 0 else fee_state.last_charged_performance

        fee_shares = position.convert_to_shares(quote.total_fee) if quote.total_fee else 0
        if fee_shares:
            fee_transfer = ShareTransfer(sender=vault_adapter, recipient=treasury, shares=fee_shares)
            vault_leg.agent.execute([fee_transfer.command(position.address)])

        # 5. Netting против обновлённой позиции
        price = share_price(self._position_value(vault_leg), supply, decimals)
        requested_assets = shares_to_assets_at_price(batch.requested, price, decimals)
        plan = self.netting.plan_for_batch(
            batch, position, requested_assets=requested_assets, allow_closed=not close
        )
        self._execute_vault_netting(plan, ledger_leg, vault_leg)

        # 6. Propose
        new_total_assets = self._position_value(vault_leg)
        proposal_id = self.ledger.propose_settle_batch(
            asset,
            vault_address,
            batch_id,
            new_total_assets,
            plan.netted,
            mgmt_ts,
            perf_ts,
            fees_charged=quote.total_fee,
        )
        return SettlementReceipt(
            asset=asset,
            vault=vault_address,
            batch_id=batch_id,
            proposal_id=proposal_id,
            netted=plan.netted,
            total_assets=new_total_assets,
            distribution=distribution,
            fee_quote=quote,
            loss_recovery_shares=loss_shares,
            details={
                "depeg": depeg,
                "fee_shares": fee_shares,
                "share_price": price,
                "requested_assets": requested_assets,
                "netting_shares": plan.shares,
                "direction": plan.direction.value,
            },
        )

    def _execute_vault_netting(
        self, plan: NettingPlan, ledger_leg: _Leg, vault_leg: _Leg
    ) -> List[CommandResult]:
        # INFLOW: стейкеры внесли активы → shares от ledger adapter к vault adapter
        if plan.direction == NettingDirection.INFLOW:
            transfer = self.netting.transfer(
                plan, ledger_leg.snapshot.adapter, vault_leg.snapshot.adapter
            )
            return ledger_leg.agent.execute([transfer.command(ledger_leg.snapshot.target)])
        if plan.direction == NettingDirection.OUTFLOW:
            transfer = self.netting.transfer(
                plan, vault_leg.snapshot.adapter, ledger_leg.snapshot.adapter
            )
            return vault_leg.agent.execute([transfer.command(vault_leg.snapshot.target)])
        return []

    # =========================================================================
    # PROPOSE FOR AN ALREADY CLOSED BATCH
    # =========================================================================

    def propose_settlement(
        self,
        ctx: AuthContext,
        asset: str,
        vault: str,
        batch_id: str,
        profit_share_bps: Optional[int] = None,
    ) -> SettlementReceipt:
        """
        Proposal для batch, закрытого ранее.

        - CLOSED (закрыт через close_vault_batch): полный flow без close
        - CANCELLED: повторный proposal с netted и fee timestamps
          отменённого, без повторных переводов; total_assets читается заново
        """
        self.roles.require(ctx, Role.RELAYER)
        psb = self._resolve_profit_share(profit_share_bps)
        with self.atomic.atomic("propose_settlement"):
            vault_ledger = self.registry.resolve(vault)
            batch = vault_ledger.get_batch(batch_id)
            previous = self.ledger.latest_proposal_for_batch(vault, batch_id)
            status = previous.status if previous else None
            state = derive_state(batch, status)

            if state == BatchState.CANCELLED:
                return self._repropose(asset, vault, previous)
            if state != BatchState.CLOSED:
                transition(batch, BatchEvent.PROPOSE, status)

            if self.registry.get_vault_type(vault).is_yield_bearing:
                return self._settle_vault_batch(asset, vault, batch_id, psb, close=False)
            return self._settle_minter_batch(asset, vault, batch_id, close=False)

    def _repropose(self, asset: str, vault: str, cancelled: SettlementProposal) -> SettlementReceipt:
        self._ensure_settleable(asset, resuming=cancelled.batch_id)
        leg = self._leg(vault, asset)
        total_assets = self._position_value(leg)
        proposal_id = self.ledger.propose_settle_batch(
            asset,
            vault,
            cancelled.batch_id,
            total_assets,
            cancelled.netted,
            cancelled.last_fees_charged_management,
            cancelled.last_fees_charged_performance,
            fees_charged=cancelled.fees_charged,
        )
        logger.info("Batch %s re-proposed as %s (replaces %s)",
                    cancelled.batch_id, proposal_id, cancelled.proposal_id)
        return SettlementReceipt(
            asset=asset,
            vault=vault,
            batch_id=cancelled.batch_id,
            proposal_id=proposal_id,
            netted=cancelled.netted,
            total_assets=total_assets,
            details={"replaces": cancelled.proposal_id},
        )

    # =========================================================================
    # EXECUTION AND GUARDIAN
    # =========================================================================

    def execute_settlement(self, ctx: AuthContext, proposal_id: str) -> SettlementProposal:
        self.roles.require(ctx, Role.RELAYER)
        with self.atomic.atomic("execute_settlement"):
            return self.ledger.execute_settle_batch(proposal_id)

    def accept_proposal(self, ctx: AuthContext, proposal_id: str) -> SettlementProposal:
        self.roles.require(ctx, Role.GUARDIAN)
        with self.atomic.atomic("accept_proposal"):
            return self.ledger.accept_proposal(proposal_id)

    def cancel_proposal(self, ctx: AuthContext, proposal_id: str) -> SettlementProposal:
        self.roles.require(ctx, Role.GUARDIAN)
        with self.atomic.atomic("cancel_proposal"):
            return self.ledger.cancel_proposal(proposal_id)

    # =========================================================================
    # VIEWS
    # =========================================================================

    def is_proposal_net_negative(self, proposal_id: str) -> bool:
        return self.ledger.get_settlement_proposal(proposal_id).is_net_negative

    def quote_fees(self, vault: str) -> FeeQuote:
        """Комиссии vault, если бы settlement прошёл сейчас (без списания)."""
        vault_ledger = self.registry.resolve(vault)
        leg = self._leg(vault, vault_ledger.asset)
        return quote_fees(
            vault_ledger.fee_state(),
            total_assets=self._position_value(leg),
            total_supply=vault_ledger.total_supply(),
            decimals=vault_ledger.decimals,
            now=self.clock(),
        )

    def custodial_request(self, asset: str) -> Optional[CustodialRequest]:
        return self._custodial.get(asset)
