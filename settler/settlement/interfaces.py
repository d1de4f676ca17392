"""
Interfaces — порты внешних систем, которые использует coordinator

Coordinator не знает реализаций: он работает только через эти
Protocol. Эталонные in-memory реализации — settler.memory.
"""

from typing import List, Optional, Protocol, Sequence

from settler.core.domain.batch import Batch, BatchBalances
from settler.core.domain.commands import Command, CommandResult
from settler.core.domain.fee_state import FeeState
from settler.core.domain.proposal import SettlementProposal
from settler.core.domain.settlement_config import SettlementConfig, VaultType


class Clock(Protocol):
    """Источник времени: unix seconds."""

    def __call__(self) -> int:
        ...


class SettlementLedger(Protocol):
    """Хранилище proposals: cooldown, accept, cancel, execute."""

    address: str

    def get_batch_balances(self, vault: str, batch_id: str) -> BatchBalances:
        ...

    def get_virtual_balance(self, vault: str) -> int:
        ...

    def propose_settle_batch(
        self,
        asset: str,
        vault: str,
        batch_id: str,
        total_assets: int,
        netted: int,
        last_fees_charged_management: int,
        last_fees_charged_performance: int,
        fees_charged: int = 0,
    ) -> str:
        ...

    def execute_settle_batch(self, proposal_id: str) -> SettlementProposal:
        ...

    def get_settlement_proposal(self, proposal_id: str) -> SettlementProposal:
        ...

    def latest_proposal_for_batch(
        self, vault: str, batch_id: str
    ) -> Optional[SettlementProposal]:
        ...

    def cancelled_proposals(self, asset: str) -> List[SettlementProposal]:
        """Отменённые proposals asset, чьи batch ещё не предложены заново."""
        ...

    def accept_proposal(self, proposal_id: str) -> SettlementProposal:
        ...

    def cancel_proposal(self, proposal_id: str) -> SettlementProposal:
        ...

    def get_cooldown(self) -> int:
        ...


class Registry(Protocol):
    """Адресная книга: vaults, adapters, targets, settlement config."""

    def get_adapter(self, vault: str, asset: str) -> str:
        ...

    def get_adapter_target(self, adapter: str, asset: str) -> str:
        ...

    def get_vault_by_type(self, asset: str, vault_type: VaultType) -> str:
        ...

    def get_vault_type(self, vault: str) -> VaultType:
        ...

    def get_settlement_config(self, asset: str) -> SettlementConfig:
        ...

    def get_treasury(self) -> str:
        ...

    def resolve(self, address: str):
        """Объект по адресу (vault ledger, позиция, adapter, token)."""
        ...


class VaultLedger(Protocol):
    """Ledger заявок одного vault (minter или staking vault)."""

    address: str
    asset: str
    decimals: int

    def current_batch_id(self) -> str:
        ...

    def get_batch(self, batch_id: str) -> Batch:
        ...

    def close_batch(self, batch_id: str, create_next: bool = True) -> Batch:
        ...

    def total_supply(self) -> int:
        ...

    def total_assets(self) -> int:
        ...


class StakingVaultLedger(VaultLedger, Protocol):
    """Yield-bearing vault: комиссии и share price."""

    def fee_state(self) -> FeeState:
        ...

    def share_price(self) -> int:
        ...

    def net_share_price(self) -> int:
        ...


class YieldPosition(Protocol):
    """Внешняя yield-bearing позиция (ERC-4626 с асинхронными request/claim)."""

    address: str
    asset: str

    def balance_of(self, account: str) -> int:
        ...

    def total_supply(self) -> int:
        ...

    def total_assets(self) -> int:
        ...

    def convert_to_shares(self, assets: int) -> int:
        ...

    def convert_to_assets(self, shares: int) -> int:
        ...

    def pending_deposit_request(self, controller: str) -> int:
        ...

    def claimable_deposit_request(self, controller: str) -> int:
        ...

    def pending_redeem_request(self, controller: str) -> int:
        ...

    def claimable_redeem_request(self, controller: str) -> int:
        ...


class ExecutionAgent(Protocol):
    """Исполнитель атомарных пакетов команд от имени своего адреса."""

    address: str

    def execute(self, commands: Sequence[Command]) -> List[CommandResult]:
        ...
