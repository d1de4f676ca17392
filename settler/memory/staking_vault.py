"""
In-memory yield-bearing staking vault

Staker'ы заявляют stake в assets и unstake в shares vault. На settle
batch заявки исполняются по net share price:

    net_price   = (total_assets - netted) * 10**decimals / supply_before
    gross_price = (total_assets - netted + fees_charged) * 10**decimals / supply_before

stake → shares = assets / net_price (FLOOR), unstake → assets =
shares * net_price (FLOOR). Dust округления остаётся в vault.
"""

import logging
from typing import Dict

from settler.core.domain.batch import Batch
from settler.core.domain.fee_state import FeeState
from settler.core.exceptions import InsufficientBalance, UnknownBatch
from settler.core.math.conversions import (
    assets_to_shares_at_price,
    share_price,
    shares_to_assets_at_price,
)
from settler.core.math.fixed_point import decimals_scale, validate_uint
from settler.core.transaction import SnapshotMixin
from settler.memory.chain import Chain, make_address, make_id
from settler.memory.token import MemoryToken
from settler.settlement.lifecycle import BatchEvent, transition

logger = logging.getLogger(__name__)


class MemoryStakingVault(SnapshotMixin):
    _state_fields = (
        "batches",
        "_current",
        "_nonce",
        "_supply",
        "_booked",
        "_net_price",
        "balances",
        "stakes",
        "unstakes",
        "unstaked_assets",
        "_fee_state",
    )

    def __init__(
        self,
        chain: Chain,
        token: MemoryToken,
        label: str = "staking-vault",
        management_fee_bps: int = 0,
        performance_fee_bps: int = 0,
        hurdle_rate_bps: int = 0,
        is_hard_hurdle: bool = False,
    ):
        self.chain = chain
        self.token = token
        self.asset = token.address
        self.decimals = token.decimals
        self.address = make_address(f"vault:{label}")

        self.batches: Dict[str, Batch] = {}
        self._nonce = 0
        self._supply = 0
        self._booked = 0
        self._net_price = decimals_scale(self.decimals)
        self.balances: Dict[str, int] = {}
        # batch_id -> {user: assets}
        self.stakes: Dict[str, Dict[str, int]] = {}
        # batch_id -> {user: shares}
        self.unstakes: Dict[str, Dict[str, int]] = {}
        # user -> assets, начисленные по исполненным unstake
        self.unstaked_assets: Dict[str, int] = {}
        now = chain.now()
        self._fee_state = FeeState(
            management_fee_bps=management_fee_bps,
            performance_fee_bps=performance_fee_bps,
            hurdle_rate_bps=hurdle_rate_bps,
            is_hard_hurdle=is_hard_hurdle,
            share_price_watermark=decimals_scale(self.decimals),
            last_charged_management=now,
            last_charged_performance=now,
        )
        self._current = self._open_batch()

    def _open_batch(self) -> str:
        batch_id = make_id(self.address, self.asset, self._nonce)
        self._nonce += 1
        self.batches[batch_id] = Batch(asset=self.asset, vault=self.address, batch_id=batch_id)
        self.stakes[batch_id] = {}
        self.unstakes[batch_id] = {}
        return batch_id

    # ---------------------------------------------------------------- views

    def current_batch_id(self) -> str:
        return self._current

    def get_batch(self, batch_id: str) -> Batch:
        try:
            return self.batches[batch_id]
        except KeyError:
            raise UnknownBatch(batch_id) from None

    def total_supply(self) -> int:
        return self._supply

    def total_assets(self) -> int:
        return self._booked

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def fee_state(self) -> FeeState:
        return self._fee_state

    def share_price(self) -> int:
        return share_price(self._booked, self._supply, self.decimals)

    def net_share_price(self) -> int:
        return self._net_price

    # -------------------------------------------------------------- requests

    def request_stake(self, user: str, assets: int) -> None:
        validate_uint(assets, "assets")
        batch = self.get_batch(self._current)
        stakes = self.stakes[batch.batch_id]
        stakes[user] = stakes.get(user, 0) + assets
        self.batches[batch.batch_id] = batch.model_copy(update={"deposited": batch.deposited + assets})

    def request_unstake(self, user: str, shares: int) -> None:
        validate_uint(shares, "shares")
        balance = self.balance_of(user)
        if balance < shares:
            raise InsufficientBalance(user, shares, balance, what="vault shares")
        batch = self.get_batch(self._current)
        self.balances[user] = balance - shares
        unstakes = self.unstakes[batch.batch_id]
        unstakes[user] = unstakes.get(user, 0) + shares
        self.batches[batch.batch_id] = batch.model_copy(update={"requested": batch.requested + shares})

    # ------------------------------------------------------------ lifecycle

    def close_batch(self, batch_id: str, create_next: bool = True) -> Batch:
        batch = self.get_batch(batch_id)
        transition(batch, BatchEvent.CLOSE)
        closed = batch.model_copy(update={"is_closed": True})
        self.batches[batch_id] = closed
        if create_next and batch_id == self._current:
            self._current = self._open_batch()
        logger.info("Vault batch %s closed (deposited=%d, requested=%d shares)",
                    batch_id, closed.deposited, closed.requested)
        return closed

    def settle_batch(self, batch_id: str, total_assets: int, netted: int, fees_charged: int) -> Batch:
        batch = self.get_batch(batch_id)
        supply_before = self._supply
        net_assets = total_assets - netted
        net_price = share_price(net_assets, supply_before, self.decimals)
        gross_price = share_price(net_assets + fees_charged, supply_before, self.decimals)

        minted = 0
        for user, assets in self.stakes.pop(batch_id, {}).items():
            shares = assets_to_shares_at_price(assets, net_price, self.decimals)
            self.balances[user] = self.balance_of(user) + shares
            minted += shares

        burned = 0
        for user, shares in self.unstakes.pop(batch_id, {}).items():
            assets = shares_to_assets_at_price(shares, net_price, self.decimals)
            self.unstaked_assets[user] = self.unstaked_assets.get(user, 0) + assets
            burned += shares

        self._supply = supply_before + minted - burned
        self._booked = total_assets
        self._net_price = net_price

        settled = batch.model_copy(
            update={
                "is_settled": True,
                "gross_share_price": gross_price,
                "net_share_price": net_price,
            }
        )
        self.batches[batch_id] = settled
        logger.info(
            "Vault batch %s settled: minted=%d burned=%d net_price=%d gross_price=%d",
            batch_id, minted, burned, net_price, gross_price,
        )
        return settled

    # ------------------------------------------------------------------ fees

    def notify_management_fees_charged(self, timestamp: int) -> None:
        self._fee_state = self._fee_state.with_management_charged(timestamp)

    def notify_performance_fees_charged(self, timestamp: int, price: int) -> None:
        self._fee_state = self._fee_state.with_performance_charged(timestamp, price)
