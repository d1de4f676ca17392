"""
In-memory институциональный minter ledger

Институции вносят underlying (mint) и заявляют вывод (redeem) в assets.
Внесённые токены уходят на custody — адрес minter adapter. Учтённые
активы (booked) меняются только при исполнении settlement proposals.
"""

import logging
from typing import Dict

from settler.core.domain.batch import Batch
from settler.core.exceptions import InvariantViolation, UnknownBatch
from settler.core.math.fixed_point import validate_address, validate_int, validate_uint
from settler.core.transaction import SnapshotMixin
from settler.memory.chain import Chain, make_address, make_id
from settler.memory.token import MemoryToken
from settler.settlement.lifecycle import BatchEvent, transition

logger = logging.getLogger(__name__)


class MemoryMinter(SnapshotMixin):
    _state_fields = ("batches", "_current", "_nonce", "_booked")

    def __init__(self, chain: Chain, token: MemoryToken, custody: str, label: str = "minter"):
        validate_address(custody, "custody")
        self.chain = chain
        self.token = token
        self.custody = custody
        self.asset = token.address
        self.decimals = token.decimals
        self.address = make_address(f"vault:{label}")

        self.batches: Dict[str, Batch] = {}
        self._nonce = 0
        self._booked = 0
        self._current = self._open_batch()

    def _open_batch(self) -> str:
        batch_id = make_id(self.address, self.asset, self._nonce)
        self._nonce += 1
        self.batches[batch_id] = Batch(asset=self.asset, vault=self.address, batch_id=batch_id)
        return batch_id

    def current_batch_id(self) -> str:
        return self._current

    def get_batch(self, batch_id: str) -> Batch:
        try:
            return self.batches[batch_id]
        except KeyError:
            raise UnknownBatch(batch_id) from None

    def total_assets(self) -> int:
        return self._booked

    def total_supply(self) -> int:
        return self._booked

    def record_mint(self, account: str, amount: int) -> None:
        validate_uint(amount, "amount")
        batch = self.get_batch(self._current)
        self.token.transfer(account, self.custody, amount)
        self.batches[batch.batch_id] = batch.model_copy(update={"deposited": batch.deposited + amount})

    def record_redeem_request(self, account: str, amount: int) -> None:
        validate_uint(amount, "amount")
        batch = self.get_batch(self._current)
        self.batches[batch.batch_id] = batch.model_copy(update={"requested": batch.requested + amount})

    def close_batch(self, batch_id: str, create_next: bool = True) -> Batch:
        batch = self.get_batch(batch_id)
        transition(batch, BatchEvent.CLOSE)
        closed = batch.model_copy(update={"is_closed": True})
        self.batches[batch_id] = closed
        if create_next and batch_id == self._current:
            self._current = self._open_batch()
        logger.info("Minter batch %s closed (deposited=%d, requested=%d)",
                    batch_id, closed.deposited, closed.requested)
        return closed

    def settle_batch(self, batch_id: str) -> Batch:
        batch = self.get_batch(batch_id)
        settled = batch.model_copy(update={"is_settled": True})
        self.batches[batch_id] = settled
        return settled

    def book_assets(self, delta: int) -> int:
        validate_int(delta, "delta")
        if self._booked + delta < 0:
            raise InvariantViolation(
                f"booked assets of {self.address} would become negative ({self._booked} + {delta})"
            )
        self._booked += delta
        return self._booked
