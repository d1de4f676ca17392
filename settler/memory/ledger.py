"""
In-memory settlement ledger

Хранит proposals и владеет их state machine: cooldown, guardian
acceptance, cancel, execute. Исполнение proposal применяет batch к
vault ledger и перебалансирует booked активы minter.

Virtual balance vault — активы, которые ledger ожидает увидеть в его
позиции с учётом ещё не исполненных proposals:

    minter:  booked + own pending netted - pending netted других vaults asset
    vault:   booked + own pending netted
"""

import logging
from typing import Dict, List, Optional, Tuple

from settler.core.domain.batch import BatchBalances
from settler.core.domain.proposal import ProposalStatus, SettlementProposal
from settler.core.domain.settlement_config import VaultType
from settler.core.exceptions import (
    CooldownActive,
    InvariantViolation,
    ProposalAlreadyPending,
    ProposalNotAccepted,
    ProposalNotPending,
    UnknownProposal,
)
from settler.core.math.fixed_point import validate_int, validate_uint
from settler.core.transaction import SnapshotMixin
from settler.memory.chain import Chain, make_address, make_id
from settler.memory.registry import MemoryRegistry
from settler.settlement.lifecycle import BatchEvent, transition

logger = logging.getLogger(__name__)


class MemorySettlementLedger(SnapshotMixin):
    _state_fields = ("proposals", "_latest", "_pending", "_nonce")

    def __init__(
        self,
        chain: Chain,
        registry: MemoryRegistry,
        cooldown_seconds: int = 3600,
        require_acceptance: bool = False,
        label: str = "settlement-ledger",
    ):
        validate_uint(cooldown_seconds, "cooldown_seconds")
        self.chain = chain
        self.registry = registry
        self.cooldown_seconds = cooldown_seconds
        self.require_acceptance = require_acceptance
        self.address = make_address(label)

        self.proposals: Dict[str, SettlementProposal] = {}
        # (vault, batch_id) -> последний proposal_id
        self._latest: Dict[Tuple[str, str], str] = {}
        # vault -> pending proposal_id
        self._pending: Dict[str, str] = {}
        self._nonce = 0

    # ---------------------------------------------------------------- views

    def get_cooldown(self) -> int:
        return self.cooldown_seconds

    def get_batch_balances(self, vault: str, batch_id: str) -> BatchBalances:
        return self.registry.resolve(vault).get_batch(batch_id).balances

    def get_settlement_proposal(self, proposal_id: str) -> SettlementProposal:
        try:
            return self.proposals[proposal_id]
        except KeyError:
            raise UnknownProposal(proposal_id) from None

    def latest_proposal_for_batch(self, vault: str, batch_id: str) -> Optional[SettlementProposal]:
        proposal_id = self._latest.get((vault, batch_id))
        return self.proposals[proposal_id] if proposal_id else None

    def proposal_status_for_batch(self, vault: str, batch_id: str) -> Optional[ProposalStatus]:
        proposal = self.latest_proposal_for_batch(vault, batch_id)
        return proposal.status if proposal else None

    def pending_proposal_for_vault(self, vault: str) -> Optional[SettlementProposal]:
        proposal_id = self._pending.get(vault)
        return self.proposals[proposal_id] if proposal_id else None

    def cancelled_proposals(self, asset: str) -> List[SettlementProposal]:
        # последний proposal batch отменён → batch ждёт повторного propose
        latest = (self.proposals[pid] for pid in self._latest.values())
        return [
            p for p in latest if p.asset == asset and p.status == ProposalStatus.CANCELLED
        ]

    def get_virtual_balance(self, vault: str) -> int:
        vault_obj = self.registry.resolve(vault)
        balance = vault_obj.total_assets()
        own = self.pending_proposal_for_vault(vault)
        if own is not None:
            balance += own.netted

        if self.registry.get_vault_type(vault) == VaultType.MINTER:
            for other_vault, proposal_id in self._pending.items():
                proposal = self.proposals[proposal_id]
                if other_vault != vault and proposal.asset == vault_obj.asset:
                    balance -= proposal.netted
        return balance

    # ------------------------------------------------------------- propose

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
        validate_uint(total_assets, "total_assets")
        validate_int(netted, "netted")
        validate_uint(fees_charged, "fees_charged")

        vault_obj = self.registry.resolve(vault)
        batch = vault_obj.get_batch(batch_id)
        transition(batch, BatchEvent.PROPOSE, self.proposal_status_for_batch(vault, batch_id))
        if vault in self._pending:
            raise ProposalAlreadyPending(vault)

        if self.registry.get_vault_type(vault) == VaultType.MINTER and netted != batch.balances.netted:
            raise InvariantViolation(
                f"netted {netted} does not match batch {batch_id} balances ({batch.balances.netted})"
            )

        yield_ = total_assets - self.get_virtual_balance(vault) - netted
        now = self.chain.now()
        proposal_id = make_id(self.address, vault, batch_id, self._nonce)
        self._nonce += 1

        proposal = SettlementProposal(
            proposal_id=proposal_id,
            asset=asset,
            vault=vault,
            batch_id=batch_id,
            total_assets=total_assets,
            netted=netted,
            yield_=yield_,
            fees_charged=fees_charged,
            execute_after=now + self.cooldown_seconds,
            last_fees_charged_management=last_fees_charged_management,
            last_fees_charged_performance=last_fees_charged_performance,
        )
        self.proposals[proposal_id] = proposal
        self._latest[(vault, batch_id)] = proposal_id
        self._pending[vault] = proposal_id

        logger.info(
            "Proposal %s submitted for batch %s (total=%d netted=%d yield=%d, executable after %d)",
            proposal_id, batch_id, total_assets, netted, yield_, proposal.execute_after,
        )
        return proposal_id

    # ------------------------------------------------------------ guardian

    def _require_pending(self, proposal_id: str) -> SettlementProposal:
        proposal = self.get_settlement_proposal(proposal_id)
        if not proposal.is_pending:
            raise ProposalNotPending(proposal_id, proposal.status.value)
        return proposal

    def accept_proposal(self, proposal_id: str) -> SettlementProposal:
        proposal = self._require_pending(proposal_id).model_copy(update={"accepted": True})
        self.proposals[proposal_id] = proposal
        logger.info("Proposal %s accepted", proposal_id)
        return proposal

    def cancel_proposal(self, proposal_id: str) -> SettlementProposal:
        proposal = self._require_pending(proposal_id)
        batch = self.registry.resolve(proposal.vault).get_batch(proposal.batch_id)
        transition(batch, BatchEvent.CANCEL, proposal.status, proposal_id)

        proposal = proposal.model_copy(update={"status": ProposalStatus.CANCELLED})
        self.proposals[proposal_id] = proposal
        self._pending.pop(proposal.vault, None)
        logger.info("Proposal %s cancelled", proposal_id)
        return proposal

    # ------------------------------------------------------------- execute

    def execute_settle_batch(self, proposal_id: str) -> SettlementProposal:
        proposal = self.get_settlement_proposal(proposal_id)
        vault_obj = self.registry.resolve(proposal.vault)
        batch = vault_obj.get_batch(proposal.batch_id)
        transition(batch, BatchEvent.EXECUTE, proposal.status, proposal_id)

        now = self.chain.now()
        if now < proposal.execute_after:
            raise CooldownActive(proposal_id, proposal.execute_after, now)
        if self.require_acceptance and not proposal.accepted:
            raise ProposalNotAccepted(proposal_id)

        if self.registry.get_vault_type(proposal.vault) == VaultType.MINTER:
            vault_obj.settle_batch(proposal.batch_id)
            vault_obj.book_assets(proposal.netted)
        else:
            vault_obj.settle_batch(
                proposal.batch_id, proposal.total_assets, proposal.netted, proposal.fees_charged
            )
            minter = self.registry.resolve(
                self.registry.get_vault_by_type(proposal.asset, VaultType.MINTER)
            )
            minter.book_assets(-proposal.netted)
            self._notify_fees(vault_obj, proposal)

        proposal = proposal.model_copy(update={"status": ProposalStatus.EXECUTED})
        self.proposals[proposal_id] = proposal
        self._pending.pop(proposal.vault, None)
        logger.info("Proposal %s executed: batch %s settled", proposal_id, proposal.batch_id)
        return proposal

    @staticmethod
    def _notify_fees(vault_obj, proposal: SettlementProposal) -> None:
        fee_state = vault_obj.fee_state()
        if proposal.last_fees_charged_management > fee_state.last_charged_management:
            vault_obj.notify_management_fees_charged(proposal.last_fees_charged_management)
        if proposal.last_fees_charged_performance > fee_state.last_charged_performance:
            vault_obj.notify_performance_fees_charged(
                proposal.last_fees_charged_performance, vault_obj.net_share_price()
            )
