"""
Core domain models для settler
"""

from settler.core.domain.batch import Batch, BatchBalances, BatchState
from settler.core.domain.commands import Command, CommandResult
from settler.core.domain.distribution import ProfitDistributionResult
from settler.core.domain.fee_state import FeeState
from settler.core.domain.position import AdapterPosition
from settler.core.domain.proposal import ProposalStatus, SettlementProposal
from settler.core.domain.receipt import CustodialRequest, SettlementReceipt
from settler.core.domain.settlement_config import SettlementConfig, VaultType

__all__ = [
    # Batch
    "Batch",
    "BatchBalances",
    "BatchState",
    # Commands
    "Command",
    "CommandResult",
    # Profit
    "ProfitDistributionResult",
    # Fees
    "FeeState",
    # Positions
    "AdapterPosition",
    # Proposals
    "ProposalStatus",
    "SettlementProposal",
    # Receipts
    "CustodialRequest",
    "SettlementReceipt",
    # Config
    "SettlementConfig",
    "VaultType",
]
