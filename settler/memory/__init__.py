"""
In-memory reference collaborators

Детерминированные целочисленные реализации всех портов
settler.settlement.interfaces: chain (адреса, часы, atomic section),
token, yield-bearing позиция, execution agent, minter, staking vault,
registry и settlement ledger.
"""

from settler.memory.adapter import MemoryAdapter
from settler.memory.chain import Chain, make_address, make_id
from settler.memory.environment import MemoryEnvironment, build_environment
from settler.memory.ledger import MemorySettlementLedger
from settler.memory.minter import MemoryMinter
from settler.memory.position import MemoryYieldPosition
from settler.memory.registry import MemoryRegistry
from settler.memory.staking_vault import MemoryStakingVault
from settler.memory.token import MemoryToken

__all__ = [
    "Chain",
    "make_address",
    "make_id",
    "MemoryAdapter",
    "MemoryEnvironment",
    "MemoryMinter",
    "MemoryRegistry",
    "MemorySettlementLedger",
    "MemoryStakingVault",
    "MemoryToken",
    "MemoryYieldPosition",
    "build_environment",
]
