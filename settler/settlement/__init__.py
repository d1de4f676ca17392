"""
Settlement: netting, profit cascade, lifecycle и coordinator.
"""

from settler.settlement.coordinator import SettlementCoordinator
from settler.settlement.lifecycle import BatchEvent, LifecycleTransition, derive_state, transition
from settler.settlement.netting import (
    NettingDirection,
    NettingEngine,
    NettingPlan,
    ShareTransfer,
    compute_netting,
)
from settler.settlement.profit import ProfitDistributor

__all__ = [
    # Coordinator
    "SettlementCoordinator",
    # Lifecycle
    "BatchEvent",
    "LifecycleTransition",
    "derive_state",
    "transition",
    # Netting
    "NettingDirection",
    "NettingEngine",
    "NettingPlan",
    "ShareTransfer",
    "compute_netting",
    # Profit
    "ProfitDistributor",
]
