"""
Сборка полного in-memory окружения для одного asset

minter и staking vault держат позиции в одной yield-bearing позиции
через свои adapters; coordinator, ledger и все контракты разделяют
AtomicSection chain.
"""

from dataclasses import dataclass
from typing import Optional, Union

from settler.config import ConfigSource, SettlerConfig, load_settlement_config
from settler.core.auth import AuthContext, Role, RoleBook
from settler.core.domain.settlement_config import SettlementConfig, VaultType
from settler.memory.adapter import MemoryAdapter
from settler.memory.chain import Chain, make_address
from settler.memory.ledger import MemorySettlementLedger
from settler.memory.minter import MemoryMinter
from settler.memory.position import MemoryYieldPosition
from settler.memory.registry import MemoryRegistry
from settler.memory.staking_vault import MemoryStakingVault
from settler.memory.token import MemoryToken
from settler.settlement.coordinator import SettlementCoordinator


@dataclass
class MemoryEnvironment:
    chain: Chain
    token: MemoryToken
    position: MemoryYieldPosition
    minter_adapter: MemoryAdapter
    vault_adapter: MemoryAdapter
    minter: MemoryMinter
    vault: MemoryStakingVault
    registry: MemoryRegistry
    ledger: MemorySettlementLedger
    roles: RoleBook
    coordinator: SettlementCoordinator

    admin: AuthContext
    relayer: AuthContext
    guardian: AuthContext
    treasury: str

    @property
    def asset(self) -> str:
        return self.token.address


def build_environment(
    config: Optional[SettlerConfig] = None,
    settlement_config: Optional[Union[SettlementConfig, ConfigSource]] = None,
    symbol: str = "USDC",
    decimals: int = 6,
    auto_fulfill: bool = True,
    management_fee_bps: int = 0,
    performance_fee_bps: int = 0,
    hurdle_rate_bps: int = 0,
    is_hard_hurdle: bool = False,
) -> MemoryEnvironment:
    config = config or SettlerConfig()
    chain = Chain()

    token = chain.deploy(MemoryToken(symbol, decimals))
    position = chain.deploy(MemoryYieldPosition(token, f"{symbol}-position", auto_fulfill))
    minter_adapter = chain.deploy(MemoryAdapter(chain, f"{symbol}-minter"))
    vault_adapter = chain.deploy(MemoryAdapter(chain, f"{symbol}-vault"))

    minter = chain.deploy(MemoryMinter(chain, token, custody=minter_adapter.address))
    vault = chain.deploy(
        MemoryStakingVault(
            chain,
            token,
            management_fee_bps=management_fee_bps,
            performance_fee_bps=performance_fee_bps,
            hurdle_rate_bps=hurdle_rate_bps,
            is_hard_hurdle=is_hard_hurdle,
        )
    )

    treasury = make_address("treasury")
    registry = MemoryRegistry(chain, treasury)
    registry.register_vault(minter, VaultType.MINTER)
    registry.register_vault(vault, VaultType.DN)
    registry.register_adapter(minter.address, token.address, minter_adapter.address, position.address)
    registry.register_adapter(vault.address, token.address, vault_adapter.address, position.address)
    if settlement_config is not None:
        if not isinstance(settlement_config, SettlementConfig):
            settlement_config = load_settlement_config(settlement_config)
        registry.set_settlement_config(token.address, settlement_config)

    ledger = chain.deploy(
        MemorySettlementLedger(
            chain,
            registry,
            cooldown_seconds=config.cooldown_seconds,
            require_acceptance=config.require_guardian_acceptance,
        )
    )

    admin = AuthContext(make_address("admin"))
    relayer = AuthContext(make_address("relayer"))
    guardian = AuthContext(make_address("guardian"))
    roles = RoleBook(admin.caller)
    roles.grant(admin, relayer.caller, Role.RELAYER)
    roles.grant(admin, guardian.caller, Role.GUARDIAN)

    coordinator = SettlementCoordinator(
        address=make_address("coordinator"),
        registry=registry,
        ledger=ledger,
        roles=roles,
        clock=chain.now,
        atomic=chain.atomic,
        config=config,
    )

    return MemoryEnvironment(
        chain=chain,
        token=token,
        position=position,
        minter_adapter=minter_adapter,
        vault_adapter=vault_adapter,
        minter=minter,
        vault=vault,
        registry=registry,
        ledger=ledger,
        roles=roles,
        coordinator=coordinator,
        admin=admin,
        relayer=relayer,
        guardian=guardian,
        treasury=treasury,
    )
