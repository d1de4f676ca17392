"""In-memory registry: vaults, adapters, targets и settlement config по asset."""

from typing import Any, Dict, Tuple

from settler.core.domain.settlement_config import SettlementConfig, VaultType
from settler.core.math.fixed_point import validate_address
from settler.memory.chain import Chain


class MemoryRegistry:
    def __init__(self, chain: Chain, treasury: str):
        validate_address(treasury, "treasury")
        self.chain = chain
        self._treasury = treasury
        self._vaults: Dict[Tuple[str, VaultType], str] = {}
        self._vault_types: Dict[str, VaultType] = {}
        self._adapters: Dict[Tuple[str, str], str] = {}
        self._targets: Dict[Tuple[str, str], str] = {}
        self._configs: Dict[str, SettlementConfig] = {}

    # ------------------------------------------------------------- register

    def register_vault(self, vault: Any, vault_type: VaultType) -> None:
        self._vaults[(vault.asset, vault_type)] = vault.address
        self._vault_types[vault.address] = vault_type

    def register_adapter(self, vault: str, asset: str, adapter: str, target: str) -> None:
        validate_address(adapter, "adapter")
        self._adapters[(vault, asset)] = adapter
        self.set_adapter_target(adapter, asset, target)

    def set_adapter_target(self, adapter: str, asset: str, target: str) -> None:
        validate_address(target, "target")
        self._targets[(adapter, asset)] = target

    def set_settlement_config(self, asset: str, config: SettlementConfig) -> None:
        self._configs[asset] = config

    # --------------------------------------------------------------- lookup

    def get_vault_by_type(self, asset: str, vault_type: VaultType) -> str:
        try:
            return self._vaults[(asset, vault_type)]
        except KeyError:
            raise LookupError(f"no {vault_type.value} vault for asset {asset}") from None

    def get_vault_type(self, vault: str) -> VaultType:
        try:
            return self._vault_types[vault]
        except KeyError:
            raise LookupError(f"unregistered vault {vault}") from None

    def get_adapter(self, vault: str, asset: str) -> str:
        try:
            return self._adapters[(vault, asset)]
        except KeyError:
            raise LookupError(f"no adapter for vault {vault} / asset {asset}") from None

    def get_adapter_target(self, adapter: str, asset: str) -> str:
        try:
            return self._targets[(adapter, asset)]
        except KeyError:
            raise LookupError(f"no target for adapter {adapter} / asset {asset}") from None

    def get_settlement_config(self, asset: str) -> SettlementConfig:
        return self._configs.get(asset, SettlementConfig())

    def get_treasury(self) -> str:
        return self._treasury

    def resolve(self, address: str) -> Any:
        return self.chain.resolve(address)
