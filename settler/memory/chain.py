"""
In-memory chain: адресная книга, часы и атомарная секция

Все memory-контракты регистрируются через deploy(): так они получают
адрес и становятся участниками общей AtomicSection.
"""

import hashlib
from typing import Any, Dict

from settler.core.transaction import AtomicSection, Transactional

DEFAULT_START_TIME = 1_700_000_000


def make_address(label: str) -> str:
    """Детерминированный адрес из метки: 0x + 40 hex."""
    return "0x" + hashlib.sha256(label.encode("utf-8")).hexdigest()[:40]


def make_id(*parts: Any) -> str:
    """Детерминированный bytes32 id: 0x + 64 hex."""
    payload = "|".join(str(p) for p in parts)
    return "0x" + hashlib.sha256(payload.encode("utf-8")).hexdigest()


class Chain:
    def __init__(self, start_time: int = DEFAULT_START_TIME):
        self._now = start_time
        self._contracts: Dict[str, Any] = {}
        self.atomic = AtomicSection()

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("time only moves forward")
        self._now += seconds
        return self._now

    def address_for(self, label: str) -> str:
        return make_address(label)

    def deploy(self, contract: Any) -> Any:
        address = contract.address
        if address in self._contracts:
            raise ValueError(f"address {address} already deployed")
        self._contracts[address] = contract
        if isinstance(contract, Transactional):
            self.atomic.register(contract)
        return contract

    def resolve(self, address: str) -> Any:
        try:
            return self._contracts[address]
        except KeyError:
            raise LookupError(f"no contract at {address}") from None

    def has_contract(self, address: str) -> bool:
        return address in self._contracts
