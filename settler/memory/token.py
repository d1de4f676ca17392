"""In-memory fungible token (ERC-20-подобный)."""

from typing import Dict, Tuple

from settler.core.exceptions import InsufficientBalance
from settler.core.math.fixed_point import validate_uint
from settler.core.transaction import SnapshotMixin
from settler.memory.chain import make_address


class MemoryToken(SnapshotMixin):
    _state_fields = ("balances", "allowances", "total_supply")

    def __init__(self, symbol: str, decimals: int = 6):
        self.symbol = symbol
        self.decimals = decimals
        self.address = make_address(f"token:{symbol}")
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}
        self.total_supply = 0

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def mint(self, account: str, amount: int) -> None:
        validate_uint(amount, "amount")
        self.balances[account] = self.balance_of(account) + amount
        self.total_supply += amount

    def burn(self, account: str, amount: int) -> None:
        validate_uint(amount, "amount")
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientBalance(account, amount, balance, what=f"{self.symbol} balance")
        self.balances[account] = balance - amount
        self.total_supply -= amount

    def approve(self, sender: str, spender: str, amount: int) -> bool:
        validate_uint(amount, "amount")
        self.allowances[(sender, spender)] = amount
        return True

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        validate_uint(amount, "amount")
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(sender, amount, balance, what=f"{self.symbol} balance")
        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount
        return True

    def transfer_from(self, sender: str, owner: str, recipient: str, amount: int) -> bool:
        """sender тратит allowance owner'а."""
        allowed = self.allowance(owner, sender)
        if allowed < amount:
            raise InsufficientBalance(sender, amount, allowed, what=f"{self.symbol} allowance")
        self.transfer(owner, recipient, amount)
        self.allowances[(owner, sender)] = allowed - amount
        return True
