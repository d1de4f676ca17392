"""
In-memory yield-bearing позиция

ERC-4626 учёт shares/assets плюс асинхронные запросы в стиле ERC-7540:
request → fulfil (custodian) → claim. С auto_fulfill=True запрос
исполняется сразу, и claim доступен в том же пакете команд.

Escrow: shares исполненных, но не заклеймленных депозитов и shares
запросов на вывод хранятся на адресе самой позиции.
"""

from typing import Dict, Tuple

from settler.core.exceptions import InsufficientBalance
from settler.core.math.conversions import convert_to_assets, convert_to_shares
from settler.core.math.fixed_point import mul_div, validate_uint
from settler.core.transaction import SnapshotMixin
from settler.memory.chain import make_address
from settler.memory.token import MemoryToken


class MemoryYieldPosition(SnapshotMixin):
    _state_fields = (
        "balances",
        "allowances",
        "_supply",
        "_assets",
        "pending_deposits",
        "claimable_deposits",
        "pending_redeems",
        "claimable_redeems",
    )

    def __init__(self, token: MemoryToken, label: str, auto_fulfill: bool = True):
        self.token = token
        self.asset = token.address
        self.decimals = token.decimals
        self.address = make_address(f"position:{label}")
        self.auto_fulfill = auto_fulfill

        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}
        self._supply = 0
        self._assets = 0

        # controller -> assets
        self.pending_deposits: Dict[str, int] = {}
        # controller -> (assets, shares)
        self.claimable_deposits: Dict[str, Tuple[int, int]] = {}
        # controller -> shares
        self.pending_redeems: Dict[str, int] = {}
        # controller -> (shares, assets)
        self.claimable_redeems: Dict[str, Tuple[int, int]] = {}

    # ---------------------------------------------------------------- views

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def total_supply(self) -> int:
        return self._supply

    def total_assets(self) -> int:
        return self._assets

    def convert_to_shares(self, assets: int) -> int:
        return convert_to_shares(assets, self._assets, self._supply)

    def convert_to_assets(self, shares: int) -> int:
        return convert_to_assets(shares, self._assets, self._supply)

    def pending_deposit_request(self, controller: str) -> int:
        return self.pending_deposits.get(controller, 0)

    def claimable_deposit_request(self, controller: str) -> int:
        return self.claimable_deposits.get(controller, (0, 0))[0]

    def pending_redeem_request(self, controller: str) -> int:
        return self.pending_redeems.get(controller, 0)

    def claimable_redeem_request(self, controller: str) -> int:
        return self.claimable_redeems.get(controller, (0, 0))[0]

    # ------------------------------------------------------------ transfers

    def _move(self, sender: str, recipient: str, shares: int) -> None:
        validate_uint(shares, "shares")
        balance = self.balance_of(sender)
        if balance < shares:
            raise InsufficientBalance(sender, shares, balance, what="position shares")
        self.balances[sender] = balance - shares
        self.balances[recipient] = self.balance_of(recipient) + shares

    def transfer(self, sender: str, recipient: str, shares: int) -> bool:
        self._move(sender, recipient, shares)
        return True

    def approve(self, sender: str, spender: str, shares: int) -> bool:
        validate_uint(shares, "shares")
        self.allowances[(sender, spender)] = shares
        return True

    def transfer_from(self, sender: str, owner: str, recipient: str, shares: int) -> bool:
        allowed = self.allowances.get((owner, sender), 0)
        if allowed < shares:
            raise InsufficientBalance(sender, shares, allowed, what="position share allowance")
        self._move(owner, recipient, shares)
        self.allowances[(owner, sender)] = allowed - shares
        return True

    # -------------------------------------------------------------- deposit

    def request_deposit(self, sender: str, assets: int, controller: str, owner: str) -> int:
        validate_uint(assets, "assets")
        self.token.transfer_from(self.address, owner, self.address, assets)
        self.pending_deposits[controller] = self.pending_deposit_request(controller) + assets
        if self.auto_fulfill:
            self.fulfill_deposit(controller)
        return 0

    def fulfill_deposit(self, controller: str) -> int:
        """Исполнение pending депозита по текущей цене; shares уходят в escrow."""
        assets = self.pending_deposits.pop(controller, 0)
        if assets == 0:
            return 0
        shares = self.convert_to_shares(assets)
        self.balances[self.address] = self.balance_of(self.address) + shares
        self._supply += shares
        self._assets += assets

        claim_assets, claim_shares = self.claimable_deposits.get(controller, (0, 0))
        self.claimable_deposits[controller] = (claim_assets + assets, claim_shares + shares)
        return shares

    def deposit(self, sender: str, assets: int, receiver: str, controller: str) -> int:
        """Claim исполненного депозита: shares из escrow к receiver."""
        claim_assets, claim_shares = self.claimable_deposits.get(controller, (0, 0))
        if assets > claim_assets:
            raise InsufficientBalance(controller, assets, claim_assets, what="claimable deposit")
        if assets == claim_assets:
            shares = claim_shares
        else:
            shares = mul_div(claim_shares, assets, claim_assets)

        self._move(self.address, receiver, shares)
        remaining = (claim_assets - assets, claim_shares - shares)
        if remaining[0] == 0:
            self.claimable_deposits.pop(controller, None)
        else:
            self.claimable_deposits[controller] = remaining
        return shares

    # --------------------------------------------------------------- redeem

    def request_redeem(self, sender: str, shares: int, controller: str, owner: str) -> int:
        if owner != sender:
            self.transfer_from(sender, owner, self.address, shares)
        else:
            self._move(owner, self.address, shares)
        self.pending_redeems[controller] = self.pending_redeem_request(controller) + shares
        if self.auto_fulfill:
            self.fulfill_redeem(controller)
        return 0

    def fulfill_redeem(self, controller: str) -> int:
        """Исполнение pending вывода: shares сжигаются, assets фиксируются (FLOOR)."""
        shares = self.pending_redeems.pop(controller, 0)
        if shares == 0:
            return 0
        assets = self.convert_to_assets(shares)
        self.balances[self.address] -= shares
        self._supply -= shares
        self._assets -= assets

        claim_shares, claim_assets = self.claimable_redeems.get(controller, (0, 0))
        self.claimable_redeems[controller] = (claim_shares + shares, claim_assets + assets)
        return assets

    def redeem(self, sender: str, shares: int, receiver: str, controller: str) -> int:
        """Claim исполненного вывода: токены к receiver."""
        claim_shares, claim_assets = self.claimable_redeems.get(controller, (0, 0))
        if shares > claim_shares:
            raise InsufficientBalance(controller, shares, claim_shares, what="claimable redeem")
        if shares == claim_shares:
            assets = claim_assets
        else:
            assets = mul_div(claim_assets, shares, claim_shares)

        self.token.transfer(self.address, receiver, assets)
        remaining = (claim_shares - shares, claim_assets - assets)
        if remaining[0] == 0:
            self.claimable_redeems.pop(controller, None)
        else:
            self.claimable_redeems[controller] = remaining
        return assets

    # ------------------------------------------------------------ strategy

    def accrue(self, amount: int) -> None:
        """Доходность стратегии: активы растут без новых shares."""
        self.token.mint(self.address, amount)
        self._assets += amount

    def realize_loss(self, amount: int) -> None:
        if amount > self._assets:
            raise InsufficientBalance(self.address, amount, self._assets, what="position assets")
        self.token.burn(self.address, amount)
        self._assets -= amount
