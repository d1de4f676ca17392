"""Stub позиции для unit тестов netting и profit cascade."""

from settler.core.math.conversions import convert_to_assets, convert_to_shares
from settler.memory import make_address


class PricedPosition:
    """Позиция с фиксированными total_assets / total_supply (только конверсии)."""

    def __init__(self, total_assets: int, total_supply: int, label: str = "stub"):
        self.total_assets = total_assets
        self.total_supply = total_supply
        self.address = make_address(f"position:{label}")
        self.asset = make_address(f"token:{label}")

    def convert_to_shares(self, assets: int) -> int:
        return convert_to_shares(assets, self.total_assets, self.total_supply)

    def convert_to_assets(self, shares: int) -> int:
        return convert_to_assets(shares, self.total_assets, self.total_supply)
