"""
Тесты конверсий assets ↔ shares и share price

Проверяет:
- Курс 1:1 при пустой позиции
- FLOOR / CEIL округление
- Share price в fixed-point
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from settler.core.math.conversions import (
    assets_to_shares_at_price,
    convert_to_assets,
    convert_to_shares,
    share_price,
    shares_to_assets_at_price,
)
from settler.core.math.fixed_point import Rounding


class TestPositionConversions:
    """Тесты convert_to_shares / convert_to_assets"""

    def test_empty_position_is_one_to_one(self) -> None:
        assert convert_to_shares(50, 0, 0) == 50
        assert convert_to_assets(50, 0, 0) == 50

    def test_floor_and_ceil(self) -> None:
        assert convert_to_shares(200, 1200, 1000) == 166
        assert convert_to_shares(200, 1200, 1000, Rounding.CEIL) == 167

    def test_assets_of_shares(self) -> None:
        assert convert_to_assets(166, 1200, 1000) == 199
        assert convert_to_assets(167, 1200, 1000) == 200

    def test_supply_without_assets_cannot_price(self) -> None:
        with pytest.raises(ValueError, match="no assets"):
            convert_to_shares(10, 0, 100)

    @given(
        assets=st.integers(min_value=0, max_value=10**24),
        total_assets=st.integers(min_value=1, max_value=10**24),
        total_supply=st.integers(min_value=1, max_value=10**24),
    )
    def test_round_trip_never_creates_value(
        self, assets: int, total_assets: int, total_supply: int
    ) -> None:
        """FLOOR в обе стороны: обратная конверсия не превышает исходные assets"""
        shares = convert_to_shares(assets, total_assets, total_supply)
        assert convert_to_assets(shares, total_assets, total_supply) <= assets


class TestSharePrice:
    def test_price_with_supply(self) -> None:
        assert share_price(210, 100, 6) == 2_100_000

    def test_price_without_supply_is_scale(self) -> None:
        assert share_price(0, 0, 6) == 1_000_000
        assert share_price(999, 0, 18) == 10**18

    def test_conversions_at_price(self) -> None:
        assert shares_to_assets_at_price(10, 2_100_000, 6) == 21
        assert assets_to_shares_at_price(60, 2_100_000, 6) == 28
        assert assets_to_shares_at_price(63, 2_100_000, 6, Rounding.CEIL) == 30

    def test_zero_price_rejected(self) -> None:
        with pytest.raises(ZeroDivisionError):
            assets_to_shares_at_price(1, 0, 6)
