"""
Conversions — централизованный модуль конверсии assets ↔ shares

Единственный допустимый способ преобразований между:
- assets (минимальные единицы underlying токена)
- shares (доли во внешней позиции или в vault)
- share price (fixed-point с масштабом 10**decimals)

ЗАПРЕЩЕНО пересчитывать единицы без явного конвертера из этого модуля.

ФОРМУЛЫ:
    shares = assets * total_supply / total_assets
    assets = shares * total_assets / total_supply
    price  = total_assets * 10**decimals / total_supply
При total_supply == 0 курс 1:1 (price = 10**decimals).
"""

from settler.core.math.fixed_point import (
    Rounding,
    decimals_scale,
    mul_div,
    validate_uint,
)


# =============================================================================
# ПОЗИЦИЯ: ASSETS ↔ SHARES
# =============================================================================


def convert_to_shares(
    assets: int,
    total_assets: int,
    total_supply: int,
    rounding: Rounding = Rounding.FLOOR,
) -> int:
    """
    Конверсия: assets → shares по текущему состоянию позиции.

    Args:
        assets: Сумма в assets
        total_assets: Активы под управлением позиции
        total_supply: Выпущенные shares позиции
        rounding: Округление (по умолчанию FLOOR)

    Returns:
        Количество shares

    Raises:
        ValueError: Если у позиции есть shares, но нет активов

    Examples:
        >>> convert_to_shares(200, 1200, 1000)
        166
        >>> convert_to_shares(200, 1200, 1000, Rounding.CEIL)
        167
        >>> convert_to_shares(50, 0, 0)
        50
    """
    validate_uint(assets, "assets")
    if total_supply == 0:
        return assets
    if total_assets == 0:
        raise ValueError("Cannot price shares of a position with supply but no assets")
    return mul_div(assets, total_supply, total_assets, rounding)


def convert_to_assets(
    shares: int,
    total_assets: int,
    total_supply: int,
    rounding: Rounding = Rounding.FLOOR,
) -> int:
    """
    Конверсия: shares → assets по текущему состоянию позиции.

    Examples:
        >>> convert_to_assets(166, 1200, 1000)
        199
        >>> convert_to_assets(167, 1200, 1000)
        200
    """
    validate_uint(shares, "shares")
    if total_supply == 0:
        return shares
    return mul_div(shares, total_assets, total_supply, rounding)


# =============================================================================
# SHARE PRICE
# =============================================================================


def share_price(total_assets: int, total_supply: int, decimals: int) -> int:
    """
    Цена одной share в assets, fixed-point с масштабом 10**decimals.

    Examples:
        >>> share_price(210, 100, 6)
        2100000
        >>> share_price(0, 0, 6)
        1000000
    """
    scale = decimals_scale(decimals)
    if total_supply == 0:
        return scale
    return mul_div(total_assets, scale, total_supply)


def shares_to_assets_at_price(
    shares: int,
    price: int,
    decimals: int,
    rounding: Rounding = Rounding.FLOOR,
) -> int:
    """
    Конверсия: shares → assets по заданной share price.

    Examples:
        >>> shares_to_assets_at_price(10, 2100000, 6)
        21
    """
    return mul_div(shares, price, decimals_scale(decimals), rounding)


def assets_to_shares_at_price(
    assets: int,
    price: int,
    decimals: int,
    rounding: Rounding = Rounding.FLOOR,
) -> int:
    """
    Конверсия: assets → shares по заданной share price.

    Raises:
        ZeroDivisionError: Если price == 0

    Examples:
        >>> assets_to_shares_at_price(60, 2100000, 6)
        28
    """
    return mul_div(assets, decimals_scale(decimals), price, rounding)
