"""
Fixed Point — целочисленные примитивы для расчётов settlement

Все суммы в settler — целые числа в минимальных единицах токена
(uint256-семантика). Float не используется нигде: дробная часть
отбрасывается явно выбранным округлением.

Модуль обеспечивает:
- mul_div с явным округлением (FLOOR / CEIL)
- Basis points хелперы (1 bps = 1/10000)
- Валидацию целых, bps и адресов до любых внешних вызовов

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Деление на ноль никогда не происходит молча (ZeroDivisionError)
2. Отрицательные значения отклоняются там, где ожидается uint256
3. Округление всегда задано явно: по умолчанию FLOOR (в пользу протокола)
4. Все операции детерминированы и воспроизводимы
"""

from enum import Enum
from typing import Final

from settler.core.exceptions import InvalidBasisPoints, ZeroAddress

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Знаменатель basis points: 10000 bps = 100%
BPS_DENOMINATOR: Final[int] = 10_000

# Секунд в году (365 дней), база для годовых ставок комиссий
SECONDS_PER_YEAR: Final[int] = 365 * 24 * 60 * 60

# Верхняя граница uint256
MAX_UINT256: Final[int] = 2**256 - 1

# Максимум decimals для share price (10**36 ещё помещается в uint256 с запасом)
MAX_DECIMALS: Final[int] = 36

# Нулевой адрес
ZERO_ADDRESS: Final[str] = "0x" + "0" * 40


class Rounding(str, Enum):
    """Направление округления при делении."""

    FLOOR = "floor"
    CEIL = "ceil"


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_uint(value: int, name: str) -> int:
    """
    Проверка, что значение — целое в диапазоне uint256.

    Args:
        value: Проверяемое значение
        name: Имя параметра для сообщения об ошибке

    Returns:
        value без изменений

    Raises:
        ValueError: Если value не int, отрицательное или > MAX_UINT256
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    if value > MAX_UINT256:
        raise ValueError(f"{name} exceeds uint256 range")
    return value


def validate_int(value: int, name: str) -> int:
    """Проверка знакового целого (int256-семантика, без проверки диапазона)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__}")
    return value


def validate_bps(value: int, name: str) -> int:
    """
    Проверка basis points: целое в [0, 10000].

    Raises:
        InvalidBasisPoints: Если значение вне диапазона или не целое
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidBasisPoints(name, value)
    if value < 0 or value > BPS_DENOMINATOR:
        raise InvalidBasisPoints(name, value)
    return value


def is_zero_address(address: str) -> bool:
    """True для пустой строки и нулевого адреса."""
    return not address or int(address, 16) == 0


def validate_address(address: str, name: str) -> str:
    """
    Проверка, что адрес задан и не равен нулевому.

    Raises:
        ZeroAddress: Если адрес пустой или нулевой
    """
    if is_zero_address(address):
        raise ZeroAddress(name)
    return address


def decimals_scale(decimals: int) -> int:
    """
    Масштаб fixed-point для заданного количества decimals.

    Examples:
        >>> decimals_scale(6)
        1000000
        >>> decimals_scale(18)
        1000000000000000000
    """
    validate_uint(decimals, "decimals")
    if decimals > MAX_DECIMALS:
        raise ValueError(f"decimals must be <= {MAX_DECIMALS}, got {decimals}")
    return 10**decimals


# =============================================================================
# АРИФМЕТИКА
# =============================================================================


def mul_div(
    a: int,
    b: int,
    denominator: int,
    rounding: Rounding = Rounding.FLOOR,
) -> int:
    """
    Вычисление a * b / denominator с явным округлением.

    Промежуточное произведение не переполняется (Python int), результат
    совпадает с full-precision mulDiv.

    Args:
        a: Множитель (uint)
        b: Множитель (uint)
        denominator: Делитель (uint, > 0)
        rounding: FLOOR или CEIL

    Returns:
        floor(a * b / denominator) или ceil(a * b / denominator)

    Raises:
        ZeroDivisionError: Если denominator == 0
        ValueError: Если аргументы не uint

    Examples:
        >>> mul_div(10, 3, 4)
        7
        >>> mul_div(10, 3, 4, Rounding.CEIL)
        8
        >>> mul_div(8, 3, 4, Rounding.CEIL)
        6
    """
    validate_uint(a, "a")
    validate_uint(b, "b")
    validate_uint(denominator, "denominator")
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero")

    quotient, remainder = divmod(a * b, denominator)
    if rounding == Rounding.CEIL and remainder:
        quotient += 1
    return quotient


def mul_div_up(a: int, b: int, denominator: int) -> int:
    """mul_div с округлением вверх."""
    return mul_div(a, b, denominator, Rounding.CEIL)


def apply_bps(amount: int, bps: int, rounding: Rounding = Rounding.FLOOR) -> int:
    """
    Доля amount в basis points.

    Examples:
        >>> apply_bps(1000, 2500)
        250
        >>> apply_bps(3, 5000)
        1
        >>> apply_bps(3, 5000, Rounding.CEIL)
        2
    """
    validate_bps(bps, "bps")
    return mul_div(amount, bps, BPS_DENOMINATOR, rounding)


def saturating_sub(a: int, b: int) -> int:
    """max(0, a - b) для uint."""
    return a - b if a > b else 0


def elapsed_seconds(last: int, now: int) -> int:
    """Прошедшее время в секундах; часы, ушедшие назад, дают 0."""
    return saturating_sub(now, last)
