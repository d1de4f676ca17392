"""
Fees — начисление management и performance комиссий vault

Чистые функции без side effects: используются и для quote (просмотр
комиссии без списания), и внутри settlement перед commit.

ФОРМУЛЫ:
    last_total_assets = total_supply * watermark / 10**decimals
    management_fee = total_assets * elapsed_mgmt * mgmt_bps / (SECONDS_PER_YEAR * 10000)
    working_total = total_assets - management_fee
    delta = working_total - last_total_assets
    hurdle_return = last_total_assets * hurdle_bps * elapsed_perf / (SECONDS_PER_YEAR * 10000)

    delta <= 0                 → performance_fee = 0
    delta <= hurdle_return     → performance_fee = 0
    иначе (hard hurdle)        → performance_fee = (delta - hurdle_return) * perf_bps / 10000
    иначе (soft hurdle)        → performance_fee = delta * perf_bps / 10000

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Performance fee > 0 только на новом максимуме (working_total выше watermark)
2. Management fee линейна по прошедшему времени (с точностью до floor)
3. total_supply == 0 → комиссий нет (нет держателей)
4. Все деления — FLOOR
5. elapsed_perf == 0 → performance_fee = 0
"""

from typing import TYPE_CHECKING, NamedTuple

from settler.core.math.fixed_point import (
    BPS_DENOMINATOR,
    SECONDS_PER_YEAR,
    apply_bps,
    decimals_scale,
    elapsed_seconds,
    mul_div,
    saturating_sub,
    validate_bps,
    validate_uint,
)

if TYPE_CHECKING:
    from settler.core.domain.fee_state import FeeState


# Знаменатель годовой ставки: секунды в году × bps
ANNUAL_BPS_DENOMINATOR = SECONDS_PER_YEAR * BPS_DENOMINATOR


class FeeQuote(NamedTuple):
    """Результат расчёта комиссий (в assets)."""

    management_fee: int
    performance_fee: int
    total_fee: int
    elapsed_management: int  # секунд с последнего списания management fee
    elapsed_performance: int  # секунд с последнего списания performance fee
    last_total_assets: int  # база watermark: total_supply * watermark / scale


ZERO_FEES = FeeQuote(0, 0, 0, 0, 0, 0)


# =============================================================================
# MANAGEMENT FEE
# =============================================================================


def management_fee(total_assets: int, elapsed: int, fee_bps: int) -> int:
    """
    Management fee за elapsed секунд по годовой ставке fee_bps.

    Examples:
        >>> management_fee(10_000, SECONDS_PER_YEAR, 200)
        200
        >>> management_fee(10_000, SECONDS_PER_YEAR // 2, 200)
        100
        >>> management_fee(10_000, 0, 200)
        0
    """
    validate_uint(total_assets, "total_assets")
    validate_uint(elapsed, "elapsed")
    validate_bps(fee_bps, "management_fee_bps")
    return mul_div(total_assets * elapsed, fee_bps, ANNUAL_BPS_DENOMINATOR)


# =============================================================================
# PERFORMANCE FEE
# =============================================================================


def hurdle_return(last_total_assets: int, hurdle_rate_bps: int, elapsed: int) -> int:
    """
    Минимальная доходность за elapsed секунд, ниже которой performance fee нет.

    Examples:
        >>> hurdle_return(10_000, 500, SECONDS_PER_YEAR)
        500
    """
    validate_uint(last_total_assets, "last_total_assets")
    validate_bps(hurdle_rate_bps, "hurdle_rate_bps")
    validate_uint(elapsed, "elapsed")
    return mul_div(last_total_assets * hurdle_rate_bps, elapsed, ANNUAL_BPS_DENOMINATOR)


def performance_fee(
    working_total: int,
    last_total_assets: int,
    fee_bps: int,
    hurdle_rate_bps: int,
    elapsed: int,
    is_hard_hurdle: bool,
) -> int:
    """
    Performance fee над watermark с учётом hurdle rate.

    Hard hurdle: комиссия только с превышения над hurdle_return.
    Soft hurdle: при превышении hurdle комиссия со всего прироста.

    Args:
        working_total: Активы после вычета management fee
        last_total_assets: База watermark
        fee_bps: Ставка performance fee
        hurdle_rate_bps: Годовой hurdle rate
        elapsed: Секунд с последнего списания performance fee
        is_hard_hurdle: Тип hurdle

    Returns:
        Performance fee в assets

    Examples:
        >>> performance_fee(11_000, 10_000, 2000, 0, SECONDS_PER_YEAR, False)
        200
        >>> performance_fee(11_000, 10_000, 2000, 500, SECONDS_PER_YEAR, True)
        100
        >>> performance_fee(11_000, 10_000, 2000, 500, SECONDS_PER_YEAR, False)
        200
        >>> performance_fee(10_400, 10_000, 2000, 500, SECONDS_PER_YEAR, False)
        0
    """
    validate_uint(working_total, "working_total")
    validate_bps(fee_bps, "performance_fee_bps")

    if working_total <= last_total_assets:
        return 0

    delta = working_total - last_total_assets
    hurdle = hurdle_return(last_total_assets, hurdle_rate_bps, elapsed)
    if delta <= hurdle:
        return 0

    if is_hard_hurdle:
        return apply_bps(delta - hurdle, fee_bps)
    return apply_bps(delta, fee_bps)


# =============================================================================
# ПОЛНЫЙ РАСЧЁТ
# =============================================================================


def compute_fees(
    *,
    total_assets: int,
    total_supply: int,
    watermark: int,
    decimals: int,
    management_fee_bps: int,
    performance_fee_bps: int,
    hurdle_rate_bps: int,
    is_hard_hurdle: bool,
    last_charged_management: int,
    last_charged_performance: int,
    now: int,
) -> FeeQuote:
    """
    Полный расчёт комиссий vault на момент now.

    Args:
        total_assets: Текущие активы vault (прочитаны из внешней позиции)
        total_supply: Выпущенные shares vault
        watermark: Максимальная исторически share price (fixed-point)
        decimals: Decimals vault (масштаб watermark)
        management_fee_bps: Годовая ставка management fee
        performance_fee_bps: Ставка performance fee
        hurdle_rate_bps: Годовой hurdle rate
        is_hard_hurdle: Тип hurdle
        last_charged_management: Timestamp последнего списания management fee
        last_charged_performance: Timestamp последнего списания performance fee
        now: Текущий timestamp (unix seconds)

    Returns:
        FeeQuote с management/performance/total fee

    Examples:
        >>> q = compute_fees(
        ...     total_assets=11_000, total_supply=10_000, watermark=1_000_000,
        ...     decimals=6, management_fee_bps=0, performance_fee_bps=2000,
        ...     hurdle_rate_bps=0, is_hard_hurdle=False,
        ...     last_charged_management=0, last_charged_performance=0,
        ...     now=SECONDS_PER_YEAR,
        ... )
        >>> q.performance_fee, q.total_fee
        (200, 200)
    """
    validate_uint(total_assets, "total_assets")
    validate_uint(total_supply, "total_supply")
    validate_uint(watermark, "watermark")

    elapsed_mgmt = elapsed_seconds(last_charged_management, now)
    elapsed_perf = elapsed_seconds(last_charged_performance, now)

    if total_supply == 0:
        return FeeQuote(0, 0, 0, elapsed_mgmt, elapsed_perf, 0)

    last_total_assets = mul_div(total_supply, watermark, decimals_scale(decimals))

    mgmt = management_fee(total_assets, elapsed_mgmt, management_fee_bps)
    working_total = saturating_sub(total_assets, mgmt)

    # elapsed_perf == 0: timestamp и watermark не меняются, fee нет
    perf = 0
    if elapsed_perf > 0:
        perf = performance_fee(
            working_total=working_total,
            last_total_assets=last_total_assets,
            fee_bps=performance_fee_bps,
            hurdle_rate_bps=hurdle_rate_bps,
            elapsed=elapsed_perf,
            is_hard_hurdle=is_hard_hurdle,
        )

    return FeeQuote(
        management_fee=mgmt,
        performance_fee=perf,
        total_fee=mgmt + perf,
        elapsed_management=elapsed_mgmt,
        elapsed_performance=elapsed_perf,
        last_total_assets=last_total_assets,
    )


def quote_fees(
    fee_state: "FeeState",
    *,
    total_assets: int,
    total_supply: int,
    decimals: int,
    now: int,
) -> FeeQuote:
    """compute_fees с параметрами из FeeState vault."""
    return compute_fees(
        total_assets=total_assets,
        total_supply=total_supply,
        watermark=fee_state.share_price_watermark,
        decimals=decimals,
        management_fee_bps=fee_state.management_fee_bps,
        performance_fee_bps=fee_state.performance_fee_bps,
        hurdle_rate_bps=fee_state.hurdle_rate_bps,
        is_hard_hurdle=fee_state.is_hard_hurdle,
        last_charged_management=fee_state.last_charged_management,
        last_charged_performance=fee_state.last_charged_performance,
        now=now,
    )
