"""
Core math modules для settler

Целочисленные примитивы, конверсии assets ↔ shares и расчёт комиссий.
"""

# Fixed Point
from settler.core.math.fixed_point import (
    # Constants
    BPS_DENOMINATOR,
    MAX_DECIMALS,
    MAX_UINT256,
    SECONDS_PER_YEAR,
    ZERO_ADDRESS,
    # Types
    Rounding,
    # Arithmetic
    apply_bps,
    decimals_scale,
    elapsed_seconds,
    mul_div,
    mul_div_up,
    saturating_sub,
    # Validation
    is_zero_address,
    validate_address,
    validate_bps,
    validate_int,
    validate_uint,
)

# Conversions
from settler.core.math.conversions import (
    assets_to_shares_at_price,
    convert_to_assets,
    convert_to_shares,
    share_price,
    shares_to_assets_at_price,
)

# Fees
from settler.core.math.fees import (
    ANNUAL_BPS_DENOMINATOR,
    ZERO_FEES,
    FeeQuote,
    compute_fees,
    hurdle_return,
    management_fee,
    performance_fee,
    quote_fees,
)

__all__ = [
    # Fixed point: Constants
    "BPS_DENOMINATOR",
    "MAX_DECIMALS",
    "MAX_UINT256",
    "SECONDS_PER_YEAR",
    "ZERO_ADDRESS",
    # Fixed point: Types
    "Rounding",
    # Fixed point: Arithmetic
    "apply_bps",
    "decimals_scale",
    "elapsed_seconds",
    "mul_div",
    "mul_div_up",
    "saturating_sub",
    # Fixed point: Validation
    "is_zero_address",
    "validate_address",
    "validate_bps",
    "validate_int",
    "validate_uint",
    # Conversions
    "assets_to_shares_at_price",
    "convert_to_assets",
    "convert_to_shares",
    "share_price",
    "shares_to_assets_at_price",
    # Fees: Constants
    "ANNUAL_BPS_DENOMINATOR",
    "ZERO_FEES",
    # Fees: Types
    "FeeQuote",
    # Fees: Functions
    "compute_fees",
    "hurdle_return",
    "management_fee",
    "performance_fee",
    "quote_fees",
]
