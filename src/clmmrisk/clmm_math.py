"""
Concentrated-liquidity fixed-point math.

Note:
- Square-root prices are Q64.64 integers: sqrt(price) * 2^64.
- tick <-> price mapping assumes token1/token0 price convention.
- Amounts and liquidity are plain Python ints; floating point is only used
  for the 1.0001^(tick/2) exponential and for the log estimate in
  sqrt_price_x64_to_tick.
"""

from __future__ import annotations
import math
from decimal import Context, Decimal
from enum import Enum
from fractions import Fraction

from .config import MAX_TICK
from .errors import DivisionByZero, TickOutOfRange

Q64 = 1 << 64
Q128 = 1 << 128
TICK_BASE = 1.0001

DEFAULT_PRICE_PRECISION = 40


class SwapDirection(str, Enum):
    # Selling token0: price (token1 per token0) decreases
    TOKEN0_TO_TOKEN1 = "token0ToToken1"
    # Selling token1: price increases
    TOKEN1_TO_TOKEN0 = "token1ToToken0"

    @property
    def zero_for_one(self) -> bool:
        return self is SwapDirection.TOKEN0_TO_TOKEN1

    @property
    def price_increasing(self) -> bool:
        return self is SwapDirection.TOKEN1_TO_TOKEN0

    def opposite(self) -> "SwapDirection":
        if self.zero_for_one:
            return SwapDirection.TOKEN1_TO_TOKEN0
        return SwapDirection.TOKEN0_TO_TOKEN1


def mul_div(a: int, b: int, denominator: int, round_up: bool = False) -> int:
    """
    Compute a * b / denominator on non-negative integers without intermediate
    truncation. A non-zero remainder is rounded up when round_up is set.
    """
    if denominator == 0:
        raise DivisionByZero("mul_div denominator is zero")
    quotient, remainder = divmod(a * b, denominator)
    if round_up and remainder:
        quotient += 1
    return quotient


def ratio_to_decimal(numerator: int, denominator: int, precision: int = DEFAULT_PRICE_PRECISION) -> Decimal:
    if denominator == 0:
        raise DivisionByZero("ratio denominator is zero")
    return Context(prec=precision).divide(Decimal(numerator), Decimal(denominator))


def tick_to_sqrt_price_x64(tick: int, max_tick: int = MAX_TICK) -> int:
    """
    Convert tick to sqrt price X64:
    floor(sqrt(1.0001^tick) * 2^64)

    The exponential is evaluated in floating point and floored straight
    back into an exact integer.
    """
    if abs(tick) > max_tick:
        raise TickOutOfRange(tick, max_tick)
    try:
        scaled = TICK_BASE ** (tick / 2) * float(Q64)
    except OverflowError as err:
        raise TickOutOfRange(tick, max_tick) from err
    if not math.isfinite(scaled) or scaled <= 0:
        raise TickOutOfRange(tick, max_tick)
    return int(math.floor(scaled))


def sqrt_price_x64_to_tick(sqrt_price_x64: int, max_tick: int = MAX_TICK) -> int:
    """
    Greatest tick whose sqrt price is <= sqrt_price_x64 (clamped to the grid).
    """
    if sqrt_price_x64 <= 0:
        raise ValueError("sqrt_price_x64 must be positive.")
    estimate = math.floor(2 * (math.log(sqrt_price_x64) - math.log(Q64)) / math.log(TICK_BASE))
    tick = max(-max_tick, min(max_tick, estimate))

    # The float estimate can be off by one near tick boundaries
    while tick < max_tick and tick_to_sqrt_price_x64(tick + 1, max_tick) <= sqrt_price_x64:
        tick += 1
    while tick > -max_tick and tick_to_sqrt_price_x64(tick, max_tick) > sqrt_price_x64:
        tick -= 1
    return tick


def sqrt_price_x64_to_price(
    sqrt_price_x64: int,
    decimals0: int,
    decimals1: int,
    precision: int = DEFAULT_PRICE_PRECISION,
) -> Decimal:
    """
    Convert sqrt price X64 to a human price (token1 per token0).

    price_raw = sqrt_price_x64^2 / 2^128
    price     = price_raw * 10^(decimals0 - decimals1)
    """
    if sqrt_price_x64 < 0:
        raise ValueError("sqrt_price_x64 must be non-negative.")
    if sqrt_price_x64 == 0:
        return Decimal(0)
    ctx = Context(prec=precision)
    raw = ctx.divide(Decimal(sqrt_price_x64 * sqrt_price_x64), Decimal(Q128))
    return raw.scaleb(decimals0 - decimals1, context=ctx)


def tick_to_price(
    tick: int,
    decimals0: int = 0,
    decimals1: int = 0,
    max_tick: int = MAX_TICK,
    precision: int = DEFAULT_PRICE_PRECISION,
) -> Decimal:
    """
    Convert tick to human price: 1.0001^tick adjusted for token decimals.
    """
    return sqrt_price_x64_to_price(tick_to_sqrt_price_x64(tick, max_tick), decimals0, decimals1, precision)


def price_to_tick(price, decimals0: int = 0, decimals1: int = 0) -> int:
    """
    Convert human price (token1 per token0) to nearest tick.
    """
    if price <= 0:
        raise ValueError("Price must be positive.")
    raw = float(price) * 10.0 ** (decimals1 - decimals0)
    return int(round(math.log(raw, TICK_BASE)))


def pct_move_to_price(price0, pct_move: float):
    """
    Apply a percentage move to price.
    pct_move = +0.01 means +1%.
    """
    if isinstance(price0, Decimal):
        return price0 * (1 + Decimal(str(pct_move)))
    return price0 * (1.0 + pct_move)


def get_delta_amount_0(sqrt_price_a: int, sqrt_price_b: int, liquidity: int, round_up: bool) -> int:
    """
    Token0 amount between two sqrt prices:
    liquidity * (sqrtB - sqrtA) * 2^64 / (sqrtA * sqrtB)
    """
    if sqrt_price_a > sqrt_price_b:
        sqrt_price_a, sqrt_price_b = sqrt_price_b, sqrt_price_a
    if liquidity == 0 or sqrt_price_a == sqrt_price_b:
        return 0
    try:
        return mul_div(liquidity * (sqrt_price_b - sqrt_price_a), Q64, sqrt_price_a * sqrt_price_b, round_up)
    except DivisionByZero:
        return 0


def get_delta_amount_1(sqrt_price_a: int, sqrt_price_b: int, liquidity: int, round_up: bool) -> int:
    """
    Token1 amount between two sqrt prices:
    liquidity * (sqrtB - sqrtA) / 2^64
    """
    if sqrt_price_a > sqrt_price_b:
        sqrt_price_a, sqrt_price_b = sqrt_price_b, sqrt_price_a
    if liquidity == 0 or sqrt_price_a == sqrt_price_b:
        return 0
    return mul_div(liquidity, sqrt_price_b - sqrt_price_a, Q64, round_up)


def segment_amounts(direction: SwapDirection, sqrt_price_from: int, sqrt_price_to: int, liquidity: int) -> tuple[int, int]:
    """
    Fee-free (amount_in, amount_out) to move the price across one segment at
    constant liquidity. Input rounds up and output rounds down, so a segment
    never reports more output than the liquidity can pay.
    """
    if direction.zero_for_one:
        amount_in = get_delta_amount_0(sqrt_price_to, sqrt_price_from, liquidity, True)
        amount_out = get_delta_amount_1(sqrt_price_to, sqrt_price_from, liquidity, False)
    else:
        amount_in = get_delta_amount_1(sqrt_price_from, sqrt_price_to, liquidity, True)
        amount_out = get_delta_amount_0(sqrt_price_from, sqrt_price_to, liquidity, False)
    return amount_in, amount_out


def next_sqrt_price_from_input(sqrt_price_x64: int, liquidity: int, amount_in: int, direction: SwapDirection) -> int:
    """
    Sqrt price reached after adding amount_in (net of fees) at constant liquidity.

    token0 in: sqrtQ = L * sqrtP / (L + amount * sqrtP / 2^64)   (rounded up)
    token1 in: sqrtQ = sqrtP + amount * 2^64 / L                 (rounded down)
    """
    if liquidity <= 0:
        raise DivisionByZero("liquidity is zero")
    if amount_in == 0:
        return sqrt_price_x64
    if direction.zero_for_one:
        numerator = liquidity << 64
        return mul_div(numerator, sqrt_price_x64, numerator + amount_in * sqrt_price_x64, round_up=True)
    return sqrt_price_x64 + mul_div(amount_in, Q64, liquidity)


def gross_up_for_fee(amount: int, fee_rate_bps: int, fee_denominator: int) -> int:
    """
    Input needed so that amount remains after the fee:
    ceil(amount * D / (D - fee_rate))
    """
    return mul_div(amount, fee_denominator, fee_denominator - fee_rate_bps, round_up=True)


def fee_on_input(amount: int, fee_rate_bps: int, fee_denominator: int) -> int:
    """Fee deducted upfront from an exact input: floor(amount * fee_rate / D)"""
    return mul_div(amount, fee_rate_bps, fee_denominator)


def execution_price(
    amount_in: int,
    amount_out: int,
    direction: SwapDirection,
    precision: int = DEFAULT_PRICE_PRECISION,
) -> Decimal | None:
    """
    Realized price in raw units, token1 per token0 for both directions.
    None when either side of the trade is zero.
    """
    if amount_in == 0 or amount_out == 0:
        return None
    if direction.zero_for_one:
        return ratio_to_decimal(amount_out, amount_in, precision)
    return ratio_to_decimal(amount_in, amount_out, precision)


def price_impact_percent(start_sqrt_price_x64: int, end_sqrt_price_x64: int) -> float:
    """
    Signed percentage change of price between two sqrt prices
    (negative when the price decreases).
    """
    if start_sqrt_price_x64 == 0:
        return 0.0
    start = start_sqrt_price_x64 * start_sqrt_price_x64
    end = end_sqrt_price_x64 * end_sqrt_price_x64
    return float(Fraction(end - start, start) * 100)


def slippage_percent(spot_sqrt_price_x64: int, amount_in: int, amount_out: int, direction: SwapDirection) -> float:
    """
    |execution_price - spot_price| / spot_price * 100, both in raw token1/token0 units.
    """
    if amount_in == 0 or amount_out == 0 or spot_sqrt_price_x64 == 0:
        return 0.0
    spot = Fraction(spot_sqrt_price_x64 * spot_sqrt_price_x64, Q128)
    if direction.zero_for_one:
        realized = Fraction(amount_out, amount_in)
    else:
        realized = Fraction(amount_in, amount_out)
    return float(abs(realized - spot) / spot * 100)
