"""
Swap execution simulator.

Purpose:
Given a pool snapshot and its positions, simulate swaps segment by segment
over the exact liquidity curve:
- exact-input swaps (fee deducted once upfront, then the net input is
  consumed across liquidity segments)
- swaps to a target tick (the fee-grossed input needed to move the price there)
- slippage tables for a list of trade sizes

A partially consumed segment is priced pro rata by default: the segment's
output scaled by net_input / segment_input. This linear interpolation is a
known approximation; partial_fill="exact" solves the reached sqrt price
instead.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Sequence

import pandas as pd

from .clmm_curve import LiquidityCurve, Position
from .clmm_math import (
    SwapDirection,
    execution_price,
    fee_on_input,
    get_delta_amount_0,
    get_delta_amount_1,
    gross_up_for_fee,
    mul_div,
    next_sqrt_price_from_input,
    price_impact_percent,
    segment_amounts,
    slippage_percent,
    sqrt_price_x64_to_tick,
    tick_to_sqrt_price_x64,
)
from .clmm_snapshot import PoolSnapshot
from .config import DEFAULT_CONFIG, AnalyzerConfig, FeeConfig, validate_fee
from .errors import NegativeLiquidityDetected, TickOutOfRange
from .utils_format import add_decimal_point, string_to_amount


@dataclass(frozen=True)
class ExactSwapResult:
    direction: SwapDirection
    amount_in: int
    amount_in_consumed: int
    fee_amount: int
    amount_out: int
    execution_price: Decimal | None
    price_impact_percent: float
    slippage_percent: float
    final_sqrt_price_x64: int
    final_tick: int
    ticks_crossed: int
    negative_liquidity: tuple[NegativeLiquidityDetected, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SwapToTickResult:
    direction: SwapDirection
    target_tick: int
    amount_in: int
    amount_out: int
    fee_amount: int
    ticks_crossed: int
    liquidity_at_target: int
    reached: bool


def _resolve_fee(pool: PoolSnapshot, fee: FeeConfig | None, config: AnalyzerConfig) -> FeeConfig:
    if fee is None:
        return config.resolve_fee(pool)
    validate_fee(fee, config.scale)
    return fee


def _partial_segment(
    direction: SwapDirection,
    sqrt_price: int,
    target_sqrt_price: int,
    liquidity: int,
    net_input: int,
    max_in: int,
    max_out: int,
    mode: str,
) -> tuple[int, int]:
    """
    Output and reached sqrt price when net_input < max_in.
    """
    if mode == "exact":
        reached = next_sqrt_price_from_input(sqrt_price, liquidity, net_input, direction)
        if direction.zero_for_one:
            out = get_delta_amount_1(reached, sqrt_price, liquidity, False)
        else:
            out = get_delta_amount_0(sqrt_price, reached, liquidity, False)
        return out, reached

    out = mul_div(max_out, net_input, max_in)
    if target_sqrt_price >= sqrt_price:
        reached = sqrt_price + mul_div(target_sqrt_price - sqrt_price, net_input, max_in)
    else:
        reached = sqrt_price - mul_div(sqrt_price - target_sqrt_price, net_input, max_in)
    return out, reached


def simulate_exact_input(
    pool: PoolSnapshot,
    positions: Iterable[Position],
    amount_in: int,
    direction: SwapDirection,
    fee: FeeConfig | None = None,
    config: AnalyzerConfig = DEFAULT_CONFIG,
    partial_fill: str | None = None,
) -> ExactSwapResult:
    """
    Simulate selling exactly `amount_in` of the input token.

    The fee is taken once from the input; the remaining net input walks the
    same tick sequence as the breakpoint analysis until it is used up, the
    liquidity runs out or no initialized ticks remain.
    """
    if amount_in < 0:
        raise ValueError("amount_in must be non-negative.")
    mode = config.partial_fill if partial_fill is None else partial_fill
    if mode not in ("pro_rata", "exact"):
        raise ValueError(f"Unknown partial_fill mode: {mode!r}")

    curve = LiquidityCurve.build(positions)
    fee = _resolve_fee(pool, fee, config)
    fee_amount = fee_on_input(amount_in, fee.total_rate_bps, config.scale.fee_denominator)
    remaining = amount_in - fee_amount

    initial_sqrt_price = pool.current_sqrt_price_x64
    sqrt_price = initial_sqrt_price
    current_tick = pool.current_tick
    liquidity = curve.liquidity_at(current_tick)
    amount_out = 0
    ticks_crossed = 0
    negative: list[NegativeLiquidityDetected] = []

    for tick in curve.sorted_ticks(pool.current_tick, direction, include_current=True):
        if remaining == 0:
            break
        try:
            target_sqrt_price = tick_to_sqrt_price_x64(tick, config.max_tick)
        except TickOutOfRange:
            continue
        if liquidity == 0 and target_sqrt_price != sqrt_price:
            break

        max_in, max_out = segment_amounts(direction, sqrt_price, target_sqrt_price, liquidity)
        if remaining >= max_in:
            remaining -= max_in
            amount_out += max_out
            sqrt_price = target_sqrt_price
            ticks_crossed += 1

            liquidity_before = liquidity
            _, liquidity, deficit = curve.cross(liquidity, tick, direction)
            if deficit:
                negative.append(NegativeLiquidityDetected(tick=tick, liquidity_before=liquidity_before, deficit=deficit))
            # After a downward crossing the price sits in the tick below
            current_tick = tick - 1 if direction.zero_for_one else tick
        else:
            out, sqrt_price = _partial_segment(
                direction, sqrt_price, target_sqrt_price, liquidity, remaining, max_in, max_out, mode
            )
            amount_out += out
            remaining = 0
            current_tick = sqrt_price_x64_to_tick(sqrt_price, config.max_tick)

    consumed = amount_in - remaining
    precision = config.scale.price_precision
    return ExactSwapResult(
        direction=direction,
        amount_in=amount_in,
        amount_in_consumed=consumed,
        fee_amount=fee_amount,
        amount_out=amount_out,
        execution_price=execution_price(amount_in, amount_out, direction, precision),
        price_impact_percent=price_impact_percent(initial_sqrt_price, sqrt_price),
        slippage_percent=slippage_percent(initial_sqrt_price, amount_in, amount_out, direction),
        final_sqrt_price_x64=sqrt_price,
        final_tick=current_tick,
        ticks_crossed=ticks_crossed,
        negative_liquidity=tuple(negative),
    )


def simulate_swap_to_tick(
    pool: PoolSnapshot,
    positions: Iterable[Position],
    target_tick: int,
    fee: FeeConfig | None = None,
    config: AnalyzerConfig = DEFAULT_CONFIG,
) -> SwapToTickResult:
    """
    Input (fee included) and output of a swap that moves the price from the
    pool's current sqrt price to `target_tick`.

    Initialized ticks between the two prices are crossed along the way; the
    walk stops early (reached=False) if the liquidity runs out first.
    Raises TickOutOfRange when the target itself is off the grid.
    """
    curve = LiquidityCurve.build(positions)
    fee = _resolve_fee(pool, fee, config)
    fee_rate = fee.total_rate_bps
    denominator = config.scale.fee_denominator

    target_sqrt_price = tick_to_sqrt_price_x64(target_tick, config.max_tick)
    sqrt_price = pool.current_sqrt_price_x64
    if target_sqrt_price < sqrt_price:
        direction = SwapDirection.TOKEN0_TO_TOKEN1
    else:
        direction = SwapDirection.TOKEN1_TO_TOKEN0
    liquidity = curve.liquidity_at(pool.current_tick)

    amount_in = 0
    amount_out = 0
    fees = 0
    ticks_crossed = 0

    def _segment(to_sqrt_price: int) -> None:
        nonlocal amount_in, amount_out, fees
        theoretical_in, out = segment_amounts(direction, sqrt_price, to_sqrt_price, liquidity)
        gross_in = gross_up_for_fee(theoretical_in, fee_rate, denominator)
        amount_in += gross_in
        amount_out += out
        fees += gross_in - theoretical_in

    for tick in curve.sorted_ticks(pool.current_tick, direction, include_current=True):
        if direction.zero_for_one and tick <= target_tick:
            break
        if direction.price_increasing and tick > target_tick:
            break
        try:
            tick_sqrt_price = tick_to_sqrt_price_x64(tick, config.max_tick)
        except TickOutOfRange:
            continue
        if liquidity == 0 and tick_sqrt_price != sqrt_price:
            return SwapToTickResult(direction, target_tick, amount_in, amount_out, fees, ticks_crossed, 0, False)
        _segment(tick_sqrt_price)
        sqrt_price = tick_sqrt_price
        _, liquidity, _ = curve.cross(liquidity, tick, direction)
        ticks_crossed += 1

    if liquidity == 0 and target_sqrt_price != sqrt_price:
        return SwapToTickResult(direction, target_tick, amount_in, amount_out, fees, ticks_crossed, 0, False)
    _segment(target_sqrt_price)
    return SwapToTickResult(direction, target_tick, amount_in, amount_out, fees, ticks_crossed, liquidity, True)


def standard_swap_sizes(
    pool: PoolSnapshot,
    direction: SwapDirection,
    config: AnalyzerConfig = DEFAULT_CONFIG,
) -> list[int]:
    """
    Default trade sizes for a direction, converted from human units of the
    input token into its smallest unit.
    """
    sizes = config.swap_sizes_token0 if direction.zero_for_one else config.swap_sizes_token1
    decimals = pool.decimals_in(direction.zero_for_one)
    return [string_to_amount(str(size), decimals) for size in sizes]


def slippage_for_sizes(
    pool: PoolSnapshot,
    positions: Sequence[Position],
    direction: SwapDirection,
    trade_sizes: Sequence[int] | None = None,
    fee: FeeConfig | None = None,
    config: AnalyzerConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """
    Run an exact-input simulation per trade size.

    Returns DataFrame with columns:
    - amount_in / amount_out (exact ints, smallest units)
    - input / output (formatted with token decimals and symbols)
    - slippage_percent, price_impact_percent, execution_price, ticks_crossed
    """
    if trade_sizes is None:
        trade_sizes = standard_swap_sizes(pool, direction, config)
    zero_for_one = direction.zero_for_one
    positions = tuple(positions)

    rows = []
    for size in trade_sizes:
        result = simulate_exact_input(pool, positions, int(size), direction, fee=fee, config=config)
        rows.append(
            {
                "amount_in": result.amount_in,
                "amount_out": result.amount_out,
                "input": f"{add_decimal_point(result.amount_in, pool.decimals_in(zero_for_one))} {pool.symbol_in(zero_for_one)}",
                "output": f"{add_decimal_point(result.amount_out, pool.decimals_out(zero_for_one))} {pool.symbol_out(zero_for_one)}",
                "slippage_percent": result.slippage_percent,
                "price_impact_percent": result.price_impact_percent,
                "execution_price": result.execution_price,
                "ticks_crossed": result.ticks_crossed,
            }
        )
    columns = [
        "amount_in",
        "amount_out",
        "input",
        "output",
        "slippage_percent",
        "price_impact_percent",
        "execution_price",
        "ticks_crossed",
    ]
    df = pd.DataFrame(rows, columns=columns)
    df["amount_in"] = pd.Series([r["amount_in"] for r in rows], dtype=object)
    df["amount_out"] = pd.Series([r["amount_out"] for r in rows], dtype=object)
    return df
