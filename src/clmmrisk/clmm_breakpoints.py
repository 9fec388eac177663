"""
Liquidity breakpoint analysis.

Purpose:
Walk the liquidity curve from the current price outward and report, at each
initialized tick where the active liquidity changes, how much input a swap
needs to push the price there and what it receives, together with the
fees, price impact and slippage accumulated so far.

All amounts are exact integers in the token's smallest unit.
"""

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Iterator, Sequence

import pandas as pd

from .clmm_curve import LiquidityCurve, Position
from .clmm_math import (
    SwapDirection,
    execution_price,
    gross_up_for_fee,
    price_impact_percent,
    segment_amounts,
    slippage_percent,
    sqrt_price_x64_to_price,
    tick_to_sqrt_price_x64,
)
from .clmm_snapshot import PoolSnapshot
from .config import DEFAULT_CONFIG, AnalyzerConfig, FeeConfig, validate_fee
from .errors import NegativeLiquidityDetected, TickOutOfRange


@dataclass(frozen=True)
class SwapBreakpoint:
    tick: int
    liquidity_before: int
    liquidity_after: int
    liquidity_change: int
    cumulative_swap_in: int
    cumulative_swap_out: int
    cumulative_fees: int
    price_at_tick: Decimal
    sqrt_price_x64: int
    execution_price: Decimal | None
    price_impact_percent: float
    slippage_percent: float
    ticks_crossed: int
    reachable: bool = True


@dataclass
class BreakpointAnalysis:
    """
    Ordered breakpoints for one swap direction plus the walk's diagnostics.
    """
    direction: SwapDirection
    breakpoints: list[SwapBreakpoint] = field(default_factory=list)
    skipped_ticks: list[int] = field(default_factory=list)
    negative_liquidity: list[NegativeLiquidityDetected] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.breakpoints)

    def __iter__(self) -> Iterator[SwapBreakpoint]:
        return iter(self.breakpoints)

    def __getitem__(self, index: int) -> SwapBreakpoint:
        return self.breakpoints[index]


def analyze_breakpoints(
    pool: PoolSnapshot,
    positions: Iterable[Position],
    direction: SwapDirection,
    max_breakpoints: int | None = None,
    fee: FeeConfig | None = None,
    config: AnalyzerConfig = DEFAULT_CONFIG,
) -> BreakpointAnalysis:
    """
    Walk liquidity breakpoints in `direction`.

    The walk starts at the pool's sqrt price with the liquidity rebuilt from
    the positions at the current tick, and stops once `max_breakpoints`
    have been emitted or the active liquidity runs out. Ticks whose price
    cannot be computed are skipped and listed in `skipped_ticks`.
    """
    curve = LiquidityCurve.build(positions)
    cap = config.max_breakpoints if max_breakpoints is None else max_breakpoints
    fee = fee if fee is not None else config.resolve_fee(pool)
    validate_fee(fee, config.scale)
    fee_rate = fee.total_rate_bps
    denominator = config.scale.fee_denominator
    precision = config.scale.price_precision

    initial_sqrt_price = pool.current_sqrt_price_x64
    sqrt_price = initial_sqrt_price
    liquidity = curve.liquidity_at(pool.current_tick)
    cumulative_in = 0
    cumulative_out = 0
    cumulative_fees = 0
    ticks_crossed = 0

    result = BreakpointAnalysis(direction=direction)
    for tick in curve.sorted_ticks(pool.current_tick, direction, include_current=True):
        if len(result.breakpoints) >= cap:
            break
        try:
            target_sqrt_price = tick_to_sqrt_price_x64(tick, config.max_tick)
        except TickOutOfRange:
            result.skipped_ticks.append(tick)
            continue

        liquidity_before = liquidity
        change, liquidity_after, deficit = curve.cross(liquidity, tick, direction)

        # With no active liquidity a swap cannot move the price to this tick
        reachable = liquidity > 0 or target_sqrt_price == sqrt_price
        if reachable:
            theoretical_in, amount_out = segment_amounts(direction, sqrt_price, target_sqrt_price, liquidity)
            actual_in = gross_up_for_fee(theoretical_in, fee_rate, denominator)

            cumulative_in += actual_in
            cumulative_out += amount_out
            cumulative_fees += actual_in - theoretical_in
            ticks_crossed += 1

            if deficit:
                result.negative_liquidity.append(
                    NegativeLiquidityDetected(tick=tick, liquidity_before=liquidity_before, deficit=deficit)
                )

        result.breakpoints.append(
            SwapBreakpoint(
                tick=tick,
                liquidity_before=liquidity_before,
                liquidity_after=liquidity_after,
                liquidity_change=change,
                cumulative_swap_in=cumulative_in,
                cumulative_swap_out=cumulative_out,
                cumulative_fees=cumulative_fees,
                price_at_tick=sqrt_price_x64_to_price(target_sqrt_price, pool.decimals0, pool.decimals1, precision),
                sqrt_price_x64=target_sqrt_price,
                execution_price=execution_price(cumulative_in, cumulative_out, direction, precision),
                price_impact_percent=price_impact_percent(initial_sqrt_price, target_sqrt_price),
                slippage_percent=slippage_percent(initial_sqrt_price, cumulative_in, cumulative_out, direction),
                ticks_crossed=ticks_crossed,
                reachable=reachable,
            )
        )
        if not reachable:
            break

        sqrt_price = target_sqrt_price
        liquidity = liquidity_after
        if liquidity == 0:
            break

    return result


def analyze_both_directions(
    pool: PoolSnapshot,
    positions: Sequence[Position],
    max_breakpoints: int | None = None,
    fee: FeeConfig | None = None,
    config: AnalyzerConfig = DEFAULT_CONFIG,
) -> dict[SwapDirection, BreakpointAnalysis]:
    """
    Run the breakpoint walk for both directions, one worker thread each.
    """
    positions = tuple(positions)
    with ThreadPoolExecutor(max_workers=2) as executor:
        futures = {
            direction: executor.submit(analyze_breakpoints, pool, positions, direction, max_breakpoints, fee, config)
            for direction in SwapDirection
        }
        return {direction: future.result() for direction, future in futures.items()}


def breakpoints_to_frame(analysis: BreakpointAnalysis) -> pd.DataFrame:
    """
    One row per breakpoint. Integer columns keep exact Python ints (object dtype).
    """
    columns = [
        "tick",
        "liquidity_before",
        "liquidity_after",
        "liquidity_change",
        "cumulative_swap_in",
        "cumulative_swap_out",
        "cumulative_fees",
        "price_at_tick",
        "execution_price",
        "price_impact_percent",
        "slippage_percent",
        "ticks_crossed",
        "reachable",
    ]
    return pd.DataFrame(
        {c: pd.Series([getattr(bp, c) for bp in analysis.breakpoints], dtype=object) for c in columns}
    )


def significant_liquidity_drops(
    analysis: BreakpointAnalysis,
    threshold_pct: int | None = None,
    config: AnalyzerConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """
    Breakpoints where active liquidity falls by more than threshold_pct
    percent of the liquidity before the crossing.

    Returns columns:
    - tick
    - cumulative_swap_in
    - drop_pct (integer percent, truncated)
    - slippage_percent
    """
    threshold = config.significant_drop_pct if threshold_pct is None else threshold_pct
    rows = []
    for bp in analysis.breakpoints:
        if bp.liquidity_change >= 0 or bp.liquidity_before == 0:
            continue
        drop_pct = (-bp.liquidity_change * 100) // bp.liquidity_before
        if drop_pct > threshold:
            rows.append(
                {
                    "tick": bp.tick,
                    "cumulative_swap_in": bp.cumulative_swap_in,
                    "drop_pct": int(drop_pct),
                    "slippage_percent": bp.slippage_percent,
                }
            )
    return pd.DataFrame(rows, columns=["tick", "cumulative_swap_in", "drop_pct", "slippage_percent"])


def max_size_for_slippage(analysis: BreakpointAnalysis, threshold_pct: float) -> int | None:
    """
    Cumulative input at the first breakpoint whose slippage reaches
    threshold_pct, or None when no breakpoint does ("no limit").
    """
    for bp in analysis.breakpoints:
        if bp.slippage_percent >= threshold_pct:
            return bp.cumulative_swap_in
    return None


def recommended_trade_sizes(
    analyses: dict[SwapDirection, BreakpointAnalysis],
    thresholds: Sequence[float] | None = None,
    config: AnalyzerConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """
    Trade size limits per slippage tolerance and direction.

    Returns one row per threshold with a column per direction value;
    None means no breakpoint reached that slippage.
    """
    thresholds = config.slippage_thresholds_pct if thresholds is None else thresholds
    data = {"slippage_tolerance_pct": [float(t) for t in thresholds]}
    for direction, analysis in analyses.items():
        data[direction.value] = pd.Series([max_size_for_slippage(analysis, t) for t in thresholds], dtype=object)
    return pd.DataFrame(data)
