"""
Liquidity depth curve construction.

Goal:
Given a tick-level liquidity curve, measure "how much volume can be absorbed"
for a given price move up/down.

- the active liquidity profile is rebuilt exactly by cumulatively summing
  liquidity_net from the lowest initialized tick upward.
- depth at a price move is the swap input (fee included) needed to push the
  pool price to the tick nearest that move.
"""

from __future__ import annotations
from typing import Sequence

import numpy as np
import pandas as pd

from .clmm_curve import LiquidityCurve, Position
from .clmm_execution import simulate_swap_to_tick
from .clmm_math import pct_move_to_price, price_to_tick, tick_to_price
from .clmm_snapshot import PoolSnapshot
from .config import DEFAULT_CONFIG, AnalyzerConfig, FeeConfig
from .errors import TickOutOfRange


def build_active_liquidity_profile(
    curve: LiquidityCurve,
    current_tick: int,
    tick_window: int = 50_000,
    decimals0: int = 0,
    decimals1: int = 0,
    config: AnalyzerConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """
    Build the active liquidity profile around current_tick.

    Returns dataframe with:
    - tick (segment start; liquidity holds until the next row's tick)
    - price
    - active_liquidity (exact int)
    - is_current (segment containing current_tick)
    """
    rows = []
    active = 0
    ticks = curve.ticks()
    for i, tick in enumerate(ticks):
        active += curve.get(tick).liquidity_net
        next_tick = ticks[i + 1] if i + 1 < len(ticks) else None
        if tick < current_tick - tick_window or tick > current_tick + tick_window:
            continue
        try:
            price = tick_to_price(tick, decimals0, decimals1, config.max_tick)
        except TickOutOfRange:
            price = None
        rows.append(
            {
                "tick": tick,
                "price": price,
                "active_liquidity": active,
                "is_current": tick <= current_tick and (next_tick is None or current_tick < next_tick),
            }
        )

    df = pd.DataFrame(rows, columns=["tick", "price", "active_liquidity", "is_current"])
    df["active_liquidity"] = pd.Series([r["active_liquidity"] for r in rows], dtype=object)
    return df


def depth_curve(
    pool: PoolSnapshot,
    positions: Sequence[Position],
    pct_moves: np.ndarray | None = None,
    fee: FeeConfig | None = None,
    config: AnalyzerConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """
    Compute the depth curve:
    For each pct_move, the swap needed to move the spot price by that fraction.

    Returns columns:
    - pct_move
    - price_target
    - target_tick
    - amount_in / amount_out / fee_amount (exact ints of the input/output token)
    - reached (False when liquidity runs out before the target)
    """
    if pct_moves is None:
        pct_moves = np.asarray(config.depth_pct_moves, dtype=float)
    pct_moves = np.sort(np.asarray(pct_moves, dtype=float))
    if np.any(pct_moves <= -1.0):
        raise ValueError("pct_moves must be greater than -1 (price cannot fall to zero).")

    positions = tuple(positions)
    spot = pool.spot_price()
    out = []
    for pm in pct_moves:
        price_target = pct_move_to_price(spot, float(pm))
        target_tick = price_to_tick(price_target, pool.decimals0, pool.decimals1)
        target_tick = int(np.clip(target_tick, -config.max_tick, config.max_tick))
        swap = simulate_swap_to_tick(pool, positions, target_tick, fee=fee, config=config)
        out.append(
            {
                "pct_move": float(pm),
                "price_target": price_target,
                "target_tick": target_tick,
                "direction": swap.direction.value,
                "amount_in": swap.amount_in,
                "amount_out": swap.amount_out,
                "fee_amount": swap.fee_amount,
                "reached": swap.reached,
            }
        )

    df = pd.DataFrame(out, columns=["pct_move", "price_target", "target_tick", "direction", "amount_in", "amount_out", "fee_amount", "reached"])
    for c in ("amount_in", "amount_out", "fee_amount"):
        df[c] = pd.Series([r[c] for r in out], dtype=object)
    return df
