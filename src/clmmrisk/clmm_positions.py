"""
Position and ownership statistics.

Summaries over the raw position list: how much liquidity is in range,
where each position's price range sits, and how concentrated ownership is.
Owner labels come from whatever resolved the position accounts; positions
without an owner are left out of ownership figures.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

import pandas as pd

from .clmm_curve import Position
from .clmm_math import tick_to_price
from .config import DEFAULT_CONFIG, AnalyzerConfig
from .errors import TickOutOfRange
from .utils_format import percentage_string


@dataclass(frozen=True)
class PositionStats:
    total: int
    active: int
    inactive: int
    total_liquidity: int


@dataclass(frozen=True)
class LiquidityTotals:
    total_liquidity: int
    active_liquidity: int
    inactive_liquidity: int
    active_percentage: str
    inactive_percentage: str


@dataclass(frozen=True)
class OwnerSummary:
    owner: str
    position_count: int
    total_liquidity: int


@dataclass(frozen=True)
class OwnershipSummary:
    total_owners: int
    top_owners: list[OwnerSummary]
    owner_distribution: dict[str, int]


def position_stats(positions: Sequence[Position], current_tick: int) -> PositionStats:
    active = sum(1 for p in positions if p.contains(current_tick))
    return PositionStats(
        total=len(positions),
        active=active,
        inactive=len(positions) - active,
        total_liquidity=sum(p.liquidity for p in positions),
    )


def _safe_price(tick: int, decimals0: int, decimals1: int, max_tick: int) -> Decimal | None:
    try:
        return tick_to_price(tick, decimals0, decimals1, max_tick)
    except TickOutOfRange:
        return None


def liquidity_distribution(
    positions: Sequence[Position],
    current_tick: int,
    decimals0: int = 0,
    decimals1: int = 0,
    config: AnalyzerConfig = DEFAULT_CONFIG,
) -> tuple[pd.DataFrame, LiquidityTotals]:
    """
    Per-position price ranges and liquidity shares, largest position first.

    Returns (df, totals) where df has columns:
    - tick_lower, tick_upper
    - price_lower, price_upper (Decimal, None outside the tick grid)
    - liquidity (exact int)
    - percentage (share of total liquidity, 2 d.p. string)
    - is_active
    - owner
    """
    total = sum(p.liquidity for p in positions)
    active_liquidity = 0
    rows = []
    for pos in positions:
        is_active = pos.contains(current_tick)
        if is_active:
            active_liquidity += pos.liquidity
        rows.append(
            {
                "tick_lower": pos.tick_lower,
                "tick_upper": pos.tick_upper,
                "price_lower": _safe_price(pos.tick_lower, decimals0, decimals1, config.max_tick),
                "price_upper": _safe_price(pos.tick_upper, decimals0, decimals1, config.max_tick),
                "liquidity": pos.liquidity,
                "percentage": percentage_string(pos.liquidity, total),
                "is_active": is_active,
                "owner": pos.owner,
            }
        )

    # Sort by liquidity (highest first)
    rows.sort(key=lambda r: r["liquidity"], reverse=True)
    columns = ["tick_lower", "tick_upper", "price_lower", "price_upper", "liquidity", "percentage", "is_active", "owner"]
    df = pd.DataFrame(rows, columns=columns)
    df["liquidity"] = pd.Series([r["liquidity"] for r in rows], dtype=object)

    inactive_liquidity = total - active_liquidity
    totals = LiquidityTotals(
        total_liquidity=total,
        active_liquidity=active_liquidity,
        inactive_liquidity=inactive_liquidity,
        active_percentage=percentage_string(active_liquidity, total),
        inactive_percentage=percentage_string(inactive_liquidity, total),
    )
    return df, totals


def analyze_ownership(positions: Sequence[Position], top_n: int | None = None, config: AnalyzerConfig = DEFAULT_CONFIG) -> OwnershipSummary:
    """
    Aggregate positions by owner; top owners are ranked by total liquidity.
    """
    top_n = config.top_owners if top_n is None else top_n
    counts: dict[str, int] = {}
    liquidity: dict[str, int] = {}
    for pos in positions:
        if not pos.owner:
            continue
        counts[pos.owner] = counts.get(pos.owner, 0) + 1
        liquidity[pos.owner] = liquidity.get(pos.owner, 0) + pos.liquidity

    ranked = sorted(liquidity.items(), key=lambda item: item[1], reverse=True)[:top_n]
    top = [OwnerSummary(owner=o, position_count=counts[o], total_liquidity=liq) for o, liq in ranked]
    return OwnershipSummary(total_owners=len(counts), top_owners=top, owner_distribution=counts)


def ownership_to_frame(summary: OwnershipSummary) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "owner": [o.owner for o in summary.top_owners],
            "position_count": [o.position_count for o in summary.top_owners],
            "total_liquidity": pd.Series([o.total_liquidity for o in summary.top_owners], dtype=object),
        }
    )
