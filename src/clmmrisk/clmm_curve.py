"""
Tick liquidity curve construction.

Goal:
Given the positions of a concentrated-liquidity pool, rebuild the exact
piecewise-constant liquidity curve:
- liquidity_net is the signed change in active liquidity when the price
  crosses a tick upward (+L at tick_lower, -L at tick_upper).
- liquidity_gross is the total position liquidity referencing a tick.

The curve keeps its ticks in a sorted list so the next initialized tick in
either direction is a bisect away.
"""

from __future__ import annotations
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from typing import Iterable, Iterator

import pandas as pd

from .clmm_math import SwapDirection
from .errors import InvalidPositionRange


@dataclass(frozen=True)
class Position:
    """
    A liquidity position. Active for every tick in [tick_lower, tick_upper).

    owner / position_id are optional labels filled in by whatever resolved
    the position accounts; only ownership statistics use them.
    """
    tick_lower: int
    tick_upper: int
    liquidity: int
    owner: str | None = None
    position_id: str | None = None

    def contains(self, tick: int) -> bool:
        return self.tick_lower <= tick < self.tick_upper


@dataclass
class TickLiquidity:
    tick: int
    liquidity_net: int = 0
    liquidity_gross: int = 0


class LiquidityCurve:
    """
    Sorted map tick -> TickLiquidity built from a position list.
    """

    def __init__(self, positions: tuple[Position, ...], ticks: dict[int, TickLiquidity]):
        self._positions = positions
        self._ticks = ticks
        self._sorted = sorted(ticks)

    @classmethod
    def build(cls, positions: Iterable[Position]) -> "LiquidityCurve":
        """
        Accumulate every position into its boundary ticks.

        Raises InvalidPositionRange for tick_lower >= tick_upper.
        """
        positions = tuple(positions)
        ticks: dict[int, TickLiquidity] = {}
        for pos in positions:
            if pos.tick_lower >= pos.tick_upper:
                raise InvalidPositionRange(pos.tick_lower, pos.tick_upper)
            if pos.liquidity < 0:
                raise ValueError(f"Position liquidity must be non-negative, got {pos.liquidity}.")

            lower = ticks.setdefault(pos.tick_lower, TickLiquidity(pos.tick_lower))
            lower.liquidity_net += pos.liquidity
            lower.liquidity_gross += pos.liquidity

            upper = ticks.setdefault(pos.tick_upper, TickLiquidity(pos.tick_upper))
            upper.liquidity_net -= pos.liquidity
            upper.liquidity_gross += pos.liquidity
        return cls(positions, ticks)

    @property
    def positions(self) -> tuple[Position, ...]:
        return self._positions

    def __len__(self) -> int:
        return len(self._sorted)

    def __iter__(self) -> Iterator[TickLiquidity]:
        for tick in self._sorted:
            yield self._ticks[tick]

    def __contains__(self, tick: int) -> bool:
        return tick in self._ticks

    def get(self, tick: int) -> TickLiquidity | None:
        return self._ticks.get(tick)

    def ticks(self) -> list[int]:
        return list(self._sorted)

    def liquidity_at(self, tick: int) -> int:
        """
        Active liquidity at `tick`, summed over the positions covering it.
        """
        return sum(pos.liquidity for pos in self._positions if pos.contains(tick))

    def net_liquidity_sum(self) -> int:
        return sum(t.liquidity_net for t in self._ticks.values())

    def sorted_ticks(self, current_tick: int, direction: SwapDirection, include_current: bool = False) -> list[int]:
        """
        Initialized ticks in walk order away from current_tick.

        TOKEN0_TO_TOKEN1: ticks strictly below current_tick, descending.
        TOKEN1_TO_TOKEN0: ticks strictly above current_tick, ascending.

        With include_current, a downward walk starts with current_tick itself
        when it is initialized: the pool price sits at or above that tick's
        price, so it is the first boundary crossed on the way down.
        """
        if direction.zero_for_one:
            end = bisect_right(self._sorted, current_tick) if include_current else bisect_left(self._sorted, current_tick)
            return self._sorted[:end][::-1]
        start = bisect_right(self._sorted, current_tick)
        return self._sorted[start:]

    def cross(self, liquidity: int, tick: int, direction: SwapDirection) -> tuple[int, int, int]:
        """
        Cross `tick` in `direction` starting from `liquidity`.

        Returns (liquidity_change, liquidity_after, deficit). Moving up adds
        liquidity_net, moving down subtracts it. A negative result is clamped
        to zero and the shortfall reported as deficit.
        """
        data = self._ticks.get(tick)
        net = data.liquidity_net if data is not None else 0
        change = net if direction.price_increasing else -net
        after = liquidity + change
        if after < 0:
            return change, 0, -after
        return change, after, 0

    def to_frame(self) -> pd.DataFrame:
        """
        Curve as a DataFrame with columns tick, liquidity_net, liquidity_gross.
        Liquidity columns hold exact Python ints (object dtype).
        """
        df = pd.DataFrame(
            {
                "tick": [t for t in self._sorted],
                "liquidity_net": pd.Series([self._ticks[t].liquidity_net for t in self._sorted], dtype=object),
                "liquidity_gross": pd.Series([self._ticks[t].liquidity_gross for t in self._sorted], dtype=object),
            }
        )
        return df
