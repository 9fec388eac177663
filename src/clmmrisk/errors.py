"""
Error types raised by the simulation core.
"""

from __future__ import annotations
from dataclasses import dataclass


class ClmmRiskError(Exception):
    """Base class for clmmrisk errors"""


class TickOutOfRange(ClmmRiskError, ValueError):
    """Raised when a tick falls outside the supported tick grid"""

    def __init__(self, tick: int, max_tick: int):
        self.tick = tick
        self.max_tick = max_tick
        super().__init__(f"Tick {tick} outside supported range [-{max_tick}, {max_tick}]")


class InvalidPositionRange(ClmmRiskError, ValueError):
    """Raised when a position has tick_lower >= tick_upper"""

    def __init__(self, tick_lower: int, tick_upper: int):
        self.tick_lower = tick_lower
        self.tick_upper = tick_upper
        super().__init__(f"Invalid position range: tick_lower={tick_lower} must be < tick_upper={tick_upper}")


class DivisionByZero(ClmmRiskError, ZeroDivisionError):
    """Raised on a zero denominator in fixed-point math"""


@dataclass(frozen=True)
class NegativeLiquidityDetected:
    """
    Diagnostic emitted when crossing a tick would drive active liquidity
    below zero. The walk continues with liquidity clamped to zero.
    """
    tick: int
    liquidity_before: int
    deficit: int
