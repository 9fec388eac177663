"""
clmmrisk package

This package contains reusable utilities for:
- Building exact tick liquidity curves from concentrated-liquidity positions
- Converting between ticks and Q64.64 square-root prices with integer math
- Walking liquidity breakpoints to estimate swap capacity, price impact and slippage
- Simulating exact-input swaps and swaps to a target tick
- Summarizing position ranges and ownership concentration
"""

__version__ = "0.1.0"
