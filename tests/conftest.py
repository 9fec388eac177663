import matplotlib

matplotlib.use("Agg")

import pytest

from clmmrisk.clmm_curve import Position
from clmmrisk.clmm_math import Q64
from clmmrisk.clmm_snapshot import PoolSnapshot


@pytest.fixture
def scenario_positions():
    """Two adjacent ranges meeting at tick 0"""
    return [
        Position(tick_lower=-100, tick_upper=0, liquidity=1000),
        Position(tick_lower=0, tick_upper=100, liquidity=500),
    ]


@pytest.fixture
def scenario_pool():
    return PoolSnapshot(
        current_tick=0,
        current_sqrt_price_x64=Q64,
        current_liquidity=500,
        decimals0=6,
        decimals1=6,
        fee_rate_bps=30,
        pool_name="TEST/USD",
        token0_symbol="TEST",
        token1_symbol="USD",
    )


@pytest.fixture
def deep_positions():
    """Overlapping ranges with large liquidity around tick 0"""
    return [
        Position(tick_lower=-1000, tick_upper=1000, liquidity=10**12, owner="alice"),
        Position(tick_lower=-500, tick_upper=300, liquidity=4 * 10**11, owner="bob"),
        Position(tick_lower=-200, tick_upper=800, liquidity=2 * 10**11, owner="alice"),
        Position(tick_lower=100, tick_upper=2000, liquidity=5 * 10**11),
        Position(tick_lower=-3000, tick_upper=-600, liquidity=3 * 10**11, owner="carol"),
    ]


@pytest.fixture
def deep_pool(deep_positions):
    liquidity = sum(p.liquidity for p in deep_positions if p.contains(0))
    return PoolSnapshot(
        current_tick=0,
        current_sqrt_price_x64=Q64,
        current_liquidity=liquidity,
        decimals0=9,
        decimals1=9,
        fee_rate_bps=30,
    )
