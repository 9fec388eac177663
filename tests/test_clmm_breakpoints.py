import pytest

from clmmrisk.clmm_breakpoints import (
    analyze_both_directions,
    analyze_breakpoints,
    breakpoints_to_frame,
    max_size_for_slippage,
    recommended_trade_sizes,
    significant_liquidity_drops,
)
from clmmrisk.clmm_curve import Position
from clmmrisk.clmm_math import (
    Q64,
    SwapDirection,
    get_delta_amount_0,
    get_delta_amount_1,
    gross_up_for_fee,
    tick_to_sqrt_price_x64,
)
from clmmrisk.config import AnalyzerConfig, FeeConfig

DOWN = SwapDirection.TOKEN0_TO_TOKEN1
UP = SwapDirection.TOKEN1_TO_TOKEN0


class TestScenario:
    """Two adjacent positions meeting at the current tick"""

    def test_increasing_price_exhausts_at_upper_tick(self, scenario_pool, scenario_positions):
        analysis = analyze_breakpoints(scenario_pool, scenario_positions, UP)
        assert len(analysis) == 1
        bp = analysis[0]
        assert bp.tick == 100
        assert bp.liquidity_before == 500
        assert bp.liquidity_change == -500
        assert bp.liquidity_after == 0
        assert bp.reachable

    def test_increasing_price_amounts(self, scenario_pool, scenario_positions):
        bp = analyze_breakpoints(scenario_pool, scenario_positions, UP)[0]
        upper = tick_to_sqrt_price_x64(100)
        theoretical_in = get_delta_amount_1(Q64, upper, 500, True)
        assert bp.cumulative_swap_in == gross_up_for_fee(theoretical_in, 30, 10_000)
        assert bp.cumulative_swap_out == get_delta_amount_0(Q64, upper, 500, False)
        assert bp.cumulative_fees == bp.cumulative_swap_in - theoretical_in
        assert bp.sqrt_price_x64 == upper
        assert bp.price_impact_percent > 0

    def test_decreasing_price_crosses_current_tick_first(self, scenario_pool, scenario_positions):
        analysis = analyze_breakpoints(scenario_pool, scenario_positions, DOWN)
        assert [bp.tick for bp in analysis] == [0, -100]
        first, second = analysis
        assert first.cumulative_swap_in == 0
        assert first.liquidity_before == 500
        assert first.liquidity_after == 1000
        assert first.execution_price is None
        assert second.liquidity_before == 1000
        assert second.liquidity_after == 0
        assert second.cumulative_swap_in > 0
        assert second.price_impact_percent < 0

    def test_empty_positions(self, scenario_pool):
        for direction in SwapDirection:
            assert len(analyze_breakpoints(scenario_pool, [], direction)) == 0


class TestInvariants:
    """Walk invariants on overlapping positions"""

    @pytest.mark.parametrize("direction", list(SwapDirection))
    def test_liquidity_chain(self, deep_pool, deep_positions, direction):
        analysis = analyze_breakpoints(deep_pool, deep_positions, direction)
        assert len(analysis) > 1
        for a, b in zip(analysis.breakpoints, analysis.breakpoints[1:]):
            assert a.liquidity_after == b.liquidity_before

    @pytest.mark.parametrize("direction", list(SwapDirection))
    def test_cumulative_non_decreasing(self, deep_pool, deep_positions, direction):
        analysis = analyze_breakpoints(deep_pool, deep_positions, direction)
        for a, b in zip(analysis.breakpoints, analysis.breakpoints[1:]):
            assert b.cumulative_swap_in >= a.cumulative_swap_in
            assert b.cumulative_swap_out >= a.cumulative_swap_out
            assert b.cumulative_fees >= a.cumulative_fees
            assert b.ticks_crossed == a.ticks_crossed + 1

    def test_walk_ends_when_liquidity_exhausted(self, deep_pool, deep_positions):
        up = analyze_breakpoints(deep_pool, deep_positions, UP)
        assert up[-1].tick == 2000
        assert up[-1].liquidity_after == 0
        down = analyze_breakpoints(deep_pool, deep_positions, DOWN)
        assert down[-1].tick == -3000
        assert down[-1].liquidity_after == 0

    def test_fee_share(self, deep_pool, deep_positions):
        for bp in analyze_breakpoints(deep_pool, deep_positions, UP):
            assert bp.cumulative_fees / bp.cumulative_swap_in == pytest.approx(30 / 10_000, abs=1e-6)

    def test_price_impact_sign(self, deep_pool, deep_positions):
        assert all(bp.price_impact_percent > 0 for bp in analyze_breakpoints(deep_pool, deep_positions, UP))
        assert all(bp.price_impact_percent < 0 for bp in analyze_breakpoints(deep_pool, deep_positions, DOWN))

    def test_slippage_grows_with_size(self, deep_pool, deep_positions):
        analysis = analyze_breakpoints(deep_pool, deep_positions, UP)
        slippage = [bp.slippage_percent for bp in analysis]
        assert slippage == sorted(slippage)
        assert slippage[0] > 0


class TestWalkOptions:
    """Cap, fee override, skipped ticks and unreachable breakpoints"""

    def test_cap(self, deep_pool, deep_positions):
        assert len(analyze_breakpoints(deep_pool, deep_positions, UP, max_breakpoints=2)) == 2
        assert len(analyze_breakpoints(deep_pool, deep_positions, UP, max_breakpoints=0)) == 0
        config = AnalyzerConfig(max_breakpoints=1)
        assert len(analyze_breakpoints(deep_pool, deep_positions, UP, config=config)) == 1

    def test_fee_override(self, deep_pool, deep_positions):
        no_fee = analyze_breakpoints(deep_pool, deep_positions, UP, fee=FeeConfig(base_rate_bps=0))
        split = analyze_breakpoints(deep_pool, deep_positions, UP, fee=FeeConfig(base_rate_bps=20, additional_rate_bps=10))
        pool_fee = analyze_breakpoints(deep_pool, deep_positions, UP)
        assert all(bp.cumulative_fees == 0 for bp in no_fee)
        assert [bp.cumulative_swap_in for bp in split] == [bp.cumulative_swap_in for bp in pool_fee]
        assert no_fee[0].cumulative_swap_in < pool_fee[0].cumulative_swap_in

    def test_fee_must_be_below_denominator(self, deep_pool, deep_positions):
        with pytest.raises(ValueError):
            analyze_breakpoints(deep_pool, deep_positions, UP, fee=FeeConfig(base_rate_bps=10_000))

    def test_out_of_range_tick_skipped(self, scenario_pool):
        positions = [Position(-100, 200, 700), Position(-100, 100, 300)]
        config = AnalyzerConfig(max_tick=150)
        analysis = analyze_breakpoints(scenario_pool, positions, UP, config=config)
        assert [bp.tick for bp in analysis] == [100]
        assert analysis.skipped_ticks == [200]
        assert analysis[0].liquidity_after == 700

    def test_unreachable_across_empty_range(self, scenario_pool):
        analysis = analyze_breakpoints(scenario_pool, [Position(100, 200, 10**9)], UP)
        assert len(analysis) == 1
        bp = analysis[0]
        assert bp.tick == 100
        assert not bp.reachable
        assert bp.cumulative_swap_in == 0
        assert bp.liquidity_before == 0
        assert bp.liquidity_after == 10**9

    def test_no_negative_liquidity_on_consistent_positions(self, deep_pool, deep_positions):
        for direction in SwapDirection:
            assert analyze_breakpoints(deep_pool, deep_positions, direction).negative_liquidity == []


class TestSummaries:
    """Both-direction runs and derived tables"""

    def test_both_directions_match_single_runs(self, deep_pool, deep_positions):
        both = analyze_both_directions(deep_pool, deep_positions)
        assert set(both) == set(SwapDirection)
        for direction in SwapDirection:
            assert both[direction].breakpoints == analyze_breakpoints(deep_pool, deep_positions, direction).breakpoints

    def test_to_frame(self, deep_pool, deep_positions):
        analysis = analyze_breakpoints(deep_pool, deep_positions, DOWN)
        df = breakpoints_to_frame(analysis)
        assert len(df) == len(analysis)
        assert df["tick"].tolist() == [bp.tick for bp in analysis]
        assert df["cumulative_swap_in"].tolist() == [bp.cumulative_swap_in for bp in analysis]

    def test_significant_drops(self, scenario_pool, scenario_positions):
        drops = significant_liquidity_drops(analyze_breakpoints(scenario_pool, scenario_positions, UP))
        assert drops["tick"].tolist() == [100]
        assert drops["drop_pct"].tolist() == [100]

    def test_no_drops_when_liquidity_grows(self, scenario_pool, scenario_positions):
        analysis = analyze_breakpoints(scenario_pool, scenario_positions, DOWN, max_breakpoints=1)
        assert significant_liquidity_drops(analysis).empty

    def test_recommended_sizes(self, deep_pool, deep_positions):
        analyses = analyze_both_directions(deep_pool, deep_positions)
        df = recommended_trade_sizes(analyses, thresholds=[0.0001, 1000.0])
        assert df["slippage_tolerance_pct"].tolist() == [0.0001, 1000.0]
        up = df[UP.value].tolist()
        assert up[0] == max_size_for_slippage(analyses[UP], 0.0001)
        assert up[0] is not None
        assert up[1] is None
