"""
Analyze a saved CLMM pool snapshot.

Input files (basename):
- <BASENAME>.meta.json
- <BASENAME>.positions.parquet

Prints position and ownership statistics, liquidity breakpoints for both
swap directions, slippage tables for the default trade sizes, and
optionally one exact-input swap. Figures are written with --plot.
"""

from __future__ import annotations
import argparse
import logging
from pathlib import Path

from clmmrisk.clmm_breakpoints import (
    analyze_both_directions,
    breakpoints_to_frame,
    recommended_trade_sizes,
    significant_liquidity_drops,
)
from clmmrisk.clmm_curve import LiquidityCurve
from clmmrisk.clmm_depth import build_active_liquidity_profile, depth_curve
from clmmrisk.clmm_execution import simulate_exact_input, slippage_for_sizes
from clmmrisk.clmm_math import SwapDirection
from clmmrisk.clmm_positions import analyze_ownership, liquidity_distribution, ownership_to_frame, position_stats
from clmmrisk.clmm_snapshot import load_snapshot
from clmmrisk.config import DEFAULT_CONFIG, load_config
from clmmrisk.utils_format import add_decimal_point, string_to_amount
from clmmrisk.utils_io import ensure_dir, figures_dir
from clmmrisk.utils_plot import plot_breakpoints, plot_liquidity_profile, save_figure

logger = logging.getLogger("clmmrisk")


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("basepath", type=Path, help="snapshot basename (without .meta.json / .positions.parquet)")
    parser.add_argument("--config", type=Path, default=None, help="YAML file with analyzer overrides")
    parser.add_argument("--max-breakpoints", type=int, default=None)
    parser.add_argument("--amount", default=None, help="exact input amount in human units of the input token")
    parser.add_argument(
        "--direction",
        choices=[d.value for d in SwapDirection],
        default=SwapDirection.TOKEN0_TO_TOKEN1.value,
    )
    parser.add_argument(
        "--plot", type=Path, nargs="?", const=figures_dir(), default=None, help="directory to write figures to"
    )
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)
    config = load_config(args.config) if args.config else DEFAULT_CONFIG

    pool, positions = load_snapshot(args.basepath)
    logger.info("Loaded %s: %d positions, tick %d", pool.pool_name or args.basepath.name, len(positions), pool.current_tick)

    curve = LiquidityCurve.build(positions)
    rebuilt = curve.liquidity_at(pool.current_tick)
    if rebuilt != pool.current_liquidity:
        logger.warning(
            "Liquidity rebuilt from positions (%d) differs from pool liquidity (%d)", rebuilt, pool.current_liquidity
        )

    stats = position_stats(positions, pool.current_tick)
    print(f"Positions: {stats.total} (active {stats.active}, inactive {stats.inactive})")
    print(f"Combined liquidity: {stats.total_liquidity}")

    distribution, totals = liquidity_distribution(positions, pool.current_tick, pool.decimals0, pool.decimals1, config)
    print(f"Active liquidity: {totals.active_percentage}%  Inactive: {totals.inactive_percentage}%")
    print(distribution.head(config.top_owners).to_string(index=False))

    ownership = analyze_ownership(positions, config=config)
    if ownership.total_owners:
        print(f"\nUnique owners: {ownership.total_owners}")
        print(ownership_to_frame(ownership).to_string(index=False))

    analyses = analyze_both_directions(pool, positions, args.max_breakpoints, config=config)
    for direction, analysis in analyses.items():
        for tick in analysis.skipped_ticks:
            logger.warning("%s: skipped tick %d outside the tick grid", direction.value, tick)
        for event in analysis.negative_liquidity:
            logger.warning(
                "%s: negative liquidity at tick %d (deficit %d), clamped to zero", direction.value, event.tick, event.deficit
            )
        print(f"\n{direction.value} liquidity breakpoints")
        print(breakpoints_to_frame(analysis).to_string(index=False))
        drops = significant_liquidity_drops(analysis, config=config)
        if not drops.empty:
            print(drops.to_string(index=False))

        print(f"\n{direction.value} slippage by trade size")
        print(slippage_for_sizes(pool, positions, direction, config=config).to_string(index=False))

    print("\nRecommended trade sizes by slippage tolerance")
    print(recommended_trade_sizes(analyses, config=config).to_string(index=False))

    if args.amount is not None:
        direction = SwapDirection(args.direction)
        decimals_in = pool.decimals_in(direction.zero_for_one)
        amount = string_to_amount(args.amount, decimals_in)
        result = simulate_exact_input(pool, positions, amount, direction, config=config)
        print(f"\nSwap simulation: {direction.value}")
        print(f"   Input: {add_decimal_point(result.amount_in, decimals_in)} {pool.symbol_in(direction.zero_for_one)}")
        print(
            f"   Output: {add_decimal_point(result.amount_out, pool.decimals_out(direction.zero_for_one))} "
            f"{pool.symbol_out(direction.zero_for_one)}"
        )
        print(f"   Slippage: {result.slippage_percent:.3f}%")
        print(f"   Price Impact: {result.price_impact_percent:.3f}%")
        print(f"   Ticks Crossed: {result.ticks_crossed}")
        if result.amount_in_consumed < result.amount_in:
            logger.warning("Liquidity exhausted: only %d of %d input consumed", result.amount_in_consumed, result.amount_in)

    if args.plot is not None:
        plot_dir = ensure_dir(args.plot)
        profile = build_active_liquidity_profile(
            curve, pool.current_tick, config.tick_window, pool.decimals0, pool.decimals1, config
        )
        save_figure(plot_liquidity_profile(profile, pool.current_tick), plot_dir / "liquidity_profile.png")
        save_figure(plot_breakpoints(analyses), plot_dir / "breakpoints.png")
        depth = depth_curve(pool, positions, config=config)
        depth.to_csv(plot_dir / "depth_curve.csv", index=False)
        logger.info("Saved figures to %s", plot_dir)


if __name__ == "__main__":
    main()
