"""
Plot helpers: liquidity profile and breakpoint charts, saving figures.
"""

from __future__ import annotations
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

from .clmm_breakpoints import BreakpointAnalysis
from .clmm_math import SwapDirection


def save_figure(fig: plt.Figure, outpath: Path, dpi: int = 200) -> None:
    """
    Save a matplotlib figure to disk.
    """
    outpath.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(outpath, dpi=dpi, bbox_inches="tight")


def plot_liquidity_profile(profile: pd.DataFrame, current_tick: int) -> plt.Figure:
    """
    Step chart of active liquidity per tick segment.
    Liquidity is converted to float here for plotting only.
    """
    fig, ax = plt.subplots(figsize=(10, 4))
    if not profile.empty:
        ticks = profile["tick"].astype(int).tolist()
        liquidity = [float(v) for v in profile["active_liquidity"]]
        ax.step(ticks, liquidity, where="post", label="active liquidity")
    ax.axvline(current_tick, color="tab:red", linestyle="--", label="current tick")
    ax.set_xlabel("tick")
    ax.set_ylabel("liquidity")
    ax.set_title("Active liquidity profile")
    ax.legend()
    return fig


def plot_breakpoints(analyses: dict[SwapDirection, BreakpointAnalysis]) -> plt.Figure:
    """
    Slippage vs cumulative swap input at each breakpoint, one panel per direction.
    """
    fig, axes = plt.subplots(1, len(analyses), figsize=(6 * max(len(analyses), 1), 4), squeeze=False)
    for ax, (direction, analysis) in zip(axes[0], analyses.items()):
        amounts = [float(bp.cumulative_swap_in) for bp in analysis]
        slippage = [bp.slippage_percent for bp in analysis]
        ax.plot(amounts, slippage, marker="o")
        ax.set_xlabel("cumulative swap in (smallest unit)")
        ax.set_ylabel("slippage (%)")
        ax.set_title(direction.value)
    return fig
