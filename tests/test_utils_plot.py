from clmmrisk.clmm_breakpoints import analyze_both_directions
from clmmrisk.clmm_curve import LiquidityCurve
from clmmrisk.clmm_depth import build_active_liquidity_profile
from clmmrisk.utils_io import ensure_dir, figures_dir, repo_root, snapshots_dir
from clmmrisk.utils_plot import plot_breakpoints, plot_liquidity_profile, save_figure


class TestPlots:
    def test_liquidity_profile(self, tmp_path, deep_positions):
        profile = build_active_liquidity_profile(LiquidityCurve.build(deep_positions), 0)
        outpath = tmp_path / "figs" / "profile.png"
        save_figure(plot_liquidity_profile(profile, 0), outpath)
        assert outpath.exists()

    def test_breakpoints(self, tmp_path, deep_pool, deep_positions):
        fig = plot_breakpoints(analyze_both_directions(deep_pool, deep_positions))
        assert len(fig.axes) == 2
        save_figure(fig, tmp_path / "bp.png")
        assert (tmp_path / "bp.png").exists()


class TestPaths:
    def test_layout(self, tmp_path):
        assert (repo_root() / "pyproject.toml").exists()
        assert snapshots_dir().parent.name == "data"
        assert figures_dir().parent == repo_root()
        target = ensure_dir(tmp_path / "a" / "b")
        assert target.is_dir()
