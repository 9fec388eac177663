import pytest

from clmmrisk.config import DEFAULT_CONFIG, AnalyzerConfig, FeeConfig, Scale, config_from_mapping, load_config


class TestAnalyzerConfig:
    """Tests for analyzer configuration"""

    def test_defaults(self):
        assert DEFAULT_CONFIG.max_tick == 443_636
        assert DEFAULT_CONFIG.max_breakpoints == 20
        assert DEFAULT_CONFIG.scale.fee_denominator == 10_000
        assert DEFAULT_CONFIG.slippage_thresholds_pct == (0.1, 0.25, 0.5, 1.0, 2.0, 5.0)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_tick": 0},
            {"max_breakpoints": -1},
            {"partial_fill": "linear"},
            {"fee": FeeConfig(base_rate_bps=10_000)},
            {"fee": FeeConfig(base_rate_bps=-1)},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            AnalyzerConfig(**kwargs)

    def test_resolve_fee(self, scenario_pool):
        assert DEFAULT_CONFIG.resolve_fee(scenario_pool) == FeeConfig(base_rate_bps=30)
        override = AnalyzerConfig(fee=FeeConfig(base_rate_bps=20, additional_rate_bps=5))
        assert override.resolve_fee(scenario_pool).total_rate_bps == 25

    def test_pool_fee_above_denominator(self, scenario_pool):
        with pytest.raises(ValueError):
            AnalyzerConfig(scale=Scale(fee_denominator=10)).resolve_fee(scenario_pool)


class TestLoadConfig:
    """Tests for YAML overrides"""

    def test_load(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "max_breakpoints: 5\n"
            "partial_fill: exact\n"
            "fee:\n"
            "  base_rate_bps: 25\n"
            "  additional_rate_bps: 5\n"
            "slippage_thresholds_pct: [0.5, 1.0]\n"
        )
        config = load_config(path)
        assert config.max_breakpoints == 5
        assert config.partial_fill == "exact"
        assert config.fee.total_rate_bps == 30
        assert config.slippage_thresholds_pct == (0.5, 1.0)
        assert config.max_tick == DEFAULT_CONFIG.max_tick

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == DEFAULT_CONFIG

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            load_config(path)

    def test_unknown_key(self):
        with pytest.raises(ValueError):
            config_from_mapping({"max_ticks": 10})

    def test_scale(self):
        config = config_from_mapping({"scale": {"price_precision": 60}})
        assert config.scale.price_precision == 60
        assert config.scale.fee_denominator == 10_000
