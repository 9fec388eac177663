from decimal import Decimal

import pytest

from clmmrisk.clmm_curve import Position
from clmmrisk.clmm_math import Q64
from clmmrisk.clmm_snapshot import PoolSnapshot, load_snapshot, positions_from_frame, positions_to_frame, save_snapshot


class TestSnapshotIO:
    """Tests for saving and loading snapshots"""

    def test_round_trip(self, tmp_path, scenario_pool):
        positions = [
            Position(-100, 100, 2**100, owner="alice", position_id="p1"),
            Position(0, 50, 7),
        ]
        base = tmp_path / "snapshots" / "pool"
        save_snapshot(scenario_pool, positions, base)
        assert (tmp_path / "snapshots" / "pool.meta.json").exists()
        assert (tmp_path / "snapshots" / "pool.positions.parquet").exists()

        pool, loaded = load_snapshot(base)
        assert pool == scenario_pool
        assert loaded == positions

    def test_missing_files(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_snapshot(tmp_path / "missing")

    def test_frame_without_labels(self):
        df = positions_to_frame([Position(-1, 1, 5)]).drop(columns=["owner", "position_id"])
        assert positions_from_frame(df) == [Position(-1, 1, 5)]

    def test_frame_missing_columns(self):
        df = positions_to_frame([Position(-1, 1, 5)]).drop(columns=["liquidity"])
        with pytest.raises(ValueError):
            positions_from_frame(df)


class TestPoolSnapshot:
    def test_spot_price(self):
        pool = PoolSnapshot(0, Q64, 0, decimals0=9, decimals1=6, fee_rate_bps=30)
        assert pool.spot_price() == Decimal(1000)

    @pytest.mark.parametrize(
        "changes",
        [
            {"current_sqrt_price_x64": 0},
            {"current_sqrt_price_x64": 2**128},
            {"current_liquidity": 2**128},
            {"decimals0": 256},
            {"fee_rate_bps": -1},
        ],
    )
    def test_validate(self, scenario_pool, changes):
        values = {**scenario_pool.__dict__, **changes}
        with pytest.raises(ValueError):
            PoolSnapshot(**values).validate()

    def test_sides(self, scenario_pool):
        assert scenario_pool.symbol_in(True) == "TEST"
        assert scenario_pool.symbol_out(True) == "USD"
        assert scenario_pool.symbol_in(False) == "USD"
