"""
Snapshot format for CLMM pool state.

A snapshot is a fixed-time view (pool state + position list) used for
reproducible analytics. Fetching and decoding on-chain accounts happens
elsewhere; this module only validates, saves and loads the result.
"""

from __future__ import annotations
import json
from dataclasses import asdict, dataclass
from decimal import Decimal
from pathlib import Path

import pandas as pd

from .clmm_curve import Position
from .clmm_math import sqrt_price_x64_to_price

U128_MAX = (1 << 128) - 1


@dataclass(frozen=True)
class PoolSnapshot:
    """
    Snapshot of a CLMM pool at a specific slot/time.
    """
    current_tick: int
    current_sqrt_price_x64: int
    current_liquidity: int
    decimals0: int
    decimals1: int
    fee_rate_bps: int
    pool_name: str = ""
    timestamp_utc: str = ""  # ISO string
    tick_spacing: int = 1
    token0_symbol: str = "TOKEN0"
    token1_symbol: str = "TOKEN1"

    def validate(self) -> None:
        if not 0 < self.current_sqrt_price_x64 <= U128_MAX:
            raise ValueError(f"current_sqrt_price_x64 out of u128 range: {self.current_sqrt_price_x64}")
        if not 0 <= self.current_liquidity <= U128_MAX:
            raise ValueError(f"current_liquidity out of u128 range: {self.current_liquidity}")
        for name in ("decimals0", "decimals1"):
            value = getattr(self, name)
            if not 0 <= value <= 255:
                raise ValueError(f"{name} must fit in u8, got {value}")
        if self.fee_rate_bps < 0:
            raise ValueError("fee_rate_bps must be non-negative.")
        if self.tick_spacing <= 0:
            raise ValueError("tick_spacing must be positive.")

    def spot_price(self) -> Decimal:
        """Current human price, token1 per token0"""
        return sqrt_price_x64_to_price(self.current_sqrt_price_x64, self.decimals0, self.decimals1)

    def symbol_in(self, zero_for_one: bool) -> str:
        return self.token0_symbol if zero_for_one else self.token1_symbol

    def symbol_out(self, zero_for_one: bool) -> str:
        return self.token1_symbol if zero_for_one else self.token0_symbol

    def decimals_in(self, zero_for_one: bool) -> int:
        return self.decimals0 if zero_for_one else self.decimals1

    def decimals_out(self, zero_for_one: bool) -> int:
        return self.decimals1 if zero_for_one else self.decimals0


_BIG_FIELDS = ("current_sqrt_price_x64", "current_liquidity")


def positions_to_frame(positions: list[Position]) -> pd.DataFrame:
    """
    Positions as a DataFrame; liquidity is stored as a decimal string so u128
    values survive parquet.
    """
    return pd.DataFrame(
        {
            "tick_lower": pd.Series([p.tick_lower for p in positions], dtype="int64"),
            "tick_upper": pd.Series([p.tick_upper for p in positions], dtype="int64"),
            "liquidity": pd.Series([str(p.liquidity) for p in positions], dtype=object),
            "owner": pd.Series([p.owner for p in positions], dtype=object),
            "position_id": pd.Series([p.position_id for p in positions], dtype=object),
        }
    )


def positions_from_frame(df: pd.DataFrame) -> list[Position]:
    required = {"tick_lower", "tick_upper", "liquidity"}
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"Positions dataframe missing columns: {missing}")
    if df[list(required)].isna().any().any():
        raise ValueError("Positions dataframe contains NaN values.")

    owners = df["owner"] if "owner" in df.columns else pd.Series([None] * len(df), index=df.index)
    ids = df["position_id"] if "position_id" in df.columns else pd.Series([None] * len(df), index=df.index)
    out = []
    for row, owner, pid in zip(df.itertuples(index=False), owners, ids):
        out.append(
            Position(
                tick_lower=int(row.tick_lower),
                tick_upper=int(row.tick_upper),
                liquidity=int(str(row.liquidity)),
                owner=None if pd.isna(owner) else str(owner),
                position_id=None if pd.isna(pid) else str(pid),
            )
        )
    return out


def save_snapshot(pool: PoolSnapshot, positions: list[Position], outpath: Path) -> None:
    """
    Save snapshot:
    - pool state in a small sidecar JSON (u128 values as strings)
    - positions as parquet
    """
    outpath.parent.mkdir(parents=True, exist_ok=True)
    positions_path = outpath.with_suffix(".positions.parquet")
    meta_path = outpath.with_suffix(".meta.json")

    pool.validate()
    positions_to_frame(positions).to_parquet(positions_path, index=False)

    meta = asdict(pool)
    for name in _BIG_FIELDS:
        meta[name] = str(meta[name])
    meta["positions_file"] = positions_path.name
    meta_path.write_text(json.dumps(meta, indent=2))


def load_snapshot(basepath: Path) -> tuple[PoolSnapshot, list[Position]]:
    """
    Load snapshot from:
    - basepath.meta.json
    - basepath.positions.parquet
    """
    meta_path = basepath.with_suffix(".meta.json")
    positions_path = basepath.with_suffix(".positions.parquet")

    if not meta_path.exists():
        raise FileNotFoundError(f"Missing meta file: {meta_path}")
    if not positions_path.exists():
        raise FileNotFoundError(f"Missing positions file: {positions_path}")

    meta = json.loads(meta_path.read_text())
    positions = positions_from_frame(pd.read_parquet(positions_path))

    pool = PoolSnapshot(
        current_tick=int(meta["current_tick"]),
        current_sqrt_price_x64=int(meta["current_sqrt_price_x64"]),
        current_liquidity=int(meta["current_liquidity"]),
        decimals0=int(meta["decimals0"]),
        decimals1=int(meta["decimals1"]),
        fee_rate_bps=int(meta["fee_rate_bps"]),
        pool_name=str(meta.get("pool_name", "")),
        timestamp_utc=str(meta.get("timestamp_utc", "")),
        tick_spacing=int(meta.get("tick_spacing", 1)),
        token0_symbol=str(meta.get("token0_symbol", "TOKEN0")),
        token1_symbol=str(meta.get("token1_symbol", "TOKEN1")),
    )
    pool.validate()
    return pool, positions
