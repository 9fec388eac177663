"""
Central configuration and defaults.

Keep ALL defaults here so analysis entry points stay minimal and reproducible.
Fee and scale settings are passed explicitly to the analyzers, so several pools
or fee tiers can be simulated side by side.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml


# Tick bound of the supported grid. Narrower than the usual +-887272 CLMM bound.
MAX_TICK = 443_636


@dataclass(frozen=True)
class FeeConfig:
    """
    Swap fee in basis points, split into a base and an additional component.
    """
    base_rate_bps: int = 20
    additional_rate_bps: int = 0

    @property
    def total_rate_bps(self) -> int:
        return self.base_rate_bps + self.additional_rate_bps

    @classmethod
    def from_snapshot(cls, pool) -> "FeeConfig":
        return cls(base_rate_bps=int(pool.fee_rate_bps))


@dataclass(frozen=True)
class Scale:
    # Fee rates are expressed in 1/fee_denominator (10_000 = basis points)
    fee_denominator: int = 10_000

    # Significant digits for Decimal prices and ratios
    price_precision: int = 40


@dataclass(frozen=True)
class AnalyzerConfig:
    # Tick grid
    max_tick: int = MAX_TICK

    # Breakpoint walk
    max_breakpoints: int = 20

    # Fee override; None means "use the pool snapshot's fee rate"
    fee: FeeConfig | None = None
    scale: Scale = field(default_factory=Scale)

    # How a partially consumed segment is priced: "pro_rata" or "exact"
    partial_fill: str = "pro_rata"

    # Default trade sizes (human units of the input token)
    swap_sizes_token0: tuple[str, ...] = ("0.1", "0.5", "1", "5", "10", "50", "100", "500")
    swap_sizes_token1: tuple[str, ...] = ("400", "2000", "4000", "20000", "40000", "200000", "400000", "2000000")

    # Report thresholds
    slippage_thresholds_pct: tuple[float, ...] = (0.1, 0.25, 0.5, 1.0, 2.0, 5.0)
    significant_drop_pct: int = 20
    top_owners: int = 10

    # Depth curve (fractional price moves, +0.01 means +1%)
    depth_pct_moves: tuple[float, ...] = (-0.2, -0.1, -0.05, -0.02, -0.01, 0.01, 0.02, 0.05, 0.1, 0.2)
    tick_window: int = 50_000

    def __post_init__(self) -> None:
        if self.max_tick <= 0:
            raise ValueError("max_tick must be positive.")
        if self.max_breakpoints < 0:
            raise ValueError("max_breakpoints must be non-negative.")
        if self.partial_fill not in ("pro_rata", "exact"):
            raise ValueError(f"Unknown partial_fill mode: {self.partial_fill!r}")
        if self.fee is not None:
            validate_fee(self.fee, self.scale)

    def resolve_fee(self, pool) -> FeeConfig:
        """
        Fee to apply for a pool: the configured override, else the pool's own rate.
        """
        fee = self.fee if self.fee is not None else FeeConfig.from_snapshot(pool)
        validate_fee(fee, self.scale)
        return fee


DEFAULT_CONFIG = AnalyzerConfig()


def validate_fee(fee: FeeConfig, scale: Scale) -> None:
    if fee.base_rate_bps < 0 or fee.additional_rate_bps < 0:
        raise ValueError("Fee rates must be non-negative.")
    if fee.total_rate_bps >= scale.fee_denominator:
        raise ValueError(
            f"Fee rate {fee.total_rate_bps} must be below the fee denominator {scale.fee_denominator}."
        )


def config_from_mapping(values: Mapping[str, Any], base: AnalyzerConfig = DEFAULT_CONFIG) -> AnalyzerConfig:
    """
    Apply a mapping of overrides (e.g. parsed YAML) on top of a base config.

    Nested `fee` and `scale` mappings become FeeConfig / Scale; list values
    become tuples.
    """
    known = {f.name for f in fields(AnalyzerConfig)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown config keys: {sorted(unknown)}")

    overrides: dict[str, Any] = {}
    for key, value in values.items():
        if key == "fee" and value is not None:
            value = FeeConfig(**value)
        elif key == "scale":
            value = Scale(**value)
        elif isinstance(value, list):
            value = tuple(value)
        overrides[key] = value
    return replace(base, **overrides)


def load_config(filepath: str | Path) -> AnalyzerConfig:
    """Load analyzer overrides from a YAML file"""
    with open(filepath, "r", encoding="utf-8") as file:
        values = yaml.safe_load(file) or {}
    if not isinstance(values, dict):
        raise ValueError(f"Config file {filepath} must contain a mapping.")
    return config_from_mapping(values)
