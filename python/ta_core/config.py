"""Configuration objects.

Style rules:
- keep signatures stable (no alias chaos)
- prefer explicit field names
- validate at construction, never at evaluation time
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CostConfig:
    """Transaction and holding cost parameters."""

    # Linear commission applied on the notional of every trade (entry and exit).
    commission_rate: float = 0.0

    # Flat fee charged per trade, on top of the linear commission.
    fixed_fee: float = 0.0

    # Short borrow cost (annual) -> per-bar rate applied while short.
    borrow_annual_rate: float = 0.0

    # Day-count convention for converting the annual borrow rate to a per-bar rate.
    borrow_day_count: int = 365

    def __post_init__(self) -> None:
        if self.commission_rate < 0:
            raise ValueError("commission_rate must be >= 0")
        if self.fixed_fee < 0:
            raise ValueError("fixed_fee must be >= 0")
        if self.borrow_annual_rate < 0:
            raise ValueError("borrow_annual_rate must be >= 0")

    def borrow_rate_per_bar(self) -> float:
        """Per-bar borrow rate.

        A non-positive ``borrow_day_count`` falls back to the calendar-day
        convention (annual/365).
        """
        day_count = float(self.borrow_day_count)
        if day_count <= 0:
            day_count = 365.0
        return float(self.borrow_annual_rate) / day_count

    def build_cost_models(self):
        """Return the ``(transaction_cost_model, holding_cost_model)`` pair."""
        from .cost_model import (
            FixedTransactionCostModel,
            LinearBorrowingCostModel,
            LinearTransactionCostModel,
            ZeroCostModel,
        )

        if self.commission_rate > 0 and self.fixed_fee > 0:
            transaction = LinearTransactionCostModel(self.commission_rate, fixed_fee=self.fixed_fee)
        elif self.commission_rate > 0:
            transaction = LinearTransactionCostModel(self.commission_rate)
        elif self.fixed_fee > 0:
            transaction = FixedTransactionCostModel(self.fixed_fee)
        else:
            transaction = ZeroCostModel()

        rate = self.borrow_rate_per_bar()
        holding = LinearBorrowingCostModel(rate) if rate > 0 else ZeroCostModel()
        return transaction, holding


@dataclass(frozen=True)
class StrategyConfig:
    """Parameters of the bundled SMA crossover strategy."""

    sma_period: int = 20

    # Exit thresholds in percent (5.0 == 5%). 0 disables the rule.
    stop_loss_pct: float = 0.0
    stop_gain_pct: float = 0.0

    # None means "use sma_period".
    unstable_bars: Optional[int] = None

    # Trade the mirrored (short) side: enter on cross down, exit on cross up.
    enable_short: bool = False

    def __post_init__(self) -> None:
        if self.sma_period <= 0:
            raise ValueError("sma_period must be positive")
        if self.stop_loss_pct < 0 or self.stop_gain_pct < 0:
            raise ValueError("stop percentages must be >= 0")
        if self.unstable_bars is not None and self.unstable_bars < 0:
            raise ValueError("unstable_bars must be >= 0")

    @property
    def effective_unstable_bars(self) -> int:
        return self.sma_period if self.unstable_bars is None else int(self.unstable_bars)

    @classmethod
    def from_params_dict(cls, d: dict) -> "StrategyConfig":
        """Create StrategyConfig from an external params dict (e.g. a JSON file).

        Keys are typically PascalCase (e.g., SmaPeriod). Unknown keys are ignored.
        """
        mapping = {
            "SmaPeriod": "sma_period",
            "StopLossPct": "stop_loss_pct",
            "StopGainPct": "stop_gain_pct",
            "UnstableBars": "unstable_bars",
            "EnableShort": "enable_short",
        }
        kwargs = {}
        for k, v in (d or {}).items():
            if k in mapping:
                kwargs[mapping[k]] = v

        if "sma_period" in kwargs:
            kwargs["sma_period"] = int(kwargs["sma_period"])
        if kwargs.get("unstable_bars") is not None:
            kwargs["unstable_bars"] = int(kwargs["unstable_bars"])

        return cls(**kwargs)


@dataclass(frozen=True)
class BacktestConfig:
    """Backtest run configuration."""

    symbol: str = "SERIES"

    # Amount of the asset traded on every entry/exit.
    trade_amount: float = 1.0

    # "BUY" (long positions) or "SELL" (short positions). None follows
    # StrategyConfig.enable_short; an explicit value must agree with it.
    starting_type: Optional[str] = None

    def __post_init__(self) -> None:
        if self.trade_amount <= 0:
            raise ValueError("trade_amount must be positive")
        if self.starting_type is not None and str(self.starting_type).upper() not in ("BUY", "SELL"):
            raise ValueError(f"starting_type must be 'BUY' or 'SELL', got {self.starting_type!r}")
