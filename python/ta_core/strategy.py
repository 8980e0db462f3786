"""Strategy: an entry rule, an exit rule and a warm-up gate.

A strategy holds no per-run state. The current position is always read from
the trading record passed in, so one strategy can drive any number of
independent records (concurrently, if each record stays on its own thread).
"""

from __future__ import annotations

import logging
from typing import Optional

from .config import StrategyConfig
from .indicator import ClosePriceIndicator
from .indicators import SMAIndicator
from .rules import (
    CrossedDownIndicatorRule,
    CrossedUpIndicatorRule,
    Rule,
    StopGainRule,
    StopLossRule,
    _require_rule,
)
from .series import BarSeries
from .trading_record import TradingRecord

log = logging.getLogger(__name__)


class Strategy:
    def __init__(self, entry_rule: Rule, exit_rule: Rule, unstable_bars: int = 0, name: Optional[str] = None):
        self.entry_rule = _require_rule(entry_rule, "entry_rule")
        self.exit_rule = _require_rule(exit_rule, "exit_rule")
        if unstable_bars is None or int(unstable_bars) < 0:
            raise ValueError("unstable_bars must be >= 0")
        self._unstable_bars = int(unstable_bars)
        self.name = name

    @property
    def unstable_bars(self) -> int:
        return self._unstable_bars

    def is_unstable_at(self, index: int) -> bool:
        return index < self._unstable_bars

    # ---------- signals ----------

    def should_enter(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        enter = not self.is_unstable_at(index) and self.entry_rule.is_satisfied(index, trading_record)
        log.debug(">>> %s#shouldEnter(%d): %s", self.name or "Strategy", index, enter)
        return enter

    def should_exit(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        exit = not self.is_unstable_at(index) and self.exit_rule.is_satisfied(index, trading_record)
        log.debug(">>> %s#shouldExit(%d): %s", self.name or "Strategy", index, exit)
        return exit

    def should_operate(self, index: int, trading_record: TradingRecord) -> bool:
        """Entry signal while the current position is NEW, exit signal while OPENED."""
        position = trading_record.current_position
        if position.is_new:
            return self.should_enter(index, trading_record)
        if position.is_opened:
            return self.should_exit(index, trading_record)
        return False

    # ---------- composition ----------

    def and_(self, other: "Strategy", name: Optional[str] = None, unstable_bars: Optional[int] = None) -> "Strategy":
        if unstable_bars is None:
            unstable_bars = max(self._unstable_bars, other.unstable_bars)
        if name is None:
            name = f"and({self.name},{other.name})"
        return Strategy(self.entry_rule.and_(other.entry_rule), self.exit_rule.and_(other.exit_rule), unstable_bars, name)

    def or_(self, other: "Strategy", name: Optional[str] = None, unstable_bars: Optional[int] = None) -> "Strategy":
        if unstable_bars is None:
            unstable_bars = max(self._unstable_bars, other.unstable_bars)
        if name is None:
            name = f"or({self.name},{other.name})"
        return Strategy(self.entry_rule.or_(other.entry_rule), self.exit_rule.or_(other.exit_rule), unstable_bars, name)

    def opposite(self) -> "Strategy":
        """Swap entry and exit rules."""
        return Strategy(self.exit_rule, self.entry_rule, self._unstable_bars, f"opposite({self.name})")

    def __repr__(self) -> str:
        return f"Strategy(name={self.name!r}, unstable_bars={self._unstable_bars})"


def build_sma_crossover(series: BarSeries, cfg: StrategyConfig = StrategyConfig()) -> Strategy:
    """Close/SMA crossover, optionally with stop-loss / stop-gain exits.

    Long: enter when the close crosses above the SMA, exit when it crosses
    below. With ``enable_short`` the crosses are mirrored (meant for a
    SELL-first trading record).
    """
    close = ClosePriceIndicator(series)
    sma = SMAIndicator(close, cfg.sma_period)

    if cfg.enable_short:
        entry: Rule = CrossedDownIndicatorRule(close, sma)
        exit_: Rule = CrossedUpIndicatorRule(close, sma)
    else:
        entry = CrossedUpIndicatorRule(close, sma)
        exit_ = CrossedDownIndicatorRule(close, sma)

    if cfg.stop_loss_pct > 0:
        exit_ = exit_.or_(StopLossRule(close, cfg.stop_loss_pct))
    if cfg.stop_gain_pct > 0:
        exit_ = exit_.or_(StopGainRule(close, cfg.stop_gain_pct))

    side = "short" if cfg.enable_short else "long"
    return Strategy(entry, exit_, cfg.effective_unstable_bars, name=f"sma{cfg.sma_period}-cross-{side}")
