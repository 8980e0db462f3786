"""Trading rules: boolean predicates over ``(index, trading_record)``.

Rules are stateless and side-effect free, so one rule instance can be shared
by strategies running against independent trading records. Compose with
``and_``/``or_``/``xor``/``negation`` or the ``& | ^ ~`` operators.
"""

from __future__ import annotations

import logging
from typing import Optional

from .indicator import CrossIndicator, Indicator, as_indicator
from .trading_record import TradingRecord

log = logging.getLogger(__name__)


def _require_rule(rule, name: str = "rule") -> "Rule":
    if rule is None:
        raise ValueError(f"{name} must not be None")
    if not isinstance(rule, Rule):
        raise ValueError(f"{name} must be a Rule, got {type(rule).__name__}")
    return rule


class Rule:
    def is_satisfied(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        raise NotImplementedError

    def and_(self, rule: "Rule") -> "Rule":
        return AndRule(self, rule)

    def or_(self, rule: "Rule") -> "Rule":
        return OrRule(self, rule)

    def xor(self, rule: "Rule") -> "Rule":
        return XorRule(self, rule)

    def negation(self) -> "Rule":
        return NotRule(self)

    __and__ = and_
    __or__ = or_
    __xor__ = xor

    def __invert__(self) -> "Rule":
        return self.negation()

    def _trace(self, index: int, satisfied: bool) -> bool:
        if log.isEnabledFor(logging.DEBUG):
            log.debug("%s#isSatisfied(%d): %s", type(self).__name__, index, satisfied)
        return satisfied

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


# ---------------------------------------------------------------------------
# combinators
# ---------------------------------------------------------------------------


class BooleanRule(Rule):
    """Always satisfied (or never)."""

    def __init__(self, satisfied: bool):
        self.satisfied = bool(satisfied)

    def is_satisfied(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        return self._trace(index, self.satisfied)

    def __repr__(self) -> str:
        return f"BooleanRule({self.satisfied})"


BooleanRule.TRUE = BooleanRule(True)
BooleanRule.FALSE = BooleanRule(False)


class _BinaryRule(Rule):
    def __init__(self, rule1: Rule, rule2: Rule):
        self.rule1 = _require_rule(rule1, "rule1")
        self.rule2 = _require_rule(rule2, "rule2")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.rule1!r}, {self.rule2!r})"


class AndRule(_BinaryRule):
    def is_satisfied(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        satisfied = self.rule1.is_satisfied(index, trading_record) and self.rule2.is_satisfied(index, trading_record)
        return self._trace(index, satisfied)


class OrRule(_BinaryRule):
    def is_satisfied(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        satisfied = self.rule1.is_satisfied(index, trading_record) or self.rule2.is_satisfied(index, trading_record)
        return self._trace(index, satisfied)


class XorRule(_BinaryRule):
    def is_satisfied(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        satisfied = self.rule1.is_satisfied(index, trading_record) != self.rule2.is_satisfied(index, trading_record)
        return self._trace(index, satisfied)


class NotRule(Rule):
    def __init__(self, rule: Rule):
        self.rule = _require_rule(rule)

    def is_satisfied(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        return self._trace(index, not self.rule.is_satisfied(index, trading_record))

    def __repr__(self) -> str:
        return f"NotRule({self.rule!r})"


# ---------------------------------------------------------------------------
# indicator comparisons
# ---------------------------------------------------------------------------


class OverIndicatorRule(Rule):
    """``first > second`` (strict). ``second`` may be a number."""

    def __init__(self, first: Indicator, second):
        self.first = first
        self.second = as_indicator(first.series, second)

    def is_satisfied(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        return self._trace(index, self.first.get_value(index) > self.second.get_value(index))


class UnderIndicatorRule(Rule):
    """``first < second`` (strict). ``second`` may be a number."""

    def __init__(self, first: Indicator, second):
        self.first = first
        self.second = as_indicator(first.series, second)

    def is_satisfied(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        return self._trace(index, self.first.get_value(index) < self.second.get_value(index))


class CrossedUpIndicatorRule(Rule):
    """``first`` crosses above ``second`` at ``index``."""

    def __init__(self, first: Indicator, second):
        second = as_indicator(first.series, second)
        self.cross = CrossIndicator(second, first)

    @property
    def low(self) -> Indicator:
        return self.cross.low

    @property
    def up(self) -> Indicator:
        return self.cross.up

    def is_satisfied(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        return self._trace(index, self.cross.get_value(index))


class CrossedDownIndicatorRule(Rule):
    """``first`` crosses below ``second`` at ``index``."""

    def __init__(self, first: Indicator, second):
        second = as_indicator(first.series, second)
        self.cross = CrossIndicator(first, second)

    @property
    def low(self) -> Indicator:
        return self.cross.low

    @property
    def up(self) -> Indicator:
        return self.cross.up

    def is_satisfied(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        return self._trace(index, self.cross.get_value(index))


class _TrendRule(Rule):
    """Share of the last ``bar_count`` bars where the indicator moved one way.

    ``min_strength`` in ``[0, 1]``; values ``>= 1`` are clamped to 0.99.
    """

    def __init__(self, ref: Indicator, bar_count: int, min_strength: float = 1.0):
        if int(bar_count) <= 0:
            raise ValueError("bar_count must be positive")
        self.ref = ref
        self.bar_count = int(bar_count)
        self.min_strength = 0.99 if min_strength >= 1 else float(min_strength)

    def _moved(self, current: float, previous: float) -> bool:
        raise NotImplementedError

    def is_satisfied(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        count = 0
        for i in range(max(0, index - self.bar_count + 1), index + 1):
            if self._moved(self.ref.get_value(i), self.ref.get_value(max(0, i - 1))):
                count += 1
        ratio = count / float(self.bar_count)
        return self._trace(index, ratio >= self.min_strength)


class IsRisingRule(_TrendRule):
    def _moved(self, current: float, previous: float) -> bool:
        return current > previous


class IsFallingRule(_TrendRule):
    def _moved(self, current: float, previous: float) -> bool:
        return current < previous


# ---------------------------------------------------------------------------
# position-aware exits
# ---------------------------------------------------------------------------


class _ThresholdRule(Rule):
    """Compare the price with a percentage band around the entry net price.

    Unsatisfied without a trading record or an opened position.
    """

    def __init__(self, price_indicator: Indicator, percentage: float):
        if percentage < 0:
            raise ValueError("percentage must be >= 0")
        self.price_indicator = price_indicator
        self.percentage = float(percentage)

    def _long_hit(self, entry_price: float, price: float) -> bool:
        raise NotImplementedError

    def _short_hit(self, entry_price: float, price: float) -> bool:
        raise NotImplementedError

    def is_satisfied(self, index: int, trading_record: Optional[TradingRecord] = None) -> bool:
        satisfied = False
        if trading_record is not None:
            position = trading_record.current_position
            if position.is_opened:
                entry_price = position.entry.net_price
                price = self.price_indicator.get_value(index)
                if position.entry.is_buy:
                    satisfied = self._long_hit(entry_price, price)
                else:
                    satisfied = self._short_hit(entry_price, price)
        return self._trace(index, satisfied)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.percentage}%)"


class StopLossRule(_ThresholdRule):
    """Satisfied once the loss reaches ``percentage`` percent (inclusive)."""

    def _long_hit(self, entry_price: float, price: float) -> bool:
        return price <= entry_price * (100.0 - self.percentage) / 100.0

    def _short_hit(self, entry_price: float, price: float) -> bool:
        return price >= entry_price * (100.0 + self.percentage) / 100.0


class StopGainRule(_ThresholdRule):
    """Satisfied once the gain reaches ``percentage`` percent (inclusive)."""

    def _long_hit(self, entry_price: float, price: float) -> bool:
        return price >= entry_price * (100.0 + self.percentage) / 100.0

    def _short_hit(self, entry_price: float, price: float) -> bool:
        return price <= entry_price * (100.0 - self.percentage) / 100.0
