"""Indicator evaluation engine.

An indicator is a lazily evaluated function ``index -> value`` over a bar
series. Values are cached once computed and never change afterwards (a bar
is immutable once appended).

Two flavours:

- ``CachedIndicator``: ``calculate(index)`` reads upstream indicators at
  indices ``<= index`` only. Slots are filled on first access, in any order.
- ``RecursiveCachedIndicator``: ``calculate(index)`` reads its own value at
  ``index - 1``. Every unresolved slot below ``index`` is filled by an
  explicit bottom-up loop first, so the python call stack stays flat no
  matter how long the series is.

Not thread-safe: a cache is mutated on read.
"""

from __future__ import annotations

import math
import operator
from typing import Callable, Iterator, List, Union

import numpy as np
import pandas as pd

from .series import BarSeries

_MISSING = object()

NaN = float("nan")


def is_nan(value) -> bool:
    return isinstance(value, float) and math.isnan(value)


class Indicator:
    """Base class: a function from a valid series index to a value."""

    def __init__(self, series: BarSeries):
        if series is None:
            raise ValueError("series must not be None")
        self.series = series

    def get_value(self, index: int):
        raise NotImplementedError

    @property
    def count_of_unstable_bars(self) -> int:
        """Number of leading bars whose value may be unreliable (or NaN)."""
        return 0

    def is_stable(self) -> bool:
        return self.series.bar_count >= self.count_of_unstable_bars

    def _check_index(self, index: int) -> None:
        if index < 0 or index > self.series.end_index:
            raise IndexError(
                f"{type(self).__name__}: index {index} out of range [0, {self.series.end_index}]"
            )

    # ---------- convenience ----------

    def values(self) -> Iterator:
        """Iterate the values over ``[begin_index, end_index]`` in index order."""
        for i in range(self.series.begin_index, self.series.end_index + 1):
            if i >= 0:
                yield self.get_value(i)

    def to_floats(self, index: int, bar_count: int) -> np.ndarray:
        """``bar_count`` consecutive values, normally ending at ``index``.

        Near the start the window is shifted rather than shortened: it begins
        at 0 and still spans ``bar_count`` bars, so it may reach past ``index``
        (and raises ``IndexError`` when the series is shorter than that).
        """
        if bar_count <= 0:
            raise ValueError("bar_count must be positive")
        start = max(0, index - bar_count + 1)
        return np.array([float(self.get_value(i)) for i in range(start, start + bar_count)], dtype=float)

    def to_series(self) -> pd.Series:
        index = pd.DatetimeIndex([bar.timestamp for bar in self.series], name="Date")
        return pd.Series(list(self.values()), index=index, name=str(self))

    def __str__(self) -> str:
        return type(self).__name__


def _series_of(source: Union[BarSeries, Indicator]) -> BarSeries:
    if isinstance(source, Indicator):
        return source.series
    return source


class CachedIndicator(Indicator):
    """Memoizes ``calculate(index)`` in a flat slot array."""

    def __init__(self, source: Union[BarSeries, Indicator]):
        super().__init__(_series_of(source))
        self._results: List = []

    def calculate(self, index: int):
        raise NotImplementedError

    def get_value(self, index: int):
        self._check_index(index)
        results = self._results
        if index >= len(results):
            # series is append-only: grow the slot array on demand
            results.extend([_MISSING] * (index + 1 - len(results)))
        value = results[index]
        if value is _MISSING:
            value = self.calculate(index)
            results[index] = value
        return value


class RecursiveCachedIndicator(CachedIndicator):
    """Cached indicator whose value at ``index`` depends on ``index - 1``."""

    def __init__(self, source: Union[BarSeries, Indicator]):
        super().__init__(source)
        self._highest_resolved = -1

    def get_value(self, index: int):
        self._check_index(index)
        # calculate(i) only ever sees a cached value at i - 1
        for i in range(self._highest_resolved + 1, index + 1):
            super().get_value(i)
            self._highest_resolved = i
        return super().get_value(index)


class ConstantIndicator(Indicator):
    def __init__(self, series: BarSeries, value):
        super().__init__(series)
        self.value = value

    def get_value(self, index: int):
        self._check_index(index)
        return self.value

    def __str__(self) -> str:
        return f"ConstantIndicator value: {self.value}"


def as_indicator(series: BarSeries, value) -> Indicator:
    """Wrap a plain number as a ``ConstantIndicator``."""
    if isinstance(value, Indicator):
        return value
    return ConstantIndicator(series, float(value))


class _BarFieldIndicator(Indicator):
    field = "close"

    def get_value(self, index: int) -> float:
        return getattr(self.series.get_bar(index), self.field)


class OpenPriceIndicator(_BarFieldIndicator):
    field = "open"


class HighPriceIndicator(_BarFieldIndicator):
    field = "high"


class LowPriceIndicator(_BarFieldIndicator):
    field = "low"


class ClosePriceIndicator(_BarFieldIndicator):
    field = "close"


class VolumeFieldIndicator(_BarFieldIndicator):
    field = "volume"


class AmountIndicator(_BarFieldIndicator):
    field = "amount"


def _safe_div(a: float, b: float) -> float:
    if b == 0 or is_nan(a) or is_nan(b):
        return NaN
    return a / b


class BinaryOperation(CachedIndicator):
    """Combine two indicators (or an indicator and a number) element-wise.

    Unstable bars are the max of both operands.
    """

    def __init__(self, op: Callable[[float, float], float], left, right, symbol: str = "?"):
        left_ind = left if isinstance(left, Indicator) else None
        right_ind = right if isinstance(right, Indicator) else None
        anchor = left_ind or right_ind
        if anchor is None:
            raise ValueError("at least one operand must be an indicator")
        super().__init__(anchor)
        self.left = as_indicator(self.series, left)
        self.right = as_indicator(self.series, right)
        self.op = op
        self.symbol = symbol

    def calculate(self, index: int) -> float:
        return self.op(self.left.get_value(index), self.right.get_value(index))

    @property
    def count_of_unstable_bars(self) -> int:
        return max(self.left.count_of_unstable_bars, self.right.count_of_unstable_bars)

    @classmethod
    def sum(cls, left, right) -> "BinaryOperation":
        return cls(operator.add, left, right, "+")

    @classmethod
    def difference(cls, left, right) -> "BinaryOperation":
        return cls(operator.sub, left, right, "-")

    @classmethod
    def product(cls, left, right) -> "BinaryOperation":
        return cls(operator.mul, left, right, "*")

    @classmethod
    def quotient(cls, left, right) -> "BinaryOperation":
        """Division; a zero denominator yields NaN."""
        return cls(_safe_div, left, right, "/")

    @classmethod
    def min(cls, left, right) -> "BinaryOperation":
        return cls(lambda a, b: NaN if is_nan(a) or is_nan(b) else min(a, b), left, right, "min")

    @classmethod
    def max(cls, left, right) -> "BinaryOperation":
        return cls(lambda a, b: NaN if is_nan(a) or is_nan(b) else max(a, b), left, right, "max")

    def __str__(self) -> str:
        return f"({self.left} {self.symbol} {self.right})"


class CrossIndicator(CachedIndicator):
    """True when ``up`` drops below ``low`` at ``index``.

    I.e. ``up < low`` now, and the last earlier bar where the two differed
    had ``up > low``. Equal bars in between are skipped; a run of equal bars
    reaching index 0 never counts as a cross.
    """

    def __init__(self, up: Indicator, low: Indicator):
        super().__init__(up)
        self.up = up
        self.low = low

    def calculate(self, index: int) -> bool:
        i = index
        if i == 0 or self.up.get_value(i) >= self.low.get_value(i):
            return False
        i -= 1
        if self.up.get_value(i) > self.low.get_value(i):
            return True
        while i > 0 and self.up.get_value(i) == self.low.get_value(i):
            i -= 1
        return i != 0 and self.up.get_value(i) > self.low.get_value(i)

    @property
    def count_of_unstable_bars(self) -> int:
        return max(self.up.count_of_unstable_bars, self.low.count_of_unstable_bars)
