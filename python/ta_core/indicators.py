"""Indicator formulas layered on the evaluation engine.

Moving averages start from the first bar with a partial window (like
``rolling(..., min_periods=1)``). An indicator over another indicator
reports the upstream unstable bars plus its own window length.
"""

from __future__ import annotations

import math

from .indicator import (
    NaN,
    BinaryOperation,
    CachedIndicator,
    ClosePriceIndicator,
    HighPriceIndicator,
    Indicator,
    LowPriceIndicator,
    RecursiveCachedIndicator,
    is_nan,
)
from .series import BarSeries


def _check_period(bar_count: int, name: str = "bar_count") -> int:
    if int(bar_count) <= 0:
        raise ValueError(f"{name} must be positive")
    return int(bar_count)


class _WindowIndicator(CachedIndicator):
    """Base for indicators over a rolling window of ``bar_count`` bars."""

    def __init__(self, indicator: Indicator, bar_count: int):
        super().__init__(indicator)
        self.indicator = indicator
        self.bar_count = _check_period(bar_count)

    @property
    def count_of_unstable_bars(self) -> int:
        return self.indicator.count_of_unstable_bars + self.bar_count

    def __str__(self) -> str:
        return f"{type(self).__name__} barCount: {self.bar_count}"


# ---------------------------------------------------------------------------
# price helpers
# ---------------------------------------------------------------------------


class TypicalPriceIndicator(CachedIndicator):
    def __init__(self, series: BarSeries):
        super().__init__(series)

    def calculate(self, index: int) -> float:
        bar = self.series.get_bar(index)
        return (bar.high + bar.low + bar.close) / 3.0


class MedianPriceIndicator(CachedIndicator):
    def __init__(self, series: BarSeries):
        super().__init__(series)

    def calculate(self, index: int) -> float:
        bar = self.series.get_bar(index)
        return (bar.high + bar.low) / 2.0


class VolumeIndicator(CachedIndicator):
    """Sum of the volume over the last ``bar_count`` bars."""

    def __init__(self, series: BarSeries, bar_count: int = 1):
        super().__init__(series)
        self.bar_count = _check_period(bar_count)

    def calculate(self, index: int) -> float:
        start = max(0, index - self.bar_count + 1)
        return sum(self.series.get_bar(i).volume for i in range(start, index + 1))

    @property
    def count_of_unstable_bars(self) -> int:
        return self.bar_count


class GainIndicator(CachedIndicator):
    def __init__(self, indicator: Indicator):
        super().__init__(indicator)
        self.indicator = indicator

    def calculate(self, index: int) -> float:
        if index == 0:
            return 0.0
        diff = self.indicator.get_value(index) - self.indicator.get_value(index - 1)
        return diff if diff > 0 else 0.0

    @property
    def count_of_unstable_bars(self) -> int:
        return self.indicator.count_of_unstable_bars + 1


class LossIndicator(CachedIndicator):
    def __init__(self, indicator: Indicator):
        super().__init__(indicator)
        self.indicator = indicator

    def calculate(self, index: int) -> float:
        if index == 0:
            return 0.0
        diff = self.indicator.get_value(index - 1) - self.indicator.get_value(index)
        return diff if diff > 0 else 0.0

    @property
    def count_of_unstable_bars(self) -> int:
        return self.indicator.count_of_unstable_bars + 1


class TRIndicator(CachedIndicator):
    """True range."""

    def __init__(self, series: BarSeries):
        super().__init__(series)

    def calculate(self, index: int) -> float:
        bar = self.series.get_bar(index)
        hl = abs(bar.high - bar.low)
        if index == 0:
            return hl
        prev_close = self.series.get_bar(index - 1).close
        return max(hl, abs(bar.high - prev_close), abs(prev_close - bar.low))

    @property
    def count_of_unstable_bars(self) -> int:
        return 1


# ---------------------------------------------------------------------------
# rolling windows
# ---------------------------------------------------------------------------


class RunningTotalIndicator(RecursiveCachedIndicator):
    """Sum of the last ``bar_count`` values, updated incrementally."""

    def __init__(self, indicator: Indicator, bar_count: int):
        super().__init__(indicator)
        self.indicator = indicator
        self.bar_count = _check_period(bar_count)

    def _window_sum(self, index: int) -> float:
        start = max(0, index - self.bar_count + 1)
        return sum(self.indicator.get_value(i) for i in range(start, index + 1))

    def calculate(self, index: int) -> float:
        if index == 0:
            return self.indicator.get_value(0)
        previous = self.get_value(index - 1)
        if is_nan(previous):
            # a NaN would otherwise stick forever; restart from the raw window
            return self._window_sum(index)
        total = previous + self.indicator.get_value(index)
        if index >= self.bar_count:
            total -= self.indicator.get_value(index - self.bar_count)
        return total

    @property
    def count_of_unstable_bars(self) -> int:
        return self.indicator.count_of_unstable_bars + self.bar_count


class SMAIndicator(_WindowIndicator):
    """Simple moving average (partial average over the first bars)."""

    def __init__(self, indicator: Indicator, bar_count: int):
        super().__init__(indicator, bar_count)
        self._running_total = RunningTotalIndicator(indicator, self.bar_count)

    def calculate(self, index: int) -> float:
        real_bar_count = min(self.bar_count, index + 1)
        return self._running_total.get_value(index) / real_bar_count


class WMAIndicator(_WindowIndicator):
    """Linearly weighted moving average (latest bar weighs most)."""

    def calculate(self, index: int) -> float:
        if index == 0:
            return self.indicator.get_value(0)
        loop_length = index + 1 if index - self.bar_count < 0 else self.bar_count
        value = 0.0
        actual = index
        for weight in range(loop_length, 0, -1):
            value += weight * self.indicator.get_value(actual)
            actual -= 1
        return value / (loop_length * (loop_length + 1) / 2)


class _AbstractEMAIndicator(RecursiveCachedIndicator):
    def __init__(self, indicator: Indicator, bar_count: int, multiplier: float):
        super().__init__(indicator)
        self.indicator = indicator
        self.bar_count = _check_period(bar_count)
        self.multiplier = multiplier

    def calculate(self, index: int) -> float:
        if index == 0:
            return self.indicator.get_value(0)
        prev = self.get_value(index - 1)
        if is_nan(prev):
            return self.indicator.get_value(index)
        return (self.indicator.get_value(index) - prev) * self.multiplier + prev

    @property
    def count_of_unstable_bars(self) -> int:
        return self.indicator.count_of_unstable_bars + self.bar_count

    def __str__(self) -> str:
        return f"{type(self).__name__} barCount: {self.bar_count}"


class EMAIndicator(_AbstractEMAIndicator):
    """Exponential moving average, alpha = 2 / (bar_count + 1)."""

    def __init__(self, indicator: Indicator, bar_count: int):
        bar_count = _check_period(bar_count)
        super().__init__(indicator, bar_count, 2.0 / (bar_count + 1))


class MMAIndicator(_AbstractEMAIndicator):
    """Modified (Wilder) moving average, alpha = 1 / bar_count."""

    def __init__(self, indicator: Indicator, bar_count: int):
        bar_count = _check_period(bar_count)
        super().__init__(indicator, bar_count, 1.0 / bar_count)


class HMAIndicator(_WindowIndicator):
    """Hull moving average."""

    def __init__(self, indicator: Indicator, bar_count: int):
        super().__init__(indicator, bar_count)
        if self.bar_count < 2:
            raise ValueError("HMA bar_count must be >= 2")
        half_wma = WMAIndicator(indicator, self.bar_count // 2)
        orig_wma = WMAIndicator(indicator, self.bar_count)
        diff = BinaryOperation.difference(BinaryOperation.product(half_wma, 2), orig_wma)
        self._sqrt_wma = WMAIndicator(diff, int(math.sqrt(self.bar_count)))

    def calculate(self, index: int) -> float:
        return self._sqrt_wma.get_value(index)


class _ExtremeValueIndicator(_WindowIndicator):
    """Highest/lowest value over a window.

    A NaN at the window's last bar shrinks the window from the right (same
    start, one bar shorter) until a valid value is found, down to a window of
    a single bar. Done with a loop rather than nested indicators.
    """

    def _better(self, candidate: float, current: float) -> bool:
        raise NotImplementedError

    def calculate(self, index: int) -> float:
        bar_count = self.bar_count
        end = index
        while is_nan(self.indicator.get_value(end)) and bar_count != 1 and end > 0:
            bar_count -= 1
            end -= 1

        start = max(0, end - bar_count + 1)
        best = self.indicator.get_value(end)
        for i in range(end - 1, start - 1, -1):
            value = self.indicator.get_value(i)
            if self._better(value, best):
                best = value
        return best


class HighestValueIndicator(_ExtremeValueIndicator):
    def _better(self, candidate: float, current: float) -> bool:
        return current < candidate


class LowestValueIndicator(_ExtremeValueIndicator):
    def _better(self, candidate: float, current: float) -> bool:
        return current > candidate


# ---------------------------------------------------------------------------
# statistics
# ---------------------------------------------------------------------------


class VarianceIndicator(_WindowIndicator):
    """Population variance over the (partial) window."""

    def __init__(self, indicator: Indicator, bar_count: int):
        super().__init__(indicator, bar_count)
        self._sma = SMAIndicator(indicator, self.bar_count)

    def calculate(self, index: int) -> float:
        start = max(0, index - self.bar_count + 1)
        n = index - start + 1
        average = self._sma.get_value(index)
        total = 0.0
        for i in range(start, index + 1):
            total += (self.indicator.get_value(i) - average) ** 2
        return total / n


class StandardDeviationIndicator(CachedIndicator):
    def __init__(self, indicator: Indicator, bar_count: int):
        super().__init__(indicator)
        self._variance = VarianceIndicator(indicator, bar_count)

    def calculate(self, index: int) -> float:
        variance = self._variance.get_value(index)
        return NaN if is_nan(variance) else math.sqrt(variance)

    @property
    def count_of_unstable_bars(self) -> int:
        return self._variance.count_of_unstable_bars


class MeanDeviationIndicator(_WindowIndicator):
    """Mean absolute deviation from the SMA over the (partial) window."""

    def __init__(self, indicator: Indicator, bar_count: int):
        super().__init__(indicator, bar_count)
        self._sma = SMAIndicator(indicator, self.bar_count)

    def calculate(self, index: int) -> float:
        start = max(0, index - self.bar_count + 1)
        n = index - start + 1
        average = self._sma.get_value(index)
        total = sum(abs(self.indicator.get_value(i) - average) for i in range(start, index + 1))
        return total / n


class BollingerBandsMiddleIndicator(CachedIndicator):
    """Middle band: usually an SMA of the close."""

    def __init__(self, indicator: Indicator):
        super().__init__(indicator)
        self.indicator = indicator

    def calculate(self, index: int) -> float:
        return self.indicator.get_value(index)

    @property
    def count_of_unstable_bars(self) -> int:
        return self.indicator.count_of_unstable_bars


class _BollingerBandIndicator(CachedIndicator):
    sign = 1.0

    def __init__(self, middle: BollingerBandsMiddleIndicator, deviation: Indicator, k: float = 2.0):
        super().__init__(deviation)
        self.middle = middle
        self.deviation = deviation
        self.k = float(k)

    def calculate(self, index: int) -> float:
        return self.middle.get_value(index) + self.sign * self.deviation.get_value(index) * self.k

    @property
    def count_of_unstable_bars(self) -> int:
        return max(self.middle.count_of_unstable_bars, self.deviation.count_of_unstable_bars)


class BollingerBandsUpperIndicator(_BollingerBandIndicator):
    sign = 1.0


class BollingerBandsLowerIndicator(_BollingerBandIndicator):
    sign = -1.0


# ---------------------------------------------------------------------------
# oscillators
# ---------------------------------------------------------------------------


class RSIIndicator(CachedIndicator):
    """Relative strength index on Wilder averages of gains/losses.

    NaN during the warm-up. A zero average loss gives 100, or 0 when the
    average gain is zero as well.
    """

    def __init__(self, indicator: Indicator, bar_count: int):
        super().__init__(indicator)
        self.indicator = indicator
        self.bar_count = _check_period(bar_count)
        self._average_gain = MMAIndicator(GainIndicator(indicator), self.bar_count)
        self._average_loss = MMAIndicator(LossIndicator(indicator), self.bar_count)

    def calculate(self, index: int) -> float:
        if index < self.count_of_unstable_bars:
            return NaN
        average_gain = self._average_gain.get_value(index)
        average_loss = self._average_loss.get_value(index)
        if average_loss == 0:
            return 0.0 if average_gain == 0 else 100.0
        relative_strength = average_gain / average_loss
        return 100.0 - 100.0 / (1.0 + relative_strength)

    @property
    def count_of_unstable_bars(self) -> int:
        return self.indicator.count_of_unstable_bars + self.bar_count


class ATRIndicator(CachedIndicator):
    """Average true range (Wilder smoothing of TR)."""

    def __init__(self, series: BarSeries, bar_count: int):
        super().__init__(series)
        self.tr = TRIndicator(series)
        self._average = MMAIndicator(self.tr, bar_count)
        self.bar_count = self._average.bar_count

    def calculate(self, index: int) -> float:
        return self._average.get_value(index)

    @property
    def count_of_unstable_bars(self) -> int:
        return self.bar_count


class MACDIndicator(CachedIndicator):
    """Short EMA minus long EMA."""

    def __init__(self, indicator: Indicator, short_bar_count: int = 12, long_bar_count: int = 26):
        super().__init__(indicator)
        if _check_period(short_bar_count) > _check_period(long_bar_count):
            raise ValueError("Long term period count must be greater than short term period count")
        self.short_term_ema = EMAIndicator(indicator, short_bar_count)
        self.long_term_ema = EMAIndicator(indicator, long_bar_count)

    def calculate(self, index: int) -> float:
        return self.short_term_ema.get_value(index) - self.long_term_ema.get_value(index)

    def signal_line(self, bar_count: int = 9) -> EMAIndicator:
        return EMAIndicator(self, bar_count)

    def histogram(self, bar_count: int = 9) -> BinaryOperation:
        return BinaryOperation.difference(self, self.signal_line(bar_count))

    @property
    def count_of_unstable_bars(self) -> int:
        return self.long_term_ema.count_of_unstable_bars


class StochasticOscillatorKIndicator(CachedIndicator):
    """%K = (close - lowest low) / (highest high - lowest low) * 100.

    NaN when the high/low range is zero.
    """

    def __init__(self, series: BarSeries, bar_count: int, indicator: Indicator | None = None):
        super().__init__(series)
        self.bar_count = _check_period(bar_count)
        self.indicator = indicator or ClosePriceIndicator(series)
        self._highest = HighestValueIndicator(HighPriceIndicator(series), self.bar_count)
        self._lowest = LowestValueIndicator(LowPriceIndicator(series), self.bar_count)

    def calculate(self, index: int) -> float:
        highest = self._highest.get_value(index)
        lowest = self._lowest.get_value(index)
        span = highest - lowest
        if span == 0 or is_nan(span):
            return NaN
        return (self.indicator.get_value(index) - lowest) / span * 100.0

    @property
    def count_of_unstable_bars(self) -> int:
        return self.indicator.count_of_unstable_bars + self.bar_count


class WilliamsRIndicator(CachedIndicator):
    """%R = (highest high - close) / (highest high - lowest low) * -100."""

    def __init__(self, series: BarSeries, bar_count: int):
        super().__init__(series)
        self.bar_count = _check_period(bar_count)
        self._close = ClosePriceIndicator(series)
        self._highest = HighestValueIndicator(HighPriceIndicator(series), self.bar_count)
        self._lowest = LowestValueIndicator(LowPriceIndicator(series), self.bar_count)

    def calculate(self, index: int) -> float:
        highest = self._highest.get_value(index)
        lowest = self._lowest.get_value(index)
        span = highest - lowest
        if span == 0 or is_nan(span):
            return NaN
        return (highest - self._close.get_value(index)) / span * -100.0

    @property
    def count_of_unstable_bars(self) -> int:
        return self.bar_count


class CCIIndicator(CachedIndicator):
    """Commodity channel index; 0 when the mean deviation is zero."""

    FACTOR = 0.015

    def __init__(self, series: BarSeries, bar_count: int):
        super().__init__(series)
        self.bar_count = _check_period(bar_count)
        self._typical_price = TypicalPriceIndicator(series)
        self._sma = SMAIndicator(self._typical_price, self.bar_count)
        self._mean_deviation = MeanDeviationIndicator(self._typical_price, self.bar_count)

    def calculate(self, index: int) -> float:
        mean_deviation = self._mean_deviation.get_value(index)
        if mean_deviation == 0:
            return 0.0
        typical = self._typical_price.get_value(index)
        return (typical - self._sma.get_value(index)) / (mean_deviation * self.FACTOR)

    @property
    def count_of_unstable_bars(self) -> int:
        return self.bar_count


# ---------------------------------------------------------------------------
# volume
# ---------------------------------------------------------------------------


class OnBalanceVolumeIndicator(RecursiveCachedIndicator):
    def __init__(self, series: BarSeries):
        super().__init__(series)

    def calculate(self, index: int) -> float:
        if index == 0:
            return 0.0
        prev_close = self.series.get_bar(index - 1).close
        bar = self.series.get_bar(index)
        obv_prev = self.get_value(index - 1)
        if prev_close > bar.close:
            return obv_prev - bar.volume
        if prev_close < bar.close:
            return obv_prev + bar.volume
        return obv_prev


class VWAPIndicator(CachedIndicator):
    """Volume weighted average (typical) price over the window.

    NaN when the window holds no volume.
    """

    def __init__(self, series: BarSeries, bar_count: int):
        super().__init__(series)
        self.bar_count = _check_period(bar_count)
        self._typical_price = TypicalPriceIndicator(series)

    def calculate(self, index: int) -> float:
        if index <= 0:
            return self._typical_price.get_value(index)
        start = max(0, index - self.bar_count + 1)
        tpv = 0.0
        volume = 0.0
        for i in range(start, index + 1):
            bar_volume = self.series.get_bar(i).volume
            tpv += self._typical_price.get_value(i) * bar_volume
            volume += bar_volume
        if volume == 0:
            return NaN
        return tpv / volume

    @property
    def count_of_unstable_bars(self) -> int:
        return self.bar_count
