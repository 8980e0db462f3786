from __future__ import annotations

import math

import pytest

from ta_core.indicator import ClosePriceIndicator
from ta_core.indicators import (
    ATRIndicator,
    BollingerBandsLowerIndicator,
    BollingerBandsMiddleIndicator,
    BollingerBandsUpperIndicator,
    CCIIndicator,
    EMAIndicator,
    HighestValueIndicator,
    HMAIndicator,
    LowestValueIndicator,
    MACDIndicator,
    MMAIndicator,
    OnBalanceVolumeIndicator,
    RSIIndicator,
    SMAIndicator,
    StandardDeviationIndicator,
    StochasticOscillatorKIndicator,
    TRIndicator,
    VolumeIndicator,
    VWAPIndicator,
    WilliamsRIndicator,
    WMAIndicator,
)


def test_sma_partial_window_then_full(make_series):
    series = make_series([1, 2, 3, 4, 5])
    sma = SMAIndicator(ClosePriceIndicator(series), 3)
    values = [sma.get_value(i) for i in range(5)]
    assert values == pytest.approx([1.0, 1.5, 2.0, 3.0, 4.0])
    assert sma.count_of_unstable_bars == 3


def test_sma_restarts_after_nan(make_series, list_indicator):
    series = make_series([0] * 5)
    ind = list_indicator(series, [float("nan"), 2, 4, 6, 8])
    sma = SMAIndicator(ind, 2)
    assert math.isnan(sma.get_value(1))
    assert sma.get_value(2) == pytest.approx(3.0)
    assert sma.get_value(4) == pytest.approx(7.0)


def test_ema_and_mma(make_series):
    series = make_series([1, 2, 3])
    close = ClosePriceIndicator(series)
    ema = EMAIndicator(close, 2)
    assert ema.get_value(0) == pytest.approx(1.0)
    assert ema.get_value(1) == pytest.approx(1 + (2 - 1) * 2 / 3)
    assert ema.get_value(2) == pytest.approx(5 / 3 + (3 - 5 / 3) * 2 / 3)

    mma = MMAIndicator(close, 2)
    assert mma.get_value(1) == pytest.approx(1.5)
    assert mma.get_value(2) == pytest.approx(2.25)


def test_wma(make_series):
    series = make_series([1, 2, 3, 4])
    wma = WMAIndicator(ClosePriceIndicator(series), 3)
    assert wma.get_value(0) == 1
    assert wma.get_value(1) == pytest.approx((2 * 2 + 1 * 1) / 3)
    assert wma.get_value(3) == pytest.approx((3 * 4 + 2 * 3 + 1 * 2) / 6)


def test_hma_requires_two_bars(make_series):
    series = make_series([1, 2, 3, 4, 5])
    with pytest.raises(ValueError):
        HMAIndicator(ClosePriceIndicator(series), 1)
    hma = HMAIndicator(ClosePriceIndicator(series), 4)
    assert hma.count_of_unstable_bars == 4
    assert not math.isnan(hma.get_value(4))


@pytest.mark.parametrize("factory", [SMAIndicator, EMAIndicator, MMAIndicator, WMAIndicator, RSIIndicator])
@pytest.mark.parametrize("period", [0, -3])
def test_non_positive_period_rejected_at_construction(make_series, factory, period):
    series = make_series([1, 2, 3])
    with pytest.raises(ValueError):
        factory(ClosePriceIndicator(series), period)


def test_highest_and_lowest(make_series):
    series = make_series([3, 1, 4, 1, 5, 9, 2])
    close = ClosePriceIndicator(series)
    highest = HighestValueIndicator(close, 3)
    lowest = LowestValueIndicator(close, 3)
    assert [highest.get_value(i) for i in range(7)] == [3, 3, 4, 4, 5, 9, 9]
    assert [lowest.get_value(i) for i in range(7)] == [3, 1, 1, 1, 1, 1, 2]


def test_highest_shrinks_window_over_trailing_nan(make_series, list_indicator):
    nan = float("nan")
    series = make_series([0] * 5)
    assert HighestValueIndicator(list_indicator(series, [1, 5, 3, nan, nan]), 3).get_value(4) == 3
    assert HighestValueIndicator(list_indicator(series, [1, 5, 3, 2, nan]), 3).get_value(4) == 3
    assert LowestValueIndicator(list_indicator(series, [1, 5, 3, 4, nan]), 3).get_value(4) == 3


def test_highest_of_nan_floors_at_single_bar(make_series, list_indicator):
    nan = float("nan")
    series = make_series([0] * 2)
    assert math.isnan(HighestValueIndicator(list_indicator(series, [nan, nan]), 2).get_value(1))


def test_rsi_policy(make_series):
    flat = make_series([10] * 20)
    rsi = RSIIndicator(ClosePriceIndicator(flat), 14)
    assert math.isnan(rsi.get_value(13))
    assert rsi.get_value(14) == 0.0

    rising = make_series(list(range(1, 21)))
    rsi = RSIIndicator(ClosePriceIndicator(rising), 14)
    assert rsi.get_value(19) == 100.0


def test_rsi_between_bounds(make_series):
    series = make_series([44, 44.3, 44.1, 44.2, 44.5, 43.4, 44, 44.25, 44.8, 45.1, 45.4, 45.8, 46, 45.9, 45.2, 44.8])
    rsi = RSIIndicator(ClosePriceIndicator(series), 14)
    value = rsi.get_value(15)
    assert 0.0 < value < 100.0


def test_macd_validates_periods_and_builds_signal(make_series):
    series = make_series(list(range(1, 40)))
    close = ClosePriceIndicator(series)
    with pytest.raises(ValueError):
        MACDIndicator(close, 26, 12)

    macd = MACDIndicator(close, 12, 26)
    assert macd.get_value(30) == pytest.approx(
        macd.short_term_ema.get_value(30) - macd.long_term_ema.get_value(30)
    )
    hist = macd.histogram(9)
    assert hist.get_value(30) == pytest.approx(macd.get_value(30) - macd.signal_line(9).get_value(30))


def test_true_range_and_atr(make_ohlcv_series):
    series = make_ohlcv_series(
        [
            (10, 12, 9, 11, 100),
            (11, 15, 10, 14, 100),
            (14, 14, 8, 9, 100),
        ]
    )
    tr = TRIndicator(series)
    assert [tr.get_value(i) for i in range(3)] == [3, 5, 6]
    atr = ATRIndicator(series, 2)
    assert atr.get_value(0) == 3
    assert atr.get_value(1) == pytest.approx(3 + (5 - 3) / 2)
    assert atr.count_of_unstable_bars == 2


def test_standard_deviation_and_bollinger(make_series):
    series = make_series([1, 2, 3, 4])
    close = ClosePriceIndicator(series)
    std = StandardDeviationIndicator(close, 4)
    assert std.get_value(3) == pytest.approx(math.sqrt(1.25))

    middle = BollingerBandsMiddleIndicator(SMAIndicator(close, 4))
    upper = BollingerBandsUpperIndicator(middle, std)
    lower = BollingerBandsLowerIndicator(middle, std, k=1)
    assert upper.get_value(3) == pytest.approx(2.5 + 2 * math.sqrt(1.25))
    assert lower.get_value(3) == pytest.approx(2.5 - math.sqrt(1.25))


def test_stochastic_and_williams(make_ohlcv_series):
    series = make_ohlcv_series(
        [
            (10, 12, 8, 10, 0),
            (10, 14, 9, 13, 0),
            (13, 13, 11, 12, 0),
        ]
    )
    k = StochasticOscillatorKIndicator(series, 3)
    assert k.get_value(2) == pytest.approx((12 - 8) / (14 - 8) * 100)
    r = WilliamsRIndicator(series, 3)
    assert r.get_value(2) == pytest.approx((14 - 12) / (14 - 8) * -100)


def test_stochastic_zero_range_is_nan(make_series):
    series = make_series([5, 5, 5])
    assert math.isnan(StochasticOscillatorKIndicator(series, 3).get_value(2))


def test_cci_zero_mean_deviation(make_series):
    series = make_series([5, 5, 5, 5])
    assert CCIIndicator(series, 3).get_value(3) == 0.0


def test_on_balance_volume(make_ohlcv_series):
    series = make_ohlcv_series(
        [
            (10, 10, 10, 10, 100),
            (11, 11, 11, 11, 200),
            (10, 10, 10, 10, 300),
            (10, 10, 10, 10, 400),
        ]
    )
    obv = OnBalanceVolumeIndicator(series)
    assert obv.get_value(3) == -100
    assert [obv.get_value(i) for i in range(4)] == [0, 200, -100, -100]


def test_volume_and_vwap(make_ohlcv_series):
    series = make_ohlcv_series(
        [
            (10, 10, 10, 10, 1),
            (20, 20, 20, 20, 3),
            (30, 30, 30, 30, 0),
        ]
    )
    assert VolumeIndicator(series, 2).get_value(1) == 4
    vwap = VWAPIndicator(series, 2)
    assert vwap.get_value(1) == pytest.approx((10 * 1 + 20 * 3) / 4)
    assert vwap.get_value(2) == pytest.approx(20.0)


def test_unstable_bars_accumulate_through_chained_indicators(make_series):
    series = make_series([1, 2, 3, 4, 5])
    close = ClosePriceIndicator(series)
    ema = EMAIndicator(close, 20)
    assert ema.count_of_unstable_bars == 20

    smoothed = SMAIndicator(ema, 3)
    assert smoothed.count_of_unstable_bars == 23
    assert not smoothed.is_stable()
    assert HighestValueIndicator(ema, 2).count_of_unstable_bars == 22
    assert StandardDeviationIndicator(ema, 2).count_of_unstable_bars == 22
    assert MMAIndicator(SMAIndicator(close, 4), 2).count_of_unstable_bars == 6
    assert RSIIndicator(close, 3).count_of_unstable_bars == 3
    assert RSIIndicator(SMAIndicator(close, 2), 3).count_of_unstable_bars == 5


def test_window_over_raw_prices_reports_its_own_length(make_series):
    series = make_series([1, 2, 3, 4, 5])
    assert SMAIndicator(ClosePriceIndicator(series), 4).count_of_unstable_bars == 4
    assert SMAIndicator(ClosePriceIndicator(series), 4).is_stable()
