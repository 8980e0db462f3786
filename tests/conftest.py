from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from ta_core.indicator import Indicator
from ta_core.series import BarSeries


class ListIndicator(Indicator):
    """Indicator backed by a fixed list of values (test helper)."""

    def __init__(self, series: BarSeries, values):
        super().__init__(series)
        self._data = [float(v) for v in values]

    def get_value(self, index: int) -> float:
        self._check_index(index)
        return self._data[index]


@pytest.fixture
def make_series():
    def _make(closes, name="test"):
        return BarSeries.from_closes(closes, name=name)

    return _make


@pytest.fixture
def make_ohlcv_series():
    """Build a series from (open, high, low, close, volume) tuples."""

    def _make(rows, name="ohlcv"):
        series = BarSeries(name=name)
        start = datetime(2021, 1, 4)
        for i, (o, h, l, c, v) in enumerate(rows):
            series.add_price(start + timedelta(days=i), o, h, l, c, v)
        return series

    return _make


@pytest.fixture
def list_indicator():
    return ListIndicator
