"""Bar series: an ordered, append-only OHLCV sequence.

Backed by plain python lists so that ``get_bar`` stays O(1) while bars are
appended one by one during a live-style loop; ``from_frame`` / ``to_frame``
convert from/to the standardized OHLCV dataframe used by the data providers.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Iterator, List, Optional

import numpy as np
import pandas as pd

from .types import Bar

log = logging.getLogger(__name__)

OHLCV_COLUMNS = ["Open", "High", "Low", "Close", "Volume"]


class BarSeries:
    """Holds the bars of a single instrument.

    Not thread-safe: bars must be appended from a single thread, in strictly
    increasing timestamp order.
    """

    def __init__(self, name: str = "", bars: Optional[Iterable[Bar]] = None):
        self.name = name
        self._bars: List[Bar] = []
        for bar in bars or ():
            self.add_bar(bar)

    # ---------- bounds ----------

    @property
    def begin_index(self) -> int:
        return 0 if self._bars else -1

    @property
    def end_index(self) -> int:
        return len(self._bars) - 1

    @property
    def bar_count(self) -> int:
        return len(self._bars)

    @property
    def is_empty(self) -> bool:
        return not self._bars

    def __len__(self) -> int:
        return len(self._bars)

    def __iter__(self) -> Iterator[Bar]:
        return iter(self._bars)

    # ---------- access ----------

    def get_bar(self, index: int) -> Bar:
        if index < 0 or index > self.end_index:
            raise IndexError(
                f"bar index {index} out of range [{self.begin_index}, {self.end_index}] for series {self.name!r}"
            )
        return self._bars[index]

    @property
    def first_bar(self) -> Bar:
        return self.get_bar(self.begin_index)

    @property
    def last_bar(self) -> Bar:
        return self.get_bar(self.end_index)

    def add_bar(self, bar: Bar) -> None:
        """Append a bar. Timestamps must be strictly increasing."""
        if self._bars and bar.timestamp <= self._bars[-1].timestamp:
            raise ValueError(
                f"cannot add bar at {bar.timestamp}: series {self.name!r} already ends at {self._bars[-1].timestamp}"
            )
        self._bars.append(bar)

    def add_price(
        self,
        timestamp: datetime,
        open: float,
        high: float,
        low: float,
        close: float,
        volume: float = 0.0,
        amount: float = float("nan"),
    ) -> None:
        self.add_bar(Bar(timestamp, float(open), float(high), float(low), float(close), float(volume), float(amount)))

    # ---------- pandas interop ----------

    @classmethod
    def from_frame(cls, df: pd.DataFrame, name: str = "") -> "BarSeries":
        """Build a series from a dataframe with Open/High/Low/Close/Volume columns.

        The index must be datetime-like; an optional ``Amount`` column is used
        when present.
        """
        missing = [c for c in OHLCV_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Missing required OHLCV columns: {missing}")

        df = df[~df.index.duplicated(keep="last")].sort_index()
        amount = df["Amount"].to_numpy(dtype=float) if "Amount" in df.columns else np.full(len(df), np.nan)
        values = df[OHLCV_COLUMNS].to_numpy(dtype=float)

        series = cls(name=name)
        for ts, row, amt in zip(df.index, values, amount):
            ts = ts.to_pydatetime() if isinstance(ts, pd.Timestamp) else ts
            o, h, l, c, v = (float(x) for x in row)
            series._bars.append(Bar(ts, o, h, l, c, v, float(amt)))
        log.debug("loaded %d bars into series %r", series.bar_count, name)
        return series

    @classmethod
    def from_closes(cls, closes: Iterable[float], name: str = "", start: str = "2020-01-01", freq: str = "D") -> "BarSeries":
        """Build a series where open/high/low equal the close (volume 0)."""
        closes = [float(c) for c in closes]
        index = pd.date_range(start=start, periods=len(closes), freq=freq)
        df = pd.DataFrame(
            {"Open": closes, "High": closes, "Low": closes, "Close": closes, "Volume": 0.0},
            index=index,
        )
        return cls.from_frame(df, name=name)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "Open": [b.open for b in self._bars],
                "High": [b.high for b in self._bars],
                "Low": [b.low for b in self._bars],
                "Close": [b.close for b in self._bars],
                "Volume": [b.volume for b in self._bars],
                "Amount": [b.amount for b in self._bars],
            },
            index=pd.DatetimeIndex([b.timestamp for b in self._bars], name="Date"),
        )

    def __repr__(self) -> str:
        return f"BarSeries(name={self.name!r}, bars={self.bar_count})"
