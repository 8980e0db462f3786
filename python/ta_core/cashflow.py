"""Cash flow (equity curve) reconstruction.

Turns a closed position, or a whole trading record, into a per-bar sequence
of equity multipliers net of transaction and holding costs. Index 0 starts
at 1.0 (100% of the initial capital); the curve stays flat while no position
is held and compounds position by position otherwise.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from .errors import PositionNotClosedError
from .indicator import Indicator
from .series import BarSeries
from .trading_record import Position, TradingRecord

log = logging.getLogger(__name__)


def _add_cost(raw_price: float, cost_per_bar: float, is_long: bool) -> float:
    """Shift a price by the per-bar holding cost (down for longs, up for shorts)."""
    return raw_price - cost_per_bar if is_long else raw_price + cost_per_bar


def _ratio(is_long: bool, entry_price: float, price: float) -> float:
    """Return multiplier of a position; shorts are mirrored around 1."""
    if is_long:
        return price / entry_price
    return 2.0 - price / entry_price


def determine_end_index(position: Position, final_index: int, max_index: int) -> int:
    """Last index to accrue for ``position``.

    The exit (if any) ends the accrual, and nothing accrues past the data.
    """
    idx = final_index
    if position.exit is not None:
        idx = min(position.exit.index, final_index)
    return min(idx, max_index)


class CashFlow(Indicator):
    """Equity curve of a position or trading record, usable as an indicator.

    ``source`` is either a ``Position`` or a ``TradingRecord``:

    - a position must be closed unless ``final_index`` is given, in which
      case an open position accrues unrealized value up to ``final_index``
    - a record compounds all its closed positions and then the unrealized
      value of the current open position (if any) up to ``final_index``
      (default: the record's end index)

    Values past the last accrued index are padded with the last value up to
    the end of the series.
    """

    def __init__(self, series: BarSeries, source: Union[Position, TradingRecord], final_index: Optional[int] = None):
        super().__init__(series)
        self._values: List[float] = [1.0]

        if isinstance(source, Position):
            if final_index is None:
                if not source.is_closed:
                    raise PositionNotClosedError(
                        "Position is not closed. Final index of observation needs to be provided."
                    )
                final_index = source.exit.index
            self._accrue(source, final_index)
        elif isinstance(source, TradingRecord):
            if final_index is None:
                final_index = source.get_end_index(series)
            for position in source.positions:
                self._accrue(position, final_index)
            if source.current_position.is_opened:
                self._accrue(source.current_position, final_index)
        else:
            raise ValueError(f"source must be a Position or a TradingRecord, got {type(source).__name__}")

        self._fill_to_the_end()

    # ---------- indicator interface ----------

    def get_value(self, index: int) -> float:
        self._check_index(index)
        return self._values[index]

    @property
    def count_of_unstable_bars(self) -> int:
        return 0

    @property
    def size(self) -> int:
        return self.series.bar_count

    # ---------- reconstruction ----------

    def _accrue(self, position: Position, final_index: int) -> None:
        if position.entry is None:
            return

        values = self._values
        is_long = position.entry.is_buy
        entry_index = position.entry.index
        end_index = determine_end_index(position, final_index, self.series.end_index)
        if entry_index > end_index:
            log.debug("skip position entered at %d: past final index %d", entry_index, end_index)
            return

        # flat while capital is idle
        begin = entry_index + 1
        if begin > len(values):
            values.extend([values[-1]] * (begin - len(values)))

        # a position cannot be valued from a non-positive base
        if not values[-1] > 0:
            log.debug("skip position entered at %d: equity %s is not positive", entry_index, values[-1])
            return

        n_periods = end_index - entry_index
        holding_cost = position.holding_cost(end_index)
        avg_cost = holding_cost / n_periods if n_periods > 0 else 0.0

        net_entry_price = position.entry.net_price
        base = values[entry_index]
        for i in range(max(begin, 1), end_index):
            price = _add_cost(self.series.get_bar(i).close, avg_cost, is_long)
            values.append(base * _ratio(is_long, net_entry_price, price))

        if position.exit is not None and position.exit.index <= end_index:
            exit_price = position.exit.net_price
        else:
            exit_price = self.series.get_bar(end_index).close
        final_value = base * _ratio(is_long, net_entry_price, _add_cost(exit_price, avg_cost, is_long))

        if n_periods == 0:
            # round trip inside a single bar: realized on that bar
            values[entry_index] = final_value
        else:
            values.append(final_value)

    def _fill_to_the_end(self) -> None:
        target = self.series.end_index + 1
        if target > len(self._values):
            self._values.extend([self._values[-1]] * (target - len(self._values)))
