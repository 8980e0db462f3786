"""Positions and the trading record.

Position lifecycle::

    NEW --operate--> OPENED --operate--> CLOSED

A ``TradingRecord`` keeps the closed positions in order plus exactly one
current position (NEW or OPENED). Once the current position closes it is
appended to the history and a fresh NEW position takes its place.

Not thread-safe: a record belongs to a single backtest loop.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .cost_model import CostModel, ZeroCostModel
from .errors import TradingStateError
from .types import Trade, TradeType

log = logging.getLogger(__name__)


class Position:
    """A round trip: an entry trade and (once closed) an exit trade.

    The direction is given by the entry type: BUY is long, SELL is short.
    """

    def __init__(
        self,
        starting_type: TradeType | str = TradeType.BUY,
        transaction_cost_model: Optional[CostModel] = None,
        holding_cost_model: Optional[CostModel] = None,
    ):
        self.starting_type = TradeType.parse(starting_type)
        self.transaction_cost_model = transaction_cost_model or ZeroCostModel()
        self.holding_cost_model = holding_cost_model or ZeroCostModel()
        self.entry: Optional[Trade] = None
        self.exit: Optional[Trade] = None

    @classmethod
    def of(cls, entry: Trade, exit: Optional[Trade] = None, holding_cost_model: Optional[CostModel] = None) -> "Position":
        """Build a position from already executed trades."""
        if exit is not None:
            if exit.type is entry.type:
                raise TradingStateError("entry and exit trades must have opposite types")
            if exit.index < entry.index:
                raise TradingStateError(f"exit index {exit.index} is before entry index {entry.index}")
        position = cls(entry.type, holding_cost_model=holding_cost_model)
        position.entry = entry
        position.exit = exit
        return position

    # ---------- state ----------

    @property
    def is_new(self) -> bool:
        return self.entry is None and self.exit is None

    @property
    def is_opened(self) -> bool:
        return self.entry is not None and self.exit is None

    @property
    def is_closed(self) -> bool:
        return self.entry is not None and self.exit is not None

    @property
    def is_long(self) -> bool:
        return self.entry is not None and self.entry.is_buy

    @property
    def is_short(self) -> bool:
        return self.entry is not None and self.entry.is_sell

    def operate(self, index: int, price: float, amount: float = 1.0) -> Trade:
        """Open the position if NEW, close it if OPENED."""
        if self.is_new:
            self.entry = Trade.create(self.starting_type, index, price, amount, self.transaction_cost_model)
            return self.entry
        if self.is_opened:
            if index < self.entry.index:
                raise TradingStateError(f"exit index {index} is before entry index {self.entry.index}")
            self.exit = Trade.create(self.starting_type.complement(), index, price, amount, self.transaction_cost_model)
            return self.exit
        raise TradingStateError("position is already closed")

    # ---------- results ----------

    def holding_cost(self, final_index: Optional[int] = None) -> float:
        """Holding cost up to ``final_index`` (or the exit, if closed)."""
        if self.entry is None:
            return 0.0
        if final_index is None:
            if self.exit is None:
                raise TradingStateError("final_index is required for an open position")
            final_index = self.exit.index
        return float(self.holding_cost_model.holding_cost(self, final_index))

    @property
    def gross_profit(self) -> float:
        """Profit before costs; 0 unless closed."""
        if not self.is_closed:
            return 0.0
        pnl = (self.exit.price - self.entry.price) * self.exit.amount
        return pnl if self.is_long else -pnl

    @property
    def profit(self) -> float:
        """Profit net of transaction and holding costs; 0 unless closed."""
        if not self.is_closed:
            return 0.0
        return self.gross_profit - self.entry.cost - self.exit.cost - self.holding_cost()

    @property
    def gross_return(self) -> float:
        """Exit/entry price ratio, mirrored around 1 for shorts; 1 unless closed."""
        if not self.is_closed:
            return 1.0
        ratio = self.exit.price / self.entry.price
        return ratio if self.is_long else 2.0 - ratio

    def __repr__(self) -> str:
        return f"Position(entry={self.entry}, exit={self.exit})"


class TradingRecord:
    """Chronological history of closed positions plus the current one."""

    def __init__(
        self,
        starting_type: TradeType | str = TradeType.BUY,
        name: Optional[str] = None,
        transaction_cost_model: Optional[CostModel] = None,
        holding_cost_model: Optional[CostModel] = None,
        start_index: Optional[int] = None,
        end_index: Optional[int] = None,
    ):
        self.starting_type = TradeType.parse(starting_type)
        self.name = name
        self.transaction_cost_model = transaction_cost_model or ZeroCostModel()
        self.holding_cost_model = holding_cost_model or ZeroCostModel()
        self.start_index = start_index
        self.end_index = end_index

        self._positions: List[Position] = []
        self._trades: List[Trade] = []
        self._current = self._new_position()

    def _new_position(self) -> Position:
        return Position(self.starting_type, self.transaction_cost_model, self.holding_cost_model)

    # ---------- transitions ----------

    def enter(self, index: int, price: float, amount: float = 1.0) -> Trade:
        if not self._current.is_new:
            raise TradingStateError(f"cannot enter at index {index}: a position is already open")
        return self.operate(index, price, amount)

    def exit(self, index: int, price: float, amount: float = 1.0) -> Trade:
        if not self._current.is_opened:
            raise TradingStateError(f"cannot exit at index {index}: no position is open")
        return self.operate(index, price, amount)

    def operate(self, index: int, price: float, amount: float = 1.0) -> Trade:
        """Enter if the current position is NEW, exit if it is OPENED."""
        last = self.last_trade()
        if last is not None and index < last.index:
            raise TradingStateError(f"trade index {index} is before the last trade index {last.index}")

        trade = self._current.operate(index, price, amount)
        self._trades.append(trade)
        log.debug("%s %s at index=%d price=%s amount=%s", self.name or "record", trade.type.value, index, price, amount)

        if self._current.is_closed:
            self._positions.append(self._current)
            self._current = self._new_position()
        return trade

    # ---------- queries ----------

    @property
    def current_position(self) -> Position:
        return self._current

    @property
    def positions(self) -> List[Position]:
        """Closed positions, oldest first."""
        return list(self._positions)

    @property
    def trades(self) -> List[Trade]:
        return list(self._trades)

    @property
    def position_count(self) -> int:
        return len(self._positions)

    @property
    def is_closed(self) -> bool:
        return not self._current.is_opened

    @property
    def last_position(self) -> Optional[Position]:
        return self._positions[-1] if self._positions else None

    def last_trade(self, trade_type: TradeType | str | None = None) -> Optional[Trade]:
        if trade_type is None:
            return self._trades[-1] if self._trades else None
        trade_type = TradeType.parse(trade_type)
        for trade in reversed(self._trades):
            if trade.type is trade_type:
                return trade
        return None

    @property
    def last_entry(self) -> Optional[Trade]:
        return self.last_trade(self.starting_type)

    @property
    def last_exit(self) -> Optional[Trade]:
        return self.last_trade(self.starting_type.complement())

    def get_start_index(self, series) -> int:
        return series.begin_index if self.start_index is None else self.start_index

    def get_end_index(self, series) -> int:
        return series.end_index if self.end_index is None else self.end_index

    def __repr__(self) -> str:
        return f"TradingRecord(name={self.name!r}, positions={self.position_count}, current={self._current})"
