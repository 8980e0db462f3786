"""Shared types.

The guiding principle is to keep the runtime objects small and explicit.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class Bar:
    """OHLCV bar.

    All prices must be float (already adjusted to the desired currency scale).
    ``amount`` is the traded value over the bar (price x volume) when the
    source provides it, NaN otherwise.
    """

    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float
    amount: float = float("nan")


class TradeType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"

    def complement(self) -> "TradeType":
        return TradeType.SELL if self is TradeType.BUY else TradeType.BUY

    @classmethod
    def parse(cls, value) -> "TradeType":
        if isinstance(value, TradeType):
            return value
        return cls(str(value).upper())


@dataclass(frozen=True)
class Trade:
    """A single executed BUY or SELL event.

    ``cost`` is the total transaction cost of the trade. ``net_price`` spreads
    it over the traded amount: a buy pays more per unit, a sell receives less.
    """

    type: TradeType
    index: int
    price: float
    amount: float
    cost: float = 0.0

    @classmethod
    def create(cls, type: TradeType, index: int, price: float, amount: float, cost_model=None) -> "Trade":
        """Build a trade, pricing its cost with ``cost_model`` (if any)."""
        cost = 0.0
        if cost_model is not None:
            cost = float(cost_model.transaction_cost(price, amount))
        return cls(type=TradeType.parse(type), index=int(index), price=float(price), amount=float(amount), cost=cost)

    @property
    def is_buy(self) -> bool:
        return self.type is TradeType.BUY

    @property
    def is_sell(self) -> bool:
        return self.type is TradeType.SELL

    @property
    def value(self) -> float:
        """Gross traded value (price x amount)."""
        return self.price * self.amount

    @property
    def net_price(self) -> float:
        if self.amount == 0 or math.isnan(self.amount):
            return self.price
        cost_per_unit = self.cost / self.amount
        if self.is_buy:
            return self.price + cost_per_unit
        return self.price - cost_per_unit
