"""Cost models.

A cost model is a pure function with two faces:
- ``transaction_cost(price, amount)``: money paid for one trade
- ``holding_cost(position, current_index)``: money accrued for holding a
  position from its entry up to ``current_index`` (or its exit, if closed)
"""

from __future__ import annotations


class CostModel:
    def transaction_cost(self, price: float, amount: float) -> float:
        return 0.0

    def holding_cost(self, position, current_index: int) -> float:
        return 0.0

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ZeroCostModel(CostModel):
    """No costs at all."""


class FixedTransactionCostModel(CostModel):
    """A flat fee per trade, independent of price and amount."""

    def __init__(self, fee_per_trade: float):
        if fee_per_trade < 0:
            raise ValueError("fee_per_trade must be >= 0")
        self.fee_per_trade = float(fee_per_trade)

    def transaction_cost(self, price: float, amount: float) -> float:
        return self.fee_per_trade

    def __repr__(self) -> str:
        return f"FixedTransactionCostModel(fee_per_trade={self.fee_per_trade})"


class LinearTransactionCostModel(CostModel):
    """A fee proportional to the traded notional (optionally plus a flat fee)."""

    def __init__(self, fee_rate: float, fixed_fee: float = 0.0):
        if fee_rate < 0 or fixed_fee < 0:
            raise ValueError("fees must be >= 0")
        self.fee_rate = float(fee_rate)
        self.fixed_fee = float(fixed_fee)

    def transaction_cost(self, price: float, amount: float) -> float:
        return self.fee_rate * price * amount + self.fixed_fee

    def __repr__(self) -> str:
        return f"LinearTransactionCostModel(fee_rate={self.fee_rate}, fixed_fee={self.fixed_fee})"


class LinearBorrowingCostModel(CostModel):
    """Borrow cost of a short position: a per-bar rate on the entry value.

    Long positions hold for free.
    """

    def __init__(self, fee_per_period: float):
        if fee_per_period < 0:
            raise ValueError("fee_per_period must be >= 0")
        self.fee_per_period = float(fee_per_period)

    def holding_cost(self, position, current_index: int) -> float:
        entry = position.entry
        if entry is None or not entry.is_sell:
            return 0.0
        if position.is_closed:
            periods = position.exit.index - entry.index
        else:
            periods = current_index - entry.index
        return entry.value * self.fee_per_period * max(0, periods)

    def __repr__(self) -> str:
        return f"LinearBorrowingCostModel(fee_per_period={self.fee_per_period})"
