"""Backtest runner utilities."""

from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import pandas as pd

from .cashflow import CashFlow
from .config import BacktestConfig, CostConfig, StrategyConfig
from .cost_model import CostModel
from .data_provider import CsvProvider
from .metrics import summarize
from .series import BarSeries
from .strategy import Strategy, build_sma_crossover
from .trading_record import TradingRecord
from .types import TradeType

log = logging.getLogger(__name__)


class BacktestExecutor:
    """Walks a series bar by bar and lets a strategy drive a trading record.

    Orders fill at the close of the signal bar. A position still open at the
    end of the run stays open in the returned record.
    """

    def __init__(
        self,
        series: BarSeries,
        transaction_cost_model: Optional[CostModel] = None,
        holding_cost_model: Optional[CostModel] = None,
    ):
        self.series = series
        self.transaction_cost_model = transaction_cost_model
        self.holding_cost_model = holding_cost_model

    def run(
        self,
        strategy: Strategy,
        starting_type: TradeType | str = TradeType.BUY,
        amount: float = 1.0,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> TradingRecord:
        series = self.series
        start = series.begin_index if start is None else max(start, series.begin_index)
        end = series.end_index if end is None else min(end, series.end_index)

        record = TradingRecord(
            starting_type,
            name=strategy.name,
            transaction_cost_model=self.transaction_cost_model,
            holding_cost_model=self.holding_cost_model,
            start_index=start,
            end_index=end,
        )
        if series.is_empty:
            return record

        for i in range(start, end + 1):
            if strategy.should_operate(i, record):
                record.operate(i, series.get_bar(i).close, amount)

        log.info(
            "%s on %s [%d..%d]: %d closed positions, open=%s",
            strategy.name or "strategy",
            series.name,
            start,
            end,
            record.position_count,
            record.current_position.is_opened,
        )
        return record


def trades_frame(record: TradingRecord, series: BarSeries) -> pd.DataFrame:
    rows = []
    for trade in record.trades:
        row = asdict(trade)
        row["type"] = trade.type.value
        row["timestamp"] = series.get_bar(trade.index).timestamp
        row["net_price"] = trade.net_price
        rows.append(row)
    columns = ["timestamp", "index", "type", "price", "amount", "cost", "net_price"]
    return pd.DataFrame(rows, columns=columns)


def run_from_csv(
    csv_path: str | Path,
    symbol: str,
    output_dir: str | Path = "outputs",
    strat_cfg: StrategyConfig = StrategyConfig(),
    cost_cfg: CostConfig = CostConfig(),
    bt_cfg: Optional[BacktestConfig] = None,
) -> dict[str, Path]:
    series = CsvProvider().fetch(csv_path=csv_path, symbol=symbol)
    return _run_core(series, output_dir, strat_cfg, cost_cfg, bt_cfg or BacktestConfig(symbol=symbol))


def _run_core(
    series: BarSeries,
    output_dir: str | Path,
    strat_cfg: StrategyConfig,
    cost_cfg: CostConfig,
    bt_cfg: BacktestConfig,
) -> dict[str, Path]:
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    transaction, holding = cost_cfg.build_cost_models()
    strategy = build_sma_crossover(series, strat_cfg)
    starting_type = TradeType.SELL if strat_cfg.enable_short else TradeType.BUY
    if bt_cfg.starting_type is not None and TradeType.parse(bt_cfg.starting_type) is not starting_type:
        raise ValueError(
            f"starting_type {bt_cfg.starting_type!r} does not match enable_short={strat_cfg.enable_short}"
        )
    record = BacktestExecutor(series, transaction, holding).run(
        strategy, starting_type=starting_type, amount=bt_cfg.trade_amount
    )

    equity = CashFlow(series, record).to_series().rename("Equity")
    eq = equity.to_frame()
    trades = trades_frame(record, series)

    stats = summarize(equity)
    log.info(
        "%s: total_return=%.4f cagr=%.4f max_drawdown=%.4f",
        bt_cfg.symbol,
        stats["total_return"],
        stats["cagr"],
        stats["max_drawdown"],
    )

    tag = bt_cfg.symbol.replace(".", "_")
    eq_path = out_dir / f"equity_{tag}.csv"
    tr_path = out_dir / f"trades_{tag}.csv"
    eq.to_csv(eq_path, encoding="utf-8")
    trades.to_csv(tr_path, index=False, encoding="utf-8")

    return {"equity": eq_path, "trades": tr_path}
