from __future__ import annotations

import math

import pandas as pd
import pytest

from ta_core.backtest import BacktestExecutor, run_from_csv, trades_frame
from ta_core.cashflow import CashFlow
from ta_core.config import BacktestConfig, CostConfig, StrategyConfig
from ta_core.data_provider import CsvProvider, FrameProvider
from ta_core.metrics import cagr, max_drawdown, summarize, total_return
from ta_core.strategy import build_sma_crossover

CLOSES = [10, 9, 10, 9, 8, 9, 10, 9, 8, 7]


def _write_csv(path, closes):
    dates = pd.date_range("2022-01-03", periods=len(closes), freq="D")
    pd.DataFrame(
        {
            "Date": dates.strftime("%Y-%m-%d"),
            "Open": closes,
            "High": closes,
            "Low": closes,
            "Close": closes,
            "Volume": [1000] * len(closes),
        }
    ).to_csv(path, index=False)


def test_executor_long_crossover(make_series):
    series = make_series(CLOSES)
    strategy = build_sma_crossover(series, StrategyConfig(sma_period=3))
    record = BacktestExecutor(series).run(strategy)

    assert record.position_count == 1
    position = record.last_position
    assert (position.entry.index, position.entry.price) == (5, 9.0)
    assert (position.exit.index, position.exit.price) == (7, 9.0)
    assert record.current_position.is_new

    cash_flow = CashFlow(series, record)
    assert cash_flow.get_value(6) == pytest.approx(10 / 9)
    assert cash_flow.get_value(7) == pytest.approx(1.0)
    assert cash_flow.get_value(9) == pytest.approx(1.0)


def test_executor_short_crossover_leaves_last_position_open(make_series):
    series = make_series(CLOSES)
    strategy = build_sma_crossover(series, StrategyConfig(sma_period=3, enable_short=True))
    record = BacktestExecutor(series).run(strategy, starting_type="SELL")

    assert [(t.type.value, t.index) for t in record.trades] == [("SELL", 3), ("BUY", 5), ("SELL", 7)]
    assert record.current_position.is_opened

    values = list(CashFlow(series, record).values())
    assert values[4] == pytest.approx(10 / 9)
    assert values[5] == pytest.approx(1.0)
    assert values[8] == pytest.approx(10 / 9)
    assert values[9] == pytest.approx(11 / 9)


def test_executor_respects_bounds(make_series):
    series = make_series(CLOSES)
    strategy = build_sma_crossover(series, StrategyConfig(sma_period=3))
    record = BacktestExecutor(series).run(strategy, end=6)
    assert record.position_count == 0
    assert record.current_position.is_opened
    assert record.get_end_index(series) == 6


def test_trades_frame_columns(make_series):
    series = make_series(CLOSES)
    transaction, holding = CostConfig(commission_rate=0.01).build_cost_models()
    record = BacktestExecutor(series, transaction, holding).run(
        build_sma_crossover(series, StrategyConfig(sma_period=3)), amount=2.0
    )
    frame = trades_frame(record, series)
    assert list(frame.columns) == ["timestamp", "index", "type", "price", "amount", "cost", "net_price"]
    assert list(frame["type"]) == ["BUY", "SELL"]
    assert frame["cost"].iloc[0] == pytest.approx(0.18)
    assert frame["net_price"].iloc[0] == pytest.approx(9.09)


def test_run_from_csv_writes_outputs(tmp_path):
    csv_path = tmp_path / "prices.csv"
    _write_csv(csv_path, CLOSES)

    paths = run_from_csv(
        csv_path,
        symbol="TEST.X",
        output_dir=tmp_path / "out",
        strat_cfg=StrategyConfig(sma_period=3),
        cost_cfg=CostConfig(),
    )
    assert paths["equity"].name == "equity_TEST_X.csv"
    assert paths["trades"].name == "trades_TEST_X.csv"

    equity = pd.read_csv(paths["equity"], index_col=0, parse_dates=True)["Equity"]
    assert len(equity) == len(CLOSES)
    assert equity.iloc[6] == pytest.approx(10 / 9)
    trades = pd.read_csv(paths["trades"])
    assert list(trades["index"]) == [5, 7]


def test_csv_provider_accepts_lowercase_close_only(tmp_path):
    csv_path = tmp_path / "close.csv"
    pd.DataFrame({"date": ["2022-01-04", "2022-01-03"], "close": [2.0, 1.0]}).to_csv(csv_path, index=False)

    series = CsvProvider().fetch(csv_path, symbol="C")
    assert series.bar_count == 2
    assert series.first_bar.close == 1.0
    assert series.last_bar.high == 2.0
    assert series.last_bar.volume == 0.0


def test_csv_provider_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        CsvProvider().fetch(tmp_path / "nope.csv", symbol="X")


def test_frame_provider_prefers_close_over_adjusted():
    index = pd.date_range("2022-01-03", periods=2, freq="D")
    df = pd.DataFrame(
        {"Open": [1, 2], "High": [1, 2], "Low": [1, 2], "Close": [1, 2], "Adj Close": [5, 6], "Volume": [10, 20]},
        index=index,
    )
    series = FrameProvider().fetch(df, symbol="F")
    assert [bar.close for bar in series] == [1.0, 2.0]
    assert math.isnan(series.first_bar.amount)


def test_metrics():
    index = pd.date_range("2020-01-01", periods=4, freq="D")
    equity = pd.Series([1.0, 1.2, 0.9, 1.1], index=index)
    assert max_drawdown(equity) == pytest.approx(0.25)
    assert total_return(equity) == pytest.approx(0.1)

    yearly = pd.Series([1.0, 1.21], index=pd.to_datetime(["2020-01-01", "2021-12-31"]))
    assert cagr(yearly) == pytest.approx(1.21 ** (365.0 / 730) - 1.0)
    assert math.isnan(cagr(equity.iloc[:1]))
    stats = summarize(equity)
    assert stats["max_drawdown"] == pytest.approx(0.25)
    assert set(stats) == {"total_return", "cagr", "max_drawdown"}


def test_frame_provider_picks_first_ticker_of_two_level_columns():
    index = pd.date_range("2022-01-03", periods=2, freq="D")
    data = {}
    for field in ("Open", "High", "Low", "Close", "Volume"):
        data[(field, "AAA")] = [1.0, 2.0]
        data[(field, "BBB")] = [10.0, 20.0]
    df = pd.DataFrame(data, index=index)
    assert isinstance(df.columns, pd.MultiIndex)

    series = FrameProvider().fetch(df, symbol="AAA")
    assert [bar.close for bar in series] == [1.0, 2.0]
    assert series.last_bar.volume == 2.0


def test_frame_provider_flattens_single_ticker_columns():
    index = pd.date_range("2022-01-03", periods=2, freq="D")
    data = {(field, "AAA"): [3.0, 4.0] for field in ("Open", "High", "Low", "Close", "Volume")}
    series = FrameProvider().fetch(pd.DataFrame(data, index=index), symbol="AAA")
    assert [bar.close for bar in series] == [3.0, 4.0]


def test_starting_type_must_agree_with_strategy_side(tmp_path):
    csv_path = tmp_path / "prices.csv"
    _write_csv(csv_path, CLOSES)
    with pytest.raises(ValueError):
        run_from_csv(
            csv_path,
            symbol="X",
            output_dir=tmp_path / "out",
            strat_cfg=StrategyConfig(sma_period=3),
            bt_cfg=BacktestConfig(symbol="X", starting_type="SELL"),
        )


def test_explicit_sell_for_short_strategy(tmp_path):
    csv_path = tmp_path / "prices.csv"
    _write_csv(csv_path, CLOSES)
    paths = run_from_csv(
        csv_path,
        symbol="X",
        output_dir=tmp_path / "out",
        strat_cfg=StrategyConfig(sma_period=3, enable_short=True),
        bt_cfg=BacktestConfig(symbol="X", starting_type="sell"),
    )
    trades = pd.read_csv(paths["trades"])
    assert list(trades["type"]) == ["SELL", "BUY", "SELL"]
