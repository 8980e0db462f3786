from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from ta_core.backtest import run_from_csv
from ta_core.config import BacktestConfig, CostConfig, StrategyConfig


def load_params_json(path: str) -> dict:
    with Path(path).open(encoding="utf-8") as fh:
        params = json.load(fh)
    if not isinstance(params, dict):
        raise ValueError("params JSON must be an object.")
    return params


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--csv", type=str, required=True, help="Simple OHLCV CSV path (Date,Open,High,Low,Close,Volume).")
    p.add_argument("--symbol", type=str, default="SERIES")
    p.add_argument("--output_dir", type=str, default="outputs")
    p.add_argument("--params_json", type=str, default=None, help="JSON object with PascalCase strategy params.")
    p.add_argument("--sma_period", type=int, default=None)
    p.add_argument("--stop_loss_pct", type=float, default=0.0)
    p.add_argument("--stop_gain_pct", type=float, default=0.0)
    p.add_argument("--short", action="store_true", help="Trade the mirrored short side.")
    p.add_argument("--amount", type=float, default=1.0, help="Units traded per entry/exit.")
    p.add_argument("--commission_rate", type=float, default=0.0, help="Linear fee on notional per trade.")
    p.add_argument("--fixed_fee", type=float, default=0.0, help="Flat fee per trade.")
    p.add_argument("--borrow_annual_rate", type=float, default=0.0, help="Annual short borrow rate.")
    p.add_argument("--log_level", type=str, default="INFO")
    args = p.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.params_json:
        strat_cfg = StrategyConfig.from_params_dict(load_params_json(args.params_json))
    else:
        strat_cfg = StrategyConfig(
            sma_period=args.sma_period or StrategyConfig.sma_period,
            stop_loss_pct=args.stop_loss_pct,
            stop_gain_pct=args.stop_gain_pct,
            enable_short=args.short,
        )

    cost_cfg = CostConfig(
        commission_rate=args.commission_rate,
        fixed_fee=args.fixed_fee,
        borrow_annual_rate=args.borrow_annual_rate,
    )
    bt_cfg = BacktestConfig(symbol=args.symbol, trade_amount=args.amount)

    paths = run_from_csv(
        csv_path=args.csv,
        symbol=args.symbol,
        output_dir=args.output_dir,
        strat_cfg=strat_cfg,
        cost_cfg=cost_cfg,
        bt_cfg=bt_cfg,
    )
    print(paths["equity"])
    print(paths["trades"])


if __name__ == "__main__":
    main()
