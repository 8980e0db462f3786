"""Data providers (CSV / DataFrame) and a standardized OHLCV schema."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from .series import BarSeries


def _standardize_ohlcv_columns(df: pd.DataFrame) -> pd.DataFrame:
    # Multi-level columns (field, ticker) -> keep the first ticker's fields.
    if isinstance(df.columns, pd.MultiIndex):
        df = df.copy()
        if df.columns.nlevels >= 2:
            tickers = list(dict.fromkeys(df.columns.get_level_values(-1)))
            if len(tickers) == 1:
                df.columns = df.columns.get_level_values(0)
            else:
                df = df.xs(tickers[0], axis=1, level=-1, drop_level=True)

    rename_map = {}
    for col in df.columns:
        c = str(col).strip().lower()
        if c == "open":
            rename_map[col] = "Open"
        elif c == "high":
            rename_map[col] = "High"
        elif c == "low":
            rename_map[col] = "Low"
        elif c == "close":
            rename_map[col] = "Close"
        elif c in {"adj close", "adjclose"}:
            # Keep adjusted close separate to avoid duplicate "Close" columns.
            rename_map[col] = "AdjClose"
        elif c in {"volume", "vol"}:
            rename_map[col] = "Volume"
        elif c in {"amount", "turnover", "value"}:
            rename_map[col] = "Amount"
    df = df.rename(columns=rename_map).copy()

    # If provider only has AdjClose, use it as Close.
    if "Close" not in df.columns and "AdjClose" in df.columns:
        df = df.rename(columns={"AdjClose": "Close"})
    if "Close" in df.columns and "AdjClose" in df.columns:
        df = df.drop(columns=["AdjClose"])

    # Close-only files: open/high/low collapse onto the close.
    if "Close" in df.columns:
        for col in ("Open", "High", "Low"):
            if col not in df.columns:
                df[col] = df["Close"]
    if "Volume" not in df.columns:
        df["Volume"] = 0.0

    required = ["Open", "High", "Low", "Close", "Volume"]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required OHLCV columns: {missing}")

    keep = required + (["Amount"] if "Amount" in df.columns else [])
    df = df[keep].astype(float)
    df = df[~df.index.duplicated(keep="last")].sort_index()
    return df


class FrameProvider:
    """Wrap an in-memory OHLCV dataframe (datetime index)."""

    def fetch(self, df: pd.DataFrame, symbol: str) -> BarSeries:
        return BarSeries.from_frame(_standardize_ohlcv_columns(df), name=symbol)


class CsvProvider:
    """Load OHLCV data from a CSV file."""

    def fetch(self, csv_path: str | Path, symbol: str, datetime_col: str = "Date") -> BarSeries:
        path = Path(csv_path)
        if not path.exists():
            raise FileNotFoundError(str(path))

        df = pd.read_csv(path)
        if datetime_col not in df.columns:
            # try common alternatives
            for cand in ["Datetime", "datetime", "date", "timestamp", "Time", "time"]:
                if cand in df.columns:
                    datetime_col = cand
                    break

        if datetime_col not in df.columns:
            raise ValueError(f"CSV must contain a datetime column. Tried '{datetime_col}' and common aliases.")

        df[datetime_col] = pd.to_datetime(df[datetime_col])
        df = df.set_index(datetime_col).sort_index()

        return BarSeries.from_frame(_standardize_ohlcv_columns(df), name=symbol)
