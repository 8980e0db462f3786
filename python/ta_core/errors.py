"""Errors raised by the trading core.

Configuration and range problems use the builtin ``ValueError`` /
``IndexError``. Everything below signals a caller logic defect in the
position lifecycle and is never recovered internally.
"""

from __future__ import annotations


class TradingStateError(RuntimeError):
    """Illegal position / trading record transition."""


class PositionNotClosedError(TradingStateError):
    """A closed position was required but the position is still open."""
