"""
Performance metrics for a session's completed trades.

This module turns a list of completed trades into a ledger DataFrame with a
running balance, and summarises that ledger into trade-level statistics.
"""
from typing import Any, Dict, List

import numpy as np
import pandas as pd

from stakeplan.types import CompletedTrade

__all__ = ["ledger_frame", "session_metrics"]

LEDGER_COLUMNS = [
    "trade_id",
    "timestamp",
    "outcome",
    "investment",
    "profit_or_loss",
    "profit_or_loss_percentage",
    "balance",
]


def ledger_frame(trades: List[CompletedTrade], capital: float) -> pd.DataFrame:
    """
    Builds the trade ledger.

    Args:
        trades: Completed trades in recorded order.
        capital: Starting balance of the session.

    Returns:
        A DataFrame with one row per trade and a running `balance` column.
        Returns an empty DataFrame with the ledger columns if there are no trades.
    """
    if not trades:
        return pd.DataFrame(columns=LEDGER_COLUMNS)

    df = pd.DataFrame([t.model_dump() for t in trades])
    df["balance"] = capital + df["profit_or_loss"].cumsum()
    return df[LEDGER_COLUMNS]


def _longest_streak(outcomes: pd.Series, value: str) -> int:
    """Length of the longest run of `value` in `outcomes`."""
    longest = current = 0
    for outcome in outcomes:
        current = current + 1 if outcome == value else 0
        longest = max(longest, current)
    return longest


def session_metrics(ledger: pd.DataFrame, capital: float) -> Dict[str, Any]:
    """
    Summarises a ledger from `ledger_frame`.

    Returns:
        A dictionary with trade counts, win rate, profit totals, averages,
        profit factor, the longest win and loss streaks, and the maximum
        peak-to-trough drawdown of the running balance.
    """
    if ledger.empty:
        return {
            "total_trades": 0,
            "winning_trades": 0,
            "losing_trades": 0,
            "win_rate": 0.0,
            "total_profit": 0.0,
            "total_loss": 0.0,
            "net_profit": 0.0,
            "average_win": 0.0,
            "average_loss": 0.0,
            "profit_factor": 0.0,
            "max_consecutive_wins": 0,
            "max_consecutive_losses": 0,
            "max_drawdown": 0.0,
        }

    pnl = ledger["profit_or_loss"]
    wins = pnl[pnl > 0]
    losses = pnl[pnl < 0]
    total_profit = float(wins.sum())
    total_loss = float(-losses.sum())

    if total_loss > 0:
        profit_factor = total_profit / total_loss
    else:
        profit_factor = np.inf if total_profit > 0 else 0.0

    # Include the starting capital so a first-trade loss counts as drawdown.
    balances = pd.concat([pd.Series([capital]), ledger["balance"]], ignore_index=True)
    drawdown = (balances.cummax() - balances).max()

    return {
        "total_trades": len(ledger),
        "winning_trades": len(wins),
        "losing_trades": len(losses),
        "win_rate": len(wins) / len(ledger) * 100,
        "total_profit": total_profit,
        "total_loss": total_loss,
        "net_profit": total_profit - total_loss,
        "average_win": total_profit / len(wins) if len(wins) else 0.0,
        "average_loss": total_loss / len(losses) if len(losses) else 0.0,
        "profit_factor": profit_factor,
        "max_consecutive_wins": _longest_streak(ledger["outcome"], "won"),
        "max_consecutive_losses": _longest_streak(ledger["outcome"], "lost"),
        "max_drawdown": float(drawdown),
    }
