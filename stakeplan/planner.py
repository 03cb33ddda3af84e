"""
Sizing of the next trade from the required-balance table.
"""
import logging
import math

import numpy as np

from stakeplan.money import ceil_currency, round_currency

__all__ = ["next_stake"]

log = logging.getLogger(__name__)


def next_stake(
    current_balance: float,
    remaining_trades: int,
    wins_needed: int,
    risk_reward_ratio: float,
    table: np.ndarray,
) -> float:
    """
    Returns the stake for the next trade.

    The stake is the largest amount that still leaves `req[w][r-1]` after a
    loss, raised if necessary to the smallest amount that reaches
    `req[w-1][r-1]` after a win. Whenever the current balance is at or above
    `req[w][r]` both conditions hold together, so following this rule keeps
    the session on course to reach the target as long as the needed wins
    arrive within the remaining trades.

    Returns:
        The stake rounded to cents, or 0.0 when no trade should be created:
        nothing left to plan, an unusable table, or a stake that cannot be
        justified.
    """
    if remaining_trades <= 0 or wins_needed <= 0 or current_balance <= 0:
        return 0.0
    if risk_reward_ratio <= 0:
        return 0.0

    rows, cols = table.shape if table.ndim == 2 else (0, 0)
    if wins_needed >= rows or remaining_trades >= cols:
        log.warning(
            "State (wins_needed=%s, remaining=%s) is outside a %sx%s table",
            wins_needed, remaining_trades, rows, cols,
        )
        return 0.0

    loss_req = table[wins_needed, remaining_trades - 1]
    win_req = table[max(0, wins_needed - 1), remaining_trades - 1]

    if np.isinf(loss_req):
        # No stake survives a loss here, so only the win branch matters.
        stake = current_balance
    else:
        stake = current_balance - loss_req

    if np.isfinite(win_req):
        min_stake_for_win = max(0.0, ceil_currency((win_req - current_balance) / risk_reward_ratio))
        stake = max(stake, min_stake_for_win)

    stake = round_currency(min(max(stake, 0.0), current_balance))
    if not math.isfinite(stake) or stake <= 0:
        return 0.0
    return stake
